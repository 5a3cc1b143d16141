"""
Invocation of ``wp search-replace``.

WP-CLI's search-replace understands PHP-serialized values, which plain SQL
REPLACE would corrupt, so the URL swap in post/comment/activity tables is
delegated to it.
"""
import logging
import shlex
import subprocess
from typing import Sequence

from .config import Settings
from .errors import SearchReplaceError

logger = logging.getLogger(__name__)


def build_command(old_url: str, new_url: str, tables: Sequence[str], settings: Settings) -> list[str]:
    cmd = shlex.split(settings.wp_cli)
    if settings.wp_path:
        cmd.append(f"--path={settings.wp_path}")
    cmd += ["search-replace", "--all-tables", old_url, new_url]
    cmd += list(tables)
    return cmd


def run_search_replace(old_url: str, new_url: str, tables: Sequence[str], settings: Settings) -> None:
    cmd = build_command(old_url, new_url, tables, settings)
    logger.debug("Running: %s", shlex.join(cmd))
    try:
        proc = subprocess.run(cmd, check=False)
    except FileNotFoundError as e:
        raise SearchReplaceError(f"Could not run '{cmd[0]}': {e}", exit_code=127) from e
    if proc.returncode != 0:
        raise SearchReplaceError(
            f"search-replace exited with status {proc.returncode}.",
            exit_code=proc.returncode,
        )
