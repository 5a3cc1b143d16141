"""
Command-line entrypoint.

    wp-nicename change-user-nicename old_nicename new_nicename
"""
import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from sqlalchemy.exc import SQLAlchemyError

from .config import load_settings
from .db import make_engine
from .errors import NicenameError
from .rename import change_user_nicename

app = typer.Typer(
    name="wp-nicename",
    help="Change a WordPress user's nicename, including BuddyPress mentions and profile URLs.",
    add_completion=False,
)

logger = logging.getLogger("nicename")


class RichProgress:
    def __init__(self, console: Console):
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        )
        self._task = None

    def start(self, label: str, total: int) -> None:
        self._progress.start()
        self._task = self._progress.add_task(label, total=total)

    def tick(self) -> None:
        self._progress.advance(self._task)

    def finish(self) -> None:
        if self._task is not None:
            self._progress.stop()
            self._task = None


def setup_logging(console: Console, verbose: bool = False) -> None:
    # Log through the same console as the progress bar so lines print above it.
    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


@app.callback()
def main() -> None:
    """WordPress nicename maintenance."""


@app.command("change-user-nicename")
def change_user_nicename_cmd(
    old: str = typer.Argument(..., help="The old nicename."),
    new: str = typer.Argument(..., help="The new nicename."),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="SQLAlchemy URL of the WordPress database."),
    table_prefix: Optional[str] = typer.Option(None, "--table-prefix", help="WordPress table prefix."),
    wp_cli: Optional[str] = typer.Option(None, "--wp-cli", help="WP-CLI executable used for search-replace."),
    wp_path: Optional[str] = typer.Option(None, "--path", help="WordPress install path passed to WP-CLI."),
    members_slug: Optional[str] = typer.Option(None, "--members-slug", help="Fallback BuddyPress members slug."),
    buddypress: Optional[bool] = typer.Option(None, "--buddypress/--no-buddypress", help="Force BuddyPress handling on or off."),
    multisite: Optional[bool] = typer.Option(None, "--multisite/--no-multisite", help="Force multisite handling on or off."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
):
    """
    Changes a user's nicename.

    Example:
        wp-nicename change-user-nicename old_nicename new_nicename
    """
    console = Console()
    setup_logging(console, verbose)
    try:
        settings = load_settings(
            database_url=database_url,
            table_prefix=table_prefix,
            wp_cli=wp_cli,
            wp_path=wp_path,
            members_slug=members_slug,
            buddypress=buddypress,
            multisite=multisite,
        )
    except ValidationError as e:
        typer.secho(f"Error: Invalid configuration: {e}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    engine = make_engine(settings.database_url)
    progress = RichProgress(console)
    try:
        with engine.connect() as conn:
            result = change_user_nicename(conn, old, new, settings, progress)
    except NicenameError as e:
        typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=e.exit_code)
    except SQLAlchemyError as e:
        typer.secho(f"Error: Database error: {e}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    finally:
        progress.finish()
        engine.dispose()

    typer.secho(
        f"Success: User nicename update from {result.old} to {result.new}. Don't forget to clear caches.",
        fg=typer.colors.GREEN,
    )


if __name__ == "__main__":
    app()
