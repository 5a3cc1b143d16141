"""
WordPress and BuddyPress schema access.

Only the handful of reads the rename needs: table names per site, the user
lookup, options, and whether multisite / BuddyPress are in play.
"""
import logging
import re
from typing import Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection

from .config import BUDDYPRESS_PLUGIN
from .mentions import untrailingslashit

logger = logging.getLogger(__name__)

# bp-pages is a PHP-serialized component => page id map.
_MEMBERS_PAGE = re.compile(r's:\d+:"members";(?:i:(\d+)|s:\d+:"(\d+)")')


def quote(conn: Connection, name: str) -> str:
    return conn.dialect.identifier_preparer.quote(name)


class WordPressSchema:
    def __init__(self, table_prefix: str = "wp_"):
        self.prefix = table_prefix

    # --- core tables ---
    @property
    def users(self) -> str:
        return f"{self.prefix}users"

    @property
    def blogs(self) -> str:
        return f"{self.prefix}blogs"

    @property
    def sitemeta(self) -> str:
        return f"{self.prefix}sitemeta"

    @property
    def options(self) -> str:
        return f"{self.prefix}options"

    @property
    def posts(self) -> str:
        return f"{self.prefix}posts"

    @property
    def comments(self) -> str:
        return f"{self.prefix}comments"

    # --- BuddyPress tables (always on the base prefix) ---
    @property
    def bp_activity(self) -> str:
        return f"{self.prefix}bp_activity"

    @property
    def bp_messages(self) -> str:
        return f"{self.prefix}bp_messages_messages"

    def blog_prefix(self, site_id: int) -> str:
        site_id = int(site_id)
        if site_id in (0, 1):
            return self.prefix
        return f"{self.prefix}{site_id}_"


def find_user_id(conn: Connection, schema: WordPressSchema, nicename: str) -> Optional[int]:
    row = conn.execute(
        text(f"SELECT ID FROM {quote(conn, schema.users)} WHERE user_nicename = :slug LIMIT 1"),
        {"slug": nicename},
    ).first()
    return int(row[0]) if row else None


def has_table(conn: Connection, name: str) -> bool:
    return inspect(conn).has_table(name)


def is_multisite(conn: Connection, schema: WordPressSchema, toggle: str = "auto") -> bool:
    if toggle != "auto":
        return toggle == "on"
    return has_table(conn, schema.blogs)


def site_ids(conn: Connection, schema: WordPressSchema) -> list[int]:
    res = conn.execute(text(f"SELECT blog_id FROM {quote(conn, schema.blogs)} ORDER BY blog_id"))
    return [int(r[0]) for r in res]


def get_option(conn: Connection, schema: WordPressSchema, name: str) -> Optional[str]:
    row = conn.execute(
        text(f"SELECT option_value FROM {quote(conn, schema.options)} WHERE option_name = :name LIMIT 1"),
        {"name": name},
    ).first()
    return row[0] if row else None


def get_site_option(conn: Connection, schema: WordPressSchema, key: str) -> Optional[str]:
    if not has_table(conn, schema.sitemeta):
        return None
    row = conn.execute(
        text(f"SELECT meta_value FROM {quote(conn, schema.sitemeta)} WHERE meta_key = :key LIMIT 1"),
        {"key": key},
    ).first()
    return row[0] if row else None


def buddypress_active(conn: Connection, schema: WordPressSchema, toggle: str = "auto") -> bool:
    if toggle != "auto":
        return toggle == "on"
    needle = f'"{BUDDYPRESS_PLUGIN}"'
    for value in (
        get_option(conn, schema, "active_plugins"),
        get_site_option(conn, schema, "active_sitewide_plugins"),
    ):
        if value and needle in value:
            return True
    return False


def root_domain(conn: Connection, schema: WordPressSchema) -> str:
    home = get_option(conn, schema, "home") or get_option(conn, schema, "siteurl") or ""
    return untrailingslashit(home)


def members_root_slug(conn: Connection, schema: WordPressSchema, default: str = "members") -> str:
    """Slug of the page BuddyPress maps to its members directory."""
    pages = get_option(conn, schema, "bp-pages")
    match = _MEMBERS_PAGE.search(pages or "")
    if not match:
        return default
    page_id = int(match.group(1) or match.group(2))
    row = conn.execute(
        text(f"SELECT post_name FROM {quote(conn, schema.posts)} WHERE ID = :id LIMIT 1"),
        {"id": page_id},
    ).first()
    if not row or not row[0]:
        logger.debug("bp-pages points at missing page %s, using '%s'", page_id, default)
        return default
    return row[0]
