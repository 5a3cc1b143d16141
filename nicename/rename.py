"""
The nicename change itself.

Statements run one after another on a single connection and each one is
committed straight away: a failure part-way leaves the earlier steps in
place, there is no rollback.
"""
import logging
from typing import Iterator, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from . import wordpress as wp
from .config import Settings
from .errors import ConfigurationError, RenameFailedError, SameNicenameError, UserNotFoundError
from .mentions import (
    URL_GUARD,
    compile_mention,
    members_url,
    mention_pattern,
    needs_url_guard,
    untrailingslashit,
)
from .sanitize import normalize_nicename
from .schemas import RenameResult, TableUpdate
from .search_replace import run_search_replace
from .wordpress import WordPressSchema, quote

logger = logging.getLogger(__name__)

# Primary key of each content table, keyed by the text column we rewrite.
PRIMARY_KEYS = {
    "post_content": "ID",
    "comment_content": "comment_ID",
    "content": "id",
    "message": "id",
}

REGEX_DIALECTS = ("mysql", "mariadb")


class NullProgress:
    def start(self, label: str, total: int) -> None:
        pass

    def tick(self) -> None:
        pass

    def finish(self) -> None:
        pass


def mention_tables(conn: Connection, schema: WordPressSchema, settings: Settings) -> list[Tuple[str, str]]:
    """(field, table) pairs whose text gets mentions and URLs rewritten."""
    if wp.is_multisite(conn, schema, settings.multisite):
        prefixes = [schema.blog_prefix(site_id) for site_id in wp.site_ids(conn, schema)]
    else:
        prefixes = [schema.prefix]
    tables = [("post_content", f"{p}posts") for p in prefixes]
    tables += [("comment_content", f"{p}comments") for p in prefixes]
    tables.append(("content", schema.bp_activity))
    tables.append(("message", schema.bp_messages))
    return tables


def _rewrite_mentions_sql(conn: Connection, table: str, field: str, old: str, new: str) -> int:
    t, f = quote(conn, table), quote(conn, field)
    res = conn.execute(
        text(f"UPDATE {t} SET {f} = REGEXP_REPLACE({f}, :pattern, :repl) WHERE {f} REGEXP :pattern"),
        {"pattern": mention_pattern(old), "repl": f"@{new}"},
    )
    return res.rowcount


def _rewrite_mentions_rows(conn: Connection, table: str, field: str, old: str, new: str) -> int:
    t, f, pk = quote(conn, table), quote(conn, field), quote(conn, PRIMARY_KEYS[field])
    pattern = compile_mention(old)
    rows = conn.execute(
        text(f"SELECT {pk}, {f} FROM {t} WHERE {f} LIKE :like"),
        {"like": f"%@{old}%"},
    ).all()
    changed = 0
    for row_id, value in rows:
        updated = pattern.sub(lambda _m: f"@{new}", value)
        if updated != value:
            conn.execute(
                text(f"UPDATE {t} SET {f} = :value WHERE {pk} = :id"),
                {"value": updated, "id": row_id},
            )
            changed += 1
    return changed


def rewrite_mentions(conn: Connection, table: str, field: str, old: str, new: str) -> int:
    if conn.dialect.name in REGEX_DIALECTS:
        count = _rewrite_mentions_sql(conn, table, field, old, new)
    else:
        count = _rewrite_mentions_rows(conn, table, field, old, new)
    conn.commit()
    return count


def replace_url(conn: Connection, table: str, field: str, old_url: str, new_url: str) -> int:
    """
    Literal URL swap. When the new URL contains the old one, existing new URLs
    (e.g. written by search-replace) are parked behind a guard token first so
    they are not rewritten a second time.
    """
    t, f = quote(conn, table), quote(conn, field)
    params = {"old": old_url, "new": new_url, "like": f"%{old_url}%"}
    if needs_url_guard(old_url, new_url):
        params["guard"] = URL_GUARD
        expr = f"REPLACE(REPLACE(REPLACE({f}, :new, :guard), :old, :new), :guard, :new)"
    else:
        expr = f"REPLACE({f}, :old, :new)"
    res = conn.execute(
        text(f"UPDATE {t} SET {f} = {expr} WHERE {f} LIKE :like"),
        params,
    )
    conn.commit()
    return res.rowcount


def update_user_nicename(conn: Connection, schema: WordPressSchema, old: str, new: str) -> int:
    try:
        res = conn.execute(
            text(f"UPDATE {quote(conn, schema.users)} SET user_nicename = :new WHERE user_nicename = :old"),
            {"new": new, "old": old},
        )
        conn.commit()
    except SQLAlchemyError as e:
        logger.debug("user_nicename update failed: %s", e)
        raise RenameFailedError("Could not update user_nicename.") from e
    return res.rowcount


def _iter_updates(conn, tables, old, new, old_url, new_url) -> Iterator[TableUpdate]:
    for field, table in tables:
        if not wp.has_table(conn, table):
            logger.warning("Table %s does not exist, skipping.", table)
            yield TableUpdate(table=table, field=field, skipped=True)
            continue
        mentions = rewrite_mentions(conn, table, field, old, new)
        urls = replace_url(conn, table, field, old_url, new_url)
        yield TableUpdate(table=table, field=field, mentions=mentions, urls=urls)


def change_user_nicename(
    conn: Connection,
    old_raw: str,
    new_raw: str,
    settings: Settings,
    progress: Optional[NullProgress] = None,
) -> RenameResult:
    progress = progress or NullProgress()
    schema = WordPressSchema(settings.table_prefix)

    old = normalize_nicename(old_raw)
    new = normalize_nicename(new_raw)
    if old == new:
        raise SameNicenameError("Old and new usernames are the same.")

    user_id = wp.find_user_id(conn, schema, old)
    if user_id is None:
        raise UserNotFoundError(f"Could not find a user with user_nicename {old}")

    buddypress = wp.buddypress_active(conn, schema, settings.buddypress)
    if buddypress and settings.multisite == "on" and not wp.has_table(conn, schema.blogs):
        raise ConfigurationError(
            f"Multisite is forced on but {schema.blogs} does not exist."
        )

    update_user_nicename(conn, schema, old, new)
    logger.info("Changed user_nicename from %s to %s.", old, new)

    result = RenameResult(user_id=user_id, old=old, new=new)
    if not buddypress:
        logger.info("BuddyPress not active. Skipping BuddyPress tables.")
        return result

    logger.info("Updating BP profile lines in core tables.")
    slug = wp.members_root_slug(conn, schema, settings.members_slug)
    root = wp.root_domain(conn, schema)
    result.buddypress = True
    result.old_url = members_url(root, slug, old)
    result.new_url = members_url(root, slug, new)

    run_search_replace(
        result.old_url,
        result.new_url,
        [schema.posts, schema.comments, schema.bp_activity],
        settings,
    )
    logger.info("Updated URLs in core tables.")

    logger.info("Updating user mentions (e.g. @username) across all tables.")
    tables = mention_tables(conn, schema, settings)
    progress.start("Updating user mentions", len(tables))
    for update in _iter_updates(
        conn, tables, old, new,
        untrailingslashit(result.old_url), untrailingslashit(result.new_url),
    ):
        result.tables.append(update)
        progress.tick()
    progress.finish()
    logger.info("Updated user mentions in core tables.")
    return result
