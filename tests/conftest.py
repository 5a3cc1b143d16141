"""
Pytest configuration and shared fixtures.

Builds a small WordPress/BuddyPress-shaped schema in SQLite and stubs out the
WP-CLI subprocess.
"""
import subprocess

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import StaticPool

from nicename.config import Settings

BP_ACTIVE_PLUGINS = 'a:1:{i:0;s:24:"buddypress/bp-loader.php";}'
HOME = "https://example.org"


def _content_tables(conn, prefix):
    conn.execute(text(f"CREATE TABLE {prefix}posts (ID INTEGER PRIMARY KEY, post_name TEXT, post_content TEXT)"))
    conn.execute(text(f"CREATE TABLE {prefix}comments (comment_ID INTEGER PRIMARY KEY, comment_content TEXT)"))


def create_wordpress(engine, buddypress=True, multisite=False, extra_sites=(2,)):
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE wp_users (ID INTEGER PRIMARY KEY, user_login TEXT, user_nicename TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE wp_options (option_id INTEGER PRIMARY KEY, option_name TEXT, option_value TEXT)"
        ))
        _content_tables(conn, "wp_")
        conn.execute(text("CREATE TABLE wp_bp_activity (id INTEGER PRIMARY KEY, content TEXT)"))
        conn.execute(text("CREATE TABLE wp_bp_messages_messages (id INTEGER PRIMARY KEY, message TEXT)"))

        conn.execute(text(
            "INSERT INTO wp_users (ID, user_login, user_nicename) VALUES "
            "(1, 'bob', 'bob'), (2, 'bobster', 'bobster'), (3, 'alice', 'alice')"
        ))
        conn.execute(
            text("INSERT INTO wp_options (option_name, option_value) VALUES ('home', :home), ('siteurl', :home)"),
            {"home": HOME + "/"},
        )
        if buddypress:
            conn.execute(
                text("INSERT INTO wp_options (option_name, option_value) VALUES ('active_plugins', :v)"),
                {"v": BP_ACTIVE_PLUGINS},
            )
        if multisite:
            conn.execute(text("CREATE TABLE wp_blogs (blog_id INTEGER PRIMARY KEY, domain TEXT)"))
            conn.execute(text(
                "CREATE TABLE wp_sitemeta (meta_id INTEGER PRIMARY KEY, site_id INTEGER, meta_key TEXT, meta_value TEXT)"
            ))
            conn.execute(text("INSERT INTO wp_blogs (blog_id, domain) VALUES (1, 'example.org')"))
            for site_id in extra_sites:
                conn.execute(text("INSERT INTO wp_blogs (blog_id, domain) VALUES (:id, 'example.org')"), {"id": site_id})
                _content_tables(conn, f"wp_{site_id}_")
    return engine


def seed_content(engine):
    with engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO wp_posts (ID, post_name, post_content) VALUES "
            "(1, 'hello', 'Thanks @bob for the help!'), "
            "(2, 'other', 'Ping @bobster and x@bob_y here'), "
            "(3, 'link', 'See https://example.org/members/bob/profile')"
        ))
        conn.execute(text(
            "INSERT INTO wp_comments (comment_ID, comment_content) VALUES "
            "(1, '@bob: agreed'), (2, 'nothing to see')"
        ))
        conn.execute(text(
            "INSERT INTO wp_bp_activity (id, content) VALUES "
            "(1, '@bob @bob twice'), (2, 'visit https://example.org/members/bob')"
        ))
        conn.execute(text(
            "INSERT INTO wp_bp_messages_messages (id, message) VALUES (1, 'hey (@bob).')"
        ))


def memory_engine():
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def engine():
    eng = memory_engine()
    create_wordpress(eng)
    seed_content(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def conn(engine):
    with engine.connect() as c:
        yield c


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", wp_cli="wp")


@pytest.fixture
def statements(engine):
    """Every SQL statement sent to the database, in order."""
    seen = []

    @event.listens_for(engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    yield seen
    event.remove(engine, "before_cursor_execute", _record)


# Text column search-replace rewrites, keyed by table suffix.
SEARCH_REPLACE_COLUMNS = {
    "posts": "post_content",
    "comments": "comment_content",
    "bp_activity": "content",
}


class FakeWpCli:
    def __init__(self):
        self.calls = []
        self.returncode = 0
        self.apply_to = None

    def __call__(self, cmd, check=False, **kwargs):
        self.calls.append(cmd)
        if self.apply_to is not None and self.returncode == 0:
            self._apply(cmd)
        return subprocess.CompletedProcess(cmd, self.returncode)

    def _apply(self, cmd):
        # What wp search-replace does to these tables: a literal swap.
        i = cmd.index("--all-tables")
        old, new, tables = cmd[i + 1], cmd[i + 2], cmd[i + 3:]
        for table in tables:
            column = next(c for suffix, c in SEARCH_REPLACE_COLUMNS.items() if table.endswith(suffix))
            self.apply_to.execute(
                text(f"UPDATE {table} SET {column} = REPLACE({column}, :old, :new)"),
                {"old": old, "new": new},
            )
        self.apply_to.commit()


@pytest.fixture
def wp_cli(monkeypatch):
    """
    Replaces subprocess.run for WP-CLI. Set ``.returncode`` to simulate
    failures, or ``.apply_to`` to a connection to have the swap performed.
    """
    fake = FakeWpCli()
    monkeypatch.setattr("nicename.search_replace.subprocess.run", fake)
    return fake
