"""
Database configuration and connection factory.

The URL comes from settings (``DATABASE_URL`` by default). MySQL URLs are
normalized to the PyMySQL driver, unsupported query parameters are removed
and the connection charset defaults to utf8mb4 so post content round-trips
intact. A connection generator is provided for FastAPI dependency injection.
"""
from typing import Generator
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

_DROP_PARAMS = ("sslmode", "channel_binding")


def normalize_url(url: str) -> str:
    if not url:
        return url
    parts = urlparse(url)
    scheme = parts.scheme
    if scheme in ("mysql", "mariadb"):
        scheme = f"{scheme}+pymysql"
    if not scheme.startswith(("mysql", "mariadb")):
        return url
    q = dict(parse_qsl(parts.query, keep_blank_values=True))
    for key in _DROP_PARAMS:
        q.pop(key, None)
    q.setdefault("charset", "utf8mb4")
    return urlunparse((scheme, parts.netloc, parts.path, "", urlencode(q), ""))


def make_engine(url: str, echo: bool = False) -> Engine:
    url = normalize_url(url)
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, future=True)
    return create_engine(
        url,
        echo=echo,
        future=True,
        pool_size=1,
        max_overflow=0,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


_engines: dict[str, Engine] = {}


def get_engine(url: str) -> Engine:
    """Engines are cached per URL so the API does not rebuild pools per request."""
    engine = _engines.get(url)
    if engine is None:
        engine = _engines[url] = make_engine(url)
    return engine


def open_connection(engine: Engine) -> Generator[Connection, None, None]:
    """
    Yield a connection and close it afterwards.

    Statements are committed by the caller one at a time; nothing here wraps
    the work in a transaction.
    """
    with engine.connect() as conn:
        yield conn
