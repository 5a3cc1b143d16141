"""
Text rewriting rules for mentions and profile URLs.

The same regex is handed to MySQL's REGEXP_REPLACE and used with ``re`` for
databases that have no regex replace, so it sticks to syntax both ICU and
Python accept.
"""
import re

WORD_CHARS = "A-Za-z0-9_"


def mention_pattern(nicename: str) -> str:
    """Regex for ``@nicename`` not glued to other word characters."""
    return rf"(?<![{WORD_CHARS}])@{re.escape(nicename)}(?![{WORD_CHARS}])"


def compile_mention(nicename: str) -> re.Pattern:
    # Mirrors the case-insensitive collations WordPress tables ship with.
    return re.compile(mention_pattern(nicename), re.IGNORECASE)


def replace_mentions(text: str, old: str, new: str) -> str:
    if not text:
        return text
    return compile_mention(old).sub(lambda _m: f"@{new}", text)


URL_GUARD = "{{wp-nicename:url}}"


def needs_url_guard(old_url: str, new_url: str) -> bool:
    # bob -> bobby: a plain swap would also hit text already carrying the new URL.
    return old_url in new_url


def replace_urls(text: str, old_url: str, new_url: str) -> str:
    if not text:
        return text
    if not needs_url_guard(old_url, new_url):
        return text.replace(old_url, new_url)
    guarded = text.replace(new_url, URL_GUARD)
    return guarded.replace(old_url, new_url).replace(URL_GUARD, new_url)


def untrailingslashit(value: str) -> str:
    return value.rstrip("/\\")


def members_url(root_url: str, members_slug: str, nicename: str) -> str:
    return f"{untrailingslashit(root_url)}/{members_slug.strip('/')}/{nicename}/"
