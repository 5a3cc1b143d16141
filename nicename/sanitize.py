import re
import unicodedata

from .errors import InvalidNicenameError

_SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.I | re.S)
_TAGS = re.compile(r"<[^>]*>")
_OCTETS = re.compile(r"%[a-fA-F0-9]{2}")
_ENTITIES = re.compile(r"&.+?;")
_DISALLOWED = re.compile(r"[^a-z0-9 _.\-@]")
_WHITESPACE = re.compile(r"\s+")


def remove_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def sanitize_user(raw: str) -> str:
    """
    Reduce a username/nicename to lowercase ``a-z0-9``, space and ``_.-@``.

    Tags, percent-encoded octets and HTML entities are dropped entirely,
    accents are folded to ASCII.
    """
    value = _SCRIPT_STYLE.sub("", raw)
    value = _TAGS.sub("", value)
    value = remove_accents(value)
    value = _OCTETS.sub("", value)
    value = _ENTITIES.sub("", value)
    value = _DISALLOWED.sub("", value.lower())
    value = value.strip()
    return _WHITESPACE.sub(" ", value)


def normalize_nicename(raw: str) -> str:
    value = sanitize_user(raw)
    if not value:
        raise InvalidNicenameError(f"'{raw}' is not a usable nicename.")
    return value
