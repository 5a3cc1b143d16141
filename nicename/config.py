"""
Runtime configuration.

Values come from environment variables (same approach as the database URL
in ``db.py``); CLI options override them and the result is validated again.
"""
import os
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

Toggle = Literal["auto", "on", "off"]

BUDDYPRESS_PLUGIN = "buddypress/bp-loader.php"


def _toggle(value: str | None) -> str:
    value = (value or "auto").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return "on"
    if value in ("0", "false", "no", "off"):
        return "off"
    if value == "auto":
        return "auto"
    raise ValueError(f"expected on, off or auto, got {value!r}")


class Settings(BaseModel):
    database_url: str = "mysql+pymysql://root@localhost/wordpress"
    table_prefix: str = "wp_"
    wp_cli: str = "wp"
    wp_path: Optional[str] = None
    members_slug: str = "members"
    buddypress: Toggle = "auto"
    multisite: Toggle = "auto"
    admin_token: Optional[str] = None

    @field_validator("table_prefix")
    @classmethod
    def _check_prefix(cls, v: str) -> str:
        # The prefix is interpolated into table names, never bound.
        if not v or not all(c.isalnum() or c == "_" for c in v):
            raise ValueError(f"invalid table prefix: {v!r}")
        return v

    @field_validator("buddypress", "multisite", mode="before")
    @classmethod
    def _normalize_toggle(cls, v):
        if isinstance(v, bool):
            return "on" if v else "off"
        return _toggle(v)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment; ``None`` overrides are ignored."""
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", Settings.model_fields["database_url"].default),
        table_prefix=os.getenv("WP_TABLE_PREFIX", "wp_"),
        wp_cli=os.getenv("WP_CLI", "wp"),
        wp_path=os.getenv("WP_PATH") or None,
        members_slug=os.getenv("BP_MEMBERS_SLUG", "members"),
        buddypress=os.getenv("NICENAME_BUDDYPRESS", "auto"),
        multisite=os.getenv("NICENAME_MULTISITE", "auto"),
        admin_token=os.getenv("NICENAME_ADMIN_TOKEN") or None,
    )
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        # Re-validate so toggles and the prefix go through the same checks.
        settings = Settings.model_validate({**settings.model_dump(), **updates})
    return settings
