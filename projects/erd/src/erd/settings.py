"""Settings for layout and DDL generation loaded from TOML."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from tomllib import load
from typing import Any

SETTINGS_FILE = Path(__file__).parent / "settings.toml"


@dataclass(frozen=True)
class LayoutSettings:
    """Row-major grid used for the initial position of tables."""

    columns: int = 3
    origin_x: float = 100
    origin_y: float = 100
    spacing_x: float = 300
    spacing_y: float = 250


@dataclass(frozen=True)
class DDLSettings:
    """Formatting of generated DDL."""

    indent: str = "    "
    constraint_prefix: str = "fk"


@dataclass(frozen=True)
class Settings:
    """All configurable values."""

    layout: LayoutSettings = field(default_factory=LayoutSettings)
    ddl: DDLSettings = field(default_factory=DDLSettings)


def _read(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return load(f)


def _merge(settings: Settings, data: dict[str, Any], source: Path) -> Settings:
    sections = {f.name for f in fields(Settings)}
    if unknown := set(data) - sections:
        msg = f"Unknown settings section(s) in {source}: {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    updated: dict[str, Any] = {}
    for section, values in data.items():
        current = getattr(settings, section)
        allowed = {f.name for f in fields(current)}
        if unknown := set(values) - allowed:
            msg = (
                f"Unknown key(s) in [{section}] of {source}: "
                f"{', '.join(sorted(unknown))}"
            )
            raise ValueError(msg)
        updated[section] = replace(current, **values)
    return replace(settings, **updated)


def load_settings(path: Path | None = None) -> Settings:
    """Load the packaged defaults, then apply the user file if given."""
    settings = _merge(Settings(), _read(SETTINGS_FILE), SETTINGS_FILE)
    if path is not None:
        settings = _merge(settings, _read(path), path)
    return settings
