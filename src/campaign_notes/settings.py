"""Settings for indexing a campaign vault.

Settings are stored as JSON. Keys may be snake_case or the camelCase names
used by the vault plugin configuration (``includeFolders`` and
``campaignScopes``).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import orjson

from campaign_notes.errors import SettingsError
from campaign_notes.io_utils import load_json

_KEY_ALIASES: dict[str, str] = {
    "includeFolders": "include_folders",
    "campaignScopes": "campaign_scopes",
}
_LIST_KEYS = ("include_folders", "campaign_scopes")


@dataclass(frozen=True, slots=True)
class CampaignNotesSettings:
    """Indexing configuration.

    An empty ``include_folders`` means the whole vault is indexed. An empty
    ``campaign_scopes`` means scopes are taken from the indexed entities.
    """

    include_folders: tuple[str, ...] = ()
    campaign_scopes: tuple[str, ...] = ()
    debug: bool = False

    def with_overrides(
        self,
        *,
        include_folders: list[str] | None = None,
        campaign_scopes: list[str] | None = None,
        debug: bool | None = None,
    ) -> CampaignNotesSettings:
        """Return a copy with any non-empty overrides applied."""
        out = self
        if include_folders:
            out = replace(out, include_folders=tuple(include_folders))
        if campaign_scopes:
            out = replace(out, campaign_scopes=tuple(campaign_scopes))
        if debug is not None:
            out = replace(out, debug=debug)
        return out


DEFAULT_SETTINGS = CampaignNotesSettings()


def settings_from_dict(raw: dict[str, Any]) -> CampaignNotesSettings:
    """Build settings from a decoded JSON mapping; unknown keys are ignored."""
    values: dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name in _LIST_KEYS:
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise SettingsError(f"Setting '{key}' must be a list of strings")
            values[name] = tuple(v.strip("/") for v in value if v.strip("/"))
        elif name == "debug":
            if not isinstance(value, bool):
                raise SettingsError(f"Setting '{key}' must be true or false")
            values[name] = value
    return CampaignNotesSettings(**values)


def load_settings(path: Path | None) -> CampaignNotesSettings:
    """Load settings from ``path``; ``None`` returns the defaults."""
    if path is None:
        return DEFAULT_SETTINGS
    try:
        raw = load_json(path)
    except FileNotFoundError as exc:
        raise SettingsError(f"Settings file not found: {path}") from exc
    except orjson.JSONDecodeError as exc:
        raise SettingsError(f"Invalid JSON in settings file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")
    return settings_from_dict(raw)
