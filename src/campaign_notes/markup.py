"""String helpers for rendering entities and compiling scope expressions.

Pure functions with no index or cache dependencies.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from campaign_notes.entity_types import CampaignEntity


# ---------------------------------------------------------------------------
# Icons
# ---------------------------------------------------------------------------

_BLANK_ICON = "⬜️"

_IFF_ICONS: dict[str, str] = {
    "family": "💖",
    "pet": "💖",
    "taproom": "🍺",
    "friend": "🩵",
    "ally": "💚",
    "enemy": "🔥",
    "positive": "👍",
    "negative": "👎",
    "neutral": "🤐",
}

_IFF_GROUPS: dict[str, str] = {
    "family": "family",
    "pet": "family",
    "friend": "allies",
    "taproom": "allies",
    "ally": "allies",
    "enemy": "enemies",
}

_STATUS_ICONS: dict[str, str] = {
    "alive": "🌱",
    "dead": "💀",
    "undead": "🧟‍♀️",
    "ghost": "👻",
}

_TYPE_ICONS: dict[str, str] = {
    "area": "🗺️",
    "encounter": "🎢",
    "group": "👥",
    "item": "🧸",
    "place": "🎠",
    "npc": "👤",
    "pc": "😇",
}

# Disposition buckets in the order the NPC section renders them.
IFF_GROUPS: tuple[str, ...] = ("family", "allies", "enemies", "other")


def iff_status_icon(iff: str | None) -> str:
    return _IFF_ICONS.get(iff or "", _BLANK_ICON)


def npc_to_iff_group(iff: str | None) -> str:
    """Map an IFF value to its disposition bucket."""
    return _IFF_GROUPS.get(iff or "", "other")


def status_icon(status: str | None) -> str:
    return _STATUS_ICONS.get(status or "", _BLANK_ICON)


def type_icon(entity_type: str) -> str:
    return _TYPE_ICONS.get(str(entity_type), _BLANK_ICON)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


def entity_to_link(entity: CampaignEntity, strong: bool = False) -> str:
    text = f"<strong>{entity.name}</strong>" if strong else entity.name
    return (
        f'<a class="internal-link" data-href="{entity.id}" href="{entity.id}" '
        f'target="_blank" rel="noopener nofollow">{text}</a>'
    )


def markdown_link_path(file_path: str, anchor: str = "") -> str:
    """Encode a vault path (and optional anchor) as a markdown link target."""
    hash_anchor = f"#{anchor}" if anchor else ""
    return (file_path + hash_anchor).replace(" ", "%20")


@dataclass(slots=True)
class CleanLink:
    """An outbound link split into its target path and anchor."""

    md_link: str
    path: str
    anchor: str = ""
    text: str | None = None


def clean_link_target(link: str, display_text: str | None = None) -> CleanLink:
    """Drop a trailing ``"title"``, split off the anchor and decode ``%20``."""
    path = link
    title_pos = path.find(' "')
    if title_pos >= 0:
        path = path[:title_pos]

    md_link = path.replace(" ", "%20").strip()

    anchor_pos = path.find("#")
    anchor = "" if anchor_pos < 0 else path[anchor_pos + 1 :].replace("%20", " ").strip()
    if anchor_pos >= 0:
        path = path[:anchor_pos]
    path = path.replace("%20", " ").strip()

    return CleanLink(md_link=md_link, path=path, anchor=anchor, text=display_text)


_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_SEPARATOR_RE = re.compile(r"[\s_|]+")
_STRIP_RE = re.compile(r"[^0-9a-zA-Z_-]")


def lower_kebab(name: str) -> str:
    """Convert ``"Lady Silverhand"`` or ``"ladySilverhand"`` to ``"lady-silverhand"``."""
    text = _CAMEL_RE.sub(r"\1-\2", name or "")
    text = _SEPARATOR_RE.sub("-", text)
    text = _STRIP_RE.sub("", text)
    return text.lower()


# ---------------------------------------------------------------------------
# Scope expressions
# ---------------------------------------------------------------------------


def scope_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a scope pattern that must match a whole scope id, ignoring case."""
    return re.compile(f"^(?:{pattern})$", re.IGNORECASE)


def segment_filter_regex(pattern: str) -> re.Pattern[str]:
    """Compile a path filter matching ``pattern`` as leading path segment(s)."""
    return re.compile(f"^(?:{pattern})(/|$)")
