"""Entity, status and scope value types shared across the package.

Entities are owned by the index (which builds them) and read by the cache,
generators and formatters. Nothing downstream of the index mutates them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EntityType(StrEnum):
    AREA = "area"
    ENCOUNTER = "encounter"
    GROUP = "group"
    ITEM = "item"
    PLACE = "place"
    NPC = "npc"
    PC = "pc"
    UNKNOWN = "unknown"


class EncounterStatus(StrEnum):
    NEW = "new"
    ACTIVE = "active"
    COMPLETE = "complete"


class GroupStatus(StrEnum):
    ACTIVE = "active"
    DEFUNCT = "defunct"
    UNKNOWN = "unknown"


class NPCStatus(StrEnum):
    ALIVE = "alive"
    DEAD = "dead"
    UNDEAD = "undead"
    GHOST = "ghost"
    UNKNOWN = "unknown"


VALID_ENTITY_TYPES: frozenset[str] = frozenset(t.value for t in EntityType)

# Sort order for NPCs within one disposition bucket.
NPC_STATUS_ORDER: tuple[str, ...] = ("alive", "undead", "ghost", "dead", "unknown")

WILDCARD_SCOPE = "*"


# ---------------------------------------------------------------------------
# Per-scope state
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class EntityState:
    """Scope-specific overlay for an entity (or the ``"*"`` default)."""

    notes: str | None = None
    status: str | None = None
    iff: str | None = None
    renown: int | str | None = None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CampaignEntity:
    id: str
    name: str
    type: EntityType
    file_path: str
    tags: list[str] = field(default_factory=list)
    scope: str | None = None
    state: dict[str, EntityState] = field(default_factory=dict)
    icon: str | None = None
    id_tag: str | None = None
    subtype: str | None = None
    anchor: str | None = None

    def state_for(self, scope: str | None) -> EntityState | None:
        """Return the state for ``scope``, falling back to the ``"*"`` entry."""
        if scope:
            entry = self.state.get(scope)
            if entry is not None:
                return entry
        return self.state.get(WILDCARD_SCOPE)

    def notes_for(self, scope: str | None) -> str:
        entry = self.state_for(scope)
        return str(entry.notes) if entry is not None and entry.notes else ""


@dataclass(slots=True)
class Area(CampaignEntity):
    region: str | None = None


@dataclass(slots=True)
class Encounter(CampaignEntity):
    status: str | None = None
    level: int | None = None


@dataclass(slots=True)
class Group(CampaignEntity):
    pass


@dataclass(slots=True)
class Item(CampaignEntity):
    pass


@dataclass(slots=True)
class NPC(CampaignEntity):
    pass


@dataclass(slots=True)
class Place(CampaignEntity):
    area: str | None = None  # id (or id tag) of the containing area


@dataclass(slots=True)
class PC(CampaignEntity):
    pass


ENTITY_CLASSES: dict[EntityType, type[CampaignEntity]] = {
    EntityType.AREA: Area,
    EntityType.ENCOUNTER: Encounter,
    EntityType.GROUP: Group,
    EntityType.ITEM: Item,
    EntityType.NPC: NPC,
    EntityType.PLACE: Place,
    EntityType.PC: PC,
    EntityType.UNKNOWN: CampaignEntity,
}


# ---------------------------------------------------------------------------
# Generation-pass values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DataScope:
    """Effective data window for one file during one generation pass.

    ``active`` is the primary scope, ``pattern`` the (possibly multi-scope)
    pattern the cache was precomputed for, ``regex`` its compiled form and
    ``filter`` an optional expression over entity source paths.
    """

    active: str
    pattern: str
    regex: re.Pattern[str]
    filter: re.Pattern[str] | None = None

    def with_active(self, scope: str) -> DataScope:
        return DataScope(
            active=scope,
            pattern=self.pattern,
            regex=self.regex,
            filter=self.filter,
        )

    def includes_path(self, path: str) -> bool:
        return self.filter.search(path) is not None if self.filter else True


@dataclass(slots=True)
class RowCount:
    """Mutable stripe counter shared by the rows of one bucket."""

    count: int = 0

    def zebra(self) -> str:
        parity = "even" if self.count % 2 == 0 else "odd"
        self.count += 1
        return parity
