"""Relationship cache keyed by scope pattern.

``precompute(pattern)`` materializes, for every scope matched by the pattern,
the lookups the section generators read: entities by type, group status and
renown, NPC disposition and status, active entities by type, related
entities, and last-seen sessions. ``clear()`` drops every precomputed
pattern; it is called at the start and end of each regeneration run.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from campaign_notes.entity_types import (
    NPC_STATUS_ORDER,
    CampaignEntity,
    DataScope,
    Encounter,
    EntityType,
    Group,
    GroupStatus,
    NPC,
    NPCStatus,
)
from campaign_notes.index import CampaignIndex
from campaign_notes.markup import (
    CleanLink,
    entity_to_link,
    npc_to_iff_group,
    scope_to_regex,
    segment_filter_regex,
)
from campaign_notes.vault import Vault

log = logging.getLogger(__name__)

_SESSION_PATH_RE = re.compile(r"sessions")
_DIGITS_RE = re.compile(r"\d+")

# related entity id -> rendered link, grouped by related entity type
RelatedByType = dict[EntityType, dict[str, str]]


@dataclass(slots=True)
class ScopeCache:
    """Precomputed lookups for one scope pattern."""

    prepared: bool = False
    entity_by_type: dict[EntityType, list[CampaignEntity]] = field(default_factory=dict)
    active_by_type: dict[str, dict[EntityType, list[CampaignEntity]]] = field(default_factory=dict)
    group_renown: dict[str, dict[str, Group]] = field(default_factory=dict)
    group_status: dict[str, dict[str, str]] = field(default_factory=dict)
    npc_iff: dict[str, dict[str, list[NPC]]] = field(default_factory=dict)
    npc_status: dict[str, dict[str, str]] = field(default_factory=dict)
    related: dict[str, RelatedByType] = field(default_factory=dict)
    last_seen: dict[str, str] = field(default_factory=dict)
    icons: dict[str, str] = field(default_factory=dict)


def _group_status(group: CampaignEntity, scope: str) -> str:
    scoped = group.state.get(scope)
    if scoped is not None:
        return scoped.status or GroupStatus.ACTIVE
    default = group.state.get("*")
    return (default.status if default is not None else None) or GroupStatus.UNKNOWN


def _npc_status(npc: CampaignEntity, scope: str) -> str:
    entry = npc.state_for(scope)
    return (entry.status if entry is not None else None) or NPCStatus.ALIVE


def _npc_sort_key(npc: CampaignEntity, scope: str) -> tuple[int, str]:
    status = _npc_status(npc, scope)
    order = NPC_STATUS_ORDER.index(status) if status in NPC_STATUS_ORDER else -1
    return order, npc.name.lower()


def _session_key(value: str) -> tuple[int, str]:
    return (int(value), value) if value.isdigit() else (-1, value)


def _encounter_sort_key(encounter: CampaignEntity) -> tuple[int, str]:
    level = encounter.level if isinstance(encounter, Encounter) else None
    return level or 0, encounter.name.lower()


class RelationshipCache:
    """Scope-pattern keyed cache over a CampaignIndex."""

    def __init__(self, vault: Vault, index: CampaignIndex) -> None:
        self.vault = vault
        self.index = index
        self.relationship_cache: dict[str, ScopeCache] = {}
        self.links_index: dict[str, list[CleanLink]] = {}
        self.backlinks_index: dict[str, list[str]] = {}

    def get_cache(self, scope_pattern: str = "*") -> ScopeCache:
        return self.relationship_cache.setdefault(scope_pattern, ScopeCache())

    def clear(self) -> None:
        self.relationship_cache.clear()

    def clear_all(self) -> None:
        self.relationship_cache.clear()
        self.links_index.clear()
        self.backlinks_index.clear()

    # -- precompute ----------------------------------------------------------

    def precompute(self, scope_pattern: str) -> None:
        self.index.log_debug("Precomputing relationships for scope: %s", scope_pattern)
        self._prepared(scope_pattern)
        for entity_type in (
            EntityType.AREA,
            EntityType.ENCOUNTER,
            EntityType.PLACE,
            EntityType.NPC,
        ):
            self._populate_related(self.entities_of_type(scope_pattern, entity_type), scope_pattern)
        self.index.log_debug("Precomputed relationships for scope: %s", scope_pattern)

    def _prepared(self, scope_pattern: str) -> ScopeCache:
        cache = self.get_cache(scope_pattern)
        if not cache.prepared:
            self.prepare_scope_cache(scope_pattern)
        return cache

    def prepare_scope_cache(self, scope_pattern: str) -> None:
        cache = self.get_cache(scope_pattern)
        regex = scope_to_regex(scope_pattern)
        scopes = [s for s in self.index.scopes() if regex.search(s)]

        entities = sorted(self.index.get_entities(scope_pattern), key=lambda e: e.name.lower())
        for entity in entities:
            cache.entity_by_type.setdefault(entity.type, []).append(entity)
            for scope in scopes:
                active = cache.active_by_type.setdefault(scope, {})
                if entity.type == EntityType.GROUP:
                    scoped = entity.state.get(scope)
                    if scoped is not None and scoped.renown:
                        cache.group_renown.setdefault(scope, {})[entity.id] = entity
                    status = _group_status(entity, scope)
                    cache.group_status.setdefault(scope, {})[entity.id] = status
                    if status != GroupStatus.DEFUNCT:
                        active.setdefault(EntityType.GROUP, []).append(entity)
                elif entity.type == EntityType.NPC:
                    entry = entity.state_for(scope)
                    iff_group = npc_to_iff_group(entry.iff if entry is not None else None)
                    cache.npc_iff.setdefault(scope, {}).setdefault(iff_group, []).append(entity)
                    status = _npc_status(entity, scope)
                    cache.npc_status.setdefault(scope, {})[entity.id] = status
                    if status != NPCStatus.DEAD:
                        active.setdefault(EntityType.NPC, []).append(entity)
                else:
                    active.setdefault(entity.type, []).append(entity)

        for scope, by_iff in cache.npc_iff.items():
            for npcs in by_iff.values():
                npcs.sort(key=lambda n, s=scope: _npc_sort_key(n, s))

        encounters = cache.entity_by_type.get(EntityType.ENCOUNTER)
        if encounters:
            encounters.sort(key=_encounter_sort_key)
        cache.prepared = True

    def _populate_related(self, entities: list[CampaignEntity], scope_pattern: str) -> None:
        cache = self.get_cache(scope_pattern)
        for entity in entities:
            references: RelatedByType = {}
            last_seen = self.get_last_seen(entity, scope_pattern)

            for tag in entity.tags:
                tagged = self.index.get_entity_by_id(tag)
                if tagged is not None and tagged.id != entity.id:
                    references.setdefault(tagged.type, {})[tagged.id] = entity_to_link(tagged)
                    if (
                        last_seen
                        and entity.type == EntityType.NPC
                        and tagged.type == EntityType.GROUP
                    ):
                        self.update_last_seen(tagged, last_seen, scope_pattern)

            for link in self.get_links(entity):
                linked = self.index.get_entity_by_id(link)
                if linked is not None:
                    references.setdefault(linked.type, {})[linked.id] = entity_to_link(linked)

            if entity.id_tag and entity.type in (
                EntityType.AREA,
                EntityType.GROUP,
                EntityType.PLACE,
            ):
                parent_id = "/".join(entity.id_tag.split("/")[:-1])
                parent = self.index.get_entity_by_id(parent_id)
                if parent is not None:
                    references.setdefault(parent.type, {})[parent.id] = entity_to_link(parent)

            cache.related[entity.id] = references

    # -- entity queries ------------------------------------------------------

    def entities_of_type(self, scope_pattern: str, entity_type: EntityType) -> list[CampaignEntity]:
        return list(self._prepared(scope_pattern).entity_by_type.get(entity_type, []))

    def get_areas(self, scope_pattern: str) -> list[CampaignEntity]:
        return self.entities_of_type(scope_pattern, EntityType.AREA)

    def get_encounters(self, scope_pattern: str) -> list[CampaignEntity]:
        return self.entities_of_type(scope_pattern, EntityType.ENCOUNTER)

    def get_groups(self, scope_pattern: str) -> list[CampaignEntity]:
        return self.entities_of_type(scope_pattern, EntityType.GROUP)

    def get_npcs(self, scope_pattern: str) -> list[CampaignEntity]:
        return self.entities_of_type(scope_pattern, EntityType.NPC)

    def get_places(self, scope_pattern: str) -> list[CampaignEntity]:
        return self.entities_of_type(scope_pattern, EntityType.PLACE)

    def get_active_by_type(self, entity_type: EntityType, data_scope: DataScope) -> list[CampaignEntity]:
        """Entities of a type considered active within the data scope's active scope."""
        active = self._prepared(data_scope.pattern).active_by_type.get(data_scope.active, {})
        return list(active.get(entity_type, []))

    def get_group_renown(self, data_scope: DataScope) -> list[Group]:
        renown = self._prepared(data_scope.pattern).group_renown.get(data_scope.active, {})
        return list(renown.values())

    def get_group_status(self, data_scope: DataScope, group_id: str) -> str | None:
        statuses = self._prepared(data_scope.pattern).group_status.get(data_scope.active, {})
        return statuses.get(group_id)

    def get_iff_npcs(self, data_scope: DataScope, iff_group: str) -> list[NPC]:
        by_iff = self._prepared(data_scope.pattern).npc_iff.get(data_scope.active, {})
        return list(by_iff.get(iff_group, []))

    def get_npc_status(self, data_scope: DataScope, npc_id: str) -> str | None:
        statuses = self._prepared(data_scope.pattern).npc_status.get(data_scope.active, {})
        return statuses.get(npc_id)

    # -- relationship queries ------------------------------------------------

    def get_related_by_type(self, scope_pattern: str, entity_id: str) -> RelatedByType | None:
        """Related entity links for an entity; populated by ``precompute``."""
        return self.get_cache(scope_pattern).related.get(entity_id)

    def get_related_of_type(
        self, scope_pattern: str, entity_id: str, entity_type: EntityType
    ) -> list[str] | None:
        related = self.get_related_by_type(scope_pattern, entity_id)
        if related is None:
            return None
        of_type = related.get(entity_type)
        return list(of_type.values()) if of_type else None

    def get_icons(self, entity: CampaignEntity) -> str:
        cache = self.get_cache()
        value = cache.icons.get(entity.id)
        if value:
            return value
        icons: set[str] = set()
        if entity.icon:
            icons.add(entity.icon)
        if entity.type == EntityType.NPC:
            for tag in entity.tags:
                if not tag.startswith("group/"):
                    continue
                group = self.index.get_entity_by_id(tag)
                if group is not None and group.icon:
                    icons.add(group.icon)
        value = " ".join(sorted(icons))
        cache.icons[entity.id] = value
        return value

    def get_last_seen(self, entity: CampaignEntity, scope_pattern: str | None = None) -> str:
        """Session number of the latest session note linking to the entity."""
        cache = self.get_cache(scope_pattern or "*")
        value = cache.last_seen.get(entity.id)
        if value:
            return value
        sessions = sorted(
            path
            for path in self.get_backlinks(entity.file_path, scope_pattern)
            if _SESSION_PATH_RE.search(path)
        )
        value = ""
        if sessions:
            digits = _DIGITS_RE.search(PurePosixPath(sessions[-1]).stem)
            value = digits.group(0) if digits else ""
        if value:
            cache.last_seen[entity.id] = value
        return value

    def update_last_seen(
        self, entity: CampaignEntity, last_seen: str, scope_pattern: str | None = None
    ) -> None:
        cache = self.get_cache(scope_pattern or "*")
        current = cache.last_seen.get(entity.id)
        cache.last_seen[entity.id] = max(last_seen, current, key=_session_key) if current else last_seen

    # -- links ---------------------------------------------------------------

    def get_clean_links(self, file_path: str) -> list[CleanLink]:
        links = self.links_index.get(file_path)
        if links is None:
            links = self.vault.links(file_path) if self.vault.exists(file_path) else []
            self.links_index[file_path] = links
        return links

    def get_links(self, entity: CampaignEntity) -> list[str]:
        """Outbound link targets of the entity's file, as entity-id style paths."""
        return [link.md_link for link in self.get_clean_links(entity.file_path)]

    def get_backlinks(self, file_path: str, scope_pattern: str | None = None) -> list[str]:
        files = self.backlinks_index.get(file_path)
        if files is None:
            files = self._find_backlinks(file_path)
        if scope_pattern:
            path_regex = segment_filter_regex(scope_pattern)
            return [f for f in files if path_regex.search(f)]
        return files

    def _find_backlinks(self, target_path: str) -> list[str]:
        backlinks: list[str] = []
        for path in self.vault.markdown_files():
            if (
                path == target_path
                or not self.index.file_included(path)
                or self.index.skip_frontmatter(self.vault.frontmatter(path))
            ):
                continue
            if any(link.path == target_path for link in self.get_clean_links(path)):
                backlinks.append(path)
        self.backlinks_index[target_path] = backlinks
        return backlinks

    def remove_all_links(self, file_path: str) -> None:
        self.links_index.pop(file_path, None)
        self.backlinks_index.pop(file_path, None)
        for path, backlinks in self.backlinks_index.items():
            self.backlinks_index[path] = [f for f in backlinks if f != file_path]
