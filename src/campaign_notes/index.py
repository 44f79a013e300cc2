"""Entity index built from a vault's frontmatter and tags.

Each markdown file may define one or more campaign entities. The entity
type comes from a frontmatter key (``npc:``, ``group:``, ...) or from a
``type/<kind>/...`` tag. The value under the type key decides how many
entities the page holds:

    npc: true                 -> one entity for the page
    npc: Lady Laeral          -> one entity, renamed
    npc: {iff: ally, ...}     -> one entity with merged fields
    npc: [{name: A}, ...]     -> one entity per list item (anchored ids)

Scoped state (status, iff, renown, notes) lands in ``entity.state[scope]``;
values given without a scope apply to the entity's own scope.
"""
from __future__ import annotations

import copy
import logging
import re
from pathlib import PurePosixPath
from typing import Any, Callable

from campaign_notes.entity_types import (
    ENTITY_CLASSES,
    VALID_ENTITY_TYPES,
    CampaignEntity,
    EntityState,
    EntityType,
    WILDCARD_SCOPE,
)
from campaign_notes.markup import lower_kebab, markdown_link_path, scope_to_regex
from campaign_notes.settings import DEFAULT_SETTINGS, CampaignNotesSettings
from campaign_notes.vault import Vault

log = logging.getLogger(__name__)

TYPE_TAG_PREFIX = "type/"

_RENOWN_TAG_RE = re.compile(r"([^/]+)/renown/(\d+)")
_GROUP_STATUS_TAG_RE = re.compile(r"([^/]+)/group/(.*)")
_NPC_STATUS_TAG_RE = re.compile(r"([^/]+)/npc/(.*)")
_IFF_TAG_RE = re.compile(r"([^/]+)/iff/(.*)")
_LEVEL_RE = re.compile(r"^(\d+)-")

_STATE_FIELDS = ("notes", "status", "iff", "renown")
_ENTITY_FIELDS = ("name", "anchor", "scope", "icon", "id_tag", "subtype", "area", "region")

# Draft entities are plain dicts until they are finalized into dataclasses.
Draft = dict[str, Any]
Resolver = Callable[[Draft, dict[str, Any]], None]


def _coerce_state(raw: Any) -> dict[str, dict[str, Any]]:
    """Normalize a frontmatter ``state:`` mapping to ``{scope: {field: value}}``."""
    out: dict[str, dict[str, Any]] = {}
    if not isinstance(raw, dict):
        return out
    for scope, fields in raw.items():
        if isinstance(fields, dict):
            out[str(scope)] = {k: v for k, v in fields.items() if k in _STATE_FIELDS}
    return out


class CampaignIndex:
    """In-memory index of campaign entities in a vault."""

    def __init__(self, vault: Vault, settings: CampaignNotesSettings = DEFAULT_SETTINGS) -> None:
        self.vault = vault
        self.settings = settings
        self.entities: dict[str, CampaignEntity] = {}      # id and id tag -> entity
        self.unique_index: dict[str, CampaignEntity] = {}  # id -> entity
        self.generated_index: dict[str, str] = {}
        self.type_to_entities: dict[EntityType, dict[str, CampaignEntity]] = {}
        self._resolvers = self._resolver_map()

    def log_debug(self, message: str, *args: Any) -> None:
        if self.settings.debug:
            log.debug("(CN) " + message, *args)

    # -- building ------------------------------------------------------------

    def clear_index(self) -> None:
        self.entities.clear()
        self.unique_index.clear()
        self.generated_index.clear()
        self.type_to_entities.clear()

    def rebuild_index(self) -> None:
        """Rebuild the whole index from the vault."""
        self.clear_index()
        files = [f for f in self.vault.markdown_files() if self.file_included(f)]
        log.info("Found %d files to index", len(files))
        for path in files:
            self.process_file(path)
        log.info("Indexed %d entities", len(self.unique_index))

    def file_included(self, path: str) -> bool:
        folders = self.settings.include_folders
        if not folders:
            return True
        return any(path == folder or path.startswith(f"{folder}/") for folder in folders)

    @staticmethod
    def skip_frontmatter(frontmatter: dict[str, Any]) -> bool:
        index = frontmatter.get("index")
        return index is False or index == "generated"

    def process_file(self, path: str) -> None:
        frontmatter = self.vault.frontmatter(path)
        if frontmatter.get("index") == "generated":
            self.generated_index[path] = path
            return
        if self.skip_frontmatter(frontmatter):
            return

        tags = self.vault.tags(path)
        for entity_type in self.types_for_file(frontmatter, tags):
            if entity_type == EntityType.ENCOUNTER:
                self._process_encounter(path, frontmatter, tags)
            else:
                self._process_entity_frontmatter(
                    path, entity_type, frontmatter, tags, self._resolvers[entity_type]
                )

    def types_for_file(self, frontmatter: dict[str, Any], tags: list[str]) -> list[EntityType]:
        """Entity types declared by frontmatter keys and ``type/<kind>/...`` tags."""
        if self.skip_frontmatter(frontmatter):
            return []
        types: dict[EntityType, None] = {}
        for entity_type in (
            EntityType.AREA,
            EntityType.ENCOUNTER,
            EntityType.GROUP,
            EntityType.ITEM,
            EntityType.PLACE,
            EntityType.NPC,
            EntityType.PC,
        ):
            if frontmatter.get(entity_type.value):
                types[entity_type] = None
        for tag in tags:
            if tag.startswith(TYPE_TAG_PREFIX):
                candidate = tag[len(TYPE_TAG_PREFIX) :].split("/")[0]
                if candidate in VALID_ENTITY_TYPES and candidate != EntityType.UNKNOWN:
                    types[EntityType(candidate)] = None
        return list(types)

    def _basic_draft(self, path: str, entity_type: EntityType, tags: list[str]) -> Draft:
        return {
            "id": markdown_link_path(path),
            "name": self.vault.title(path),
            "type": entity_type,
            "file_path": path,
            "tags": list(tags),
            "scope": path.split("/")[0],
            "state": {},
        }

    def _process_encounter(self, path: str, frontmatter: dict[str, Any], tags: list[str]) -> None:
        value = frontmatter.get("encounter")
        if not value:
            return
        draft = self._basic_draft(path, EntityType.ENCOUNTER, tags)
        draft["scope"] = str(frontmatter.get("scope") or draft["scope"])
        draft["status"] = str(value)
        level = _LEVEL_RE.match(PurePosixPath(path).name)
        if level:
            draft["level"] = int(level.group(1))
        notes = frontmatter.get("notes")
        if notes:
            draft["state"].setdefault(draft["scope"], {})["notes"] = str(notes)
        self._add_entity(self._build(draft))

    def _process_entity_frontmatter(
        self,
        path: str,
        entity_type: EntityType,
        frontmatter: dict[str, Any],
        tags: list[str],
        resolve: Resolver,
    ) -> None:
        init = self._basic_draft(path, entity_type, tags)
        if frontmatter.get("scope"):
            init["scope"] = str(frontmatter["scope"])
        init["icon"] = frontmatter.get("icon")
        init["state"].update(_coerce_state(frontmatter.get("state")))

        value = frontmatter.get(entity_type.value)
        if not value:
            if frontmatter.get("idTag"):
                init["id_tag"] = str(frontmatter["idTag"])
            self._finalize(init, frontmatter, resolve)
            self._add_entity(self._build(init))
            return

        page_title = init["name"]
        items = value if isinstance(value, list) else [value]
        for item in items:
            draft = copy.deepcopy(init) if isinstance(value, list) else init
            self._apply_value(draft, item, page_title, frontmatter, resolve)
            self._add_entity(self._build(draft))

    def _apply_value(
        self,
        draft: Draft,
        value: Any,
        page_title: str,
        frontmatter: dict[str, Any],
        resolve: Resolver,
    ) -> None:
        if isinstance(value, dict):
            tags = draft["tags"] + [str(t) for t in value.get("tags") or []]
            for key, item in value.items():
                name = "id_tag" if key == "idTag" else key
                if name == "state":
                    draft["state"].update(_coerce_state(item))
                elif name in _ENTITY_FIELDS:
                    draft[name] = None if item is None else str(item)
                elif name in _STATE_FIELDS or name == "remove":
                    draft[name] = item
            draft["tags"] = list(dict.fromkeys(tags))
        elif isinstance(value, str):
            draft["name"] = value

        if draft.get("anchor"):
            draft["id"] = markdown_link_path(draft["file_path"], str(draft["anchor"]))
        else:
            anchor = "" if draft["name"] == page_title else draft["name"]
            draft["id"] = markdown_link_path(draft["file_path"], anchor)
        self._finalize(draft, frontmatter, resolve)

    def _finalize(self, draft: Draft, frontmatter: dict[str, Any], resolve: Resolver) -> None:
        resolve(draft, frontmatter)
        scope = draft.get("scope") or WILDCARD_SCOPE
        state = draft["state"].setdefault(scope, {})
        notes = draft.pop("notes", None)
        state["notes"] = state.get("notes") or notes or frontmatter.get("notes")

        remove = draft.pop("remove", None) or []
        draft["tags"] = [
            tag
            for tag in draft["tags"]
            if not tag.startswith(TYPE_TAG_PREFIX) and tag not in remove
        ]

    # -- per-type resolution -------------------------------------------------

    def _find_id_tag(self, draft: Draft, tag_root: str) -> None:
        if draft.get("id_tag"):
            return
        tag_name = lower_kebab(draft["name"])
        draft["id_tag"] = next(
            (t for t in draft["tags"] if t.startswith(tag_root) and t.endswith(tag_name)),
            None,
        )

    def _find_subtype(self, draft: Draft, tag_root: str) -> None:
        type_tags = [t for t in draft["tags"] if t.startswith(tag_root)]
        if not draft.get("subtype"):
            if not type_tags:
                self.log_debug("No type tag found for %s %s", tag_root, draft["name"])
                return
            draft["subtype"] = type_tags[0].rsplit("/", 1)[-1]
            if len(type_tags) > 1:
                log.warning(
                    "Multiple type tags found for %s %s, using %s",
                    draft["name"], type_tags, draft["subtype"],
                )
        end = f"/{draft['subtype']}"
        for tag in type_tags:
            if not tag.endswith(end):
                draft["tags"].remove(tag)
                self.log_debug("removed tag %s from %s", tag, draft["name"])

    def _resolve_area(self, draft: Draft, _fm: dict[str, Any]) -> None:
        self._find_subtype(draft, "type/area/")
        for root in ("area/", "place/", "region/"):
            self._find_id_tag(draft, root)

    def _resolve_group(self, draft: Draft, fm: dict[str, Any]) -> None:
        self._find_id_tag(draft, "group/")
        self._find_subtype(draft, "type/group/")
        state = draft["state"].setdefault(draft.get("scope") or WILDCARD_SCOPE, {})
        state["status"] = state.get("status") or draft.pop("status", None) or fm.get("status")
        state["renown"] = state.get("renown") or draft.pop("renown", None) or fm.get("renown")
        for tag in draft["tags"]:
            if tag.startswith(TYPE_TAG_PREFIX):
                continue
            renown = _RENOWN_TAG_RE.search(tag)
            if renown:
                scoped = draft["state"].setdefault(renown.group(1), {})
                scoped["renown"] = scoped.get("renown") or int(renown.group(2))
            status = _GROUP_STATUS_TAG_RE.search(tag)
            if status:
                scoped = draft["state"].setdefault(status.group(1), {})
                scoped["status"] = scoped.get("status") or status.group(2)

    def _resolve_npc(self, draft: Draft, fm: dict[str, Any]) -> None:
        state = draft["state"].setdefault(draft.get("scope") or WILDCARD_SCOPE, {})
        state["iff"] = state.get("iff") or draft.pop("iff", None) or fm.get("iff")
        state["status"] = state.get("status") or draft.pop("status", None) or fm.get("status")
        for tag in draft["tags"]:
            if tag.startswith(TYPE_TAG_PREFIX):
                continue
            status = _NPC_STATUS_TAG_RE.search(tag)
            if status:
                scoped = draft["state"].setdefault(status.group(1), {})
                scoped["status"] = scoped.get("status") or status.group(2)
            iff = _IFF_TAG_RE.search(tag)
            if iff:
                scoped = draft["state"].setdefault(iff.group(1), {})
                scoped["iff"] = scoped.get("iff") or iff.group(2)

    def _resolve_place(self, draft: Draft, _fm: dict[str, Any]) -> None:
        self._find_subtype(draft, "type/place/")
        self._find_id_tag(draft, "place/")
        if not draft.get("area"):
            draft["area"] = next((t for t in draft["tags"] if t.startswith("area/")), None)
        if not draft.get("area"):
            draft["area"] = next((t for t in draft["tags"] if t.startswith("region/")), None)

    @staticmethod
    def _resolve_nothing(_draft: Draft, _fm: dict[str, Any]) -> None:
        return None

    def _resolver_map(self) -> dict[EntityType, Resolver]:
        return {
            EntityType.AREA: self._resolve_area,
            EntityType.GROUP: self._resolve_group,
            EntityType.NPC: self._resolve_npc,
            EntityType.PLACE: self._resolve_place,
            EntityType.ITEM: self._resolve_nothing,
            EntityType.PC: self._resolve_nothing,
        }

    def _build(self, draft: Draft) -> CampaignEntity:
        entity_type: EntityType = draft["type"]
        cls = ENTITY_CLASSES[entity_type]
        state = {
            scope: EntityState(**{k: v for k, v in fields.items() if k in _STATE_FIELDS and v is not None})
            for scope, fields in draft["state"].items()
        }
        kwargs: dict[str, Any] = {
            "id": draft["id"],
            "name": str(draft["name"]),
            "type": entity_type,
            "file_path": draft["file_path"],
            "tags": draft["tags"],
            "scope": draft.get("scope"),
            "state": state,
            "icon": draft.get("icon"),
            "id_tag": draft.get("id_tag"),
            "subtype": draft.get("subtype"),
            "anchor": draft.get("anchor"),
        }
        if entity_type == EntityType.ENCOUNTER:
            kwargs["status"] = draft.get("status")
            kwargs["level"] = draft.get("level")
        elif entity_type == EntityType.PLACE:
            kwargs["area"] = draft.get("area")
        elif entity_type == EntityType.AREA:
            kwargs["region"] = draft.get("region")
        return cls(**kwargs)

    def _add_entity(self, entity: CampaignEntity) -> None:
        self.log_debug("Add entity %s %s", entity.type, entity.id)
        self.unique_index[entity.id] = entity
        self.entities[entity.id] = entity
        if entity.id_tag:
            self.entities[entity.id_tag] = entity
        self.type_to_entities.setdefault(entity.type, {})[entity.id] = entity

    # -- queries -------------------------------------------------------------

    def get_entity_by_id(self, entity_id: str) -> CampaignEntity | None:
        """Look up an entity by id or by id tag."""
        return self.entities.get(entity_id)

    def get_entities(self, scope_pattern: str) -> list[CampaignEntity]:
        regex = scope_to_regex(scope_pattern)
        return [e for e in self.unique_index.values() if regex.search(e.scope or "")]

    def get_entities_by_type(
        self, entity_type: EntityType, scope_pattern: str | None = None
    ) -> list[CampaignEntity]:
        values = list(self.type_to_entities.get(entity_type, {}).values())
        if scope_pattern:
            regex = scope_to_regex(scope_pattern)
            return [e for e in values if regex.search(e.scope or "")]
        return values

    def get_entity_type(self, token: str) -> EntityType | None:
        """Canonical entity type for a raw token, or None if it is not a type."""
        lowered = token.strip().lower()
        if lowered in VALID_ENTITY_TYPES:
            return EntityType(lowered)
        return None

    def generated_index_files(self) -> list[str]:
        return list(self.generated_index.values())

    def scopes(self) -> list[str]:
        """Configured campaign scopes, else every scope an entity belongs to."""
        if self.settings.campaign_scopes:
            return list(self.settings.campaign_scopes)
        return sorted({e.scope for e in self.unique_index.values() if e.scope})
