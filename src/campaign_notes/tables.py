"""Regenerate the index tables embedded in generated index files.

A run finds every file marked ``index: generated``, groups the files by
scope pattern (in first-seen order), precomputes the relationship cache once
per pattern, then rewrites each file's sentinel regions. The cache is
cleared before the first group and after the last, even when a file fails.
Control is yielded to the event loop between groups and between files.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from campaign_notes.cache import RelationshipCache
from campaign_notes.entity_types import DataScope
from campaign_notes.index import CampaignIndex
from campaign_notes.scope import (
    build_data_scope,
    resolve_pattern,
    resolve_pattern_regex,
    resolve_scope,
)
from campaign_notes.sections import (
    encounters_section,
    groups_section,
    npcs_section,
    places_section,
    renown_section,
    tag_connection_section,
)
from campaign_notes.sentinels import (
    ENCOUNTERS,
    GROUPS,
    NPCS,
    PLACES,
    RENOWN,
    RegionKind,
    TagConnection,
    has_tag_connections,
    replace_region,
    replace_tag_connections,
)
from campaign_notes.vault import Vault

log = logging.getLogger(__name__)

SectionGenerator = Callable[[RelationshipCache, DataScope], str]

TAG_CONNECTION_REGION = "TAG_CONNECTION"

# Fixed regions in the order they are regenerated within one file.
REGION_GENERATORS: tuple[tuple[RegionKind, SectionGenerator], ...] = (
    (ENCOUNTERS, encounters_section),
    (GROUPS, groups_section),
    (NPCS, npcs_section),
    (PLACES, places_section),
    (RENOWN, renown_section),
)


@dataclass(frozen=True, slots=True)
class FileResult:
    path: str
    scope: str
    pattern: str
    regions: tuple[str, ...]
    changed: bool


@dataclass(slots=True)
class RunSummary:
    """Outcome of one ``generate_tables`` run."""

    groups: dict[str, list[str]] = field(default_factory=dict)
    files: list[FileResult] = field(default_factory=list)
    timings_sec: dict[str, float] = field(default_factory=dict)

    @property
    def updated(self) -> list[str]:
        return [r.path for r in self.files]

    @property
    def changed(self) -> list[str]:
        return [r.path for r in self.files if r.changed]


class TableGenerationService:
    """Drives regeneration of every generated index file in a vault."""

    def __init__(self, vault: Vault, index: CampaignIndex, cache: RelationshipCache) -> None:
        self.vault = vault
        self.index = index
        self.cache = cache

    # -- scope ---------------------------------------------------------------

    def file_scope(self, path: str) -> str:
        return resolve_scope(path, self.vault.frontmatter(path))

    def file_scope_pattern(self, path: str, scope: str) -> str:
        return resolve_pattern(scope, self.vault.frontmatter(path))

    def data_scope_for(self, path: str) -> DataScope:
        return build_data_scope(path, self.vault.frontmatter(path))

    def group_files(self, files: list[str]) -> dict[str, list[str]]:
        """Bucket files by scope pattern; keys keep first-seen order.

        Files whose pattern does not compile are skipped and left untouched.
        """
        groups: dict[str, list[str]] = {}
        for path in files:
            pattern = self.file_scope_pattern(path, self.file_scope(path))
            if pattern not in groups and resolve_pattern_regex(pattern) is None:
                log.warning("Skipping %s: scope pattern %r is not valid", path, pattern)
                continue
            groups.setdefault(pattern, []).append(path)
        return groups

    # -- run -----------------------------------------------------------------

    async def generate_tables(self) -> RunSummary:
        summary = RunSummary()
        t0 = time.perf_counter()
        files = self.index.generated_index_files()
        if not files:
            log.warning("No generated index files found")
            return summary

        summary.groups = self.group_files(files)
        self.index.log_debug("Index files by scope: %s", summary.groups)

        self.cache.clear()
        try:
            for pattern, group in summary.groups.items():
                await self.process_file_group(pattern, group, summary)
                await asyncio.sleep(0)
        finally:
            self.cache.clear()

        summary.timings_sec["total"] = round(time.perf_counter() - t0, 4)
        log.info(
            "Regenerated %d files (%d changed) across %d scope patterns",
            len(summary.files), len(summary.changed), len(summary.groups),
        )
        return summary

    async def process_file_group(
        self, pattern: str, files: list[str], summary: RunSummary
    ) -> None:
        t0 = time.perf_counter()
        self.cache.precompute(pattern)
        summary.timings_sec[f"precompute:{pattern}"] = round(time.perf_counter() - t0, 4)
        await asyncio.sleep(0)

        for path in files:
            summary.files.append(self.process_file(self.data_scope_for(path), path))
            await asyncio.sleep(0)

    def process_file(self, data_scope: DataScope, path: str) -> FileResult:
        """Read, regenerate and write one file as a single store operation."""
        original = self.vault.read_text(path)
        text, regions = self.regenerate(original, data_scope)
        self.vault.write_text(path, text)
        log.info("Updated %s", path)
        self.index.log_debug("Processed %s with %s", path, data_scope)
        return FileResult(
            path=path,
            scope=data_scope.active,
            pattern=data_scope.pattern,
            regions=tuple(regions),
            changed=text != original,
        )

    # -- regions -------------------------------------------------------------

    def regenerate(self, text: str, data_scope: DataScope) -> tuple[str, list[str]]:
        """Apply every region generator present in ``text``; returns the new text and region names."""
        regions: list[str] = []
        for kind, generate in REGION_GENERATORS:
            if kind.find(text) is None:
                continue
            text = replace_region(text, kind, lambda g=generate: g(self.cache, data_scope))
            regions.append(kind.name)

        if has_tag_connections(text):
            text = replace_tag_connections(
                text, lambda block: self.tag_connection_body(block, data_scope)
            )
            regions.append(TAG_CONNECTION_REGION)
        return text, regions

    def tag_connection_body(self, block: TagConnection, data_scope: DataScope) -> str | None:
        entity_type = self.index.get_entity_type(block.type_token)
        if entity_type is None:
            log.warning('Unknown type "%s" in tag connection section', block.type_token)
            return None
        return tag_connection_section(self.cache, data_scope.with_active(block.scope), entity_type)
