"""Body generators for each sentinel region kind.

A generator reads its entities from the relationship cache for the file's
``DataScope``, splits them into buckets, and renders every non-empty bucket
as a ``## heading`` plus one table. Each bucket gets its own ``RowCount``.
When every bucket is empty the section is a single placeholder line.
"""
from __future__ import annotations

from typing import Callable

from campaign_notes.cache import RelationshipCache
from campaign_notes.cards import (
    format_area_card,
    format_encounter_card,
    format_group_card,
    format_npc_card,
    format_place_card,
    format_renown_card,
)
from campaign_notes.entity_types import (
    CampaignEntity,
    DataScope,
    EncounterStatus,
    EntityType,
    GroupStatus,
    RowCount,
)
from campaign_notes.markup import IFF_GROUPS

Card = Callable[[RelationshipCache, CampaignEntity, DataScope, RowCount], str]

ENCOUNTER_HEADER = "<thead><tr><th>level</th><th>status</th><th></th></tr></thead>"
GROUP_HEADER = (
    "<thead><tr><th></th><th>name</th><th>subtype</th><th>scope</th><th>sess</th></tr></thead>"
)
NPC_HEADER = (
    "<thead><tr><th>sess</th><th>stat</th><th>iff</th><th></th><th>scope</th></tr></thead>"
)
PLACE_HEADER = "<thead><tr><th>sess</th><th></th><th>subtype</th></tr></thead>"
RENOWN_HEADER = "<thead><tr><th>renown</th><th></th><th></th><th>sess</th></tr></thead>"

NPC_HEADINGS: dict[str, str] = {
    "family": "Family & Friends",
    "allies": "Friends & Allies",
    "enemies": "Enemies",
    "other": "Other",
}


def render_table(heading: str, table_class: str, header: str, rows: list[str]) -> str:
    return (
        f"## {heading}\n\n"
        f'<table class="{table_class}">{header}<tbody>{"".join(rows)}</tbody></table>\n\n'
    )


def _render_rows(
    cache: RelationshipCache,
    entities: list[CampaignEntity],
    data_scope: DataScope,
    card: Card,
) -> list[str]:
    counter = RowCount()
    return [card(cache, entity, data_scope, counter) for entity in entities]


# ---------------------------------------------------------------------------
# Encounters
# ---------------------------------------------------------------------------


def encounters_section(cache: RelationshipCache, data_scope: DataScope) -> str:
    buckets: dict[str, list[CampaignEntity]] = {"active": [], "new": [], "other": []}
    for encounter in cache.get_encounters(data_scope.pattern):
        status = getattr(encounter, "status", None)
        if status == EncounterStatus.ACTIVE:
            buckets["active"].append(encounter)
        elif status == EncounterStatus.NEW:
            buckets["new"].append(encounter)
        else:
            buckets["other"].append(encounter)

    result = "\n"
    for key, heading in (("active", "Active"), ("new", "New"), ("other", "Other")):
        if not buckets[key]:
            continue
        show_level = key != "other"
        counter = RowCount()
        rows = [
            format_encounter_card(cache, e, data_scope, counter, show_level=show_level)
            for e in buckets[key]
        ]
        header = ENCOUNTER_HEADER if show_level else ENCOUNTER_HEADER.replace("<th>level</th>", "")
        result += render_table(f"{heading} Encounters", "index encounter-table", header, rows)

    if not any(buckets.values()):
        result += "No Encounters\n\n"
    return result


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def groups_section(cache: RelationshipCache, data_scope: DataScope) -> str:
    buckets: dict[str, list[CampaignEntity]] = {"active": [], "defunct": [], "other": []}
    for group in cache.get_groups(data_scope.pattern):
        status = cache.get_group_status(data_scope, group.id)
        if not status or status == GroupStatus.ACTIVE:
            buckets["active"].append(group)
        elif status == GroupStatus.DEFUNCT:
            buckets["defunct"].append(group)
        else:
            buckets["other"].append(group)

    result = "\n"
    for key, heading in (("active", "Active"), ("defunct", "Defunct"), ("other", "Other")):
        if buckets[key]:
            rows = _render_rows(cache, buckets[key], data_scope, format_group_card)
            result += render_table(f"{heading} Groups", "index group-table", GROUP_HEADER, rows)

    if not any(buckets.values()):
        result += "No Groups\n\n"
    return result


# ---------------------------------------------------------------------------
# NPCs
# ---------------------------------------------------------------------------


def npcs_section(cache: RelationshipCache, data_scope: DataScope) -> str:
    tables: list[str] = []
    for iff_group in IFF_GROUPS:
        npcs = cache.get_iff_npcs(data_scope, iff_group)
        if npcs:
            rows = _render_rows(cache, npcs, data_scope, format_npc_card)
            tables.append(
                render_table(NPC_HEADINGS[iff_group], "index npc-table", NPC_HEADER, rows)
            )
    if tables:
        return "\n" + "".join(tables)
    return "\nNo NPCs\n\n"


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------


def places_section(cache: RelationshipCache, data_scope: DataScope) -> str:
    areas = [a for a in cache.get_areas(data_scope.pattern) if data_scope.includes_path(a.file_path)]
    places = [
        p for p in cache.get_places(data_scope.pattern) if data_scope.includes_path(p.file_path)
    ]

    result = "\n"
    if areas:
        rows = _render_rows(cache, areas, data_scope, format_area_card)
        result += render_table("Areas", "index area-table", PLACE_HEADER, rows)
    if places:
        rows = _render_rows(cache, places, data_scope, format_place_card)
        result += render_table("Places", "index place-table", PLACE_HEADER, rows)
    if not areas and not places:
        result += "No Places\n\n"
    return result


# ---------------------------------------------------------------------------
# Renown
# ---------------------------------------------------------------------------


def renown_section(cache: RelationshipCache, data_scope: DataScope) -> str:
    groups = cache.get_group_renown(data_scope)
    if not groups:
        return "\nNone\n\n"
    rows = _render_rows(cache, groups, data_scope, format_renown_card)
    return "\n" + render_table("Renown", "index place-table", RENOWN_HEADER, rows)


# ---------------------------------------------------------------------------
# Tag connections
# ---------------------------------------------------------------------------


def tag_connection_section(
    cache: RelationshipCache, data_scope: DataScope, entity_type: EntityType
) -> str:
    """Markdown list of ``entity_type`` entities active in ``data_scope.active``.

    The trailing ``^{type}-items-{scope}`` line is a block anchor other notes
    can embed.
    """
    active = data_scope.active
    entities = [
        e
        for e in cache.get_active_by_type(entity_type, data_scope) or []
        if e.scope == active or active in e.state
    ]
    lines = [f"| {entity_type} for {data_scope.pattern} |", "|--------|"]
    if entities:
        lines.extend(f"| [{e.name}]({e.id}) |" for e in entities)
    else:
        lines.append("| None |")
    lines.append(f"^{entity_type}-items-{active}")
    return "\n\n" + "\n".join(lines) + "\n\n"
