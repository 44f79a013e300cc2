"""Row formatters for generated index tables.

Each formatter renders one entity as one ``<tr>`` (plus an optional nested
notes or related-entity sub-row) and advances the bucket's ``RowCount``
exactly once. Scoped fields are read with ``state_for`` so an entity with no
entry for the active scope falls back to its ``"*"`` state.
"""
from __future__ import annotations

import logging

from campaign_notes.cache import RelationshipCache
from campaign_notes.entity_types import (
    CampaignEntity,
    DataScope,
    Encounter,
    EntityType,
    RowCount,
)
from campaign_notes.markup import (
    entity_to_link,
    iff_status_icon,
    status_icon,
    type_icon,
)

log = logging.getLogger(__name__)

ROWSPAN = ' rowspan="2"'


def notes_row(entity: CampaignEntity, data_scope: DataScope, row_class: str) -> str:
    """Closing ``</tr>`` plus a nested notes row, or ``""`` without notes."""
    notes = entity.notes_for(data_scope.active)
    if not notes:
        return ""
    return f'</tr><tr class="{row_class} multirow"><td class="indent notes">{notes}</td>'


def _scoped_value(entity: CampaignEntity, data_scope: DataScope, name: str) -> str:
    entry = entity.state_for(data_scope.active)
    value = getattr(entry, name) if entry is not None else None
    return str(value) if value else ""


# ---------------------------------------------------------------------------
# Encounters
# ---------------------------------------------------------------------------


def format_encounter_card(
    cache: RelationshipCache,
    encounter: Encounter,
    data_scope: DataScope,
    counter: RowCount,
    show_level: bool = False,
) -> str:
    related = cache.get_related_by_type(data_scope.pattern, encounter.id) or {}
    chips = [
        f"<span>{type_icon(entity_type)} {', '.join(links.values())}</span>"
        for entity_type, links in related.items()
        if links
    ]
    notes = encounter.notes_for(data_scope.active)

    even_odd = counter.zebra()
    multirow = bool(chips or notes)
    row_span = ROWSPAN if multirow else ""
    row_class = even_odd + (" multirow" if multirow else "")

    sub_row = ""
    if multirow:
        cells = "; ".join(chips)
        if notes:
            cells += f'<div class="notes">{notes}</div>'
        sub_row = f'</tr><tr class="{row_class} last"><td class="indent multirow">{cells}</td>'

    level = ""
    if show_level:
        level = f'<td{row_span} class="cellWidth center">{encounter.level or ""}</td>'

    return "".join(
        [
            f'<tr class="{row_class} first">',
            level,
            f'<td{row_span} class="cellWidth" style="--cell-width: 4.5em;">{encounter.status or ""}</td>',
            f"<td>{entity_to_link(encounter, strong=True)}</td>",
            sub_row,
            "</tr>",
        ]
    )


# ---------------------------------------------------------------------------
# Groups, NPCs
# ---------------------------------------------------------------------------


def format_group_card(
    cache: RelationshipCache,
    group: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
) -> str:
    even_odd = counter.zebra()
    notes = notes_row(group, data_scope, f"{even_odd} last")
    row_span = ROWSPAN if notes else ""
    row_class = even_odd + (" multirow first" if notes else "")
    renown = _scoped_value(group, data_scope, "renown")
    renown_text = f" ({renown})" if renown else ""

    return "".join(
        [
            f'<tr class="{row_class}">',
            f'<td{row_span} class="cellWidth center" style="--cell-width: 3em;">{group.icon or ""}</td>',
            f"<td>{entity_to_link(group, strong=True)}{renown_text}</td>",
            f'<td{row_span} class="cellWidth" style="--cell-width: 8em;">{group.subtype or ""}</td>',
            f'<td{row_span} class="cellWidth" style="--cell-width: 6em;">{group.scope or ""}</td>',
            f'<td{row_span} class="cellWidth center" style="--cell-width: 3em;">'
            f"{cache.get_last_seen(group, data_scope.pattern)}</td>",
            notes,
            "</tr>",
        ]
    )


def format_npc_card(
    cache: RelationshipCache,
    npc: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
) -> str:
    iff = iff_status_icon(_scoped_value(npc, data_scope, "iff"))
    status = status_icon(_scoped_value(npc, data_scope, "status"))
    icons = cache.get_icons(npc)
    icon_text = f' <span class="icon">({icons})</span>' if icons else ""
    last_seen = cache.get_last_seen(npc, data_scope.pattern)

    even_odd = counter.zebra()
    notes = notes_row(npc, data_scope, f"{even_odd} last")
    row_span = ROWSPAN if notes else ""
    row_class = even_odd + (" multirow first" if notes else "")

    return "".join(
        [
            f'<tr class="{row_class}">',
            f'<td{row_span} class="cellWidth center" style="--cell-width: 2em;">{last_seen}</td>',
            f'<td{row_span} class="cellWidth">{status}</td>',
            f'<td{row_span} class="cellWidth">{iff}</td>',
            f"<td>{entity_to_link(npc, strong=True)}{icon_text}</td>",
            f'<td{row_span} class="cellWidth center" style="--cell-width: 6em;">{npc.scope or ""}</td>',
            notes,
            "</tr>",
        ]
    )


# ---------------------------------------------------------------------------
# Areas, places
# ---------------------------------------------------------------------------


def _location_row(
    cache: RelationshipCache,
    entity: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
    chips: list[str],
) -> str:
    group_info = f" — {'; '.join(chips)}" if chips else ""
    last_seen = cache.get_last_seen(entity, data_scope.pattern)

    even_odd = counter.zebra()
    notes = notes_row(entity, data_scope, f"{even_odd} last")
    row_span = ROWSPAN if notes else ""
    row_class = even_odd + (" multirow first" if notes else "")

    return "".join(
        [
            f'<tr class="{row_class}">',
            f'<td{row_span} class="cellWidth center" style="--cell-width: 2em;">{last_seen}</td>',
            f"<td>{entity_to_link(entity, strong=True)}{group_info}</td>",
            f'<td{row_span} class="cellWidth" style="--cell-width: 8em;">{entity.subtype or ""}</td>',
            notes,
            "</tr>",
        ]
    )


def format_area_card(
    cache: RelationshipCache,
    area: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
) -> str:
    chips: list[str] = []
    areas = cache.get_related_of_type(data_scope.pattern, area.id, EntityType.AREA)
    if areas:
        chips.append(f"{type_icon(EntityType.AREA)} {', '.join(areas)}")
    groups = cache.get_related_of_type(data_scope.pattern, area.id, EntityType.GROUP)
    if groups:
        chips.append(f"{type_icon(EntityType.GROUP)} {', '.join(groups)}")
    return _location_row(cache, area, data_scope, counter, chips)


def format_place_card(
    cache: RelationshipCache,
    place: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
) -> str:
    chips: list[str] = []
    area_id = getattr(place, "area", None)
    if area_id:
        area = cache.index.get_entity_by_id(area_id)
        if area is not None:
            chips.append(f"{type_icon(EntityType.AREA)} {entity_to_link(area)}")
        else:
            log.warning("Area not found for place %s (%s): %s", place.id, place.name, area_id)
    groups = cache.get_related_of_type(data_scope.pattern, place.id, EntityType.GROUP)
    if groups:
        chips.append(f"{type_icon(EntityType.GROUP)} {', '.join(groups)}")
    return _location_row(cache, place, data_scope, counter, chips)


# ---------------------------------------------------------------------------
# Renown
# ---------------------------------------------------------------------------


def format_renown_card(
    cache: RelationshipCache,
    group: CampaignEntity,
    data_scope: DataScope,
    counter: RowCount,
) -> str:
    last_seen = cache.get_last_seen(group, data_scope.pattern)
    even_odd = counter.zebra()
    renown = _scoped_value(group, data_scope, "renown")

    return "".join(
        [
            f'<tr class="{even_odd}">',
            f'<td class="cellWidth center" style="--cell-width: 3em;">{renown}</td>',
            f'<td class="cellWidth center" style="--cell-width: 3em;">{group.icon or ""}</td>',
            f"<td>{entity_to_link(group, strong=True)}</td>",
            f'<td class="cellWidth center" style="--cell-width: 2em;">{last_seen}</td>',
            "</tr>",
        ]
    )
