"""Tests for campaign_notes.markup helpers."""
from __future__ import annotations

import pytest

from campaign_notes.entity_types import NPC, EntityType
from campaign_notes.markup import (
    IFF_GROUPS,
    clean_link_target,
    entity_to_link,
    iff_status_icon,
    lower_kebab,
    markdown_link_path,
    npc_to_iff_group,
    scope_to_regex,
    segment_filter_regex,
    status_icon,
    type_icon,
)


@pytest.mark.parametrize(
    ("iff", "group"),
    [
        ("family", "family"),
        ("pet", "family"),
        ("friend", "allies"),
        ("taproom", "allies"),
        ("ally", "allies"),
        ("enemy", "enemies"),
        ("neutral", "other"),
        (None, "other"),
    ],
)
def test_npc_to_iff_group(iff: str | None, group: str) -> None:
    assert npc_to_iff_group(iff) == group


def test_iff_groups_render_order() -> None:
    assert IFF_GROUPS == ("family", "allies", "enemies", "other")


def test_icons_fall_back_to_blank() -> None:
    assert iff_status_icon("enemy") == "🔥"
    assert status_icon("dead") == "💀"
    assert type_icon(EntityType.GROUP) == "👥"
    assert iff_status_icon("mystery") == status_icon(None) == type_icon("unknown") == "⬜️"


def test_entity_to_link() -> None:
    npc = NPC(id="heist/npcs/Renaer%20Neverember.md", name="Renaer", type=EntityType.NPC,
              file_path="heist/npcs/Renaer Neverember.md")
    assert entity_to_link(npc) == (
        '<a class="internal-link" data-href="heist/npcs/Renaer%20Neverember.md" '
        'href="heist/npcs/Renaer%20Neverember.md" target="_blank" '
        'rel="noopener nofollow">Renaer</a>'
    )
    assert "<strong>Renaer</strong></a>" in entity_to_link(npc, strong=True)


def test_markdown_link_path_encodes_spaces_and_anchor() -> None:
    assert markdown_link_path("a b/c d.md") == "a%20b/c%20d.md"
    assert markdown_link_path("npcs.md", "Lady Alustriel") == "npcs.md#Lady%20Alustriel"


def test_clean_link_target_splits_anchor_and_title() -> None:
    link = clean_link_target('heist/npcs.md#Lady%20Alustriel "Alustriel"', "Alustriel")
    assert link.path == "heist/npcs.md"
    assert link.anchor == "Lady Alustriel"
    assert link.text == "Alustriel"
    assert link.md_link == "heist/npcs.md#Lady%20Alustriel"


def test_lower_kebab() -> None:
    assert lower_kebab("Lady Silverhand") == "lady-silverhand"
    assert lower_kebab("ladySilverhand") == "lady-silverhand"
    assert lower_kebab("Zhentarim (Black Network)") == "zhentarim-black-network"


def test_scope_to_regex_matches_whole_scope_ignoring_case() -> None:
    regex = scope_to_regex("heist|dragon")
    assert regex.search("Heist")
    assert regex.search("dragon")
    assert not regex.search("heist-2")
    assert not regex.search("old-dragon")


def test_segment_filter_regex_matches_leading_segments() -> None:
    regex = segment_filter_regex("heist/places|heist/areas")
    assert regex.search("heist/places/Trollskull Manor.md")
    assert regex.search("heist/areas")
    assert not regex.search("heist/placesold/x.md")
    assert not regex.search("other/heist/places/x.md")
