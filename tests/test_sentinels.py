"""Tests for campaign_notes.sentinels region splicing."""
from __future__ import annotations

from campaign_notes.sentinels import (
    ENCOUNTERS,
    FIXED_REGIONS,
    GROUPS,
    TagConnection,
    has_tag_connections,
    normalize_type_token,
    replace_region,
    replace_tag_connections,
)

DOC = (
    "# Heist\n"
    "Intro text stays.\n"
    "<!-- ENCOUNTERS BEGIN -->\nold encounters\n<!-- ENCOUNTERS END -->\n"
    "Between sections.\n"
    "<!--groups begin-->old groups<!--  GROUPS   END  -->\n"
    "Trailing text.\n"
)


def test_fixed_region_order() -> None:
    assert [k.name for k in FIXED_REGIONS] == ["ENCOUNTERS", "GROUPS", "NPCS", "PLACES", "RENOWN"]


def test_find_splits_prefix_body_suffix() -> None:
    match = ENCOUNTERS.find(DOC)
    assert match is not None
    assert match.prefix.endswith("<!-- ENCOUNTERS BEGIN -->")
    assert match.body == "\nold encounters\n"
    assert match.suffix.startswith("<!-- ENCOUNTERS END -->\nBetween sections.")
    assert match.prefix + match.body + match.suffix == DOC


def test_replace_region_only_touches_body() -> None:
    out = replace_region(DOC, ENCOUNTERS, lambda: "\nNEW\n")
    assert out == DOC.replace("\nold encounters\n", "\nNEW\n")


def test_replace_region_is_case_and_whitespace_insensitive() -> None:
    out = replace_region(DOC, GROUPS, lambda: "NEW")
    assert "<!--groups begin-->NEW<!--  GROUPS   END  -->" in out
    assert "old encounters" in out


def test_absent_region_skips_generator() -> None:
    calls: list[int] = []

    def generate() -> str:
        calls.append(1)
        return "x"

    text = "no sentinels here\n<!-- NPCS BEGIN --> but no end"
    for kind in FIXED_REGIONS:
        assert replace_region(text, kind, generate) == text
    assert calls == []


def test_empty_region_and_idempotence() -> None:
    text = "<!-- ENCOUNTERS BEGIN --><!-- ENCOUNTERS END -->"
    once = replace_region(text, ENCOUNTERS, lambda: "\nbody\n")
    twice = replace_region(once, ENCOUNTERS, lambda: "\nbody\n")
    assert once == twice == "<!-- ENCOUNTERS BEGIN -->\nbody\n<!-- ENCOUNTERS END -->"


def test_only_first_occurrence_is_replaced() -> None:
    text = (
        "<!-- RENOWN BEGIN -->a<!-- RENOWN END -->\n"
        "<!-- RENOWN BEGIN -->b<!-- RENOWN END -->"
    )
    out = replace_region(text, FIXED_REGIONS[-1], lambda: "X")
    assert out == (
        "<!-- RENOWN BEGIN -->X<!-- RENOWN END -->\n"
        "<!-- RENOWN BEGIN -->b<!-- RENOWN END -->"
    )


# ---------------------------------------------------------------------------
# Tag connection blocks
# ---------------------------------------------------------------------------

TAG_DOC = (
    "Top\n"
    '<!-- tagConnection:begin scope="townA" type="npc" -->\nold a\n<!-- tagConnection:end -->\n'
    "Middle\n"
    '<!-- tagConnection:begin tag="townB" type="location" -->old b<!-- tagConnection:end -->\n'
    "Bottom\n"
)


def test_normalize_type_token() -> None:
    assert normalize_type_token("location") == "place"
    assert normalize_type_token(" npc ") == "npc"


def test_each_tag_block_is_replaced_independently() -> None:
    seen: list[TagConnection] = []

    def generate(block: TagConnection) -> str:
        seen.append(block)
        return f"[{block.type_token}:{block.scope}]"

    out = replace_tag_connections(TAG_DOC, generate)
    assert seen == [
        TagConnection(scope="townA", type_token="npc"),
        TagConnection(scope="townB", type_token="place"),
    ]
    assert out == (
        "Top\n"
        '<!-- tagConnection:begin scope="townA" type="npc" -->[npc:townA]<!-- tagConnection:end -->\n'
        "Middle\n"
        '<!-- tagConnection:begin tag="townB" type="location" -->[place:townB]'
        "<!-- tagConnection:end -->\n"
        "Bottom\n"
    )


def test_tag_block_left_verbatim_when_generator_declines() -> None:
    def generate(block: TagConnection) -> str | None:
        return None if block.scope == "townA" else "NEW"

    out = replace_tag_connections(TAG_DOC, generate)
    assert "\nold a\n" in out
    assert "old b" not in out
    assert 'type="location" -->NEW<!-- tagConnection:end -->' in out


def test_no_tag_blocks() -> None:
    assert not has_tag_connections("plain <!-- tagConnection:begin -->")
    assert replace_tag_connections("plain", lambda _b: "x") == "plain"


def test_normalize_type_token_ignores_case() -> None:
    assert normalize_type_token("Location") == "place"
    assert normalize_type_token("NPC") == "npc"


def test_unterminated_tag_block_does_not_swallow_following_text() -> None:
    doc = (
        '<!-- tagConnection:begin scope="a" type="npc" -->\nstray\n'
        "Human text\n"
        '<!-- tagConnection:begin scope="b" type="npc" -->old<!-- tagConnection:end -->\n'
    )
    seen: list[str] = []

    def generate(block: TagConnection) -> str:
        seen.append(block.scope)
        return f"[{block.scope}]"

    out = replace_tag_connections(doc, generate)
    assert seen == ["b"]
    assert out == (
        '<!-- tagConnection:begin scope="a" type="npc" -->\nstray\n'
        "Human text\n"
        '<!-- tagConnection:begin scope="b" type="npc" -->[b]<!-- tagConnection:end -->\n'
    )
