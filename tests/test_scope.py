"""Tests for campaign_notes.scope resolution."""
from __future__ import annotations

import logging

import pytest

from campaign_notes.scope import (
    build_data_scope,
    resolve_filter,
    resolve_pattern,
    resolve_pattern_regex,
    resolve_scope,
)


def test_resolve_scope_prefers_frontmatter() -> None:
    assert resolve_scope("heist/Index.md", {"scope": "waterdeep"}) == "waterdeep"


def test_resolve_scope_falls_back_to_first_path_segment() -> None:
    assert resolve_scope("heist/tables/Index.md", {}) == "heist"
    assert resolve_scope("heist/tables/Index.md", None) == "heist"
    assert resolve_scope("Index.md", {"scope": ""}) == "Index.md"


def test_resolve_pattern() -> None:
    assert resolve_pattern("heist", {"scopePattern": "heist|dragon"}) == "heist|dragon"
    assert resolve_pattern("heist", {}) == "heist"
    assert resolve_pattern("heist", None) == "heist"


def test_resolve_filter_compiles_segment_expression() -> None:
    regex = resolve_filter({"scopeFilter": "heist/places"})
    assert regex is not None
    assert regex.search("heist/places/Trollskull Manor.md")
    assert not regex.search("heist/npcs/Renaer.md")
    assert resolve_filter({}) is None
    assert resolve_filter(None) is None


def test_resolve_filter_invalid_expression_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="campaign_notes.scope"):
        assert resolve_filter({"scopeFilter": "heist/(places"}) is None
    assert "invalid scopeFilter" in caplog.text


def test_build_data_scope() -> None:
    data_scope = build_data_scope(
        "heist/Index.md",
        {"scopePattern": "heist|dragon", "scopeFilter": "heist/places"},
    )
    assert data_scope.active == "heist"
    assert data_scope.pattern == "heist|dragon"
    assert data_scope.regex.search("dragon")
    assert data_scope.regex.search(data_scope.active)
    assert data_scope.includes_path("heist/places/a.md")
    assert not data_scope.includes_path("dragon/places/a.md")


def test_data_scope_without_filter_includes_every_path() -> None:
    data_scope = build_data_scope("heist/Index.md", {})
    assert data_scope.filter is None
    assert data_scope.includes_path("anything/at/all.md")
    other = data_scope.with_active("dragon")
    assert other.active == "dragon"
    assert other.pattern == "heist"


def test_resolve_pattern_regex(caplog: pytest.LogCaptureFixture) -> None:
    regex = resolve_pattern_regex("heist|dragon")
    assert regex is not None and regex.match("Dragon")
    with caplog.at_level(logging.WARNING, logger="campaign_notes.scope"):
        assert resolve_pattern_regex("heist(") is None
    assert "Invalid scopePattern 'heist('" in caplog.text
