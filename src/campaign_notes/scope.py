"""Scope resolution for generated index files.

A generated file's primary scope comes from its ``scope`` frontmatter key or
its first path segment. ``scopePattern`` widens the data window to several
scopes, and ``scopeFilter`` restricts which entity source paths qualify.
"""
from __future__ import annotations

import logging
import re
from typing import Any

from campaign_notes.entity_types import DataScope
from campaign_notes.markup import scope_to_regex, segment_filter_regex

log = logging.getLogger(__name__)


def _frontmatter_str(frontmatter: dict[str, Any] | None, key: str) -> str | None:
    if not frontmatter:
        return None
    value = frontmatter.get(key)
    if value is None or value == "":
        return None
    return str(value).strip() or None


def resolve_scope(path: str, frontmatter: dict[str, Any] | None) -> str:
    """Declared ``scope``, else the first path segment."""
    return _frontmatter_str(frontmatter, "scope") or path.split("/")[0]


def resolve_pattern(scope: str, frontmatter: dict[str, Any] | None) -> str:
    """Declared ``scopePattern``, else the file's own scope."""
    return _frontmatter_str(frontmatter, "scopePattern") or scope


def resolve_filter(frontmatter: dict[str, Any] | None) -> re.Pattern[str] | None:
    """Compile ``scopeFilter`` as a leading-path-segment expression.

    An invalid expression is logged and treated as no filter.
    """
    raw = _frontmatter_str(frontmatter, "scopeFilter")
    if raw is None:
        return None
    try:
        return segment_filter_regex(raw)
    except re.error as exc:
        log.warning("Ignoring invalid scopeFilter %r: %s", raw, exc)
        return None


def resolve_pattern_regex(pattern: str) -> re.Pattern[str] | None:
    """Compile a scope pattern, or ``None`` (logged) when it is not a valid expression."""
    try:
        return scope_to_regex(pattern)
    except re.error as exc:
        log.warning("Invalid scopePattern %r: %s", pattern, exc)
        return None


def build_data_scope(path: str, frontmatter: dict[str, Any] | None) -> DataScope:
    scope = resolve_scope(path, frontmatter)
    pattern = resolve_pattern(scope, frontmatter)
    return DataScope(
        active=scope,
        pattern=pattern,
        regex=scope_to_regex(pattern),
        filter=resolve_filter(frontmatter),
    )
