"""Sentinel-delimited regions inside generated index documents.

Five fixed regions are recognized::

    <!-- ENCOUNTERS BEGIN --> ... <!-- ENCOUNTERS END -->
    (likewise GROUPS, NPCS, PLACES and RENOWN)

plus any number of parameterized tag connection blocks::

    <!-- tagConnection:begin scope="townA" type="npc" --> ... <!-- tagConnection:end -->

Only the text between a begin and end sentinel is ever replaced; the
sentinels themselves and everything around them are kept byte for byte.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True, slots=True)
class RegionMatch:
    """A located region split into prefix, current body and suffix."""

    prefix: str  # text up to and including the begin sentinel
    body: str
    suffix: str  # text from the end sentinel onward

    def with_body(self, body: str) -> str:
        return self.prefix + body + self.suffix


@dataclass(frozen=True, slots=True)
class RegionKind:
    """A fixed-name region: its name and compiled begin/end sentinels."""

    name: str
    begin: re.Pattern[str]
    end: re.Pattern[str]

    def find(self, text: str) -> RegionMatch | None:
        """First begin sentinel and the first end sentinel after it."""
        begin = self.begin.search(text)
        if begin is None:
            return None
        end = self.end.search(text, begin.end())
        if end is None:
            return None
        return RegionMatch(
            prefix=text[: begin.end()],
            body=text[begin.end() : end.start()],
            suffix=text[end.start() :],
        )


def _fixed_region(name: str) -> RegionKind:
    return RegionKind(
        name=name,
        begin=re.compile(rf"<!--\s*{name}\s+BEGIN\s*-->", re.IGNORECASE),
        end=re.compile(rf"<!--\s*{name}\s+END\s*-->", re.IGNORECASE),
    )


ENCOUNTERS = _fixed_region("ENCOUNTERS")
GROUPS = _fixed_region("GROUPS")
NPCS = _fixed_region("NPCS")
PLACES = _fixed_region("PLACES")
RENOWN = _fixed_region("RENOWN")

# Processing order within one document.
FIXED_REGIONS: tuple[RegionKind, ...] = (ENCOUNTERS, GROUPS, NPCS, PLACES, RENOWN)


def replace_region(text: str, kind: RegionKind, generate: Callable[[], str]) -> str:
    """Replace the body of the first ``kind`` region; ``text`` is returned as-is if absent.

    ``generate`` is only called when the region is present.
    """
    match = kind.find(text)
    if match is None:
        return text
    return match.with_body(generate())


# ---------------------------------------------------------------------------
# Tag connection blocks
# ---------------------------------------------------------------------------

# A block body never crosses another begin sentinel.
_TAG_BODY = r"(?:(?!<!--\s*tagConnection:begin)[\s\S])*?"

TAG_CONNECTION_BLOCK_RE = re.compile(
    r"(<!--\s*tagConnection:begin" + _TAG_BODY + r"tagConnection:end\s*-->)", re.IGNORECASE
)
TAG_CONNECTION_RE = re.compile(
    r'(<!--\s*tagConnection:begin\s+(?:scope|tag)="([^"]+?)"\s+type="([^"]+?)"\s*-->)'
    + _TAG_BODY
    + r"(<!--\s*tagConnection:end\s*-->)",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class TagConnection:
    """Attributes of one tag connection block."""

    scope: str
    type_token: str


def normalize_type_token(token: str) -> str:
    """Legacy ``location`` blocks list places."""
    return token.strip().lower().replace("location", "place", 1)


def has_tag_connections(text: str) -> bool:
    return TAG_CONNECTION_RE.search(text) is not None


def replace_tag_connections(
    text: str, generate: Callable[[TagConnection], str | None]
) -> str:
    """Regenerate every tag connection block independently.

    ``generate`` returns the new body, or ``None`` to leave that block
    exactly as it was.
    """
    if not has_tag_connections(text):
        return text
    blocks = TAG_CONNECTION_BLOCK_RE.split(text)
    # re.split with one capture group puts the delimiters at odd indexes
    for i in range(1, len(blocks), 2):
        block = blocks[i]
        match = TAG_CONNECTION_RE.search(block)
        if match is None:
            continue
        body = generate(
            TagConnection(scope=match.group(2), type_token=normalize_type_token(match.group(3)))
        )
        if body is None:
            continue
        blocks[i] = (
            block[: match.start()] + match.group(1) + body + match.group(4) + block[match.end() :]
        )
    return "".join(blocks)
