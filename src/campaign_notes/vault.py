"""File-system document store for a vault of markdown notes.

Files are addressed by POSIX paths relative to the vault root, e.g.
``"heist/npcs/Renaer Neverember.md"``. The store parses YAML frontmatter,
tags and outbound links, and writes files atomically.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from campaign_notes.errors import VaultError
from campaign_notes.markup import CleanLink, clean_link_target, markdown_link_path

log = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_INLINE_TAG_RE = re.compile(r"(?<![\w&#/])#([A-Za-z_][\w/-]*)")
_CODE_FENCE_RE = re.compile(r"^```.*?^```", re.DOTALL | re.MULTILINE)
_WIKI_LINK_RE = re.compile(r"!?\[\[([^\]|]+?)(?:\|([^\]]*))?\]\]")
_MD_LINK_RE = re.compile(r"!?\[([^\]]*)\]\(([^)]+)\)")
_EXTERNAL_RE = re.compile(r"^(http|mailto|view-source)")


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split ``text`` into (frontmatter mapping, body)."""
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        log.warning("Malformed frontmatter ignored: %s", exc)
        return {}, text[match.end() :]
    if not isinstance(metadata, dict):
        return {}, text[match.end() :]
    return metadata, text[match.end() :]


def _as_tag_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [t for t in re.split(r"[,\s]+", value) if t]
    if isinstance(value, list):
        return [str(t) for t in value if t]
    return []


class Vault:
    """Directory-backed document store."""

    def __init__(self, root: Path) -> None:
        if not root.is_dir():
            raise VaultError(f"Vault root is not a directory: {root}")
        self.root = root
        self._meta: dict[str, tuple[dict[str, Any], str]] = {}
        self._files: list[str] | None = None
        self._by_stem: dict[str, list[str]] | None = None

    # -- enumeration ---------------------------------------------------------

    def markdown_files(self) -> list[str]:
        """All ``*.md`` files, sorted, skipping dot-directories."""
        if self._files is None:
            files: list[str] = []
            for path in self.root.rglob("*.md"):
                rel = path.relative_to(self.root)
                if any(part.startswith(".") for part in rel.parts):
                    continue
                if path.is_file():
                    files.append(rel.as_posix())
            self._files = sorted(files)
        return self._files

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    # -- content -------------------------------------------------------------

    def _full_path(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root.resolve()):
            raise VaultError(f"Path escapes vault root: {path}")
        return full

    def read_text(self, path: str) -> str:
        return self._full_path(path).read_text(encoding="utf-8")

    def write_text(self, path: str, text: str) -> None:
        """Replace the file's content in one rename so readers never see a partial write."""
        full = self._full_path(path)
        fd, tmp_name = tempfile.mkstemp(
            dir=full.parent, prefix=f".{full.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
            os.replace(tmp_name, full)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._meta.pop(path, None)

    def _parsed(self, path: str) -> tuple[dict[str, Any], str]:
        cached = self._meta.get(path)
        if cached is None:
            cached = split_frontmatter(self.read_text(path))
            self._meta[path] = cached
        return cached

    def frontmatter(self, path: str) -> dict[str, Any]:
        return self._parsed(path)[0]

    def body(self, path: str) -> str:
        return self._parsed(path)[1]

    def tags(self, path: str) -> list[str]:
        """Frontmatter tags followed by inline ``#tags``, without the leading ``#``."""
        metadata, body = self._parsed(path)
        tags = _as_tag_list(metadata.get("tags"))
        tags.extend(_INLINE_TAG_RE.findall(_CODE_FENCE_RE.sub("", body)))
        return list(dict.fromkeys(t.lstrip("#") for t in tags if t.lstrip("#")))

    def title(self, path: str) -> str:
        """First alias from frontmatter, else the file name without extension."""
        aliases = self.frontmatter(path).get("aliases")
        alias = aliases[0] if isinstance(aliases, list) and aliases else aliases
        if isinstance(alias, str) and alias:
            return alias
        return PurePosixPath(path).stem

    # -- links ---------------------------------------------------------------

    def links(self, path: str) -> list[CleanLink]:
        """Outbound links of ``path`` resolved to vault files; unresolved links are dropped."""
        body = self.body(path)
        raw: list[tuple[str, str | None]] = []
        for match in _WIKI_LINK_RE.finditer(body):
            raw.append((match.group(1).strip(), match.group(2)))
        for match in _MD_LINK_RE.finditer(body):
            raw.append((match.group(2).strip(), match.group(1) or None))

        out: dict[str, CleanLink] = {}
        for target, text in raw:
            if not target or target.startswith("#") or _EXTERNAL_RE.match(target):
                continue
            link = clean_link_target(target, text)
            resolved = self.resolve_link(link.path, path)
            if resolved is None:
                continue
            link.path = resolved
            link.md_link = markdown_link_path(resolved, link.anchor)
            out.setdefault(link.md_link, link)
        return list(out.values())

    def resolve_link(self, link_path: str, source_path: str) -> str | None:
        """Resolve a link target the way note apps do: exact path, then by name."""
        if not link_path:
            return None
        candidates = [link_path]
        if not link_path.endswith(".md"):
            candidates.append(f"{link_path}.md")
        parent = PurePosixPath(source_path).parent
        for candidate in list(candidates):
            candidates.append((parent / candidate).as_posix())
        files = set(self.markdown_files())
        for candidate in candidates:
            normalized = os.path.normpath(candidate).replace(os.sep, "/")
            if normalized in files:
                return normalized

        if self._by_stem is None:
            by_stem: dict[str, list[str]] = {}
            for file in self.markdown_files():
                by_stem.setdefault(PurePosixPath(file).stem.lower(), []).append(file)
            self._by_stem = by_stem
        stem = PurePosixPath(link_path).name
        if stem.endswith(".md"):
            stem = stem[:-3]
        matches = self._by_stem.get(stem.lower(), [])
        return matches[0] if matches else None
