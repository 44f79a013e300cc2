"""Shared fixtures: a small campaign vault on disk."""
from __future__ import annotations

from pathlib import Path

import pytest

from campaign_notes.cache import RelationshipCache
from campaign_notes.index import CampaignIndex
from campaign_notes.settings import CampaignNotesSettings
from campaign_notes.vault import Vault

INDEX_TEMPLATE = """---
index: generated
---
Heist index, hand written intro.

<!-- ENCOUNTERS BEGIN -->
<!-- ENCOUNTERS END -->

<!-- GROUPS BEGIN -->
<!-- GROUPS END -->

<!-- NPCS BEGIN -->
<!-- NPCS END -->

<!-- PLACES BEGIN -->
<!-- PLACES END -->

<!-- RENOWN BEGIN -->
<!-- RENOWN END -->

<!-- tagConnection:begin scope="heist" type="npc" -->
<!-- tagConnection:end -->

Footer stays put.
"""

VAULT_FILES: dict[str, str] = {
    "heist/npcs/Renaer Neverember.md": (
        "---\nnpc: true\niff: ally\nnotes: Son of Dagult\ntags: [group/harpers]\n---\n"
        "Often at [[Trollskull Manor]].\n"
    ),
    "heist/npcs/Jarlaxle.md": "---\nnpc: true\niff: enemy\nstatus: alive\n---\n",
    "heist/npcs/Floon.md": "---\nnpc: true\nstatus: dead\n---\n",
    "heist/npcs/Volo.md": "---\nnpc: true\n---\n",
    "heist/groups/Harpers.md": (
        "---\ngroup: true\nicon: \"🎵\"\nrenown: 3\n"
        "tags: [group/harpers, type/group/faction]\n---\n"
    ),
    "heist/groups/Xanathar Guild.md": (
        "---\ngroup: true\nstatus: defunct\ntags: [type/group/criminal]\n---\n"
    ),
    "heist/areas/North Ward.md": (
        "---\narea: true\ntags: [area/north-ward, type/area/district]\n---\n"
    ),
    "heist/places/Trollskull Manor.md": (
        "---\nplace: true\nnotes: Needs repairs\ntags: [type/place/tavern, area/north-ward]\n---\n"
    ),
    "heist/encounters/03-Ambush.md": (
        "---\nencounter: active\nnotes: Zhents wait in the alley\n---\n"
    ),
    "heist/encounters/01-Arrival.md": "---\nencounter: new\n---\n",
    "heist/encounters/Rats.md": "---\nencounter: complete\n---\n",
    "heist/sessions/session-07.md": "Met [[Jarlaxle]].\n",
    "heist/sessions/session-12.md": "[[Renaer Neverember]] visited [[Trollskull Manor]].\n",
    "heist/Index.md": INDEX_TEMPLATE,
}


def write_vault(root: Path, files: dict[str, str]) -> None:
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


@pytest.fixture()
def vault(tmp_path: Path) -> Vault:
    write_vault(tmp_path, VAULT_FILES)
    return Vault(tmp_path)


@pytest.fixture()
def index(vault: Vault) -> CampaignIndex:
    built = CampaignIndex(vault, CampaignNotesSettings())
    built.rebuild_index()
    return built


@pytest.fixture()
def cache(vault: Vault, index: CampaignIndex) -> RelationshipCache:
    return RelationshipCache(vault, index)
