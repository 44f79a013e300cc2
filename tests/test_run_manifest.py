"""Tests for campaign_notes.run_manifest utilities."""
from __future__ import annotations

from pathlib import Path

from campaign_notes.io_utils import load_json
from campaign_notes.run_manifest import (
    MANIFEST_VERSION,
    build_manifest,
    generate_run_id,
    git_commit_hash,
    write_manifest,
)
from campaign_notes.tables import FileResult, RunSummary


def _summary() -> RunSummary:
    return RunSummary(
        groups={"heist": ["heist/Index.md", "heist/Other.md"]},
        files=[
            FileResult("heist/Index.md", "heist", "heist", ("ENCOUNTERS", "NPCS"), True),
            FileResult("heist/Other.md", "heist", "heist", (), False),
        ],
        timings_sec={"total": 0.5},
    )


def test_generate_run_id_prefix() -> None:
    run_id = generate_run_id("test_run")
    assert run_id.startswith("test_run_")
    assert run_id != generate_run_id("test_run")


def test_write_manifest_canonical_and_versioned(tmp_path: Path) -> None:
    run_id = generate_run_id()
    manifest = build_manifest(
        run_id=run_id,
        vault_root=tmp_path,
        summary=_summary(),
        settings={"include_folders": ["heist"]},
        git_commit="deadbeef",
    )
    canonical, versioned = write_manifest(tmp_path / "out" / "run_manifest.json", manifest)
    assert canonical.exists()
    assert versioned.name == f"run_manifest_{run_id}.json"

    loaded = load_json(canonical)
    assert loaded["manifest_version"] == MANIFEST_VERSION
    assert loaded["run_id"] == run_id
    assert loaded["git_commit"] == "deadbeef"
    assert loaded["updated_count"] == 2
    assert loaded["changed_count"] == 1
    assert loaded["files"][0] == {
        "path": "heist/Index.md",
        "scope": "heist",
        "pattern": "heist",
        "regions": ["ENCOUNTERS", "NPCS"],
        "changed": True,
    }
    assert loaded["groups"] == {"heist": ["heist/Index.md", "heist/Other.md"]}
    assert load_json(versioned) == loaded


def test_git_commit_hash_outside_repository(tmp_path: Path) -> None:
    assert git_commit_hash(tmp_path) is None
