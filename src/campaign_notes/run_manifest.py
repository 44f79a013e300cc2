"""Run-manifest utilities for table regeneration runs."""
from __future__ import annotations

import subprocess
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from campaign_notes.io_utils import save_json, to_jsonable
from campaign_notes.tables import RunSummary

MANIFEST_VERSION = "1.0"
MANIFEST_FILENAME = "run_manifest.json"


def generate_run_id(prefix: str = "tables") -> str:
    """Run id of the form ``<prefix>_<UTC timestamp>_<8 hex>``."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}_{ts}_{uuid4().hex[:8]}"


def versioned_manifest_path(manifest_path: Path, run_id: str) -> Path:
    """Return the run-id-specific sibling of a manifest path."""
    return manifest_path.parent / f"run_manifest_{run_id}.json"


def git_commit_hash(vault_root: Path) -> str | None:
    """HEAD of the repository holding the vault, or ``None`` when it is not versioned."""
    try:
        proc = subprocess.run(
            ["git", "-C", str(vault_root), "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def build_manifest(
    *,
    run_id: str,
    vault_root: Path,
    summary: RunSummary,
    settings: dict[str, Any] | None = None,
    git_commit: str | None = None,
    notes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the manifest payload for one regeneration run."""
    return {
        "manifest_version": MANIFEST_VERSION,
        "created_at": datetime.now(UTC).isoformat(),
        "run_id": run_id,
        "vault_root": str(vault_root),
        "git_commit": git_commit,
        "settings": settings or {},
        "groups": summary.groups,
        "files": to_jsonable(summary.files),
        "updated_count": len(summary.updated),
        "changed_count": len(summary.changed),
        "timings_sec": summary.timings_sec,
        "notes": notes or {},
    }


def write_manifest(path: Path, manifest: dict[str, Any]) -> tuple[Path, Path]:
    """Write the manifest to ``path`` and to a run-id-specific sibling."""
    versioned = versioned_manifest_path(path, str(manifest["run_id"]))
    save_json(manifest, path, pretty=True)
    save_json(manifest, versioned, pretty=True)
    return path, versioned
