"""Tests for scripts/regenerate_tables.py and scripts/dump_index.py."""
from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import orjson
import pytest

from conftest import VAULT_FILES, write_vault

_ROOT = Path(__file__).resolve().parents[1]


def _load_script(name: str):
    """Import scripts/<name>.py as a module (scripts/ is not a package)."""
    src = _ROOT / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    script_path = _ROOT / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, script_path)
    assert spec is not None and spec.loader is not None
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


regenerate_tables = _load_script("regenerate_tables")
dump_index = _load_script("dump_index")


def test_build_parser_defaults() -> None:
    args = regenerate_tables.build_parser().parse_args(["--vault", "notes"])
    assert args.vault == Path("notes")
    assert args.include_folder == []
    assert args.scope == []
    assert args.debug is None
    assert args.manifest is None


def test_main_regenerates_and_prints_summary(
    tmp_path: Path, capsysbinary: pytest.CaptureFixture[bytes]
) -> None:
    write_vault(tmp_path, VAULT_FILES)
    manifest = tmp_path / "runs" / "run_manifest.json"

    code = regenerate_tables.main(
        ["--vault", str(tmp_path), "--json", "--manifest", str(manifest)]
    )

    assert code == 0
    payload = orjson.loads(capsysbinary.readouterr().out)
    assert payload["groups"] == {"heist": ["heist/Index.md"]}
    assert payload["changed"] == ["heist/Index.md"]
    assert payload["files"][0]["regions"][0] == "ENCOUNTERS"
    assert "## Active Encounters" in (tmp_path / "heist/Index.md").read_text()
    assert orjson.loads(manifest.read_bytes())["changed_count"] == 1


def test_main_missing_vault(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert regenerate_tables.main(["--vault", str(tmp_path / "nope")]) == 1
    assert "vault not found" in capsys.readouterr().err


def test_main_bad_settings(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    settings = tmp_path / "settings.json"
    settings.write_text('{"includeFolders": 3}')
    assert regenerate_tables.main(["--vault", str(tmp_path), "--settings", str(settings)]) == 1
    assert "includeFolders" in capsys.readouterr().err


def test_dump_index_filters_by_type(
    tmp_path: Path, capsysbinary: pytest.CaptureFixture[bytes]
) -> None:
    write_vault(tmp_path, VAULT_FILES)
    assert dump_index.main(["--vault", str(tmp_path), "--type", "group"]) == 0
    payload = orjson.loads(capsysbinary.readouterr().out)
    assert [e["name"] for e in payload["entities"]] == ["Harpers", "Xanathar Guild"]
    assert payload["entities"][0]["type"] == "group"
    assert payload["generated"] == ["heist/Index.md"]
    assert payload["scopes"] == ["heist"]


def test_dump_index_unknown_type(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_vault(tmp_path, VAULT_FILES)
    assert dump_index.main(["--vault", str(tmp_path), "--type", "spaceship"]) == 1
    assert "Unknown entity type" in capsys.readouterr().err
