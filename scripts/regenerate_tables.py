#!/usr/bin/env python3
"""Regenerate the index tables in every generated index file of a vault.

Rebuilds the entity index from the vault, then rewrites the sentinel regions
(ENCOUNTERS, GROUPS, NPCS, PLACES, RENOWN and tagConnection blocks) of every
file whose frontmatter has ``index: generated``.

Usage:
    python3 scripts/regenerate_tables.py --vault ~/notes/campaign
    python3 scripts/regenerate_tables.py --vault ~/notes/campaign \
      --settings campaign_notes.json --include-folder heist --json
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import orjson

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from campaign_notes.cache import RelationshipCache
from campaign_notes.errors import CampaignNotesError
from campaign_notes.index import CampaignIndex
from campaign_notes.io_utils import to_jsonable
from campaign_notes.run_manifest import (
    build_manifest,
    generate_run_id,
    git_commit_hash,
    write_manifest,
)
from campaign_notes.settings import load_settings
from campaign_notes.tables import RunSummary, TableGenerationService
from campaign_notes.vault import Vault

log = logging.getLogger("regenerate_tables")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(to_jsonable(obj), option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Regenerate index tables in a campaign notes vault."
    )
    parser.add_argument(
        "--vault", required=True, type=Path, help="Vault root directory"
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON settings file (includeFolders, campaignScopes, debug)",
    )
    parser.add_argument(
        "--include-folder",
        action="append",
        default=[],
        help="Folder to index (repeatable; overrides settings)",
    )
    parser.add_argument(
        "--scope",
        action="append",
        default=[],
        help="Campaign scope (repeatable; overrides settings)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable index/cache debug diagnostics",
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help="Write a run manifest JSON to this path",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the run summary as JSON to stdout"
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def run(args: argparse.Namespace) -> RunSummary:
    settings = load_settings(args.settings).with_overrides(
        include_folders=args.include_folder,
        campaign_scopes=args.scope,
        debug=args.debug,
    )
    vault = Vault(args.vault)
    index = CampaignIndex(vault, settings)
    index.rebuild_index()
    cache = RelationshipCache(vault, index)
    summary = asyncio.run(TableGenerationService(vault, index, cache).generate_tables())

    if args.manifest is not None:
        manifest = build_manifest(
            run_id=generate_run_id(),
            vault_root=args.vault,
            summary=summary,
            settings=to_jsonable(settings),
            git_commit=git_commit_hash(args.vault),
        )
        canonical, versioned = write_manifest(args.manifest, manifest)
        log.info("Manifest written to %s (%s)", canonical, versioned.name)
    return summary


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    if not args.vault.is_dir():
        print(f"Error: vault not found: {args.vault}", file=sys.stderr)
        return 1

    try:
        summary = run(args)
    except CampaignNotesError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        dump_json(
            {
                "groups": summary.groups,
                "files": summary.files,
                "changed": summary.changed,
                "timings_sec": summary.timings_sec,
            }
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
