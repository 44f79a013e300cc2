#!/usr/bin/env python3
"""Rebuild the entity index of a vault and print it as JSON.

Useful for checking how frontmatter and tags were interpreted before
regenerating tables.

Usage:
    python3 scripts/dump_index.py --vault ~/notes/campaign --type npc --scope-pattern heist
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from campaign_notes.entity_types import CampaignEntity
from campaign_notes.errors import CampaignNotesError
from campaign_notes.index import CampaignIndex
from campaign_notes.io_utils import to_jsonable
from campaign_notes.settings import load_settings
from campaign_notes.vault import Vault


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(
        orjson.dumps(to_jsonable(obj), option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)
    )
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rebuild the campaign entity index and print it as JSON."
    )
    parser.add_argument("--vault", required=True, type=Path, help="Vault root directory")
    parser.add_argument("--settings", type=Path, default=None, help="JSON settings file")
    parser.add_argument(
        "--include-folder", action="append", default=[], help="Folder to index (repeatable)"
    )
    parser.add_argument(
        "--type", dest="entity_type", default=None, help="Only entities of this type"
    )
    parser.add_argument(
        "--scope-pattern", default=None, help="Only entities whose scope matches this pattern"
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def select_entities(
    index: CampaignIndex, entity_type: str | None, scope_pattern: str | None
) -> list[CampaignEntity]:
    if entity_type:
        resolved = index.get_entity_type(entity_type)
        if resolved is None:
            raise CampaignNotesError(f"Unknown entity type: {entity_type}")
        return index.get_entities_by_type(resolved, scope_pattern)
    if scope_pattern:
        return index.get_entities(scope_pattern)
    return list(index.unique_index.values())


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings(args.settings).with_overrides(
            include_folders=args.include_folder
        )
        index = CampaignIndex(Vault(args.vault), settings)
        index.rebuild_index()
        entities = select_entities(index, args.entity_type, args.scope_pattern)
    except CampaignNotesError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(
        f"{len(entities)} entities, {len(index.generated_index)} generated index files",
        file=sys.stderr,
    )
    dump_json(
        {
            "entities": sorted(entities, key=lambda e: e.id),
            "generated": index.generated_index_files(),
            "scopes": index.scopes(),
        }
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
