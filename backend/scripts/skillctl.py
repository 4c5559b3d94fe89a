#!/usr/bin/env python3
"""
Inspect a skill library and run the match / assemble pipeline from a shell.

Usage:
  python backend/scripts/skillctl.py load
  python backend/scripts/skillctl.py conflicts --skills-dir path/to/skills
  python backend/scripts/skillctl.py match "add a typing indicator to a LiveView chat"
  python backend/scripts/skillctl.py assemble "LiveView chat" --max-bytes 20000

Exit codes:
  0  success
  1  load failure (no usable skills, timeout, missing directory)
  2  partial load (some sources malformed; reported on stderr, output still produced)
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import Config
from core.errors import EmptyRegistryError, LoadTimeoutError
from core.models import Query
from core.pipeline import SkillPipeline
from core.registry_cache import open_cache
from core.registry_store import RegistryStore
from skills.skill_registry import Registry
from utilities.source_collector import SourceCollector


EXIT_OK = 0
EXIT_LOAD_FAILURE = 1
EXIT_PARTIAL_LOAD = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Skill library inspection and context assembly.")
    parser.add_argument(
        "--skills-dir",
        type=Path,
        default=None,
        help="Root of the SKILL.md library (default: SKILLS_DIR or backend/skills/definitions).",
    )
    parser.add_argument("--cache", type=Path, default=None, help="SQLite registry cache file.")
    parser.add_argument("--timeout", type=float, default=None, help="Load timeout in seconds.")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("load", help="Load the library and print a summary.")
    sub.add_parser("conflicts", help="List duplicate skill names and their winners.")

    match_p = sub.add_parser("match", help="Rank skills for a request (JSON output).")
    match_p.add_argument("text", help="Request text.")
    match_p.add_argument("--active", action="append", default=[], help="Already active skill name.")
    match_p.add_argument("--id", dest="ids", action="append", default=[], help="Explicitly requested id.")

    assemble_p = sub.add_parser("assemble", help="Assemble a context bundle for a request.")
    assemble_p.add_argument("text", help="Request text.")
    assemble_p.add_argument("--max-bytes", type=int, default=None, help="Byte budget for skill bodies.")
    assemble_p.add_argument("--active", action="append", default=[], help="Already active skill name.")
    assemble_p.add_argument("--json", action="store_true", help="Print the bundle as JSON.")

    return parser


def _print_load_errors(registry: Registry) -> None:
    for error in registry.load_errors:
        print(f"warning: malformed skill {error.path}: {error.reason}", file=sys.stderr)


def _cmd_load(registry: Registry, store: RegistryStore) -> None:
    print(f"Loaded {len(registry)} skill(s) from {store.collector.skills_dir}")
    for d in registry:
        marker = " (shadowed)" if registry.is_shadowed(d.id) else ""
        related = f" → {', '.join(d.related_ids)}" if d.related_ids else ""
        print(f"  {d.id}  [{d.name}]  {d.size_bytes} bytes{marker}{related}")


def _cmd_conflicts(registry: Registry) -> None:
    if not registry.conflicts:
        print("No duplicate skill names.")
        return
    for group in registry.conflicts:
        print(f"{group.name}: winner={group.winner_id}")
        for sid in group.shadowed_ids:
            print(f"  shadowed: {sid} ({registry.get(sid).size_bytes} bytes)")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    Config.configure_logging()

    store = RegistryStore(
        collector=SourceCollector(args.skills_dir or Config.get_skills_dir()),
        cache=open_cache(args.cache or Config.get_cache_path()),
        load_timeout=args.timeout if args.timeout is not None else Config.get_load_timeout(),
    )

    try:
        registry = store.reload()
    except FileNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOAD_FAILURE
    except LoadTimeoutError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_LOAD_FAILURE
    except EmptyRegistryError as e:
        for error in e.errors:
            print(f"warning: malformed skill {error.path}: {error.reason}", file=sys.stderr)
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_LOAD_FAILURE

    _print_load_errors(registry)
    pipeline = SkillPipeline(store, weights=Config.get_match_weights())

    if args.command == "load":
        _cmd_load(registry, store)
    elif args.command == "conflicts":
        _cmd_conflicts(registry)
    elif args.command == "match":
        query = Query(text=args.text, active_context_names=args.active, requested_ids=args.ids)
        results = pipeline.match(query)
        print(json.dumps([r.model_dump(by_alias=True) for r in results], indent=2))
    elif args.command == "assemble":
        max_bytes = args.max_bytes if args.max_bytes is not None else Config.DEFAULT_MAX_BYTES
        outcome = pipeline.assemble(Query(text=args.text, active_context_names=args.active), max_bytes)
        for warning in outcome.warnings:
            print(f"warning: {warning.message}", file=sys.stderr)
        if args.json:
            payload = outcome.bundle.model_dump(by_alias=True, mode="json")
            payload["warnings"] = [w.to_dict() for w in outcome.warnings]
            print(json.dumps(payload, indent=2))
        else:
            print(outcome.bundle.text)

    return EXIT_PARTIAL_LOAD if registry.is_partial else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
