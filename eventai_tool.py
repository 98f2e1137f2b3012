"""Command line entry point for inspecting a game's event extensions."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from eventai.config import PluginConfig, load_plugin_parameters
from eventai.data_loader import DataLoader, discover_data_dir
from eventai.database import Database
from eventai.errors import EventAIError
from eventai.exporter import ScanService

logger = logging.getLogger("eventai_tool")


def cmd_scan(args) -> int:
    try:
        data_dir = discover_data_dir(args.game)
    except EventAIError as exc:
        logger.error("%s", exc)
        return 2
    config = PluginConfig.from_dict(load_plugin_parameters(data_dir.parent))
    loader = DataLoader(data_dir)
    db = Database(loader, config.self_scope_prefix)
    report = ScanService(loader, db).scan()
    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    else:
        print(ScanService.to_text(report))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Inspect custom triggers, weighted branches and self-scoped data")
    sub = ap.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="List pages and common events that use event extensions")
    scan.add_argument("game", help="Game folder (or its data folder)")
    scan.add_argument("--json", action="store_true", help="Print the report as JSON")
    scan.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    scan.set_defaults(func=cmd_scan)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
