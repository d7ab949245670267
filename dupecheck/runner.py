from __future__ import annotations

import argparse
import logging
import os
import threading
from typing import Optional

from dupecheck.config import get_settings
from dupecheck.services.checker import DupeChecker
from dupecheck.services.pipeline import write_jsonl
from dupecheck.services.query import SearchClient, load_plans, load_plans_file
from dupecheck.services.retriever import LdpRetriever
from dupecheck.services.visit import Visitor, WalkError

logger = logging.getLogger("dupecheck")


def run_walk(start_uri: str, retriever, *, max_concurrent: int) -> int:
    """Print the URI and type of every accepted resource. Returns the error count."""
    visitor = Visitor(retriever, max_concurrent)
    errors = []

    def print_accepted():
        for container in visitor.containers:
            print(f"{container.uri}\t{container.pass_type}")

    def collect_errors():
        for err in visitor.errors:
            logger.warning("%s", err)
            errors.append(err)

    def log_events():
        for event in visitor.events:
            logger.debug("%s %s", event.type.value, event.uri)

    consumers = [threading.Thread(target=f) for f in (print_accepted, collect_errors, log_events)]
    for t in consumers:
        t.start()
    try:
        visitor.walk(start_uri)
    finally:
        for t in consumers:
            t.join()
    return len(errors)


def main(argv: Optional[list] = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description="Find duplicate resources in a PASS repository")
    sub = parser.add_subparsers(dest="cmd", required=True)

    walk = sub.add_parser("walk", help="List the PASS resources reachable from a container")
    walk.add_argument("start_uri", nargs="?", default=settings.fcrepo_base_uri, help="Container to start from")
    walk.add_argument("--max-concurrent", type=int, default=settings.max_concurrent_requests)

    check = sub.add_parser("check", help="Check PASS resources for duplicates in the index")
    check.add_argument("start_uri", nargs="?", default=settings.fcrepo_base_uri, help="Container to start from")
    check.add_argument("--max-concurrent", type=int, default=settings.max_concurrent_requests)
    check.add_argument("--plans", default=settings.plans_path, help="JSON plan configuration (default: built-in)")
    default_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    check.add_argument("--out-dir", default=os.path.join(default_root, "data", "duplicates"),
                       help="Output directory for JSONL files")

    args = parser.parse_args(argv)
    retriever = LdpRetriever.from_settings(settings)

    if args.cmd == "walk":
        try:
            errors = run_walk(args.start_uri, retriever, max_concurrent=args.max_concurrent)
        except WalkError as exc:
            logger.error("%s", exc)
            return 1
        return 1 if errors else 0

    if args.cmd == "check":
        search = SearchClient.from_settings(settings)
        plans = load_plans_file(args.plans, search) if args.plans else load_plans(search=search)
        checker = DupeChecker(retriever, plans, max_concurrent=args.max_concurrent)
        try:
            report = checker.run(args.start_uri)
        except WalkError as exc:
            logger.error("%s", exc)
            return 1
        path = write_jsonl(report.duplicates, out_dir=args.out_dir, filename_prefix="duplicates")
        print(path)
        return 0

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
