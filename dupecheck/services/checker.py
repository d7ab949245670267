"""Walks a repository and checks every accepted resource for duplicates.

Each accepted resource is handed to the plans configured for its PASS type;
a plan whose query finds hits in the index marks the resource as a potential
duplicate.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from dupecheck.models.container import Container
from dupecheck.services.query import Match, MissingKeysError, Plan, QueryError
from dupecheck.services.visit import Predicate, Retriever, Visitor

logger = logging.getLogger(__name__)


@dataclass
class CheckReport:
    start_uri: str
    accepted: int = 0
    checked: int = 0
    skipped: int = 0
    duplicates: List[Match] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    events: Counter = field(default_factory=Counter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_uri": self.start_uri,
            "accepted": self.accepted,
            "checked": self.checked,
            "skipped": self.skipped,
            "duplicates": [m.to_dict() for m in self.duplicates],
            "errors": list(self.errors),
            "events": dict(self.events),
        }


class DupeChecker:
    def __init__(
        self,
        retriever: Retriever,
        plans: Mapping[str, Sequence[Plan]],
        *,
        max_concurrent: int = 5,
        on_match: Optional[Callable[[Match], None]] = None,
    ) -> None:
        self.retriever = retriever
        self.plans = plans
        self.max_concurrent = max_concurrent
        self.on_match = on_match
        self._visitor: Optional[Visitor] = None

    def cancel(self) -> None:
        if self._visitor is not None:
            self._visitor.cancel()

    def run(self, start_uri: str, descend: Optional[Predicate] = None, accept: Optional[Predicate] = None) -> CheckReport:
        """Walk from `start_uri`, checking accepted resources as they arrive.

        Raises WalkError when the starting resource cannot be retrieved.
        """
        visitor = Visitor(self.retriever, self.max_concurrent)
        self._visitor = visitor
        report = CheckReport(start_uri)

        consumers = [
            threading.Thread(target=self._consume_containers, args=(visitor, report), name="dupecheck containers"),
            threading.Thread(target=self._consume_errors, args=(visitor, report), name="dupecheck errors"),
            threading.Thread(target=self._consume_events, args=(visitor, report), name="dupecheck events"),
        ]
        for t in consumers:
            t.start()
        try:
            visitor.walk(start_uri, descend, accept)
        finally:
            for t in consumers:
                t.join()

        logger.info(
            "check of %s complete: accepted=%d checked=%d skipped=%d duplicates=%d errors=%d",
            start_uri,
            report.accepted,
            report.checked,
            report.skipped,
            len(report.duplicates),
            len(report.errors),
        )
        return report

    def check(self, container: Container, report: CheckReport) -> None:
        """Execute the plans configured for the container's type."""
        plans = self.plans.get(container.pass_type or "", [])
        if not plans:
            logger.debug("no plans configured for %s (%s)", container.uri, container.pass_type)
            return

        report.checked += 1
        for plan in plans:
            try:
                plan.execute(container, lambda m: self._handle(m, report))
            except MissingKeysError:
                report.skipped += 1
            except QueryError as exc:
                logger.warning("query for %s failed: %s", container.uri, exc)
                report.errors.append(str(exc))

    def _handle(self, match: Match, report: CheckReport) -> None:
        if not match.is_duplicate:
            return
        logger.info("%s %s has %d potential duplicate(s): %s", match.pass_type, match.pass_uri, match.hit_count, match.matching_uris)
        report.duplicates.append(match)
        if self.on_match is not None:
            self.on_match(match)

    def _consume_containers(self, visitor: Visitor, report: CheckReport) -> None:
        for container in visitor.containers:
            report.accepted += 1
            try:
                self.check(container, report)
            except Exception as exc:
                # keep draining, or the walk would block forever
                logger.exception("error checking %s", container.uri)
                report.errors.append(f"error checking {container.uri}: {exc}")

    def _consume_errors(self, visitor: Visitor, report: CheckReport) -> None:
        for err in visitor.errors:
            logger.warning("%s", err)
            report.errors.append(str(err))

    def _consume_events(self, visitor: Visitor, report: CheckReport) -> None:
        for event in visitor.events:
            report.events[event.type.value] += 1
