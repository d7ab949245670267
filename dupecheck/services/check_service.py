"""Background dupe checks started through the API.

Checks are kept in process memory, keyed by a generated id.
"""
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dupecheck.config import get_settings
from dupecheck.services.checker import DupeChecker
from dupecheck.services.query import SearchClient, load_plans, load_plans_file
from dupecheck.services.retriever import LdpRetriever
from dupecheck.services.visit import WalkError

logger = logging.getLogger(__name__)

# finished records beyond this many are evicted, oldest first
MAX_CHECKS = 100

_checks: Dict[str, Dict[str, Any]] = {}
_lock = threading.Lock()


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def make_checker(max_concurrent: Optional[int] = None) -> DupeChecker:
    settings = get_settings()
    search = SearchClient.from_settings(settings)
    plans = load_plans_file(settings.plans_path, search) if settings.plans_path else load_plans(search=search)
    return DupeChecker(
        LdpRetriever.from_settings(settings),
        plans,
        max_concurrent=max_concurrent or settings.max_concurrent_requests,
    )


def _evict_finished() -> None:
    finished = [cid for cid, rec in _checks.items() if rec["status"] in ("complete", "failed")]
    while len(_checks) >= MAX_CHECKS and finished:
        del _checks[finished.pop(0)]


def create_check(start_uri: str) -> Dict[str, Any]:
    check_id = uuid.uuid4().hex
    record = {"id": check_id, "start_uri": start_uri, "status": "pending", "created_at": _now_iso(), "report": None, "error": None}
    with _lock:
        _evict_finished()
        _checks[check_id] = record
    return dict(record)


def run_check(check_id: str, max_concurrent: Optional[int] = None) -> None:
    with _lock:
        record = _checks[check_id]
        record["status"] = "running"
    try:
        report = make_checker(max_concurrent).run(record["start_uri"])
    except WalkError as exc:
        logger.warning("check %s failed: %s", check_id, exc)
        with _lock:
            record.update(status="failed", error=str(exc), finished_at=_now_iso())
        return
    except Exception as exc:
        logger.exception("check %s failed", check_id)
        with _lock:
            record.update(status="failed", error=str(exc), finished_at=_now_iso())
        return
    with _lock:
        record.update(status="complete", report=report.to_dict(), finished_at=_now_iso())


def get_check(check_id: str) -> Optional[Dict[str, Any]]:
    with _lock:
        record = _checks.get(check_id)
        return dict(record) if record is not None else None


def clear_checks() -> None:
    with _lock:
        _checks.clear()
