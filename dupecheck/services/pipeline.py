from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Tuple, Union

from dupecheck.services.query import Match


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def sha256_hexdigest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _record_dedupe_key(rec: Dict) -> Tuple[str, str]:
    # Default dedupe: (pass_uri, hash of the matched ids)
    pass_uri = str(rec.get("pass_uri") or "")
    matches_hash = sha256_hexdigest(canonical_json(sorted(rec.get("matching_uris") or [])))
    return pass_uri, matches_hash


def write_jsonl(matches: Iterable[Union[Match, Dict]], out_dir: str, filename_prefix: str) -> str:
    """Write duplicate matches to a JSONL file.

    A resource found by several plans with the same matching ids is written
    once. Returns the path to the written file.
    """
    ensure_dir(out_dir)
    dt = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    path = os.path.join(out_dir, f"{filename_prefix}-{dt}.jsonl")

    seen: set = set()
    with open(path, "a", encoding="utf-8") as f:
        for m in matches:
            rec = m.to_dict() if isinstance(m, Match) else dict(m)
            key = _record_dedupe_key(rec)
            if key in seen:
                continue
            seen.add(key)
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    return path
