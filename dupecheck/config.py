"""Runtime settings loaded from the environment.

Configuration via environment variables (or a .env file at the project root):

- FCREPO_BASE_URI, FCREPO_USER, FCREPO_PASS
- FCREPO_MAX_CONCURRENT_REQUESTS (default: 5)
- HTTP_TIMEOUT_MS (default: 600000, i.e. 10 minutes)
- INDEX_SEARCH_BASE_URI (default: http://elasticsearch:9200/pass/_search)
- INDEX_SEARCH_MAX_RESULT_SIZE (default: 1000)
- DUPECHECK_PLANS (optional path to a JSON plan configuration)
- PASS_NAMESPACE (default: http://oapass.org/ns/pass#)
- LOG_LEVEL (default: INFO)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

FCREPO_BASE_URI = "FCREPO_BASE_URI"
FCREPO_USER = "FCREPO_USER"
FCREPO_PASS = "FCREPO_PASS"
FCREPO_MAX_CONCURRENT_REQUESTS = "FCREPO_MAX_CONCURRENT_REQUESTS"
HTTP_TIMEOUT_MS = "HTTP_TIMEOUT_MS"
INDEX_SEARCH_BASE_URI = "INDEX_SEARCH_BASE_URI"
INDEX_SEARCH_MAX_RESULT_SIZE = "INDEX_SEARCH_MAX_RESULT_SIZE"
DUPECHECK_PLANS = "DUPECHECK_PLANS"
PASS_NAMESPACE = "PASS_NAMESPACE"
LOG_LEVEL = "LOG_LEVEL"

DEFAULT_PASS_NAMESPACE = "http://oapass.org/ns/pass#"


@dataclass(frozen=True)
class Settings:
    fcrepo_base_uri: str
    fcrepo_user: str
    fcrepo_password: str
    # Maximum number of concurrent requests allowed to the repository
    max_concurrent_requests: int
    http_timeout_ms: int
    index_search_base_uri: str
    # maximum number of hits to allow from the index on a per-request basis
    index_search_max_result_size: int
    plans_path: Optional[str]
    pass_namespace: str
    log_level: str

    @property
    def http_timeout(self) -> float:
        return self.http_timeout_ms / 1000.0


def _load_env_from_file() -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val


def get_env(var_name: str, default: str) -> str:
    """Answer the value of an environment variable, tolerating `${NAME}` wrapping."""
    name = var_name.strip()
    if name.startswith("${"):
        name = name[2:]
    if name.endswith("}"):
        name = name[:-1]
    return os.environ.get(name, default)


def _get_int(var_name: str, default: int) -> int:
    raw = get_env(var_name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{var_name} must be an integer, got '{raw}'") from exc


def get_settings() -> Settings:
    _load_env_from_file()

    settings = Settings(
        fcrepo_base_uri=get_env(FCREPO_BASE_URI, "http://fcrepo:8080/fcrepo/rest"),
        fcrepo_user=get_env(FCREPO_USER, "fedoraAdmin"),
        fcrepo_password=get_env(FCREPO_PASS, "moo"),
        max_concurrent_requests=_get_int(FCREPO_MAX_CONCURRENT_REQUESTS, 5),
        http_timeout_ms=_get_int(HTTP_TIMEOUT_MS, 600000),
        index_search_base_uri=get_env(INDEX_SEARCH_BASE_URI, "http://elasticsearch:9200/pass/_search"),
        index_search_max_result_size=_get_int(INDEX_SEARCH_MAX_RESULT_SIZE, 1000),
        plans_path=get_env(DUPECHECK_PLANS, "") or None,
        pass_namespace=get_env(PASS_NAMESPACE, DEFAULT_PASS_NAMESPACE),
        log_level=get_env(LOG_LEVEL, "INFO").upper(),
    )
    if settings.max_concurrent_requests < 1:
        raise RuntimeError(
            f"{FCREPO_MAX_CONCURRENT_REQUESTS} must be at least 1, got {settings.max_concurrent_requests}"
        )
    return settings


def strip_base_uri(uri: str, *base_uris: str) -> Tuple[str, str]:
    """Strip the first matching base URI from `uri`.

    Returns (path, base). When `uri` is not subordinate to any base, it is
    returned untouched and base is the empty string.
    """
    for base in base_uris:
        if uri.startswith(base):
            return uri[len(base):], base
    return uri, ""
