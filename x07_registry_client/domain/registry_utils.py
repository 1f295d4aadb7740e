import json
import re
from typing import Any, Iterable, List, Optional

from x07_registry_client.domain.errors import PackageNameError
from x07_registry_client.domain.models import IndexEntry
from x07_registry_client.domain.semver import parse_version

PACKAGE_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]*$")

# Always treated as official in addition to the index's verified namespaces.
BUILTIN_OFFICIAL_NAMESPACES = ("x07lang", "x07")


def validate_package_name(name: str) -> None:
    """
    Reject names outside ``^[a-z][a-z0-9_-]*$`` before any request is made.
    """
    if not isinstance(name, str) or not name:
        raise PackageNameError("package name must be non-empty")
    if not PACKAGE_NAME_RE.fullmatch(name):
        raise PackageNameError(f"package name must match {PACKAGE_NAME_RE.pattern}: {name!r}")


def index_path(name: str) -> str:
    """
    Map a package name to its shard path inside the sparse index.

    1 -> ``1/a``, 2 -> ``2/ab``, 3 -> ``3/a/abc``, 4+ -> ``ab/cd/abcd...``.
    """
    validate_package_name(name)
    n = len(name)
    if n == 1:
        return f"1/{name}"
    if n == 2:
        return f"2/{name}"
    if n == 3:
        return f"3/{name[0]}/{name}"
    return f"{name[:2]}/{name[2:4]}/{name}"


def latest_usable_version(entries: Iterable[IndexEntry]) -> Optional[str]:
    """
    Pick the highest non-yanked entry with a valid semantic version.

    Versions equal in precedence (differing only in build metadata) are
    ordered by their full string so the result never depends on input order.
    """
    best: Optional[str] = None
    best_key: Optional[tuple] = None
    for entry in entries:
        if entry.yanked:
            continue
        parsed = parse_version(entry.version)
        if parsed is None:
            continue
        key = (parsed.precedence_key(), entry.version)
        if best_key is None or key > best_key:
            best, best_key = entry.version, key
    return best


def is_official_package(name: str, verified_namespaces: Optional[List[str]] = None) -> bool:
    """
    True when ``name`` is, or is prefixed by, a verified namespace.

    A namespace ``ns`` matches ``ns`` itself, ``ns-*`` and ``ns/*``.
    """
    namespaces = [*(verified_namespaces or []), *BUILTIN_OFFICIAL_NAMESPACES]
    for ns in namespaces:
        trimmed = ns.strip()
        if not trimmed:
            continue
        if name == trimmed or name.startswith(f"{trimmed}-") or name.startswith(f"{trimmed}/"):
            return True
    return False


def download_url(download_base_url: str, name: str, version: str) -> str:
    """Compose ``{dl}/{name}/{version}/download``. No request is made."""
    return f"{download_base_url.rstrip('/')}/{name}/{version}/download"


def canonicalize(value: Any) -> Any:
    """
    Recursively sort dictionary keys.

    Lists keep their order, but their elements are also canonicalized.
    """
    if isinstance(value, dict):
        return {k: canonicalize(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [canonicalize(v) for v in value]
    return value


def canonical_json(value: Any) -> str:
    return json.dumps(canonicalize(value), indent=2, ensure_ascii=False) + "\n"
