"""
Semantic Versioning 2.0.0 parsing and precedence.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

# Official SemVer 2.0.0 grammar: no leading zeros in numeric identifiers, no "v" prefix.
_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
    re.ASCII,
)


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    def precedence_key(self) -> tuple:
        """
        Sort key implementing SemVer precedence.

        A release ranks above any of its pre-releases. Pre-release identifiers
        compare numerically when numeric, lexically otherwise, and numeric
        identifiers rank below alphanumeric ones. Build metadata is ignored.
        """
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        parts = []
        for ident in self.prerelease:
            if ident.isdigit():
                parts.append((0, int(ident), ""))
            else:
                parts.append((1, 0, ident))
        return (self.major, self.minor, self.patch, 0, tuple(parts))

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            out += "-" + ".".join(self.prerelease)
        if self.build:
            out += "+" + ".".join(self.build)
        return out


def parse_version(value: str) -> Optional[Version]:
    """Parse a strict SemVer string, returning None if it is not one."""
    if not isinstance(value, str):
        return None
    m = _SEMVER_RE.fullmatch(value)
    if not m:
        return None
    major, minor, patch, pre, build = m.groups()
    return Version(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=tuple(pre.split(".")) if pre else (),
        build=tuple(build.split(".")) if build else (),
    )


def is_valid(value: str) -> bool:
    return parse_version(value) is not None


def compare(a: str, b: str) -> int:
    """
    Compare two valid SemVer strings by precedence: -1, 0 or 1.

    Raises ValueError if either string is not a valid version.
    """
    va = parse_version(a)
    vb = parse_version(b)
    if va is None:
        raise ValueError(f"invalid semantic version: {a!r}")
    if vb is None:
        raise ValueError(f"invalid semantic version: {b!r}")
    ka, kb = va.precedence_key(), vb.precedence_key()
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0
