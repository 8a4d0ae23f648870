"""
Strict semantic version parsing (pure).

Accepts exactly ``MAJOR.MINOR.PATCH`` with optional ``-prerelease``
and ``+build`` parts, as defined at https://semver.org, plus an
optional leading ``v`` (``v11.2.2`` == ``11.2.2``).  No leading zeros,
no partial versions.
No I/O, no subprocess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from cuda_setup.core.errors import InvalidVersionFormat

_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@dataclass(frozen=True)
class SemVer:
    """A parsed semantic version.

    Equality and hashing ignore build metadata, so ``1.2.3+a == 1.2.3+b``.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, value: str) -> SemVer:
        """Parse ``value`` or raise ``InvalidVersionFormat`` echoing it verbatim."""
        if not isinstance(value, str):
            raise InvalidVersionFormat(str(value))
        m = _SEMVER_RE.match(value.strip())
        if not m:
            raise InvalidVersionFormat(value)
        major, minor, patch, pre, build = m.groups()
        return cls(
            major=int(major),
            minor=int(minor),
            patch=int(patch),
            prerelease=tuple(pre.split(".")) if pre else (),
            build=tuple(build.split(".")) if build else (),
        )

    @property
    def major_minor(self) -> str:
        """``"11.2"`` for ``11.2.2`` — used in install paths and package names."""
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text
