from __future__ import annotations

import re
from dataclasses import dataclass, field

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_TOLERANT_RE = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
    rf"(?:-({_IDENT}))?"
    rf"(?:\+({_IDENT}))?$"
)


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str = ""
    # Build metadata does not take part in version equality.
    build: str = field(default="", compare=False)

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            out += f"-{self.prerelease}"
        if self.build:
            out += f"+{self.build}"
        return out

    @property
    def is_patch_release(self) -> bool:
        return self.patch != 0


def parse_tolerant(text: str) -> SemVer | None:
    """Parse a version leniently.

    Accepts surrounding whitespace, a leading ``v``, a missing minor or patch
    number (``1.2`` is ``1.2.0``), leading zeros, and pre-release / build
    suffixes. Returns None when nothing version-like is found.
    """
    m = _TOLERANT_RE.match(text.strip())
    if m is None:
        return None
    major, minor, patch, pre, build = m.groups()
    return SemVer(
        int(major),
        int(minor or 0),
        int(patch or 0),
        prerelease=pre or "",
        build=build or "",
    )
