"""Semantic versions and version constraints.

Versions follow Semantic Versioning 2.0.0, including pre-release precedence
(section 11). Build metadata is ignored for precedence; it only breaks ties
so that ordering stays total and deterministic.

Constraint syntax follows the cargo/npm conventions used by buildpack
inventories:

- Wildcard (any release): ``*``
- Exact: ``=1.2.3`` or ``==1.2.3``
- Not-equal: ``!=1.2.3``
- Comparisons: ``>1.2.3``, ``>=1.2.3``, ``<2.0.0``, ``<=2.0.0``
- Caret: ``^1.2.3`` (same left-most non-zero component)
- Tilde: ``~1.2.3`` (same major.minor)
- Bare version: ``1.2.3`` means ``^1.2.3``
- Compound (comma-separated, all must hold): ``>=1.0.0, <2.0.0``

Pre-release versions only satisfy a constraint when one of its comparators
names a pre-release on the same major.minor.patch.
"""

import re
from dataclasses import dataclass, field
from functools import total_ordering

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)

_ATOM_RE = re.compile(r"^\s*(?P<op>==|=|!=|>=|<=|>|<|\^|~)?\s*(?P<ver>\S+)\s*$")


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A parsed semantic version.

    Attributes:
        major: Major version
        minor: Minor version
        patch: Patch version
        prerelease: Dot-separated pre-release identifiers (empty for releases)
        build: Build metadata (ignored for precedence)
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse a semantic version string.

        Raises:
            ValueError: If the string is not a valid semantic version
        """
        m = _SEMVER_RE.match(text.strip())
        if not m:
            raise ValueError(f"Invalid semantic version: {text!r}")
        pre = m.group("pre")
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
            prerelease=tuple(pre.split(".")) if pre else (),
            build=m.group("build") or "",
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def precedence_key(self) -> tuple:
        """Key implementing SemVer precedence.

        A release sorts after all of its pre-releases. Numeric identifiers
        sort numerically and before alphanumeric ones; a shorter identifier
        list sorts first when all shared identifiers are equal.
        """
        if not self.prerelease:
            pre_key: tuple = (1,)
        else:
            pre_key = (0, tuple(
                (0, int(ident), "") if ident.isdigit() else (1, 0, ident)
                for ident in self.prerelease
            ))
        return (self.release, pre_key)

    def sort_key(self) -> tuple:
        return (self.precedence_key(), self.build)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text


@dataclass(frozen=True)
class _Comparator:
    op: str
    version: Version

    def matches(self, candidate: Version) -> bool:
        key = candidate.precedence_key()
        target = self.version.precedence_key()

        if self.op == "=":
            return key == target
        if self.op == "!=":
            return key != target
        if self.op == ">":
            return key > target
        if self.op == ">=":
            return key >= target
        if self.op == "<":
            return key < target
        if self.op == "<=":
            return key <= target
        if self.op == "~":
            return (
                key >= target
                and candidate.major == self.version.major
                and candidate.minor == self.version.minor
            )
        # Caret: left-most non-zero component must not change
        if key < target:
            return False
        major, minor, patch = self.version.release
        if major > 0:
            return candidate.major == major
        if minor > 0:
            return candidate.major == 0 and candidate.minor == minor
        return candidate.release == (0, 0, patch)


@dataclass(frozen=True)
class VersionConstraint:
    """A parsed version requirement.

    Attributes:
        raw: Constraint text as authored (e.g. ">=1.0.0, <2.0.0")
    """

    raw: str
    _comparators: tuple[_Comparator, ...] = field(
        default=(), repr=False, compare=False
    )

    @classmethod
    def parse(cls, text: str) -> "VersionConstraint":
        """Parse constraint text.

        Raises:
            ValueError: If any comparator is malformed
        """
        stripped = text.strip()
        if stripped in ("", "*"):
            return cls(raw="*")

        comparators = []
        for atom in stripped.split(","):
            if not atom.strip():
                continue
            m = _ATOM_RE.match(atom)
            if not m:
                raise ValueError(f"Invalid version constraint: {atom!r}")
            op = m.group("op") or "^"
            if op == "==":
                op = "="
            comparators.append(_Comparator(op=op, version=Version.parse(m.group("ver"))))

        if not comparators:
            raise ValueError(f"Invalid version constraint: {text!r}")
        return cls(raw=stripped, _comparators=tuple(comparators))

    @property
    def is_wildcard(self) -> bool:
        return not self._comparators

    def satisfies(self, version: Version) -> bool:
        """Return True if version satisfies every comparator."""
        if version.is_prerelease and not any(
            c.version.is_prerelease and c.version.release == version.release
            for c in self._comparators
        ):
            return False
        return all(c.matches(version) for c in self._comparators)

    def __str__(self) -> str:
        return self.raw
