"""
Semantic version handling for chartsync.

Provides:
- Version parsing with the leniency chart repositories rely on
  (leading ``v``, missing minor/patch such as ``1.2``)
- Precedence ordering per semver 2.0 (build metadata ignored), via
  the ``semver`` package
- Range constraint checks (``>=1.20.0-0``, ``^1.2``, ``~1.2.3``,
  ``1.x``, ``1.2 - 1.4``, ``>=1.19 <1.27 || 2.x``)

All functions here are pure; none of them touch the network or storage.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Tuple, TypeVar

from semver import Version

T = TypeVar('T')

_IDENT = r'[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*'

# Like a version but minor/patch/major may be wildcards
_PARTIAL_RE = re.compile(
    r'^v?(?P<major>\d+|[xX*])'
    r'(?:\.(?P<minor>\d+|[xX*]))?'
    r'(?:\.(?P<patch>\d+|[xX*]))?'
    rf'(?:-(?P<prerelease>{_IDENT}))?'
    rf'(?:\+(?P<build>{_IDENT}))?$'
)

_COMPARATOR_RE = re.compile(r'^(?P<op>>=|=>|<=|=<|!=|~>|>|<|=|~|\^)?(?P<version>\S+)$')
_HYPHEN_RE = re.compile(r'(\S+)\s+-\s+(\S+)')
_OP_SPACE_RE = re.compile(r'(>=|=>|<=|=<|!=|~>|>|<|=|~|\^)\s+')

_WILDCARDS = ('x', 'X', '*')


def parse_version(text: str) -> Version:
    """
    Parse a version string.

    Raises:
        ValueError: if the string is not a semantic version
    """
    text = str(text).strip()
    if text[:1] == 'v':
        text = text[1:]
    return Version.parse(text, optional_minor_and_patch=True)


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings; raises ValueError if either is invalid."""
    return parse_version(a).compare(parse_version(b))


def sort_descending(items: List[T], version_of: Callable[[T], str]) -> List[T]:
    """
    Sort items by descending version precedence.

    Items whose version does not parse go last. Items with equal
    precedence (and all unparseable items) keep their input order.
    """
    parsed: List[Tuple[Version, T]] = []
    unparsed: List[T] = []

    for item in items:
        try:
            parsed.append((parse_version(version_of(item)), item))
        except ValueError:
            unparsed.append(item)

    # list.sort stays stable with reverse=True
    parsed.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in parsed] + unparsed


@dataclass(frozen=True)
class Comparator:
    """A single ``<op><version>`` term of a range constraint."""
    op: str
    version: Version
    any_version: bool = False  # Major is a wildcard
    minor_dirty: bool = False  # Minor is a wildcard or missing
    patch_dirty: bool = False  # Patch is a wildcard or missing

    def check(self, v: Version) -> bool:
        # Pre-releases only match comparators that ask for them
        if v.prerelease and not self.version.prerelease:
            return False
        return _OPS[self.op](self, v)


def _op_equal(c: Comparator, v: Version) -> bool:
    if c.any_version:
        return True
    if c.minor_dirty:
        return v.major == c.version.major
    if c.patch_dirty:
        return v.major == c.version.major and v.minor == c.version.minor
    return v == c.version


def _op_not_equal(c: Comparator, v: Version) -> bool:
    return not _op_equal(c, v)


def _op_greater(c: Comparator, v: Version) -> bool:
    if c.any_version:
        return False
    if c.minor_dirty:
        return v.major > c.version.major
    if c.patch_dirty:
        return (v.major > c.version.major
                or (v.major == c.version.major and v.minor > c.version.minor))
    return v > c.version


def _op_less(c: Comparator, v: Version) -> bool:
    if c.any_version:
        return False
    return v < c.version


def _op_greater_equal(c: Comparator, v: Version) -> bool:
    if c.any_version:
        return True
    return v >= c.version


def _op_less_equal(c: Comparator, v: Version) -> bool:
    if c.any_version:
        return True
    if c.minor_dirty:
        return v.major <= c.version.major
    if c.patch_dirty:
        return (v.major < c.version.major
                or (v.major == c.version.major and v.minor <= c.version.minor))
    return v <= c.version


def _op_tilde(c: Comparator, v: Version) -> bool:
    """``~1.2.3`` is ``>=1.2.3 <1.3.0``; ``~1`` is ``>=1.0.0 <2.0.0``."""
    if c.any_version:
        return True
    if v < c.version:
        return False
    if v.major != c.version.major:
        return False
    if not c.minor_dirty and v.minor != c.version.minor:
        return False
    return True


def _op_caret(c: Comparator, v: Version) -> bool:
    """``^1.2.3`` is ``>=1.2.3 <2.0.0``; ``^0.2.3`` is ``>=0.2.3 <0.3.0``."""
    if c.any_version:
        return True
    if v < c.version:
        return False
    if c.version.major > 0 or c.minor_dirty:
        return v.major == c.version.major
    if c.version.minor > 0 or c.patch_dirty:
        return v.major == 0 and v.minor == c.version.minor
    return v.major == 0 and v.minor == 0 and v.patch == c.version.patch


_OPS = {
    '': _op_equal,
    '=': _op_equal,
    '!=': _op_not_equal,
    '>': _op_greater,
    '<': _op_less,
    '>=': _op_greater_equal,
    '=>': _op_greater_equal,
    '<=': _op_less_equal,
    '=<': _op_less_equal,
    '~': _op_tilde,
    '~>': _op_tilde,
    '^': _op_caret,
}


def _parse_comparator(term: str) -> Comparator:
    match = _COMPARATOR_RE.match(term)
    if not match:
        raise ValueError(f"Invalid constraint term: {term!r}")

    op = match.group('op') or ''
    partial = _PARTIAL_RE.match(match.group('version'))
    if not partial:
        raise ValueError(f"Invalid constraint version: {term!r}")

    major, minor, patch = partial.group('major', 'minor', 'patch')
    prerelease = partial.group('prerelease')

    any_version = major in _WILDCARDS
    minor_dirty = any_version or minor is None or minor in _WILDCARDS
    patch_dirty = minor_dirty or patch is None or patch in _WILDCARDS

    version = Version(
        major=0 if any_version else int(major),
        minor=0 if minor_dirty else int(minor),
        patch=0 if patch_dirty else int(patch),
        prerelease=prerelease,
    )
    return Comparator(op, version, any_version, minor_dirty, patch_dirty)


def parse_constraint(constraint: str) -> List[List[Comparator]]:
    """
    Parse a range constraint into OR-groups of AND-ed comparators.

    Raises:
        ValueError: on any malformed part of the constraint
    """
    groups: List[List[Comparator]] = []

    for alternative in str(constraint).split('||'):
        text = _HYPHEN_RE.sub(r'>=\1 <=\2', alternative.strip())
        text = _OP_SPACE_RE.sub(r'\1', text)
        terms = [t for t in re.split(r'[\s,]+', text) if t]
        if not terms:
            raise ValueError(f"Empty constraint in {constraint!r}")
        groups.append([_parse_comparator(t) for t in terms])

    return groups


def is_compatible_range(constraint: str, version: str) -> bool:
    """
    Check whether a version satisfies a range constraint.

    Never raises: a malformed constraint or version is reported as
    incompatible.

    Example:
        >>> is_compatible_range(">=1.20.0", "1.21.0")
        True
        >>> is_compatible_range(">=1.20.0", "v1.19.4+k3s1")
        False
    """
    try:
        parsed = parse_version(version)
        groups = parse_constraint(constraint)
    except ValueError:
        return False

    return any(all(c.check(parsed) for c in group) for group in groups)
