"""Exclusion pattern matching.

Classifies root-relative paths as excluded or included given a list of
glob-style patterns. Three pattern forms are recognised:

- Directory patterns ending with ``/`` (e.g. ``node_modules/``) exclude the
  named directory, and everything below it, at any depth.
- Glob patterns containing ``*``. ``**`` crosses path segments, ``*`` and
  ``?`` never do. Single-segment globs match at any depth; multi-segment
  globs without ``**`` only match paths with the same number of segments.
- Literal patterns, compared for exact equality.

Matching is best-effort: a malformed glob simply never matches.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from functools import lru_cache

logger = logging.getLogger(__name__)


class _BadPattern(ValueError):
    """Raised internally when a glob cannot be compiled."""


class Excluder(ABC):
    """Abstract exclusion policy used by traversal and comparison."""

    @abstractmethod
    def should_exclude(self, path: str) -> bool:
        """Check whether a root-relative path is excluded.

        Args:
            path: Path relative to the walk root.

        Returns:
            True if the path must be skipped.
        """


class PatternMatcher(Excluder):
    """Matches paths against a fixed list of exclusion patterns.

    Args:
        patterns: Exclusion patterns (directory, glob or literal form).

    Example:
        >>> matcher = PatternMatcher([".git/", "*.log"])
        >>> matcher.should_exclude(".git/config")
        True
        >>> matcher.should_exclude("src/main.py")
        False
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = tuple(normalize_path(p) for p in patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        """Normalized patterns held by this matcher."""
        return self._patterns

    def should_exclude(self, path: str) -> bool:
        """Check whether any pattern matches the given path."""
        normalized = normalize_path(path)
        return any(_matches_pattern(normalized, pattern) for pattern in self._patterns)


def should_exclude(path: str, patterns: Iterable[str]) -> bool:
    """Check whether a path is excluded by any of the given patterns.

    Args:
        path: Path relative to the walk root, using either separator.
        patterns: Exclusion patterns.

    Returns:
        True if at least one pattern matches.
    """
    return PatternMatcher(patterns).should_exclude(path)


def normalize_path(path: str) -> str:
    """Convert a path to forward-slash form.

    Only the platform separator is converted. On POSIX a backslash is left
    alone, so it still escapes the next character in a pattern.
    """
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    return path


def glob_match(pattern: str, path: str) -> bool:
    """Match a path against a glob with globstar semantics.

    Returns False for malformed patterns instead of raising.
    """
    regex = _compile_glob(pattern)
    if regex is None:
        return False
    return regex.fullmatch(path) is not None


def _matches_pattern(path: str, pattern: str) -> bool:
    if pattern.endswith("/"):
        return _matches_directory_pattern(path, pattern)
    if "*" in pattern:
        return _matches_glob_pattern(path, pattern)
    return path == pattern


def _matches_directory_pattern(path: str, pattern: str) -> bool:
    candidates = (
        pattern,
        pattern + "**",
        "**/" + pattern,
        "**/" + pattern + "**",
    )
    return any(glob_match(candidate, path) for candidate in candidates)


def _matches_glob_pattern(path: str, pattern: str) -> bool:
    if "**" in pattern:
        return glob_match(pattern, path)

    pattern_parts = pattern.split("/")
    if len(pattern_parts) == 1:
        # Root-level pattern: match at the root or at any depth
        return glob_match(pattern, path) or glob_match("**/" + pattern, path)

    # Multi-segment patterns never expand to other depths
    if len(path.split("/")) == len(pattern_parts):
        return glob_match(pattern, path)
    return False


# =============================================================================
# Glob compilation
# =============================================================================


@lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> re.Pattern[str] | None:
    """Compile a glob to an anchored regex, or None if malformed."""
    try:
        return re.compile(_translate(pattern), re.DOTALL)
    except (_BadPattern, re.error) as e:
        logger.debug("Ignoring malformed pattern %r: %s", pattern, e)
        return None


def _translate(pattern: str) -> str:
    segments: list[str] = []
    for segment in _split_segments(pattern):
        # Consecutive globstars are equivalent to one
        if segment == "**" and segments and segments[-1] == "**":
            continue
        segments.append(segment)
    last = len(segments) - 1
    out: list[str] = []

    for i, segment in enumerate(segments):
        if segment == "**":
            if last == 0:
                out.append(".*")
            elif i == last:
                # a/** also matches a itself
                out.append("(?:/.*)?")
            else:
                out.append("(?:.*/)?")
            continue

        out.append(_translate_segment(segment))
        if i < last and not (i + 1 == last and segments[i + 1] == "**"):
            out.append("/")

    return "".join(out)


def _split_segments(pattern: str) -> list[str]:
    """Split on '/' outside of brace and bracket groups."""
    segments: list[str] = []
    current: list[str] = []
    depth = 0
    in_class = False
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            current.append(pattern[i : i + 2])
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "{":
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
        elif ch == "/" and depth == 0:
            segments.append("".join(current))
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1
    segments.append("".join(current))
    return segments


def _translate_segment(segment: str) -> str:
    regex, pos = _translate_until(segment, 0, in_braces=False)
    if pos != len(segment):
        raise _BadPattern(f"unexpected character at {pos} in {segment!r}")
    return regex


def _translate_until(text: str, pos: int, *, in_braces: bool) -> tuple[str, int]:
    """Translate glob text until end, or until ',' / '}' inside braces."""
    out: list[str] = []
    n = len(text)
    while pos < n:
        ch = text[pos]
        if in_braces and ch in ",}":
            return "".join(out), pos
        if ch == "\\":
            if pos + 1 >= n:
                raise _BadPattern("trailing escape")
            out.append(re.escape(text[pos + 1]))
            pos += 2
        elif ch == "*":
            while pos < n and text[pos] == "*":
                pos += 1
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
            pos += 1
        elif ch == "[":
            cls, pos = _translate_class(text, pos)
            out.append(cls)
        elif ch == "{":
            alt, pos = _translate_braces(text, pos)
            out.append(alt)
        else:
            out.append(re.escape(ch))
            pos += 1
    if in_braces:
        raise _BadPattern("unterminated '{'")
    return "".join(out), pos


def _translate_braces(text: str, pos: int) -> tuple[str, int]:
    alternatives: list[str] = []
    pos += 1  # skip '{'
    while True:
        alt, pos = _translate_until(text, pos, in_braces=True)
        alternatives.append(alt)
        if text[pos] == "}":
            return "(?:" + "|".join(alternatives) + ")", pos + 1
        pos += 1  # skip ','


def _translate_class(text: str, pos: int) -> tuple[str, int]:
    n = len(text)
    pos += 1  # skip '['
    negate = False
    if pos < n and text[pos] in "!^":
        negate = True
        pos += 1

    items: list[str] = []
    first = True
    while True:
        if pos >= n:
            raise _BadPattern("unterminated '['")
        ch = text[pos]
        if ch == "]" and not first:
            pos += 1
            break
        first = False
        if ch == "\\":
            if pos + 1 >= n:
                raise _BadPattern("trailing escape in class")
            ch = text[pos + 1]
            pos += 1
        pos += 1
        # Range a-z (a trailing '-' is literal)
        if pos + 1 < n and text[pos] == "-" and text[pos + 1] != "]":
            hi = text[pos + 1]
            if hi == "\\":
                if pos + 2 >= n:
                    raise _BadPattern("trailing escape in class")
                hi = text[pos + 2]
                pos += 1
            if hi < ch:
                raise _BadPattern(f"invalid range {ch}-{hi}")
            items.append(f"{re.escape(ch)}-{re.escape(hi)}")
            pos += 2
        else:
            items.append(re.escape(ch))

    body = "".join(items)
    if negate:
        return f"[^/{body}]", pos
    return f"[{body}]", pos
