"""URL pattern matching with typed placeholder extraction.

Patterns are plain strings such as ``/users/<int:id>`` or
``/files/<path:rest>``. Matching is a linear scan over the candidate
patterns; the most specific match (most plain segments) wins.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from wayfinder.routing.params import MatchValue, convert_param


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Plain:        ``users``     (is_param=False)
    Placeholder:  ``<id>``      (is_param=True, param_name="id", param_type=None)
    Typed:        ``<int:id>``  (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str | None = None

    @property
    def key(self) -> str:
        """The placeholder key, or the literal value for plain segments."""
        return self.param_name if self.is_param and self.param_name is not None else self.value


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Result of a successful pattern match."""

    pattern: str
    values: dict[str, MatchValue] = field(default_factory=dict)
    path: str = ""


_TRIPLE_SLASH_RE = re.compile(r":/{3,}")
_DUPLICATE_SLASH_RE = re.compile(r"(?<!:)/{2,}")
_TRAILING_SLASH_RE = re.compile(r"(?<!:)(?<!:/)/+$")


def normalize(url: str) -> str:
    """Strip query and fragment and collapse redundant slashes.

    Examples::

        "/users//42/?tab=posts"  -> "/users/42"
        "app:////home#top"       -> "app://home"
    """
    url = url.split("?", 1)[0].split("#", 1)[0]
    url = _TRIPLE_SLASH_RE.sub("://", url)
    url = _DUPLICATE_SLASH_RE.sub("/", url)
    return _TRAILING_SLASH_RE.sub("", url)


def scheme_of(url: str) -> str | None:
    """Return the URL scheme (``"app"`` for ``app://home``), if any."""
    head, sep, _ = url.partition("://")
    if not sep or not head or "/" in head:
        return None
    return head


def split_segments(url: str) -> list[str]:
    """Split a URL into non-empty path components, dropping a leading scheme."""
    parts: list[str] = []
    for index, part in enumerate(url.split("/")):
        if not part:
            continue
        if index == 0 and part.endswith(":"):
            continue
        parts.append(part)
    return parts


def parse_segment(part: str) -> PathSegment:
    """Parse a single pattern component."""
    if len(part) > 1 and part.startswith("<") and part.endswith(">"):
        inner = part[1:-1]
        pieces = inner.split(":")
        if len(pieces) == 1:
            return PathSegment(value=part, is_param=True, param_name=pieces[0])
        if len(pieces) == 2:
            return PathSegment(value=part, is_param=True, param_name=pieces[1], param_type=pieces[0])
    return PathSegment(value=part)


def parse_pattern(pattern: str) -> list[PathSegment]:
    """Parse a route pattern string into segments.

    Examples::

        "/users"            -> [PathSegment("users")]
        "/users/<id>"       -> [PathSegment("users"), PathSegment("<id>", is_param=True, ...)]
        "/users/<int:id>"   -> [..., PathSegment("<int:id>", is_param=True, param_type="int")]
        "/files/<path:p>"   -> [..., PathSegment("<path:p>", is_param=True, param_type="path")]
    """
    return [parse_segment(part) for part in split_segments(normalize(pattern))]


def specificity(pattern: str) -> int:
    """Number of plain (non-placeholder) segments in *pattern*."""
    return sum(1 for segment in parse_pattern(pattern) if not segment.is_param)


class URLMatcher:
    """Matches URLs against a list of patterns.

    Usage::

        matcher = URLMatcher()
        result = matcher.match("/users/42", ["/users/<int:id>", "/users/me"])
        # MatchResult(pattern="/users/<int:id>", values={"id": 42}, path="/users/42")

    Among several matching patterns the one with the most plain segments
    wins. Ties go to the pattern declared first.
    """

    __slots__ = ()

    def match(
        self,
        url: str,
        patterns: Iterable[str],
        *,
        ensure_count: bool = True,
    ) -> MatchResult | None:
        """Return the best ``MatchResult`` for *url*, or ``None``."""
        url = normalize(url)
        scheme = scheme_of(url)
        parts = split_segments(url)

        best: MatchResult | None = None
        best_score = -1
        for pattern in patterns:
            if scheme_of(normalize(pattern)) != scheme:
                continue
            result = self.match_segments(parts, pattern, ensure_count=ensure_count)
            if result is None:
                continue
            score = specificity(pattern)
            # Strictly greater keeps the first declared pattern on ties
            if score > best_score:
                best, best_score = result, score
        return best

    def match_segments(
        self,
        parts: Sequence[str],
        pattern: str,
        *,
        ensure_count: bool = True,
    ) -> MatchResult | None:
        """Match already-split URL components against a single pattern."""
        segments = parse_pattern(pattern)

        if ensure_count and not _counts_compatible(parts, segments):
            return None

        values: dict[str, MatchValue] = {}
        pair_count = min(len(parts), len(segments))
        for index in range(pair_count):
            segment = segments[index]
            if not segment.is_param:
                if parts[index] != segment.value:
                    return None
                continue
            try:
                value = convert_param(parts, index, segment.param_type)
            except ValueError:
                return None
            values[segment.key] = value

        joined = "/".join(parts[:pair_count])
        return MatchResult(pattern=pattern, values=values, path=f"/{joined}" if joined else "")


def _counts_compatible(parts: Sequence[str], segments: Sequence[PathSegment]) -> bool:
    if len(parts) == len(segments):
        return True
    if not segments:
        return False
    last = segments[-1]
    return last.is_param and last.param_type == "path" and len(parts) >= len(segments)


def match(url: str, patterns: Iterable[str]) -> MatchResult | None:
    """Module-level shortcut for ``URLMatcher().match(url, patterns)``."""
    return URLMatcher().match(url, patterns)
