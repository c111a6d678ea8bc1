"""Route, Rule, and AccessLevel frozen value objects.

A Route is a declared URL pattern plus the validation that decides whether
a match may be navigated to: per-placeholder rules and a minimum access
level. Routes compose with ``append`` so a stack can claim a prefix
(``/inbox``) in front of a shared detail route (``/message/<int:id>``).
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING

from wayfinder.routing.matcher import MatchResult, URLMatcher, parse_pattern
from wayfinder.routing.params import MatchValue, stringify_param

if TYPE_CHECKING:
    from wayfinder.navigation.actions import Action
    from wayfinder.navigation.models import NavBarOptions, Path


class AccessLevel(IntEnum):
    """Monotonic permission tier: ``PRIVATE < INTERNAL < PUBLIC``."""

    PRIVATE = 0
    INTERNAL = 1
    PUBLIC = 2

    def grants(self, candidate: "AccessLevel") -> bool:
        """Return True if a route at this level may be reached by *candidate*.

        A ``PRIVATE`` candidate (in-app navigation) reaches everything; a
        ``PUBLIC`` candidate (an external deep link) only reaches public
        routes.
        """
        return self >= candidate


@dataclass(frozen=True, slots=True)
class Rule:
    """Validation rule for a single placeholder value.

    ``Rule.any()`` accepts every value; ``Rule.one_of([...])`` accepts
    only the listed values.
    """

    values: tuple[MatchValue, ...] | None = None

    @classmethod
    def any(cls) -> "Rule":
        return cls()

    @classmethod
    def one_of(cls, values: Sequence[MatchValue]) -> "Rule":
        return cls(values=tuple(values))

    def matches(self, value: MatchValue) -> bool:
        if self.values is None:
            return True
        return value in self.values


@dataclass(frozen=True, slots=True)
class Route:
    """A declared URL pattern with validation rules and access level.

    Usage::

        Route("/hello/<int:id>")
        Route("/<string:tab>", rules={"tab": Rule.one_of(["foo", "bar"])})
        Route("/inbox", access=AccessLevel.PUBLIC).append(Route("/message/<int:id>"))
    """

    pattern: str
    name: str | None = None
    rules: Mapping[str, Rule] = field(default_factory=dict)
    access: AccessLevel = AccessLevel.PRIVATE
    allows_duplicates: bool = True
    nested_paths: tuple[str, ...] = ()
    pre_action: "Action | None" = None

    def __post_init__(self) -> None:
        if not self.nested_paths:
            object.__setattr__(self, "nested_paths", (self.pattern,))
        object.__setattr__(self, "rules", dict(self.rules))

    def __repr__(self) -> str:
        return f"Route({self.pattern!r})"

    @property
    def parent_path(self) -> str:
        """The pattern minus its last nested fragment (``""`` when not nested)."""
        if len(self.nested_paths) > 1:
            return "".join(self.nested_paths[:-1])
        return ""

    @property
    def placeholder_keys(self) -> list[str]:
        return [segment.key for segment in parse_pattern(self.pattern) if segment.is_param]

    def validate(self, result: MatchResult | None, access: AccessLevel) -> bool:
        """Check that *result* belongs to this route and passes every rule."""
        if result is None or result.pattern != self.pattern:
            return False
        if not self.access.grants(access):
            return False
        for key, rule in self.rules.items():
            if key not in result.values or not rule.matches(result.values[key]):
                return False
        return True

    def match(self, url: str) -> MatchResult | None:
        """Match *url* against this route's pattern only."""
        return URLMatcher().match(url, [self.pattern])

    def reverse(
        self,
        params: Mapping[str, MatchValue] | None = None,
        nav_bar_options: "NavBarOptions | None" = None,
    ) -> "Path | None":
        """Build a concrete Path from this pattern and *params*.

        Returns ``None`` if a placeholder has no value or the value fails
        its registered rule.
        """
        from wayfinder.navigation.models import Path

        params = params or {}
        parts: list[str] = []
        for segment in parse_pattern(self.pattern):
            if not segment.is_param:
                parts.append(segment.value)
                continue
            if segment.key not in params:
                return None
            value = params[segment.key]
            rule = self.rules.get(segment.key)
            if rule is not None and not rule.matches(value):
                return None
            try:
                parts.append(stringify_param(value))
            except ValueError:
                return None

        url = "/" + "/".join(parts)
        return Path.create(url, name=self.name, nav_bar_options=nav_bar_options)

    def append(self, child: "Route") -> "Route":
        """Concatenate *child* onto this route.

        Child rules win on conflict, and the child decides whether
        duplicates are allowed. Access level, name, and pre-action stay
        this route's.
        """
        return Route(
            self.pattern + child.pattern,
            name=self.name,
            rules={**self.rules, **child.rules},
            access=self.access,
            allows_duplicates=child.allows_duplicates,
            nested_paths=(*self.nested_paths, child.pattern),
            pre_action=self.pre_action,
        )

    def with_access(self, access: AccessLevel) -> "Route":
        return replace(self, access=access)

    def with_pre_action(self, action: "Action") -> "Route":
        return replace(self, pre_action=action)


def route_for(result: MatchResult | None, routes: Sequence[Route]) -> Route | None:
    """Return the first route whose pattern produced *result*."""
    if result is None:
        return None
    for route in routes:
        if route.pattern == result.pattern:
            return route
    return None
