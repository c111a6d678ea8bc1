"""Deep-link resolution — turn an external URL into reducer actions.

A deep link is first *attributed* to a navigation model: a model that
declares a route for the URL (usually a prefix route such as
``/inbox`` appended with a detail route) owns it. Attributed links reuse
what the model already shows where possible:

    exact    the model presents a path with the residual URL -> select it
    similar  the model presents the same parameterized route  -> update it
    fallback otherwise                                        -> open in it

Links nobody claims are matched against the full route table and opened
in the preferred target, or presented in a new model.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from wayfinder.navigation.actions import (
    Action,
    ModelTarget,
    NewTarget,
    Open,
    SetSelectedPath,
    Target,
    Update,
    multi_action,
)
from wayfinder.navigation.models import Model, Path
from wayfinder.navigation.reducer import validate_path
from wayfinder.navigation.state import State
from wayfinder.routing.matcher import URLMatcher
from wayfinder.routing.route import AccessLevel, Route, route_for

logger = logging.getLogger("wayfinder.deeplink")


def residual_url(url: str, parent_path: str) -> str:
    """Remove the first occurrence of *parent_path* from the URL's path.

    The scheme, host, and query survive. When nothing would be left the
    URL is returned unchanged.
    """
    parts = urlsplit(url)
    path = parts.path.replace(parent_path, "", 1) if parent_path else parts.path
    if not path:
        return url
    return urlunsplit(parts._replace(path=path))


@dataclass(frozen=True, slots=True)
class Deeplink:
    """An external URL together with the access level it arrives with.

    Usage::

        link = Deeplink.create("app://example.com/inbox/message/42", AccessLevel.PUBLIC)
        action = link.action(router.state) if link else None
    """

    url: str
    access: AccessLevel = AccessLevel.PUBLIC

    @classmethod
    def create(cls, url: str | None, access: AccessLevel = AccessLevel.PUBLIC) -> "Deeplink | None":
        if not url:
            return None
        return cls(url, access)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    def action(self, state: State, preferred_target: Target | None = None) -> Action | None:
        """Resolve this link against *state*; ``None`` when nothing can open it."""
        if preferred_target is None:
            owner = self.find_navigation_model(state)
            if owner is not None:
                model, route = owner
                return self._attributed_action(state, model, route)
        return self._unattributed_action(state, preferred_target)

    def find_navigation_model(self, state: State) -> tuple[Model, Route] | None:
        """Find the model that declares a route for this link.

        The link is matched against every model route at once; the first
        model with a route that accepts the match at this link's access
        level owns it.
        """
        patterns = [route.pattern for model in state.navigation_models for route in model.routes or ()]
        result = URLMatcher().match(self.path, patterns)
        if result is None:
            return None
        for model in state.navigation_models:
            routes = model.routes or ()
            if not any(route.validate(result, self.access) for route in routes):
                continue
            route = next((route for route in routes if route.pattern == result.pattern), None)
            if route is not None:
                return model, route
        return None

    # -- Resolution --

    def _attributed_action(self, state: State, model: Model, route: Route) -> Action | None:
        url = residual_url(self.url, route.parent_path)
        path = urlsplit(url).path
        available = state.available_routes
        result = URLMatcher().match(path, [candidate.pattern for candidate in available])
        matched = route_for(result, available)

        if matched is not None:
            exact = next((p for p in model.presented_paths if p.path == path), None)
            if exact is not None and matched.access.grants(AccessLevel.PRIVATE):
                logger.debug("Deep link %s selects %r in %r", self.url, exact, model)
                return SetSelectedPath(exact, model)

            if matched.rules and not matched.allows_duplicates and matched.validate(result, AccessLevel.PRIVATE):
                similar = next(
                    (p for p in model.presented_paths if _pattern_of(p, available) == result.pattern),
                    None,
                )
                if similar is not None:
                    logger.debug("Deep link %s updates %r in %r", self.url, similar, model)
                    return Update(similar, url, model)

        new_path = validate_path(Path.create(url), state)
        if new_path is None:
            logger.warning("Deep link %s is claimed by %r but no route accepts %s", self.url, model, path)
            return None
        return _with_pre_action(route, Open(new_path, ModelTarget(model, animate=True)))

    def _unattributed_action(self, state: State, preferred_target: Target | None) -> Action | None:
        available = state.available_routes
        granted = [route.pattern for route in available if route.access.grants(self.access)]
        result = URLMatcher().match(self.path, granted)
        route = route_for(result, available)
        if route is None or not route.validate(result, self.access):
            logger.info("No route accepts deep link %s at %s access", self.url, self.access.name.lower())
            return None
        new_path = Path.create(self.url)
        return _with_pre_action(route, Open(new_path, preferred_target or NewTarget()))


def _pattern_of(path: Path, routes: tuple[Route, ...]) -> str | None:
    result = path.match_against(routes)
    return result.pattern if result is not None else None


def _with_pre_action(route: Route, action: Open) -> Action:
    if route.pre_action is None:
        return action
    return multi_action(route.pre_action, action)
