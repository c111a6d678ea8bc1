"""The aggregate navigation State.

State is a frozen snapshot: which models exist (in insertion order), which
one is selected, which root model is selected, queued alerts, and the
route table. Models reference each other only by id; lookups scan
``navigation_models``.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from wayfinder.navigation.models import AlertModel, Completion, Model
from wayfinder.routing.route import Route


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class State:
    """A snapshot of everything that is on screen, where, and in what order."""

    selected_model_id: uuid.UUID | None = None
    root_selected_model_id: uuid.UUID | None = None
    navigation_models: tuple[Model, ...] = ()
    alerts: tuple[AlertModel, ...] = ()
    available_routes: tuple[Route, ...] = ()
    last_modified: datetime = datetime.min.replace(tzinfo=UTC)

    # Transient markers consumed by the rendering adapter
    tip_identifier: str | None = None
    tip_model_id: uuid.UUID | None = None
    remove_untracked_views: bool = False
    dismiss_all_completion: Completion | None = None

    @classmethod
    def initial(
        cls,
        navigation_models: Sequence[Model] = (),
        available_routes: Sequence[Route] = (),
        *,
        alerts: Sequence[AlertModel] = (),
        selected_model_id: uuid.UUID | None = None,
        root_selected_model_id: uuid.UUID | None = None,
        last_modified: datetime | None = None,
    ) -> "State":
        """Build a startup state; the first model is selected by default."""
        first = navigation_models[0].id if navigation_models else None
        return cls(
            selected_model_id=selected_model_id or first,
            root_selected_model_id=root_selected_model_id or first,
            navigation_models=tuple(navigation_models),
            alerts=tuple(alerts),
            available_routes=tuple(available_routes),
            last_modified=last_modified or utcnow(),
        )

    # -- Lookups --

    def index_of_model(self, model_id: uuid.UUID | None) -> int | None:
        for index, model in enumerate(self.navigation_models):
            if model.id == model_id:
                return index
        return None

    def model(self, model_id: uuid.UUID | None) -> Model | None:
        index = self.index_of_model(model_id)
        return self.navigation_models[index] if index is not None else None

    @property
    def selected_model(self) -> Model | None:
        return self.model(self.selected_model_id)

    @property
    def root_selected_model(self) -> Model | None:
        return self.model(self.root_selected_model_id)

    @property
    def presented_models(self) -> list[Model]:
        return [model for model in self.navigation_models if model.is_presented]

    @property
    def tabs(self) -> list[Model]:
        return [model for model in self.navigation_models if model.tab is not None]

    def model_presenting(self, path_id: uuid.UUID) -> Model | None:
        """The first model whose stack holds the path with *path_id*."""
        for model in self.navigation_models:
            if model.index_of(path_id) is not None:
                return model
        return None

    # -- Copy helpers --

    def with_model(self, index: int, model: Model) -> "State":
        models = list(self.navigation_models)
        models[index] = model
        return replace(self, navigation_models=tuple(models))

    def without_model(self, index: int) -> "State":
        models = list(self.navigation_models)
        del models[index]
        return replace(self, navigation_models=tuple(models))

    def appending_model(self, model: Model) -> "State":
        return replace(self, navigation_models=(*self.navigation_models, model))
