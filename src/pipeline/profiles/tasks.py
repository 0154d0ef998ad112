"""Per-area tasks executed by the two fan-out stages.

Both tasks are small frozen dataclasses so they pickle cleanly into
process workers. Each receives the council area name and the worker
context; the merged dataset is read from the context, never from a
global.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.config import DATASET_CONTEXT_NAME
from src.exceptions import (
    ConfigurationError,
    ContentCardinalityError,
    DataValidationError,
    MissingArtifactError,
    RenderFaultError,
)

from .artifact_store import ArtifactStore
from .renderer import profile_output_path
from .stage_runner import StageOutcome
from .worker_pool import WorkerContext

logger = logging.getLogger(__name__)

ContentBuilder = Callable[[str, Mapping[str, Any]], Mapping[str, Any]]
Renderer = Callable[[Path, Path, Mapping[str, Any]], None]


def check_content_shape(
    content: Mapping[str, Any],
    content_length: int | None,
    expected_fields: frozenset[str] | None = None,
) -> None:
    """Check that ``content`` holds the expected fields.

    With ``expected_fields`` the field names must match exactly; without
    it only the number of fields is compared with ``content_length``.

    Raises
    ------
    ContentCardinalityError
        ``context["outcome"]`` is ``too-few-fields`` or ``too-many-fields``.
    ConfigurationError
        If neither ``content_length`` nor ``expected_fields`` is given.
    """
    if expected_fields is None and content_length is None:
        raise ConfigurationError("Content check needs a field count or field names")
    observed = len(content)
    if expected_fields is not None:
        missing = sorted(expected_fields - set(content))
        extra = sorted(set(content) - expected_fields)
        if missing:
            raise ContentCardinalityError(
                f"Content is missing fields {missing}",
                context={"outcome": StageOutcome.TOO_FEW_FIELDS.value, "missing": missing},
            )
        if extra:
            raise ContentCardinalityError(
                f"Content has unexpected fields {extra}",
                context={"outcome": StageOutcome.TOO_MANY_FIELDS.value, "extra": extra},
            )
        return
    if observed < content_length:
        raise ContentCardinalityError(
            f"Content has {observed} fields, expected {content_length}",
            context={"outcome": StageOutcome.TOO_FEW_FIELDS.value, "observed": observed},
        )
    if observed > content_length:
        raise ContentCardinalityError(
            f"Content has {observed} fields, expected {content_length}",
            context={"outcome": StageOutcome.TOO_MANY_FIELDS.value, "observed": observed},
        )


@dataclass(frozen=True)
class ContentTask:
    """Stage 1: build, persist and self-check one area's content.

    The artifact is persisted before the shape check so an operator can
    inspect what was produced for a failing area.
    """

    store: ArtifactStore
    content_builder: ContentBuilder
    content_length: int | None
    expected_fields: frozenset[str] | None = None

    def __call__(self, area: str, context: WorkerContext) -> StageOutcome:
        content = self.content_builder(area, context[DATASET_CONTEXT_NAME])
        if content.get("area") != area:
            raise DataValidationError(
                f"Content built for {area!r} names area {content.get('area')!r}",
                context={"area": area},
            )
        self.store.put(area, content)
        try:
            check_content_shape(content, self.content_length, self.expected_fields)
        except ContentCardinalityError as exc:
            logger.warning("Content for %s rejected: %s", area, exc.message)
            return StageOutcome(exc.context["outcome"])
        return StageOutcome.OK


@dataclass(frozen=True)
class RenderTask:
    """Stage 2: render one area's profile from its artifact, consuming it."""

    store: ArtifactStore
    renderer: Renderer
    template_path: Path
    output_dir: Path

    def __call__(self, area: str, context: WorkerContext) -> StageOutcome:
        if not self.store.exists(area):
            logger.warning("No content artifact for %s", area)
            return StageOutcome.MISSING_ARTIFACT
        try:
            content = self.store.get_and_delete(area)
        except MissingArtifactError as exc:
            logger.warning("%s", exc.message)
            return StageOutcome.MISSING_ARTIFACT
        output_path = profile_output_path(self.output_dir, area)
        try:
            self.renderer(self.template_path, output_path, content)
        except Exception as exc:
            raise RenderFaultError(
                f"Rendering {area} to {output_path} failed: {exc}",
                context={"area": area, "output_path": str(output_path)},
            ) from exc
        return StageOutcome.OK
