"""Sequencing of the council area profile pipeline.

``ProfilePipeline.run`` performs, in order: load the dataset, validate it
against the expectations, merge ``updates``, start the worker pool with
the merged dataset broadcast, run the content stage and its gate, run the
render stage and its gate, tear the pool down, and report the run time.

There is no concurrency at this level; each stage blocks until every
area's task has finished. Collaborators (loader, content builder,
renderer) are injected so tests and alternative front ends can replace
them; in process mode they must be module-level functions.

Examples
--------
>>> from src.pipeline.profiles.orchestrator import run_pipeline
>>> result = run_pipeline()  # doctest: +SKIP
>>> result.output_paths[0].name  # doctest: +SKIP
'aberdeen-city-council-profile.html'
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.config import (
    COUNCIL_AREAS,
    DATASET_CONTEXT_NAME,
    DATASET_PATH,
    OUTPUT_DIR,
    PROFILE_TEMPLATE_PATH,
    TEMP_DIR,
)
from src.exceptions import ConfigurationError, SchemaViolationError
from src.pipeline.dataset import load_council_area_data, merge_updates
from src.pipeline.validation import (
    ExpectationSpec,
    ValidationReport,
    build_expectations,
    check,
)

from .artifact_store import ArtifactStore
from .content import expected_content_fields, produce_area_content
from .renderer import profile_output_path, render_profile
from .settings import PipelineSettings
from .stage_runner import RunReport, gate, run_stage
from .tasks import ContentBuilder, ContentTask, Renderer, RenderTask
from .worker_pool import WorkerContext, WorkerPool

logger = logging.getLogger(__name__)

CONTENT_STAGE = "content"
RENDER_STAGE = "reports"


@dataclass
class PipelineResult:
    """Everything a completed run produced."""

    validation: ValidationReport
    reports: list[RunReport] = field(default_factory=list)
    output_paths: list[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class ProfilePipeline:
    """Two-stage profile generation over a fixed list of council areas.

    Parameters
    ----------
    settings : PipelineSettings | None
        Runtime tunables; read from the environment when omitted.
    loader : Callable[[Path], Mapping[str, Any]]
        Reads the dataset file.
    content_builder : ContentBuilder
        ``(area, dataset) -> content mapping``.
    renderer : Renderer
        ``(template_path, output_path, content) -> None``.
    expectations : ExpectationSpec | None
        Rules checked before merging; the default expectations otherwise.
    expected_fields : frozenset[str] | None
        Field names every content mapping must hold. When omitted and no
        field count is configured, they are derived from the merged
        dataset with :func:`expected_content_fields`.
    worker_initializer : Callable[[WorkerContext], None] | None
        Hook run once per worker context.
    temp_dir, output_dir, template_path : Path
        Filesystem layout.

    Attributes
    ----------
    reports : list[RunReport]
        Reports of the stages that have run so far, including a stage
        whose gate failed.
    """

    def __init__(
        self,
        *,
        settings: PipelineSettings | None = None,
        loader: Callable[[Path], Mapping[str, Any]] = load_council_area_data,
        content_builder: ContentBuilder = produce_area_content,
        renderer: Renderer = render_profile,
        expectations: ExpectationSpec | None = None,
        expected_fields: frozenset[str] | None = None,
        worker_initializer: Callable[[WorkerContext], None] | None = None,
        temp_dir: Path = TEMP_DIR,
        output_dir: Path = OUTPUT_DIR,
        template_path: Path = PROFILE_TEMPLATE_PATH,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.loader = loader
        self.content_builder = content_builder
        self.renderer = renderer
        self.expectations = expectations
        self.expected_fields = expected_fields
        self.worker_initializer = worker_initializer
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.template_path = Path(template_path)
        self.reports: list[RunReport] = []

    def validate(self, dataset: Mapping[str, Any], areas: Sequence[str]) -> ValidationReport:
        """Check the raw dataset; raise only when the strict gate is on."""
        spec = self.expectations
        if spec is None:
            spec = build_expectations(areas=areas)
        report = check(dataset, spec)
        for failure in report.failures:
            logger.warning("Schema check [%s] %s", failure.severity, failure.message)
        logger.info(
            "Schema check: %d of %d rules passed",
            len(report) - len(report.failures),
            len(report),
        )
        if self.settings.strict_schema and report.errors:
            raise SchemaViolationError([o.rule_id for o in report.errors])
        return report

    def _run_and_gate(
        self, pool: WorkerPool, stage: str, areas: Sequence[str], task: Any
    ) -> RunReport:
        outcomes = run_stage(pool, areas, task)
        report = RunReport(stage, tuple(zip(areas, outcomes)))
        self.reports.append(report)
        logger.info("Stage %r outcomes: %s", stage, report.counts())
        gate(report, self.temp_dir.name)
        return report

    def run(
        self,
        dataset_path: Path = DATASET_PATH,
        areas: Sequence[str] = COUNCIL_AREAS,
    ) -> PipelineResult:
        """Run both stages for ``areas``.

        Returns
        -------
        PipelineResult
            Validation report, both stage reports, rendered paths, run time.

        Raises
        ------
        StageGateError
            If any area failed a stage; names every failed area.
        SchemaViolationError
            If the strict schema gate is on and error rules failed.
        """
        areas = tuple(areas)
        if len(set(areas)) != len(areas):
            raise ConfigurationError("Council area list contains duplicates")
        started = time.perf_counter()
        self.reports = []

        dataset = self.loader(Path(dataset_path))
        validation = self.validate(dataset, areas)
        merged = merge_updates(dataset)
        expected_fields = self.expected_fields
        if expected_fields is None and self.settings.content_length is None:
            expected_fields = expected_content_fields(merged)
            logger.info("Checking content against %d field names", len(expected_fields))

        self.output_dir.mkdir(parents=True, exist_ok=True)
        store = ArtifactStore(self.temp_dir)
        pool = WorkerPool(
            self.settings.n_workers,
            kind=self.settings.worker_kind,
            initializer=self.worker_initializer,
        )
        try:
            pool.broadcast(merged, DATASET_CONTEXT_NAME)
            content_task = ContentTask(
                store,
                self.content_builder,
                self.settings.content_length,
                expected_fields,
            )
            self._run_and_gate(pool, CONTENT_STAGE, areas, content_task)
            render_task = RenderTask(
                store, self.renderer, self.template_path, self.output_dir
            )
            self._run_and_gate(pool, RENDER_STAGE, areas, render_task)
        finally:
            pool.teardown()
            elapsed = time.perf_counter() - started
            logger.info("Run time: %.1f seconds", elapsed)

        leftovers = store.leftover_keys()
        if leftovers:
            logger.warning("Artifacts left in %s: %s", self.temp_dir, ", ".join(leftovers))
        return PipelineResult(
            validation=validation,
            reports=list(self.reports),
            output_paths=[profile_output_path(self.output_dir, a) for a in areas],
            elapsed_seconds=elapsed,
        )


def run_pipeline(
    dataset_path: Path = DATASET_PATH,
    areas: Sequence[str] = COUNCIL_AREAS,
    **options: Any,
) -> PipelineResult:
    """Build a :class:`ProfilePipeline` from ``options`` and run it."""
    return ProfilePipeline(**options).run(dataset_path, areas)
