"""End-to-end tests for the profile pipeline orchestrator."""

from pathlib import Path

import pytest

from src.config import PROFILE_TEMPLATE_PATH
from src.exceptions import (
    ConfigurationError,
    PoolStateError,
    SchemaViolationError,
    StageGateError,
)
from src.pipeline.profiles.artifact_store import ArtifactStore
from src.pipeline.profiles.content import produce_area_content
from src.pipeline.profiles.orchestrator import (
    CONTENT_STAGE,
    RENDER_STAGE,
    ProfilePipeline,
    run_pipeline,
)
from src.pipeline.profiles.settings import PipelineSettings
from src.pipeline.profiles.stage_runner import StageOutcome
from src.pipeline.profiles.worker_pool import WorkerPool
from src.pipeline.validation import build_expectations

SHEETS = ("Population", "Health")
FIELDS = 430


def _sized_builder(area, dataset):
    content = {"area": area}
    for i in range(dataset["sizes"].get(area, FIELDS) - 1):
        content[f"field_{i}"] = i
    return content


def _text_renderer(template_path, output_path, content):
    output_path.write_text(f"{content['area']}: {len(content)} fields", encoding="utf-8")


def _settings(kind="thread", **overrides):
    options = {"n_workers": 2, "worker_kind": kind, "content_length": FIELDS}
    options.update(overrides)
    return PipelineSettings(**options)


def _fake_pipeline(
    tmp_path: Path, sizes=None, pipeline_cls=ProfilePipeline, **overrides
) -> ProfilePipeline:
    dataset = {"sizes": dict(sizes or {}), "updates": {}}
    options = {
        "settings": _settings(),
        "loader": lambda path: dataset,
        "content_builder": _sized_builder,
        "renderer": _text_renderer,
        "expectations": build_expectations(sheets=()),
        "temp_dir": tmp_path / "temp",
        "output_dir": tmp_path / "output",
        "template_path": tmp_path / "unused.html",
    }
    options.update(overrides)
    return pipeline_cls(**options)


def test_all_areas_rendered_and_temp_emptied(tmp_path: Path):
    pipeline = _fake_pipeline(tmp_path)
    result = pipeline.run(tmp_path / "data.xlsx", ["A", "B", "C"])

    names = sorted(p.name for p in (tmp_path / "output").iterdir())
    assert names == [
        "a-council-profile.html",
        "b-council-profile.html",
        "c-council-profile.html",
    ]
    assert list((tmp_path / "temp").iterdir()) == []
    assert [r.stage for r in result.reports] == [CONTENT_STAGE, RENDER_STAGE]
    assert all(r.ok for r in result.reports)
    assert [p.name for p in result.output_paths] == names
    assert result.elapsed_seconds >= 0


def test_content_gate_names_only_the_short_area(tmp_path: Path):
    pipeline = _fake_pipeline(tmp_path, sizes={"B": FIELDS - 1})
    with pytest.raises(StageGateError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", ["A", "B", "C"])

    err = excinfo.value
    assert err.stage == CONTENT_STAGE
    assert err.failed_items == ("B",)
    assert err.message == "Please check content for: B | inside the 'temp' folder"
    assert pipeline.reports[0].outcomes == (
        StageOutcome.OK,
        StageOutcome.TOO_FEW_FIELDS,
        StageOutcome.OK,
    )
    # No stage 2 after a failed gate.
    assert len(pipeline.reports) == 1
    assert not any((tmp_path / "output").iterdir())
    # The rejected content stays for inspection.
    assert ArtifactStore(tmp_path / "temp").exists("B")


def test_content_gate_names_every_failing_area(tmp_path: Path):
    pipeline = _fake_pipeline(tmp_path, sizes={"A": FIELDS + 1, "C": 1})
    with pytest.raises(StageGateError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", ["A", "B", "C"])
    assert excinfo.value.failed_items == ("A", "C")
    assert pipeline.reports[0].outcomes[0] is StageOutcome.TOO_MANY_FIELDS


class _ArtifactLosingPipeline(ProfilePipeline):
    """Removes one artifact between the two stages."""

    lost_area = "B"

    def _run_and_gate(self, pool, stage, areas, task):
        if stage == RENDER_STAGE:
            ArtifactStore(self.temp_dir).path_for(self.lost_area).unlink()
        return super()._run_and_gate(pool, stage, areas, task)


def test_missing_artifact_fails_only_that_area(tmp_path: Path):
    pipeline = _fake_pipeline(tmp_path, pipeline_cls=_ArtifactLosingPipeline)
    with pytest.raises(StageGateError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", ["A", "B", "C"])

    assert excinfo.value.stage == RENDER_STAGE
    assert excinfo.value.failed_items == ("B",)
    assert pipeline.reports[1].outcomes == (
        StageOutcome.OK,
        StageOutcome.MISSING_ARTIFACT,
        StageOutcome.OK,
    )
    names = sorted(p.name for p in (tmp_path / "output").iterdir())
    assert names == ["a-council-profile.html", "c-council-profile.html"]


def test_render_fault_isolated(tmp_path: Path):
    def flaky_renderer(template_path, output_path, content):
        if content["area"] == "C":
            raise RuntimeError("template exploded")
        _text_renderer(template_path, output_path, content)

    pipeline = _fake_pipeline(tmp_path, renderer=flaky_renderer)
    with pytest.raises(StageGateError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", ["A", "B", "C"])
    assert excinfo.value.failed_items == ("C",)
    assert pipeline.reports[1].outcomes[2] is StageOutcome.FAULT
    assert (tmp_path / "output" / "a-council-profile.html").exists()


def test_duplicate_areas_rejected(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        _fake_pipeline(tmp_path).run(tmp_path / "data.xlsx", ["A", "A"])


def test_schema_failure_is_logged_but_not_fatal_by_default(
    tmp_path: Path, small_dataset, small_areas, caplog
):
    del small_dataset["Health"]
    del small_dataset["updates"]["Health"]
    pipeline = ProfilePipeline(
        settings=_settings(content_length=4),
        loader=lambda path: small_dataset,
        expectations=build_expectations(sheets=SHEETS, areas=small_areas),
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
    )
    with caplog.at_level("WARNING"):
        result = pipeline.run(tmp_path / "data.xlsx", small_areas)
    assert not result.validation.ok
    assert "health_is_table" in caplog.text
    assert all(p.exists() for p in result.output_paths)


def test_strict_schema_gate_stops_before_any_work(tmp_path: Path, small_dataset, small_areas):
    del small_dataset["Health"]
    pipeline = ProfilePipeline(
        settings=_settings(strict_schema=True),
        loader=lambda path: small_dataset,
        expectations=build_expectations(sheets=SHEETS, areas=small_areas),
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
    )
    with pytest.raises(SchemaViolationError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", small_areas)
    assert "health_is_table" in excinfo.value.failed_rules
    assert pipeline.reports == []
    assert not (tmp_path / "output").exists()


def test_default_collaborators_in_process_mode(tmp_path: Path, small_dataset, small_areas):
    result = run_pipeline(
        tmp_path / "data.xlsx",
        small_areas,
        settings=PipelineSettings(n_workers=2, worker_kind="process"),
        loader=lambda path: small_dataset,
        expectations=build_expectations(sheets=SHEETS, areas=small_areas),
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
        template_path=PROFILE_TEMPLATE_PATH,
    )
    assert result.validation.ok
    html = (tmp_path / "output" / "angus-council-profile.html").read_text(encoding="utf-8")
    assert "Angus" in html
    # Merged update is what workers see.
    assert "90" in html
    assert list((tmp_path / "temp").iterdir()) == []


def test_default_check_uses_field_names_from_workbook(tmp_path: Path, small_dataset, small_areas):
    pipeline = ProfilePipeline(
        settings=PipelineSettings(n_workers=2, worker_kind="thread"),
        loader=lambda path: small_dataset,
        expectations=build_expectations(sheets=SHEETS, areas=small_areas),
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
    )
    result = pipeline.run(tmp_path / "data.xlsx", small_areas)
    assert all(r.ok for r in result.reports)
    assert all(p.exists() for p in result.output_paths)


def _builder_dropping_fife_age(area, dataset):
    content = produce_area_content(area, dataset)
    if area == "Fife":
        del content["population__median_age"]
    return content


def test_default_check_flags_area_missing_a_named_field(
    tmp_path: Path, small_dataset, small_areas
):
    pipeline = ProfilePipeline(
        settings=PipelineSettings(n_workers=2, worker_kind="thread"),
        loader=lambda path: small_dataset,
        content_builder=_builder_dropping_fife_age,
        expectations=build_expectations(sheets=SHEETS, areas=small_areas),
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
    )
    with pytest.raises(StageGateError) as excinfo:
        pipeline.run(tmp_path / "data.xlsx", small_areas)
    assert excinfo.value.failed_items == ("Fife",)
    assert pipeline.reports[0].outcomes[1] is StageOutcome.TOO_FEW_FIELDS


def test_pool_torn_down_when_content_gate_fails(tmp_path: Path, monkeypatch):
    torn_down = []
    original = WorkerPool.teardown

    def recording_teardown(self):
        torn_down.append(self)
        original(self)

    monkeypatch.setattr(WorkerPool, "teardown", recording_teardown)
    pipeline = _fake_pipeline(tmp_path, sizes={"B": FIELDS - 1})
    with pytest.raises(StageGateError):
        pipeline.run(tmp_path / "data.xlsx", ["A", "B"])

    assert len(torn_down) == 1
    with pytest.raises(PoolStateError):
        torn_down[0].submit(lambda item, ctx: item, "A")
