"""Tests for runtime settings and the rich outcome summary."""

import os

import pytest
from rich.console import Console

from src.exceptions import ConfigurationError
from src.pipeline.profiles import settings as settings_mod
from src.pipeline.profiles.settings import PipelineSettings
from src.pipeline.profiles.stage_runner import RunReport, StageOutcome
from src.pipeline.profiles.summary import build_summary_table, print_summary


def test_defaults(monkeypatch):
    monkeypatch.setattr(settings_mod.os, "cpu_count", lambda: 4)
    settings = PipelineSettings()
    assert settings.n_workers == 4
    assert settings.worker_kind == "process"
    assert settings.strict_schema is False
    assert settings.content_length is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setattr(settings_mod.os, "cpu_count", lambda: 8)
    monkeypatch.setenv("N_WORKERS", "3")
    monkeypatch.setenv("WORKER_KIND", "Thread")
    monkeypatch.setenv("STRICT_SCHEMA_GATE", "yes")
    monkeypatch.setenv("CONTENT_LENGTH", "12")
    settings = PipelineSettings()
    assert (settings.n_workers, settings.worker_kind) == (3, "thread")
    assert settings.strict_schema is True
    assert settings.content_length == 12


def test_keyword_arguments_beat_environment(monkeypatch):
    monkeypatch.setenv("STRICT_SCHEMA_GATE", "true")
    settings = PipelineSettings(strict_schema=False, n_workers=1, worker_kind="thread")
    assert settings.strict_schema is False
    assert settings.n_workers == 1


def test_worker_count_capped(monkeypatch):
    monkeypatch.setattr(settings_mod.os, "cpu_count", lambda: 2)
    monkeypatch.setenv("N_WORKERS", "16")
    assert PipelineSettings().n_workers == 2


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("N_WORKERS", "many"),
        ("N_WORKERS", "0"),
        ("WORKER_KIND", "fiber"),
        ("STRICT_SCHEMA_GATE", "maybe"),
        ("CONTENT_LENGTH", "-1"),
    ],
)
def test_invalid_environment_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        PipelineSettings()


def test_dotenv_file_is_loaded(monkeypatch, tmp_path):
    import src.config as cfg

    (tmp_path / ".env").write_text("CONTENT_LENGTH=7\n", encoding="utf-8")
    monkeypatch.setattr(cfg, "PROJECT_ROOT", tmp_path)
    try:
        assert PipelineSettings().content_length == 7
    finally:
        # load_dotenv wrote to os.environ directly
        os.environ.pop("CONTENT_LENGTH", None)


def _reports():
    return [
        RunReport("content", (("A", StageOutcome.OK), ("B", StageOutcome.OK))),
        RunReport("reports", (("A", StageOutcome.OK), ("B", StageOutcome.FAULT))),
    ]


def test_summary_table_has_one_column_per_stage():
    table = build_summary_table(_reports())
    assert [c.header for c in table.columns] == ["Council Area", "Content", "Reports"]
    assert table.row_count == 2


def test_summary_marks_items_missing_from_later_stage():
    reports = [
        RunReport("content", (("A", StageOutcome.OK),)),
        RunReport("reports", ()),
    ]
    table = build_summary_table(reports)
    assert list(table.columns[2].cells) == ["-"]


def test_print_summary_reports_run_time():
    console = Console(record=True, width=100)
    print_summary(_reports(), 12.34, console=console)
    text = console.export_text()
    assert "fault" in text
    assert "Code complete. Run time: 12.3 seconds" in text
