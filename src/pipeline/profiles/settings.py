"""Runtime settings for the council area profile pipeline.

``PipelineSettings`` reads operator tunables from environment variables
and, when present, a ``.env`` file at the project root. Fixed values such
as the council area list and directory layout stay in ``src.config``.

Environment Variables
---------------------
N_WORKERS
    Worker count. Defaults to the detected CPU count and is capped by it;
    lower it on memory-constrained machines.
WORKER_KIND
    ``process`` (default) or ``thread``.
STRICT_SCHEMA_GATE
    When true, error-severity schema failures abort the run before any
    content is generated.
CONTENT_LENGTH
    When set, content is checked by field count against this number
    instead of by the field names derived from the workbook.
LOG_LEVEL
    Logging level for the CLI.

Examples
--------
>>> import os
>>> os.environ["N_WORKERS"] = "1"
>>> from src.pipeline.profiles.settings import PipelineSettings
>>> PipelineSettings().n_workers
1
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

import src.config as _project_config
from src.config import DEFAULT_WORKER_KIND, WORKER_KINDS
from src.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def detect_worker_count() -> int:
    """Return the hardware concurrency, never less than one."""
    return max(1, os.cpu_count() or 1)


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}", context={"variable": name}
        ) from exc
    if value < 1:
        raise ConfigurationError(
            f"{name} must be at least 1, got {value}", context={"variable": name}
        )
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{name} must be a boolean flag, got {raw!r}", context={"variable": name}
    )


class PipelineSettings:
    r"""Validated runtime tunables for one pipeline run.

    Attributes
    ----------
    n_workers : int
        Pool size, between 1 and the detected CPU count.
    worker_kind : str
        ``"process"`` or ``"thread"``.
    strict_schema : bool
        Whether error-severity schema failures abort the run.
    content_length : int | None
        Expected field count of every generated content mapping, or
        ``None`` to check field names instead.
    log_level : str
        Logging level name.

    Notes
    -----
    Instantiate once at process start. Keyword arguments override the
    environment, which is convenient for tests and programmatic runs.
    """

    def __init__(
        self,
        *,
        n_workers: int | None = None,
        worker_kind: str | None = None,
        strict_schema: bool | None = None,
        content_length: int | None = None,
    ) -> None:
        env_path = Path(_project_config.PROJECT_ROOT) / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
        available = detect_worker_count()
        requested = n_workers if n_workers is not None else _env_int("N_WORKERS", available)
        if requested < 1:
            raise ConfigurationError(f"n_workers must be at least 1, got {requested}")
        self.n_workers: int = min(requested, available)
        self.worker_kind: str = (
            worker_kind or os.getenv("WORKER_KIND", DEFAULT_WORKER_KIND)
        ).strip().lower()
        if self.worker_kind not in WORKER_KINDS:
            raise ConfigurationError(
                f"WORKER_KIND must be one of {WORKER_KINDS}, got {self.worker_kind!r}"
            )
        self.strict_schema: bool = (
            strict_schema
            if strict_schema is not None
            else _env_bool("STRICT_SCHEMA_GATE", False)
        )
        self.content_length: int | None = (
            content_length
            if content_length is not None
            else _env_int("CONTENT_LENGTH", None)
        )
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __repr__(self) -> str:
        return (
            f"PipelineSettings(n_workers={self.n_workers}, worker_kind={self.worker_kind!r},"
            f" strict_schema={self.strict_schema}, content_length={self.content_length})"
        )
