"""Central application exception hierarchy.

This module defines the base application exception ``AppError`` and the
specialized subclasses raised by the profile pipeline: configuration and
dataset problems, schema violations, per-area content and artifact faults,
and the stage gate failure that terminates a run. Per-area faults are
normally converted into stage outcomes by the workers; only the gates and
the optional strict schema check let an error reach the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Mapping


class AppError(Exception):
    """Base exception for all application-level errors.

    Parameters
    ----------
    code : str
        Machine-readable error code (e.g., ``'DATA_VALIDATION_ERROR'``).
    message : str
        Human-readable message describing the error.
    context : Mapping[str, Any] | None, optional
        Optional structured context for logging.
    transient : bool, optional
        Whether the error is temporary and may be retried.

    Attributes
    ----------
    code : str
        Stable machine-readable error code.
    message : str
        Human-readable message.
    context : dict
        Structured, non-sensitive context for logging.
    transient : bool
        True if the error is transient.

    Examples
    --------
    >>> e = AppError('CODE', 'message', context={'k': 'v'}, transient=True)
    >>> e.code
    'CODE'
    """

    __slots__ = ("code", "message", "context", "transient")

    def __init__(
        self,
        code: str,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context or {})
        self.transient = bool(transient)

    def __str__(self) -> str:
        """Return a compact string representation of the error."""
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Return a log-safe dictionary representation of the error."""
        return {
            "error_code": self.code,
            "message": self.message,
            "context": self.context,
            "is_transient": self.transient,
        }


class ConfigurationError(AppError):
    """Raised for invalid or missing configuration."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            "CONFIGURATION_ERROR", message, context=context, transient=False
        )


class DataValidationError(AppError):
    """Raised when the input dataset cannot be loaded into the expected shape."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            "DATA_VALIDATION_ERROR", message, context=context, transient=False
        )


class MissingTargetError(AppError):
    """Raised when an expectation rule points at a location absent from the dataset."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__("MISSING_TARGET", message, context=context, transient=False)


class SchemaViolationError(AppError):
    """Raised when the strict schema gate is enabled and error rules failed.

    Parameters
    ----------
    failed_rules : Sequence[str]
        Identifiers of every error-severity rule that failed.
    """

    __slots__ = ("failed_rules",)

    def __init__(self, failed_rules: Sequence[str]) -> None:
        self.failed_rules = tuple(failed_rules)
        super().__init__(
            "SCHEMA_VIOLATION",
            "Dataset does not match expectations: " + ", ".join(self.failed_rules),
            context={"failed_rules": list(self.failed_rules)},
            transient=False,
        )


class ContentCardinalityError(AppError):
    """Raised when generated content does not hold the expected set of fields."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            "CONTENT_CARDINALITY_ERROR", message, context=context, transient=False
        )


class MissingArtifactError(AppError):
    """Raised when a content artifact is requested but not present in the store."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__("MISSING_ARTIFACT", message, context=context, transient=False)


class RenderFaultError(AppError):
    """Raised when the document renderer fails for one council area."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__("RENDER_FAULT", message, context=context, transient=False)


class PoolStateError(AppError):
    """Raised when the worker pool is used outside its allowed lifecycle."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__("POOL_STATE_ERROR", message, context=context, transient=False)


class StageGateError(AppError):
    """Raised by a stage gate when at least one item finished abnormally.

    Parameters
    ----------
    stage : str
        Name of the stage whose gate failed.
    failed_items : Sequence[str]
        Every offending item, in input order.
    location : str
        Where an operator should look for the failed items' artifacts.

    Examples
    --------
    >>> err = StageGateError("content", ["Fife", "Moray"], "temp")
    >>> err.message
    "Please check content for: Fife, Moray | inside the 'temp' folder"
    """

    __slots__ = ("stage", "failed_items", "location")

    def __init__(self, stage: str, failed_items: Sequence[str], location: str) -> None:
        self.stage = stage
        self.failed_items = tuple(failed_items)
        self.location = location
        super().__init__(
            "STAGE_GATE_FAILED",
            f"Please check {stage} for: {', '.join(self.failed_items)}"
            f" | inside the '{location}' folder",
            context={
                "stage": stage,
                "failed_items": list(self.failed_items),
                "location": location,
            },
            transient=False,
        )
