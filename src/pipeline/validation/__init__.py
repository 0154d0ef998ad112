"""Schema validation for the council area dataset.

Consumers build an :class:`ExpectationSpec` (usually through
:func:`build_expectations`) and pass it to :func:`check`, which returns a
read-only :class:`ValidationReport`.
"""

from .checker import RuleOutcome, ValidationReport, check, locate
from .expectations import (
    ColumnSetRule,
    ExpectationSpec,
    RowCountRule,
    Rule,
    TypeRule,
    ValueDomainRule,
    build_expectations,
)

__all__ = [
    "ColumnSetRule",
    "ExpectationSpec",
    "RowCountRule",
    "Rule",
    "RuleOutcome",
    "TypeRule",
    "ValidationReport",
    "ValueDomainRule",
    "build_expectations",
    "check",
    "locate",
]
