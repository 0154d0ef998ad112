"""Schema conformance checker for the council area dataset.

``check`` evaluates every rule of an :class:`ExpectationSpec` against a
dataset and returns a :class:`ValidationReport`. It never stops at the
first failure; one invocation reports every violation. The checker
neither mutates the dataset nor logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import pandas as pd

from src.exceptions import MissingTargetError

from .expectations import SEVERITY_ERROR, ExpectationSpec, Rule


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating one rule."""

    rule_id: str
    passed: bool
    message: str
    severity: str = SEVERITY_ERROR


class ValidationReport:
    """Read-only mapping from rule identifier to :class:`RuleOutcome`.

    Rule order follows the :class:`ExpectationSpec` that produced the report.

    Examples
    --------
    >>> report = ValidationReport([RuleOutcome("r1", True, "ok")])
    >>> report.ok, report["r1"].passed
    (True, True)
    """

    __slots__ = ("_outcomes",)

    def __init__(self, outcomes: list[RuleOutcome]) -> None:
        self._outcomes: Mapping[str, RuleOutcome] = MappingProxyType(
            {outcome.rule_id: outcome for outcome in outcomes}
        )

    def __getitem__(self, rule_id: str) -> RuleOutcome:
        return self._outcomes[rule_id]

    def __iter__(self):
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    @property
    def outcomes(self) -> Mapping[str, RuleOutcome]:
        return self._outcomes

    @property
    def failures(self) -> tuple[RuleOutcome, ...]:
        """Every failed rule, warnings included."""
        return tuple(o for o in self._outcomes.values() if not o.passed)

    @property
    def errors(self) -> tuple[RuleOutcome, ...]:
        """Failed rules with ``error`` severity."""
        return tuple(o for o in self.failures if o.severity == SEVERITY_ERROR)

    @property
    def ok(self) -> bool:
        return not self.failures


def locate(dataset: Mapping[str, Any], target: tuple[str, ...]) -> Any:
    """Return the value found at ``target`` inside ``dataset``.

    Parameters
    ----------
    dataset : Mapping[str, Any]
        Dataset to search.
    target : tuple[str, ...]
        Key path; after a DataFrame the next key selects a column.

    Returns
    -------
    Any
        The located value (mapping entry, DataFrame, or column Series).

    Raises
    ------
    MissingTargetError
        If any step of the path does not exist.

    Examples
    --------
    >>> locate({"a": {"b": 1}}, ("a", "b"))
    1
    """
    current: Any = dataset
    for depth, key in enumerate(target):
        if isinstance(current, pd.DataFrame):
            found = key in current.columns
        elif isinstance(current, Mapping):
            found = key in current
        else:
            found = False
        if not found:
            walked = "/".join(target[: depth + 1])
            raise MissingTargetError(
                f"Target {walked} not found in dataset",
                context={"target": list(target)},
            )
        current = current[key]
    return current


def _evaluate(dataset: Mapping[str, Any], rule: Rule) -> RuleOutcome:
    try:
        value = locate(dataset, rule.target)
    except MissingTargetError as exc:
        return RuleOutcome(
            rule.rule_id, False, f"{rule.rule_id}: {exc.message}", rule.severity
        )
    try:
        passed, message = rule.evaluate(value)
    except Exception as exc:
        passed, message = False, f"{rule.rule_id}: could not evaluate ({exc})"
    return RuleOutcome(rule.rule_id, passed, message, rule.severity)


def check(dataset: Mapping[str, Any], spec: ExpectationSpec) -> ValidationReport:
    """Evaluate every rule of ``spec`` against ``dataset``.

    Parameters
    ----------
    dataset : Mapping[str, Any]
        The loaded, not yet merged dataset.
    spec : ExpectationSpec
        Rules to evaluate, in order.

    Returns
    -------
    ValidationReport
        One outcome per rule. A failing rule never prevents the remaining
        rules from being evaluated.
    """
    return ValidationReport([_evaluate(dataset, rule) for rule in spec])
