"""Expectation rules describing the shape of the council area dataset.

Each rule names a target location in the dataset, the property it checks,
and a severity. Rules are immutable and are grouped into an
:class:`ExpectationSpec` which the checker consumes once per run.

Targets are tuples of keys. Keys walk nested mappings first; once a
DataFrame is reached, the next key selects a column. So
``("Population", "Council Area")`` addresses the area column of the
``Population`` sheet.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from src.config import (
    AREA_COLUMN,
    COUNCIL_AREAS,
    EXPECTED_SHEETS,
    NATIONAL_AREA_NAME,
    UPDATES_KEY,
)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITIES = (SEVERITY_ERROR, SEVERITY_WARNING)

# Out-of-domain values quoted in a failure message
_MAX_QUOTED_VALUES = 5


def _observed_values(value: Any) -> list[Any]:
    if isinstance(value, pd.DataFrame):
        return pd.Series(value.to_numpy().ravel()).dropna().tolist()
    if isinstance(value, pd.Series):
        return value.dropna().tolist()
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _quote(values: Sequence[Any]) -> str:
    shown = ", ".join(repr(v) for v in values[:_MAX_QUOTED_VALUES])
    if len(values) > _MAX_QUOTED_VALUES:
        shown += f", ... ({len(values)} in total)"
    return shown


@dataclass(frozen=True)
class Rule:
    """Base class for expectation rules.

    Subclasses implement :meth:`evaluate`, returning ``(passed, message)``
    for the value found at :attr:`target`.
    """

    rule_id: str
    target: tuple[str, ...]
    severity: str = SEVERITY_ERROR

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {self.severity!r} for {self.rule_id}")
        if not self.target:
            raise ValueError(f"Rule {self.rule_id} has an empty target")

    def evaluate(self, value: Any) -> tuple[bool, str]:
        raise NotImplementedError

    def describe_target(self) -> str:
        return "/".join(self.target)


@dataclass(frozen=True)
class TypeRule(Rule):
    """The target must be an instance of ``expected_type``."""

    expected_type: type | tuple[type, ...] = object

    def evaluate(self, value: Any) -> tuple[bool, str]:
        if isinstance(value, self.expected_type):
            return True, "ok"
        expected = (
            " or ".join(t.__name__ for t in self.expected_type)
            if isinstance(self.expected_type, tuple)
            else self.expected_type.__name__
        )
        return False, (
            f"{self.rule_id}: {self.describe_target()} is {type(value).__name__},"
            f" expected {expected}"
        )


@dataclass(frozen=True)
class RowCountRule(Rule):
    """The target's row count must be exact, or within ``minimum``/``maximum``."""

    exact: int | None = None
    minimum: int | None = None
    maximum: int | None = None

    def evaluate(self, value: Any) -> tuple[bool, str]:
        try:
            observed = len(value)
        except TypeError:
            return False, (
                f"{self.rule_id}: {self.describe_target()} has no rows"
                f" ({type(value).__name__})"
            )
        if self.exact is not None and observed != self.exact:
            return False, (
                f"{self.rule_id}: {self.describe_target()} has {observed} rows,"
                f" expected exactly {self.exact}"
            )
        if self.minimum is not None and observed < self.minimum:
            return False, (
                f"{self.rule_id}: {self.describe_target()} has {observed} rows,"
                f" expected at least {self.minimum}"
            )
        if self.maximum is not None and observed > self.maximum:
            return False, (
                f"{self.rule_id}: {self.describe_target()} has {observed} rows,"
                f" expected at most {self.maximum}"
            )
        return True, "ok"


@dataclass(frozen=True)
class ColumnSetRule(Rule):
    """The target must carry every column in ``required``."""

    required: frozenset[str] = field(default_factory=frozenset)

    def evaluate(self, value: Any) -> tuple[bool, str]:
        if isinstance(value, pd.DataFrame):
            present = {str(column) for column in value.columns}
        elif isinstance(value, Mapping):
            present = {str(key) for key in value}
        else:
            return False, (
                f"{self.rule_id}: {self.describe_target()} has no columns"
                f" ({type(value).__name__})"
            )
        missing = sorted(self.required - present)
        if missing:
            return False, (
                f"{self.rule_id}: {self.describe_target()} is missing columns"
                f" {missing}, expected {sorted(self.required)}"
            )
        return True, "ok"


@dataclass(frozen=True)
class ValueDomainRule(Rule):
    """Every non-null value at the target must fall inside the domain.

    The domain is either a closed numeric range (``minimum``/``maximum``)
    or a finite set of ``allowed`` values.
    """

    allowed: frozenset[Any] | None = None
    minimum: float | None = None
    maximum: float | None = None

    def evaluate(self, value: Any) -> tuple[bool, str]:
        observed = _observed_values(value)
        if self.allowed is not None:
            offending = [v for v in observed if v not in self.allowed]
            expected = f"one of {len(self.allowed)} allowed values"
        else:
            numbers = pd.to_numeric(pd.Series(observed, dtype=object), errors="coerce")
            offending = [
                original
                for original, number in zip(observed, numbers)
                if pd.isna(number)
                or (self.minimum is not None and number < self.minimum)
                or (self.maximum is not None and number > self.maximum)
            ]
            expected = f"numbers in [{self.minimum}, {self.maximum}]"
        if offending:
            return False, (
                f"{self.rule_id}: {self.describe_target()} holds {_quote(offending)},"
                f" expected {expected}"
            )
        return True, "ok"


class ExpectationSpec:
    """Immutable, ordered collection of rules with unique identifiers.

    Examples
    --------
    >>> spec = ExpectationSpec([TypeRule("updates_is_mapping", ("updates",), expected_type=dict)])
    >>> [rule.rule_id for rule in spec]
    ['updates_is_mapping']
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule]) -> None:
        rules = tuple(rules)
        seen: set[str] = set()
        for rule in rules:
            if rule.rule_id in seen:
                raise ValueError(f"Duplicate rule id: {rule.rule_id}")
            seen.add(rule.rule_id)
        self._rules = rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(rule.rule_id for rule in self._rules)


def build_expectations(
    sheets: Sequence[str] = EXPECTED_SHEETS,
    areas: Sequence[str] = COUNCIL_AREAS,
    area_column: str = AREA_COLUMN,
) -> ExpectationSpec:
    """Build the default expectations for the council area dataset.

    The ``updates`` entry must be a mapping. Each expected sheet must be a
    DataFrame carrying the area column, with at least one row per council
    area, and its area column may only name known council areas or the
    national total row.

    Parameters
    ----------
    sheets : Sequence[str]
        Sheet names the dataset must provide.
    areas : Sequence[str]
        Council area names the profiles are produced for.
    area_column : str
        Column naming the council area in every sheet.

    Returns
    -------
    ExpectationSpec
        Rules in a stable order: ``updates`` first, then four per sheet.
    """
    known_areas = frozenset(areas) | {NATIONAL_AREA_NAME}
    rules: list[Rule] = [
        TypeRule("updates_is_mapping", (UPDATES_KEY,), expected_type=Mapping),
    ]
    for sheet in sheets:
        slug = sheet.lower().replace(" ", "_")
        rules.extend(
            [
                TypeRule(f"{slug}_is_table", (sheet,), expected_type=pd.DataFrame),
                ColumnSetRule(
                    f"{slug}_has_area_column",
                    (sheet,),
                    required=frozenset({area_column}),
                ),
                RowCountRule(f"{slug}_covers_areas", (sheet,), minimum=len(areas)),
                ValueDomainRule(
                    f"{slug}_known_areas",
                    (sheet, area_column),
                    allowed=known_areas,
                ),
            ]
        )
    return ExpectationSpec(rules)
