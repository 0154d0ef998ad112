"""Tests for the expectation rules and the schema conformance checker."""

import pandas as pd
import pytest

from src.exceptions import MissingTargetError
from src.pipeline.validation import (
    ColumnSetRule,
    ExpectationSpec,
    RowCountRule,
    TypeRule,
    ValueDomainRule,
    build_expectations,
    check,
    locate,
)
from src.pipeline.validation.expectations import SEVERITY_WARNING

SHEETS = ("Population", "Health")


@pytest.fixture
def spec(small_areas):
    return build_expectations(sheets=SHEETS, areas=small_areas)


def test_conforming_dataset_has_no_failures(small_dataset, spec):
    report = check(small_dataset, spec)
    assert report.ok
    assert report.failures == ()
    assert list(report) == list(spec.rule_ids)
    assert len(report) == 1 + 4 * len(SHEETS)


def test_one_mutated_target_fails_exactly_one_rule(small_dataset, spec):
    small_dataset["Health"].loc[0, "Council Area"] = "Atlantis"
    report = check(small_dataset, spec)
    assert [o.rule_id for o in report.failures] == ["health_known_areas"]
    assert "Atlantis" in report["health_known_areas"].message
    assert "Health/Council Area" in report["health_known_areas"].message


def test_missing_sheet_reported_for_every_rule_targeting_it(small_dataset, spec):
    del small_dataset["Population"]
    report = check(small_dataset, spec)
    failed = {o.rule_id for o in report.failures}
    assert failed == {
        "population_is_table",
        "population_has_area_column",
        "population_covers_areas",
        "population_known_areas",
    }
    assert "not found" in report["population_is_table"].message


def test_checker_does_not_stop_at_first_failure(small_dataset, spec):
    small_dataset["updates"] = ["not", "a", "mapping"]
    small_dataset["Health"] = small_dataset["Health"].iloc[:1]
    report = check(small_dataset, spec)
    failed = [o.rule_id for o in report.failures]
    assert failed == ["updates_is_mapping", "health_covers_areas"]


def test_report_is_read_only(small_dataset, spec):
    report = check(small_dataset, spec)
    with pytest.raises(TypeError):
        report.outcomes["updates_is_mapping"] = None


def test_errors_exclude_warnings():
    spec = ExpectationSpec(
        [
            TypeRule("a_is_int", ("a",), expected_type=int),
            TypeRule("b_is_int", ("b",), severity=SEVERITY_WARNING, expected_type=int),
        ]
    )
    report = check({"a": "x", "b": "y"}, spec)
    assert [o.rule_id for o in report.failures] == ["a_is_int", "b_is_int"]
    assert [o.rule_id for o in report.errors] == ["a_is_int"]


def test_duplicate_rule_ids_rejected():
    with pytest.raises(ValueError, match="Duplicate rule id"):
        ExpectationSpec(
            [
                TypeRule("dup", ("a",), expected_type=int),
                TypeRule("dup", ("b",), expected_type=int),
            ]
        )


def test_unknown_severity_rejected():
    with pytest.raises(ValueError):
        TypeRule("r", ("a",), severity="fatal", expected_type=int)


def test_locate_walks_mappings_then_columns():
    frame = pd.DataFrame({"col": [1, 2]})
    dataset = {"outer": {"sheet": frame}}
    assert locate(dataset, ("outer", "sheet")) is frame
    assert locate(dataset, ("outer", "sheet", "col")).tolist() == [1, 2]
    with pytest.raises(MissingTargetError):
        locate(dataset, ("outer", "sheet", "other"))
    with pytest.raises(MissingTargetError):
        locate({"a": 1}, ("a", "b"))


def test_row_count_rule_bounds():
    frame = pd.DataFrame({"a": range(3)})
    assert RowCountRule("exact", ("t",), exact=3).evaluate(frame)[0]
    assert not RowCountRule("exact", ("t",), exact=4).evaluate(frame)[0]
    assert not RowCountRule("min", ("t",), minimum=4).evaluate(frame)[0]
    assert not RowCountRule("max", ("t",), maximum=2).evaluate(frame)[0]
    assert not RowCountRule("scalar", ("t",), exact=1).evaluate(5)[0]


def test_column_set_rule_reports_missing_columns():
    rule = ColumnSetRule("cols", ("t",), required=frozenset({"a", "b"}))
    passed, message = rule.evaluate(pd.DataFrame({"a": [1]}))
    assert not passed
    assert "['b']" in message


def test_value_domain_numeric_range():
    rule = ValueDomainRule("pct", ("t",), minimum=0, maximum=100)
    assert rule.evaluate(pd.Series([0, 50.5, 100, None]))[0]
    passed, message = rule.evaluate(pd.Series([10, 101, "n/a"]))
    assert not passed
    assert "101" in message and "'n/a'" in message
