import datetime
import random
from decimal import Decimal

import pytest

from tutorial_examples.comparator import (
    NON_DETERMINISTIC_ORDER,
    ComparisonOutcome,
    ResultComparator,
    Status,
    compare_all,
    normalize_value,
)
from tutorial_examples.errors import ComparisonMismatch
from tutorial_examples.examples_dataset import Example
from tutorial_examples.session_executor import ExecutionResult, SessionExecutor


TOP_3 = [
    {"employee_id": 3, "first_name": "John", "last_name": "Three", "salary": Decimal("75020.00")},
    {"employee_id": 8, "first_name": "John", "last_name": "Eight", "salary": Decimal("64340.00")},
    {"employee_id": 2, "first_name": "John", "last_name": "Two", "salary": Decimal("54340.00")},
]


def _example(rows, order_sensitive=False, sort_columns=None, example_id="ex", query="SELECT ..."):
    return Example(
        id=example_id,
        query_statement=query,
        expected_rows=rows,
        order_sensitive=order_sensitive,
        sort_columns=sort_columns or [],
    )


def _result(rows, example_id="ex", columns=None):
    return ExecutionResult(
        example_id=example_id,
        actual_rows=rows,
        columns=columns if columns is not None else (list(rows[0]) if rows else []),
    )


@pytest.fixture
def comparator():
    return ResultComparator()


def test_error_result_is_error_not_fail(comparator):
    example = _example([{"n": 1}])
    result = ExecutionResult(example_id="ex", error="Query failed: no such table: employees")
    outcome = comparator.compare(example, result)
    assert outcome.status is Status.ERROR
    assert "no such table" in outcome.note


def test_setup_only_example_passes(comparator):
    outcome = comparator.compare(Example(id="ddl"), ExecutionResult(example_id="ddl"))
    assert outcome.status is Status.PASS


@pytest.mark.parametrize("seed", range(5))
def test_unordered_shuffled_rows_pass(comparator, seed):
    rows = [{"id": i, "dept": d} for i, d in enumerate(["IT", "HR", "IT", None, "Sales"])]
    shuffled = list(rows)
    random.Random(seed).shuffle(shuffled)
    assert comparator.compare(_example(rows), _result(shuffled)).status is Status.PASS


def test_ordered_reordering_fails(comparator):
    rows = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}, {"id": 3, "v": "c"}]
    reordered = [rows[1], rows[0], rows[2]]
    outcome = comparator.compare(
        _example(rows, order_sensitive=True, sort_columns=["id"]), _result(reordered)
    )
    assert outcome.status is Status.FAIL
    assert [m.row_index for m in outcome.mismatches] == [0, 1]
    assert outcome.mismatches[0].expected == rows[0]
    assert outcome.mismatches[0].actual == rows[1]


def test_ordered_missing_and_extra_rows(comparator):
    rows = [{"id": 1}, {"id": 2}]
    outcome = comparator.compare(_example(rows, order_sensitive=True), _result([{"id": 1}]))
    assert outcome.status is Status.FAIL
    assert outcome.mismatches[0].row_index == 1
    assert outcome.mismatches[0].actual is None

    outcome = comparator.compare(
        _example(rows, order_sensitive=True), _result(rows + [{"id": 3}])
    )
    assert outcome.mismatches[0].row_index == 2
    assert outcome.mismatches[0].expected is None


def test_unordered_multiplicity_matters(comparator):
    rows = [{"salary": Decimal("30000.00")}, {"salary": Decimal("30000.00")}]
    outcome = comparator.compare(_example(rows), _result(rows[:1]))
    assert outcome.status is Status.FAIL
    assert len(outcome.mismatches) == 1
    assert outcome.mismatches[0].row_index is None
    assert outcome.mismatches[0].actual is None


def test_unordered_reports_both_directions(comparator):
    expected = [{"id": 1}, {"id": 2}]
    actual = [{"id": 2}, {"id": 3}]
    outcome = comparator.compare(_example(expected), _result(actual))
    assert [(m.expected, m.actual) for m in outcome.mismatches] == [
        ({"id": 1}, None),
        (None, {"id": 3}),
    ]


def test_decimal_normalization(comparator):
    expected = [{"department": "Sales", "average_salary": Decimal("64340.00")}]
    actual_pg = [{"department": "Sales", "average_salary": Decimal("64340.0000000000000000")}]
    actual_float = [{"department": "Sales", "average_salary": 64340.0}]
    actual_int = [{"department": "Sales", "average_salary": 64340}]
    for actual in (actual_pg, actual_float, actual_int):
        assert comparator.compare(_example(expected), _result(actual)).status is Status.PASS

    off_by_cent = [{"department": "Sales", "average_salary": Decimal("64340.01")}]
    assert comparator.compare(_example(expected), _result(off_by_cent)).status is Status.FAIL


def test_float_artifacts_do_not_fail(comparator):
    expected = [{"bonus": Decimal("706.80")}]
    actual = [{"bonus": 35340.00 * 0.02}]
    assert comparator.compare(_example(expected), _result(actual)).status is Status.PASS


def test_null_matches_only_null(comparator):
    expected = [{"department": None, "n": 0}]
    assert comparator.compare(_example(expected), _result([{"department": None, "n": 0}])).passed
    for value in ("", 0, "NULL"):
        outcome = comparator.compare(_example(expected), _result([{"department": value, "n": 0}]))
        assert outcome.status is Status.FAIL


def test_dates_compare_with_iso_text(comparator):
    expected = [{"hire_date": "2023-12-12"}]
    actual = [{"hire_date": datetime.date(2023, 12, 12)}]
    assert comparator.compare(_example(expected), _result(actual)).passed


def test_column_mismatch_fails(comparator):
    outcome = comparator.compare(
        _example([{"inactive_count": 3}]), _result([{"count": 3}])
    )
    assert outcome.status is Status.FAIL
    assert "Column mismatch" in outcome.note


def test_empty_result_uses_reported_columns(comparator):
    outcome = comparator.compare(
        _example([{"department": "Sales", "average_salary": Decimal("64340.00")}]),
        _result([], columns=["department", "average_salary"]),
    )
    assert outcome.status is Status.FAIL
    assert outcome.note is None
    assert len(outcome.mismatches) == 1


TOP_3_QUERY = "SELECT employee_id, first_name, last_name, salary FROM employees ORDER BY salary DESC LIMIT 3"


def test_scenario_b_tie_without_tiebreaker_is_error(comparator):
    example = _example(
        TOP_3, order_sensitive=True, sort_columns=["salary"],
        example_id="top-3-salaries", query=TOP_3_QUERY,
    )
    actual = TOP_3[:2] + [
        {"employee_id": 4, "first_name": "John", "last_name": "Four", "salary": Decimal("54340.00")}
    ]
    outcome = comparator.compare(example, _result(actual, example_id="top-3-salaries"))
    assert outcome.status is Status.ERROR
    assert outcome.note == NON_DETERMINISTIC_ORDER
    assert outcome.mismatches[0].row_index == 2

    assert comparator.compare(example, _result(list(TOP_3))).status is Status.PASS


def test_different_sort_key_is_a_real_fail(comparator):
    example = _example(TOP_3, order_sensitive=True, sort_columns=["salary"])
    actual = TOP_3[:2] + [
        {"employee_id": 7, "first_name": "John", "last_name": "Seven", "salary": Decimal("50000.00")}
    ]
    assert comparator.compare(example, _result(actual)).status is Status.FAIL


def test_changed_value_under_unique_sort_key_is_a_fail(comparator):
    expected = [
        {"employee_id": 1, "bonus": Decimal("706.80")},
        {"employee_id": 2, "bonus": Decimal("1195.48")},
    ]
    actual = [
        {"employee_id": 1, "bonus": Decimal("706.80")},
        {"employee_id": 2, "bonus": Decimal("9999.00")},
    ]
    example = _example(
        expected, order_sensitive=True, sort_columns=["employee_id"],
        query="SELECT employee_id, bonus FROM employees ORDER BY employee_id",
    )
    outcome = comparator.compare(example, _result(actual))
    assert outcome.status is Status.FAIL
    assert outcome.note is None
    assert outcome.mismatches[0].row_index == 1
    assert outcome.mismatches[0].expected == expected[1]
    assert outcome.mismatches[0].actual == actual[1]


def test_reordered_tied_rows_are_an_error(comparator):
    expected = [
        {"department": "IT", "employee_count": 2},
        {"department": "Finance", "employee_count": 2},
        {"department": "Sales", "employee_count": 1},
    ]
    actual = [expected[1], expected[0], expected[2]]
    example = _example(expected, order_sensitive=True, sort_columns=["employee_count"])
    outcome = comparator.compare(example, _result(actual))
    assert outcome.status is Status.ERROR
    assert outcome.note == NON_DETERMINISTIC_ORDER


def test_substituted_tied_row_without_limit_is_a_fail(comparator):
    example = _example(TOP_3, order_sensitive=True, sort_columns=["salary"])
    actual = TOP_3[:2] + [
        {"employee_id": 4, "first_name": "John", "last_name": "Four", "salary": Decimal("54340.00")}
    ]
    assert comparator.compare(example, _result(actual)).status is Status.FAIL


def test_boolean_never_equals_number(comparator):
    expected = [{"is_active": True}]
    for value in (1, 1.0, Decimal("1.00")):
        outcome = comparator.compare(_example(expected), _result([{"is_active": value}]))
        assert outcome.status is Status.FAIL
        outcome = comparator.compare(
            _example(expected, order_sensitive=True), _result([{"is_active": value}])
        )
        assert outcome.status is Status.FAIL
    assert comparator.compare(_example(expected), _result([{"is_active": True}])).passed


def test_tie_detection_needs_equal_lengths(comparator):
    example = _example(TOP_3, order_sensitive=True, sort_columns=["salary"])
    assert comparator.compare(example, _result(TOP_3[:2])).status is Status.FAIL


def test_scenario_c_group_having(comparator):
    example = _example([{"department": "Sales", "average_salary": Decimal("64340.00")}], example_id="group-having")
    row = {"department": "Sales", "average_salary": Decimal("64340.0000000000000000")}
    assert comparator.compare(example, _result([row])).status is Status.PASS
    assert comparator.compare(example, _result([], columns=list(row))).status is Status.FAIL
    assert comparator.compare(example, _result([row, dict(row)])).status is Status.FAIL


def test_scenario_a_against_sqlite(sqlite_url, employee_examples):
    with SessionExecutor(sqlite_url) as executor:
        results = executor.run_all(employee_examples)
    outcomes = compare_all(employee_examples, results)
    by_id = {o.example_id: o for o in outcomes}
    assert by_id["count-inactive"].status is Status.PASS
    assert all(o.status is Status.PASS for o in outcomes)


def test_two_runs_on_fresh_databases_give_identical_outcomes(tmp_path, employee_examples):
    runs = []
    for name in ("first.db", "second.db"):
        with SessionExecutor(f"sqlite:///{tmp_path / name}") as executor:
            results = executor.run_all(employee_examples)
        runs.append(compare_all(employee_examples, results))
    assert runs[0] == runs[1]
    assert [o.example_id for o in runs[0]] == [e.id for e in employee_examples]


def test_missing_table_after_failed_setup_is_error(sqlite_url):
    examples = [
        Example(id="create", setup_statements=["CREATE TABLE employees (id INTEGER"]),
        Example(id="count", query_statement="SELECT COUNT(*) AS n FROM employees", expected_rows=[{"n": 0}]),
    ]
    with SessionExecutor(sqlite_url) as executor:
        outcomes = compare_all(examples, executor.run_all(examples))
    assert [o.status for o in outcomes] == [Status.ERROR, Status.ERROR]


def test_compare_all_length_mismatch():
    with pytest.raises(ValueError):
        compare_all([Example(id="a")], [])


def test_raise_for_status():
    ComparisonOutcome("ok", Status.PASS).raise_for_status()
    with pytest.raises(ComparisonMismatch) as excinfo:
        ComparisonOutcome("bad", Status.FAIL).raise_for_status()
    assert excinfo.value.outcome.example_id == "bad"


@pytest.mark.parametrize("value, expected", [
    (None, None),
    (True, ("bool", True)),
    (3, 3),
    ("text", "text"),
    (Decimal("54340.000"), Decimal("54340.00")),
    (0.1 + 0.2, Decimal("0.30")),
    (datetime.date(2024, 1, 29), "2024-01-29"),
])
def test_normalize_value(value, expected):
    assert normalize_value(value) == expected
