"""
Модуль для сравнения фактического результата примера с ожидаемым.
"""

import datetime
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

from .errors import ComparisonMismatch
from .examples_dataset import Example
from .session_executor import ExecutionResult
from .sql_text import has_top_level_limit


NON_DETERMINISTIC_ORDER = "non-deterministic ordering without tiebreaker"
MONEY_QUANTUM = Decimal("0.01")


class Status(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


@dataclass
class Mismatch:
    """
    Расхождение в одной строке.

    row_index - позиция при сравнении с учётом порядка;
    None при сравнении мультимножеств (тогда задана только одна сторона).
    """
    row_index: Optional[int]
    expected: Optional[Dict[str, Any]]
    actual: Optional[Dict[str, Any]]


@dataclass
class ComparisonOutcome:
    """Итог проверки одного примера."""
    example_id: str
    status: Status
    mismatches: List[Mismatch] = field(default_factory=list)
    note: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status is Status.PASS

    def raise_for_status(self) -> None:
        """Бросает ComparisonMismatch, если пример не прошёл."""
        if not self.passed:
            raise ComparisonMismatch(self)


def normalize_value(value: Any) -> Hashable:
    """
    Приводит значение к виду, пригодному для точного сравнения.

    - float и Decimal -> Decimal с двумя знаками после запятой
      (NUMERIC(10,2), AVG и т.п. сравниваются без артефактов float)
    - дата/время -> ISO-строка
    - NULL (None) остаётся None и равен только None
    - bool помечается отдельно: TRUE не равен 1
    """
    if isinstance(value, bool):
        return ("bool", value)
    if value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            return value
        try:
            return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)
        except InvalidOperation:
            return value
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (list, tuple)):
        return tuple(normalize_value(v) for v in value)
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def _row_key(row: Dict[str, Any], columns: Sequence[str]) -> Tuple[Hashable, ...]:
    return tuple(normalize_value(row.get(column)) for column in columns)


class ResultComparator:
    """Решает pass/fail/error для пары (Example, ExecutionResult)."""

    def compare(self, example: Example, result: ExecutionResult) -> ComparisonOutcome:
        """
        Сравнивает результат выполнения с ожиданиями примера.

        Args:
            example: Пример из каталога
            result: Результат его выполнения

        Returns:
            ComparisonOutcome
        """
        if result.error is not None:
            return ComparisonOutcome(example.id, Status.ERROR, note=result.error)

        # Пример только с подготовкой: достаточно, что она выполнилась
        if not example.query_statement:
            return ComparisonOutcome(example.id, Status.PASS)

        expected_columns = example.columns
        actual_columns = result.columns or (
            list(result.actual_rows[0].keys()) if result.actual_rows else []
        )
        if set(expected_columns) != set(actual_columns):
            return ComparisonOutcome(
                example.id,
                Status.FAIL,
                note=(
                    f"Column mismatch: expected {sorted(expected_columns)}, "
                    f"got {sorted(actual_columns)}"
                ),
            )

        if example.order_sensitive:
            return self._compare_ordered(example, result.actual_rows, expected_columns)
        return self._compare_unordered(example, result.actual_rows, expected_columns)

    def _compare_ordered(
        self,
        example: Example,
        actual_rows: List[Dict[str, Any]],
        columns: List[str],
    ) -> ComparisonOutcome:
        expected_rows = example.expected_rows
        mismatches = []
        for index in range(max(len(expected_rows), len(actual_rows))):
            expected = expected_rows[index] if index < len(expected_rows) else None
            actual = actual_rows[index] if index < len(actual_rows) else None
            if expected is None or actual is None or (
                _row_key(expected, columns) != _row_key(actual, columns)
            ):
                mismatches.append(Mismatch(index, expected, actual))

        if not mismatches:
            return ComparisonOutcome(example.id, Status.PASS)

        if self._is_unbroken_tie(example, len(actual_rows), mismatches, columns):
            return ComparisonOutcome(
                example.id, Status.ERROR, mismatches, note=NON_DETERMINISTIC_ORDER
            )
        return ComparisonOutcome(example.id, Status.FAIL, mismatches)

    @staticmethod
    def _is_unbroken_tie(
        example: Example,
        actual_count: int,
        mismatches: List[Mismatch],
        columns: List[str],
    ) -> bool:
        """
        Расхождения объясняются только порядком строк с равным ключом сортировки.

        Для каждой группы равных ключей среди расхождений фактические строки
        должны быть перестановкой ожидаемых. Если запрос обрезан LIMIT/FETCH,
        группа на границе отсечения может содержать другую строку с тем же
        ключом. Тогда порядок между ними запрос не задаёт (ORDER BY без
        второго ключа), и ни pass, ни fail честно поставить нельзя.
        """
        sort_columns = example.sort_columns
        if not sort_columns or not set(sort_columns) <= set(columns):
            return False
        if actual_count != len(example.expected_rows):
            return False

        groups: Dict[Tuple[Hashable, ...], Tuple[Counter, Counter]] = {}
        for m in mismatches:
            key = _row_key(m.expected, sort_columns)
            if key != _row_key(m.actual, sort_columns):
                return False
            expected_rows, actual_rows = groups.setdefault(key, (Counter(), Counter()))
            expected_rows[_row_key(m.expected, columns)] += 1
            actual_rows[_row_key(m.actual, columns)] += 1

        boundary = _row_key(example.expected_rows[-1], sort_columns)
        truncated = has_top_level_limit(example.query_statement)
        for key, (expected_rows, actual_rows) in groups.items():
            if expected_rows == actual_rows:
                continue
            if not (truncated and key == boundary):
                return False
        return True

    def _compare_unordered(
        self,
        example: Example,
        actual_rows: List[Dict[str, Any]],
        columns: List[str],
    ) -> ComparisonOutcome:
        expected_keys = [_row_key(row, columns) for row in example.expected_rows]
        actual_keys = [_row_key(row, columns) for row in actual_rows]

        missing = Counter(expected_keys) - Counter(actual_keys)
        extra = Counter(actual_keys) - Counter(expected_keys)
        if not missing and not extra:
            return ComparisonOutcome(example.id, Status.PASS)

        mismatches = []
        for key, row in zip(expected_keys, example.expected_rows):
            if missing[key] > 0:
                missing[key] -= 1
                mismatches.append(Mismatch(None, row, None))
        for key, row in zip(actual_keys, actual_rows):
            if extra[key] > 0:
                extra[key] -= 1
                mismatches.append(Mismatch(None, None, row))
        return ComparisonOutcome(example.id, Status.FAIL, mismatches)


def compare_all(
    examples: Sequence[Example],
    results: Sequence[ExecutionResult],
) -> List[ComparisonOutcome]:
    """Сравнивает результаты с примерами попарно (порядок сохраняется)."""
    if len(examples) != len(results):
        raise ValueError(
            f"Got {len(results)} results for {len(examples)} examples"
        )
    comparator = ResultComparator()
    return [comparator.compare(e, r) for e, r in zip(examples, results)]
