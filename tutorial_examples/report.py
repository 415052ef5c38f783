"""
Модуль для формирования отчёта по результатам проверки примеров.
"""

import datetime
import json
from dataclasses import dataclass, asdict
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from .comparator import ComparisonOutcome, Mismatch, Status


MAX_MISMATCHES_SHOWN = 10


@dataclass
class ReportSummary:
    """Сводка по всему прогону."""
    total: int
    passed: int
    failed: int
    errors: int


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    return str(value)


def format_row(row: Optional[Dict[str, Any]]) -> str:
    """{'department': 'Sales', 'n': 1} -> 'department=Sales, n=1'."""
    if row is None:
        return "-"
    return ", ".join(f"{column}={_format_value(value)}" for column, value in row.items())


class ReportGenerator:
    """Строит детерминированный отчёт; состояние не меняет."""

    def __init__(
        self,
        outcomes: List[ComparisonOutcome],
        titles: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            outcomes: Итоги проверки в порядке каталога
            titles: Заголовки примеров по id (для таблицы)
        """
        self.outcomes = list(outcomes)
        self.titles = titles or {}

    def summary(self) -> ReportSummary:
        return ReportSummary(
            total=len(self.outcomes),
            passed=sum(1 for o in self.outcomes if o.status is Status.PASS),
            failed=sum(1 for o in self.outcomes if o.status is Status.FAIL),
            errors=sum(1 for o in self.outcomes if o.status is Status.ERROR),
        )

    def exit_code(self) -> int:
        """0 - все примеры прошли, 2 - есть ошибки, 1 - есть несовпадения."""
        summary = self.summary()
        if summary.errors:
            return 2
        if summary.failed:
            return 1
        return 0

    def _mismatch_table(self, mismatches: List[Mismatch], verbose: bool) -> str:
        shown = mismatches if verbose else mismatches[:MAX_MISMATCHES_SHOWN]
        rows = [
            [
                "-" if m.row_index is None else m.row_index,
                format_row(m.expected),
                format_row(m.actual),
            ]
            for m in shown
        ]
        table = tabulate(rows, headers=["row", "expected", "actual"], tablefmt="github")
        hidden = len(mismatches) - len(shown)
        if hidden > 0:
            table += f"\n... ещё {hidden} расхождений (используйте --verbose)"
        return table

    def render(self, verbose: bool = False) -> str:
        """
        Текст отчёта: таблица статусов, расхождения, сводка.

        Args:
            verbose: Показывать все расхождения, а не первые MAX_MISMATCHES_SHOWN
        """
        lines: List[str] = []

        status_rows = [
            [index, outcome.example_id, self.titles.get(outcome.example_id, ""), outcome.status.value]
            for index, outcome in enumerate(self.outcomes, 1)
        ]
        lines.append(tabulate(
            status_rows,
            headers=["#", "example", "title", "status"],
            tablefmt="github",
        ))

        failed = [o for o in self.outcomes if o.status is not Status.PASS]
        if failed:
            lines.append("")
            lines.append("РАСХОЖДЕНИЯ")
            for outcome in failed:
                lines.append("")
                lines.append(f"[{outcome.status.value.upper()}] {outcome.example_id}")
                if outcome.note:
                    lines.append(f"  {outcome.note}")
                if outcome.mismatches:
                    lines.append(self._mismatch_table(outcome.mismatches, verbose))

        summary = self.summary()
        lines.append("")
        lines.append("=" * 60)
        lines.append("РЕЗУЛЬТАТЫ ПРОВЕРКИ")
        lines.append("=" * 60)
        lines.append(f"Всего примеров:        {summary.total}")
        lines.append(f"Прошли:                {summary.passed}")
        lines.append(f"Несовпадения:          {summary.failed}")
        lines.append(f"Ошибки:                {summary.errors}")
        lines.append("=" * 60)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        outcomes = []
        for outcome in self.outcomes:
            data = asdict(outcome)
            data["status"] = outcome.status.value
            outcomes.append(data)
        return {
            "outcomes": outcomes,
            "summary": asdict(self.summary()),
        }

    def save_json(self, output_path: Path) -> None:
        """
        Сохраняет отчёт в JSON файл.

        Args:
            output_path: Путь к выходному файлу
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2, default=_json_default)
