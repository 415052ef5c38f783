"""
Проверка учебных SQL-примеров: выполнение на живой БД и сравнение с ожидаемыми результатами.
"""

from .examples_dataset import Example, ExampleRegistry, load_example_registry
from .session_executor import ExecutionResult, SessionExecutor
from .comparator import ComparisonOutcome, Mismatch, ResultComparator, Status, compare_all
from .report import ReportGenerator, ReportSummary
from .errors import (
    ComparisonMismatch,
    DatabaseConnectionError,
    NotFoundError,
    RegistryLoadError,
    StatementExecutionError,
    StatementTimeoutError,
)

__all__ = [
    "Example",
    "ExampleRegistry",
    "load_example_registry",
    "ExecutionResult",
    "SessionExecutor",
    "ComparisonOutcome",
    "Mismatch",
    "ResultComparator",
    "Status",
    "compare_all",
    "ReportGenerator",
    "ReportSummary",
    "ComparisonMismatch",
    "DatabaseConnectionError",
    "NotFoundError",
    "RegistryLoadError",
    "StatementExecutionError",
    "StatementTimeoutError",
]
