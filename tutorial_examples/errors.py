"""
Иерархия ошибок прогона учебных примеров.

Ошибки каталога и подключения прерывают весь прогон,
ошибки отдельных примеров записываются в результат и прогон продолжается.
"""

from typing import Any, Optional


class ExampleRunnerError(Exception):
    """Базовая ошибка пакета."""


class RegistryLoadError(ExampleRunnerError):
    """Каталог примеров некорректен (дубликаты id, пустые ожидания и т.п.)."""


class NotFoundError(ExampleRunnerError, KeyError):
    """Пример с указанным id отсутствует в каталоге."""

    def __init__(self, example_id: str):
        super().__init__(f"Example not found: {example_id}")
        self.example_id = example_id

    def __str__(self) -> str:
        return f"Example not found: {self.example_id}"


class DatabaseConnectionError(ExampleRunnerError):
    """Не удалось подключиться к базе данных."""


class StatementExecutionError(ExampleRunnerError):
    """SQL-выражение завершилось ошибкой."""

    def __init__(self, message: str, statement: Optional[str] = None):
        super().__init__(message)
        self.statement = statement


class StatementTimeoutError(StatementExecutionError):
    """SQL-выражение превысило отведённое время."""


class ComparisonMismatch(ExampleRunnerError):
    """Фактический результат не совпал с ожидаемым."""

    def __init__(self, outcome: Any):
        super().__init__(
            f"Example '{outcome.example_id}' finished with status "
            f"'{outcome.status.value}'"
        )
        self.outcome = outcome
