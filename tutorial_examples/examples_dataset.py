"""
Модуль для загрузки каталога учебных примеров (Example Registry).
"""

import json
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .config import DEFAULT_CATALOG_DIR
from .errors import NotFoundError, RegistryLoadError
from .sql_text import has_top_level_order_by, order_by_columns


CATALOG_SUFFIXES = (".json", ".md", ".markdown")


@dataclass
class Example:
    """Один учебный пример: подготовка, проверяемый запрос и ожидаемые строки."""
    id: str
    setup_statements: List[str] = field(default_factory=list)
    query_statement: str = ""
    expected_rows: List[Dict[str, Any]] = field(default_factory=list)
    order_sensitive: bool = False
    title: str = ""
    sort_columns: List[str] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        """Колонки ожидаемого результата (в порядке первой строки)."""
        return list(self.expected_rows[0].keys()) if self.expected_rows else []


def _expected_rows_from(raw: Any, example_id: str) -> List[Dict[str, Any]]:
    """
    Приводит ожидаемый результат к списку словарей.

    Поддерживаются два вида записи:
        [{"col": value, ...}, ...]
        {"columns": ["col", ...], "rows": [[value, ...], ...]}
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        columns = raw.get("columns")
        rows = raw.get("rows", [])
        if not isinstance(columns, list) or not isinstance(rows, list):
            raise RegistryLoadError(
                f"Example '{example_id}': expected_rows needs 'columns' and 'rows' lists"
            )
        records = []
        for index, row in enumerate(rows):
            if not isinstance(row, list) or len(row) != len(columns):
                raise RegistryLoadError(
                    f"Example '{example_id}': row {index} does not match columns {columns}"
                )
            records.append(dict(zip(columns, row)))
        return records
    if isinstance(raw, list):
        if not all(isinstance(row, dict) for row in raw):
            raise RegistryLoadError(
                f"Example '{example_id}': expected_rows must be a list of objects"
            )
        return [dict(row) for row in raw]
    raise RegistryLoadError(
        f"Example '{example_id}': unsupported expected_rows format: {type(raw).__name__}"
    )


def _statements_from(raw: Any, example_id: str) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw] if raw.strip() else []
    if isinstance(raw, list) and all(isinstance(s, str) for s in raw):
        return [s for s in raw if s.strip()]
    raise RegistryLoadError(
        f"Example '{example_id}': setup statements must be a string or a list of strings"
    )


def example_from_dict(item: Dict[str, Any]) -> Example:
    """
    Создаёт Example из записи каталога.

    Если order_sensitive не задан явно, он определяется по наличию
    внешнего ORDER BY в запросе; sort_columns - по колонкам этого ORDER BY.
    """
    if not isinstance(item, dict):
        raise RegistryLoadError(f"Catalog entry must be an object, got {type(item).__name__}")

    example_id = item.get("id")
    if not isinstance(example_id, str) or not example_id.strip():
        raise RegistryLoadError(f"Catalog entry without a valid 'id': {item!r}")

    query = item.get("query_statement", item.get("query")) or ""
    if not isinstance(query, str):
        raise RegistryLoadError(f"Example '{example_id}': query must be a string")

    order_sensitive = item.get("order_sensitive")
    if order_sensitive is None:
        order_sensitive = has_top_level_order_by(query)
    elif not isinstance(order_sensitive, bool):
        raise RegistryLoadError(f"Example '{example_id}': order_sensitive must be a boolean")

    sort_columns = item.get("sort_columns")
    if sort_columns is None:
        sort_columns = order_by_columns(query) if order_sensitive else []

    return Example(
        id=example_id.strip(),
        setup_statements=_statements_from(
            item.get("setup_statements", item.get("setup")), example_id
        ),
        query_statement=query.strip(),
        expected_rows=_expected_rows_from(item.get("expected_rows"), example_id),
        order_sensitive=order_sensitive,
        title=item.get("title", ""),
        sort_columns=list(sort_columns),
    )


def validate_example(example: Example) -> None:
    """Проверяет согласованность определения примера."""
    if example.query_statement and not example.expected_rows:
        raise RegistryLoadError(
            f"Example '{example.id}': query_statement is set but expected_rows is empty"
        )
    if example.expected_rows and not example.query_statement:
        raise RegistryLoadError(
            f"Example '{example.id}': expected_rows given without query_statement"
        )
    columns = set(example.columns)
    for index, row in enumerate(example.expected_rows):
        if set(row.keys()) != columns:
            raise RegistryLoadError(
                f"Example '{example.id}': expected row {index} has columns "
                f"{sorted(row.keys())}, expected {sorted(columns)}"
            )


class ExampleRegistry:
    """Каталог примеров: фиксированная упорядоченная последовательность Example."""

    def __init__(self, catalog_path: Optional[Union[str, Path]] = None):
        """
        Args:
            catalog_path: JSON/markdown файл или директория с такими файлами
                          (если None, используется встроенный каталог)
        """
        if catalog_path is None:
            catalog_path = DEFAULT_CATALOG_DIR
        self.catalog_path = Path(catalog_path)
        self._examples: Optional["OrderedDict[str, Example]"] = None

    @classmethod
    def from_examples(cls, examples: Iterable[Example]) -> "ExampleRegistry":
        """Создаёт реестр из уже готовых примеров (без чтения файлов)."""
        registry = cls.__new__(cls)
        registry.catalog_path = None
        registry._examples = cls._index(list(examples))
        return registry

    @staticmethod
    def _index(examples: List[Example]) -> "OrderedDict[str, Example]":
        indexed: "OrderedDict[str, Example]" = OrderedDict()
        for example in examples:
            if example.id in indexed:
                raise RegistryLoadError(f"Duplicate example id: {example.id}")
            validate_example(example)
            indexed[example.id] = example
        return indexed

    def catalog_files(self) -> List[Path]:
        """Файлы каталога в порядке чтения (по имени файла)."""
        if not self.catalog_path.exists():
            raise RegistryLoadError(f"Catalog not found: {self.catalog_path}")
        if self.catalog_path.is_dir():
            files = sorted(
                p for p in self.catalog_path.iterdir()
                if p.is_file() and p.suffix.lower() in CATALOG_SUFFIXES
            )
            if not files:
                raise RegistryLoadError(f"No catalog files in {self.catalog_path}")
            return files
        return [self.catalog_path]

    def _read_file(self, path: Path) -> List[Example]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise RegistryLoadError(f"Cannot read catalog file {path}: {e}") from e

        if path.suffix.lower() in (".md", ".markdown"):
            from .markdown_catalog import parse_markdown
            return parse_markdown(text)

        try:
            data = json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as e:
            raise RegistryLoadError(f"Invalid JSON in {path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("examples")
        if not isinstance(data, list):
            raise RegistryLoadError(
                f"{path}: expected a list of examples or an object with 'examples'"
            )
        return [example_from_dict(item) for item in data]

    def load(self) -> List[Example]:
        """
        Загружает и проверяет каталог.

        Returns:
            Упорядоченный список примеров

        Raises:
            RegistryLoadError: дубликаты id, пустые ожидания при непустом запросе,
                               некорректные файлы каталога
        """
        if self._examples is None:
            examples: List[Example] = []
            for path in self.catalog_files():
                examples.extend(self._read_file(path))
            self._examples = self._index(examples)
        return list(self._examples.values())

    def get(self, example_id: str) -> Example:
        """Возвращает пример по id или бросает NotFoundError."""
        if self._examples is None:
            self.load()
        try:
            return self._examples[example_id]
        except KeyError:
            raise NotFoundError(example_id) from None

    def ids(self) -> List[str]:
        return [example.id for example in self.load()]

    def select(self, only: Optional[Sequence[str]] = None) -> List[Example]:
        """
        Подмножество примеров в порядке каталога.

        Args:
            only: id примеров (если None или пусто, возвращаются все)
        """
        examples = self.load()
        if not only:
            return examples
        wanted = set(only)
        for example_id in only:
            self.get(example_id)
        return [example for example in examples if example.id in wanted]

    def __len__(self) -> int:
        return len(self.load())


def load_example_registry(catalog_path: Optional[str] = None) -> ExampleRegistry:
    """
    Удобная функция: создаёт реестр и сразу загружает каталог.

    Args:
        catalog_path: Путь к каталогу (если None, используется встроенный)

    Returns:
        ExampleRegistry instance
    """
    registry = ExampleRegistry(catalog_path)
    registry.load()
    return registry
