"""
Извлечение примеров из markdown-уроков.

Каждый заголовок уровня ## или ### начинает раздел. В разделе берутся
блоки ```sql``` и таблица после строки "Expected Result":

    ### Count inactive employees {#count-inactive}

    ```sql
    SELECT COUNT(*) AS inactive_count FROM employees WHERE is_active = FALSE;
    ```

    **Expected Result:**

    | inactive_count |
    |----------------|
    | 3              |
"""

import re
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .errors import RegistryLoadError
from .examples_dataset import Example, example_from_dict
from .sql_text import returns_rows, split_sql_script


_HEADING = re.compile(r"^#{2,3}\s+(?P<title>.+?)\s*$")
_EXPLICIT_ID = re.compile(r"\s*\{#(?P<id>[\w.-]+)\}\s*$")
_FENCE = re.compile(r"^\s*```\s*(?P<lang>\w*)\s*$")
_EXPECTED = re.compile(r"expected\s+result", re.IGNORECASE)
_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")
_INTEGER = re.compile(r"^-?\d+$")
_DECIMAL = re.compile(r"^-?\d+\.\d+$")


def slugify(title: str) -> str:
    """'5. Top 3 highest salaries' -> '5-top-3-highest-salaries'."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")


def parse_cell(text: str) -> Any:
    """Значение ячейки таблицы: NULL, TRUE/FALSE, число или текст."""
    value = text.strip()
    if len(value) >= 2 and value[0] == value[-1] == "`":
        value = value[1:-1]
    upper = value.upper()
    if upper == "NULL":
        return None
    if upper in ("TRUE", "FALSE"):
        return upper == "TRUE"
    if _INTEGER.match(value):
        return int(value)
    if _DECIMAL.match(value):
        return Decimal(value)
    return value


def _split_row(line: str) -> List[str]:
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|"):
        line = line[:-1]
    return [cell.strip() for cell in line.split("|")]


def parse_table(lines: List[str]) -> List[Dict[str, Any]]:
    """
    Разбирает pipe-таблицу markdown в список словарей.

    Args:
        lines: Строки таблицы (заголовок, разделитель, данные)
    """
    if not lines:
        return []
    header = _split_row(lines[0])
    records = []
    for line in lines[1:]:
        cells = _split_row(line)
        if all(_SEPARATOR_CELL.match(cell) for cell in cells if cell):
            continue
        if len(cells) != len(header):
            raise ValueError(
                f"Table row has {len(cells)} cells, header has {len(header)}: {line.strip()}"
            )
        records.append({column: parse_cell(cell) for column, cell in zip(header, cells)})
    return records


class _Section:
    def __init__(self, title: str):
        match = _EXPLICIT_ID.search(title)
        if match:
            self.id = match.group("id")
            self.title = title[:match.start()].strip()
        else:
            self.id = slugify(title)
            self.title = title
        self.sql_blocks: List[str] = []
        self.table_lines: List[str] = []
        self.expecting_table = False

    def to_dict(self) -> Optional[Dict[str, Any]]:
        statements: List[str] = []
        for block in self.sql_blocks:
            statements.extend(split_sql_script(block))
        if not statements:
            return None

        query = ""
        if returns_rows(statements[-1]):
            query = statements.pop()
        return {
            "id": self.id,
            "title": self.title,
            "setup_statements": statements,
            "query_statement": query,
            "expected_rows": parse_table(self.table_lines),
        }


def parse_markdown(text: str) -> List[Example]:
    """
    Извлекает примеры из текста markdown-урока.

    Разделы без SQL пропускаются. Таблица берётся первая после
    строки "Expected Result" в пределах раздела.

    Returns:
        Список примеров в порядке следования разделов
    """
    sections: List[_Section] = []
    current: Optional[_Section] = None
    in_fence = False
    fence_is_sql = False
    block: List[str] = []

    for line in text.splitlines():
        fence = _FENCE.match(line)
        if fence:
            if in_fence:
                if fence_is_sql and current is not None:
                    current.sql_blocks.append("\n".join(block))
                in_fence = False
                block = []
            else:
                in_fence = True
                fence_is_sql = fence.group("lang").lower() in ("sql", "postgresql", "psql")
            continue
        if in_fence:
            block.append(line)
            continue

        heading = _HEADING.match(line)
        if heading:
            current = _Section(heading.group("title"))
            sections.append(current)
            continue
        if current is None:
            continue

        if _EXPECTED.search(line) and not current.table_lines:
            current.expecting_table = True
        elif current.expecting_table and line.strip().startswith("|"):
            current.table_lines.append(line)
        elif current.expecting_table and current.table_lines:
            current.expecting_table = False

    examples = []
    for section in sections:
        try:
            item = section.to_dict()
        except ValueError as e:
            raise RegistryLoadError(f"Section '{section.title}': {e}") from e
        if item is not None:
            examples.append(example_from_dict(item))
    return examples
