"""
Вспомогательные функции для работы с текстом SQL-скриптов.

Это не парсер SQL: функции только убирают комментарии, режут скрипт
на выражения по ';' и смотрят на внешний ORDER BY запроса.
"""

import re
from typing import List


_ORDER_BY = re.compile(r"\bORDER\s+BY\b", re.IGNORECASE)
_LIMIT = re.compile(r"\b(LIMIT|FETCH)\b", re.IGNORECASE)
_CLAUSE_END = re.compile(
    r"\b(LIMIT|OFFSET|FETCH|FOR\s+UPDATE|FOR\s+SHARE)\b", re.IGNORECASE
)
_DIRECTION = re.compile(
    r"(\s+NULLS\s+(FIRST|LAST))?(\s+(ASC|DESC))?(\s+NULLS\s+(FIRST|LAST))?\s*$",
    re.IGNORECASE,
)
_IDENTIFIER = re.compile(r'^(?:[A-Za-z_][\w$]*|"[^"]+")(?:\.(?:[A-Za-z_][\w$]*|"[^"]+"))*$')
_NAME_PART = re.compile(r'"[^"]+"|[A-Za-z_][\w$]*')
_ROW_RETURNING = ("select", "with", "values", "table", "show", "explain")


def strip_comments(sql: str) -> str:
    """
    Удаляет комментарии -- и /* */, не трогая текст внутри кавычек.
    """
    out: List[str] = []
    i = 0
    n = len(sql)
    quote = None
    while i < n:
        char = sql[i]
        if quote:
            out.append(char)
            if char == quote:
                quote = None
            i += 1
            continue
        if char in ("'", '"'):
            quote = char
            out.append(char)
            i += 1
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            if end == -1:
                break
            out.append("\n")
            i = end + 1
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            out.append(" ")
            if end == -1:
                break
            i = end + 2
        else:
            out.append(char)
            i += 1
    return "".join(out)


def normalize_sql(sql: str) -> str:
    """
    Нормализует SQL для вывода и сравнения: без комментариев,
    с одиночными пробелами, без завершающей ';'.
    """
    if not sql:
        return ""
    sql = strip_comments(sql)
    sql = re.sub(r"\s+", " ", sql)
    return sql.strip().rstrip(";").strip()


def split_sql_script(script: str) -> List[str]:
    """
    Разбивает скрипт на отдельные выражения.

    Точка с запятой внутри строковых литералов и идентификаторов
    в кавычках разделителем не считается.

    Args:
        script: Текст SQL-скрипта (может содержать комментарии)

    Returns:
        Список выражений без завершающих ';'
    """
    text = strip_comments(script or "")
    statements: List[str] = []
    current: List[str] = []
    in_single_quote = False
    in_double_quote = False
    for char in text:
        if char == "'" and not in_double_quote:
            in_single_quote = not in_single_quote
        elif char == '"' and not in_single_quote:
            in_double_quote = not in_double_quote
        elif char == ";" and not in_single_quote and not in_double_quote:
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        statements.append(tail)
    return statements


def returns_rows(statement: str) -> bool:
    """True, если выражение является запросом, возвращающим строки."""
    words = normalize_sql(statement).split(" ", 1)
    return bool(words[0]) and words[0].lower() in _ROW_RETURNING


def _top_level_text(sql: str) -> str:
    """
    Возвращает SQL, в котором содержимое скобок и строковых литералов
    заменено пробелами (длина строки сохраняется).
    """
    out: List[str] = []
    depth = 0
    quote = None
    for char in sql:
        if quote:
            out.append(char if char == quote and depth == 0 else " ")
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
            out.append(char if depth == 0 else " ")
        elif char == "(":
            out.append(char if depth == 0 else " ")
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
            out.append(char if depth == 0 else " ")
        else:
            out.append(char if depth == 0 else " ")
    return "".join(out)


def has_top_level_order_by(sql: str) -> bool:
    """
    Есть ли ORDER BY у внешнего запроса.

    ORDER BY внутри подзапросов и оконных функций (в скобках) не считается:
    порядок строк результата он не гарантирует.
    """
    return bool(_ORDER_BY.search(_top_level_text(normalize_sql(sql))))


def has_top_level_limit(sql: str) -> bool:
    """Обрезает ли внешний запрос результат (LIMIT или FETCH FIRST)."""
    return bool(_LIMIT.search(_top_level_text(normalize_sql(sql))))


def order_by_columns(sql: str) -> List[str]:
    """
    Имена колонок внешнего ORDER BY.

    Квалифицированные имена (o.amount) сводятся к последней части,
    имена без кавычек приводятся к нижнему регистру.
    Если хотя бы один ключ - выражение или номер позиции,
    возвращается пустой список: ключ сортировки не известен целиком.
    """
    normalized = normalize_sql(sql)
    top_level = _top_level_text(normalized)
    matches = list(_ORDER_BY.finditer(top_level))
    if not matches:
        return []

    clause_start = matches[-1].end()
    clause = top_level[clause_start:]
    end = _CLAUSE_END.search(clause)
    if end:
        clause = clause[:end.start()]
    # Берём исходный текст: в top_level содержимое кавычек затёрто
    clause = normalized[clause_start:clause_start + len(clause)]

    columns: List[str] = []
    for item in clause.split(","):
        item = _DIRECTION.sub("", item.strip()).strip()
        if not _IDENTIFIER.match(item):
            return []
        last = _NAME_PART.findall(item)[-1]
        if last.startswith('"'):
            columns.append(last.strip('"'))
        else:
            columns.append(last.lower())
    return columns
