#!/usr/bin/env python3
"""
Скрипт для проверки учебных SQL-примеров на живой базе данных.

Использование:
    run-examples --database-url postgresql://postgres@localhost/practice
    или
    python -m tutorial_examples.run_examples --database-url sqlite:///practice.db --only count-inactive
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from tabulate import tabulate

from .comparator import compare_all
from .config import get_catalog_path, get_database_url, get_log_level, get_timeout
from .errors import DatabaseConnectionError, NotFoundError, RegistryLoadError
from .examples_dataset import ExampleRegistry
from .logger import configure_logging
from .report import ReportGenerator
from .session_executor import SessionExecutor, detect_db_type


EXIT_ERROR = 2


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run-examples",
        description="Проверка учебных SQL-примеров: выполнение и сравнение с ожидаемыми результатами",
    )

    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="URL базы данных (если не указан, используется DATABASE_URL)",
    )

    parser.add_argument(
        "--only",
        type=str,
        action="append",
        default=None,
        metavar="ID",
        help="Выполнить только указанный пример (можно повторять)",
    )

    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Лимит времени на одно SQL-выражение в секундах (по умолчанию EXAMPLES_TIMEOUT)",
    )

    parser.add_argument(
        "--catalog",
        type=str,
        default=None,
        help="Файл или директория каталога примеров (JSON/markdown)",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Путь к файлу для сохранения отчёта (JSON)",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="Показать примеры каталога и выйти",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Уровень логирования (по умолчанию LOG_LEVEL или WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Писать логи в формате JSON (одна строка на запись)",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Подробный вывод",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()  # DATABASE_URL и прочие настройки из .env

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or get_log_level(), json_format=args.json_logs)

    try:
        timeout = args.timeout if args.timeout is not None else get_timeout()
    except ValueError as e:
        print(f"Ошибка конфигурации: {e}", file=sys.stderr)
        return EXIT_ERROR

    # Каталог проверяется до любого обращения к БД
    catalog_path = Path(args.catalog) if args.catalog else get_catalog_path()
    registry = ExampleRegistry(catalog_path)
    try:
        examples = registry.select(args.only)
    except (RegistryLoadError, NotFoundError) as e:
        print(f"Ошибка загрузки каталога: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.list:
        rows = [[example.id, example.title, "yes" if example.order_sensitive else "no"]
                for example in examples]
        print(tabulate(rows, headers=["example", "title", "ordered"], tablefmt="github"))
        return 0

    database_url = args.database_url or get_database_url()
    if not database_url:
        print("Не указан URL базы данных: используйте --database-url или DATABASE_URL",
              file=sys.stderr)
        return EXIT_ERROR
    try:
        detect_db_type(database_url)
    except ValueError as e:
        print(f"Ошибка конфигурации: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"Каталог: {catalog_path} ({len(examples)} примеров)")
    if timeout:
        print(f"Таймаут выражения: {timeout}s")
    print()

    try:
        with SessionExecutor(database_url, timeout=timeout) as executor:
            results = executor.run_all(examples, verbose=args.verbose)
    except (DatabaseConnectionError, ImportError) as e:
        print(f"Ошибка подключения к базе данных: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("\n\nПроверка прервана пользователем", file=sys.stderr)
        return EXIT_ERROR

    outcomes = compare_all(examples, results)
    report = ReportGenerator(outcomes, titles={e.id: e.title for e in examples})
    print(report.render(verbose=args.verbose))

    if args.output:
        output_path = Path(args.output)
        report.save_json(output_path)
        print(f"\nОтчёт сохранён в {output_path}")

    return report.exit_code()


if __name__ == "__main__":
    sys.exit(main())
