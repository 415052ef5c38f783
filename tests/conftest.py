import json

import pytest

from tutorial_examples.examples_dataset import Example


EMPLOYEES_DDL = """
CREATE TABLE employees (
  employee_id INTEGER PRIMARY KEY,
  first_name  TEXT NOT NULL,
  last_name   TEXT NOT NULL,
  department  TEXT,
  salary      NUMERIC(10,2) NOT NULL,
  hire_date   DATE NOT NULL,
  is_active   BOOLEAN DEFAULT TRUE
)
"""

EMPLOYEES_INSERT = """
INSERT INTO employees (first_name, last_name, department, salary, hire_date, is_active)
VALUES
  ('John', 'One',   NULL,      35340.00, '2023-12-12', TRUE),
  ('John', 'Two',   'IT',      54340.00, '2023-12-09', FALSE),
  ('John', 'Three', 'Finance', 75020.00, '2022-05-12', TRUE),
  ('John', 'Four',  'IT',      54340.00, '2023-10-01', TRUE),
  ('John', 'Five',  'Finance', 30000.00, '2023-12-12', FALSE),
  ('John', 'Six',   'HR',      30000.00, '2024-12-12', TRUE),
  ('John', 'Seven', 'HR',      50000.00, '2021-12-12', FALSE),
  ('John', 'Eight', 'Sales',   64340.00, '2020-12-12', TRUE)
"""


@pytest.fixture
def sqlite_url():
    """In-memory SQLite: живёт ровно столько, сколько открыта сессия."""
    return "sqlite://"


@pytest.fixture
def sqlite_file_url(tmp_path):
    return f"sqlite:///{tmp_path / 'practice.db'}"


@pytest.fixture
def employee_examples():
    """Небольшой каталог в духе урока, совместимый с SQLite."""
    return [
        Example(
            id="create-employees-table",
            setup_statements=["DROP TABLE IF EXISTS employees", EMPLOYEES_DDL],
        ),
        Example(
            id="insert-sample-data",
            setup_statements=[EMPLOYEES_INSERT],
            query_statement="SELECT COUNT(*) AS total FROM employees",
            expected_rows=[{"total": 8}],
        ),
        Example(
            id="count-inactive",
            query_statement=(
                "SELECT COUNT(*) AS inactive_count FROM employees WHERE is_active = FALSE"
            ),
            expected_rows=[{"inactive_count": 3}],
        ),
        Example(
            id="group-having",
            query_statement=(
                "SELECT department, AVG(salary) AS average_salary FROM employees "
                "GROUP BY department HAVING AVG(salary) > 60000.00"
            ),
            expected_rows=[{"department": "Sales", "average_salary": 64340.00}],
        ),
        Example(
            id="deactivate-old-hires",
            setup_statements=[
                "UPDATE employees SET is_active = FALSE WHERE hire_date < '2022-01-01'"
            ],
            query_statement=(
                "SELECT employee_id, last_name FROM employees "
                "WHERE is_active = FALSE ORDER BY employee_id"
            ),
            expected_rows=[
                {"employee_id": 2, "last_name": "Two"},
                {"employee_id": 5, "last_name": "Five"},
                {"employee_id": 7, "last_name": "Seven"},
                {"employee_id": 8, "last_name": "Eight"},
            ],
            order_sensitive=True,
            sort_columns=["employee_id"],
        ),
    ]


@pytest.fixture
def write_catalog(tmp_path):
    """Пишет JSON-каталог во временную директорию и возвращает путь к файлу."""
    def _write(entries, name="catalog.json"):
        path = tmp_path / name
        path.write_text(json.dumps(entries), encoding="utf-8")
        return path
    return _write
