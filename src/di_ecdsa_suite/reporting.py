"""
Results matrix reporting.

Each reportable test is annotated with a cell (row = test title, column =
implementation and key type). Outcomes are aggregated per test class into
a matrix that is saved as JSON and rendered with rich.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from rich.table import Table

CELL_PROPERTY = "cell"

# worst outcome wins when several tests land in one cell
OUTCOME_SEVERITY = {"skipped": 0, "passed": 1, "failed": 2}

OUTCOME_STYLES = {
    "passed": "[green]passed[/]",
    "failed": "[red]failed[/]",
    "skipped": "[yellow]skipped[/]",
}


def build_result_cell(name: str, key_type: str, test_title: str) -> dict[str, str]:
    """Build a result cell for the matrix.

    Args:
        name: The name of the implementation.
        key_type: The key type being tested (e.g. "P-256").
        test_title: The title of the test.

    Returns:
        ``{"columnId": "<name>: <key_type>", "rowId": <test_title>}``.
    """
    return {"columnId": f"{name}: {key_type}", "rowId": test_title}


def _first_line(doc: str | None) -> str | None:
    if not doc or not doc.strip():
        return None
    return doc.strip().splitlines()[0].strip()


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def node_title(node: Any) -> str:
    """Human title of a test item or class.

    The first docstring line, with ``{param}`` placeholders filled from
    string parametrization; the test name otherwise.
    """
    obj = getattr(node, "function", None) or getattr(node, "obj", None) or node
    title = _first_line(getattr(obj, "__doc__", None))
    if title is None:
        return (
            getattr(node, "originalname", None)
            or getattr(node, "name", None)
            or getattr(node, "__name__", str(node))
        )
    callspec = getattr(node, "callspec", None)
    if callspec is not None:
        params = {k: v for k, v in callspec.params.items() if isinstance(v, str)}
        title = title.format_map(_KeepMissing(params))
    return title


def _get_test_node(context: Any) -> pytest.Item:
    if isinstance(context, pytest.Item):
        # the test item itself
        return context
    node = getattr(context, "node", None)
    if isinstance(node, pytest.Item):
        # a function-scoped fixture request
        return node
    raise TypeError("Could not find test definition in test context")


def record_cell(item: pytest.Item, cell: dict[str, str]) -> None:
    """Attach a cell to a test item, replacing any earlier one."""
    item.user_properties[:] = [
        (key, value) for key, value in item.user_properties if key != CELL_PROPERTY
    ]
    item.user_properties.append((CELL_PROPERTY, cell))


def get_cell(item: Any) -> dict[str, str] | None:
    """The cell recorded on a test item or test report."""
    for key, value in getattr(item, "user_properties", []):
        if key == CELL_PROPERTY:
            return value
    return None


def annotate_reportable_test(
    context: Any,
    implementation_name: str,
    key_type: str,
) -> dict[str, str]:
    """Annotate the current test with its result cell.

    Args:
        context: The test item, or a function-scoped fixture ``request``.
        implementation_name: Column implementation name.
        key_type: Column key type.

    Raises:
        TypeError: If ``context`` does not lead to a test item.
    """
    item = _get_test_node(context)
    cell = build_result_cell(
        name=implementation_name,
        key_type=key_type,
        test_title=node_title(item),
    )
    record_cell(item, cell)
    return cell


def get_column_name_for_test_category(test_category: str) -> str:
    if test_category == "verifiers":
        return "Verifier"
    if test_category == "issuers":
        return "Issuer"
    raise ValueError('test_category must be "verifiers" or "issuers"')


def setup_reportable_test_suite(context: Any, name: str = "Implementation") -> Any:
    """Mark a test class as a reportable results matrix."""
    context.matrix = True
    context.report = True
    context.row_label = "Test Name"
    context.column_label = name
    context.implemented = []
    return context


def setup_row(item: pytest.Item) -> dict[str, str]:
    """Annotate a test with its parent's title as the column."""
    cell = {"columnId": node_title(item.parent), "rowId": node_title(item)}
    record_cell(item, cell)
    return cell


@dataclass
class ReportMatrix:
    """Outcomes of one reportable test class."""

    title: str
    row_label: str = "Test Name"
    column_label: str = "Implementation"
    columns: list[str] = field(default_factory=list)
    rows: dict[str, dict[str, str]] = field(default_factory=dict)

    def record(self, cell: dict[str, str], outcome: str) -> None:
        column, row = cell["columnId"], cell["rowId"]
        if column not in self.columns:
            self.columns.append(column)
        cells = self.rows.setdefault(row, {})
        previous = cells.get(column)
        if previous is None or OUTCOME_SEVERITY[outcome] > OUTCOME_SEVERITY[previous]:
            cells[column] = outcome

    def counts(self) -> dict[str, int]:
        counts = {outcome: 0 for outcome in OUTCOME_SEVERITY}
        for cells in self.rows.values():
            for outcome in cells.values():
                counts[outcome] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "rowLabel": self.row_label,
            "columnLabel": self.column_label,
            "columns": self.columns,
            "rows": [{"id": row, "cells": cells} for row, cells in self.rows.items()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportMatrix:
        return cls(
            title=data["title"],
            row_label=data.get("rowLabel", "Test Name"),
            column_label=data.get("columnLabel", "Implementation"),
            columns=list(data.get("columns", [])),
            rows={row["id"]: dict(row["cells"]) for row in data.get("rows", [])},
        )


@dataclass
class Report:
    """All matrices of a test session."""

    matrices: dict[str, ReportMatrix] = field(default_factory=dict)

    def matrix_for(self, context: Any) -> ReportMatrix:
        """The matrix of a reportable test class, created on first use."""
        title = getattr(context, "report_title", None) or node_title(context)
        if title not in self.matrices:
            self.matrices[title] = ReportMatrix(
                title=title,
                row_label=getattr(context, "row_label", "Test Name"),
                column_label=getattr(context, "column_label", "Implementation"),
            )
        return self.matrices[title]

    def to_dict(self) -> dict[str, Any]:
        return {"matrices": [m.to_dict() for m in self.matrices.values()]}

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> Report:
        with path.open() as f:
            data = json.load(f)
        matrices = [ReportMatrix.from_dict(m) for m in data.get("matrices", [])]
        return cls({m.title: m for m in matrices})


def render_report(report: Report, console: Console | None = None) -> None:
    """Print every matrix as a rich table."""
    console = console or Console()
    if not report.matrices:
        console.print("[dim]No reportable results[/]")
        return

    for matrix in report.matrices.values():
        table = Table(title=matrix.title)
        table.add_column(matrix.row_label, style="bold")
        for column in matrix.columns:
            table.add_column(f"{matrix.column_label}\n{column}", justify="center")
        for row, cells in matrix.rows.items():
            table.add_row(
                row,
                *(OUTCOME_STYLES.get(cells.get(c, ""), "[dim]-[/]") for c in matrix.columns),
            )
        console.print(table)

        counts = matrix.counts()
        console.print(
            f"  [green]{counts['passed']} passed[/]  "
            f"[red]{counts['failed']} failed[/]  "
            f"[yellow]{counts['skipped']} skipped[/]\n"
        )
