"""CSV, JSON and console output for report records"""

import csv
import json
from dataclasses import asdict, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.models import ReportResult

console = Console()


def format_value(value: Any) -> str:
    """Flatten a record field into a single delimited-text cell"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.4f}".rstrip('0').rstrip('.') if value != int(value) else str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, dict):
        return ";".join(f"{k}={v}" for k, v in value.items())
    if isinstance(value, (list, tuple, set)):
        return ";".join(format_value(v) for v in value)
    return str(value)


def group_by_type(records: List[Any]) -> Dict[str, List[Any]]:
    """Split records by dataclass type, preserving order"""
    groups: Dict[str, List[Any]] = {}
    for record in records:
        groups.setdefault(type(record).__name__, []).append(record)
    return groups


def export_to_csv(records: List[Any], output_file: str, delimiter: str = ",") -> List[str]:
    """Write records as delimited text; one file per record type

    A single record type is written to ``output_file``. Mixed types go to
    ``<stem>_<TypeName><suffix>`` next to it. Returns the written paths.
    """
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    groups = group_by_type(records)
    if not groups:
        groups = {"": []}

    written = []
    for type_name, group in groups.items():
        path = output_path
        if len(groups) > 1:
            path = output_path.with_name(f"{output_path.stem}_{type_name}{output_path.suffix}")

        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f, delimiter=delimiter)
            if group:
                headers = [field.name for field in fields(group[0])]
                writer.writerow(headers)
                for record in group:
                    writer.writerow([format_value(getattr(record, name)) for name in headers])
        written.append(str(path))

    return written


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj):
        return asdict(obj)
    return str(obj)


def export_to_json(result: ReportResult, output_file: str) -> str:
    """Write the full report result, records and totals included"""
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(asdict(result), f, default=_json_default, indent=2)
    return str(output_path)


def build_table(records: List[Any], columns: Optional[List[str]] = None, title: Optional[str] = None) -> Table:
    """Rich table of records; columns default to every scalar field"""
    table = Table(title=title)
    if not records:
        return table

    available = [field.name for field in fields(records[0])]
    if columns:
        columns = [c for c in columns if c in available] or available
    else:
        columns = [
            name for name in available
            if not isinstance(getattr(records[0], name), dict) and name != 'subscription_id'
        ]

    for name in columns:
        justify = "right" if isinstance(getattr(records[0], name), (int, float)) else "left"
        table.add_column(name.replace('_', ' ').title(), justify=justify, overflow="fold")

    for record in records:
        row = []
        for name in columns:
            value = getattr(record, name)
            if isinstance(value, float):
                row.append(f"{value:,.2f}")
            else:
                row.append(format_value(value))
        table.add_row(*row)

    return table


def display_result(result: ReportResult, columns: Optional[List[str]] = None, limit: Optional[int] = None) -> None:
    """Print records grouped by type, then a totals panel"""

    for type_name, group in group_by_type(result.records).items():
        shown = group[:limit] if limit else group
        console.print(build_table(shown, columns, title=f"{result.report_name}: {type_name}"))
        if limit and len(group) > limit:
            console.print(f"... and {len(group) - limit} more {type_name} records")

    if not result.records:
        console.print("No records matched.", style="yellow")

    display_summary(result)


def display_summary(result: ReportResult) -> None:
    lines = [f"Records: {len(result.records)}", f"Duration: {result.duration_seconds:.2f} seconds"]
    for key, value in result.totals.items():
        if isinstance(value, dict):
            lines.append(f"{key.replace('_', ' ').title()}:")
            lines.extend(f"  {k}: {format_value(v)}" for k, v in value.items())
        else:
            lines.append(f"{key.replace('_', ' ').title()}: {format_value(value)}")
    if result.warnings:
        lines.append(f"Warnings: {len(result.warnings)}")
    if result.errors:
        lines.append(f"Errors: {len(result.errors)}")

    console.print(Panel("\n".join(lines), title=f"{result.report_name} Summary", expand=False))

    for error in result.errors[:5]:
        console.print(f"  • {error}", style="red")
    if len(result.errors) > 5:
        console.print(f"  ... and {len(result.errors) - 5} more errors")
