"""
Generic sheet shaping for multi-entity extracts.

Each sheet is described by a :class:`SheetSpec`: the entity to query and the
columns to pull out of every record. Columns address expanded navigation
properties with dot paths such as ``UserObject.Payroll``.
"""

from dataclasses import dataclass
from typing import Any

from ..odata_client.query import ODataExpand
from .formatting import format_date, parse_date


@dataclass(frozen=True)
class SheetColumn:
    """One output column, read from ``path`` and optionally transformed."""

    key: str
    title: str
    path: str | tuple[str, ...] = ""
    transform: str | None = None

    @property
    def paths(self) -> tuple[str, ...]:
        if isinstance(self.path, tuple):
            return self.path
        return (self.path or self.key,)


@dataclass(frozen=True)
class SheetSpec:
    """A worksheet backed by one OData entity."""

    name: str
    entity: str
    select: tuple[str, ...]
    columns: tuple[SheetColumn, ...]
    expand: tuple[ODataExpand, ...] = ()
    filter: str | None = None


def get_nested_value(data: Any, path: str) -> Any:
    """
    Extract a value from a nested record using dot notation.

    Args:
        data: Source record (dict or attribute-bearing object)
        path: Dot-separated path (e.g., 'UserObject.Payroll')

    Returns:
        Value at path, or None if any step is missing
    """
    current = data
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        elif hasattr(current, part):
            current = getattr(current, part)
        else:
            return None
    return current


def apply_transform(values: list[Any], transform: str | None) -> Any:
    """
    Combine the raw values of a column into one cell.

    Args:
        values: One value per column path
        transform: Transform name ('join', 'date'), or None for the first value

    Returns:
        Cell value
    """
    if transform == "join":
        return " ".join(str(v) for v in values if v not in (None, "")).strip()

    value = values[0] if values else None
    if value is None:
        return None

    if transform == "date":
        return format_date(parse_date(value))

    return value


def shape_sheet_rows(spec: SheetSpec, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Turn raw records into ordered row dicts keyed by column ``key``."""
    rows = []
    for record in records:
        row = {}
        for column in spec.columns:
            values = [get_nested_value(record, path) for path in column.paths]
            cell = apply_transform(values, column.transform)
            row[column.key] = "" if cell is None else cell
        rows.append(row)
    return rows
