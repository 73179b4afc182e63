"""SQL building blocks: evidence filters, migration parsing and batching."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

SQLITE_MAX_VARS = 999
EVIDENCE_TABLE = "evidence"
EVIDENCE_ALL_KEYS = (
    "id, path, operation_slug, content_type, description, error, recorded_date, upload_date"
)
MIGRATE_UP = "-- +migrate up"
MIGRATE_DOWN = "-- +migrate down"


class Tri(enum.Enum):
    """A three-way filter value."""

    ANY = "any"
    YES = "yes"
    NO = "no"


@dataclass
class EvidenceFilters:
    """Criteria for selecting evidence rows."""

    operation_slug: str = ""
    content_type: str = ""
    has_error: Tri = Tri.ANY
    submitted: Tri = Tri.ANY
    start_date: date | None = None
    end_date: date | None = None


@dataclass
class DBQuery:
    """A SQL statement together with its bound values."""

    query: str
    values: list[Any] = field(default_factory=list)


def select_statement(keys: str, table: str) -> str:
    """Return a plain SELECT of the given columns from the given table."""
    return f"SELECT {keys} FROM {table}"


def _date_value(value: date) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return value.isoformat()


def build_evidence_filter_query(filters: EvidenceFilters) -> DBQuery:
    """Build the SELECT statement and values matching the given filters."""
    query = select_statement(EVIDENCE_ALL_KEYS, EVIDENCE_TABLE)
    values: list[Any] = []
    parts: list[str] = []

    if filters.has_error is not Tri.ANY:
        parts.append(" error LIKE ? ")
        # "_%" requires at least one character, i.e. a populated error column
        values.append("_%" if filters.has_error is Tri.YES else "")

    if filters.submitted is not Tri.ANY:
        middle = " NOT " if filters.submitted is Tri.YES else " "
        parts.append(f" upload_date IS{middle}NULL")

    if filters.operation_slug:
        parts.append(" operation_slug = ? ")
        values.append(filters.operation_slug)
    if filters.content_type:
        parts.append(" content_type = ? ")
        values.append(filters.content_type)
    if filters.start_date is not None:
        parts.append(" recorded_date >= ? ")
        values.append(_date_value(filters.start_date))
    if filters.end_date is not None:
        parts.append(" recorded_date < ? ")
        values.append(_date_value(filters.end_date + timedelta(days=1)))

    if parts:
        query += f" WHERE {parts[0]}"
        query += "".join(f" AND {part}" for part in parts[1:])
    return DBQuery(query, values)


def extract_migrate_up(content: str) -> str:
    """Return only the "up" section of a migration script."""
    up_lines: list[str] = []
    for line in content.split("\n"):
        marker = line.strip().lower()
        if marker == MIGRATE_UP:
            continue
        if marker == MIGRATE_DOWN:
            break
        up_lines.append(line + "\n")
    return "".join(up_lines)


def row_template(vars_per_row: int) -> str:
    """Return the default per-row insert template, e.g. "(?,?,?),"."""
    return "(" + "?," * max(vars_per_row - 1, 0) + "?),"


def variable_template(vars_per_row: int) -> str:
    """Return the default per-row variable template, e.g. "?,?,"."""
    return "?," * vars_per_row


def placeholder_rows(template: str, count: int) -> str:
    """Repeat a row template count times, dropping the trailing separator."""
    return (template * count)[:-1]


def batch_frames(num_rows: int, vars_per_row: int, max_vars: int = SQLITE_MAX_VARS) -> list[int]:
    """Split num_rows into frame sizes that keep each query under max_vars variables."""
    if vars_per_row <= 0:
        raise ValueError("vars_per_row must be positive")
    frame_size = max_vars // vars_per_row
    if frame_size <= 0:
        raise ValueError("a single row needs more variables than max_vars allows")
    full_frames, overflow = divmod(num_rows, frame_size)
    frames = [frame_size] * full_frames
    if overflow > 0:
        frames.append(overflow)
    return frames