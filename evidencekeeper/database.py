"""SQLite-backed storage for evidence records and their tags."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from evidencekeeper.models import Evidence, Tag
from evidencekeeper.queries import (
    EVIDENCE_ALL_KEYS,
    EVIDENCE_TABLE,
    SQLITE_MAX_VARS,
    EvidenceFilters,
    batch_frames,
    build_evidence_filter_query,
    extract_migrate_up,
    placeholder_rows,
    row_template,
    select_statement,
    variable_template,
)

log = logging.getLogger(__name__)

_MIGRATIONS_TABLE = "migrations"
_MIGRATION_NAME = "migration_name"
_ADD_APPLIED_MIGRATION = (
    "INSERT INTO migrations (migration_name, applied_at) VALUES (?, datetime('now'))"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class DatabaseError(Exception):
    """Raised when the local database cannot be opened, migrated or queried."""


def _encode_date(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(_DATE_FORMAT)


def _decode_date(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    # stored values are UTC; mark them so without shifting the clock time
    return parsed.replace(tzinfo=timezone.utc)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _evidence_from_row(row: sqlite3.Row) -> Evidence:
    return Evidence(
        id=int(row["id"]),
        path=_text(row["path"]),
        operation_slug=_text(row["operation_slug"]),
        content_type=_text(row["content_type"]),
        description=_text(row["description"]),
        error_text=_text(row["error"]),
        recorded_date=_decode_date(row["recorded_date"]),
        upload_date=_decode_date(row["upload_date"]),
    )


class DatabaseConnection:
    """A connection to the local evidence database.

    Opening the connection applies any migration scripts from ``migrations_dir``
    that have not yet been recorded in the database.
    """

    def __init__(self, db_path: str | Path, migrations_dir: str | Path) -> None:
        self.db_path = Path(db_path)
        self.migrations_dir = Path(migrations_dir)
        self._conn: sqlite3.Connection | None = None
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    # -- connection lifecycle -------------------------------------------------

    def connect(self) -> None:
        """Open the database and bring its schema up to date."""
        if self._conn is not None:
            return
        try:
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        except sqlite3.Error as exc:
            raise DatabaseError(f"cannot open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        self._conn = conn
        try:
            self._migrate()
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DatabaseConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- evidence ---------------------------------------------------------------

    def create_evidence(self, filepath: str, operation_slug: str, content_type: str) -> int:
        """Insert new evidence recorded now and return its id."""
        cursor = self._execute(
            f"INSERT INTO {EVIDENCE_TABLE} (path, operation_slug, content_type, recorded_date) "
            "VALUES (?, ?, ?, datetime('now'))",
            [filepath, operation_slug, content_type],
        )
        return self._inserted_id(cursor)

    def create_full_evidence(self, evidence: Evidence) -> int:
        """Insert every field of the given evidence except its id; return the new id."""
        cursor = self._execute(
            f"INSERT INTO {EVIDENCE_TABLE} "
            "(path, operation_slug, content_type, description, error, recorded_date, upload_date) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                evidence.path,
                evidence.operation_slug,
                evidence.content_type,
                evidence.description,
                evidence.error_text,
                _encode_date(evidence.recorded_date),
                _encode_date(evidence.upload_date),
            ],
        )
        return self._inserted_id(cursor)

    def batch_copy_full_evidence(self, evidence: Sequence[Evidence]) -> None:
        """Insert the given evidence, ids included, in as few statements as possible."""
        rows = [
            [
                item.id,
                item.path,
                item.operation_slug,
                item.content_type,
                item.description,
                item.error_text,
                _encode_date(item.recorded_date),
                _encode_date(item.upload_date),
            ]
            for item in evidence
        ]
        self._batch_insert(
            f"INSERT INTO {EVIDENCE_TABLE} ({EVIDENCE_ALL_KEYS}) VALUES {{placeholders}}",
            8,
            rows,
        )

    def get_evidence_details(self, evidence_id: int) -> Evidence:
        """Return the evidence with the given id, including its tags.

        Raises KeyError if no such evidence exists.
        """
        query = select_statement(EVIDENCE_ALL_KEYS, EVIDENCE_TABLE) + " WHERE id=? LIMIT 1"
        row = self._execute(query, [evidence_id]).fetchone()
        if row is None:
            raise KeyError(evidence_id)
        evidence = _evidence_from_row(row)
        evidence.tags = self.get_tags_for_evidence_id(evidence_id)
        return evidence

    def update_evidence_description(self, description: str, evidence_id: int) -> None:
        """Replace the description of the given evidence."""
        self._execute("UPDATE evidence SET description=? WHERE id=?", [description, evidence_id])

    def update_evidence_error(self, error_text: str, evidence_id: int) -> None:
        """Replace the error text of the given evidence."""
        self._execute("UPDATE evidence SET error=? WHERE id=?", [error_text, evidence_id])

    def update_evidence_submitted(self, evidence_id: int) -> None:
        """Mark the given evidence as uploaded now."""
        self._execute(
            "UPDATE evidence SET upload_date=datetime('now') WHERE id=?", [evidence_id]
        )

    def update_evidence_path(self, new_path: str, evidence_id: int) -> None:
        """Point the given evidence at a new file path."""
        self._execute("UPDATE evidence SET path=? WHERE id=?", [new_path, evidence_id])

    def delete_evidence(self, evidence_id: int) -> None:
        """Delete the evidence row with the given id."""
        self._execute("DELETE FROM evidence WHERE id=?", [evidence_id])

    def get_evidence_with_filters(self, filters: EvidenceFilters) -> list[Evidence]:
        """Return all evidence matching the filters (tags are not loaded)."""
        db_query = build_evidence_filter_query(filters)
        rows = self._execute(db_query.query, db_query.values).fetchall()
        return [_evidence_from_row(row) for row in rows]

    # -- tags ---------------------------------------------------------------------

    def get_tags_for_evidence_id(self, evidence_id: int) -> list[Tag]:
        """Return the tags attached to one piece of evidence."""
        rows = self._execute(
            "SELECT id, tag_id, name FROM tags WHERE evidence_id=?", [evidence_id]
        ).fetchall()
        return [
            Tag(
                server_tag_id=int(row["tag_id"]),
                tag_name=_text(row["name"]),
                id=int(row["id"]),
                evidence_id=evidence_id,
            )
            for row in rows
        ]

    def get_full_tags_for_evidence_ids(self, evidence_ids: Sequence[int]) -> list[Tag]:
        """Return every tag attached to any of the given evidence ids."""
        rows = self._batch_query(
            "SELECT id, evidence_id, tag_id, name FROM tags WHERE evidence_id IN ({placeholders})",
            1,
            [[evidence_id] for evidence_id in evidence_ids],
        )
        return [
            Tag(
                server_tag_id=int(row["tag_id"]),
                tag_name=_text(row["name"]),
                id=int(row["id"]),
                evidence_id=int(row["evidence_id"]),
            )
            for row in rows
        ]

    def set_evidence_tags(self, new_tags: Sequence[Tag], evidence_id: int) -> bool:
        """Make the evidence's tags match new_tags.

        Tags no longer listed are removed and new ones inserted. An empty list
        leaves the tags untouched and returns False; otherwise returns True.
        """
        if not new_tags:
            return False

        new_ids = [tag.server_tag_id for tag in new_tags]
        marks = ",".join("?" * len(new_ids))
        self._execute(
            f"DELETE FROM tags WHERE tag_id NOT IN ({marks}) AND evidence_id = ?",
            [*new_ids, evidence_id],
        )

        current = {
            int(row["tag_id"])
            for row in self._execute(
                "SELECT tag_id FROM tags WHERE evidence_id = ?", [evidence_id]
            )
        }
        to_insert = [
            [evidence_id, tag.server_tag_id, tag.tag_name]
            for tag in new_tags
            if tag.server_tag_id not in current
        ]
        self._batch_insert(
            "INSERT INTO tags (evidence_id, tag_id, name) VALUES {placeholders}", 3, to_insert
        )
        return True

    def batch_copy_tags(self, tags: Sequence[Tag]) -> None:
        """Insert the given tags, ids included, in as few statements as possible."""
        rows = [[tag.id, tag.evidence_id, tag.server_tag_id, tag.tag_name] for tag in tags]
        self._batch_insert(
            "INSERT INTO tags (id, evidence_id, tag_id, name) VALUES {placeholders}", 4, rows
        )

    # -- internals ------------------------------------------------------------------

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("database connection is not open")
        return self._conn

    def _execute(self, statement: str, args: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._connection().execute(statement, list(args))
        except sqlite3.Error as exc:
            raise DatabaseError(f"error executing query: {exc}") from exc

    @staticmethod
    def _inserted_id(cursor: sqlite3.Cursor) -> int:
        if cursor.lastrowid is None:
            raise DatabaseError("insert did not produce a row id")
        return int(cursor.lastrowid)

    def _batch_insert(
        self,
        base_query: str,
        vars_per_row: int,
        rows: Sequence[Sequence[Any]],
        template: str | None = None,
    ) -> None:
        self._batch_query(base_query, vars_per_row, rows, template or row_template(vars_per_row))

    def _batch_query(
        self,
        base_query: str,
        vars_per_row: int,
        rows: Sequence[Sequence[Any]],
        template: str | None = None,
    ) -> list[sqlite3.Row]:
        """Run base_query over rows, splitting into frames under the variable limit.

        base_query holds a ``{placeholders}`` field where the per-row templates go.
        """
        template = template or variable_template(vars_per_row)
        results: list[sqlite3.Row] = []
        remaining = iter(rows)
        for frame in batch_frames(len(rows), vars_per_row, SQLITE_MAX_VARS):
            query = base_query.format(placeholders=placeholder_rows(template, frame))
            values = [value for _, row in zip(range(frame), remaining) for value in row]
            results.extend(self._execute(query, values).fetchall())
        return results

    def _migrate(self) -> None:
        log.info("Checking database state")
        conn = self._connection()
        for name in self._unapplied_migrations():
            try:
                content = (self.migrations_dir / name).read_text(encoding="utf-8")
            except OSError as exc:
                raise DatabaseError(f"cannot read migration {name}: {exc}") from exc
            log.info("Applying migration: %s", name)
            try:
                conn.executescript(extract_migrate_up(content))
            except sqlite3.Error as exc:
                raise DatabaseError(f"migration {name} failed: {exc}") from exc
            self._execute(_ADD_APPLIED_MIGRATION, [name])
        log.info("All migrations applied")

    def _unapplied_migrations(self) -> list[str]:
        if self.migrations_dir.is_dir():
            available = sorted(p.name for p in self.migrations_dir.iterdir() if p.is_file())
        else:
            available = []

        try:
            applied = [
                str(row[_MIGRATION_NAME])
                for row in self._connection().execute(
                    select_statement(_MIGRATION_NAME, _MIGRATIONS_TABLE)
                )
            ]
        except sqlite3.Error:
            applied = []

        to_apply: list[str] = []
        for name in available:
            if not name.endswith(".sql"):
                continue
            if name in applied:
                applied.remove(name)
            else:
                to_apply.append(name)
        if applied:
            log.warning("Database is in an inconsistent state")
        return to_apply


@contextmanager
def open_connection(
    db_path: str | Path, migrations_dir: str | Path
) -> Iterator[DatabaseConnection]:
    """Open a connection for the duration of a with-block, closing it afterwards."""
    with DatabaseConnection(db_path, migrations_dir) as conn:
        yield conn


def create_evidence_export_view(
    path_to_export: str | Path,
    filters: EvidenceFilters,
    running_db: DatabaseConnection,
    migrations_dir: str | Path,
) -> list[Evidence]:
    """Copy the evidence matching filters, and its tags, into a new database.

    Returns the exported evidence.
    """
    copy: Callable[[DatabaseConnection], list[Evidence]]

    def copy(export_db: DatabaseConnection) -> list[Evidence]:
        evidence = running_db.get_evidence_with_filters(filters)
        export_db.batch_copy_full_evidence(evidence)
        tags = running_db.get_full_tags_for_evidence_ids([item.id for item in evidence])
        export_db.batch_copy_tags(tags)
        return evidence

    with open_connection(path_to_export, migrations_dir) as export_db:
        return copy(export_db)