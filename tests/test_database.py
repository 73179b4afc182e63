import sqlite3
from datetime import datetime, timezone

import pytest

from evidencekeeper.database import (
    DatabaseConnection,
    DatabaseError,
    create_evidence_export_view,
    open_connection,
)
from evidencekeeper.models import Evidence, Tag
from evidencekeeper.queries import EvidenceFilters, Tri

INIT_MIGRATION = """-- +migrate up
CREATE TABLE migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    migration_name TEXT NOT NULL,
    applied_at DATETIME NOT NULL
);
CREATE TABLE evidence (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL,
    operation_slug TEXT NOT NULL,
    content_type TEXT NOT NULL,
    description TEXT,
    error TEXT,
    recorded_date DATETIME NOT NULL,
    upload_date DATETIME
);
CREATE TABLE tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    evidence_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL,
    name TEXT NOT NULL
);
-- +migrate down
DROP TABLE tags;
DROP TABLE evidence;
DROP TABLE migrations;
"""


@pytest.fixture
def migrations_dir(tmp_path):
    directory = tmp_path / "migrations"
    directory.mkdir()
    (directory / "20200101_init.sql").write_text(INIT_MIGRATION)
    (directory / "README.txt").write_text("not a migration")
    return directory


@pytest.fixture
def db(tmp_path, migrations_dir):
    with open_connection(tmp_path / "data" / "evidence.sqlite", migrations_dir) as conn:
        yield conn


def _table_names(path):
    with sqlite3.connect(path) as raw:
        return {row[0] for row in raw.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def _applied_migrations(path):
    with sqlite3.connect(path) as raw:
        return [row[0] for row in raw.execute("SELECT migration_name FROM migrations")]


def test_connect_applies_up_section_only(tmp_path, migrations_dir):
    path = tmp_path / "nested" / "dir" / "db.sqlite"
    with DatabaseConnection(path, migrations_dir):
        pass
    assert {"migrations", "evidence", "tags"} <= _table_names(path)
    assert _applied_migrations(path) == ["20200101_init.sql"]


def test_reconnect_does_not_reapply(tmp_path, migrations_dir):
    path = tmp_path / "db.sqlite"
    with DatabaseConnection(path, migrations_dir):
        pass
    with DatabaseConnection(path, migrations_dir):
        pass
    assert _applied_migrations(path) == ["20200101_init.sql"]


def test_new_migration_applied_later(tmp_path, migrations_dir):
    path = tmp_path / "db.sqlite"
    with DatabaseConnection(path, migrations_dir):
        pass
    (migrations_dir / "20200202_extra.sql").write_text(
        "-- +migrate up\nCREATE TABLE extra (id INTEGER);\n-- +migrate down\nDROP TABLE extra;\n"
    )
    with DatabaseConnection(path, migrations_dir):
        pass
    assert "extra" in _table_names(path)
    assert _applied_migrations(path) == ["20200101_init.sql", "20200202_extra.sql"]


def test_broken_migration_raises(tmp_path, migrations_dir):
    (migrations_dir / "20200303_bad.sql").write_text("-- +migrate up\nNOT VALID SQL;\n")
    with pytest.raises(DatabaseError):
        DatabaseConnection(tmp_path / "db.sqlite", migrations_dir).connect()


def test_query_on_closed_connection_raises(tmp_path, migrations_dir):
    conn = DatabaseConnection(tmp_path / "db.sqlite", migrations_dir)
    with pytest.raises(DatabaseError):
        conn.create_evidence("/tmp/a.png", "op", "image")


def test_create_and_read_evidence(db):
    new_id = db.create_evidence("/ev/a.png", "op-one", "image")
    evidence = db.get_evidence_details(new_id)
    assert evidence.id == new_id
    assert evidence.path == "/ev/a.png"
    assert evidence.operation_slug == "op-one"
    assert evidence.content_type == "image"
    assert evidence.description == ""
    assert evidence.error_text == ""
    assert evidence.upload_date is None
    assert evidence.recorded_date is not None
    assert evidence.recorded_date.tzinfo == timezone.utc
    assert evidence.tags == []


def test_missing_evidence_raises_key_error(db):
    with pytest.raises(KeyError):
        db.get_evidence_details(12345)


def test_create_full_evidence_round_trip(db):
    recorded = datetime(2021, 5, 4, 10, 30, 0, tzinfo=timezone.utc)
    source = Evidence(
        path="/ev/code.json",
        operation_slug="op",
        content_type="codeblock",
        description="some code",
        error_text="upload failed",
        recorded_date=recorded,
    )
    new_id = db.create_full_evidence(source)
    stored = db.get_evidence_details(new_id)
    assert stored.description == "some code"
    assert stored.error_text == "upload failed"
    assert stored.recorded_date == recorded
    assert stored.upload_date is None


def test_updates(db):
    new_id = db.create_evidence("/ev/a.png", "op", "image")
    db.update_evidence_description("described", new_id)
    db.update_evidence_error("oops", new_id)
    db.update_evidence_path("/moved/a.png", new_id)
    db.update_evidence_submitted(new_id)
    stored = db.get_evidence_details(new_id)
    assert stored.description == "described"
    assert stored.error_text == "oops"
    assert stored.path == "/moved/a.png"
    assert stored.upload_date is not None


def test_delete_evidence(db):
    keep = db.create_evidence("/ev/keep.png", "op", "image")
    gone = db.create_evidence("/ev/gone.png", "op", "image")
    db.delete_evidence(gone)
    with pytest.raises(KeyError):
        db.get_evidence_details(gone)
    assert db.get_evidence_details(keep).path == "/ev/keep.png"


def test_set_evidence_tags_adds_and_replaces(db):
    ev = db.create_evidence("/ev/a.png", "op", "image")
    assert db.set_evidence_tags([Tag(1, "alpha"), Tag(2, "beta")], ev) is True
    names = sorted(t.tag_name for t in db.get_evidence_details(ev).tags)
    assert names == ["alpha", "beta"]

    assert db.set_evidence_tags([Tag(2, "beta"), Tag(3, "gamma")], ev) is True
    tags = db.get_tags_for_evidence_id(ev)
    assert sorted(t.server_tag_id for t in tags) == [2, 3]
    assert all(t.evidence_id == ev for t in tags)


def test_set_evidence_tags_empty_leaves_tags(db):
    ev = db.create_evidence("/ev/a.png", "op", "image")
    db.set_evidence_tags([Tag(1, "alpha")], ev)
    assert db.set_evidence_tags([], ev) is False
    assert [t.tag_name for t in db.get_tags_for_evidence_id(ev)] == ["alpha"]


def test_set_evidence_tags_only_touches_one_evidence(db):
    first = db.create_evidence("/ev/a.png", "op", "image")
    second = db.create_evidence("/ev/b.png", "op", "image")
    db.set_evidence_tags([Tag(1, "alpha")], first)
    db.set_evidence_tags([Tag(2, "beta")], second)
    assert [t.server_tag_id for t in db.get_tags_for_evidence_id(first)] == [1]
    assert [t.server_tag_id for t in db.get_tags_for_evidence_id(second)] == [2]


def test_batch_copy_spans_several_frames(db):
    count = 1200
    evidence = [
        Evidence(
            id=i + 1,
            path=f"/ev/{i}.png",
            operation_slug="op",
            content_type="image",
            recorded_date=datetime(2022, 1, 1, 12, 0, 0),
        )
        for i in range(count)
    ]
    db.batch_copy_full_evidence(evidence)
    stored = db.get_evidence_with_filters(EvidenceFilters())
    assert sorted(e.id for e in stored) == [e.id for e in evidence]
    assert {e.path for e in stored} == {e.path for e in evidence}

    tags = [Tag(server_tag_id=7, tag_name="t", id=i + 1, evidence_id=i + 1) for i in range(count)]
    db.batch_copy_tags(tags)
    fetched = db.get_full_tags_for_evidence_ids([e.id for e in evidence])
    assert sorted((t.id, t.evidence_id) for t in fetched) == [(t.id, t.evidence_id) for t in tags]


def test_full_tags_for_subset(db):
    first = db.create_evidence("/ev/a.png", "op", "image")
    second = db.create_evidence("/ev/b.png", "op", "image")
    db.set_evidence_tags([Tag(1, "alpha")], first)
    db.set_evidence_tags([Tag(2, "beta")], second)
    fetched = db.get_full_tags_for_evidence_ids([second])
    assert [(t.evidence_id, t.tag_name) for t in fetched] == [(second, "beta")]
    assert db.get_full_tags_for_evidence_ids([]) == []


def test_filters(db):
    image = db.create_evidence("/ev/a.png", "op-a", "image")
    code = db.create_evidence("/ev/b.json", "op-b", "codeblock")
    db.update_evidence_error("failed", image)
    db.update_evidence_error("", code)
    db.update_evidence_submitted(code)

    def ids(**kwargs):
        return [e.id for e in db.get_evidence_with_filters(EvidenceFilters(**kwargs))]

    assert ids(content_type="image") == [image]
    assert ids(operation_slug="op-b") == [code]
    assert ids(has_error=Tri.YES) == [image]
    assert ids(has_error=Tri.NO) == [code]
    assert ids(submitted=Tri.YES) == [code]
    assert ids(submitted=Tri.NO) == [image]
    assert sorted(ids()) == sorted([image, code])


def test_date_filters(db):
    db.batch_copy_full_evidence(
        [
            Evidence(id=1, path="/a", operation_slug="op", content_type="image",
                     recorded_date=datetime(2021, 1, 1, 9, 0, 0)),
            Evidence(id=2, path="/b", operation_slug="op", content_type="image",
                     recorded_date=datetime(2021, 3, 1, 9, 0, 0)),
        ]
    )
    later = db.get_evidence_with_filters(EvidenceFilters(start_date=datetime(2021, 2, 1).date()))
    assert [e.id for e in later] == [2]
    earlier = db.get_evidence_with_filters(EvidenceFilters(end_date=datetime(2021, 1, 1).date()))
    assert [e.id for e in earlier] == [1]


def test_export_view(tmp_path, migrations_dir, db):
    image = db.create_evidence("/ev/a.png", "op", "image")
    db.create_evidence("/ev/b.json", "op", "codeblock")
    db.set_evidence_tags([Tag(5, "five"), Tag(6, "six")], image)

    export_path = tmp_path / "export" / "export.sqlite"
    exported = create_evidence_export_view(
        export_path, EvidenceFilters(content_type="image"), db, migrations_dir
    )
    assert [e.id for e in exported] == [image]

    with open_connection(export_path, migrations_dir) as export_db:
        copied = export_db.get_evidence_details(image)
        assert copied.path == "/ev/a.png"
        assert sorted(t.tag_name for t in copied.tags) == ["five", "six"]
        assert export_db.get_evidence_with_filters(EvidenceFilters(content_type="codeblock")) == []