# evidencekeeper

evidencekeeper keeps evidence gathered during security operations in a local
SQLite database. Evidence means screenshots, code blocks and the like. The
tags attached to each item are stored with it. The package also holds the
configuration and settings an evidence-collection client needs. It has small
helpers for operation slugs, flow-layout geometry and spinner state as well.

## Modules

- `evidencekeeper.models`: dataclasses `Evidence`, `Tag`, `ServerTag`,
  `SaveEvidenceResponse` and `DeleteEvidenceResponse`.
  `ServerTag.to_model()` turns a server tag into a local `Tag`.
- `evidencekeeper.queries`:
  - `EvidenceFilters` and `Tri` (`ANY`, `YES`, `NO`) describe which evidence to
    select. `build_evidence_filter_query` turns them into a `DBQuery`, which
    holds the SQL text and its bound values. The end date is inclusive.
  - `extract_migrate_up` returns the part of a migration script that lies
    between `-- +migrate up` and `-- +migrate down`.
  - `placeholder_rows` and `batch_frames` split a batch insert into statements
    of at most 999 variables each.
- `evidencekeeper.database`: `DatabaseConnection(db_path, migrations_dir)`.
  - On `connect()` it applies every `.sql` migration not yet recorded, in name
    order.
  - It creates evidence, reads it back with its tags (`get_evidence_details`),
    filters it, updates description, error, path and upload date, and deletes it.
  - `set_evidence_tags` makes an item's tags match a list. Given an empty list
    it returns `False` and changes nothing.
  - `batch_copy_full_evidence` and `batch_copy_tags` copy rows with their ids
    kept.
  - Failures raise `DatabaseError`. A missing evidence id raises `KeyError`.
  - `DatabaseConnection` is a context manager. `open_connection` does the same
    job as a function.
  - `create_evidence_export_view` copies the evidence that matches a filter,
    and its tags, into a second database file.
- `evidencekeeper.config`: `AppConfig(config_file, settings_file, app_data_dir)`.
  - The configuration is kept as JSON. Unknown keys are dropped on load, and
    every key has a default. Evidence goes under `app_data_dir/evidence`, the
    API URL defaults to `http://localhost:8080`, and shortcut and screenshot
    command defaults depend on the platform.
  - `export_config` writes the stored configuration to a file.
    `import_config` takes only the access key, signing key and API URL from
    another file and clears the other keys that file names.
  - User settings are kept in a separate JSON file. They hold the current
    operation (`set_operation_details`, `operation_name`, `operation_slug`;
    callables in `operation_changed` are notified) and the last used tags.
- `evidencekeeper.operations`:
  - `make_slug_from_name` lower-cases a name and turns runs of other
    characters into single dashes.
  - `validate_operation_name` returns the trimmed name and its slug. It raises
    `InvalidOperationName` when no slug can be made.
- `evidencekeeper.layout`: `FlowLayout` places items of given sizes left to
  right and wraps onto new lines. `set_geometry(Rect(...))` sets each item's
  geometry, and `height_for_width` returns the height that placing the items in
  a given width needs. A negative margin or spacing means the default (margin
  9, spacing 6).
- `evidencekeeper.progress`: `ProgressIndicator` models a 12-spoke spinner.
  `tick()` advances it by 30 degrees while it is running. `capsules(width)`
  returns the spokes to draw.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from evidencekeeper.database import open_connection
from evidencekeeper.queries import EvidenceFilters, Tri

with open_connection("evidence.sqlite", "migrations") as db:
    evidence_id = db.create_evidence("/tmp/shot.png", "my-op", "image")
    db.update_evidence_description("login page", evidence_id)
    pending = db.get_evidence_with_filters(
        EvidenceFilters(operation_slug="my-op", has_error=Tri.NO)
    )
```

The package ships no migration scripts. The directory you pass must hold
`.sql` files that create the `migrations`, `evidence` and `tags` tables.

## What it does not do

evidencekeeper is a library only. It has:

- no command-line program and no graphical interface;
- no network client, so it does not talk to a server to fetch or create tags
  or operations;
- no tag cache;
- no interactive tag editing;
- no helpers that save an edited item or delete evidence files from disk.

The response records in `evidencekeeper.models` are plain data for callers
that do that work themselves.