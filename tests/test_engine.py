from undouble.canonical import EXTERNAL, INTERNAL, prepare_run
from undouble.config import TYPOLINK
from undouble.engine import (
    migrate_file_references,
    undouble,
    update_link_fields,
    update_typolink_fields,
    update_typolink_tag_fields,
)


def _content_updates(store):
    return [sql for sql in store.updates if sql.startswith('UPDATE "tt_content"')]


def test_internal_run_rewrites_links_and_references(populated, cfg):
    stats = undouble(populated.store, cfg, mode=INTERNAL)

    assert stats.files_to_undouble == 2
    assert stats.unmatched == 0
    assert stats.typolink.rows_found == 2
    assert stats.typolink.rows_updated == 1
    assert stats.typolink.references_updated == 1
    assert stats.typolink_tag.rows_updated == 2
    assert stats.typolink_tag.references_updated == 2
    assert stats.references.references_updated == 2
    assert stats.references.files_touched == 2
    assert stats.query_errors == 0

    row1 = populated.content_row(1)
    row2 = populated.content_row(2)
    assert row1["header_link"] == "file:2 _blank"
    assert row1["bodytext"] == '<p><link file:4 - "x">Click</link></p>'
    assert row2["header_link"] == "file:6"
    assert row2["bodytext"] == "&lt;link file:2&gt;Esc&lt;/link&gt;"

    assert [populated.uid_local(uid) for uid in (1, 2, 3)] == [2, 4, 6]
    assert populated.ref_uid("h1") == 2
    assert populated.ref_uid("h2") == 4
    assert populated.ref_uid("h3") == 3
    assert populated.ref_uid("h4") == 3
    assert len(_content_updates(populated.store)) == 3


def test_external_run_targets_files_outside_staging(populated, cfg):
    stats = undouble(populated.store, cfg, mode=EXTERNAL)

    assert stats.files_to_undouble == 2
    assert stats.unmatched == 3
    assert populated.content_row(1)["header_link"] == "file:1 _blank"
    assert populated.content_row(1)["bodytext"] == '<p><link file:5 - "x">Click</link></p>'
    assert populated.content_row(2)["bodytext"] == "&lt;link file:1&gt;Esc&lt;/link&gt;"
    assert populated.uid_local(1) == 1
    assert populated.uid_local(2) == 5
    assert populated.ref_uid("h1") == 1


def test_internal_then_external_points_everything_outside(populated, cfg):
    undouble(populated.store, cfg, mode=INTERNAL)
    undouble(populated.store, cfg, mode=EXTERNAL)

    assert populated.content_row(1)["header_link"] == "file:1 _blank"
    assert populated.content_row(2)["bodytext"] == "&lt;link file:1&gt;Esc&lt;/link&gt;"
    assert populated.uid_local(1) == 1
    assert populated.ref_uid("h1") == 1


def test_dry_run_changes_nothing(populated, cfg):
    before = [tuple(populated.content_row(uid)) for uid in (1, 2)]

    stats = undouble(populated.store, cfg, mode=INTERNAL, dry_run=True)

    assert stats.dry_run
    assert stats.typolink.references_updated == 1
    assert stats.typolink_tag.references_updated == 2
    assert stats.references.references_updated == 2
    assert stats.references.refindex_updated == 2
    assert populated.store.updates == []
    assert [tuple(populated.content_row(uid)) for uid in (1, 2)] == before
    assert populated.uid_local(1) == 3


def test_second_run_writes_nothing(populated, cfg):
    undouble(populated.store, cfg, mode=INTERNAL)
    populated.store.updates.clear()

    stats = undouble(populated.store, cfg, mode=INTERNAL)

    assert populated.store.updates == []
    assert stats.typolink.references_updated == 0
    assert stats.typolink_tag.references_updated == 0
    assert stats.references.references_updated == 0


def test_single_field_restriction(populated, cfg):
    stats = update_link_fields(
        populated.store, cfg, TYPOLINK, mode=INTERNAL, table="tt_content", field_name="bodytext"
    )

    assert list(stats.per_field) == ["tt_content.bodytext"]
    assert populated.content_row(1)["header_link"] == "file:3 _blank"
    assert populated.content_row(1)["bodytext"] == '<p><link file:4 - "x">Click</link></p>'


def test_steps_reuse_a_prepared_run(populated, cfg):
    run = prepare_run(populated.store, cfg, INTERNAL)
    populated.file(7, "/_migrated/a_02.jpg", "a" * 40)
    populated.content(3, header_link="file:7")

    stats = update_typolink_fields(populated.store, cfg, run=run)

    assert stats.migratable == 2
    assert populated.content_row(3)["header_link"] == "file:7"
    assert populated.content_row(1)["header_link"] == "file:2 _blank"


def test_steps_run_on_their_own(populated, cfg):
    tag_stats = update_typolink_tag_fields(populated.store, cfg, mode=INTERNAL)
    ref_stats = migrate_file_references(populated.store, cfg, mode=INTERNAL)

    assert tag_stats.references_updated == 2
    assert ref_stats.references_updated == 2
    assert populated.content_row(1)["header_link"] == "file:3 _blank"


def test_no_duplicates_means_no_work(fal, cfg):
    fal.file(1, "/_migrated/only.jpg", "a" * 40)
    fal.content(1, header_link="file:1")

    stats = undouble(fal.store, cfg, mode=INTERNAL)

    assert stats.files_to_undouble == 0
    assert stats.typolink.rows_found == 0
    assert fal.content_row(1)["header_link"] == "file:1"


def test_failing_field_query_is_recorded_and_skipped(populated, cfg):
    cfg.softref_fields[TYPOLINK]["no_such_table"] = ["header_link"]

    stats = undouble(populated.store, cfg, mode=INTERNAL)

    assert stats.query_errors == 1
    assert "no such table" in populated.store.errors[0]
    assert stats.typolink.references_updated == 1
    assert populated.content_row(1)["header_link"] == "file:2 _blank"


def test_progress_and_log_callbacks(populated, cfg):
    messages = []
    progress = []

    undouble(
        populated.store,
        cfg,
        mode=INTERNAL,
        dry_run=True,
        progress_cb=lambda *args: progress.append(args),
        log_cb=messages.append,
    )

    assert "[MAP] Found 2 files to undouble" in messages
    assert "[REFS] 0.0% of 2 Would update 1 references (1 index rows) for 3 -> 2" in messages
    assert ("done", 2, 2, "References migrated") in progress
