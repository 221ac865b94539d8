from undouble.references import (
    count_references_to_file,
    migrate_references_to_file,
    retarget_refindex,
)


def test_count_ignores_bookkeeping_and_non_file_rows(fal, cfg):
    fal.reference(1, uid_local=3)
    fal.refindex("a", "tt_content", 1, 3, field="image")
    fal.refindex("b", "sys_file_metadata", 4, 3, field="file")
    fal.refindex("c", "sys_file_reference", 1, 3, field="uid_local")
    fal.refindex("d", "tt_content", 2, 3, field="pages", ref_table="pages")
    assert count_references_to_file(fal.store, cfg, 3) == 2


def test_migrate_moves_references_and_refindex(fal, cfg):
    fal.reference(1, uid_local=3)
    fal.reference(2, uid_local=3)
    fal.reference(3, uid_local=4)
    fal.refindex("a", "tt_content", 1, 3, field="image")
    fal.refindex("b", "sys_file_metadata", 4, 3, field="file")

    result = migrate_references_to_file(fal.store, cfg, 3, 2)

    assert result.references == 2
    assert result.refindex == 1
    assert result.total == 3
    assert [fal.uid_local(uid) for uid in (1, 2, 3)] == [2, 2, 4]
    assert fal.ref_uid("a") == 2
    assert fal.ref_uid("b") == 3


def test_migrate_dry_run_only_counts(fal, cfg):
    fal.reference(1, uid_local=3)
    fal.refindex("a", "tt_content", 1, 3, field="image")
    fal.store.updates.clear()

    result = migrate_references_to_file(fal.store, cfg, 3, 2, dry_run=True)

    assert (result.references, result.refindex) == (1, 1)
    assert fal.store.updates == []
    assert fal.uid_local(1) == 3
    assert fal.ref_uid("a") == 3


def test_migrate_skips_updates_when_nothing_points_at_file(fal, cfg):
    result = migrate_references_to_file(fal.store, cfg, 3, 2)
    assert result.total == 0
    assert fal.store.updates == []


def test_retarget_can_be_limited_to_one_record(fal, cfg):
    fal.refindex("mine", "tt_content", 1, 3, field="bodytext", softref_key="typolink_tag")
    fal.refindex("theirs", "pages", 1, 3, field="url", softref_key="typolink")

    assert retarget_refindex(fal.store, cfg, 3, 2, tablename="tt_content", recuid=1) == 1
    assert fal.ref_uid("mine") == 2
    assert fal.ref_uid("theirs") == 3
