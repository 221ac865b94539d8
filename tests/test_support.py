import pytest

from undouble.db import like_prefix
from undouble.errors import StorageError
from undouble.fields import reference_bearing_fields, select_fields
from undouble.storage import LocalStorage
from undouble.util import emit_log, format_size, progress_label, sanitize_identifier


def test_progress_label():
    assert progress_label(0, 4) == "0.0% of 4"
    assert progress_label(1, 4) == "25.0% of 4"
    assert progress_label(0, 0) == "100.0% of 0"


def test_sanitize_identifier():
    assert sanitize_identifier("tt_content") == "tt_content"
    assert sanitize_identifier('tt_content"; DROP TABLE x') == "tt_contentDROPTABLEx"
    assert sanitize_identifier("") == ""


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.00 KiB"
    assert format_size(3 * 1024 * 1024) == "3.00 MiB"


def test_emit_log_survives_failing_callback(capsys):
    def broken(message):
        raise RuntimeError("boom")

    emit_log(broken, "[RUN] hello")
    assert "[RUN] hello" in capsys.readouterr().out


def test_like_prefix_escapes_wildcards():
    assert like_prefix("/_migrated/") == "/\\_migrated/%"
    assert like_prefix("/100%/") == "/100\\%/%"


def test_store_degrades_on_query_errors(store):
    assert store.select("SELECT * FROM nowhere") == []
    assert store.count("SELECT COUNT(*) FROM nowhere") == 0
    assert store.update("UPDATE nowhere SET x = 1") == 0
    assert len(store.errors) == 3


def test_fields_from_config_and_refindex(fal, cfg):
    fal.refindex("a", "pages", 1, 3, field="url", softref_key="typolink")
    fal.refindex("b", "tt_content", 1, 3, field="bodytext", softref_key="typolink_tag")
    fal.refindex("c", "tt_content", 1, 3, field="image", softref_key="")

    assert reference_bearing_fields(cfg, fal.store)["typolink"] == {"tt_content": ["header_link"]}

    cfg.refindex.discover_softref_fields = True
    fields = reference_bearing_fields(cfg, fal.store)
    assert fields["typolink"] == {"tt_content": ["header_link"], "pages": ["url"]}
    assert fields["typolink_tag"] == {"tt_content": ["bodytext"]}


def test_select_fields_restriction(cfg):
    assert select_fields(cfg, "typolink", "tt_content", "bodytext") == {"tt_content": ["bodytext"]}
    assert select_fields(cfg, "typolink", "tt_content", "") == {"tt_content": ["header_link"]}


def test_local_storage(tmp_path):
    root = tmp_path / "fileadmin"
    (root / "_migrated").mkdir(parents=True)
    (root / "_migrated" / "a.jpg").write_bytes(b"abc")
    storage = LocalStorage(root)

    assert storage.exists("/_migrated/a.jpg")
    assert storage.identifier_for(root / "_migrated" / "a.jpg") == "/_migrated/a.jpg"
    with storage.open("/_migrated/a.jpg") as fh:
        assert fh.read() == b"abc"
    assert storage.delete("/_migrated/a.jpg") is True
    assert storage.delete("/_migrated/a.jpg") is False
    with pytest.raises(StorageError):
        storage.path_for("/../outside.jpg")
