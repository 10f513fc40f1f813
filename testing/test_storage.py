from clearhead.utils.storage import JsonFileStorage


def test_set_get_remove(tmp_path):
    storage = JsonFileStorage(tmp_path / "data")
    assert storage.get("journal_data") is None
    assert storage.set("journal_data", '{"entries": []}') is True
    assert storage.get("journal_data") == '{"entries": []}'
    assert storage.set("journal_data", "second") is True
    assert storage.get("journal_data") == "second"
    assert storage.remove("journal_data") is True
    assert storage.get("journal_data") is None
    assert storage.remove("journal_data") is True


def test_no_temp_files_left_behind(tmp_path):
    storage = JsonFileStorage(tmp_path)
    storage.set("journal_insights_cache", "{}")
    assert [p.name for p in tmp_path.iterdir()] == ["journal_insights_cache.json"]


def test_corrupt_file_reads_as_missing(tmp_path):
    (tmp_path / "journal_data.json").write_text("{broken", encoding="utf-8")
    assert JsonFileStorage(tmp_path).get("journal_data") is None


def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    assert JsonFileStorage(blocker).set("journal_data", "value") is False
