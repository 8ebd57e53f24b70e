"""Tests for the JSON key-value store."""

from studyreview.storage.kv_store import STORE_FILENAME, get_default_store


class TestKeyValueStore:
    """Tests for KeyValueStore."""

    def test_missing_file_reads_empty(self, store):
        assert store.get_item("theme") is None
        assert store.keys() == []

    def test_set_and_get(self, store):
        store.set_item("theme", "dark")
        assert store.get_item("theme") == "dark"
        assert store.path.exists()

    def test_values_persist_across_instances(self, store):
        from studyreview.storage.kv_store import KeyValueStore

        store.set_item("k", "中文")
        assert KeyValueStore(store.path).get_item("k") == "中文"

    def test_remove_item(self, store):
        store.set_item("a", "1")
        store.set_item("b", "2")
        store.remove_item("a")
        store.remove_item("missing")
        assert store.keys() == ["b"]

    def test_clear(self, store):
        store.set_item("a", "1")
        store.clear()
        assert store.keys() == []

    def test_corrupt_file_reads_empty(self, store):
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.write_text("{not json", encoding="utf-8")
        assert store.get_item("theme") is None

    def test_non_object_reads_empty(self, store):
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.write_text("[1, 2]", encoding="utf-8")
        assert store.keys() == []

    def test_default_store_location(self, isolated_data_dir):
        assert get_default_store().path == isolated_data_dir / "state" / STORE_FILENAME
