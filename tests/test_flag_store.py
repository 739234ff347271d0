"""
Tests for the durable flag stores.
"""

import json

import pytest

from purchasekit.exceptions import FlagStoreError
from purchasekit.services.flag_store import InMemoryFlagStore, JsonFileFlagStore


class TestInMemoryFlagStore:
    """Tests for InMemoryFlagStore."""

    def test_unset_flag_is_false(self):
        assert InMemoryFlagStore().get_bool("pro_upgrade") is False

    def test_initial_flags(self):
        store = InMemoryFlagStore({"pro_upgrade": True})
        assert store.get_bool("pro_upgrade") is True

    def test_synchronize_is_counted(self):
        store = InMemoryFlagStore()
        store.set_bool("pro_upgrade", True)
        store.synchronize()
        assert store.sync_count == 1


class TestJsonFileFlagStore:
    """Tests for JsonFileFlagStore durability."""

    def test_missing_file_starts_empty(self, tmp_path):
        store = JsonFileFlagStore(tmp_path / "flags.json")
        assert store.get_bool("pro_upgrade") is False

    def test_synchronized_flags_survive_reopen(self, tmp_path):
        """Flags written and synchronized are read back by a new instance."""
        path = tmp_path / "state" / "flags.json"
        store = JsonFileFlagStore(path)
        store.set_bool("pro_upgrade", True)
        store.synchronize()

        reopened = JsonFileFlagStore(path)

        assert reopened.get_bool("pro_upgrade") is True
        assert json.loads(path.read_text(encoding="utf-8")) == {"pro_upgrade": True}

    def test_unsynchronized_flags_are_not_on_disk(self, tmp_path):
        path = tmp_path / "flags.json"
        store = JsonFileFlagStore(path)
        store.set_bool("pro_upgrade", True)

        assert not path.exists()

    def test_synchronize_leaves_no_temp_files(self, tmp_path):
        store = JsonFileFlagStore(tmp_path / "flags.json")
        store.set_bool("a", True)
        store.synchronize()
        store.set_bool("b", True)
        store.synchronize()

        assert [p.name for p in tmp_path.iterdir()] == ["flags.json"]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "flags.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(FlagStoreError):
            JsonFileFlagStore(path)

    def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / "flags.json"
        path.write_text("[true]", encoding="utf-8")

        with pytest.raises(FlagStoreError) as exc_info:
            JsonFileFlagStore(path)
        assert exc_info.value.key == str(path)

    def test_unwritable_location_raises(self, tmp_path):
        """A path whose parent is a file cannot be synchronized."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonFileFlagStore(blocker / "flags.json")
        store.set_bool("pro_upgrade", True)

        with pytest.raises(FlagStoreError):
            store.synchronize()

    def test_failed_synchronize_discards_pending_writes(self, tmp_path):
        """After a failed write the store reports the last persisted values."""
        path = tmp_path / "flags.json"
        store = JsonFileFlagStore(path)
        store.set_bool("remove_ads", True)
        store.synchronize()

        path.unlink()
        path.mkdir()
        store.set_bool("pro_upgrade", True)
        store.set_bool("remove_ads", False)

        with pytest.raises(FlagStoreError):
            store.synchronize()

        assert store.get_bool("pro_upgrade") is False
        assert store.get_bool("remove_ads") is True
