"""Tests for local storage."""

import json


class TestLocalStorage:
    """Tests for the key/value store."""

    def test_string_values(self, storage):
        storage.set_item("a", 1)

        assert storage.get_item("a") == "1"
        assert "a" in storage
        assert len(storage) == 1

        storage.remove_item("a")
        assert storage.get_item("a") is None

    def test_malformed_json_returns_default(self, storage):
        storage.set_item("bad", "{not json")

        assert storage.get_json("bad", default=[]) == []

    def test_user_requires_token(self, storage):
        """Test a user without a token is not treated as signed in."""
        from sparkvibe.services.storage import USER_KEY

        storage.set_json(USER_KEY, {"id": "u"})
        assert storage.get_user() is None

        storage.set_session("token", {"id": "u"})
        assert storage.get_user() == {"id": "u"}

        storage.clear_session()
        assert storage.get_token() is None
        assert USER_KEY not in storage

    def test_outbox(self, storage):
        item = storage.queue_pending("POST", "/track-event", {"event": "x"})

        assert item["queuedAt"] > 0
        assert storage.pending_items() == [item]

        storage.replace_pending([])
        assert storage.pending_items() == []

    def test_mark_synced(self, storage):
        assert storage.last_synced() is None

        storage.mark_synced(123.5)
        assert storage.last_synced() == 123.5

    def test_persists_to_file(self, tmp_path):
        """Test session state survives a new storage instance."""
        from sparkvibe.services.storage import LocalStorage

        path = tmp_path / "state" / "storage.json"
        LocalStorage(path).set_session("token", {"id": "u"})

        reloaded = LocalStorage(path)
        assert reloaded.get_token() == "token"
        assert reloaded.get_user() == {"id": "u"}
        assert json.loads(path.read_text())["sparkvibe_token"] == "token"

    def test_corrupt_file_starts_empty(self, tmp_path):
        from sparkvibe.services.storage import LocalStorage

        path = tmp_path / "storage.json"
        path.write_text("{oops")

        assert len(LocalStorage(path)) == 0
