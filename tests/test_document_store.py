"""
Tests for the JSON document store.
"""
import pytest
import tempfile
from pathlib import Path

from app.account.ports import DocumentExists, DocumentNotFound, InvalidDocumentId
from app.account.store import JsonDocumentStore, deep_merge


class TestJsonDocumentStore:
    """Test get/set/merge_set/delete semantics."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.store = JsonDocumentStore(self.temp_dir / "docs")

    def teardown_method(self):
        """Clean up test fixtures."""
        import shutil
        shutil.rmtree(self.temp_dir)

    def test_get_missing_raises(self):
        with pytest.raises(DocumentNotFound) as exc_info:
            self.store.get("users", "missing")
        assert exc_info.value.collection == "users"
        assert exc_info.value.doc_id == "missing"
        assert self.store.exists("users", "missing") is False

    def test_merge_set_creates_document(self):
        merged = self.store.merge_set("users", "u1", {"email": "a@example.com", "plan": 0})

        assert merged == {"email": "a@example.com", "plan": 0}
        assert self.store.get("users", "u1") == merged
        assert (self.temp_dir / "docs" / "users" / "u1.json").exists()

    def test_merge_set_preserves_unmentioned_fields(self):
        self.store.set("users", "u1", {"email": "a@example.com", "role": "Hedge Funds", "plan": 0})

        self.store.merge_set("users", "u1", {"plan": 1})

        assert self.store.get("users", "u1") == {"email": "a@example.com", "role": "Hedge Funds", "plan": 1}

    def test_merge_set_merges_nested_fields(self):
        self.store.set("users", "u1", {"caseStudy": {"plan": 0, "perWeek": 0, "note": "x"}})

        self.store.merge_set("users", "u1", {"caseStudy": {"plan": 1, "perWeek": 2}})

        assert self.store.get("users", "u1")["caseStudy"] == {"plan": 1, "perWeek": 2, "note": "x"}

    def test_set_replaces_document(self):
        self.store.set("users", "u1", {"a": 1, "b": 2})
        self.store.set("users", "u1", {"c": 3})

        assert self.store.get("users", "u1") == {"c": 3}

    def test_delete_is_idempotent(self):
        self.store.set("sessions", "tok", {"uid": "u1"})

        self.store.delete("sessions", "tok")
        self.store.delete("sessions", "tok")

        assert self.store.exists("sessions", "tok") is False

    def test_rejects_path_traversal(self):
        with pytest.raises(InvalidDocumentId):
            self.store.get("users", "../secrets")
        with pytest.raises(InvalidDocumentId):
            self.store.set("../users", "u1", {})
        with pytest.raises(InvalidDocumentId):
            self.store.merge_set("users", "", {})

    def test_create_refuses_existing_document(self):
        self.store.create("credentials", "a@example.com", {"uid": "first"})

        with pytest.raises(DocumentExists):
            self.store.create("credentials", "a@example.com", {"uid": "second"})
        assert self.store.get("credentials", "a@example.com") == {"uid": "first"}

    def test_list_ids(self):
        assert self.store.list_ids("users") == []
        self.store.set("users", "b", {})
        self.store.set("users", "a", {})

        assert self.store.list_ids("users") == ["a", "b"]


class TestDeepMerge:
    """Test the merge helper directly."""

    def test_does_not_mutate_inputs(self):
        target = {"a": {"x": 1}}
        partial = {"a": {"y": 2}}

        merged = deep_merge(target, partial)

        assert merged == {"a": {"x": 1, "y": 2}}
        assert target == {"a": {"x": 1}}

    def test_non_dict_value_replaces(self):
        assert deep_merge({"a": {"x": 1}}, {"a": None}) == {"a": None}
        assert deep_merge({"a": 1}, {"a": {"x": 1}}) == {"a": {"x": 1}}
