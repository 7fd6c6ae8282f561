"""Tests for compact mode."""
import copy
import json

from devops_core.compaction import compact_identity, compact_work_items

from conftest import identity, make_work_item


class TestCompactIdentity:
    """Test reduction of single identity values."""

    def test_identity_reduced_to_display_name(self):
        """Test that an identity object becomes its display name."""
        assert compact_identity(identity("Alice Smith"), True) == "Alice Smith"

    def test_disabled_returns_value_unchanged(self):
        """Test that nothing changes when compact mode is off."""
        value = identity("Alice Smith")
        assert compact_identity(value, False) is value

    def test_values_without_display_name_pass_through(self):
        """Test that null, strings and identities missing displayName are kept as-is."""
        assert compact_identity(None, True) is None
        assert compact_identity("Alice Smith", True) == "Alice Smith"
        partial = {"uniqueName": "alice@contoso.com"}
        assert compact_identity(partial, True) == partial


class TestCompactWorkItems:
    """Test compaction of whole result sets."""

    def test_identity_fields_compacted(self):
        """Test that AssignedTo, CreatedBy and ChangedBy become display names."""
        record = make_work_item(1, assigned_to="Alice", created_by="Bob", changed_by="Carol")

        [compacted] = compact_work_items([record], True)

        assert compacted["fields"]["System.AssignedTo"] == "Alice"
        assert compacted["fields"]["System.CreatedBy"] == "Bob"
        assert compacted["fields"]["System.ChangedBy"] == "Carol"
        assert compacted["fields"]["System.Title"] == "Work item 1"
        assert "_links" not in compacted

    def test_missing_identity_stays_missing(self):
        """Test that an unassigned item is not given an AssignedTo value."""
        [compacted] = compact_work_items([make_work_item(1)], True)
        assert "System.AssignedTo" not in compacted["fields"]

    def test_null_identity_stays_null(self):
        """Test that an explicit null identity is preserved."""
        record = make_work_item(1)
        record["fields"]["System.AssignedTo"] = None

        [compacted] = compact_work_items([record], True)
        assert compacted["fields"]["System.AssignedTo"] is None

    def test_input_is_not_mutated(self):
        """Test that compaction builds new records instead of editing the input."""
        records = [make_work_item(i, assigned_to="Alice", created_by="Bob") for i in range(3)]
        snapshot = copy.deepcopy(records)

        compact_work_items(records, True)

        assert records == snapshot

    def test_disabled_returns_same_list(self):
        """Test that compact mode off returns the input list itself."""
        records = [make_work_item(1, assigned_to="Alice")]
        assert compact_work_items(records, False) is records

    def test_compaction_shrinks_payload(self):
        """Test that compacting identity-heavy records cuts the serialized size."""
        records = [
            make_work_item(i, assigned_to="Alice Smith", created_by="Bob Jones", changed_by="Carol White")
            for i in range(20)
        ]

        before = len(json.dumps(records).encode("utf-8"))
        after = len(json.dumps(compact_work_items(records, True)).encode("utf-8"))

        assert after < before / 2

    def test_non_dict_records_pass_through(self):
        """Test that malformed entries are returned untouched."""
        assert compact_work_items([None, "x"], True) == [None, "x"]
