"""Tests for grouping and grouped text summaries."""
from devops_core.grouping import group_work_items
from devops_core.summary import format_work_items_summary, truncate_title

from conftest import make_work_item


def sprint_records():
    return [
        make_work_item(1, state="Active", points=3),
        make_work_item(2, state="Closed", points=2),
        make_work_item(3, state="Active", points=5, assigned_to="Alice"),
        make_work_item(4, state="Active"),
        make_work_item(5, state="Closed", points=1),
    ]


class TestGrouping:
    """Test partitioning records by a field."""

    def test_groups_by_state_with_totals(self):
        """Test counts and story point totals per state."""
        groups = group_work_items(sprint_records())

        assert [(g.key, g.count, g.story_points) for g in groups] == [
            ("Active", 3, 8),
            ("Closed", 2, 3),
        ]
        assert [item["id"] for item in groups[0].items] == [1, 3, 4]

    def test_groups_sorted_by_count_then_first_seen(self):
        """Test that larger groups come first and ties keep input order."""
        records = [
            make_work_item(1, state="New"),
            make_work_item(2, state="Resolved"),
            make_work_item(3, state="Active"),
            make_work_item(4, state="Active"),
        ]
        groups = group_work_items(records)

        assert [g.key for g in groups] == ["Active", "New", "Resolved"]

    def test_counts_cover_every_record(self):
        """Test that group counts add up to the number of records."""
        records = sprint_records() + [make_work_item(6, state="New")]
        groups = group_work_items(records)

        assert sum(g.count for g in groups) == len(records)

    def test_missing_assignee_grouped_as_unassigned(self):
        """Test placeholder labels for missing identity values."""
        groups = group_work_items(sprint_records(), "System.AssignedTo")

        assert [(g.key, g.count) for g in groups] == [("Unassigned", 4), ("Alice", 1)]

    def test_missing_other_field_grouped_as_unknown(self):
        """Test the placeholder for missing non-identity values."""
        groups = group_work_items([make_work_item(1)], "System.AreaPath")
        assert groups[0].key == "Unknown"

    def test_compacted_records_group_by_display_name(self):
        """Test that compacted string identities group like full identities."""
        raw = make_work_item(1, assigned_to="Alice")
        compacted = make_work_item(2)
        compacted["fields"]["System.AssignedTo"] = "Alice"

        groups = group_work_items([raw, compacted], "System.AssignedTo")

        assert [(g.key, g.count) for g in groups] == [("Alice", 2)]

    def test_non_numeric_points_count_as_zero(self):
        """Test that malformed story points do not break totals."""
        records = [make_work_item(1, points="8"), make_work_item(2, points=True), make_work_item(3, points=2.5)]
        assert group_work_items(records)[0].story_points == 2.5


class TestSummary:
    """Test the grouped text summary."""

    def test_banner_and_group_headers(self):
        """Test the banner, the grouping line and per-group headers."""
        summary = format_work_items_summary(sprint_records())
        lines = summary.split("\n")

        assert lines[0] == "=" * 80
        assert lines[1] == "Work Items Summary - Grouped by System.State"
        assert lines[2] == "(5 items, 11 story points)"
        assert lines[3] == "=" * 80
        assert lines[4] == ""
        assert lines[5] == "ACTIVE (3 items, 8 pts)"
        assert lines[6] == "-" * 80
        assert "CLOSED (2 items, 3 pts)" in lines
        assert summary.index("ACTIVE") < summary.index("CLOSED")

    def test_item_line_layout(self):
        """Test the item and detail line format."""
        summary = format_work_items_summary([make_work_item(1, points=3)])
        lines = summary.split("\n")

        assert lines[7] == "  #    1 - User Story" + " " * 10 + " - 3 pts" + " " * 3 + " - Work item 1"
        assert lines[8] == "  Assigned: Unassigned"

    def test_detail_line_with_neither_field_grouped(self):
        """Test that state and assignee share one indented detail line."""
        summary = format_work_items_summary([make_work_item(1, assigned_to="Alice")], "System.WorkItemType")
        lines = summary.split("\n")

        assert lines[8] == " " * 10 + "State: Active  Assigned: Alice"

    def test_items_without_points_show_na(self):
        """Test that missing story points render as N/A."""
        summary = format_work_items_summary([make_work_item(4)])
        assert " - N/A      - Work item 4" in summary

    def test_detail_line_omits_grouping_field(self):
        """Test that the state is shown when grouping by assignee, and the assignee is not."""
        summary = format_work_items_summary(sprint_records(), "System.AssignedTo")

        assert "Grouped by System.AssignedTo" in summary
        assert "UNASSIGNED (4 items, 6 pts)" in summary
        assert "State: Active" in summary
        assert "Assigned:" not in summary

    def test_group_overflow_is_capped(self):
        """Test that at most 10 items are listed per group."""
        records = [make_work_item(i, state="Active") for i in range(1, 16)]
        summary = format_work_items_summary(records)

        assert "ACTIVE (15 items, 0 pts)" in summary
        assert summary.count(" - Work item ") == 10
        assert summary.endswith("  ... and 5 more")

    def test_long_titles_truncated(self):
        """Test that titles over 50 characters are shortened with '...'."""
        title = "A" * 60
        summary = format_work_items_summary([make_work_item(1, title=title)])

        assert "A" * 47 + "..." in summary
        assert "A" * 48 not in summary

    def test_summary_is_deterministic(self):
        """Test that identical input renders identical text."""
        assert format_work_items_summary(sprint_records()) == format_work_items_summary(sprint_records())

    def test_empty_input(self):
        """Test the summary of an empty result set."""
        summary = format_work_items_summary([])
        assert summary.split("\n")[2] == "(0 items, 0 story points)"
        assert len(summary.split("\n")) == 4


class TestTruncateTitle:
    """Test title truncation."""

    def test_short_title_unchanged(self):
        """Test that a 50-character title is kept."""
        assert truncate_title("B" * 50) == "B" * 50

    def test_long_title_shortened(self):
        """Test that a 51-character title becomes 47 characters plus '...'."""
        assert truncate_title("B" * 51) == "B" * 47 + "..."
