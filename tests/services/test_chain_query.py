"""Tests for the reporting chain query service."""

from datetime import date

import pytest

from reporting_chain.services.chain_query import HistoryEntry, ReportingChainQueryService
from reporting_chain.services.edge_lifecycle import EdgeLifecycleManager
from tests.helpers import create_edge, create_position


@pytest.fixture
def positions(db_session):
    create_position(db_session, "A", title="Technician", full_name="Ann")
    create_position(db_session, "B", title="Supervisor", full_name="Bea")
    create_position(db_session, "C", title="Supervisor", affiliation="ITG", full_name="Cal")
    create_position(db_session, "Z", title="Technician", full_name="Zed", scope_id="org-2")


@pytest.fixture
def query(db_session):
    return ReportingChainQueryService(db_session)


class TestCurrentParent:

    def test_root_has_no_parent(self, query, positions):
        assert query.current_parent_of("A") is None
        assert query.current_edge_of("A") is None

    def test_follows_latest_change(self, query, db_session, positions):
        """A leader change is visible on the next read."""
        manager = EdgeLifecycleManager(db_session)
        manager.set_leader("A", "B", "2024-01-01")
        assert query.current_parent_of("A").id == "B"

        manager.set_leader("A", "C", "2024-06-01")
        assert query.current_parent_of("A").id == "C"

        manager.end_leadership("A", "2024-09-01")
        assert query.current_parent_of("A") is None


class TestHistory:

    def test_scenario_history(self, query, db_session, positions):
        manager = EdgeLifecycleManager(db_session)
        manager.set_leader("A", "B", "2024-01-01")
        manager.set_leader("A", "C", "2024-06-01")

        history = query.history_for("A")

        assert all(isinstance(h, HistoryEntry) for h in history)
        assert [
            (h.edge.parent_position_id, h.edge.start_date, h.edge.end_date, h.relation, h.is_active)
            for h in history
        ] == [
            ("C", date(2024, 6, 1), None, "child", True),
            ("B", date(2024, 1, 1), date(2024, 6, 1), "child", False),
        ]

    def test_history_includes_edges_as_parent(self, query, db_session, positions):
        create_edge(db_session, "A", "B", "2024-02-01")
        create_edge(db_session, "B", "C", "2024-01-01")

        history = query.history_for("B")

        assert [h.relation for h in history] == ["parent", "child"]

    def test_empty_history(self, query, positions):
        assert query.history_for("A") == []


class TestActiveEdgeCount:

    def test_counts_both_sides(self, query, db_session, positions):
        create_edge(db_session, "A", "B", "2024-01-01")
        create_edge(db_session, "B", "C", "2024-01-01")

        assert query.active_edge_count_for("B") == 2
        assert query.active_edge_count_for("Z") == 0


class TestDirectReports:

    def test_sorted_by_name(self, query, db_session, positions):
        create_edge(db_session, "B", "C", "2024-01-01")
        create_edge(db_session, "A", "C", "2024-02-01")
        create_edge(db_session, "Z", "C", "2023-01-01", "2023-12-31")

        reports = query.direct_reports_of("C")

        assert [p.full_name for p in reports] == ["Ann", "Bea"]


class TestLeadershipListing:

    def test_active_first_then_newest(self, query, db_session, positions):
        create_edge(db_session, "A", "B", "2024-01-01", "2024-06-01")
        create_edge(db_session, "A", "C", "2024-06-01")
        create_edge(db_session, "Z", "C", "2023-01-01")

        edges = query.leadership_listing()

        assert [(e.child_position_id, e.parent_position_id) for e in edges] == [
            ("A", "C"), ("Z", "C"), ("A", "B"),
        ]

    def test_scope_filters_by_child(self, query, db_session, positions):
        create_edge(db_session, "A", "C", "2024-06-01")
        create_edge(db_session, "Z", "C", "2023-01-01")

        assert [e.child_position_id for e in query.leadership_listing("org-2")] == ["Z"]
        assert query.leadership_listing("org-unknown") == []
