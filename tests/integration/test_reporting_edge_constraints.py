"""PostgreSQL constraint tests for the reporting ledger.

Writes here bypass the store's own pre-checks so that the database
constraints are the only thing standing between a bad row and the table.
"""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from reporting_chain.models import ReportingEdge
from reporting_chain.services.edge_lifecycle import EdgeLifecycleManager
from reporting_chain.services.edge_store import (
    RULE_NATURAL_KEY,
    RULE_ONE_ACTIVE_PARENT,
    ReportingEdgeStore,
)
from reporting_chain.services.leadership_errors import InvariantViolation
from reporting_chain.services.rank_table import RankTable
from tests.integration.factories import (
    PositionFactory,
    PositionTitleFactory,
    ReportingEdgeFactory,
)

pytestmark = pytest.mark.integration


def _raw_edge(child, parent, start, end=None):
    return ReportingEdge(
        child_position_id=child.id,
        parent_position_id=parent.id,
        start_date=start,
        end_date=end,
    )


class TestCheckConstraints:

    def test_self_loop_rejected(self, db_session):
        position = PositionFactory()
        db_session.add(_raw_edge(position, position, date(2024, 1, 1)))

        with pytest.raises(IntegrityError, match="ck_reporting_edges_no_self_loop"):
            db_session.flush()
        db_session.rollback()

    def test_end_before_start_rejected(self, db_session):
        child, parent = PositionFactory(), PositionFactory(title="Supervisor")
        db_session.add(_raw_edge(child, parent, date(2024, 3, 1), date(2024, 2, 1)))

        with pytest.raises(IntegrityError, match="ck_reporting_edges_end_after_start"):
            db_session.flush()
        db_session.rollback()


class TestUniqueConstraints:

    def test_second_open_edge_rejected(self, db_session):
        edge = ReportingEdgeFactory()
        other = PositionFactory(title="Manager")
        db_session.add(_raw_edge(edge.child, other, date(2024, 2, 1)))

        with pytest.raises(IntegrityError, match="uq_reporting_edges_one_active_per_child"):
            db_session.flush()
        db_session.rollback()

    def test_closed_edges_allowed_alongside_open(self, db_session):
        edge = ReportingEdgeFactory(start_date=date(2023, 1, 1), end_date=date(2023, 6, 1))
        other = PositionFactory(title="Manager")
        ReportingEdgeFactory(child=edge.child, parent=other, start_date=date(2023, 6, 1), end_date=date(2024, 1, 1))
        ReportingEdgeFactory(child=edge.child, parent=edge.parent, start_date=date(2024, 1, 1))

        assert ReportingEdgeStore(db_session).count_active_edges_for(edge.child.id) == 1

    def test_natural_key_rejected(self, db_session):
        edge = ReportingEdgeFactory(end_date=date(2024, 2, 1))
        db_session.add(_raw_edge(edge.child, edge.parent, edge.start_date, date(2024, 3, 1)))

        with pytest.raises(IntegrityError, match="uq_reporting_edges_natural_key"):
            db_session.flush()
        db_session.rollback()

    def test_position_with_history_cannot_be_deleted(self, db_session):
        edge = ReportingEdgeFactory()
        with pytest.raises(IntegrityError):
            db_session.execute(
                text("DELETE FROM positions WHERE id = :id"), {"id": edge.parent_position_id}
            )
        db_session.rollback()


class TestStoreTranslation:

    def test_racing_writer_reported_as_one_active_parent(self, db_session):
        edge = ReportingEdgeFactory()
        other = PositionFactory(title="Manager")
        store = ReportingEdgeStore(db_session)

        with patch.object(store, "find_active_edge_for_child", return_value=None):
            with pytest.raises(InvariantViolation) as exc_info:
                store.insert_edge(_raw_edge(edge.child, other, date(2024, 2, 1)))

        assert exc_info.value.rule == RULE_ONE_ACTIVE_PARENT
        db_session.rollback()

    def test_natural_key_reported(self, db_session):
        edge = ReportingEdgeFactory(end_date=date(2024, 2, 1))
        store = ReportingEdgeStore(db_session)

        with patch.object(store, "_check_natural_key"), \
                patch.object(store, "latest_closed_end_for_child", return_value=None):
            with pytest.raises(InvariantViolation) as exc_info:
                store.insert_edge(_raw_edge(edge.child, edge.parent, edge.start_date, date(2024, 3, 1)))

        assert exc_info.value.rule == RULE_NATURAL_KEY
        db_session.rollback()


class TestLifecycleOnPostgres:

    def test_leader_change_with_row_lock(self, db_session):
        child = PositionFactory()
        first = PositionFactory(title="Supervisor")
        second = PositionFactory(title="Supervisor", affiliation="ITG")
        db_session.commit()
        manager = EdgeLifecycleManager(db_session)

        manager.set_leader(child.id, first.id, date(2024, 1, 1))
        change = manager.set_leader(child.id, second.id, date(2024, 6, 1))

        store = ReportingEdgeStore(db_session)
        assert store.find_active_edge_for_child(child.id).id == change.opened_edge_id
        closed = store.get_edge(change.closed_edge_id)
        assert closed.end_date == date(2024, 6, 1)

    def test_failed_open_keeps_old_edge(self, db_session):
        edge = ReportingEdgeFactory()
        other = PositionFactory(title="Manager", affiliation="ITG")
        db_session.commit()
        manager = EdgeLifecycleManager(db_session)

        with patch.object(
            ReportingEdgeStore, "insert_edge",
            side_effect=InvariantViolation(RULE_ONE_ACTIVE_PARENT, "simulated"),
        ):
            with pytest.raises(InvariantViolation):
                manager.set_leader(edge.child_position_id, other.id, date(2024, 6, 1))

        active = ReportingEdgeStore(db_session).find_active_edge_for_child(edge.child_position_id)
        assert active.id == edge.id
        assert active.end_date is None


class TestRankTable:

    def test_lists_active_titles_in_order(self, db_session):
        PositionTitleFactory(title="Supervisor", sort_order=20)
        PositionTitleFactory(title="Technician", sort_order=10)
        PositionTitleFactory(title="Retired", sort_order=5, active=False)
        PositionTitleFactory(title="Unranked", sort_order=None)

        assert RankTable(db_session).list_rank_entries() == [
            ("Technician", 10),
            ("Supervisor", 20),
        ]
