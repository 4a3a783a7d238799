"""Database models package.

This package contains all SQLAlchemy model definitions for the reporting
chain engine.

Models:
    - Position: Occupied seat supplied by the assignment registry (read-only)
    - PositionTitle: Rank table entry (title -> sort_order)
    - ReportingEdge: Temporal child -> parent reporting ledger row
"""

from .position import Position
from .position_title import PositionTitle
from .reporting_edge import ReportingEdge

__all__ = [
    "Position",
    "PositionTitle",
    "ReportingEdge",
]
