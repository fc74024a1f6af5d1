"""
Voting window resolver.

Decides whether "now" falls inside a position's voting or nomination
interval. Both ends are inclusive. The in-process checks and the SQL
predicate are built from the same bounds so a position listed as open on a
ballot is judged by the same rule when votes are cast.
"""

from datetime import datetime

from sqlalchemy import ColumnElement, and_

from models.position import Position


class VotingWindowResolver:
    """Window checks for positions."""

    @staticmethod
    def _within(opens_at: datetime, closes_at: datetime, now: datetime) -> bool:
        return opens_at <= now <= closes_at

    def is_voting_open(self, position: Position, now: datetime) -> bool:
        return self._within(position.voting_opens_at, position.voting_closes_at, now)

    def is_nomination_open(self, position: Position, now: datetime) -> bool:
        return self._within(position.nomination_opens_at, position.nomination_closes_at, now)

    def voting_open_clause(self, now: datetime) -> ColumnElement[bool]:
        """SQL predicate selecting positions whose voting window contains `now`."""
        return and_(
            Position.voting_opens_at <= now,
            Position.voting_closes_at >= now,
        )


voting_window_resolver = VotingWindowResolver()
