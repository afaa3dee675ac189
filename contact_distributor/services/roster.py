from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from ..config.loader import RosterAgentConfig
from ..models.distribution import DistributionTarget
from .planner import ROSTER_SIZE

"""Roster selectors: who is eligible to receive records in this run.

A selector returns eligible agents already filtered (active only) and
ordered by creation order, capped at ROSTER_SIZE. The planner does not
re-sort or re-filter; it only checks that exactly ROSTER_SIZE came back.
"""

__all__ = [
    "RosterSelector",
    "StaticRosterSelector",
    "ConfigRosterSelector",
    "PostgresRosterSelector",
]

logger = logging.getLogger(__name__)


class RosterSelector(Protocol):
    def select(self) -> list[DistributionTarget]:
        """Return the roster snapshot for one planning run."""
        ...


class StaticRosterSelector:
    """Fixed, already-eligible target list (embedding callers, tests)."""

    def __init__(self, targets: Iterable[DistributionTarget]) -> None:
        self._targets = list(targets)

    def select(self) -> list[DistributionTarget]:
        return list(self._targets)


class ConfigRosterSelector:
    """Roster declared in the YAML config. Declaration order = creation order."""

    def __init__(self, agents: Iterable[RosterAgentConfig], limit: int = ROSTER_SIZE) -> None:
        self._agents = tuple(agents)
        self._limit = limit

    def select(self) -> list[DistributionTarget]:
        active = [a for a in self._agents if a.active]
        if len(active) > self._limit:
            logger.debug(f"roster: {len(active)} active agents in config, using first {self._limit}")
        return [
            DistributionTarget(target_id=a.agent_id, display_name=a.name)
            for a in active[: self._limit]
        ]


class PostgresRosterSelector:
    """First active agents by ``created_at`` from the ``agents`` table."""

    QUERY = (
        "SELECT id, name FROM agents WHERE is_active "
        "ORDER BY created_at ASC, id ASC LIMIT %s"
    )

    def __init__(self, cursor: Any, limit: int = ROSTER_SIZE) -> None:
        self._cursor = cursor
        self._limit = limit

    def select(self) -> list[DistributionTarget]:
        self._cursor.execute(self.QUERY, (self._limit,))
        return [
            DistributionTarget(target_id=str(agent_id), display_name=name)
            for agent_id, name in self._cursor.fetchall()
        ]
