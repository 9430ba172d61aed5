"""
Governance audit events.

Every successful mutation of the voting engine produces one event. Events are
published synchronously on an EventBus after the state change is final, in
the order the changes were applied, so indexers and auditors see the same
sequence the engine did. The engine itself never reads them back.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from ..constants import (
    EVENT_ADMIN_TRANSFERRED,
    EVENT_PROPOSAL_CREATED,
    EVENT_PROPOSAL_EXECUTED,
    EVENT_VOTE_CAST,
    EVENT_VOTER_REGISTERED,
)

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GovernanceEvent:
    """Base class: every event carries the time it was applied."""
    timestamp: float

    name = "GovernanceEvent"
    proposal_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {_camel(k): v for k, v in asdict(self).items()}
        data["event"] = self.name
        return data


@dataclass(frozen=True)
class VoterRegistered(GovernanceEvent):
    name = EVENT_VOTER_REGISTERED
    voter: str = ""


@dataclass(frozen=True)
class ProposalCreated(GovernanceEvent):
    name = EVENT_PROPOSAL_CREATED
    proposer: str = ""
    title: str = ""
    start_time: float = 0
    end_time: float = 0


@dataclass(frozen=True)
class VoteCast(GovernanceEvent):
    name = EVENT_VOTE_CAST
    voter: str = ""
    support: bool = False


@dataclass(frozen=True)
class ProposalExecuted(GovernanceEvent):
    name = EVENT_PROPOSAL_EXECUTED
    passed: bool = False
    executor: str = ""


@dataclass(frozen=True)
class AdminTransferred(GovernanceEvent):
    name = EVENT_ADMIN_TRANSFERRED
    previous_admin: str = ""
    new_admin: str = ""


EventListener = Callable[[GovernanceEvent], None]


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------

class EventBus:
    """
    Ordered log of published events plus the listeners that consume them.

    Listeners run in subscription order. A failing listener is logged and
    skipped; the remaining listeners still receive the event and the
    operation that produced it is not affected.

    The log keeps every event for the life of the bus unless *max_history*
    is set, in which case only the most recent *max_history* events are kept.
    """

    def __init__(self, max_history: Optional[int] = None) -> None:
        if max_history is not None and max_history <= 0:
            raise ValueError(f"max_history must be positive (got {max_history})")
        self._listeners: List[EventListener] = []
        self._log: Deque[GovernanceEvent] = deque(maxlen=max_history)

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)
        logger.info("Event listener subscribed: %s", getattr(listener, "__name__", type(listener).__name__))

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners = [l for l in self._listeners if l != listener]

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: GovernanceEvent) -> None:
        self._log.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Listener %s failed on %s: %s",
                    getattr(listener, "__name__", type(listener).__name__), event.name, e,
                )

    def history(self, proposal_id: Optional[int] = None) -> List[GovernanceEvent]:
        """Published events, optionally restricted to one proposal."""
        if proposal_id is None:
            return list(self._log)
        return [e for e in self._log if e.proposal_id == proposal_id]

    def __len__(self) -> int:
        return len(self._log)
