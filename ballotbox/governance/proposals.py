"""
Governance Proposals

Defines the proposal record, its time-derived lifecycle states and the
ProposalStore that allocates ids and keeps tallies. The store only persists;
every policy check (registration, window, duplicates, permissions) belongs to
the voting engine.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional

from ..constants import REGISTRATION_PERIOD, VOTING_DURATION
from ..logger import get_logger
from .errors import EmptyFieldError, ProposalNotFoundError

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  STATES
# ══════════════════════════════════════════════════════════════════════

class ProposalState(IntEnum):
    """Lifecycle stage, derived from the clock and never stored."""
    PENDING = 0     # Created, window not yet open
    ACTIVE = 1      # start_time <= now <= end_time
    CLOSED = 2      # Window over, outcome not recorded
    EXECUTED = 3    # Window over, outcome recorded


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    A yes/no proposal and its running tally.

    Fields:
        id:           Sequential identifier, starting at 1
        title:        Short title
        description:  Detailed description / rationale
        proposer:     Identity of the registered voter who submitted it
        created_at:   Timestamp of submission
        start_time:   created_at + registration period
        end_time:     start_time + voting duration
        yes_votes:    Votes in favour
        no_votes:     Votes against
        total_votes:  yes_votes + no_votes
        executed:     Outcome recorded
        passed:       Recorded outcome (None until executed)
        exists:       Set on creation, never cleared
    """
    id: int
    title: str
    description: str
    proposer: str
    created_at: float
    start_time: float
    end_time: float
    yes_votes: int = 0
    no_votes: int = 0
    total_votes: int = 0
    executed: bool = False
    passed: Optional[bool] = None
    exists: bool = True

    def __post_init__(self):
        if not self.end_time > self.start_time > self.created_at:
            raise ValueError(
                f"Proposal #{self.id}: expected end_time > start_time > created_at, "
                f"got {self.end_time}, {self.start_time}, {self.created_at}"
            )

    # ── Derived state ─────────────────────────────────────────────────

    def state_at(self, now: float) -> ProposalState:
        return proposal_state(self, now)

    def is_active(self, now: float) -> bool:
        return self.start_time <= now <= self.end_time

    def has_ended(self, now: float) -> bool:
        return now > self.end_time

    @property
    def is_winning(self) -> bool:
        """Strict majority of cast votes; a tie does not pass."""
        return self.yes_votes > self.no_votes

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "proposer": self.proposer,
            "createdAt": self.created_at,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "yesVotes": self.yes_votes,
            "noVotes": self.no_votes,
            "totalVotes": self.total_votes,
            "executed": self.executed,
            "passed": self.passed,
            "exists": self.exists,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        yes_votes = data.get("yesVotes", 0)
        no_votes = data.get("noVotes", 0)
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            proposer=data["proposer"],
            created_at=data["createdAt"],
            start_time=data["startTime"],
            end_time=data["endTime"],
            yes_votes=yes_votes,
            no_votes=no_votes,
            total_votes=yes_votes + no_votes,
            executed=data.get("executed", False),
            passed=data.get("passed"),
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} {self.title!r} "
            f"yes={self.yes_votes} no={self.no_votes} executed={self.executed}>"
        )


def proposal_state(proposal: Proposal, now: float) -> ProposalState:
    """State of *proposal* at time *now*."""
    if now < proposal.start_time:
        return ProposalState.PENDING
    if now <= proposal.end_time:
        return ProposalState.ACTIVE
    if proposal.executed:
        return ProposalState.EXECUTED
    return ProposalState.CLOSED


def require_text(value: Any, field_name: str) -> str:
    """Reject missing or empty text. Whitespace is content."""
    if not isinstance(value, str) or not value:
        raise EmptyFieldError(f"Proposal {field_name} cannot be empty")
    return value


# ══════════════════════════════════════════════════════════════════════
#  STORE
# ══════════════════════════════════════════════════════════════════════

class ProposalStore:
    """
    Sequentially numbered proposals.

    Ids start at 1 and are never reused; insertion order equals id order.
    """

    def __init__(
        self,
        registration_period: int = REGISTRATION_PERIOD,
        voting_duration: int = VOTING_DURATION,
    ):
        if registration_period <= 0 or voting_duration <= 0:
            raise ValueError("registration_period and voting_duration must be positive")
        self.registration_period = registration_period
        self.voting_duration = voting_duration
        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1

    def create(self, title: str, description: str, proposer: str, now: float) -> int:
        """
        Store a new proposal and return its id.

        Raises:
            EmptyFieldError: title or description is empty
        """
        require_text(title, "title")
        require_text(description, "description")

        pid = self._next_id
        start = now + self.registration_period
        self._proposals[pid] = Proposal(
            id=pid,
            title=title,
            description=description,
            proposer=proposer,
            created_at=now,
            start_time=start,
            end_time=start + self.voting_duration,
        )
        self._next_id += 1
        logger.debug(
            f"Store: proposal #{pid} window [{start}, {start + self.voting_duration}]"
        )
        return pid

    def _get(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None or not proposal.exists:
            raise ProposalNotFoundError(f"Proposal #{proposal_id} does not exist")
        return proposal

    def get(self, proposal_id: int) -> Proposal:
        """Copy of the stored proposal."""
        return replace(self._get(proposal_id))

    def exists(self, proposal_id: int) -> bool:
        proposal = self._proposals.get(proposal_id)
        return proposal is not None and proposal.exists

    def record_vote(self, proposal_id: int, support: bool) -> None:
        proposal = self._get(proposal_id)
        if support:
            proposal.yes_votes += 1
        else:
            proposal.no_votes += 1
        proposal.total_votes += 1

    def mark_executed(self, proposal_id: int, passed: bool) -> None:
        proposal = self._get(proposal_id)
        proposal.executed = True
        proposal.passed = passed

    def list_ids(self) -> List[int]:
        return list(range(1, self._next_id))

    def list_active_ids(self, now: float) -> Iterator[int]:
        """Lazily yield ids whose window contains *now* (inclusive)."""
        for pid in range(1, self._next_id):
            if self._proposals[pid].is_active(now):
                yield pid

    @property
    def count(self) -> int:
        return self._next_id - 1

    def restore(self, proposal: Proposal) -> None:
        """Insert a proposal loaded from a snapshot; ids must arrive in order."""
        if proposal.id != self._next_id:
            raise ValueError(
                f"Snapshot proposal #{proposal.id} out of order (expected #{self._next_id})"
            )
        self._proposals[proposal.id] = replace(proposal)
        self._next_id += 1

    def to_dict(self) -> List[Dict[str, Any]]:
        return [self._proposals[pid].to_dict() for pid in self.list_ids()]

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={self.count}>"
