"""
One-Identity-One-Vote Voting Engine

Composes the VoterRegistry and the ProposalStore and enforces every rule:
  - only the administrator admits voters and records outcomes
  - only registered voters submit proposals and vote
  - votes are accepted inside [start_time, end_time], both ends inclusive
  - one vote per (proposal, identity)
  - outcome = strict majority of cast votes (ties fail), recorded once,
    only after the window closed

Operations run one at a time under the engine lock and validate everything
before their first write, so a rejected call leaves no trace. Time is always
an input (``now``); operations without a ``now`` argument read the injected
``clock``.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..logger import get_logger
from ..constants import REGISTRATION_PERIOD, VOTING_DURATION
from .errors import (
    AlreadyExecutedError,
    DuplicateVoteError,
    GovernanceError,
    InvalidChoiceError,
    NotRegisteredError,
    UnauthorizedError,
    VotingNotActiveError,
    VotingNotEndedError,
)
from .events import (
    AdminTransferred,
    EventBus,
    EventListener,
    GovernanceEvent,
    ProposalCreated,
    ProposalExecuted,
    VoteCast,
    VoterRegistered,
)
from .identity import normalize_identity, try_normalize_identity
from .proposals import (
    Proposal,
    ProposalState,
    ProposalStore,
    proposal_state,
    require_text,
)
from .registry import Voter, VoterRegistry

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  VOTE DATA
# ══════════════════════════════════════════════════════════════════════

class Vote:
    """Vote choices."""
    YES = True
    NO = False

    @staticmethod
    def name(support: bool) -> str:
        return "YES" if support else "NO"

    @staticmethod
    def is_valid(support: Any) -> bool:
        return isinstance(support, bool)


@dataclass(frozen=True)
class VoteRecord:
    """The single vote an identity cast on a proposal."""
    proposal_id: int
    voter: str
    support: bool
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "voteType": Vote.name(self.support),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteRecord":
        return cls(
            proposal_id=data["proposalId"],
            voter=data["voter"],
            support=data["voteType"] == "YES",
            timestamp=data["timestamp"],
        )


# ══════════════════════════════════════════════════════════════════════
#  VIEWS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalView:
    """Read-only snapshot of a proposal."""
    id: int
    title: str
    description: str
    proposer: str
    yes_votes: int
    no_votes: int
    total_votes: int
    start_time: float
    end_time: float
    executed: bool
    exists: bool
    created_at: float = 0
    passed: Optional[bool] = None

    @classmethod
    def of(cls, proposal: Proposal) -> "ProposalView":
        return cls(
            id=proposal.id,
            title=proposal.title,
            description=proposal.description,
            proposer=proposal.proposer,
            yes_votes=proposal.yes_votes,
            no_votes=proposal.no_votes,
            total_votes=proposal.total_votes,
            start_time=proposal.start_time,
            end_time=proposal.end_time,
            executed=proposal.executed,
            exists=proposal.exists,
            created_at=proposal.created_at,
            passed=proposal.passed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "proposer": self.proposer,
            "yesVotes": self.yes_votes,
            "noVotes": self.no_votes,
            "totalVotes": self.total_votes,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "executed": self.executed,
            "exists": self.exists,
            "createdAt": self.created_at,
            "passed": self.passed,
        }


@dataclass(frozen=True)
class VoterView:
    """Read-only snapshot of a voter (unregistered identities included)."""
    identity: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: int
    registration_time: float

    @classmethod
    def of(cls, voter: Voter) -> "VoterView":
        return cls(
            identity=voter.identity,
            is_registered=voter.is_registered,
            has_voted=voter.has_voted,
            voted_proposal_id=voter.voted_proposal_id,
            registration_time=voter.registration_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "isRegistered": self.is_registered,
            "hasVoted": self.has_voted,
            "votedProposalId": self.voted_proposal_id,
            "registrationTime": self.registration_time,
        }


@dataclass(frozen=True)
class ResultView:
    """Tally of a proposal as seen at a given time."""
    proposal_id: int
    voting_ended: bool
    passed: bool
    yes_votes: int
    no_votes: int
    total_votes: int
    yes_percentage: int

    @classmethod
    def of(cls, proposal: Proposal, now: float) -> "ResultView":
        total = proposal.total_votes
        return cls(
            proposal_id=proposal.id,
            voting_ended=proposal.has_ended(now),
            passed=proposal.is_winning,
            yes_votes=proposal.yes_votes,
            no_votes=proposal.no_votes,
            total_votes=total,
            # Truncated, never rounded
            yes_percentage=(proposal.yes_votes * 100) // total if total > 0 else 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "votingEnded": self.voting_ended,
            "passed": self.passed,
            "yesVotes": self.yes_votes,
            "noVotes": self.no_votes,
            "totalVotes": self.total_votes,
            "yesPercentage": self.yes_percentage,
        }


# ══════════════════════════════════════════════════════════════════════
#  VOTING ENGINE
# ══════════════════════════════════════════════════════════════════════

class VotingEngine:
    """
    Authoritative registry and lifecycle engine for proposals and votes.

    Responsibilities:
        - Admit voters (administrator only)
        - Accept proposals from registered voters
        - Accept one vote per identity per proposal inside the window
        - Record outcomes after the window closes (administrator only)
        - Publish an audit event for every change
    """

    def __init__(
        self,
        admin: str,
        registration_period: int = REGISTRATION_PERIOD,
        voting_duration: int = VOTING_DURATION,
        clock: Optional[Callable[[], float]] = None,
        event_history: Optional[int] = None,
    ):
        """
        Args:
            admin:               Identity allowed to register voters and execute proposals
            registration_period: Seconds between proposal creation and window opening
            voting_duration:     Seconds the window stays open
            clock:               Callable() → timestamp, used when no ``now`` is given
            event_history:       Keep only this many recent events (None keeps all)
        """
        self._admin = normalize_identity(admin)
        self._clock = clock or time.time
        self._lock = threading.RLock()

        self._registry = VoterRegistry()
        self._store = ProposalStore(registration_period, voting_duration)
        self._vote_records: Dict[int, Dict[str, VoteRecord]] = {}  # proposal_id → {voter → record}
        self._bus = EventBus(max_history=event_history)

        logger.info(
            f"Voting engine ready: admin={self._admin} "
            f"registration_period={registration_period}s voting_duration={voting_duration}s"
        )

    @classmethod
    def from_config(cls, config, clock: Optional[Callable[[], float]] = None) -> "VotingEngine":
        """Build an engine from a validated BallotConfig."""
        config.validate()
        return cls(
            admin=config.engine.admin,
            registration_period=config.engine.registration_period,
            voting_duration=config.engine.voting_duration,
            clock=clock,
            event_history=config.engine.event_history or None,
        )

    # ── Guards ────────────────────────────────────────────────────────

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def _reject(self, error: GovernanceError) -> GovernanceError:
        logger.warning(f"Rejected [{error.code}]: {error}")
        return error

    def _require_admin(self, caller: Any) -> None:
        if try_normalize_identity(caller) != self._admin:
            raise self._reject(UnauthorizedError(f"{caller} is not the administrator"))

    def _require_registered(self, identity: Any) -> str:
        if not self._registry.is_registered(identity):
            raise self._reject(NotRegisteredError(f"{identity} is not a registered voter"))
        return normalize_identity(identity)

    def _require_proposal(self, proposal_id: int) -> Proposal:
        try:
            return self._store.get(proposal_id)
        except GovernanceError as e:
            raise self._reject(e)

    def _emit(self, event: GovernanceEvent) -> GovernanceEvent:
        self._bus.publish(event)
        return event

    # ── Administration ────────────────────────────────────────────────

    @property
    def admin(self) -> str:
        with self._lock:
            return self._admin

    def transfer_admin(self, new_admin: str, caller: str) -> AdminTransferred:
        """
        Hand the administrator role to *new_admin* in a single step.

        There is no acceptance step and no way back: a mistaken address
        leaves the engine without a reachable administrator.

        Raises:
            UnauthorizedError: caller is not the administrator
            InvalidIdentityError: new_admin is missing, blank or zero
        """
        with self._lock:
            self._require_admin(caller)
            try:
                new_key = normalize_identity(new_admin)
            except GovernanceError as e:
                raise self._reject(e)

            previous = self._admin
            self._admin = new_key
            logger.warning(f"Administrator transferred: {previous} → {new_key}")
            return self._emit(AdminTransferred(
                timestamp=self._now(None),
                previous_admin=previous,
                new_admin=new_key,
            ))

    def register_voter(
        self,
        identity: str,
        now: Optional[float] = None,
        caller: Optional[str] = None,
    ) -> VoterRegistered:
        """
        Admit *identity* as a voter.

        The boundary layer authenticates the administrator; when it passes
        *caller*, the engine checks it as well.

        Raises:
            UnauthorizedError: caller given and not the administrator
            InvalidIdentityError: identity is missing, blank or zero
            AlreadyRegisteredError: identity was registered before
        """
        with self._lock:
            if caller is not None:
                self._require_admin(caller)
            ts = self._now(now)
            try:
                voter = self._registry.register(identity, ts)
            except GovernanceError as e:
                raise self._reject(e)

            logger.info(f"VoterRegistered: {voter.identity}")
            return self._emit(VoterRegistered(timestamp=ts, voter=voter.identity))

    # ── Proposals ─────────────────────────────────────────────────────

    def create_proposal(self, title: str, description: str, proposer: str, now: float) -> int:
        """
        Submit a proposal; its window opens one registration period later.

        Returns:
            The new proposal id

        Raises:
            NotRegisteredError: proposer is not a registered voter
            EmptyFieldError: title or description is empty
        """
        with self._lock:
            proposer_key = self._require_registered(proposer)
            try:
                require_text(title, "title")
                require_text(description, "description")
            except GovernanceError as e:
                raise self._reject(e)

            pid = self._store.create(title, description, proposer_key, now)
            proposal = self._store.get(pid)
            logger.info(
                f"ProposalCreated: #{pid} {title!r} by {proposer_key} "
                f"(voting {proposal.start_time} → {proposal.end_time})"
            )
            self._emit(ProposalCreated(
                timestamp=now,
                proposal_id=pid,
                proposer=proposer_key,
                title=title,
                start_time=proposal.start_time,
                end_time=proposal.end_time,
            ))
            return pid

    # ── Cast vote ─────────────────────────────────────────────────────

    def cast_vote(self, identity: str, proposal_id: int, support: bool, now: float) -> VoteCast:
        """
        Record *identity*'s vote on a proposal.

        Args:
            identity:    Registered voter
            proposal_id: Target proposal
            support:     Vote.YES (True) or Vote.NO (False)
            now:         Current time

        Raises:
            NotRegisteredError, ProposalNotFoundError, VotingNotActiveError,
            DuplicateVoteError (checked in that order), InvalidChoiceError
        """
        with self._lock:
            voter = self._require_registered(identity)
            proposal = self._require_proposal(proposal_id)

            if not proposal.is_active(now):
                raise self._reject(VotingNotActiveError(
                    f"Proposal #{proposal_id} accepts votes in "
                    f"[{proposal.start_time}, {proposal.end_time}], not at {now}"
                ))

            records = self._vote_records.get(proposal_id, {})
            if voter in records:
                raise self._reject(DuplicateVoteError(
                    f"{voter} has already voted on proposal #{proposal_id}"
                ))

            if not Vote.is_valid(support):
                raise self._reject(InvalidChoiceError(f"Invalid vote choice: {support!r}"))

            record = VoteRecord(proposal_id=proposal_id, voter=voter, support=support, timestamp=now)
            self._vote_records.setdefault(proposal_id, {})[voter] = record
            self._store.record_vote(proposal_id, support)
            self._registry.record_vote(voter, proposal_id)

            logger.info(f"VoteCast: {voter} → {Vote.name(support)} on proposal #{proposal_id}")
            return self._emit(VoteCast(
                timestamp=now,
                proposal_id=proposal_id,
                voter=voter,
                support=support,
            ))

    # ── Execution ─────────────────────────────────────────────────────

    def execute_proposal(self, proposal_id: int, now: float, caller: str) -> bool:
        """
        Record the outcome of a proposal whose window has closed.

        Nothing is enacted: the outcome is stored and published for
        downstream systems.

        Returns:
            True if the proposal passed (yes > no), False otherwise

        Raises:
            UnauthorizedError, ProposalNotFoundError, VotingNotEndedError,
            AlreadyExecutedError (checked in that order)
        """
        with self._lock:
            self._require_admin(caller)
            proposal = self._require_proposal(proposal_id)

            if not proposal.has_ended(now):
                raise self._reject(VotingNotEndedError(
                    f"Voting on proposal #{proposal_id} ends at {proposal.end_time}"
                ))
            if proposal.executed:
                raise self._reject(AlreadyExecutedError(
                    f"Proposal #{proposal_id} was already executed"
                ))

            passed = proposal.is_winning
            self._store.mark_executed(proposal_id, passed)

            logger.info(
                f"ProposalExecuted: #{proposal_id} {'PASSED' if passed else 'DEFEATED'} "
                f"(yes={proposal.yes_votes} no={proposal.no_votes})"
            )
            self._emit(ProposalExecuted(
                timestamp=now,
                proposal_id=proposal_id,
                passed=passed,
                executor=self._admin,
            ))
            return passed

    # ── Queries ───────────────────────────────────────────────────────

    def get_proposal(self, proposal_id: int) -> ProposalView:
        with self._lock:
            return ProposalView.of(self._store.get(proposal_id))

    def get_voter_info(self, identity: str) -> VoterView:
        with self._lock:
            return VoterView.of(self._registry.get(identity))

    def get_proposal_result(self, proposal_id: int, now: float) -> ResultView:
        with self._lock:
            return ResultView.of(self._store.get(proposal_id), now)

    def is_voting_active(self, proposal_id: int, now: float) -> bool:
        with self._lock:
            return self._store.get(proposal_id).is_active(now)

    def get_proposal_state(self, proposal_id: int, now: float) -> ProposalState:
        with self._lock:
            return proposal_state(self._store.get(proposal_id), now)

    def list_all_proposal_ids(self) -> List[int]:
        with self._lock:
            return self._store.list_ids()

    def list_active_proposal_ids(self, now: float) -> List[int]:
        with self._lock:
            return list(self._store.list_active_ids(now))

    def has_voted(self, proposal_id: int, identity: str) -> bool:
        return self.get_vote_record(proposal_id, identity) is not None

    def get_vote_record(self, proposal_id: int, identity: str) -> Optional[VoteRecord]:
        key = try_normalize_identity(identity)
        with self._lock:
            return self._vote_records.get(proposal_id, {}).get(key)

    @property
    def proposal_count(self) -> int:
        with self._lock:
            return self._store.count

    @property
    def voter_count(self) -> int:
        with self._lock:
            return self._registry.count

    # ── Events ────────────────────────────────────────────────────────

    def subscribe(self, listener: EventListener) -> None:
        """Receive every future event, synchronously, in order."""
        with self._lock:
            self._bus.subscribe(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        with self._lock:
            self._bus.unsubscribe(listener)

    def events(self, proposal_id: Optional[int] = None) -> List[GovernanceEvent]:
        with self._lock:
            return self._bus.history(proposal_id)

    # ── Snapshot ──────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "admin": self._admin,
                "registrationPeriod": self._store.registration_period,
                "votingDuration": self._store.voting_duration,
                "voters": list(self._registry.to_dict().values()),
                "proposals": self._store.to_dict(),
                "votes": [
                    record.to_dict()
                    for pid in self._store.list_ids()
                    for record in self._vote_records.get(pid, {}).values()
                ],
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        clock: Optional[Callable[[], float]] = None,
    ) -> "VotingEngine":
        """Rebuild an engine from ``to_dict`` output. No events are published."""
        engine = cls(
            admin=data["admin"],
            registration_period=data.get("registrationPeriod", REGISTRATION_PERIOD),
            voting_duration=data.get("votingDuration", VOTING_DURATION),
            clock=clock,
        )
        for voter_data in data.get("voters", []):
            engine._registry.restore(Voter.from_dict(voter_data))
        for proposal_data in data.get("proposals", []):
            engine._store.restore(Proposal.from_dict(proposal_data))
        for vote_data in data.get("votes", []):
            record = VoteRecord.from_dict(vote_data)
            engine._vote_records.setdefault(record.proposal_id, {})[record.voter] = record
        logger.info(
            f"Voting engine restored: {engine.voter_count} voters, "
            f"{engine.proposal_count} proposals"
        )
        return engine

    def __repr__(self) -> str:
        return (
            f"<VotingEngine admin={self._admin} voters={self._registry.count} "
            f"proposals={self._store.count}>"
        )
