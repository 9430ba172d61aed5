"""
Voter Registry

Admission control for voting identities. A voter is created once, on
registration, and never removed. The registry also keeps the informational
"last vote" fields of each voter; duplicate-vote prevention lives in the
voting engine's per-proposal vote records, not here.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator

from ..constants import NO_PROPOSAL
from ..logger import get_logger
from .errors import AlreadyRegisteredError
from .identity import normalize_identity, try_normalize_identity

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  VOTER
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Voter:
    """
    Registration record of a single identity.

    Fields:
        identity:           Canonical identity key
        is_registered:      True once admitted
        has_voted:          True after the first successful vote
        voted_proposal_id:  Most recent proposal voted on (0 if none)
        registration_time:  Timestamp of admission (0 if unregistered)
    """
    identity: str
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = NO_PROPOSAL
    registration_time: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "isRegistered": self.is_registered,
            "hasVoted": self.has_voted,
            "votedProposalId": self.voted_proposal_id,
            "registrationTime": self.registration_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Voter":
        return cls(
            identity=data["identity"],
            is_registered=data.get("isRegistered", True),
            has_voted=data.get("hasVoted", False),
            voted_proposal_id=data.get("votedProposalId", NO_PROPOSAL),
            registration_time=data.get("registrationTime", 0),
        )


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY
# ══════════════════════════════════════════════════════════════════════

class VoterRegistry:
    """Identity → Voter map. Unknown identities read as unregistered."""

    def __init__(self):
        self._voters: Dict[str, Voter] = {}

    def register(self, identity: str, now: float) -> Voter:
        """
        Admit *identity* as a voter.

        Raises:
            InvalidIdentityError: identity is missing, blank or zero
            AlreadyRegisteredError: identity was registered before
        """
        key = normalize_identity(identity)
        if key in self._voters:
            raise AlreadyRegisteredError(f"{key} is already registered")

        voter = Voter(identity=key, is_registered=True, registration_time=now)
        self._voters[key] = voter
        logger.debug(f"Registry: admitted {key} at {now}")
        return replace(voter)

    def is_registered(self, identity: str) -> bool:
        key = try_normalize_identity(identity)
        return key is not None and key in self._voters

    def get(self, identity: str) -> Voter:
        """Copy of the voter record, or an unregistered placeholder."""
        key = try_normalize_identity(identity)
        voter = self._voters.get(key) if key is not None else None
        if voter is None:
            placeholder = key if key is not None else ("" if identity is None else str(identity))
            return Voter(identity=placeholder)
        return replace(voter)

    def record_vote(self, identity: str, proposal_id: int) -> None:
        """Overwrite the last-vote fields (last write wins)."""
        voter = self._voters[normalize_identity(identity)]
        voter.has_voted = True
        voter.voted_proposal_id = proposal_id

    # ── Bulk access ───────────────────────────────────────────────────

    @property
    def count(self) -> int:
        return len(self._voters)

    def identities(self) -> Iterator[str]:
        """Registered identities in registration order."""
        return iter(list(self._voters))

    def restore(self, voter: Voter) -> None:
        """Insert a voter loaded from a snapshot."""
        key = normalize_identity(voter.identity)
        if key in self._voters:
            raise AlreadyRegisteredError(f"{key} is already registered")
        self._voters[key] = replace(voter, identity=key, is_registered=True)

    def to_dict(self) -> Dict[str, Any]:
        return {key: voter.to_dict() for key, voter in self._voters.items()}

    def __len__(self) -> int:
        return len(self._voters)

    def __repr__(self) -> str:
        return f"<VoterRegistry voters={len(self._voters)}>"

