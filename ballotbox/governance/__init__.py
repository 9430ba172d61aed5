"""
BallotBox Governance

Provides:
  - GovernanceError and the rejection taxonomy       (errors.py)
  - Voter / VoterRegistry                            (registry.py)
  - Proposal / ProposalState / ProposalStore         (proposals.py)
  - GovernanceEvent types / EventBus                 (events.py)
  - Vote / VoteRecord / VotingEngine + views         (voting.py)
"""

from .errors import (
    AlreadyExecutedError,
    AlreadyRegisteredError,
    DuplicateVoteError,
    EmptyFieldError,
    GovernanceError,
    InvalidChoiceError,
    InvalidIdentityError,
    NotRegisteredError,
    ProposalNotFoundError,
    UnauthorizedError,
    VotingNotActiveError,
    VotingNotEndedError,
)
from .events import (
    AdminTransferred,
    EventBus,
    GovernanceEvent,
    ProposalCreated,
    ProposalExecuted,
    VoteCast,
    VoterRegistered,
)
from .identity import is_valid_identity, normalize_identity
from .proposals import (
    Proposal,
    ProposalState,
    ProposalStore,
    proposal_state,
)
from .registry import Voter, VoterRegistry
from .voting import (
    ProposalView,
    ResultView,
    Vote,
    VoteRecord,
    VoterView,
    VotingEngine,
)

__all__ = [
    # Errors
    "AlreadyExecutedError",
    "AlreadyRegisteredError",
    "DuplicateVoteError",
    "EmptyFieldError",
    "GovernanceError",
    "InvalidChoiceError",
    "InvalidIdentityError",
    "NotRegisteredError",
    "ProposalNotFoundError",
    "UnauthorizedError",
    "VotingNotActiveError",
    "VotingNotEndedError",
    # Events
    "AdminTransferred",
    "EventBus",
    "GovernanceEvent",
    "ProposalCreated",
    "ProposalExecuted",
    "VoteCast",
    "VoterRegistered",
    # Identity
    "is_valid_identity",
    "normalize_identity",
    # Proposals
    "Proposal",
    "ProposalState",
    "ProposalStore",
    "proposal_state",
    # Registry
    "Voter",
    "VoterRegistry",
    # Voting
    "ProposalView",
    "ResultView",
    "Vote",
    "VoteRecord",
    "VoterView",
    "VotingEngine",
]
