"""
Governance error taxonomy.

Every rejection raised by the registry, the proposal store and the voting
engine derives from GovernanceError and carries a stable ``code`` that a
boundary layer (API, CLI) can map to its own status values. All of them are
synchronous validation failures: nothing was mutated, and retrying without
changing the input or the clock fails the same way.
"""


class GovernanceError(Exception):
    """Base governance exception."""
    code = "GovernanceError"


class UnauthorizedError(GovernanceError):
    """Caller is not the administrator."""
    code = "Unauthorized"


class NotRegisteredError(GovernanceError):
    """Identity has not been registered as a voter."""
    code = "NotRegistered"


class AlreadyRegisteredError(GovernanceError):
    """Identity is already registered."""
    code = "AlreadyRegistered"


class InvalidIdentityError(GovernanceError):
    """Identity is missing, blank or the zero account."""
    code = "InvalidIdentity"


class EmptyFieldError(GovernanceError):
    """Proposal title or description is empty."""
    code = "EmptyField"


class ProposalNotFoundError(GovernanceError):
    """No proposal with the requested id."""
    code = "ProposalNotFound"


class VotingNotActiveError(GovernanceError):
    """Vote cast outside the proposal window."""
    code = "VotingNotActive"


class VotingNotEndedError(GovernanceError):
    """Execution attempted before the window closed."""
    code = "VotingNotEnded"


class DuplicateVoteError(GovernanceError):
    """Identity already voted on this proposal."""
    code = "DuplicateVote"


class AlreadyExecutedError(GovernanceError):
    """Proposal outcome was already recorded."""
    code = "AlreadyExecuted"


class InvalidChoiceError(GovernanceError):
    """Vote choice is not a boolean."""
    code = "InvalidChoice"
