"""
BallotBox Package

Core imports are lazily loaded so that importing the package does not set up
logging or read configuration until something is used.
For direct module access, import from submodules:

    from ballotbox.governance import VotingEngine, Vote
    from ballotbox.config import load_config
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'VotingEngine':
        from .governance import VotingEngine
        return VotingEngine
    elif name == 'GovernanceError':
        from .governance import GovernanceError
        return GovernanceError
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'ballotbox' has no attribute {name!r}")

__all__ = ['VotingEngine', 'GovernanceError', 'load_config']
