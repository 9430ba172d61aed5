"""
BallotBox Constants

This module consolidates the protocol constants and the environment-driven
settings used throughout the codebase. Constants are organized by category for
easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: CHANGING THE PERIODS BELOW CHANGES THE VOTING WINDOW OF EVERY PROPOSAL
# CREATED AFTERWARDS. PER-DEPLOYMENT OVERRIDES BELONG IN ballotbox.toml, NOT HERE.

# ==================================================================================
# CORE PROTOCOL CONSTANTS
# ==================================================================================
SECONDS_PER_DAY = 86400
REGISTRATION_PERIOD = 1 * SECONDS_PER_DAY  # Delay between creation and voting start
VOTING_DURATION = 7 * SECONDS_PER_DAY      # Length of the voting window

# Identities equal to the zero account are rejected, like a null address
ZERO_IDENTITY = '0x' + '00' * 20

# Proposal ids start at 1; 0 means "no proposal" in voter records
NO_PROPOSAL = 0

# Event names, as published on the event bus
EVENT_VOTER_REGISTERED = 'VoterRegistered'
EVENT_PROPOSAL_CREATED = 'ProposalCreated'
EVENT_VOTE_CAST = 'VoteCast'
EVENT_PROPOSAL_EXECUTED = 'ProposalExecuted'
EVENT_ADMIN_TRANSFERRED = 'AdminTransferred'


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = dict(LOGGER_DEFAULTS)
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
