"""
ethcompat Constants

This module consolidates the global constants and environment configuration
used throughout the codebase. Values that operators may want to tune are read
once from ``.env``; protocol values are fixed.
"""
import ast
import re
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

PROVIDER_DEFAULTS = {
    'ETHCOMPAT_HOST':                  '127.0.0.1',
    'ETHCOMPAT_PORT':                  '8545',
    'ETHCOMPAT_NETWORK_NAME':          'thor-main',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
    'LOG_INCLUDE_REQUEST_CONTENT':     'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# PROVIDER IDENTITY
# ==================================================================================
CLIENT_VERSION = '1.2.0'
DEFAULT_CHAIN_ID = 74  # Thor mainnet chain tag


# ==================================================================================
# ETHEREUM WIRE CONSTANTS
# ==================================================================================
# Standard Error(string) selector; every revert payload handed to clients starts with it.
ERROR_SELECTOR = '0x08c379a0'

# Log format limit: one event signature topic plus three indexed parameters.
MAX_TOPICS = 4

# Zero-valued sentinels for fields the underlying chain cannot supply.
ZERO_BYTES8 = '0x' + '00' * 8
ZERO_BYTES32 = '0x' + '00' * 32
ZERO_BYTES256 = '0x' + '00' * 256
ZERO_ADDRESS = '0x' + '00' * 20

BLOCK_TAG_EARLIEST = 'earliest'
BLOCK_TAG_LATEST = 'latest'


# ==================================================================================
# FILTER AND SUBSCRIPTION LIMITS
# ==================================================================================
# Criteria entries a single filter request may expand into
MAX_FILTER_CRITERIA = 256

# Events fetched per eth_getLogs request
MAX_LOGS_PER_QUERY = 10_000

# Delay between head polls feeding subscriptions
HEAD_POLL_INTERVAL_MS = 1_000


# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# Strict hex: 0x prefix followed by at least one hex digit
VALID_HEX_PATTERN = re.compile(r'^0x[0-9a-fA-F]+$')

# 32-byte block/transaction id
VALID_BYTES32_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')

VALID_ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


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

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = PROVIDER_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Only known literals reach ast.literal_eval.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
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


# ==================================================================================
# INTRINSIC GAS (chain rules, used by eth_estimateGas)
# ==================================================================================
TX_BASE_GAS = 5_000
CLAUSE_GAS = 16_000
CLAUSE_GAS_CONTRACT_CREATION = 48_000
TX_DATA_ZERO_GAS = 4
TX_DATA_NON_ZERO_GAS = 68
