"""
lmreward Constants

This module consolidates the fixed-point protocol constants and the
environment configuration used throughout the codebase. Constants are
organized by category for easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

ENGINE_DEFAULTS = {
    'LMREWARD_CONFIG':                 'config.toml',
    'LMREWARD_NETWORK':                'local',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# FIXED-POINT ARITHMETIC
# ==================================================================================
# Prices, exchange rates and ratios are scaled by BASE.
BASE = 10**18

# Distribution indices are scaled by DOUBLE so that integer division by a
# large eligible total keeps its precision.
DOUBLE = 10**36


# ==================================================================================
# REWARD DISTRIBUTION PARAMETERS
# ==================================================================================
MAX_BOUNTY_RATIO = 10**17          # 10%
DEFAULT_BOUNTY_RATIO = 10**16      # 1%
DEFAULT_THRESHOLD_RATIO = 10**16   # BLP value must reach 1% of supply value
SECONDS_PER_DAY = 86_400

# Reference lending market
DEFAULT_LIQUIDATION_INCENTIVE = 11 * 10**17  # 1.1


# ==================================================================================
# ADDRESSES
# ==================================================================================
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


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
DEFAULTS = ENGINE_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Only known literals go through ast.literal_eval.
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
