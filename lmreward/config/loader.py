"""
lmreward TOML Configuration Loader

Loads the deployment / reward-schedule config with environment variable
overrides. Dataclass per [section] with ``from_dict`` + ``apply_env``.

A network overlay ``config.<network>.toml`` next to the base file, if
present, replaces whole top-level sections of the base config.

Environment variable mapping:
    [eligibility] threshold_ratio → LMREWARD_THRESHOLD_RATIO
    [distributor] bounty_ratio    → LMREWARD_BOUNTY_RATIO
    [distributor] treasury        → LMREWARD_TREASURY
    [logging] level               → LMREWARD_LOG_LEVEL
    network                       → LMREWARD_NETWORK

Token amounts may be written as integers or as strings such as
``"300e18"`` (TOML integers stop at 2**63).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    BASE,
    DEFAULT_BOUNTY_RATIO,
    DEFAULT_THRESHOLD_RATIO,
    LMREWARD_CONFIG,
    LMREWARD_NETWORK,
    MAX_BOUNTY_RATIO,
)
from ..exceptions import ConfigError
from ..logger import get_logger

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_amount(value: Any) -> int:
    """Integer amount from an int or a numeric string (``"0.01e18"``)."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            amount = Decimal(value.replace("_", "").strip())
        except InvalidOperation:
            raise ConfigError(f"Invalid amount: {value!r}")
        if amount != amount.to_integral_value():
            raise ConfigError(f"Amount is not a whole number of units: {value!r}")
        return int(amount)
    raise ConfigError(f"Invalid amount: {value!r}")


# ---------------------------------------------------------------------------
# Subsection dataclasses: mirror every [section] of config.example.toml
# ---------------------------------------------------------------------------


@dataclass
class ValidSuppliesConfig:
    """[eligibility.valid_supplies]."""
    all_markets: bool = True
    symbols: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidSuppliesConfig":
        return cls(
            all_markets=data.get("all_markets", True),
            symbols=list(data.get("symbols", [])),
        )


@dataclass
class EligibilityConfig:
    """[eligibility] section."""
    threshold_ratio: int = DEFAULT_THRESHOLD_RATIO
    valid_supplies: ValidSuppliesConfig = field(default_factory=ValidSuppliesConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EligibilityConfig":
        return cls(
            threshold_ratio=parse_amount(data.get("threshold_ratio", DEFAULT_THRESHOLD_RATIO)),
            valid_supplies=ValidSuppliesConfig.from_dict(data.get("valid_supplies", {})),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LMREWARD_THRESHOLD_RATIO"):
            self.threshold_ratio = parse_amount(v)


@dataclass
class DistributorConfig:
    """[distributor] section."""
    bounty_ratio: int = DEFAULT_BOUNTY_RATIO
    treasury: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DistributorConfig":
        return cls(
            bounty_ratio=parse_amount(data.get("bounty_ratio", DEFAULT_BOUNTY_RATIO)),
            treasury=data.get("treasury", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LMREWARD_BOUNTY_RATIO"):
            self.bounty_ratio = parse_amount(v)
        if v := os.environ.get("LMREWARD_TREASURY"):
            self.treasury = v


# -- Markets and pools ----------------------------------------------------

@dataclass
class MarketConfig:
    """[[market]]: a lending market of the simulated deployment."""
    symbol: str
    price: int = BASE
    exchange_rate: int = BASE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketConfig":
        if "symbol" not in data:
            raise ConfigError("[[market]] requires a symbol")
        return cls(
            symbol=data["symbol"],
            price=parse_amount(data.get("price", BASE)),
            exchange_rate=parse_amount(data.get("exchange_rate", BASE)),
        )


@dataclass
class PoolConfig:
    """[[pool]]: a BLP staking pool and the price of its LP token."""
    name: str
    price: int = BASE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolConfig":
        if "name" not in data:
            raise ConfigError("[[pool]] requires a name")
        return cls(name=data["name"], price=parse_amount(data.get("price", BASE)))


# -- Reward schedules -------------------------------------------------------

@dataclass
class MarketRewardConfig:
    """Daily reward amounts for one market."""
    supply: int = 0
    borrow: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketRewardConfig":
        return cls(
            supply=parse_amount(data.get("supply", 0)),
            borrow=parse_amount(data.get("borrow", 0)),
        )


@dataclass
class LendingRewardConfig:
    """[[lending_reward]]: one reward distributor's daily schedule."""
    reward_token: str
    markets: Dict[str, MarketRewardConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LendingRewardConfig":
        if "reward_token" not in data:
            raise ConfigError("[[lending_reward]] requires a reward_token")
        return cls(
            reward_token=data["reward_token"],
            markets={
                symbol: MarketRewardConfig.from_dict(amounts)
                for symbol, amounts in data.get("markets", {}).items()
            },
        )


@dataclass
class BLPRewardConfig:
    """[[blp_reward]]: a per-second reward stream on a staking pool."""
    pool: str
    reward_token: str
    rate: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BLPRewardConfig":
        for key in ("pool", "reward_token"):
            if key not in data:
                raise ConfigError(f"[[blp_reward]] requires {key}")
        return cls(
            pool=data["pool"],
            reward_token=data["reward_token"],
            rate=parse_amount(data.get("rate", 0)),
        )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(level=str(data.get("level", "INFO")).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("LMREWARD_LOG_LEVEL"):
            self.level = v.upper()


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class LMRewardConfig:
    """Complete lmreward configuration."""
    network: str = "local"
    eligibility: EligibilityConfig = field(default_factory=EligibilityConfig)
    distributor: DistributorConfig = field(default_factory=DistributorConfig)
    markets: List[MarketConfig] = field(default_factory=list)
    pools: List[PoolConfig] = field(default_factory=list)
    lending_rewards: List[LendingRewardConfig] = field(default_factory=list)
    blp_rewards: List[BLPRewardConfig] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], network: str = "local") -> "LMRewardConfig":
        return cls(
            network=network,
            eligibility=EligibilityConfig.from_dict(data.get("eligibility", {})),
            distributor=DistributorConfig.from_dict(data.get("distributor", {})),
            markets=[MarketConfig.from_dict(m) for m in data.get("market", [])],
            pools=[PoolConfig.from_dict(p) for p in data.get("pool", [])],
            lending_rewards=[LendingRewardConfig.from_dict(r) for r in data.get("lending_reward", [])],
            blp_rewards=[BLPRewardConfig.from_dict(r) for r in data.get("blp_reward", [])],
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str, network: Optional[str] = None) -> "LMRewardConfig":
        """
        Load configuration from a TOML file, merging the network overlay
        ``config.<network>.toml`` from the same directory when it exists.
        """
        network = network or os.environ.get("LMREWARD_NETWORK") or str(LMREWARD_NETWORK)
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls(network=network)
            cfg.apply_env()
            return cfg

        raw = _read_toml(path)
        overlay_path = path.with_name(f"config.{network}.toml")
        if overlay_path.exists() and overlay_path != path:
            logger.info("Applying %s overlay from %s", network, overlay_path)
            raw = {**raw, **_read_toml(overlay_path)}

        cfg = cls.from_dict(raw, network=network)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.eligibility.apply_env()
        self.distributor.apply_env()
        self.logging.apply_env()

    # --- lookups ----------------------------------------------------------

    def market_symbols(self) -> List[str]:
        return [m.symbol for m in self.markets]

    def reward_tokens(self) -> List[str]:
        """Every reward token symbol referenced, in first-seen order."""
        seen: List[str] = []
        for symbol in [r.reward_token for r in self.lending_rewards] + [r.reward_token for r in self.blp_rewards]:
            if symbol not in seen:
                seen.append(symbol)
        return seen

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigError: on invalid config
        """
        if self.eligibility.threshold_ratio < 0:
            raise ConfigError("threshold_ratio cannot be negative")
        if not 0 <= self.distributor.bounty_ratio <= MAX_BOUNTY_RATIO:
            raise ConfigError(
                f"bounty_ratio must be within [0, {MAX_BOUNTY_RATIO}], got {self.distributor.bounty_ratio}"
            )
        if self.logging.level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.logging.level}")

        symbols = self.market_symbols()
        if len(set(symbols)) != len(symbols):
            raise ConfigError("Duplicate [[market]] symbol")
        for market in self.markets:
            if market.price < 0 or market.exchange_rate <= 0:
                raise ConfigError(f"Market {market.symbol}: price must be >= 0 and exchange_rate > 0")

        pool_names = [p.name for p in self.pools]
        if len(set(pool_names)) != len(pool_names):
            raise ConfigError("Duplicate [[pool]] name")

        if not self.eligibility.valid_supplies.all_markets:
            for symbol in self.eligibility.valid_supplies.symbols:
                if symbol not in symbols:
                    raise ConfigError(f"Valid supply {symbol} is not a configured market")

        tokens = [r.reward_token for r in self.lending_rewards]
        if len(set(tokens)) != len(tokens):
            raise ConfigError("Duplicate [[lending_reward]] reward_token")
        for reward in self.lending_rewards:
            for symbol, amounts in reward.markets.items():
                if symbol not in symbols:
                    raise ConfigError(f"{reward.reward_token} reward for unknown market {symbol}")
                if amounts.supply < 0 or amounts.borrow < 0:
                    raise ConfigError(f"{reward.reward_token} reward for {symbol} cannot be negative")

        for reward in self.blp_rewards:
            if reward.pool not in pool_names:
                raise ConfigError(f"BLP reward for unknown pool {reward.pool}")
            if reward.rate < 0:
                raise ConfigError(f"BLP reward rate for {reward.pool} cannot be negative")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "network": self.network,
            "eligibility": {
                "threshold_ratio": str(self.eligibility.threshold_ratio),
                "valid_supplies": {
                    "all_markets": self.eligibility.valid_supplies.all_markets,
                    "symbols": list(self.eligibility.valid_supplies.symbols),
                },
            },
            "distributor": {
                "bounty_ratio": str(self.distributor.bounty_ratio),
                "treasury": self.distributor.treasury,
            },
            "markets": [
                {"symbol": m.symbol, "price": str(m.price), "exchange_rate": str(m.exchange_rate)}
                for m in self.markets
            ],
            "pools": [{"name": p.name, "price": str(p.price)} for p in self.pools],
            "lending_rewards": [
                {
                    "reward_token": r.reward_token,
                    "markets": {
                        s: {"supply": str(a.supply), "borrow": str(a.borrow)}
                        for s, a in r.markets.items()
                    },
                }
                for r in self.lending_rewards
            ],
            "blp_rewards": [
                {"pool": r.pool, "reward_token": r.reward_token, "rate": str(r.rate)}
                for r in self.blp_rewards
            ],
            "logging": {"level": self.logging.level},
        }


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config {path}: {e}") from e


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None, network: Optional[str] = None) -> LMRewardConfig:
    """
    Load lmreward configuration.

    Resolution order:
        1. Explicit *path* argument
        2. LMREWARD_CONFIG env var
        3. LMREWARD_CONFIG from .env, else ./config.toml
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("LMREWARD_CONFIG", str(LMREWARD_CONFIG))

    return LMRewardConfig.from_file(path, network=network)
