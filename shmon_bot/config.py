# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
Network table and runtime settings.

Sources, highest precedence first: explicit overrides (CLI flags),
environment variables (optionally seeded from a .env file), an optional
JSON config file, then the defaults below.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .bot_types import CycleConfig, GasProfile

log = logging.getLogger(__name__)

# =============================================================================
# NETWORKS
# =============================================================================

NETWORKS = {
    "monad-testnet": {
        "name": "Monad Testnet",
        "rpc": "https://testnet-rpc.monad.xyz",
        "chain_id": 10143,
        "symbol": "MON",
        "share_symbol": "shMON",
        "explorer": "https://testnet.monadexplorer.com",
        "staking": "0x3a98250F98Dd388C211206983453837C8365BDc1",
    },
}

ACTIVE_NETWORK = "monad-testnet"

# Fee profile taken from a known-good deposit on testnet
GAS_CONFIG = GasProfile(
    max_fee_gwei=Decimal("52"),
    priority_fee_gwei=Decimal("2"),
    gas_limit=60000,
)

TICK_SECONDS = 60            # countdown progress / stop polling interval
RETRY_COOLDOWN_MINUTES = 1   # pause after an unexpected cycle error
MAX_CONSECUTIVE_FAULTS = 5   # 0 = retry forever
RECEIPT_TIMEOUT = 180        # seconds to wait for a confirmation receipt


class ConfigError(Exception):
    """Settings are missing or malformed."""


@dataclass
class Settings:
    private_key: str = ""
    network: str = ACTIVE_NETWORK
    rpc_url: str = ""
    gas: GasProfile = field(default_factory=lambda: GasProfile(**vars(GAS_CONFIG)))
    tick_seconds: int = TICK_SECONDS
    retry_cooldown_minutes: int = RETRY_COOLDOWN_MINUTES
    max_consecutive_faults: int = MAX_CONSECUTIVE_FAULTS
    receipt_timeout: int = RECEIPT_TIMEOUT
    cycle: CycleConfig = field(default_factory=CycleConfig)

    @property
    def network_config(self) -> dict:
        return NETWORKS[self.network]

    @property
    def effective_rpc_url(self) -> str:
        return self.rpc_url or self.network_config["rpc"]

    def masked_key(self) -> str:
        key = self.private_key
        return key[:6] + "..." + key[-4:] if len(key) > 10 else "***"

    def validate(self):
        if self.network not in NETWORKS:
            raise ConfigError(f"Unknown network {self.network!r} (choose from {', '.join(NETWORKS)})")
        if not self.private_key:
            raise ConfigError("PRIVATE_KEY is not set (use .env, the environment or the config file)")
        if self.tick_seconds <= 0:
            raise ConfigError("tick_seconds must be positive")
        if self.max_consecutive_faults < 0:
            raise ConfigError("max_consecutive_faults must be >= 0")
        if self.retry_cooldown_minutes < 0:
            raise ConfigError("retry_cooldown_minutes must be >= 0")
        if self.receipt_timeout <= 0:
            raise ConfigError("receipt_timeout must be positive")
        if self.gas.gas_limit <= 0:
            raise ConfigError("gas_limit must be positive")
        if self.gas.priority_fee_gwei > self.gas.max_fee_gwei:
            raise ConfigError("priority fee cannot exceed max fee")
        try:
            self.cycle.validate()
        except ValueError as e:
            raise ConfigError(f"Invalid cycle configuration: {e}")


def load_dotenv_file(path) -> int:
    """
    Load KEY=VALUE lines into os.environ without overriding existing values.

    Returns the number of variables read. A missing file is not an error.
    """
    env_file = Path(path)
    if not env_file.exists():
        return 0

    log.info(f"Loading config from {env_file}")
    count = 0
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        if line and not line.startswith("#") and "=" in line:
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
            count += 1
    return count


def _env(name: str, environ) -> Optional[str]:
    value = environ.get(name)
    return value if value not in (None, "") else None


def load_settings(config_path=None, environ=None, **overrides) -> Settings:
    """
    Build Settings from a JSON file, the environment and keyword overrides.

    Raises:
        ConfigError: if the config file cannot be parsed or a numeric value
            is malformed. Completeness is checked by Settings.validate().
    """
    environ = os.environ if environ is None else environ
    data = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except json.JSONDecodeError as e:
                raise ConfigError(f"Cannot parse {path}: {e}")
            log.info(f"Loaded config from {path}")
        else:
            log.warning(f"Config file {path} not found, using environment and defaults")

    gas_data = data.get("gas", {})
    settings = Settings()

    try:
        settings.private_key = (
            _env("PRIVATE_KEY", environ) or data.get("private_key", "")
        )
        settings.network = _env("SHMON_NETWORK", environ) or data.get("network", ACTIVE_NETWORK)
        settings.rpc_url = _env("SHMON_RPC_URL", environ) or data.get("rpc_url", "")
        settings.gas = GasProfile(
            max_fee_gwei=Decimal(str(_env("SHMON_MAX_FEE_GWEI", environ)
                                     or gas_data.get("max_fee_gwei", GAS_CONFIG.max_fee_gwei))),
            priority_fee_gwei=Decimal(str(_env("SHMON_PRIORITY_FEE_GWEI", environ)
                                          or gas_data.get("priority_fee_gwei", GAS_CONFIG.priority_fee_gwei))),
            gas_limit=int(_env("SHMON_GAS_LIMIT", environ)
                          or gas_data.get("gas_limit", GAS_CONFIG.gas_limit)),
        )
        settings.tick_seconds = int(_env("SHMON_TICK_SECONDS", environ)
                                    or data.get("tick_seconds", TICK_SECONDS))
        settings.max_consecutive_faults = int(_env("SHMON_MAX_FAULTS", environ)
                                              or data.get("max_consecutive_faults", MAX_CONSECUTIVE_FAULTS))
        settings.retry_cooldown_minutes = int(data.get("retry_cooldown_minutes", RETRY_COOLDOWN_MINUTES))
        settings.receipt_timeout = int(data.get("receipt_timeout", RECEIPT_TIMEOUT))
        settings.cycle = CycleConfig.from_dict(data.get("cycle", {}))
    except (ArithmeticError, ValueError, TypeError) as e:
        raise ConfigError(f"Malformed setting: {e}")

    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(settings, key):
            raise ConfigError(f"Unknown setting {key!r}")
        setattr(settings, key, value)

    return settings
