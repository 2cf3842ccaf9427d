"""
shMON Auto-Staking Bot

Cycles native MON into the shMonad staked share token and back through
the staking contract, with operator-configured amounts and delays.

Usage:
    from shmon_bot import load_settings, StakingClient, StakingOperations, CycleController

    settings = load_settings("config.json")
    client = StakingClient.from_settings(settings)
    ops = StakingOperations(client, settings.network_config)
    controller = CycleController(ops, settings.cycle)
    controller.start()
"""

from .bot_types import (
    REDEEM_ALL,
    BalanceSnapshot,
    CycleConfig,
    CycleState,
    CycleStep,
    GasProfile,
    TransactionOutcome,
    format_units,
    parse_units,
)
from .chain_client import (
    ChainError,
    DecodeError,
    InsufficientBalanceError,
    NetworkError,
    StakingClient,
    TransactionRevertError,
)
from .config import NETWORKS, ConfigError, Settings, load_settings
from .cycle import CancellationToken, CountdownTimer, CycleController
from .operations import StakingOperations

__version__ = "0.1.0"
__all__ = [
    # Types
    "REDEEM_ALL", "BalanceSnapshot", "CycleConfig", "CycleState", "CycleStep",
    "GasProfile", "TransactionOutcome", "format_units", "parse_units",
    # Errors
    "ChainError", "NetworkError", "InsufficientBalanceError",
    "TransactionRevertError", "DecodeError", "ConfigError",
    # Core
    "StakingClient", "StakingOperations", "CycleController",
    "CancellationToken", "CountdownTimer",
    # Config
    "NETWORKS", "Settings", "load_settings",
]
