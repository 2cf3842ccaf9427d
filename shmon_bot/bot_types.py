# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
shMON Auto-Staking Bot - Data Types

Cycle configuration, controller state, balance snapshots and
transaction outcomes shared by the operations and the cycle controller.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Optional

# Redeem sentinel: convert the entire share balance
REDEEM_ALL = "all"

NATIVE_DECIMALS = 18


def parse_units(amount: str, decimals: int) -> int:
    """
    Convert a decimal string into integer base units.

    Raises:
        ValueError: if the amount is not a finite non-negative number or has
            more fractional digits than the asset supports.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")

    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"Too many decimals for {amount!r} (max {decimals})")
        return int(scaled)


def to_decimal(units: int, decimals: int) -> Decimal:
    """Integer base units -> Decimal amount."""
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(units).scaleb(-decimals)


def format_units(units: int, decimals: int) -> str:
    """Integer base units -> plain decimal string (no exponent, no trailing zeros)."""
    text = format(to_decimal(units, decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


class CycleStep(Enum):
    """Cycle controller step"""
    IDLE = "idle"
    DEPOSITING = "depositing"
    WAITING_AFTER_DEPOSIT = "waiting_after_deposit"
    REDEEMING = "redeeming"
    WAITING_AFTER_REDEEM = "waiting_after_redeem"


@dataclass
class CycleConfig:
    """
    Operator parameters for the auto-swap cycle.

    Amounts are decimal strings in whole MON / shMON. The redeem amount may
    be REDEEM_ALL to convert the whole share balance at redeem time.
    """
    deposit_amount: str = "0"
    redeem_amount: str = "0"
    post_deposit_delay_minutes: int = 180  # 3 hours
    post_redeem_delay_minutes: int = 360   # 6 hours

    @property
    def redeem_all(self) -> bool:
        return self.redeem_amount.strip().lower() == REDEEM_ALL

    def validate(self, share_decimals: int = NATIVE_DECIMALS):
        """Raise ValueError if any field is out of range."""
        parse_units(self.deposit_amount, NATIVE_DECIMALS)
        if not self.redeem_all:
            parse_units(self.redeem_amount, share_decimals)
        for name in ("post_deposit_delay_minutes", "post_redeem_delay_minutes"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    def describe(self, native_symbol: str = "MON", share_symbol: str = "shMON") -> list:
        """Human-readable summary lines."""
        redeem = "ALL" if self.redeem_all else f"{self.redeem_amount} {share_symbol}"
        return [
            f"{native_symbol} to {share_symbol} amount: {self.deposit_amount} {native_symbol}",
            f"{share_symbol} to {native_symbol} amount: {redeem}",
            f"{native_symbol} -> {share_symbol} delay: {self.post_deposit_delay_minutes} minutes",
            f"{share_symbol} -> {native_symbol} delay: {self.post_redeem_delay_minutes} minutes",
        ]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CycleConfig":
        defaults = cls()
        return cls(
            deposit_amount=str(data.get("deposit_amount", defaults.deposit_amount)),
            redeem_amount=str(data.get("redeem_amount", defaults.redeem_amount)),
            post_deposit_delay_minutes=int(data.get("post_deposit_delay_minutes",
                                                    defaults.post_deposit_delay_minutes)),
            post_redeem_delay_minutes=int(data.get("post_redeem_delay_minutes",
                                                   defaults.post_redeem_delay_minutes)),
        )


@dataclass
class CycleState:
    """Mutable state owned by a single CycleController."""
    running: bool = False
    stop_requested: bool = False
    step: CycleStep = CycleStep.IDLE
    current_operation: Optional[str] = None
    cycles_completed: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class BalanceSnapshot:
    """Native and share balances read together, in base units."""
    native_amount: int
    share_amount: int
    share_decimals: int

    @property
    def native_formatted(self) -> str:
        return format_units(self.native_amount, NATIVE_DECIMALS)

    @property
    def share_formatted(self) -> str:
        return format_units(self.share_amount, self.share_decimals)


@dataclass
class TransactionOutcome:
    """Result of a deposit or redeem operation."""
    success: bool
    amount_converted: Optional[Decimal] = None
    failure_reason: Optional[str] = None
    tx_hash: Optional[str] = None

    @classmethod
    def failed(cls, reason: str, tx_hash: Optional[str] = None) -> "TransactionOutcome":
        return cls(success=False, failure_reason=reason, tx_hash=tx_hash)

    @property
    def message(self) -> str:
        if not self.success:
            return f"Conversion failed: {self.failure_reason}"
        if self.amount_converted is None:
            return "Conversion successful!"
        return f"Success! Received {self.amount_converted}"


@dataclass
class GasProfile:
    """Fixed EIP-1559 fee profile applied to every transaction."""
    max_fee_gwei: Decimal = Decimal("52")
    priority_fee_gwei: Decimal = Decimal("2")
    gas_limit: int = 60000

    def to_dict(self) -> dict:
        return {
            "max_fee_gwei": str(self.max_fee_gwei),
            "priority_fee_gwei": str(self.priority_fee_gwei),
            "gas_limit": self.gas_limit,
        }


@dataclass
class ReceiptLog:
    """Minimal view of an emitted log entry (topics and data as 0x-hex)."""
    topics: list = field(default_factory=list)
    data: str = "0x"
