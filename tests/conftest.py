"""Shared fakes: chain client, clock and receipt log fixtures."""

from __future__ import annotations

from decimal import Decimal

import pytest

from shmon_bot.bot_types import GasProfile, TransactionOutcome
from shmon_bot.chain_client import NetworkError
from shmon_bot.cycle import CountdownTimer
from shmon_bot.events import DEPOSIT, WITHDRAW, ZERO_ADDRESS, address_topic
from shmon_bot.operations import StakingOperations

WALLET = "0x1111111111111111111111111111111111111111"
STAKING = "0x3a98250F98Dd388C211206983453837C8365BDc1"
ONE = 10 ** 18

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

NETWORK = {
    "name": "Monad Testnet",
    "symbol": "MON",
    "share_symbol": "shMON",
    "explorer": "https://testnet.monadexplorer.com",
}


def word(value: int) -> str:
    return format(value, "064x")


def transfer_log(sender: str, receiver: str, value: int) -> dict:
    return {
        "topics": [TRANSFER_TOPIC, address_topic(sender), address_topic(receiver)],
        "data": "0x" + word(value),
    }


def deposit_log(caller: str, owner: str, assets: int, shares: int) -> dict:
    return {
        "topics": [DEPOSIT.topic, address_topic(caller), address_topic(owner)],
        "data": "0x" + word(assets) + word(shares),
    }


def withdraw_log(caller: str, receiver: str, owner: str, assets: int, shares: int) -> dict:
    return {
        "topics": [WITHDRAW.topic, address_topic(caller), address_topic(receiver), address_topic(owner)],
        "data": "0x" + word(assets) + word(shares),
    }


def mint_receipt(shares: int) -> dict:
    return {"status": 1, "blockNumber": 100, "logs": [transfer_log(ZERO_ADDRESS, WALLET, shares)]}


def withdraw_receipt(assets: int, shares: int) -> dict:
    return {
        "status": 1,
        "blockNumber": 101,
        "logs": [
            transfer_log(WALLET, ZERO_ADDRESS, shares),
            withdraw_log(WALLET, WALLET, WALLET, assets, shares),
        ],
    }


class FakeStakingClient:
    """Stands in for StakingClient; records every submitted transaction."""

    def __init__(self, native: int = 100 * ONE, shares: int = 0, decimals: int = 18, allowance: int = 0):
        self.address = WALLET
        self.staking_address = STAKING
        self.gas = GasProfile()
        self.native = native
        self.shares = shares
        self.decimals = decimals
        self.allowance = allowance
        self.read_error: Exception | None = None
        self.allowance_error: Exception | None = None
        self.send_error: Exception | None = None
        self.wait_errors: dict = {}
        self.receipts: dict = {
            "approve": {"status": 1, "blockNumber": 99, "logs": []},
            "deposit": {"status": 1, "blockNumber": 100, "logs": []},
            "redeem": {"status": 1, "blockNumber": 101, "logs": []},
        }
        self.on_allowance = None
        self.sent: list = []
        self._kinds: dict = {}

    def get_native_balance(self) -> int:
        if self.read_error:
            raise self.read_error
        return self.native

    def get_share_balance(self) -> int:
        if self.read_error:
            raise self.read_error
        return self.shares

    def get_decimals(self) -> int:
        return self.decimals

    def get_allowance(self) -> int:
        if self.on_allowance:
            self.on_allowance(self)
        if self.allowance_error:
            raise self.allowance_error
        return self.allowance

    def _send(self, kind: str, amount: int) -> str:
        if self.send_error:
            raise self.send_error
        self.sent.append((kind, amount))
        tx_hash = "0x" + format(len(self.sent), "064x")
        self._kinds[tx_hash] = kind
        return tx_hash

    def send_approve(self, amount: int) -> str:
        return self._send("approve", amount)

    def send_deposit(self, assets: int) -> str:
        return self._send("deposit", assets)

    def send_redeem(self, shares: int) -> str:
        return self._send("redeem", shares)

    def wait_for_receipt(self, tx_hash: str) -> dict:
        kind = self._kinds[tx_hash]
        if kind in self.wait_errors:
            raise self.wait_errors[kind]
        if kind == "approve":
            self.allowance = 2 ** 256 - 1
        return self.receipts[kind]


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list = []
        self.on_sleep = None

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep:
            self.on_sleep()


class FakeOperations:
    """Scripted deposit/redeem results for controller tests."""

    def __init__(self):
        self.calls: list = []
        self.deposit_results: list = []
        self.redeem_results: list = []
        self.on_deposit = None
        self.on_redeem = None

    def _next(self, results: list):
        result = results.pop(0) if results else TransactionOutcome(success=True, amount_converted=Decimal("1"))
        if isinstance(result, Exception):
            raise result
        return result

    def deposit(self, amount: str) -> TransactionOutcome:
        self.calls.append(("deposit", amount))
        if self.on_deposit:
            self.on_deposit()
        return self._next(self.deposit_results)

    def redeem(self, amount: str) -> TransactionOutcome:
        self.calls.append(("redeem", amount))
        if self.on_redeem:
            self.on_redeem()
        return self._next(self.redeem_results)


@pytest.fixture
def client() -> FakeStakingClient:
    return FakeStakingClient()


@pytest.fixture
def operations(client) -> StakingOperations:
    return StakingOperations(client, NETWORK)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer(clock) -> CountdownTimer:
    return CountdownTimer(tick_seconds=60, sleep=clock.sleep, clock=clock)


@pytest.fixture
def network_down() -> NetworkError:
    return NetworkError("Native balance query failed: connection refused")
