# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
Balance reader, allowance manager and the two conversion operations.

Every public method here is a failure boundary: chain errors are logged
and turned into None / False / a failed TransactionOutcome.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, Optional

from .bot_types import (
    NATIVE_DECIMALS,
    REDEEM_ALL,
    BalanceSnapshot,
    TransactionOutcome,
    format_units,
    parse_units,
)
from .chain_client import (
    MAX_UINT256,
    ChainError,
    DecodeError,
    InsufficientBalanceError,
    TransactionRevertError,
)
from .events import DEPOSIT, TRANSFER, WITHDRAW, ZERO_ADDRESS, address_topic, match_event

log = logging.getLogger(__name__)


class StakingOperations:
    """MON <-> shMON conversions for the client's wallet."""

    def __init__(self, client, network: dict):
        self.client = client
        self.symbol = network["symbol"]
        self.share_symbol = network["share_symbol"]
        self.explorer = network["explorer"]

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer}/tx/{tx_hash}"

    # =========================================================================
    # BALANCES
    # =========================================================================

    def read_balances(self) -> BalanceSnapshot:
        """
        Read native balance, share balance and share decimals concurrently.

        Raises:
            NetworkError: if any of the three reads fails
        """
        with ThreadPoolExecutor(max_workers=3) as executor:
            native = executor.submit(self.client.get_native_balance)
            shares = executor.submit(self.client.get_share_balance)
            decimals = executor.submit(self.client.get_decimals)
            return BalanceSnapshot(
                native_amount=native.result(),
                share_amount=shares.result(),
                share_decimals=decimals.result(),
            )

    def show_balances(self) -> Optional[BalanceSnapshot]:
        try:
            balances = self.read_balances()
        except Exception as e:
            log.error(f"Error fetching balances: {e}")
            return None

        log.info("Current Balances:")
        log.info(f"  Native {self.symbol} Balance: {balances.native_formatted} {self.symbol}")
        log.info(f"  {self.share_symbol} Token Balance: {balances.share_formatted} {self.share_symbol}")
        log.info(f"  Wallet Address: {self.client.address}")
        return balances

    # =========================================================================
    # ALLOWANCE
    # =========================================================================

    def ensure_approval(self) -> bool:
        """Grant unlimited share spending to the staking contract if none is set."""
        try:
            allowance = self.client.get_allowance()
        except Exception as e:
            log.error(f"Error checking allowance: {e}")
            return False

        if allowance > 0:
            return True

        log.info(f"You need to approve {self.share_symbol} spending first")
        log.info(f"Approving unlimited {self.share_symbol} spending...")
        try:
            tx_hash = self.client.send_approve(MAX_UINT256)
            log.info(f"Approval tx sent: {self.tx_url(tx_hash)}")
            self.client.wait_for_receipt(tx_hash)
        except ChainError as e:
            log.error(f"Approval failed: {e}")
            return False
        except Exception as e:
            log.error(f"Approval error: {e}")
            return False

        log.info("Unlimited approval granted!")
        return True

    # =========================================================================
    # CONVERSIONS
    # =========================================================================

    def deposit(self, amount: str) -> TransactionOutcome:
        """MON -> shMON. Reports the shares minted to the wallet."""
        balances = self._fresh_balances()
        if balances is None:
            return TransactionOutcome.failed("Could not read balances")

        try:
            amount_wei = parse_units(amount, NATIVE_DECIMALS)
        except ValueError as e:
            log.error(f"Conversion failed: {e}")
            return TransactionOutcome.failed(str(e))

        if amount_wei > balances.native_amount:
            err = InsufficientBalanceError(amount, balances.native_formatted, self.symbol)
            log.error(str(err))
            return TransactionOutcome.failed(str(err))

        self._log_details(format_units(amount_wei, NATIVE_DECIMALS), self.symbol, self.share_symbol)

        def received(logs) -> Optional[Decimal]:
            minted = match_event(logs, TRANSFER, {1: address_topic(ZERO_ADDRESS)})
            if minted is not None:
                return Decimal(format_units(minted["value"], balances.share_decimals))
            deposited = match_event(logs, DEPOSIT)
            if deposited is not None:
                return Decimal(format_units(deposited["shares"], balances.share_decimals))
            return None

        return self._submit(lambda: self.client.send_deposit(amount_wei), received, self.share_symbol)

    def redeem(self, amount: str) -> TransactionOutcome:
        """
        shMON -> MON. `amount` may be REDEEM_ALL, which redeems the share
        balance read at the start of this call.
        """
        balances = self._fresh_balances()
        if balances is None:
            return TransactionOutcome.failed("Could not read balances")

        if not self.ensure_approval():
            return TransactionOutcome.failed(f"{self.share_symbol} spending approval failed")

        if amount.strip().lower() == REDEEM_ALL:
            shares = balances.share_amount
        else:
            try:
                shares = parse_units(amount, balances.share_decimals)
            except ValueError as e:
                log.error(f"Conversion failed: {e}")
                return TransactionOutcome.failed(str(e))

        if shares > balances.share_amount:
            err = InsufficientBalanceError(amount, balances.share_formatted, self.share_symbol)
            log.error(str(err))
            return TransactionOutcome.failed(str(err))

        self._log_details(format_units(shares, balances.share_decimals), self.share_symbol, self.symbol)

        def received(logs) -> Optional[Decimal]:
            withdrawn = match_event(logs, WITHDRAW)
            if withdrawn is None:
                return None
            return Decimal(format_units(withdrawn["assets"], NATIVE_DECIMALS))

        return self._submit(lambda: self.client.send_redeem(shares), received, self.symbol)

    # -------------------------------------------------------------------------

    def _fresh_balances(self) -> Optional[BalanceSnapshot]:
        balances = self.show_balances()
        if balances is not None:
            log.debug(f"Snapshot: native={balances.native_amount} shares={balances.share_amount}")
        return balances

    def _log_details(self, amount: str, from_symbol: str, to_symbol: str):
        log.info("Transaction Details:")
        log.info(f"  Converting: {amount} {from_symbol} to {to_symbol}")
        log.info(f"  Receiver: {self.client.address}")
        log.info(f"  Gas Limit: {self.client.gas.gas_limit}")

    def _submit(self, send: Callable[[], str], received: Callable, received_symbol: str) -> TransactionOutcome:
        try:
            tx_hash = send()
        except ChainError as e:
            log.error(f"Conversion failed: {e}")
            return TransactionOutcome.failed(str(e))
        except Exception as e:
            log.error(f"Conversion error: {e}")
            return TransactionOutcome.failed(str(e))

        log.info(f"Transaction sent: {self.tx_url(tx_hash)}")
        log.info("Waiting for confirmation...")

        try:
            receipt = self.client.wait_for_receipt(tx_hash)
        except TransactionRevertError as e:
            log.error(f"Conversion failed: {e}")
            if e.reason:
                log.error(f"Reason: {e.reason}")
            return TransactionOutcome.failed(str(e), tx_hash)
        except ChainError as e:
            log.error(f"Conversion failed: {e}")
            return TransactionOutcome.failed(str(e), tx_hash)
        except Exception as e:
            log.error(f"Confirmation error: {e}")
            return TransactionOutcome.failed(str(e), tx_hash)

        try:
            amount = received(receipt["logs"])
        except DecodeError as e:
            log.warning(f"Could not decode conversion event: {e}")
            amount = None

        if amount is None:
            log.info("Conversion successful!")
        else:
            log.info(f"Success! Received {amount} {received_symbol}")
        return TransactionOutcome(success=True, amount_converted=amount, tx_hash=tx_hash)
