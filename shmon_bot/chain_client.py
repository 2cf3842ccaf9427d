# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
shMON Auto-Staking Bot - Chain Client

Thin web3 wrapper around the signing account and the shMonad staking
contract. Library exceptions are translated into the ChainError family
so callers only deal with NetworkError / TransactionRevertError.

Usage:
    client = StakingClient.from_settings(settings)
    balance = client.get_native_balance()
    tx_hash = client.send_deposit(10**18)
    receipt = client.wait_for_receipt(tx_hash)
"""

import logging
from typing import Any, Optional

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from .bot_types import GasProfile

log = logging.getLogger(__name__)

MAX_UINT256 = 2 ** 256 - 1

# Staking contract ABI: ERC-20 share token + ERC-4626 style deposit/redeem
STAKING_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}]
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}]
    },
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "outputs": [{"name": "", "type": "bool"}]
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"}
        ],
        "outputs": [{"name": "", "type": "uint256"}]
    },
    {
        # MON -> shMON
        "name": "deposit",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"}
        ],
        "outputs": [{"name": "", "type": "uint256"}]
    },
    {
        # shMON -> MON
        "name": "redeem",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "shares", "type": "uint256"},
            {"name": "receiver", "type": "address"},
            {"name": "owner", "type": "address"}
        ],
        "outputs": [{"name": "", "type": "uint256"}]
    },
    {
        "name": "Transfer",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"}
        ]
    },
    {
        "name": "Deposit",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "caller", "type": "address"},
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": False, "name": "assets", "type": "uint256"},
            {"indexed": False, "name": "shares", "type": "uint256"}
        ]
    },
    {
        "name": "Withdraw",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "caller", "type": "address"},
            {"indexed": True, "name": "receiver", "type": "address"},
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": False, "name": "assets", "type": "uint256"},
            {"indexed": False, "name": "shares", "type": "uint256"}
        ]
    }
]


# =============================================================================
# ERRORS
# =============================================================================

class ChainError(Exception):
    """Base class for chain interaction failures."""


class NetworkError(ChainError):
    """RPC endpoint unreachable or timed out."""


class InsufficientBalanceError(ChainError):
    """Requested amount exceeds the available balance (never sent on-chain)."""

    def __init__(self, requested: str, available: str, symbol: str):
        self.requested = requested
        self.available = available
        self.symbol = symbol
        super().__init__(f"Insufficient {symbol} balance. Requested: {requested}, available: {available}")


class TransactionRevertError(ChainError):
    """Transaction rejected by the node or reverted on-chain."""

    def __init__(self, message: str, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        self.reason = reason
        self.tx_hash = tx_hash
        text = message if not reason else f"{message} (reason: {reason})"
        super().__init__(text)


class DecodeError(ChainError):
    """An emitted log did not have the expected shape."""


# =============================================================================
# STAKING CLIENT
# =============================================================================

class StakingClient:
    """
    Signing account + staking contract on one EVM network.

    All methods raise NetworkError or TransactionRevertError; nothing else
    from web3 / requests escapes.
    """

    def __init__(self, w3: Web3, staking_address: str, private_key: str,
                 chain_id: int, gas: GasProfile, receipt_timeout: int = 180):
        self.w3 = w3
        self.staking_address = Web3.to_checksum_address(staking_address)
        self.contract = self.w3.eth.contract(address=self.staking_address, abi=STAKING_ABI)
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.gas = gas
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_settings(cls, settings) -> "StakingClient":
        net = settings.network_config
        w3 = Web3(Web3.HTTPProvider(settings.effective_rpc_url,
                                    request_kwargs={"timeout": 30}))
        client = cls(
            w3,
            net["staking"],
            settings.private_key,
            net["chain_id"],
            settings.gas,
            settings.receipt_timeout,
        )
        log.info(f"Staking client initialized for {net['name']} (chain_id={net['chain_id']})")
        log.info(f"  Staking contract: {client.staking_address}")
        log.info(f"  Wallet: {client.address}")
        return client

    @property
    def address(self) -> str:
        return self.account.address

    # -------------------------------------------------------------------------
    # error translation
    # -------------------------------------------------------------------------

    def _guard(self, action: str, fn, *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except ContractLogicError as e:
            raise TransactionRevertError(f"{action} reverted", reason=_logic_error_reason(e))
        except (requests.exceptions.RequestException, ConnectionError, TimeoutError, TimeExhausted) as e:
            raise NetworkError(f"{action} failed: {e}")
        except Web3Exception as e:
            raise TransactionRevertError(f"{action} rejected", reason=str(e))
        except ValueError as e:
            # older web3 releases surface JSON-RPC error objects as ValueError
            raise TransactionRevertError(f"{action} rejected", reason=_rpc_error_message(e))

    # -------------------------------------------------------------------------
    # reads
    # -------------------------------------------------------------------------

    def get_native_balance(self) -> int:
        return self._guard("Native balance query", self.w3.eth.get_balance, self.address)

    def get_share_balance(self) -> int:
        return self._guard("Share balance query",
                           self.contract.functions.balanceOf(self.address).call)

    def get_decimals(self) -> int:
        return self._guard("Decimals query", self.contract.functions.decimals().call)

    def get_allowance(self) -> int:
        return self._guard("Allowance query",
                           self.contract.functions.allowance(self.address, self.staking_address).call)

    # -------------------------------------------------------------------------
    # writes
    # -------------------------------------------------------------------------

    def _tx_params(self, value: int = 0) -> dict:
        nonce = self._guard("Nonce query", self.w3.eth.get_transaction_count, self.address, "pending")
        params = {
            "from": self.address,
            "chainId": self.chain_id,
            "nonce": nonce,
            "gas": self.gas.gas_limit,
            "maxFeePerGas": Web3.to_wei(self.gas.max_fee_gwei, "gwei"),
            "maxPriorityFeePerGas": Web3.to_wei(self.gas.priority_fee_gwei, "gwei"),
        }
        if value:
            params["value"] = value
        return params

    def _send(self, action: str, contract_fn, value: int = 0) -> str:
        tx = self._guard(f"{action} build", contract_fn.build_transaction, self._tx_params(value))
        signed = self._sign(action, tx)
        tx_hash = self._guard(f"{action} submission", self.w3.eth.send_raw_transaction,
                              signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def _sign(self, action: str, tx: dict):
        try:
            return self.account.sign_transaction(tx)
        except (TypeError, ValueError, AttributeError) as e:
            raise TransactionRevertError(f"{action} signing failed", reason=str(e))

    def send_approve(self, amount: int = MAX_UINT256) -> str:
        return self._send("Approve", self.contract.functions.approve(self.staking_address, amount))

    def send_deposit(self, assets: int) -> str:
        # MON travels as msg.value alongside the assets argument
        return self._send("Deposit", self.contract.functions.deposit(assets, self.address), value=assets)

    def send_redeem(self, shares: int) -> str:
        return self._send("Redeem",
                          self.contract.functions.redeem(shares, self.address, self.address))

    def wait_for_receipt(self, tx_hash: str) -> dict:
        """
        Block until the transaction is mined.

        Raises:
            TransactionRevertError: receipt status is not 1
            NetworkError: no receipt within receipt_timeout
        """
        receipt = self._guard("Confirmation", self.w3.eth.wait_for_transaction_receipt,
                              tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            reason = self.revert_reason(tx_hash, receipt["blockNumber"])
            raise TransactionRevertError(f"Transaction {tx_hash} failed in block {receipt['blockNumber']}",
                                         reason=reason, tx_hash=tx_hash)
        log.debug(f"TX {tx_hash[:18]}... confirmed in block {receipt['blockNumber']}")
        return receipt

    def revert_reason(self, tx_hash: str, block_number: int) -> Optional[str]:
        """Replay a failed transaction as eth_call to recover the revert message."""
        try:
            tx = self.w3.eth.get_transaction(tx_hash)
            call = {
                "from": tx["from"],
                "to": tx["to"],
                "data": tx["input"],
                "value": tx.get("value", 0),
                "gas": tx["gas"],
            }
            self.w3.eth.call(call, block_number)
        except ContractLogicError as e:
            return _logic_error_reason(e)
        except Exception as e:
            log.debug(f"Could not replay {tx_hash[:18]}...: {e}")
        return None


def _logic_error_reason(e: ContractLogicError) -> str:
    message = getattr(e, "message", None) or str(e)
    prefix = "execution reverted: "
    return message[len(prefix):] if message.startswith(prefix) else message


def _rpc_error_message(e: ValueError) -> str:
    if e.args and isinstance(e.args[0], dict):
        return e.args[0].get("message", str(e.args[0]))
    return str(e)
