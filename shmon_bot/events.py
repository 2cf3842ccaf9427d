# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
Receipt log scanning.

Pure functions: take raw receipt logs (web3 AttributeDicts or plain dicts
with hex strings), find the first entry emitted with a given event
signature and decode its indexed topics and 32-byte data words.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from web3 import Web3

from .bot_types import ReceiptLog
from .chain_client import DecodeError

ZERO_ADDRESS = "0x" + "0" * 40


@dataclass(frozen=True)
class EventSpec:
    """
    Event signature plus field layout.

    indexed: (name, type) pairs carried in topics[1:]
    fields:  (name, type) pairs packed in data as 32-byte words
    """
    name: str
    indexed: Tuple[Tuple[str, str], ...]
    fields: Tuple[Tuple[str, str], ...]

    @property
    def signature(self) -> str:
        types = [t for _, t in self.indexed + self.fields]
        return f"{self.name}({','.join(types)})"

    @property
    def topic(self) -> str:
        return event_topic(self.signature)


# Declaration order matters for the signature; Transfer/Deposit/Withdraw
# keep indexed parameters first, so indexed + fields == declaration order.
TRANSFER = EventSpec("Transfer",
                     (("from", "address"), ("to", "address")),
                     (("value", "uint256"),))
DEPOSIT = EventSpec("Deposit",
                    (("caller", "address"), ("owner", "address")),
                    (("assets", "uint256"), ("shares", "uint256")))
WITHDRAW = EventSpec("Withdraw",
                     (("caller", "address"), ("receiver", "address"), ("owner", "address")),
                     (("assets", "uint256"), ("shares", "uint256")))


def event_topic(signature: str) -> str:
    """keccak256 of the canonical signature as 0x-hex."""
    return Web3.to_hex(Web3.keccak(text=signature))


def to_hex(value) -> str:
    """Normalize bytes / HexBytes / str to lowercase 0x-hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


def address_topic(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte topic."""
    clean = to_hex(address)[2:]
    return "0x" + clean.zfill(64)


def topic_address(topic: str) -> str:
    return Web3.to_checksum_address("0x" + to_hex(topic)[-40:])


def normalize_log(entry) -> ReceiptLog:
    if isinstance(entry, ReceiptLog):
        return entry
    return ReceiptLog(
        topics=[to_hex(t) for t in entry["topics"]],
        data=to_hex(entry["data"]),
    )


def find_log(logs: Iterable, spec: EventSpec,
             topic_filters: Optional[Dict[int, str]] = None) -> Optional[ReceiptLog]:
    """
    Return the first log whose topic0 matches spec and whose topics at the
    given positions equal the filter values, or None.
    """
    topic0 = spec.topic
    filters = {pos: to_hex(value) for pos, value in (topic_filters or {}).items()}

    for entry in logs:
        receipt_log = normalize_log(entry)
        topics = receipt_log.topics
        if not topics or topics[0] != topic0:
            continue
        if all(pos < len(topics) and topics[pos] == value for pos, value in filters.items()):
            return receipt_log
    return None


def data_words(data: str) -> List[int]:
    """Split log data into big-endian uint256 words."""
    clean = to_hex(data)[2:]
    if len(clean) % 64:
        raise DecodeError(f"Log data length {len(clean)} is not a multiple of 32 bytes")
    try:
        return [int(clean[i:i + 64], 16) for i in range(0, len(clean), 64)]
    except ValueError:
        raise DecodeError("Log data is not valid hex")


def decode_log(receipt_log: ReceiptLog, spec: EventSpec) -> Dict[str, object]:
    """
    Decode a matched log into {field: value}. Addresses come back
    checksummed, uint256 values as int.

    Raises:
        DecodeError: wrong topic count or data too short
    """
    topics = receipt_log.topics
    if len(topics) != len(spec.indexed) + 1:
        raise DecodeError(f"{spec.name}: expected {len(spec.indexed) + 1} topics, got {len(topics)}")

    words = data_words(receipt_log.data)
    if len(words) < len(spec.fields):
        raise DecodeError(f"{spec.name}: expected {len(spec.fields)} data words, got {len(words)}")

    decoded = {}
    for (name, typ), topic in zip(spec.indexed, topics[1:]):
        decoded[name] = topic_address(topic) if typ == "address" else int(topic, 16)
    for (name, typ), word in zip(spec.fields, words):
        decoded[name] = topic_address(format(word, "064x")) if typ == "address" else word
    return decoded


def match_event(logs: Iterable, spec: EventSpec,
                topic_filters: Optional[Dict[int, str]] = None) -> Optional[Dict[str, object]]:
    """find_log + decode_log. None when nothing matches; DecodeError when malformed."""
    receipt_log = find_log(logs, spec, topic_filters)
    if receipt_log is None:
        return None
    return decode_log(receipt_log, spec)
