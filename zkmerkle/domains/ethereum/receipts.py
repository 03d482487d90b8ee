"""
Transaction receipts stored in the receipts trie.

Legacy receipts are rlp([status, cumulative_gas, bloom, logs]). Typed
receipts (EIP-2718) prepend a single transaction-type byte to that payload.
Pre-Byzantium receipts carry a 32-byte post-state root instead of a status.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rlp.sedes import big_endian_int

from zkmerkle.core.errors import DecodeValueError, MalformedNode
from zkmerkle.core.rlp_codec import decode_uint, rlp_decode, rlp_encode

BLOOM_BYTES = 256
# Highest first byte of a typed envelope; RLP lists start at 0xc0
MAX_TX_TYPE = 0x7F


@dataclass(frozen=True)
class Log:
    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes

    def to_item(self) -> list:
        return [self.address, list(self.topics), self.data]


@dataclass(frozen=True)
class Receipt:
    """Decoded transaction receipt."""

    tx_type: int = 0
    status: Optional[int] = 1
    cumulative_gas_used: int = 0
    logs_bloom: bytes = bytes(BLOOM_BYTES)
    logs: Tuple[Log, ...] = field(default_factory=tuple)
    post_state: Optional[bytes] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    def to_bytes(self) -> bytes:
        """Consensus encoding (the value stored in the receipts trie)."""
        first = self.post_state if self.post_state is not None else big_endian_int.serialize(self.status or 0)
        payload = rlp_encode([
            first,
            big_endian_int.serialize(self.cumulative_gas_used),
            self.logs_bloom,
            [log.to_item() for log in self.logs],
        ])
        if self.tx_type == 0:
            return payload
        return bytes([self.tx_type]) + payload

    def to_output_bytes(self) -> bytes:
        return self.to_bytes()


def _decode_log(item) -> Log:
    if not isinstance(item, list) or len(item) != 3:
        raise DecodeValueError("log is not a 3-item list")
    address, topics, data = item
    if not isinstance(address, bytes) or len(address) != 20:
        raise DecodeValueError("log address is not 20 bytes")
    if not isinstance(topics, list) or any(not isinstance(t, bytes) or len(t) != 32 for t in topics):
        raise DecodeValueError("log topics are not 32-byte words")
    if not isinstance(data, bytes):
        raise DecodeValueError("log data is not a string")
    return Log(address=address, topics=tuple(topics), data=data)


def decode_receipt(data: bytes) -> Receipt:
    """
    Decode a receipt from its consensus encoding.

    Raises:
        DecodeValueError: the value is not a legacy or typed receipt
    """
    if not data:
        raise DecodeValueError("empty receipt")

    tx_type = 0
    payload = data
    if data[0] <= MAX_TX_TYPE:
        tx_type = data[0]
        payload = data[1:]

    try:
        item = rlp_decode(payload)
    except MalformedNode as e:
        raise DecodeValueError(f"receipt is not RLP: {e.message}") from e

    if not isinstance(item, list) or len(item) != 4:
        raise DecodeValueError("receipt is not a 4-item list")

    first, gas, bloom, logs = item
    if not isinstance(first, bytes) or not isinstance(gas, bytes):
        raise DecodeValueError("receipt status/gas are not strings")
    if not isinstance(bloom, bytes) or len(bloom) != BLOOM_BYTES:
        raise DecodeValueError("receipt bloom is not 256 bytes")
    if not isinstance(logs, list):
        raise DecodeValueError("receipt logs are not a list")

    status: Optional[int] = None
    post_state: Optional[bytes] = None
    if len(first) == 32:
        post_state = first
    else:
        status = decode_uint(first)
        if status not in (0, 1):
            raise DecodeValueError(f"receipt status {status}")

    return Receipt(
        tx_type=tx_type,
        status=status,
        cumulative_gas_used=decode_uint(gas),
        logs_bloom=bloom,
        logs=tuple(_decode_log(log) for log in logs),
        post_state=post_state,
    )


def receipt_logs(receipt: Receipt, address: Optional[bytes] = None) -> List[Log]:
    """Logs emitted by `address` (all logs when None)."""
    if address is None:
        return list(receipt.logs)
    return [log for log in receipt.logs if log.address == address]
