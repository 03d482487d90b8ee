"""
Trie key derivation for Ethereum domains.

The state and storage tries are "secure": keys are keccak-256 hashes of the
address or slot. The receipts trie is keyed by rlp(transaction_index).
"""

from typing import Union

from zkmerkle.core.hashing import keccak256
from zkmerkle.core.rlp_codec import encode_uint

AddressLike = Union[str, bytes]
SlotLike = Union[int, str, bytes]


def to_bytes(value: Union[str, bytes]) -> bytes:
    """Accept raw bytes or 0x-prefixed hex."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        text = "0" + text
    return bytes.fromhex(text)


def normalize_address(address: AddressLike) -> bytes:
    raw = to_bytes(address)
    if len(raw) != 20:
        raise ValueError(f"address must be 20 bytes, got {len(raw)}")
    return raw


def storage_slot(slot: SlotLike) -> bytes:
    """Left-pad a slot (index or raw bytes) to 32 bytes."""
    if isinstance(slot, int):
        return slot.to_bytes(32, "big")
    raw = to_bytes(slot)
    if len(raw) > 32:
        raise ValueError(f"storage slot of {len(raw)} bytes")
    return raw.rjust(32, b"\x00")


def mapping_slot(key: Union[AddressLike, int], slot: int) -> bytes:
    """
    Storage slot of `mapping[key]` for a mapping declared at `slot`.

    keccak256(abi.encode(key, slot)) with both words padded to 32 bytes.
    """
    if isinstance(key, int):
        key_word = key.to_bytes(32, "big")
    else:
        key_word = to_bytes(key).rjust(32, b"\x00")
    return keccak256(key_word + slot.to_bytes(32, "big"))


def account_key(address: AddressLike) -> bytes:
    return keccak256(normalize_address(address))


def storage_key(slot: SlotLike) -> bytes:
    return keccak256(storage_slot(slot))


def receipt_key(index: int) -> bytes:
    return encode_uint(index)
