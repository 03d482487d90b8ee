"""
RLP item codec.

Thin boundary around the `rlp` library: untrusted bytes are decoded strictly
(canonical lengths, no trailing data) and every library failure surfaces as
MalformedNode or DecodeValueError.
"""

from typing import List, Union

import rlp
from rlp.exceptions import RLPException
from rlp.sedes import big_endian_int

from zkmerkle.core.errors import DecodeValueError, MalformedNode

RLPItem = Union[bytes, List["RLPItem"]]


def rlp_encode(item: RLPItem) -> bytes:
    """Encode a nested bytes/list structure."""
    return rlp.encode(item)


def rlp_decode(data: bytes) -> RLPItem:
    """
    Decode a single RLP item.

    Args:
        data: Encoded bytes (untrusted)

    Returns:
        bytes for strings, list for lists

    Raises:
        MalformedNode: truncated, non-canonical, trailing data, or nested
            too deeply to decode
    """
    if not data:
        raise MalformedNode("empty RLP input")
    try:
        return rlp.decode(bytes(data), strict=True)
    except RLPException as e:
        raise MalformedNode(f"invalid RLP encoding: {e}") from e
    except RecursionError as e:
        raise MalformedNode("RLP lists nested too deeply") from e


def encode_uint(value: int) -> bytes:
    """Encode an unsigned integer as an RLP string."""
    return rlp.encode(big_endian_int.serialize(value))


def decode_uint(data: bytes) -> int:
    """
    Decode big-endian integer bytes (the payload of an RLP string).

    Raises:
        DecodeValueError: leading zero bytes
    """
    try:
        return big_endian_int.deserialize(bytes(data))
    except RLPException as e:
        raise DecodeValueError(f"non-canonical integer {bytes(data).hex()}") from e


def decode_uint_item(data: bytes) -> int:
    """Decode an RLP-encoded integer (as stored in storage trie leaves)."""
    try:
        item = rlp_decode(data)
    except MalformedNode as e:
        raise DecodeValueError(f"storage value is not RLP: {e.message}") from e
    if not isinstance(item, bytes):
        raise DecodeValueError("storage value is a list, expected integer")
    if len(item) > 32:
        raise DecodeValueError(f"integer of {len(item)} bytes exceeds uint256")
    return decode_uint(item)
