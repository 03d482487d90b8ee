"""
Nibble paths and hex-prefix (compact) encoding.

Trie paths are walked four bits at a time. Leaf and extension nodes store
their partial path in hex-prefix form: the first nibble holds the node kind
(bit 1) and odd-length marker (bit 0).
"""

from typing import Sequence, Tuple

from zkmerkle.core.errors import MalformedNode

Nibbles = Tuple[int, ...]

_ODD_FLAG = 0x1
_LEAF_FLAG = 0x2


def to_nibbles(data: bytes) -> Nibbles:
    """Expand bytes into big-endian nibbles."""
    out = []
    for byte in data:
        out.append(byte >> 4)
        out.append(byte & 0x0F)
    return tuple(out)


def from_nibbles(nibbles: Sequence[int]) -> bytes:
    """Pack an even number of nibbles back into bytes."""
    if len(nibbles) % 2:
        raise ValueError("odd number of nibbles")
    return bytes((nibbles[i] << 4) | nibbles[i + 1] for i in range(0, len(nibbles), 2))


def encode_path(nibbles: Sequence[int], is_leaf: bool) -> bytes:
    """
    Hex-prefix encode a partial path.

    Args:
        nibbles: Path nibbles (each 0-15)
        is_leaf: Leaf node path (True) or extension path (False)

    Returns:
        Compact encoded path bytes
    """
    flag = _LEAF_FLAG if is_leaf else 0
    if len(nibbles) % 2:
        prefixed = [flag | _ODD_FLAG] + list(nibbles)
    else:
        prefixed = [flag, 0] + list(nibbles)
    return from_nibbles(prefixed)


def decode_path(encoded: bytes) -> Tuple[Nibbles, bool]:
    """
    Decode a hex-prefix path.

    Returns:
        (nibbles, is_leaf)

    Raises:
        MalformedNode: empty input, unknown flag, or non-zero padding
    """
    if not encoded:
        raise MalformedNode("empty compact path")
    nibbles = to_nibbles(encoded)
    flag = nibbles[0]
    if flag > 3:
        raise MalformedNode(f"invalid compact path flag {flag}")
    is_leaf = bool(flag & _LEAF_FLAG)
    if flag & _ODD_FLAG:
        return nibbles[1:], is_leaf
    if nibbles[1] != 0:
        raise MalformedNode("non-zero padding nibble in even compact path")
    return nibbles[2:], is_leaf


def common_prefix_length(a: Sequence[int], b: Sequence[int]) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n
