"""
Canonical hash functions used by trie and commitment verification.
"""

import hashlib
from enum import Enum
from typing import Callable

from Crypto.Hash import keccak

HashFunction = Callable[[bytes], bytes]


class HashAlgorithm(Enum):
    """Hash algorithms a domain may commit with."""
    KECCAK256 = "keccak256"
    SHA256 = "sha256"
    SHA512 = "sha512"


def keccak256(data: bytes) -> bytes:
    """Ethereum's keccak-256 (pre-NIST padding)."""
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha512(data: bytes) -> bytes:
    return hashlib.sha512(data).digest()


_HASH_FUNCTIONS = {
    HashAlgorithm.KECCAK256: keccak256,
    HashAlgorithm.SHA256: sha256,
    HashAlgorithm.SHA512: sha512,
}


def get_hash_function(algorithm) -> HashFunction:
    """
    Look up a hash function by algorithm.

    Args:
        algorithm: HashAlgorithm member or its string value

    Returns:
        Callable mapping bytes to digest bytes
    """
    if isinstance(algorithm, str):
        algorithm = HashAlgorithm(algorithm.lower())
    return _HASH_FUNCTIONS[algorithm]


# keccak256(rlp(b"")): root of an empty Merkle Patricia Trie
EMPTY_ROOT_HASH = keccak256(b"\x80")

# keccak256(b""): code hash of an account without code
EMPTY_CODE_HASH = keccak256(b"")
