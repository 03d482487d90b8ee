"""
Ethereum account records stored in the state trie.
"""

from dataclasses import dataclass

from rlp.sedes import big_endian_int

from zkmerkle.core.errors import DecodeValueError, MalformedNode
from zkmerkle.core.hashing import EMPTY_CODE_HASH, EMPTY_ROOT_HASH
from zkmerkle.core.rlp_codec import RLPItem, decode_uint, rlp_decode, rlp_encode


@dataclass(frozen=True)
class EthereumAccount:
    """Account record: rlp([nonce, balance, storage_root, code_hash])."""

    nonce: int = 0
    balance: int = 0
    storage_root: bytes = EMPTY_ROOT_HASH
    code_hash: bytes = EMPTY_CODE_HASH

    def to_rlp(self) -> bytes:
        return rlp_encode([
            big_endian_int.serialize(self.nonce),
            big_endian_int.serialize(self.balance),
            self.storage_root,
            self.code_hash,
        ])

    def to_output_bytes(self) -> bytes:
        """nonce (8) | balance (32) | storage_root (32) | code_hash (32)"""
        return (
            self.nonce.to_bytes(8, "big")
            + self.balance.to_bytes(32, "big")
            + self.storage_root
            + self.code_hash
        )

    @property
    def is_contract(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH


def _hash_field(item: RLPItem, name: str) -> bytes:
    if not isinstance(item, bytes) or len(item) != 32:
        raise DecodeValueError(f"account {name} is not a 32-byte hash")
    return item


def decode_account(data: bytes) -> EthereumAccount:
    """
    Decode an account leaf value.

    Raises:
        DecodeValueError: not a four-field account record
    """
    try:
        item = rlp_decode(data)
    except MalformedNode as e:
        raise DecodeValueError(f"account value is not RLP: {e.message}") from e

    if not isinstance(item, list) or len(item) != 4:
        raise DecodeValueError("account value is not a 4-item list")

    nonce, balance, storage_root, code_hash = item
    if not isinstance(nonce, bytes) or len(nonce) > 8:
        raise DecodeValueError("account nonce is not a uint64")
    if not isinstance(balance, bytes) or len(balance) > 32:
        raise DecodeValueError("account balance is not a uint256")

    return EthereumAccount(
        nonce=decode_uint(nonce),
        balance=decode_uint(balance),
        storage_root=_hash_field(storage_root, "storage_root"),
        code_hash=_hash_field(code_hash, "code_hash"),
    )
