"""
Ethereum domain verifiers.

Account, storage and receipt proofs share the same trie walk and differ only
in key derivation and leaf value decoding. Storage proofs hang off an
account proof: the account record's storage root is the storage trie root.
"""

import logging
from typing import Any, Tuple

from zkmerkle.core.errors import MerkleProofError, StorageRootMismatch, UnsupportedDomain
from zkmerkle.core.hashing import HashFunction, keccak256
from zkmerkle.core.interfaces import MerkleVerifiable, VerifiedValue
from zkmerkle.core.proof import Domain, MerkleProof
from zkmerkle.core.rlp_codec import decode_uint_item
from zkmerkle.domains.ethereum.account import EthereumAccount, decode_account
from zkmerkle.domains.ethereum.keys import account_key, receipt_key, storage_key
from zkmerkle.domains.ethereum.receipts import decode_receipt
from zkmerkle.domains.ethereum.trie_verify import verify_trie_proof

logger = logging.getLogger(__name__)


class EthereumTrieVerifier(MerkleVerifiable):
    """Shared Merkle Patricia Trie verification for Ethereum domains."""

    domain: Domain

    def __init__(self, hash_fn: HashFunction = keccak256):
        self.hash_fn = hash_fn

    def decode_value(self, raw: bytes) -> Any:
        return raw

    def verify(self, proof: MerkleProof) -> VerifiedValue:
        if proof.domain is not self.domain:
            raise UnsupportedDomain(
                f"{type(self).__name__} cannot verify {proof.domain.value} proofs",
                domain=proof.domain.value,
            )
        try:
            raw = verify_trie_proof(
                root=proof.root,
                key=proof.key,
                nodes=proof.nodes,
                expected_value=proof.value,
                hash_fn=self.hash_fn,
            )
            decoded = self.decode_value(raw) if raw is not None else None
        except MerkleProofError as e:
            raise e.with_context(domain=self.domain.value)

        logger.debug(
            f"{self.domain.value} proof for {proof.key.hex()[:16]}... "
            f"{'proves value' if raw is not None else 'proves absence'}"
        )
        return VerifiedValue(
            domain=self.domain,
            key=proof.key,
            root=proof.root,
            exists=raw is not None,
            value=raw,
            decoded=decoded,
        )


class EthereumAccountVerifier(EthereumTrieVerifier):
    """State trie: keccak(address) -> rlp(account)."""

    domain = Domain.ETHEREUM_ACCOUNT

    def derive_key(self, identifier) -> bytes:
        return account_key(identifier)

    def decode_value(self, raw: bytes) -> EthereumAccount:
        return decode_account(raw)


class EthereumStorageVerifier(EthereumTrieVerifier):
    """Storage trie: keccak(slot) -> rlp(uint256)."""

    domain = Domain.ETHEREUM_STORAGE

    def derive_key(self, identifier) -> bytes:
        return storage_key(identifier)

    def decode_value(self, raw: bytes) -> int:
        return decode_uint_item(raw)


class EthereumReceiptVerifier(EthereumTrieVerifier):
    """Receipts trie: rlp(tx_index) -> receipt."""

    domain = Domain.ETHEREUM_RECEIPT

    def derive_key(self, identifier) -> bytes:
        return receipt_key(int(identifier))

    def decode_value(self, raw: bytes):
        return decode_receipt(raw)


def verify_account_and_storage(
    account_proof: MerkleProof,
    storage_proof: MerkleProof,
    account_verifier: EthereumAccountVerifier = None,
    storage_verifier: EthereumStorageVerifier = None,
) -> Tuple[VerifiedValue, VerifiedValue]:
    """
    Verify a storage slot through its account.

    Both proofs must verify on their own, and the storage proof's root must
    be the storage root recorded in the proven account. An absent account
    has the empty storage root.

    Returns:
        (account result, storage result)

    Raises:
        StorageRootMismatch: the two proofs are individually valid but unlinked
    """
    account_verifier = account_verifier or EthereumAccountVerifier()
    storage_verifier = storage_verifier or EthereumStorageVerifier()

    account = account_verifier.verify(account_proof)
    record = account.decoded if account.exists else EthereumAccount()

    if record.storage_root != storage_proof.root:
        raise StorageRootMismatch(
            f"account storage root {record.storage_root.hex()[:16]}... "
            f"!= storage proof root {storage_proof.root.hex()[:16]}...",
            expected=record.storage_root,
            got=storage_proof.root,
            domain=Domain.ETHEREUM_STORAGE.value,
        )

    storage = storage_verifier.verify(storage_proof)
    return account, storage


__all__ = [
    "EthereumTrieVerifier",
    "EthereumAccountVerifier",
    "EthereumStorageVerifier",
    "EthereumReceiptVerifier",
    "verify_account_and_storage",
]
