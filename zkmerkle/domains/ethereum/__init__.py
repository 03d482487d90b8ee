"""
Ethereum Domain

Merkle Patricia Trie proofs for the state, storage and receipts tries.
"""

from zkmerkle.domains.ethereum.account import EthereumAccount, decode_account
from zkmerkle.domains.ethereum.keys import account_key, mapping_slot, receipt_key, storage_key, storage_slot
from zkmerkle.domains.ethereum.proof_trie import ProofTrie
from zkmerkle.domains.ethereum.receipts import Log, Receipt, decode_receipt
from zkmerkle.domains.ethereum.trie_verify import verify_trie_proof
from zkmerkle.domains.ethereum.verifier import (
    EthereumAccountVerifier,
    EthereumReceiptVerifier,
    EthereumStorageVerifier,
    verify_account_and_storage,
)

__all__ = [
    "EthereumAccount",
    "decode_account",
    "account_key",
    "mapping_slot",
    "receipt_key",
    "storage_key",
    "storage_slot",
    "Log",
    "Receipt",
    "decode_receipt",
    "ProofTrie",
    "verify_trie_proof",
    "EthereumAccountVerifier",
    "EthereumReceiptVerifier",
    "EthereumStorageVerifier",
    "verify_account_and_storage",
]
