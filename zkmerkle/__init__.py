"""
zkmerkle - Multi-chain Merkle proof verification

Verifies Merkle openings for blockchain state against trusted roots:
- Ethereum Merkle Patricia Trie (accounts, storage slots, receipts)
- Cosmos ICS23 / IAVL stores (bank, wasm)

Quick start:
    from zkmerkle import DomainDispatcher, MerkleProof, Domain

    dispatcher = DomainDispatcher()
    key = dispatcher.derive_key(Domain.ETHEREUM_STORAGE, 0)
    result = dispatcher.verify(MerkleProof(nodes=nodes, key=key, domain=Domain.ETHEREUM_STORAGE, root=root))
"""

from zkmerkle.config import VerifierConfig, configure_logging
from zkmerkle.core.errors import (
    DecodeValueError,
    HashMismatch,
    MalformedNode,
    MerkleProofError,
    PathMismatch,
    StorageRootMismatch,
    UnsupportedDomain,
    ValueMismatch,
)
from zkmerkle.core.interfaces import MerkleProver, MerkleVerifiable, VerifiedValue
from zkmerkle.core.proof import Domain, MerkleProof, ProofInput, ProofOutput
from zkmerkle.dispatch import DOMAIN_VERIFIERS, DomainDispatcher
from zkmerkle.verification.proof_verifier import ProofStatus, ProofVerificationResult, ProofVerifier

__version__ = "1.0.0"

__all__ = [
    "VerifierConfig",
    "configure_logging",
    "MerkleProofError",
    "MalformedNode",
    "HashMismatch",
    "StorageRootMismatch",
    "PathMismatch",
    "ValueMismatch",
    "UnsupportedDomain",
    "DecodeValueError",
    "MerkleVerifiable",
    "MerkleProver",
    "VerifiedValue",
    "Domain",
    "MerkleProof",
    "ProofInput",
    "ProofOutput",
    "DOMAIN_VERIFIERS",
    "DomainDispatcher",
    "ProofStatus",
    "ProofVerificationResult",
    "ProofVerifier",
]
