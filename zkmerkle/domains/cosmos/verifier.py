"""
Cosmos domain verifiers.

A Cosmos state proof has two layers:
- nodes[0]: the module store (IAVL) proof of the raw key, either existence
  or non-existence
- nodes[1]: the multistore proof that the store name maps to the store root

The multistore proof must fold to the trusted app hash (proof.root).
"""

import logging
from typing import Any, Optional

from zkmerkle.core.errors import (
    HashMismatch,
    MalformedNode,
    MerkleProofError,
    PathMismatch,
    UnsupportedDomain,
    ValueMismatch,
)
from zkmerkle.core.interfaces import MerkleVerifiable, VerifiedValue
from zkmerkle.core.proof import Domain, MerkleProof
from zkmerkle.domains.cosmos.ics23 import (
    IAVL_SPEC,
    TENDERMINT_SPEC,
    CommitmentProof,
    ExistenceProof,
    ProofSpec,
    calculate_existence_root,
    calculate_root,
    decode_commitment_proof,
    verify_existence,
    verify_non_existence,
)
from zkmerkle.domains.cosmos.keys import BANK_STORE, WASM_STORE, CosmosKey

logger = logging.getLogger(__name__)

STORE_STEP = 0
MULTISTORE_STEP = 1


class CosmosStoreVerifier(MerkleVerifiable):
    """Two-layer ICS23 verification for one module store."""

    domain: Domain
    store: str

    def __init__(self, store_spec: ProofSpec = IAVL_SPEC, multistore_spec: ProofSpec = TENDERMINT_SPEC):
        self.store_spec = store_spec
        self.multistore_spec = multistore_spec

    def derive_key(self, identifier: Any) -> bytes:
        """
        Encode a store key.

        Args:
            identifier: CosmosKey, its string form, or raw bytes inside this store
        """
        if isinstance(identifier, CosmosKey):
            key = identifier
        elif isinstance(identifier, (bytes, bytearray)):
            key = CosmosKey.from_store_key(self.store, bytes(identifier))
        else:
            key = CosmosKey.from_string(str(identifier))
        if key.prefix != self.store:
            raise PathMismatch(f"key for store {key.prefix!r}, expected {self.store!r}", domain=self.domain.value)
        return key.to_bytes()

    def _verify_store(self, proof: CommitmentProof, store_root: bytes, store_key: bytes, value: Optional[bytes]):
        """Returns the proven value, or None for a non-existence proof."""
        if proof.exist is not None:
            return verify_existence(proof.exist, self.store_spec, store_root, store_key, value)

        if value is not None:
            raise ValueMismatch("value claimed for a key with a non-existence proof")
        verify_non_existence(proof.nonexist, self.store_spec, store_root, store_key)
        return None

    def _multistore_entry(self, proof: CommitmentProof, app_hash: bytes) -> ExistenceProof:
        exist = proof.exist
        if exist is None:
            raise MalformedNode("multistore proof must be an existence proof")
        computed = calculate_existence_root(exist)
        if computed != app_hash:
            raise HashMismatch(
                f"multistore root {computed.hex()[:16]}... != app hash {app_hash.hex()[:16]}...",
                expected=app_hash,
                got=computed,
            )
        return exist

    def verify(self, proof: MerkleProof) -> VerifiedValue:
        """
        Verify both layers against the app hash.

        Both layers are folded and linked before any layout or key check,
        so a change to any hashed byte of either layer is a HashMismatch.
        Bytes of the msgpack framing itself fail to decode as MalformedNode.
        """
        if proof.domain is not self.domain:
            raise UnsupportedDomain(
                f"{type(self).__name__} cannot verify {proof.domain.value} proofs",
                domain=proof.domain.value,
            )

        step = None
        try:
            key = CosmosKey.from_bytes(proof.key)
            if key.prefix != self.store:
                raise PathMismatch(f"key addresses store {key.prefix!r}, expected {self.store!r}")
            if len(proof.nodes) != 2:
                raise MalformedNode(f"expected store and multistore proofs, got {len(proof.nodes)} nodes")

            step = STORE_STEP
            store_proof = decode_commitment_proof(proof.nodes[STORE_STEP])
            store_root = calculate_root(store_proof)

            step = MULTISTORE_STEP
            entry = self._multistore_entry(decode_commitment_proof(proof.nodes[MULTISTORE_STEP]), proof.root)
            if entry.value != store_root:
                raise HashMismatch(
                    f"store root {store_root.hex()[:16]}... not committed in multistore",
                    expected=entry.value,
                    got=store_root,
                )
            verify_existence(entry, self.multistore_spec, proof.root, key.store_prefix)

            step = STORE_STEP
            found = self._verify_store(store_proof, store_root, key.store_key, proof.value)
        except MerkleProofError as e:
            raise e.with_context(domain=self.domain.value, step=step)

        logger.debug(
            f"{self.domain.value} proof for {key.key[:16]}... "
            f"{'proves value' if found is not None else 'proves absence'}"
        )
        return VerifiedValue(
            domain=self.domain,
            key=proof.key,
            root=proof.root,
            exists=found is not None,
            value=found,
            decoded=found,
        )


class CosmosBankVerifier(CosmosStoreVerifier):
    """Bank module: supplies and balances."""

    domain = Domain.COSMOS_BANK
    store = BANK_STORE


class CosmosWasmVerifier(CosmosStoreVerifier):
    """Wasm module: contract storage."""

    domain = Domain.COSMOS_WASM
    store = WASM_STORE


__all__ = ["CosmosStoreVerifier", "CosmosBankVerifier", "CosmosWasmVerifier"]
