"""
Domain capability contracts.

MerkleVerifiable is implemented once per domain and is the only surface
callers depend on. MerkleProver is implemented by network fetchers that
live outside this package; only its interface is defined here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from zkmerkle.core.errors import MerkleProofError
from zkmerkle.core.proof import Domain, MerkleProof, ProofOutput

UINT256_BYTES = 32


@dataclass(frozen=True)
class VerifiedValue:
    """
    Result of a successful verification.

    `exists` is False for a proven absence, which is a success, not an error.
    """

    domain: Domain
    key: bytes
    root: bytes
    exists: bool
    value: Optional[bytes] = None
    decoded: Any = None

    def output_value(self) -> bytes:
        """Canonical fixed-width encoding of the proven value."""
        if not self.exists:
            return b""
        if isinstance(self.decoded, bool):
            return int(self.decoded).to_bytes(UINT256_BYTES, "big")
        if isinstance(self.decoded, int):
            return self.decoded.to_bytes(UINT256_BYTES, "big")
        if hasattr(self.decoded, "to_output_bytes"):
            return self.decoded.to_output_bytes()
        return self.value or b""

    def to_output(self) -> ProofOutput:
        return ProofOutput(
            domain=self.domain,
            root=self.root,
            key=self.key,
            exists=self.exists,
            value=self.output_value(),
        )


class MerkleVerifiable(ABC):
    """Verification capability provided by every domain."""

    domain: Domain

    @abstractmethod
    def verify(self, proof: MerkleProof) -> VerifiedValue:
        """
        Verify a proof against its trusted root.

        Raises:
            MerkleProofError: the claim is not proven
        """

    @abstractmethod
    def derive_key(self, identifier: Any) -> bytes:
        """Turn a logical identifier (address, slot, index, store key) into the trie key."""

    def is_valid(self, proof: MerkleProof) -> bool:
        """Boolean form of verify()."""
        try:
            self.verify(proof)
        except MerkleProofError:
            return False
        return True


class MerkleProver(ABC):
    """Proof source for one domain (RPC clients, indexers)."""

    domain: Domain

    @abstractmethod
    async def fetch_proof(self, identifier: Any, height: Optional[int] = None) -> MerkleProof:
        """
        Fetch a proof for `identifier` at block `height` (latest when None).

        Implementations own retries and timeouts; the returned proof still
        has to be verified against an independently trusted root.
        """


__all__ = ["VerifiedValue", "MerkleVerifiable", "MerkleProver"]
