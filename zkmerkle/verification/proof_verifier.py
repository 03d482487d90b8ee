"""
Proof Verification Service

Verifies proofs fetched from untrusted sources against roots supplied by a
light client, and reports a result per proof instead of raising.

Features:
- Routes each proof to its domain verifier
- Optional set of trusted roots (reject anything else up front)
- Batch verification with summary logging
- Verification statistics
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional
import logging

from zkmerkle.config import VerifierConfig
from zkmerkle.core.errors import HashMismatch, MerkleProofError
from zkmerkle.core.interfaces import VerifiedValue
from zkmerkle.core.proof import Domain, MerkleProof
from zkmerkle.dispatch import DomainDispatcher

logger = logging.getLogger(__name__)


class ProofStatus(Enum):
    """Status of proof verification."""
    VALID = "valid"
    ABSENT = "absent"
    INVALID = "invalid"


@dataclass
class ProofVerificationResult:
    """Result of verifying one proof."""

    domain: Domain
    key: bytes
    status: ProofStatus
    verified: Optional[VerifiedValue] = None
    verification_time: float = 0.0
    error: Optional[MerkleProofError] = None

    @property
    def ok(self) -> bool:
        """The claim (membership or absence) is proven."""
        return self.status != ProofStatus.INVALID

    @property
    def error_message(self) -> Optional[str]:
        return self.error.describe() if self.error else None


class ProofVerifier:
    """
    Verifies proofs and tracks verification statistics.

    A proof that fails verification means "claim not proven"; the typed
    error is attached to the result for the caller to report.
    """

    def __init__(self, config: VerifierConfig = None, trusted_roots: Iterable[bytes] = None):
        """
        Initialize proof verifier.

        Args:
            config: Dispatcher configuration
            trusted_roots: Roots accepted from the light client (any root when None)
        """
        self.dispatcher = DomainDispatcher(config)
        self.trusted_roots = set(trusted_roots) if trusted_roots is not None else None

        # Statistics
        self.stats = {
            "proofs_verified": 0,
            "proofs_valid": 0,
            "proofs_absent": 0,
            "proofs_invalid": 0,
            "batch_verifications": 0,
        }

        logger.info(
            f"Initialized proof verifier: "
            f"{len(self.trusted_roots) if self.trusted_roots is not None else 'any'} trusted roots"
        )

    def add_trusted_root(self, root: bytes):
        """Accept proofs against `root`."""
        if self.trusted_roots is None:
            self.trusted_roots = set()
        self.trusted_roots.add(root)
        logger.info(f"Added trusted root: {root.hex()[:16]}...")

    def verify_proof(self, proof: MerkleProof) -> ProofVerificationResult:
        """
        Verify a single proof.

        Args:
            proof: Proof to verify

        Returns:
            Verification result (never raises for proof failures)
        """
        start_time = time.time()
        self.stats["proofs_verified"] += 1

        verified = None
        error = None
        try:
            if self.trusted_roots is not None and proof.root not in self.trusted_roots:
                raise HashMismatch(f"untrusted root {proof.root.hex()[:16]}...", got=proof.root)
            verified = self.dispatcher.verify(proof)
        except MerkleProofError as e:
            error = e.with_context(domain=proof.domain.value)

        if error is not None:
            status = ProofStatus.INVALID
            self.stats["proofs_invalid"] += 1
            logger.warning(f"Proof rejected: {error.describe()}")
        elif verified.exists:
            status = ProofStatus.VALID
            self.stats["proofs_valid"] += 1
        else:
            status = ProofStatus.ABSENT
            self.stats["proofs_absent"] += 1

        verification_time = time.time() - start_time
        logger.info(
            f"Verified {proof.domain.value} proof for {proof.key.hex()[:16]}... "
            f"in {verification_time*1000:.2f}ms: {status.name}"
        )

        return ProofVerificationResult(
            domain=proof.domain,
            key=proof.key,
            status=status,
            verified=verified,
            verification_time=verification_time,
            error=error,
        )

    def verify_batch(self, proofs: List[MerkleProof]) -> List[ProofVerificationResult]:
        """
        Verify multiple proofs.

        Args:
            proofs: List of proofs to verify

        Returns:
            List of verification results, in input order
        """
        self.stats["batch_verifications"] += 1

        results = [self.verify_proof(proof) for proof in proofs]

        # Log batch summary
        ok_count = sum(1 for r in results if r.ok)
        logger.info(
            f"Batch verified {len(proofs)} proofs: "
            f"{ok_count} proven, {len(proofs) - ok_count} rejected"
        )

        return results

    def get_stats(self) -> Dict:
        """Get verifier statistics."""
        total = self.stats["proofs_verified"]
        success_rate = ((total - self.stats["proofs_invalid"]) / total * 100) if total > 0 else 0
        return {
            **self.stats,
            "domains": [d.value for d in self.dispatcher.domains],
            "trusted_roots": len(self.trusted_roots) if self.trusted_roots is not None else None,
            "success_rate": f"{success_rate:.2f}%",
        }
