"""Proof verification service."""

from zkmerkle.verification.proof_verifier import ProofStatus, ProofVerificationResult, ProofVerifier

__all__ = ["ProofStatus", "ProofVerificationResult", "ProofVerifier"]
