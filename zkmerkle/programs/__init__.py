"""Proving-environment programs built on the verifiers."""

from zkmerkle.programs.multi_chain import build_commitment_tries, verify_proof_batch
from zkmerkle.programs.vault_rate import VaultChainProofs, VaultRate, compute_vault_rate

__all__ = [
    "build_commitment_tries",
    "verify_proof_batch",
    "VaultChainProofs",
    "VaultRate",
    "compute_vault_rate",
]
