"""
Domain dispatch.

DOMAIN_VERIFIERS is the closed table from domain tag to verifier factory.
A DomainDispatcher instantiates the configured subset once and routes each
proof by its tag. Adding a chain means adding a Domain member and one row
here.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List

from zkmerkle.config import VerifierConfig
from zkmerkle.core.errors import UnsupportedDomain
from zkmerkle.core.hashing import get_hash_function
from zkmerkle.core.interfaces import MerkleVerifiable, VerifiedValue
from zkmerkle.core.proof import Domain, MerkleProof, ProofInput, ProofOutput
from zkmerkle.domains.cosmos.verifier import CosmosBankVerifier, CosmosWasmVerifier
from zkmerkle.domains.ethereum.verifier import (
    EthereumAccountVerifier,
    EthereumReceiptVerifier,
    EthereumStorageVerifier,
)

logger = logging.getLogger(__name__)


def _ethereum(cls) -> Callable[[VerifierConfig], MerkleVerifiable]:
    return lambda config: cls(hash_fn=get_hash_function(config.ethereum_hash))


def _cosmos(cls) -> Callable[[VerifierConfig], MerkleVerifiable]:
    return lambda config: cls(store_spec=config.store_spec(), multistore_spec=config.multistore_spec())


DOMAIN_VERIFIERS: Dict[Domain, Callable[[VerifierConfig], MerkleVerifiable]] = {
    Domain.ETHEREUM_ACCOUNT: _ethereum(EthereumAccountVerifier),
    Domain.ETHEREUM_STORAGE: _ethereum(EthereumStorageVerifier),
    Domain.ETHEREUM_RECEIPT: _ethereum(EthereumReceiptVerifier),
    Domain.COSMOS_BANK: _cosmos(CosmosBankVerifier),
    Domain.COSMOS_WASM: _cosmos(CosmosWasmVerifier),
}


class DomainDispatcher:
    """Routes proofs to the verifier configured for their domain."""

    def __init__(self, config: VerifierConfig = None):
        """
        Initialize dispatcher.

        Args:
            config: Enabled domains and per-domain settings (defaults to all domains)
        """
        self.config = config or VerifierConfig()
        self._verifiers: Dict[Domain, MerkleVerifiable] = {
            domain: DOMAIN_VERIFIERS[domain](self.config)
            for domain in self.config.enabled_domains
        }
        logger.info(f"Dispatcher ready for domains: {', '.join(d.value for d in self._verifiers)}")

    @property
    def domains(self) -> List[Domain]:
        return list(self._verifiers)

    def verifier_for(self, domain) -> MerkleVerifiable:
        domain = Domain.parse(domain)
        verifier = self._verifiers.get(domain)
        if verifier is None:
            raise UnsupportedDomain(f"domain {domain.value} is not enabled", domain=domain.value)
        return verifier

    def verify(self, proof: MerkleProof) -> VerifiedValue:
        return self.verifier_for(proof.domain).verify(proof)

    def is_valid(self, proof: MerkleProof) -> bool:
        return self.verifier_for(proof.domain).is_valid(proof)

    def derive_key(self, domain, identifier: Any) -> bytes:
        return self.verifier_for(domain).derive_key(identifier)

    def verify_all(self, proofs: Iterable[MerkleProof]) -> List[ProofOutput]:
        """Verify every proof, failing on the first one that does not verify."""
        return [self.verify(proof).to_output() for proof in proofs]

    def verify_input(self, batch: ProofInput) -> List[ProofOutput]:
        return self.verify_all(batch.proofs)


__all__ = ["DOMAIN_VERIFIERS", "DomainDispatcher"]
