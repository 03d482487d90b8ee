"""
Verifier configuration.

Which domains are available and which hash function or proof spec each one
uses is fixed when the dispatcher is built, from an explicit VerifierConfig.
VerifierConfig.from_env() reads the same settings from ZKMERKLE_* variables.
"""

import logging
import os
from typing import List, Literal

from pydantic import BaseModel, Field

from zkmerkle.core.hashing import HashAlgorithm
from zkmerkle.core.proof import Domain
from zkmerkle.domains.cosmos.ics23 import IAVL_SPEC, TENDERMINT_SPEC, ProofSpec

PROOF_SPECS = {
    "iavl": IAVL_SPEC,
    "tendermint": TENDERMINT_SPEC,
}

SpecName = Literal["iavl", "tendermint"]


class VerifierConfig(BaseModel):
    """Proof verifier configuration."""

    enabled_domains: List[Domain] = Field(
        default_factory=lambda: list(Domain),
        description="Domains the dispatcher accepts (set via ZKMERKLE_DOMAINS, comma separated)"
    )

    # Ethereum
    ethereum_hash: HashAlgorithm = Field(
        default=HashAlgorithm.KECCAK256,
        description="Trie node hash function for Ethereum domains"
    )

    # Cosmos
    cosmos_store_spec: SpecName = Field(default="iavl", description="Proof spec of module stores")
    cosmos_multistore_spec: SpecName = Field(default="tendermint", description="Proof spec of the multistore")

    log_level: str = Field(default="INFO", description="Log level for zkmerkle loggers")

    def store_spec(self) -> ProofSpec:
        return PROOF_SPECS[self.cosmos_store_spec]

    def multistore_spec(self) -> ProofSpec:
        return PROOF_SPECS[self.cosmos_multistore_spec]

    def is_enabled(self, domain: Domain) -> bool:
        return domain in self.enabled_domains

    @classmethod
    def from_env(cls) -> "VerifierConfig":
        """Build configuration from ZKMERKLE_* environment variables."""
        domains = os.getenv("ZKMERKLE_DOMAINS", "")
        settings = {
            "ethereum_hash": os.getenv("ZKMERKLE_ETHEREUM_HASH", "keccak256").lower(),
            "cosmos_store_spec": os.getenv("ZKMERKLE_COSMOS_STORE_SPEC", "iavl").lower(),
            "cosmos_multistore_spec": os.getenv("ZKMERKLE_COSMOS_MULTISTORE_SPEC", "tendermint").lower(),
            "log_level": os.getenv("ZKMERKLE_LOG_LEVEL", "INFO").upper(),
        }
        if domains.strip():
            settings["enabled_domains"] = [
                Domain.parse(d.strip()) for d in domains.split(",") if d.strip()
            ]
        return cls(**settings)


def configure_logging(config: VerifierConfig):
    """Apply the configured level to the package logger."""
    logging.getLogger("zkmerkle").setLevel(config.log_level)
