"""
Cosmos Domain

ICS23 proofs over IAVL module stores committed into the multistore.
"""

from zkmerkle.domains.cosmos.ics23 import IAVL_SPEC, TENDERMINT_SPEC, CommitmentProof, ExistenceProof, NonExistenceProof
from zkmerkle.domains.cosmos.keys import CosmosKey, decode_amount
from zkmerkle.domains.cosmos.verifier import CosmosBankVerifier, CosmosWasmVerifier

__all__ = [
    "IAVL_SPEC",
    "TENDERMINT_SPEC",
    "CommitmentProof",
    "ExistenceProof",
    "NonExistenceProof",
    "CosmosKey",
    "decode_amount",
    "CosmosBankVerifier",
    "CosmosWasmVerifier",
]
