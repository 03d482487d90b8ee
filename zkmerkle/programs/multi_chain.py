"""
Multi-chain proof batch program.

Verifies a batch of proofs from several chains, commits their public
outputs, and folds the verified values into a commitment trie: one trie per
chain family, plus a top-level trie mapping each family name to that
trie's root. Any value can later be proven against the single top-level
root with an ordinary trie proof.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

import msgpack

from zkmerkle.core.proof import ProofInput, ProofOutput
from zkmerkle.dispatch import DomainDispatcher
from zkmerkle.domains.ethereum.proof_trie import ProofTrie

logger = logging.getLogger(__name__)


@dataclass
class CommitmentTries:
    """Per-chain tries of verified values and the trie of their roots."""

    chains: Dict[str, ProofTrie] = field(default_factory=dict)
    top: ProofTrie = field(default_factory=ProofTrie)

    def root_hash(self) -> bytes:
        return self.top.root_hash()

    def chain_root(self, chain: str) -> bytes:
        return self.chains[chain].root_hash()


def verify_proof_batch(batch: ProofInput, dispatcher: DomainDispatcher = None) -> List[ProofOutput]:
    """
    Verify every proof in the batch.

    Raises:
        MerkleProofError: the first proof that does not verify aborts the run
    """
    dispatcher = dispatcher or DomainDispatcher()
    outputs = dispatcher.verify_input(batch)
    logger.info(f"Verified batch of {len(outputs)} proofs")
    return outputs


def build_commitment_tries(outputs: List[ProofOutput]) -> CommitmentTries:
    """Insert verified values into per-chain tries keyed by trie key."""
    tries = CommitmentTries()
    for output in outputs:
        if not output.exists:
            continue
        chain = output.domain.chain
        tries.chains.setdefault(chain, ProofTrie()).insert(output.key, output.value)

    for chain, trie in sorted(tries.chains.items()):
        tries.top.insert(chain.encode("utf-8"), trie.root_hash())

    return tries


def commit_outputs(outputs: List[ProofOutput]) -> bytes:
    """Serialized public outputs of the program."""
    return msgpack.packb([o.to_dict() for o in outputs], use_bin_type=True)


def run(batch: ProofInput, dispatcher: DomainDispatcher = None) -> bytes:
    """Program entry point: verify, commit."""
    return commit_outputs(verify_proof_batch(batch, dispatcher))
