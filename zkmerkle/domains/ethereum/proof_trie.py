"""
Provable key/value trie.

Wraps py-trie's HexaryTrie to build canonical Merkle Patricia Tries and
produce proofs in the form a node returns from eth_getProof. Used to commit
to batches of verified values and to replay tries when testing verifiers.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from trie import HexaryTrie

from zkmerkle.core.hashing import EMPTY_ROOT_HASH, keccak256
from zkmerkle.core.rlp_codec import rlp_encode
from zkmerkle.core.trie_nodes import HASH_LENGTH, EmptyNode, TrieNode, decode_node

logger = logging.getLogger(__name__)


class ProofTrie:
    """
    Keccak-committed Merkle Patricia Trie held in an in-memory node store.

    Secure tries hash every key with keccak256 before it becomes a trie
    path, as the state and storage tries do.
    """

    def __init__(self, secure: bool = False):
        self.secure = secure
        self._db: Dict[bytes, bytes] = {}
        self._trie = HexaryTrie(self._db)
        self._keys: Set[bytes] = set()

    @classmethod
    def from_items(cls, items: Iterable[Tuple[bytes, bytes]], secure: bool = False) -> "ProofTrie":
        trie = cls(secure=secure)
        for key, value in items:
            trie.insert(key, value)
        return trie

    def trie_key(self, key: bytes) -> bytes:
        """Key actually used as the trie path."""
        return keccak256(key) if self.secure else bytes(key)

    def insert(self, key: bytes, value: bytes):
        """Insert or update a value. An empty value deletes the key."""
        if not value:
            self.delete(key)
            return
        path = self.trie_key(key)
        self._trie.set(path, bytes(value))
        self._keys.add(path)

    def delete(self, key: bytes):
        path = self.trie_key(key)
        if path in self._keys:
            self._trie.delete(path)
            self._keys.discard(path)

    def get(self, key: bytes) -> Optional[bytes]:
        return self._trie.get(self.trie_key(key)) or None

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: bytes) -> bool:
        return self.trie_key(key) in self._keys

    def root_hash(self) -> bytes:
        return self._trie.root_hash

    @property
    def root_node(self) -> TrieNode:
        root = self.root_hash()
        if root == EMPTY_ROOT_HASH:
            return EmptyNode()
        return decode_node(self._db[root])

    def get_proof(self, key: bytes) -> List[bytes]:
        """
        Encoded nodes from the root to the node that resolves `key`.

        Children that encode to fewer than 32 bytes are embedded in their
        parent and are not listed separately.
        """
        nodes = [rlp_encode(node) for node in self._trie.get_proof(self.trie_key(key))]
        proof = nodes[:1] + [n for n in nodes[1:] if len(n) >= HASH_LENGTH]
        logger.debug(f"Proof for {key.hex()[:16]}... has {len(proof)} of {len(nodes)} nodes")
        return proof


__all__ = ["ProofTrie"]
