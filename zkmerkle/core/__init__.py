"""
zkmerkle Core Module

Chain-agnostic building blocks:
- Proof model and domain tags
- Error taxonomy
- Hashing, RLP and nibble codecs
- Merkle Patricia Trie node codec
"""

from zkmerkle.core.errors import (
    DecodeValueError,
    HashMismatch,
    MalformedNode,
    MerkleProofError,
    PathMismatch,
    StorageRootMismatch,
    UnsupportedDomain,
    ValueMismatch,
)
from zkmerkle.core.hashing import EMPTY_ROOT_HASH, HashAlgorithm, get_hash_function, keccak256, sha256
from zkmerkle.core.nibbles import to_nibbles
from zkmerkle.core.proof import Domain, MerkleProof, ProofInput, ProofOutput
from zkmerkle.core.trie_nodes import (
    BranchNode,
    EmptyNode,
    ExtensionNode,
    HashRef,
    InlineRef,
    LeafNode,
    decode_node,
    encode_node,
)

__all__ = [
    "MerkleProofError",
    "MalformedNode",
    "HashMismatch",
    "StorageRootMismatch",
    "PathMismatch",
    "ValueMismatch",
    "UnsupportedDomain",
    "DecodeValueError",
    "EMPTY_ROOT_HASH",
    "HashAlgorithm",
    "get_hash_function",
    "keccak256",
    "sha256",
    "to_nibbles",
    "Domain",
    "MerkleProof",
    "ProofInput",
    "ProofOutput",
    "EmptyNode",
    "LeafNode",
    "ExtensionNode",
    "BranchNode",
    "HashRef",
    "InlineRef",
    "decode_node",
    "encode_node",
]
