"""
Merkle Patricia Trie proof verification.

Walks a proof from the trusted root to the node that resolves the key,
checking hash linkage before each node is decoded. Returns the proven value,
or None when the proof establishes that the key is absent.
"""

import logging
from typing import Optional, Sequence, Tuple

from zkmerkle.core.errors import HashMismatch, MalformedNode, PathMismatch, ValueMismatch
from zkmerkle.core.hashing import HashFunction, keccak256
from zkmerkle.core.nibbles import Nibbles, to_nibbles
from zkmerkle.core.trie_nodes import (
    BranchNode,
    ChildRef,
    EmptyNode,
    ExtensionNode,
    HashRef,
    InlineRef,
    LeafNode,
    TrieNode,
    decode_node,
)

logger = logging.getLogger(__name__)

# Marker for a walk that stopped at a hash reference and needs the next node
_CONTINUE = object()


def _walk(
    node: TrieNode,
    path: Nibbles,
    pos: int,
    is_root: bool,
) -> Tuple[object, int, Optional[HashRef], Tuple[ChildRef, ...]]:
    """
    Consume as much of `path` as `node` (and any inline children) allows.

    Returns:
        (result, pos, next_ref, siblings) where result is the proven value,
        None for absence, or _CONTINUE with next_ref set
    """
    while True:
        if isinstance(node, EmptyNode):
            if is_root or pos == len(path):
                return None, pos, None, ()
            raise PathMismatch("empty node before key is exhausted")

        if isinstance(node, LeafNode):
            if node.path != path[pos:]:
                raise PathMismatch(
                    f"leaf path {bytes(node.path).hex()} does not match "
                    f"remaining key {bytes(path[pos:]).hex()}"
                )
            return node.value, len(path), None, ()

        if isinstance(node, ExtensionNode):
            end = pos + len(node.path)
            if path[pos:end] != node.path:
                raise PathMismatch("extension path diverges from key")
            pos = end
            child = node.child
            if isinstance(child, InlineRef):
                node = child.node
                is_root = False
                continue
            return _CONTINUE, pos, child, ()

        if isinstance(node, BranchNode):
            if pos == len(path):
                return node.value, pos, None, ()
            nibble = path[pos]
            pos += 1
            child = node.children[nibble]
            if child is None:
                return None, pos, None, ()
            if isinstance(child, InlineRef):
                node = child.node
                is_root = False
                continue
            siblings = tuple(
                c for i, c in enumerate(node.children) if i != nibble and c is not None
            )
            return _CONTINUE, pos, child, siblings

        raise MalformedNode(f"unexpected node type {type(node).__name__}")


def verify_trie_proof(
    root: bytes,
    key: bytes,
    nodes: Sequence[bytes],
    expected_value: Optional[bytes] = None,
    hash_fn: HashFunction = keccak256,
) -> Optional[bytes]:
    """
    Verify a Merkle Patricia Trie proof.

    Args:
        root: Trusted trie root
        key: Trie key (already hashed where the trie is secure)
        nodes: Encoded nodes from root to the resolving node
        expected_value: Claimed value, checked against the proven one when given
        hash_fn: Node hash function

    Returns:
        The proven value, or None if the key is proven absent

    Raises:
        HashMismatch: a node does not hash to its parent's reference
        PathMismatch: the proof walks a different key
        MalformedNode: a node could not be decoded
        ValueMismatch: proven value differs from expected_value
    """
    path = to_nibbles(key)

    if not nodes:
        empty_root = hash_fn(b"\x80")
        if root != empty_root:
            raise HashMismatch("empty proof for non-empty trie", expected=root, got=empty_root)
        found = None
    else:
        expected: Optional[HashRef] = HashRef(bytes(root))
        siblings: Tuple[ChildRef, ...] = ()
        pos = 0
        result: object = _CONTINUE

        for step, encoded in enumerate(nodes):
            if result is not _CONTINUE:
                raise PathMismatch("proof continues past the resolving node", step=step)

            got = hash_fn(encoded)
            if got != expected.digest:
                if any(isinstance(s, HashRef) and s.digest == got for s in siblings):
                    raise PathMismatch("proof follows a different branch than the key", step=step)
                raise HashMismatch(
                    f"node hash {got.hex()[:16]}... != expected {expected.digest.hex()[:16]}...",
                    expected=expected.digest,
                    got=got,
                    step=step,
                )

            try:
                node = decode_node(encoded)
                result, pos, expected, siblings = _walk(node, path, pos, is_root=(step == 0))
            except (MalformedNode, PathMismatch) as e:
                raise e.with_context(step=step)

            logger.debug(f"step {step}: {type(node).__name__} consumed {pos}/{len(path)} nibbles")

        if result is _CONTINUE:
            raise PathMismatch("proof ends before the key is resolved", step=len(nodes))
        found = result

    if expected_value is not None and found != expected_value:
        if found is None:
            raise ValueMismatch("value claimed for a key proven absent")
        raise ValueMismatch(f"proven value {found.hex()} != claimed {expected_value.hex()}")

    return found


__all__ = ["verify_trie_proof"]
