"""
Merkle Patricia Trie node model.

Nodes are immutable tagged variants. A child reference is either the
32-byte hash of the child's encoding or, when that encoding is shorter than
32 bytes, the child itself embedded inline.

Encoding follows the Ethereum consensus format:
- Empty:     rlp("")
- Leaf:      rlp([hex_prefix(path, leaf=True), value])
- Extension: rlp([hex_prefix(path, leaf=False), child])
- Branch:    rlp([child_0, ..., child_15, value])
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from zkmerkle.core.errors import MalformedNode
from zkmerkle.core.hashing import HashFunction, keccak256
from zkmerkle.core.nibbles import Nibbles, decode_path, encode_path
from zkmerkle.core.rlp_codec import RLPItem, rlp_decode, rlp_encode

HASH_LENGTH = 32
BRANCH_WIDTH = 16


@dataclass(frozen=True)
class EmptyNode:
    """The empty trie."""


@dataclass(frozen=True)
class LeafNode:
    path: Nibbles
    value: bytes


@dataclass(frozen=True)
class ExtensionNode:
    path: Nibbles
    child: "ChildRef"


@dataclass(frozen=True)
class BranchNode:
    children: Tuple[Optional["ChildRef"], ...]
    value: Optional[bytes] = None

    def __post_init__(self):
        if len(self.children) != BRANCH_WIDTH:
            raise ValueError(f"branch needs {BRANCH_WIDTH} slots, got {len(self.children)}")
        # An empty value encodes the same as no value
        if not self.value:
            object.__setattr__(self, "value", None)


@dataclass(frozen=True)
class HashRef:
    """Reference to a child by the hash of its encoding."""
    digest: bytes


@dataclass(frozen=True)
class InlineRef:
    """Child small enough to be embedded in its parent."""
    node: "TrieNode"


TrieNode = Union[EmptyNode, LeafNode, ExtensionNode, BranchNode]
ChildRef = Union[HashRef, InlineRef]


# ===== Encoding =====

def _ref_to_item(ref: Optional[ChildRef]) -> RLPItem:
    if ref is None:
        return b""
    if isinstance(ref, HashRef):
        return ref.digest
    return _node_to_item(ref.node)


def _node_to_item(node: TrieNode) -> RLPItem:
    if isinstance(node, EmptyNode):
        return b""
    if isinstance(node, LeafNode):
        return [encode_path(node.path, is_leaf=True), node.value]
    if isinstance(node, ExtensionNode):
        return [encode_path(node.path, is_leaf=False), _ref_to_item(node.child)]
    if isinstance(node, BranchNode):
        items = [_ref_to_item(child) for child in node.children]
        items.append(node.value if node.value is not None else b"")
        return items
    raise TypeError(f"not a trie node: {node!r}")


def encode_node(node: TrieNode) -> bytes:
    """Serialize a node to its consensus encoding."""
    return rlp_encode(_node_to_item(node))


def child_ref(node: TrieNode, hash_fn: HashFunction = keccak256) -> ChildRef:
    """Build the reference a parent holds for `node`."""
    encoded = encode_node(node)
    if len(encoded) < HASH_LENGTH:
        return InlineRef(node)
    return HashRef(hash_fn(encoded))


# ===== Decoding =====

def _item_to_ref(item: RLPItem) -> Optional[ChildRef]:
    if isinstance(item, list):
        if len(rlp_encode(item)) >= HASH_LENGTH:
            raise MalformedNode("inline child is too large to be embedded")
        return InlineRef(_item_to_node(item))
    if item == b"":
        return None
    if len(item) != HASH_LENGTH:
        raise MalformedNode(f"child reference of {len(item)} bytes, expected {HASH_LENGTH}")
    return HashRef(bytes(item))


def _item_to_node(item: RLPItem) -> TrieNode:
    if isinstance(item, bytes):
        if item == b"":
            return EmptyNode()
        raise MalformedNode("trie node is a non-empty string")

    if len(item) == 2:
        encoded_path, payload = item
        if not isinstance(encoded_path, bytes):
            raise MalformedNode("node path is not a string")
        path, is_leaf = decode_path(encoded_path)
        if is_leaf:
            if not isinstance(payload, bytes):
                raise MalformedNode("leaf value is not a string")
            return LeafNode(path=path, value=bytes(payload))
        if not path:
            raise MalformedNode("extension with empty path")
        child = _item_to_ref(payload)
        if child is None:
            raise MalformedNode("extension without child")
        return ExtensionNode(path=path, child=child)

    if len(item) == BRANCH_WIDTH + 1:
        children = tuple(_item_to_ref(c) for c in item[:BRANCH_WIDTH])
        value = item[BRANCH_WIDTH]
        if not isinstance(value, bytes):
            raise MalformedNode("branch value is not a string")
        return BranchNode(children=children, value=bytes(value) if value else None)

    raise MalformedNode(f"trie node with {len(item)} items")


def decode_node(data: bytes) -> TrieNode:
    """
    Decode a trie node from untrusted bytes.

    Raises:
        MalformedNode: invalid RLP or an item layout that is not a trie node
    """
    return _item_to_node(rlp_decode(data))


__all__ = [
    "EmptyNode",
    "LeafNode",
    "ExtensionNode",
    "BranchNode",
    "HashRef",
    "InlineRef",
    "TrieNode",
    "ChildRef",
    "encode_node",
    "decode_node",
    "child_ref",
    "HASH_LENGTH",
    "BRANCH_WIDTH",
]
