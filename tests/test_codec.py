"""
Tests for the byte-codec layer.

Covers nibble expansion, hex-prefix paths, the RLP boundary and the trie
node codec.
"""

import pytest
import rlp

from zkmerkle.core.errors import DecodeValueError, MalformedNode
from zkmerkle.core.hashing import EMPTY_ROOT_HASH, HashAlgorithm, get_hash_function, keccak256, sha256
from zkmerkle.core.nibbles import common_prefix_length, decode_path, encode_path, from_nibbles, to_nibbles
from zkmerkle.core.rlp_codec import decode_uint, decode_uint_item, encode_uint, rlp_decode, rlp_encode
from zkmerkle.core.trie_nodes import (
    BranchNode,
    EmptyNode,
    ExtensionNode,
    HashRef,
    InlineRef,
    LeafNode,
    child_ref,
    decode_node,
    encode_node,
)


def nested_lists(depth: int) -> bytes:
    """RLP for `depth` empty lists nested inside each other."""
    data = b"\xc0"
    for _ in range(depth - 1):
        if len(data) < 56:
            data = bytes([0xc0 + len(data)]) + data
        else:
            length = len(data).to_bytes((len(data).bit_length() + 7) // 8, "big")
            data = bytes([0xf7 + len(length)]) + length + data
    return data


# ===== FIXTURES =====

@pytest.fixture
def small_leaf():
    """Leaf small enough to be embedded inline."""
    return LeafNode(path=(3, 4), value=b"\x07")


@pytest.fixture
def big_leaf():
    """Leaf whose encoding needs a hash reference."""
    return LeafNode(path=tuple(range(16)) * 2, value=b"x" * 40)


# ===== HASHING TESTS =====

@pytest.mark.unit
class TestHashing:
    """Test canonical hash functions."""

    def test_keccak_known_vector(self):
        """keccak256 of the empty string matches the Ethereum constant."""
        assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"

    def test_empty_root_constant(self):
        """Empty trie root is keccak(rlp(""))."""
        assert EMPTY_ROOT_HASH.hex() == "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"

    def test_lookup_by_name(self):
        """Hash functions resolve by enum and by name."""
        assert get_hash_function("sha256")(b"abc") == sha256(b"abc")
        assert get_hash_function(HashAlgorithm.KECCAK256) is keccak256


# ===== NIBBLE TESTS =====

@pytest.mark.unit
class TestNibbles:
    """Test nibble paths and compact encoding."""

    def test_to_nibbles(self):
        """Bytes expand high nibble first."""
        assert to_nibbles(b"\x12\xab") == (1, 2, 10, 11)
        assert from_nibbles((1, 2, 10, 11)) == b"\x12\xab"

    @pytest.mark.parametrize("nibbles,is_leaf,encoded", [
        ((1, 2, 3, 4, 5), False, b"\x11\x23\x45"),
        ((0, 1, 2, 3, 4, 5), False, b"\x00\x01\x23\x45"),
        ((0, 15, 1, 12, 11, 8), True, b"\x20\x0f\x1c\xb8"),
        ((15, 1, 12, 11, 8), True, b"\x3f\x1c\xb8"),
    ])
    def test_hex_prefix_vectors(self, nibbles, is_leaf, encoded):
        """Compact encoding matches the yellow paper examples."""
        assert encode_path(nibbles, is_leaf) == encoded
        assert decode_path(encoded) == (nibbles, is_leaf)

    def test_invalid_flag_rejected(self):
        """Flag nibbles above 3 are malformed."""
        with pytest.raises(MalformedNode):
            decode_path(b"\x41")

    def test_nonzero_padding_rejected(self):
        """Even paths must pad with a zero nibble."""
        with pytest.raises(MalformedNode):
            decode_path(b"\x05\x12")

    def test_common_prefix_length(self):
        assert common_prefix_length((1, 2, 3), (1, 2, 4)) == 2
        assert common_prefix_length((), (1,)) == 0


# ===== RLP TESTS =====

@pytest.mark.unit
class TestRlpBoundary:
    """Test strict RLP decoding of untrusted input."""

    def test_round_trip_nested(self):
        """Nested lists survive encode/decode."""
        item = [b"cat", [b"dog", b""], b"\x01"]
        assert rlp_decode(rlp_encode(item)) == item

    @pytest.mark.parametrize("data", [
        b"",
        b"\x83ab",             # truncated string
        b"\xc3\x01\x02",       # truncated list
        b"\x81\x05",           # single byte wrapped in a string prefix
        b"\x80\x00",           # trailing bytes
        b"\xb8\x02ab",         # long form for a short string
    ])
    def test_malformed_input(self, data):
        """Invalid encodings raise MalformedNode, never a library error."""
        with pytest.raises(MalformedNode):
            rlp_decode(data)

    def test_deeply_nested_lists(self):
        """Nesting beyond the interpreter stack is malformed input."""
        data = nested_lists(3000)
        with pytest.raises(MalformedNode):
            rlp_decode(data)
        with pytest.raises(MalformedNode):
            decode_node(data)

    def test_uint_codec(self):
        """Integers encode minimally."""
        assert encode_uint(0) == b"\x80"
        assert encode_uint(10) == b"\x0a"
        assert decode_uint_item(rlp.encode(b"\x01\x00")) == 256
        assert decode_uint(b"") == 0

    def test_uint_leading_zero_rejected(self):
        """Leading zero bytes are non-canonical."""
        with pytest.raises(DecodeValueError):
            decode_uint(b"\x00\x01")

    def test_uint_item_rejects_list(self):
        with pytest.raises(DecodeValueError):
            decode_uint_item(rlp.encode([b"\x01"]))


# ===== NODE CODEC TESTS =====

@pytest.mark.unit
class TestNodeCodec:
    """Test trie node encoding and decoding."""

    def test_empty_round_trip(self):
        """Empty node encodes as the empty string."""
        assert encode_node(EmptyNode()) == b"\x80"
        assert decode_node(b"\x80") == EmptyNode()

    def test_leaf_round_trip(self, big_leaf):
        assert decode_node(encode_node(big_leaf)) == big_leaf

    def test_extension_round_trip(self, big_leaf, small_leaf):
        """Extensions round-trip with hash and inline children."""
        hashed = ExtensionNode(path=(1, 2, 3), child=child_ref(big_leaf))
        inline = ExtensionNode(path=(5,), child=child_ref(small_leaf))
        assert isinstance(hashed.child, HashRef)
        assert isinstance(inline.child, InlineRef)
        assert decode_node(encode_node(hashed)) == hashed
        assert decode_node(encode_node(inline)) == inline

    def test_branch_round_trip(self, big_leaf, small_leaf):
        """Branches round-trip with mixed children and a value."""
        children = [None] * 16
        children[0] = child_ref(big_leaf)
        children[7] = child_ref(small_leaf)
        for value in (None, b"branch-value"):
            node = BranchNode(children=tuple(children), value=value)
            assert decode_node(encode_node(node)) == node

    def test_branch_empty_value(self):
        """An empty branch value is the same node as no value."""
        node = BranchNode(children=(None,) * 16, value=b"")
        assert node.value is None
        assert node == BranchNode(children=(None,) * 16)
        assert decode_node(encode_node(node)) == node

    def test_branch_needs_sixteen_slots(self):
        with pytest.raises(ValueError):
            BranchNode(children=(None,) * 15)

    @pytest.mark.parametrize("item", [
        [b"\x20"] * 3,                       # neither 2 nor 17 items
        [b"\x41", b"value"],                 # bad path flag
        [b"\x00\x12", b"\x01" * 31],         # extension with 31-byte reference
        [b"\x00\x12", b""],                  # extension without child
        [b"\x20", [b"nested"]],              # leaf value is a list
        [b"\x12"] + [b""] * 16,              # branch slot of 1 byte
    ])
    def test_malformed_nodes(self, item):
        """Structurally invalid nodes raise MalformedNode."""
        with pytest.raises(MalformedNode):
            decode_node(rlp.encode(item))

    def test_string_node_rejected(self):
        """A non-empty string is not a node."""
        with pytest.raises(MalformedNode):
            decode_node(rlp.encode(b"hello"))

    def test_oversized_inline_child_rejected(self, big_leaf):
        """Children of 32 bytes or more must be referenced by hash."""
        raw = [b"\x00\x12", [encode_path(big_leaf.path, True), big_leaf.value]]
        with pytest.raises(MalformedNode):
            decode_node(rlp.encode(raw))

    def test_child_ref_uses_hash_of_encoding(self, big_leaf):
        assert child_ref(big_leaf) == HashRef(keccak256(encode_node(big_leaf)))
