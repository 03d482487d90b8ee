"""
ICS23 commitment proofs.

Existence proofs hash a leaf and fold it through a list of inner operations
up to a root. Non-existence proofs carry the existence proofs of the two
neighbouring keys and show that they are adjacent in the tree, so nothing
can sit between them.

Proof specs pin down the hashing and layout rules a proof must follow:
IAVL_SPEC for module stores, TENDERMINT_SPEC for the multistore that
commits store roots into the app hash.

Proofs are carried as msgpack maps (see encode_commitment_proof).
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence, Tuple

import msgpack

from zkmerkle.core.errors import HashMismatch, MalformedNode, PathMismatch, ValueMismatch
from zkmerkle.core.hashing import keccak256, sha256, sha512

logger = logging.getLogger(__name__)


class HashOp(IntEnum):
    NO_HASH = 0
    SHA256 = 1
    SHA512 = 2
    KECCAK256 = 3


class LengthOp(IntEnum):
    NO_PREFIX = 0
    VAR_PROTO = 1
    FIXED32_BIG = 3
    FIXED32_LITTLE = 4
    FIXED64_BIG = 5
    FIXED64_LITTLE = 6
    REQUIRE_32_BYTES = 7
    REQUIRE_64_BYTES = 8


_HASHERS = {
    HashOp.SHA256: sha256,
    HashOp.SHA512: sha512,
    HashOp.KECCAK256: keccak256,
}


@dataclass(frozen=True)
class LeafOp:
    hash: HashOp = HashOp.SHA256
    prehash_key: HashOp = HashOp.NO_HASH
    prehash_value: HashOp = HashOp.SHA256
    length: LengthOp = LengthOp.VAR_PROTO
    prefix: bytes = b""


@dataclass(frozen=True)
class InnerOp:
    hash: HashOp = HashOp.SHA256
    prefix: bytes = b""
    suffix: bytes = b""


@dataclass(frozen=True)
class InnerSpec:
    child_order: Tuple[int, ...] = (0, 1)
    child_size: int = 32
    min_prefix_length: int = 1
    max_prefix_length: int = 1
    empty_child: bytes = b""
    hash: HashOp = HashOp.SHA256


@dataclass(frozen=True)
class ProofSpec:
    leaf_spec: LeafOp
    inner_spec: InnerSpec
    max_depth: int = 0
    min_depth: int = 0
    iavl: bool = False


@dataclass(frozen=True)
class ExistenceProof:
    key: bytes
    value: bytes
    leaf: LeafOp
    path: Tuple[InnerOp, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NonExistenceProof:
    key: bytes
    left: Optional[ExistenceProof] = None
    right: Optional[ExistenceProof] = None


@dataclass(frozen=True)
class CommitmentProof:
    """Either an existence or a non-existence proof."""
    exist: Optional[ExistenceProof] = None
    nonexist: Optional[NonExistenceProof] = None


IAVL_SPEC = ProofSpec(
    leaf_spec=LeafOp(
        hash=HashOp.SHA256,
        prehash_key=HashOp.NO_HASH,
        prehash_value=HashOp.SHA256,
        length=LengthOp.VAR_PROTO,
        prefix=b"\x00",
    ),
    inner_spec=InnerSpec(
        child_order=(0, 1),
        child_size=33,
        min_prefix_length=4,
        max_prefix_length=12,
        empty_child=b"",
        hash=HashOp.SHA256,
    ),
    iavl=True,
)

TENDERMINT_SPEC = ProofSpec(
    leaf_spec=LeafOp(
        hash=HashOp.SHA256,
        prehash_key=HashOp.NO_HASH,
        prehash_value=HashOp.SHA256,
        length=LengthOp.VAR_PROTO,
        prefix=b"\x00",
    ),
    inner_spec=InnerSpec(
        child_order=(0, 1),
        child_size=32,
        min_prefix_length=1,
        max_prefix_length=1,
        empty_child=b"",
        hash=HashOp.SHA256,
    ),
)


# ===== Varints =====

def encode_uvarint(n: int) -> bytes:
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_varint(n: int) -> bytes:
    """Zigzag-encoded signed varint (IAVL node headers)."""
    return encode_uvarint((n << 1) ^ (n >> 63) if n < 0 else n << 1)


def read_uvarint(data: bytes, pos: int) -> Tuple[int, int]:
    """Read an unsigned varint at `pos`; returns (value, new_pos)."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise MalformedNode("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise MalformedNode("varint overflow")


def read_varint(data: bytes, pos: int) -> Tuple[int, int]:
    raw, pos = read_uvarint(data, pos)
    return (raw >> 1) ^ -(raw & 1), pos


# ===== Hashing =====

def do_hash(op: HashOp, data: bytes) -> bytes:
    if op == HashOp.NO_HASH:
        return data
    hasher = _HASHERS.get(op)
    if hasher is None:
        raise MalformedNode(f"unsupported hash op {op}")
    return hasher(data)


def do_length(op: LengthOp, data: bytes) -> bytes:
    if op == LengthOp.NO_PREFIX:
        return data
    if op == LengthOp.VAR_PROTO:
        return encode_uvarint(len(data)) + data
    if op == LengthOp.REQUIRE_32_BYTES:
        if len(data) != 32:
            raise MalformedNode(f"data is {len(data)} bytes, expected 32")
        return data
    if op == LengthOp.REQUIRE_64_BYTES:
        if len(data) != 64:
            raise MalformedNode(f"data is {len(data)} bytes, expected 64")
        return data
    if op == LengthOp.FIXED32_BIG:
        return len(data).to_bytes(4, "big") + data
    if op == LengthOp.FIXED32_LITTLE:
        return len(data).to_bytes(4, "little") + data
    if op == LengthOp.FIXED64_BIG:
        return len(data).to_bytes(8, "big") + data
    if op == LengthOp.FIXED64_LITTLE:
        return len(data).to_bytes(8, "little") + data
    raise MalformedNode(f"unsupported length op {op}")


def _prepare_leaf_data(hash_op: HashOp, length_op: LengthOp, data: bytes) -> bytes:
    return do_length(length_op, do_hash(hash_op, data))


def apply_leaf(op: LeafOp, key: bytes, value: bytes) -> bytes:
    """hash(prefix || length(prehash(key)) || length(prehash(value)))"""
    if not key:
        raise MalformedNode("leaf op needs a key")
    if not value:
        raise MalformedNode("leaf op needs a value")
    data = (
        op.prefix
        + _prepare_leaf_data(op.prehash_key, op.length, key)
        + _prepare_leaf_data(op.prehash_value, op.length, value)
    )
    return do_hash(op.hash, data)


def apply_inner(op: InnerOp, child: bytes) -> bytes:
    """hash(prefix || child || suffix)"""
    if not child:
        raise MalformedNode("inner op needs a child hash")
    return do_hash(op.hash, op.prefix + child + op.suffix)


def calculate_existence_root(proof: ExistenceProof) -> bytes:
    """Fold the leaf through every inner op."""
    result = apply_leaf(proof.leaf, proof.key, proof.value)
    for step in proof.path:
        result = apply_inner(step, result)
    return result


def calculate_root(proof: CommitmentProof) -> bytes:
    """Root committed to by an existence proof, or by a non-existence proof's neighbours."""
    if proof.exist is not None:
        return calculate_existence_root(proof.exist)
    if proof.nonexist is not None:
        neighbour = proof.nonexist.left or proof.nonexist.right
        if neighbour is None:
            raise MalformedNode("non-existence proof without neighbours")
        return calculate_existence_root(neighbour)
    raise MalformedNode("empty commitment proof")


# ===== Spec checks =====

def _validate_iavl_ops(prefix: bytes, hash_op: HashOp, layer: int):
    height, pos = read_varint(prefix, 0)
    if height < 0 or height < layer:
        raise MalformedNode(f"IAVL height {height} below layer {layer}")
    size, pos = read_varint(prefix, pos)
    if size < 0:
        raise MalformedNode("negative IAVL size")
    version, pos = read_varint(prefix, pos)
    if version < 0:
        raise MalformedNode("negative IAVL version")

    remaining = len(prefix) - pos
    if layer == 0:
        if remaining != 0:
            raise MalformedNode("IAVL leaf prefix has trailing bytes")
        if height != 0:
            raise MalformedNode("IAVL leaf height must be 0")
        if size != 1:
            raise MalformedNode("IAVL leaf size must be 1")
    else:
        if remaining not in (1, 34):
            raise MalformedNode(f"IAVL inner prefix has {remaining} trailing bytes")
        if hash_op != HashOp.SHA256:
            raise MalformedNode("IAVL inner op must hash with sha256")


def _check_leaf(leaf: LeafOp, spec: ProofSpec):
    if spec.iavl:
        _validate_iavl_ops(leaf.prefix, leaf.hash, 0)
    expected = spec.leaf_spec
    if leaf.hash != expected.hash:
        raise MalformedNode(f"leaf hash op {leaf.hash!r} != {expected.hash!r}")
    if leaf.prehash_key != expected.prehash_key:
        raise MalformedNode("leaf prehash_key does not match spec")
    if leaf.prehash_value != expected.prehash_value:
        raise MalformedNode("leaf prehash_value does not match spec")
    if leaf.length != expected.length:
        raise MalformedNode("leaf length op does not match spec")
    if not leaf.prefix.startswith(expected.prefix):
        raise MalformedNode("leaf prefix does not match spec")


def _check_inner(op: InnerOp, spec: ProofSpec, layer: int):
    inner = spec.inner_spec
    if op.hash != inner.hash:
        raise MalformedNode(f"inner hash op {op.hash!r} != {inner.hash!r}")
    if spec.iavl:
        _validate_iavl_ops(op.prefix, op.hash, layer)
    if op.prefix.startswith(spec.leaf_spec.prefix):
        raise MalformedNode("inner prefix starts with the leaf prefix")
    if len(op.prefix) < inner.min_prefix_length:
        raise MalformedNode("inner prefix too short")
    max_left_child_bytes = (len(inner.child_order) - 1) * inner.child_size
    if len(op.prefix) > inner.max_prefix_length + max_left_child_bytes:
        raise MalformedNode("inner prefix too long")
    if len(op.suffix) % inner.child_size:
        raise MalformedNode("inner suffix is not a whole number of children")


def check_against_spec(proof: ExistenceProof, spec: ProofSpec):
    """Reject proofs whose ops do not follow the tree's layout rules."""
    _check_leaf(proof.leaf, spec)
    if spec.min_depth and len(proof.path) < spec.min_depth:
        raise MalformedNode(f"proof depth {len(proof.path)} below minimum {spec.min_depth}")
    if spec.max_depth and len(proof.path) > spec.max_depth:
        raise MalformedNode(f"proof depth {len(proof.path)} above maximum {spec.max_depth}")
    for layer, step in enumerate(proof.path, start=1):
        _check_inner(step, spec, layer)


# ===== Verification =====

def verify_existence(
    proof: ExistenceProof,
    spec: ProofSpec,
    root: bytes,
    key: bytes,
    value: Optional[bytes] = None,
) -> bytes:
    """
    Verify that `key` (with `value`, when given) is committed under `root`.

    The root is folded and compared first, so any change to the hashed
    bytes of the proof surfaces as HashMismatch. Layout, key and value
    checks only run on proofs that are genuinely committed under `root`.

    Returns:
        The proven value

    Raises:
        HashMismatch: proof folds to a different root
        MalformedNode: proof violates the spec
        PathMismatch: proof is for another key
        ValueMismatch: proof is for another value
    """
    computed = calculate_existence_root(proof)
    if computed != root:
        raise HashMismatch(
            f"calculated root {computed.hex()[:16]}... != {root.hex()[:16]}...",
            expected=root,
            got=computed,
        )
    check_against_spec(proof, spec)
    if proof.key != key:
        raise PathMismatch(f"proof key {proof.key.hex()} != {key.hex()}")
    if value is not None and proof.value != value:
        raise ValueMismatch("proof value does not match claimed value")
    return proof.value


def verify_non_existence(proof: NonExistenceProof, spec: ProofSpec, root: bytes, key: bytes):
    """
    Verify that `key` is absent from the tree under `root`.

    Both neighbours must verify against the same root, bracket the key,
    and be adjacent leaves.
    """
    left_key = right_key = None
    if proof.left is not None:
        verify_existence(proof.left, spec, root, proof.left.key, proof.left.value)
        left_key = proof.left.key
    if proof.right is not None:
        verify_existence(proof.right, spec, root, proof.right.key, proof.right.value)
        right_key = proof.right.key

    if left_key is None and right_key is None:
        raise MalformedNode("non-existence proof without neighbours")
    if proof.key != key:
        raise PathMismatch(f"non-existence proof is for key {proof.key.hex()}, not {key.hex()}")
    if right_key is not None and key >= right_key:
        raise PathMismatch("key is not left of the right neighbour")
    if left_key is not None and key <= left_key:
        raise PathMismatch("key is not right of the left neighbour")

    inner = spec.inner_spec
    if left_key is None:
        if not is_left_most(inner, proof.right.path):
            raise PathMismatch("left neighbour missing and right proof is not left-most")
    elif right_key is None:
        if not is_right_most(inner, proof.left.path):
            raise PathMismatch("right neighbour missing and left proof is not right-most")
    elif not is_left_neighbor(inner, proof.left.path, proof.right.path):
        raise PathMismatch("neighbours are not adjacent")


# ===== Neighbour checks =====

def _position(order: Sequence[int], branch: int) -> int:
    if branch < 0 or branch >= len(order):
        raise MalformedNode(f"invalid branch {branch}")
    return list(order).index(branch)


def _padding(spec: InnerSpec, branch: int) -> Tuple[int, int, int]:
    idx = _position(spec.child_order, branch)
    prefix = idx * spec.child_size
    suffix = (len(spec.child_order) - 1 - idx) * spec.child_size
    return prefix + spec.min_prefix_length, prefix + spec.max_prefix_length, suffix


def _has_padding(op: InnerOp, min_prefix: int, max_prefix: int, suffix: int) -> bool:
    if len(op.prefix) < min_prefix or len(op.prefix) > max_prefix:
        return False
    return len(op.suffix) == suffix


def order_from_padding(spec: InnerSpec, op: InnerOp) -> Optional[int]:
    """Which child slot the folded hash occupies in `op`, or None."""
    for branch in range(len(spec.child_order)):
        if _has_padding(op, *_padding(spec, branch)):
            return branch
    return None


def left_branches_are_empty(spec: InnerSpec, op: InnerOp) -> bool:
    idx = order_from_padding(spec, op)
    if not idx:
        return False
    actual_prefix = len(op.prefix) - idx * spec.child_size
    if actual_prefix < 0:
        return False
    for i in range(idx):
        start = actual_prefix + _position(spec.child_order, i) * spec.child_size
        if op.prefix[start:start + spec.child_size] != spec.empty_child:
            return False
    return True


def right_branches_are_empty(spec: InnerSpec, op: InnerOp) -> bool:
    idx = order_from_padding(spec, op)
    if idx is None:
        return False
    right_branches = len(spec.child_order) - 1 - idx
    if right_branches == 0:
        return False
    if len(op.suffix) != right_branches * spec.child_size:
        return False
    for i in range(right_branches):
        start = _position(spec.child_order, i) * spec.child_size
        if op.suffix[start:start + spec.child_size] != spec.empty_child:
            return False
    return True


def is_left_most(spec: InnerSpec, path: Sequence[InnerOp]) -> bool:
    padding = _padding(spec, 0)
    return all(_has_padding(step, *padding) or left_branches_are_empty(spec, step) for step in path)


def is_right_most(spec: InnerSpec, path: Sequence[InnerOp]) -> bool:
    padding = _padding(spec, len(spec.child_order) - 1)
    return all(_has_padding(step, *padding) or right_branches_are_empty(spec, step) for step in path)


def is_left_step(spec: InnerSpec, left: InnerOp, right: InnerOp) -> bool:
    left_idx = order_from_padding(spec, left)
    right_idx = order_from_padding(spec, right)
    if left_idx is None or right_idx is None:
        return False
    return right_idx == left_idx + 1


def is_left_neighbor(spec: InnerSpec, left: Sequence[InnerOp], right: Sequence[InnerOp]) -> bool:
    """
    True if the leaves proven by `left` and `right` are adjacent.

    Paths run leaf to root. Strip the shared top of both paths; the first
    node where they diverge must hold them in consecutive slots, everything
    below must be right-most on the left and left-most on the right.
    """
    li, ri = len(left) - 1, len(right) - 1
    while li >= 0 and ri >= 0 and left[li].prefix == right[ri].prefix and left[li].suffix == right[ri].suffix:
        li -= 1
        ri -= 1
    if li < 0 or ri < 0:
        return False
    if not is_left_step(spec, left[li], right[ri]):
        return False
    return is_right_most(spec, left[:li]) and is_left_most(spec, right[:ri])


# ===== Codec =====

def _leaf_to_dict(op: LeafOp) -> Dict[str, Any]:
    return {
        "hash": int(op.hash),
        "prehash_key": int(op.prehash_key),
        "prehash_value": int(op.prehash_value),
        "length": int(op.length),
        "prefix": op.prefix,
    }


def _exist_to_dict(proof: ExistenceProof) -> Dict[str, Any]:
    return {
        "key": proof.key,
        "value": proof.value,
        "leaf": _leaf_to_dict(proof.leaf),
        "path": [{"hash": int(s.hash), "prefix": s.prefix, "suffix": s.suffix} for s in proof.path],
    }


def _map(d: Any, what: str) -> Dict[str, Any]:
    if not isinstance(d, dict):
        raise MalformedNode(f"{what} is not a map")
    return d


def _bytes_field(d: Dict[str, Any], name: str) -> bytes:
    value = d[name]
    if not isinstance(value, (bytes, bytearray)):
        raise MalformedNode(f"field {name!r} must be bytes, got {type(value).__name__}")
    return bytes(value)


def _leaf_from_dict(d: Any) -> LeafOp:
    d = _map(d, "leaf op")
    return LeafOp(
        hash=HashOp(d["hash"]),
        prehash_key=HashOp(d["prehash_key"]),
        prehash_value=HashOp(d["prehash_value"]),
        length=LengthOp(d["length"]),
        prefix=_bytes_field(d, "prefix"),
    )


def _inner_from_dict(d: Any) -> InnerOp:
    d = _map(d, "inner op")
    return InnerOp(hash=HashOp(d["hash"]), prefix=_bytes_field(d, "prefix"), suffix=_bytes_field(d, "suffix"))


def _exist_from_dict(d: Any) -> Optional[ExistenceProof]:
    if d is None:
        return None
    d = _map(d, "existence proof")
    if not isinstance(d["path"], list):
        raise MalformedNode("existence proof path is not a list")
    return ExistenceProof(
        key=_bytes_field(d, "key"),
        value=_bytes_field(d, "value"),
        leaf=_leaf_from_dict(d["leaf"]),
        path=tuple(_inner_from_dict(s) for s in d["path"]),
    )


def encode_commitment_proof(proof: CommitmentProof) -> bytes:
    if proof.exist is not None:
        payload = {"exist": _exist_to_dict(proof.exist)}
    elif proof.nonexist is not None:
        n = proof.nonexist
        payload = {
            "nonexist": {
                "key": n.key,
                "left": _exist_to_dict(n.left) if n.left else None,
                "right": _exist_to_dict(n.right) if n.right else None,
            }
        }
    else:
        raise ValueError("empty commitment proof")
    return msgpack.packb(payload, use_bin_type=True)


def decode_commitment_proof(data: bytes) -> CommitmentProof:
    """
    Decode a commitment proof from untrusted bytes.

    Raises:
        MalformedNode: not a valid encoded proof
    """
    try:
        d = _map(msgpack.unpackb(data, raw=False), "commitment proof")
        if "exist" in d:
            return CommitmentProof(exist=_exist_from_dict(d["exist"]))
        if "nonexist" in d:
            n = _map(d["nonexist"], "non-existence proof")
            return CommitmentProof(
                nonexist=NonExistenceProof(
                    key=_bytes_field(n, "key"),
                    left=_exist_from_dict(n.get("left")),
                    right=_exist_from_dict(n.get("right")),
                )
            )
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise MalformedNode(f"invalid commitment proof: {e}") from e
    raise MalformedNode("commitment proof is neither exist nor nonexist")
