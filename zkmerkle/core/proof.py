"""
Unified, chain-agnostic proof model.

A MerkleProof is the single unit of work handed to a verifier: the encoded
nodes along the path, the claimed value, the trie key, the domain tag and
the trusted root. The root always comes from the caller (a light client),
never from the nodes.

Proofs and batches serialize with msgpack for transport into and out of
the proving environment.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import msgpack

from zkmerkle.core.errors import MalformedNode, UnsupportedDomain


class Domain(Enum):
    """Closed set of supported proof domains."""
    ETHEREUM_ACCOUNT = "ethereum_account"
    ETHEREUM_STORAGE = "ethereum_storage"
    ETHEREUM_RECEIPT = "ethereum_receipt"
    COSMOS_BANK = "cosmos_bank"
    COSMOS_WASM = "cosmos_wasm"

    @property
    def chain(self) -> str:
        """Chain family the domain belongs to."""
        return self.value.split("_", 1)[0]

    @classmethod
    def parse(cls, value) -> "Domain":
        """Resolve a Domain from a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedDomain(f"unknown domain: {value!r}") from None


def _pack(payload: Any) -> bytes:
    return msgpack.packb(payload, use_bin_type=True)


def _as_bytes(value: Any, what: str) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise MalformedNode(f"{what} must be bytes, got {type(value).__name__}")
    return bytes(value)


def _unpack(data: bytes, what: str) -> Any:
    try:
        return msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError) as e:
        raise MalformedNode(f"cannot decode {what}: {e}") from e


@dataclass(frozen=True)
class MerkleProof:
    """
    Merkle opening of a single key against a trusted root.

    Attributes:
        nodes: Encoded nodes from root to leaf, in traversal order
        key: Trie key (already derived, see MerkleVerifiable.derive_key)
        domain: Which verifier and decoding rules apply
        root: Trusted commitment the proof must chain to
        value: Claimed leaf value; None lets the verifier report the decoded value
    """

    nodes: Tuple[bytes, ...]
    key: bytes
    domain: Domain
    root: bytes
    value: Optional[bytes] = None

    def __post_init__(self):
        if not isinstance(self.nodes, (list, tuple)):
            raise MalformedNode(f"proof nodes must be a list, got {type(self.nodes).__name__}")
        object.__setattr__(self, "nodes", tuple(_as_bytes(n, "proof node") for n in self.nodes))
        object.__setattr__(self, "key", _as_bytes(self.key, "proof key"))
        object.__setattr__(self, "root", _as_bytes(self.root, "proof root"))
        object.__setattr__(self, "domain", Domain.parse(self.domain))
        if self.value is not None:
            object.__setattr__(self, "value", _as_bytes(self.value, "proof value"))

    def with_root(self, root: bytes) -> "MerkleProof":
        """Same proof checked against a different trusted root."""
        return MerkleProof(nodes=self.nodes, key=self.key, domain=self.domain, root=root, value=self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": list(self.nodes),
            "value": self.value,
            "key": self.key,
            "domain": self.domain.value,
            "root": self.root,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MerkleProof":
        if not isinstance(d, dict):
            raise MalformedNode("proof record is not a map")
        try:
            return MerkleProof(
                nodes=d["nodes"],
                value=d.get("value"),
                key=d["key"],
                domain=d["domain"],
                root=d["root"],
            )
        except (KeyError, TypeError) as e:
            raise MalformedNode(f"invalid proof record: {e}") from e

    def to_bytes(self) -> bytes:
        """Serialize proof for transmission."""
        return _pack(self.to_dict())

    @staticmethod
    def from_bytes(data: bytes) -> "MerkleProof":
        """Deserialize proof from bytes."""
        d = _unpack(data, "proof")
        return MerkleProof.from_dict(d)


@dataclass(frozen=True)
class ProofOutput:
    """Public output committed for one verified proof."""

    domain: Domain
    root: bytes
    key: bytes
    exists: bool
    value: bytes = b""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "root": self.root,
            "key": self.key,
            "exists": self.exists,
            "value": self.value,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ProofOutput":
        if not isinstance(d, dict):
            raise MalformedNode("output record is not a map")
        try:
            return ProofOutput(
                domain=Domain.parse(d["domain"]),
                root=_as_bytes(d["root"], "output root"),
                key=_as_bytes(d["key"], "output key"),
                exists=bool(d["exists"]),
                value=_as_bytes(d["value"], "output value"),
            )
        except (KeyError, TypeError) as e:
            raise MalformedNode(f"invalid output record: {e}") from e

    def to_bytes(self) -> bytes:
        return _pack(self.to_dict())

    @staticmethod
    def from_bytes(data: bytes) -> "ProofOutput":
        return ProofOutput.from_dict(_unpack(data, "proof output"))


@dataclass
class ProofInput:
    """Batch of proofs submitted to the proving environment in one run."""

    proofs: List[MerkleProof] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.proofs)

    def to_bytes(self) -> bytes:
        return _pack({"proofs": [p.to_dict() for p in self.proofs]})

    @staticmethod
    def from_bytes(data: bytes) -> "ProofInput":
        d = _unpack(data, "proof batch")
        if not isinstance(d, dict) or not isinstance(d.get("proofs"), list):
            raise MalformedNode("proof batch has no proof list")
        return ProofInput(proofs=[MerkleProof.from_dict(p) for p in d["proofs"]])


__all__ = ["Domain", "MerkleProof", "ProofOutput", "ProofInput"]
