"""
Proof verification errors.

Every failure raised while decoding or verifying a Merkle proof derives from
MerkleProofError. Errors carry the domain and the traversal step that failed
so the enclosing proving run can report exactly where a proof broke.
"""

from typing import Optional


class MerkleProofError(Exception):
    """Base class for all proof verification failures."""

    def __init__(self, message: str, domain: Optional[str] = None, step: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.domain = domain
        self.step = step

    def with_context(self, domain: Optional[str] = None, step: Optional[int] = None) -> "MerkleProofError":
        """Attach domain/step information if not already set."""
        if self.domain is None and domain is not None:
            self.domain = domain
        if self.step is None and step is not None:
            self.step = step
        return self

    def describe(self) -> str:
        """Human readable description identifying the failing domain and step."""
        where = self.domain or "unknown"
        if self.step is not None:
            where = f"{where} step {self.step}"
        return f"{where}: {type(self).__name__}: {self.message}"

    def __str__(self) -> str:
        return self.message


class MalformedNode(MerkleProofError):
    """Untrusted bytes could not be decoded into a node or proof structure."""


class HashMismatch(MerkleProofError):
    """A node's hash does not match the reference held by its parent or the root."""

    def __init__(
        self,
        message: str,
        expected: bytes = b"",
        got: bytes = b"",
        domain: Optional[str] = None,
        step: Optional[int] = None,
    ):
        super().__init__(message, domain=domain, step=step)
        self.expected = expected
        self.got = got


class StorageRootMismatch(HashMismatch):
    """Account record storage root disagrees with the storage proof root."""


class PathMismatch(MerkleProofError):
    """Nibble consumption does not line up with the requested key."""


class ValueMismatch(MerkleProofError):
    """The proven value differs from the value claimed in the proof."""


class UnsupportedDomain(MerkleProofError):
    """No verifier is configured for the proof's domain."""


class DecodeValueError(MerkleProofError):
    """A proven leaf value does not decode into the domain's record type."""


__all__ = [
    "MerkleProofError",
    "MalformedNode",
    "HashMismatch",
    "StorageRootMismatch",
    "PathMismatch",
    "ValueMismatch",
    "UnsupportedDomain",
    "DecodeValueError",
]
