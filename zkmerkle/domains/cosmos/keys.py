"""
Store keys for Cosmos state queries.

A CosmosKey names the module store ("bank", "wasm") and the hex-encoded raw
key inside that store. Its string form "<len:03><prefix><hexkey>" is what
travels in MerkleProof.key.
"""

from dataclasses import dataclass
from typing import Union

from zkmerkle.core.errors import DecodeValueError, MalformedNode

BANK_STORE = "bank"
WASM_STORE = "wasm"

SUPPLY_PREFIX = b"\x00"
BALANCES_PREFIX = b"\x02"
CONTRACT_STORE_PREFIX = b"\x03"


def address_bytes(address: Union[str, bytes]) -> bytes:
    """
    Raw account or contract address bytes.

    Accepts the decoded address bytes or their hex form. Bech32 strings must
    be decoded by the caller.
    """
    if isinstance(address, (bytes, bytearray)):
        raw = bytes(address)
    else:
        try:
            raw = bytes.fromhex(address[2:] if address.startswith("0x") else address)
        except ValueError as e:
            raise ValueError(f"address is not hex: {address!r}") from e
    if not raw or len(raw) > 255:
        raise ValueError(f"invalid address length {len(raw)}")
    return raw


@dataclass(frozen=True)
class CosmosKey:
    """Module store prefix plus the hex-encoded key inside the store."""

    prefix: str
    key: str

    def __str__(self) -> str:
        return f"{len(self.prefix):03}{self.prefix}{self.key}"

    @staticmethod
    def from_string(encoded: str) -> "CosmosKey":
        if len(encoded) < 3 or not encoded[:3].isdigit():
            raise MalformedNode(f"invalid cosmos key: {encoded!r}")
        prefix_len = int(encoded[:3])
        if len(encoded) < 3 + prefix_len:
            raise MalformedNode(f"cosmos key shorter than its prefix: {encoded!r}")
        return CosmosKey(prefix=encoded[3:3 + prefix_len], key=encoded[3 + prefix_len:])

    def to_bytes(self) -> bytes:
        """Form stored in MerkleProof.key."""
        return str(self).encode("utf-8")

    @staticmethod
    def from_bytes(data: bytes) -> "CosmosKey":
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedNode("cosmos key is not utf-8") from e
        return CosmosKey.from_string(text)

    @property
    def store_key(self) -> bytes:
        """Raw key inside the module store."""
        try:
            return bytes.fromhex(self.key)
        except ValueError as e:
            raise MalformedNode(f"cosmos store key is not hex: {self.key!r}") from e

    @property
    def store_prefix(self) -> bytes:
        """Key of the module store inside the multistore."""
        return self.prefix.encode("utf-8")

    # ===== Constructors =====

    @classmethod
    def from_store_key(cls, prefix: str, raw: bytes) -> "CosmosKey":
        return cls(prefix=prefix, key=raw.hex())

    @classmethod
    def bank_total_supply(cls, denom: str) -> "CosmosKey":
        return cls.from_store_key(BANK_STORE, SUPPLY_PREFIX + denom.encode("utf-8"))

    @classmethod
    def bank_account_balance(cls, denom: str, address: Union[str, bytes]) -> "CosmosKey":
        raw = address_bytes(address)
        return cls.from_store_key(
            BANK_STORE,
            BALANCES_PREFIX + bytes([len(raw)]) + raw + denom.encode("utf-8"),
        )

    @classmethod
    def wasm_account_mapping(cls, store: bytes, key: str, contract_address: Union[str, bytes]) -> "CosmosKey":
        """Entry `key` of a cw-storage `Map` named `store` inside a contract."""
        raw = (
            CONTRACT_STORE_PREFIX
            + address_bytes(contract_address)
            + len(store).to_bytes(2, "big")
            + store
            + key.encode("utf-8")
        )
        return cls.from_store_key(WASM_STORE, raw)

    @classmethod
    def wasm_stored_value(cls, key: str, contract_address: Union[str, bytes]) -> "CosmosKey":
        """A cw-storage `Item` named `key` inside a contract."""
        raw = CONTRACT_STORE_PREFIX + address_bytes(contract_address) + key.encode("utf-8")
        return cls.from_store_key(WASM_STORE, raw)


def decode_amount(value: Union[bytes, str]) -> int:
    """
    Decode an integer amount stored as a decimal string (optionally JSON quoted).

    Raises:
        DecodeValueError: not a non-negative decimal integer
    """
    text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
    text = text.strip().strip('"')
    if not (text.isascii() and text.isdigit()):
        raise DecodeValueError(f"stored value {text[:32]!r} is not an amount")
    return int(text)
