"""
Tests for the Ethereum account, storage and receipt verifiers.
"""

import pytest

from zkmerkle.core.errors import (
    DecodeValueError,
    HashMismatch,
    PathMismatch,
    StorageRootMismatch,
    UnsupportedDomain,
)
from zkmerkle.core.hashing import EMPTY_CODE_HASH, EMPTY_ROOT_HASH, keccak256
from zkmerkle.core.proof import Domain, MerkleProof
from zkmerkle.core.rlp_codec import encode_uint, rlp_encode
from zkmerkle.domains.ethereum import (
    EthereumAccount,
    EthereumAccountVerifier,
    EthereumReceiptVerifier,
    EthereumStorageVerifier,
    ProofTrie,
    Receipt,
    decode_account,
    verify_account_and_storage,
)
from zkmerkle.domains.ethereum.keys import (
    account_key,
    mapping_slot,
    normalize_address,
    receipt_key,
    storage_key,
    storage_slot,
)
from zkmerkle.domains.ethereum.receipts import Log, decode_receipt, receipt_logs

from builders import (
    BALANCES_SLOT,
    SHARES_SLOT,
    USER,
    VAULT,
    EthereumState,
    absent_slot,
    first_absent,
    make_address,
)


# ===== FIXTURES =====

@pytest.fixture
def small_state():
    """Few accounts, so the state root branch has empty slots."""
    state = EthereumState()
    for i in range(1, 4):
        state.set_account(make_address(i), nonce=i, balance=i * 100)
    return state


@pytest.fixture
def receipts():
    """Mixed legacy, typed and pre-Byzantium receipts."""
    transfer = Log(
        address=VAULT,
        topics=(keccak256(b"Transfer(address,address,uint256)"), USER.rjust(32, b"\x00")),
        data=(10).to_bytes(32, "big"),
    )
    items = []
    for i in range(24):
        if i % 3 == 0:
            items.append(Receipt(tx_type=0, status=1, cumulative_gas_used=21000 * (i + 1)))
        elif i % 3 == 1:
            items.append(Receipt(tx_type=2, status=i % 2, cumulative_gas_used=21000 * (i + 1), logs=(transfer,)))
        else:
            items.append(Receipt(tx_type=0, status=None, cumulative_gas_used=21000 * (i + 1),
                                 post_state=keccak256(bytes([i]))))
    return items


@pytest.fixture
def receipts_trie(receipts):
    return ProofTrie.from_items((receipt_key(i), r.to_bytes()) for i, r in enumerate(receipts))


def absent_address(trie: ProofTrie) -> bytes:
    """An address the state trie can prove absent."""
    return first_absent(trie, (make_address(seed) for seed in range(1000, 20000)))


# ===== KEY TESTS =====

@pytest.mark.unit
class TestKeys:
    """Test trie key derivation."""

    def test_account_key_accepts_hex(self):
        """Hex and raw addresses derive the same key."""
        assert account_key("0x" + VAULT.hex()) == account_key(VAULT) == keccak256(VAULT)

    def test_address_length_enforced(self):
        with pytest.raises(ValueError):
            normalize_address(b"\x01" * 19)

    def test_storage_slot_padding(self):
        """Slots are 32-byte words."""
        assert storage_slot(1) == b"\x00" * 31 + b"\x01"
        assert storage_slot("0x01") == storage_slot(1)
        assert storage_key(1) == keccak256(storage_slot(1))

    def test_mapping_slot(self):
        """Mapping entries hash the padded key with the padded slot."""
        expected = keccak256(USER.rjust(32, b"\x00") + BALANCES_SLOT.to_bytes(32, "big"))
        assert mapping_slot(USER, BALANCES_SLOT) == expected
        assert mapping_slot(USER, BALANCES_SLOT) != mapping_slot(USER, SHARES_SLOT)

    def test_receipt_key(self):
        """Receipt keys are rlp(index)."""
        assert receipt_key(0) == b"\x80"
        assert receipt_key(1) == b"\x01"
        assert receipt_key(128) == b"\x81\x80"


# ===== ACCOUNT TESTS =====

@pytest.mark.unit
class TestAccountVerifier:
    """Test state trie account proofs."""

    def test_account_proof(self, ethereum_state):
        """The vault account verifies and decodes."""
        result = EthereumAccountVerifier().verify(ethereum_state.account_proof(VAULT))
        assert result.exists
        account = result.decoded
        assert account.nonce == 1
        assert account.balance == 5 * 10**18
        assert account.storage_root == ethereum_state.storage_root(VAULT)
        assert not account.is_contract

    def test_output_layout(self, ethereum_state):
        """Account output is nonce | balance | storage root | code hash."""
        result = EthereumAccountVerifier().verify(ethereum_state.account_proof(VAULT))
        out = result.output_value()
        assert len(out) == 8 + 32 + 32 + 32
        assert int.from_bytes(out[:8], "big") == 1
        assert out[40:72] == ethereum_state.storage_root(VAULT)
        assert out[72:] == EMPTY_CODE_HASH

    def test_account_absent(self, small_state):
        """An unknown address is proven absent."""
        trie = small_state.state_trie()
        address = absent_address(trie)
        proof = MerkleProof(
            nodes=trie.get_proof(address),
            key=account_key(address),
            domain=Domain.ETHEREUM_ACCOUNT,
            root=trie.root_hash(),
        )
        result = EthereumAccountVerifier().verify(proof)
        assert not result.exists
        assert result.decoded is None
        assert result.to_output().value == b""

    def test_wrong_key(self, ethereum_state):
        """An account proof does not open another address."""
        proof = ethereum_state.account_proof(VAULT)
        forged = MerkleProof(
            nodes=proof.nodes, key=account_key(make_address(0x1001)),
            domain=proof.domain, root=proof.root, value=proof.value,
        )
        with pytest.raises(PathMismatch) as exc:
            EthereumAccountVerifier().verify(forged)
        assert exc.value.domain == "ethereum_account"

    def test_derive_key(self):
        assert EthereumAccountVerifier().derive_key(VAULT) == keccak256(VAULT)

    def test_rejects_other_domain(self, ethereum_state):
        """Verifiers only accept their own domain."""
        with pytest.raises(UnsupportedDomain):
            EthereumStorageVerifier().verify(ethereum_state.account_proof(VAULT))

    def test_decode_account_round_trip(self):
        account = EthereumAccount(nonce=3, balance=10**20, storage_root=keccak256(b"s"), code_hash=keccak256(b"c"))
        assert decode_account(account.to_rlp()) == account
        assert account.is_contract

    @pytest.mark.parametrize("value", [
        b"\xc3\x01\x02",                                         # truncated
        rlp_encode([b"\x01", b"\x02", EMPTY_ROOT_HASH]),          # three fields
        rlp_encode([b"\x01", b"\x02", b"\x00" * 31, EMPTY_CODE_HASH]),
        rlp_encode([b"\x00\x01", b"\x02", EMPTY_ROOT_HASH, EMPTY_CODE_HASH]),
        rlp_encode([b"\x01" * 9, b"\x02", EMPTY_ROOT_HASH, EMPTY_CODE_HASH]),
    ])
    def test_decode_account_rejects(self, value):
        """Malformed account records raise DecodeValueError."""
        with pytest.raises(DecodeValueError):
            decode_account(value)


# ===== STORAGE TESTS =====

@pytest.mark.unit
class TestStorageVerifier:
    """Test storage trie proofs and their link to the account."""

    def test_mapping_entry(self, ethereum_state):
        """A mapping slot proves its integer value."""
        proof = ethereum_state.storage_proof(VAULT, mapping_slot(USER, BALANCES_SLOT))
        result = EthereumStorageVerifier().verify(proof)
        assert result.decoded == 10
        assert result.output_value() == (10).to_bytes(32, "big")

    def test_plain_slot(self, ethereum_state):
        result = EthereumStorageVerifier().verify(ethereum_state.storage_proof(VAULT, SHARES_SLOT))
        assert result.decoded == 10

    def test_unset_slot_is_zero(self):
        """An absent slot verifies as absent and outputs nothing."""
        state = EthereumState()
        for slot in range(4):
            state.set_storage(VAULT, slot, slot + 1)
        trie = state.storage[VAULT]
        slot = absent_slot(trie, start=100)
        result = EthereumStorageVerifier().verify(state.storage_proof(VAULT, slot))
        assert not result.exists

    def test_composite(self, ethereum_state):
        """Storage proof linked through the account's storage root."""
        account, storage = verify_account_and_storage(
            ethereum_state.account_proof(VAULT),
            ethereum_state.storage_proof(VAULT, SHARES_SLOT),
        )
        assert account.decoded.storage_root == storage.root
        assert storage.decoded == 10

    def test_composite_rejects_unlinked_storage(self, ethereum_state):
        """A valid storage proof from another trie is not accepted for this account."""
        other = EthereumState()
        other.set_storage(VAULT, SHARES_SLOT, 10)
        with pytest.raises(StorageRootMismatch) as exc:
            verify_account_and_storage(
                ethereum_state.account_proof(VAULT),
                other.storage_proof(VAULT, SHARES_SLOT),
            )
        assert isinstance(exc.value, HashMismatch)
        assert exc.value.expected == ethereum_state.storage_root(VAULT)

    def test_composite_absent_account(self, small_state):
        """An absent account has empty storage."""
        trie = small_state.state_trie()
        address = absent_address(trie)
        account_proof = MerkleProof(
            nodes=trie.get_proof(address), key=account_key(address),
            domain=Domain.ETHEREUM_ACCOUNT, root=trie.root_hash(),
        )
        storage_proof = MerkleProof(
            nodes=[], key=storage_key(0), domain=Domain.ETHEREUM_STORAGE, root=EMPTY_ROOT_HASH,
        )
        account, storage = verify_account_and_storage(account_proof, storage_proof)
        assert not account.exists
        assert not storage.exists

    def test_non_integer_value(self):
        """A storage leaf that is not an RLP integer fails to decode."""
        trie = ProofTrie(secure=True)
        trie.insert(storage_slot(0), rlp_encode([b"\x01"]))
        proof = MerkleProof(
            nodes=trie.get_proof(storage_slot(0)), key=storage_key(0),
            domain=Domain.ETHEREUM_STORAGE, root=trie.root_hash(),
        )
        with pytest.raises(DecodeValueError) as exc:
            EthereumStorageVerifier().verify(proof)
        assert exc.value.domain == "ethereum_storage"


# ===== RECEIPT TESTS =====

@pytest.mark.unit
class TestReceiptVerifier:
    """Test receipts trie proofs."""

    def test_all_receipts(self, receipts, receipts_trie):
        """Every receipt opens and decodes back to the original."""
        verifier = EthereumReceiptVerifier()
        for i, receipt in enumerate(receipts):
            key = verifier.derive_key(i)
            proof = MerkleProof(
                nodes=receipts_trie.get_proof(key), key=key,
                domain=Domain.ETHEREUM_RECEIPT, root=receipts_trie.root_hash(),
            )
            result = verifier.verify(proof)
            assert result.decoded == receipt
            assert result.output_value() == receipt.to_bytes()

    def test_typed_receipt_logs(self, receipts):
        """Typed receipts keep their type byte and logs."""
        decoded = decode_receipt(receipts[1].to_bytes())
        assert decoded.tx_type == 2
        assert len(receipt_logs(decoded, VAULT)) == 1
        assert receipt_logs(decoded, USER) == []

    def test_pre_byzantium_receipt(self, receipts):
        decoded = decode_receipt(receipts[2].to_bytes())
        assert decoded.status is None
        assert decoded.post_state == keccak256(bytes([2]))
        assert not decoded.succeeded

    def test_tampered_receipt(self, receipts, receipts_trie):
        """A forged receipt value breaks the hash chain."""
        key = receipt_key(4)
        nodes = list(receipts_trie.get_proof(key))
        forged_value = Receipt(tx_type=2, status=1, cumulative_gas_used=1).to_bytes()
        nodes[-1] = nodes[-1].replace(receipts[4].to_bytes(), forged_value)
        proof = MerkleProof(nodes=nodes, key=key, domain=Domain.ETHEREUM_RECEIPT, root=receipts_trie.root_hash())
        with pytest.raises(HashMismatch):
            EthereumReceiptVerifier().verify(proof)

    @pytest.mark.parametrize("value", [
        b"",
        b"\x02\xc0",
        rlp_encode([encode_uint(2)[:1], b"", bytes(256), []]),
        rlp_encode([b"\x01", b"", bytes(255), []]),
        rlp_encode([b"\x01", b"", bytes(256), [[b"\x01" * 20]]]),
    ])
    def test_decode_receipt_rejects(self, value):
        """Malformed receipts raise DecodeValueError."""
        with pytest.raises(DecodeValueError):
            decode_receipt(value)
