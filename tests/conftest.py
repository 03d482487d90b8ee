"""
Shared fixtures for zkmerkle tests.
"""

import pytest

from zkmerkle.config import VerifierConfig
from zkmerkle.dispatch import DomainDispatcher
from zkmerkle.domains.cosmos.keys import CosmosKey
from zkmerkle.domains.ethereum.keys import mapping_slot

from builders import (
    BALANCES_SLOT,
    SHARES_SLOT,
    USER,
    USER_BECH32,
    VAULT,
    EthereumState,
    make_address,
    make_multistore,
)


# ===== FIXTURES =====

@pytest.fixture
def dispatcher():
    """Dispatcher with every domain enabled."""
    return DomainDispatcher(VerifierConfig())


@pytest.fixture
def ethereum_state():
    """Vault contract holding balances and shares, plus unrelated accounts and slots."""
    state = EthereumState()
    state.set_account(VAULT, nonce=1, balance=5 * 10**18)
    state.set_storage(VAULT, mapping_slot(USER, BALANCES_SLOT), 10)
    state.set_storage(VAULT, SHARES_SLOT, 10)
    for i in range(2, 40):
        state.set_storage(VAULT, mapping_slot(make_address(i), BALANCES_SLOT), i * 7)
        state.set_storage(VAULT, i + 100, i)
    for i in range(1, 30):
        state.set_account(make_address(0x1000 + i), nonce=i, balance=i * 10**15)
    return state


@pytest.fixture
def contract_address():
    """Raw vault contract address on the Cosmos chain."""
    return bytes(range(1, 33))


@pytest.fixture
def user_address():
    """Raw account address on the Cosmos chain."""
    return bytes(range(100, 120))


@pytest.fixture
def cosmos_keys(contract_address, user_address):
    """Keys for the vault balance mapping, shares item and a bank balance."""
    return {
        "balance": CosmosKey.wasm_account_mapping(b"balances", USER_BECH32, contract_address),
        "shares": CosmosKey.wasm_stored_value("shares", contract_address),
        "bank": CosmosKey.bank_account_balance("untrn", user_address),
        "supply": CosmosKey.bank_total_supply("untrn"),
    }


@pytest.fixture
def cosmos_state(cosmos_keys, contract_address):
    """Multistore with bank and wasm stores holding vault data."""
    bank = {
        cosmos_keys["bank"].store_key: b"1500",
        cosmos_keys["supply"].store_key: b"1000000000",
    }
    for i in range(20):
        bank[b"\x02\x14" + bytes([i]) * 20 + b"untrn"] = str(100 + i).encode()

    wasm = {
        cosmos_keys["balance"].store_key: b'"10"',
        cosmos_keys["shares"].store_key: b'"10"',
    }
    for i in range(20):
        wasm[CosmosKey.wasm_stored_value(f"item{i:02}", contract_address).store_key] = str(i).encode()

    return make_multistore(bank, wasm)
