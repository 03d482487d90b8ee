"""
Cross-chain vault rate program.

A vault holds deposits on several chains. For each chain we get a proof of
the vault's balance and a proof of the shares it has issued. The program
verifies every proof against its chain's trusted root and computes the
redemption rate

    rate = sum(balances) // sum(shares)

A missing balance or share entry (proven absent) counts as zero.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from zkmerkle.core.errors import DecodeValueError
from zkmerkle.core.interfaces import VerifiedValue
from zkmerkle.core.proof import MerkleProof
from zkmerkle.dispatch import DomainDispatcher
from zkmerkle.domains.cosmos.keys import decode_amount
from zkmerkle.domains.ethereum.verifier import verify_account_and_storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultChainProofs:
    """
    Balance and shares proofs for one chain.

    Ethereum storage proofs may come with the vault contract's account proof,
    in which case both are checked against the account's storage root and
    the reported root is the state root.
    """
    balance: MerkleProof
    shares: MerkleProof
    account: Optional[MerkleProof] = None


@dataclass(frozen=True)
class VaultRate:
    rate: int
    total_balance: int
    total_shares: int
    roots: Tuple[bytes, ...]


def proven_amount(verified: VerifiedValue) -> int:
    """Integer amount of a verified storage slot or Cosmos store entry."""
    if not verified.exists:
        return 0
    if isinstance(verified.decoded, int):
        return verified.decoded
    if verified.domain.chain == "cosmos":
        return decode_amount(verified.value)
    raise DecodeValueError(
        f"{verified.domain.value} value is not an amount",
        domain=verified.domain.value,
    )


def compute_vault_rate(chains: Sequence[VaultChainProofs], dispatcher: DomainDispatcher = None) -> VaultRate:
    """
    Verify all vault proofs and compute the rate.

    Raises:
        MerkleProofError: any proof does not verify
        ValueError: the vault has issued no shares
    """
    dispatcher = dispatcher or DomainDispatcher()
    total_balance = 0
    total_shares = 0
    roots: List[bytes] = []

    for chain in chains:
        if chain.account is not None:
            account_verifier = dispatcher.verifier_for(chain.account.domain)
            storage_verifier = dispatcher.verifier_for(chain.balance.domain)
            _, balance = verify_account_and_storage(chain.account, chain.balance, account_verifier, storage_verifier)
            _, shares = verify_account_and_storage(chain.account, chain.shares, account_verifier, storage_verifier)
            roots.append(chain.account.root)
        else:
            balance = dispatcher.verify(chain.balance)
            shares = dispatcher.verify(chain.shares)
            roots.extend([chain.balance.root, chain.shares.root])
        total_balance += proven_amount(balance)
        total_shares += proven_amount(shares)

    if total_shares == 0:
        raise ValueError("vault has no shares outstanding")

    rate = total_balance // total_shares
    logger.info(f"Vault rate over {len(chains)} chains: {total_balance}/{total_shares} = {rate}")
    return VaultRate(rate=rate, total_balance=total_balance, total_shares=total_shares, roots=tuple(roots))
