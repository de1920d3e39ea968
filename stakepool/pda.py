"""
Program derived addresses of the stake pool program.

Derivation itself is ``Pubkey.find_program_address``; this module only
fixes the seed layout for each account kind.
"""

import logging
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from stakepool.config import (
    AUTHORITY_DEPOSIT,
    AUTHORITY_WITHDRAW,
    TRANSIENT_STAKE_SEED_PREFIX,
    U32_MAX,
    U64_MAX,
)
from stakepool.errors import DerivationError

logger = logging.getLogger(__name__)

MAX_SEEDS = 16
MAX_SEED_LEN = 32


def find_program_address(seeds: List[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derive ``(address, bump)`` for ``seeds`` under ``program_id``.

    Raises DerivationError if the seeds are out of bounds.

    solders raises no Python exception from find_program_address: bad
    seeds are a Rust panic, which the bounds checks below rule out. The
    other panic, no off-curve bump among all 256, has probability 2**-256.
    """
    if len(seeds) >= MAX_SEEDS:
        raise DerivationError(f"Too many seeds: {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"Seed longer than {MAX_SEED_LEN} bytes: {seed.hex()}")

    address, bump = Pubkey.find_program_address(seeds, program_id)
    logger.debug("Derived %s (bump %d) under %s", address, bump, program_id)
    return address, bump


def find_validator_stake_account(
    program_id: Pubkey, pool: Pubkey, vote: Pubkey, seed: Optional[int] = None
) -> Tuple[Pubkey, int]:
    """Validator stake account; ``seed`` of None (or 0) means unseeded."""
    seeds = [bytes(vote), bytes(pool)]
    if seed:
        if not 0 < seed <= U32_MAX:
            raise DerivationError(f"Validator seed suffix out of range: {seed}")
        seeds.append(seed.to_bytes(4, "little"))
    return find_program_address(seeds, program_id)


def find_transient_stake_account(
    program_id: Pubkey, pool: Pubkey, vote: Pubkey, seed: int
) -> Tuple[Pubkey, int]:
    """Transient stake account. The seed is always mixed in, 0 included."""
    if not 0 <= seed <= U64_MAX:
        raise DerivationError(f"Transient seed suffix out of range: {seed}")
    seeds = [
        TRANSIENT_STAKE_SEED_PREFIX,
        bytes(vote),
        bytes(pool),
        seed.to_bytes(8, "little"),
    ]
    return find_program_address(seeds, program_id)


def find_withdraw_authority(program_id: Pubkey, pool: Pubkey) -> Tuple[Pubkey, int]:
    return find_program_address([bytes(pool), AUTHORITY_WITHDRAW], program_id)


def find_deposit_authority(program_id: Pubkey, pool: Pubkey) -> Tuple[Pubkey, int]:
    return find_program_address([bytes(pool), AUTHORITY_DEPOSIT], program_id)
