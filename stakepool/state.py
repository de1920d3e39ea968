"""
On-chain stake pool records.

These mirror the account layouts of the stake pool program closely enough
to build a pool config from freshly fetched state. Decoding the raw
account bytes is left to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class Fee:
    """Rational fee, ``numerator / denominator``."""

    denominator: int
    numerator: int

    def to_dict(self) -> dict:
        return {
            "denominator": self.denominator,
            "numerator": self.numerator,
        }

    @staticmethod
    def from_dict(data: dict) -> "Fee":
        return Fee(denominator=data["denominator"], numerator=data["numerator"])


class FutureEpoch(Enum):
    NONE = "None"
    ONE = "One"
    TWO = "Two"


@dataclass(frozen=True)
class FutureEpochFee:
    """
    Fee change staged for a future epoch.

    Written to TOML the way the program's serde layout tags it: the bare
    string ``"None"`` when nothing is pending, otherwise a single-key table
    ``{One = {...}}`` or ``{Two = {...}}``.
    """

    epoch: FutureEpoch = FutureEpoch.NONE
    fee: Optional[Fee] = None

    def __post_init__(self):
        if (self.epoch is FutureEpoch.NONE) != (self.fee is None):
            raise ValueError(f"FutureEpochFee {self.epoch.value} with fee {self.fee}")

    @staticmethod
    def none() -> "FutureEpochFee":
        return FutureEpochFee()

    @staticmethod
    def one(fee: Fee) -> "FutureEpochFee":
        return FutureEpochFee(FutureEpoch.ONE, fee)

    @staticmethod
    def two(fee: Fee) -> "FutureEpochFee":
        return FutureEpochFee(FutureEpoch.TWO, fee)

    def to_toml(self):
        if self.fee is None:
            return self.epoch.value
        return {self.epoch.value: self.fee.to_dict()}


class StakeStatus(Enum):
    ACTIVE = "Active"
    DEACTIVATING_TRANSIENT = "DeactivatingTransient"
    READY_FOR_REMOVAL = "ReadyForRemoval"
    DEACTIVATING_VALIDATOR = "DeactivatingValidator"
    DEACTIVATING_ALL = "DeactivatingAll"


@dataclass(frozen=True)
class ValidatorStakeInfo:
    """One entry of the pool's on-chain validator list."""

    vote_account_address: Pubkey
    active_stake_lamports: int = 0
    transient_stake_lamports: int = 0
    last_update_epoch: int = 0
    transient_seed_suffix: int = 0
    unused: int = 0
    validator_seed_suffix: int = 0  # 0 means no seed
    status: StakeStatus = StakeStatus.ACTIVE


@dataclass(frozen=True)
class StakePoolInfo:
    """Decoded stake pool account."""

    manager: Pubkey
    staker: Pubkey
    stake_deposit_authority: Pubkey
    stake_withdraw_bump_seed: int
    validator_list: Pubkey
    reserve_stake: Pubkey
    pool_mint: Pubkey
    manager_fee_account: Pubkey
    token_program_id: Pubkey
    total_lamports: int
    pool_token_supply: int
    last_update_epoch: int
    epoch_fee: Fee
    next_epoch_fee: FutureEpochFee
    stake_deposit_fee: Fee
    stake_withdrawal_fee: Fee
    next_stake_withdrawal_fee: FutureEpochFee
    stake_referral_fee: int
    sol_deposit_fee: Fee
    sol_referral_fee: int
    sol_withdrawal_fee: Fee
    next_sol_withdrawal_fee: FutureEpochFee
    last_epoch_pool_token_supply: int
    last_epoch_total_lamports: int
    preferred_deposit_validator_vote_address: Optional[Pubkey] = None
    preferred_withdraw_validator_vote_address: Optional[Pubkey] = None
    sol_deposit_authority: Optional[Pubkey] = None
    sol_withdraw_authority: Optional[Pubkey] = None
