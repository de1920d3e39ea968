# Pool config
from .pool_config import PoolConfig, ValidatorConfig
from .state import (
    Fee,
    FutureEpoch,
    FutureEpochFee,
    StakePoolInfo,
    StakeStatus,
    ValidatorStakeInfo,
)
from .pda import (
    find_deposit_authority,
    find_program_address,
    find_transient_stake_account,
    find_validator_stake_account,
    find_withdraw_authority,
)

# Signing
from .signers import KeypairSigner, Signer, SortedSigners, sort_signers

# Errors
from .errors import (
    ConfigParseError,
    ConfigReadError,
    DerivationError,
    SignerError,
    StakePoolError,
)

__all__ = [
    # Pool config
    "PoolConfig",
    "ValidatorConfig",
    "Fee",
    "FutureEpoch",
    "FutureEpochFee",
    "StakePoolInfo",
    "StakeStatus",
    "ValidatorStakeInfo",
    "find_deposit_authority",
    "find_program_address",
    "find_transient_stake_account",
    "find_validator_stake_account",
    "find_withdraw_authority",
    # Signing
    "KeypairSigner",
    "Signer",
    "SortedSigners",
    "sort_signers",
    # Errors
    "ConfigParseError",
    "ConfigReadError",
    "DerivationError",
    "SignerError",
    "StakePoolError",
]
