"""
config.py - stake pool configuration constants.
"""

from solders.pubkey import Pubkey

# Canonical SPL stake pool program
STAKE_POOL_PROGRAM_ID = Pubkey.from_string("SPoo1Ku8WFXoNDMHPsrGSTSG1Y47rzgn41SLUNakuHy")

# Name of the single top-level table in a pool config file
POOL_SECTION = "pool"

# Program address seeds
TRANSIENT_STAKE_SEED_PREFIX = b"transient"
AUTHORITY_WITHDRAW = b"withdraw"
AUTHORITY_DEPOSIT = b"deposit"

# Referral fees are a percentage of the deposit fee
MAX_REFERRAL_FEE_PCT = 100

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
