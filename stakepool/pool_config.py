"""
Stake pool config file model.

A pool config is a TOML document with a single ``[pool]`` table holding
the pool's addresses, fees, last observed accounting state and, last of
all, one ``[[pool.validators]]`` entry per validator. Every field is
optional except a validator's ``vote``; absent fields are omitted on write.
"""

import logging
import tomllib
from dataclasses import dataclass, fields
from typing import Optional, Sequence, Tuple

import tomli_w
from solders.pubkey import Pubkey

from stakepool.config import MAX_REFERRAL_FEE_PCT, POOL_SECTION, U32_MAX, U64_MAX
from stakepool.errors import ConfigParseError, ConfigReadError
from stakepool.pda import (
    find_transient_stake_account,
    find_validator_stake_account,
    find_withdraw_authority,
)
from stakepool.state import (
    Fee,
    FutureEpoch,
    FutureEpochFee,
    StakePoolInfo,
    StakeStatus,
    ValidatorStakeInfo,
)

logger = logging.getLogger(__name__)


# =========================================================================
# FIELD PARSERS
# =========================================================================

def _address(value, key):
    if not isinstance(value, str):
        raise ConfigParseError(f"expected an address string, got {value!r}", key)
    return value


def _uint(max_value, min_value=0):
    def parse(value, key):
        # bool is an int subclass, TOML true/false must not pass as 1/0
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigParseError(f"expected an integer, got {value!r}", key)
        if not min_value <= value <= max_value:
            raise ConfigParseError(f"{value} out of range [{min_value}, {max_value}]", key)
        return value
    return parse


_u32 = _uint(U32_MAX)
_u64 = _uint(U64_MAX)
_referral_pct = _uint(MAX_REFERRAL_FEE_PCT)


def _fee(value, key):
    if not isinstance(value, dict):
        raise ConfigParseError(f"expected a fee table, got {value!r}", key)
    for part in ("denominator", "numerator"):
        if part not in value:
            raise ConfigParseError("missing fee field", f"{key}.{part}")
    for part in ("denominator", "numerator"):
        _u64(value[part], f"{key}.{part}")
    return Fee.from_dict(value)


def _future_epoch_fee(value, key):
    if value == FutureEpoch.NONE.value:
        return FutureEpochFee.none()
    if isinstance(value, dict) and len(value) == 1:
        (tag, fee), = value.items()
        if tag in (FutureEpoch.ONE.value, FutureEpoch.TWO.value):
            return FutureEpochFee(FutureEpoch(tag), _fee(fee, f"{key}.{tag}"))
    raise ConfigParseError(f"expected \"None\", {{One = ...}} or {{Two = ...}}, got {value!r}", key)


def _status(value, key):
    try:
        return StakeStatus(value)
    except ValueError:
        raise ConfigParseError(f"unknown stake status {value!r}", key) from None


def _validator_seed(value, key):
    # Seed suffix 0 means "no seed" on chain
    return _u32(value, key) or None


def _to_toml(value):
    if isinstance(value, Fee):
        return value.to_dict()
    if isinstance(value, FutureEpochFee):
        return value.to_toml()
    if isinstance(value, StakeStatus):
        return value.value
    return value


def _key(attr):
    return attr.replace("_", "-")


def _opt_str(pubkey: Optional[Pubkey]) -> Optional[str]:
    return str(pubkey) if pubkey is not None else None


def _pubkey(value: str, key: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise ConfigParseError(f"invalid address {value!r}: {e}", key) from e


# =========================================================================
# VALIDATOR CONFIG
# =========================================================================

_VALIDATOR_PARSERS = {
    "vote": _address,
    "active_stake_lamports": _u64,
    "transient_stake_lamports": _u64,
    "last_update_epoch": _u64,
    "validator_seed_suffix": _validator_seed,
    "transient_seed_suffix": _u64,
    "status": _status,
    "validator_stake_account": _address,
    "transient_stake_account": _address,
}


@dataclass(frozen=True)
class ValidatorConfig:
    vote: str
    active_stake_lamports: Optional[int] = None
    transient_stake_lamports: Optional[int] = None
    last_update_epoch: Optional[int] = None
    validator_seed_suffix: Optional[int] = None
    transient_seed_suffix: Optional[int] = None
    status: Optional[StakeStatus] = None
    validator_stake_account: Optional[str] = None
    transient_stake_account: Optional[str] = None

    def __post_init__(self):
        if not self.vote:
            raise ValueError("ValidatorConfig requires a vote account")
        if self.validator_seed_suffix == 0:
            object.__setattr__(self, "validator_seed_suffix", None)
        if self.status is not None and not isinstance(self.status, StakeStatus):
            object.__setattr__(self, "status", StakeStatus(self.status))

    @staticmethod
    def from_validator_stake_info(
        vsi: ValidatorStakeInfo, program_id: Pubkey, pool: Pubkey
    ) -> "ValidatorConfig":
        """
        Build a validator entry from its on-chain validator list record,
        deriving the validator and transient stake account addresses.

        Raises DerivationError if either address cannot be derived.
        """
        validator_seed = vsi.validator_seed_suffix or None
        validator_stake_account, _ = find_validator_stake_account(
            program_id, pool, vsi.vote_account_address, validator_seed
        )
        transient_stake_account, _ = find_transient_stake_account(
            program_id, pool, vsi.vote_account_address, vsi.transient_seed_suffix
        )
        return ValidatorConfig(
            vote=str(vsi.vote_account_address),
            active_stake_lamports=vsi.active_stake_lamports,
            transient_stake_lamports=vsi.transient_stake_lamports,
            last_update_epoch=vsi.last_update_epoch,
            validator_seed_suffix=validator_seed,
            transient_seed_suffix=vsi.transient_seed_suffix,
            status=vsi.status,
            validator_stake_account=str(validator_stake_account),
            transient_stake_account=str(transient_stake_account),
        )

    def derived_accounts_match(self, program_id: Pubkey, pool: Pubkey) -> bool:
        """
        Recompute the cached stake account addresses and compare.
        Absent addresses are not checked. Logs a warning per mismatch.
        """
        vote = _pubkey(self.vote, "vote")
        ok = True

        if self.validator_stake_account is not None:
            expected, _ = find_validator_stake_account(
                program_id, pool, vote, self.validator_seed_suffix
            )
            if str(expected) != self.validator_stake_account:
                logger.warning(
                    "Validator %s: validator-stake-account %s != derived %s",
                    self.vote, self.validator_stake_account, expected,
                )
                ok = False

        if self.transient_stake_account is not None:
            expected, _ = find_transient_stake_account(
                program_id, pool, vote, self.transient_seed_suffix or 0
            )
            if str(expected) != self.transient_stake_account:
                logger.warning(
                    "Validator %s: transient-stake-account %s != derived %s",
                    self.vote, self.transient_stake_account, expected,
                )
                ok = False

        return ok

    def to_dict(self) -> dict:
        return {
            _key(f.name): _to_toml(getattr(self, f.name))
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @staticmethod
    def from_dict(data: dict, key: str = "validator") -> "ValidatorConfig":
        if not isinstance(data, dict):
            raise ConfigParseError(f"expected a validator table, got {data!r}", key)
        if not data.get("vote"):
            raise ConfigParseError("missing vote account", f"{key}.vote")
        return ValidatorConfig(**_parse_fields(data, _VALIDATOR_PARSERS, key))


# =========================================================================
# POOL CONFIG
# =========================================================================

_POOL_PARSERS = {
    "mint": _address,
    "pool": _address,
    "validator_list": _address,
    "reserve": _address,
    "manager": _address,
    "manager_fee_account": _address,
    "staker": _address,
    "stake_deposit_auth": _address,
    "sol_deposit_auth": _address,
    "sol_withdraw_auth": _address,
    "preferred_deposit_validator": _address,
    "preferred_withdraw_validator": _address,
    "max_validators": _u32,
    "stake_deposit_referral_fee": _referral_pct,
    "sol_deposit_referral_fee": _referral_pct,
    "epoch_fee": _fee,
    "stake_withdrawal_fee": _fee,
    "sol_withdrawal_fee": _fee,
    "stake_deposit_fee": _fee,
    "sol_deposit_fee": _fee,
    "total_lamports": _u64,
    "pool_token_supply": _u64,
    "last_update_epoch": _u64,
    "next_epoch_fee": _future_epoch_fee,
    "next_stake_withdrawal_fee": _future_epoch_fee,
    "next_sol_withdrawal_fee": _future_epoch_fee,
    "last_epoch_pool_token_supply": _u64,
    "last_epoch_total_lamports": _u64,
    "stake_withdraw_auth": _address,
    "old_manager": _address,
}


def _parse_fields(data: dict, parsers: dict, prefix: str) -> dict:
    known = {_key(attr) for attr in parsers}
    for unknown in data.keys() - known:
        logger.debug("Ignoring unknown field %s.%s", prefix, unknown)

    parsed = {}
    for attr, parse in parsers.items():
        key = _key(attr)
        if key in data:
            parsed[attr] = parse(data[key], f"{prefix}.{key}")
    return parsed


@dataclass(frozen=True)
class PoolConfig:
    mint: Optional[str] = None
    pool: Optional[str] = None
    validator_list: Optional[str] = None
    reserve: Optional[str] = None
    manager: Optional[str] = None
    manager_fee_account: Optional[str] = None
    staker: Optional[str] = None
    stake_deposit_auth: Optional[str] = None
    sol_deposit_auth: Optional[str] = None
    sol_withdraw_auth: Optional[str] = None
    preferred_deposit_validator: Optional[str] = None
    preferred_withdraw_validator: Optional[str] = None
    max_validators: Optional[int] = None
    stake_deposit_referral_fee: Optional[int] = None
    sol_deposit_referral_fee: Optional[int] = None
    epoch_fee: Optional[Fee] = None
    stake_withdrawal_fee: Optional[Fee] = None
    sol_withdrawal_fee: Optional[Fee] = None
    stake_deposit_fee: Optional[Fee] = None
    sol_deposit_fee: Optional[Fee] = None
    total_lamports: Optional[int] = None
    pool_token_supply: Optional[int] = None
    last_update_epoch: Optional[int] = None
    next_epoch_fee: Optional[FutureEpochFee] = None
    next_stake_withdrawal_fee: Optional[FutureEpochFee] = None
    next_sol_withdrawal_fee: Optional[FutureEpochFee] = None
    last_epoch_pool_token_supply: Optional[int] = None
    last_epoch_total_lamports: Optional[int] = None
    stake_withdraw_auth: Optional[str] = None  # fixed PDA, informational only
    old_manager: Optional[str] = None          # only set when syncing a pool
    validators: Optional[Tuple[ValidatorConfig, ...]] = None  # keep last, written last

    def __post_init__(self):
        if self.validators is not None and not isinstance(self.validators, tuple):
            object.__setattr__(self, "validators", tuple(self.validators))

    # -------------------------
    # ON-CHAIN SYNTHESIS
    # -------------------------
    @staticmethod
    def from_stake_pool(
        program_id: Pubkey,
        pool: Pubkey,
        stake_pool: StakePoolInfo,
        max_validators: int,
        validators: Sequence[ValidatorStakeInfo],
    ) -> "PoolConfig":
        """Snapshot a pool's fetched on-chain state as a config."""
        withdraw_auth, _ = find_withdraw_authority(program_id, pool)
        return PoolConfig(
            mint=str(stake_pool.pool_mint),
            pool=str(pool),
            validator_list=str(stake_pool.validator_list),
            reserve=str(stake_pool.reserve_stake),
            manager=str(stake_pool.manager),
            manager_fee_account=str(stake_pool.manager_fee_account),
            staker=str(stake_pool.staker),
            stake_deposit_auth=str(stake_pool.stake_deposit_authority),
            sol_deposit_auth=_opt_str(stake_pool.sol_deposit_authority),
            sol_withdraw_auth=_opt_str(stake_pool.sol_withdraw_authority),
            preferred_deposit_validator=_opt_str(stake_pool.preferred_deposit_validator_vote_address),
            preferred_withdraw_validator=_opt_str(stake_pool.preferred_withdraw_validator_vote_address),
            max_validators=max_validators,
            stake_deposit_referral_fee=stake_pool.stake_referral_fee,
            sol_deposit_referral_fee=stake_pool.sol_referral_fee,
            epoch_fee=stake_pool.epoch_fee,
            stake_withdrawal_fee=stake_pool.stake_withdrawal_fee,
            sol_withdrawal_fee=stake_pool.sol_withdrawal_fee,
            stake_deposit_fee=stake_pool.stake_deposit_fee,
            sol_deposit_fee=stake_pool.sol_deposit_fee,
            total_lamports=stake_pool.total_lamports,
            pool_token_supply=stake_pool.pool_token_supply,
            last_update_epoch=stake_pool.last_update_epoch,
            next_epoch_fee=stake_pool.next_epoch_fee,
            next_stake_withdrawal_fee=stake_pool.next_stake_withdrawal_fee,
            next_sol_withdrawal_fee=stake_pool.next_sol_withdrawal_fee,
            last_epoch_pool_token_supply=stake_pool.last_epoch_pool_token_supply,
            last_epoch_total_lamports=stake_pool.last_epoch_total_lamports,
            stake_withdraw_auth=str(withdraw_auth),
            validators=tuple(
                ValidatorConfig.from_validator_stake_info(vsi, program_id, pool)
                for vsi in validators
            ),
        )

    def check_derived_accounts(self, program_id: Pubkey) -> bool:
        """
        Verify every validator's cached stake account addresses against
        derivation. Loading never does this on its own.
        """
        if self.pool is None:
            raise ValueError("Cannot check derived accounts without a pool address")
        pool = _pubkey(self.pool, f"{POOL_SECTION}.pool")
        results = [
            v.derived_accounts_match(program_id, pool)
            for v in self.validators or ()
        ]
        return all(results)

    # -------------------------
    # SERIALIZATION
    # -------------------------
    def to_dict(self) -> dict:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "validators":
                data[_key(f.name)] = [v.to_dict() for v in value]
            else:
                data[_key(f.name)] = _to_toml(value)
        return data

    @staticmethod
    def from_dict(data: dict) -> "PoolConfig":
        """Build from the contents of the ``[pool]`` table."""
        scalars = {k: v for k, v in data.items() if k != "validators"}
        parsed = _parse_fields(scalars, _POOL_PARSERS, POOL_SECTION)

        validators = data.get("validators")
        if validators is not None:
            if not isinstance(validators, list):
                raise ConfigParseError(f"expected an array of tables, got {validators!r}", f"{POOL_SECTION}.validators")
            parsed["validators"] = tuple(
                ValidatorConfig.from_dict(v, f"{POOL_SECTION}.validators[{i}]")
                for i, v in enumerate(validators)
            )

        return PoolConfig(**parsed)

    @staticmethod
    def loads(text: str) -> "PoolConfig":
        """Parse a pool config document. Raises ConfigParseError."""
        try:
            document = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigParseError(f"Invalid TOML: {e}") from e

        section = document.get(POOL_SECTION)
        if not isinstance(section, dict):
            raise ConfigParseError("missing table", POOL_SECTION)
        return PoolConfig.from_dict(section)

    @staticmethod
    def read_from_path(path) -> "PoolConfig":
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise ConfigReadError(f"Failed to read pool config {path}: {e}") from e

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigParseError(f"{path} is not valid UTF-8: {e}") from e

        config = PoolConfig.loads(text)
        logger.debug(
            "Loaded pool config %s (%d validators)",
            path, len(config.validators or ()),
        )
        return config

    def dumps(self) -> str:
        """Pretty TOML text; writing it anywhere is up to the caller."""
        data = self.to_dict()
        validators = data.pop("validators", None)
        if validators == []:
            data["validators"] = validators

        # tomli_w inlines short arrays of tables ahead of the sub-tables,
        # so the validators are written by hand after everything else
        chunks = [tomli_w.dumps({POOL_SECTION: data})]
        for validator in validators or ():
            chunks.append(f"[[{POOL_SECTION}.validators]]\n{tomli_w.dumps(validator)}")

        logger.debug("Serialized pool config (%d validators)", len(validators or ()))
        return "\n".join(chunks)

    def __str__(self):
        return self.dumps()
