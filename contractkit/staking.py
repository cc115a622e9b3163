"""Messages and state of the staking derivative contract."""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from .errors import NotFoundError, ParseError
from .storage import MemoryStorage, namespace_with_key

KEY_INVESTMENT = b"invest"
KEY_TOKEN_INFO = b"token"
KEY_TOTAL_SUPPLY = b"total_supply"
PREFIX_BALANCE = b"balance"
PREFIX_CLAIMS = b"claim"


@dataclass
class InstantiateMsg:
    name: str
    symbol: str
    decimals: int
    validator: str
    exit_tax: Decimal
    min_withdrawal: int


@dataclass
class Transfer:
    recipient: str
    amount: int


@dataclass
class Bond:
    pass


@dataclass
class Unbond:
    amount: int


@dataclass
class Claim:
    pass


@dataclass
class Reinvest:
    pass


@dataclass
class BondAllTokens:
    pass


@dataclass
class BalanceQuery:
    address: str


@dataclass
class ClaimsQuery:
    address: str


@dataclass
class TokenInfoQuery:
    pass


@dataclass
class InvestmentQuery:
    pass


@dataclass
class BalanceResponse:
    balance: int


@dataclass
class ClaimsResponse:
    claims: int


@dataclass
class TokenInfoResponse:
    name: str
    symbol: str
    decimals: int


@dataclass
class InvestmentResponse:
    token_supply: int
    staked_tokens: Any
    nominal_value: Decimal
    owner: str
    exit_tax: Decimal
    validator: str
    min_withdrawal: int


@dataclass
class InvestmentInfo:
    owner: str
    bond_denom: str
    exit_tax: Decimal
    validator: str
    min_withdrawal: int


@dataclass
class TokenInfo:
    name: str
    symbol: str
    decimals: int


@dataclass
class Supply:
    issued: int = 0
    bonded: int = 0
    claims: int = 0


ExecuteMsg = Union[Transfer, Bond, Unbond, Claim, Reinvest, BondAllTokens]
QueryMsg = Union[BalanceQuery, ClaimsQuery, TokenInfoQuery, InvestmentQuery]

_EXECUTE = {
    "transfer": lambda b: Transfer(b["recipient"], int(b["amount"])),
    "bond": lambda b: Bond(),
    "unbond": lambda b: Unbond(int(b["amount"])),
    "claim": lambda b: Claim(),
    "reinvest": lambda b: Reinvest(),
    "_bond_all_tokens": lambda b: BondAllTokens(),
}

_QUERY = {
    "balance": lambda b: BalanceQuery(b["address"]),
    "claims": lambda b: ClaimsQuery(b["address"]),
    "token_info": lambda b: TokenInfoQuery(),
    "investment": lambda b: InvestmentQuery(),
}


def _parse_variant(data: Any, table: dict, target: str) -> Any:
    try:
        if isinstance(data, (bytes, bytearray, str)):
            data = json.loads(data)
        ((tag, body),) = data.items()
    except (ValueError, AttributeError, TypeError) as exc:
        raise ParseError(target, str(exc)) from exc
    if tag not in table:
        expected = ", ".join(f"`{name}`" for name in table)
        raise ParseError(target, f"unknown variant `{tag}`, expected one of {expected}")
    try:
        return table[tag](body)
    except (KeyError, TypeError, ValueError) as exc:
        raise ParseError(target, str(exc)) from exc


def parse_execute_msg(data: Any) -> ExecuteMsg:
    return _parse_variant(data, _EXECUTE, "staking::msg::ExecuteMsg")


def parse_query_msg(data: Any) -> QueryMsg:
    return _parse_variant(data, _QUERY, "staking::msg::QueryMsg")


def may_load_map(storage: MemoryStorage, prefix: bytes, key: bytes) -> int | None:
    raw = storage.get(namespace_with_key([prefix], key))
    if raw is None:
        return None
    try:
        return int(json.loads(raw))
    except (ValueError, TypeError) as exc:
        raise ParseError("Uint128", str(exc)) from exc


def load_map(storage: MemoryStorage, prefix: bytes, key: bytes) -> int:
    value = may_load_map(storage, prefix, key)
    if value is None:
        raise NotFoundError(f"map value for {bytes(key).hex().upper()}")
    return value


def save_map(storage: MemoryStorage, prefix: bytes, key: bytes, value: int) -> None:
    storage.set(namespace_with_key([prefix], key), json.dumps(str(value)).encode())