"""Messages, acknowledgements and account storage of the IBC reflect contract."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Union

from .cosmos import Coin, decode_message, encode_message, from_binary, to_binary
from .errors import GenericError, NotFoundError, ParseError
from .storage import MemoryStorage, Order, namespace_with_key, to_length_prefixed

KEY_CONFIG = b"config"
KEY_PENDING_CHANNEL = b"pending"
PREFIX_ACCOUNTS = b"accounts"
_PREFIX_ACCOUNTS_UPPER_BOUND = b"accountt"

_PACKET_TYPE = "ibc_reflect::msg::PacketMsg"
_REFLECT_TYPE = "ibc_reflect::msg::ReflectExecuteMsg"


@dataclass
class InstantiateMsg:
    """Code id of the reflect contract used to spawn sub-accounts."""

    reflect_code_id: int


@dataclass
class Config:
    reflect_code_id: int


@dataclass
class AccountQuery:
    """The reflect account attached to a channel."""

    channel_id: str


@dataclass
class ListAccountsQuery:
    """All (channel, reflect account) pairs."""


@dataclass
class AccountResponse:
    account: str | None


@dataclass
class AccountInfo:
    account: str
    channel_id: str


@dataclass
class ListAccountsResponse:
    accounts: list[AccountInfo] = field(default_factory=list)


@dataclass
class WhoAmIResponse:
    account: str


@dataclass
class BalancesResponse:
    account: str
    balances: list[Coin] = field(default_factory=list)


@dataclass
class Dispatch:
    msgs: list[Any] = field(default_factory=list)


@dataclass
class WhoAmI:
    pass


@dataclass
class Balances:
    pass


@dataclass
class Panic:
    pass


@dataclass
class ReturnErr:
    text: str


@dataclass
class ReturnMsgs:
    msgs: list[Any] = field(default_factory=list)


PacketMsg = Union[Dispatch, WhoAmI, Balances, Panic, ReturnErr, ReturnMsgs]


def _decode_msgs(items: Any) -> list[Any]:
    if not isinstance(items, list):
        raise TypeError("msgs must be a list")
    return [decode_message(item) for item in items]


_PACKETS: dict[str, Callable[[Mapping], PacketMsg]] = {
    "dispatch": lambda b: Dispatch(_decode_msgs(b["msgs"])),
    "who_am_i": lambda b: WhoAmI(),
    "balances": lambda b: Balances(),
    "panic": lambda b: Panic(),
    "return_err": lambda b: ReturnErr(str(b["text"])),
    "return_msgs": lambda b: ReturnMsgs(_decode_msgs(b["msgs"])),
}

_REFLECT: dict[str, Callable[[Mapping], list[Any]]] = {
    "reflect_msg": lambda b: _decode_msgs(b["msgs"]),
}


def _parse_variant(data: Any, table: Mapping[str, Callable], target: str) -> Any:
    try:
        if isinstance(data, (bytes, bytearray, str)):
            data = json.loads(data)
        ((tag, body),) = data.items()
    except (ValueError, AttributeError, TypeError) as exc:
        raise ParseError(target, str(exc)) from exc
    if tag not in table:
        expected = ", ".join(f"`{name}`" for name in table)
        raise ParseError(target, f"unknown variant `{tag}`, expected one of {expected}")
    if not isinstance(body, Mapping):
        raise ParseError(target, f"invalid type for variant `{tag}`, expected struct variant")
    try:
        return table[tag](body)
    except ParseError as exc:
        raise ParseError(target, exc.msg) from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ParseError(target, str(exc)) from exc


def encode_packet(packet: PacketMsg) -> bytes:
    """Serialize a packet message to its JSON wire form."""
    match packet:
        case Dispatch(msgs=msgs):
            body = {"dispatch": {"msgs": [encode_message(m) for m in msgs]}}
        case WhoAmI():
            body = {"who_am_i": {}}
        case Balances():
            body = {"balances": {}}
        case Panic():
            body = {"panic": {}}
        case ReturnErr(text=text):
            body = {"return_err": {"text": text}}
        case ReturnMsgs(msgs=msgs):
            body = {"return_msgs": {"msgs": [encode_message(m) for m in msgs]}}
        case _:
            raise TypeError(f"not a packet message: {packet!r}")
    return to_binary(body)


def parse_packet(data: Any) -> PacketMsg:
    return _parse_variant(data, _PACKETS, _PACKET_TYPE)


def ack_ok(value: Any = None) -> bytes:
    """Encode a successful acknowledgement carrying value."""
    return to_binary({"ok": value})


def ack_error(message: str) -> bytes:
    """Encode a failed acknowledgement carrying an error message."""
    return to_binary({"error": str(message)})


def parse_ack(data: bytes) -> Any:
    """Return the success value of an acknowledgement; raise GenericError for an error ack."""
    decoded = from_binary(data)
    if isinstance(decoded, dict) and len(decoded) == 1:
        if "ok" in decoded:
            return decoded["ok"]
        if "error" in decoded and isinstance(decoded["error"], str):
            raise GenericError(decoded["error"])
    raise ParseError("ContractResult", f"invalid acknowledgement: {decoded!r}")


def encode_reflect_msg(msgs: list[Any]) -> bytes:
    """Encode the execute message that asks a reflect contract to dispatch msgs."""
    return to_binary({"reflect_msg": {"msgs": [encode_message(m) for m in msgs]}})


def decode_reflect_msg(data: Any) -> list[Any]:
    return _parse_variant(data, _REFLECT, _REFLECT_TYPE)


def _account_key(channel_id: str) -> bytes:
    return namespace_with_key([PREFIX_ACCOUNTS], channel_id.encode())


def _parse_addr(raw: bytes) -> str:
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise ParseError("Addr", str(exc)) from exc
    if not isinstance(value, str):
        raise ParseError("Addr", f"invalid type: expected a string, got {value!r}")
    return value


def may_load_account(storage: MemoryStorage, channel_id: str) -> str | None:
    raw = storage.get(_account_key(channel_id))
    return None if raw is None else _parse_addr(raw)


def load_account(storage: MemoryStorage, channel_id: str) -> str:
    account = may_load_account(storage, channel_id)
    if account is None:
        raise NotFoundError(f"account {channel_id}")
    return account


def save_account(storage: MemoryStorage, channel_id: str, account: str) -> None:
    storage.set(_account_key(channel_id), json.dumps(account).encode())


def remove_account(storage: MemoryStorage, channel_id: str) -> None:
    storage.remove(_account_key(channel_id))


def range_accounts(storage: MemoryStorage) -> Iterator[tuple[str, str]]:
    """Yield (channel_id, account) pairs in ascending channel order."""
    lower = to_length_prefixed(PREFIX_ACCOUNTS)
    upper = to_length_prefixed(_PREFIX_ACCOUNTS_UPPER_BOUND)
    skip = len(PREFIX_ACCOUNTS) + 2
    for key, value in storage.range(lower, upper, Order.ASCENDING):
        try:
            channel_id = key[skip:].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("String", str(exc)) from exc
        yield channel_id, _parse_addr(value)