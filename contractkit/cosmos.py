"""Chain types, messages, responses and mock environment for contracts."""

from __future__ import annotations

import base64
import dataclasses
import json
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from .errors import GenericError, ParseError
from .storage import MemoryStorage

MOCK_CONTRACT_ADDR = "cosmos2contract"


def _b64e(data: bytes) -> str:
    return base64.b64encode(data).decode()


def _b64d(text: str) -> bytes:
    return base64.b64decode(text)


@dataclass
class Coin:
    denom: str
    amount: int

    def _json(self) -> dict:
        return {"denom": self.denom, "amount": str(self.amount)}


def _coin_from(data: Mapping) -> Coin:
    return Coin(data["denom"], int(data["amount"]))


def coin(amount: int, denom: str) -> Coin:
    return Coin(denom, amount)


def coins(amount: int, denom: str) -> list[Coin]:
    return [Coin(denom, amount)]


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_json"):
        return value.to_json()
    if isinstance(value, Coin):
        return value._json()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return _b64e(bytes(value))
    if isinstance(value, Decimal):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def to_binary(value: Any) -> bytes:
    """Serialize a value to compact JSON bytes."""
    return json.dumps(_jsonable(value), separators=(",", ":")).encode()


def from_binary(data: bytes) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise ParseError("json", str(exc)) from exc


@dataclass
class Attribute:
    key: str
    value: str


@dataclass
class Event:
    ty: str
    attributes: list[Attribute] = field(default_factory=list)

    def add_attribute(self, key: str, value: Any) -> Event:
        self.attributes.append(Attribute(key, str(value)))
        return self

    def add_attributes(self, attributes: Iterable[Attribute]) -> Event:
        self.attributes.extend(attributes)
        return self


def _event_json(event: Event) -> dict:
    return {
        "type": event.ty,
        "attributes": [{"key": a.key, "value": a.value} for a in event.attributes],
    }


def _event_from(data: Mapping) -> Event:
    return Event(data["type"], [Attribute(a["key"], a["value"]) for a in data["attributes"]])


@dataclass
class BankSend:
    to_address: str
    amount: list[Coin]


@dataclass
class StakingDelegate:
    validator: str
    amount: Coin


@dataclass
class WasmInstantiate:
    admin: str | None
    code_id: int
    msg: bytes
    funds: list[Coin]
    label: str


@dataclass
class WasmExecute:
    contract_addr: str
    msg: bytes
    funds: list[Coin]


@dataclass
class CustomMessage:
    payload: Any


def encode_message(msg: Any) -> dict:
    """Return the JSON form of a chain message."""
    if isinstance(msg, BankSend):
        return {"bank": {"send": {"to_address": msg.to_address,
                                  "amount": [c._json() for c in msg.amount]}}}
    if isinstance(msg, StakingDelegate):
        return {"staking": {"delegate": {"validator": msg.validator,
                                         "amount": msg.amount._json()}}}
    if isinstance(msg, WasmInstantiate):
        return {"wasm": {"instantiate": {
            "admin": msg.admin, "code_id": msg.code_id, "msg": _b64e(msg.msg),
            "funds": [c._json() for c in msg.funds], "label": msg.label}}}
    if isinstance(msg, WasmExecute):
        return {"wasm": {"execute": {
            "contract_addr": msg.contract_addr, "msg": _b64e(msg.msg),
            "funds": [c._json() for c in msg.funds]}}}
    if isinstance(msg, CustomMessage):
        return {"custom": _jsonable(msg.payload)}
    raise TypeError(f"not a chain message: {msg!r}")


def decode_message(data: Any) -> Any:
    """Build a chain message from its JSON form."""
    if isinstance(data, (bytes, bytearray)):
        data = from_binary(data)
    try:
        ((kind, body),) = data.items()
        if kind == "custom":
            return CustomMessage(body)
        ((sub, inner),) = body.items()
        if (kind, sub) == ("bank", "send"):
            return BankSend(inner["to_address"], [_coin_from(c) for c in inner["amount"]])
        if (kind, sub) == ("staking", "delegate"):
            return StakingDelegate(inner["validator"], _coin_from(inner["amount"]))
        if (kind, sub) == ("wasm", "instantiate"):
            return WasmInstantiate(inner.get("admin"), inner["code_id"], _b64d(inner["msg"]),
                                   [_coin_from(c) for c in inner["funds"]], inner["label"])
        if (kind, sub) == ("wasm", "execute"):
            return WasmExecute(inner["contract_addr"], _b64d(inner["msg"]),
                               [_coin_from(c) for c in inner["funds"]])
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ParseError("CosmosMsg", str(exc)) from exc
    raise ParseError("CosmosMsg", f"unknown message {kind}")


class ReplyOn(Enum):
    ALWAYS = "always"
    ERROR = "error"
    SUCCESS = "success"
    NEVER = "never"


@dataclass
class SubMsg:
    msg: Any
    id: int = 0
    reply_on: ReplyOn = ReplyOn.NEVER
    gas_limit: int | None = None

    @classmethod
    def reply_on_success(cls, msg: Any, id: int) -> SubMsg:
        return cls(msg, id, ReplyOn.SUCCESS)

    @classmethod
    def reply_on_error(cls, msg: Any, id: int) -> SubMsg:
        return cls(msg, id, ReplyOn.ERROR)

    @classmethod
    def reply_always(cls, msg: Any, id: int) -> SubMsg:
        return cls(msg, id, ReplyOn.ALWAYS)

    def to_json(self) -> dict:
        return {"id": self.id, "msg": encode_message(self.msg),
                "gas_limit": self.gas_limit, "reply_on": self.reply_on.value}

    @classmethod
    def from_json(cls, data: Any) -> SubMsg:
        if isinstance(data, (bytes, bytearray)):
            data = from_binary(data)
        try:
            return cls(decode_message(data["msg"]), data["id"],
                       ReplyOn(data["reply_on"]), data.get("gas_limit"))
        except (KeyError, ValueError, TypeError) as exc:
            raise ParseError("SubMsg", str(exc)) from exc


@dataclass
class Response:
    messages: list[SubMsg] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    data: bytes | None = None
    acknowledgement: bytes | None = None

    def add_attribute(self, key: str, value: Any) -> Response:
        self.attributes.append(Attribute(key, str(value)))
        return self

    def add_message(self, msg: Any) -> Response:
        self.messages.append(SubMsg(msg))
        return self

    def add_messages(self, msgs: Iterable[Any]) -> Response:
        for msg in msgs:
            self.add_message(msg)
        return self

    def add_submessage(self, msg: SubMsg) -> Response:
        self.messages.append(msg)
        return self

    def add_submessages(self, msgs: Iterable[SubMsg]) -> Response:
        self.messages.extend(msgs)
        return self

    def add_event(self, event: Event) -> Response:
        self.events.append(event)
        return self

    def set_data(self, data: bytes) -> Response:
        self.data = bytes(data)
        return self

    def set_ack(self, ack: bytes) -> Response:
        self.acknowledgement = bytes(ack)
        return self


@dataclass
class SubMsgResponse:
    events: list[Event] = field(default_factory=list)
    data: bytes | None = None


@dataclass
class Reply:
    """Outcome of a submessage: a SubMsgResponse or an error string."""

    id: int
    result: SubMsgResponse | str

    def to_json(self) -> dict:
        if isinstance(self.result, SubMsgResponse):
            data = None if self.result.data is None else _b64e(self.result.data)
            result = {"ok": {"events": [_event_json(e) for e in self.result.events],
                             "data": data}}
        else:
            result = {"error": self.result}
        return {"id": self.id, "result": result}

    @classmethod
    def from_json(cls, data: Any) -> Reply:
        if isinstance(data, (bytes, bytearray)):
            data = from_binary(data)
        try:
            result = data["result"]
            if "ok" in result:
                ok = result["ok"]
                raw = ok.get("data")
                return cls(data["id"], SubMsgResponse(
                    [_event_from(e) for e in ok["events"]],
                    None if raw is None else _b64d(raw)))
            return cls(data["id"], result["error"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ParseError("Reply", str(exc)) from exc


@dataclass
class Env:
    block_height: int
    block_time: int
    chain_id: str
    contract_address: str


@dataclass
class MessageInfo:
    sender: str
    funds: list[Coin] = field(default_factory=list)


def mock_env() -> Env:
    return Env(12_345, 1_571_797_419_879_305_533, "cosmos-testnet-14002", MOCK_CONTRACT_ADDR)


def mock_info(sender: str, funds: Iterable[Coin] = ()) -> MessageInfo:
    return MessageInfo(sender, list(funds))


class MockApi:
    """Address handling for tests."""

    def addr_validate(self, address: str) -> str:
        if len(address) < 3:
            raise GenericError(
                "Invalid input: human address too short for this mock implementation (must be >= 3)."
            )
        return address


class MockQuerier:
    """Answers chain queries from in-memory balances."""

    def __init__(
        self,
        balances: Mapping[str, Iterable[Coin]] | Iterable[tuple[str, Iterable[Coin]]] = (),
        custom_handler: Callable[[Any], bytes] | None = None,
    ) -> None:
        pairs = balances.items() if isinstance(balances, Mapping) else balances
        self.balances: dict[str, list[Coin]] = {a: list(c) for a, c in pairs}
        self.custom_handler = custom_handler
        self.contracts: dict[str, dict[bytes, bytes]] = {}

    def update_balance(self, address: str, balance: Iterable[Coin]) -> list[Coin] | None:
        old = self.balances.get(address)
        self.balances[address] = list(balance)
        return old

    def query_all_balances(self, address: str) -> list[Coin]:
        return [Coin(c.denom, c.amount) for c in self.balances.get(address, [])]

    def query_supply(self, denom: str) -> Coin:
        total = sum(c.amount for cs in self.balances.values() for c in cs if c.denom == denom)
        return Coin(denom, total)

    def raw_query(self, request: Any) -> bytes:
        """Answer a JSON query request; raises GenericError on failure."""
        if isinstance(request, (bytes, bytearray)):
            try:
                request = json.loads(request)
            except ValueError as exc:
                raise GenericError(f"Querier system error: Invalid query: {exc}") from exc
        if not isinstance(request, Mapping) or len(request) != 1:
            raise GenericError("Querier system error: Invalid query")
        ((kind, body),) = request.items()
        if kind == "custom":
            if self.custom_handler is None:
                raise GenericError("Querier system error: Unsupported query type: custom")
            return self.custom_handler(body)
        if kind == "bank" and isinstance(body, Mapping):
            if "all_balances" in body:
                address = body["all_balances"]["address"]
                return to_binary({"amount": self.query_all_balances(address)})
            if "supply" in body:
                return to_binary({"amount": self.query_supply(body["supply"]["denom"])})
            if "balance" in body:
                q = body["balance"]
                amount = sum(c.amount for c in self.balances.get(q["address"], [])
                             if c.denom == q["denom"])
                return to_binary({"amount": Coin(q["denom"], amount)})
        raise GenericError(f"Querier system error: Unsupported query type: {kind}")

    def query_wasm_raw(self, contract: str, key: bytes) -> bytes | None:
        if contract not in self.contracts:
            raise GenericError(f"Querier system error: No such contract: {contract}")
        return self.contracts[contract].get(bytes(key))


@dataclass
class Deps:
    storage: MemoryStorage
    api: MockApi
    querier: MockQuerier


def mock_dependencies(balances: Any = ()) -> Deps:
    return Deps(MemoryStorage(), MockApi(), MockQuerier(balances))


class IbcOrder(Enum):
    UNORDERED = "ORDER_UNORDERED"
    ORDERED = "ORDER_ORDERED"


@dataclass
class IbcChannel:
    channel_id: str
    order: IbcOrder
    version: str
    counterparty_version: str | None = None
    port_id: str = "my_port"
    counterparty_channel_id: str = "their_channel"
    counterparty_port_id: str = "their_port"
    connection_id: str = "connection-2"


@dataclass
class IbcPacket:
    data: bytes
    dest_channel_id: str
    dest_port_id: str = "our-port"
    src_channel_id: str = "their-channel-123"
    src_port_id: str = "their-port"
    sequence: int = 27
    timeout_height: int = 144


def mock_ibc_channel_open_init(channel_id: str, order: IbcOrder, version: str) -> IbcChannel:
    return IbcChannel(channel_id, order, version)


def mock_ibc_channel_open_try(channel_id: str, order: IbcOrder, version: str) -> IbcChannel:
    return IbcChannel(channel_id, order, version, counterparty_version=version)


def mock_ibc_channel_connect_ack(channel_id: str, order: IbcOrder, version: str) -> IbcChannel:
    return IbcChannel(channel_id, order, version, counterparty_version=version)


def mock_ibc_channel_close_init(channel_id: str, order: IbcOrder, version: str) -> IbcChannel:
    return IbcChannel(channel_id, order, version)


def mock_ibc_packet_recv(channel_id: str, data: Any) -> IbcPacket:
    payload = bytes(data) if isinstance(data, (bytes, bytearray)) else to_binary(data)
    return IbcPacket(payload, channel_id)