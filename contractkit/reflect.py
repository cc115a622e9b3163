"""A contract that re-dispatches messages on behalf of its owner."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union

from .cosmos import (
    MOCK_CONTRACT_ADDR,
    Coin,
    Deps,
    Env,
    MemoryStorage,
    MessageInfo,
    MockApi,
    MockQuerier,
    Reply,
    Response,
    SubMsg,
    from_binary,
    to_binary,
)
from .errors import GenericError, MessagesEmpty, NotCurrentOwner, NotFoundError, ParseError
from .storage import namespace_with_key, to_length_prefixed

CONFIG_KEY = b"config"
RESULT_PREFIX = b"result"


@dataclass
class State:
    owner: str


@dataclass
class InstantiateMsg:
    pass


@dataclass
class ReflectMsg:
    """Dispatch the given chain messages."""

    msgs: list[Any] = field(default_factory=list)


@dataclass
class ReflectSubMsg:
    """Dispatch the given submessages."""

    msgs: list[SubMsg] = field(default_factory=list)


@dataclass
class ChangeOwner:
    owner: str


@dataclass
class OwnerQuery:
    pass


@dataclass
class CapitalizedQuery:
    """Ask the chain's custom querier to capitalize text."""

    text: str


@dataclass
class ChainQuery:
    """Forward a query request to the chain and return its raw answer."""

    request: Any


@dataclass
class RawQuery:
    """Read a raw key from another contract's storage."""

    contract: str
    key: bytes


@dataclass
class SubMsgResultQuery:
    """The reply stored for a previous submessage id."""

    id: int


@dataclass
class OwnerResponse:
    owner: str


@dataclass
class CapitalizedResponse:
    text: str


@dataclass
class ChainResponse:
    data: bytes


@dataclass
class RawResponse:
    """Empty data means a missing key or an empty value."""

    data: bytes


@dataclass
class Ping:
    pass


@dataclass
class Capitalized:
    text: str


@dataclass
class SpecialResponse:
    msg: str


ExecuteMsg = Union[ReflectMsg, ReflectSubMsg, ChangeOwner]
QueryMsg = Union[OwnerQuery, CapitalizedQuery, ChainQuery, RawQuery, SubMsgResultQuery]
SpecialQuery = Union[Ping, Capitalized]


def _special_json(query: SpecialQuery) -> dict:
    match query:
        case Ping():
            return {"ping": {}}
        case Capitalized(text=text):
            return {"capitalized": {"text": text}}
    raise TypeError(f"not a special query: {query!r}")


def _special_from(data: Any) -> SpecialQuery:
    if isinstance(data, (Ping, Capitalized)):
        return data
    if isinstance(data, (bytes, bytearray)):
        data = from_binary(data)
    try:
        ((tag, body),) = data.items()
        if tag == "ping":
            return Ping()
        if tag == "capitalized":
            return Capitalized(str(body["text"]))
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ParseError("reflect::msg::SpecialQuery", str(exc)) from exc
    raise ParseError(
        "reflect::msg::SpecialQuery",
        f"unknown variant `{tag}`, expected `ping` or `capitalized`",
    )


def _reply_key(id: int) -> bytes:
    return namespace_with_key([RESULT_PREFIX], id.to_bytes(8, "big"))


def load_reply(storage: MemoryStorage, id: int) -> Reply:
    raw = storage.get(_reply_key(id))
    if raw is None:
        raise NotFoundError(f"reply {id}")
    return Reply.from_json(raw)


def save_reply(storage: MemoryStorage, id: int, reply: Reply) -> None:
    storage.set(_reply_key(id), to_binary(reply))


def remove_reply(storage: MemoryStorage, id: int) -> None:
    storage.remove(_reply_key(id))


def load_config(storage: MemoryStorage) -> State:
    raw = storage.get(to_length_prefixed(CONFIG_KEY))
    if raw is None:
        raise NotFoundError("config")
    try:
        return State(json.loads(raw)["owner"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ParseError("reflect::state::State", str(exc)) from exc


def save_config(storage: MemoryStorage, state: State) -> None:
    storage.set(to_length_prefixed(CONFIG_KEY), to_binary({"owner": state.owner}))


def _require_owner(deps: Deps, info: MessageInfo) -> State:
    state = load_config(deps.storage)
    if info.sender != state.owner:
        raise NotCurrentOwner(expected=state.owner, actual=info.sender)
    return state


def instantiate(deps: Deps, env: Env, info: MessageInfo, msg: Any = None) -> Response:
    """Record the sender as owner."""
    save_config(deps.storage, State(info.sender))
    return Response()


def execute(deps: Deps, env: Env, info: MessageInfo, msg: ExecuteMsg) -> Response:
    match msg:
        case ReflectMsg(msgs=msgs):
            return try_reflect(deps, env, info, msgs)
        case ReflectSubMsg(msgs=msgs):
            return try_reflect_subcall(deps, env, info, msgs)
        case ChangeOwner(owner=owner):
            return try_change_owner(deps, env, info, owner)
    raise TypeError(f"unsupported execute message: {msg!r}")


def try_reflect(deps: Deps, env: Env, info: MessageInfo, msgs: Iterable[Any]) -> Response:
    _require_owner(deps, info)
    msgs = list(msgs)
    if not msgs:
        raise MessagesEmpty()
    return Response().add_attribute("action", "reflect").add_messages(msgs)


def try_reflect_subcall(
    deps: Deps, env: Env, info: MessageInfo, msgs: Iterable[SubMsg]
) -> Response:
    _require_owner(deps, info)
    msgs = list(msgs)
    if not msgs:
        raise MessagesEmpty()
    return Response().add_attribute("action", "reflect_subcall").add_submessages(msgs)


def try_change_owner(deps: Deps, env: Env, info: MessageInfo, new_owner: str) -> Response:
    state = _require_owner(deps, info)
    state.owner = deps.api.addr_validate(new_owner)
    save_config(deps.storage, state)
    return (
        Response()
        .add_attribute("action", "change_owner")
        .add_attribute("owner", new_owner)
    )


def reply(deps: Deps, env: Env, msg: Reply) -> Response:
    """Store the reply for a later query."""
    save_reply(deps.storage, msg.id, msg)
    return Response()


def _query_capitalized(deps: Deps, text: str) -> CapitalizedResponse:
    raw = deps.querier.raw_query({"custom": _special_json(Capitalized(text))})
    try:
        return CapitalizedResponse(str(from_binary(raw)["msg"]))
    except (KeyError, TypeError) as exc:
        raise ParseError("reflect::msg::SpecialResponse", str(exc)) from exc


def _query_chain(deps: Deps, request: Any) -> ChainResponse:
    if isinstance(request, (Ping, Capitalized)):
        request = {"custom": _special_json(request)}
    try:
        raw = to_binary(request)
    except (TypeError, ValueError) as exc:
        raise GenericError(f"Serializing QueryRequest: {exc}") from exc
    return ChainResponse(deps.querier.raw_query(raw))


def _query_raw(deps: Deps, contract: str, key: bytes) -> RawResponse:
    data = deps.querier.query_wasm_raw(contract, key)
    return RawResponse(data or b"")


def query(deps: Deps, env: Env, msg: QueryMsg) -> bytes:
    match msg:
        case OwnerQuery():
            return to_binary(OwnerResponse(load_config(deps.storage).owner))
        case CapitalizedQuery(text=text):
            return to_binary(_query_capitalized(deps, text))
        case ChainQuery(request=request):
            return to_binary(_query_chain(deps, request))
        case RawQuery(contract=contract, key=key):
            return to_binary(_query_raw(deps, contract, key))
        case SubMsgResultQuery(id=id):
            return to_binary(load_reply(deps.storage, id))
    raise TypeError(f"unsupported query message: {msg!r}")


def custom_query_execute(query: Any) -> bytes:
    """Answer a special query: ping gives pong, capitalized upper-cases text."""
    match _special_from(query):
        case Ping():
            text = "pong"
        case Capitalized(text=value):
            text = value.upper()
    return to_binary(SpecialResponse(text))


def mock_dependencies_with_custom_querier(contract_balance: Iterable[Coin] = ()) -> Deps:
    """Mock dependencies whose querier answers special queries."""
    querier = MockQuerier(
        [(MOCK_CONTRACT_ADDR, list(contract_balance))],
        custom_handler=custom_query_execute,
    )
    return Deps(MemoryStorage(), MockApi(), querier)