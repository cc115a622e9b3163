"""A FIFO queue contract keeping one storage entry per item."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from .cosmos import Deps, Env, MessageInfo, Response, to_binary
from .errors import ParseError
from .storage import MemoryStorage, Order

_U32_MAX = 2**32 - 1
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_THRESHOLD = (0x20).to_bytes(4, "big")
_ITEM_TYPE = "queue::state::Item"


@dataclass
class Item:
    """One stored queue entry."""

    value: int


@dataclass
class Enqueue:
    """Add a value to the end of the queue."""

    value: int


@dataclass
class Dequeue:
    """Remove the value at the start of the queue."""


@dataclass
class CountQuery:
    """How many items are in the queue."""


@dataclass
class SumQuery:
    """Total of all values in the queue."""


@dataclass
class ReducerQuery:
    """For each item, the sum of all values greater than it."""


@dataclass
class ListQuery:
    """Item ids below and from 0x20, plus an empty bounded range."""


@dataclass
class OpenIteratorsQuery:
    """Open the given number of iterators and do nothing with them."""

    count: int


@dataclass
class CountResponse:
    count: int


@dataclass
class SumResponse:
    sum: int


@dataclass
class ReducerResponse:
    counters: list[tuple[int, int]] = field(default_factory=list)


@dataclass
class ListResponse:
    empty: list[int] = field(default_factory=list)
    early: list[int] = field(default_factory=list)
    late: list[int] = field(default_factory=list)


ExecuteMsg = Union[Enqueue, Dequeue]
QueryMsg = Union[CountQuery, SumQuery, ReducerQuery, ListQuery, OpenIteratorsQuery]


def _check_i32(value: int) -> int:
    if not _I32_MIN <= value <= _I32_MAX:
        raise OverflowError(f"value {value} does not fit in i32")
    return value


def _parse_item(raw: bytes) -> Item:
    try:
        value = json.loads(raw)["value"]
    except (ValueError, TypeError, KeyError) as exc:
        raise ParseError(_ITEM_TYPE, str(exc)) from exc
    if not isinstance(value, int) or isinstance(value, bool):
        raise ParseError(_ITEM_TYPE, f"invalid value {value!r}")
    return Item(value)


def _key_id(key: bytes) -> int:
    if len(key) != 4:
        raise ValueError(f"queue key must be 4 bytes, got {len(key)}")
    return int.from_bytes(key, "big")


def _enqueue(storage: MemoryStorage, value: int) -> None:
    _check_i32(value)
    last = next(storage.range(None, None, Order.DESCENDING), None)
    if last is None:
        new_id = 0
    else:
        new_id = _key_id(last[0]) + 1
        if new_id > _U32_MAX:
            raise OverflowError("queue key space exhausted")
    storage.set(new_id.to_bytes(4, "big"), to_binary(Item(value)))


def _dequeue(storage: MemoryStorage) -> Response:
    response = Response()
    first = next(storage.range(None, None, Order.ASCENDING), None)
    if first is not None:
        key, value = first
        storage.remove(key)
        response.data = value
    return response


def instantiate(deps: Deps, env: Env, info: MessageInfo, msg: Any = None) -> Response:
    """Start with an empty queue."""
    return Response()


def execute(deps: Deps, env: Env, info: MessageInfo, msg: ExecuteMsg) -> Response:
    match msg:
        case Enqueue(value=value):
            _enqueue(deps.storage, value)
            return Response()
        case Dequeue():
            return _dequeue(deps.storage)
        case _:
            raise TypeError(f"unsupported execute message: {msg!r}")


def migrate(deps: Deps, env: Env, msg: Any = None) -> Response:
    """Clear the queue and refill it with 100, 101 and 102."""
    for key, _ in list(deps.storage.range(None, None, Order.ASCENDING)):
        deps.storage.remove(key)
    for value in (100, 101, 102):
        _enqueue(deps.storage, value)
    return Response()


def query(deps: Deps, env: Env, msg: QueryMsg) -> bytes:
    match msg:
        case CountQuery():
            return to_binary(query_count(deps))
        case SumQuery():
            return to_binary(query_sum(deps))
        case ReducerQuery():
            return to_binary(query_reducer(deps))
        case ListQuery():
            return to_binary(query_list(deps))
        case OpenIteratorsQuery(count=count):
            return to_binary(query_open_iterators(deps, count))
        case _:
            raise TypeError(f"unsupported query message: {msg!r}")


def query_count(deps: Deps) -> CountResponse:
    return CountResponse(sum(1 for _ in deps.storage.range(None, None, Order.ASCENDING)))


def query_sum(deps: Deps) -> SumResponse:
    values = [_parse_item(v).value for _, v in deps.storage.range(None, None, Order.ASCENDING)]
    return SumResponse(_check_i32(sum(values)))


def query_reducer(deps: Deps) -> ReducerResponse:
    counters: list[tuple[int, int]] = []
    for _, raw in deps.storage.range(None, None, Order.ASCENDING):
        mine = _parse_item(raw).value
        total = sum(
            value
            for value in (
                _parse_item(v).value
                for _, v in deps.storage.range(None, None, Order.ASCENDING)
            )
            if value > mine
        )
        counters.append((mine, _check_i32(total)))
    return ReducerResponse(counters)


def query_list(deps: Deps) -> ListResponse:
    """Range queries with both, the upper and the lower bound set at 0x20."""
    storage = deps.storage
    return ListResponse(
        empty=[_key_id(k) for k, _ in storage.range(_THRESHOLD, _THRESHOLD, Order.ASCENDING)],
        early=[_key_id(k) for k, _ in storage.range(None, _THRESHOLD, Order.ASCENDING)],
        late=[_key_id(k) for k, _ in storage.range(_THRESHOLD, None, Order.ASCENDING)],
    )


def query_open_iterators(deps: Deps, count: int) -> dict:
    for _ in range(count):
        deps.storage.range(None, None, Order.ASCENDING)
    return {}