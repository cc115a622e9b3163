import pytest

from contractkit.errors import NotFoundError
from contractkit.storage import (
    MemoryStorage,
    Order,
    load_item,
    namespace_with_key,
    save_item,
    to_length_prefixed,
    update_item,
)


def filled():
    s = MemoryStorage()
    for k in (b"a", b"b", b"c", b"d"):
        s.set(k, k.upper())
    return s


def test_set_get_remove():
    s = MemoryStorage()
    s.set(b"k", b"v")
    assert s.get(b"k") == b"v"
    s.remove(b"k")
    assert s.get(b"k") is None


def test_range_orders_and_bounds():
    s = filled()
    assert [k for k, _ in s.range(None, None, Order.ASCENDING)] == [b"a", b"b", b"c", b"d"]
    assert [k for k, _ in s.range(None, None, Order.DESCENDING)] == [b"d", b"c", b"b", b"a"]
    assert [k for k, _ in s.range(b"b", b"d", Order.ASCENDING)] == [b"b", b"c"]
    assert list(s.range(b"c", b"c", Order.ASCENDING)) == []


def test_length_prefix():
    assert to_length_prefixed(b"config") == b"\x00\x06config"
    assert namespace_with_key([b"ab"], b"k") == b"\x00\x02abk"
    with pytest.raises(ValueError):
        to_length_prefixed(b"x" * 0x10000)


def test_item_round_trip_and_update():
    s = MemoryStorage()
    save_item(s, b"config", {"reflect_code_id": 101})
    assert load_item(s, b"config") == {"reflect_code_id": 101}
    out = update_item(s, b"config", lambda c: {**c, "reflect_code_id": 5})
    assert out == load_item(s, b"config")
    assert out["reflect_code_id"] == 5


def test_load_missing():
    with pytest.raises(NotFoundError):
        load_item(MemoryStorage(), b"config")