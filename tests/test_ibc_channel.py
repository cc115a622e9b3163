import pytest

from contractkit.cosmos import (
    MOCK_CONTRACT_ADDR,
    Attribute,
    BankSend,
    Event,
    IbcOrder,
    Reply,
    ReplyOn,
    SubMsgResponse,
    WasmExecute,
    WasmInstantiate,
    coin,
    mock_dependencies,
    mock_env,
    mock_ibc_channel_close_init,
    mock_ibc_channel_connect_ack,
    mock_ibc_channel_open_init,
    mock_ibc_channel_open_try,
    mock_info,
)
from contractkit.errors import GenericError, NotFoundError
from contractkit.ibc_channel import (
    IBC_APP_VERSION,
    INIT_CALLBACK_ID,
    RECEIVE_DISPATCH_ID,
    handle_init_callback,
    ibc_channel_close,
    ibc_channel_connect,
    ibc_channel_open,
    instantiate,
    migrate,
    reply,
)
from contractkit.ibc_reflect_msg import (
    KEY_CONFIG,
    InstantiateMsg,
    decode_reflect_msg,
    load_account,
    parse_ack,
    range_accounts,
    save_account,
)
from contractkit.storage import load_item

CREATOR = "creator"
REFLECT_ID = 101
REFLECT_ADDR = "reflect-acct-1"


def setup():
    deps = mock_dependencies()
    res = instantiate(deps, mock_env(), mock_info(CREATOR, []), InstantiateMsg(REFLECT_ID))
    assert len(res.messages) == 0
    return deps


def fake_events(reflect_addr):
    event = Event("instantiate").add_attributes(
        [Attribute("code_id", "17"), Attribute("_contract_address", reflect_addr)]
    )
    return [event]


def connect(deps, channel_id, account):
    ibc_channel_open(
        deps, mock_env(), mock_ibc_channel_open_init(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    res = ibc_channel_connect(
        deps, mock_env(), mock_ibc_channel_connect_ack(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    assert len(res.messages) == 1
    assert res.events == [Event("ibc").add_attribute("channel", "connect")]
    response = Reply(res.messages[0].id, SubMsgResponse(fake_events(account), None))
    reply(deps, mock_env(), response)


def test_instantiate_works():
    deps = mock_dependencies()
    res = instantiate(deps, mock_env(), mock_info("creator", []), InstantiateMsg(17))
    assert len(res.messages) == 0
    assert load_item(deps.storage, KEY_CONFIG) == {"reflect_code_id": 17}
    assert res.attributes == [Attribute("action", "instantiate")]


def test_enforce_version_in_handshake():
    deps = setup()
    wrong_order = mock_ibc_channel_open_try("channel-12", IbcOrder.UNORDERED, IBC_APP_VERSION)
    with pytest.raises(GenericError, match="Only supports ordered channels"):
        ibc_channel_open(deps, mock_env(), wrong_order)

    wrong_version = mock_ibc_channel_open_try("channel-12", IbcOrder.ORDERED, "reflect")
    with pytest.raises(GenericError, match="Counterparty version must be"):
        ibc_channel_open(deps, mock_env(), wrong_version)

    valid = mock_ibc_channel_open_try("channel-12", IbcOrder.ORDERED, IBC_APP_VERSION)
    assert ibc_channel_open(deps, mock_env(), valid) == IBC_APP_VERSION


def test_open_init_without_counterparty_version_returns_our_version():
    deps = setup()
    channel = mock_ibc_channel_open_init("channel-1", IbcOrder.ORDERED, "anything")
    assert ibc_channel_open(deps, mock_env(), channel) == IBC_APP_VERSION


def test_proper_handshake_flow():
    deps = setup()
    channel_id = "channel-1234"
    ibc_channel_open(
        deps, mock_env(), mock_ibc_channel_open_init(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    res = ibc_channel_connect(
        deps, mock_env(), mock_ibc_channel_connect_ack(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    assert len(res.messages) == 1
    sub = res.messages[0]
    assert sub.id == INIT_CALLBACK_ID
    assert sub.reply_on is ReplyOn.SUCCESS
    msg = sub.msg
    assert isinstance(msg, WasmInstantiate)
    assert msg.admin is None
    assert msg.code_id == REFLECT_ID
    assert msg.funds == []
    assert channel_id in msg.label
    assert Attribute("channel_id", channel_id) in res.attributes

    assert list(range_accounts(deps.storage)) == []

    response = Reply(sub.id, SubMsgResponse(fake_events(REFLECT_ADDR), None))
    out = reply(deps, mock_env(), response)
    assert len(out.messages) == 0
    assert out.attributes == [Attribute("action", "execute_init_callback")]

    assert list(range_accounts(deps.storage)) == [(channel_id, REFLECT_ADDR)]
    assert load_account(deps.storage, channel_id) == REFLECT_ADDR


def test_connect_requires_instantiate():
    deps = mock_dependencies()
    channel = mock_ibc_channel_connect_ack("channel-1", IbcOrder.ORDERED, IBC_APP_VERSION)
    with pytest.raises(NotFoundError):
        ibc_channel_connect(deps, mock_env(), channel)


def test_reply_with_unknown_id_fails():
    deps = setup()
    with pytest.raises(GenericError, match="invalid reply id or result"):
        reply(deps, mock_env(), Reply(42, SubMsgResponse([], None)))
    with pytest.raises(GenericError, match="invalid reply id or result"):
        reply(deps, mock_env(), Reply(INIT_CALLBACK_ID, "boom"))


def test_reply_dispatch_error_becomes_error_ack():
    deps = setup()
    res = reply(deps, mock_env(), Reply(RECEIVE_DISPATCH_ID, "out of gas"))
    with pytest.raises(GenericError, match="out of gas"):
        parse_ack(res.data)


def test_init_callback_without_address_fails():
    deps = setup()
    ibc_channel_connect(
        deps, mock_env(), mock_ibc_channel_connect_ack("channel-9", IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    events = [Event("instantiate").add_attribute("code_id", "17")]
    with pytest.raises(GenericError, match="No _contract_address found"):
        handle_init_callback(deps, SubMsgResponse(events, None))


def test_init_callback_rejects_existing_channel():
    deps = setup()
    save_account(deps.storage, "channel-9", "existing-acct")
    ibc_channel_connect(
        deps, mock_env(), mock_ibc_channel_connect_ack("channel-9", IbcOrder.ORDERED, IBC_APP_VERSION)
    )
    with pytest.raises(GenericError, match="Cannot register over an existing channel"):
        handle_init_callback(deps, SubMsgResponse(fake_events("other-acct"), None))
    assert load_account(deps.storage, "channel-9") == "existing-acct"


def test_init_callback_without_pending_channel_fails():
    deps = setup()
    with pytest.raises(NotFoundError):
        handle_init_callback(deps, SubMsgResponse(fake_events(REFLECT_ADDR), None))


def test_check_close_channel():
    deps = setup()
    channel_id = "channel-123"
    account = "acct-123"
    connect(deps, channel_id, account)

    funds = [coin(123456, "uatom"), coin(7654321, "tgrd")]
    deps.querier.update_balance(account, funds)
    assert len(list(range_accounts(deps.storage))) == 1
    assert deps.querier.query_all_balances(account) == funds

    channel = mock_ibc_channel_close_init(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    res = ibc_channel_close(deps, mock_env(), channel)

    assert len(res.messages) == 1
    msg = res.messages[0].msg
    assert isinstance(msg, WasmExecute)
    assert msg.contract_addr == account
    assert decode_reflect_msg(msg.msg) == [BankSend(MOCK_CONTRACT_ADDR, funds)]
    assert Attribute("steal_funds", "true") in res.attributes

    assert list(range_accounts(deps.storage)) == []


def test_close_channel_without_funds():
    deps = setup()
    connect(deps, "channel-5", "acct-5")
    channel = mock_ibc_channel_close_init("channel-5", IbcOrder.ORDERED, IBC_APP_VERSION)
    res = ibc_channel_close(deps, mock_env(), channel)
    assert res.messages == []
    assert res.attributes == [
        Attribute("action", "ibc_close"),
        Attribute("channel_id", "channel-5"),
        Attribute("steal_funds", "false"),
    ]


def test_close_unknown_channel_fails():
    deps = setup()
    channel = mock_ibc_channel_close_init("channel-77", IbcOrder.ORDERED, IBC_APP_VERSION)
    with pytest.raises(NotFoundError, match="account channel-77 not found"):
        ibc_channel_close(deps, mock_env(), channel)


def test_migrate_is_noop():
    deps = setup()
    res = migrate(deps, mock_env(), {})
    assert res.messages == []
    assert res.attributes == []
    assert load_item(deps.storage, KEY_CONFIG) == {"reflect_code_id": REFLECT_ID}