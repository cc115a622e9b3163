import pytest

from contractkit import ibc_channel
from contractkit.cosmos import (
    Attribute,
    BankSend,
    CustomMessage,
    Event,
    IbcOrder,
    Reply,
    SubMsgResponse,
    WasmExecute,
    coin,
    coins,
    from_binary,
    mock_dependencies,
    mock_env,
    mock_ibc_channel_close_init,
    mock_ibc_channel_connect_ack,
    mock_ibc_channel_open_init,
    mock_ibc_packet_recv,
    mock_info,
    to_binary,
)
from contractkit.errors import GenericError, NotFoundError
from contractkit.ibc_channel import IBC_APP_VERSION, RECEIVE_DISPATCH_ID
from contractkit.ibc_reflect import (
    ibc_packet_ack,
    ibc_packet_receive,
    ibc_packet_timeout,
    query,
    query_account,
    query_list_accounts,
)
from contractkit.ibc_reflect_msg import (
    AccountInfo,
    AccountQuery,
    Balances,
    Dispatch,
    InstantiateMsg,
    ListAccountsQuery,
    Panic,
    ReturnErr,
    ReturnMsgs,
    WhoAmI,
    decode_reflect_msg,
    encode_packet,
    parse_ack,
)

CREATOR = "creator"
REFLECT_ID = 101
REFLECT_ADDR = "reflect-acct-1"


def setup():
    deps = mock_dependencies()
    res = ibc_channel.instantiate(
        deps, mock_env(), mock_info(CREATOR, []), InstantiateMsg(REFLECT_ID)
    )
    assert len(res.messages) == 0
    return deps


def fake_events(reflect_addr):
    event = Event("instantiate").add_attributes(
        [Attribute("code_id", "17"), Attribute("_contract_address", reflect_addr)]
    )
    return [event]


def connect(deps, channel_id, account):
    handshake_open = mock_ibc_channel_open_init(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    ibc_channel.ibc_channel_open(deps, mock_env(), handshake_open)
    handshake_connect = mock_ibc_channel_connect_ack(
        channel_id, IbcOrder.ORDERED, IBC_APP_VERSION
    )
    res = ibc_channel.ibc_channel_connect(deps, mock_env(), handshake_connect)
    assert len(res.messages) == 1
    assert res.events == [Event("ibc").add_attribute("channel", "connect")]
    reply_id = res.messages[0].id
    response = Reply(reply_id, SubMsgResponse(events=fake_events(account), data=None))
    ibc_channel.reply(deps, mock_env(), response)


def test_accounts_listed_after_handshake():
    deps = setup()
    channel_id = "channel-432"

    handshake_open = mock_ibc_channel_open_init(channel_id, IbcOrder.ORDERED, IBC_APP_VERSION)
    ibc_channel.ibc_channel_open(deps, mock_env(), handshake_open)
    handshake_connect = mock_ibc_channel_connect_ack(
        channel_id, IbcOrder.ORDERED, IBC_APP_VERSION
    )
    res = ibc_channel.ibc_channel_connect(deps, mock_env(), handshake_connect)
    reply_id = res.messages[0].id

    raw = query(deps, mock_env(), ListAccountsQuery())
    assert from_binary(raw) == {"accounts": []}

    response = Reply(reply_id, SubMsgResponse(events=fake_events(REFLECT_ADDR), data=None))
    res = ibc_channel.reply(deps, mock_env(), response)
    assert len(res.messages) == 0

    raw = query(deps, mock_env(), ListAccountsQuery())
    assert from_binary(raw) == {
        "accounts": [{"account": REFLECT_ADDR, "channel_id": channel_id}]
    }
    assert query_list_accounts(deps).accounts == [AccountInfo(REFLECT_ADDR, channel_id)]

    raw = query(deps, mock_env(), AccountQuery(channel_id))
    assert from_binary(raw) == {"account": REFLECT_ADDR}


def test_query_account_missing_raises():
    deps = setup()
    with pytest.raises(NotFoundError) as info:
        query_account(deps, "channel-9")
    assert str(info.value) == "account channel-9 not found"


def test_handle_dispatch_packet():
    deps = setup()
    channel_id = "channel-123"
    account = "acct-123"

    msgs_to_dispatch = [BankSend("my-friend", coins(123456789, "uatom"))]
    ibc_msg = encode_packet(Dispatch(msgs_to_dispatch))

    res = ibc_packet_receive(deps, mock_env(), mock_ibc_packet_recv(channel_id, ibc_msg))
    assert len(res.messages) == 0
    assert res.events == [Event("ibc").add_attribute("packet", "receive")]
    with pytest.raises(GenericError) as info:
        parse_ack(res.acknowledgement)
    assert str(info.value) == "invalid packet: account channel-123 not found"

    connect(deps, channel_id, account)

    res = ibc_packet_receive(deps, mock_env(), mock_ibc_packet_recv(channel_id, ibc_msg))
    assert parse_ack(res.acknowledgement) is None
    assert len(res.messages) == 1
    assert res.messages[0].id == RECEIVE_DISPATCH_ID
    wasm_msg = res.messages[0].msg
    assert isinstance(wasm_msg, WasmExecute)
    assert wasm_msg.contract_addr == account
    assert wasm_msg.funds == []
    assert decode_reflect_msg(wasm_msg.msg) == msgs_to_dispatch

    bad_data = to_binary(InstantiateMsg(12345))
    res = ibc_packet_receive(deps, mock_env(), mock_ibc_packet_recv(channel_id, bad_data))
    assert len(res.messages) == 0
    with pytest.raises(GenericError) as info:
        parse_ack(res.acknowledgement)
    assert str(info.value) == (
        "invalid packet: Error parsing into type ibc_reflect::msg::PacketMsg: "
        "unknown variant `reflect_code_id`, expected one of `dispatch`, `who_am_i`, "
        "`balances`, `panic`, `return_err`, `return_msgs`"
    )


def test_who_am_i_returns_account():
    deps = setup()
    connect(deps, "channel-7", "acct-7")
    packet = mock_ibc_packet_recv("channel-7", encode_packet(WhoAmI()))
    res = ibc_packet_receive(deps, mock_env(), packet)
    assert parse_ack(res.acknowledgement) == {"account": "acct-7"}
    assert res.attributes == [Attribute("action", "receive_who_am_i")]


def test_balances_returns_funds():
    deps = setup()
    connect(deps, "channel-7", "acct-7")
    deps.querier.update_balance("acct-7", [coin(5, "uatom")])
    packet = mock_ibc_packet_recv("channel-7", encode_packet(Balances()))
    res = ibc_packet_receive(deps, mock_env(), packet)
    assert parse_ack(res.acknowledgement) == {
        "account": "acct-7",
        "balances": [{"denom": "uatom", "amount": "5"}],
    }


def test_return_err_becomes_error_ack():
    deps = setup()
    packet = mock_ibc_packet_recv("channel-1", encode_packet(ReturnErr("boom")))
    res = ibc_packet_receive(deps, mock_env(), packet)
    with pytest.raises(GenericError) as info:
        parse_ack(res.acknowledgement)
    assert str(info.value) == "invalid packet: boom"


def test_return_msgs_adds_messages():
    deps = setup()
    msgs = [CustomMessage({"debug": "hi"}), BankSend("friend", coins(1, "token"))]
    packet = mock_ibc_packet_recv("channel-1", encode_packet(ReturnMsgs(msgs)))
    res = ibc_packet_receive(deps, mock_env(), packet)
    assert parse_ack(res.acknowledgement) is None
    assert [m.msg for m in res.messages] == msgs
    assert res.attributes == [Attribute("action", "receive_dispatch")]


def test_panic_is_not_converted():
    deps = setup()
    packet = mock_ibc_packet_recv("channel-1", encode_packet(Panic()))
    with pytest.raises(RuntimeError, match="intentionally faulted"):
        ibc_packet_receive(deps, mock_env(), packet)


def test_close_removes_account_from_listing():
    deps = setup()
    connect(deps, "channel-123", "acct-123")
    assert len(query_list_accounts(deps).accounts) == 1
    channel = mock_ibc_channel_close_init("channel-123", IbcOrder.ORDERED, IBC_APP_VERSION)
    ibc_channel.ibc_channel_close(deps, mock_env(), channel)
    assert query_list_accounts(deps).accounts == []


def test_packet_ack_and_timeout_attributes():
    deps = setup()
    assert ibc_packet_ack(deps, mock_env(), None).attributes == [
        Attribute("action", "ibc_packet_ack")
    ]
    assert ibc_packet_timeout(deps, mock_env(), None).attributes == [
        Attribute("action", "ibc_packet_timeout")
    ]