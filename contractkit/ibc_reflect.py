"""Queries and packet handling of the IBC reflect contract."""

from __future__ import annotations

from typing import Any, Union

from .cosmos import Deps, Env, Event, IbcPacket, Response, SubMsg, WasmExecute, to_binary
from .errors import GenericError, StdError
from .ibc_channel import RECEIVE_DISPATCH_ID
from .ibc_reflect_msg import (
    AccountInfo,
    AccountQuery,
    AccountResponse,
    Balances,
    BalancesResponse,
    Dispatch,
    ListAccountsQuery,
    ListAccountsResponse,
    Panic,
    ReturnErr,
    ReturnMsgs,
    WhoAmI,
    WhoAmIResponse,
    ack_error,
    ack_ok,
    encode_reflect_msg,
    load_account,
    parse_packet,
    range_accounts,
)

QueryMsg = Union[AccountQuery, ListAccountsQuery]


def query(deps: Deps, env: Env, msg: QueryMsg) -> bytes:
    match msg:
        case AccountQuery(channel_id=channel_id):
            return to_binary(query_account(deps, channel_id))
        case ListAccountsQuery():
            return to_binary(query_list_accounts(deps))
        case _:
            raise TypeError(f"unsupported query message: {msg!r}")


def query_account(deps: Deps, channel_id: str) -> AccountResponse:
    """The reflect account bound to a channel; raises NotFoundError if none."""
    return AccountResponse(load_account(deps.storage, channel_id))


def query_list_accounts(deps: Deps) -> ListAccountsResponse:
    return ListAccountsResponse(
        [AccountInfo(account=account, channel_id=channel_id)
         for channel_id, account in range_accounts(deps.storage)]
    )


def _receive_who_am_i(deps: Deps, caller: str) -> Response:
    account = load_account(deps.storage, caller)
    return (
        Response()
        .set_ack(ack_ok(WhoAmIResponse(account)))
        .add_attribute("action", "receive_who_am_i")
    )


def _receive_balances(deps: Deps, caller: str) -> Response:
    account = load_account(deps.storage, caller)
    balances = deps.querier.query_all_balances(account)
    return (
        Response()
        .set_ack(ack_ok(BalancesResponse(account, balances)))
        .add_attribute("action", "receive_balances")
    )


def _receive_dispatch(deps: Deps, caller: str, msgs: list[Any]) -> Response:
    reflect_addr = load_account(deps.storage, caller)
    wasm_msg = WasmExecute(reflect_addr, encode_reflect_msg(msgs), [])
    return (
        Response()
        .set_ack(ack_ok(None))
        .add_submessage(SubMsg.reply_on_error(wasm_msg, RECEIVE_DISPATCH_ID))
        .add_attribute("action", "receive_dispatch")
    )


def _return_msgs(msgs: list[Any]) -> Response:
    return (
        Response()
        .set_ack(ack_ok(None))
        .add_messages(msgs)
        .add_attribute("action", "receive_dispatch")
    )


def _handle_packet(deps: Deps, packet: IbcPacket) -> Response:
    caller = packet.dest_channel_id
    msg = parse_packet(packet.data)
    match msg:
        case Dispatch(msgs=msgs):
            return _receive_dispatch(deps, caller, msgs)
        case WhoAmI():
            return _receive_who_am_i(deps, caller)
        case Balances():
            return _receive_balances(deps, caller)
        case Panic():
            raise RuntimeError("This page intentionally faulted")
        case ReturnErr(text=text):
            raise GenericError(text)
        case ReturnMsgs(msgs=msgs):
            return _return_msgs(msgs)
    raise TypeError(f"unsupported packet: {msg!r}")


def ibc_packet_receive(deps: Deps, env: Env, packet: IbcPacket) -> Response:
    """Handle a packet; application errors become error acknowledgements."""
    try:
        return _handle_packet(deps, packet)
    except StdError as exc:
        return (
            Response()
            .set_ack(ack_error(f"invalid packet: {exc}"))
            .add_event(Event("ibc").add_attribute("packet", "receive"))
        )


def ibc_packet_ack(deps: Deps, env: Env, msg: Any = None) -> Response:
    """Never expected, as this contract sends no packets."""
    return Response().add_attribute("action", "ibc_packet_ack")


def ibc_packet_timeout(deps: Deps, env: Env, msg: Any = None) -> Response:
    """Never expected, as this contract sends no packets."""
    return Response().add_attribute("action", "ibc_packet_timeout")