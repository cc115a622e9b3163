"""Channel lifecycle of the IBC reflect contract: setup, handshake and reply handling."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Iterable

from .cosmos import (
    BankSend,
    Deps,
    Env,
    Event,
    IbcChannel,
    IbcOrder,
    MessageInfo,
    Reply,
    Response,
    SubMsg,
    SubMsgResponse,
    WasmExecute,
    WasmInstantiate,
)
from .errors import GenericError
from .ibc_reflect_msg import (
    KEY_CONFIG,
    KEY_PENDING_CHANNEL,
    Config,
    InstantiateMsg,
    ack_error,
    encode_reflect_msg,
    load_account,
    may_load_account,
    remove_account,
    save_account,
)
from .storage import load_item, save_item, to_length_prefixed

IBC_APP_VERSION = "ibc-reflect-v1"
RECEIVE_DISPATCH_ID = 1234
INIT_CALLBACK_ID = 7890


def instantiate(deps: Deps, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
    """Store the reflect code id for creating accounts later."""
    save_item(deps.storage, KEY_CONFIG, asdict(Config(msg.reflect_code_id)))
    return Response().add_attribute("action", "instantiate")


def reply(deps: Deps, env: Env, reply: Reply) -> Response:
    """Turn dispatch failures into error acks and register freshly created accounts."""
    if reply.id == RECEIVE_DISPATCH_ID and isinstance(reply.result, str):
        return Response().set_data(ack_error(reply.result))
    if reply.id == INIT_CALLBACK_ID and isinstance(reply.result, SubMsgResponse):
        return handle_init_callback(deps, reply.result)
    raise GenericError("invalid reply id or result")


def _contract_from_events(events: Iterable[Event]) -> str | None:
    event = next((e for e in events if e.ty == "instantiate"), None)
    if event is None:
        return None
    attribute = next((a for a in event.attributes if a.key == "_contract_address"), None)
    return None if attribute is None else attribute.value


def handle_init_callback(deps: Deps, response: SubMsgResponse) -> Response:
    """Bind the pending channel to the contract address reported in the events."""
    channel_id = load_item(deps.storage, KEY_PENDING_CHANNEL)
    deps.storage.remove(to_length_prefixed(KEY_PENDING_CHANNEL))

    address = _contract_from_events(response.events)
    if address is None:
        raise GenericError("No _contract_address found in callback events")
    contract_addr = deps.api.addr_validate(address)

    if may_load_account(deps.storage, channel_id) is not None:
        raise GenericError("Cannot register over an existing channel")
    save_account(deps.storage, channel_id, contract_addr)

    return Response().add_attribute("action", "execute_init_callback")


def ibc_channel_open(deps: Deps, env: Env, channel: IbcChannel) -> str:
    """Enforce ordering and counterparty version; return the version we require."""
    if channel.order is not IbcOrder.ORDERED:
        raise GenericError("Only supports ordered channels")
    counter_version = channel.counterparty_version
    if counter_version is not None and counter_version != IBC_APP_VERSION:
        raise GenericError(f"Counterparty version must be `{IBC_APP_VERSION}`")
    return IBC_APP_VERSION


def ibc_channel_connect(deps: Deps, env: Env, channel: IbcChannel) -> Response:
    """Instantiate a reflect contract for the newly connected channel."""
    cfg = Config(**load_item(deps.storage, KEY_CONFIG))
    chan_id = channel.channel_id

    instantiate_msg = WasmInstantiate(
        admin=None,
        code_id=cfg.reflect_code_id,
        msg=b"{}",
        funds=[],
        label=f"ibc-reflect-{chan_id}",
    )
    submsg = SubMsg.reply_on_success(instantiate_msg, INIT_CALLBACK_ID)

    save_item(deps.storage, KEY_PENDING_CHANNEL, chan_id)

    return (
        Response()
        .add_submessage(submsg)
        .add_attribute("action", "ibc_connect")
        .add_attribute("channel_id", chan_id)
        .add_event(Event("ibc").add_attribute("channel", "connect"))
    )


def ibc_channel_close(deps: Deps, env: Env, channel: IbcChannel) -> Response:
    """Forget the channel's account and pull all its funds into this contract."""
    channel_id = channel.channel_id
    reflect_addr = load_account(deps.storage, channel_id)
    remove_account(deps.storage, channel_id)

    amount = deps.querier.query_all_balances(reflect_addr)
    messages: list[SubMsg] = []
    if amount:
        bank_msg = BankSend(env.contract_address, amount)
        wasm_msg = WasmExecute(reflect_addr, encode_reflect_msg([bank_msg]), [])
        messages.append(SubMsg(wasm_msg))
    steal_funds = "true" if messages else "false"

    return (
        Response()
        .add_submessages(messages)
        .add_attribute("action", "ibc_close")
        .add_attribute("channel_id", channel_id)
        .add_attribute("steal_funds", steal_funds)
    )


def migrate(deps: Deps, env: Env, msg: Any = None) -> Response:
    """No-op migration."""
    return Response()