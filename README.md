# contractkit

A small framework for writing and exercising smart contracts in Python.
It gives you an ordered in-memory key-value store, chain messages,
responses, sub-messages and replies, and mock chain dependencies. The
mocks cover an address validator, bank balances and custom queries.
Several example contracts are built on these pieces.

## Modules

- `contractkit.storage`: `MemoryStorage`, with `get`, `set`, `remove` and
  ordered `range` iteration over `[start, end)` using `Order.ASCENDING` or
  `Order.DESCENDING`. It also has `to_length_prefixed`,
  `namespace_with_key` and the JSON item helpers `load_item`, `save_item`
  and `update_item`.
- `contractkit.cosmos`:
  - `Coin`, `coin`, `coins`, `Attribute` and `Event`.
  - The messages `BankSend`, `StakingDelegate`, `WasmInstantiate`,
    `WasmExecute` and `CustomMessage`, converted with `encode_message` and
    `decode_message`.
  - `SubMsg` and `ReplyOn`, `Response`, `SubMsgResponse` and `Reply`.
  - `to_binary` and `from_binary` for JSON.
  - `mock_env`, `mock_info`, `MockApi`, `MockQuerier`, `Deps` and
    `mock_dependencies`.
  - The IBC mocks `IbcOrder`, `IbcChannel`, `IbcPacket` and the
    `mock_ibc_*` constructors.
- `contractkit.errors`:
  - `StdError` and its subclasses `GenericError`, `NotFoundError` and
    `ParseError`.
  - `ReflectError` and its subclasses `NotCurrentOwner` and
    `MessagesEmpty`.
  - `StakingError` and its subclass `Unauthorized`.
- `contractkit.queue`: a FIFO queue contract.
  - Execute messages: `Enqueue` and `Dequeue`.
  - Queries: count, sum, reducer, ID listing around 0x20, and
    open-iterators.
  - `migrate` clears the queue and refills it with 100, 101 and 102.
- `contractkit.reflect`:
  - A contract that passes the owner's messages (`ReflectMsg`) and
    sub-messages (`ReflectSubMsg`) through.
  - `ChangeOwner` changes the owner.
  - `reply` stores replies, which can be read back later.
  - Queries: `OwnerQuery`, `CapitalizedQuery`, `ChainQuery`, `RawQuery`
    and `SubMsgResultQuery`.
  - `mock_dependencies_with_custom_querier` returns dependencies whose
    querier answers `Ping` with "pong" and `Capitalized` with upper-cased
    text.
- `contractkit.ibc_reflect_msg`:
  - The packet messages of the IBC reflect contract: `Dispatch`, `WhoAmI`,
    `Balances`, `Panic`, `ReturnErr` and `ReturnMsgs`.
  - Acknowledgements: `ack_ok`, `ack_error` and `parse_ack`.
  - The per-channel account store: `save_account`, `load_account`,
    `range_accounts` and related functions.
- `contractkit.ibc_channel`: the channel lifecycle of the IBC reflect
  contract.
  - `ibc_channel_open` accepts only ordered channels whose counterparty
    version is `ibc-reflect-v1`.
  - `ibc_channel_connect` instantiates a reflect contract for the channel.
  - `reply` registers the new account.
  - `ibc_channel_close` removes the channel's account. If that account
    holds funds, it also sends them to this contract.
- `contractkit.ibc_reflect`:
  - Account queries for the IBC reflect contract.
  - `ibc_packet_receive` handles incoming packets. Application errors
    become error acknowledgements rather than exceptions.
- `contractkit.staking`: the messages, queries, responses and stored
  state of a staking-derivative contract. It also provides
  `parse_execute_msg`, `parse_query_msg` and the balance-map helpers
  `may_load_map`, `load_map` and `save_map`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from contractkit import queue
from contractkit.cosmos import mock_dependencies, mock_env, mock_info

deps = mock_dependencies([])
info = mock_info("creator", [])
queue.instantiate(deps, mock_env(), info)
queue.execute(deps, mock_env(), info, queue.Enqueue(value=25))
queue.execute(deps, mock_env(), info, queue.Enqueue(value=17))

print(queue.query_count(deps).count)  # 2
print(queue.query_sum(deps).sum)      # 42
```

The reflect contract passes messages through only when the owner sends
them:

```python
from contractkit import reflect
from contractkit.cosmos import BankSend, coins, mock_env, mock_info
from contractkit.errors import NotCurrentOwner

deps = reflect.mock_dependencies_with_custom_querier([])
reflect.instantiate(deps, mock_env(), mock_info("creator", []), reflect.InstantiateMsg())

msg = reflect.ReflectMsg(msgs=[BankSend(to_address="friend", amount=coins(1, "token"))])
response = reflect.execute(deps, mock_env(), mock_info("creator", []), msg)

try:
    reflect.execute(deps, mock_env(), mock_info("random", []), msg)
except NotCurrentOwner as err:
    print(err)  # Permission denied: the sender is not the current owner
```

Entry points report failures by raising a `StdError` subclass or a
contract-specific error. They never return status codes.

## What it does not do

- All state lives in `MemoryStorage` and is lost when the process ends.
  Nothing is persisted to disk.
- Contracts are called directly as Python functions. No chain executes
  the messages they return. Dispatching sub-messages and producing
  replies is left to the caller.
- `contractkit.staking` defines only messages and state. It has no
  `instantiate`, `execute` or `query` entry points.
- The package has no command-line tool and does not export JSON schemas.