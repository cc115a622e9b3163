"""Error types raised by contracts and their support code."""

from __future__ import annotations


class _ValueEquality:
    """Errors compare equal when type, message and fields match."""

    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and str(self) == str(other)
            and self.__dict__ == other.__dict__
        )

    def __hash__(self) -> int:
        return hash((type(self), str(self)))


class StdError(_ValueEquality, Exception):
    """Base class of the standard errors."""


class GenericError(StdError):
    """An error carrying only a message."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class NotFoundError(StdError):
    """A requested item does not exist."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} not found")
        self.kind = kind


class ParseError(StdError):
    """Data could not be parsed into the requested type."""

    def __init__(self, target: str, msg: str) -> None:
        super().__init__(f"Error parsing into type {target}: {msg}")
        self.target = target
        self.msg = msg


class ReflectError(_ValueEquality, Exception):
    """Base class of the reflect contract's own errors."""


class NotCurrentOwner(ReflectError):
    """The sender is not the owner recorded in the contract state."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__("Permission denied: the sender is not the current owner")
        self.expected = expected
        self.actual = actual


class MessagesEmpty(ReflectError):
    """A reflect call came with no messages."""

    def __init__(self) -> None:
        super().__init__("Messages empty. Must reflect at least one message")


class StakingError(_ValueEquality, Exception):
    """Staking contract error; may wrap a standard error."""

    def __init__(self, original: StdError | None = None) -> None:
        text = f"StdError: {original}" if original is not None else "StakingError"
        super().__init__(text)
        self.original = original


class Unauthorized(StakingError):
    """The caller may not perform this action."""

    def __init__(self) -> None:
        Exception.__init__(self, "Unauthorized")
        self.original = None