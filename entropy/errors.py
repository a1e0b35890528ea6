"""Domain errors and their mapping onto RPC status codes."""

from __future__ import annotations

import enum


class EntropyError(Exception):
    """Base class for errors raised by the service layer.

    An error carries a machine readable ``code``, a human readable message
    and an optional cause describing what went wrong underneath.
    """

    code = "internal_error"
    default_message = "some unexpected error occurred"

    def __init__(self, msg: str | None = None, cause: str | None = None) -> None:
        self.msg = msg if msg is not None else self.default_message
        self.cause = cause
        super().__init__(str(self))

    def with_msg(self, msg: str) -> EntropyError:
        """Return a copy of this error with a different message."""
        return type(self)(msg, self.cause)

    def with_cause(self, cause: object) -> EntropyError:
        """Return a copy of this error with the given cause attached."""
        return type(self)(self.msg, str(cause))

    def __str__(self) -> str:
        text = f"{self.code}: {self.msg}"
        if self.cause:
            text += f": {self.cause}"
        return text


class NotFoundError(EntropyError):
    code = "not_found"
    default_message = "requested entity not found"


class InvalidError(EntropyError):
    code = "bad_request"
    default_message = "request is not valid"


class ConflictError(EntropyError):
    code = "conflict"
    default_message = "an entity with conflicting identifier exists"


class InternalError(EntropyError):
    code = "internal_error"
    default_message = "some unexpected error occurred"


class UnsupportedError(EntropyError):
    code = "unsupported"
    default_message = "requested feature is not supported"


class StatusCode(enum.IntEnum):
    """The subset of RPC status codes the API layer produces."""

    INVALID_ARGUMENT = 3
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    INTERNAL = 13


class RPCError(Exception):
    """An error as reported to RPC clients: a status code and a description."""

    def __init__(self, code: StatusCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.name} desc = {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RPCError):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    def __hash__(self) -> int:
        return hash((self.code, self.message))


def _as_entropy_error(err: BaseException) -> EntropyError:
    if isinstance(err, EntropyError):
        return err
    return InternalError().with_cause(str(err))


def to_rpc_error(err: BaseException) -> RPCError:
    """Return the RPC error equivalent to ``err``."""
    e = _as_entropy_error(err)
    if isinstance(e, NotFoundError):
        code = StatusCode.NOT_FOUND
    elif isinstance(e, ConflictError):
        code = StatusCode.ALREADY_EXISTS
    elif isinstance(e, InvalidError):
        code = StatusCode.INVALID_ARGUMENT
    else:
        code = StatusCode.INTERNAL
    rpc_err = RPCError(code, str(e))
    rpc_err.__cause__ = err
    return rpc_err