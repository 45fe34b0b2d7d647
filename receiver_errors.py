# receiver_errors.py
"""Failures the receiver reports as a single `Error: ...` line."""


class ServerError(Exception):
    pass


class UsageError(ServerError):
    pass


class SocketError(ServerError):
    """A socket call failed. `location` names the call, `cause` is the OS error."""

    def __init__(self, location: str, cause: BaseException):
        self.location = location
        self.cause = cause
        super().__init__(f"({location}) {describe(cause)}")

    @property
    def errno(self):
        return getattr(self.cause, "errno", None)


class SocketCreationError(SocketError):
    pass


class BindError(SocketError):
    pass


class ListenError(SocketError):
    pass


class AcceptError(SocketError):
    pass


class ReceiveError(SocketError):
    pass


def describe(cause: BaseException) -> str:
    # OSError carries strerror; OverflowError from bind() only has args
    text = getattr(cause, "strerror", None)
    return text if text else str(cause)
