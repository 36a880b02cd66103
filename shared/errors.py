from __future__ import annotations


class ChatError(Exception):
    """Base class for every recoverable error raised by the chat connector."""
    kind = "ChatError"


class ConfigMissingError(ChatError):
    """Raised when username, password or server address is not set."""
    kind = "ConfigMissing"


class NotConnectedError(ChatError):
    """Raised when an operation needs a socket and none is held."""
    kind = "NotConnected"


class PermissionDeniedError(ChatError):
    """Raised when the server rejects the login. str() is the server's reason."""
    kind = "PermissionDenied"


class InvalidDataError(ChatError):
    """Raised when a well-formed frame carries a command that makes no sense here."""
    kind = "InvalidData"


class ConnectFailedError(ChatError):
    """Raised when the server cannot be reached or never answers the handshake."""
    kind = "ConnectionRefused"


class ConnectionClosedError(ChatError):
    """Raised when reading or writing on an established connection fails."""
    kind = "ConnectionClosed"


class CodecError(ChatError):
    """Raised when a command cannot be encoded or a frame cannot be decoded."""
    kind = "CodecError"
