from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class CommandType(str, Enum):
    """Wire tags of the chat protocol commands."""

    LOGIN = "USR"          # client -> server, first frame of a session
    ACK = "OK"             # server -> client, login accepted
    FAILURE = "ERR"        # server -> client, carries a reason
    FETCH = "GET"          # client -> server, "give me one pending message"
    DELIVER = "MSG"        # both ways, an application chat message
    END = "END"            # server -> client, nothing pending

    @classmethod
    def from_string(cls, value: str) -> CommandType:
        """Convert a wire tag to CommandType, raise ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown command type: {value}")


@dataclass(frozen=True)
class Login:
    username: str
    password: str
    type = CommandType.LOGIN

    def __repr__(self) -> str:
        # keep the password out of logs and tracebacks
        return f"Login(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class Ack:
    type = CommandType.ACK


@dataclass(frozen=True)
class Failure:
    reason: str
    type = CommandType.FAILURE


@dataclass(frozen=True)
class FetchRequest:
    type = CommandType.FETCH


@dataclass(frozen=True)
class Deliver:
    sender: str
    target: str
    body: str
    type = CommandType.DELIVER


@dataclass(frozen=True)
class End:
    type = CommandType.END


Command = Union[Login, Ack, Failure, FetchRequest, Deliver, End]
