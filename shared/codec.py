"""
Frame codec for the tildechat wire protocol.

Every frame is exactly PACKET_SIZE bytes: UTF-8 text with fields joined by
'~', NUL padded up to the frame size.

    USR~<username>~<password>
    OK
    ERR~<reason>
    GET
    MSG~<sender>~<target>~<body>
    END

Only the last field of a command may contain '~'.
"""

from __future__ import annotations

from typing import List

from shared.commands import Ack, Command, CommandType, Deliver, End, FetchRequest, Failure, Login
from shared.errors import CodecError

PACKET_SIZE = 1024
SEPARATOR = "~"
PADDING = b"\x00"
ENC = "utf-8"

# Reason used when the server sends a bare ERR
UNKNOWN_ERROR = "Unknown error"


def _fields(cmd: Command) -> List[str]:
    if isinstance(cmd, Login):
        return [cmd.username, cmd.password]
    if isinstance(cmd, Failure):
        return [cmd.reason]
    if isinstance(cmd, Deliver):
        return [cmd.sender, cmd.target, cmd.body]
    if isinstance(cmd, (Ack, FetchRequest, End)):
        return []
    raise CodecError(f"Cannot encode {type(cmd).__name__}")


def encode(cmd: Command) -> bytes:
    """Encode a command into one PACKET_SIZE frame."""
    fields = _fields(cmd)
    for i, field in enumerate(fields):
        if "\x00" in field:
            raise CodecError(f"{cmd.type.value} field {i} contains NUL")
        if SEPARATOR in field and i != len(fields) - 1:
            raise CodecError(f"{cmd.type.value} field {i} contains '{SEPARATOR}'")

    data = SEPARATOR.join([cmd.type.value, *fields]).encode(ENC)
    if len(data) > PACKET_SIZE:
        raise CodecError(f"{cmd.type.value} command is {len(data)} bytes, frame holds {PACKET_SIZE}")
    return data.ljust(PACKET_SIZE, PADDING)


def decode(frame: bytes) -> Command:
    """Decode one PACKET_SIZE frame into a command, raising CodecError on malformed input."""
    if len(frame) != PACKET_SIZE:
        raise CodecError(f"Frame is {len(frame)} bytes, expected {PACKET_SIZE}")

    raw = bytes(frame).rstrip(PADDING)
    if not raw:
        raise CodecError("Empty frame")
    try:
        text = raw.decode(ENC)
    except UnicodeDecodeError as e:
        raise CodecError(f"Frame is not valid {ENC}: {e}") from e

    tag, _, rest = text.partition(SEPARATOR)
    try:
        ctype = CommandType.from_string(tag)
    except ValueError as e:
        raise CodecError(str(e)) from e

    if ctype is CommandType.ACK:
        _expect_no_fields(ctype, text)
        return Ack()
    if ctype is CommandType.FETCH:
        _expect_no_fields(ctype, text)
        return FetchRequest()
    if ctype is CommandType.END:
        _expect_no_fields(ctype, text)
        return End()
    if ctype is CommandType.FAILURE:
        # the reason is the whole remainder, "~" included, not just its first field
        return Failure(rest or UNKNOWN_ERROR)
    if ctype is CommandType.LOGIN:
        parts = rest.split(SEPARATOR, 1)
        if len(parts) != 2:
            raise CodecError(f"USR expects 2 fields, got {len(parts)}")
        return Login(parts[0], parts[1])

    # MSG: body is the remainder and may itself contain the separator
    parts = rest.split(SEPARATOR, 2)
    if len(parts) != 3:
        raise CodecError(f"MSG expects 3 fields, got {len(parts)}")
    return Deliver(parts[0], parts[1], parts[2])


def _expect_no_fields(ctype: CommandType, text: str) -> None:
    if text != ctype.value:
        raise CodecError(f"{ctype.value} takes no fields")
