import pytest

from shared.codec import PACKET_SIZE, decode, encode
from shared.commands import Ack, CommandType, Deliver, End, FetchRequest, Failure, Login
from shared.errors import CodecError


def _frame(text: bytes) -> bytes:
    return text.ljust(PACKET_SIZE, b"\x00")


def test_every_frame_is_packet_size():
    for cmd in (Login("alice", "secret"), Ack(), Failure("nope"), FetchRequest(),
                Deliver("alice", "bob", "hi"), End()):
        assert len(encode(cmd)) == PACKET_SIZE


def test_wire_layout_is_tilde_separated_and_nul_padded():
    frame = encode(Deliver("alice", "bob", "hello there"))
    assert frame.startswith(b"MSG~alice~bob~hello there\x00")
    assert frame.rstrip(b"\x00") == b"MSG~alice~bob~hello there"
    assert encode(Login("alice", "secret")).rstrip(b"\x00") == b"USR~alice~secret"


def test_decode_server_replies():
    assert decode(_frame(b"OK")) == Ack()
    assert decode(_frame(b"END")) == End()
    assert decode(_frame(b"ERR~bad password")) == Failure("bad password")
    assert decode(_frame(b"MSG~bob~alice~hi")) == Deliver("bob", "alice", "hi")


def test_bare_err_gets_default_reason():
    assert decode(_frame(b"ERR")) == Failure("Unknown error")


def test_err_reason_keeps_every_field():
    assert decode(_frame(b"ERR~a~b")) == Failure("a~b")


def test_last_field_may_contain_separator():
    cmd = Deliver("alice", "bob", "a~b~c")
    assert decode(encode(cmd)) == cmd
    assert decode(encode(Failure("x~y"))) == Failure("x~y")
    assert decode(encode(Login("alice", "p~w"))) == Login("alice", "p~w")


def test_unicode_body_survives():
    cmd = Deliver("alice", "bob", "héllo 👋")
    assert decode(encode(cmd)) == cmd


def test_encode_rejects_separator_in_leading_field():
    with pytest.raises(CodecError):
        encode(Deliver("al~ice", "bob", "hi"))
    with pytest.raises(CodecError):
        encode(Login("al~ice", "secret"))


def test_encode_rejects_nul():
    with pytest.raises(CodecError):
        encode(Deliver("alice", "bob", "hi\x00there"))


def test_encode_rejects_oversized_command():
    with pytest.raises(CodecError):
        encode(Deliver("alice", "bob", "x" * PACKET_SIZE))


@pytest.mark.parametrize("frame", [
    b"OK",                              # not padded to the frame size
    _frame(b""),                        # nothing but padding
    _frame(b"\xff\xfe"),                # not utf-8
    _frame(b"HELLO~there"),             # unknown tag
    _frame(b"MSG~alice~bob"),           # missing body
    _frame(b"USR~alice"),               # missing password
    _frame(b"OK~extra"),                # ack takes no fields
])
def test_decode_rejects_malformed_frames(frame):
    with pytest.raises(CodecError) as excinfo:
        decode(frame)
    assert excinfo.value.kind == "CodecError"


def test_command_types():
    assert Login("a", "b").type is CommandType.LOGIN
    assert Deliver("a", "b", "c").type.value == "MSG"
    with pytest.raises(ValueError):
        CommandType.from_string("NOPE")


def test_login_repr_hides_password():
    assert "secret" not in repr(Login("alice", "secret"))
