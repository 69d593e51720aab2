import pytest

from app.core.crypto import PayloadCodec, PayloadDecodeError
from app.core.errors import ErrorKind

IV = bytes(range(16))
SALT = bytes.fromhex("0011223344556677")


def test_encrypted_marker_is_the_content_type():
    assert PayloadCodec.is_encrypted({"content-type": "application/octet-stream"})
    assert PayloadCodec.is_encrypted({"content-type": "Application/Octet-Stream; charset=binary"})
    assert not PayloadCodec.is_encrypted({"content-type": "application/json"})
    assert not PayloadCodec.is_encrypted({})


def test_decrypts_client_payload():
    codec = PayloadCodec("password")
    body = codec.encrypt([{"uuid": "a"}, {"uuid": "b"}], iv=IV, salt=SALT)
    assert codec.decrypt(body.encode()) == [{"uuid": "a"}, {"uuid": "b"}]


def test_wrong_password_fails_as_internal_error():
    body = PayloadCodec("password").encrypt({"uuid": "a"}, iv=IV, salt=SALT)
    with pytest.raises(PayloadDecodeError) as exc_info:
        PayloadCodec("other").decrypt(body)
    assert exc_info.value.kind is ErrorKind.INTERNAL


@pytest.mark.parametrize("body", [b"", b"garbage", b"a:b:c", b"\xff\xfe:00:AA=="])
def test_malformed_encrypted_bodies_are_rejected(body):
    with pytest.raises(PayloadDecodeError):
        PayloadCodec("password").decrypt(body)


def test_plain_bodies_pass_through():
    codec = PayloadCodec("password")
    headers = {"content-type": "application/json"}
    assert codec.decode(headers, b'{"coords": {"latitude": 1.5}}') == {"coords": {"latitude": 1.5}}
    assert codec.decode(headers, b"[]") == []
    assert codec.decode(headers, b"  ") is None


def test_plain_body_that_is_not_json_is_rejected():
    with pytest.raises(PayloadDecodeError):
        PayloadCodec("password").decode({"content-type": "application/json"}, b"{nope")
