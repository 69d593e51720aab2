import hashlib
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from app.core.errors import ErrorKind, ServiceError
from app.core.security import DeviceClaims, TokenService

CLAIMS = DeviceClaims(companyId=7, deviceId="c0ffee", org="acme", model="Pixel", uuid="d1")


def _flip_signature_char(token: str) -> str:
    header, payload, signature = token.split(".")
    index = len(signature) // 2
    replacement = "A" if signature[index] != "A" else "B"
    return ".".join((header, payload, signature[:index] + replacement + signature[index + 1 :]))


def test_issue_verify_returns_identical_claims():
    tokens = TokenService("secret")
    assert tokens.verify(tokens.issue(CLAIMS)) == CLAIMS


def test_tokens_do_not_expire_by_default():
    tokens = TokenService("secret")
    payload = jwt.decode(tokens.issue(CLAIMS), "secret", algorithms=["HS256"])
    assert "exp" not in payload
    assert tokens.expires_in == -1


def test_expiring_tokens_carry_exp_but_verify_returns_identity_only():
    tokens = TokenService("secret", expire_minutes=5)
    token = tokens.issue(CLAIMS)
    assert "exp" in jwt.decode(token, "secret", algorithms=["HS256"])
    assert tokens.verify(token) == CLAIMS
    assert tokens.expires_in == 300


def test_flipped_signature_is_denied():
    tokens = TokenService("secret")
    with pytest.raises(ServiceError) as exc_info:
        tokens.verify(_flip_signature_char(tokens.issue(CLAIMS)))
    assert exc_info.value.kind is ErrorKind.ACCESS_DENIED


@pytest.mark.parametrize(
    "token",
    [
        "not-a-token",
        "",
        jwt.encode(CLAIMS.to_dict(), "other-secret", algorithm="HS256"),
        jwt.encode({"deviceId": "c0ffee", "org": "acme"}, "secret", algorithm="HS256"),
        jwt.encode({**CLAIMS.to_dict(), "companyId": "7"}, "secret", algorithm="HS256"),
        jwt.encode({**CLAIMS.to_dict(), "companyId": True}, "secret", algorithm="HS256"),
        jwt.encode(
            {**CLAIMS.to_dict(), "exp": int((datetime.now(UTC) - timedelta(minutes=1)).timestamp())},
            "secret",
            algorithm="HS256",
        ),
    ],
)
def test_bad_tokens_share_one_denial(token):
    with pytest.raises(ServiceError) as exc_info:
        TokenService("secret").verify(token)
    assert exc_info.value.kind is ErrorKind.ACCESS_DENIED
    assert exc_info.value.message == "Access denied"


def test_refresh_is_md5_fingerprint_of_access_token():
    tokens = TokenService("secret")
    token = tokens.issue(CLAIMS)
    assert tokens.derive_refresh(token) == hashlib.md5(token.encode()).hexdigest()
    assert tokens.derive_refresh(token) == tokens.derive_refresh(token)
