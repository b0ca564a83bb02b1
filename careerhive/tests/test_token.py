import uuid

import jwt
import pytest

from careerhive.auth import get_token_from_header, resolve_identity
from careerhive.config import settings
from careerhive.token import create_access_token, decode_access_token


def test_create_access_token_roundtrip_subject():
    user_id = str(uuid.uuid4())
    tok = create_access_token(user_id)
    decoded = jwt.decode(tok, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert decoded["sub"] == user_id
    assert "exp" in decoded
    assert "iat" in decoded


def test_tokens_for_same_subject_differ():
    assert create_access_token("same") != create_access_token("same")


def test_decode_rejects_foreign_signature():
    tok = jwt.encode({"sub": "x"}, "not-the-secret", algorithm="HS256")
    with pytest.raises(jwt.PyJWTError):
        decode_access_token(tok)


def test_resolve_identity():
    user_id = uuid.uuid4()
    assert resolve_identity(create_access_token(str(user_id))) == user_id
    assert resolve_identity(create_access_token("not-a-uuid")) is None
    assert resolve_identity("garbage") is None
    no_sub = jwt.encode({"iat": 0}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert resolve_identity(no_sub) is None


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer abc.def", "abc.def"),
        ("BEARER  abc.def ", "abc.def"),
        ("Bearer ", None),
        ("Basic abc", None),
        ("", None),
        (None, None),
    ],
)
def test_get_token_from_header(header, expected):
    assert get_token_from_header(header) == expected
