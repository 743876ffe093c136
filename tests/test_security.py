import base64
import json
import time
from datetime import timedelta

from jose import jwt

from security import create_access_token, decode_access_token, get_password_hash, verify_password

SECRET = "unit-secret"


def _tamper_signature(token):
    header, payload, signature = token.split(".")
    i = len(signature) // 2
    replacement = "A" if signature[i] != "A" else "B"
    return ".".join([header, payload, signature[:i] + replacement + signature[i + 1:]])


def test_hash_is_salted_and_verifies():
    first = get_password_hash("hunter22")
    second = get_password_hash("hunter22")
    assert first != "hunter22"
    assert first != second
    assert verify_password("hunter22", first)
    assert not verify_password("hunter23", first)


def test_hash_uses_ten_rounds():
    assert get_password_hash("hunter22").startswith(("$2b$10$", "$2a$10$"))


def test_unrecognised_hash_is_a_mismatch():
    assert verify_password("hunter22", "plaintext-not-a-hash") is False


def test_token_round_trip():
    token = create_access_token(42, SECRET)
    assert decode_access_token(token, SECRET) == 42


def test_token_expires_after_one_hour():
    token = create_access_token(42, SECRET)
    claims = jwt.get_unverified_claims(token)
    remaining = claims["exp"] - int(time.time())
    assert 3590 <= remaining <= 3600


def test_expired_token_is_rejected():
    token = create_access_token(42, SECRET, expires_delta=timedelta(seconds=-10))
    assert decode_access_token(token, SECRET) is None


def test_altered_signature_is_rejected():
    token = create_access_token(42, SECRET)
    assert decode_access_token(_tamper_signature(token), SECRET) is None


def test_altered_payload_is_rejected():
    token = create_access_token(42, SECRET)
    header, payload, signature = token.split(".")
    claims = jwt.get_unverified_claims(token)
    claims["id"] = 1
    forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    assert decode_access_token(".".join([header, forged, signature]), SECRET) is None


def test_foreign_secret_is_rejected():
    token = create_access_token(42, "someone-else")
    assert decode_access_token(token, SECRET) is None


def test_garbage_and_missing_claim_are_rejected():
    assert decode_access_token("not.a.token", SECRET) is None
    no_id = jwt.encode({"sub": "42"}, SECRET, algorithm="HS256")
    assert decode_access_token(no_id, SECRET) is None
