"""Tests for cookie and signed request verification."""

import base64
import hashlib
import hmac
import json
import os
import time

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

import fbclient
from fbclient.auth import (
    build_signed_request,
    get_user_from_cookie,
    parse_cookie,
    parse_signed_request,
)

ENCRYPTED = "AES-256-CBC HMAC-SHA256"


def b64url(data):
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def md5_sig(fields, secret):
    payload = "".join(f"{k}={fields[k]}" for k in sorted(fields) if k != "sig")
    return hashlib.md5((payload + secret).encode("utf-8")).hexdigest()


def make_cookie(fields, secret):
    fields = dict(fields)
    fields["sig"] = md5_sig(fields, secret)
    return '"%s"' % "&".join(f"{k}={v}" for k, v in fields.items())


def sign(envelope, secret):
    encoded_envelope = b64url(json.dumps(envelope).encode("utf-8"))
    sig = hmac.new(secret.encode("utf-8"), encoded_envelope.encode("ascii"), hashlib.sha256).digest()
    return f"{b64url(sig)}.{encoded_envelope}"


def encrypt(data, secret, pad_byte=None):
    plaintext = json.dumps(data).encode("utf-8")
    pad = 16 - len(plaintext) % 16
    plaintext += bytes([pad_byte if pad_byte is not None else pad]) * pad
    iv = os.urandom(16)
    encryptor = Cipher(algorithms.AES(secret.encode("utf-8")), modes.CBC(iv)).encryptor()
    payload = encryptor.update(plaintext) + encryptor.finalize()
    return {"iv": b64url(iv), "payload": b64url(payload)}


class TestParseCookie:
    def test_strips_quotes(self):
        assert parse_cookie('"uid=5&expires=0"') == {"uid": "5", "expires": "0"}

    def test_value_with_equals(self):
        assert parse_cookie("session_key=a=b&uid=5") == {"session_key": "a=b", "uid": "5"}


class TestGetUserFromCookie:
    def test_valid_cookie(self, app_id, app_secret):
        sig = md5_sig({"uid": "5", "access_token": "AT", "expires": "0"}, app_secret)
        cookies = {f"fbs_{app_id}": f'"uid=5&access_token=AT&expires=0&sig={sig}"'}

        result = get_user_from_cookie(cookies, app_id, app_secret)

        assert result == {"uid": "5", "access_token": "AT", "expires": "0", "sig": sig}

    def test_missing_cookie(self, app_id, app_secret):
        assert get_user_from_cookie({"fbs_999": "uid=5"}, app_id, app_secret) is None

    def test_empty_cookie(self, app_id, app_secret):
        assert get_user_from_cookie({f"fbs_{app_id}": ""}, app_id, app_secret) is None

    def test_integer_app_id(self, app_secret):
        cookies = {"fbs_123": make_cookie({"uid": "5", "access_token": "AT", "expires": "0"}, app_secret)}
        assert get_user_from_cookie(cookies, 123, app_secret)["uid"] == "5"

    def test_tampered_sig(self, app_id, app_secret):
        cookies = {f"fbs_{app_id}": '"uid=5&access_token=AT&expires=0&sig=0123456789abcdef0123456789abcdef"'}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_tampered_field(self, app_id, app_secret):
        cookie = make_cookie({"uid": "5", "access_token": "AT", "expires": "0"}, app_secret)
        cookies = {f"fbs_{app_id}": cookie.replace("uid=5", "uid=6")}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_wrong_secret(self, app_id, app_secret):
        cookies = {f"fbs_{app_id}": make_cookie({"uid": "5", "access_token": "AT", "expires": "0"}, "other")}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_missing_sig(self, app_id, app_secret):
        cookies = {f"fbs_{app_id}": "uid=5&access_token=AT&expires=0"}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_expired(self, app_id, app_secret):
        expires = str(int(time.time()) - 60)
        cookies = {f"fbs_{app_id}": make_cookie({"uid": "5", "access_token": "AT", "expires": expires}, app_secret)}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_not_yet_expired(self, app_id, app_secret):
        expires = str(int(time.time()) + 3600)
        cookies = {f"fbs_{app_id}": make_cookie({"uid": "5", "access_token": "AT", "expires": expires}, app_secret)}
        assert get_user_from_cookie(cookies, app_id, app_secret)["expires"] == expires

    def test_missing_expires(self, app_id, app_secret):
        cookies = {f"fbs_{app_id}": make_cookie({"uid": "5", "access_token": "AT"}, app_secret)}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None

    def test_garbage_expires(self, app_id, app_secret):
        cookies = {f"fbs_{app_id}": make_cookie({"uid": "5", "access_token": "AT", "expires": "soon"}, app_secret)}
        assert get_user_from_cookie(cookies, app_id, app_secret) is None


class TestParseSignedRequest:
    def test_plain_round_trip(self, app_secret):
        envelope = {
            "algorithm": "HMAC-SHA256",
            "issued_at": int(time.time()),
            "user_id": "5",
            "oauth_token": "AT",
            "user": {"locale": "en_US", "country": "us"},
        }
        assert parse_signed_request(sign(envelope, app_secret), app_secret) == envelope

    def test_plain_ignores_age(self, app_secret):
        envelope = {"algorithm": "HMAC-SHA256", "issued_at": 0, "user_id": "5"}
        assert parse_signed_request(sign(envelope, app_secret), app_secret) == envelope

    def test_plain_tampered_signature(self, app_secret):
        envelope = {"algorithm": "HMAC-SHA256", "issued_at": int(time.time())}
        with pytest.raises(fbclient.SignatureError, match="Invalid signature"):
            parse_signed_request(sign(envelope, "another secret"), app_secret)

    def test_plain_tampered_envelope(self, app_secret):
        signed = sign({"algorithm": "HMAC-SHA256", "user_id": "5"}, app_secret)
        encoded_sig = signed.split(".")[0]
        forged = b64url(json.dumps({"algorithm": "HMAC-SHA256", "user_id": "6"}).encode("utf-8"))
        with pytest.raises(fbclient.SignatureError, match="Invalid signature"):
            parse_signed_request(f"{encoded_sig}.{forged}", app_secret)

    def test_undecodable_signature(self, app_secret):
        encoded_envelope = sign({"algorithm": "HMAC-SHA256"}, app_secret).split(".")[1]
        with pytest.raises(fbclient.SignatureError, match="Invalid signature"):
            parse_signed_request(f"a.{encoded_envelope}", app_secret)

    def test_unsupported_algorithm(self, app_secret):
        envelope = {"algorithm": "HMAC-MD5", "issued_at": int(time.time())}
        with pytest.raises(fbclient.SignatureError, match="Unsupported algorithm"):
            parse_signed_request(sign(envelope, app_secret), app_secret)

    def test_algorithm_is_case_sensitive(self, app_secret):
        envelope = {"algorithm": "hmac-sha256"}
        with pytest.raises(fbclient.SignatureError, match="Unsupported algorithm"):
            parse_signed_request(sign(envelope, app_secret), app_secret)

    def test_missing_algorithm(self, app_secret):
        with pytest.raises(fbclient.SignatureError, match="Unsupported algorithm"):
            parse_signed_request(sign({"user_id": "5"}, app_secret), app_secret)

    def test_no_separator(self, app_secret):
        with pytest.raises(fbclient.ArgumentError):
            parse_signed_request("nodothere", app_secret)

    def test_malformed_is_value_error(self, app_secret):
        with pytest.raises(ValueError):
            parse_signed_request("abc.%%%%", app_secret)

    def test_envelope_not_an_object(self, app_secret):
        encoded_envelope = b64url(b"[1, 2]")
        with pytest.raises(fbclient.ArgumentError):
            parse_signed_request(f"abc.{encoded_envelope}", app_secret)

    def test_encrypted(self, app_secret):
        data = {"user_id": "5", "oauth_token": "AT", "expires": 0}
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time())}
        envelope.update(encrypt(data, app_secret))

        assert parse_signed_request(sign(envelope, app_secret), app_secret) == data

    def test_encrypted_null_padding(self, app_secret):
        data = {"user_id": "5"}
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time())}
        envelope.update(encrypt(data, app_secret, pad_byte=0))

        assert parse_signed_request(sign(envelope, app_secret), app_secret) == data

    def test_encrypted_too_old(self, app_secret):
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time()) - 3601}
        envelope.update(encrypt({"user_id": "5"}, app_secret))
        with pytest.raises(fbclient.SignatureError, match="Too old"):
            parse_signed_request(sign(envelope, app_secret), app_secret)

    def test_encrypted_custom_max_age(self, app_secret):
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time()) - 120}
        envelope.update(encrypt({"user_id": "5"}, app_secret))
        signed = sign(envelope, app_secret)

        assert parse_signed_request(signed, app_secret, max_age=600) == {"user_id": "5"}
        with pytest.raises(fbclient.SignatureError, match="Too old"):
            parse_signed_request(signed, app_secret, max_age=60)

    def test_encrypted_tampered_signature(self, app_secret):
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time())}
        envelope.update(encrypt({"user_id": "5"}, app_secret))
        with pytest.raises(fbclient.SignatureError, match="Invalid signature"):
            parse_signed_request(sign(envelope, "fedcba9876543210fedcba9876543210"), app_secret)

    def test_encrypted_unaligned_payload(self, app_secret):
        envelope = {
            "algorithm": ENCRYPTED,
            "issued_at": int(time.time()),
            "iv": b64url(os.urandom(16)),
            "payload": b64url(os.urandom(20)),
        }
        with pytest.raises(fbclient.SignatureError, match="Malformed payload"):
            parse_signed_request(sign(envelope, app_secret), app_secret)

    def test_encrypted_missing_iv(self, app_secret):
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time()), "payload": b64url(os.urandom(32))}
        with pytest.raises(fbclient.SignatureError, match="Malformed payload"):
            parse_signed_request(sign(envelope, app_secret), app_secret)

    def test_encrypted_short_secret(self):
        secret = "short"
        envelope = {"algorithm": ENCRYPTED, "issued_at": int(time.time()), "iv": b64url(os.urandom(16)),
                    "payload": b64url(os.urandom(32))}
        with pytest.raises(fbclient.SignatureError):
            parse_signed_request(sign(envelope, secret), secret)


class TestBuildSignedRequest:
    def test_defaults(self, app_secret):
        signed = build_signed_request({"user_id": "5"}, app_secret)
        data = parse_signed_request(signed, app_secret)
        assert data["algorithm"] == "HMAC-SHA256"
        assert data["user_id"] == "5"
        assert abs(data["issued_at"] - time.time()) < 60

    def test_no_padding(self, app_secret):
        signed = build_signed_request({"user_id": "5"}, app_secret)
        assert "=" not in signed
        assert signed.count(".") == 1

    def test_matches_independent_signer(self, app_secret):
        envelope = {"algorithm": "HMAC-SHA256", "issued_at": 1300000000, "user_id": "5"}
        assert build_signed_request(envelope, app_secret) == sign(envelope, app_secret)
