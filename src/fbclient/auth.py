#!/usr/bin/env python
#
# Copyright 2010 Facebook
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may
# not use this file except in compliance with the License. You may obtain
# a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations
# under the License.

"""Authentication

Cookie and signed request verification, plus the OAuth token exchanges.
"""

import base64
import hashlib
import hmac
import json
import logging
import time

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

import fbclient
from fbclient.api import API, decode_body

log = logging.getLogger(__name__)

SIGNED_ALGORITHM = "HMAC-SHA256"
ENCRYPTED_ALGORITHM = "AES-256-CBC HMAC-SHA256"
SUPPORTED_ALGORITHMS = (SIGNED_ALGORITHM, ENCRYPTED_ALGORITHM)

AES_KEY_SIZE = 32
AES_BLOCK_SIZE = 16

# Whitespace, NUL and PKCS#7 pad bytes around the decrypted JSON
_PAYLOAD_PADDING = bytes(range(0x21))


def _to_bytes(value):
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def base64_url_decode(data):
    """Perform Base 64 decoding for url-safe strings with missing padding."""
    return base64.urlsafe_b64decode(data + "=" * ((4 - len(data) % 4) % 4))


def base64_url_encode(data):
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def parse_cookie(cookie):
    """Split a raw fbs_ cookie value into its fields"""
    fields = dict()
    for bit in cookie.strip('"').split("&"):
        if not bit:
            continue
        key, _, value = bit.partition("=")
        fields[key] = value
    return fields


def cookie_signature(fields, app_secret):
    payload = "".join(k + "=" + fields[k] for k in sorted(fields.keys())
                      if k != "sig")
    return hashlib.md5(_to_bytes(payload) + _to_bytes(app_secret)).hexdigest()


def get_user_from_cookie(cookies, app_id, app_secret):
    """Parses the cookie set by the official Facebook JavaScript SDK.

    cookies should be a dictionary-like object mapping cookie names to
    cookie values.

    If the user is logged in via Facebook, we return a dictionary with the
    keys "uid" and "access_token" (along with "expires", "sig" and whatever
    else the cookie holds). The former is the user's Facebook ID, and the
    latter can be used to make authenticated requests to the Graph API.
    If the user is not logged in, or the cookie doesn't verify, we return None.
    """
    cookie = cookies.get("fbs_" + str(app_id), "")
    if not cookie:
        return None

    args = parse_cookie(cookie)
    sig = cookie_signature(args, app_secret)
    if not hmac.compare_digest(_to_bytes(sig), _to_bytes(args.get("sig", ""))):
        log.debug("Cookie signature mismatch for app %s", app_id)
        return None

    expires = args.get("expires")
    if expires == "0":
        return args

    try:
        expires = int(expires)
    except (TypeError, ValueError):
        return None

    if time.time() < expires:
        return args
    else:
        return None


def parse_signed_request(signed_request, app_secret, max_age=3600):
    """Return dictionary with signed request data.

    Both plain HMAC-SHA256 requests and the encrypted
    "AES-256-CBC HMAC-SHA256" flavor are supported. For the latter, the
    decrypted payload is returned, and the request is rejected when it was
    issued more than `max_age` seconds ago.

    Raises fbclient.SignatureError if the request doesn't verify, and
    fbclient.ArgumentError if it can't be decoded at all.
    """
    try:
        encoded_sig, encoded_envelope = signed_request.split('.', 1)
    except (AttributeError, ValueError):
        raise fbclient.ArgumentError("'signed_request' malformed")

    try:
        envelope = json.loads(base64_url_decode(encoded_envelope))
    except ValueError as e:
        raise fbclient.ArgumentError("'signed_request' malformed") from e

    if not isinstance(envelope, dict):
        raise fbclient.ArgumentError("'signed_request' malformed")

    algorithm = envelope.get('algorithm')
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise fbclient.SignatureError("Invalid request. (Unsupported algorithm.)")

    if algorithm == ENCRYPTED_ALGORITHM and _to_int(envelope.get('issued_at')) < int(time.time()) - max_age:
        raise fbclient.SignatureError("Invalid request. (Too old.)")

    try:
        sig = base64_url_decode(encoded_sig)
    except ValueError:
        sig = b""

    expected_sig = hmac.new(_to_bytes(app_secret), msg=_to_bytes(encoded_envelope), digestmod=hashlib.sha256).digest()
    if not hmac.compare_digest(sig, expected_sig):
        raise fbclient.SignatureError("Invalid request. (Invalid signature.)")

    # Signed but not encrypted, the envelope is the data
    if algorithm == SIGNED_ALGORITHM:
        return envelope

    return _decrypt_payload(envelope, app_secret)


def _decrypt_payload(envelope, app_secret):
    key = _to_bytes(app_secret)
    if len(key) != AES_KEY_SIZE:
        raise fbclient.SignatureError("Invalid request. (App secret is not an AES-256 key.)")

    try:
        iv = base64_url_decode(envelope['iv'])
        payload = base64_url_decode(envelope['payload'])
    except (KeyError, TypeError, ValueError) as e:
        raise fbclient.SignatureError("Invalid request. (Malformed payload.)") from e

    if len(iv) != AES_BLOCK_SIZE or not payload or len(payload) % AES_BLOCK_SIZE:
        raise fbclient.SignatureError("Invalid request. (Malformed payload.)")

    # No padding scheme, the payload is block aligned already
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    data = decryptor.update(payload) + decryptor.finalize()

    try:
        return json.loads(data.strip(_PAYLOAD_PADDING))
    except ValueError as e:
        raise fbclient.SignatureError("Invalid request. (Undecryptable payload.)") from e


def build_signed_request(data, app_secret):
    """Build a signed_request string the way Facebook hands it to canvas apps

    `algorithm` defaults to HMAC-SHA256 and `issued_at` to now.
    """
    data = dict(data)
    data.setdefault('algorithm', SIGNED_ALGORITHM)
    data.setdefault('issued_at', int(time.time()))

    payload = base64_url_encode(_to_bytes(json.dumps(data)))
    sig = hmac.new(_to_bytes(app_secret), msg=_to_bytes(payload), digestmod=hashlib.sha256).digest()

    return ".".join((base64_url_encode(sig), payload))


def parse_access_token(response_text):
    """Parse an 'access_token=...&expires=...' response into a dictionary"""
    components = dict()
    for bit in response_text.split("&"):
        if not bit:
            continue
        key, _, value = bit.partition("=")
        components[key] = value
    return components


def _raise_for_error(response_text):
    if "error" not in response_text:
        return
    try:
        details = json.loads(response_text)["error"]
    except (ValueError, KeyError, TypeError):
        details = None
    if not isinstance(details, dict):
        details = None
    raise fbclient.UpstreamAPIError.from_details(details)


class OAuth(object):
    """OAuth helpers bound to one application.

        oauth = fbclient.OAuth(app_id, app_secret, "http://example.com/callback",
                               http_service=fbclient.HTTPService())
        redirect(oauth.url_for_oauth_code(permissions=["email"]))
        ...
        token = oauth.get_access_token(request.args["code"])

    Cookie and signed request parsing need no HTTP service. Token exchanges
    do, and raise fbclient.ArgumentError without one.
    """
    def __init__(self, app_id, app_secret, oauth_callback_url=None, http_service=None):
        self.app_id = app_id
        self.app_secret = app_secret
        self.oauth_callback_url = oauth_callback_url
        self.api = API(http_service) if http_service is not None else None

    # Cookies and signed requests

    def get_user_info_from_cookie(self, cookies):
        return get_user_from_cookie(cookies, self.app_id, self.app_secret)

    def get_user_from_cookie(self, cookies):
        """Return the Facebook user id from the cookies, or None"""
        info = self.get_user_info_from_cookie(cookies)
        if info:
            return info.get("uid")
        return None

    def parse_signed_request(self, signed_request, max_age=3600):
        return parse_signed_request(signed_request, self.app_secret, max_age=max_age)

    # URLs

    def url_for_oauth_code(self, callback=None, permissions=None):
        """Creates the URL for oauth authorization for a callback and optional set of permissions

        permissions may be a list of permission names or a comma separated string.
        See http://developers.facebook.com/docs/authentication/permissions
        """
        callback = callback or self.oauth_callback_url
        if not callback:
            raise fbclient.ArgumentError("url_for_oauth_code needs a callback, either passed in or set on the OAuth object")

        if permissions:
            if not isinstance(permissions, str):
                permissions = ",".join(permissions)
            scope = "&scope=%s" % permissions
        else:
            scope = ""

        return "https://%s/oauth/authorize?client_id=%s&redirect_uri=%s%s" % (
            fbclient.GRAPH_API_HOST, self.app_id, callback, scope)

    def url_for_access_token(self, code, callback=None):
        """Creates the URL for the token corresponding to a code generated by Facebook"""
        callback = callback or self.oauth_callback_url
        if not callback:
            raise fbclient.ArgumentError("url_for_access_token needs a callback, either passed in or set on the OAuth object")

        return "https://%s/oauth/access_token?client_id=%s&redirect_uri=%s&client_secret=%s&code=%s" % (
            fbclient.GRAPH_API_HOST, self.app_id, callback, self.app_secret, code)

    # Access tokens

    def get_access_token_info(self, code):
        """Exchange an OAuth code for a dictionary with the access token and its expiration"""
        return self._get_token_from_server({"code": code, "redirect_uri": self.oauth_callback_url or ""})

    def get_access_token(self, code):
        info = self.get_access_token_info(code)
        return info.get("access_token")

    def get_app_access_token_info(self):
        """Authenticates as the application and retrieves its sessionless access token"""
        return self._get_token_from_server({"type": "client_cred"}, post=True)

    def get_app_access_token(self):
        info = self.get_app_access_token_info()
        return info.get("access_token")

    # Session keys

    def get_token_info_from_session_keys(self, sessions):
        """Exchange legacy session keys for access tokens.

        Returns the list Facebook sends back: one dictionary per session key
        (or None for keys it couldn't exchange), in the order given.
        """
        response = self._fetch_token_string({
            "type": "client_cred",
            "sessions": ",".join(sessions),
        }, post=True, endpoint="exchange_sessions")

        # Facebook returns an empty body in certain error conditions
        if not response or not response.strip():
            raise fbclient.EmptyResponseError(
                "ArgumentError",
                "get_token_from_session_key received an error (empty response body) for %d sessions" % len(sessions))

        _raise_for_error(response)
        return decode_body(response)

    def get_tokens_from_session_keys(self, sessions):
        results = self.get_token_info_from_session_keys(sessions)
        return [r.get("access_token") if r else None for r in results]

    def get_token_from_session_key(self, session):
        return self.get_tokens_from_session_keys([session])[0]

    def _get_token_from_server(self, args, post=False):
        result = self._fetch_token_string(args, post=post)
        _raise_for_error(result)
        return parse_access_token(result)

    def _fetch_token_string(self, args, post=False, endpoint="access_token"):
        if self.api is None:
            raise fbclient.ArgumentError("OAuth needs an http_service to fetch tokens")

        params = {
            "client_id": self.app_id,
            "client_secret": self.app_secret,
        }
        params.update(args)

        log.debug("Fetching token from /oauth/%s", endpoint)
        return self.api.api("/oauth/%s" % endpoint, params, "post" if post else "get",
                            {"use_ssl": True, "http_component": "body"})
