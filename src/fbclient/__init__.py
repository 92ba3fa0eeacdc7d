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
"""
Python client library for the Facebook Platform.

This client library is designed to support the Graph API, the legacy REST
API and the official Facebook JavaScript SDK, which is the canonical way to
implement Facebook authentication. Read more about the Graph API at
http://developers.facebook.com/docs/api.

Every client is built around an explicit HTTP service. Your usage of this
module might look like this:

    oauth = fbclient.OAuth(app_id, app_secret)
    user = oauth.get_user_info_from_cookie(request.cookies)
    if user:
        api = fbclient.API(fbclient.HTTPService(), access_token=user["access_token"])
        graph = fbclient.GraphAPI(api)
        profile = graph.fetch("me")
        friends = graph.fetch_connections("me", "friends")

"""

class Error(Exception):
    """Generic client library error"""
    pass


class APIError(Error):
    """Error reported by (or on behalf of) the remote API.

    `type` is the kind of error as Facebook names it (for example
    "OAuthException"), or a synthesized kind such as "HTTP 500". Both `type`
    and `message` are read-only.
    """
    def __init__(self, type=None, message=None):
        self._type = type
        self._message = message
        Error.__init__(self, "%s: %s" % (type, message))

    @property
    def type(self):
        return self._type

    @property
    def message(self):
        return self._message

    @classmethod
    def from_details(cls, details):
        """Build an error from a parsed {"type": ..., "message": ...} mapping"""
        details = details or {}
        return cls(details.get("type"), details.get("message"))


class TransportError(APIError):
    """The server answered with a 5xx status"""
    def __init__(self, status, body):
        self._status = status
        self._body = body
        APIError.__init__(self, "HTTP %d" % status, "Response body: %s" % body)

    @property
    def status(self):
        return self._status

    @property
    def body(self):
        return self._body


class UpstreamAPIError(APIError):
    pass


class EmptyResponseError(APIError):
    pass


class SignatureError(Error):
    """A cookie or signed request failed verification"""
    pass


class ArgumentError(Error, ValueError):
    pass


GRAPH_API_HOST = "graph.facebook.com"
REST_API_HOST = "api.facebook.com"
REST_API_READ_ONLY_HOST = "api-read.facebook.com"
USER_AGENT = "Facebook Python API Client 1.0"

from fbclient.http_services import HTTPService, Response
from fbclient.api import API
from fbclient.graph_api import GraphAPI, GraphCollection
from fbclient.rest_api import RestAPI
from fbclient.realtime_updates import RealtimeUpdates
from fbclient.test_user import TestUser, TestUsers
from fbclient.auth import OAuth
from fbclient.auth import get_user_from_cookie
from fbclient.auth import parse_signed_request
from fbclient.auth import build_signed_request

__all__ = [
    "API",
    "APIError",
    "ArgumentError",
    "EmptyResponseError",
    "Error",
    "GraphAPI",
    "GraphCollection",
    "HTTPService",
    "OAuth",
    "RealtimeUpdates",
    "Response",
    "RestAPI",
    "SignatureError",
    "TestUser",
    "TestUsers",
    "TransportError",
    "UpstreamAPIError",
    "build_signed_request",
    "get_user_from_cookie",
    "parse_signed_request",
]
