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

"""Request dispatch

API instances turn a call into an authenticated request against the
provided HTTP service and map the response onto either parsed JSON or one of
the fbclient.APIError types. The Graph, REST and test user clients are all
built on top of one.
"""

import json
import logging

import fbclient

log = logging.getLogger(__name__)

HTTP_COMPONENTS = ("status", "headers", "body")


class API(object):
    def __init__(self, http_service, access_token=None, app_access_token=None):
        """Create a dispatcher sending requests through `http_service`.

        If no token is provided, only public information will be available.
        The app access token is only used when there is no user token.
        """
        self.http_service = http_service
        self.access_token = access_token
        self.app_access_token = app_access_token

    def api(self, path, args=None, verb="get", options=None, error_check=None):
        """Fetches the given path under the context of the current access token.

        Args:
          path: API path, a leading '/' is added if missing
          args: (optional) dictionary of request parameters
          verb: 'get', 'post' or 'delete'
          options: (optional) dictionary of options for the HTTP service. If
            it holds 'http_component' ('status', 'headers' or 'body'), that
            part of the response is returned instead of the parsed body.
          error_check: (optional) callable invoked with the parsed body,
            expected to raise if the body describes an error

        Returns:
          The parsed JSON body, which may be a bare scalar such as True.
        """
        args = dict(args or {})
        options = options or {}

        token = self.access_token or self.app_access_token
        if token:
            args["access_token"] = token

        if not path.startswith("/"):
            path = "/" + path

        result = self.http_service.request(path, args, verb, options)

        # Server errors don't come back with a JSON body
        if result.status >= 500:
            raise fbclient.TransportError(result.status, result.body)

        component = options.get("http_component")
        if component is not None and component not in HTTP_COMPONENTS:
            raise fbclient.ArgumentError("Unknown http_component %r" % (component,))

        if component and error_check is None:
            return getattr(result, component)

        body = decode_body(result.body)
        if error_check is not None:
            error_check(body)

        if component:
            return getattr(result, component)
        return body


def decode_body(text):
    """Parse a response body, bare values like 'true' included"""
    if text is None or not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        log.debug("Unparseable response body: %r", text)
        raise fbclient.UpstreamAPIError("JSONError", str(e)) from e
