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

"""Mock HTTP service

Stands in for fbclient.HTTPService so code built on fbclient can be tested
without talking to Facebook:

    service = MockHTTPService()
    service.register("get", "/me", body='{"id": "5"}')
    graph = fbclient.GraphAPI(fbclient.API(service, access_token="token"))
    graph.fetch("me")

Every request is recorded in `service.requests`.
"""

import collections
import json
import logging

import fbclient

log = logging.getLogger(__name__)


class Error(fbclient.Error): pass

class ResponseNotFoundError(Error): pass


Request = collections.namedtuple("Request", ["path", "args", "verb", "options"])


class MockHTTPService(object):
    def __init__(self):
        self.requests = []
        self._responses = dict()

    def register(self, verb, path, body="", status=200, headers=None):
        """Answer `verb path` with the given response from now on

        A body that isn't a string is JSON encoded.
        """
        if not isinstance(body, str):
            body = json.dumps(body)
        self._responses[(verb.lower(), path)] = fbclient.Response(status, body, headers)

    def request(self, path, args=None, verb="get", options=None):
        self.requests.append(Request(path, dict(args or {}), verb, dict(options or {})))
        log.debug("Mock %s %s", verb, path)

        try:
            return self._responses[(verb.lower(), path)]
        except KeyError:
            raise ResponseNotFoundError("%s %s" % (verb, path))

    @property
    def last_request(self):
        return self.requests[-1]
