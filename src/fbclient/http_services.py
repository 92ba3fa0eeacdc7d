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

"""HTTP services

An HTTP service is anything with a `request(path, args, verb, options)` method
returning a Response. API instances are handed one at construction time, so
swapping the network layer (or faking it in tests) is a matter of passing a
different object.
"""

import codecs
import http.client
import logging
import urllib.parse

import fbclient

log = logging.getLogger(__name__)


def content_charset(headers):
    """Charset named in the Content-Type header, utf-8 when missing or unknown"""
    for name, value in headers.items():
        if name.lower() != "content-type":
            continue
        for param in value.split(";")[1:]:
            key, _, charset = param.strip().partition("=")
            if key.strip().lower() == "charset" and charset:
                charset = charset.strip().strip('"')
                try:
                    return codecs.lookup(charset).name
                except LookupError:
                    break
    return "utf-8"


class Response(object):
    """Raw result of a single HTTP exchange"""
    def __init__(self, status, body, headers=None):
        self.status = status
        self.body = body
        self.headers = headers or {}

    def __repr__(self):
        return "<Response: %d>" % self.status


class HTTPService(object):
    """Talks to the Facebook servers with http.client.

    Requests carrying an access token always go over HTTPS. Public requests
    use plain HTTP unless `always_use_ssl` is set or the caller asks for it
    with the `use_ssl` option.
    """
    def __init__(self, graph_host=None, rest_host=None, read_only_host=None, timeout=None, always_use_ssl=False):
        self.graph_host = graph_host or fbclient.GRAPH_API_HOST
        self.rest_host = rest_host or fbclient.REST_API_HOST
        self.read_only_host = read_only_host or fbclient.REST_API_READ_ONLY_HOST
        self.timeout = timeout
        self.always_use_ssl = always_use_ssl

    def server(self, options):
        if options.get("rest_api"):
            if options.get("read_only"):
                return self.read_only_host
            return self.rest_host
        return self.graph_host

    def connection(self, host, use_ssl):
        if use_ssl:
            return http.client.HTTPSConnection(host, timeout=self.timeout)
        return http.client.HTTPConnection(host, timeout=self.timeout)

    def request(self, path, args=None, verb="get", options=None):
        args = args or {}
        options = options or {}
        method = verb.upper()

        use_ssl = bool(self.always_use_ssl or options.get("use_ssl") or "access_token" in args)

        headers = {
            'User-Agent': fbclient.USER_AGENT,
            'Accept': 'text/javascript',
        }

        out_data = None
        out_path = path
        if method == "POST":
            out_data = urllib.parse.urlencode(args)
            headers['Content-type'] = "application/x-www-form-urlencoded"
        elif args:
            out_path = "?".join((path, urllib.parse.urlencode(args)))

        host = self.server(options)
        # The query string may carry a token, only the path is logged
        log.debug("%s %s%s", method, host, path)

        conn = self.connection(host, use_ssl)
        try:
            conn.request(method, out_path, out_data, headers)
            response = conn.getresponse()
            response_headers = dict(response.getheaders())
            body = response.read().decode(content_charset(response_headers), "replace")
            result = Response(response.status, body, response_headers)
        finally:
            conn.close()

        log.debug("Response: %r", (result.status, response.reason))
        return result
