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

"""Graph API methods

GraphAPI wraps an fbclient.API dispatcher. Whatever token the dispatcher
carries is the one every graph call is made with.
"""

import logging
import time
import urllib.parse

import fbclient

log = logging.getLogger(__name__)


def check_graph_error(response):
    """Graph errors come back as {"error": {"type": ..., "message": ...}}"""
    if isinstance(response, dict) and response.get("error"):
        error = response["error"]
        if not isinstance(error, dict):
            error = {"message": error}
        raise fbclient.UpstreamAPIError.from_details(error)


def parse_page_url(url):
    """Split a paging URL into the (path, args) pair to fetch it with

    Multi-valued args are comma joined. The token in the URL is dropped, the
    dispatcher adds its own.
    """
    parts = urllib.parse.urlsplit(url)
    args = dict((k, ",".join(v)) for k, v in urllib.parse.parse_qs(parts.query).items()
                if k != "access_token")
    return parts.path, args


class GraphCollection(list):
    """One page of a connection or search result

    The list holds the page's "data" entries. `paging` is the raw paging
    block Facebook sent along, if any.
    """
    def __init__(self, response, graph):
        list.__init__(self, response["data"])
        self.paging = response.get("paging")
        self.graph = graph

    @classmethod
    def evaluate(cls, response, graph):
        """Wrap paged responses, hand anything else back untouched"""
        if isinstance(response, dict) and isinstance(response.get("data"), list):
            return cls(response, graph)
        return response

    def next_page_params(self):
        return self._page_params("next")

    def previous_page_params(self):
        return self._page_params("previous")

    def next_page(self, **extra_args):
        """The following page, or None on the last one"""
        return self._fetch(self.next_page_params(), extra_args)

    def previous_page(self, **extra_args):
        return self._fetch(self.previous_page_params(), extra_args)

    def _page_params(self, direction):
        if self.paging and self.paging.get(direction):
            return parse_page_url(self.paging[direction])
        return None

    def _fetch(self, params, extra_args):
        if params is None:
            return None
        path, args = params
        args.update(extra_args)
        return self.graph.fetch_page((path, args))


class GraphAPI(object):
    """Graph API calls over an fbclient.API dispatcher.

    The graph is made of objects (people, pages, events, photos) and the
    connections between them (friends, photo tags, RSVPs). Objects come back
    as dictionaries. Connections and searches come back as GraphCollection
    pages:

       api = fbclient.API(fbclient.HTTPService(), access_token)
       graph = fbclient.GraphAPI(api)
       user = graph.fetch("me")
       friends = graph.fetch_connections(user["id"], "friends")
       more_friends = friends.next_page()

    Errors in the response body raise fbclient.UpstreamAPIError, server
    failures fbclient.TransportError.
    """
    def __init__(self, api):
        self.api = api

    def fetch(self, id, metadata=None, fields=None):
        """Return the object with the given id, optionally limited to `fields`"""
        args = dict()
        if metadata is not None:
            args['metadata'] = metadata
        if fields is not None:
            args['fields'] = ",".join(fields)

        return self.graph_call("/%s" % id, args)

    def multi_fetch(self, ids):
        """Return a dictionary of objects keyed by the requested ids"""
        return self.graph_call("/", {'ids': ",".join(ids)})

    def fetch_url(self, url):
        # Facebook resolves external URLs through the ids parameter
        return self.multi_fetch([url])

    def fetch_connections(self, id, connection_name, limit=None, offset=None, until=None, since=None):
        """Return one page of the object's `connection_name` connection.

        Args:
          id: object whose connection is read
          connection_name: 'friends', 'feed', 'likes'...
          limit, offset: page size and start
          until, since: datetime bounds on the connected objects

        Returns:
          A GraphCollection.
        """
        args = dict()
        if limit:
            args['limit'] = limit
        if offset:
            args['offset'] = offset
        if until:
            args['until'] = int(time.mktime(until.timetuple()))
        if since:
            args['since'] = int(time.mktime(since.timetuple()))

        response = self.graph_call("/%s/%s" % (id, connection_name), args)
        return GraphCollection.evaluate(response, self)

    def fetch_page(self, params):
        """Fetch a page from a (path, args) pair, as GraphCollection hands out"""
        path, args = params
        return GraphCollection.evaluate(self.graph_call(path, args), self)

    def fetch_picture(self, id, type=None):
        """Return the URL of the object's picture

        Facebook answers with a redirect, so this is the Location header
        rather than a JSON body.
        """
        args = {'type': type} if type else {}
        headers = self.api.api("/%s/picture" % id, args, "get", {"http_component": "headers"})
        for name, value in headers.items():
            if name.lower() == "location":
                return value
        return None

    def put(self, parent_id, connection_name, **data):
        """Post `data` to a connection of `parent_id`

            graph.put("me", "feed", message="Hello, world")
            graph.put(post_id, "comments", message="First!")

        The dispatcher's token needs the matching extended permission,
        publish_stream for most writes.
        """
        return self.graph_call("/%s/%s" % (parent_id, connection_name), data, "post")

    def search(self, object_type, query, **kwargs):
        """Search public objects of one type: user, page, event, group, place, checkin

        Extra query terms go in kwargs. Returns a GraphCollection.
        """
        args = dict(kwargs, q=query, type=object_type)
        return GraphCollection.evaluate(self.graph_call("/search", args), self)

    def delete(self, id):
        return self.graph_call("/%s" % id, verb="delete")

    def graph_call(self, path, args=None, verb="get", options=None):
        """Dispatch a graph request, raising on graph errors"""
        log.debug("Graph call: %s %s", verb, path)
        return self.api.api(path, args, verb, options, error_check=check_graph_error)

    # Shortcuts

    def put_wall_post(self, message, attachment=None, profile_id="me"):
        """Post to a profile's wall, the dispatcher's user by default

        attachment is a dictionary of link fields merged into the post:
        name, link, caption, description, picture.
        """
        return self.put(profile_id, "feed", message=message, **(attachment or {}))

    def put_comment(self, object_id, message):
        return self.put(object_id, "comments", message=message)

    def put_like(self, object_id):
        return self.put(object_id, "likes")

    def delete_like(self, object_id):
        return self.graph_call("/%s/likes" % object_id, verb="delete")
