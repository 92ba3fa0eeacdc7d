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

"""Realtime updates

Subscriptions make Facebook POST changes to your callback URL instead of
you polling for them. Managing them takes the application's access token:

    api = fbclient.API(service, app_access_token=oauth.get_app_access_token())
    updates = fbclient.RealtimeUpdates(app_id, api)
    updates.subscribe("user", ["name", "friends"], "http://example.com/updates", "s3cret")

Before accepting a subscription Facebook calls the callback with a
challenge, which your handler answers with meet_challenge().
"""

import logging

from fbclient.graph_api import check_graph_error

log = logging.getLogger(__name__)


def meet_challenge(params, verify_token=None, verification=None):
    """Answer Facebook's subscription check

    `params` are the query arguments of the verification request. The
    challenge is returned if the mode is 'subscribe' and the verify token
    either equals `verify_token` or is accepted by the `verification`
    callable. Otherwise None, and the handler should refuse the request.
    """
    if params.get("hub.mode") != "subscribe":
        return None

    token = params.get("hub.verify_token")
    if verify_token is not None and token == verify_token:
        return params.get("hub.challenge")
    if verification is not None and verification(token):
        return params.get("hub.challenge")
    return None


class RealtimeUpdates(object):
    def __init__(self, app_id, api):
        self.app_id = app_id
        self.api = api

    @property
    def subscription_path(self):
        return "/%s/subscriptions" % self.app_id

    def subscribe(self, object, fields, callback_url, verify_token):
        """Subscribe to changes of `fields` on `object` ('user', 'page'...)

        Facebook verifies the callback before answering, so this only returns
        True once the callback has met the challenge.
        """
        if not isinstance(fields, str):
            fields = ",".join(fields)
        args = {
            "object": object,
            "fields": fields,
            "callback_url": callback_url,
            "verify_token": verify_token,
        }
        log.debug("Subscribing app %s to %s updates", self.app_id, object)
        return self._status_call(args, "post") == 200

    def unsubscribe(self, object=None):
        """Drop the subscription for `object`, or all of them"""
        args = {"object": object} if object else {}
        return self._status_call(args, "delete") == 200

    def list_subscriptions(self):
        response = self.api.api(self.subscription_path, error_check=check_graph_error)
        return response["data"]

    def _status_call(self, args, verb):
        return self.api.api(self.subscription_path, args, verb, {"http_component": "status"},
                            error_check=check_graph_error)
