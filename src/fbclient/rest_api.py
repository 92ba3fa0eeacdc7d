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

"""Legacy REST API

The old REST API reports errors inside perfectly valid JSON bodies, as
{"error_code": ..., "error_msg": ...}, so calls need their own check.
"""

import logging

import fbclient

log = logging.getLogger(__name__)

# Methods Facebook lets us send to the read-only REST servers
READ_ONLY_METHODS = frozenset([
    'admin.getallocation', 'admin.getappproperties', 'admin.getbannedusers',
    'admin.getlivestreamvialink', 'admin.getmetrics', 'admin.getrestrictioninfo',
    'application.getpublicinfo', 'auth.getapppublickey', 'auth.getsession',
    'auth.getsignedpublicsessiondata', 'comments.get', 'connect.getunconnectedfriendscount',
    'dashboard.getactivity', 'dashboard.getcount', 'dashboard.getglobalnews',
    'dashboard.getnews', 'dashboard.multigetcount', 'dashboard.multigetnews',
    'data.getcookies', 'events.get', 'events.getmembers', 'fbml.getcustomtags',
    'feed.getappfriendstories', 'feed.getregisteredtemplatebundlebyid',
    'feed.getregisteredtemplatebundles', 'fql.multiquery', 'fql.query',
    'friends.arefriends', 'friends.get', 'friends.getappusers', 'friends.getlists',
    'friends.getmutualfriends', 'gifts.get', 'groups.get', 'groups.getmembers',
    'intl.gettranslations', 'links.get', 'notes.get', 'notifications.get',
    'pages.getinfo', 'pages.isadmin', 'pages.isappadded', 'pages.isfan',
    'permissions.checkavailableapiaccess', 'permissions.checkgrantedapiaccess',
    'photos.get', 'photos.getalbums', 'photos.gettags', 'profile.getinfo',
    'profile.getinfooptions', 'stream.get', 'stream.getcomments', 'stream.getfilters',
    'users.getinfo', 'users.getloggedinuser', 'users.getstandardinfo',
    'users.hasapppermission', 'users.isappuser', 'users.isverified',
    'video.getuploadlimits',
])


def check_rest_error(response):
    if isinstance(response, dict) and response.get("error_code"):
        raise fbclient.UpstreamAPIError(response["error_code"], response.get("error_msg"))


class RestAPI(object):
    """A client for the legacy Facebook REST API, using a fbclient.API dispatcher"""
    def __init__(self, api):
        self.api = api

    def fql_query(self, fql):
        return self.rest_call('fql.query', {'query': fql})

    def rest_call(self, method, args=None, options=None):
        args = dict(args or {})
        args['format'] = 'json'

        options = dict(options or {})
        options['rest_api'] = True
        options['read_only'] = method.lower() in READ_ONLY_METHODS

        log.debug("REST call: %s", method)
        return self.api.api("method/%s" % method, args, "get", options, error_check=check_rest_error)
