"""Shared fixtures for fbclient tests."""

import pytest

from fbclient.mock_http_service import MockHTTPService

APP_ID = "123"
# 32 bytes, so it doubles as an AES-256 key for encrypted signed requests
APP_SECRET = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def service():
    return MockHTTPService()


@pytest.fixture
def app_id():
    return APP_ID


@pytest.fixture
def app_secret():
    return APP_SECRET
