"""Shared fixtures: an HTTP client that records calls instead of making them."""

import json

import pytest

from miicard_consumers import MiiCardConfig


class DummyResponse:
    def __init__(self, content=b"", status_code=200):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        self.status_code = status_code


class DummyHttpClient:
    """Returns queued responses in order and records every call made."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, content=b"", status_code=200):
        self.responses.append(DummyResponse(content, status_code))

    def queue_json(self, payload, status_code=200):
        self.queue(json.dumps(payload), status_code)

    def post(self, url, data=None, headers=None, timeout=None, verify=True):
        return self._respond("POST", url, data=data, headers=headers, timeout=timeout, verify=verify)

    def get(self, url, params=None, headers=None, timeout=None, verify=True):
        return self._respond("GET", url, params=params, headers=headers, timeout=timeout, verify=verify)

    def _respond(self, method, url, **kwargs):
        self.calls.append(dict(method=method, url=url, **kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last_call(self):
        return self.calls[-1]


@pytest.fixture
def http_client():
    return DummyHttpClient()


@pytest.fixture
def config():
    return MiiCardConfig(
        oauth_endpoint="https://sts.example.com/auth/oauth.ashx",
        claims_url="https://sts.example.com/api/v1/Claims.svc/json",
        financial_url="https://sts.example.com/api/v1/Financial.svc/json",
        directory_url="https://sts.example.com/api/v1/Members",
        connect_timeout=5,
        read_timeout=10,
    )
