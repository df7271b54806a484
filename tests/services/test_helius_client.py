import asyncio

import pytest
import aiohttp
from unittest.mock import MagicMock

from services.helius_client import HeliusClient


class FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(MagicMock(), (), status=self.status, message='error')

    async def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def _next(self, method, url, params, json, timeout):
        self.calls.append((method, url, params, json, timeout))
        if not self._responses:
            raise AssertionError("No more fake responses configured")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(*response)

    def post(self, url, params=None, json=None, timeout=None):
        return self._next('POST', url, params, json, timeout)

    def get(self, url, params=None, timeout=None):
        return self._next('GET', url, params, None, timeout)


@pytest.mark.asyncio
async def test_token_metadata_posts_mint_accounts():
    session = FakeSession([([{'mint': 'AAA', 'supply': 1000}],)])

    metadata = await HeliusClient(session, 'helius-key').get_token_metadata(['AAA'])

    assert metadata == [{'mint': 'AAA', 'supply': 1000}]
    method, url, params, body, timeout = session.calls[0]
    assert method == 'POST'
    assert url == 'https://api.helius.xyz/v0/token-metadata'
    assert params == {'api-key': 'helius-key'}
    assert body == {'mintAccounts': ['AAA']}
    assert timeout == 10


@pytest.mark.asyncio
async def test_token_balances_queries_by_mint_with_short_timeout():
    session = FakeSession([({'holders': 42},)])

    balances = await HeliusClient(session, 'helius-key').get_token_balances('AAA')

    assert balances == {'holders': 42}
    method, url, params, _, timeout = session.calls[0]
    assert method == 'GET'
    assert url == 'https://api.helius.xyz/v0/token-balances'
    assert params == {'api-key': 'helius-key', 'mint': 'AAA'}
    assert timeout == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    ({'error': 'unauthorized'}, 401),
    (ValueError("not json"),),
    ({'unexpected': 'shape'},),
])
async def test_token_metadata_failures_return_none(response, capsys):
    session = FakeSession([response])

    assert await HeliusClient(session, 'helius-key').get_token_metadata(['AAA']) is None


@pytest.mark.asyncio
async def test_token_balances_timeout_returns_none(capsys):
    session = FakeSession([asyncio.TimeoutError()])

    assert await HeliusClient(session, 'helius-key').get_token_balances('AAA') is None
    assert 'Helius token balances request failed for AAA' in capsys.readouterr().out
