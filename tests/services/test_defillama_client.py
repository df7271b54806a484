import pytest
import aiohttp

from services.defillama_client import DefiLlamaClient


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        return None

    async def json(self):
        return self._payload


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        payload = self.routes.get(url)
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)


POOLS_URL = 'https://yields.llama.fi/pools'


@pytest.mark.asyncio
async def test_protocol_tvl_from_series():
    session = FakeSession({
        'https://api.llama.fi/protocol/lido': {'tvl': [{'totalLiquidityUSD': 1.0}, {'totalLiquidityUSD': 2.5e9}]},
    })

    assert await DefiLlamaClient(session).get_protocol_tvl('lido', 'solana') == 2.5e9


@pytest.mark.asyncio
async def test_protocol_tvl_falls_back_to_chain_breakdown():
    session = FakeSession({
        'https://api.llama.fi/protocol/orca': {'currentChainTvls': {'Solana': '3.0e8'}},
    })

    assert await DefiLlamaClient(session).get_protocol_tvl('orca', 'solana') == 3.0e8


@pytest.mark.asyncio
async def test_protocol_apy_uses_largest_pool_on_chain():
    session = FakeSession({POOLS_URL: {'data': [
        {'project': 'lido', 'chain': 'Solana', 'tvlUsd': 10, 'apy': 5.0},
        {'project': 'lido', 'chain': 'Solana', 'tvlUsd': 100, 'apy': 7.0},
        {'project': 'lido', 'chain': 'Ethereum', 'tvlUsd': 1000, 'apy': 3.0},
        {'project': 'jito', 'chain': 'Solana', 'tvlUsd': 5000, 'apy': 9.0},
    ]}})

    assert await DefiLlamaClient(session).get_protocol_apy('lido', 'solana') == 7.0


@pytest.mark.asyncio
async def test_pools_are_cached():
    session = FakeSession({POOLS_URL: {'data': [{'project': 'jito', 'chain': 'Solana', 'tvlUsd': 1, 'apy': 9.0}]}})
    client = DefiLlamaClient(session)

    await client.get_protocol_apy('jito', 'solana')
    await client.get_protocol_apy('marinade-finance', 'solana')

    assert session.calls.count(POOLS_URL) == 1


@pytest.mark.asyncio
async def test_fetch_protocol_data_degrades_to_none():
    session = FakeSession({
        POOLS_URL: aiohttp.ClientConnectionError("down"),
        'https://api.llama.fi/protocol/jito': aiohttp.ClientConnectionError("down"),
    })

    assert await DefiLlamaClient(session).fetch_protocol_data('jito', 'solana') == {'apy': None, 'tvl': None}
