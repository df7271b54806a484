#!/usr/bin/env python3
"""Client helpers for the DeFiLlama TVL and yields APIs."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp

from constants import C_RED, C_RESET, DEFILLAMA_API_BASE_URL, DEFILLAMA_YIELDS_BASE_URL


def _log_error(message: str) -> None:
    print(f"{C_RED}{message}{C_RESET}")


class DefiLlamaClient:
    """Thin async wrapper for DeFiLlama public endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        timeout: int = 5,
        pools_cache_ttl: float = 600.0,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._pools_cache_ttl = pools_cache_ttl
        self._pools_cache: Optional[List[Dict[str, Any]]] = None
        self._pools_cached_at: float = 0.0
        self._lock = asyncio.Lock()

    async def _get(self, url: str) -> Optional[Any]:
        try:
            async with self._session.get(url, timeout=self._timeout) as response:
                response.raise_for_status()
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            _log_error(f"DeFiLlama request failed for {url}: {exc}")
            return None

    async def get_protocol_tvl(self, slug: str, chain: str) -> Optional[float]:
        """Return the latest TVL for a protocol, preferring the overall series over the chain breakdown."""
        data = await self._get(f"{DEFILLAMA_API_BASE_URL}/protocol/{slug}")
        if not isinstance(data, dict):
            return None

        series = data.get("tvl")
        if isinstance(series, list) and series:
            value = series[-1].get("totalLiquidityUSD") if isinstance(series[-1], dict) else None
            if value is not None:
                return _to_float(value)

        chain_tvls = data.get("currentChainTvls") or {}
        for name, value in chain_tvls.items():
            if name.lower() == chain.lower():
                return _to_float(value)
        return None

    async def _get_pools(self) -> List[Dict[str, Any]]:
        async with self._lock:
            if self._pools_cache is not None and time.time() - self._pools_cached_at < self._pools_cache_ttl:
                return self._pools_cache
            data = await self._get(f"{DEFILLAMA_YIELDS_BASE_URL}/pools")
            if isinstance(data, dict) and isinstance(data.get("data"), list):
                self._pools_cache = data["data"]
                self._pools_cached_at = time.time()
            return self._pools_cache or []

    async def get_protocol_apy(self, slug: str, chain: str) -> Optional[float]:
        """Return the APY of the largest pool a protocol runs on the given chain."""
        pools = await self._get_pools()
        candidates = [
            pool for pool in pools
            if pool.get("project") == slug and str(pool.get("chain", "")).lower() == chain.lower()
        ]
        if not candidates:
            return None
        best = max(candidates, key=lambda pool: _to_float(pool.get("tvlUsd")) or 0.0)
        return _to_float(best.get("apy"))

    async def fetch_protocol_data(self, slug: str, chain: str) -> Dict[str, Optional[float]]:
        """Convenience helper returning `{'apy': ..., 'tvl': ...}`; either may be None."""
        apy, tvl = await asyncio.gather(
            self.get_protocol_apy(slug, chain),
            self.get_protocol_tvl(slug, chain),
        )
        return {"apy": apy, "tvl": tvl}


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
