#!/usr/bin/env python3
"""Client helpers for the Helius token metadata and balances APIs."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from constants import C_RED, C_RESET, HELIUS_API_BASE_URL


def _log_error(message: str) -> None:
    print(f"{C_RED}{message}{C_RESET}")


class HeliusClient:
    """Thin async wrapper for the Helius v0 token endpoints. Failures return None."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        *,
        timeout: int = 10,
        balances_timeout: int = 5,
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._timeout = timeout
        self._balances_timeout = balances_timeout

    async def get_token_metadata(self, mints: List[str]) -> Optional[List[Dict[str, Any]]]:
        """Metadata entries for the given mint accounts, one dict per mint Helius knows about."""
        url = f"{HELIUS_API_BASE_URL}/token-metadata"
        try:
            async with self._session.post(
                url,
                params={"api-key": self._api_key},
                json={"mintAccounts": mints},
                timeout=self._timeout,
            ) as response:
                response.raise_for_status()
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            _log_error(f"Helius token metadata request failed: {exc}")
            return None
        return data if isinstance(data, list) else None

    async def get_token_balances(self, mint: str) -> Optional[Dict[str, Any]]:
        url = f"{HELIUS_API_BASE_URL}/token-balances"
        try:
            async with self._session.get(
                url,
                params={"api-key": self._api_key, "mint": mint},
                timeout=self._balances_timeout,
            ) as response:
                response.raise_for_status()
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            _log_error(f"Helius token balances request failed for {mint}: {exc}")
            return None
        return data if isinstance(data, dict) else None
