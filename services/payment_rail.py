#!/usr/bin/env python3
"""Payment rail: service charges, balances and transfers for the agent wallet."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession
from eth_account import Account
from solders.keypair import Keypair
from web3 import Web3

from constants import NETWORK_CONFIG, PAYMENT_MODES


class PaymentError(Exception):
    """Raised when a charge, transfer or balance lookup cannot be completed."""


@dataclass(frozen=True)
class WalletIdentity:
    address: str
    private_key: str

    def __repr__(self) -> str:
        return f"WalletIdentity(address={self.address!r})"


def create_wallet(network: str = 'solana') -> WalletIdentity:
    """Generates a fresh keypair for the network. The private key must never be logged."""
    if network == 'solana':
        keypair = Keypair()
        return WalletIdentity(address=str(keypair.pubkey()), private_key=str(keypair))
    if network == 'base':
        account = Account.create()
        return WalletIdentity(address=account.address, private_key=account.key.hex())
    raise ValueError(f"Unsupported network: {network}")


def simulated_reference(prefix: str = "sim") -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class PaymentRail:
    """
    Reads balances and transaction state over JSON-RPC and produces transfer references.

    In 'simulated' mode transfers return synthetic references. In 'onchain' mode only
    facilitator-routed payments are accepted; signing transactions locally is not supported.
    """

    def __init__(
        self,
        session: ClientSession,
        *,
        network: str,
        rpc_url: str,
        payment_mode: str = 'simulated',
        agent_address: Optional[str] = None,
        facilitator_address: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        if network not in NETWORK_CONFIG:
            raise ValueError(f"Unsupported network: {network}")
        if payment_mode not in PAYMENT_MODES:
            raise ValueError(f"Unsupported payment mode: {payment_mode}")
        self._session = session
        self.network = network
        self.payment_mode = payment_mode
        self.agent_address = agent_address
        self.facilitator_address = facilitator_address
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._id_lock = asyncio.Lock()
        self._next_request_id = 1
        self.logger = logging.getLogger(__name__)

    async def get_balance(self, address: str) -> float:
        """Native balance of an address, in whole units (SOL or ETH)."""
        try:
            if self.network == 'solana':
                result = await self._rpc_call("getBalance", [address])
                lamports = result.get('value', 0) if isinstance(result, dict) else 0
                return lamports / 10 ** int(NETWORK_CONFIG['solana']['decimals'])
            if not Web3.is_address(address):
                raise PaymentError(f"Invalid address: {address}")
            result = await self._rpc_call("eth_getBalance", [Web3.to_checksum_address(address), "latest"])
            return float(Web3.from_wei(int(result or "0x0", 16), 'ether'))
        except (ClientError, asyncio.TimeoutError, RuntimeError, ValueError) as exc:
            raise PaymentError(f"Balance lookup failed for {address}: {exc}") from exc

    async def transfer(self, from_address: str, to_address: str, amount: float) -> str:
        """Moves `amount` between wallets and returns the transaction reference."""
        if amount <= 0:
            raise PaymentError(f"Transfer amount must be positive, got {amount}")
        self.logger.info(
            "Processing payment: %s from %s to %s on %s (mode: %s)",
            amount, from_address, to_address, self.network, self.payment_mode,
        )

        if self.payment_mode == 'simulated':
            reference = simulated_reference()
            self.logger.info("Simulated payment transaction: %s", reference)
            return reference

        if self.facilitator_address:
            # Settlement happens on the facilitator's side; the reference stays pending here.
            return f"facilitator_{int(time.time() * 1000)}_pending"

        raise PaymentError("On-chain transfers require a facilitator; local transaction signing is not supported")

    async def charge_for_service(self, service_id: str, payer: str, amount: float) -> str:
        self.logger.info("Charging %s for service %s: %s", payer, service_id, amount)
        return await self.transfer(payer, self.agent_address or '', amount)

    async def verify_transaction(self, reference: str) -> bool:
        """True when the chain reports the transaction as confirmed without error."""
        try:
            if self.network == 'solana':
                tx = await self._rpc_call(
                    "getTransaction",
                    [reference, {"commitment": "confirmed", "maxSupportedTransactionVersion": 0}],
                )
                return isinstance(tx, dict) and (tx.get('meta') or {}).get('err') is None
            receipt = await self._rpc_call("eth_getTransactionReceipt", [reference])
            return isinstance(receipt, dict) and receipt.get('status') == '0x1'
        except (ClientError, asyncio.TimeoutError, RuntimeError) as exc:
            self.logger.warning("Could not verify transaction %s: %s", reference, exc)
            return False

    async def get_transaction_history(self, address: str, limit: int = 10) -> List[Dict[str, Any]]:
        if self.network != 'solana':
            return []
        try:
            signatures = await self._rpc_call("getSignaturesForAddress", [address, {"limit": limit}])
        except (ClientError, asyncio.TimeoutError, RuntimeError) as exc:
            self.logger.error("Error fetching transaction history for %s: %s", address, exc)
            return []
        return [
            {
                'signature': item.get('signature'),
                'block_time': item.get('blockTime'),
                'slot': item.get('slot'),
                'err': item.get('err'),
            }
            for item in signatures or []
        ]

    async def _rpc_call(self, method: str, params: list) -> Any:
        request_id = await self._get_request_id()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        async with self._session.post(self._rpc_url, json=payload, timeout=self._timeout) as response:
            response.raise_for_status()
            data = await response.json()
        if 'error' in data:
            raise RuntimeError(data['error'])
        return data.get('result')

    async def _get_request_id(self) -> int:
        async with self._id_lock:
            request_id = self._next_request_id
            self._next_request_id += 1
        return request_id
