#!/usr/bin/env python3
import os
import argparse
from typing import NamedTuple
import constants
from agent.models import ServiceConfig

class AppConfig(NamedTuple):
    """Typed configuration object."""
    agent_id: str
    agent_name: str
    network: str
    payment_mode: str
    rpc_url: str
    agent_wallet_address: str | None
    facilitator_address: str | None
    birdeye_api_key: str | None
    helius_api_key: str | None
    min_balance: float
    reinvestment_threshold: float
    interval: int
    tokens: list[str]
    dex_venues: list[str]
    min_arbitrage_profit: float
    max_arbitrage_risk: float
    arbitrage_amount: float
    confirmation_delay: float
    autonomous_enabled: bool
    telegram_enabled: bool
    telegram_bot_token: str | None
    telegram_chat_id: str | None
    services: list[ServiceConfig]


def default_services() -> list[ServiceConfig]:
    return [ServiceConfig(**service) for service in constants.DEFAULT_SERVICES]


def load_config() -> AppConfig:
    """
    Parses command-line arguments and loads environment variables to create a configuration object.
    """
    parser = argparse.ArgumentParser(
        description="Run an autonomous economic agent that sells analysis services and reinvests its earnings.",
        epilog="Example: ./main.py --network solana --reinvestment-threshold 1.0 --telegram-enabled"
    )
    # --- Agent Arguments ---
    parser.add_argument('--agent-id', type=str, default='agent-001', help='Identifier of this agent (default: agent-001).')
    parser.add_argument('--agent-name', type=str, default='Blockchain AI Agent', help='Display name of this agent.')
    parser.add_argument('--network', choices=constants.NETWORK_CONFIG.keys(), default='solana', help='Network used for payments (default: solana).')
    parser.add_argument('--payment-mode', choices=constants.PAYMENT_MODES, default='simulated', help='Payment rail mode (default: simulated).')
    parser.add_argument('--min-balance', type=float, default=0.1, help='Minimum wallet balance kept in reserve (default: 0.1).')
    parser.add_argument('--reinvestment-threshold', type=float, default=constants.DEFAULT_REINVESTMENT_THRESHOLD, help='Available earnings that trigger a reinvestment check (default: 1.0).')
    parser.add_argument('--interval', type=int, default=120, help='Seconds to wait between autonomous cycles (default: 120).')
    parser.add_argument('--disable-autonomous', action='store_true', help='Do not start the periodic autonomous cycle.')

    # --- Strategy Arguments ---
    parser.add_argument('--token', nargs='+', help='Token addresses scanned by the autonomous cycle (default: wrapped SOL).')
    parser.add_argument('--dex', nargs='+', help='DEX venues compared for arbitrage (default: jupiter raydium orca).')
    parser.add_argument('--min-arbitrage-profit', type=float, default=0.05, help='Minimum estimated profit before the cycle executes arbitrage (default: 0.05).')
    parser.add_argument('--max-arbitrage-risk', type=float, default=0.5, help='Risk must be strictly below this value for the cycle to execute arbitrage (default: 0.5).')
    parser.add_argument('--arbitrage-amount', type=float, default=0.5, help='Amount committed to a single arbitrage execution (default: 0.5).')
    parser.add_argument('--confirmation-delay', type=float, default=2.0, help='Seconds to wait before verifying an on-chain payment (default: 2.0).')

    # --- Notification Arguments ---
    parser.add_argument('--telegram-enabled', action='store_true', help='Expose the agent through Telegram commands.')

    args = parser.parse_args()

    # Load from environment
    agent_wallet_address = os.environ.get(constants.AGENT_WALLET_ADDRESS_ENV_VAR)
    facilitator_address = os.environ.get(constants.FACILITATOR_ADDRESS_ENV_VAR)
    birdeye_api_key = os.environ.get(constants.BIRDEYE_API_KEY_ENV_VAR)
    helius_api_key = os.environ.get(constants.HELIUS_API_KEY_ENV_VAR)
    telegram_bot_token = os.environ.get(constants.TELEGRAM_BOT_TOKEN_ENV_VAR)
    telegram_chat_id = os.environ.get(constants.TELEGRAM_CHAT_ID_ENV_VAR)

    network_info = constants.NETWORK_CONFIG[args.network]
    rpc_url = os.environ.get(network_info['rpcEnvVar']) or network_info['defaultRpcUrl']

    payment_mode = args.payment_mode
    payment_mode_env = os.environ.get(constants.PAYMENT_MODE_ENV_VAR)
    if payment_mode_env is not None:
        payment_mode = payment_mode_env.lower()
    if payment_mode not in constants.PAYMENT_MODES:
        print(f"{constants.C_RED}{constants.PAYMENT_MODE_ENV_VAR} must be one of {', '.join(constants.PAYMENT_MODES)}.{constants.C_RESET}")
        exit(1)

    if payment_mode == 'onchain' and not agent_wallet_address:
        print(f"{constants.C_RED}On-chain payment mode requires the {constants.AGENT_WALLET_ADDRESS_ENV_VAR} environment variable.{constants.C_RESET}")
        exit(1)

    if args.telegram_enabled and not telegram_bot_token:
        print(f"{constants.C_RED}Telegram is enabled, but {constants.TELEGRAM_BOT_TOKEN_ENV_VAR} is not set.{constants.C_RESET}")
        exit(1)

    if args.reinvestment_threshold <= 0:
        parser.error('--reinvestment-threshold must be positive.')

    return AppConfig(
        agent_id=args.agent_id,
        agent_name=args.agent_name,
        network=args.network,
        payment_mode=payment_mode,
        rpc_url=rpc_url,
        agent_wallet_address=agent_wallet_address,
        facilitator_address=facilitator_address,
        birdeye_api_key=birdeye_api_key,
        helius_api_key=helius_api_key,
        min_balance=args.min_balance,
        reinvestment_threshold=args.reinvestment_threshold,
        interval=args.interval,
        tokens=args.token or [constants.DEFAULT_TOKEN],
        dex_venues=args.dex or list(constants.DEFAULT_DEX_VENUES),
        min_arbitrage_profit=args.min_arbitrage_profit,
        max_arbitrage_risk=args.max_arbitrage_risk,
        arbitrage_amount=args.arbitrage_amount,
        confirmation_delay=args.confirmation_delay,
        autonomous_enabled=not args.disable_autonomous,
        telegram_enabled=args.telegram_enabled,
        telegram_bot_token=telegram_bot_token,
        telegram_chat_id=telegram_chat_id,
        services=default_services(),
    )
