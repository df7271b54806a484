#!/usr/bin/env python3
import asyncio
import logging
import time

import aiohttp
from telegram import BotCommand
from telegram.ext import Application, CommandHandler
from telegram.error import TimedOut, TelegramError

import constants
from config import AppConfig, load_config
from agent.autonomous_agent import AutonomousAgent
from agent.revenue_manager import RevenueManager
from analysis.data_aggregation import DataAggregator
from analysis.market_analysis import MarketAnalyzer
from analysis.strategies import StrategyEvaluator
from bot.handlers import (
    help_command,
    status_command,
    earnings_command,
    subagents_command,
    services_command,
    analyze_command,
    arbitrage_command,
    yield_command,
    transactions_command,
)
from services.defillama_client import DefiLlamaClient
from services.helius_client import HeliusClient
from services.oracle_client import OracleClient
from services.payment_rail import PaymentRail
from services.swap_executor import SwapExecutor


def build_agent(session: aiohttp.ClientSession, config: AppConfig, bot=None) -> AutonomousAgent:
    """Wires the clients and analysis components around one shared HTTP session."""
    oracle = OracleClient(session, api_key=config.birdeye_api_key, network=config.network)
    helius = HeliusClient(session, config.helius_api_key) if config.helius_api_key else None
    payment_rail = PaymentRail(
        session,
        network=config.network,
        rpc_url=config.rpc_url,
        payment_mode=config.payment_mode,
        agent_address=config.agent_wallet_address,
        facilitator_address=config.facilitator_address,
    )
    strategy_evaluator = StrategyEvaluator(
        config,
        oracle,
        SwapExecutor(payment_mode=config.payment_mode),
        analytics=DefiLlamaClient(session),
    )
    revenue_manager = RevenueManager(
        payment_rail,
        agent_address=config.agent_wallet_address,
        reinvestment_threshold=config.reinvestment_threshold,
    )
    return AutonomousAgent(
        config,
        payment_rail,
        strategy_evaluator,
        MarketAnalyzer(oracle),
        DataAggregator(oracle, onchain=helius),
        revenue_manager,
        bot=bot,
    )


async def post_init_hook(application: Application) -> None:
    """A hook that runs after the bot is initialized to set up shared clients and tasks."""
    session = aiohttp.ClientSession(headers={'User-Agent': 'AutonomousAgent/1.0'})
    application.bot_data['http_session'] = session

    config = application.bot_data['config']
    agent = build_agent(session, config, bot=application.bot)
    application.bot_data['agent'] = agent
    await agent.initialize()

    commands = [
        BotCommand("status", "Check agent status"),
        BotCommand("earnings", "Show the revenue ledger"),
        BotCommand("subagents", "List spawned sub-agents"),
        BotCommand("services", "List services and prices"),
        BotCommand("analyze", "Paid token analysis"),
        BotCommand("arbitrage", "Paid arbitrage scan"),
        BotCommand("yield", "Paid yield farming ranking"),
        BotCommand("transactions", "Recent agent wallet transactions"),
        BotCommand("help", "Show help message"),
    ]
    try:
        await application.bot.set_my_commands(commands)
    except (TimedOut, TelegramError) as exc:
        print(
            f"{constants.C_YELLOW}Warning: unable to set Telegram bot commands ({exc})."
            f" Continuing startup without updating commands.{constants.C_RESET}"
        )

    if config.autonomous_enabled:
        agent.start_autonomous_operations()


async def post_shutdown_hook(application: Application) -> None:
    """A hook that runs on application shutdown to clean up resources."""
    agent = application.bot_data.get('agent')
    if agent:
        await agent.stop_autonomous_operations()
    session = application.bot_data.get('http_session')
    if session:
        await session.close()


async def run_cli(config: AppConfig) -> None:
    """Runs the autonomous cycle without a Telegram front end until interrupted."""
    async with aiohttp.ClientSession(headers={'User-Agent': 'AutonomousAgent/1.0'}) as session:
        agent = build_agent(session, config)
        await agent.initialize()
        if not config.autonomous_enabled:
            print("Autonomous operations are disabled and Telegram is off; nothing to run.")
            return
        task = agent.start_autonomous_operations()
        try:
            await task
        finally:
            await agent.stop_autonomous_operations()


def main() -> None:
    """The main synchronous entry point for the application."""
    config = load_config()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    if not config.telegram_enabled or not config.telegram_bot_token:
        print("Telegram is not configured. The application will run in CLI-only mode.")
        try:
            asyncio.run(run_cli(config))
        except KeyboardInterrupt:
            print("Shutting down.")
        return

    application = (
        Application.builder()
        .token(config.telegram_bot_token)
        .post_init(post_init_hook)
        .post_shutdown(post_shutdown_hook)
        .build()
    )

    application.bot_data['config'] = config
    application.bot_data['start_time'] = time.time()

    application.add_handler(CommandHandler("start", help_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(CommandHandler("earnings", earnings_command))
    application.add_handler(CommandHandler("subagents", subagents_command))
    application.add_handler(CommandHandler("services", services_command))
    application.add_handler(CommandHandler("analyze", analyze_command))
    application.add_handler(CommandHandler("arbitrage", arbitrage_command))
    application.add_handler(CommandHandler("yield", yield_command))
    application.add_handler(CommandHandler("transactions", transactions_command))

    application.run_polling()


if __name__ == "__main__":
    main()
