#!/usr/bin/env python3
"""Service dispatcher and periodic autonomous cycle for a single agent."""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from telegram import Bot
from telegram.error import TelegramError

from agent.models import (
    DataAggregationParams,
    MarketAnalysisParams,
    ServiceConfig,
    ServiceParams,
    ServiceRequest,
    ServiceResponse,
    TradingStrategyParams,
)
from agent.revenue_manager import RevenueManager
from analysis.data_aggregation import DataAggregator
from analysis.market_analysis import MarketAnalyzer
from analysis.strategies import StrategyEvaluator
from config import AppConfig
from constants import (
    C_BLUE,
    C_GREEN,
    C_RED,
    C_RESET,
    C_YELLOW,
    DEFAULT_TOKEN,
    NETWORK_CONFIG,
    RISK_TOLERANCE_THRESHOLDS,
    SPAWN_COST,
)
from services.payment_rail import PaymentError, PaymentRail

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Raised when a service request is rejected or cannot be fulfilled."""


def _parse_tokens(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [token.strip() for token in value.split(',') if token.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(token, str) for token in value):
        return [token.strip() for token in value if token.strip()]
    raise ServiceError(f"Invalid tokens parameter: {value!r}")


def _parse_amount(value: Any, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ServiceError(f"Invalid amount: {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ServiceError(f"Invalid amount: {value!r}") from None
    if amount <= 0:
        raise ServiceError(f"Amount must be positive, got {amount}")
    return amount


def parse_service_params(service_type: str, raw: Dict[str, Any]) -> ServiceParams:
    """Validates a request's free-form parameters into the typed params of its service kind."""
    if service_type == 'market-analysis':
        token = raw.get('token')
        if token is not None and not isinstance(token, str):
            raise ServiceError(f"Invalid token: {token!r}")
        return MarketAnalysisParams(
            token=token.strip() if token and token.strip() else None,
            tokens=_parse_tokens(raw.get('tokens')),
            technical_analysis=bool(raw.get('technicalAnalysis', False)),
            timeframe=str(raw.get('timeframe') or '1d'),
        )

    if service_type == 'trading-strategy':
        risk_tolerance = raw.get('riskTolerance') or 'medium'
        if risk_tolerance not in RISK_TOLERANCE_THRESHOLDS:
            raise ServiceError(f"Invalid risk tolerance: {risk_tolerance!r}")
        strategy = raw.get('strategy') or 'arbitrage'
        if not isinstance(strategy, str):
            raise ServiceError(f"Invalid strategy: {strategy!r}")
        current_price = raw.get('currentPrice', 0.0)
        try:
            current_price = float(current_price)
        except (TypeError, ValueError):
            raise ServiceError(f"Invalid current price: {current_price!r}") from None
        return TradingStrategyParams(
            strategy=strategy,
            tokens=_parse_tokens(raw.get('tokens')) or [DEFAULT_TOKEN],
            amount=_parse_amount(raw.get('amount'), 1.0),
            risk_tolerance=risk_tolerance,
            token=str(raw.get('token') or DEFAULT_TOKEN),
            current_price=current_price,
        )

    if service_type == 'data-aggregation':
        return DataAggregationParams(
            tokens=_parse_tokens(raw.get('tokens')),
            report=bool(raw.get('report', False)),
            report_type=str(raw.get('reportType') or 'daily'),
        )

    raise ServiceError(f"Unknown service type: {service_type}")


class AutonomousAgent:
    """
    Routes paid service requests to the analysis components and runs the periodic
    arbitrage and reinvestment cycle.

    All earnings bookkeeping goes through the RevenueManager, which serializes
    mutations between request handling and the cycle.
    """

    def __init__(
        self,
        config: AppConfig,
        payment_rail: PaymentRail,
        strategy_evaluator: StrategyEvaluator,
        market_analyzer: MarketAnalyzer,
        data_aggregator: DataAggregator,
        revenue_manager: RevenueManager,
        bot: Optional[Bot] = None,
    ):
        self.config = config
        self.payment_rail = payment_rail
        self.strategy_evaluator = strategy_evaluator
        self.market_analyzer = market_analyzer
        self.data_aggregator = data_aggregator
        self.revenue_manager = revenue_manager
        self.bot = bot
        self._services: Dict[str, ServiceConfig] = {service.id: service for service in config.services}
        self._task: Optional[asyncio.Task] = None
        self.last_cycle_time: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def initialize(self) -> None:
        native_symbol = NETWORK_CONFIG[self.config.network]['nativeSymbol']
        print(f"Initializing Autonomous Agent: {C_BLUE}{self.config.agent_name}{C_RESET}")
        print(f"Network: {self.config.network} (payment mode: {self.config.payment_mode})")
        print(f"Services: {len(self._services)}")

        try:
            balance = await self.revenue_manager.get_balance()
        except PaymentError as e:
            print(f"{C_RED}Could not read agent balance: {e}{C_RESET}")
            return

        print(f"Current balance: {balance} {native_symbol}")
        if balance < self.config.min_balance:
            print(f"{C_YELLOW}Warning: Balance below minimum threshold ({self.config.min_balance}){C_RESET}")

    async def handle_service_request(self, request: ServiceRequest) -> ServiceResponse:
        service = self._services.get(request.service_id)
        if service is None or not service.enabled:
            raise ServiceError(f"Service {request.service_id} not found or disabled")

        if request.payment_amount != service.price:
            raise ServiceError(
                f"Payment amount mismatch. Expected: {service.price}, Received: {request.payment_amount}"
            )

        # Rejected before charging so a malformed request costs nothing.
        params = parse_service_params(service.type, request.params)

        try:
            tx_hash = await self.payment_rail.charge_for_service(request.service_id, request.user_id, service.price)
        except PaymentError as e:
            logger.error("Payment processing failed for %s: %s", request.service_id, e)
            raise ServiceError(f"Payment failed: {e}") from e
        logger.info("Payment processed: %s for service %s", tx_hash, request.service_id)

        if self.config.payment_mode == 'onchain' and not tx_hash.startswith(('sim_', 'facilitator_')):
            await asyncio.sleep(self.config.confirmation_delay)
            if not await self.payment_rail.verify_transaction(tx_hash):
                logger.warning("Transaction %s verification pending or failed", tx_hash)

        await self.revenue_manager.record_payment(request.service_id, service.price)

        try:
            result = await self._dispatch(params)
        except Exception as e:
            logger.error("Service execution failed for %s: %s", request.service_id, e)
            raise ServiceError(f"Service execution failed: {e}. Payment processed: {tx_hash}") from e

        return ServiceResponse(
            result=result,
            transaction_hash=tx_hash,
            service_id=request.service_id,
            service_name=service.name,
            price=service.price,
            timestamp=time.time(),
            payment_mode=self.config.payment_mode,
        )

    async def _dispatch(self, params: ServiceParams) -> Any:
        if isinstance(params, MarketAnalysisParams):
            return await self._handle_market_analysis(params)
        if isinstance(params, TradingStrategyParams):
            return await self._handle_trading_strategy(params)
        return await self._handle_data_aggregation(params)

    async def _handle_market_analysis(self, params: MarketAnalysisParams):
        if params.technical_analysis and params.token:
            return await self.market_analyzer.generate_technical_analysis(params.token, params.timeframe)
        if params.token:
            return await self.market_analyzer.analyze_token(params.token)
        if params.tokens:
            return await self.market_analyzer.get_market_overview(params.tokens)
        logger.info("No token specified, analyzing default token")
        return await self.market_analyzer.analyze_token(DEFAULT_TOKEN)

    async def _handle_trading_strategy(self, params: TradingStrategyParams):
        if params.strategy == 'arbitrage':
            return await self.strategy_evaluator.find_arbitrage_opportunities(params.tokens)
        if params.strategy == 'yield-farming':
            return await self.strategy_evaluator.optimize_yield_farming(params.amount, params.risk_tolerance)
        return await self.strategy_evaluator.execute_strategy(params.strategy, params)

    async def _handle_data_aggregation(self, params: DataAggregationParams):
        if params.report:
            return await self.data_aggregator.generate_report(params.report_type, params.tokens)
        return await self.data_aggregator.aggregate_token_data(params.tokens)

    async def autonomous_cycle(self) -> None:
        """One pass: scan for arbitrage, execute the best one if allowed, then reinvest."""
        opportunities = await self.strategy_evaluator.find_arbitrage_opportunities(self.config.tokens)

        if opportunities:
            best = opportunities[0]
            if best.profit_estimate > self.config.min_arbitrage_profit and best.risk < self.config.max_arbitrage_risk:
                print(f"Found profitable arbitrage opportunity: {best.profit_estimate:.4f} on {best.dex_a}/{best.dex_b}")
                await self._execute_best_arbitrage(best)

        await self.revenue_manager.consider_reinvestment()

        balance = await self.revenue_manager.get_balance()
        if balance > self.config.min_balance * 2:
            if self.revenue_manager.get_earnings().available >= SPAWN_COST:
                await self.revenue_manager.consider_reinvestment()

    async def _execute_best_arbitrage(self, opportunity) -> None:
        required = self.config.arbitrage_amount
        balance = await self.revenue_manager.get_balance()
        if balance < self.config.min_balance + required:
            print(
                f"{C_YELLOW}Insufficient balance for arbitrage. Required: {required}, "
                f"Available: {balance - self.config.min_balance:.4f}{C_RESET}"
            )
            return

        result = await self.strategy_evaluator.execute_arbitrage(opportunity, required)
        if not result.success:
            print(f"{C_YELLOW}Arbitrage execution failed: {result.error}{C_RESET}")
            return

        print(f"{C_GREEN}Arbitrage executed successfully! Profit: {result.actual_profit:.4f}{C_RESET}")
        print(f"Transaction references: {result.tx_hash_1}, {result.tx_hash_2}")
        if result.actual_profit and result.actual_profit > 0:
            await self.revenue_manager.record_payment('arbitrage', result.actual_profit)
        await self._notify_arbitrage(opportunity, result)

    async def _notify_arbitrage(self, opportunity, result) -> None:
        if self.bot is None or not self.config.telegram_chat_id:
            return
        message = (
            f"<b>Arbitrage executed</b>\n"
            f"Token: <code>{opportunity.token}</code>\n"
            f"Route: {opportunity.dex_a} → {opportunity.dex_b}\n"
            f"Profit: {result.actual_profit:.4f}\n"
            f"Transactions: <code>{result.tx_hash_1}</code>, <code>{result.tx_hash_2}</code>"
        )
        try:
            await self.bot.send_message(
                chat_id=self.config.telegram_chat_id,
                text=message,
                parse_mode='HTML'
            )
        except TelegramError as e:
            print(f"{C_RED}Error sending arbitrage notification: {e}{C_RESET}")

    def start_autonomous_operations(self) -> asyncio.Task:
        if self.is_running:
            print("Agent is already running")
            return self._task
        print("Starting autonomous operations...")
        self._task = asyncio.create_task(self._run_main_loop())
        return self._task

    async def _run_main_loop(self):
        while True:
            print("\n" + "="*50)
            print("Running autonomous cycle...")
            try:
                await self.autonomous_cycle()
                self.last_error = None
            except Exception as e:
                print(f"{C_RED}Error in autonomous cycle: {e}{C_RESET}")
                self.last_error = str(e)

            self.last_cycle_time = time.strftime('%Y-%m-%d %H:%M:%S')
            print(f"Cycle finished. Waiting {self.config.interval} seconds...")
            print("="*50)
            await asyncio.sleep(self.config.interval)

    async def stop_autonomous_operations(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        print("Stopped autonomous operations")

    def get_services(self) -> List[ServiceConfig]:
        return [service for service in self._services.values() if service.enabled]

    def get_status(self) -> Dict[str, Any]:
        return {
            'id': self.config.agent_id,
            'name': self.config.agent_name,
            'network': self.config.network,
            'payment_mode': self.config.payment_mode,
            'is_running': self.is_running,
            'services': self.get_services(),
            'earnings': self.revenue_manager.get_earnings(),
            'sub_agents': self.revenue_manager.get_sub_agents(),
            'last_cycle_time': self.last_cycle_time,
            'last_error': self.last_error,
        }
