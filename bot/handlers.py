# bot/handlers.py
import time
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from agent.autonomous_agent import AutonomousAgent, ServiceError
from agent.models import ServiceConfig, ServiceRequest, ServiceResponse
from constants import RISK_TOLERANCE_THRESHOLDS

# --- Helpers ---

def _find_service(agent: AutonomousAgent, service_type: str) -> Optional[ServiceConfig]:
    for service in agent.get_services():
        if service.type == service_type:
            return service
    return None


async def _request_service(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    service_type: str,
    params: dict,
) -> Optional[ServiceResponse]:
    """Charges the Telegram user for a service and runs it. Replies with the error and returns None on failure."""
    agent: AutonomousAgent = context.application.bot_data['agent']
    service = _find_service(agent, service_type)
    if service is None:
        await update.message.reply_text(f"The {service_type} service is not available.")
        return None

    request = ServiceRequest(
        service_id=service.id,
        user_id=f"telegram:{update.effective_user.id}",
        payment_amount=service.price,
        params=params,
    )
    try:
        return await agent.handle_service_request(request)
    except ServiceError as e:
        await update.message.reply_text(f"Request failed: {e}")
        return None


def _short(token: str) -> str:
    return token if len(token) <= 12 else f"{token[:4]}...{token[-4:]}"

# --- Command Handlers ---

async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Displays a help message with all available commands."""
    help_text = """
    <b>Autonomous Economic Agent</b>

    This agent sells market analysis and trading strategy services and reinvests what it earns.

    <b><u>Available Commands:</u></b>
    /status - Agent status and last autonomous cycle
    /earnings - Revenue ledger
    /subagents - Spawned sub-agents
    /services - Services and prices
    /analyze &lt;token&gt; - Paid token analysis
    /arbitrage &lt;tokens...&gt; - Paid arbitrage scan
    /yield &lt;amount&gt; [low|medium|high] - Paid yield farming ranking
    /transactions - Recent agent wallet transactions
    /help - Show this help message
    """
    await update.message.reply_html(help_text)

async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Reports uptime, the autonomous loop state and the last cycle."""
    agent: AutonomousAgent = context.application.bot_data['agent']
    start_time = context.application.bot_data.get('start_time', 0)
    status = agent.get_status()

    uptime_str = time.strftime('%H:%M:%S', time.gmtime(time.time() - start_time))

    if status['is_running']:
        loop_status = "✅ Running"
    elif agent.config.autonomous_enabled:
        loop_status = "⏹️ Stopped"
    else:
        loop_status = "🚫 Disabled"

    status_text = (
        f"<b>🤖 {status['name']}</b> (<code>{status['id']}</code>)\n"
        f"Uptime: <code>{uptime_str}</code>\n"
        f"Network: <code>{status['network']}</code> ({status['payment_mode']})\n\n"
        f"<b>🔁 Autonomous cycle</b>\n"
        f"Status: {loop_status}\n"
        f"Last Cycle: <code>{status['last_cycle_time'] or 'Never'}</code>\n"
        f"Sub-agents: <code>{len(status['sub_agents'])}</code>\n"
    )
    if status['last_error']:
        status_text += f"Last Error: <pre>{status['last_error']}</pre>\n"

    await update.message.reply_html(status_text)

async def earnings_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    agent: AutonomousAgent = context.application.bot_data['agent']
    earnings = agent.revenue_manager.get_earnings()

    lines = [
        "<b>💰 Earnings</b>",
        f"Total: <code>{earnings.total:.4f}</code>",
        f"Available: <code>{earnings.available:.4f}</code>",
        f"Reinvested: <code>{earnings.reinvested:.4f}</code>",
    ]
    if earnings.by_service:
        lines.append("\n<b>By service</b>")
        for service_id, amount in earnings.by_service.items():
            lines.append(f"- {service_id}: <code>{amount:.4f}</code>")

    await update.message.reply_html("\n".join(lines))

async def subagents_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    agent: AutonomousAgent = context.application.bot_data['agent']
    sub_agents = agent.revenue_manager.get_sub_agents()
    if not sub_agents:
        await update.message.reply_text("No sub-agents spawned yet.")
        return

    lines = [f"<b>🧬 Sub-agents ({len(sub_agents)})</b>\n"]
    for sub_agent in sub_agents:
        lines.append(
            f"<code>{sub_agent.id}</code>\n"
            f"   - Role: {sub_agent.role}, Status: {sub_agent.status.value}\n"
            f"   - Wallet: <code>{sub_agent.wallet_address}</code>\n"
            f"   - Funding: <code>{sub_agent.funding_tx_hash}</code>"
        )
    await update.message.reply_html("\n".join(lines))

async def services_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    agent: AutonomousAgent = context.application.bot_data['agent']
    lines = ["<b>🛒 Services</b>\n"]
    for service in agent.get_services():
        lines.append(f"- <b>{service.name}</b> (<code>{service.id}</code>): {service.price}")
    await update.message.reply_html("\n".join(lines))

async def analyze_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Paid token analysis: price snapshot, sentiment and trading signals."""
    if not context.args:
        await update.message.reply_text("Usage: /analyze <token>")
        return

    token = context.args[0]
    await update.message.reply_text(f"Analyzing {_short(token)}...")
    response = await _request_service(update, context, 'market-analysis', {'token': token})
    if response is None:
        return

    analysis = response.result
    snapshot = analysis.snapshot
    lines = [
        f"<b>📈 {_short(token)}</b>",
        f"Price: <code>{snapshot.price}</code>",
        f"24h Change: <code>{snapshot.price_change_24h:+.2f}%</code>",
        f"24h Volume: <code>{snapshot.volume_24h:,.0f}</code>",
        f"Sentiment: <code>{analysis.sentiment:.2f}</code>",
        "",
    ]
    for signal in analysis.signals:
        lines.append(f"<b>{signal.action.upper()}</b> ({signal.confidence:.2f}) - {signal.reasoning}")
    lines.append(f"\nPayment: <code>{response.transaction_hash}</code>")
    await update.message.reply_html("\n".join(lines))

async def arbitrage_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Paid cross-venue arbitrage scan."""
    params = {'strategy': 'arbitrage'}
    if context.args:
        params['tokens'] = list(context.args)

    response = await _request_service(update, context, 'trading-strategy', params)
    if response is None:
        return

    opportunities = response.result
    if not opportunities:
        await update.message.reply_html(
            f"No arbitrage opportunities found.\nPayment: <code>{response.transaction_hash}</code>"
        )
        return

    lines = [f"<b>⚖️ Arbitrage opportunities ({len(opportunities)})</b>\n"]
    for opp in opportunities[:5]:
        lines.append(
            f"{_short(opp.token)}: {opp.dex_a} ↔ {opp.dex_b}\n"
            f"   - Profit est.: <code>{opp.profit_estimate:.6f}</code>, Risk: <code>{opp.risk:.2f}</code>"
        )
    lines.append(f"\nPayment: <code>{response.transaction_hash}</code>")
    await update.message.reply_html("\n".join(lines))

async def yield_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Paid yield farming ranking for an amount and risk tolerance."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /yield <amount> [low|medium|high]")
        return

    risk_tolerance = args[1].lower() if len(args) > 1 else 'medium'
    if risk_tolerance not in RISK_TOLERANCE_THRESHOLDS:
        await update.message.reply_text("Risk tolerance must be one of: low, medium, high.")
        return

    params = {'strategy': 'yield-farming', 'amount': args[0], 'riskTolerance': risk_tolerance}
    response = await _request_service(update, context, 'trading-strategy', params)
    if response is None:
        return

    opportunities = response.result
    if not opportunities:
        await update.message.reply_html(
            f"No protocols match that risk tolerance.\nPayment: <code>{response.transaction_hash}</code>"
        )
        return

    lines = [f"<b>🌾 Yield opportunities ({risk_tolerance} risk)</b>\n"]
    for opp in opportunities:
        lines.append(
            f"<b>{opp.protocol}</b>: APY <code>{opp.apy:.2f}%</code>, Risk <code>{opp.risk:.2f}</code>\n"
            f"   - TVL: <code>{opp.tvl:,.0f}</code>, Est. return: <code>{opp.estimated_return:.4f}</code>"
        )
    lines.append(f"\nPayment: <code>{response.transaction_hash}</code>")
    await update.message.reply_html("\n".join(lines))

async def transactions_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Recent transactions of the agent wallet, read from the chain."""
    agent: AutonomousAgent = context.application.bot_data['agent']
    address = agent.config.agent_wallet_address
    if not address:
        await update.message.reply_text("No agent wallet address is configured.")
        return

    history = await agent.payment_rail.get_transaction_history(address)
    if not history:
        await update.message.reply_text(f"No transactions found for {_short(address)}.")
        return

    lines = [f"<b>🧾 Recent transactions ({len(history)})</b>\n"]
    for tx in history:
        block_time = tx['block_time']
        when = time.strftime('%Y-%m-%d %H:%M:%S', time.gmtime(block_time)) if block_time else 'unknown'
        status = "failed" if tx['err'] else "ok"
        lines.append(f"<code>{_short(tx['signature'] or '')}</code> - {when} UTC - {status}")
    await update.message.reply_html("\n".join(lines))
