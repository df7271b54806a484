import pytest
from unittest.mock import AsyncMock, MagicMock

from bot.handlers import transactions_command


def _context(agent):
    context = MagicMock()
    context.application.bot_data = {'agent': agent}
    return context


def _update():
    update = MagicMock()
    update.message.reply_text = AsyncMock()
    update.message.reply_html = AsyncMock()
    return update


def _agent(mock_config, history):
    agent = MagicMock()
    agent.config = mock_config
    agent.payment_rail.get_transaction_history = AsyncMock(return_value=history)
    return agent


@pytest.mark.asyncio
async def test_transactions_lists_agent_wallet_history(mock_config):
    config = mock_config._replace(agent_wallet_address='AgentWallet1111111111111111111111111111111')
    agent = _agent(config, [
        {'signature': '5sigAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA', 'block_time': 0, 'slot': 1, 'err': None},
        {'signature': '5sigBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB', 'block_time': 1_700_000_000, 'slot': 2, 'err': {'InstructionError': []}},
    ])
    update = _update()

    await transactions_command(update, _context(agent))

    agent.payment_rail.get_transaction_history.assert_awaited_once_with('AgentWallet1111111111111111111111111111111')
    text = update.message.reply_html.await_args.args[0]
    assert 'Recent transactions (2)' in text
    assert '5sig...AAAA' in text
    assert '2023-11-14 22:13:20 UTC - failed' in text
    assert 'unknown UTC - ok' in text


@pytest.mark.asyncio
async def test_transactions_without_wallet_address(mock_config):
    agent = _agent(mock_config._replace(agent_wallet_address=None), [])
    update = _update()

    await transactions_command(update, _context(agent))

    update.message.reply_text.assert_awaited_once_with("No agent wallet address is configured.")
    agent.payment_rail.get_transaction_history.assert_not_awaited()


@pytest.mark.asyncio
async def test_transactions_with_empty_history(mock_config):
    agent = _agent(mock_config._replace(agent_wallet_address='AgentWallet'), [])
    update = _update()

    await transactions_command(update, _context(agent))

    update.message.reply_text.assert_awaited_once_with("No transactions found for AgentWallet.")
