import pytest

from config import AppConfig, default_services


@pytest.fixture
def mock_config():
    return AppConfig(
        agent_id='agent-test',
        agent_name='Test Agent',
        network='solana',
        payment_mode='simulated',
        rpc_url='http://mock-rpc',
        agent_wallet_address=None,
        facilitator_address=None,
        birdeye_api_key=None,
        helius_api_key=None,
        min_balance=0.1,
        reinvestment_threshold=1.0,
        interval=60,
        tokens=['SOL_MINT'],
        dex_venues=['jupiter', 'raydium', 'orca'],
        min_arbitrage_profit=0.05,
        max_arbitrage_risk=0.5,
        arbitrage_amount=0.5,
        confirmation_delay=0.0,
        autonomous_enabled=True,
        telegram_enabled=False,
        telegram_bot_token=None,
        telegram_chat_id=None,
        services=default_services(),
    )
