#!/usr/bin/env python3
from typing import Dict, List, Tuple, Union

# --- ANSI Color Codes ---
C_GREEN = '\033[92m'
C_RED = '\033[91m'
C_YELLOW = '\033[93m'
C_BLUE = '\033[94m'
C_RESET = '\033[0m'

# --- API Configuration ---
BIRDEYE_API_BASE_URL = 'https://public-api.birdeye.so/defi'
DEFILLAMA_API_BASE_URL = 'https://api.llama.fi'
DEFILLAMA_YIELDS_BASE_URL = 'https://yields.llama.fi'
HELIUS_API_BASE_URL = 'https://api.helius.xyz/v0'

# --- Environment Variable Names ---
AGENT_WALLET_ADDRESS_ENV_VAR = 'AGENT_WALLET_ADDRESS'
FACILITATOR_ADDRESS_ENV_VAR = 'FACILITATOR_ADDRESS'
BIRDEYE_API_KEY_ENV_VAR = 'BIRDEYE_API_KEY'
HELIUS_API_KEY_ENV_VAR = 'HELIUS_API_KEY'
SOLANA_RPC_URL_ENV_VAR = 'SOLANA_RPC_URL'
BASE_RPC_URL_ENV_VAR = 'BASE_RPC_URL'
PAYMENT_MODE_ENV_VAR = 'PAYMENT_MODE'
TELEGRAM_BOT_TOKEN_ENV_VAR = 'TELEGRAM_BOT_TOKEN'
TELEGRAM_CHAT_ID_ENV_VAR = 'TELEGRAM_CHAT_ID'

# --- Network Configuration ---
NETWORK_CONFIG: Dict[str, Dict[str, Union[str, int]]] = {
    'solana': {
        'nativeSymbol': 'SOL',
        'defaultRpcUrl': 'https://api.mainnet-beta.solana.com',
        'rpcEnvVar': SOLANA_RPC_URL_ENV_VAR,
        'decimals': 9,
    },
    'base': {
        'nativeSymbol': 'ETH',
        'defaultRpcUrl': 'https://mainnet.base.org',
        'rpcEnvVar': BASE_RPC_URL_ENV_VAR,
        'decimals': 18,
    },
}

PAYMENT_MODES = ('simulated', 'onchain')

# Wrapped SOL mint, the default token analysed and scanned.
DEFAULT_TOKEN = 'So11111111111111111111111111111111111111112'

# --- Oracle ---
PRICE_CACHE_TTL_SECONDS = 30.0
ORACLE_MIN_REQUEST_INTERVAL = 2.0
ORACLE_TIMEOUT_SECONDS = 5
# Simulated per-venue deviation from the aggregated price (0.1% - 0.5%).
DEX_PRICE_VARIATION_MIN = 0.001
DEX_PRICE_VARIATION_SPAN = 0.004

# --- Scoring Engine ---
SIGNAL_WEIGHTS: Dict[str, float] = {
    'price': 0.30,
    'volume': 0.25,
    'sentiment': 0.20,
    'momentum': 0.15,
    'liquidity': 0.10,
}
VOLUME_NORMALIZER = 1_000_000.0
LIQUIDITY_NORMALIZER = 10_000_000.0
ACTION_THRESHOLD = 0.3
HIGH_CONFIDENCE_THRESHOLD = 0.7
UNCERTAIN_HOLD_CONFIDENCE = 0.5
MOMENTUM_SIGNAL_CONFIDENCE = 0.6

# --- Arbitrage ---
DEFAULT_DEX_VENUES: List[str] = ['jupiter', 'raydium', 'orca']
ARBITRAGE_MIN_SPREAD_PCT = 0.5
ARBITRAGE_EXECUTION_MIN_SPREAD_PCT = 0.3
ARBITRAGE_FEE_FACTOR = 0.997
ARBITRAGE_MAX_SLIPPAGE = 0.005
ARBITRAGE_SWAP_FEE = 0.003
ARBITRAGE_BASE_RISK = 0.3
ARBITRAGE_MAX_LIQUIDITY_RISK = 0.4
ARBITRAGE_EXECUTION_RISK = 0.2

# --- Yield Farming ---
YIELD_PROTOCOLS: List[Dict[str, Union[str, float]]] = [
    {'name': 'Marinade Finance', 'slug': 'marinade-finance', 'defaultAPY': 7.5, 'risk': 0.2, 'chain': 'solana'},
    {'name': 'Lido', 'slug': 'lido', 'defaultAPY': 8.2, 'risk': 0.15, 'chain': 'solana'},
    {'name': 'Jito', 'slug': 'jito', 'defaultAPY': 9.1, 'risk': 0.3, 'chain': 'solana'},
    {'name': 'Raydium', 'slug': 'raydium', 'defaultAPY': 15.5, 'risk': 0.6, 'chain': 'solana'},
    {'name': 'Orca', 'slug': 'orca', 'defaultAPY': 12.3, 'risk': 0.5, 'chain': 'solana'},
]
PROTOCOL_TVL_RANGES: Dict[str, Tuple[float, float]] = {
    'Marinade Finance': (500_000_000.0, 2_000_000_000.0),
    'Lido': (1_000_000_000.0, 5_000_000_000.0),
    'Jito': (200_000_000.0, 800_000_000.0),
    'Raydium': (50_000_000.0, 500_000_000.0),
    'Orca': (30_000_000.0, 300_000_000.0),
}
DEFAULT_TVL_RANGE: Tuple[float, float] = (10_000_000.0, 100_000_000.0)
RISK_TOLERANCE_THRESHOLDS: Dict[str, float] = {'low': 0.3, 'medium': 0.6, 'high': 1.0}
RISK_TOLERANCE_MULTIPLIERS: Dict[str, float] = {'low': 0.3, 'medium': 0.6, 'high': 1.0}
YIELD_RISK_PENALTY = 50.0
YIELD_TOKEN = 'SOL'

# --- Reinvestment Policy ---
DEFAULT_REINVESTMENT_THRESHOLD = 1.0
SPAWN_COST = 0.3
UPGRADE_COST = 0.5
MAX_SUB_AGENTS = 5
UPGRADE_MAX_SUB_AGENTS = 2
UPGRADE_MIN_TOTAL_EARNINGS = 10.0
SUB_AGENT_DEFAULT_ROLE = 'data-collector'
MAIN_AGENT_ID = 'main'

# --- Services ---
DEFAULT_SERVICES: List[Dict[str, Union[str, float, bool]]] = [
    {'id': 'market-analysis', 'name': 'Market Analysis', 'type': 'market-analysis', 'price': 0.01, 'enabled': True},
    {'id': 'trading-strategy', 'name': 'Trading Strategy', 'type': 'trading-strategy', 'price': 0.05, 'enabled': True},
    {'id': 'data-aggregation', 'name': 'Data Aggregation', 'type': 'data-aggregation', 'price': 0.02, 'enabled': True},
]

# --- Data Aggregation ---
TREND_THRESHOLD_PCT = 5.0
PROTOCOL_ANALYTICS: List[Dict[str, Union[str, float, int]]] = [
    {'protocol': 'Raydium', 'tvl': 500_000_000, 'volume24h': 100_000_000, 'uniqueUsers': 15000},
    {'protocol': 'Orca', 'tvl': 300_000_000, 'volume24h': 80_000_000, 'uniqueUsers': 12000},
]
