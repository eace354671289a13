"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_float(name: str, default: float = 0.0) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Storage
DATABASE_PATH: str = _env("DATABASE_PATH", "data/taskmarket.db") or "data/taskmarket.db"
UPLOAD_DIR_NAME: str = "data/uploads"

# Allowed attachment extensions
ALLOWED_EXTENSIONS: frozenset[str] = frozenset({".txt", ".pdf", ".csv", ".md"})

# Per-extension upload size caps (bytes)
MAX_UPLOAD_BYTES: dict[str, int] = {
    ".pdf": 16 * 1024 * 1024,
    ".csv": 8 * 1024 * 1024,
    ".txt": 4 * 1024 * 1024,
    ".md": 4 * 1024 * 1024,
}

# Task model
RUNNABLE_STATUSES: tuple[str, ...] = ("ASSIGNED", "IN_PROGRESS")
QUICK_TASK_PAYOUT: str = "0.1"
QUICK_TASK_CURRENCY: str = "SOL"

# Auth (JWT HS256)
JWT_SECRET: str = _env("JWT_SECRET", "dev_secret") or "dev_secret"
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRES_SECONDS: int = 60 * 60 * 24 * 7

# OpenAI (agent LLM)
OPENAI_API_KEY: str = _env("OPENAI_API_KEY")
OPENAI_LLM_MODEL: str = _env("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini"
AGENT_MODEL: str = _env("AGENT_MODEL") or OPENAI_LLM_MODEL
LLM_TEMPERATURE: float = 0.2

# Research APIs
TAVILY_API_KEY: str = _env("TAVILY_API_KEY")
TAVILY_SEARCH_URL: str = "https://api.tavily.com/search"
PERPLEXITY_API_KEY: str = _env("PERPLEXITY_API_KEY")
PERPLEXITY_MODEL: str = _env("PERPLEXITY_MODEL", "sonar-pro") or "sonar-pro"
PERPLEXITY_CHAT_URL: str = "https://api.perplexity.ai/chat/completions"

# URL fetch: readable text is capped at this many characters
URL_TEXT_MAX: int = 6000

# Discord
DISCORD_API_BASE: str = "https://discord.com/api/v10"
DISCORD_APP_ID: str = _env("DISCORD_APP_ID")
DISCORD_BOT_TOKEN: str = _env("DISCORD_BOT_TOKEN")
DISCORD_CHANNEL_ID: str = _env("DISCORD_CHANNEL_ID")
DEBUG_DISCORD: bool = _env("DEBUG_DISCORD") == "1"

# Solana
SOLANA_NETWORK: str = _env("SOLANA_NETWORK", "devnet") or "devnet"
SOLANA_RPC_URL: str = _env("SOLANA_RPC_URL", "https://api.devnet.solana.com") or "https://api.devnet.solana.com"
SOLANA_CLUSTERS: tuple[str, ...] = ("devnet", "testnet", "mainnet-beta")
SOLANA_EXPLORER_TX: str = "https://explorer.solana.com/tx"
PAYER_KEYPAIR_JSON: str = _env("PAYER_KEYPAIR_JSON")
PAYER_KEYPAIR_B64: str = _env("PAYER_KEYPAIR_B64")
PAYER_KEYPAIR_PATH: str = _env("PAYER_KEYPAIR_PATH", "./secrets/agenx-wallet.json") or "./secrets/agenx-wallet.json"
COINGECKO_PRICE_URL: str = "https://api.coingecko.com/api/v3/simple/price"

# Autonomous payout after a completed task
AGENT_PUBLIC_KEY: str = _env("AGENT_PUBLIC_KEY")
PAYOUT_SOL: float = _env_float("PAYOUT_SOL")
PAYOUT_USD: float = _env_float("PAYOUT_USD")
MIN_PAYOUT_SOL: float = 0.000001

# x402
USDC_MINT: str = _env("USDC_MINT")
# Known USDC mints per cluster
KNOWN_USDC_MINTS: dict[str, str] = {
    "devnet": "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
    "mainnet-beta": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
}
USDC_DECIMALS: int = 6
X402_VERSION: int = 1
X402_DEMO_URL: str = "https://triton.api.corbits.dev"
X402_CHALLENGE_BASE: str = _env("X402_CHALLENGE_BASE", "https://x402.example") or "https://x402.example"
X402_WEBHOOK_SECRET: str = _env("X402_WEBHOOK_SECRET")

# Scheduler tick
CRON_SECRET: str = _env("CRON_SECRET")
CRON_BATCH_SIZE: int = 3
PUBLIC_BASE_URL: str = _env("PUBLIC_BASE_URL")

# API timeouts (seconds)
LLM_API_TIMEOUT: float = 60.0
TOOLS_HTTP_TIMEOUT: float = 15.0
RESEARCH_API_TIMEOUT: float = 60.0
DISCORD_API_TIMEOUT: float = 15.0
AGENT_RUN_TIMEOUT: float = 300.0

# Agent tool loop
MAX_AGENTIC_ROUNDS: int = 8
AGENT_MAX_TOKENS: int = 1024
