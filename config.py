"""
Configuration management for local and Docker environments
Handles environment-specific settings for the rule engines and the worker
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Priority: .env.local (local dev) > .env.{ENVIRONMENT} > .env (default)
env_path = Path(__file__).parent

def load_env_config():
    """Load environment configuration based on environment variable"""
    environment = os.getenv("ENVIRONMENT", "local")

    local_env = env_path / ".env.local"
    if local_env.exists():
        load_dotenv(local_env, override=True)

    env_file = env_path / f".env.{environment}"
    if env_file.exists():
        load_dotenv(env_file, override=True)

    default_env = env_path / ".env"
    if default_env.exists():
        load_dotenv(default_env, override=False)

# Must run before Config reads the environment
load_env_config()

class Config:
    """Base configuration"""
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # Database (training records, positions, courses, access logs)
    DB_HOST = os.getenv("DB_HOST", "db")
    DB_PORT = int(os.getenv("DB_PORT", "5433"))
    DB_USER = os.getenv("DB_USER", "app")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "app")
    DB_NAME = os.getenv("DB_NAME", "trainingdb")

    # Redis (recompute lock, queue and summary cache)
    REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379")
    RECOMPUTE_QUEUE = os.getenv("RECOMPUTE_QUEUE", "compliance_recompute_queue")

    # Security
    AUTH_SECRET = os.getenv("AUTH_SECRET", "dev-secret")
    DOCS_USER = os.getenv("DOCS_USER", "docs")
    DOCS_PASS = os.getenv("DOCS_PASS", "docs123")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Rules
    PASSING_SCORE = float(os.getenv("PASSING_SCORE", "70"))
    RECOMPUTE_BATCH_SIZE = int(os.getenv("RECOMPUTE_BATCH_SIZE", "450"))
    ALERT_WARNING_DAYS = int(os.getenv("ALERT_WARNING_DAYS", "60"))

    # Service discovery
    COMPLIANCE_ENGINE_URL = os.getenv("COMPLIANCE_ENGINE_URL", "http://compliance-engine:8005")

