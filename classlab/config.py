"""
Classlab Configuration
Database, auth and judge service settings (all from environment)
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "classlab_db")

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))

# Judge backend: "judge0" or "codex"
JUDGE_BACKEND = os.getenv("JUDGE_BACKEND", "judge0").lower()

# Judge0 (RapidAPI or self-hosted)
JUDGE0_API_URL = os.getenv("JUDGE0_API_URL", "https://judge0-ce.p.rapidapi.com")
JUDGE0_API_KEY = os.getenv("JUDGE0_API_KEY", "")
JUDGE0_API_HOST = os.getenv("JUDGE0_API_HOST", "judge0-ce.p.rapidapi.com")

# Codex
CODEX_API_URL = os.getenv("CODEX_API_URL", "https://api.codex.jaagrav.in")

# Judge timeout settings
JUDGE_TIMEOUT_SECONDS = float(os.getenv("JUDGE_TIMEOUT_SECONDS", "60"))
JUDGE_POLL_INTERVAL_SECONDS = float(os.getenv("JUDGE_POLL_INTERVAL_SECONDS", "1"))

# Runtime
DEBUG = os.getenv("DEBUG", "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
