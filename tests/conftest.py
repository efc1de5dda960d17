import os

# settings are cached on first import; pin them before any app module loads
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREDENTIALS_ENCRYPTION_KEY", "00112233445566778899aabbccddeeff" * 2)
os.environ.setdefault("AI_PROVIDER", "anthropic")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "1000/minute")
