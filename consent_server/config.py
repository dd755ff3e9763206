"""
Consent server configuration. Values come from env; no secrets in this file.
"""
import os
import secrets
from dataclasses import dataclass

# Issuer URL (public identifier); redirect targets are built from it
ISSUER = os.environ.get("OAUTH_ISSUER", "http://127.0.0.1:9000").rstrip("/")

# Async SQLAlchemy URL. SQLite via aiosqlite for development
DATABASE_URL = os.environ.get("AUTH_DATABASE_URL", "sqlite+aiosqlite:///./consent_server.db")

# Interaction cookie: HS256 JWT carrying the interaction uid.
# Without a configured secret a random one is used, so cookies do not survive a restart.
INTERACTION_COOKIE_NAME = "_interaction"
INTERACTION_COOKIE_SECRET = os.environ.get("OAUTH_INTERACTION_SECRET") or secrets.token_urlsafe(32)
INTERACTION_TTL_SECONDS = int(os.environ.get("OAUTH_INTERACTION_TTL", "3600"))

# Filter missing resource scopes down to the ones the user actually holds,
# and break them down per organization on the consent page.
EXTENDED_SCOPE_RESOLUTION = os.environ.get("OAUTH_EXTENDED_SCOPE_RESOLUTION", "").strip().lower() in (
    "1",
    "true",
    "yes",
    "on",
)


@dataclass(frozen=True)
class ConsentConfig:
    extended_scope_resolution: bool = False


def get_consent_config() -> ConsentConfig:
    """Dependency: consent behaviour switches built from env."""
    return ConsentConfig(extended_scope_resolution=EXTENDED_SCOPE_RESOLUTION)
