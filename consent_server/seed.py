"""
Seed a user and an application from environment. No hardcoded credentials.
Optional: set OAUTH_SEED_USER (+ OAUTH_SEED_USER_ID), OAUTH_CLIENT_ID (+ OAUTH_CLIENT_NAME).
"""
import logging
import os

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from consent_server.models import Application, User

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "test-client"


async def seed_from_env(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create one user and/or one application from env if set, plus the default dev application."""
    async with session_factory() as session:
        async with session.begin():
            seed_user = os.environ.get("OAUTH_SEED_USER")
            if seed_user:
                existing = await session.execute(select(User).where(User.username == seed_user))
                if existing.scalars().first() is None:
                    user = User(username=seed_user, name=seed_user)
                    if os.environ.get("OAUTH_SEED_USER_ID"):
                        user.id = os.environ["OAUTH_SEED_USER_ID"]
                    session.add(user)
                    logger.info("Seeded user: %s", seed_user)
                else:
                    logger.debug("User already exists: %s", seed_user)

            client_id = os.environ.get("OAUTH_CLIENT_ID")
            if client_id:
                if await session.get(Application, client_id) is None:
                    name = os.environ.get("OAUTH_CLIENT_NAME") or client_id
                    session.add(Application(id=client_id, name=name))
                    logger.info("Seeded application: %s", client_id)
                else:
                    logger.debug("Application already exists: %s", client_id)

            # Development fallback: default dev application so quick start works
            if client_id != DEFAULT_CLIENT_ID and await session.get(Application, DEFAULT_CLIENT_ID) is None:
                session.add(Application(id=DEFAULT_CLIENT_ID, name="Test Client"))
                logger.info("Seeded default dev application: %s", DEFAULT_CLIENT_ID)
