"""
Audit logging. Security-relevant consent events only; no tokens or full request bodies.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from consent_server.models import AuditLog

EVENT_CONSENT_ALLOW = "consent_allow"
EVENT_CONSENT_ORGANIZATIONS_GRANTED = "consent_organizations_granted"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


async def log_audit(
    session_factory: async_sessionmaker[AsyncSession],
    event_type: str,
    *,
    client_id: str | None = None,
    user_id: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
) -> None:
    """Append one audit record."""
    async with session_factory() as session:
        async with session.begin():
            session.add(
                AuditLog(
                    event_type=event_type,
                    client_id=client_id,
                    user_id=user_id,
                    outcome=outcome,
                )
            )
