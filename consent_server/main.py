"""
Consent server: consent step of the OIDC interaction flow.
GET/POST /interaction/consent, backed by the interaction layer and the query interface.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError

from consent_server.consent import router as consent_router
from consent_server.database import SessionLocal, init_db
from consent_server.errors import (
    OIDCError,
    RequestError,
    oidc_error_handler,
    request_error_handler,
    validation_error_handler,
)
from consent_server.seed import seed_from_env


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed user/application from env on startup."""
    await init_db()
    await seed_from_env(SessionLocal)
    yield


app = FastAPI(title="Consent Server", version="0.1.0", lifespan=lifespan)
app.add_exception_handler(OIDCError, oidc_error_handler)
app.add_exception_handler(RequestError, request_error_handler)
app.add_exception_handler(ValidationError, validation_error_handler)
app.include_router(consent_router, tags=["consent"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "consent_server"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "consent_server.main:app",
        host="127.0.0.1",
        port=9000,
        reload=True,
    )
