"""
userproof FastAPI server.

Endpoints:
  GET  /health                          — key + schema status
  GET  /api/users/crypto/public-key     — PEM public key for verifiers
  POST /api/users/crypto/proof          — hash + sign an email
  POST /api/users/crypto/verify         — verify an email hash signature
  POST /api/users/export                — user rows → protobuf UserCollection
  POST /api/users/export/decode         — protobuf UserCollection → JSON view
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from userproof.config import Settings, configure_logging
from userproof.crypto import HASH_ALGORITHM, SIGN_ALGORITHM
from userproof.errors import (
    InvalidInput,
    KeyUnavailable,
    MalformedInput,
    SchemaViolation,
    UserProofError,
)
from userproof.service import UserProofService

from .models import (
    ExportView,
    ProofRequest,
    ProofResponse,
    PublicKeyResponse,
    VerifyRequest,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

PROTOBUF_MEDIA_TYPE = "application/x-protobuf"

# ---------------------------------------------------------------------------
# Global state (one service per process)
# ---------------------------------------------------------------------------
_service: UserProofService | None = None


def get_service() -> UserProofService:
    global _service
    if _service is None:
        _service = UserProofService(Settings.from_env()).initialize()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    # KeyUnavailable here aborts startup: no traffic without keys.
    get_service()
    yield


app = FastAPI(
    title="userproof",
    description="Signed user records and protobuf user exports",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ERROR_STATUS = {
    InvalidInput: 400,
    MalformedInput: 400,
    SchemaViolation: 500,
    KeyUnavailable: 503,
}


@app.exception_handler(UserProofError)
async def userproof_error_handler(request: Request, exc: UserProofError):
    status = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "ok", **get_service().stats()}


# ---------------------------------------------------------------------------
# /api/users/crypto
# ---------------------------------------------------------------------------

@app.get("/api/users/crypto/public-key", response_model=PublicKeyResponse)
async def public_key():
    """Return the server public key for third-party signature checks."""
    service = get_service()
    return PublicKeyResponse(
        public_key=service.public_key_pem(),
        key_id=service.keys.key_id,
        algorithm=SIGN_ALGORITHM,
        hash_algorithm=HASH_ALGORITHM,
    )


@app.post("/api/users/crypto/proof", response_model=ProofResponse)
async def proof(req: ProofRequest):
    email_hash, signature = get_service().process_email(req.email)
    return ProofResponse(email_hash=email_hash, signature=signature)


@app.post("/api/users/crypto/verify", response_model=VerifyResponse)
async def verify(req: VerifyRequest):
    valid = get_service().verify(req.email_hash, req.signature, req.public_key)
    return VerifyResponse(valid=valid)


# ---------------------------------------------------------------------------
# /api/users/export
# ---------------------------------------------------------------------------

@app.post("/api/users/export")
async def export_users(users: list[dict[str, Any]]):
    """Serialize user rows into a protobuf UserCollection."""
    data = get_service().export_users(users)
    return Response(
        content=data,
        media_type=PROTOBUF_MEDIA_TYPE,
        headers={"X-Total-Count": str(len(users))},
    )


@app.post("/api/users/export/decode", response_model=ExportView)
async def decode_export(request: Request):
    collection = get_service().import_users(await request.body())
    return ExportView(records=collection.records, metadata=collection.metadata)
