# backend/marketplace/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from marketplace.auth.kinds import AccountKind, build_login_throttle
from marketplace.auth.throttle import AuthFailure
from marketplace.core.settings import get_settings
from marketplace.db import get_db
from marketplace.models import SessionInfo
from marketplace.security.logger import auth_logger as logger
from marketplace.security.rate_limit import limiter, login_rate_limit
from marketplace.security.tokens import TokenClaims, TokenIssuer
from marketplace.security_utils import get_token_issuer, require_path_kind

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------- Payloads ----------------
class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


# ---------------- Utilities ----------------
def _client_ip(request: Request) -> str:
    client = request.client
    return client.host if client and client.host else "0.0.0.0"


# ---------------- Login route ----------------
@router.post("/{kind}/login")
@limiter.limit(login_rate_limit)
def login(
    request: Request,
    kind: AccountKind,
    payload: LoginPayload,
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    ip = _client_ip(request)
    logger.info(f"Login attempt for {kind.value} {payload.email} from IP {ip} Password:[REDACTED]")

    throttle = build_login_throttle(kind, db, get_settings(), tokens, request.app.state.dummy_hash)
    result = throttle.authenticate(str(payload.email), payload.password)
    if isinstance(result, AuthFailure):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_credentials", "failed_attempts": result.attempts_so_far},
        )

    return {
        "email": result.email,
        "name": result.name,
        kind.id_field: result.account_id,
        "token": result.token,
    }


# ---------------- Token check ----------------
@router.get("/{kind}/session", response_model=SessionInfo)
def session_info(claims: TokenClaims = Depends(require_path_kind)) -> SessionInfo:
    return SessionInfo(email=claims.email, account_id=claims.account_id, kind=claims.kind)
