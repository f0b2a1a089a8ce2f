from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from marketplace.auth.kinds import AccountKind
from marketplace.errors import InvalidToken
from marketplace.security.tokens import TokenClaims, TokenIssuer


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.tokens


def get_current_claims(request: Request, tokens: TokenIssuer = Depends(get_token_issuer)) -> TokenClaims:
    auth = request.headers.get("authorization", "")
    parts = auth.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")
    try:
        return tokens.validate(parts[1])
    except InvalidToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def require_kind(need: AccountKind):
    def _dep(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if claims.kind != need.value:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
        return claims

    return _dep


def require_path_kind(kind: AccountKind, claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """Like ``require_kind`` but for routes carrying ``{kind}`` in their path."""
    if claims.kind != kind.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
    return claims


__all__ = ["get_current_claims", "get_token_issuer", "require_kind", "require_path_kind"]
