import math
import re
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.auth.kinds import AccountKind, AccountStore
from marketplace.auth.throttle import normalize_email
from marketplace.db import get_db, store_errors
from marketplace.models import Account, AccountPage
from marketplace.security.logger import auth_logger as logger
from marketplace.security.passwords import hash_password, verify_password
from marketplace.security.tokens import TokenClaims
from marketplace.security_utils import get_current_claims, require_kind, require_path_kind

router = APIRouter(prefix="/accounts", tags=["accounts"])

MAX_PAGE_SIZE = 100
SEARCH_FIELDS = ("email", "name")


def _password_rules(v: str) -> str:
    if len(v) < 6 or len(v) > 32:
        raise ValueError("password must be 6 to 32 characters long")
    if any(ch.isspace() for ch in v):
        raise ValueError("password must not contain whitespace")
    if any(ord(ch) > 126 or ord(ch) < 32 for ch in v):
        raise ValueError("password must only use latin characters")
    if not re.search(r"[a-z]", v):
        raise ValueError("password must include a lowercase letter")
    if not re.search(r"[A-Z]", v):
        raise ValueError("password must include an uppercase letter")
    if not re.search(r"\d", v):
        raise ValueError("password must include a digit")
    if not re.search(r"[^A-Za-z0-9]", v):
        raise ValueError("password must include a special character")
    return v


# ---------------- Payloads ----------------
class RegisterPayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str
    password_confirm: str

    @field_validator("password")
    @classmethod
    def _password_policy(cls, v: str) -> str:
        return _password_rules(v)

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterPayload":
        if self.password != self.password_confirm:
            raise ValueError("password confirmation does not match")
        return self


class ChangePasswordPayload(BaseModel):
    password_old: str = Field(min_length=1)
    password_new: str
    password_confirm: str

    @field_validator("password_new")
    @classmethod
    def _password_policy(cls, v: str) -> str:
        return _password_rules(v)

    @model_validator(mode="after")
    def _passwords_match(self) -> "ChangePasswordPayload":
        if self.password_new != self.password_confirm:
            raise ValueError("password confirmation does not match")
        return self


class AccountUpdatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr


# ---------------- Utilities ----------------
def _parse_search(search: Optional[str]) -> Optional[Tuple[str, str]]:
    # "field:key"; anything else lists every account
    if not search:
        return None
    field, sep, key = search.partition(":")
    if not sep or field not in SEARCH_FIELDS:
        return None
    return field, key


def _parse_sort(sort: Optional[str]) -> Tuple[str, bool]:
    field, _, order = (sort or "").partition(":")
    if field not in SEARCH_FIELDS:
        return "email", False
    return field, order.lower() == "desc"


def _create_account(kind: AccountKind, payload: RegisterPayload, db: Session) -> Account:
    email = normalize_email(str(payload.email))
    store = AccountStore(db, kind.model)
    if store.find_by_email(email):
        logger.info(f"Registration refused for {kind.value} {email}: email exists")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email_already_registered")

    account = kind.model(name=payload.name.strip(), email=email, password_hash=hash_password(payload.password))
    with store_errors(db, f"{kind.value} store"):
        db.add(account)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email_already_registered")
        db.refresh(account)

    logger.info(f"Registered {kind.value} {email} id={account.id}")
    return Account.model_validate(account)


def _current_account(kind: AccountKind, claims: TokenClaims, db: Session):
    account = AccountStore(db, kind.model).get(claims.account_id)
    if account is None or account.email != claims.email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unknown_account")
    return account


def _get_or_404(kind: AccountKind, account_id: int, db: Session):
    account = AccountStore(db, kind.model).get(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account_not_found")
    return account


def require_admin_or_owner(
    kind: AccountKind,
    account_id: int,
    claims: TokenClaims = Depends(get_current_claims),
) -> TokenClaims:
    """Administrators manage every account; anyone else only their own."""
    if claims.kind == AccountKind.USER.value:
        return claims
    if claims.kind == kind.value and claims.account_id == account_id:
        return claims
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")


# ---------------- Routes ----------------
# Declared before "/{kind}" so administrator sign-up never reaches the public route.
@router.post("/user", response_model=Account, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: RegisterPayload,
    claims: TokenClaims = Depends(require_kind(AccountKind.USER)),
    db: Session = Depends(get_db),
) -> Account:
    logger.info(f"Administrator {claims.email} is creating user {payload.email}")
    return _create_account(AccountKind.USER, payload, db)


@router.post("/{kind}", response_model=Account, status_code=status.HTTP_201_CREATED)
def register(kind: AccountKind, payload: RegisterPayload, db: Session = Depends(get_db)) -> Account:
    return _create_account(kind, payload, db)


@router.get("/{kind}", response_model=AccountPage)
def list_accounts(
    kind: AccountKind,
    page_number: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=200),
    sort: Optional[str] = Query(None, max_length=20),
    claims: TokenClaims = Depends(require_kind(AccountKind.USER)),
    db: Session = Depends(get_db),
) -> AccountPage:
    total, rows = AccountStore(db, kind.model).page(
        offset=(page_number - 1) * page_size,
        limit=page_size,
        search=_parse_search(search),
        sort=_parse_sort(sort),
    )
    total_page = math.ceil(total / page_size)
    if total and page_number > total_page:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="page_out_of_range")

    return AccountPage(
        page_number=page_number,
        page_size=page_size,
        count=len(rows),
        total_page=total_page,
        has_previous_page=page_number > 1,
        has_next_page=page_number < total_page,
        data=[Account.model_validate(row) for row in rows],
    )


@router.get("/{kind}/me", response_model=Account)
def me(kind: AccountKind, claims: TokenClaims = Depends(require_path_kind), db: Session = Depends(get_db)) -> Account:
    return Account.model_validate(_current_account(kind, claims, db))


@router.post("/{kind}/me/change-password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    kind: AccountKind,
    payload: ChangePasswordPayload,
    claims: TokenClaims = Depends(require_path_kind),
    db: Session = Depends(get_db),
) -> Response:
    account = _current_account(kind, claims, db)
    if not verify_password(payload.password_old, account.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_current_password")

    with store_errors(db, f"{kind.value} store"):
        account.password_hash = hash_password(payload.password_new)
        db.commit()

    logger.info(f"Password changed for {kind.value} {account.email}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{kind}/{account_id}", response_model=Account)
def get_account(
    kind: AccountKind,
    account_id: int,
    claims: TokenClaims = Depends(require_kind(AccountKind.USER)),
    db: Session = Depends(get_db),
) -> Account:
    return Account.model_validate(_get_or_404(kind, account_id, db))


@router.put("/{kind}/{account_id}", response_model=Account)
def update_account(
    kind: AccountKind,
    account_id: int,
    payload: AccountUpdatePayload,
    claims: TokenClaims = Depends(require_admin_or_owner),
    db: Session = Depends(get_db),
) -> Account:
    account = _get_or_404(kind, account_id, db)
    email = normalize_email(str(payload.email))
    existing = AccountStore(db, kind.model).find_by_email(email)
    if existing is not None and existing.id != account.id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email_already_registered")

    with store_errors(db, f"{kind.value} store"):
        account.name = payload.name.strip()
        account.email = email
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email_already_registered")
        db.refresh(account)

    logger.info(f"{claims.kind} {claims.email} updated {kind.value} id={account_id}")
    return Account.model_validate(account)


@router.delete("/{kind}/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    kind: AccountKind,
    account_id: int,
    claims: TokenClaims = Depends(require_admin_or_owner),
    db: Session = Depends(get_db),
) -> Response:
    account = _get_or_404(kind, account_id, db)
    with store_errors(db, f"{kind.value} store"):
        db.delete(account)
        db.commit()

    logger.info(f"{claims.kind} {claims.email} deleted {kind.value} id={account_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
