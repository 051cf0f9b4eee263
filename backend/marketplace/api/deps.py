from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.core.security import decode_access_token_subject
from marketplace.database import get_db
from marketplace.models import User, UserRole


def _token_url() -> str:
    if settings.api_prefix:
        prefix = settings.api_prefix.rstrip("/")
        return f"{prefix}/auth/token"
    return "/auth/token"


oauth2_optional = OAuth2PasswordBearer(tokenUrl=_token_url(), auto_error=False)

_DB_DEP = Depends(get_db)
_TOKEN_OPT_DEP = Depends(oauth2_optional)


def _extract_bearer_from_headers(request: Request) -> Optional[str]:
    raw = request.headers.get("authorization") or request.headers.get("x-auth-token")
    if not raw:
        return None
    s = str(raw).strip()
    if not s:
        return None
    if s.lower().startswith("bearer "):
        return s.split(" ", 1)[1].strip()
    return s


def get_current_user(
    request: Request,
    db: Session = _DB_DEP,
    token: Optional[str] = _TOKEN_OPT_DEP,
) -> User:
    if not token:
        token = _extract_bearer_from_headers(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    subject = decode_access_token_subject(token)
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user = db.query(User).filter(User.email == subject, User.active.is_(True)).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


_CURRENT_USER_DEP = Depends(get_current_user)


def require_roles(*roles: UserRole) -> Callable:
    def dependency(user: User = _CURRENT_USER_DEP) -> User:
        if roles:
            # Admin has access to everything
            if user.role == UserRole.ADMIN:
                return user
            if user.role not in roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role"
                )
        return user

    return dependency


def require_admin(user: User = _CURRENT_USER_DEP) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return user


def require_supplier(user: User = _CURRENT_USER_DEP) -> User:
    # No admin bypass: the caller must own a supplier ledger.
    if user.role != UserRole.SUPPLIER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Suppliers only")
    return user


_SUPPLIER_DEP = Depends(require_supplier)


def get_approved_supplier(user: User = _SUPPLIER_DEP) -> User:
    """Suppliers can act (ship, withdraw) only once an admin has approved them."""

    if not user.is_approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Supplier account is awaiting approval",
        )
    return user
