from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace import models
from marketplace.api.deps import get_current_user
from marketplace.core.security import create_access_token_for_subject, verify_password
from marketplace.database import get_db
from marketplace.schemas import Token, UserRead, UserRegister
from marketplace.services import directory
from marketplace.services.audit import audit_request

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=Token)
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    email = (form_data.username or "").strip().lower()
    try:
        user = db.query(models.User).filter(models.User.email == email).first()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable or not initialized. Try again shortly.",
        )
    if not user or not verify_password(form_data.password, user.hashed_password):
        audit_request(request, "auth.login_failed", None, {"email": email}, db=db)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password"
        )
    if not user.active:
        audit_request(request, "auth.login_inactive", user.id, {"email": user.email}, db=db)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    access_token = create_access_token_for_subject(user.email)
    audit_request(request, "auth.login_success", user.id, {"email": user.email}, db=db)
    return Token(access_token=access_token)


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(request: Request, payload: UserRegister, db: Session = Depends(get_db)):
    # Admin accounts come from the seed script only.
    user = directory.register_user(
        db=db,
        email=payload.email,
        name=payload.name,
        password=payload.password,
        role=payload.role,
        phone=payload.phone,
        tax_id=payload.tax_id,
        payout_qr_url=payload.payout_qr_url,
    )
    audit_request(
        request,
        "auth.register",
        user.id,
        {"email": user.email, "role": user.role.value, "short_code": user.short_code},
        db=db,
    )
    return user
