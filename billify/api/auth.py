from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billify.core.auth import SessionUser, create_session_token, get_current_user
from billify.core.config import settings
from billify.db.session import get_db
from billify.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(default="", max_length=128)
    last_name: str = Field(default="", max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1, max_length=128)


def _user_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


def _set_session_cookie(response: Response, user: User) -> None:
    token = create_session_token(user_id=str(user.id), email=user.email)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.app_env.lower() == "prod",
        max_age=int(settings.auth_session_hours * 3600),
        path="/",
    )


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    user = User(
        email=payload.email.strip().lower(),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
    )
    user.set_password(payload.password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered") from e
    db.refresh(user)
    _set_session_cookie(response, user)
    return {"ok": True, "user": _user_dict(user)}


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    email = payload.email.strip().lower()
    user = db.execute(select(User).where(func.lower(User.email) == email)).scalars().first()
    if not user or not user.credential.verify(payload.password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    _set_session_cookie(response, user)
    return {"ok": True, "user": _user_dict(user)}


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"ok": True}


@router.get("/me")
def me(current: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    user = db.get(User, current.uuid)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"authenticated": True, "user": _user_dict(user)}
