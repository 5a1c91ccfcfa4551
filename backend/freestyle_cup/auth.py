from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, HTTPException, Depends
from itsdangerous import URLSafeSerializer, BadSignature

from .settings import settings

COOKIE_NAME = "cup_auth"

def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(settings.CUP_SECRET_KEY, salt="freestyle-cup-auth")

@dataclass
class CurrentUser:
    id: str
    name: str
    email: str
    is_admin: bool = False
    club_id: Optional[str] = None

def issue_token(*, user_id: str, name: str, email: str, is_admin: bool, club_id: Optional[str]) -> str:
    return _serializer().dumps({"id": user_id, "n": name, "e": email, "a": is_admin, "club_id": club_id})

def set_login_cookie(request: Request, *, user_id: str, name: str, email: str, is_admin: bool, club_id: Optional[str]) -> None:
    request.state._set_auth_cookie = issue_token(
        user_id=user_id, name=name, email=email, is_admin=is_admin, club_id=club_id
    )

def clear_login_cookie(request: Request) -> None:
    request.state._clear_auth_cookie = True

def get_current_user(request: Request) -> Optional[CurrentUser]:
    raw = request.cookies.get(COOKIE_NAME)
    if not raw:
        return None
    try:
        data = _serializer().loads(raw)
    except BadSignature:
        return None
    try:
        return CurrentUser(
            id=str(data["id"]),
            name=str(data.get("n") or ""),
            email=str(data.get("e") or ""),
            is_admin=bool(data.get("a")),
            club_id=data.get("club_id"),
        )
    except (KeyError, TypeError):
        return None

def login_required(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user

def admin_required(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if not user or not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin required")
    return user

def assert_can_access_club(user: CurrentUser, club_id: str) -> None:
    # Admin can access every club; club users only their own
    if user.is_admin:
        return
    if user.club_id is not None and user.club_id == club_id:
        return
    raise HTTPException(status_code=403, detail="Not allowed for this club")

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

class AuthCookieMiddleware(BaseHTTPMiddleware):
    """Applies the cookie changes that login/logout handlers stage on request.state."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        if getattr(request.state, "_clear_auth_cookie", False):
            response.delete_cookie(COOKIE_NAME)
            return response
        token = getattr(request.state, "_set_auth_cookie", None)
        if token:
            response.set_cookie(
                COOKIE_NAME,
                token,
                httponly=True,
                samesite="strict" if settings.CUP_COOKIE_SECURE else "lax",
                secure=settings.CUP_COOKIE_SECURE,
                max_age=settings.CUP_SESSION_HOURS * 3600,
            )
        return response
