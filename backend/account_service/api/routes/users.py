import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session
from account_service.core.config import settings
from account_service.core.database import get_db
from account_service.core.errors import ValidationError
from account_service.api.dependencies import get_session_token, require_roles
from account_service.api.schemas import CamelModel
from account_service.services.credential_service import credential_service
from account_service.services.oauth_service import GoogleOAuthVerifier, get_oauth_verifier
from account_service.services.token_service import (
    ADMIN_ROLE, USER_ROLE, ResolvedToken, TokenService, get_token_service,
)
from account_service.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


class SignupRequest(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    phone: Optional[str] = Field(default=None, max_length=20)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class GoogleLoginRequest(CamelModel):
    credential: str = ""


class PasswordUpdateRequest(CamelModel):
    password: str = Field(min_length=6, max_length=72)


class UserDataUpdateRequest(CamelModel):
    paid_user: Optional[bool] = None
    valid_till: Optional[datetime] = None
    tags_covered: Optional[list[str]] = None


class UserDataResponse(CamelModel):
    paid_user: bool
    valid_till: Optional[datetime]
    rating: float
    tags_covered: list[str]


class UserResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    user_data: Optional[UserDataResponse]


class UserValidationResponse(UserResponse):
    paid_user: bool
    valid_till: Optional[datetime]


class PasswordUpdateResponse(CamelModel):
    id: int
    email: str


def dump(model: BaseModel) -> dict:
    return model.model_dump(by_alias=True, mode="json")


def set_session_cookie(response: Response, token: str) -> None:
    # httponly/secure only in production so local http frontends can read it
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        domain=settings.COOKIE_DOMAIN or None,
        httponly=settings.is_production,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.COOKIE_NAME,
        domain=settings.COOKIE_DOMAIN or None,
        httponly=settings.is_production,
        secure=settings.is_production,
        samesite="lax",
    )


@router.get("")
def user_details(
    session: ResolvedToken = Depends(require_roles(USER_ROLE)),
    db: Session = Depends(get_db),
):
    """Profile of the logged-in user"""
    user = user_service.get_user_details(db, session.subject_id)
    return {"success": True, "data": dump(UserResponse.model_validate(user))}


@router.get("/check")
async def check(session: ResolvedToken = Depends(require_roles(USER_ROLE))):
    """Cheap probe for a live User session"""
    return {"success": True, "message": "User is authenticated"}


@router.get("/validate")
def validate(
    session: ResolvedToken = Depends(require_roles(USER_ROLE)),
    db: Session = Depends(get_db),
):
    """Succeeds only for users with a paid subscription that is still valid"""
    user = user_service.validate_user(db, session.subject_id)
    payload = UserValidationResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        user_data=UserDataResponse.model_validate(user.user_data),
        paid_user=user.user_data.paid_user,
        valid_till=user.user_data.valid_till,
    )
    return {"success": True, "data": dump(payload)}


@router.get("/{user_id}")
def admin_user_details(
    user_id: int,
    session: ResolvedToken = Depends(require_roles(ADMIN_ROLE)),
    db: Session = Depends(get_db),
):
    user = user_service.get_user_details(db, user_id)
    return {"success": True, "data": dump(UserResponse.model_validate(user))}


@router.post("/signup")
def register(
    body: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Register with email and password and start a session"""
    user_id = credential_service.register(
        db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        phone=body.phone,
    )
    token = tokens.issue(db, user_id, USER_ROLE)
    set_session_cookie(response, token)
    return {"success": True}


@router.post("")
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Password login"""
    user_id = credential_service.verify_password(db, body.email, body.password)
    token = tokens.issue(db, user_id, USER_ROLE)
    set_session_cookie(response, token)
    logger.info(f"User {user_id} logged in")
    return {"success": True}


@router.post("/google")
def google_login(
    body: GoogleLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    verifier: GoogleOAuthVerifier = Depends(get_oauth_verifier),
):
    """Google One-Tap login; creates the account on first use"""
    identity = verifier.verify(body.credential, settings.GOOGLE_CLIENT_ID or None)
    user_id = credential_service.provision_or_find_oauth_user(
        db,
        email=identity.email,
        name=identity.display_name,
        provider_subject_id=identity.provider_subject_id,
        provider=identity.provider,
    )
    token = tokens.issue(db, user_id, USER_ROLE)
    set_session_cookie(response, token)
    logger.info(f"User {user_id} logged in via Google One Tap")
    return {"success": True}


@router.post("/logout")
def logout(
    response: Response,
    session: ResolvedToken = Depends(require_roles(USER_ROLE)),
    token: str = Depends(get_session_token),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    # A token revoked concurrently still counts as logged out
    tokens.revoke(db, token)
    clear_session_cookie(response)
    logger.info(f"User {session.subject_id} logged out")
    return {"success": True}


@router.put("/updateUser/{user_id}")
def admin_update_user(
    user_id: int,
    body: UserDataUpdateRequest,
    session: ResolvedToken = Depends(require_roles(ADMIN_ROLE)),
    db: Session = Depends(get_db),
):
    user_data = user_service.update_user_data(db, user_id, body.model_dump(exclude_none=True))
    return {"success": True, "data": dump(UserDataResponse.model_validate(user_data))}


@router.put("/userdata")
def update_user_data(
    body: UserDataUpdateRequest,
    session: ResolvedToken = Depends(require_roles(USER_ROLE)),
    db: Session = Depends(get_db),
):
    user_data = user_service.update_user_data(
        db, session.subject_id, body.model_dump(exclude_none=True)
    )
    return {"success": True, "data": dump(UserDataResponse.model_validate(user_data))}


@router.put("/{user_id}")
def update_password(
    user_id: int,
    body: PasswordUpdateRequest,
    session: ResolvedToken = Depends(require_roles(USER_ROLE)),
    db: Session = Depends(get_db),
):
    """Change the logged-in user's password"""
    if user_id != session.subject_id:
        raise ValidationError("Cannot update another user")
    user = user_service.update_password(db, session.subject_id, body.password)
    return {"success": True, "data": dump(PasswordUpdateResponse.model_validate(user))}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    session: ResolvedToken = Depends(require_roles(ADMIN_ROLE)),
    db: Session = Depends(get_db),
):
    deleted_id = user_service.delete_user(db, user_id)
    return {"success": True, "data": {"id": deleted_id}}
