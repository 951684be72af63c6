"""
Internal service-to-service calls.

Each method has its own request and response model; callers POST JSON to
``/rpc/<Service>/<Method>``. Not-found failures come back as 404 with
``{"code": "NOT_FOUND", "message": ...}``.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from account_service.core.database import get_db
from account_service.core.errors import InvalidToken, TokenNotFound, UserNotFound
from account_service.api.schemas import CamelModel
from account_service.services.token_service import TokenService, get_token_service
from account_service.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rpc", tags=["rpc"])

NOT_FOUND = "NOT_FOUND"


class GetAuthTokenRequest(CamelModel):
    token: str


class GetAuthTokenResponse(CamelModel):
    role: str = ""
    valid: bool = False
    user_id: Optional[int] = None


class GetUserRatingRequest(CamelModel):
    user_id: int


class GetUserRatingResponse(CamelModel):
    rating: float


class UpdateUserRatingRequest(CamelModel):
    user_id: int
    rating: float


class UpdateUserRatingResponse(CamelModel):
    success: bool


def not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"code": NOT_FOUND, "message": message})


@router.post("/AuthService/GetAuthToken")
def get_auth_token(
    request: GetAuthTokenRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Resolve a session token for another service"""
    try:
        resolved = tokens.resolve(db, request.token)
    except (InvalidToken, TokenNotFound):
        return GetAuthTokenResponse().model_dump(by_alias=True)

    response = GetAuthTokenResponse(role=resolved.role, valid=True, user_id=resolved.subject_id)
    return response.model_dump(by_alias=True)


@router.post("/UserService/GetUserRating")
def get_user_rating(request: GetUserRatingRequest, db: Session = Depends(get_db)):
    try:
        rating = user_service.get_rating(db, request.user_id)
    except UserNotFound as e:
        return not_found(e.message)
    return GetUserRatingResponse(rating=rating).model_dump(by_alias=True)


@router.post("/UserService/UpdateUserRating")
def update_user_rating(request: UpdateUserRatingRequest, db: Session = Depends(get_db)):
    try:
        success = user_service.update_rating(db, request.user_id, request.rating)
    except UserNotFound as e:
        return not_found(e.message)
    logger.info(f"Rating of user {request.user_id} set to {request.rating}")
    return UpdateUserRatingResponse(success=success).model_dump(by_alias=True)
