import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status

from shortlink_app.auth.token_store import TokenStore, check_credentials
from shortlink_app.config import settings
from shortlink_app.dependencies import bearer_token, get_token_store, require_auth
from shortlink_app.errors import UnauthorizedError
from shortlink_app.schemas.account import CurrentUserResponse, LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["account"])


@router.post("/account/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    tokens: TokenStore = Depends(get_token_store)
):
    logger.info("Login attempt for user: %s", payload.username)
    if not check_credentials(
        payload.username, payload.password, settings.admin_username, settings.admin_password
    ):
        raise UnauthorizedError("Invalid credentials")

    token = tokens.issue(payload.username)
    logger.info("User logged in: %s", payload.username)
    return LoginResponse(token=token)


@router.post("/account/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    user: str = Depends(require_auth),
    authorization: Optional[str] = Header(None),
    tokens: TokenStore = Depends(get_token_store)
):
    """Revoke the presented token; API key callers have nothing to revoke"""
    token = bearer_token(authorization)
    if token:
        tokens.revoke(token)
    logger.info("User logged out: %s", user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/current", response_model=CurrentUserResponse)
async def current_user(user: str = Depends(require_auth)):
    return CurrentUserResponse(name=user)
