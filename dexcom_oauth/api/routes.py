"""
FastAPI routes for the Dexcom OAuth gateway.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from http import HTTPStatus
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from dexcom_oauth.clients import DexcomAPIClient, DexcomAPIError, DexcomAuthError
from dexcom_oauth.core.config import AppSettings
from dexcom_oauth.core.errors import TokenExchangeError
from dexcom_oauth.dependencies import (
    SettingsDependency,
    get_dexcom_client,
    get_oauth_manager,
)
from dexcom_oauth.schemas import (
    AuthorizationResponse,
    AuthStatus,
    CallbackResult,
    DataRange,
    DevicesResponse,
    GlucoseRangeResponse,
    GlucoseReading,
    LogoutResponse,
    StatisticsPeriod,
    StatisticsResponse,
)
from dexcom_oauth.services import OAuthFlowManager, calculate_statistics
from dexcom_oauth.utils.dates import parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)

OAuthManagerDep = Annotated[OAuthFlowManager, Depends(get_oauth_manager)]
DexcomClientDep = Annotated[DexcomAPIClient, Depends(get_dexcom_client)]

LOGIN_HINT = "Please visit /auth/login to authenticate with Dexcom"
MAX_STATISTICS_DAYS = 90

router = APIRouter()
auth_router = APIRouter(prefix="/auth", tags=["auth"])


async def require_auth(oauth_manager: OAuthManagerDep) -> None:
    """Reject data requests before any credentials have been stored."""
    if not await oauth_manager.is_authenticated():
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={"error": "Not authenticated", "message": LOGIN_HINT},
        )


data_router = APIRouter(
    prefix="/api", tags=["data"], dependencies=[Depends(require_auth)]
)


def _raise_upstream(exc: DexcomAPIError, error: str) -> NoReturn:
    if isinstance(exc, DexcomAuthError):
        logger.warning("Dexcom rejected credentials after refresh attempt")
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={"error": "Dexcom authentication failed", "message": LOGIN_HINT},
        ) from exc
    logger.error("%s: %s", error, exc, extra={"status_code": exc.status_code})
    raise HTTPException(
        status_code=HTTPStatus.BAD_GATEWAY, detail={"error": error}
    ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {
        "status": "ok",
        "service": "dexcom-oauth-server",
        "dexcom_env": settings.dexcom.environment,
        "mock_mode": settings.mock_mode,
    }


@auth_router.get("/login")
async def start_dexcom_oauth_flow(
    oauth_manager: OAuthManagerDep,
    redirect: bool = Query(
        default=True,
        description="When false, return the consent URL as JSON instead of redirecting.",
    ),
) -> Response:
    """Kick off the OAuth flow by issuing a state token and consent URL."""
    authorization = oauth_manager.get_authorization_url()
    if redirect:
        logger.info("Initiating OAuth flow, redirecting to Dexcom")
        return RedirectResponse(
            url=authorization.url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    payload = AuthorizationResponse(
        authorization_url=authorization.url, state=authorization.state
    )
    return JSONResponse(payload.model_dump())


@auth_router.get("/callback", response_model=CallbackResult)
async def handle_dexcom_oauth_callback(
    oauth_manager: OAuthManagerDep,
    code: str | None = Query(default=None, description="Authorization code."),
    state: str | None = Query(default=None, description="OAuth state token."),
    error: str | None = Query(default=None, description="Error reported by Dexcom."),
) -> CallbackResult:
    """Validate the state, exchange the code and store the tokens."""
    # Consume the state first so it can never be replayed, whatever fails next.
    state_valid = oauth_manager.validate_state(state) if state else False

    if error:
        logger.error("Dexcom returned an OAuth error: %s", error)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Authorization was not granted by Dexcom.",
        )
    if not code or not state:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing authorization code or state parameter.",
        )
    if not state_valid:
        logger.warning("Rejected OAuth callback with an invalid state")
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid state parameter - possible CSRF attack.",
        )

    try:
        await oauth_manager.exchange_code_for_token(code)
    except TokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Failed to exchange authorization code.",
        ) from exc

    return CallbackResult(status="authenticated")


@auth_router.get("/status", response_model=AuthStatus)
async def auth_status(oauth_manager: OAuthManagerDep) -> AuthStatus:
    authenticated = await oauth_manager.is_authenticated()
    return AuthStatus(
        authenticated=authenticated,
        message=(
            "User is authenticated"
            if authenticated
            else "User needs to authenticate - visit /auth/login"
        ),
    )


@auth_router.post("/logout", response_model=LogoutResponse)
async def logout(oauth_manager: OAuthManagerDep) -> LogoutResponse:
    try:
        await oauth_manager.logout()
    except OSError as exc:
        logger.error("Failed to clear stored tokens: %s", type(exc).__name__)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail="Failed to logout."
        ) from exc
    return LogoutResponse(message="Logged out successfully")


@data_router.get("/glucose/current", response_model=GlucoseReading)
async def current_glucose(dexcom: DexcomClientDep) -> GlucoseReading:
    try:
        reading = await dexcom.get_current_glucose()
    except DexcomAPIError as exc:
        _raise_upstream(exc, "Failed to fetch glucose data")
    if reading is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail={
                "error": "No recent readings found",
                "message": "No glucose data available in the last 15 minutes",
            },
        )
    return reading


@data_router.get("/glucose/range", response_model=GlucoseRangeResponse)
async def glucose_range(
    dexcom: DexcomClientDep,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> GlucoseRangeResponse:
    if not start_date or not end_date:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={
                "error": "Missing parameters",
                "message": "Both startDate and endDate are required (ISO 8601 format)",
            },
        )
    try:
        start = parse_iso_datetime(start_date)
        end = parse_iso_datetime(end_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={
                "error": "Invalid parameters",
                "message": "startDate and endDate must be ISO 8601 timestamps",
            },
        ) from exc
    if start > end:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={
                "error": "Invalid parameters",
                "message": "startDate must not be after endDate",
            },
        )

    try:
        readings = await dexcom.get_glucose_values(start, end)
    except DexcomAPIError as exc:
        _raise_upstream(exc, "Failed to fetch glucose data")

    return GlucoseRangeResponse(
        count=len(readings),
        start_date=start_date,
        end_date=end_date,
        readings=readings,
    )


@data_router.get("/statistics", response_model=StatisticsResponse)
async def glucose_statistics(
    dexcom: DexcomClientDep,
    days: int = Query(default=7, description="Number of days to analyze (1-90)."),
) -> StatisticsResponse:
    if days < 1 or days > MAX_STATISTICS_DAYS:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={
                "error": "Invalid days parameter",
                "message": f"Days must be between 1 and {MAX_STATISTICS_DAYS}",
            },
        )

    end = utcnow()
    start = end - timedelta(days=days)
    try:
        readings = await dexcom.get_glucose_values(start, end)
    except DexcomAPIError as exc:
        _raise_upstream(exc, "Failed to calculate statistics")

    statistics = calculate_statistics(readings)
    if statistics is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail={
                "error": "No data available",
                "message": f"No glucose data found for the last {days} days",
            },
        )

    return StatisticsResponse(
        period=StatisticsPeriod(
            days=days, start_date=start.isoformat(), end_date=end.isoformat()
        ),
        statistics=statistics,
    )


@data_router.get("/devices", response_model=DevicesResponse)
async def devices(dexcom: DexcomClientDep) -> DevicesResponse:
    try:
        found = await dexcom.get_devices()
    except DexcomAPIError as exc:
        _raise_upstream(exc, "Failed to fetch devices")
    return DevicesResponse(devices=found)


@data_router.get("/data-range", response_model=DataRange)
async def data_range(dexcom: DexcomClientDep) -> DataRange:
    try:
        return await dexcom.get_data_range()
    except DexcomAPIError as exc:
        _raise_upstream(exc, "Failed to fetch data range")


__all__ = ["auth_router", "data_router", "require_auth", "router"]
