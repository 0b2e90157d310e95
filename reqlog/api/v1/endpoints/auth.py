"""
Authentication endpoint of the example service.
Shows context enrichment, redacted call data and auto-logged failures.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from reqlog.middleware.request_logger import get_request_logger
from reqlog.schemas.schemas import LoginRequest, LoginResponse
from reqlog.services.logger import Logger

router = APIRouter()

# Login attempts for this address fail with an unhandled error
FAILING_EMAIL = "fail@example.com"


async def _read_login_body(request: Request) -> LoginRequest:
    """Parse the JSON body leniently; anything unreadable counts as empty."""
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    return LoginRequest.model_validate(payload if isinstance(payload, dict) else {})


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate with email and password",
    status_code=status.HTTP_200_OK,
)
async def login(
    request: Request,
    log: Logger = Depends(get_request_logger),
) -> LoginResponse:
    """
    Validate credentials presence and log each step of the attempt.
    The authorization header is logged as call data; configure
    redact_keys to keep it out of the output.
    """
    user_id = request.headers.get("x-user-id", "anonymous")
    log.set_context({"userId": user_id, "feature": "auth-login"})
    log.info(
        "login request received",
        {
            "provider": "password",
            "authorization": request.headers.get("authorization"),
        },
    )

    body = await _read_login_body(request)
    if not body.email or not body.password:
        log.warning("validation failed", {"reason": "missing-fields"})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid input",
        )

    if body.email == FAILING_EMAIL:
        raise RuntimeError("Simulated unhandled authentication failure")

    log.info("login successful", {"email": body.email})
    return LoginResponse(ok=True)
