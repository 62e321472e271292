import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from inbox_auth.dependencies import (
    get_current_identity,
    get_email_sender,
    get_issuer,
    get_token_service,
)
from inbox_auth.schemas.verification import (
    AdminSendCodeRequest,
    IdentityResponse,
    SendCodeRequest,
    SendCodeResponse,
    TransportCheckResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from inbox_auth.services.email import MailTransport
from inbox_auth.services.errors import (
    DeliveryError,
    ThrottledError,
    TokenError,
    VerificationError,
)
from inbox_auth.services.issuer import CredentialIssuer
from inbox_auth.services.tokens import TokenClaims, TokenService

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _http_error(exc: VerificationError) -> HTTPException:
    headers = None
    if isinstance(exc, ThrottledError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return HTTPException(status_code=exc.status_code, detail=str(exc), headers=headers)


@router.post("/send-code", response_model=SendCodeResponse)
def send_code(
    payload: SendCodeRequest, issuer: CredentialIssuer = Depends(get_issuer)
) -> SendCodeResponse:
    try:
        issuer.request_code(payload.identifier, payload.role)
    except VerificationError as exc:
        raise _http_error(exc) from exc
    return SendCodeResponse()


@router.post("/admin/send-code", response_model=SendCodeResponse)
def send_admin_code(
    payload: AdminSendCodeRequest, issuer: CredentialIssuer = Depends(get_issuer)
) -> SendCodeResponse:
    try:
        issuer.request_admin_code(payload.identifier)
    except VerificationError as exc:
        raise _http_error(exc) from exc
    return SendCodeResponse()


@router.post("/verify-code", response_model=VerifyCodeResponse)
def verify_code(
    payload: VerifyCodeRequest, issuer: CredentialIssuer = Depends(get_issuer)
) -> VerifyCodeResponse:
    try:
        credential = issuer.submit_code(payload.identifier, payload.code)
    except VerificationError as exc:
        raise _http_error(exc) from exc
    return VerifyCodeResponse(
        token=credential.token,
        role=credential.role,
        email=credential.email,
    )


@router.post("/verify-token", response_model=VerifyTokenResponse, response_model_exclude_none=True)
def verify_token(
    payload: VerifyTokenRequest, tokens: TokenService = Depends(get_token_service)
):
    if not payload.token:
        return _invalid_token("No token provided")
    try:
        claims = tokens.validate(payload.token)
    except TokenError as exc:
        return _invalid_token(str(exc))
    return VerifyTokenResponse(valid=True, email=claims.email, role=claims.role)


@router.get("/me", response_model=IdentityResponse)
def me(identity: TokenClaims = Depends(get_current_identity)) -> IdentityResponse:
    return IdentityResponse(email=identity.email, role=identity.role)


@router.get("/debug-smtp", response_model=TransportCheckResponse, response_model_exclude_none=True)
def debug_smtp(sender: MailTransport = Depends(get_email_sender)):
    try:
        sender.verify()
    except DeliveryError as exc:
        LOGGER.warning("Mail transport check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(exc)},
        )
    return TransportCheckResponse(ok=True)


def _invalid_token(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"valid": False, "error": message},
    )
