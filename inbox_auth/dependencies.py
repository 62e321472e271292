from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from inbox_auth.config import Settings, settings
from inbox_auth.services.challenges import InMemoryChallengeStore
from inbox_auth.services.codes import SixDigitCodeGenerator
from inbox_auth.services.email import MailTransport, build_sender
from inbox_auth.services.errors import TokenError
from inbox_auth.services.issuer import CredentialIssuer
from inbox_auth.services.tokens import TokenClaims, TokenService


def get_settings() -> Settings:
    return settings


@lru_cache
def get_token_service() -> TokenService:
    config = get_settings()
    return TokenService(
        config.signing_key,
        algorithm=config.jwt_algorithm,
        ttl=timedelta(hours=config.token_ttl_hours),
    )


@lru_cache
def get_email_sender() -> MailTransport:
    return build_sender(get_settings())


@lru_cache
def get_issuer() -> CredentialIssuer:
    config = get_settings()
    return CredentialIssuer(
        store=InMemoryChallengeStore(),
        generator=SixDigitCodeGenerator(),
        sender=get_email_sender(),
        tokens=get_token_service(),
        code_ttl=timedelta(seconds=config.code_ttl_seconds),
        resend_cooldown=timedelta(seconds=config.resend_cooldown_seconds),
        max_attempts=config.max_attempts,
        email_subject=config.email_subject,
        admin_emails=config.admin_emails,
    )


def get_current_identity(
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header",
        )
    try:
        return tokens.validate(token.strip())
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
