from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from inbox_auth.services.challenges import Challenge, ChallengeStore
from inbox_auth.services.codes import CodeGenerator
from inbox_auth.services.email import NotificationSender, build_code_email
from inbox_auth.services.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    DeliveryError,
    ForbiddenError,
    InvalidCodeError,
    ThrottledError,
    TooManyAttemptsError,
    ValidationError,
)
from inbox_auth.services.tokens import TokenService

LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_ROLE = "user"
ADMIN_ROLE = "admin"


def normalize_identifier(identifier: str | None) -> str:
    return (identifier or "").strip().lower()


def normalize_role(role: str | None) -> str:
    return (role or "").strip().lower() or DEFAULT_ROLE


def is_valid_email(identifier: str) -> bool:
    return bool(identifier) and EMAIL_PATTERN.match(identifier) is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedCredential:
    token: str
    role: str
    email: str


class CredentialIssuer:
    def __init__(
        self,
        *,
        store: ChallengeStore,
        generator: CodeGenerator,
        sender: NotificationSender,
        tokens: TokenService,
        code_ttl: timedelta,
        resend_cooldown: timedelta,
        max_attempts: int,
        email_subject: str,
        admin_emails: Iterable[str] = (),
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._generator = generator
        self._sender = sender
        self._tokens = tokens
        self._code_ttl = code_ttl
        self._resend_cooldown = resend_cooldown
        self._max_attempts = max_attempts
        self._email_subject = email_subject
        self._admin_emails = frozenset(
            normalize_identifier(email) for email in admin_emails if email
        )
        self._now = now

    @property
    def code_ttl_seconds(self) -> int:
        return int(self._code_ttl.total_seconds())

    def request_code(self, identifier: str | None, role: str | None = None) -> None:
        normalized = self._validated_identifier(identifier)
        self._issue(normalized, normalize_role(role))

    def request_admin_code(self, identifier: str | None) -> None:
        normalized = self._validated_identifier(identifier)
        if self._admin_emails and normalized not in self._admin_emails:
            LOGGER.warning("Admin code refused for %s: not on allow-list", normalized)
            raise ForbiddenError()
        self._issue(normalized, ADMIN_ROLE)

    def submit_code(self, identifier: str | None, code: str | None) -> IssuedCredential:
        normalized = normalize_identifier(identifier)
        submitted = (code or "").strip()

        with self._store.locked(normalized):
            challenge = self._store.get(normalized)
            if challenge is None:
                raise ChallengeNotFoundError()

            if self._now() > challenge.expires_at:
                self._store.delete(normalized)
                LOGGER.info("Challenge for %s expired", normalized)
                raise ChallengeExpiredError()

            challenge = replace(challenge, attempts=challenge.attempts + 1)
            if challenge.attempts > self._max_attempts:
                self._store.delete(normalized)
                LOGGER.warning(
                    "Challenge for %s discarded after %s attempts",
                    normalized,
                    challenge.attempts,
                )
                raise TooManyAttemptsError()

            if challenge.code != submitted:
                self._store.put(normalized, challenge)
                raise InvalidCodeError()

            self._store.delete(normalized)

        token = self._tokens.mint(normalized, challenge.role)
        LOGGER.info("Verified %s with role %s", normalized, challenge.role)
        return IssuedCredential(token=token, role=challenge.role, email=normalized)

    def pending_challenge(self, identifier: str | None) -> Challenge | None:
        return self._store.get(normalize_identifier(identifier))

    def _validated_identifier(self, identifier: str | None) -> str:
        normalized = normalize_identifier(identifier)
        if not is_valid_email(normalized):
            raise ValidationError()
        return normalized

    def _issue(self, identifier: str, role: str) -> None:
        purged = self._store.purge_expired(self._now(), self._resend_cooldown)
        if purged:
            LOGGER.debug("Purged %s stale challenges", purged)

        with self._store.locked(identifier):
            now = self._now()
            previous = self._store.get(identifier)
            if previous is not None:
                elapsed = now - previous.last_sent_at
                if elapsed < self._resend_cooldown:
                    remaining = self._resend_cooldown - elapsed
                    wait = math.ceil(remaining / timedelta(milliseconds=1) / 1000)
                    LOGGER.info("Code request for %s throttled (%ss)", identifier, wait)
                    raise ThrottledError(wait)

            code = self._generator.generate()
            text, html = build_code_email(code, self.code_ttl_seconds)
            try:
                self._sender.send(identifier, self._email_subject, text, html)
            except DeliveryError as exc:
                LOGGER.error("Code delivery to %s failed: %s", identifier, exc)
                raise DeliveryError() from exc

            self._store.put(
                identifier,
                Challenge(
                    identifier=identifier,
                    code=code,
                    role=role,
                    expires_at=now + self._code_ttl,
                    last_sent_at=now,
                    attempts=0,
                ),
            )
        LOGGER.info("Issued %s code for %s", role, identifier)
