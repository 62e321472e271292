from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from inbox_auth.dependencies import get_email_sender, get_issuer, get_token_service
from inbox_auth.main import app
from inbox_auth.services.challenges import InMemoryChallengeStore
from inbox_auth.services.errors import DeliveryError
from inbox_auth.services.issuer import CredentialIssuer
from inbox_auth.services.tokens import TokenService

TEST_SECRET = "test-signing-secret"


@dataclass
class FakeClock:
    current: datetime

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current = self.current + timedelta(**delta)


@dataclass
class ScriptedCodeGenerator:
    codes: list[str] = field(default_factory=lambda: ["123456", "654321", "111222"])
    issued: list[str] = field(default_factory=list)

    def generate(self) -> str:
        code = self.codes[len(self.issued) % len(self.codes)]
        self.issued.append(code)
        return code


@dataclass
class RecordingSender:
    sent: list[dict[str, Optional[str]]] = field(default_factory=list)
    fail: bool = False
    verify_error: Optional[str] = None

    def send(self, to: str, subject: str, body: str, html: Optional[str] = None) -> None:
        if self.fail:
            raise DeliveryError("SMTP host is not configured")
        self.sent.append({"to": to, "subject": subject, "body": body, "html": html})

    def verify(self) -> None:
        if self.verify_error:
            raise DeliveryError(self.verify_error)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now: datetime) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def store() -> InMemoryChallengeStore:
    return InMemoryChallengeStore()


@pytest.fixture
def generator() -> ScriptedCodeGenerator:
    return ScriptedCodeGenerator()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def token_service(clock: FakeClock) -> TokenService:
    return TokenService(TEST_SECRET, now=clock)


@pytest.fixture
def make_issuer(
    store: InMemoryChallengeStore,
    generator: ScriptedCodeGenerator,
    sender: RecordingSender,
    token_service: TokenService,
    clock: FakeClock,
) -> Callable[..., CredentialIssuer]:
    def _make(**overrides) -> CredentialIssuer:
        options = {
            "store": store,
            "generator": generator,
            "sender": sender,
            "tokens": token_service,
            "code_ttl": timedelta(seconds=600),
            "resend_cooldown": timedelta(seconds=60),
            "max_attempts": 6,
            "email_subject": "Your Team Plus verification code",
            "admin_emails": (),
            "now": clock,
        }
        options.update(overrides)
        return CredentialIssuer(**options)

    return _make


@pytest.fixture
def issuer(make_issuer: Callable[..., CredentialIssuer]) -> CredentialIssuer:
    return make_issuer()


@pytest.fixture
def client(issuer: CredentialIssuer, token_service: TokenService, sender: RecordingSender):
    app.dependency_overrides[get_issuer] = lambda: issuer
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_email_sender] = lambda: sender
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
