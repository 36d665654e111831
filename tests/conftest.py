"""
Pipeline CRM - Pytest Configuration
Fixtures partagées pour tous les tests.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import pytest

from pipeline_crm.auth import MemoryStorage, TokenStore
from pipeline_crm.logging import LogConfig, LogLevel, StructuredLogger
from pipeline_crm.network import HttpRequest, HttpResponse, ITransport

Handler = Callable[[HttpRequest], Awaitable[HttpResponse]]

NOW = 1_700_000_000.0


class FakeClock:
    """Horloge contrôlée (secondes epoch)."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport(ITransport):
    """
    Transport en mémoire.

    Les requêtes sont routées par chemin vers un handler async; chaque
    handler cède la main (asyncio.sleep(0)) pour laisser les appels
    concurrents s'entrelacer.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Handler] = {}
        self.requests: List[HttpRequest] = []
        self.closed = False

    def route(self, path: str, handler: Handler) -> None:
        self.routes[path] = handler

    def calls_to(self, path: str) -> List[HttpRequest]:
        return [r for r in self.requests if r.url == path]

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        await asyncio.sleep(0)
        handler = self.routes.get(request.url)
        if handler is None:
            return HttpResponse(404, b"", request=request)
        response = await handler(request)
        response.request = request
        return response

    async def aclose(self) -> None:
        self.closed = True


def api_response(
    status_code: int = 200,
    data: Any = None,
    is_success: Optional[bool] = None,
    message: Optional[str] = None,
    errors: Optional[List[str]] = None,
) -> HttpResponse:
    """Réponse HTTP portant l'enveloppe {isSuccess, message, data, errors, responseCode}."""
    if is_success is None:
        is_success = 200 <= status_code < 300
    body = {
        "isSuccess": is_success,
        "message": message,
        "data": data,
        "errors": errors or [],
        "responseCode": status_code,
    }
    return HttpResponse(status_code, json.dumps(body).encode("utf-8"))


def auth_data(
    token: str = "access-1",
    refresh_token: str = "refresh-1",
    expires_in: int = 3600,
    user_id: Any = 42,
) -> Dict[str, Any]:
    """Payload "data" de /login et /refresh-token."""
    return {
        "token": token,
        "refreshToken": refresh_token,
        "expiresIn": expires_in,
        "email": "jane@example.com",
        "userId": user_id,
        "firstName": "Jane",
        "lastName": "Doe",
    }


# ══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def token_store(storage: MemoryStorage, clock: FakeClock) -> TokenStore:
    return TokenStore(storage, clock=clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def log_lines() -> List[str]:
    """Lignes JSON émises par les loggers de test."""
    return []


@pytest.fixture
def logger(log_lines: List[str]) -> StructuredLogger:
    return StructuredLogger(
        "pipeline-crm.test",
        config=LogConfig(min_level=LogLevel.DEBUG),
        output_handler=log_lines.append,
    )


@pytest.fixture
def make_response() -> Callable[..., HttpResponse]:
    return api_response


@pytest.fixture
def make_auth_data() -> Callable[..., Dict[str, Any]]:
    return auth_data
