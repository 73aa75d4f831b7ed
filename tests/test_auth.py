"""Tests for bearer_auth and require_role."""

import pytest

from trellis.app import App
from trellis.middleware import bearer_auth, require_role
from trellis.security.tokens import TokenSigner
from trellis.testing import TestClient

SIGNER = TokenSigner("test-secret")


def _bearer(payload: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {SIGNER.issue(payload)}"}


@pytest.fixture
def app() -> App:
    app = App()
    auth = bearer_auth(SIGNER)
    app.get("/me", auth, lambda ctx, next: ctx.json(ctx.get("user")))
    app.get("/admin", auth, require_role("admin"), lambda ctx, next: ctx.text("welcome"))
    app.get("/unguarded", require_role("admin"), lambda ctx, next: ctx.text("never"))
    return app


class TestBearerAuth:
    async def test_missing_token(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/me")
        assert response.status == 401
        assert response.json == {"error": "Unauthorized - No token provided"}

    async def test_wrong_scheme(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/me", headers={"Authorization": "Basic abc"})
        assert response.status == 401

    async def test_invalid_token(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/me", headers={"Authorization": "Bearer nope"})
        assert response.status == 401
        assert response.json == {"error": "Unauthorized - Invalid or expired token"}

    async def test_foreign_secret(self, app: App) -> None:
        token = TokenSigner("other-secret").issue({"id": 1})
        async with TestClient(app) as client:
            response = await client.get("/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status == 401

    async def test_valid_token_sets_user(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/me", headers=_bearer({"id": 7, "role": "user"}))
        assert response.status == 200
        assert response.json == {"id": 7, "role": "user"}

    async def test_custom_key(self) -> None:
        app = App()
        app.get(
            "/",
            bearer_auth(SIGNER, key="identity"),
            lambda ctx, next: ctx.json({"user": ctx.get("user"), "identity": ctx.get("identity")}),
        )
        async with TestClient(app) as client:
            response = await client.get("/", headers=_bearer({"id": 1}))
        assert response.json == {"user": None, "identity": {"id": 1}}


class TestRequireRole:
    async def test_role_allowed(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/admin", headers=_bearer({"id": 1, "role": "admin"}))
        assert response.status == 200
        assert response.text == "welcome"

    async def test_role_forbidden(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/admin", headers=_bearer({"id": 2, "role": "user"}))
        assert response.status == 403
        assert response.json == {"error": "Forbidden - Admin access required"}

    async def test_without_identity(self, app: App) -> None:
        async with TestClient(app) as client:
            response = await client.get("/unguarded")
        assert response.status == 401
        assert response.json == {"error": "Unauthorized"}
