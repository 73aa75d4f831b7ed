"""Tests for trellis.testing.TestClient."""

from trellis.app import App
from trellis.testing import TestClient


def _echo_app() -> App:
    app = App()

    async def echo(ctx, next):
        return ctx.json(
            {
                "method": ctx.req.method,
                "path": ctx.req.path,
                "query": ctx.req.query.get("q"),
                "type": ctx.req.content_type,
                "body": (await ctx.req.body()).decode(),
            }
        )

    app.all("/*", echo)
    return app


class TestRequests:
    async def test_get_with_query(self) -> None:
        async with TestClient(_echo_app()) as client:
            response = await client.get("/search?q=trellis")
        assert response.json["method"] == "GET"
        assert response.json["path"] == "/search"
        assert response.json["query"] == "trellis"

    async def test_json_body(self) -> None:
        async with TestClient(_echo_app()) as client:
            response = await client.post("/items", json={"name": "a"})
        assert response.json["type"] == "application/json"
        assert response.json["body"] == '{"name": "a"}'

    async def test_form_body(self) -> None:
        async with TestClient(_echo_app()) as client:
            response = await client.put("/items/1", form={"name": "a b"})
        assert response.json["type"] == "application/x-www-form-urlencoded"
        assert response.json["body"] == "name=a+b"

    async def test_raw_body_and_explicit_header(self) -> None:
        async with TestClient(_echo_app()) as client:
            response = await client.patch(
                "/items/1", body=b"raw", headers={"Content-Type": "text/plain"}
            )
        assert response.json["method"] == "PATCH"
        assert response.json["type"] == "text/plain"
        assert response.json["body"] == "raw"

    async def test_path_round_trips_through_raw_path(self) -> None:
        async with TestClient(_echo_app()) as client:
            response = await client.delete("/files/a b")
        assert response.json["path"] == "/files/a b"


class TestLifespanHooks:
    async def test_startup_and_shutdown_run(self) -> None:
        app = _echo_app()
        events: list[str] = []
        app.on_startup(lambda: events.append("start"))
        app.on_shutdown(lambda: events.append("stop"))
        async with TestClient(app):
            assert events == ["start"]
        assert events == ["start", "stop"]
