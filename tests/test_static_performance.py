"""Static routes resolve through a dict, however large the route table."""

import time

from trellis.routing.regexp import RegExpRouter

STATIC_ROUTES = 10_000
PARAM_ROUTES = 100
LOOKUPS = 2_000


def _router() -> RegExpRouter[str]:
    router: RegExpRouter[str] = RegExpRouter()
    for i in range(PARAM_ROUTES):
        router.add("GET", f"/static/p{i}/:id", f"param-{i}")
    for i in range(STATIC_ROUTES):
        router.add("GET", f"/static/route-{i}", f"static-{i}")
    router.build()
    return router


def _average(router: RegExpRouter[str], paths: list[str]) -> float:
    start = time.perf_counter()
    for path in paths:
        router.match("GET", path)
    return (time.perf_counter() - start) / len(paths)


class TestStaticLatency:
    def test_static_hits_are_exact(self) -> None:
        router = _router()
        result = router.match("GET", "/static/route-9999")
        assert [e.handler for e in result.handlers] == ["static-9999"]

    def test_static_lookup_does_not_scan(self) -> None:
        router = _router()
        first = [f"/static/route-{i % 10}" for i in range(LOOKUPS)]
        last = [f"/static/route-{STATIC_ROUTES - 1 - i % 10}" for i in range(LOOKUPS)]
        router.match("GET", first[0])

        # Registration position must not matter for a hashed lookup
        assert _average(router, last) < max(_average(router, first) * 20, 50e-6)
        assert _average(router, last) < 500e-6
