from types import SimpleNamespace

from fastapi.testclient import TestClient

from feishu_channel.api.app import create_app


class FakeEventHandler:
    """Stands in for lark.EventDispatcherHandler."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.requests = []

    def do(self, raw_request):
        if self.fail:
            raise RuntimeError("signature mismatch")
        self.requests.append(raw_request)
        return SimpleNamespace(
            status_code=200,
            content=b'{"challenge": "abc"}',
            headers={"Content-Type": "application/json"},
        )


def test_event_is_forwarded_to_sdk_handler() -> None:
    handler = FakeEventHandler()
    client = TestClient(create_app(handler, "/feishu/events", "default"))

    resp = client.post(
        "/feishu/events",
        content=b'{"type": "url_verification"}',
        headers={"X-Lark-Signature": "sig", "X-Lark-Request-Timestamp": "1"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"challenge": "abc"}
    raw = handler.requests[0]
    assert raw.uri == "/feishu/events"
    assert raw.body == b'{"type": "url_verification"}'
    assert raw.headers["X-Lark-Signature"] == "sig"
    assert raw.headers["X-Lark-Request-Timestamp"] == "1"


def test_handler_failure_returns_500() -> None:
    client = TestClient(create_app(FakeEventHandler(fail=True), "/hook", "work"))

    resp = client.post("/hook", content=b"{}")

    assert resp.status_code == 500
    assert resp.text == "Internal Server Error"


def test_health() -> None:
    client = TestClient(create_app(FakeEventHandler(), "/hook", "work"))

    resp = client.get("/health")

    assert resp.json() == {"status": "ok", "account": "work"}


def test_other_paths_are_not_served() -> None:
    client = TestClient(create_app(FakeEventHandler(), "/hook", "work"))

    assert client.post("/feishu/events", content=b"{}").status_code == 404
