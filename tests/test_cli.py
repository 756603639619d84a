import json

import pytest

import cli


class _Resp:
    def __init__(self, payload, ok=True):
        self._payload = payload
        self.ok = ok

    def json(self):
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake(method):
        def _call(url, **kwargs):
            recorded.append((method, url, kwargs))
            return _Resp({"status": "ok"}, ok=not url.endswith("/missing"))
        return _call

    for method in ("get", "post", "patch", "delete"):
        monkeypatch.setattr(cli.requests, method, fake(method))
    return recorded


def test_create_posts_deployment(calls, capsys):
    rc = cli.main(["--api", "http://ddr:8000/", "create", "--name", "web", "--image", "nginx", "--replicas", "3"])

    assert rc == 0
    method, url, kwargs = calls[0]
    assert (method, url) == ("post", "http://ddr:8000/deployments")
    assert kwargs["json"] == {"name": "web", "image": "nginx", "replicas": 3}
    assert json.loads(capsys.readouterr().out) == {"status": "ok"}


def test_update_patches_full_record(calls):
    cli.main(["update", "1234", "--name", "web", "--image", "nginx", "--replicas", "1"])
    method, url, kwargs = calls[0]
    assert (method, url) == ("patch", "http://localhost:8000/deployment/1234")
    assert kwargs["json"]["replicas"] == 1


def test_events_passes_filters(calls):
    cli.main(["events", "--limit", "5", "--deployment", "abc"])
    method, url, kwargs = calls[0]
    assert (method, url) == ("get", "http://localhost:8000/events")
    assert kwargs["params"] == {"limit": 5, "deployment_id": "abc"}


def test_failed_request_returns_nonzero(calls):
    assert cli.main(["delete", "missing"]) == 1
    assert calls[0][0] == "delete"
