"""Command-line entry point."""

import json
from types import SimpleNamespace

import pytest

from conftest import FakeSession, make_response
from rm_gateway import cli


@pytest.fixture
def env(monkeypatch, private_pem):
    for key in ("RM_CLIENT_ID", "RM_CLIENT_SECRET", "RM_PRIVATE_KEY", "RM_PRIVATE_KEY_FILE"):
        monkeypatch.delenv(key, raising=False)
    return [
        "--env-file",
        "/nonexistent/.env",
        "--set",
        "RM_CLIENT_ID=client-123",
        "--set",
        "RM_CLIENT_SECRET=secret-456",
        "--set",
        "RM_PRIVATE_KEY=" + private_pem.decode("ascii").replace("\n", "\\n"),
    ]


def _install_session(monkeypatch, session):
    monkeypatch.setattr(cli, "requests", SimpleNamespace(Session=lambda: session))


def test_successful_call_prints_json(env, monkeypatch, capsys) -> None:
    session = FakeSession(lambda call: make_response(200, {"code": "SUCCESS", "item": {"id": "m1"}}))
    _install_session(monkeypatch, session)

    code = cli.run_cli(["POST", "payment/online", "--data", '{"amount": 1}', "--sandbox", *env])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"code": "SUCCESS", "item": {"id": "m1"}}
    (call,) = session.api_calls
    assert call.url == "https://sb-open.revenuemonster.my/v3/payment/online"
    assert call.data == b'{"amount":1}'


def test_absolute_url_is_used_as_is(env, monkeypatch) -> None:
    session = FakeSession()
    _install_session(monkeypatch, session)
    assert cli.run_cli(["GET", "https://api.example/orders", *env]) == 0
    assert session.api_calls[0].url == "https://api.example/orders"


def test_api_error_exits_non_zero(env, monkeypatch) -> None:
    body = {"error": {"code": "INVALID_REQUEST", "message": "bad amount"}}
    _install_session(monkeypatch, FakeSession(lambda call: make_response(400, body)))
    assert cli.run_cli(["POST", "payment/online", "--data", "{\"amount\": 0}", *env]) == 1


def test_unknown_method_exits_non_zero(env, monkeypatch) -> None:
    _install_session(monkeypatch, FakeSession())
    assert cli.run_cli(["FETCH", "merchant", *env]) == 1


def test_missing_configuration_exits_non_zero(monkeypatch) -> None:
    for key in ("RM_CLIENT_ID", "RM_CLIENT_SECRET", "RM_PRIVATE_KEY", "RM_PRIVATE_KEY_FILE"):
        monkeypatch.delenv(key, raising=False)
    assert cli.run_cli(["GET", "merchant", "--env-file", "/nonexistent/.env"]) == 1


def test_invalid_json_data_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.run_cli(["POST", "merchant", "--data", "{nope"])
    assert excinfo.value.code == 2
