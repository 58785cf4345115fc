from pathlib import Path
import json
import textwrap

import pytest

from pwfluent.network.mock_loader import load_mocks_file
from pwfluent.network.mocks import build_response


def write_yaml(tmp_path: Path, body: str) -> Path:
    p = tmp_path / "mocks.yaml"
    p.write_text(textwrap.dedent(body), encoding="utf-8")
    return p


def test_load_mocks_file(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TEST_USER", "alice")
    f = write_yaml(
        tmp_path,
        """
        mocks:
          - name: return 401 on GET /foobar
            url_contains: /foobar
            method: get
            status: 401
            text: sorry, you have no access
            delay_ms: 100
          - name: profile
            url_contains: /api/me
            json: {id: 1, name: "${TEST_USER}"}
            headers: {x-served-by: mock}
        """,
    )
    mocks = load_mocks_file(f)
    assert [m.display_name for m in mocks] == ["return 401 on GET /foobar", "profile"]

    denied, profile = mocks
    assert denied.matches("http://host/foobar?x=1", "GET")
    assert not denied.matches("http://host/foobar", "POST")
    assert denied.delay_in_milliseconds == 100
    assert build_response(denied)["body"] == "sorry, you have no access"

    # no method -> any method
    assert profile.matches("http://host/api/me", "PATCH")
    response = build_response(profile)
    assert json.loads(response["body"]) == {"id": 1, "name": "alice"}
    assert response["headers"]["x-served-by"] == "mock"
    assert response["headers"]["content-type"] == "application/json"


def test_top_level_list_is_accepted(tmp_path: Path):
    f = write_yaml(
        tmp_path,
        """
        - name: ping
          url_contains: /ping
          text: pong
        """,
    )
    assert load_mocks_file(f)[0].display_name == "ping"


def test_invalid_entries_are_reported(tmp_path: Path):
    f = write_yaml(
        tmp_path,
        """
        mocks:
          - name: broken
            url_contains: /x
            status: 42
            json: {a: 1}
            text: both
        """,
    )
    with pytest.raises(ValueError) as exc:
        load_mocks_file(f)
    assert "Invalid mock file" in str(exc.value)
    assert "status" in str(exc.value)


def test_yaml_errors_are_wrapped(tmp_path: Path):
    f = write_yaml(tmp_path, "mocks: [unclosed\n")
    with pytest.raises(ValueError, match="YAML parse error"):
        load_mocks_file(f)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_mocks_file(tmp_path / "nope.yaml")
