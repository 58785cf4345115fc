from __future__ import annotations

"""Declarative mock files
------------------------
Loads mock rules from YAML so suites can share canned API responses:

    mocks:
      - name: return 401 on GET /foobar
        url_contains: /foobar
        method: GET
        status: 401
        text: sorry, you have no access
        delay_ms: 100
      - name: user profile
        url_contains: /api/me
        json: {id: 1, name: "${TEST_USER}"}
        headers: {x-served-by: mock}
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from pwfluent.network.mocks import FluentMock, Headers


class MockEntry(BaseModel):
    name: str = Field(..., description="Display name used in logs")
    url_contains: str = Field(..., description="URL fragment the request must contain")
    method: Optional[str] = Field(default=None, description="HTTP method; any method when omitted")
    status: int = Field(default=200, ge=100, le=599)
    json_body: Any = Field(default=None, alias="json")
    text: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    delay_ms: int = Field(default=0, ge=0)

    @field_validator("url_contains")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("url_contains cannot be empty")
        return v

    @field_validator("method")
    @classmethod
    def _upper(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    @model_validator(mode="after")
    def _one_body(self) -> "MockEntry":
        if self.json_body is not None and self.text is not None:
            raise ValueError("use either 'json' or 'text', not both")
        return self

    def to_fluent_mock(self) -> FluentMock:
        fragment = self.url_contains
        method = self.method
        extra = dict(self.headers)
        json_body = self.json_body if self.json_body is not None else {}
        text = self.text

        def enrich(headers: Headers) -> Headers:
            return {**headers, **extra}

        return FluentMock(
            display_name=self.name,
            url_matcher=lambda url: fragment in url,
            method_matcher=(lambda m: m.upper() == method) if method else (lambda m: True),
            response_type="string" if text is not None else "json",
            json_response=lambda: json_body,
            raw_response=lambda: text or "",
            status=self.status,
            enrich_response_headers=enrich,
            delay_in_milliseconds=self.delay_ms,
        )


class MockFile(BaseModel):
    mocks: List[MockEntry]


def _subst_env(obj):
    """Replace ${VAR} in every string; unknown variables are left as-is."""
    if isinstance(obj, str):
        def repl(m):
            return os.environ.get(m.group(1), m.group(0))
        return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", repl, obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def load_mocks_file(path: Path | str) -> List[FluentMock]:
    mock_path = Path(path)
    if not mock_path.exists():
        raise FileNotFoundError(f"Mock file not found: {mock_path}")

    try:
        data = yaml.safe_load(mock_path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            data = {"mocks": data}
        if not isinstance(data, dict):
            raise ValueError(f"Mock file '{mock_path}' must define a 'mocks' list.")
        parsed = MockFile.model_validate(_subst_env(data))
    except ValidationError as ve:
        lines = [f"Invalid mock file '{mock_path}':"]
        for e in ve.errors():
            loc = ".".join(str(p) for p in e.get("loc", []))
            msg = e.get("msg", "invalid value")
            lines.append(f"  - {loc}: {msg}")
        raise ValueError("\n".join(lines)) from ve
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {mock_path}: {ye}") from ye

    return [entry.to_fluent_mock() for entry in parsed.mocks]
