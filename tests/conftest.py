import json
from datetime import datetime

import pytest
import requests

import app as app_module
import gateway as gateway_module

VALID_TOKEN = "good-token"
USER_ID = "user-1"


# ============================================================================
# FAKE DOCUMENT STORE
# ============================================================================

class FakeCursor:
    def __init__(self, store):
        self.store = store
        self.rows = []

    def execute(self, sql, params=()):
        self.store.queries.append((" ".join(sql.split()), params))
        if self.store.fail_queries:
            raise app_module.psycopg2.OperationalError("relation \"documents\" does not exist")
        user_id = params[0]
        category = params[1] if len(params) > 1 else None
        self.rows = [
            (d["filename"], d.get("extracted_text"), d.get("file_type"), d["category"], d.get("created_at"))
            for d in self.store.documents
            if d["user_id"] == user_id and (category is None or d["category"] == category)
        ]

    def fetchall(self):
        return list(self.rows)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, store):
        self.store = store
        self.closed = False

    def cursor(self):
        return FakeCursor(self.store)

    def close(self):
        self.closed = True


class FakeStore:
    def __init__(self):
        self.documents = []
        self.queries = []
        self.connections = 0
        self.available = True
        self.fail_queries = False

    def add(self, filename, category, text="", user_id=USER_ID, file_type="pdf"):
        self.documents.append(
            {
                "user_id": user_id,
                "filename": filename,
                "category": category,
                "extracted_text": text,
                "file_type": file_type,
                "created_at": datetime(2026, 1, 1 + len(self.documents)),
            }
        )

    def connect(self):
        self.connections += 1
        if not self.available:
            return None
        return FakeConnection(self)


# ============================================================================
# FAKE AI GATEWAY
# ============================================================================

class FakeResponse:
    def __init__(self, status_code=200, json_body=None, chunks=None, text="", abort_after=None):
        self.status_code = status_code
        self._json = json_body
        self._chunks = chunks or []
        self.text = text
        self.abort_after = abort_after
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def iter_content(self, chunk_size=None):
        for i, chunk in enumerate(self._chunks):
            if self.abort_after is not None and i >= self.abort_after:
                raise requests.exceptions.ChunkedEncodingError("Connection broken")
            yield chunk

    def close(self):
        self.closed = True


class FakeUpstream:
    def __init__(self):
        self.calls = []
        self.response = FakeResponse(chunks=[b"data: {}\n\n"])
        self.error = None

    def respond(self, **kwargs):
        self.response = FakeResponse(**kwargs)
        return self.response

    def respond_with_tool_call(self, arguments, name="analyze_pyq"):
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        body = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "tool_calls": [
                            {"type": "function", "function": {"name": name, "arguments": arguments}}
                        ],
                    }
                }
            ]
        }
        return self.respond(json_body=body)

    def post(self, url, headers=None, json=None, stream=False, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "stream": stream, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last_payload(self):
        return self.calls[-1]["json"]


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    monkeypatch.setattr(app_module, "get_connection", fake.connect)
    return fake


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(gateway_module.requests, "post", fake.post)
    return fake


@pytest.fixture
def verifier(monkeypatch):
    seen = []

    def verify_id_token(token):
        seen.append(token)
        if token == VALID_TOKEN:
            return {"sub": USER_ID, "email": "student@example.com"}
        if token == "no-subject":
            return {"email": "student@example.com"}
        raise ValueError("Token verification failed")

    monkeypatch.setattr(app_module.firebase_auth, "verify_id_token", verify_id_token)
    return seen


@pytest.fixture
def client(store, upstream, verifier):
    flask_app = app_module.app
    old = dict(flask_app.config)
    flask_app.config.update(
        TESTING=True,
        FIREBASE_READY=True,
        AI_GATEWAY_API_KEY="test-gateway-key",
        DATABASE_URL="postgresql://localhost/studyai-test",
    )
    yield flask_app.test_client()
    flask_app.config.clear()
    flask_app.config.update(old)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
