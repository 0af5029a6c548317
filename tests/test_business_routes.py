"""
tests/test_business_routes.py -- Integration tests for /business/*.

Covers:
  - Every business route requires a session (401 without the cookie)
  - POST /business/form stores the form and echoes it with an id (201)
  - Incomes round-trip as exact decimals
  - Duplicate businessName returns 400 duplicate, across users too
  - Field validation failures return 400 validation_error
  - GET /business/userData returns the caller's latest form, 404 when none
  - GET /business/forms lists only the caller's forms, newest first
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient


def _form(name: str = "Acme Bakery", **overrides) -> dict:
    body = {
        "businessName": name,
        "period": "2024-Q1",
        "expectedIncome": 1200,
        "actualIncome": "950.50",
        "reason": "Slow winter season",
        "category": "Food",
    }
    body.update(overrides)
    return body


def _login_as(client: TestClient, username: str) -> None:
    """Register username and replace the cookie in the jar with its session."""
    client.cookies.clear()
    resp = client.post(
        "/register",
        json={"username": username, "email": f"{username}@x.com", "password": "secret1"},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/login", json={"username": username, "password": "secret1"})
    assert resp.status_code == 200, resp.text


class TestSessionRequired:
    @pytest.mark.parametrize(
        "method, path",
        [("post", "/business/form"), ("get", "/business/userData"), ("get", "/business/forms")],
    )
    def test_no_cookie_returns_401(self, client: TestClient, method: str, path: str) -> None:
        kwargs = {"json": _form()} if method == "post" else {}
        resp = getattr(client, method)(path, **kwargs)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthenticated"


class TestSubmit:
    def test_submit_returns_201_with_stored_form(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        resp = client.post("/business/form", json=_form())
        assert resp.status_code == 201
        form = resp.json()["form"]
        assert form["id"]
        assert form["createdAt"]
        assert form["businessName"] == "Acme Bakery"
        assert Decimal(str(form["expectedIncome"])) == Decimal("1200")
        assert Decimal(str(form["actualIncome"])) == Decimal("950.50")

    def test_duplicate_business_name(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        assert client.post("/business/form", json=_form()).status_code == 201
        resp = client.post("/business/form", json=_form(period="2024-Q2"))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "duplicate"

    def test_business_name_is_unique_across_users(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        assert client.post("/business/form", json=_form()).status_code == 201
        _login_as(client, "bob")
        assert client.post("/business/form", json=_form()).status_code == 400

    @pytest.mark.parametrize(
        "overrides",
        [
            {"businessName": "Ac"},
            {"period": ""},
            {"expectedIncome": -1},
            {"actualIncome": "12.345"},
            {"actualIncome": "lots"},
            {"reason": "no"},
            {"category": None},
        ],
    )
    def test_invalid_field_returns_400(self, alice: tuple[TestClient, str], overrides: dict) -> None:
        client, _ = alice
        resp = client.post("/business/form", json=_form(**overrides))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


class TestRetrieve:
    def test_user_data_404_before_any_submission(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        resp = client.get("/business/userData")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_user_data_returns_latest(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        client.post("/business/form", json=_form("First Shop"))
        client.post("/business/form", json=_form("Second Shop", period="2024-Q2"))
        resp = client.get("/business/userData")
        assert resp.status_code == 200
        assert resp.json()["businessName"] == "Second Shop"
        assert resp.json()["period"] == "2024-Q2"

    def test_forms_are_scoped_to_the_session_user(self, alice: tuple[TestClient, str]) -> None:
        client, _ = alice
        client.post("/business/form", json=_form("First Shop"))
        client.post("/business/form", json=_form("Second Shop"))

        resp = client.get("/business/forms")
        assert resp.status_code == 200
        assert [f["businessName"] for f in resp.json()] == ["Second Shop", "First Shop"]

        _login_as(client, "bob")
        assert client.get("/business/userData").status_code == 404
        assert client.get("/business/forms").json() == []
