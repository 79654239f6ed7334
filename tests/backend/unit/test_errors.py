"""
Unit tests for core.errors: message formatting and the error normalizer,
exercised through a throwaway FastAPI app.
"""
import asyncio
import logging
import sys
from unittest.mock import Mock

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from tortoise.exceptions import IntegrityError

from natours.config import settings
from natours.core.errors import (
    EXPIRED_TOKEN_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    INVALID_DATA_MESSAGE,
    INVALID_TOKEN_MESSAGE,
    BadRequestError,
    ForbiddenError,
    InternalError,
    InvalidIdentifierError,
    NotFoundError,
    _on_uncaught_exception,
    _on_unhandled_rejection,
    format_integrity_error,
    format_validation_errors,
    install_process_handlers,
    register_exception_handlers,
)


def _build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError()

    @app.get("/expired")
    async def expired():
        raise jwt.ExpiredSignatureError("Signature has expired")

    @app.get("/bad-token")
    async def bad_token():
        raise jwt.InvalidTokenError("Not enough segments")

    @app.get("/duplicate")
    async def duplicate():
        raise IntegrityError("UNIQUE constraint failed: tours.name")

    @app.get("/missing-value")
    async def missing_value():
        raise IntegrityError("NOT NULL constraint failed: tours.summary")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("db password is hunter2")

    @app.get("/items/{item_id}")
    async def item(item_id: int):
        return {"id": item_id}

    return app


@pytest_asyncio.fixture
async def error_client():
    transport = ASGITransport(app=_build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


class TestAppErrors:
    def test_status_family(self):
        assert BadRequestError("x").status == "fail"
        assert ForbiddenError().status_code == 403
        assert NotFoundError().status == "fail"
        assert InternalError("x").status == "error"
        assert InternalError("x").is_operational is True

    def test_invalid_identifier_message(self):
        err = InvalidIdentifierError("abc")
        assert err.status_code == 400
        assert err.message == "Invalid id: abc."


class TestFormatting:
    def test_validation_errors_joined(self):
        errors = [
            {"loc": ("body", "name"), "msg": "Field required"},
            {"loc": ("body", "price"), "msg": "Input should be greater than 0"},
        ]
        assert format_validation_errors(errors) == (
            "Invalid input data. name: Field required. price: Input should be greater than 0"
        )

    def test_duplicate_sqlite(self):
        exc = IntegrityError("UNIQUE constraint failed: users.email")
        assert format_integrity_error(exc) == "Duplicate field value: email. Please use another value!"

    def test_duplicate_postgres(self):
        exc = IntegrityError(
            'duplicate key value violates unique constraint "tours_name_key"\n'
            "DETAIL:  Key (name)=(The Forest Hiker) already exists."
        )
        assert format_integrity_error(exc) == "Duplicate field value: name. Please use another value!"

    def test_duplicate_composite(self):
        exc = IntegrityError("UNIQUE constraint failed: reviews.tour_id, reviews.user_id")
        assert "tour_id, user_id" in format_integrity_error(exc)

    @pytest.mark.parametrize(
        "text",
        [
            "NOT NULL constraint failed: tours.summary",
            "FOREIGN KEY constraint failed",
            'insert or update on table "reviews" violates foreign key constraint "fk_reviews_tours"\n'
            'DETAIL:  Key (tour_id)=(0b6f...) is not present in table "tours".',
        ],
    )
    def test_other_integrity_failures_are_not_duplicates(self, text):
        assert format_integrity_error(IntegrityError(text)) == INVALID_DATA_MESSAGE


@pytest.mark.asyncio
async def test_operational_error_body(error_client):
    resp = await error_client.get("/not-found")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == "fail"
    assert body["message"] == "No document found with that ID"


@pytest.mark.asyncio
async def test_token_errors_are_401(error_client):
    expired = await error_client.get("/expired")
    assert expired.status_code == 401
    assert expired.json()["message"] == EXPIRED_TOKEN_MESSAGE

    bad = await error_client.get("/bad-token")
    assert bad.status_code == 401
    assert bad.json()["message"] == INVALID_TOKEN_MESSAGE


@pytest.mark.asyncio
async def test_duplicate_is_400(error_client):
    resp = await error_client.get("/duplicate")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Duplicate field value: name. Please use another value!"


@pytest.mark.asyncio
async def test_not_null_is_400_without_duplicate_wording(error_client):
    resp = await error_client.get("/missing-value")
    assert resp.status_code == 400
    assert resp.json() == {"status": "fail", "message": INVALID_DATA_MESSAGE}


@pytest.mark.asyncio
async def test_request_validation_is_400(error_client):
    resp = await error_client.get("/items/abc")
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid input data. ")


@pytest.mark.asyncio
async def test_unknown_route(error_client):
    resp = await error_client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Can't find /nowhere on this server!"


@pytest.mark.asyncio
async def test_programming_error_in_development(error_client, monkeypatch):
    monkeypatch.setattr(settings, "env", "development")
    resp = await error_client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["status"] == "error"
    assert body["message"] == GENERIC_ERROR_MESSAGE
    assert body["error"]["name"] == "RuntimeError"
    assert "stack" in body


@pytest.mark.asyncio
async def test_programming_error_hidden_in_production(error_client, monkeypatch):
    monkeypatch.setattr(settings, "env", "production")
    resp = await error_client.get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": GENERIC_ERROR_MESSAGE}


class TestProcessHandlers:
    def test_install_sets_both_hooks(self, monkeypatch):
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        loop = asyncio.new_event_loop()
        try:
            install_process_handlers(loop)
            assert sys.excepthook is _on_uncaught_exception
            assert loop.get_exception_handler() is _on_unhandled_rejection
        finally:
            loop.close()

    def test_uncaught_exception_exits(self, caplog):
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            exc_info = (type(exc), exc, exc.__traceback__)

        with caplog.at_level(logging.CRITICAL, logger="uvicorn.error"):
            with pytest.raises(SystemExit) as exit_info:
                _on_uncaught_exception(*exc_info)

        assert exit_info.value.code == 1
        assert any(
            r.levelno == logging.CRITICAL and "UNCAUGHT EXCEPTION" in r.getMessage() for r in caplog.records
        )

    def test_unhandled_rejection_stops_loop(self, caplog):
        loop = Mock()
        context = {"message": "Task exception was never retrieved", "exception": ValueError("lost")}

        with caplog.at_level(logging.CRITICAL, logger="uvicorn.error"):
            with pytest.raises(SystemExit) as exit_info:
                _on_unhandled_rejection(loop, context)

        assert exit_info.value.code == 1
        loop.stop.assert_called_once_with()
        assert any(
            r.levelno == logging.CRITICAL and "UNHANDLED REJECTION" in r.getMessage() for r in caplog.records
        )
