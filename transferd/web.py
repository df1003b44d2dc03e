"""HTTP layer: the account controller and its routes."""

from __future__ import annotations

import json
from typing import Any

from flask import Flask, Response, jsonify, request

from .models import AccountService, CreateAccountRequest, TxnAccountRequest
from .service import ServiceError

ACCOUNTS_PREFIX = "/api/v1/accounts"


def _json_body() -> Any:
    """Decode the request body as JSON; raise ValueError if it is not."""
    raw = request.get_data(as_text=True)
    if not raw.strip():
        raise ValueError("EOF")
    return json.loads(raw)


def _failure(exc: Exception) -> tuple[Response, int]:
    if isinstance(exc, ServiceError):
        return jsonify(exc.response.to_dict()), 500
    return jsonify(None), 500


class AccountController:
    """Handles the account endpoints on top of an account service."""

    def __init__(self, account_service: AccountService) -> None:
        self._service = account_service

    def get_account(self, account_id: str) -> tuple[Response, int]:
        """Handle GET /api/v1/accounts/<account_id>."""
        try:
            response = self._service.get_account(account_id)
        except Exception:
            return jsonify(None), 404
        return jsonify(response.to_dict()), 200

    def create_account(self) -> tuple[Response, int]:
        """Handle POST /api/v1/accounts."""
        try:
            req = CreateAccountRequest.from_dict(_json_body())
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        try:
            response = self._service.create_account(req.account_id, req.initial_balance)
        except Exception as exc:
            return _failure(exc)
        return jsonify(response.to_dict()), 201

    def transfer_money(self) -> tuple[Response, int]:
        """Handle POST /api/v1/accounts/transfer."""
        try:
            req = TxnAccountRequest.from_dict(_json_body())
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        try:
            response = self._service.transfer(
                req.source_account_id, req.destination_account_id, req.amount
            )
        except Exception as exc:
            return _failure(exc)
        return jsonify(response.to_dict()), 200


def setup_account_routes(app: Flask, controller: AccountController) -> None:
    """Register the account endpoints on the application."""
    app.add_url_rule(
        f"{ACCOUNTS_PREFIX}/<account_id>",
        "get_account",
        controller.get_account,
        methods=["GET"],
    )
    app.add_url_rule(
        ACCOUNTS_PREFIX, "create_account", controller.create_account, methods=["POST"]
    )
    app.add_url_rule(
        f"{ACCOUNTS_PREFIX}/transfer",
        "transfer_money",
        controller.transfer_money,
        methods=["POST"],
    )


def create_app(controller: AccountController) -> Flask:
    """Build the application with the account routes and a health check."""
    app = Flask(__name__)
    setup_account_routes(app, controller)

    @app.get("/health")
    def health() -> tuple[Response, int]:
        return jsonify({"status": "UP"}), 200

    return app