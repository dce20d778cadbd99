#!/usr/bin/env python3
"""Operator CLI for granting AI credits, e.g. after a refund could not be written."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict

import httpx


def _default_api_base() -> str:
    return os.environ.get("RECEPTBOK_API_BASE", "http://localhost:8000/v1")


def _default_token() -> str:
    return os.environ.get("RECEPTBOK_ADMIN_TOKEN", "")


def _post(
    endpoint: str,
    payload: Dict[str, Any],
    *,
    api_base: str,
    token: str,
) -> Dict[str, Any]:
    url = f"{api_base.rstrip('/')}/{endpoint.lstrip('/')}"
    headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
    with httpx.Client(timeout=15.0) as client:
        resp = client.post(url, headers=headers, json=payload)
    try:
        data = resp.json()
    except ValueError:
        data = {"text": resp.text}
    if resp.status_code >= 400:
        raise SystemExit(f"[{resp.status_code}] {json.dumps(data, indent=2)}")
    return data


def cmd_grant(args: argparse.Namespace, api_base: str, token: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"userId": args.user_id, "amount": args.amount}
    if args.description:
        payload["description"] = args.description
    if args.email:
        payload["userEmail"] = args.email
    data = _post("/admin/credits/grant", payload, api_base=api_base, token=token)
    print(json.dumps(data, indent=2))
    return data


def _positive_int(value: str) -> int:
    amount = int(value)
    if amount <= 0:
        raise argparse.ArgumentTypeError("amount must be a positive integer")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Credit ledger admin helper.")
    parser.add_argument(
        "--api-base",
        default=_default_api_base(),
        help="Base API URL (default: %(default)s or RECEPTBOK_API_BASE).",
    )
    parser.add_argument(
        "--token",
        default=_default_token(),
        help="Admin bearer token (default: RECEPTBOK_ADMIN_TOKEN env).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    grant = sub.add_parser("grant", help="Add credits to a user's balance.")
    grant.add_argument("user_id", help="Auth subject of the user.")
    grant.add_argument("amount", type=_positive_int, help="Number of credits to add.")
    grant.add_argument("--description", default=None, help="Ledger description (default: 'Admin grant').")
    grant.add_argument("--email", default=None, help="User email, stored when the account is new.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    token = args.token or _default_token()
    if not token:
        parser.error("Missing admin bearer token. Pass --token or set RECEPTBOK_ADMIN_TOKEN.")
    api_base = args.api_base or _default_api_base()

    if args.command == "grant":
        cmd_grant(args, api_base, token)
    else:  # pragma: no cover
        parser.error(f"Unknown command {args.command}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
