#!/usr/bin/env python3
"""Run the pharmacy platform connectivity dry-run against a running API."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

import requests


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Call /pharmacy-sync/connection and report whether the platform is reachable."
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000/api/v1",
        help="Backend API base URL (default: http://localhost:8000/api/v1)",
    )
    parser.add_argument(
        "--api-key",
        default=os.getenv("PHARMACY_SYNC_API_KEY") or os.getenv("API_KEY"),
        help="Inbound API key (or set PHARMACY_SYNC_API_KEY / API_KEY env var).",
    )
    parser.add_argument(
        "--patient-id",
        type=int,
        help="Also print the stored sync status for this patient.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="Request timeout seconds (default: 30).",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS certificate verification.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print full JSON output.",
    )
    return parser.parse_args(argv)


def _headers(api_key: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if api_key:
        headers["X-API-Key"] = api_key
    return headers


def _get_json(url: str, *, headers: dict[str, str], timeout: int, verify: bool) -> Any:
    response = requests.get(url, headers=headers, timeout=timeout, verify=verify)
    if response.status_code == 404:
        return None
    if response.status_code >= 400:
        body = response.text.strip().replace("\n", " ")
        raise RuntimeError(f"HTTP {response.status_code} {url} -> {body[:400]}")
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(f"Non-JSON response from {url}") from exc


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    base_url = args.base_url.rstrip("/")
    headers = _headers(args.api_key)
    verify = not args.insecure

    try:
        check = _get_json(
            f"{base_url}/pharmacy-sync/connection",
            headers=headers,
            timeout=args.timeout,
            verify=verify,
        )
        status = None
        if args.patient_id is not None:
            status = _get_json(
                f"{base_url}/pharmacy-sync/patients/{args.patient_id}/status",
                headers=headers,
                timeout=args.timeout,
                verify=verify,
            )
    except Exception as exc:
        print(f"Connectivity check failed: {exc}", file=sys.stderr)
        return 2

    if not isinstance(check, dict):
        print("Connection endpoint returned no result.", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps({"connection": check, "patient_status": status}, indent=2))
    else:
        label = "PASS" if check.get("ok") else "FAIL"
        print(
            f"[{label}] base_url={check.get('base_url')} "
            f"doctors={check.get('doctor_count')} "
            f"default_doctor={check.get('default_doctor_id') or '-'}"
        )
        if check.get("details"):
            print(f"  details: {check['details']}")
        if args.patient_id is not None:
            if status is None:
                print(f"  patient {args.patient_id}: never synced")
            else:
                print(
                    f"  patient {args.patient_id}: status={status.get('last_sync_status')} "
                    f"external_id={status.get('external_patient_id') or '-'}"
                )
                if status.get("error_message"):
                    print(f"    last error: {status['error_message']}")

    return 0 if check.get("ok") else 1


if __name__ == "__main__":
    raise SystemExit(main())
