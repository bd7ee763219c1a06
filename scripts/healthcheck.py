#!/usr/bin/env python3
"""HRMS Health Check — verify the API is up and enforcing auth.

Checks:
  1. /api/v1/health responds with HTTP 200 and status "healthy"
  2. /api/v1/auth/me without a token is rejected with HTTP 401

Usage:
    python scripts/healthcheck.py                                # http://localhost:8000
    python scripts/healthcheck.py --url https://hrms.example.com
    python scripts/healthcheck.py --json                         # machine-readable output

Exit codes:
    0 = all checks passed
    1 = one or more checks failed
    2 = critical failure (cannot reach target at all)
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone

import requests


class CheckResult:
    """Single health check result."""

    def __init__(self, name: str, passed: bool, message: str,
                 detail: str = "", critical: bool = False):
        self.name = name
        self.passed = passed
        self.message = message
        self.detail = detail
        self.critical = critical

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        icon = "OK  " if self.passed else "FAIL"
        s = f"[{icon}] {self.name}: {self.message}"
        if self.detail:
            s += f"\n       {self.detail}"
        return s


def check_backend_health(session: requests.Session, base_url: str, timeout: float) -> CheckResult:
    """Check that /api/v1/health responds correctly."""
    try:
        resp = session.get(f"{base_url}/api/v1/health", timeout=timeout)
    except requests.RequestException as e:
        return CheckResult("Backend API", False, "Cannot connect to backend", str(e), critical=True)

    if resp.status_code != 200:
        return CheckResult("Backend API", False, f"HTTP {resp.status_code} (expected 200)")

    try:
        body = resp.json()
    except ValueError:
        return CheckResult("Backend API", False, "Response is not JSON", resp.text[:200])

    if body.get("status") != "healthy":
        return CheckResult(
            "Backend API", False,
            f"Status: {body.get('status', 'missing')} (expected 'healthy')",
            f"Response: {json.dumps(body)}",
        )
    return CheckResult(
        "Backend API", True,
        f"Healthy (v{body.get('version', 'unknown')}, {body.get('environment', 'unknown')})",
    )


def check_auth_enforced(session: requests.Session, base_url: str, timeout: float) -> CheckResult:
    """An anonymous /auth/me must be refused."""
    try:
        resp = session.get(f"{base_url}/api/v1/auth/me", timeout=timeout)
    except requests.RequestException as e:
        return CheckResult("Auth", False, "Request failed", str(e))
    if resp.status_code != 401:
        return CheckResult("Auth", False, f"HTTP {resp.status_code} (expected 401)")
    return CheckResult("Auth", True, "Anonymous requests are rejected")


def run_healthcheck(url: str, timeout: float = 10.0) -> list[CheckResult]:
    """Run all health checks and return results."""
    base_url = url.rstrip("/")
    with requests.Session() as session:
        results = [check_backend_health(session, base_url, timeout)]
        if results[0].critical:
            return results
        results.append(check_auth_enforced(session, base_url, timeout))
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="HRMS Health Check")
    parser.add_argument("--url", type=str, default="http://localhost:8000",
                        help="Base URL to check (default: http://localhost:8000)")
    parser.add_argument("--json", dest="output_json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="HTTP timeout in seconds (default: 10)")
    args = parser.parse_args()

    results = run_healthcheck(args.url, timeout=args.timeout)
    failed = [r for r in results if not r.passed]

    if args.output_json:
        print(json.dumps(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "target": args.url,
                "checks": [r.to_dict() for r in results],
                "all_passed": not failed,
            },
            indent=2,
        ))
    else:
        for result in results:
            print(result)
        print(f"{len(results) - len(failed)}/{len(results)} checks passed")

    if any(r.critical for r in failed):
        sys.exit(2)
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
