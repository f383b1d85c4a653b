"""
scripts/smoke.py

End-to-end checks of the credentials auth flow against a running server:
register, duplicate register, login, wrong password, current user,
forgot password and logout. Each check prints a PASS/FAIL line; the exit
code is non-zero when any check fails.

Usage:
    reportsonic-smoke --base-url http://localhost:8000
"""

import argparse
import logging
import sys
import time
from collections.abc import Callable

import colorlog
import httpx

from reportsonic.auth.services import FORGOT_PASSWORD_MESSAGE
from reportsonic.core.config import settings

logger = logging.getLogger("reportsonic.smoke")

Check = Callable[[httpx.Client], str | None]


def _configure_output() -> None:
    handler = colorlog.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={"INFO": "green", "WARNING": "yellow", "ERROR": "red"},
        )
    )
    logger.handlers = [handler]
    logger.setLevel(logging.INFO)
    logger.propagate = False


class SmokeRun:
    """Holds the throwaway account and session token shared by the checks."""

    def __init__(self) -> None:
        stamp = int(time.time() * 1000)
        self.name = "Smoke Test"
        self.email = f"smoke_{stamp}@example.com"
        self.password = "smoke-password"
        self.token: str | None = None

    def _session_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Cookie": f"{settings.AUTH_COOKIE_NAME}={self.token}"}

    def register(self, client: httpx.Client) -> str | None:
        response = client.post(
            "/api/auth/register",
            json={"name": self.name, "email": self.email, "password": self.password},
        )
        if response.status_code != 201:
            return f"expected 201, got {response.status_code}: {response.text}"
        return None

    def duplicate_register(self, client: httpx.Client) -> str | None:
        response = client.post(
            "/api/auth/register",
            json={"name": self.name, "email": self.email, "password": self.password},
        )
        if response.status_code != 400:
            return f"expected 400, got {response.status_code}"
        return None

    def login(self, client: httpx.Client) -> str | None:
        response = client.post(
            "/api/auth/login", json={"email": self.email, "password": self.password}
        )
        if response.status_code != 200:
            return f"expected 200, got {response.status_code}: {response.text}"
        # The cookie is Secure outside DEBUG, so it is replayed by hand.
        self.token = response.cookies.get(settings.AUTH_COOKIE_NAME)
        if not self.token:
            return f"no {settings.AUTH_COOKIE_NAME} cookie in the login response"
        return None

    def wrong_password(self, client: httpx.Client) -> str | None:
        response = client.post(
            "/api/auth/login", json={"email": self.email, "password": "not-the-password"}
        )
        if response.status_code != 401:
            return f"expected 401, got {response.status_code}"
        return None

    def me(self, client: httpx.Client) -> str | None:
        response = client.get("/api/auth/me", headers=self._session_headers())
        if response.status_code != 200:
            return f"expected 200, got {response.status_code}: {response.text}"
        email = response.json().get("user", {}).get("email")
        if email != self.email:
            return f"expected {self.email}, got {email}"
        return None

    def forgot_password(self, client: httpx.Client) -> str | None:
        response = client.post("/api/auth/forgot-password", json={"email": self.email})
        if response.status_code != 200:
            return f"expected 200, got {response.status_code}"
        if response.json().get("message") != FORGOT_PASSWORD_MESSAGE:
            return f"unexpected message: {response.json().get('message')}"
        return None

    def logout(self, client: httpx.Client) -> str | None:
        response = client.post("/api/auth/logout", headers=self._session_headers())
        if response.status_code != 200:
            return f"expected 200, got {response.status_code}"
        return None

    def checks(self) -> list[tuple[str, Check]]:
        return [
            ("register", self.register),
            ("duplicate register rejected", self.duplicate_register),
            ("login sets session cookie", self.login),
            ("wrong password rejected", self.wrong_password),
            ("current user", self.me),
            ("forgot password", self.forgot_password),
            ("logout", self.logout),
        ]


def run(base_url: str, timeout: float = 10.0) -> int:
    """Runs every check in order and returns the number of failures."""
    smoke = SmokeRun()
    failures = 0
    with httpx.Client(base_url=base_url, timeout=timeout) as client:
        for label, check in smoke.checks():
            try:
                problem = check(client)
            except httpx.HTTPError as e:
                problem = f"request failed: {e}"
            if problem:
                failures += 1
                logger.error(f"FAIL  {label}: {problem}")
            else:
                logger.info(f"PASS  {label}")
    return failures


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-test the ReportSonic auth flow.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args(argv)

    _configure_output()
    logger.warning(f"Running auth smoke checks against {args.base_url}")
    failures = run(args.base_url, args.timeout)
    if failures:
        logger.error(f"{failures} check(s) failed")
        return 1
    logger.info("All checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
