#!/usr/bin/env python3
"""
Smoke test for a running agent's claim endpoint.

Exercises only the paths that do not contact the cloud:
1. Health check
2. Status read (no key): must not rotate the challenge
3. Wrong key: 403 and the challenge file changes
4. Correct key, bad token: 400 and the challenge file changes

Steps 3 and 4 need read access to the challenge file, so run as the agent
user or with sudo.

Usage:
    ./scripts/smoke-test.py http://127.0.0.1:8000 --key-file ./var/random_session_id
    ./scripts/smoke-test.py http://127.0.0.1:8000 --status-only
"""

import argparse
import json
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

DEFAULT_TIMEOUT_SECONDS = 10.0
BODY_PREVIEW_CHARS = 200
WRONG_KEY = "00000000-0000-4000-8000-000000000000"


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def get(self, path: str, params: dict[str, str] | None = None) -> tuple[int, str]:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        try:
            with urlopen(Request(url, method="GET"), timeout=self.timeout_seconds) as response:
                return response.getcode(), response.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            return e.code, body
        except (URLError, TimeoutError) as e:
            raise RuntimeError(f"Network error: {e}") from e

    def claim(self, params: dict[str, str] | None = None) -> tuple[int, str]:
        return self.get("/api/v2/claim", params)


@dataclass
class SmokeContext:
    client: HttpClient
    key_file: Path | None

    def read_key(self) -> str:
        if self.key_file is None:
            raise RuntimeError("--key-file is required for this step")
        return self.key_file.read_text().strip()


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[SmokeContext], None]
    # Return `None` to run the step; return a string to skip with that reason.
    skip_reason: Callable[[SmokeContext], str | None] | None = None


def expect_status(actual: int, expected: int, body: str) -> None:
    if actual != expected:
        raise RuntimeError(f"expected HTTP {expected}, got {actual}: {body[:BODY_PREVIEW_CHARS]}")


def parse_json(body: str) -> dict[str, Any]:
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Invalid JSON response: {body[:BODY_PREVIEW_CHARS]!r}") from e


def step_health(ctx: SmokeContext) -> None:
    status, body = ctx.client.get("/health")
    expect_status(status, 200, body)


def step_status_read(ctx: SmokeContext) -> None:
    before = ctx.read_key() if ctx.key_file else None

    status, body = ctx.client.claim()
    expect_status(status, 200, body)
    data = parse_json(body)
    log(f"  cloud status: {data['cloud']['status']}, can_be_claimed: {data['can_be_claimed']}")
    if data["can_be_claimed"]:
        log(f"  operator command: {data['cmd']}")

    if before is not None and ctx.read_key() != before:
        raise RuntimeError("status read rotated the challenge")


def step_wrong_key(ctx: SmokeContext) -> None:
    before = ctx.read_key()
    status, body = ctx.client.claim({"key": WRONG_KEY, "token": "smoke", "url": "https://x"})
    expect_status(status, 403, body)
    if ctx.read_key() == before:
        raise RuntimeError("challenge was not rotated after a wrong key")


def step_bad_params(ctx: SmokeContext) -> None:
    key = ctx.read_key()
    status, body = ctx.client.claim({"key": key, "token": "not valid", "url": "https://x"})
    expect_status(status, 400, body)
    if ctx.read_key() == key:
        raise RuntimeError("challenge was not rotated after invalid parameters")


def skip_unless_claimable(ctx: SmokeContext) -> str | None:
    if ctx.key_file is None:
        return "no --key-file given"
    status, body = ctx.client.claim()
    if status == 200 and not parse_json(body)["can_be_claimed"]:
        return "agent is not claimable, keys are ignored"
    return None


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    overall_start = time.time()
    for step in steps:
        reason = step.skip_reason(ctx) if step.skip_reason else None
        if reason:
            log(f"SKIP: {step.name}: {reason}")
            continue

        log(f"STEP: {step.name}")
        start = time.time()
        try:
            step.run(ctx)
        except Exception as e:
            log(f"FAILED: {step.name}: {e}")
            return False
        log(f"OK: {step.name} ({time.time() - start:.2f}s)")

    log(f"Total: {time.time() - overall_start:.2f}s")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Agent claim endpoint smoke test")
    parser.add_argument("base_url", help="Agent URL (e.g., http://127.0.0.1:8000)")
    parser.add_argument("--key-file", type=Path, help="Path to the challenge file")
    parser.add_argument(
        "--status-only",
        action="store_true",
        help="Only run the health check and status read",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"HTTP timeout seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    args = parser.parse_args()

    client = HttpClient(base_url=args.base_url.rstrip("/"), timeout_seconds=args.timeout)
    ctx = SmokeContext(client=client, key_file=args.key_file)

    steps = [Step("health", step_health), Step("status read", step_status_read)]
    if not args.status_only:
        steps.extend(
            [
                Step("wrong key", step_wrong_key, skip_reason=skip_unless_claimable),
                Step("invalid parameters", step_bad_params, skip_reason=skip_unless_claimable),
            ]
        )

    try:
        return 0 if run_steps(ctx, steps) else 1
    except Exception as e:
        log(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
