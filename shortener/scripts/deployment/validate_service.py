#!/usr/bin/env python3
"""
Validation script for URL Shortener service.
Exercises a live running service end to end: ping, shorten, redirect,
listing, batch and delete.

Usage:
    python -m shortener.scripts.deployment.validate_service --url http://127.0.0.1:8080
"""

import argparse
import sys
import time
from datetime import datetime
from typing import List, Optional

import requests


class ServiceValidator:
    """Validates URL shortener service functionality."""

    def __init__(self, base_url: str = "http://127.0.0.1:8080", timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # One session, so every request shares the session cookie
        self.session = requests.Session()
        self.test_results = []
        self.run_id = int(time.time())

    def print_header(self, text: str):
        """Print a formatted header."""
        print(f"\n{'='*60}")
        print(f"  {text}")
        print(f"{'='*60}\n")

    def print_test(self, name: str, passed: bool, details: str = ""):
        """Print test result."""
        status = "PASS" if passed else "FAIL"
        self.test_results.append((name, passed))
        print(f"{status} - {name}")
        if details:
            print(f"       {details}")

    def _key(self, short_url: str) -> str:
        return short_url.rsplit("/", 1)[-1]

    def test_ping(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/ping", timeout=self.timeout)
            ok = response.status_code == 200
            self.print_test("Ping", ok, f"Status: {response.status_code}")
            return ok
        except requests.RequestException as e:
            self.print_test("Ping", False, f"Error: {e}")
            return False

    def test_shorten_plain(self) -> Optional[str]:
        """POST / with the URL as the body; returns the key."""
        try:
            target = f"https://example.com/validate/{self.run_id}/plain"
            response = self.session.post(f"{self.base_url}/", data=target, timeout=self.timeout)
            ok = response.status_code == 201 and response.text.startswith("http")
            self.print_test("Shorten (plain text)", ok, f"Status: {response.status_code}, URL: {response.text.strip()}")
            return self._key(response.text.strip()) if ok else None
        except requests.RequestException as e:
            self.print_test("Shorten (plain text)", False, f"Error: {e}")
            return None

    def test_conflict(self) -> bool:
        """Shortening the same URL twice answers 409 with the first short URL."""
        try:
            target = f"https://example.com/validate/{self.run_id}/json"
            first = self.session.post(f"{self.base_url}/api/shorten", json={"url": target}, timeout=self.timeout)
            second = self.session.post(f"{self.base_url}/api/shorten", json={"url": target}, timeout=self.timeout)
            ok = (
                first.status_code == 201
                and second.status_code == 409
                and first.json().get("result") == second.json().get("result")
            )
            self.print_test(
                "Shorten (JSON) and conflict",
                ok,
                f"Status: {first.status_code} then {second.status_code} (expected 201, 409)",
            )
            return ok
        except (requests.RequestException, ValueError) as e:
            self.print_test("Shorten (JSON) and conflict", False, f"Error: {e}")
            return False

    def test_redirect(self, key: str, expected_status: int = 307) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/{key}", allow_redirects=False, timeout=self.timeout)
            ok = response.status_code == expected_status
            location = response.headers.get("Location", "")
            self.print_test(
                f"Redirect (expect {expected_status})",
                ok,
                f"Status: {response.status_code}, Location: {location[:50]}" if location
                else f"Status: {response.status_code}",
            )
            return ok
        except requests.RequestException as e:
            self.print_test(f"Redirect (expect {expected_status})", False, f"Error: {e}")
            return False

    def test_batch(self) -> List[str]:
        """Batch create; returns the created keys."""
        payload = [
            {"correlation_id": str(i), "original_url": f"https://example.com/validate/{self.run_id}/batch/{i}"}
            for i in range(3)
        ]
        try:
            response = self.session.post(f"{self.base_url}/api/shorten/batch", json=payload, timeout=self.timeout)
            items = response.json() if response.status_code == 201 else []
            ok = [item["correlation_id"] for item in items] == ["0", "1", "2"]
            self.print_test("Batch shorten", ok, f"Status: {response.status_code}, Items: {len(items)}")
            return [self._key(item["short_url"]) for item in items]
        except (requests.RequestException, ValueError, KeyError) as e:
            self.print_test("Batch shorten", False, f"Error: {e}")
            return []

    def test_user_urls(self, minimum: int) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/user/urls", timeout=self.timeout)
            items = response.json() if response.status_code == 200 else []
            ok = len(items) >= minimum
            self.print_test("List session URLs", ok, f"Status: {response.status_code}, Items: {len(items)}")
            return ok
        except (requests.RequestException, ValueError) as e:
            self.print_test("List session URLs", False, f"Error: {e}")
            return False

    def test_delete(self, keys: List[str]) -> bool:
        try:
            response = self.session.delete(f"{self.base_url}/api/user/urls", json=keys, timeout=self.timeout)
            ok = response.status_code == 202
            self.print_test("Delete session URLs", ok, f"Status: {response.status_code} (expected 202)")
            return ok
        except requests.RequestException as e:
            self.print_test("Delete session URLs", False, f"Error: {e}")
            return False

    def test_invalid_url(self) -> bool:
        try:
            response = self.session.post(
                f"{self.base_url}/api/shorten",
                json={"url": "not-a-valid-url"},
                timeout=self.timeout,
            )
            ok = response.status_code == 400
            self.print_test("Invalid URL Rejection", ok, f"Status: {response.status_code} (expected 400)")
            return ok
        except requests.RequestException as e:
            self.print_test("Invalid URL Rejection", False, f"Error: {e}")
            return False

    def run_all_tests(self) -> bool:
        """Run all validation tests."""
        self.print_header("URL Shortener Service Validation")
        print(f"Testing service at: {self.base_url}")
        print(f"Timestamp: {datetime.now().isoformat()}\n")

        if not self.test_ping():
            print("\nPing failed. Service may not be running.")
            print(f"   Make sure the service is accessible at {self.base_url}")
            return False

        print()

        key = self.test_shorten_plain()
        if key:
            self.test_redirect(key)
        self.test_conflict()
        batch_keys = self.test_batch()
        self.test_user_urls(minimum=1 + len(batch_keys))

        print()

        if batch_keys and self.test_delete(batch_keys):
            self.test_redirect(batch_keys[0], expected_status=410)
        self.test_invalid_url()
        self.test_redirect("nonexist0", expected_status=400)

        self.print_summary()
        return all(passed for _, passed in self.test_results)

    def print_summary(self):
        """Print test summary."""
        total = len(self.test_results)
        passed = sum(1 for _, p in self.test_results if p)
        failed = total - passed

        self.print_header("Test Summary")
        print(f"Total Tests:  {total}")
        print(f"Passed:       {passed}")
        print(f"Failed:       {failed}")

        if failed > 0:
            print("\nFailed tests:")
            for name, ok in self.test_results:
                if not ok:
                    print(f"   - {name}")

        print()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Validate URL Shortener service functionality"
    )
    parser.add_argument(
        "--url",
        default="http://127.0.0.1:8080",
        help="Base URL of the service (default: http://127.0.0.1:8080)"
    )
    parser.add_argument("--timeout", type=float, default=5, help="Per-request timeout in seconds")

    args = parser.parse_args()

    validator = ServiceValidator(args.url, timeout=args.timeout)

    try:
        success = validator.run_all_tests()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nValidation interrupted by user")
        sys.exit(2)


if __name__ == "__main__":
    main()
