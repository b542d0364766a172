"""
Retry Utilities
Retries flaky HTTP calls with exponential backoff, jitter and console feedback.
"""

import functools
import random
import time
from typing import Optional

import requests

from utils.helpers import print_error, print_info, print_warning


# Domain-specific minimum retry delays (in seconds)
DOMAIN_DELAYS = {
    "api.exchangerate-api.com": 2.0,
}


class RetryProgressDisplay:
    """Progress display for retry attempts."""

    def __init__(self, service_name: str, max_retries: int):
        self.service_name = service_name
        self.max_retries = max_retries

    def show_retry_attempt(self, attempt: int, delay: float, error_msg: str = ""):
        progress = f"[{attempt}/{self.max_retries}]"
        error_preview = f": {error_msg[:50]}" if error_msg else ""
        print_warning(f"Error in {self.service_name} (attempt {progress}){error_preview}")
        print_info(f"Retrying in {delay:.1f}s...")

    def show_final_failure(self):
        print_error(f"{self.service_name} failed after {self.max_retries} retries")

    def show_success_after_retry(self, attempt: int):
        print_info(f"{self.service_name} succeeded on attempt {attempt}")


def smart_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    domain_delay: Optional[str] = None,
    service_name: str = "API call",
):
    """
    Retry decorator with exponential backoff, jitter, and domain-specific delays.

    Rate limits (HTTP 429) and transport errors (connection, timeout, SSL) are
    retried. Other HTTP errors and programming errors propagate immediately.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Whether to add random jitter to delays
        domain_delay: Domain key for domain-specific delay lookup
        service_name: Human-readable service name for progress display
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            progress = RetryProgressDisplay(service_name, max_retries)
            for attempt in range(max_retries + 1):  # +1 for initial attempt
                try:
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        progress.show_success_after_retry(attempt + 1)
                    return result

                except requests.exceptions.HTTPError as e:
                    rate_limited = e.response is not None and e.response.status_code == 429
                    if not rate_limited:
                        raise
                    if attempt >= max_retries:
                        progress.show_final_failure()
                        raise
                    delay = calculate_retry_delay(
                        attempt, base_delay, max_delay, exponential_base, jitter, domain_delay
                    )
                    progress.show_retry_attempt(attempt + 1, delay, "Rate limited")
                    time.sleep(delay)

                except (
                    requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                    requests.exceptions.SSLError,
                ) as e:
                    if attempt >= max_retries:
                        progress.show_final_failure()
                        raise
                    delay = calculate_retry_delay(
                        attempt, base_delay, max_delay, exponential_base, jitter, domain_delay
                    )
                    progress.show_retry_attempt(attempt + 1, delay, type(e).__name__)
                    time.sleep(delay)

        return wrapper

    return decorator


def calculate_retry_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
    domain_delay: Optional[str],
) -> float:
    """Calculate retry delay with exponential backoff and jitter."""
    if domain_delay and domain_delay in DOMAIN_DELAYS:
        base_delay = max(base_delay, DOMAIN_DELAYS[domain_delay])

    delay = min(base_delay * (exponential_base**attempt), max_delay)

    # Add jitter to prevent thundering herd
    if jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(delay, 0.1)  # Minimum 0.1 second delay


exchange_rate_retry = smart_retry(
    max_retries=2,
    base_delay=1.0,
    max_delay=8.0,
    domain_delay="api.exchangerate-api.com",
    service_name="Exchange rate API",
)
