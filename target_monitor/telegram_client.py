"""Telegram notification sink for hit summaries"""

import time
from collections.abc import Callable

import requests

from .constants import MAX_RETRY_ATTEMPTS, TELEGRAM_TIMEOUT
from .exceptions import NotificationError, NotificationRejected, TransientNotificationError
from .logger import logger
from .retry import is_retryable_http_status


class TelegramClient:
    """
    Posts messages to one Telegram chat.

    Timeouts, network errors, 429 and 5xx responses are retried up to
    ``max_attempts`` times, waiting ``Retry-After`` when the API sends one
    and ``2 ** attempt`` seconds otherwise. A message the API refuses
    raises NotificationRejected at once and does not count as a failed
    send. After ``max_consecutive_failures`` failed sends in a row the
    client raises instead of returning False.
    """

    API_ROOT = "https://api.telegram.org"

    # Shared session for connection pooling
    _session: requests.Session | None = None

    @classmethod
    def _get_session(cls) -> requests.Session:
        if cls._session is None:
            cls._session = requests.Session()
            adapter = requests.adapters.HTTPAdapter(pool_connections=2, pool_maxsize=5, max_retries=0)
            cls._session.mount("https://", adapter)
            logger.debug("telegram.session_created")
        return cls._session

    def __init__(
        self,
        token: str,
        chat_id: str,
        timeout: float = TELEGRAM_TIMEOUT,
        max_attempts: int = MAX_RETRY_ATTEMPTS,
        max_consecutive_failures: int = 5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.url = f"{self.API_ROOT}/bot{token}/sendMessage"
        self.chat_id = chat_id
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.max_consecutive_failures = max_consecutive_failures
        self._sleep = sleep
        self._consecutive_failures = 0
        logger.info("telegram.init", chat_id=chat_id)

    def _post_message(self, text: str, parse_mode: str):
        """One sendMessage call"""
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
        }
        try:
            r = self._get_session().post(self.url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise TransientNotificationError("Telegram request timed out", original_error=e)
        except requests.RequestException as e:
            raise TransientNotificationError("Telegram network error", original_error=e)

        if r.status_code == 429:
            retry_after = int(r.headers.get("Retry-After", 5))
            raise TransientNotificationError("Telegram rate limited", {"retry_after": retry_after})
        if is_retryable_http_status(r.status_code):
            raise TransientNotificationError("Telegram server error", {"status": r.status_code})

        try:
            body = r.json()
        except ValueError:
            body = {}
        if r.status_code != 200 or not body.get("ok"):
            raise NotificationRejected(
                "Telegram API error",
                {"status": r.status_code, "description": body.get("description")},
            )

    def send(self, text: str, parse_mode: str = "Markdown", critical: bool = False) -> bool:
        """
        Send a Telegram message.

        Args:
            text: Message text
            parse_mode: Markdown or HTML
            critical: If True, raise on failure instead of returning False

        Returns:
            True if sent, False if failed (only when critical=False)

        Raises:
            NotificationRejected: The API refused the message (bad entities, unknown chat)
            NotificationError: If send fails and critical=True, or after max consecutive failures
        """
        last_error: NotificationError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                self._post_message(text, parse_mode)
            except TransientNotificationError as e:
                last_error = e
                wait = e.context.get("retry_after") or 2 ** attempt
                logger.warning("telegram.retrying", attempt=attempt, reason=e.message, wait=wait)
                if attempt < self.max_attempts:
                    self._sleep(wait)
                continue
            except NotificationRejected as e:
                logger.error("telegram.rejected", error=str(e)[:100])
                raise

            self._consecutive_failures = 0
            logger.info("telegram.sent", chars=len(text), attempt=attempt)
            return True

        return self._record_failure(last_error, critical)

    def _record_failure(self, error: NotificationError | None, critical: bool) -> bool:
        self._consecutive_failures += 1

        if self._consecutive_failures >= self.max_consecutive_failures:
            logger.error("telegram.critical_failure",
                         consecutive_failures=self._consecutive_failures, error=str(error))
            raise NotificationError(
                "Telegram critically failed",
                {"consecutive_failures": self._consecutive_failures},
                error,
            )
        if critical:
            raise NotificationError("Failed to send critical message", original_error=error)

        logger.warning("telegram.send_failed",
                       consecutive_failures=self._consecutive_failures, error=str(error)[:100])
        return False

    def is_healthy(self) -> bool:
        """No run of failed sends long enough to trip the failure limit"""
        return self._consecutive_failures < self.max_consecutive_failures
