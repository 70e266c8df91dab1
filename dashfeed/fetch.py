"""
Download of the remote export over FTP, plus a short-lived memo of the text.
"""

from __future__ import annotations

import ftplib
import logging
import threading
import time
from typing import Callable, List, Optional

from .config import Settings
from .normalize import decode_document

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Raised when the export cannot be downloaded."""


def _missing_settings(settings: Settings) -> List[str]:
    required = {
        "DASHFEED_FTP_HOST": settings.ftp_host,
        "DASHFEED_FTP_USER": settings.ftp_user,
        "DASHFEED_FTP_PASSWORD": settings.ftp_password,
        "DASHFEED_FTP_FILE": settings.ftp_file,
    }
    return [name for name, value in required.items() if not value]


def download_bytes(settings: Settings) -> bytes:
    missing = _missing_settings(settings)
    if missing:
        raise FetchError(f"Missing environment variables: {', '.join(missing)}")

    chunks: List[bytes] = []
    try:
        with ftplib.FTP(timeout=settings.ftp_timeout) as ftp:
            ftp.connect(settings.ftp_host, settings.ftp_port)
            ftp.login(settings.ftp_user, settings.ftp_password)
            ftp.retrbinary(f"RETR {settings.ftp_file}", chunks.append)
    except ftplib.all_errors as exc:
        raise FetchError(f"Download of {settings.ftp_file} failed: {exc}") from exc

    data = b"".join(chunks)
    logger.info("Downloaded %s from %s (%d bytes)", settings.ftp_file, settings.ftp_host, len(data))
    return data


def download_text(settings: Settings) -> str:
    return decode_document(download_bytes(settings))


class DocumentCache:
    """
    Thread-safe memo of the last downloaded document.

    Concurrent callers wait for a single in-flight fetch instead of each
    opening their own FTP session. A TTL of 0 disables reuse.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._text: Optional[str] = None
        self._fetched_at = 0.0

    def get_or_fetch(self, fetch: Callable[[], str]) -> str:
        with self._lock:
            now = self._clock()
            if self._text is not None and now - self._fetched_at < self._ttl:
                logger.debug("Serving cached document (age %.1fs)", now - self._fetched_at)
                return self._text

            text = fetch()
            if self._ttl > 0:
                self._text = text
                self._fetched_at = now
            return text

    def invalidate(self) -> None:
        with self._lock:
            self._text = None
