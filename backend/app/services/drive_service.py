"""
QPaperHub Backend — Google Drive Object Store
===============================================

What:  ObjectStore implementation backed by Google Drive v3.
How:   google-api-python-client with OAuth2 refresh-token credentials. The
       client library is blocking, so every request runs in a worker thread
       (asyncio.to_thread) with its own HTTP object and socket timeout.
Who:   Constructed once by the application lifespan; used by PaperService.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
       (HTTP 429/5xx, timeouts, connection resets, token refresh transport errors)
    2. Circuit breaker: after N consecutive failed operations, reject calls
       immediately for M seconds, then let one trial call through
    3. Per-request socket timeout (DRIVE_REQUEST_TIMEOUT)
    4. Every failure surfaces as UpstreamServiceError (or CircuitBreakerOpenError)

Drive calls made per upload:
    files.create       (name, optional parent folder, media; fields=id,webViewLink)
    permissions.create (role=reader, type=anyone)
"""

import asyncio
import io
import logging
import time
import uuid
from typing import Any, Callable, Optional

import google_auth_httplib2
import httplib2
from google.auth.exceptions import TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings
from app.exceptions import CircuitBreakerOpenError, UpstreamServiceError
from app.services.object_store import ObjectStore, StoredObject

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]

TRANSIENT_HTTP_STATUSES = {408, 429, 500, 502, 503, 504}


def is_transient_error(exc: BaseException) -> bool:
    """True for failures worth retrying: throttling, server errors, network trouble."""
    if isinstance(exc, HttpError):
        return exc.resp.status in TRANSIENT_HTTP_STATUSES
    return isinstance(
        exc,
        (TimeoutError, ConnectionError, httplib2.HttpLib2Error, TransportError),
    )


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding calls to an upstream service.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow one trial request through; others are rejected until it settles
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe: state is only touched from the event loop thread.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        # Start of the HALF_OPEN trial call; None when no trial is running
        self.trial_started_at: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Returns:
            True if the request can proceed (CLOSED, or the single trial call
            once OPEN has passed its timeout).

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't
            elapsed, or if HALF_OPEN and the trial call is still running.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                self.trial_started_at = time.time()
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        # A trial that never reported back (cancelled) expires after recovery_timeout
        now = time.time()
        if self.trial_started_at is not None and now - self.trial_started_at < self.recovery_timeout:
            raise CircuitBreakerOpenError(recovery_time=1)
        self.trial_started_at = now
        return True

    def record_success(self) -> None:
        self.trial_started_at = None
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.trial_started_at = None
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Drive Object Store
# ══════════════════════════════════════════════════════════════════════════

class DriveObjectStore(ObjectStore):
    """
    Google Drive implementation of ObjectStore.

    Error Handling Chain:
        API call fails → tenacity retries transient errors
        → retries exhausted or permanent error → record circuit breaker failure
        → UpstreamServiceError to the caller
        → threshold reached → later calls rejected with CircuitBreakerOpenError
    """

    backend_name = "drive"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.credentials = Credentials(
            token=None,
            refresh_token=settings.google_refresh_token or None,
            client_id=settings.google_client_id or None,
            client_secret=settings.google_client_secret or None,
            token_uri=settings.google_token_uri,
            scopes=DRIVE_SCOPES,
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        self.retry_wait = wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        )

        logger.info(
            "DriveObjectStore initialized (folder=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds))",
            settings.drive_folder_id or "<root>",
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    # ── ObjectStore API ───────────────────────────────────────────────────

    async def store(self, content: bytes, filename: str, mime_type: str) -> StoredObject:
        metadata = {"name": filename}
        if self.settings.drive_folder_id:
            metadata["parents"] = [self.settings.drive_folder_id]

        def upload(service):
            media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
            return service.files().create(
                body=metadata,
                media_body=media,
                fields="id, webViewLink",
            ).execute()

        response = await self._call("upload", upload)
        object_id = response.get("id") if response else None
        if not object_id:
            self.circuit_breaker.record_failure()
            raise UpstreamServiceError(
                message="Google Drive did not return a file id for the upload.",
                context={"filename": filename},
            )

        link = response.get("webViewLink") or f"https://drive.google.com/file/d/{object_id}/view"
        logger.info("Uploaded %s to Drive as %s (%d bytes)", filename, object_id, len(content))
        return StoredObject(object_id=object_id, public_url=link)

    async def make_public(self, object_id: str) -> None:
        await self._call(
            "make public",
            lambda service: service.permissions().create(
                fileId=object_id,
                body={"role": "reader", "type": "anyone"},
            ).execute(),
        )

    async def delete(self, object_id: str) -> None:
        await self._call(
            "delete",
            lambda service: service.files().delete(fileId=object_id).execute(),
            missing_ok=True,
        )
        logger.info("Deleted Drive file %s", object_id)

    async def health_check(self) -> bool:
        """List one file; True if Drive answered."""
        try:
            await asyncio.to_thread(
                self._execute,
                lambda service: service.files().list(pageSize=1, fields="files(id)").execute(),
            )
            return True
        except Exception as e:
            logger.warning("Google Drive health check failed: %s", str(e))
            return False

    def status(self) -> str:
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available"

    # ── Internals ─────────────────────────────────────────────────────────

    def _build_service(self):
        """Drive API resource bound to a fresh HTTP connection (one per call)."""
        http = google_auth_httplib2.AuthorizedHttp(
            self.credentials,
            http=httplib2.Http(timeout=self.settings.drive_request_timeout),
        )
        return build("drive", "v3", http=http, cache_discovery=False)

    def _execute(self, request: Callable[[Any], Any]) -> Any:
        return request(self._build_service())

    async def _call(
        self,
        operation: str,
        request: Callable[[Any], Any],
        missing_ok: bool = False,
    ) -> Any:
        """
        Run one Drive request through the circuit breaker and retry policy.

        Args:
            operation:  Label for logs ("upload", "delete", ...)
            request:    Callable receiving the Drive service resource
            missing_ok: Treat HTTP 404 as success (returns None)
        """
        call_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        start_time = time.time()
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(is_transient_error),
                stop=stop_after_attempt(self.settings.retry_max_attempts),
                wait=self.retry_wait,
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    result = await asyncio.to_thread(self._execute, request)

        except HttpError as e:
            if missing_ok and e.resp.status == 404:
                self.circuit_breaker.record_success()
                logger.info("[%s] Drive %s: object already absent", call_id, operation)
                return None
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Drive %s failed with HTTP %s: %s",
                call_id, operation, e.resp.status, str(e),
            )
            raise UpstreamServiceError(
                message=f"Google Drive {operation} failed. Please try again later.",
                context={"call_id": call_id, "status": e.resp.status},
            )
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Drive %s failed: %s",
                call_id, operation, str(e),
                exc_info=not is_transient_error(e),
            )
            raise UpstreamServiceError(
                message=f"Google Drive {operation} failed. Please try again later.",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        logger.debug(
            "[%s] Drive %s completed in %.0fms",
            call_id, operation, (time.time() - start_time) * 1000,
        )
        return result
