"""
QPaperHub Backend — Drive Object Store Unit Tests
===================================================

What:  Tests for DriveObjectStore and its CircuitBreaker.
How:   The Drive API resource is replaced by a MagicMock (no network, no
       credentials needed); tenacity's wait is set to wait_none().

Test Strategy:
    ✅ Upload, publish and delete issue the expected Drive calls
    ✅ Transient errors (503, timeouts) are retried; permanent ones are not
    ✅ A 404 on delete counts as already deleted
    ✅ Circuit breaker opens after repeated failures and rejects calls
    ✅ Circuit breaker half-open → closed recovery, one trial call at a time
"""

from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError
from tenacity import wait_none

from app.config import Settings
from app.exceptions import CircuitBreakerOpenError, UpstreamServiceError
from app.services.drive_service import CircuitBreaker, DriveObjectStore, is_transient_error


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"drive error")


@pytest.fixture
def drive_settings():
    return Settings(
        object_store_backend="drive",
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_refresh_token="refresh-token",
        drive_folder_id="folder-123",
        retry_max_attempts=3,
        cb_failure_threshold=2,
        cb_recovery_timeout=60,
    )


@pytest.fixture
def drive_api():
    """Stand-in for the googleapiclient Drive v3 resource."""
    api = MagicMock()
    api.files.return_value.create.return_value.execute.return_value = {
        "id": "file-abc",
        "webViewLink": "https://drive.google.com/file/d/file-abc/view",
    }
    return api


@pytest.fixture
def store(drive_settings, drive_api):
    drive_store = DriveObjectStore(drive_settings)
    drive_store.retry_wait = wait_none()
    with patch.object(drive_store, "_build_service", return_value=drive_api):
        yield drive_store


class TestTransientClassification:

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert is_transient_error(http_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_permanent_statuses(self, status):
        assert is_transient_error(http_error(status)) is False

    def test_network_errors_are_transient(self):
        assert is_transient_error(TimeoutError()) is True
        assert is_transient_error(ConnectionResetError()) is True

    def test_programming_errors_are_not(self):
        assert is_transient_error(ValueError("bad")) is False


class TestDriveOperations:

    @pytest.mark.asyncio
    async def test_store_uploads_into_folder(self, store, drive_api):
        stored = await store.store(b"%PDF-1.4", "finals.pdf", "application/pdf")

        assert stored.object_id == "file-abc"
        assert stored.public_url == "https://drive.google.com/file/d/file-abc/view"
        kwargs = drive_api.files.return_value.create.call_args.kwargs
        assert kwargs["body"] == {"name": "finals.pdf", "parents": ["folder-123"]}
        assert kwargs["media_body"].mimetype() == "application/pdf"

    @pytest.mark.asyncio
    async def test_store_without_link_falls_back_to_view_url(self, store, drive_api):
        drive_api.files.return_value.create.return_value.execute.return_value = {"id": "xyz"}

        stored = await store.store(b"data", "a.png", "image/png")

        assert stored.public_url == "https://drive.google.com/file/d/xyz/view"

    @pytest.mark.asyncio
    async def test_store_without_id_is_upstream_error(self, store, drive_api):
        drive_api.files.return_value.create.return_value.execute.return_value = {}

        with pytest.raises(UpstreamServiceError):
            await store.store(b"data", "a.png", "image/png")

    @pytest.mark.asyncio
    async def test_make_public_grants_anyone_reader(self, store, drive_api):
        await store.make_public("file-abc")

        drive_api.permissions.return_value.create.assert_called_once_with(
            fileId="file-abc",
            body={"role": "reader", "type": "anyone"},
        )

    @pytest.mark.asyncio
    async def test_delete_calls_drive(self, store, drive_api):
        await store.delete("file-abc")

        drive_api.files.return_value.delete.assert_called_once_with(fileId="file-abc")

    @pytest.mark.asyncio
    async def test_delete_of_missing_file_is_noop(self, store, drive_api):
        drive_api.files.return_value.delete.return_value.execute.side_effect = http_error(404)

        await store.delete("gone")

        assert store.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_health_check_true_when_drive_answers(self, store):
        assert await store.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_false_on_error(self, store, drive_api):
        drive_api.files.return_value.list.return_value.execute.side_effect = http_error(401)

        assert await store.health_check() is False


class TestRetries:

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, store, drive_api):
        execute = drive_api.files.return_value.create.return_value.execute
        execute.side_effect = [http_error(503), {"id": "file-abc", "webViewLink": "link"}]

        stored = await store.store(b"data", "a.pdf", "application/pdf")

        assert stored.object_id == "file-abc"
        assert execute.call_count == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted_raise_upstream_error(self, store, drive_api):
        execute = drive_api.files.return_value.create.return_value.execute
        execute.side_effect = TimeoutError("read timed out")

        with pytest.raises(UpstreamServiceError):
            await store.store(b"data", "a.pdf", "application/pdf")

        assert execute.call_count == 3

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, store, drive_api):
        execute = drive_api.permissions.return_value.create.return_value.execute
        execute.side_effect = http_error(403)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await store.make_public("file-abc")

        assert execute.call_count == 1
        assert exc_info.value.context["status"] == 403


class TestCircuitBreakerIntegration:

    @pytest.mark.asyncio
    async def test_circuit_opens_after_threshold(self, store, drive_api):
        execute = drive_api.permissions.return_value.create.return_value.execute
        execute.side_effect = http_error(403)

        for _ in range(2):
            with pytest.raises(UpstreamServiceError):
                await store.make_public("file-abc")

        assert store.status() == "circuit_open"

        with pytest.raises(CircuitBreakerOpenError):
            await store.make_public("file-abc")
        assert execute.call_count == 2

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, store, drive_api):
        execute = drive_api.permissions.return_value.create.return_value.execute
        execute.side_effect = [http_error(403), None]

        with pytest.raises(UpstreamServiceError):
            await store.make_public("file-abc")
        await store.make_public("file-abc")

        assert store.circuit_breaker.failure_count == 0
        assert store.status() == "available"


class TestCircuitBreaker:

    def test_starts_closed(self):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        assert breaker.state == CircuitBreaker.CLOSED
        assert breaker.can_execute() is True

    def test_opens_at_threshold(self):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitBreaker.CLOSED

        breaker.record_failure()
        assert breaker.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            breaker.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        breaker.record_failure()
        assert breaker.state == CircuitBreaker.OPEN

        assert breaker.can_execute() is True
        assert breaker.state == CircuitBreaker.HALF_OPEN

    def test_half_open_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        breaker.record_failure()
        breaker.can_execute()

        breaker.record_success()

        assert breaker.state == CircuitBreaker.CLOSED
        assert breaker.failure_count == 0

    def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=0)
        for _ in range(5):
            breaker.record_failure()
        breaker.can_execute()
        assert breaker.state == CircuitBreaker.HALF_OPEN

        breaker.record_failure()

        assert breaker.state == CircuitBreaker.OPEN

    def test_half_open_admits_single_trial(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=30)
        breaker.record_failure()
        breaker.last_failure_time -= 31

        assert breaker.can_execute() is True
        with pytest.raises(CircuitBreakerOpenError):
            breaker.can_execute()

        breaker.record_success()
        assert breaker.can_execute() is True

    def test_stale_trial_is_replaced(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=30)
        breaker.record_failure()
        breaker.last_failure_time -= 31
        breaker.can_execute()

        # Trial never reported back
        breaker.trial_started_at -= 31

        assert breaker.can_execute() is True
        assert breaker.state == CircuitBreaker.HALF_OPEN
