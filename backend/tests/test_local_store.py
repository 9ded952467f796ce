"""
QPaperHub Backend — Local Object Store Tests
"""

import pytest

from app.exceptions import NotFoundError, ValidationError


class TestLocalObjectStore:

    @pytest.mark.asyncio
    async def test_store_writes_file_with_uuid_name(self, local_store):
        stored = await local_store.store(b"%PDF-1.4", "Finals.PDF", "application/pdf")

        assert stored.object_id.endswith(".pdf")
        assert stored.object_id != "Finals.PDF"
        assert stored.public_url == f"http://test/api/files/{stored.object_id}"
        assert local_store.resolve(stored.object_id).read_bytes() == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_make_public_is_noop(self, local_store):
        stored = await local_store.store(b"x", "a.png", "image/png")
        assert await local_store.make_public(stored.object_id) is None

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, local_store):
        stored = await local_store.store(b"x", "a.png", "image/png")

        await local_store.delete(stored.object_id)

        with pytest.raises(NotFoundError):
            local_store.resolve(stored.object_id)

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, local_store):
        await local_store.delete("does-not-exist.pdf")

    def test_resolve_rejects_traversal(self, local_store):
        with pytest.raises(ValidationError):
            local_store.resolve("../outside.pdf")

    @pytest.mark.asyncio
    async def test_health_check(self, local_store):
        assert await local_store.health_check() is True
