"""
QPaperHub Backend — Subject Catalog Service Tests
"""

import pytest

from app.exceptions import NotFoundError, ValidationError
from app.services.catalog_service import CatalogService, unique_names


@pytest.fixture
def service():
    return CatalogService(program="BTech")


class TestUniqueNames:

    def test_first_occurrence_wins(self):
        assert unique_names(["DBMS", "OS", "DBMS", "CN"]) == ["DBMS", "OS", "CN"]

    def test_names_are_stripped_before_comparison(self):
        assert unique_names([" DBMS", "DBMS "]) == ["DBMS"]

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            unique_names(["DBMS", "  "])

    def test_over_long_name_rejected(self):
        with pytest.raises(ValidationError):
            unique_names(["x" * 256])


class TestCatalogService:

    @pytest.mark.asyncio
    async def test_over_long_branch_rejected(self, service, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await service.replace_subjects(db_session, "C" * 65, "5", ["OS"])

        assert exc_info.value.field == "branch"

    @pytest.mark.asyncio
    async def test_replace_then_lookup_preserves_order(self, service, db_session):
        await service.replace_subjects(db_session, "CSE", "5", ["OS", "DBMS", "CN"])

        assert await service.subjects_for(db_session, "CSE", "5") == ["OS", "DBMS", "CN"]

    @pytest.mark.asyncio
    async def test_replace_overwrites_previous_list(self, service, db_session):
        await service.replace_subjects(db_session, "CSE", "5", ["OS", "DBMS"])
        stored = await service.replace_subjects(db_session, "CSE", "5", ["CN", "OS", "CN"])

        assert stored == ["CN", "OS"]
        assert await service.subjects_for(db_session, "CSE", "5") == ["CN", "OS"]

    @pytest.mark.asyncio
    async def test_unknown_group_raises_not_found(self, service, db_session):
        with pytest.raises(NotFoundError):
            await service.subjects_for(db_session, "MECH", "1")

    @pytest.mark.asyncio
    async def test_groups_are_scoped_by_program(self, db_session):
        await CatalogService(program="MTech").replace_subjects(db_session, "CSE", "1", ["ML"])

        with pytest.raises(NotFoundError):
            await CatalogService(program="BTech").subjects_for(db_session, "CSE", "1")

    @pytest.mark.asyncio
    async def test_list_subjects_sorted_and_distinct(self, service, db_session):
        await service.replace_subjects(db_session, "CSE", "5", ["OS", "DBMS"])
        await service.replace_subjects(db_session, "IT", "5", ["DBMS", "Cloud"])

        assert await service.list_subjects(db_session) == ["Cloud", "DBMS", "OS"]

    @pytest.mark.asyncio
    async def test_list_subjects_empty(self, service, db_session):
        assert await service.list_subjects(db_session) == []
