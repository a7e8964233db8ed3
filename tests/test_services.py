"""Tests for the polars-backed resource service and its helpers."""

import polars as pl
import pytest

from reflex_admin_grid.errors import NotFoundError, ResourceError, extract_error_message
from reflex_admin_grid.services import LazyFrameResourceService, ListParams, Pagination, options_loader


def _ids(response) -> list:
    return [row["id"] for row in response.data]


@pytest.fixture
def service(people_frame) -> LazyFrameResourceService:
    return LazyFrameResourceService(people_frame, name="users")


class TestPackageExports:
    def test_service_is_exported(self):
        """The package root imports cleanly and re-exports the service."""
        import reflex_admin_grid

        assert reflex_admin_grid.LazyFrameResourceService is LazyFrameResourceService
        assert reflex_admin_grid.ListParams is ListParams


class TestListParams:
    def test_query_uses_api_names(self):
        params = ListParams(page=2, limit=5, search="al", sort_by="name", sort_order="desc", entity_id="E1")
        assert params.to_query() == {
            "page": 2, "limit": 5, "search": "al", "sortBy": "name", "sortOrder": "desc", "entityId": "E1",
        }

    def test_sort_without_direction_is_omitted(self):
        assert ListParams(sort_by="name").to_query() == {"page": 1, "limit": 10}


class TestPagination:
    def test_from_counts(self):
        assert Pagination.from_counts(2, 4, 9).to_dict() == {
            "page": 2, "limit": 4, "total": 9, "totalPages": 3, "hasNextPage": True, "hasPreviousPage": True,
        }

    def test_empty(self):
        pagination = Pagination.from_counts(1, 10, 0)
        assert (pagination.total_pages, pagination.has_next_page, pagination.has_previous_page) == (0, False, False)


class TestList:
    @pytest.mark.asyncio
    async def test_first_page(self, service):
        response = await service.list(ListParams(limit=4))
        assert response.success is True
        assert _ids(response) == [1, 2, 3, 4]
        assert response.pagination.total == 6
        assert response.pagination.has_next_page is True
        assert response.path == "/users"

    @pytest.mark.asyncio
    async def test_last_page(self, service):
        response = await service.list(ListParams(page=2, limit=4))
        assert _ids(response) == [5, 6]
        assert response.pagination.has_next_page is False

    @pytest.mark.asyncio
    async def test_search_counts_matches_only(self, service):
        """Search is case-insensitive over every column by default."""
        response = await service.list(ListParams(search="ACME"))
        assert _ids(response) == [1, 3, 6]
        assert response.pagination.total == 3

    @pytest.mark.asyncio
    async def test_search_fields_restrict_columns(self, people_frame):
        service = LazyFrameResourceService(people_frame, name="users", search_fields=["name"])
        response = await service.list(ListParams(search="acme"))
        assert response.data == []
        assert response.pagination.total == 0

    @pytest.mark.asyncio
    async def test_entity_filter(self, service):
        response = await service.list(ListParams(entity_id="E1"))
        assert _ids(response) == [1, 3, 4]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "direction, expected",
        [("asc", [3, 5, 6, 1, 2, 4]), ("desc", [1, 6, 5, 3, 2, 4])],
    )
    async def test_sort_keeps_nulls_last(self, service, direction, expected):
        response = await service.list(ListParams(sort_by="score", sort_order=direction))
        assert _ids(response) == expected

    @pytest.mark.asyncio
    async def test_non_positive_limit(self, service):
        with pytest.raises(ResourceError) as info:
            await service.list(ListParams(limit=0))
        assert info.value.status == 400


class TestReadById:
    @pytest.mark.asyncio
    async def test_found_by_int_or_string(self, service):
        assert (await service.get_by_id(3)).data["name"] == "Charlie"
        assert (await service.get_by_id("3")).data["name"] == "Charlie"

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        with pytest.raises(NotFoundError) as info:
            await service.get_by_id(99)
        assert info.value.status == 404
        assert extract_error_message(info.value).title == "Not Found"


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_assigns_next_integer_id(self, service):
        response = await service.create({"name": "Gina", "email": "gina@acme.io", "entityId": "E2", "score": 2})
        assert response.data["id"] == 7
        listed = await service.list(ListParams(search="gina"))
        assert _ids(listed) == [7]

    @pytest.mark.asyncio
    async def test_create_string_ids_get_uuid(self):
        service = LazyFrameResourceService(pl.LazyFrame({"id": ["E1"], "name": ["Acme"]}), name="entities")
        response = await service.create({"name": "Cedar"})
        assert isinstance(response.data["id"], str)
        assert response.data["id"] != "E1"
        assert (await service.list(ListParams())).pagination.total == 2

    @pytest.mark.asyncio
    async def test_update(self, service):
        response = await service.update(2, {"score": 9, "id": 100})
        assert response.data["score"] == 9
        assert response.data["id"] == 2
        assert (await service.get_by_id(2)).data["score"] == 9

    @pytest.mark.asyncio
    async def test_update_missing(self, service):
        with pytest.raises(NotFoundError):
            await service.update(99, {"score": 1})

    @pytest.mark.asyncio
    async def test_delete(self, service):
        await service.delete(1)
        assert (await service.list(ListParams())).pagination.total == 5
        with pytest.raises(NotFoundError):
            await service.delete(1)


class TestOptionsLoader:
    @pytest.mark.asyncio
    async def test_pages_of_options(self, service):
        load = options_loader(service, label_key="name")
        page = await load(1, 4, None)
        assert [o.label for o in page.options] == ["Alice", "Bob", "Charlie", "Diana"]
        assert [o.value for o in page.options] == [1, 2, 3, 4]
        assert page.has_more is True
        assert page.total == 6

    @pytest.mark.asyncio
    async def test_extra_params_are_forwarded(self, service):
        load = options_loader(service, label_key="name", entity_id="E2")
        page = await load(1, 10, None)
        assert [o.label for o in page.options] == ["Bob", "Frank"]
        assert page.has_more is False
