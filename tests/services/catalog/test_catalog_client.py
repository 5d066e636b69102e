"""
Tests for CatalogClient

HTTP calls are served by an httpx.MockTransport.
"""

import json

import httpx
import pytest

from src.core.config import Settings
from src.flow.exceptions import CollaboratorError
from src.models.schemas.catalog import FlowFile
from src.services.catalog import CatalogClient


@pytest.fixture
def catalog_settings():
    return Settings(CATALOG_API_URL="http://catalog.test/api", CATALOG_API_KEY="secret")


def make_client(catalog_settings, handler):
    return CatalogClient(catalog_settings, transport=httpx.MockTransport(handler))


class TestCatalogClient:
    """Test suite for the catalog/persistence HTTP client."""

    async def test_list_catalog_files(self, catalog_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["api_key"] = request.headers.get("X-API-KEY")
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "files": [
                        {"name": "CJI3.json", "path": "/targets/CJI3.json", "isDirectory": False},
                        {"name": "old", "path": "/targets/old", "isDirectory": True},
                    ],
                },
            )

        async with make_client(catalog_settings, handler) as client:
            listing = await client.list_catalog_files()

        assert seen == {"path": "/api/list-targets", "api_key": "secret"}
        assert listing.status
        assert [f.is_directory for f in listing.files] == [False, True]

    async def test_read_catalog_file_posts_path(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert json.loads(request.content) == {"filePath": "/targets/CJI3.json"}
            return httpx.Response(200, json={"status": True, "content": "{}"})

        async with make_client(catalog_settings, handler) as client:
            response = await client.read_catalog_file("/targets/CJI3.json")

        assert response.status
        assert response.content == "{}"

    async def test_http_error_status_becomes_failed_response(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        async with make_client(catalog_settings, handler) as client:
            listing = await client.list_catalog_files()

        assert not listing.status
        assert listing.message == "HTTP 503"

    async def test_transport_error_becomes_failed_response(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(catalog_settings, handler) as client:
            response = await client.read_catalog_file("/targets/CJI3.json")

        assert not response.status
        assert "connection refused" in response.message

    async def test_persist(self, catalog_settings):
        uploaded = {}

        def handler(request: httpx.Request) -> httpx.Response:
            uploaded.update(json.loads(request.content))
            return httpx.Response(200, json={"status": True})

        flow = FlowFile(name="CJI3_flow.json", path="/flows/CJI3_flow.json", content="{}")
        async with make_client(catalog_settings, handler) as client:
            assert await client.persist(flow)

        assert uploaded == {"name": "CJI3_flow.json", "path": "/flows/CJI3_flow.json", "content": "{}"}

    async def test_persist_rejected(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        flow = FlowFile(name="f.json", path="/flows/f.json", content="{}")
        async with make_client(catalog_settings, handler) as client:
            assert not await client.persist(flow)

    async def test_persist_transport_error_raises(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        flow = FlowFile(name="f.json", path="/flows/f.json", content="{}")
        async with make_client(catalog_settings, handler) as client:
            with pytest.raises(CollaboratorError):
                await client.persist(flow)

    async def test_off_contract_listing_becomes_failed_response(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "files": []})

        async with make_client(catalog_settings, handler) as client:
            listing = await client.list_catalog_files()

        assert not listing.status
        assert listing.message.startswith("unexpected response")

    async def test_off_contract_file_response_becomes_failed_response(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["not", "an", "object"])

        async with make_client(catalog_settings, handler) as client:
            response = await client.read_catalog_file("/targets/CJI3.json")

        assert not response.status
        assert response.content is None

    async def test_persist_non_object_response_raises(self, catalog_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1])

        flow = FlowFile(name="f.json", path="/flows/f.json", content="{}")
        async with make_client(catalog_settings, handler) as client:
            with pytest.raises(CollaboratorError):
                await client.persist(flow)
