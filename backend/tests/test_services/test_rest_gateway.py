"""Tests for the Supabase/PostgREST gateway against a mocked transport."""
import asyncio
import json

import httpx
import pytest

from corpus_admin.errors import GatewayError
from corpus_admin.services.chunk_manager import ChunkManager
from corpus_admin.services.gateway import NEWEST_FIRST
from corpus_admin.services.rest_gateway import RestGateway

BASE_URL = "https://project.supabase.co"


def _gateway(handler):
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return RestGateway(BASE_URL + "/", "anon-key", client=client), seen


class TestTables:
    def test_select_builds_postgrest_query(self):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json=[{"id": 1}]))
        rows = asyncio.run(
            gateway.select("chunks", embed=("sources",), filters={"source_id": 7}, order=NEWEST_FIRST)
        )
        assert rows == [{"id": 1}]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/chunks"
        assert request.url.params["select"] == "*,sources(*)"
        assert request.url.params["source_id"] == "eq.7"
        assert request.url.params["order"] == "created_at.desc"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"

    def test_select_columns(self):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json=[]))
        asyncio.run(gateway.select("sources", columns="id, title"))
        assert seen[0].url.params["select"] == "id,title"
        assert "order" not in seen[0].url.params

    def test_select_keeps_whitespace_inside_quotes(self):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json=[]))
        asyncio.run(gateway.select("sources", columns=' id , "page title" '))
        assert seen[0].url.params["select"] == 'id,"page title"'

    def test_source_options_request_has_no_spaces(self, notifier, settings):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json=[{"id": 1, "title": "Gita"}]))
        options = asyncio.run(ChunkManager(gateway, notifier, settings).list_source_options())
        assert [o.title for o in options] == ["Gita"]
        assert seen[0].url.params["select"] == "id,title"

    def test_insert_returns_representation(self):
        gateway, seen = _gateway(
            lambda r: httpx.Response(201, json=[{"id": 5, "title": "Gita", "type": "book"}])
        )
        created = asyncio.run(gateway.insert("sources", {"title": "Gita", "type": "book"}))
        assert created["id"] == 5
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == [{"title": "Gita", "type": "book"}]

    def test_insert_without_returned_row(self):
        gateway, _ = _gateway(lambda r: httpx.Response(201, json=[]))
        with pytest.raises(GatewayError):
            asyncio.run(gateway.insert("sources", {"title": "Gita"}))

    def test_update_and_delete_match_on_id(self):
        gateway, seen = _gateway(lambda r: httpx.Response(204))
        asyncio.run(gateway.update("sources", {"title": "Gita"}, 5))
        asyncio.run(gateway.delete("sources", 5))
        patch, delete = seen
        assert patch.method == "PATCH"
        assert patch.url.params["id"] == "eq.5"
        assert json.loads(patch.content) == {"title": "Gita"}
        assert delete.method == "DELETE"
        assert delete.url.params["id"] == "eq.5"

    def test_delete_by_other_column(self):
        gateway, seen = _gateway(lambda r: httpx.Response(204))
        asyncio.run(gateway.delete("chunks", 5, column="source_id"))
        assert seen[0].url.params["source_id"] == "eq.5"
        assert "id" not in seen[0].url.params


class TestErrors:
    def test_error_body_message_is_kept(self):
        gateway, _ = _gateway(
            lambda r: httpx.Response(400, json={"message": 'null value in column "title"'})
        )
        with pytest.raises(GatewayError) as exc_info:
            asyncio.run(gateway.insert("sources", {}))
        assert exc_info.value.message == 'null value in column "title"'
        assert exc_info.value.status_code == 400

    def test_plain_text_error(self):
        gateway, _ = _gateway(lambda r: httpx.Response(503, text="upstream unavailable"))
        with pytest.raises(GatewayError, match="upstream unavailable"):
            asyncio.run(gateway.select("sources"))

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway, _ = _gateway(handler)
        with pytest.raises(GatewayError, match="connection refused"):
            asyncio.run(gateway.select("sources"))

    def test_requires_url(self):
        with pytest.raises(ValueError):
            RestGateway("", "key")


class TestStorage:
    def test_upload_does_not_upsert(self):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json={"Key": "sources-pdfs/1_a.pdf"}))
        path = asyncio.run(gateway.upload_object("sources-pdfs", "1_a.pdf", b"%PDF", "application/pdf"))
        assert path == "1_a.pdf"
        request = seen[0]
        assert request.url.path == "/storage/v1/object/sources-pdfs/1_a.pdf"
        assert request.headers["x-upsert"] == "false"
        assert request.headers["content-type"] == "application/pdf"
        assert request.content == b"%PDF"

    def test_duplicate_upload_fails(self):
        gateway, _ = _gateway(
            lambda r: httpx.Response(409, json={"error": "Duplicate", "message": "The resource already exists"})
        )
        with pytest.raises(GatewayError, match="already exists"):
            asyncio.run(gateway.upload_object("sources-pdfs", "1_a.pdf", b"x"))

    def test_public_url(self):
        gateway, _ = _gateway(lambda r: httpx.Response(200))
        assert gateway.get_public_url("sources-pdfs", "1_My_Gita.pdf") == (
            f"{BASE_URL}/storage/v1/object/public/sources-pdfs/1_My_Gita.pdf"
        )

    def test_remove_object_sends_prefixes(self):
        gateway, seen = _gateway(lambda r: httpx.Response(200, json=[]))
        asyncio.run(gateway.remove_object("sources-pdfs", "1_a.pdf"))
        request = seen[0]
        assert request.method == "DELETE"
        assert request.url.path == "/storage/v1/object/sources-pdfs"
        assert json.loads(request.content) == {"prefixes": ["1_a.pdf"]}
