"""Tests for the chunk manager: coercion, embedded source titles, concurrent load."""
import asyncio

import pytest

from corpus_admin.errors import FetchError, MutationError, ValidationError
from corpus_admin.schemas.common import EditorMode, LoadState
from corpus_admin.services.chunk_manager import locator
from corpus_admin.services.source_manager import UploadedFile


@pytest.fixture
def source(gateway):
    return asyncio.run(gateway.insert("sources", {"title": "Bhagavad Gita", "type": "book"}))


def _create(manager, source_id, **values):
    values.setdefault("text", "You have a right to your actions alone.")
    return asyncio.run(manager.create_chunk({"source_id": source_id, **values}))


def _raw(gateway, chunk_id):
    [row] = asyncio.run(gateway.select("chunks", filters={"id": chunk_id}))
    return row


class TestLocator:
    def test_page_wins(self):
        assert locator(12, "00:03:45") == "12"

    def test_page_zero_is_a_page(self):
        assert locator(0, "00:03:45") == "0"

    def test_timestamp_when_no_page(self):
        assert locator(None, "00:03:45") == "00:03:45"

    def test_dash_when_neither(self):
        assert locator(None, None) == "-"
        assert locator(None, "") == "-"


class TestCreate:
    def test_page_number_text_is_stored_as_integer(self, chunk_manager, gateway, source):
        created = _create(chunk_manager, source["id"], page_number="5")
        assert created.page_number == 5
        assert _raw(gateway, created.id)["page_number"] == 5

    def test_omitted_page_number_is_null(self, chunk_manager, gateway, source):
        created = _create(chunk_manager, source["id"])
        assert _raw(gateway, created.id)["page_number"] is None

    @pytest.mark.parametrize("page", ["", "  ", None])
    def test_blank_page_number_is_null(self, chunk_manager, source, page):
        assert _create(chunk_manager, source["id"], page_number=page).page_number is None

    @pytest.mark.parametrize("page", ["five", "2.5", True])
    def test_non_integer_page_number_is_rejected(self, chunk_manager, flaky, source, page):
        flaky.calls.clear()
        with pytest.raises(ValidationError, match="whole number"):
            _create(chunk_manager, source["id"], page_number=page)
        assert flaky.calls == []

    def test_blank_optional_text_is_null(self, chunk_manager, gateway, source):
        created = _create(chunk_manager, source["id"], timestamp=" ", summary="")
        row = _raw(gateway, created.id)
        assert row["timestamp"] is None
        assert row["summary"] is None

    def test_tags_are_decoded(self, chunk_manager, source):
        assert _create(chunk_manager, source["id"], tags="karma,  dharma,").tags == ["karma", "dharma"]

    @pytest.mark.parametrize(
        "values",
        [{"text": "verse"}, {"source_id": "", "text": "verse"}, {"source_id": "s1"}, {"source_id": "s1", "text": "  "}],
    )
    def test_required_fields(self, chunk_manager, flaky, values):
        with pytest.raises(ValidationError):
            asyncio.run(chunk_manager.create_chunk(values))
        assert flaky.calls == []


class TestListing:
    def test_rows_carry_source_title_and_locator(self, chunk_manager, source):
        _create(chunk_manager, source["id"], timestamp="00:03:45")
        [row] = asyncio.run(chunk_manager.list_chunks())
        assert row.source_title == "Bhagavad Gita"
        assert row.source.id == source["id"]
        assert row.locator == "00:03:45"

    def test_missing_source_shows_raw_id(self, chunk_manager, source_manager, source):
        _create(chunk_manager, source["id"], page_number=3)
        asyncio.run(source_manager.delete_source(source["id"]))
        [row] = asyncio.run(chunk_manager.list_chunks())
        assert row.source is None
        assert row.source_title == source["id"]
        assert row.locator == "3"

    def test_get_chunk(self, chunk_manager, source):
        created = _create(chunk_manager, source["id"])
        assert asyncio.run(chunk_manager.get_chunk(created.id)).source_title == "Bhagavad Gita"
        assert asyncio.run(chunk_manager.get_chunk("missing")) is None

    def test_form_values(self, chunk_manager, source):
        created = _create(chunk_manager, source["id"], page_number=7, tags="a, b")
        values = chunk_manager.form_values(created)
        assert values.source_id == source["id"]
        assert values.page_number == 7
        assert values.tags == "a, b"


class TestLoad:
    def test_loads_chunks_and_source_options(self, chunk_manager, source):
        _create(chunk_manager, source["id"])
        rows = asyncio.run(chunk_manager.load())
        assert len(rows) == 1
        assert [(o.id, o.title) for o in chunk_manager.source_options.items] == [
            (source["id"], "Bhagavad Gita")
        ]
        assert chunk_manager.state == LoadState.LOADED

    def test_fetches_run_concurrently(self, chunk_manager, flaky, source):
        in_flight = []

        async def rendezvous():
            # Each select waits until both fetches have started.
            in_flight.append(1)
            while len(in_flight) < 2:
                await asyncio.sleep(0.001)

        flaky.before_select = rendezvous

        async def run():
            return await asyncio.wait_for(chunk_manager.load(), timeout=2)

        asyncio.run(run())
        assert chunk_manager.state == LoadState.LOADED

    def test_one_failed_fetch_fails_the_load(self, chunk_manager, flaky, source):
        _create(chunk_manager, source["id"])
        flaky.fail("select:sources", "network down")
        with pytest.raises(FetchError, match="network down"):
            asyncio.run(chunk_manager.load())
        assert len(chunk_manager.items) == 1
        assert chunk_manager.state == LoadState.LOAD_FAILED
        assert chunk_manager.last_error == "network down"

    def test_idle_until_loaded(self, chunk_manager):
        assert chunk_manager.state == LoadState.IDLE
        assert chunk_manager.view_state().count == 0

    def test_teardown_cancels_both_collections(self, chunk_manager, flaky, source):
        async def scenario():
            gate = asyncio.Event()

            async def hold():
                await gate.wait()

            flaky.before_select = hold
            task = asyncio.create_task(chunk_manager.load())
            while not (chunk_manager.collection.is_loading and chunk_manager.source_options.is_loading):
                await asyncio.sleep(0)
            chunk_manager.teardown()
            gate.set()
            await task

        asyncio.run(scenario())
        assert chunk_manager.items == []
        assert chunk_manager.source_options.items == []
        assert chunk_manager.state == LoadState.IDLE


class TestMutations:
    def test_submit_in_edit_mode_updates(self, chunk_manager, gateway, source):
        created = _create(chunk_manager, source["id"], page_number=1)
        chunk_manager.open_editor(created)
        assert chunk_manager.editor.mode == EditorMode.EDIT
        asyncio.run(chunk_manager.submit({"source_id": source["id"], "page_number": "2", "text": "edited"}))
        row = _raw(gateway, created.id)
        assert row["page_number"] == 2
        assert row["text"] == "edited"
        assert not chunk_manager.editor.is_open

    def test_failed_update_keeps_editor_open(self, chunk_manager, flaky, source):
        created = _create(chunk_manager, source["id"])
        chunk_manager.open_editor(created)
        flaky.fail("update:chunks", "permission denied")
        with pytest.raises(MutationError):
            asyncio.run(chunk_manager.submit({"source_id": source["id"], "text": "edited"}))
        assert chunk_manager.editor.is_open
        assert chunk_manager.state == LoadState.EDIT_ERROR

    def test_delete(self, chunk_manager, gateway, source):
        created = _create(chunk_manager, source["id"])
        asyncio.run(chunk_manager.delete_chunk(created.id))
        assert asyncio.run(gateway.select("chunks")) == []
        assert chunk_manager.items == []

    def test_failed_delete_keeps_list(self, chunk_manager, flaky, source):
        created = _create(chunk_manager, source["id"])
        flaky.fail("delete:chunks", "permission denied")
        with pytest.raises(MutationError):
            asyncio.run(chunk_manager.delete_chunk(created.id))
        assert [c.id for c in chunk_manager.items] == [created.id]


def test_gita_walkthrough(source_manager, chunk_manager):
    source = asyncio.run(
        source_manager.create_source(
            {"title": "Bhagavad Gita", "type": "book", "language": "Hindi", "tags": "gita, scripture"},
            UploadedFile("gita.pdf", b"%PDF-1.4"),
        )
    )
    assert source.file_url.endswith("_gita.pdf")
    assert source.tags == ["gita", "scripture"]

    _create(chunk_manager, source.id, page_number="12", tags="karma")
    rows = asyncio.run(chunk_manager.load())

    [row] = rows
    assert row.page_number == 12
    assert row.locator == "12"
    assert row.source_title == "Bhagavad Gita"
    assert row.tags == ["karma"]
    assert [o.title for o in chunk_manager.source_options.items] == ["Bhagavad Gita"]
