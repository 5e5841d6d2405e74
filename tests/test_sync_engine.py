"""
Tests for the session sync engine.

Uses the in-memory gateway with short debounce windows so timer behaviour
can be observed with real sleeps.
"""

import asyncio
import re
import random

import pytest
from unittest.mock import AsyncMock

from pawsitive.config import settings
from pawsitive.core.day_log import task_id
from pawsitive.core.errors import ErrorKind, StoreError
from pawsitive.core.session_codes import create_unique_session
from pawsitive.core.sync_engine import SyncEngine, SyncStatus
from pawsitive.models import ActivityType, DogConfig
from pawsitive.services.summary import FAILURE_MESSAGE, DailySummaryService
from pawsitive.storage import InMemoryGateway, SessionStore, sanitize

from .conftest import make_payload, seed_session

DEBOUNCE = 0.02
SETTLE = 0.1


class CountingGateway(InMemoryGateway):
    """In-memory gateway recording every merged write."""

    def __init__(self):
        super().__init__()
        self.merged_writes = []

    async def set_merged(self, session_id, partial):
        self.merged_writes.append((session_id, partial))
        await super().set_merged(session_id, partial)


class BlockingGateway(CountingGateway):
    """Merged writes wait until the test releases them."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def set_merged(self, session_id, partial):
        await self.release.wait()
        await super().set_merged(session_id, partial)


class FailingGateway(CountingGateway):
    """Merged writes are recorded, then rejected."""

    async def set_merged(self, session_id, partial):
        self.merged_writes.append((session_id, partial))
        raise StoreError("write rejected", session_id=session_id)


class DeniedGateway(InMemoryGateway):
    """Every subscription is refused by the store's access rules."""

    def subscribe(self, session_id, on_change, on_error):
        asyncio.get_running_loop().call_soon(on_error, ErrorKind.PERMISSION_DENIED)
        return lambda: None


def make_engine(gateway, session_id="SARAH-42", **kwargs):
    kwargs.setdefault("debounce_seconds", DEBOUNCE)
    kwargs.setdefault("notice_seconds", 10)
    return SyncEngine(gateway, session_id, **kwargs)


def feeding_key(date_str="2024-01-31", dog="Biscuit", slot="morning"):
    return task_id(date_str, slot, dog, ActivityType.FEEDING)


class TestLoading:
    """Tests for the initial subscription."""

    @pytest.mark.asyncio
    async def test_loads_existing_session(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        assert engine.status == SyncStatus.LOADING

        await engine.wait_ready()
        assert engine.status == SyncStatus.SYNCED
        assert engine.state.id == "SARAH-42"
        await engine.stop()

    @pytest.mark.asyncio
    async def test_first_load_is_not_saved_back(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            await asyncio.sleep(SETTLE)
        assert gateway.merged_writes == []

    @pytest.mark.asyncio
    async def test_missing_session_is_not_found(self):
        async with make_engine(InMemoryGateway()) as engine:
            await engine.wait_ready()
            assert engine.status == SyncStatus.NOT_FOUND
            assert engine.state is None

    @pytest.mark.asyncio
    async def test_permission_denied_is_errored(self):
        async with make_engine(DeniedGateway()) as engine:
            await engine.wait_ready()
            assert engine.status == SyncStatus.ERRORED
            assert engine.error_kind == ErrorKind.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_malformed_document_is_errored(self):
        gateway = InMemoryGateway()
        await gateway.set("SARAH-42", {"id": "SARAH-42", "startDate": "not a date", "dogs": []})
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            assert engine.status == SyncStatus.ERRORED
            assert engine.error_kind == ErrorKind.UNKNOWN

    def test_timings_default_to_settings(self):
        engine = SyncEngine(InMemoryGateway(), "SARAH-42")
        assert engine.debounce_seconds == settings.sync_debounce_seconds
        assert engine.notice_seconds == settings.sync_notice_seconds

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self):
        gateway = InMemoryGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            with pytest.raises(RuntimeError):
                await engine.start()


class TestLocalEdits:
    """Tests for debounced persistence of local edits."""

    @pytest.mark.asyncio
    async def test_edit_is_visible_immediately_and_saved_once(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            key = feeding_key()
            engine.toggle_task("2024-01-31", key)
            assert engine.current_log("2024-01-31").tasks[key] is True
            assert engine.save_pending

            await asyncio.sleep(SETTLE)
            assert len(gateway.merged_writes) == 1
            assert engine.status == SyncStatus.SYNCED

        stored = await gateway.get_once("SARAH-42")
        assert stored["logs"]["2024-01-31"]["tasks"][key] is True
        assert key in stored["logs"]["2024-01-31"]["taskTimestamps"]

    @pytest.mark.asyncio
    async def test_burst_of_edits_collapses_into_one_save(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway, debounce_seconds=0.05) as engine:
            await engine.wait_ready()
            engine.set_comment("2024-01-31", "Biscuit", "A")
            await asyncio.sleep(0.02)
            engine.set_comment("2024-01-31", "Biscuit", "AB")
            await asyncio.sleep(0.02)
            engine.set_comment("2024-01-31", "Biscuit", "ABC")
            await asyncio.sleep(0.2)

        assert len(gateway.merged_writes) == 1
        _, written = gateway.merged_writes[0]
        assert written["logs"]["2024-01-31"]["comments"] == {"Biscuit": "ABC"}

    @pytest.mark.asyncio
    async def test_saved_echo_is_not_written_again(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            engine.toggle_task("2024-01-31", feeding_key())
            await asyncio.sleep(SETTLE)
            await asyncio.sleep(SETTLE)
            assert len(gateway.merged_writes) == 1
            assert engine.update_notice is False

    @pytest.mark.asyncio
    async def test_status_is_saving_while_write_in_flight(self):
        gateway = BlockingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            engine.toggle_task("2024-01-31", feeding_key())
            await asyncio.sleep(SETTLE)
            assert engine.status == SyncStatus.SAVING
            assert engine.is_saving

            gateway.release.set()
            await engine.wait_idle()
            assert engine.status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_edit_during_save_survives_its_echo(self):
        gateway = BlockingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            key = feeding_key()
            engine.toggle_task("2024-01-31", key)
            await asyncio.sleep(SETTLE)
            assert engine.status == SyncStatus.SAVING

            engine.set_comment("2024-01-31", "Biscuit", "Napping now")
            gateway.release.set()
            await asyncio.sleep(SETTLE)
            await engine.wait_idle()

            log = engine.current_log("2024-01-31")
            assert log.comments == {"Biscuit": "Napping now"}
            assert log.tasks[key] is True
            assert engine.update_notice is False

        assert len(gateway.merged_writes) == 2
        stored = await gateway.get_once("SARAH-42")
        assert stored["logs"]["2024-01-31"]["comments"] == {"Biscuit": "Napping now"}
        assert stored["logs"]["2024-01-31"]["tasks"][key] is True

    @pytest.mark.asyncio
    async def test_failed_save_keeps_local_state(self):
        gateway = FailingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            key = feeding_key()
            engine.toggle_task("2024-01-31", key)
            await asyncio.sleep(SETTLE)

            assert engine.status == SyncStatus.SYNCED
            assert engine.current_log("2024-01-31").tasks[key] is True

            engine.set_comment("2024-01-31", "Biscuit", "retry")
            await asyncio.sleep(SETTLE)
            assert len(gateway.merged_writes) == 2
            _, retried = gateway.merged_writes[-1]
            assert retried["logs"]["2024-01-31"]["tasks"][key] is True

    @pytest.mark.asyncio
    async def test_complete_all_in_slot_uses_session_dogs(self):
        gateway = CountingGateway()
        await seed_session(gateway, dogs=[DogConfig(name="Biscuit"), DogConfig(name="Mochi", color="pink")])
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            log = engine.complete_all_in_slot("2024-01-31", "late_morning")
            assert set(log.tasks) == {
                task_id("2024-01-31", "late_morning", "Biscuit", ActivityType.BATHROOM),
                task_id("2024-01-31", "late_morning", "Mochi", ActivityType.BATHROOM),
            }

    @pytest.mark.asyncio
    async def test_photos_capped_through_engine(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            engine.add_photos("2024-01-31", [f"data:image/jpeg;base64,{i}" for i in range(8)])
            assert len(engine.current_log("2024-01-31").photos) == 6
            engine.remove_photo("2024-01-31", 0)
            assert len(engine.current_log("2024-01-31").photos) == 5

    @pytest.mark.asyncio
    async def test_edit_before_load_rejected(self):
        engine = make_engine(InMemoryGateway())
        with pytest.raises(RuntimeError):
            engine.toggle_task("2024-01-31", feeding_key())

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_break_edits(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()

            def broken(_engine):
                raise ValueError("view crashed")

            engine.add_listener(broken)
            engine.toggle_task("2024-01-31", feeding_key())
            await asyncio.sleep(SETTLE)
            assert len(gateway.merged_writes) == 1


class TestRemoteUpdates:
    """Tests for snapshots written by another client."""

    @pytest.mark.asyncio
    async def test_remote_change_applied_without_save(self):
        gateway = CountingGateway()
        session = await seed_session(gateway)
        async with make_engine(gateway, notice_seconds=0.05) as engine:
            await engine.wait_ready()

            document = sanitize(session)
            document["logs"] = {"2024-01-31": {"date": "2024-01-31", "comments": {"Biscuit": "From owner"}}}
            await gateway.set("SARAH-42", document)
            await asyncio.sleep(0.01)

            assert engine.current_log("2024-01-31").comments == {"Biscuit": "From owner"}
            assert engine.update_notice is True

            await asyncio.sleep(SETTLE)
            assert engine.update_notice is False
            assert gateway.merged_writes == []

    @pytest.mark.asyncio
    async def test_identical_snapshot_is_ignored(self):
        gateway = CountingGateway()
        session = await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            calls = []
            engine.add_listener(lambda e: calls.append(e.snapshot()))

            await gateway.set("SARAH-42", sanitize(session))
            await asyncio.sleep(0.01)

            assert calls == []
            assert engine.update_notice is False
            assert not engine.save_pending

    @pytest.mark.asyncio
    async def test_local_edit_after_remote_update_is_saved(self):
        gateway = CountingGateway()
        session = await seed_session(gateway)
        async with make_engine(gateway, debounce_seconds=0.05) as engine:
            await engine.wait_ready()

            document = sanitize(session)
            document["sitterName"] = "Sarah J"
            await gateway.set("SARAH-42", document)
            await asyncio.sleep(0.01)

            engine.toggle_task("2024-01-31", feeding_key())
            await asyncio.sleep(0.2)

            assert len(gateway.merged_writes) == 1
            _, written = gateway.merged_writes[0]
            assert written["sitterName"] == "Sarah J"

    @pytest.mark.asyncio
    async def test_remote_delete_ends_session(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            await gateway.delete("SARAH-42")
            await asyncio.sleep(0.01)

            assert engine.status == SyncStatus.NOT_FOUND
            with pytest.raises(RuntimeError):
                engine.toggle_task("2024-01-31", feeding_key())

    @pytest.mark.asyncio
    async def test_delete_cancels_pending_save(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        async with make_engine(gateway, debounce_seconds=0.05) as engine:
            await engine.wait_ready()
            engine.toggle_task("2024-01-31", feeding_key())
            await gateway.delete("SARAH-42")
            await asyncio.sleep(0.2)

        assert gateway.merged_writes == []
        assert await gateway.get_once("SARAH-42") is None

    @pytest.mark.asyncio
    async def test_sitter_edit_reaches_owner(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        sitter = make_engine(gateway)
        owner = make_engine(gateway)
        async with sitter, owner:
            await sitter.wait_ready()
            await owner.wait_ready()

            key = feeding_key()
            sitter.toggle_task("2024-01-31", key)
            await asyncio.sleep(SETTLE)
            await asyncio.sleep(SETTLE)

            assert owner.current_log("2024-01-31").tasks[key] is True
            assert owner.update_notice is True
            assert sitter.update_notice is False
            assert len(gateway.merged_writes) == 1


class TestTeardown:
    """Tests for stopping the engine."""

    @pytest.mark.asyncio
    async def test_stop_unsubscribes_once(self):
        gateway = InMemoryGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()
        assert gateway.subscriber_count("SARAH-42") == 1

        await engine.stop()
        await engine.stop()
        assert gateway.subscriber_count("SARAH-42") == 0

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_save(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()
        engine.toggle_task("2024-01-31", feeding_key())
        await engine.stop()

        await asyncio.sleep(SETTLE)
        assert gateway.merged_writes == []
        assert not engine.save_pending

    @pytest.mark.asyncio
    async def test_events_after_stop_are_dropped(self):
        gateway = InMemoryGateway()
        session = await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()
        await engine.stop()

        document = sanitize(session)
        document["sitterName"] = "Someone else"
        await gateway.set("SARAH-42", document)
        await asyncio.sleep(0.01)
        assert engine.state.sitter_name == "Sarah"

    @pytest.mark.asyncio
    async def test_in_flight_save_completes_after_stop(self):
        gateway = BlockingGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()
        key = feeding_key()
        engine.toggle_task("2024-01-31", key)
        await asyncio.sleep(SETTLE)
        await engine.stop()

        gateway.release.set()
        await engine.wait_idle()
        stored = await gateway.get_once("SARAH-42")
        assert stored["logs"]["2024-01-31"]["tasks"][key] is True

    @pytest.mark.asyncio
    async def test_delete_session_removes_document_and_stops(self):
        gateway = InMemoryGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()

        await engine.delete_session()
        assert await gateway.get_once("SARAH-42") is None
        assert gateway.subscriber_count("SARAH-42") == 0


class TestSummary:
    """Tests for storing generated summaries."""

    @pytest.mark.asyncio
    async def test_generated_summary_is_stored_and_saved(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        summarizer = AsyncMock()
        summarizer.generate.return_value = "Biscuit had a great day."
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            text = await engine.generate_summary("2024-01-31", summarizer)
            assert text == "Biscuit had a great day."
            assert engine.current_log("2024-01-31").ai_summary == text
            await asyncio.sleep(SETTLE)

        assert len(gateway.merged_writes) == 1
        summarizer.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_message_is_stored_like_any_summary(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        provider = AsyncMock()
        provider.complete.side_effect = RuntimeError("quota exceeded")
        async with make_engine(gateway) as engine:
            await engine.wait_ready()
            text = await engine.generate_summary("2024-01-31", DailySummaryService(provider))
            assert text == FAILURE_MESSAGE
            await asyncio.sleep(SETTLE)

        stored = await gateway.get_once("SARAH-42")
        assert stored["logs"]["2024-01-31"]["aiSummary"] == FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_summary_dropped_after_stop(self):
        gateway = CountingGateway()
        await seed_session(gateway)
        engine = make_engine(gateway)
        await engine.start()
        await engine.wait_ready()

        async def slow_generate(session, log):
            await engine.stop()
            return "too late"

        summarizer = AsyncMock()
        summarizer.generate.side_effect = slow_generate
        assert await engine.generate_summary("2024-01-31", summarizer) is None
        assert engine.current_log("2024-01-31").ai_summary is None


@pytest.mark.asyncio
async def test_sitter_day_end_to_end():
    """Create a session, tick off the first morning and see it stored."""
    gateway = CountingGateway()
    store = SessionStore(gateway)
    session_id = await create_unique_session(store, "Sarah", make_payload(), rng=random.Random(3))
    assert re.fullmatch(r"SARAH-\d{2}", session_id)

    async with make_engine(gateway, session_id) as engine:
        await engine.wait_ready()
        day0 = engine.current_date(0)
        assert day0 == "2024-01-31"
        assert engine.current_date(1) == "2024-02-01"

        key = feeding_key(day0)
        engine.toggle_task(day0, key)
        assert key in engine.current_log(day0).task_timestamps
        engine.toggle_task(day0, key)
        assert engine.current_log(day0).tasks[key] is False
        assert key not in engine.current_log(day0).task_timestamps

        engine.complete_all_in_slot(day0, "morning")
        await asyncio.sleep(SETTLE)

    stored = await gateway.get_once(session_id)
    tasks = stored["logs"]["2024-01-31"]["tasks"]
    assert tasks == {
        task_id(day0, "morning", "Biscuit", ActivityType.BATHROOM): True,
        task_id(day0, "morning", "Biscuit", ActivityType.FEEDING): True,
    }
    assert set(stored["logs"]["2024-01-31"]["taskTimestamps"]) == set(tasks)
