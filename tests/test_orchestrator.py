"""Tests for the stage driver."""

import asyncio
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import pytest

from ugc_engine.adapters.avatar.stub import StubAvatarProvider
from ugc_engine.adapters.script.stub import StubScriptProvider
from ugc_engine.adapters.storage.local import LocalStorageProvider
from ugc_engine.domain.enums import STAGE_ORDER, GenerationStatus, ServiceCategory
from ugc_engine.domain.models import Script
from ugc_engine.errors import AvatarError, ErrorKind
from ugc_engine.services.orchestrator import StageDriver

S = GenerationStatus

# script 150 tokens + 30s stub avatar + flat composition; storage rounds to zero
ITEM_COST = Decimal("1.524500")


def transient() -> AvatarError:
    return AvatarError("stub", "upstream unavailable", ErrorKind.TRANSIENT)


class CountingScriptProvider(StubScriptProvider):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    async def generate_scripts(self, brief, count, variation_index=0):
        self.calls += 1
        return await super().generate_scripts(brief, count, variation_index)


def start(service, brief, count):
    return service.start_batch(brief.id, count, enqueue=False)


class TestRunBatch:
    @pytest.mark.asyncio
    async def test_all_items_complete(self, service, parsed_brief, storage) -> None:
        batch = start(service, parsed_brief, 3)

        result = await service.run_batch(batch.id)

        assert result.status is S.COMPLETED
        assert result.progress.completed == 3
        for item in result.items:
            assert item.status is S.COMPLETED
            assert item.video_url == f"http://media.test/generations/{batch.id}/{item.id}.mp4"
            assert item.storage_key == f"generations/{batch.id}/{item.id}.mp4"
            assert storage.path_for(item.storage_key).exists()
            assert item.total_cost == ITEM_COST
            assert item.providers == {"script": "stub", "avatar": "stub", "composition": "stub"}
        assert result.total_cost == ITEM_COST * 3

    @pytest.mark.asyncio
    async def test_scripts_differ_per_item(self, service, parsed_brief) -> None:
        batch = start(service, parsed_brief, 3)

        result = await service.run_batch(batch.id)

        hooks = [item.script.hook for item in result.items]
        assert len(set(hooks)) == 3
        assert hooks[2].endswith("Variation 3")

    @pytest.mark.asyncio
    async def test_one_ledger_entry_per_billable_stage(self, service, parsed_brief) -> None:
        batch = start(service, parsed_brief, 1)

        result = await service.run_batch(batch.id)

        entries = service.ledger.entries_for_item(result.items[0].id)
        assert sorted(str(e.category) for e in entries) == [
            "avatar",
            "composition",
            "script",
            "storage",
        ]
        assert "fetch_clips" not in {e.operation for e in entries}

    @pytest.mark.asyncio
    async def test_transitions_follow_stage_order(
        self, service, parsed_brief, monkeypatch
    ) -> None:
        batch = start(service, parsed_brief, 3)
        seen: dict = {}
        original = service.store.transition

        def recording(item_id, target, **fields):
            seen.setdefault(item_id, []).append(target)
            return original(item_id, target, **fields)

        monkeypatch.setattr(service.store, "transition", recording)

        await service.run_batch(batch.id)

        assert len(seen) == 3
        for targets in seen.values():
            assert targets == list(STAGE_ORDER[1:])

    @pytest.mark.asyncio
    async def test_avatar_failure_isolated_to_item(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        avatar = scripted_avatar(
            [AvatarError("stub", "rejected by safety filter", ErrorKind.CONTENT_POLICY)],
            match="Variation 3",
        )
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 5)

        result = await service.run_batch(batch.id)

        assert result.status is S.COMPLETED
        assert result.progress.completed == 4
        assert result.progress.failed == 1

        failed = result.items[2]
        assert failed.status is S.FAILED
        assert failed.error_stage is S.AVATAR_GEN
        assert "rejected by safety filter" in failed.error_message
        assert failed.script is not None
        assert failed.total_cost == Decimal("0.004500")

        assert result.total_cost == sum(item.total_cost for item in result.items)

    @pytest.mark.asyncio
    async def test_unparsed_brief_fails_batch(self, service) -> None:
        brief = service.create_brief("Bedtime stories kids love.")
        batch = service.store.create_batch(brief.id, 2)

        result = await service.run_batch(batch.id)

        assert result.status is S.FAILED
        assert "has not been parsed" in result.error_message
        assert all(item.status is S.FAILED for item in result.items)
        assert result.total_cost == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_fails_only_that_item(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        avatar = scripted_avatar([RuntimeError("driver bug")], match="Variation 2")
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 3)

        result = await service.run_batch(batch.id)

        assert [item.status for item in result.items] == [S.COMPLETED, S.FAILED, S.COMPLETED]
        assert result.items[1].error_message == "Internal error: driver bug"

    @pytest.mark.asyncio
    async def test_fanout_is_bounded(self, make_service, parsed_brief) -> None:
        class SlowAvatar(StubAvatarProvider):
            active = 0
            peak = 0

            async def generate_avatar(self, script):
                SlowAvatar.active += 1
                SlowAvatar.peak = max(SlowAvatar.peak, SlowAvatar.active)
                await asyncio.sleep(0.01)
                SlowAvatar.active -= 1
                return await super().generate_avatar(script)

        service = make_service(avatar=SlowAvatar())
        batch = start(service, parsed_brief, 5)

        result = await service.run_batch(batch.id)

        assert result.progress.completed == 5
        assert SlowAvatar.peak == service.config.batch_fanout_limit

    @pytest.mark.asyncio
    async def test_status_while_items_wait_for_fanout(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        seen: list[tuple[S, list[S]]] = []
        holder: dict = {}

        def poll(script) -> None:
            snapshot = holder["service"].get_batch(holder["batch_id"])
            seen.append((snapshot.status, [item.status for item in snapshot.items]))

        service = make_service(avatar=scripted_avatar(on_call=poll))
        service.driver.fanout_limit = 1
        batch = start(service, parsed_brief, 3)
        holder.update(service=service, batch_id=batch.id)

        result = await service.run_batch(batch.id)

        assert result.status is S.COMPLETED
        assert seen[1][1] == [S.COMPLETED, S.AVATAR_GEN, S.PENDING]
        assert [status for status, _ in seen] == [S.AVATAR_GEN] * 3


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_twice_then_success(
        self, make_service, parsed_brief, scripted_avatar, sleeps
    ) -> None:
        avatar = scripted_avatar([transient(), transient()])
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 1)

        result = await service.run_batch(batch.id)

        item = result.items[0]
        assert item.status is S.COMPLETED
        assert len(avatar.calls) == 3
        assert sleeps == [1.0, 2.0]
        avatar_entries = [
            e
            for e in service.ledger.entries_for_item(item.id)
            if e.category is ServiceCategory.AVATAR
        ]
        assert len(avatar_entries) == 1

    @pytest.mark.asyncio
    async def test_retry_exhaustion_fails_item(
        self, make_service, parsed_brief, scripted_avatar, sleeps
    ) -> None:
        avatar = scripted_avatar([transient(), transient(), transient()])
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 1)

        result = await service.run_batch(batch.id)

        item = result.items[0]
        assert item.status is S.FAILED
        assert item.error_stage is S.AVATAR_GEN
        assert item.error_message.startswith("Gave up after 3 attempts")
        assert sleeps == [1.0, 2.0]
        assert item.total_cost == Decimal("0.004500")

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(
        self, make_service, parsed_brief, scripted_avatar, sleeps
    ) -> None:
        avatar = scripted_avatar([AvatarError("stub", "bad script", ErrorKind.MALFORMED_INPUT)])
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 1)

        await service.run_batch(batch.id)

        assert len(avatar.calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_billable_failure_is_recorded(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        error = AvatarError(
            "stub",
            "no video returned",
            ErrorKind.CONTENT_POLICY,
            billable_units=8.0,
        )
        service = make_service(avatar=scripted_avatar([error]))
        batch = start(service, parsed_brief, 1)

        result = await service.run_batch(batch.id)

        item = result.items[0]
        assert item.status is S.FAILED
        operations = [e.operation for e in service.ledger.entries_for_item(item.id)]
        assert operations == ["generate_scripts", "generate_avatar_failed"]
        assert item.total_cost == Decimal("0.404500")

    @pytest.mark.asyncio
    async def test_provider_deadline(self, service, parsed_brief, gateway, retry_policy, sleeps) -> None:
        config = service.config.model_copy(update={"provider_timeout_seconds": 0.01})
        driver = StageDriver(
            service.store,
            replace(gateway, avatar=StubAvatarProvider(delay=1.0)),
            retry=retry_policy,
            config=config,
        )
        batch = start(service, parsed_brief, 1)

        result = await driver.run_batch(batch.id)

        item = result.items[0]
        assert item.status is S.FAILED
        assert item.error_stage is S.AVATAR_GEN
        assert "exceeded" in item.error_message
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_upload_error_not_retried(
        self, make_service, parsed_brief, tmp_path: Path, sleeps
    ) -> None:
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("")
        service = make_service(storage=LocalStorageProvider(root=blocker, base_url="http://x"))
        batch = start(service, parsed_brief, 1)

        result = await service.run_batch(batch.id)

        item = result.items[0]
        assert item.status is S.FAILED
        assert item.error_stage is S.UPLOADING
        assert item.video_url is None
        assert sleeps == []


class TestIdempotency:
    @pytest.mark.asyncio
    async def test_replaying_completed_item_is_noop(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        avatar = scripted_avatar()
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 2)
        first = await service.run_batch(batch.id)
        entries_before = len(service.ledger.entries_for_item(first.items[0].id))

        item = await service.driver.advance_item(first.items[0].id)
        second = await service.run_batch(batch.id)

        assert item.status is S.COMPLETED
        assert len(avatar.calls) == 2
        assert len(service.ledger.entries_for_item(item.id)) == entries_before
        assert second.total_cost == first.total_cost

    @pytest.mark.asyncio
    async def test_persisted_stage_output_is_reused(self, make_service, parsed_brief) -> None:
        script_provider = CountingScriptProvider()
        service = make_service(script=script_provider)
        batch = start(service, parsed_brief, 1)
        item_id = batch.items[0].id
        saved = Script(
            hook="Saved before the crash",
            testimonial_script="My kids sleep better now.",
            call_to_action="Try it tonight",
            provider="stub",
        )
        service.store.transition(item_id, S.QUEUED)
        service.store.transition(item_id, S.SCRIPT_GEN)
        service.store.save_stage_output(item_id, S.SCRIPT_GEN, script_data=saved.to_dict())

        item = await service.driver.advance_item(item_id)

        assert item.status is S.COMPLETED
        assert item.script.hook == "Saved before the crash"
        assert script_provider.calls == 0

    @pytest.mark.asyncio
    async def test_resume_without_media_fails_at_stage(self, service, parsed_brief) -> None:
        batch = start(service, parsed_brief, 1)
        item_id = batch.items[0].id
        for target in (S.QUEUED, S.SCRIPT_GEN, S.AVATAR_GEN):
            service.store.transition(item_id, target)
        service.store.save_stage_output(
            item_id,
            S.AVATAR_GEN,
            avatar_data={"id": "avatar-lost", "duration_seconds": 30.0, "provider": "stub"},
        )
        service.store.transition(item_id, S.VIDEO_GEN)

        item = await service.driver.advance_item(item_id)

        assert item.status is S.FAILED
        assert item.error_stage is S.COMPOSITING
        assert "no media" in item.error_message


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_mid_flight_keeps_billed_cost(
        self, make_service, parsed_brief, scripted_avatar
    ) -> None:
        holder: dict = {}

        def cancel_once(script) -> None:
            if not holder.get("cancelled"):
                holder["cancelled"] = True
                holder["service"].cancel_batch(holder["batch_id"])

        avatar = scripted_avatar(on_call=cancel_once)
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 2)
        holder.update(service=service, batch_id=batch.id)

        result = await service.run_batch(batch.id)

        assert result.cancelled_at is not None
        assert all(item.status is S.FAILED for item in result.items)
        assert all(item.error_message == "Cancelled" for item in result.items)
        assert all(item.video_url is None for item in result.items)
        assert len(avatar.calls) == 1
        billed = [item for item in result.items if item.total_cost > 0]
        assert len(billed) == 1
        assert billed[0].total_cost == Decimal("1.504500")
        assert billed[0].avatar is None
        assert result.total_cost == Decimal("1.504500")

    @pytest.mark.asyncio
    async def test_cancelled_batch_does_not_run(self, make_service, parsed_brief, scripted_avatar) -> None:
        avatar = scripted_avatar()
        service = make_service(avatar=avatar)
        batch = start(service, parsed_brief, 2)
        service.cancel_batch(batch.id)

        result = await service.run_batch(batch.id)

        assert avatar.calls == []
        assert result.total_cost == 0
