"""Tests for domain models."""

import pytest

from ugc_engine.domain.enums import STAGE_ORDER, GenerationStatus
from ugc_engine.domain.models import (
    AvatarClip,
    BatchProgress,
    ParsedBrief,
    Persona,
    Script,
    derive_batch_status,
)

S = GenerationStatus


class TestTransitions:
    def test_stage_order(self) -> None:
        assert STAGE_ORDER == (
            S.PENDING,
            S.QUEUED,
            S.SCRIPT_GEN,
            S.AVATAR_GEN,
            S.VIDEO_GEN,
            S.COMPOSITING,
            S.UPLOADING,
            S.COMPLETED,
        )

    @pytest.mark.parametrize("status", STAGE_ORDER[:-1])
    def test_only_next_stage_or_failed(self, status: GenerationStatus) -> None:
        allowed = {s for s in GenerationStatus if status.can_transition_to(s)}
        assert allowed == {status.next_stage(), S.FAILED}

    @pytest.mark.parametrize("status", [S.COMPLETED, S.FAILED])
    def test_terminal_states_are_final(self, status: GenerationStatus) -> None:
        assert status.is_terminal
        assert not any(status.can_transition_to(s) for s in GenerationStatus)

    def test_skipping_is_illegal(self) -> None:
        assert not S.QUEUED.can_transition_to(S.AVATAR_GEN)
        assert not S.UPLOADING.can_transition_to(S.PENDING)

    def test_failed_has_no_rank(self) -> None:
        with pytest.raises(ValueError):
            _ = S.FAILED.rank

    def test_completed_has_no_next_stage(self) -> None:
        with pytest.raises(ValueError):
            S.COMPLETED.next_stage()


class TestDeriveBatchStatus:
    def test_no_items_is_pending(self) -> None:
        assert derive_batch_status([]) is S.PENDING

    def test_all_pending(self) -> None:
        assert derive_batch_status([S.PENDING, S.PENDING]) is S.PENDING

    def test_lowest_in_flight_stage(self) -> None:
        statuses = [S.COMPLETED, S.AVATAR_GEN, S.UPLOADING, S.FAILED]
        assert derive_batch_status(statuses) is S.AVATAR_GEN

    def test_waiting_items_do_not_hold_started_batch_at_pending(self) -> None:
        statuses = [S.COMPLETED, S.AVATAR_GEN, S.PENDING]
        assert derive_batch_status(statuses) is S.AVATAR_GEN

    def test_only_waiting_and_finished_items_is_queued(self) -> None:
        assert derive_batch_status([S.COMPLETED, S.PENDING]) is S.QUEUED
        assert derive_batch_status([S.FAILED, S.PENDING, S.PENDING]) is S.QUEUED

    def test_all_terminal_is_completed(self) -> None:
        assert derive_batch_status([S.COMPLETED, S.FAILED, S.FAILED]) is S.COMPLETED

    def test_all_failed_is_still_completed(self) -> None:
        assert derive_batch_status([S.FAILED, S.FAILED]) is S.COMPLETED

    def test_batch_fault_wins(self) -> None:
        assert derive_batch_status([S.COMPLETED], batch_fault=True) is S.FAILED

    def test_accepts_raw_values(self) -> None:
        assert derive_batch_status(["script_gen", "completed"]) is S.SCRIPT_GEN


def test_batch_progress_counts() -> None:
    progress = BatchProgress.from_statuses(
        [S.PENDING, S.QUEUED, S.COMPOSITING, S.COMPLETED, S.FAILED, S.COMPLETED]
    )

    assert progress.total == 6
    assert progress.completed == 2
    assert progress.failed == 1
    assert progress.in_progress == 2
    assert progress.pending == 1


def test_parsed_brief_dict_round_trip() -> None:
    brief = ParsedBrief(
        hook="Bedtime made easy",
        persona=Persona(type="mother", demographic="female"),
        emotion="joy",
        broll_tags=["child-sleeping"],
        testimonial_points=["My kids fall asleep faster"],
    )

    restored = ParsedBrief.from_dict(brief.to_dict())

    assert restored == brief
    assert restored.persona.type == "mother"


def test_parsed_brief_with_variation_copies() -> None:
    brief = ParsedBrief(hook="Bedtime made easy")

    varied = brief.with_variation("make it funnier")

    assert varied.variation_intent == "make it funnier"
    assert brief.variation_intent is None


def test_avatar_record_excludes_media_bytes() -> None:
    clip = AvatarClip(duration_seconds=8.0, provider="veo", data=b"bytes", media_url="https://x/y.mp4")

    record = clip.to_record()

    assert "data" not in record
    restored = AvatarClip.from_record(record)
    assert restored.data is None
    assert restored.media_url == "https://x/y.mp4"
    assert restored.id == clip.id


def test_script_ids_are_unique() -> None:
    a = Script(hook="h", testimonial_script="t", call_to_action="c", provider="stub")
    b = Script(hook="h", testimonial_script="t", call_to_action="c", provider="stub")
    assert a.id != b.id
