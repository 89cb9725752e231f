"""Stage driver: moves items through the generation pipeline.

Each item advances one stage at a time:

    PENDING -> QUEUED -> SCRIPT_GEN -> AVATAR_GEN -> VIDEO_GEN
            -> COMPOSITING -> UPLOADING -> COMPLETED

with FAILED reachable from any non-terminal stage. For every working stage
the driver calls the bound provider through the retry policy, persists the
output, appends the ledger entry, then writes the transition. Siblings in a
batch run concurrently up to the fan-out limit and never fail each other.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import UUID

from ugc_engine.adapters.gateway import ProviderGateway
from ugc_engine.adapters.storage.base import object_key
from ugc_engine.config import Settings, get_settings
from ugc_engine.domain.enums import GenerationStatus, ServiceCategory, UnitType
from ugc_engine.domain.models import (
    AvatarClip,
    Batch,
    ComposedMedia,
    Item,
    ParsedBrief,
)
from ugc_engine.errors import (
    AppError,
    AvatarError,
    BRollError,
    CompositionError,
    ErrorKind,
    NotFoundError,
    ProviderError,
    ScriptError,
    UploadError,
    ValidationError,
)
from ugc_engine.logging import bound_context, get_logger
from ugc_engine.services.cost_ledger import CostLedger
from ugc_engine.services.pricing import PriceList
from ugc_engine.services.retry import RetryPolicy
from ugc_engine.services.store import GenerationStore

logger = get_logger(__name__)

T = TypeVar("T")

BILLED_UNIT_TYPES = {
    ServiceCategory.SCRIPT: UnitType.TOKENS,
    ServiceCategory.AVATAR: UnitType.SECONDS,
    ServiceCategory.COMPOSITION: UnitType.REQUESTS,
    ServiceCategory.STORAGE: UnitType.BYTES,
}


class StageDriver:
    """Advances items and batches through the stage sequence."""

    def __init__(
        self,
        store: GenerationStore,
        gateway: ProviderGateway,
        ledger: CostLedger | None = None,
        retry: RetryPolicy | None = None,
        prices: PriceList | None = None,
        config: Settings | None = None,
    ) -> None:
        config = config or get_settings()
        self.store = store
        self.gateway = gateway
        self.ledger = ledger or store.ledger
        self.retry = retry or RetryPolicy.from_settings(config)
        self.prices = prices or PriceList(config)
        self.fanout_limit = max(1, config.batch_fanout_limit)
        self.call_timeout = config.provider_timeout_seconds

        self._handlers: dict[GenerationStatus, Callable[..., Awaitable[Item | None]]] = {
            GenerationStatus.SCRIPT_GEN: self._generate_script,
            GenerationStatus.AVATAR_GEN: self._generate_avatar,
            GenerationStatus.VIDEO_GEN: self._fetch_supporting_clips,
            GenerationStatus.COMPOSITING: self._compose,
            GenerationStatus.UPLOADING: self._upload,
        }

    # -- batches --------------------------------------------------------

    async def run_batch(self, batch_id: UUID) -> Batch:
        """Advance every unfinished item of a batch to a terminal state."""
        batch = self.store.get_batch(batch_id)

        with bound_context(batch_id=str(batch_id)):
            brief = self._batch_brief(batch)
            if brief is None:
                return self.store.get_batch(batch_id)

            open_items = [item.id for item in batch.items if not item.status.is_terminal]
            logger.info(
                "batch_run_started",
                items=len(open_items),
                fanout_limit=self.fanout_limit,
            )

            semaphore = asyncio.Semaphore(self.fanout_limit)

            async def advance_bounded(item_id: UUID) -> None:
                async with semaphore:
                    try:
                        await self.advance_item(item_id, brief)
                    except Exception as e:
                        logger.exception("item_crashed", item_id=str(item_id), error=str(e))
                        self.store.fail_item(item_id, f"Internal error: {e}")

            await asyncio.gather(*(advance_bounded(item_id) for item_id in open_items))

            result = self.store.get_batch(batch_id)
            logger.info(
                "batch_run_finished",
                status=str(result.status),
                completed=result.progress.completed,
                failed=result.progress.failed,
                total_cost=str(result.total_cost),
            )
            return result

    def cancel_batch(self, batch_id: UUID) -> Batch:
        """Fail all unfinished items. Calls already in flight finish and are billed."""
        return self.store.cancel_batch(batch_id)

    def _batch_brief(self, batch: Batch) -> ParsedBrief | None:
        """Resolve the brief a batch runs against, failing the batch if it is unusable."""
        try:
            brief = self.store.get_brief(batch.brief_id)
        except NotFoundError as e:
            self.store.fail_batch(batch.id, e.message)
            return None

        if not brief.is_parsed or brief.parsed is None:
            self.store.fail_batch(batch.id, f"Brief {brief.id} has not been parsed")
            return None

        if batch.variation_intent:
            return brief.parsed.with_variation(batch.variation_intent)
        return brief.parsed

    # -- items ----------------------------------------------------------

    async def advance_item(self, item_id: UUID, brief: ParsedBrief | None = None) -> Item:
        """Drive one item until it is COMPLETED or FAILED.

        A terminal item is returned unchanged. A stage whose output is
        already stored is not re-run.
        """
        item = self.store.get_item(item_id)
        if item.status.is_terminal:
            logger.debug("item_already_terminal", item_id=str(item_id), status=str(item.status))
            return item

        if brief is None:
            brief = self._item_brief(item)

        # Media bytes from this run; only their durable handles are stored
        media: dict[str, Any] = {}

        with bound_context(item_id=str(item_id), batch_id=str(item.batch_id)):
            current: Item | None = item
            while current is not None and not current.status.is_terminal:
                stage = current.status
                try:
                    current = await self._step(current, brief, media)
                except AppError as e:
                    logger.warning(
                        "item_failed",
                        stage=str(stage),
                        error_code=e.code,
                        error=str(e),
                    )
                    current = self.store.fail_item(item_id, str(e))

            if current is None:
                logger.info("item_result_discarded")
                return self.store.get_item(item_id)

            if current.status is GenerationStatus.COMPLETED:
                logger.info("item_completed", video_url=current.video_url)
            return self.store.get_item(item_id)

    def _item_brief(self, item: Item) -> ParsedBrief:
        batch = self.store.get_batch(item.batch_id)
        brief = self.store.get_brief(batch.brief_id)
        if not brief.is_parsed or brief.parsed is None:
            raise ValidationError(f"Brief {brief.id} has not been parsed")
        if batch.variation_intent:
            return brief.parsed.with_variation(batch.variation_intent)
        return brief.parsed

    async def _step(self, item: Item, brief: ParsedBrief, media: dict[str, Any]) -> Item | None:
        stage = item.status
        if stage in (GenerationStatus.PENDING, GenerationStatus.QUEUED):
            return self.store.transition(item.id, stage.next_stage())

        if not self._has_output(item, stage):
            logger.info("stage_started", stage=str(stage))
            updated = await self._handlers[stage](item, brief, media)
            if updated is None:
                return None
            item = updated
        else:
            logger.info("stage_output_reused", stage=str(stage))

        return self.store.transition(item.id, stage.next_stage())

    @staticmethod
    def _has_output(item: Item, stage: GenerationStatus) -> bool:
        if stage is GenerationStatus.SCRIPT_GEN:
            return item.script is not None
        if stage is GenerationStatus.AVATAR_GEN:
            return item.avatar is not None
        if stage is GenerationStatus.VIDEO_GEN:
            return item.broll_clips is not None
        if stage is GenerationStatus.COMPOSITING:
            return item.composed is not None
        return item.video_url is not None

    # -- provider calls -------------------------------------------------

    async def _call(
        self,
        item: Item,
        operation: str,
        provider: str,
        error_cls: type[ProviderError],
        factory: Callable[[], Awaitable[T]],
        category: ServiceCategory | None = None,
    ) -> T:
        """One provider operation under the per-call deadline and retry policy."""

        async def attempt() -> T:
            try:
                async with asyncio.timeout(self.call_timeout):
                    return await factory()
            except TimeoutError as e:
                raise error_cls(
                    provider,
                    f"{operation} exceeded {self.call_timeout}s",
                    ErrorKind.TIMEOUT,
                ) from e
            except ProviderError as e:
                if category is not None and e.billable_units:
                    self._record_billed_failure(item, category, operation, e)
                raise

        return await self.retry.run(attempt, operation_name=operation, item_id=str(item.id))

    def _record_billed_failure(
        self,
        item: Item,
        category: ServiceCategory,
        operation: str,
        error: ProviderError,
    ) -> None:
        units = float(error.billable_units or 0)
        self.ledger.record(
            item.id,
            category,
            provider=error.provider,
            operation=f"{operation}_failed",
            input_units=0,
            output_units=units,
            unit_type=BILLED_UNIT_TYPES[category],
            cost=self.prices.for_units(category, error.provider, units),
            batch_id=item.batch_id,
        )

    # -- stage handlers -------------------------------------------------

    async def _generate_script(
        self, item: Item, brief: ParsedBrief, media: dict[str, Any]
    ) -> Item | None:
        provider = self.gateway.script
        scripts = await self._call(
            item,
            "generate_scripts",
            provider.name,
            ScriptError,
            lambda: provider.generate_scripts(brief, 1, item.variation_index),
            category=ServiceCategory.SCRIPT,
        )
        if not scripts:
            raise ScriptError(provider.name, "Provider returned no script", ErrorKind.GENERATION_FAILED)
        script = scripts[0]

        saved = self.store.save_stage_output(
            item.id,
            GenerationStatus.SCRIPT_GEN,
            script_data=script.to_dict(),
            script_provider=script.provider,
        )
        self.ledger.record(
            item.id,
            ServiceCategory.SCRIPT,
            provider=script.provider,
            operation="generate_scripts",
            input_units=script.tokens_used,
            output_units=1,
            unit_type=UnitType.TOKENS,
            cost=self.prices.script(script.tokens_used),
            batch_id=item.batch_id,
        )
        return saved

    async def _generate_avatar(
        self, item: Item, brief: ParsedBrief, media: dict[str, Any]
    ) -> Item | None:
        if item.script is None:
            raise AvatarError(self.gateway.avatar.name, "Item has no script", ErrorKind.MALFORMED_INPUT)

        provider = self.gateway.avatar
        script = item.script
        clip: AvatarClip = await self._call(
            item,
            "generate_avatar",
            provider.name,
            AvatarError,
            lambda: provider.generate_avatar(script),
            category=ServiceCategory.AVATAR,
        )
        media["avatar"] = clip

        saved = self.store.save_stage_output(
            item.id,
            GenerationStatus.AVATAR_GEN,
            avatar_data=clip.to_record(),
            avatar_provider=clip.provider,
            duration_seconds=clip.duration_seconds,
        )
        self.ledger.record(
            item.id,
            ServiceCategory.AVATAR,
            provider=clip.provider,
            operation="generate_avatar",
            input_units=clip.character_count,
            output_units=clip.duration_seconds,
            unit_type=UnitType.SECONDS,
            cost=self.prices.avatar(clip.provider, clip.duration_seconds),
            batch_id=item.batch_id,
        )
        return saved

    async def _fetch_supporting_clips(
        self, item: Item, brief: ParsedBrief, media: dict[str, Any]
    ) -> Item | None:
        provider = self.gateway.broll
        clips = await self._call(
            item,
            "fetch_clips",
            provider.name,
            BRollError,
            lambda: provider.fetch_clips(brief.broll_tags),
        )
        return self.store.save_stage_output(
            item.id,
            GenerationStatus.VIDEO_GEN,
            broll_data=[clip.to_dict() for clip in clips],
        )

    async def _compose(
        self, item: Item, brief: ParsedBrief, media: dict[str, Any]
    ) -> Item | None:
        provider = self.gateway.composition
        avatar = media.get("avatar") or item.avatar
        if avatar is None:
            raise CompositionError(provider.name, "Item has no avatar clip", ErrorKind.MALFORMED_INPUT)
        clips = item.broll_clips or []

        composed: ComposedMedia = await self._call(
            item,
            "compose",
            provider.name,
            CompositionError,
            lambda: provider.compose(avatar, clips),
            category=ServiceCategory.COMPOSITION,
        )
        media["composed"] = composed

        saved = self.store.save_stage_output(
            item.id,
            GenerationStatus.COMPOSITING,
            composed_data=composed.to_record(),
            composition_provider=composed.provider,
            duration_seconds=composed.duration_seconds,
        )
        self.ledger.record(
            item.id,
            ServiceCategory.COMPOSITION,
            provider=composed.provider,
            operation="compose",
            input_units=1 + len(clips),
            output_units=composed.duration_seconds,
            unit_type=UnitType.REQUESTS,
            cost=self.prices.composition(),
            batch_id=item.batch_id,
        )
        return saved

    async def _upload(
        self, item: Item, brief: ParsedBrief, media: dict[str, Any]
    ) -> Item | None:
        storage = self.gateway.storage
        key = object_key(item.batch_id, item.id)
        composed: ComposedMedia | None = media.get("composed")
        if composed is None or composed.data is None:
            raise UploadError("Composed media for this item is no longer available", key=key)

        data = composed.data
        try:
            async with asyncio.timeout(self.call_timeout):
                url = await storage.upload(data, key)
        except TimeoutError as e:
            raise UploadError(f"Upload exceeded {self.call_timeout}s", key=key) from e

        saved = self.store.save_stage_output(
            item.id,
            GenerationStatus.UPLOADING,
            video_url=url,
            storage_key=key,
        )
        self.ledger.record(
            item.id,
            ServiceCategory.STORAGE,
            provider=storage.name,
            operation="upload",
            input_units=len(data),
            output_units=len(data),
            unit_type=UnitType.BYTES,
            cost=self.prices.storage(len(data)),
            batch_id=item.batch_id,
        )
        return saved
