"""Stub script provider for testing."""

import asyncio

from ugc_engine.adapters.script.base import ScriptProvider
from ugc_engine.domain.models import ParsedBrief, Script
from ugc_engine.errors import ErrorKind, ScriptError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CALL_TO_ACTION = "Download the app today!"
TOKENS_PER_SCRIPT = 150


class StubScriptProvider(ScriptProvider):
    """Stub provider that builds scripts from the brief without external calls."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay

    @property
    def name(self) -> str:
        return "stub"

    async def generate_scripts(
        self,
        brief: ParsedBrief,
        count: int,
        variation_index: int = 0,
    ) -> list[Script]:
        if count < 1:
            raise ScriptError(self.name, "count must be at least 1", ErrorKind.MALFORMED_INPUT)

        logger.info(
            "stub_script_generation_started",
            hook=brief.hook[:80],
            count=count,
            variation_index=variation_index,
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        body = " ".join(brief.testimonial_points) or brief.hook
        scripts = []
        for offset in range(count):
            variation = variation_index + offset + 1
            hook = f"{brief.hook} - Variation {variation}"
            if brief.variation_intent:
                hook = f"{hook} ({brief.variation_intent})"
            scripts.append(
                Script(
                    hook=hook,
                    testimonial_script=body,
                    call_to_action=DEFAULT_CALL_TO_ACTION,
                    provider=self.name,
                    tokens_used=TOKENS_PER_SCRIPT,
                )
            )
        return scripts
