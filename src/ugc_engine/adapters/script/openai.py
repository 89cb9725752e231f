"""OpenAI script provider implementation."""

import json
from typing import Any

import httpx

from ugc_engine.adapters.http_errors import classify_http_error
from ugc_engine.adapters.script.base import ScriptProvider
from ugc_engine.config import settings
from ugc_engine.domain.models import ParsedBrief, Script
from ugc_engine.errors import ErrorKind, ScriptError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You write short UGC-style testimonial ad scripts for vertical video.
Each script is spoken by one person directly to camera in under 30 seconds.
Respond with JSON: {"scripts": [{"hook": str, "testimonial_script": str, "call_to_action": str}]}"""


class OpenAIScriptProvider(ScriptProvider):
    """OpenAI chat completions provider for testimonial scripts."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = base_url
        self.timeout = timeout

        if not self.api_key:
            logger.warning("OpenAI API key not configured")

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    def build_prompt(self, brief: ParsedBrief, count: int, variation_index: int) -> str:
        """Render the user prompt for one request."""
        persona = brief.persona
        lines = [
            f"Write {count} distinct scripts.",
            f"Hook idea: {brief.hook}",
            f"Speaker: {persona.type}, age {persona.age}, {persona.demographic}, tone {persona.tone}",
            f"Emotional angle: {brief.emotion}",
            "Points to cover: " + "; ".join(brief.testimonial_points),
            f"These are variations #{variation_index + 1} onward; do not reuse earlier openings.",
        ]
        if brief.variation_intent:
            lines.append(f"Variation instruction: {brief.variation_intent}")
        return "\n".join(lines)

    async def generate_scripts(
        self,
        brief: ParsedBrief,
        count: int,
        variation_index: int = 0,
    ) -> list[Script]:
        """Generate scripts using the chat completions API."""
        if not self.api_key:
            raise ScriptError(self.name, "OpenAI API key not configured", ErrorKind.MALFORMED_INPUT)
        if count < 1:
            raise ScriptError(self.name, "count must be at least 1", ErrorKind.MALFORMED_INPUT)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(brief, count, variation_index)},
            ],
            "temperature": 0.9,
            "response_format": {"type": "json_object"},
        }

        logger.debug("openai_script_request", model=self.model, count=count)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            if "content_policy" in e.response.text:
                raise ScriptError(self.name, e.response.text[:500], ErrorKind.CONTENT_POLICY) from e
            raise classify_http_error(ScriptError, self.name, e) from e
        except httpx.HTTPError as e:
            raise classify_http_error(ScriptError, self.name, e) from e

        return self._parse_response(data, count)

    def _parse_response(self, data: dict[str, Any], count: int) -> list[Script]:
        choice = data["choices"][0]
        total_tokens = int(data.get("usage", {}).get("total_tokens", 0))

        if choice.get("finish_reason") == "content_filter":
            raise ScriptError(
                self.name,
                "Response blocked by content filter",
                ErrorKind.CONTENT_POLICY,
                billable_units=total_tokens,
            )

        try:
            raw_scripts = json.loads(choice["message"]["content"])["scripts"]
            scripts = [
                Script(
                    hook=s["hook"],
                    testimonial_script=s["testimonial_script"],
                    call_to_action=s["call_to_action"],
                    provider=self.name,
                )
                for s in raw_scripts[:count]
            ]
        except (KeyError, TypeError, json.JSONDecodeError) as e:
            raise ScriptError(
                self.name,
                f"Unparseable script response: {e}",
                ErrorKind.GENERATION_FAILED,
                billable_units=total_tokens,
            ) from e

        if len(scripts) < count:
            raise ScriptError(
                self.name,
                f"Expected {count} scripts, got {len(scripts)}",
                ErrorKind.GENERATION_FAILED,
                billable_units=total_tokens,
            )

        # Spread usage across the scripts so per-item cost stays attributable
        per_script = total_tokens // count
        for script in scripts:
            script.tokens_used = per_script

        logger.info("openai_script_response", model=self.model, tokens_used=total_tokens)
        return scripts

    async def health_check(self) -> bool:
        """Check if OpenAI API is accessible."""
        if not self.api_key:
            return False

        try:
            headers = {"Authorization": f"Bearer {self.api_key}"}
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"{self.base_url}/models", headers=headers)
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("openai_health_check_failed", error=str(e))
            return False
