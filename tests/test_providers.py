"""Tests for the OpenAI script and Veo avatar providers."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ugc_engine.adapters.avatar.veo import VEO_DURATION_SECONDS, VeoAvatarProvider
from ugc_engine.adapters.script.openai import OpenAIScriptProvider
from ugc_engine.domain.models import ParsedBrief, Script
from ugc_engine.errors import AvatarError, ErrorKind, ScriptError

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


@pytest.fixture
def brief() -> ParsedBrief:
    return ParsedBrief(
        hook="Bedtime went from battle to bliss",
        testimonial_points=["My kids ask for stories"],
        variation_intent="more playful",
    )


def completion(scripts: list[dict], tokens: int = 300, finish_reason: str = "stop") -> dict:
    return {
        "choices": [
            {
                "finish_reason": finish_reason,
                "message": {"content": json.dumps({"scripts": scripts})},
            }
        ],
        "usage": {"total_tokens": tokens},
    }


def response(status: int, payload: dict | None = None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", OPENAI_URL)
    if payload is not None:
        return httpx.Response(status, json=payload, request=request)
    return httpx.Response(status, text=text, request=request)


SCRIPT = {
    "hook": "I was skeptical",
    "testimonial_script": "Now bedtime takes ten minutes.",
    "call_to_action": "Try it tonight",
}


class TestOpenAIScriptProvider:
    def test_name_includes_model(self) -> None:
        assert OpenAIScriptProvider(api_key="sk-test", model="gpt-4o").name == "openai:gpt-4o"

    def test_prompt_carries_variation(self, brief: ParsedBrief) -> None:
        prompt = OpenAIScriptProvider(api_key="sk-test").build_prompt(brief, 1, 2)

        assert "Hook idea: Bedtime went from battle to bliss" in prompt
        assert "variations #3 onward" in prompt
        assert "Variation instruction: more playful" in prompt

    @pytest.mark.asyncio
    async def test_generate_scripts(self, brief: ParsedBrief) -> None:
        provider = OpenAIScriptProvider(api_key="sk-test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = response(200, completion([SCRIPT, SCRIPT], tokens=300))
            scripts = await provider.generate_scripts(brief, 2)

        assert len(scripts) == 2
        assert scripts[0].hook == "I was skeptical"
        assert all(s.tokens_used == 150 for s in scripts)
        payload = mock_post.call_args.kwargs["json"]
        assert payload["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_missing_key(self, brief: ParsedBrief) -> None:
        provider = OpenAIScriptProvider(api_key=None)
        provider.api_key = None

        with pytest.raises(ScriptError) as exc_info:
            await provider.generate_scripts(brief, 1)
        assert exc_info.value.kind is ErrorKind.MALFORMED_INPUT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "kind"),
        [(429, ErrorKind.RATE_LIMITED), (502, ErrorKind.TRANSIENT), (400, ErrorKind.MALFORMED_INPUT)],
    )
    async def test_http_errors_classified(
        self, brief: ParsedBrief, status: int, kind: ErrorKind
    ) -> None:
        provider = OpenAIScriptProvider(api_key="sk-test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = response(status, text="nope")
            with pytest.raises(ScriptError) as exc_info:
                await provider.generate_scripts(brief, 1)

        assert exc_info.value.kind is kind

    @pytest.mark.asyncio
    async def test_content_policy_rejection(self, brief: ParsedBrief) -> None:
        provider = OpenAIScriptProvider(api_key="sk-test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = response(400, text='{"error": {"code": "content_policy_violation"}}')
            with pytest.raises(ScriptError) as exc_info:
                await provider.generate_scripts(brief, 1)

        assert exc_info.value.kind is ErrorKind.CONTENT_POLICY

    @pytest.mark.asyncio
    async def test_content_filter_is_billed(self, brief: ParsedBrief) -> None:
        provider = OpenAIScriptProvider(api_key="sk-test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = response(
                200, completion([], tokens=120, finish_reason="content_filter")
            )
            with pytest.raises(ScriptError) as exc_info:
                await provider.generate_scripts(brief, 1)

        assert exc_info.value.kind is ErrorKind.CONTENT_POLICY
        assert exc_info.value.billable_units == 120

    @pytest.mark.asyncio
    async def test_short_response_is_generation_failure(self, brief: ParsedBrief) -> None:
        provider = OpenAIScriptProvider(api_key="sk-test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = response(200, completion([SCRIPT]))
            with pytest.raises(ScriptError) as exc_info:
                await provider.generate_scripts(brief, 2)

        assert exc_info.value.kind is ErrorKind.GENERATION_FAILED
        assert not exc_info.value.is_transient


def veo_operation(done: bool = True, error=None, videos=None) -> SimpleNamespace:
    return SimpleNamespace(
        done=done,
        error=error,
        response=SimpleNamespace(generated_videos=videos) if videos is not None else None,
    )


class TestVeoAvatarProvider:
    @pytest.fixture
    def script(self) -> Script:
        return Script(
            hook="I was skeptical",
            testimonial_script="Now bedtime takes ten minutes.",
            call_to_action="Try it tonight",
            provider="stub",
        )

    def provider_with(self, operation: SimpleNamespace) -> VeoAvatarProvider:
        provider = VeoAvatarProvider(api_key="g-test", poll_interval=0, max_poll_attempts=2)
        client = MagicMock()
        client.models.generate_videos.return_value = operation
        client.operations.get.return_value = operation
        provider._client = client
        return provider

    @pytest.mark.asyncio
    async def test_generate_avatar(self, script: Script) -> None:
        video = SimpleNamespace(video=SimpleNamespace(uri="https://veo.example/clip.mp4"))
        provider = self.provider_with(veo_operation(videos=[video]))

        with patch.object(provider, "_download", new_callable=AsyncMock) as mock_download:
            mock_download.return_value = b"mp4-bytes"
            clip = await provider.generate_avatar(script)

        assert clip.provider == "veo"
        assert clip.data == b"mp4-bytes"
        assert clip.media_url == "https://veo.example/clip.mp4"
        assert clip.duration_seconds == float(VEO_DURATION_SECONDS)
        mock_download.assert_awaited_once_with("https://veo.example/clip.mp4")

    @pytest.mark.asyncio
    async def test_filtered_output_is_billed(self, script: Script) -> None:
        provider = self.provider_with(veo_operation(videos=[]))

        with pytest.raises(AvatarError) as exc_info:
            await provider.generate_avatar(script)

        assert exc_info.value.kind is ErrorKind.CONTENT_POLICY
        assert exc_info.value.billable_units == float(VEO_DURATION_SECONDS)

    @pytest.mark.asyncio
    async def test_poll_timeout(self, script: Script) -> None:
        provider = self.provider_with(veo_operation(done=False))

        with pytest.raises(AvatarError) as exc_info:
            await provider.generate_avatar(script)

        assert exc_info.value.kind is ErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_operation_error(self, script: Script) -> None:
        error = SimpleNamespace(message="Blocked by safety policy")
        provider = self.provider_with(veo_operation(error=error))

        with pytest.raises(AvatarError) as exc_info:
            await provider.generate_avatar(script)

        assert exc_info.value.kind is ErrorKind.CONTENT_POLICY

    @pytest.mark.asyncio
    async def test_missing_key(self, script: Script) -> None:
        provider = VeoAvatarProvider(api_key=None)
        provider.api_key = None

        with pytest.raises(AvatarError) as exc_info:
            await provider.generate_avatar(script)
        assert exc_info.value.kind is ErrorKind.MALFORMED_INPUT

    @pytest.mark.parametrize(
        ("code", "kind"),
        [(429, ErrorKind.RATE_LIMITED), (503, ErrorKind.TRANSIENT), (400, ErrorKind.MALFORMED_INPUT)],
    )
    def test_api_errors_classified(self, code: int, kind: ErrorKind) -> None:
        provider = VeoAvatarProvider(api_key="g-test")

        error = provider._classify_api_error(SimpleNamespace(code=code))

        assert error.kind is kind
