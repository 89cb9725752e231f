"""Google Veo avatar provider."""

import asyncio
import time
from typing import Any

import httpx

from ugc_engine.adapters.avatar.base import AvatarProvider
from ugc_engine.config import settings
from ugc_engine.domain.models import AvatarClip, Script
from ugc_engine.errors import AvatarError, ErrorKind
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

VEO_ASPECT_RATIO = "9:16"
VEO_RESOLUTION = "1080p"
VEO_DURATION_SECONDS = 8

PROMPT_TEMPLATE = """Generate a realistic UGC-style testimonial video of a person speaking directly to camera with enthusiastic energy.
They should deliver this script naturally: "{script}"
The setting should be casual and authentic, like a home environment.
The person should be expressive and genuine, making eye contact with the camera.
Natural lighting and a clean background are preferred."""


class VeoAvatarProvider(AvatarProvider):
    """Google Veo testimonial clips via the Gemini API.

    Generation is a long-running operation: submit, poll until done,
    then download the clip so later stages have the bytes.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        poll_interval: float = 10.0,
        max_poll_attempts: int = 60,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.veo_model
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self._client: Any = None

        if not self.api_key:
            logger.warning("Google API key not configured for Veo")

    def _get_client(self) -> Any:
        """Get or create the Google GenAI client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return "veo"

    async def generate_avatar(self, script: Script) -> AvatarClip:
        if not self.api_key:
            raise AvatarError(self.name, "Google API key not configured", ErrorKind.MALFORMED_INPUT)
        if not script.testimonial_script.strip():
            raise AvatarError(self.name, "Script has no testimonial text", ErrorKind.MALFORMED_INPUT)

        prompt = PROMPT_TEMPLATE.format(script=script.testimonial_script)
        logger.info(
            "veo_generation_started",
            model=self.model,
            prompt_length=len(prompt),
            script_id=script.id,
        )

        # The SDK is synchronous; keep the event loop free for sibling items
        loop = asyncio.get_running_loop()
        video_uri = await loop.run_in_executor(None, lambda: self._generate_sync(prompt))
        data = await self._download(video_uri)

        return AvatarClip(
            duration_seconds=float(VEO_DURATION_SECONDS),
            provider=self.name,
            data=data,
            media_url=video_uri,
            avatar_id=f"veo-{script.id}",
            character_count=len(script.testimonial_script),
        )

    def _generate_sync(self, prompt: str) -> str:
        """Submit and poll a Veo operation (runs in thread pool). Returns the video URI."""
        from google.genai import errors, types

        client = self._get_client()
        try:
            operation = client.models.generate_videos(
                model=self.model,
                prompt=prompt,
                config=types.GenerateVideosConfig(
                    aspect_ratio=VEO_ASPECT_RATIO,
                    resolution=VEO_RESOLUTION,
                    duration_seconds=VEO_DURATION_SECONDS,
                    number_of_videos=1,
                    person_generation="allow_adult",
                ),
            )

            for attempt in range(self.max_poll_attempts):
                if operation.done:
                    break
                time.sleep(self.poll_interval)
                operation = client.operations.get(operation=operation)
                logger.debug("veo_poll_status", done=operation.done, attempt=attempt + 1)
        except errors.APIError as e:
            raise self._classify_api_error(e) from e

        if not operation.done:
            raise AvatarError(
                self.name,
                f"Generation timed out after {self.max_poll_attempts * self.poll_interval} seconds",
                ErrorKind.TIMEOUT,
            )

        if operation.error:
            message = str(getattr(operation.error, "message", operation.error))
            kind = (
                ErrorKind.CONTENT_POLICY
                if "safety" in message.lower() or "policy" in message.lower()
                else ErrorKind.GENERATION_FAILED
            )
            raise AvatarError(self.name, f"Veo generation failed: {message}", kind)

        response = operation.response
        if not response or not response.generated_videos:
            # Veo filters unsafe outputs silently and still bills the request
            raise AvatarError(
                self.name,
                "Generation completed but no video returned",
                ErrorKind.CONTENT_POLICY,
                billable_units=float(VEO_DURATION_SECONDS),
            )

        video_uri = response.generated_videos[0].video.uri
        logger.info("veo_generation_completed", video_uri=video_uri[:100] if video_uri else None)
        return video_uri

    def _classify_api_error(self, exc: Any) -> AvatarError:
        code = getattr(exc, "code", None) or 0
        if code == 429:
            return AvatarError(self.name, str(exc), ErrorKind.RATE_LIMITED)
        if code >= 500:
            return AvatarError(self.name, str(exc), ErrorKind.TRANSIENT)
        return AvatarError(self.name, str(exc), ErrorKind.MALFORMED_INPUT)

    async def _download(self, uri: str) -> bytes:
        headers = {"x-goog-api-key": self.api_key or ""}
        try:
            async with httpx.AsyncClient(timeout=300.0, follow_redirects=True) as client:
                response = await client.get(uri, headers=headers)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            # The clip exists provider-side; only the transfer failed
            raise AvatarError(
                self.name,
                f"Failed to download video: {e}",
                ErrorKind.TRANSIENT,
                billable_units=float(VEO_DURATION_SECONDS),
            ) from e

    async def health_check(self) -> bool:
        """Check if Veo API is accessible."""
        if not self.api_key:
            return False

        try:
            self._get_client()
            return True
        except Exception as e:
            logger.error("veo_health_check_failed", error=str(e))
            return False
