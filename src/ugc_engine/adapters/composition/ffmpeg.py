"""FFmpeg composition provider.

Lays supporting clips over the avatar as short full-frame cutaways while the
avatar's audio keeps playing, then encodes a 1080x1920 H.264 MP4.
"""

import asyncio
import subprocess
import tempfile
from pathlib import Path

import httpx

from ugc_engine.adapters.composition.base import CompositionProvider
from ugc_engine.config import settings
from ugc_engine.domain.models import AvatarClip, BRollClip, ComposedMedia
from ugc_engine.errors import CompositionError, ErrorKind
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

OUTPUT_WIDTH = 1080
OUTPUT_HEIGHT = 1920
CUTAWAY_SECONDS = 3.0

_FIT = (
    f"scale={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}:force_original_aspect_ratio=increase,"
    f"crop={OUTPUT_WIDTH}:{OUTPUT_HEIGHT},setsar=1"
)


def cutaway_windows(duration: float, count: int) -> list[tuple[float, float]]:
    """Evenly spaced (start, end) windows for `count` cutaways inside `duration`."""
    if count <= 0 or duration <= 0:
        return []
    length = min(CUTAWAY_SECONDS, duration / (count + 1))
    slot = duration / (count + 1)
    windows = []
    for i in range(count):
        start = max(0.0, slot * (i + 1) - length / 2)
        windows.append((round(start, 3), round(start + length, 3)))
    return windows


def build_filter_graph(duration: float, clip_count: int) -> str:
    """Filter graph: fit the avatar, then overlay each cutaway in its window."""
    parts = [f"[0:v]{_FIT}[base0]"]
    previous = "base0"
    for i, (start, end) in enumerate(cutaway_windows(duration, clip_count), start=1):
        parts.append(f"[{i}:v]{_FIT},setpts=PTS-STARTPTS+{start}/TB[clip{i}]")
        label = f"base{i}"
        parts.append(
            f"[{previous}][clip{i}]overlay=enable='between(t,{start},{end})':eof_action=pass[{label}]"
        )
        previous = label
    parts.append(f"[{previous}]format=yuv420p[vout]")
    return ";".join(parts)


class FFmpegCompositionProvider(CompositionProvider):
    """Local FFmpeg compositor."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path or "ffmpeg"
        self.timeout = timeout or settings.ffmpeg_timeout

    @property
    def name(self) -> str:
        return "ffmpeg"

    async def compose(
        self,
        avatar: AvatarClip,
        supporting_clips: list[BRollClip],
    ) -> ComposedMedia:
        with tempfile.TemporaryDirectory(prefix="ugc_compose_") as tmp:
            work_dir = Path(tmp)
            avatar_path = work_dir / "avatar.mp4"
            avatar_path.write_bytes(await self._avatar_bytes(avatar))

            clip_paths = await self._download_clips(supporting_clips, work_dir)
            output_path = work_dir / "composed.mp4"
            cmd = self.build_command(avatar_path, clip_paths, output_path, avatar.duration_seconds)

            logger.info(
                "ffmpeg_composition_started",
                avatar_id=avatar.id,
                clip_count=len(clip_paths),
            )
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, lambda: self._run(cmd))
            data = output_path.read_bytes()

        logger.info("ffmpeg_composition_completed", avatar_id=avatar.id, size_bytes=len(data))
        return ComposedMedia(
            duration_seconds=avatar.duration_seconds,
            provider=self.name,
            data=data,
            width=OUTPUT_WIDTH,
            height=OUTPUT_HEIGHT,
        )

    def build_command(
        self,
        avatar_path: Path,
        clip_paths: list[Path],
        output_path: Path,
        duration: float,
    ) -> list[str]:
        cmd = [self.ffmpeg_path, "-y", "-i", str(avatar_path)]
        for path in clip_paths:
            cmd.extend(["-i", str(path)])
        cmd.extend(
            [
                "-filter_complex",
                build_filter_graph(duration, len(clip_paths)),
                "-map",
                "[vout]",
                "-map",
                "0:a?",
                "-c:v",
                "libx264",
                "-preset",
                "fast",
                "-crf",
                "23",
                "-c:a",
                "aac",
                "-t",
                str(duration),
                "-movflags",
                "+faststart",
                str(output_path),
            ]
        )
        return cmd

    def _run(self, cmd: list[str]) -> None:
        try:
            subprocess.run(cmd, capture_output=True, check=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise CompositionError(
                self.name, f"FFmpeg not found at {self.ffmpeg_path}", ErrorKind.MALFORMED_INPUT
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CompositionError(
                self.name, f"FFmpeg timed out after {self.timeout}s", ErrorKind.TIMEOUT
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode(errors="replace")[-500:]
            raise CompositionError(
                self.name, f"FFmpeg exited with {e.returncode}: {stderr}", ErrorKind.GENERATION_FAILED
            ) from e

    async def _avatar_bytes(self, avatar: AvatarClip) -> bytes:
        if avatar.data is not None:
            return avatar.data
        if not avatar.media_url:
            raise CompositionError(self.name, "Avatar clip has no media", ErrorKind.MALFORMED_INPUT)
        try:
            async with httpx.AsyncClient(timeout=120.0, follow_redirects=True) as client:
                response = await client.get(avatar.media_url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise CompositionError(
                self.name, f"Failed to fetch avatar clip: {e}", ErrorKind.TRANSIENT
            ) from e

    async def _download_clips(self, clips: list[BRollClip], work_dir: Path) -> list[Path]:
        """Fetch cutaway clips. A clip that cannot be fetched is left out."""
        paths: list[Path] = []
        async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
            for index, clip in enumerate(clips):
                if clip.type != "video":
                    continue
                try:
                    response = await client.get(clip.url)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.warning("broll_clip_download_failed", url=clip.url, error=str(e))
                    continue
                path = work_dir / f"clip_{index}.mp4"
                path.write_bytes(response.content)
                paths.append(path)
        return paths

    async def health_check(self) -> bool:
        """Check that the FFmpeg binary runs."""
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: subprocess.run(
                    [self.ffmpeg_path, "-version"], capture_output=True, check=True, timeout=10
                ),
            )
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("ffmpeg_health_check_failed", error=str(e))
            return False
