"""Provider gateway.

Resolves the configured implementation for each capability once, so the
Stage Driver talks to a single object whose providers stay fixed for the
life of a batch run.
"""

from dataclasses import dataclass

from ugc_engine.adapters.avatar.base import AvatarProvider
from ugc_engine.adapters.avatar.stub import StubAvatarProvider
from ugc_engine.adapters.broll.base import BRollProvider
from ugc_engine.adapters.broll.stub import StubBRollProvider
from ugc_engine.adapters.composition.base import CompositionProvider
from ugc_engine.adapters.composition.stub import StubCompositionProvider
from ugc_engine.adapters.script.base import ScriptProvider
from ugc_engine.adapters.script.stub import StubScriptProvider
from ugc_engine.adapters.storage.base import StorageProvider
from ugc_engine.adapters.storage.local import LocalStorageProvider
from ugc_engine.config import Settings, get_settings
from ugc_engine.errors import ValidationError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


def _unknown(setting: str, value: str, choices: tuple[str, ...]) -> ValidationError:
    return ValidationError(
        f"Unknown {setting} '{value}'",
        fields={setting: f"must be one of: {', '.join(choices)}"},
    )


def get_script_provider(config: Settings) -> ScriptProvider:
    """Get the configured script provider."""
    name = config.script_provider.lower()

    if name == "stub":
        return StubScriptProvider()
    elif name == "openai":
        from ugc_engine.adapters.script.openai import OpenAIScriptProvider

        return OpenAIScriptProvider(api_key=config.openai_api_key, model=config.openai_model)

    raise _unknown("script_provider", name, ("stub", "openai"))


def get_avatar_provider(config: Settings) -> AvatarProvider:
    """Get the configured avatar provider."""
    name = config.avatar_provider.lower()

    if name == "stub":
        return StubAvatarProvider()
    elif name == "veo":
        from ugc_engine.adapters.avatar.veo import VeoAvatarProvider

        return VeoAvatarProvider(api_key=config.google_api_key, model=config.veo_model)

    raise _unknown("avatar_provider", name, ("stub", "veo"))


def get_composition_provider(config: Settings) -> CompositionProvider:
    """Get the configured composition provider."""
    name = config.composition_provider.lower()

    if name == "stub":
        return StubCompositionProvider()
    elif name == "ffmpeg":
        from ugc_engine.adapters.composition.ffmpeg import FFmpegCompositionProvider

        return FFmpegCompositionProvider(
            ffmpeg_path=config.ffmpeg_path, timeout=config.ffmpeg_timeout
        )

    raise _unknown("composition_provider", name, ("stub", "ffmpeg"))


def get_broll_provider(config: Settings) -> BRollProvider:
    """Get the configured B-roll provider."""
    name = config.broll_provider.lower()

    if name == "stub":
        return StubBRollProvider()

    raise _unknown("broll_provider", name, ("stub",))


def get_storage_provider(config: Settings) -> StorageProvider:
    """Get the configured storage provider."""
    name = config.storage_provider.lower()

    if name == "local":
        return LocalStorageProvider(
            root=config.local_storage_path, base_url=config.storage_public_base_url
        )
    elif name == "r2":
        from ugc_engine.adapters.storage.r2 import R2StorageProvider

        return R2StorageProvider(
            account_id=config.r2_account_id,
            access_key_id=config.r2_access_key_id,
            secret_access_key=config.r2_secret_access_key,
            bucket_name=config.r2_bucket_name,
            public_base_url=config.r2_public_url,
        )

    raise _unknown("storage_provider", name, ("local", "r2"))


@dataclass(frozen=True)
class ProviderGateway:
    """One implementation per capability."""

    script: ScriptProvider
    avatar: AvatarProvider
    composition: CompositionProvider
    broll: BRollProvider
    storage: StorageProvider

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "ProviderGateway":
        """Build the gateway from configuration.

        Raises:
            ValidationError: If any configured provider name is unknown
        """
        config = config or get_settings()
        gateway = cls(
            script=get_script_provider(config),
            avatar=get_avatar_provider(config),
            composition=get_composition_provider(config),
            broll=get_broll_provider(config),
            storage=get_storage_provider(config),
        )
        logger.info("provider_gateway_initialized", **gateway.describe())
        return gateway

    @classmethod
    def stub(cls) -> "ProviderGateway":
        """Gateway wired entirely to stub providers."""
        return cls(
            script=StubScriptProvider(),
            avatar=StubAvatarProvider(),
            composition=StubCompositionProvider(),
            broll=StubBRollProvider(),
            storage=LocalStorageProvider(),
        )

    def describe(self) -> dict[str, str]:
        """Provider name per capability."""
        return {
            "script": self.script.name,
            "avatar": self.avatar.name,
            "composition": self.composition.name,
            "broll": self.broll.name,
            "storage": self.storage.name,
        }

    async def health_check(self) -> dict[str, bool]:
        """Check health of every configured provider."""
        return {
            "script": await self.script.health_check(),
            "avatar": await self.avatar.health_check(),
            "composition": await self.composition.health_check(),
            "broll": await self.broll.health_check(),
            "storage": await self.storage.health_check(),
        }
