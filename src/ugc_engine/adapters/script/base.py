"""Base interface for script generation providers."""

from abc import ABC, abstractmethod

from ugc_engine.domain.models import ParsedBrief, Script


class ScriptProvider(ABC):
    """Abstract base class for script generation providers.

    Implementations:
    - StubScriptProvider: Deterministic scripts for development and tests
    - OpenAIScriptProvider: Chat completions in JSON mode
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate_scripts(
        self,
        brief: ParsedBrief,
        count: int,
        variation_index: int = 0,
    ) -> list[Script]:
        """Generate `count` testimonial scripts from a parsed brief.

        Args:
            brief: Structured brief, possibly carrying a variation intent
            count: Number of scripts to return
            variation_index: Offset used to keep sibling items distinct

        Returns:
            Exactly `count` scripts

        Raises:
            ScriptError: On any provider failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy."""
        return True
