"""Unit prices for billable provider operations.

All prices come from settings and are returned as `Decimal` quantized to the
ledger's precision.
"""

from decimal import ROUND_HALF_UP, Decimal

from ugc_engine.config import Settings, get_settings
from ugc_engine.domain.enums import ServiceCategory

COST_QUANTUM = Decimal("0.000001")


def quantize_cost(value: Decimal | float | int | str) -> Decimal:
    """Round a cost to six decimal places."""
    return Decimal(str(value)).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


class PriceList:
    """Price lookups per service category."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or get_settings()

    def script(self, tokens: int | float) -> Decimal:
        return quantize_cost(Decimal(str(tokens)) * Decimal(str(self.config.price_script_per_token)))

    def avatar(self, provider: str, seconds: float) -> Decimal:
        rate = (
            self.config.price_veo_per_second
            if provider.startswith("veo")
            else self.config.price_avatar_per_second
        )
        return quantize_cost(Decimal(str(seconds)) * Decimal(str(rate)))

    def composition(self) -> Decimal:
        return quantize_cost(self.config.price_composition_flat)

    def storage(self, size_bytes: int) -> Decimal:
        return quantize_cost(Decimal(size_bytes) * Decimal(str(self.config.price_storage_per_byte)))

    def for_units(self, category: ServiceCategory, provider: str, units: float) -> Decimal:
        """Price `units` of the category's natural unit (billed failures)."""
        if category is ServiceCategory.SCRIPT:
            return self.script(units)
        if category is ServiceCategory.AVATAR:
            return self.avatar(provider, units)
        if category is ServiceCategory.COMPOSITION:
            return self.composition()
        return self.storage(int(units))
