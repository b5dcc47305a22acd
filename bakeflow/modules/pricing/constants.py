"""Volume discount tables and pricing cache keys."""

from __future__ import annotations

from decimal import Decimal

from bakeflow.models.enums import PriceTier

# tier -> ascending [(minimum quantity, discount fraction)]; highest met applies
VOLUME_DISCOUNT_RULES: dict[PriceTier, list[tuple[int, Decimal]]] = {
    PriceTier.STANDARD: [
        (10, Decimal("0.05")),
        (25, Decimal("0.10")),
        (50, Decimal("0.15")),
    ],
    PriceTier.VOLUME: [
        (5, Decimal("0.10")),
        (15, Decimal("0.15")),
        (30, Decimal("0.20")),
    ],
    # Premium prices are already discounted
    PriceTier.PREMIUM: [],
}

CACHE_PREFIX = "pricing"
CENT = Decimal("0.01")
