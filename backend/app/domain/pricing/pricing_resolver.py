"""
Zone Pricing Resolver.

Responsible for turning a destination (city, district) into a price per
kilogram and a transit surcharge.
Follows priority for the price:
1. District override within the given city
2. City default
3. Global fallback (unknown city)

Transit surcharge is resolved independently by scanning the ordered
rule list; first match wins, default 0.

Pure and deterministic: no datastore access, nothing cached between
calls. Unknown cities or districts never raise; they fall through to
the next tier so a booking is never blocked on pricing.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from backend.app.domain.pricing.zone_rates import (
    DEFAULT_TRANSIT_SURCHARGE,
    GLOBAL_FALLBACK_PRICE,
    TRANSIT_RULES,
    ZONE_RATES,
    TransitRule,
    ZoneRate,
    normalize_zone_name,
)


@dataclass(frozen=True)
class ZonePrice:
    price_per_weight: int
    transit_surcharge: int


@dataclass(frozen=True)
class Quote:
    price_per_weight: int
    billable_weight: int
    subtotal: float
    admin_fee: float
    packaging_fee: float
    transit_surcharge: int
    total: float


class ZonePricingResolver:

    def __init__(
        self,
        zones: Mapping[str, ZoneRate] = ZONE_RATES,
        transit_rules: Sequence[TransitRule] = TRANSIT_RULES,
        fallback_price: int = GLOBAL_FALLBACK_PRICE,
        default_surcharge: int = DEFAULT_TRANSIT_SURCHARGE,
    ):
        self._zones = zones
        self._transit_rules: Tuple[TransitRule, ...] = tuple(transit_rules)
        self._fallback_price = fallback_price
        self._default_surcharge = default_surcharge

    def resolve_price_per_weight(self, city: Optional[str], district: Optional[str]) -> int:
        zone = self._zones.get(normalize_zone_name(city))
        if zone is None:
            return self._fallback_price

        override = zone.district_overrides.get(normalize_zone_name(district))
        if override is not None:
            return override

        return zone.default_price

    def resolve_transit_surcharge(self, city: Optional[str], district: Optional[str]) -> int:
        text = normalize_zone_name(f"{city or ''} {district or ''}")
        for rule in self._transit_rules:
            if rule.matches(text):
                return rule.surcharge
        return self._default_surcharge

    def resolve_price(self, city: Optional[str], district: Optional[str]) -> ZonePrice:
        """
        Resolve price per kilogram and transit surcharge for a destination.

        Must be re-invoked whenever either city or district changes: the
        same district name can price differently under different cities.
        """
        return ZonePrice(
            price_per_weight=self.resolve_price_per_weight(city, district),
            transit_surcharge=self.resolve_transit_surcharge(city, district),
        )

    def list_districts(self, city: Optional[str]) -> Tuple[str, ...]:
        zone = self._zones.get(normalize_zone_name(city))
        return zone.districts if zone else ()

    def list_cities(self) -> Tuple[str, ...]:
        return tuple(self._zones.keys())

    def quote(
        self,
        city: Optional[str],
        district: Optional[str],
        weight: float,
        admin_fee: float = 0,
        packaging_fee: float = 0,
    ) -> Quote:
        """
        Price a prospective shipment.

        Weight is billed in whole kilograms, rounded up, minimum one.
        """
        zone_price = self.resolve_price(city, district)
        billable_weight = max(1, math.ceil(weight))
        subtotal = zone_price.price_per_weight * billable_weight
        total = subtotal + admin_fee + packaging_fee + zone_price.transit_surcharge
        return Quote(
            price_per_weight=zone_price.price_per_weight,
            billable_weight=billable_weight,
            subtotal=subtotal,
            admin_fee=admin_fee,
            packaging_fee=packaging_fee,
            transit_surcharge=zone_price.transit_surcharge,
            total=total,
        )


def calculate_totals(weight: float, price_per_weight: float, surcharges: Iterable[float]) -> Tuple[float, float]:
    """
    Compute (subtotal, total) for edited booking figures.

    subtotal = weight × price_per_weight; total = subtotal + Σ surcharges.
    Rounded to cents so repeated calls agree exactly.
    """
    subtotal = round(weight * price_per_weight, 2)
    total = round(subtotal + sum(surcharges), 2)
    return subtotal, total


# Process-wide resolver over the static tables
zone_pricing = ZonePricingResolver()


def resolve_price(city: Optional[str], district: Optional[str]) -> ZonePrice:
    return zone_pricing.resolve_price(city, district)
