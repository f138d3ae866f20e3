"""Markup enums and reference data."""

from enum import StrEnum


class MarkupType(StrEnum):
    """How a markup value is applied to a converted base fee."""

    FLAT = "Flat"
    PERCENTAGE = "Percentage"


class MarkupCategory(StrEnum):
    """Fee category a markup rule prices."""

    CARRIER = "carrier"
    PICKUP = "pickup"
    INSURANCE = "insurance"


# Pickup and insurance fees are always marked up by percentage
PERCENTAGE_ONLY_CATEGORIES = frozenset({MarkupCategory.PICKUP, MarkupCategory.INSURANCE})

CARRIERS: list[dict[str, str]] = [
    {"id": "canada_post", "name": "Canada Post"},
    {"id": "fedex", "name": "FedEx"},
    {"id": "ups", "name": "UPS"},
    {"id": "dhl", "name": "DHL"},
]

CURRENCIES: list[dict[str, str]] = [
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "CAD", "name": "Canadian Dollar", "symbol": "C$"},
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
]

MARKUP_TYPES: list[dict[str, str]] = [
    {
        "id": MarkupType.FLAT.value,
        "name": "Flat Rate",
        "description": "Fixed amount added to base fee",
    },
    {
        "id": MarkupType.PERCENTAGE.value,
        "name": "Percentage",
        "description": "Percentage markup applied to base fee",
    },
]
