# ─────────────────────────────────────────────────────────────────────────────
# Preset Catalog — static category samples for prefilling a request
# ─────────────────────────────────────────────────────────────────────────────


from listing_service.schemas import Preset

_PRESETS: tuple[Preset, ...] = (
    Preset(
        key="kitchen",
        name="厨具 / Kitchen",
        sample={
            "name": "Enameled Cast Iron Dutch Oven",
            "node": "Kitchen & Dining > Cookware > Dutch Ovens",
            "color": "Dark Blue",
            "size_or_volume": "26cm",
            "capacity": "5L",
            "weight": "4.5kg",
            "material": "Enameled Cast Iron",
            "brand": "",
        },
    ),
    Preset(
        key="fitness",
        name="健身 / Fitness",
        sample={
            "name": "Adjustable Dumbbell Set",
            "node": "Sports & Outdoors > Strength Training",
            "color": "Black",
            "size_or_volume": "",
            "capacity": "2x25lb",
            "weight": "50lb",
            "material": "Steel + TPU",
            "brand": "",
        },
    ),
    Preset(
        key="electronics",
        name="电子 / Electronics",
        sample={
            "name": "USB-C GaN Charger 65W",
            "node": "Electronics > Accessories & Supplies > Chargers",
            "color": "White",
            "size_or_volume": "",
            "capacity": "65W",
            "weight": "120g",
            "material": "ABS + GaN",
            "brand": "",
        },
    ),
)


def list_presets() -> list[Preset]:
    """All presets in display order. Copies, so callers cannot mutate them."""
    return [preset.model_copy(deep=True) for preset in _PRESETS]
