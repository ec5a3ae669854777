"""
Price tier resolution.

Turns the ordered ``show_<tier>`` toggles of the settings table into
``TierDescriptor`` objects, and defines the fixed tiers of the print sheet.
"""

from __future__ import annotations

from typing import Iterable

from pricematrix.models import TIER_KEYS, TierDescriptor, VisibilitySetting

SETTING_PREFIX = "show_"

# Cost / RRP columns of the printable sheet, independent of the settings.
PRINT_TIERS: tuple[TierDescriptor, ...] = (
    TierDescriptor(key="distributor", label="Cost", visible=True, display_order=0),
    TierDescriptor(key="retail", label="RRP", visible=True, display_order=1),
)


def tier_for_setting(key: str) -> str | None:
    """Map ``show_retail`` to ``retail``; None for keys that are not tiers."""
    if not key.startswith(SETTING_PREFIX):
        return None
    tier = key[len(SETTING_PREFIX):]
    return tier if tier in TIER_KEYS else None


def tier_label(tier: str) -> str:
    """Human label for a tier key (``online`` -> ``Online``)."""
    return " ".join(word.capitalize() for word in tier.split("_"))


def resolve_tiers(settings: Iterable[VisibilitySetting]) -> list[TierDescriptor]:
    """Return one descriptor per known tier, ordered by the settings sequence.

    Unknown setting keys are ignored.  Tiers without a setting are hidden
    and placed after the configured ones in their default order.  When a
    key appears twice, the first occurrence fixes the position and the
    last one the visibility.
    """
    order: list[str] = []
    visible: dict[str, bool] = {}
    for setting in settings:
        tier = tier_for_setting(setting.setting_key)
        if tier is None:
            continue
        if tier not in visible:
            order.append(tier)
        visible[tier] = setting.is_visible

    order.extend(t for t in TIER_KEYS if t not in visible)
    return [
        TierDescriptor(
            key=tier,
            label=tier_label(tier),
            visible=visible.get(tier, False),
            display_order=index,
        )
        for index, tier in enumerate(order)
    ]


def visible_tiers(tiers: Iterable[TierDescriptor]) -> list[TierDescriptor]:
    """Visible tiers sorted by display order."""
    return sorted((t for t in tiers if t.visible), key=lambda t: t.display_order)
