"""Lookup of simulation strategy and profession from stored tags."""

from __future__ import annotations

from idlesettle.backend.models import Activity, BattleProfession

_ACTIVITY_TAGS: dict[str, Activity] = {
    "combat": Activity.COMBAT,
    "battle": Activity.COMBAT,
    "gathering": Activity.GATHERING,
    "crafting": Activity.CRAFTING,
}

_PROFESSION_TAGS: dict[str, BattleProfession] = {
    "warrior": BattleProfession.WARRIOR,
    "archer": BattleProfession.ARCHER,
    "mage": BattleProfession.MAGE,
}

PROFESSION_MULTIPLIERS: dict[BattleProfession, float] = {
    BattleProfession.WARRIOR: 1.2,
    BattleProfession.ARCHER: 1.15,
    BattleProfession.MAGE: 1.1,
    BattleProfession.OTHER: 1.0,
}


def select_activity(tag: str | Activity | None) -> Activity:
    """Map a stored activity tag to a strategy; unknown tags settle as idle."""
    if isinstance(tag, Activity):
        return tag
    if not tag:
        return Activity.IDLE
    return _ACTIVITY_TAGS.get(tag.strip().lower(), Activity.IDLE)


def parse_profession(tag: str | BattleProfession | None) -> BattleProfession:
    if isinstance(tag, BattleProfession):
        return tag
    if not tag:
        return BattleProfession.OTHER
    return _PROFESSION_TAGS.get(tag.strip().lower(), BattleProfession.OTHER)


def profession_multiplier(tag: str | BattleProfession | None) -> float:
    return PROFESSION_MULTIPLIERS[parse_profession(tag)]
