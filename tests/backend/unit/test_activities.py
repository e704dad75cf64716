from idlesettle.backend.activities import parse_profession, profession_multiplier, select_activity
from idlesettle.backend.models import Activity, BattleProfession


def test_select_activity_maps_known_tags() -> None:
    assert select_activity("combat") is Activity.COMBAT
    assert select_activity("Battle ") is Activity.COMBAT
    assert select_activity("gathering") is Activity.GATHERING
    assert select_activity("CRAFTING") is Activity.CRAFTING


def test_select_activity_falls_back_to_idle() -> None:
    assert select_activity("fishing") is Activity.IDLE
    assert select_activity("") is Activity.IDLE
    assert select_activity(None) is Activity.IDLE


def test_select_activity_passes_enum_through() -> None:
    assert select_activity(Activity.CRAFTING) is Activity.CRAFTING


def test_parse_profession_defaults_to_other() -> None:
    assert parse_profession("Mage") is BattleProfession.MAGE
    assert parse_profession("bard") is BattleProfession.OTHER
    assert parse_profession(None) is BattleProfession.OTHER


def test_profession_multiplier_values() -> None:
    assert profession_multiplier("warrior") == 1.2
    assert profession_multiplier("archer") == 1.15
    assert profession_multiplier("mage") == 1.1
    assert profession_multiplier("") == 1.0
