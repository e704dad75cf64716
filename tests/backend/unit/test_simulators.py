from idlesettle.backend.models import Activity, RewardCategory
from idlesettle.backend.simulators import simulate_crafting, simulate_gathering, simulate_idle


def test_gathering_counts_whole_actions() -> None:
    outcome = simulate_gathering(3.0)

    assert outcome.activity is Activity.GATHERING
    assert outcome.experience == 300
    assert outcome.gold == 75
    assert outcome.rewards[0].category is RewardCategory.GATHERING
    assert outcome.rewards[0].details["actions"] == 15


def test_gathering_floors_partial_actions() -> None:
    outcome = simulate_gathering(0.5)

    assert outcome.rewards[0].details["actions"] == 2
    assert outcome.experience == 40


def test_crafting_rates() -> None:
    outcome = simulate_crafting(2.0)

    assert outcome.activity is Activity.CRAFTING
    assert outcome.rewards[0].details["actions"] == 6
    assert outcome.experience == 300
    assert outcome.gold == 90


def test_idle_earns_half_experience_and_full_gold() -> None:
    outcome = simulate_idle(4.0, base_experience_per_hour=50, base_gold_per_hour=10)

    assert outcome.activity is Activity.IDLE
    assert outcome.experience == 100
    assert outcome.gold == 40
    assert outcome.battles == ()


def test_negative_hours_produce_nothing() -> None:
    assert simulate_gathering(-1.0).experience == 0
    assert simulate_crafting(-1.0).gold == 0
    assert simulate_idle(-2.0, 50, 10).experience == 0
