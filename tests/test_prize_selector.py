import pytest

from app.domain.errors import InvalidConfigurationError, PrizesExhaustedError
from app.domain.models import Prize
from app.services.prize_selector import select_prize, validate_prizes
from tests.conftest import FixedRandom


def make_prizes(a_remaining=1, b_remaining=5):
    return [
        Prize(id="a", name="Free Coffee", quantity=1, remaining_quantity=a_remaining, probability=10),
        Prize(id="b", name="10% Voucher", quantity=5, remaining_quantity=b_remaining, probability=90),
    ]


@pytest.mark.parametrize("r, expected", [
    (0.0, "a"),
    (0.05, "a"),
    (0.1001, "b"),
    (0.5, "b"),
    (0.9999, "b"),
])
def test_selects_by_cumulative_probability(r, expected):
    assert select_prize(make_prizes(), FixedRandom(r)).id == expected


def test_exhausted_prize_is_skipped_without_redistribution():
    prizes = make_prizes(a_remaining=0)
    # r=5 would have hit A; B's band now starts at 0
    assert select_prize(prizes, FixedRandom(0.05)).id == "b"


def test_falls_back_to_last_prize_past_cumulative_mass():
    prizes = make_prizes(a_remaining=0)
    # cumulative mass is only 90, r=95 runs off the end
    assert select_prize(prizes, FixedRandom(0.95)).id == "b"


def test_fallback_to_exhausted_last_prize_is_refused():
    prizes = make_prizes(b_remaining=0)
    with pytest.raises(PrizesExhaustedError):
        select_prize(prizes, FixedRandom(0.95))


def test_all_exhausted_is_refused():
    with pytest.raises(PrizesExhaustedError):
        select_prize(make_prizes(a_remaining=0, b_remaining=0), FixedRandom(0.3))


def test_empty_prize_list_is_refused():
    with pytest.raises(PrizesExhaustedError):
        select_prize([], FixedRandom(0.3))


def test_selection_does_not_touch_inventory():
    prizes = make_prizes()
    select_prize(prizes, FixedRandom(0.05))
    assert [p.remaining_quantity for p in prizes] == [1, 5]


def test_default_random_source_returns_a_prize():
    assert select_prize(make_prizes()).id in {"a", "b"}


# ============================================
# validate_prizes
# ============================================

def test_validate_accepts_sum_within_tolerance():
    prizes = [
        Prize(id="a", name="A", quantity=1, remaining_quantity=1, probability=33.33),
        Prize(id="b", name="B", quantity=1, remaining_quantity=1, probability=33.33),
        Prize(id="c", name="C", quantity=1, remaining_quantity=1, probability=33.34),
    ]
    validate_prizes(prizes)


def test_validate_rejects_sum_off_by_more_than_tolerance():
    prizes = [
        Prize(id="a", name="A", quantity=1, remaining_quantity=1, probability=50),
        Prize(id="b", name="B", quantity=1, remaining_quantity=1, probability=49.9),
    ]
    with pytest.raises(InvalidConfigurationError, match="100%"):
        validate_prizes(prizes)


@pytest.mark.parametrize("name, quantity", [("", 1), ("   ", 1), ("Mug", 0)])
def test_validate_rejects_incomplete_prize(name, quantity):
    prizes = [Prize(id="a", name=name, quantity=quantity, remaining_quantity=quantity, probability=100)]
    with pytest.raises(InvalidConfigurationError):
        validate_prizes(prizes)


def test_validate_rejects_empty_list():
    with pytest.raises(InvalidConfigurationError):
        validate_prizes([])
