from app.services.vesting import equity_units, exercisable_amount, exercise_cost, vested_amount

DAY = 24 * 60 * 60
UINT256_MAX = 2**256 - 1


def test_vesting_respects_cliff_and_full_term() -> None:
    total, cliff, duration = 10_000, 365 * DAY, 1460 * DAY

    assert vested_amount(total, 0, cliff, duration, 364 * DAY) == 0
    assert vested_amount(total, 0, cliff, duration, 365 * DAY) == 2500
    assert vested_amount(total, 0, cliff, duration, 730 * DAY) == 5000
    assert vested_amount(total, 0, cliff, duration, 1095 * DAY) == 7500
    assert vested_amount(total, 0, cliff, duration, 1460 * DAY) == 10_000
    assert vested_amount(total, 0, cliff, duration, 5000 * DAY) == 10_000


def test_vesting_before_start_is_zero() -> None:
    assert vested_amount(1000, 1_000_000, 0, 100, 999_999) == 0
    assert vested_amount(1000, 1_000_000, 0, 100, 1_000_000) == 0
    assert vested_amount(1000, 1_000_000, 0, 100, 1_000_001) == 10


def test_vesting_truncates_fractional_options() -> None:
    assert vested_amount(10, 0, 0, 3, 1) == 3
    assert vested_amount(10, 0, 0, 3, 2) == 6
    assert vested_amount(1, 0, 0, 1000, 999) == 0


def test_vesting_is_monotonic_and_bounded() -> None:
    total, start, cliff, duration = 7_919, 500, 37, 1_009
    previous = 0
    for at in range(0, start + duration + 50, 7):
        current = vested_amount(total, start, cliff, duration, at)
        assert previous <= current <= total
        previous = current


def test_vesting_handles_largest_totals_without_overflow() -> None:
    duration = 4 * 365 * DAY
    halfway = vested_amount(UINT256_MAX, 0, 0, duration, duration // 2)
    assert halfway == UINT256_MAX * (duration // 2) // duration
    assert halfway <= UINT256_MAX
    assert vested_amount(UINT256_MAX, 0, 0, duration, duration) == UINT256_MAX


def test_exercisable_never_underflows() -> None:
    assert exercisable_amount(5000, 1200) == 3800
    assert exercisable_amount(5000, 5000) == 0
    assert exercisable_amount(100, 5000) == 0


def test_exercise_cost_is_exact_for_largest_values() -> None:
    assert exercise_cost(300, 250) == 75_000
    assert exercise_cost(UINT256_MAX, UINT256_MAX) == UINT256_MAX * UINT256_MAX
    assert exercise_cost(UINT256_MAX, UINT256_MAX) > UINT256_MAX


def test_equity_units_scale_to_decimals() -> None:
    assert equity_units(5000, 18) == 5000 * 10**18
    assert equity_units(3, 0) == 3
