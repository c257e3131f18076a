def vested_amount(total: int, start: int, cliff: int, duration: int, at: int) -> int:
    if at < start:
        return 0

    elapsed = at - start
    if elapsed < cliff:
        return 0
    if elapsed >= duration:
        return total

    # Python ints are unbounded, so total * elapsed is exact; floor drops fractional options.
    return (total * elapsed) // duration


def exercisable_amount(vested: int, exercised: int) -> int:
    if vested > exercised:
        return vested - exercised
    return 0


def exercise_cost(amount: int, strike_price: int) -> int:
    return amount * strike_price


def equity_units(amount: int, decimals: int) -> int:
    return amount * 10**decimals
