from app.core.errors import ZeroAddress

ZERO_ADDRESS = "0x" + "0" * 40


def normalize(address: str) -> str:
    return address.strip().lower()


def require_address(address: str | None, field: str) -> str:
    if address is None:
        raise ZeroAddress(f"{field} is the zero address", field=field)
    normalized = normalize(address)
    if not normalized or normalized == ZERO_ADDRESS:
        raise ZeroAddress(f"{field} is the zero address", field=field)
    return normalized
