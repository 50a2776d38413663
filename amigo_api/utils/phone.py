_PHONE_CHARS = frozenset("0123456789+ -")


def looks_like_phone(phone: str) -> bool:
    # Format check only: digits, '+', space, '-' and at least 6 characters. No country rules.
    return len(phone) >= 6 and all(ch in _PHONE_CHARS for ch in phone)
