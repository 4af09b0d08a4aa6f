import re

_NON_DIGITS = re.compile(r"[^\d]")


def normalize_phone(phone: str, country_code: str) -> str:
    """
    Build an E.164-style number from a local number and a country code.

        normalize_phone("98765 43210", "91")  -> "+919876543210"
        normalize_phone("555-123-4567", "+1") -> "+15551234567"

    The local part is stripped of everything but digits, including any '+'
    the client typed. No carrier or length validation is done here.
    """
    digits = _NON_DIGITS.sub("", phone)
    code = country_code.strip()
    if not code.startswith("+"):
        code = f"+{code}"
    return f"{code}{digits}"
