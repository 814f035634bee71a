import random
import re
import string
import time
from decimal import Decimal, ROUND_HALF_UP


# ============================================================
#                      TICKET ID
# ============================================================
def generate_ticket_id() -> str:
    """
    8 random digits with 2 uppercase letters interleaved at random positions
    Example: SPTX-TX-12A3456B78
    """
    digits = "".join(random.choices(string.digits, k=8))
    first, second = random.choices(string.ascii_uppercase, k=2)

    pos1 = random.randrange(0, 8)
    pos2 = random.randint(pos1 + 1, 8)

    return (
        "SPTX-TX-"
        + digits[:pos1]
        + first
        + digits[pos1:pos2]
        + second
        + digits[pos2:]
    )


# ============================================================
#                  PAYMENT REFERENCE
# ============================================================
def generate_reference() -> str:
    """
    Provider-correlatable payment reference
    Example: SPTX-REF-17291234567890421
    """
    return f"SPTX-REF-{int(time.time() * 1000)}{random.randint(1000, 9999)}"


# ============================================================
#                    REFERRAL CODE
# ============================================================
def generate_referral_code(username: str) -> str:
    clean = re.sub(r"[^a-z0-9]", "", username.lower())
    return f"{clean}{random.randint(1000, 9999)}"


# ============================================================
#                       MONEY
# ============================================================
def to_minor_units(naira) -> int:
    """₦ amount (int, float, str or Decimal) to kobo"""
    return int((Decimal(str(naira)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_naira(kobo: int) -> str:
    return f"₦{kobo / 100:,.2f}"
