import secrets
import string
import time

from ..config import settings

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference_number(prefix: str = None) -> str:
    """
    Human-readable booking reference: prefix + last 8 digits of the epoch
    milliseconds + 4 random characters, e.g. ``BK83019442X7QD``.

    Not unique on its own; the bookings table carries a unique constraint
    and the caller regenerates on collision.
    """
    prefix = settings.reference_prefix if prefix is None else prefix
    timestamp = str(int(time.time() * 1000))[-8:]
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{prefix}{timestamp}{suffix}"
