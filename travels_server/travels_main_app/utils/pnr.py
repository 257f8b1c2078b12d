import secrets
import time

from .constants import BusinessRules

ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'
TIME_WIDTH = 7
RANDOM_WIDTH = 6


def _base36(value, width):
    chars = []
    for _ in range(width):
        value, rem = divmod(value, 36)
        chars.append(ALPHABET[rem])
    return ''.join(reversed(chars))


def generate_pnr(now=None):
    """
    PREFIX + 7 base36 chars of epoch seconds + 6 base36 chars from random bytes.

    Always 15 characters; uniqueness is also enforced by the unique index on
    Booking.pnr.
    """
    seconds = int(now if now is not None else time.time())
    random_part = int.from_bytes(secrets.token_bytes(4), 'big') % (36 ** RANDOM_WIDTH)
    return f"{BusinessRules.PNR_PREFIX}{_base36(seconds, TIME_WIDTH)}{_base36(random_part, RANDOM_WIDTH)}"
