"""Utils package - helper functions and utilities"""

from .constants import *
from .money import to_money, percent_of
from .persistence import call_with_retry, call_write_once

__all__ = [
    'to_money',
    'percent_of',
    'call_with_retry',
    'call_write_once',
]
