#!/usr/bin/env python3
"""
utils.py

Shared helpers for the LED clock:
- Colored terminal output
- Call logging decorator
- Wall-clock helpers
"""
import datetime
import functools
import logging

# Colored logging
from colorama import init as colorama_init, Fore, Style
colorama_init(autoreset=True)

LIT = Fore.RED + Style.BRIGHT
DIM = Style.DIM
RESET = Style.RESET_ALL


# ─── Logging decorator ──────────────────────────────────────────────────────
def log_call(func):
    """
    Decorator that logs entry & exit at DEBUG level only.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logging.debug(f"→ {func.__name__}()")
        result = func(*args, **kwargs)
        logging.debug(f"← {func.__name__}()")
        return result
    return wrapper


# ─── Time ───────────────────────────────────────────────────────────────────
def minute_of_day(moment: datetime.datetime) -> int:
    return moment.hour * 60 + moment.minute
