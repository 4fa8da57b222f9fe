"""Small helpers shared across the bot: number formatting, randomness and list encoding."""

from __future__ import annotations

import math
import random
from decimal import Decimal
from typing import Sequence, TypeVar

T = TypeVar("T")

LANGUAGES: dict[str, str] = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "ru": "Russian",
    "cn": "Chinese",
    "pl": "Polish",
}


def float_to_string(num: float) -> str:
    """Format a number in plain decimal notation with the fewest digits that round-trip."""
    value = float(num)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "-0" if math.copysign(1.0, value) < 0 else "0"
    return text


def random_element(items: Sequence[T]) -> tuple[T, int]:
    """Return a randomly chosen element of ``items`` together with its index."""
    if not items:
        raise ValueError(
            "Failed to get a random array element since the provided array was empty."
        )
    index = random.randrange(len(items))
    return items[index], index


def random_int(low: int, high: int) -> int:
    """Return a random integer between ``low`` and ``high``, inclusive on both ends."""
    if high < low:
        raise ValueError(f"invalid range: {low} to {high}")
    return random.randint(low, high)


def join_list(items: Sequence[str]) -> str:
    """Encode a list of strings as a single comma separated string."""
    return ",".join(items)


def split_list(text: str) -> list[str]:
    """Decode a comma separated string; an empty string gives an empty list."""
    if text == "":
        return []
    return text.split(",")


def language_name(code: str) -> str:
    """Return the display name of a language code, or an empty string if it is unknown."""
    return LANGUAGES.get(code, "")