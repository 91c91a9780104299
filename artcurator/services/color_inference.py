"""
Keyword-driven color inference and correction.

When no provider reported colors, colors are recovered from the keywords:
first from explicit color words, then from what the scene usually looks
like. A final correction pass patches common misreadings of landscapes.
All functions return new tuples and keep first-seen order.
"""

import logging
from typing import Iterable

from artcurator.services.lexicons import (
    ARTISTIC_COLOR_TERMS,
    COLOR_SYNONYMS,
    CONTEXT_COLORS,
    LANDSCAPE_TERMS,
    SHADE_PATTERNS,
    SKY_TERMS,
    SUMMER_TERM,
)

logger = logging.getLogger(__name__)


class _OrderedColorSet:
    """Insertion-ordered set of color names."""

    def __init__(self, colors: Iterable[str] = ()):
        self._items: dict[str, None] = {}
        for color in colors:
            self.add(color)

    def add(self, color: str) -> None:
        self._items.setdefault(color, None)

    def __contains__(self, color: str) -> bool:
        return color in self._items

    def __len__(self) -> int:
        return len(self._items)

    def to_tuple(self) -> tuple[str, ...]:
        return tuple(self._items)


def extract_colors_from_keywords(keywords: Iterable[str]) -> tuple[str, ...]:
    """Colors named directly by the keywords (synonyms, shade phrases, artistic terms)."""
    colors = _OrderedColorSet()

    for keyword in keywords:
        text = keyword.lower()

        for entry in COLOR_SYNONYMS:
            if any(term in text for term in entry.terms):
                colors.add(entry.label)

        for shade in SHADE_PATTERNS:
            match = shade.pattern.search(text)
            if match:
                colors.add(match.group(1))

        for entry in ARTISTIC_COLOR_TERMS:
            if entry.label in text:
                for color in entry.terms:
                    colors.add(color)

    return colors.to_tuple()


def infer_colors_from_context(keywords: Iterable[str]) -> tuple[str, ...]:
    """Colors typical of the subjects, materials and styles the keywords mention."""
    colors = _OrderedColorSet()

    for keyword in keywords:
        text = keyword.lower()
        for entry in CONTEXT_COLORS:
            if entry.label in text:
                for color in entry.terms:
                    colors.add(color)

    return colors.to_tuple()


def apply_color_correction(keywords: Iterable[str], colors: Iterable[str]) -> tuple[str, ...]:
    """
    Patch implausible colors for natural scenes. Safe to run repeatedly.

    Rules, in order:
    1. A landscape always has green; a landscape with sky also has blue.
    2. A landscape read as only white and yellow gains green and blue
       (white stays for clouds).
    3. A summer landscape keeps green and blue.
    """
    lowered = [k.lower() for k in keywords]
    corrected = _OrderedColorSet(colors)

    is_landscape = any(k in LANDSCAPE_TERMS for k in lowered)
    has_sky = any(k in SKY_TERMS for k in lowered)
    is_summer = any(SUMMER_TERM in k for k in lowered)

    if is_landscape:
        corrected.add("green")
        if has_sky:
            corrected.add("blue")

    if (
        is_landscape
        and "white" in corrected
        and "yellow" in corrected
        and "green" not in corrected
        and "blue" not in corrected
    ):
        logger.debug("Correcting landscape misread as white+yellow")
        corrected.add("green")
        corrected.add("blue")

    if is_summer and is_landscape:
        corrected.add("green")
        corrected.add("blue")

    return corrected.to_tuple()
