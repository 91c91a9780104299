"""
Color semantics: map raw provider colors onto a small named palette and
derive perceptual properties (hue, brightness, saturation, contrast).

Every function here is pure. Brightness, saturation and contrast are on a
0-100 scale so they compare directly with the color preferences kept on
user profiles.
"""

import math
from dataclasses import dataclass

# Named palette produced by color_bucket
PALETTE = (
    "black", "gray", "light gray", "white",
    "red", "orange", "yellow", "green", "blue", "purple",
    "multicolor",
)

# Channel spread below which a color is treated as grayscale
GRAYSCALE_SPREAD = 30

# Upper bounds (exclusive) of the grayscale brightness bands, checked in order
GRAYSCALE_BANDS = (
    (50, "black"),
    (130, "gray"),
    (200, "light gray"),
)

WARM_HUE_RANGES = ((0, 60), (300, 360))
COOL_HUE_RANGE = (180, 300)

# Temperature needs this many percentage points of margin to leave "neutral"
TEMPERATURE_MARGIN = 20


@dataclass(frozen=True)
class PaletteSwatch:
    """One dominant color reported by a palette provider."""

    color: str  # hex, e.g. "#2c5aa0"
    percentage: float  # share of the image, 0-100
    name: str = ""


@dataclass(frozen=True)
class PaletteSummary:
    """Aggregate color properties of an image palette."""

    brightness: int
    saturation: int
    contrast: int
    temperature: str  # warm / cool / neutral
    harmony: str  # monochromatic / analogous / complementary / triadic / split-complementary

    def to_dict(self) -> dict:
        return {
            "brightness": self.brightness,
            "saturation": self.saturation,
            "contrast": self.contrast,
            "temperature": self.temperature,
            "harmony": self.harmony,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaletteSummary":
        return cls(
            brightness=int(data["brightness"]),
            saturation=int(data["saturation"]),
            contrast=int(data["contrast"]),
            temperature=str(data["temperature"]),
            harmony=str(data["harmony"]),
        )


DEFAULT_PALETTE_SUMMARY = PaletteSummary(
    brightness=50,
    saturation=0,
    contrast=0,
    temperature="neutral",
    harmony="monochromatic",
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Parse "#rrggbb" (or "#rgb") into an (r, g, b) tuple of 0-255 ints.

    Raises ValueError for anything else.
    """
    value = hex_color.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except ValueError:
        raise ValueError(f"Invalid hex color: {hex_color!r}") from None


def color_bucket(red: int, green: int, blue: int) -> str:
    """Map an RGB triple to one of the PALETTE names.

    Low-spread colors are grayscale and banded by their brightest channel.
    Otherwise the dominant channel picks the hue family and the other two
    channels decide between its neighbours.
    """
    high = max(red, green, blue)
    low = min(red, green, blue)

    if high - low < GRAYSCALE_SPREAD:
        for upper, name in GRAYSCALE_BANDS:
            if high < upper:
                return name
        return "white"

    if red == high:
        return "orange" if green > blue else "red"
    if green == high:
        return "yellow" if red > blue else "green"
    if blue == high:
        return "purple" if red > green else "blue"

    return "multicolor"


def color_name_from_hex(hex_color: str) -> str:
    return color_bucket(*hex_to_rgb(hex_color))


def hue(hex_color: str) -> int:
    """Hue angle in degrees, 0-359. Grays have hue 0."""
    r, g, b = (channel / 255 for channel in hex_to_rgb(hex_color))
    high = max(r, g, b)
    low = min(r, g, b)
    delta = high - low

    if delta == 0:
        return 0

    if high == r:
        sector = ((g - b) / delta) % 6
    elif high == g:
        sector = (b - r) / delta + 2
    else:
        sector = (r - g) / delta + 4

    return _round_half_up(sector * 60) % 360


def brightness(hex_color: str) -> int:
    """Perceived brightness (ITU-R 601 luma) on a 0-100 scale."""
    r, g, b = hex_to_rgb(hex_color)
    return _round_half_up((r * 299 + g * 587 + b * 114) / 1000 / 255 * 100)


def saturation(hex_color: str) -> int:
    """HSV saturation on a 0-100 scale."""
    r, g, b = hex_to_rgb(hex_color)
    high = max(r, g, b)
    low = min(r, g, b)
    if high == 0:
        return 0
    return _round_half_up((high - low) / high * 100)


def contrast(first: str, second: str) -> int:
    """Brightness difference between two colors, 0-100."""
    return abs(brightness(first) - brightness(second))


def is_warm(hex_color: str) -> bool:
    angle = hue(hex_color)
    return any(lo <= angle <= hi for lo, hi in WARM_HUE_RANGES)


def is_cool(hex_color: str) -> bool:
    lo, hi = COOL_HUE_RANGE
    return lo <= hue(hex_color) <= hi


def _hue_differences(hues: list[int]) -> list[int]:
    differences = []
    for i in range(len(hues) - 1):
        for j in range(i + 1, len(hues)):
            diff = abs(hues[i] - hues[j])
            differences.append(min(diff, 360 - diff))
    return differences


def classify_harmony(swatches: list[PaletteSwatch]) -> str:
    """Name the color-wheel relationship between the palette's hues."""
    differences = _hue_differences([hue(s.color) for s in swatches])

    if all(diff < 30 for diff in differences):
        return "monochromatic"
    if any(150 < diff < 210 for diff in differences):
        return "complementary"
    if any(90 < diff < 150 for diff in differences):
        return "triadic"
    if all(diff < 60 for diff in differences):
        return "analogous"
    return "split-complementary"


def classify_temperature(swatches: list[PaletteSwatch]) -> str:
    warm = sum(s.percentage for s in swatches if is_warm(s.color))
    cool = sum(s.percentage for s in swatches if is_cool(s.color))

    if warm > cool + TEMPERATURE_MARGIN:
        return "warm"
    if cool > warm + TEMPERATURE_MARGIN:
        return "cool"
    return "neutral"


def summarize_palette(swatches: list[PaletteSwatch]) -> PaletteSummary:
    """Percentage-weighted palette properties. An empty palette reads as mid gray."""
    if not swatches:
        return DEFAULT_PALETTE_SUMMARY

    weighted_brightness = sum(brightness(s.color) * s.percentage / 100 for s in swatches)
    weighted_saturation = sum(saturation(s.color) * s.percentage / 100 for s in swatches)

    if len(swatches) < 2:
        max_contrast = 50
    else:
        max_contrast = max(
            contrast(swatches[i].color, swatches[j].color)
            for i in range(len(swatches) - 1)
            for j in range(i + 1, len(swatches))
        )

    return PaletteSummary(
        brightness=_round_half_up(weighted_brightness),
        saturation=_round_half_up(weighted_saturation),
        contrast=max_contrast,
        temperature=classify_temperature(swatches),
        harmony=classify_harmony(swatches),
    )


def palette_keywords(summary: PaletteSummary, swatches: list[PaletteSwatch]) -> list[str]:
    """Descriptive keywords for a palette, in a stable order."""
    keywords = [s.name.lower().replace(" ", "-") for s in swatches if s.name]
    keywords.append(f"{summary.harmony}-harmony")
    keywords.append(f"{summary.temperature}-tones")

    if summary.brightness > 70:
        keywords += ["bright", "luminous"]
    elif summary.brightness < 30:
        keywords += ["dark", "moody"]

    if summary.saturation > 70:
        keywords += ["vibrant", "saturated"]
    elif summary.saturation < 30:
        keywords += ["muted", "desaturated"]

    if summary.contrast > 70:
        keywords += ["high-contrast", "dramatic"]
    elif summary.contrast < 30:
        keywords += ["subtle", "gentle"]

    return keywords
