"""
Static lexicon tables used to interpret analysis keywords.

All tables are tuples of records so they stay immutable and can be
enumerated directly by tests. Declaration order matters: style and mood
classification break ties in favour of the entry declared first.
"""

import re
from typing import NamedTuple


class LexiconEntry(NamedTuple):
    """A label and the terms that vote for it."""

    label: str
    terms: tuple[str, ...]


class ShadePattern(NamedTuple):
    """A "<modifier> <color>" pattern; group 1 is the base color."""

    modifier: str
    pattern: re.Pattern


# ============ Style and mood classification ============

STYLE_LEXICON: tuple[LexiconEntry, ...] = (
    LexiconEntry("abstract", ("abstract", "geometric", "non-representational")),
    LexiconEntry("realistic", ("realistic", "photorealistic", "detailed", "portrait")),
    LexiconEntry("impressionist", ("impressionist", "loose brushwork", "light")),
    LexiconEntry("expressionist", ("expressionist", "emotional", "bold colors")),
    LexiconEntry("classical", ("classical", "renaissance", "traditional")),
    LexiconEntry("modern", ("modern", "contemporary", "minimalist")),
    LexiconEntry("surreal", ("surreal", "dreamlike", "fantastical")),
)
DEFAULT_STYLE = "mixed"

MOOD_LEXICON: tuple[LexiconEntry, ...] = (
    LexiconEntry("serene", ("calm", "peaceful", "serene", "tranquil")),
    LexiconEntry("dramatic", ("dramatic", "intense", "bold", "striking")),
    LexiconEntry("melancholic", ("sad", "melancholic", "somber", "dark")),
    LexiconEntry("joyful", ("bright", "cheerful", "vibrant", "happy")),
    LexiconEntry("mysterious", ("mysterious", "enigmatic", "shadowy")),
)
DEFAULT_MOOD = "neutral"


# ============ Color backfill from keywords ============

COLOR_SYNONYMS: tuple[LexiconEntry, ...] = (
    # Base colors
    LexiconEntry("red", ("red", "crimson", "scarlet", "cherry", "ruby", "burgundy", "maroon", "vermillion")),
    LexiconEntry("blue", ("blue", "azure", "navy", "cobalt", "cerulean", "turquoise", "teal", "cyan",
                          "indigo", "ultramarine")),
    LexiconEntry("green", ("green", "emerald", "jade", "forest", "lime", "mint", "olive", "sage", "viridian")),
    LexiconEntry("yellow", ("yellow", "gold", "amber", "lemon", "canary", "ochre", "saffron", "golden")),
    LexiconEntry("orange", ("orange", "tangerine", "peach", "coral", "salmon", "apricot", "rust", "copper")),
    LexiconEntry("purple", ("purple", "violet", "lavender", "magenta", "plum", "lilac", "amethyst", "mauve")),
    LexiconEntry("pink", ("pink", "rose", "blush", "fuchsia", "hot pink", "dusty rose", "coral pink")),
    LexiconEntry("brown", ("brown", "tan", "beige", "khaki", "sepia", "sienna", "umber", "chocolate", "coffee")),
    LexiconEntry("black", ("black", "ebony", "charcoal", "midnight", "jet", "onyx", "sable")),
    LexiconEntry("white", ("white", "ivory", "cream", "pearl", "snow", "alabaster", "bone", "vanilla")),
    LexiconEntry("gray", ("gray", "grey", "silver", "ash", "slate", "pewter", "steel", "graphite", "dove")),
    # Metallics
    LexiconEntry("gold", ("gold", "golden", "gilded", "aureate")),
    LexiconEntry("silver", ("silver", "silvery", "metallic", "chrome")),
    LexiconEntry("bronze", ("bronze", "brass", "copper")),
)

SHADE_PATTERNS: tuple[ShadePattern, ...] = (
    ShadePattern("light", re.compile(r"light\s*(blue|green|red|yellow|purple|pink|gray)")),
    ShadePattern("dark", re.compile(r"dark\s*(blue|green|red|yellow|purple|pink|gray)")),
    ShadePattern("deep", re.compile(r"deep\s*(blue|green|red|yellow|purple|pink)")),
    ShadePattern("bright", re.compile(r"bright\s*(blue|green|red|yellow|orange|pink)")),
    ShadePattern("pale", re.compile(r"pale\s*(blue|green|red|yellow|pink)")),
    ShadePattern("vivid", re.compile(r"vivid\s*(blue|green|red|yellow|orange|purple|pink)")),
)

# Artistic color terms that imply several colors at once
ARTISTIC_COLOR_TERMS: tuple[LexiconEntry, ...] = (
    LexiconEntry("monochrome", ("black", "white", "gray")),
    LexiconEntry("monochromatic", ("black", "white", "gray")),
    LexiconEntry("sepia", ("brown", "yellow")),
    LexiconEntry("pastel", ("pink", "blue", "green", "yellow", "purple")),
)


# ============ Contextual color inference ============

CONTEXT_COLORS: tuple[LexiconEntry, ...] = (
    # Nature
    LexiconEntry("landscape", ("green", "blue", "brown")),
    LexiconEntry("grass", ("green", "lime")),
    LexiconEntry("lawn", ("green",)),
    LexiconEntry("pasture", ("green",)),
    LexiconEntry("field", ("green", "brown", "yellow")),
    LexiconEntry("countryside", ("green", "blue", "brown")),
    LexiconEntry("rural", ("green", "blue", "brown")),
    LexiconEntry("farmland", ("green", "brown")),
    LexiconEntry("hayfield", ("green", "yellow")),
    LexiconEntry("forest", ("green", "brown", "gray")),
    LexiconEntry("tree", ("green", "brown")),
    LexiconEntry("mountain", ("gray", "brown", "white", "blue")),
    LexiconEntry("ocean", ("blue", "white", "gray")),
    LexiconEntry("sky", ("blue", "white")),
    LexiconEntry("cloud", ("white", "gray")),
    LexiconEntry("cloudy", ("gray", "white")),
    LexiconEntry("fair weather", ("blue", "white")),
    LexiconEntry("sun", ("yellow", "orange")),
    LexiconEntry("sunny", ("yellow", "blue")),
    LexiconEntry("summer", ("green", "blue", "yellow")),
    LexiconEntry("sunset", ("orange", "red", "yellow", "pink")),
    LexiconEntry("sunrise", ("orange", "yellow", "pink")),
    LexiconEntry("flowers", ("red", "pink", "yellow", "purple", "white")),
    LexiconEntry("autumn", ("orange", "red", "yellow", "brown")),
    LexiconEntry("winter", ("white", "blue", "gray")),
    LexiconEntry("spring", ("green", "pink", "yellow")),
    # Objects
    LexiconEntry("fire", ("red", "orange", "yellow")),
    LexiconEntry("water", ("blue", "white")),
    LexiconEntry("sand", ("yellow", "brown")),
    LexiconEntry("stone", ("gray", "brown")),
    LexiconEntry("wood", ("brown",)),
    LexiconEntry("metal", ("silver", "gray")),
    LexiconEntry("gold", ("gold", "yellow")),
    LexiconEntry("blood", ("red",)),
    LexiconEntry("snow", ("white",)),
    LexiconEntry("night", ("black", "blue")),
    LexiconEntry("day", ("yellow", "blue", "white")),
    # Art styles
    LexiconEntry("vintage", ("brown", "yellow", "gray")),
    LexiconEntry("antique", ("brown", "gold", "gray")),
    LexiconEntry("modern", ("black", "white", "gray")),
    LexiconEntry("contemporary", ("black", "white", "gray", "red")),
    LexiconEntry("impressionist", ("blue", "green", "yellow", "pink")),
    LexiconEntry("abstract", ("red", "blue", "yellow", "black", "white")),
    # Materials
    LexiconEntry("fabric", ("blue", "red", "white", "black")),
    LexiconEntry("leather", ("brown", "black")),
    LexiconEntry("glass", ("blue", "green", "white")),
    LexiconEntry("ceramic", ("white", "blue", "brown")),
    LexiconEntry("paper", ("white", "yellow", "brown")),
    # Subjects
    LexiconEntry("portrait", ("pink", "brown", "white")),
    LexiconEntry("architecture", ("gray", "brown", "white")),
)


# ============ Correction rules ============

# Exact keyword matches that mark a natural landscape
LANDSCAPE_TERMS = frozenset({
    "landscape", "grass", "field", "countryside", "rural", "nature", "pasture", "lawn",
})

# Exact keyword matches that mark visible sky
SKY_TERMS = frozenset({"sky", "cloud", "cloudy", "fair weather"})

# Substring that marks a summer scene
SUMMER_TERM = "summer"


# ============ Caption vocabulary ============

CAPTION_VOCABULARY: tuple[str, ...] = (
    # Art movements
    "renaissance", "baroque", "impressionism", "expressionism", "cubism",
    "surrealism", "abstract", "realism", "romanticism", "modernism",
    "postmodern", "contemporary", "classical", "neoclassical",
    # Media
    "oil painting", "watercolor", "acrylic", "digital art", "sketch",
    "charcoal", "pastel", "ink", "mixed media", "collage",
    # Techniques
    "detailed", "highly detailed", "photorealistic", "stylized",
    "minimalist", "maximalist", "geometric", "organic", "fluid",
    # Lighting and mood
    "dramatic lighting", "soft lighting", "natural lighting",
    "moody", "bright", "dark", "warm tones", "cool tones",
    # Composition
    "portrait", "landscape", "still life", "abstract composition",
    "close-up", "wide shot", "symmetrical", "asymmetrical",
)

# Word immediately before an art noun, e.g. "baroque painting" -> "baroque"
CAPTION_ADJECTIVE_PATTERN = re.compile(r"\b\w+(?=\s+(?:painting|art|style|drawing|illustration))")
MAX_CAPTION_ADJECTIVES = 5
