import pytest

from artcurator.services.color_inference import (
    apply_color_correction,
    extract_colors_from_keywords,
    infer_colors_from_context,
)
from artcurator.services.ensemble_combiner import resolve_colors
from artcurator.services.lexicons import CONTEXT_COLORS


def test_landscape_misread_as_white_and_yellow_is_corrected():
    corrected = apply_color_correction(["landscape", "cloudy", "field"], ["white", "yellow"])

    assert {"green", "blue", "white"} <= set(corrected)
    assert set(corrected) != {"white", "yellow"}


def test_landscape_without_sky_only_gains_green():
    assert set(apply_color_correction(["grass"], ["red"])) == {"red", "green"}


def test_summer_landscape_gains_green_and_blue():
    assert set(apply_color_correction(["summer afternoon", "pasture"], [])) == {"green", "blue"}


def test_landscape_terms_match_exactly():
    # "landscape painting" is not the bare keyword
    assert apply_color_correction(["landscape painting"], ["red"]) == ("red",)


@pytest.mark.parametrize("keywords,colors", [
    (["landscape", "cloudy", "field"], ["white", "yellow"]),
    (["mountain", "sky"], ["gray"]),
    (["summer", "lawn", "sky"], []),
    (["portrait"], ["pink", "brown"]),
])
def test_correction_is_idempotent(keywords, colors):
    once = apply_color_correction(keywords, colors)
    assert apply_color_correction(keywords, once) == once


def test_backfill_from_synonyms_and_shades():
    assert set(extract_colors_from_keywords(["navy coat", "light green"])) == {"blue", "green"}


def test_backfill_from_artistic_terms():
    assert set(extract_colors_from_keywords(["sepia"])) == {"brown", "yellow"}
    assert set(extract_colors_from_keywords(["monochromatic"])) == {"black", "white", "gray"}


@pytest.mark.parametrize("entry", CONTEXT_COLORS, ids=lambda e: e.label)
def test_every_context_entry_contributes_its_colors(entry):
    assert set(entry.terms) <= set(infer_colors_from_context([entry.label]))


def test_reported_colors_suppress_inference():
    assert resolve_colors(("mountain",), ("red",)) == ("red",)


def test_keyword_colors_win_over_context():
    assert resolve_colors(("crimson", "mountain"), ()) == ("red",)
