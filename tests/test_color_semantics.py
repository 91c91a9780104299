import pytest

from artcurator.services.color_semantics import (
    DEFAULT_PALETTE_SUMMARY,
    PaletteSwatch,
    brightness,
    classify_harmony,
    color_bucket,
    color_name_from_hex,
    contrast,
    hex_to_rgb,
    hue,
    is_cool,
    is_warm,
    palette_keywords,
    saturation,
    summarize_palette,
)


def test_color_bucket_decision_table():
    assert color_name_from_hex("#000000") == "black"
    assert color_name_from_hex("#FF8000") == "orange"
    assert color_name_from_hex("#ffffff") == "white"
    assert color_name_from_hex("#808080") == "gray"
    assert color_name_from_hex("#b4b4b4") == "light gray"
    assert color_name_from_hex("#ff0000") == "red"
    assert color_name_from_hex("#80ff00") == "yellow"
    assert color_name_from_hex("#00ff80") == "green"
    assert color_name_from_hex("#0080ff") == "blue"
    assert color_name_from_hex("#8000ff") == "purple"


def test_color_bucket_grayscale_uses_brightest_channel():
    # Spread 29 is still grayscale
    assert color_bucket(20, 30, 49) == "black"
    assert color_bucket(25, 30, 50) == "gray"
    assert color_bucket(230, 230, 250) == "white"


def test_hex_to_rgb_accepts_short_form_and_rejects_garbage():
    assert hex_to_rgb("#fff") == (255, 255, 255)
    assert hex_to_rgb("2c5aa0") == (44, 90, 160)
    with pytest.raises(ValueError):
        hex_to_rgb("#12345")
    with pytest.raises(ValueError):
        hex_to_rgb("#zzzzzz")


def test_hue_brightness_saturation():
    assert hue("#ff0000") == 0
    assert hue("#00ff00") == 120
    assert hue("#0000ff") == 240
    assert hue("#ff00ff") == 300
    assert hue("#777777") == 0

    assert brightness("#000000") == 0
    assert brightness("#ffffff") == 100
    assert saturation("#ff0000") == 100
    assert saturation("#000000") == 0
    assert contrast("#000000", "#ffffff") == 100


def test_warm_and_cool_ranges():
    assert is_warm("#ff8000")
    assert not is_cool("#ff8000")
    assert is_cool("#0000ff")
    assert not is_warm("#0000ff")
    assert not is_warm("#00ff00") and not is_cool("#00ff00")


def test_harmony_classification():
    red = PaletteSwatch("#ff0000", 50)
    cyan = PaletteSwatch("#00ffff", 50)
    green = PaletteSwatch("#00ff00", 50)
    dark_red = PaletteSwatch("#800000", 50)

    assert classify_harmony([red, dark_red]) == "monochromatic"
    assert classify_harmony([red, cyan]) == "complementary"
    assert classify_harmony([red, green]) == "triadic"


def test_summarize_palette():
    assert summarize_palette([]) == DEFAULT_PALETTE_SUMMARY

    single = summarize_palette([PaletteSwatch("#ff0000", 100)])
    assert single.contrast == 50
    assert single.saturation == 100
    assert single.temperature == "warm"

    summary = summarize_palette([PaletteSwatch("#000000", 50), PaletteSwatch("#ffffff", 50)])
    assert summary.brightness == 50
    assert summary.contrast == 100


def test_palette_keywords():
    swatches = [PaletteSwatch("#0000ff", 60, "Deep Blue"), PaletteSwatch("#000080", 40)]
    summary = summarize_palette(swatches)
    keywords = palette_keywords(summary, swatches)

    assert keywords[0] == "deep-blue"
    assert "cool-tones" in keywords
    assert "dark" in keywords
    assert "vibrant" in keywords
    assert f"{summary.harmony}-harmony" in keywords
