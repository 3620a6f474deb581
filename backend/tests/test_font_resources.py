from __future__ import annotations

import pytest
from PyPDF2.generic import ArrayObject, DictionaryObject, NameObject, NumberObject

from pdfsurgeon.services.layout.font_resources import (
    build_font_decoder,
    encode_win_ansi,
    glyph_to_unicode,
    parse_tounicode_cmap,
    resolve_standard_font,
    standard_font_for,
)
from pdfsurgeon.services.layout.metrics import AverageGlyphMetrics, GlyphTableMetrics, get_metrics_provider
from pdfsurgeon.utils.exceptions import FontResolutionFailure, UnsupportedEncoding


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Helvetica", "Helvetica"),
        ("/Times-Bold", "Times-Bold"),
        ("ABCDEF+ArialMT", "Helvetica"),
        ("Courier New", "Courier"),
        ("helv", "Helvetica"),
        ("tiro", "Times-Roman"),
    ],
)
def test_standard_font_aliases(name, expected):
    assert resolve_standard_font(name) == expected


def test_unknown_fonts_do_not_resolve():
    with pytest.raises(FontResolutionFailure):
        resolve_standard_font("NoSuchFont")
    with pytest.raises(FontResolutionFailure):
        resolve_standard_font(None)
    assert standard_font_for("ZapfDingbats") is None


def test_tounicode_cmap_parses_chars_and_ranges():
    cmap_source = b"""
    begincmap
    1 begincodespacerange <0000> <FFFF> endcodespacerange
    2 beginbfchar
    <0003> <0020>
    <0011> <0048>
    endbfchar
    2 beginbfrange
    <0044> <0046> <0061>
    <0050> <0051> [<0078> <0079>]
    endbfrange
    endcmap
    """
    cmap, lengths = parse_tounicode_cmap(cmap_source)

    assert lengths == (2,)
    assert cmap[b"\x00\x11"] == "H"
    assert cmap[b"\x00\x03"] == " "
    assert [cmap[bytes([0, code])] for code in (0x44, 0x45, 0x46)] == ["a", "b", "c"]
    assert cmap[b"\x00\x51"] == "y"


def test_differences_override_base_encoding():
    encoding = DictionaryObject()
    encoding[NameObject("/BaseEncoding")] = NameObject("/WinAnsiEncoding")
    encoding[NameObject("/Differences")] = ArrayObject([NumberObject(65), NameObject("/Eacute"), NameObject("/uni263A")])
    font = DictionaryObject()
    font[NameObject("/Subtype")] = NameObject("/Type1")
    font[NameObject("/BaseFont")] = NameObject("/Helvetica")
    font[NameObject("/Encoding")] = encoding

    decoder = build_font_decoder("/F1", font)

    assert decoder.decode(b"B") == "☺"
    assert decoder.decode(b"\x80") == "€"
    with pytest.raises(UnsupportedEncoding):
        decoder.decode(b"A")


def test_type0_without_tounicode_is_unsupported():
    font = DictionaryObject()
    font[NameObject("/Subtype")] = NameObject("/Type0")
    font[NameObject("/BaseFont")] = NameObject("/ABCDEF+Custom")

    decoder = build_font_decoder("/F2", font)

    with pytest.raises(UnsupportedEncoding):
        decoder.decode(b"\x00\x01")


def test_glyph_names_map_to_unicode():
    assert glyph_to_unicode("A") == "A"
    assert glyph_to_unicode("/space") == " "
    assert glyph_to_unicode("uni00E9") == "é"
    assert glyph_to_unicode("one.oldstyle") == "1"
    assert glyph_to_unicode("g123") is None


def test_win_ansi_encoding_rejects_unrepresentable_text():
    assert encode_win_ansi("café €") == b"caf\xe9 \x80"
    with pytest.raises(UnsupportedEncoding):
        encode_win_ansi("中文", "Helvetica")


def test_average_metrics_depend_on_family():
    metrics = AverageGlyphMetrics()
    assert metrics.width("abcd", "Helvetica", 10) == pytest.approx(20.0)
    assert metrics.width("abcd", "Courier", 10) == pytest.approx(24.0)
    assert metrics.width("abcd", "Times-Roman", 10) == pytest.approx(18.0)
    assert metrics.width("", "Helvetica", 10) == 0.0


def test_glyph_table_metrics_fall_back_for_unknown_fonts():
    metrics = GlyphTableMetrics()
    assert metrics.width("iiii", "Helvetica", 10) < metrics.width("WWWW", "Helvetica", 10)
    assert metrics.width("abcd", "SomeEmbeddedFont", 10) == pytest.approx(20.0)


def test_metrics_provider_selected_from_config(testing_config):
    class _Config:
        METRICS_PROVIDER = "glyph_table"

    assert isinstance(get_metrics_provider(_Config()), GlyphTableMetrics)
    assert isinstance(get_metrics_provider(testing_config), AverageGlyphMetrics)
