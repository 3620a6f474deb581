from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ...models.text import FontRef
from ...utils.exceptions import FontResolutionFailure, UnsupportedEncoding
from ...utils.logging import get_logger

logger = get_logger(__name__)

# PostScript name -> PyMuPDF short name. Symbol and ZapfDingbats are left out
# because they cannot carry WinAnsi text.
STANDARD_FONTS: Dict[str, str] = {
    "Helvetica": "helv",
    "Helvetica-Oblique": "heit",
    "Helvetica-Bold": "hebo",
    "Helvetica-BoldOblique": "hebi",
    "Times-Roman": "tiro",
    "Times-Italic": "tiit",
    "Times-Bold": "tibo",
    "Times-BoldItalic": "tibi",
    "Courier": "cour",
    "Courier-Oblique": "coit",
    "Courier-Bold": "cobo",
    "Courier-BoldOblique": "cobi",
}

_ALIASES: Dict[str, str] = {
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "arialmt": "Helvetica",
    "helvetica-italic": "Helvetica-Oblique",
    "arial-italicmt": "Helvetica-Oblique",
    "arial-boldmt": "Helvetica-Bold",
    "arial,bold": "Helvetica-Bold",
    "times": "Times-Roman",
    "timesnewroman": "Times-Roman",
    "times new roman": "Times-Roman",
    "timesnewromanpsmt": "Times-Roman",
    "timesnewromanps-boldmt": "Times-Bold",
    "timesnewromanps-italicmt": "Times-Italic",
    "courier": "Courier",
    "courier new": "Courier",
    "couriernew": "Courier",
    "couriernewpsmt": "Courier",
    "courier-italic": "Courier-Oblique",
}

_LOOKUP: Dict[str, str] = {}
for _name, _short in STANDARD_FONTS.items():
    _LOOKUP[_name.lower()] = _name
    _LOOKUP[_short] = _name
_LOOKUP.update(_ALIASES)

WIN_ANSI_CODEC = "cp1252"

_ENCODING_CODECS = {
    "WinAnsiEncoding": "cp1252",
    "MacRomanEncoding": "mac_roman",
    "StandardEncoding": "latin-1",
    "PDFDocEncoding": "latin-1",
}

# Subset of the Adobe Glyph List covering what Differences arrays use in practice
_GLYPH_NAMES: Dict[str, str] = {
    "space": " ", "exclam": "!", "quotedbl": '"', "numbersign": "#", "dollar": "$",
    "percent": "%", "ampersand": "&", "quotesingle": "'", "quoteright": "’",
    "quoteleft": "‘", "parenleft": "(", "parenright": ")", "asterisk": "*",
    "plus": "+", "comma": ",", "hyphen": "-", "period": ".", "slash": "/",
    "zero": "0", "one": "1", "two": "2", "three": "3", "four": "4", "five": "5",
    "six": "6", "seven": "7", "eight": "8", "nine": "9", "colon": ":",
    "semicolon": ";", "less": "<", "equal": "=", "greater": ">", "question": "?",
    "at": "@", "bracketleft": "[", "backslash": "\\", "bracketright": "]",
    "asciicircum": "^", "underscore": "_", "grave": "`", "braceleft": "{",
    "bar": "|", "braceright": "}", "asciitilde": "~", "bullet": "•",
    "endash": "–", "emdash": "—", "quotedblleft": "“",
    "quotedblright": "”", "ellipsis": "…", "fi": "fi", "fl": "fl",
    "ff": "ff", "ffi": "ffi", "ffl": "ffl", "nbspace": " ", "degree": "°",
    "copyright": "©", "registered": "®", "trademark": "™",
    "eacute": "é", "egrave": "è", "agrave": "à", "ccedilla": "ç",
    "udieresis": "ü", "odieresis": "ö", "adieresis": "ä",
    "germandbls": "ß", "minus": "−", "periodcentered": "·",
}

_UNI_PATTERN = re.compile(r"^uni([0-9A-Fa-f]{4})$")
_U_PATTERN = re.compile(r"^u([0-9A-Fa-f]{4,6})$")


def resolve_standard_font(name: Optional[str]) -> str:
    """Map a font name onto one of the standard fonts or raise."""
    if not name:
        raise FontResolutionFailure(name)
    key = name.strip().lstrip("/")
    if len(key) > 7 and key[6] == "+":
        key = key[7:]
    resolved = _LOOKUP.get(key.lower())
    if resolved is None:
        raise FontResolutionFailure(name)
    return resolved


def standard_font_for(name: Optional[str]) -> Optional[str]:
    try:
        return resolve_standard_font(name)
    except FontResolutionFailure:
        return None


def encode_win_ansi(text: str, font: Optional[str] = None) -> bytes:
    try:
        return text.encode(WIN_ANSI_CODEC)
    except UnicodeEncodeError as exc:
        raise UnsupportedEncoding(font, f"text not representable in WinAnsiEncoding: {exc.object[exc.start:exc.end]!r}") from exc


def glyph_to_unicode(glyph: str) -> Optional[str]:
    name = glyph.lstrip("/")
    if len(name) == 1:
        return name
    if name in _GLYPH_NAMES:
        return _GLYPH_NAMES[name]
    match = _UNI_PATTERN.match(name) or _U_PATTERN.match(name)
    if match:
        return chr(int(match.group(1), 16))
    base = name.split(".", 1)[0]
    if base != name:
        return glyph_to_unicode(base)
    return None


@dataclass
class FontDecoder:
    """Decodes raw string operands shown with one page font resource."""

    ref: FontRef
    cmap: Dict[bytes, str] = field(default_factory=dict)
    code_lengths: Tuple[int, ...] = (1,)
    table: List[Optional[str]] = field(default_factory=list)

    def decode(self, raw: bytes) -> str:
        if not raw:
            return ""
        if self.cmap:
            return self._decode_with_cmap(raw)
        if self.ref.subtype in {"Type0", "Type3"} and not self.table:
            raise UnsupportedEncoding(self.ref.resource, f"{self.ref.subtype} font without ToUnicode map")

        table = self.table or _codec_table("latin-1")
        chars: List[str] = []
        for byte in raw:
            char = table[byte]
            if char is None:
                raise UnsupportedEncoding(self.ref.resource, f"glyph for code {byte} has no Unicode mapping")
            chars.append(char)
        return "".join(chars)

    def _decode_with_cmap(self, raw: bytes) -> str:
        result: List[str] = []
        index = 0
        lengths = sorted(self.code_lengths, reverse=True)
        while index < len(raw):
            for length in lengths:
                chunk = raw[index : index + length]
                if len(chunk) == length and chunk in self.cmap:
                    result.append(self.cmap[chunk])
                    index += length
                    break
            else:
                if self.ref.subtype == "Type0":
                    raise UnsupportedEncoding(
                        self.ref.resource,
                        f"code {raw[index:index + lengths[-1]].hex()} missing from ToUnicode map",
                    )
                fallback = self.table or _codec_table("latin-1")
                char = fallback[raw[index]]
                result.append(char if char is not None else "")
                index += 1
        return "".join(result)


def load_page_fonts(page: Any) -> Dict[str, FontDecoder]:
    """Build decoders for every font in a PyPDF2 page's resources."""
    decoders: Dict[str, FontDecoder] = {}
    fonts = _font_dictionary(page)
    for font_key, font_obj in fonts.items():
        name = str(font_key)
        try:
            font = font_obj.get_object() if hasattr(font_obj, "get_object") else font_obj
            decoders[name] = build_font_decoder(name, font)
        except Exception:
            logger.warning("Failed to read font resource", font=name, exc_info=True)
    return decoders


def build_font_decoder(resource: str, font: Any) -> FontDecoder:
    subtype = _name(font.get("/Subtype"))
    base_font = _name(font.get("/BaseFont"))
    encoding_obj = font.get("/Encoding")
    if hasattr(encoding_obj, "get_object"):
        encoding_obj = encoding_obj.get_object()

    encoding_name: Optional[str] = None
    differences: Dict[int, str] = {}
    if isinstance(encoding_obj, dict):
        encoding_name = _name(encoding_obj.get("/BaseEncoding"))
        differences = _parse_differences(encoding_obj.get("/Differences"))
    elif encoding_obj is not None:
        encoding_name = _name(encoding_obj)

    ref = FontRef(resource=resource, base_font=base_font, subtype=subtype, encoding=encoding_name)
    decoder = FontDecoder(ref=ref)

    to_unicode = font.get("/ToUnicode")
    if to_unicode is not None:
        try:
            stream = to_unicode.get_object()
            cmap, lengths = parse_tounicode_cmap(stream.get_data())
            decoder.cmap = cmap
            decoder.code_lengths = lengths
        except Exception:
            logger.warning("Unreadable ToUnicode map", font=resource, exc_info=True)

    if subtype != "Type0":
        codec = _ENCODING_CODECS.get(encoding_name or "", None)
        if codec is None and subtype == "Type3" and not differences:
            return decoder
        table = list(_codec_table(codec or ("cp1252" if encoding_name is None and _is_standard(base_font) else "latin-1")))
        for code, glyph in differences.items():
            if 0 <= code < 256:
                table[code] = glyph_to_unicode(glyph)
        decoder.table = table
    return decoder


def parse_tounicode_cmap(stream: bytes) -> Tuple[Dict[bytes, str], Tuple[int, ...]]:
    """Parse ``bfchar``/``bfrange`` sections of a ToUnicode CMap."""
    cmap: Dict[bytes, str] = {}
    lengths = set()
    text = stream.decode("latin-1", errors="ignore")

    for block in re.findall(r"beginbfchar(.*?)endbfchar", text, re.S):
        tokens = _cmap_tokens(block)
        for src, dst in zip(tokens[0::2], tokens[1::2]):
            if not isinstance(src, bytes) or not isinstance(dst, bytes):
                continue
            cmap[src] = _utf16(dst)
            lengths.add(len(src))

    for block in re.findall(r"beginbfrange(.*?)endbfrange", text, re.S):
        tokens = _cmap_tokens(block)
        index = 0
        while index + 2 < len(tokens):
            start, end, dest = tokens[index], tokens[index + 1], tokens[index + 2]
            index += 3
            if not isinstance(start, bytes) or not isinstance(end, bytes):
                continue
            width = len(start)
            lengths.add(width)
            first = int.from_bytes(start, "big")
            last = int.from_bytes(end, "big")
            if isinstance(dest, list):
                for offset, entry in enumerate(dest):
                    if first + offset > last:
                        break
                    cmap[(first + offset).to_bytes(width, "big")] = _utf16(entry)
            elif isinstance(dest, bytes):
                base = int.from_bytes(dest, "big")
                for offset in range(last - first + 1):
                    value = (base + offset).to_bytes(max(len(dest), 2), "big")
                    cmap[(first + offset).to_bytes(width, "big")] = _utf16(value)

    return cmap, tuple(sorted(lengths)) or (1,)


def _cmap_tokens(block: str) -> List[Any]:
    tokens: List[Any] = []
    stack: List[List[Any]] = []
    for match in re.finditer(r"<([0-9A-Fa-f\s]*)>|\[|\]", block):
        token = match.group(0)
        if token == "[":
            stack.append([])
            continue
        if token == "]":
            if stack:
                finished = stack.pop()
                (stack[-1] if stack else tokens).append(finished)
            continue
        hex_digits = re.sub(r"\s", "", match.group(1))
        if len(hex_digits) % 2:
            hex_digits += "0"
        value = bytes.fromhex(hex_digits)
        (stack[-1] if stack else tokens).append(value)
    return tokens


def _utf16(data: bytes) -> str:
    if len(data) % 2:
        data = b"\x00" + data
    return data.decode("utf-16-be", errors="ignore")


def _parse_differences(differences: Any) -> Dict[int, str]:
    mapping: Dict[int, str] = {}
    if differences is None:
        return mapping
    if hasattr(differences, "get_object"):
        differences = differences.get_object()
    code = 0
    for entry in differences:
        if hasattr(entry, "get_object"):
            entry = entry.get_object()
        if isinstance(entry, (int, float)) and not isinstance(entry, bool):
            code = int(entry)
        else:
            mapping[code] = str(entry).lstrip("/")
            code += 1
    return mapping


def _font_dictionary(page: Any) -> Dict[Any, Any]:
    resources = page.get("/Resources")
    if hasattr(resources, "get_object"):
        resources = resources.get_object()
    if not resources:
        return {}
    fonts = resources.get("/Font")
    if hasattr(fonts, "get_object"):
        fonts = fonts.get_object()
    return dict(fonts.items()) if fonts else {}


def _is_standard(base_font: Optional[str]) -> bool:
    return standard_font_for(base_font) is not None


def _name(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "get_object"):
        value = value.get_object()
    return str(value).lstrip("/")


_CODEC_TABLES: Dict[str, Tuple[Optional[str], ...]] = {}


def _codec_table(codec: str) -> Tuple[Optional[str], ...]:
    table = _CODEC_TABLES.get(codec)
    if table is None:
        entries: List[Optional[str]] = []
        for byte in range(256):
            try:
                entries.append(bytes([byte]).decode(codec))
            except UnicodeDecodeError:
                entries.append(chr(byte))
        table = tuple(entries)
        _CODEC_TABLES[codec] = table
    return table
