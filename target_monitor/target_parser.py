"""
Target text parsing.

Target fields come from image-recognition output and are noisy: single
values, ranges ("68-70", "68~70", "68 ～ 70"), stray glyphs. ``parse``
reduces one field to a single comparable threshold; ``extract_target_fields``
pulls the four fields out of a whole recognised text block.
"""
import re

from .models import TargetKind

# Alternate dash/tilde/comma glyphs folded onto one delimiter before splitting
_GLYPH_MAP = str.maketrans({
    "～": "~", "〜": "~", "∼": "~",
    "–": "-", "—": "-", "－": "-", "−": "-", "‐": "-",
    "，": ",", "、": ",",
    "　": " ",
})
_DELIMITERS = re.compile(r"[~,\-\s]+")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def numeric_tokens(raw: str | None) -> list[float]:
    """All numbers in ``raw`` after splitting on ``~ , -`` and whitespace"""
    if raw is None:
        return []
    text = str(raw).translate(_GLYPH_MAP)
    values = []
    for fragment in _DELIMITERS.split(text):
        for token in _NUMBER.findall(fragment):
            values.append(float(token))
    return values


def parse(raw: str | None, kind: TargetKind) -> float | None:
    """
    Single threshold for a target field.

    Downside kinds (support, swap) take the highest number of a range and
    upside kinds (shortTerm, wave) the lowest: the loosest boundary either
    way, so detection errs toward firing.

    >>> parse("68-70", TargetKind.SUPPORT)
    70.0
    >>> parse("68-70", TargetKind.WAVE)
    68.0
    """
    values = numeric_tokens(raw)
    if not values:
        return None
    return max(values) if TargetKind(kind).is_downside else min(values)


# --- recognised-text extraction ---

_CODE = re.compile(r"(?<!\d)(\d{4})(?!\d)")
_VALUE = r"[^0-9]*?([\d.]+(?:\s*[-~～]\s*[\d.]+)?)"
_FIELD_PATTERNS = {
    "support": re.compile(r"支撐" + _VALUE),
    "short_term_profit": re.compile(r"(?:短期|短線|短停)" + _VALUE),
    "wave_profit": re.compile(r"波段" + _VALUE),
    "swap_ref": re.compile(r"換股" + _VALUE),
}


def extract_target_fields(text: str) -> dict[str, str]:
    """
    Pull the stock code and the four target fields out of recognised text.

    Recognition output is collapsed to one line first; anything between a
    label and its number (colons, misread glyphs) is skipped. Missing fields
    are left out of the result.

    Returns:
        Subset of {"code", "support", "short_term_profit", "wave_profit", "swap_ref"}
    """
    clean = re.sub(r"\s+", " ", text or "").strip()
    result: dict[str, str] = {}

    first_label = min(
        (m.start() for m in (p.search(clean) for p in _FIELD_PATTERNS.values()) if m),
        default=len(clean),
    )
    code_match = _CODE.search(clean[:first_label]) or _CODE.search(clean)
    if code_match:
        result["code"] = code_match.group(1)

    for field_name, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(clean)
        if match:
            result[field_name] = re.sub(r"\s+", "", match.group(1)).strip(".")

    return result
