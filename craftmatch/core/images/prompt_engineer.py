"""Keyword-based enrichment of furniture descriptions.

Turns a client's free-form description such as:

    "Dębowy stół rozkładany w stylu skandynawskim, 180 cm, czarne metalowe nogi"

into a ``LocalEnhancement``: the detected materials and design style plus
construction notes that are appended to the LLM-refined prompt. Keywords
cover both English and Polish stems so either language is recognised.
"""

from __future__ import annotations

import re

from pydantic import BaseModel


class LocalEnhancement(BaseModel):
    positive_prompt: str
    negative_prompt: str
    technical_notes: str
    materials: list[str]
    style: str


# ---------------------------------------------------------------------------
# Keyword maps
# ---------------------------------------------------------------------------

_MATERIAL_KEYWORDS: dict[str, list[str]] = {
    "wood": ["drewn", "dęb", "dab", "oak", "beech", "buk", "walnut", "orzech", "pine", "sosn", "birch", "ash", "wood"],
    "metal": ["metal", "steel", "stal", "aluminum", "iron", "brass", "chrome"],
    "leather": ["leather", "skór"],
    "fabric": ["fabric", "cloth", "canvas", "linen", "cotton", "velvet", "wool", "tkanin"],
    "plastic": ["plastic", "polymer", "resin", "composite", "tworzyw"],
    "glass": ["glass", "szk"],
    "upholstery": ["upholster", "tapicer", "polster"],
}

_DEFAULT_MATERIALS = ["wood"]

# Checked in order; first match wins
_STYLE_KEYWORDS: list[tuple[str, list[str]]] = [
    ("Scandinavian", ["skandynaw", "scandinavian", "nordic", "minimalist", "simple", "clean"]),
    ("Modern", ["modern", "contemporary", "nowoczesn"]),
    ("Industrial", ["industrial", "industrialn", "loft"]),
    ("Classic", ["classic", "traditional", "vintage", "antique", "klasyczn"]),
    ("Rustic", ["rustic", "rustykaln", "country", "wiejsk"]),
    ("Luxury", ["luxury", "premium", "high-end", "ekskluzyw"]),
]

_DEFAULT_STYLE = "Contemporary"

_MATERIAL_PHRASES: dict[str, str] = {
    "wood": "solid wood construction with visible grain and natural finish",
    "metal": "precision metal components with clean welds and hardware",
    "leather": "high-quality leather with visible stitching and patina",
    "fabric": "premium upholstery with detailed fabric texture visible",
    "glass": "clear glass with clean edges",
}

_PRECISION_PHRASES = [
    "precise measurements and proportions",
    "professional construction methods clearly visible",
    "joinery and connection details prominent",
]

_PHOTOGRAPHY_PHRASES = [
    "professional photography, studio lighting, soft shadows",
    "neutral background",
    "high resolution, 4K quality, photorealistic render",
    "optimal angle for design evaluation",
]

_NEGATIVE_PHRASES = [
    "blurry, out of focus",
    "low quality, poor resolution",
    "cartoon, illustration, sketch, drawing",
    "deformed, distorted, ugly",
    "oversaturated colors",
    "poor lighting, dark shadows",
    "cluttered background",
    "unrealistic materials",
    "impossible geometry",
    "3D render artifacts",
    "watermarks, text, logos",
    "partially cut off",
    "wrong proportions",
]

_DIMENSION_RE = re.compile(r"\b\d+\s*(cm|mm|inch|in|m|meter)\b", re.IGNORECASE)
_DIMENSION_WORDS_RE = re.compile(r"width|height|length|size|dimension|szeroko|wysoko|długo|wymiar", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_materials(description: str) -> list[str]:
    text = description.lower()
    found = [
        material
        for material, keywords in _MATERIAL_KEYWORDS.items()
        if any(k in text for k in keywords)
    ]
    return found or list(_DEFAULT_MATERIALS)


def identify_style(description: str) -> str:
    text = description.lower()
    for style, keywords in _STYLE_KEYWORDS:
        if any(k in text for k in keywords):
            return style
    return _DEFAULT_STYLE


def mentions_dimensions(description: str) -> bool:
    return bool(_DIMENSION_RE.search(description) or _DIMENSION_WORDS_RE.search(description))


def build_technical_notes(description: str, materials: list[str], style: str) -> str:
    notes: list[str] = []
    if "wood" in materials:
        notes.append("- Wood construction: show grain patterns and joinery details")
    if "metal" in materials:
        notes.append("- Metal components: emphasize welding and connection details")
    if "leather" in materials or "fabric" in materials:
        notes.append("- Upholstery visible: show stitching and material texture")
    notes.append(f"- {style} style: appropriate proportions and details")
    notes.append("- Professional photography angle to assess quality")
    notes.append("- Clear view of construction methods and joints")
    notes.append("- Realistic materials and finishes")
    if mentions_dimensions(description):
        notes.append("- Maintain accurate proportions based on dimensions")
    return "\n".join(notes)


def build_positive_prompt(description: str, materials: list[str], style: str) -> str:
    parts = [description, f"{style} design style"]
    parts.extend(_MATERIAL_PHRASES[m] for m in materials if m in _MATERIAL_PHRASES)
    parts.extend(_PRECISION_PHRASES)
    parts.extend(_PHOTOGRAPHY_PHRASES)
    return ", ".join(parts)


def build_negative_prompt() -> str:
    return ", ".join(_NEGATIVE_PHRASES)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def enhance_description(description: str) -> LocalEnhancement:
    """Analyse a furniture description without calling any external service."""
    text = (description or "").strip()
    materials = extract_materials(text)
    style = identify_style(text)
    return LocalEnhancement(
        positive_prompt=build_positive_prompt(text, materials, style),
        negative_prompt=build_negative_prompt(),
        technical_notes=build_technical_notes(text, materials, style),
        materials=materials,
        style=style,
    )


def llm_brief(description: str, enhancement: LocalEnhancement) -> str:
    """The text sent to the LLM for refinement."""
    return (
        f"{description}\n\nDesign context: {enhancement.style} style, "
        f"Materials: {', '.join(enhancement.materials)}"
    )
