"""
Directive templates for the studio style kinds.

Turns a style kind, its constraints, optional freeform instructions and the
gender mode into the prompt / negative prompt pair sent to the provider.
The mapping is pure and deterministic: the same inputs always yield the
same directive.
"""

from dataclasses import dataclass

# Appended to every templated studio directive
QUALITY_QUALIFIERS = "8k resolution, studio softbox lighting, photorealistic, sharp focus"

NEGATIVE_PROMPT = (
    "cartoon, illustration, anime, painting, blurry, low quality, "
    "distorted face, extra limbs, watermark"
)

GENERIC_PROMPT = "professional headshot, studio lighting, photorealistic"

# Editing goal per studio
STYLE_GOALS = {
    "portrait": (
        "transform the attire into high-end professional clothing, "
        "preserve face identity, expression and skin tone exactly"
    ),
    "hair": "modify only the hair, keep face, clothing and background unchanged",
    "accessories": (
        "add accessories naturally with realistic shadows and fit, "
        "do not occlude key facial features"
    ),
    "background": (
        "replace the background with a professional setting, "
        "keep the subject cleanly separated"
    ),
    "magic": "maintaining professional quality and identity preservation",
}

GENDER_SUBJECTS = {
    "Gentlemen": "man",
    "Ladies": "woman",
}


@dataclass(frozen=True)
class Directive:
    """Instruction pair handed to the generation provider."""

    prompt: str
    negative_prompt: str


def _constraint(constraints: dict[str, str], key: str, default: str) -> str:
    value = (constraints.get(key) or "").strip()
    return value or default


def _gender_prefix(gender_mode: str | None) -> str:
    if not gender_mode:
        return ""
    subject = GENDER_SUBJECTS.get(gender_mode)
    if subject:
        return f"{gender_mode} collection, {subject} wearing a "
    return f"{gender_mode} collection, subject wearing a "


def _portrait(constraints: dict[str, str], gender_mode: str | None) -> list[str]:
    garment = _constraint(constraints, "outfitType", "business suit")
    color = _constraint(constraints, "outfitColor", "navy")
    parts = [
        "professional corporate portrait",
        f"{_gender_prefix(gender_mode)}{color} {garment}",
    ]
    if constraints.get("shirtStyle"):
        parts.append(f"{constraints['shirtStyle']} shirt")
    if constraints.get("grooming"):
        parts.append(f"{constraints['grooming']} grooming")
    return parts


def _hair(constraints: dict[str, str], gender_mode: str | None) -> list[str]:
    style = _constraint(constraints, "hairStyle", "professional")
    color = _constraint(constraints, "hairColor", "natural")
    parts = ["professional portrait", f"{color} {style} hairstyle"]
    if gender_mode:
        parts.append(f"{gender_mode} styling")
    return parts


def _accessories(constraints: dict[str, str], gender_mode: str | None) -> list[str]:
    items = _constraint(constraints, "accessories", "subtle professional accessories")
    parts = ["professional portrait", f"wearing {items}"]
    if gender_mode:
        parts.append(f"{gender_mode} styling")
    return parts


def _background(constraints: dict[str, str], gender_mode: str | None) -> list[str]:
    environment = _constraint(constraints, "environment", "modern office blur")
    return ["professional portrait", f"{environment} background"]


_TEMPLATES = {
    "portrait": _portrait,
    "hair": _hair,
    "accessories": _accessories,
    "background": _background,
}


def build_directive(
    style_kind: str,
    constraints: dict[str, str] | None = None,
    instructions: str | None = None,
    gender_mode: str | None = None,
) -> Directive:
    """
    Build the directive for a generation request.

    Known studios use their template plus the fixed qualifiers. The
    ``magic`` studio and any unrecognised style kind embed the freeform
    instructions verbatim, or fall back to a fully generic headshot prompt
    when there are none. Magic keeps its editing goal after the
    instructions.
    """
    constraints = constraints or {}
    template = _TEMPLATES.get(style_kind)

    if template is None:
        text = (instructions or "").strip()
        if text:
            prompt = f"professional headshot, {text}, studio lighting"
            if style_kind in STYLE_GOALS:
                prompt = f"{prompt}, {STYLE_GOALS[style_kind]}"
        else:
            prompt = GENERIC_PROMPT
        return Directive(prompt=prompt, negative_prompt=NEGATIVE_PROMPT)

    parts = template(constraints, gender_mode)
    parts.append(STYLE_GOALS[style_kind])
    parts.append(QUALITY_QUALIFIERS)
    return Directive(prompt=", ".join(parts), negative_prompt=NEGATIVE_PROMPT)
