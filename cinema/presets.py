# -*- coding: utf-8 -*-
"""
Shot scales and visual style presets.
Style entries are injected into the image and script prompts.
"""

SHOT_SCALES = [
    "Extreme Close-up",
    "Close-up",
    "Medium Shot",
    "Medium Long Shot",
    "Wide Shot",
    "Over-the-Shoulder",
    "Low Angle",
    "High Angle",
    "Bird's Eye",
    "Dutch Angle",
    "POV",
]

VISUAL_STYLES = {
    "cinematic": {
        "label": "Photorealistic cinema",
        "look": "photorealistic cinematic movie stills, high fidelity, slight film grain",
        "lighting": "motivated practical lighting, consistent colour temperature across panels",
        "palette": "natural grade with gentle teal-orange separation",
        "avoid": ["cartoon rendering", "UI overlays", "frame numbers"],
    },
    "noir": {
        "label": "Film noir",
        "look": "high-contrast black and white, deep shadows, 1940s framing",
        "lighting": "hard key light, venetian-blind shadows, chiaroscuro",
        "palette": "monochrome",
        "avoid": ["saturated colour", "flat lighting"],
    },
    "anime": {
        "label": "Anime feature",
        "look": "cel-shaded animation, clean lineart, painted backgrounds",
        "lighting": "soft bloom, rim light on characters",
        "palette": "vivid but harmonious",
        "avoid": ["photorealism", "3D render look"],
    },
    "donghua": {
        "label": "Donghua",
        "look": "Chinese donghua stylization, cel-shaded, rich fabric texture",
        "lighting": "warm lantern light, filmic contrast",
        "palette": "red, gold and black",
        "avoid": ["photorealism", "western comic rendering"],
    },
    "watercolor": {
        "label": "Watercolour storyboard",
        "look": "loose watercolour washes over pencil sketch",
        "lighting": "soft diffuse daylight",
        "palette": "muted pastel",
        "avoid": ["hard digital edges"],
    },
}


def preset_block(name: str) -> str:
    p = VISUAL_STYLES.get(name or "", {})
    if not p:
        return ""
    lines = ["[VISUAL STYLE PRESET]"]
    for k in ["label", "look", "lighting", "palette", "avoid"]:
        v = p.get(k)
        if v is None:
            continue
        if isinstance(v, (list, tuple)):
            vv = ", ".join(v)
        else:
            vv = str(v)
        lines.append(f"- {k}: {vv}")
    return "\n".join(lines)


def style_line(name: str) -> str:
    """One-line style hint; free-text styles pass through unchanged."""
    p = VISUAL_STYLES.get(name or "")
    if p:
        return f"{p['label']}: {p['look']}"
    return (name or "").strip()
