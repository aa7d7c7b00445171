"""
Design style catalog.

The order of DESIGN_STYLES is the generation priority: the first entry is
generated while the user waits, the rest are pre-generated in the background
in this order.
"""

DESIGN_STYLES = [
    "Modern",
    "Scandinavian",
    "Industrial",
    "Bohemian",
    "Minimalist",
    "Coastal",
    "Mid-Century Modern",
    "Japandi",
]

# Short descriptions shown next to each style in the selector
STYLE_DESCRIPTIONS = {
    "Modern": "Clean lines, neutral palette, functional furniture and uncluttered surfaces",
    "Scandinavian": "Light woods, hygge comfort, airy and bright spaces, cozy textiles",
    "Industrial": "Raw materials like metal, brick and exposed wood, urban warehouse aesthetic",
    "Bohemian": "Relaxed layered textures, natural materials, plants and eclectic patterns",
    "Minimalist": "Ultra clean design, minimal ornamentation, simple geometric forms",
    "Coastal": "Breezy whites and blues, natural fibers, light-filled beach house feel",
    "Mid-Century Modern": "1950s-60s inspired tapered legs, organic curves, bold accent colors",
    "Japandi": "Japanese-Scandinavian warm minimalism, natural materials, zen-like calm",
}


def default_style() -> str:
    """The style generated first for every upload"""
    return DESIGN_STYLES[0]


def get_style_description(style: str) -> str:
    return STYLE_DESCRIPTIONS.get(style, "")
