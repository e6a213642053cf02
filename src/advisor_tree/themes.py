"""
Theme definitions for advisor-tree renders.

Provides light and dark colour palettes.  Each theme defines colours for:
- Canvas background
- Links (base, lineage, hover)
- Nodes (per-generation fills, root fill and stroke, selection ring)
- Labels and hover badges
- How strongly muted items fade into the background
"""

from __future__ import annotations
from dataclasses import dataclass, field


DEPTH_COLORS = ["#345CFF", "#1CB5E0", "#00B894", "#FDC830", "#F76B1C", "#d853a6"]


@dataclass
class ThemePalette:
    """Colour palette for a theme."""

    # Canvas
    background: str

    # Links
    link_color: str
    link_lineage_color: str
    link_hover_color: str

    # Nodes
    root_fill: str
    root_stroke: str
    node_stroke: str
    selected_stroke: str

    # Text
    label_color: str
    badge_fill: str
    badge_text: str

    # 0 = muted items vanish, 1 = muting has no effect
    muted_opacity: float = 0.18

    depth_colors: list[str] = field(default_factory=lambda: list(DEPTH_COLORS))

    def depth_color(self, depth: int) -> str:
        """Fill for a generation; the root has its own colour."""
        if depth == 0:
            return self.root_fill
        return self.depth_colors[depth % len(self.depth_colors)]


LIGHT_THEME = ThemePalette(
    background="#f7f8fc",
    link_color="#b6bdd3",
    link_lineage_color="#1a3d8f",
    link_hover_color="#F76B1C",
    root_fill="#1a3d8f",
    root_stroke="#143166",
    node_stroke="#ffffff",
    selected_stroke="#111827",
    label_color="#1e1e2e",
    badge_fill="#1e1e2e",
    badge_text="#ffffff",
)


DARK_THEME = ThemePalette(
    background="#11111b",
    link_color="#45475a",
    link_lineage_color="#89b4fa",
    link_hover_color="#fab387",
    root_fill="#1a3d8f",
    root_stroke="#89b4fa",
    node_stroke="#1e1e2e",
    selected_stroke="#cdd6f4",
    label_color="#cdd6f4",
    badge_fill="#cdd6f4",
    badge_text="#11111b",
    muted_opacity=0.22,
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "light": LIGHT_THEME,
    "dark": DARK_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Args:
        name: Theme name ("light" or "dark")

    Returns:
        ThemePalette for the requested theme

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
