"""Tree renderer using Pillow. Draws a graph snapshot as a PNG."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .models import GraphSnapshot, LinkView, NodeView, depth_badge
from .themes import get_theme, ThemePalette


# --- Font handling ---

def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


# --- Color helpers ---

def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _fade(hex_color: str, background: str, opacity: float) -> str:
    """Blend a color over the background, as if drawn at ``opacity``."""
    r, g, b = _hex_to_rgb(hex_color)
    br, bg, bb = _hex_to_rgb(background)
    r = int(br + (r - br) * opacity)
    g = int(bg + (g - bg) * opacity)
    b = int(bb + (b - bb) * opacity)
    return f"#{r:02x}{g:02x}{b:02x}"


# --- Main renderer ---

class TreeRenderer:
    """Renders a ``GraphSnapshot`` to a PNG image in viewport space."""

    LABEL_OFFSET = 18
    BADGE_OFFSET = 12
    LINK_WIDTH = 1.2
    HIGHLIGHT_LINK_WIDTH = 2.4
    MIN_LABEL_SCALE = 0.45

    def __init__(self, scale: float = 1.0, theme: str = "light"):
        self.scale = scale
        self.theme: ThemePalette = get_theme(theme)
        self.font_label = _load_font(int(13 * scale))
        self.font_badge = _load_bold_font(int(11 * scale))

    def render(self, snapshot: GraphSnapshot, output_path: Optional[str] = None) -> bytes:
        """Render the snapshot to PNG bytes. Optionally save to file."""
        camera = snapshot.camera
        img_width = max(1, int(camera.width * self.scale))
        img_height = max(1, int(camera.height * self.scale))

        img = Image.new("RGB", (img_width, img_height), self.theme.background)
        draw = ImageDraw.Draw(img)

        positions = {
            node.id: node for node in snapshot.nodes
            if node.x is not None and node.y is not None
        }

        # Links first (behind nodes), muted ones underneath highlighted ones
        links = sorted(snapshot.links, key=lambda link: (not link.is_muted(), link.lineage_active or link.hovered))
        for link in links:
            source = positions.get(link.source)
            target = positions.get(link.target)
            if source is None or target is None:
                continue
            self._draw_link(draw, snapshot, link, source, target)

        # Muted nodes first, the selected node last (on top)
        nodes = sorted(positions.values(), key=lambda node: (not node.is_muted(), node.selected))
        for node in nodes:
            self._draw_node(draw, snapshot, node)

        if snapshot.hovered_id and snapshot.hovered_id in positions:
            self._draw_badge(draw, snapshot, positions[snapshot.hovered_id])

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _to_screen(self, snapshot: GraphSnapshot, x: float, y: float) -> tuple[float, float]:
        camera = snapshot.camera
        return ((x * camera.k + camera.x) * self.scale, (y * camera.k + camera.y) * self.scale)

    def _muted(self, color: str) -> str:
        return _fade(color, self.theme.background, self.theme.muted_opacity)

    def _draw_link(self, draw: ImageDraw.ImageDraw, snapshot: GraphSnapshot,
                   link: LinkView, source: NodeView, target: NodeView):
        """Draw one advising edge as a straight line."""
        width = self.LINK_WIDTH
        color = self.theme.link_color
        if link.hovered:
            color = self.theme.link_hover_color
            width = self.HIGHLIGHT_LINK_WIDTH
        elif link.lineage_active:
            color = self.theme.link_lineage_color
            width = self.HIGHLIGHT_LINK_WIDTH
        if link.is_muted():
            color = self._muted(color)

        start = self._to_screen(snapshot, source.x, source.y)
        end = self._to_screen(snapshot, target.x, target.y)
        draw.line([start, end], fill=color, width=max(1, round(width * self.scale)))

    def _draw_node(self, draw: ImageDraw.ImageDraw, snapshot: GraphSnapshot, node: NodeView):
        """Draw a node circle and its name label."""
        k = snapshot.camera.k * self.scale
        cx, cy = self._to_screen(snapshot, node.x, node.y)
        r = node.radius * k

        fill = self.theme.depth_color(node.depth)
        stroke = self.theme.root_stroke if node.is_root else self.theme.node_stroke
        stroke_width = 3 if node.is_root else 1.5
        label_color = self.theme.label_color
        if node.is_muted():
            fill = self._muted(fill)
            stroke = self._muted(stroke)
            label_color = self._muted(label_color)

        if node.selected:
            ring = r + 4 * k
            draw.ellipse(
                [cx - ring, cy - ring, cx + ring, cy + ring],
                outline=self.theme.selected_stroke,
                width=max(1, round(2 * k)),
            )

        draw.ellipse(
            [cx - r, cy - r, cx + r, cy + r],
            fill=fill,
            outline=stroke,
            width=max(1, round(stroke_width * k)),
        )

        if snapshot.camera.k < self.MIN_LABEL_SCALE and not (node.selected or node.hovered):
            return
        label_bbox = self.font_label.getbbox(node.label)
        tw = label_bbox[2] - label_bbox[0]
        draw.text(
            (cx - tw / 2, cy + r + self.LABEL_OFFSET * k - (label_bbox[3] - label_bbox[1])),
            node.label,
            fill=label_color,
            font=self.font_label,
        )

    def _draw_badge(self, draw: ImageDraw.ImageDraw, snapshot: GraphSnapshot, node: NodeView):
        """Draw the generation badge above the hovered node."""
        k = snapshot.camera.k * self.scale
        cx, cy = self._to_screen(snapshot, node.x, node.y)
        text = depth_badge(node.depth)
        bbox = self.font_badge.getbbox(text)
        tw = bbox[2] - bbox[0]
        th = bbox[3] - bbox[1]
        top = cy - node.radius * k - self.BADGE_OFFSET * k - th - 6
        draw.rounded_rectangle(
            [cx - tw / 2 - 6, top, cx + tw / 2 + 6, top + th + 6],
            radius=4,
            fill=self.theme.badge_fill,
        )
        draw.text((cx - tw / 2, top + 3 - bbox[1]), text, fill=self.theme.badge_text, font=self.font_badge)
