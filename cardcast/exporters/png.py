"""Render header-first matrices as bordered table images with Pillow."""

from __future__ import annotations

import dataclasses as dc
import functools
import io
import math
import typing as typ

from PIL import Image, ImageDraw, ImageFont

if typ.TYPE_CHECKING:
    from cardcast.models import Matrix

type Font = ImageFont.FreeTypeFont | ImageFont.ImageFont

_REGULAR_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "DejaVuSans.ttf",
)
_BOLD_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "DejaVuSans-Bold.ttf",
)


@dc.dataclass(frozen=True, slots=True)
class TableStyle:
    """Geometry and colours of a rendered table."""

    font_size: int = 18
    padding: int = 6
    border: int = 1
    min_column_width: int = 50
    line_spacing: float = 1.4
    title_font_size: int = 24
    title_padding: int = 10
    header_fill: str = "#808080"
    stripe_fill: str = "#d5d5d5"
    row_fill: str = "#ffffff"
    ink: str = "#000000"

    @property
    def line_height(self) -> float:
        """Return the vertical advance of one wrapped line."""
        return self.font_size * self.line_spacing


DEFAULT_STYLE = TableStyle()


@functools.cache
def load_font(size: int, *, bold: bool = False) -> Font:
    """Load a TrueType face with Cyrillic coverage, else Pillow's default."""
    for path in _BOLD_FONTS if bold else _REGULAR_FONTS:
        try:
            return ImageFont.truetype(path, size=size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def wrap_text(
    draw: ImageDraw.ImageDraw, text: str, font: Font, max_width: float
) -> list[str]:
    """Greedily pack whitespace-separated words into lines of ``max_width``."""
    words = text.split()
    if not words:
        return [""]
    lines: list[str] = []
    current = words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        if draw.textlength(candidate, font=font) <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


def _row_fill(index: int, style: TableStyle) -> str:
    if index == 0:
        return style.header_fill
    return style.stripe_fill if index % 2 == 0 else style.row_fill


def draw_table(matrix: Matrix, style: TableStyle = DEFAULT_STYLE) -> Image.Image:
    """Draw ``matrix`` as a table; the first row is the header."""
    if not matrix:
        msg = "cannot draw an empty table"
        raise ValueError(msg)

    font = load_font(style.font_size)
    measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    column_count = max(len(row) for row in matrix)
    cells = [
        [_collapse(row[i]) if i < len(row) else "" for i in range(column_count)]
        for row in matrix
    ]

    widths = [
        max(
            float(style.min_column_width),
            max(measure.textlength(row[i], font=font) for row in cells)
            + 2 * style.padding,
        )
        for i in range(column_count)
    ]
    wrapped = [
        [
            wrap_text(measure, text, font, widths[i] - 2 * style.padding)
            for i, text in enumerate(row)
        ]
        for row in cells
    ]
    min_height = style.line_height + 2 * style.padding
    heights = [
        max(
            min_height,
            max(len(lines) for lines in row) * style.line_height + 2 * style.padding,
        )
        for row in wrapped
    ]

    image = Image.new(
        "RGB",
        (math.ceil(sum(widths)) + style.border, math.ceil(sum(heights)) + style.border),
        style.row_fill,
    )
    draw = ImageDraw.Draw(image)
    y = 0.0
    for row_index, row in enumerate(wrapped):
        x = 0.0
        fill = _row_fill(row_index, style)
        for column_index, lines in enumerate(row):
            width = widths[column_index]
            draw.rectangle(
                (x, y, x + width, y + heights[row_index]),
                fill=fill,
                outline=style.ink,
                width=style.border,
            )
            for line_index, line in enumerate(lines):
                top = y + style.padding + line_index * style.line_height
                draw.text(
                    (x + style.padding, top),
                    line,
                    font=font,
                    fill=style.ink,
                )
            x += width
        y += heights[row_index]
    return image


def add_title(
    image: Image.Image, title: str, style: TableStyle = DEFAULT_STYLE
) -> Image.Image:
    """Return a copy of ``image`` with a centred bold title block above it."""
    font = load_font(style.title_font_size, bold=True)
    left, top, right, bottom = font.getbbox(title)
    text_width = right - left
    block_height = math.ceil(bottom - top + 2 * style.title_padding)
    width = max(image.width, math.ceil(text_width + 2 * style.title_padding))

    canvas = Image.new("RGB", (width, image.height + block_height), style.row_fill)
    canvas.paste(image, (0, block_height))
    draw = ImageDraw.Draw(canvas)
    draw.text(
        ((width - text_width) / 2 - left, style.title_padding - top),
        title,
        font=font,
        fill=style.ink,
    )
    return canvas


def render_table_png(
    matrix: Matrix, *, title: str | None = None, style: TableStyle = DEFAULT_STYLE
) -> bytes:
    """Render ``matrix`` (and an optional title) to PNG bytes."""
    image = draw_table(matrix, style)
    if title:
        image = add_title(image, title, style)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
