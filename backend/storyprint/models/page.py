"""Print page geometry — templates, units, and the canvas size they imply."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PageSizeTemplate(str, Enum):
    A4 = "A4"
    A3 = "A3"
    A2 = "A2"
    A1 = "A1"
    A0 = "A0"
    B4 = "B4"
    B3 = "B3"
    B2 = "B2"
    B1 = "B1"


class SizeUnit(str, Enum):
    MM = "mm"
    CM = "cm"
    INCH = "inch"


class PageOrientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


# (width, height) in millimetres, portrait
PAGE_SIZE_TEMPLATES: dict[PageSizeTemplate, tuple[float, float]] = {
    PageSizeTemplate.A4: (210, 297),
    PageSizeTemplate.A3: (297, 420),
    PageSizeTemplate.A2: (420, 594),
    PageSizeTemplate.A1: (594, 841),
    PageSizeTemplate.A0: (841, 1189),
    PageSizeTemplate.B4: (257, 364),
    PageSizeTemplate.B3: (364, 515),
    PageSizeTemplate.B2: (515, 728),
    PageSizeTemplate.B1: (728, 1030),
}

_MM_PER_UNIT = {SizeUnit.MM: 1.0, SizeUnit.CM: 10.0, SizeUnit.INCH: 25.4}

# CSS reference pixel: 96 px per inch
MM_TO_PX = 3.779527559
MIN_CANVAS_PX = 1000.0


def convert_unit(value: float, from_unit: SizeUnit, to_unit: SizeUnit) -> float:
    return value * _MM_PER_UNIT[from_unit] / _MM_PER_UNIT[to_unit]


class PageSizeSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: str = "template"  # "template" or "custom"
    template: PageSizeTemplate | None = PageSizeTemplate.A3
    custom_width: float | None = Field(default=None, alias="customWidth")
    custom_height: float | None = Field(default=None, alias="customHeight")
    unit: SizeUnit = SizeUnit.MM
    orientation: PageOrientation = PageOrientation.PORTRAIT


class MarginSettings(BaseModel):
    top: float = 10.0
    right: float = 10.0
    bottom: float = 10.0
    left: float = 10.0


def page_size_mm(page: PageSizeSettings) -> tuple[float, float]:
    """Page (width, height) in millimetres."""
    if page.mode == "template" and page.template is not None:
        w, h = PAGE_SIZE_TEMPLATES[page.template]
        if page.orientation == PageOrientation.LANDSCAPE:
            return (float(h), float(w))
        return (float(w), float(h))
    width = page.custom_width if page.custom_width is not None else 1116.0
    height = page.custom_height if page.custom_height is not None else 800.0
    return (
        convert_unit(width, page.unit, SizeUnit.MM),
        convert_unit(height, page.unit, SizeUnit.MM),
    )


def canvas_size(page: PageSizeSettings, margins: MarginSettings) -> tuple[float, float]:
    """Drawable canvas in px: page minus margins, never below MIN_CANVAS_PX."""
    width_mm, height_mm = page_size_mm(page)
    width = (width_mm - margins.left - margins.right) * MM_TO_PX
    height = (height_mm - margins.top - margins.bottom) * MM_TO_PX
    return (max(MIN_CANVAS_PX, width), max(MIN_CANVAS_PX, height))
