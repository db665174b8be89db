"""Render the closing title card with OpenCV."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

LOG = logging.getLogger("stopmotion")

FONT = cv2.FONT_HERSHEY_DUPLEX
MAX_TEXT_WIDTH_RATIO = 0.9


def hex_to_bgr(value: str) -> tuple[int, int, int]:
    """Parse ``#rgb`` / ``#rrggbb`` into an OpenCV BGR tuple."""
    raw = value.strip().lstrip("#")
    if len(raw) == 3:
        raw = "".join(ch * 2 for ch in raw)
    if len(raw) != 6:
        raise ValueError(f"Unsupported color: {value!r}")
    r, g, b = (int(raw[i : i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


@dataclass(frozen=True)
class OpenCVTitleRenderer:
    """Centered single-line text on a solid background."""

    text_color: str = "#ffffff"
    bg_color: str = "#222222"

    def render(self, text: str, width: int, height: int, extension: str = "jpg") -> bytes:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid title card size: {width}x{height}")

        img = np.zeros((height, width, 3), dtype=np.uint8)
        img[:] = hex_to_bgr(self.bg_color)

        scale = max(0.5, height / 600.0)
        thickness = max(1, int(round(scale * 1.5)))
        (text_w, text_h), baseline = cv2.getTextSize(text, FONT, scale, thickness)
        max_w = width * MAX_TEXT_WIDTH_RATIO
        if text_w > max_w:
            scale *= max_w / text_w
            thickness = max(1, int(round(scale * 1.5)))
            (text_w, text_h), baseline = cv2.getTextSize(text, FONT, scale, thickness)

        x = int((width - text_w) / 2)
        y = int((height + text_h) / 2)
        cv2.putText(
            img, text, (x, y), FONT, scale, hex_to_bgr(self.text_color), thickness, cv2.LINE_AA,
        )

        ok, encoded = cv2.imencode(f".{extension.lstrip('.')}", img)
        if not ok:
            raise RuntimeError(f"OpenCV could not encode title card as {extension}")
        LOG.debug("Title card rendered at %dx%d (scale %.2f)", width, height, scale)
        return encoded.tobytes()
