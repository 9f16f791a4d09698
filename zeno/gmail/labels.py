"""Gmail label helpers — palette snapping and per-category label setup."""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING

from zeno.categories import CategorySet, get_prefixed_name

if TYPE_CHECKING:
    from zeno.gmail.client import UserGmailClient

logger = logging.getLogger(__name__)

# The only (background, text) pairs the Gmail API accepts for labels
GMAIL_ALLOWED_COLORS = [
    ("#fb4c2f", "#ffffff"),  # red
    ("#cc3a21", "#ffffff"),  # dark red
    ("#ffad47", "#ffffff"),  # orange
    ("#fad165", "#000000"),  # yellow
    ("#16a766", "#ffffff"),  # green
    ("#43d692", "#000000"),  # light green
    ("#4a86e8", "#ffffff"),  # blue
    ("#a479e2", "#ffffff"),  # purple
    ("#f691b3", "#000000"),  # pink
    ("#2da2bb", "#ffffff"),  # cyan
    ("#b99aff", "#000000"),  # light purple
    ("#ff7537", "#ffffff"),  # orange red
]

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def _hex_to_rgb(value: str) -> tuple[int, int, int]:
    match = _HEX_RE.match(value or "")
    if not match:
        return (0, 0, 0)
    return tuple(int(g, 16) for g in match.groups())  # type: ignore[return-value]


def closest_gmail_color(hex_color: str) -> dict[str, str]:
    """Snap an arbitrary hex colour to the nearest Gmail label colour (RGB distance)."""
    rgb = _hex_to_rgb(hex_color)
    background, text = min(
        GMAIL_ALLOWED_COLORS,
        key=lambda pair: math.dist(rgb, _hex_to_rgb(pair[0])),
    )
    return {"backgroundColor": background, "textColor": text}


def setup_category_labels(client: UserGmailClient, categories: CategorySet) -> dict[str, str]:
    """Create (or find) a label per enabled category.

    Returns ``{display name: label id}``, the form stored on the user.
    """
    label_ids: dict[str, str] = {}
    for category in categories.enabled:
        if not category.label_enabled:
            continue
        label_name = get_prefixed_name(category.display_name, category.id)
        label_id = client.get_or_create_label(label_name, color=category.color)
        if label_id:
            label_ids[category.display_name] = label_id
        else:
            logger.warning("Could not create label %r", label_name)
    return label_ids
