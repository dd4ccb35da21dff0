from __future__ import annotations

from typing import Iterable, Optional, Tuple

from models.label import Label

# Highest priority first. Spam must never be shadowed by a category marker.
LABEL_PRIORITY: Tuple[Tuple[str, Label], ...] = (
    ("SPAM", Label.SPAM),
    ("CATEGORY_PROMOTIONS", Label.PROMOTIONS),
    ("CATEGORY_SOCIAL", Label.SOCIAL),
    ("CATEGORY_UPDATES", Label.UPDATES),
    ("CATEGORY_FORUMS", Label.FORUMS),
    ("IMPORTANT", Label.IMPORTANT),
    ("STARRED", Label.STARRED),
    ("SENT", Label.SENT),
    ("DRAFT", Label.DRAFT),
    ("INBOX", Label.INBOX),
)


def classify(markers: Optional[Iterable[str]]) -> Label:
    """Map Gmail label ids to the single label shown in the feed."""

    present = set(markers or ())
    for marker, label in LABEL_PRIORITY:
        if marker in present:
            return label
    return Label.INBOX
