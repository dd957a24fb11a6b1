"""
Preset habit categories offered by the habit form.
Stored values outside these lists are kept as-is; nothing is validated against them.
"""

DEFAULT_CATEGORY = "General"

HABIT_CATEGORIES = [
    DEFAULT_CATEGORY,
    "Health",
    "Work",
    "Education",
    "Finance",
]


def normalize_category(value: str | None) -> str:
    """Return the category unchanged, or the default sentinel when blank."""

    if value is None:
        return DEFAULT_CATEGORY
    if not value.strip():
        return DEFAULT_CATEGORY
    return value
