"""
Mom's Yums Backend - Recipe Field Triple
==========================================

What:  The `{title, ingredients, instructions}` value passed between the
       vision backends, the text parser and the extraction orchestrator.
How:   A small frozen dataclass plus the quality rules that decide whether a
       field counts as "present" (minimum-length thresholds) and the merge
       rule used when two backends each read part of a card.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

FIELD_NAMES = ("title", "ingredients", "instructions")

# Minimum stripped length for a field to count as present
MIN_FIELD_LENGTHS: Dict[str, int] = {
    "title": 3,
    "ingredients": 10,
    "instructions": 10,
}

TITLE_PLACEHOLDER = "Recipe Title"
INGREDIENTS_PLACEHOLDER = "Ingredients will appear here"
INSTRUCTIONS_PLACEHOLDER = "Instructions will appear here"

PLACEHOLDERS: Dict[str, str] = {
    "title": TITLE_PLACEHOLDER,
    "ingredients": INGREDIENTS_PLACEHOLDER,
    "instructions": INSTRUCTIONS_PLACEHOLDER,
}


@dataclass(frozen=True)
class RecipeFields:
    """
    One candidate reading of a recipe card.

    Fields may be empty strings. Empty means "missing" for merging purposes;
    placeholders are only substituted at the very end (with_placeholders).
    """

    title: str = ""
    ingredients: str = ""
    instructions: str = ""

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "RecipeFields":
        """
        Coerce a backend's JSON object into a RecipeFields.

        Missing keys and nulls become "", lists are newline-joined, any other
        scalar is stringified. Keys are matched case-insensitively because
        models sometimes answer with "Title"/"Ingredients".
        """
        lowered = {str(k).lower(): v for k, v in data.items()}
        return cls(**{name: _coerce_text(lowered.get(name)) for name in FIELD_NAMES})

    def as_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in FIELD_NAMES}

    def is_missing(self, name: str) -> bool:
        """A field is missing when it is shorter than its minimum length."""
        return len(getattr(self, name).strip()) < MIN_FIELD_LENGTHS[name]

    def missing_fields(self) -> List[str]:
        return [name for name in FIELD_NAMES if self.is_missing(name)]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name).strip() for name in FIELD_NAMES)

    def merge(self, other: Optional["RecipeFields"]) -> "RecipeFields":
        """
        Backfill this reading's missing fields from `other`.

        The reading that populated a field first keeps it: a field is only
        replaced when it is missing here and present in `other`. When both
        are below the threshold, any non-empty partial text here is kept,
        otherwise `other`'s partial text is taken.
        """
        if other is None:
            return self
        updates = {}
        for name in FIELD_NAMES:
            mine = getattr(self, name)
            theirs = getattr(other, name)
            if not self.is_missing(name):
                continue
            if not other.is_missing(name) or (not mine.strip() and theirs.strip()):
                updates[name] = theirs
        return replace(self, **updates) if updates else self

    def with_placeholders(self) -> "RecipeFields":
        """Replace empty fields with the fixed human-readable placeholders."""
        updates = {
            name: PLACEHOLDERS[name]
            for name in FIELD_NAMES
            if not getattr(self, name).strip()
        }
        return replace(self, **updates) if updates else self


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "\n".join(_coerce_text(item) for item in value if item is not None).strip()
    if isinstance(value, dict):
        # e.g. {"flour": "2 cups"} -> "flour: 2 cups"
        return "\n".join(f"{k}: {_coerce_text(v)}" for k, v in value.items()).strip()
    return str(value).strip()
