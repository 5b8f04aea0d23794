"""
Mom's Yums Backend - Recipe Text Parser
=========================================

What:  Turns a backend's reply into a RecipeFields triple.
How:   Two entry points:
       - parse_structured_reply(): pulls the first {...} object out of a
         model reply and reads its title/ingredients/instructions keys.
       - extract_sections(): line-oriented heuristics for free text (OCR
         output, or a model that ignored the JSON instruction).
Who:   Called by every vision backend; parse_recipe_text() is also used
       directly when a caller wants placeholder-filled output.

Section state machine (monotonic, never moves backwards):

    title ──"ingredient"──▶ ingredients ──"instructions|directions|method|steps"──▶ instructions
      └──────────────"instructions|directions|method|steps"───────────────────────▶

    The marker line itself is stored as the first line of the section it
    opens, so "Ingredients:" ends up inside the ingredients text.

Everything in this module is pure: no I/O, no module state.
"""

import json
import re
from typing import List, Optional

from app.services.recipe_fields import FIELD_NAMES, RecipeFields

INGREDIENTS_MARKER = re.compile(r"ingredient", re.IGNORECASE)
INSTRUCTIONS_MARKER = re.compile(r"instructions|directions|method|steps", re.IGNORECASE)

# First "{" through last "}" of a reply; models often wrap JSON in prose or fences
JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

TITLE = "title"
INGREDIENTS = "ingredients"
INSTRUCTIONS = "instructions"


def _non_empty_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def extract_sections(text: str) -> RecipeFields:
    """
    Split free text into title / ingredients / instructions.

    Returns raw values: a section that was never found stays "". Callers
    that need non-empty values use parse_recipe_text().

    Fallback:
        When no section marker appears anywhere, line 1 becomes the title
        and the remaining lines are split in half, the first (larger) half
        going to ingredients.
    """
    lines = _non_empty_lines(text)
    if not lines:
        return RecipeFields()

    state = TITLE
    title = ""
    ingredients: List[str] = []
    instructions: List[str] = []
    marker_seen = False

    for line in lines:
        if state == TITLE and INGREDIENTS_MARKER.search(line):
            state = INGREDIENTS
            marker_seen = True
        elif state != INSTRUCTIONS and INSTRUCTIONS_MARKER.search(line):
            state = INSTRUCTIONS
            marker_seen = True

        if state == TITLE:
            if not title:
                title = line
        elif state == INGREDIENTS:
            ingredients.append(line)
        else:
            instructions.append(line)

    if not marker_seen:
        remainder = lines[1:]
        midpoint = (len(remainder) + 1) // 2
        return RecipeFields(
            title=lines[0],
            ingredients="\n".join(remainder[:midpoint]),
            instructions="\n".join(remainder[midpoint:]),
        )

    return RecipeFields(
        title=title,
        ingredients="\n".join(ingredients),
        instructions="\n".join(instructions),
    )


def parse_recipe_text(text: str) -> RecipeFields:
    """Heuristic split with placeholders for anything left empty."""
    return extract_sections(text).with_placeholders()


def parse_structured_reply(content: str) -> Optional[RecipeFields]:
    """
    Read the JSON object a vision-language model was asked to return.

    Returns None when the reply holds no decodable JSON object, or an object
    without any of the three recipe keys; the caller then falls back to
    extract_sections() on the full reply.
    """
    match = JSON_BLOCK.search(content or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    if not any(str(key).lower() in FIELD_NAMES for key in data):
        return None
    return RecipeFields.from_mapping(data)


def parse_model_reply(content: str) -> RecipeFields:
    """Structured JSON when present, otherwise the line heuristics."""
    structured = parse_structured_reply(content)
    if structured is not None:
        return structured
    return extract_sections(content)
