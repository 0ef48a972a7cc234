# gfrecipes/app/services/recipe_parser.py
"""
Line/section oriented parser turning extracted text into a NormalizedRecipe.

Grammar (case-insensitive headers, blank lines ignored):

    <title line>               or  Title: <title>
    Yield: 1 loaf              (also Serves/Servings/Makes)
    Time: 1h 10m               (also Total time/Cook time)
    Ingredients:
    - 1 1/2 cups all-purpose flour
    - 3 ripe bananas, mashed
    Steps:                     (also Directions/Instructions/Method)
    1) Preheat oven.
    Notes: <free text>         (a one-line note inside a list keeps the list open)

The parser fails closed: a missing title, ingredient list or step list
raises ParseFailure. Individual ingredient lines that cannot be read are
dropped and reported as warnings.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from gfrecipes.app.domain.errors import ParseFailure
from gfrecipes.app.schemas.recipe import Ingredient, NormalizedRecipe

logger = logging.getLogger(__name__)

SECTION_INGREDIENTS = "ingredients"
SECTION_STEPS = "steps"
SECTION_NOTES = "notes"

_SECTION_HEADERS = {
    SECTION_INGREDIENTS: ("ingredients", "ingredient"),
    SECTION_STEPS: ("steps", "step", "directions", "instructions", "method", "preparation"),
    SECTION_NOTES: ("notes", "note", "tips"),
}
_HEADER_PATTERN = re.compile(r"^(?:#+\s*)?(?P<header>[A-Za-z ]+?)\s*:\s*(?P<rest>.*)$")

_YIELD_KEYS = ("yield", "yields", "serves", "servings", "makes")
_TIME_KEYS = ("time", "total time", "cook time", "ready in")
_TITLE_KEYS = ("title", "recipe")

_BULLET_PATTERN = re.compile(r"^\s*(?:[-*•·▪◦]+)\s*")
_STEP_NUMBER_PATTERN = re.compile(r"^\s*(?:step\s*)?\d+\s*(?:[.):\-](?!\d)\s*|\s+)", re.IGNORECASE)

_VULGAR_FRACTIONS = {
    "½": 0.5, "⅓": 1 / 3, "⅔": 2 / 3, "¼": 0.25, "¾": 0.75,
    "⅕": 0.2, "⅖": 0.4, "⅗": 0.6, "⅘": 0.8, "⅙": 1 / 6, "⅚": 5 / 6,
    "⅛": 0.125, "⅜": 0.375, "⅝": 0.625, "⅞": 0.875,
}
_VULGAR_CLASS = "".join(_VULGAR_FRACTIONS)

_QUANTITY_PATTERN = re.compile(
    r"^(?:"
    rf"(?P<whole_v>\d+)?\s*(?P<vulgar>[{_VULGAR_CLASS}])"
    r"|(?P<mixed_whole>\d+)\s+(?P<mixed_num>\d+)\s*/\s*(?P<mixed_den>\d+)"
    r"|(?P<frac_num>\d+)\s*/\s*(?P<frac_den>\d+)"
    r"|(?P<decimal>\d+(?:[.,]\d+)?|[.,]\d+)"
    r")(?=\s|[A-Za-z]|$)"
)

UNITS = frozenset({
    "cup", "cups", "c",
    "tsp", "teaspoon", "teaspoons", "t",
    "tbsp", "tbs", "tablespoon", "tablespoons", "tbl",
    "oz", "ounce", "ounces",
    "lb", "lbs", "pound", "pounds",
    "g", "gram", "grams", "kg", "kilogram", "kilograms",
    "mg", "ml", "milliliter", "milliliters", "millilitre", "millilitres",
    "l", "liter", "liters", "litre", "litres", "dl", "cl",
    "pinch", "pinches", "dash", "dashes",
    "clove", "cloves", "can", "cans", "package", "packages", "pkg",
    "stick", "sticks", "slice", "slices", "quart", "quarts", "qt",
    "pint", "pints", "pt", "gallon", "gallons", "bunch", "handful",
})


@dataclass
class ParseResult:
    recipe: NormalizedRecipe
    warnings: list[str] = field(default_factory=list)


@dataclass
class _Sections:
    title: Optional[str] = None
    yield_: Optional[str] = None
    total_time: Optional[str] = None
    ingredient_lines: list[tuple[int, str]] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def parse_quantity(text: str) -> tuple[Optional[float], str]:
    """
    Read a leading quantity from an ingredient line.

    Accepts integers, decimals, simple fractions, mixed numbers and unicode
    vulgar fractions ("1 1/2" -> 1.5, "1½" -> 1.5, "0,5" -> 0.5).

    Returns:
        (quantity or None, remaining text)

    Raises:
        ValueError: If the quantity has a zero denominator
    """
    match = _QUANTITY_PATTERN.match(text)
    if not match:
        return None, text

    groups = match.groupdict()
    if groups["vulgar"]:
        value = float(groups["whole_v"] or 0) + _VULGAR_FRACTIONS[groups["vulgar"]]
    elif groups["mixed_whole"]:
        value = float(groups["mixed_whole"]) + _fraction(groups["mixed_num"], groups["mixed_den"])
    elif groups["frac_num"]:
        value = _fraction(groups["frac_num"], groups["frac_den"])
    else:
        value = float(groups["decimal"].replace(",", "."))

    return value, text[match.end():].strip()


def _fraction(numerator: str, denominator: str) -> float:
    den = int(denominator)
    if den == 0:
        raise ValueError(f"zero denominator in {numerator}/{denominator}")
    return int(numerator) / den


def _split_unit(text: str) -> tuple[str, str]:
    lowered = text.lower()
    if lowered.startswith("fl oz") or lowered.startswith("fl. oz"):
        token_end = len("fl oz") if lowered.startswith("fl oz") else len("fl. oz")
        return text[:token_end], text[token_end:].lstrip(" .")

    parts = text.split(None, 1)
    if not parts:
        return "", ""

    token = parts[0]
    candidate = token.rstrip(".").lower()
    if candidate in UNITS and len(parts) > 1:
        return token.rstrip("."), parts[1].strip()
    return "", text


def parse_ingredient_line(line: str) -> Ingredient:
    """
    Parse one ingredient line: [quantity] [unit] name[, modifier].

    Raises:
        ValueError: If the line yields no ingredient name or a bad quantity
    """
    text = _BULLET_PATTERN.sub("", line).strip()
    if not text:
        raise ValueError("empty ingredient line")

    qty, rest = parse_quantity(text)
    unit = ""
    if qty is not None:
        unit, rest = _split_unit(rest)

    name, _, modifier = rest.partition(",")
    name = name.strip()
    modifier = modifier.strip()

    if not name:
        raise ValueError(f"no ingredient name in '{line.strip()}'")

    return Ingredient(qty=qty, unit=unit, name=name, mod=modifier or None)


def _clean_step(line: str) -> str:
    text = _STEP_NUMBER_PATTERN.sub("", line, count=1)
    text = _BULLET_PATTERN.sub("", text, count=1)
    return text.strip()


def _match_header(line: str) -> tuple[Optional[str], str, str]:
    """Return (section, key, inline text) for header-like lines."""
    match = _HEADER_PATTERN.match(line)
    if not match:
        return None, "", ""

    key = match.group("header").strip().lower()
    rest = match.group("rest").strip()
    for section, names in _SECTION_HEADERS.items():
        if key in names:
            return section, key, rest
    return None, key, rest


class RecipeParser:
    """
    Converts raw extracted text, or a provider's structured draft, into a
    NormalizedRecipe.
    """

    def parse(self, raw_text: str) -> ParseResult:
        if not raw_text or not raw_text.strip():
            raise ParseFailure("title", "document text is empty")

        warnings: list[str] = []
        sections = self._split_sections(raw_text, warnings)
        ingredients = self._parse_ingredients(sections.ingredient_lines, warnings)

        return self._build(
            title=sections.title,
            yield_=sections.yield_,
            total_time=sections.total_time,
            ingredients=ingredients,
            steps=sections.steps,
            notes="\n".join(sections.notes) or None,
            warnings=warnings,
        )

    def parse_draft(self, draft: Mapping[str, Any]) -> ParseResult:
        """
        Normalize a provider's structured draft with fields
        {title, yield, total_time, ingredients[], steps[], notes}.

        Ingredient entries may be strings (parsed like text lines) or objects
        with qty/quantity, unit, name and mod/modifier.
        """
        warnings: list[str] = []
        ingredients: list[Ingredient] = []

        for index, entry in enumerate(draft.get("ingredients") or [], start=1):
            try:
                ingredients.append(self._draft_ingredient(entry))
            except (ValueError, TypeError, ValidationError) as error:
                warnings.append(f"ingredient {index} dropped: {error}")

        steps: list[str] = []
        for entry in draft.get("steps") or []:
            if isinstance(entry, Mapping):
                entry = entry.get("description") or entry.get("text") or ""
            step = _clean_step(str(entry))
            if step:
                steps.append(step)

        return self._build(
            title=_clean_text(draft.get("title")),
            yield_=_clean_text(draft.get("yield")),
            total_time=_clean_text(draft.get("total_time")),
            ingredients=ingredients,
            steps=steps,
            notes=_clean_text(draft.get("notes")),
            warnings=warnings,
        )

    def _split_sections(self, raw_text: str, warnings: list[str]) -> _Sections:
        sections = _Sections()
        current: Optional[str] = None

        for number, raw_line in enumerate(raw_text.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue

            section, key, inline = _match_header(line)
            if section == SECTION_NOTES and inline and current in (SECTION_INGREDIENTS, SECTION_STEPS):
                # One-line note inside a list; the list continues afterwards.
                sections.notes.append(inline)
                continue
            if section:
                current = section
                if inline:
                    self._add_to_section(sections, section, number, inline)
                continue

            if key in _TITLE_KEYS and inline and sections.title is None:
                sections.title = inline
                continue
            if key in _YIELD_KEYS and inline:
                sections.yield_ = inline
                continue
            if key in _TIME_KEYS and inline:
                sections.total_time = inline
                continue

            if current is None:
                if sections.title is None:
                    sections.title = _BULLET_PATTERN.sub("", line).lstrip("#").strip()
                else:
                    warnings.append(f"line {number} ignored outside any section: {line}")
                continue

            self._add_to_section(sections, current, number, line)

        return sections

    @staticmethod
    def _add_to_section(sections: _Sections, section: str, number: int, line: str) -> None:
        if section == SECTION_INGREDIENTS:
            sections.ingredient_lines.append((number, line))
        elif section == SECTION_STEPS:
            step = _clean_step(line)
            if step:
                sections.steps.append(step)
        else:
            sections.notes.append(line)

    @staticmethod
    def _parse_ingredients(lines: list[tuple[int, str]], warnings: list[str]) -> list[Ingredient]:
        ingredients: list[Ingredient] = []
        for number, line in lines:
            try:
                ingredients.append(parse_ingredient_line(line))
            except (ValueError, ValidationError) as error:
                message = f"line {number} dropped: {error}"
                logger.warning("Unparseable ingredient %s", message)
                warnings.append(message)
        return ingredients

    @staticmethod
    def _draft_ingredient(entry: Any) -> Ingredient:
        if isinstance(entry, str):
            return parse_ingredient_line(entry)
        if not isinstance(entry, Mapping):
            raise TypeError(f"unsupported ingredient entry {entry!r}")

        qty = entry.get("qty", entry.get("quantity"))
        if isinstance(qty, str):
            qty, _ = parse_quantity(qty.strip())

        return Ingredient(
            qty=qty,
            unit=_clean_text(entry.get("unit")) or "",
            name=str(entry.get("name") or ""),
            mod=_clean_text(entry.get("mod", entry.get("modifier"))),
        )

    @staticmethod
    def _build(
        *,
        title: Optional[str],
        yield_: Optional[str],
        total_time: Optional[str],
        ingredients: list[Ingredient],
        steps: list[str],
        notes: Optional[str],
        warnings: list[str],
    ) -> ParseResult:
        if not title:
            raise ParseFailure("title", warnings=warnings)
        if not ingredients:
            raise ParseFailure("ingredients", "no readable ingredient lines", warnings=warnings)
        if not steps:
            raise ParseFailure("steps", "no steps found", warnings=warnings)

        recipe = NormalizedRecipe(
            title=title,
            yield_=yield_,
            total_time=total_time,
            ingredients=ingredients,
            steps=steps,
            notes=notes,
        )
        logger.info(
            "Parsed recipe: title=%s, ingredients=%d, steps=%d, warnings=%d",
            recipe.title,
            len(recipe.ingredients),
            len(recipe.steps),
            len(warnings),
        )
        return ParseResult(recipe=recipe, warnings=warnings)


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)):
        return str(value)
    return None
