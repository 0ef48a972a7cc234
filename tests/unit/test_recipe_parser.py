from __future__ import annotations

import pytest

from gfrecipes.app.domain.errors import ParseFailure
from gfrecipes.app.infra.extraction.static_provider import SAMPLE_OCR_TEXT
from gfrecipes.app.services.recipe_parser import (
    RecipeParser,
    parse_ingredient_line,
    parse_quantity,
)

BANANA_BREAD = (
    "Banana Bread\n"
    "Ingredients:\n"
    "- 1 1/2 cups all-purpose flour\n"
    "- 1 egg\n"
    "Steps:\n"
    "1) Mix.\n"
    "2) Bake."
)


class TestParseQuantity:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2 eggs", 2.0),
            ("1.5 cups milk", 1.5),
            ("0,5 l milk", 0.5),
            ("1/2 tsp salt", 0.5),
            ("1 1/2 cups flour", 1.5),
            ("1½ cups flour", 1.5),
            ("¾ cup sugar", 0.75),
            ("200g flour", 200.0),
        ],
    )
    def test_reads_leading_quantity(self, text: str, expected: float) -> None:
        qty, _ = parse_quantity(text)
        assert qty == pytest.approx(expected)

    def test_returns_remaining_text(self) -> None:
        qty, rest = parse_quantity("1 1/2 cups all-purpose flour")

        assert qty == 1.5
        assert rest == "cups all-purpose flour"

    def test_no_quantity(self) -> None:
        qty, rest = parse_quantity("salt to taste")

        assert qty is None
        assert rest == "salt to taste"

    def test_zero_denominator_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_quantity("1/0 cup sugar")


class TestParseIngredientLine:
    def test_quantity_unit_and_name(self) -> None:
        ingredient = parse_ingredient_line("- 1 1/2 cups all-purpose flour")

        assert ingredient.qty == 1.5
        assert ingredient.unit == "cups"
        assert ingredient.name == "all-purpose flour"
        assert ingredient.mod is None

    def test_count_without_unit(self) -> None:
        ingredient = parse_ingredient_line("- 1 egg")

        assert ingredient.qty == 1.0
        assert ingredient.unit == ""
        assert ingredient.name == "egg"

    def test_modifier_after_comma(self) -> None:
        ingredient = parse_ingredient_line("3 ripe bananas, mashed")

        assert ingredient.qty == 3.0
        assert ingredient.unit == ""
        assert ingredient.name == "ripe bananas"
        assert ingredient.mod == "mashed"

    def test_without_quantity(self) -> None:
        ingredient = parse_ingredient_line("Salt, to taste")

        assert ingredient.qty is None
        assert ingredient.name == "Salt"
        assert ingredient.mod == "to taste"

    def test_attached_metric_unit(self) -> None:
        ingredient = parse_ingredient_line("200g rice flour")

        assert ingredient.qty == 200.0
        assert ingredient.unit == "g"
        assert ingredient.name == "rice flour"

    def test_unit_word_alone_is_the_name(self) -> None:
        ingredient = parse_ingredient_line("2 cloves")

        assert ingredient.unit == ""
        assert ingredient.name == "cloves"

    def test_empty_bullet_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_ingredient_line("- ")


class TestRecipeParser:
    def test_banana_bread_text(self) -> None:
        result = RecipeParser().parse(BANANA_BREAD)
        recipe = result.recipe

        assert recipe.title == "Banana Bread"
        assert [i.model_dump(exclude_none=True) for i in recipe.ingredients] == [
            {"qty": 1.5, "unit": "cups", "name": "all-purpose flour"},
            {"qty": 1.0, "unit": "", "name": "egg"},
        ]
        assert recipe.steps == ["Mix.", "Bake."]
        assert result.warnings == []

    def test_sample_ocr_text(self) -> None:
        recipe = RecipeParser().parse(SAMPLE_OCR_TEXT).recipe

        assert recipe.title == "Example Banana Bread"
        assert recipe.yield_ == "1 loaf"
        assert recipe.total_time == "1h 10m"
        assert len(recipe.ingredients) == 7
        assert recipe.ingredients[3].name == "ripe bananas"
        assert recipe.ingredients[3].mod == "mashed"
        assert recipe.ingredients[5].qty == pytest.approx(0.75)
        assert recipe.steps[0] == "Preheat oven to 350F."
        assert recipe.steps[-1] == "Bake 55-60 minutes."

    def test_title_header(self) -> None:
        text = "Title: Pancakes\nIngredients:\n- 2 eggs\nDirections:\n- Whisk."

        recipe = RecipeParser().parse(text).recipe

        assert recipe.title == "Pancakes"
        assert recipe.steps == ["Whisk."]

    def test_step_prefixes_removed(self) -> None:
        text = "Soup\nIngredients:\n- 1 l stock\nMethod:\nStep 1: Boil.\n2. Season.\n- Serve."

        recipe = RecipeParser().parse(text).recipe

        assert recipe.steps == ["Boil.", "Season.", "Serve."]

    def test_notes_section(self) -> None:
        text = BANANA_BREAD + "\nNotes:\nFreezes well.\nUse very ripe bananas."

        recipe = RecipeParser().parse(text).recipe

        assert recipe.notes == "Freezes well.\nUse very ripe bananas."

    def test_unreadable_ingredient_is_dropped_with_warning(self) -> None:
        text = (
            "Cake\nIngredients:\n- 1/0 cup sugar\n- 2 eggs\n"
            "Steps:\n1) Bake."
        )

        result = RecipeParser().parse(text)

        assert [i.name for i in result.recipe.ingredients] == ["eggs"]
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("line 3 dropped")

    def test_stray_line_before_sections_is_reported(self) -> None:
        text = "Cake\nA family favourite.\nIngredients:\n- 2 eggs\nSteps:\n1) Bake."

        result = RecipeParser().parse(text)

        assert result.recipe.title == "Cake"
        assert result.warnings == ["line 2 ignored outside any section: A family favourite."]

    def test_empty_text_fails(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse("   \n  ")
        assert exc_info.value.field == "title"

    def test_missing_ingredients_fails(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse("Cake\nSteps:\n1) Bake.")
        assert exc_info.value.field == "ingredients"

    def test_all_ingredients_unreadable_fails_with_warnings(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse("Cake\nIngredients:\n-\nSteps:\n1) Bake.")

        assert exc_info.value.field == "ingredients"
        assert len(exc_info.value.warnings) == 1

    def test_missing_steps_fails(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse("Cake\nIngredients:\n- 2 eggs")
        assert exc_info.value.field == "steps"

    def test_missing_title_fails(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse("Ingredients:\n- 2 eggs\nSteps:\n1) Bake.")
        assert exc_info.value.field == "title"


class TestParseDraft:
    def test_structured_ingredients(self) -> None:
        draft = {
            "title": " Banana Bread ",
            "yield": "1 loaf",
            "total_time": "1h 10m",
            "ingredients": [
                {"quantity": "1 1/2", "unit": "cups", "name": "all-purpose flour"},
                {"qty": 1, "name": "egg", "modifier": "beaten"},
            ],
            "steps": ["1) Mix.", {"description": "Bake."}],
        }

        recipe = RecipeParser().parse_draft(draft).recipe

        assert recipe.title == "Banana Bread"
        assert recipe.yield_ == "1 loaf"
        assert recipe.ingredients[0].qty == 1.5
        assert recipe.ingredients[1].unit == ""
        assert recipe.ingredients[1].mod == "beaten"
        assert recipe.steps == ["Mix.", "Bake."]

    def test_string_ingredients_parsed_like_text(self) -> None:
        draft = {
            "title": "Pasta",
            "ingredients": ["200 g spaghetti", "2 tbsp soy sauce"],
            "steps": ["Boil."],
        }

        recipe = RecipeParser().parse_draft(draft).recipe

        assert recipe.ingredients[0].unit == "g"
        assert recipe.ingredients[1].name == "soy sauce"

    def test_bad_entries_dropped_with_warnings(self) -> None:
        draft = {
            "title": "Pasta",
            "ingredients": [42, {"name": ""}, "1 cup pasta"],
            "steps": ["Boil."],
        }

        result = RecipeParser().parse_draft(draft)

        assert len(result.recipe.ingredients) == 1
        assert len(result.warnings) == 2
        assert result.warnings[0].startswith("ingredient 1 dropped")

    def test_missing_steps_fails(self) -> None:
        with pytest.raises(ParseFailure) as exc_info:
            RecipeParser().parse_draft({"title": "Pasta", "ingredients": ["1 cup pasta"]})
        assert exc_info.value.field == "steps"


class TestSectionBoundaries:
    def test_inline_note_between_steps_keeps_steps_open(self) -> None:
        text = (
            "Cake\nIngredients:\n- 2 cups flour\nSteps:\n"
            "1.Mix well\nNote: do not overmix\n2. Bake"
        )

        recipe = RecipeParser().parse(text).recipe

        assert recipe.steps == ["Mix well", "Bake"]
        assert recipe.notes == "do not overmix"

    def test_inline_tip_between_ingredients(self) -> None:
        text = (
            "Cake\nIngredients:\n- 2 cups flour\nTips: sift first\n- 1 egg\n"
            "Steps:\n1) Bake."
        )

        recipe = RecipeParser().parse(text).recipe

        assert [i.name for i in recipe.ingredients] == ["flour", "egg"]
        assert recipe.notes == "sift first"

    def test_notes_header_alone_starts_notes_section(self) -> None:
        text = BANANA_BREAD + "\nNotes:\nServe warm."

        recipe = RecipeParser().parse(text).recipe

        assert recipe.steps == ["Mix.", "Bake."]
        assert recipe.notes == "Serve warm."

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("1.Mix well", "Mix well"),
            ("2)Fold in", "Fold in"),
            ("Step 3:Bake", "Bake"),
            ("350F oven, middle rack", "350F oven, middle rack"),
        ],
    )
    def test_step_numbers_without_space(self, line: str, expected: str) -> None:
        text = f"Cake\nIngredients:\n- 1 egg\nSteps:\n{line}"

        assert RecipeParser().parse(text).recipe.steps == [expected]
