from __future__ import annotations

import unittest

from receptbok.services.candidates import BaseRecipeRecord, CompactRecipe
from receptbok.services.meal_plan_resolution import (
    UNKNOWN_BASE_RECIPE_NAME,
    UNKNOWN_RECIPE_NAME,
    UNNAMED_SUGGESTION_NAME,
    BaseReference,
    ConfirmedRecipe,
    NoReference,
    UnknownRecipe,
    decode_reference,
    deduplicate_entries,
    enrich_entries,
    resolve_and_deduplicate,
)
from receptbok.services.meal_plan_validation import PlanEntry, RawPlanEntry

RECIPE_A = "11111111-1111-1111-1111-111111111111"
RECIPE_B = "22222222-2222-2222-2222-222222222222"
BASE_X = "33333333-3333-3333-3333-333333333333"


def _raw(day: int, recipe_id=None, name=None, meal_type: str = "middag", **extra) -> RawPlanEntry:
    return RawPlanEntry(
        day_of_week=day,
        meal_type=meal_type,
        recipe_id=recipe_id,
        suggested_name=name,
        suggested_description=extra.pop("description", None),
        reason=extra.pop("reason", "Varierat"),
        **extra,
    )


def _user_recipes() -> list[CompactRecipe]:
    return [
        CompactRecipe(
            id=RECIPE_A,
            name="Kycklinggryta",
            image="https://img/a.jpg",
            thumbnail="https://img/a-thumb.jpg",
            categories=["huvudrätt"],
            prep_time=10,
            cook_time=30,
            recipe_yield=4,
        ),
        CompactRecipe(id=RECIPE_B, name="Fiskgratäng", categories=["fisk"]),
    ]


def _base_recipes() -> list[BaseRecipeRecord]:
    return [
        BaseRecipeRecord(
            id=BASE_X,
            name="Pasta carbonara",
            description="Klassisk carbonara",
            source_url="https://example.com/carbonara",
            source_site="example.com",
            prep_time=5,
            cook_time=15,
            recipe_yield=4,
            categories=["pasta"],
            ingredients=[
                {"group_name": "", "ingredients": [{"name": "spaghetti", "measurement": "g", "quantity": "400"}]}
            ],
            instructions=[{"group_name": "", "instructions": [{"step": "Koka pastan."}]}],
        )
    ]


class DecodeReferenceTestCase(unittest.TestCase):
    def test_variants(self):
        known = {RECIPE_A}
        self.assertEqual(decode_reference(None, known), NoReference())
        self.assertEqual(decode_reference("  ", known), NoReference())
        self.assertEqual(decode_reference(RECIPE_A, known), ConfirmedRecipe(RECIPE_A))
        self.assertEqual(decode_reference(f"BASE:{BASE_X}", known), BaseReference(BASE_X))
        self.assertEqual(decode_reference(RECIPE_B, known), UnknownRecipe(RECIPE_B))


class ResolveAndDeduplicateTestCase(unittest.TestCase):
    def test_end_to_end_resolution(self):
        raw = [
            _raw(1, RECIPE_A),
            _raw(2, f"BASE:{BASE_X}"),
            _raw(3, "44444444-4444-4444-4444-444444444444", name=""),
            _raw(4, None, name="Tacos", description="Fredagsmys"),
            _raw(1, RECIPE_B),
        ]
        entries = resolve_and_deduplicate(raw, _user_recipes(), _base_recipes())

        self.assertEqual(len(entries), 4)
        self.assertEqual([e.day_of_week for e in entries], [1, 2, 3, 4])

        first = entries[0]
        self.assertEqual(first.recipe_id, RECIPE_A)
        self.assertIsNone(first.suggested_name)

        base = entries[1]
        self.assertIsNone(base.recipe_id)
        self.assertEqual(base.suggested_name, "Pasta carbonara")
        self.assertEqual(base.suggested_description, "Klassisk carbonara")
        self.assertEqual(base.suggested_recipe.source_url, "https://example.com/carbonara")
        self.assertEqual(base.suggested_recipe.ingredient_groups[0].ingredients[0].name, "spaghetti")
        self.assertEqual(base.suggested_recipe.instruction_groups[0].instructions[0].step, "Koka pastan.")

        unknown = entries[2]
        self.assertIsNone(unknown.recipe_id)
        self.assertEqual(unknown.suggested_name, UNKNOWN_RECIPE_NAME)

        novel = entries[3]
        self.assertIsNone(novel.recipe_id)
        self.assertEqual(novel.suggested_name, "Tacos")
        self.assertEqual(novel.suggested_description, "Fredagsmys")

    def test_every_entry_has_exactly_one_of_recipe_or_name(self):
        raw = [
            _raw(1, RECIPE_A, name="ignored"),
            _raw(2, "BASE:missing"),
            _raw(3, "nope", name="Modellens namn"),
            _raw(4, None, name=None),
            _raw(5, None, name="   "),
        ]
        entries = resolve_and_deduplicate(raw, _user_recipes(), _base_recipes())
        for entry in entries:
            self.assertTrue((entry.recipe_id is None) != (entry.suggested_name is None), entry)
        names = [e.suggested_name for e in entries]
        self.assertEqual(
            names,
            [None, UNKNOWN_BASE_RECIPE_NAME, "Modellens namn", UNNAMED_SUGGESTION_NAME, UNNAMED_SUGGESTION_NAME],
        )

    def test_same_day_different_meal_types_are_kept(self):
        raw = [_raw(1, RECIPE_A, meal_type="lunch"), _raw(1, RECIPE_B, meal_type="middag")]
        entries = resolve_and_deduplicate(raw, _user_recipes(), [])
        self.assertEqual(len(entries), 2)

    def test_deduplication_keeps_first_in_model_order(self):
        entries = deduplicate_entries(
            [
                PlanEntry(day_of_week=2, meal_type="middag", suggested_name="Först"),
                PlanEntry(day_of_week=1, meal_type="middag", suggested_name="Annan dag"),
                PlanEntry(day_of_week=2, meal_type="middag", suggested_name="Sedan"),
            ]
        )
        self.assertEqual([e.suggested_name for e in entries], ["Först", "Annan dag"])

    def test_base_recipe_with_malformed_groups_keeps_name_only(self):
        broken = BaseRecipeRecord(id=BASE_X, name="Trasig", ingredients=[{"oops": True}])
        entries = resolve_and_deduplicate([_raw(1, f"BASE:{BASE_X}")], [], [broken])
        self.assertEqual(entries[0].suggested_name, "Trasig")
        self.assertIsNone(entries[0].suggested_recipe)


class EnrichEntriesTestCase(unittest.TestCase):
    def test_confirmed_entries_gain_display_fields(self):
        entries = [
            PlanEntry(day_of_week=1, meal_type="middag", recipe_id=RECIPE_A),
            PlanEntry(day_of_week=2, meal_type="middag", suggested_name="Tacos"),
        ]
        enriched = enrich_entries(entries, _user_recipes())

        self.assertEqual(enriched[0].recipe_name, "Kycklinggryta")
        self.assertEqual(enriched[0].recipe_thumbnail, "https://img/a-thumb.jpg")
        self.assertEqual(enriched[0].recipe_prep_time, 10)
        self.assertEqual(enriched[0].recipe_categories, ["huvudrätt"])
        self.assertIsNone(enriched[1].recipe_name)
        self.assertEqual(enriched[1].suggested_name, "Tacos")

    def test_enriching_leaves_input_untouched(self):
        entry = PlanEntry(day_of_week=1, meal_type="middag", recipe_id=RECIPE_A)
        enrich_entries([entry], _user_recipes())
        self.assertFalse(hasattr(entry, "recipe_name"))


if __name__ == "__main__":
    unittest.main()
