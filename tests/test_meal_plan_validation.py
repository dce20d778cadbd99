from __future__ import annotations

import json
import unittest

from receptbok.errors import InvalidResponseError
from receptbok.services.meal_plan_validation import (
    MEAL_PLAN_JSON_SCHEMA,
    parse_meal_plan_response,
)


def _entry(**overrides) -> dict:
    entry = {
        "day_of_week": 1,
        "meal_type": "middag",
        "recipe_id": None,
        "suggested_name": "Linsgryta",
        "suggested_description": "Krämig gryta med röda linser",
        "reason": "Snabbt till vardags",
    }
    entry.update(overrides)
    return entry


class MealPlanValidationTestCase(unittest.TestCase):
    def test_parses_well_formed_output(self):
        raw = json.dumps({"entries": [_entry(), _entry(day_of_week=2, recipe_id="abc")], "summary": "En grön vecka."})
        parsed = parse_meal_plan_response(raw)
        self.assertEqual(len(parsed.entries), 2)
        self.assertEqual(parsed.entries[1].recipe_id, "abc")
        self.assertEqual(parsed.summary, "En grön vecka.")

    def test_accepts_full_suggested_recipe(self):
        suggestion = {
            "recipe_name": "Linsgryta",
            "description": "Gryta",
            "recipe_yield": 4,
            "prep_time": 10,
            "cook_time": 25,
            "categories": ["vegetariskt"],
            "ingredient_groups": [
                {"group_name": "", "ingredients": [{"name": "röda linser", "measurement": "dl", "quantity": "3"}]}
            ],
            "instruction_groups": [{"group_name": "", "instructions": [{"step": "Koka linserna."}]}],
        }
        raw = json.dumps({"entries": [_entry(suggested_recipe=suggestion)], "summary": "s"})
        parsed = parse_meal_plan_response(raw)
        self.assertEqual(parsed.entries[0].suggested_recipe.ingredient_groups[0].ingredients[0].name, "röda linser")

    def test_rejects_invalid_json(self):
        with self.assertRaises(InvalidResponseError) as ctx:
            parse_meal_plan_response("{not json")
        self.assertEqual(ctx.exception.code, "invalid_response")
        self.assertIsNotNone(ctx.exception.__cause__)

    def test_rejects_missing_entries(self):
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(json.dumps({"summary": "no entries"}))

    def test_rejects_entries_that_are_not_a_list(self):
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(json.dumps({"entries": {"0": _entry()}, "summary": "s"}))

    def test_rejects_day_out_of_range(self):
        for day in (0, 8):
            with self.subTest(day=day), self.assertRaises(InvalidResponseError):
                parse_meal_plan_response(json.dumps({"entries": [_entry(day_of_week=day)], "summary": "s"}))

    def test_rejects_non_integer_day(self):
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(json.dumps({"entries": [_entry(day_of_week="1")], "summary": "s"}))

    def test_rejects_unknown_meal_type(self):
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(json.dumps({"entries": [_entry(meal_type="brunch")], "summary": "s"}))

    def test_rejects_malformed_ingredient_group(self):
        suggestion = {
            "recipe_name": "X",
            "description": "Y",
            "ingredient_groups": ["not an object"],
            "instruction_groups": [],
        }
        raw = json.dumps({"entries": [_entry(suggested_recipe=suggestion)], "summary": "s"})
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(raw)

    def test_one_bad_entry_rejects_the_whole_response(self):
        raw = json.dumps({"entries": [_entry(), _entry(meal_type=None)], "summary": "s"})
        with self.assertRaises(InvalidResponseError):
            parse_meal_plan_response(raw)

    def test_json_schema_is_strict(self):
        schema = MEAL_PLAN_JSON_SCHEMA
        self.assertFalse(schema["additionalProperties"])
        self.assertEqual(set(schema["required"]), {"entries", "summary"})
        entry_schema = schema["$defs"]["RawPlanEntry"]
        self.assertIn("suggested_recipe", entry_schema["required"])
        self.assertFalse(entry_schema["additionalProperties"])


if __name__ == "__main__":
    unittest.main()
