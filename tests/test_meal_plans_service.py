from __future__ import annotations

import uuid
from datetime import date
from unittest import IsolatedAsyncioTestCase, mock

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from receptbok.models import Base, BaseRecipe, Home, HomeMember, Recipe
from receptbok.services.candidates import (
    fetch_base_recipes,
    fetch_pantry_items,
    fetch_user_recipes,
    is_home_member,
)
from receptbok.services.meal_plan_validation import PlanEntry
from receptbok.services.meal_plans import (
    get_meal_plan,
    list_meal_plans,
    save_meal_plan,
    swap_meal_plan_entry,
)

RECIPE_A = uuid.UUID("11111111-1111-1111-1111-111111111111")
HOME = uuid.UUID("55555555-5555-5555-5555-555555555555")
PRIVATE_RECIPE = uuid.UUID("99999999-9999-9999-9999-999999999999")


class MealPlanStorageTest(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.Session = async_sessionmaker(self.engine, expire_on_commit=False)
        async with self.Session() as session:
            session.add_all(
                [
                    Home(id=HOME, name="Hemma"),
                    HomeMember(home_id=HOME, user_id="user-1"),
                    HomeMember(home_id=HOME, user_id="user-2"),
                    Recipe(id=RECIPE_A, owner_id="user-1", name="Kycklinggryta", categories=["huvudrätt"], recipe_yield=4),
                    Recipe(owner_id="user-2", home_id=HOME, name="Hemmets lasagne", categories=["pasta"]),
                    Recipe(id=PRIVATE_RECIPE, owner_id="user-9", name="Hemligt familjerecept", image="secret.jpg"),
                ]
            )
            await session.commit()

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def _save(self, session, *, user_id="user-1", home_id=None, week=date(2026, 1, 5)):
        return await save_meal_plan(
            session,
            user_id=user_id,
            week_start=week,
            preferences={"mealTypes": ["middag"]},
            entries=[
                PlanEntry(day_of_week=1, meal_type="middag", recipe_id=str(RECIPE_A), reason="Favorit"),
                PlanEntry(day_of_week=2, meal_type="middag", suggested_name="Tacos", reason="Fredag"),
            ],
            servings=4,
            home_id=home_id,
        )

    async def test_save_and_read_current_plan(self):
        async with self.Session() as session:
            plan_id = await self._save(session)
            plan = await get_meal_plan(session, user_id="user-1")

        self.assertIsNotNone(plan_id)
        self.assertEqual(plan["id"], plan_id)
        self.assertEqual(plan["weekStart"], "2026-01-05")
        self.assertEqual([e["dayOfWeek"] for e in plan["entries"]], [1, 2])
        first, second = plan["entries"]
        self.assertEqual(first["recipeName"], "Kycklinggryta")
        self.assertEqual(first["servings"], 4)
        self.assertEqual(second["suggestedName"], "Tacos")
        self.assertIsNone(second["recipeId"])

    async def test_list_plans_reports_entry_counts(self):
        async with self.Session() as session:
            await self._save(session, week=date(2026, 1, 5))
            await self._save(session, week=date(2026, 1, 12))
            plans = await list_meal_plans(session, user_id="user-1")

        self.assertEqual([p["weekStart"] for p in plans], ["2026-01-12", "2026-01-05"])
        self.assertEqual([p["status"] for p in plans], ["active", "archived"])
        self.assertTrue(all(p["entryCount"] == 2 for p in plans))

    async def test_home_plans_are_visible_to_members_only(self):
        async with self.Session() as session:
            plan_id = await self._save(session, home_id=str(HOME))
            as_member = await get_meal_plan(session, user_id="user-2", plan_id=plan_id)
            as_stranger = await get_meal_plan(session, user_id="user-3", plan_id=plan_id)
            own_scope = await get_meal_plan(session, user_id="user-1")

        self.assertEqual(as_member["homeId"], str(HOME))
        self.assertIsNone(as_stranger)
        self.assertIsNone(own_scope)

    async def test_unknown_or_malformed_plan_id_is_none(self):
        async with self.Session() as session:
            self.assertIsNone(await get_meal_plan(session, user_id="user-1", plan_id="nope"))
            self.assertIsNone(await get_meal_plan(session, user_id="user-1", plan_id=str(uuid.uuid4())))

    async def test_swap_entry_to_suggestion_and_back(self):
        async with self.Session() as session:
            await self._save(session)
            plan = await get_meal_plan(session, user_id="user-1")
            entry_id = plan["entries"][0]["id"]

            swapped = await swap_meal_plan_entry(
                session,
                user_id="user-1",
                entry_id=entry_id,
                suggested_name="Pannkakor",
                suggested_description="Med sylt",
            )
            self.assertIsNone(swapped["recipeId"])
            self.assertEqual(swapped["suggestedName"], "Pannkakor")

            back = await swap_meal_plan_entry(session, user_id="user-1", entry_id=entry_id, recipe_id=str(RECIPE_A))
            self.assertEqual(back["recipeId"], str(RECIPE_A))
            self.assertIsNone(back["suggestedName"])

    async def test_swap_requires_recipe_or_name(self):
        async with self.Session() as session:
            await self._save(session)
            plan = await get_meal_plan(session, user_id="user-1")
            with self.assertRaises(ValueError):
                await swap_meal_plan_entry(
                    session, user_id="user-1", entry_id=plan["entries"][0]["id"], suggested_name="  "
                )
            with self.assertRaises(ValueError):
                await swap_meal_plan_entry(
                    session,
                    user_id="user-1",
                    entry_id=plan["entries"][0]["id"],
                    suggested_name="X",
                    suggested_recipe={"recipe_name": "X"},
                )

    async def test_swap_on_someone_elses_entry_is_not_found(self):
        async with self.Session() as session:
            await self._save(session)
            plan = await get_meal_plan(session, user_id="user-1")
            with self.assertRaises(LookupError):
                await swap_meal_plan_entry(
                    session, user_id="user-2", entry_id=plan["entries"][0]["id"], suggested_name="Hijack"
                )

    async def test_swap_to_a_recipe_outside_the_users_scope_is_not_found(self):
        async with self.Session() as session:
            await self._save(session)
            plan = await get_meal_plan(session, user_id="user-1")
            with self.assertRaises(LookupError):
                await swap_meal_plan_entry(
                    session,
                    user_id="user-1",
                    entry_id=plan["entries"][1]["id"],
                    recipe_id=str(PRIVATE_RECIPE),
                )
            unchanged = await get_meal_plan(session, user_id="user-1")

        self.assertEqual(unchanged["entries"][1]["suggestedName"], "Tacos")

    async def test_plan_reads_do_not_enrich_with_other_users_recipes(self):
        async with self.Session() as session:
            await save_meal_plan(
                session,
                user_id="user-1",
                week_start=date(2026, 1, 5),
                preferences={},
                entries=[
                    PlanEntry(day_of_week=1, meal_type="middag", recipe_id=str(PRIVATE_RECIPE), reason=""),
                ],
                servings=4,
            )
            plan = await get_meal_plan(session, user_id="user-1")

        entry = plan["entries"][0]
        self.assertIsNone(entry["recipeName"])
        self.assertIsNone(entry["recipeImage"])

    async def test_candidate_reads_respect_scope(self):
        async with self.Session() as session:
            own = await fetch_user_recipes(session, user_id="user-1")
            home = await fetch_user_recipes(session, user_id="user-1", home_id=str(HOME))
            pantry = await fetch_pantry_items(session, user_id="user-1")
            self.assertTrue(await is_home_member(session, user_id="user-1", home_id=str(HOME)))
            self.assertFalse(await is_home_member(session, user_id="user-9", home_id=str(HOME)))

        self.assertEqual([r.name for r in own], ["Kycklinggryta"])
        self.assertEqual([r.name for r in home], ["Hemmets lasagne"])
        self.assertEqual(pantry, [])

    async def test_base_recipe_category_match_past_the_first_page(self):
        async with self.Session() as session:
            session.add_all([BaseRecipe(name=f"Gryta {i}", categories=["gryta"]) for i in range(5)])
            session.add(BaseRecipe(name="Ö-soppa", categories=["Soppa"]))
            await session.commit()

            with mock.patch("receptbok.services.candidates.BASE_RECIPE_PAGE_SIZE", 2):
                soups = await fetch_base_recipes(session, categories=["soppa"])
                stews = await fetch_base_recipes(session, categories=["gryta"], limit=3)

        self.assertEqual([r.name for r in soups], ["Ö-soppa"])
        self.assertEqual([r.name for r in stews], ["Gryta 0", "Gryta 1", "Gryta 2"])
