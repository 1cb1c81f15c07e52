"""
Unit tests for tracking day boundaries and the daily summary math.
"""
import unittest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from app.models import User
from app.projects.tracking.utils import (
    current_streak,
    daily_totals,
    day_bounds,
    diet_streaks,
    local_today,
    longest_streak,
    parse_day,
    progress,
    range_days,
    summarize_day,
    value_stats,
)


class TestParseDay(unittest.TestCase):

    def test_plain_date(self):
        self.assertEqual(parse_day("2025-03-01"), date(2025, 3, 1))

    def test_timestamp_uses_local_date(self):
        # 03:00 UTC is still the previous evening in New York
        self.assertEqual(parse_day("2025-03-01T03:00:00.000Z", "America/New_York"), date(2025, 2, 28))
        self.assertEqual(parse_day("2025-03-01T03:00:00.000Z"), date(2025, 3, 1))

    def test_invalid_values_raise(self):
        for bad in ("", "yesterday", "2025-13-01"):
            with self.assertRaises(ValueError):
                parse_day(bad)


class TestDayBounds(unittest.TestCase):

    def test_utc_day(self):
        self.assertEqual(
            day_bounds(date(2025, 3, 1)),
            (datetime(2025, 3, 1), datetime(2025, 3, 2)),
        )

    def test_local_day_in_utc(self):
        self.assertEqual(
            day_bounds(date(2025, 3, 1), "America/New_York"),
            (datetime(2025, 3, 1, 5), datetime(2025, 3, 2, 5)),
        )

    def test_dst_start_is_a_short_day(self):
        start, end = day_bounds(date(2025, 3, 9), "America/New_York")
        self.assertEqual(start, datetime(2025, 3, 9, 5))
        self.assertEqual(end, datetime(2025, 3, 10, 4))


class TestSummary(unittest.TestCase):

    def test_progress_is_capped(self):
        self.assertEqual(progress(500, 2000), 25)
        self.assertEqual(progress(2500, 2000), 100)
        self.assertEqual(progress(10, 0), 0)

    def test_defaults_apply_without_preferences(self):
        summary = summarize_day([], [], User(pubkey="ab" * 32))
        self.assertEqual(summary["goals"], {"calories": 2000, "water": 2000, "protein": 50, "carbs": 250, "fat": 70})
        self.assertEqual(summary["totals"]["calories"], 0)
        self.assertEqual(summary["entryCount"], 0)

    def test_totals_against_user_goals(self):
        user = User(pubkey="ab" * 32, preferences={"dailyCalorieGoal": 1800, "waterGoal": 3000, "macroGoals": {"protein": 150}})
        food = [
            SimpleNamespace(calories=600, protein=50, carbs=10, fat=40),
            SimpleNamespace(calories=300, protein=None, carbs=None, fat=None),
        ]
        water = [SimpleNamespace(amount=500), SimpleNamespace(amount=1000)]
        summary = summarize_day(food, water, user)
        self.assertEqual(summary["totals"], {"calories": 900, "protein": 50, "carbs": 10, "fat": 40, "water": 1500})
        self.assertEqual(summary["goals"]["protein"], 150)
        self.assertEqual(summary["goals"]["carbs"], 250)
        self.assertEqual(summary["progress"]["calories"], 50)
        self.assertEqual(summary["progress"]["water"], 50)
        self.assertEqual(summary["entryCount"], 4)


class TestRanges(unittest.TestCase):

    def test_week_starts_on_monday(self):
        self.assertEqual(range_days("week", date(2025, 3, 5)), (date(2025, 3, 3), date(2025, 3, 9)))
        self.assertEqual(range_days("week", date(2025, 3, 3)), (date(2025, 3, 3), date(2025, 3, 9)))
        self.assertEqual(range_days("week", date(2025, 3, 9)), (date(2025, 3, 3), date(2025, 3, 9)))

    def test_calendar_month(self):
        self.assertEqual(range_days("month", date(2024, 2, 10)), (date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(range_days("month", date(2025, 12, 31)), (date(2025, 12, 1), date(2025, 12, 31)))

    def test_calendar_year(self):
        self.assertEqual(range_days("year", date(2025, 6, 15)), (date(2025, 1, 1), date(2025, 12, 31)))

    def test_unknown_range(self):
        with self.assertRaises(ValueError):
            range_days("decade", date(2025, 6, 15))

    def test_local_today(self):
        now = datetime(2025, 3, 1, 3, 0)
        self.assertEqual(local_today("America/New_York", now=now), date(2025, 2, 28))
        self.assertEqual(local_today(now=now), date(2025, 3, 1))


class TestStatsMath(unittest.TestCase):

    def test_daily_totals_group_by_local_day(self):
        entries = [
            SimpleNamespace(date=datetime(2025, 3, 1, 3, 0), calories=400),
            SimpleNamespace(date=datetime(2025, 3, 1, 17, 0), calories=600),
            SimpleNamespace(date=datetime(2025, 3, 1, 18, 0), calories=None),
        ]
        self.assertEqual(
            daily_totals(entries, "calories", "America/New_York"),
            {date(2025, 2, 28): 400, date(2025, 3, 1): 600},
        )
        self.assertEqual(daily_totals(entries, "calories"), {date(2025, 3, 1): 1000})

    def test_value_stats(self):
        self.assertEqual(value_stats([1000, 1500, 1501]), {"average": 1334, "min": 1000, "max": 1501, "total": 4001, "days": 3})
        self.assertEqual(value_stats([]), {"average": 0, "min": 0, "max": 0, "total": 0, "days": 0})


class TestStreaks(unittest.TestCase):
    today = date(2025, 3, 10)

    def _days(self, *offsets):
        return [self.today - timedelta(days=n) for n in offsets]

    def test_current_streak_may_end_yesterday(self):
        self.assertEqual(current_streak(self._days(0, 1, 2), self.today), 3)
        self.assertEqual(current_streak(self._days(1, 2), self.today), 2)
        self.assertEqual(current_streak(self._days(2, 3, 4), self.today), 0)
        self.assertEqual(current_streak([], self.today), 0)

    def test_longest_streak(self):
        self.assertEqual(longest_streak(self._days(0, 1, 5, 6, 7, 8, 10)), 4)
        self.assertEqual(longest_streak(self._days(3)), 1)
        self.assertEqual(longest_streak([]), 0)

    def test_diet_rules(self):
        user = User(pubkey="ab" * 32, time_zone="UTC", preferences={"dailyCalorieGoal": 2000})
        food = [
            SimpleNamespace(date=datetime(2025, 3, 10, 12), calories=1400, protein=120),
            SimpleNamespace(date=datetime(2025, 3, 9, 12), calories=1900, protein=90),
            SimpleNamespace(date=datetime(2025, 3, 9, 19), calories=300, protein=20),
            SimpleNamespace(date=datetime(2025, 3, 8, 12), calories=1499, protein=101),
        ]
        streaks = {s["name"]: s for s in diet_streaks(food, user, self.today)}
        # Mar 9 totals 2200 kcal and 110 g protein; a streak may end yesterday
        self.assertEqual(streaks["Fasting"], {"name": "Fasting", "currentStreak": 1, "longestStreak": 1})
        self.assertEqual(streaks["Carnivore"], {"name": "Carnivore", "currentStreak": 3, "longestStreak": 3})
        self.assertEqual(streaks["Custom Plan"], {"name": "Custom Plan", "currentStreak": 1, "longestStreak": 1})

    def test_custom_plan_needs_a_calorie_goal(self):
        user = User(pubkey="ab" * 32, time_zone="UTC", preferences={})
        names = [s["name"] for s in diet_streaks([], user, self.today)]
        self.assertEqual(names, ["Fasting", "Carnivore"])


if __name__ == "__main__":
    unittest.main()
