from datetime import date, datetime, time, timedelta

import pytz
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

STATS_RANGES = ('week', 'month', 'year')

# Day rules for the diet streaks
FASTING_CALORIE_LIMIT = 1500
CARNIVORE_PROTEIN_MIN = 100
PLAN_CALORIE_TOLERANCE = 0.1


def parse_day(value, time_zone='UTC'):
    """
    Resolve a `date` query parameter to a calendar day in the user's time zone.

    Accepts a plain date (2025-03-01) or a full ISO timestamp as produced by
    JS `toISOString()`; timestamps are converted to the user's local date.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if not value:
        raise ValueError("date is required")
    if len(value) == 10:
        return date.fromisoformat(value)
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        return parsed.date()
    return parsed.astimezone(pytz.timezone(time_zone)).date()


def day_bounds(day, time_zone='UTC'):
    """
    Start (inclusive) and end (exclusive) of a local calendar day as naive UTC datetimes.
    """
    tz = pytz.timezone(time_zone)
    start_local = tz.localize(datetime.combine(day, time.min))
    end_local = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return (
        start_local.astimezone(pytz.utc).replace(tzinfo=None),
        end_local.astimezone(pytz.utc).replace(tzinfo=None),
    )


def progress(value, goal):
    """Percent of goal reached, capped at 100."""
    if not goal:
        return 0
    return min(round(value / goal * 100), 100)


def summarize_day(food_entries, water_entries, user):
    totals = {
        'calories': sum(e.calories or 0 for e in food_entries),
        'protein': sum(e.protein or 0 for e in food_entries),
        'carbs': sum(e.carbs or 0 for e in food_entries),
        'fat': sum(e.fat or 0 for e in food_entries),
        'water': sum(e.amount for e in water_entries),
    }
    goals = {'calories': user.calorie_goal, 'water': user.water_goal}
    goals.update(user.macro_goals)
    return {
        'totals': totals,
        'goals': goals,
        'progress': {key: progress(totals[key], goals[key]) for key in totals},
        'entryCount': len(food_entries) + len(water_entries),
    }


def range_days(range_name, today):
    """First and last calendar day of the week (Monday first), month or year containing `today`."""
    if range_name == 'week':
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if range_name == 'month':
        start = today.replace(day=1)
        return start, start + relativedelta(months=1) - timedelta(days=1)
    if range_name == 'year':
        return date(today.year, 1, 1), date(today.year, 12, 31)
    raise ValueError(f"Unknown range: {range_name}")


def local_day(value, time_zone='UTC'):
    """Calendar day of a naive UTC datetime in the given time zone."""
    return pytz.utc.localize(value).astimezone(pytz.timezone(time_zone)).date()


def daily_totals(entries, attr, time_zone='UTC'):
    """Sum `attr` over entries per local calendar day. Days without entries are absent."""
    totals = {}
    for entry in entries:
        day = local_day(entry.date, time_zone)
        totals[day] = totals.get(day, 0) + (getattr(entry, attr) or 0)
    return totals


def value_stats(values):
    values = list(values)
    if not values:
        return {'average': 0, 'min': 0, 'max': 0, 'total': 0, 'days': 0}
    total = sum(values)
    return {
        'average': round(total / len(values)),
        'min': min(values),
        'max': max(values),
        'total': total,
        'days': len(values),
    }


def current_streak(days, today):
    """Consecutive days ending today, or yesterday if today is not logged yet."""
    days = set(days)
    day = today if today in days else today - timedelta(days=1)
    count = 0
    while day in days:
        count += 1
        day -= timedelta(days=1)
    return count


def longest_streak(days):
    longest = run = 0
    previous = None
    for day in sorted(set(days)):
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


def diet_streaks(food_entries, user, today):
    """
    Streaks of days that satisfy each diet rule.

    Fasting: under FASTING_CALORIE_LIMIT kcal. Carnivore: over
    CARNIVORE_PROTEIN_MIN g protein. Custom Plan (only with a calorie goal):
    within PLAN_CALORIE_TOLERANCE of the goal. Only days with food logged count.
    """
    calories = daily_totals(food_entries, 'calories', user.time_zone)
    protein = daily_totals(food_entries, 'protein', user.time_zone)
    rules = [
        ('Fasting', [day for day, kcal in calories.items() if kcal < FASTING_CALORIE_LIMIT]),
        ('Carnivore', [day for day, grams in protein.items() if grams > CARNIVORE_PROTEIN_MIN]),
    ]
    goal = (user.preferences or {}).get('dailyCalorieGoal')
    if goal:
        low, high = goal * (1 - PLAN_CALORIE_TOLERANCE), goal * (1 + PLAN_CALORIE_TOLERANCE)
        rules.append(('Custom Plan', [day for day, kcal in calories.items() if low <= kcal <= high]))
    return [
        {'name': name, 'currentStreak': current_streak(days, today), 'longestStreak': longest_streak(days)}
        for name, days in rules
    ]


def local_today(time_zone='UTC', now=None):
    now = now or datetime.utcnow()
    return local_day(now, time_zone)
