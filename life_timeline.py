"""
Life Timeline Module
Buckets personal events into fixed 7-day weeks counted from a birthdate and
derives the grid, life chapter, anniversary and insight views from them.
"""

import math
import logging
from calendar import isleap
from datetime import date, datetime, timedelta
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Union

import pytz

logger = logging.getLogger(__name__)

WEEKS_PER_ROW = 52
DEFAULT_LIFESPAN_YEARS = 90
DAYS_PER_YEAR = 365.25
MILESTONE_YEARS = {5, 10, 15, 20, 25, 30, 40, 50}


class EventCategory(str, Enum):
    CAREER = "Career"
    EDUCATION = "Education"
    PERSONAL = "Personal"
    TRAVEL = "Travel"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


LIFE_STAGES = [
    {"name": "Early Childhood", "start_age": 0, "end_age": 5},
    {"name": "Childhood", "start_age": 6, "end_age": 12},
    {"name": "Adolescence", "start_age": 13, "end_age": 19},
    {"name": "Young Adult", "start_age": 20, "end_age": 29},
    {"name": "Early Career", "start_age": 30, "end_age": 39},
    {"name": "Mid-Life", "start_age": 40, "end_age": 54},
    {"name": "Mature Years", "start_age": 55, "end_age": 69},
    {"name": "Golden Years", "start_age": 70, "end_age": 100},
]


@dataclass
class TimelineWeek:
    week_number: int
    start_date: date
    personal_events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=6)

    @property
    def index(self) -> int:
        return self.week_number - 1

    @property
    def mood(self) -> Optional[str]:
        """Grid colouring by sentiment: mixed, positive, negative, neutral or None when empty"""
        if not self.personal_events:
            return None
        sentiments = {event.get("sentiment") for event in self.personal_events}
        has_positive = Sentiment.POSITIVE.value in sentiments
        has_negative = Sentiment.NEGATIVE.value in sentiments
        if has_positive and has_negative:
            return "mixed"
        if has_positive:
            return Sentiment.POSITIVE.value
        if has_negative:
            return Sentiment.NEGATIVE.value
        return Sentiment.NEUTRAL.value

    @property
    def primary_category(self) -> Optional[str]:
        if not self.personal_events:
            return None
        return self.personal_events[0].get("category")

    @property
    def intensity(self) -> int:
        return min(len(self.personal_events), 3)

    def matches(self, search: str) -> bool:
        term = search.lower()
        return any(
            term in (event.get("title") or "").lower() or term in (event.get("description") or "").lower()
            for event in self.personal_events
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_number": self.week_number,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "year_of_life": self.index // WEEKS_PER_ROW,
            "week_of_year": self.index % WEEKS_PER_ROW,
            "event_count": len(self.personal_events),
            "mood": self.mood,
            "primary_category": self.primary_category,
            "intensity": self.intensity,
            "personal_events": self.personal_events,
        }


@dataclass
class LifeChapter:
    name: str
    start_age: int
    end_age: int
    events: List[Dict[str, Any]] = field(default_factory=list)
    progress: float = 0.0
    art_prompt: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def status(self) -> str:
        if self.progress >= 100:
            return "completed"
        if self.progress > 0:
            return "active"
        return "upcoming"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "start_age": self.start_age,
            "end_age": self.end_age,
            "event_count": len(self.events),
            "progress": round(self.progress, 1),
            "status": self.status,
            "art_prompt": self.art_prompt,
            "image_url": self.image_url,
            "events": self.events,
        }


@dataclass
class Anniversary:
    event: Dict[str, Any]
    original_date: date
    next_anniversary: date
    years_ago: int
    days_until: int

    @property
    def milestone(self) -> bool:
        return self.years_ago in MILESTONE_YEARS

    @property
    def message(self) -> str:
        if self.milestone:
            return f"🎉 {self.years_ago} year milestone!"
        return f"{ordinal(self.years_ago)} anniversary"

    @property
    def days_message(self) -> str:
        if self.days_until == 0:
            return "Today!"
        if self.days_until == 1:
            return "Tomorrow"
        if self.days_until <= 7:
            return f"In {self.days_until} days"
        weeks = math.ceil(self.days_until / 7)
        return f"In {weeks} week{'s' if weeks > 1 else ''}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event.get("id"),
            "event": self.event,
            "original_date": self.original_date.isoformat(),
            "next_anniversary": self.next_anniversary.isoformat(),
            "years_ago": self.years_ago,
            "days_until": self.days_until,
            "milestone": self.milestone,
            "message": self.message,
            "days_message": self.days_message,
        }


def ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def parse_date(value: Union[str, date, datetime]) -> date:
    """Accept 'YYYY-MM-DD', full ISO timestamps, dates and datetimes"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def user_today(timezone_name: str = "UTC") -> date:
    """Today's calendar date in the user's timezone"""
    try:
        tz = pytz.timezone(timezone_name or "UTC")
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{timezone_name}', falling back to UTC")
        tz = pytz.UTC
    return datetime.now(tz).date()


def week_index(birthdate: date, day: date) -> int:
    """Zero-based week bucket of a day, floor((day - birthdate) / 7 days)"""
    return (day - birthdate).days // 7


def week_start(birthdate: date, index: int) -> date:
    return birthdate + timedelta(days=7 * index)


def age_in_years(birthdate: date, day: date) -> int:
    return math.floor((day - birthdate).days / DAYS_PER_YEAR)


def weeks_lived(birthdate: date, today: date) -> int:
    """Number of grid cells up to and including the current week"""
    if today < birthdate:
        return 0
    return week_index(birthdate, today) + 1


def build_timeline(birthdate: date, events: List[Dict[str, Any]], today: date,
                   min_weeks: int = 0) -> List[TimelineWeek]:
    """Create one TimelineWeek per lived week and bucket the events in a single pass"""
    week_count = max(weeks_lived(birthdate, today), min_weeks)
    weeks = [TimelineWeek(week_number=i + 1, start_date=week_start(birthdate, i)) for i in range(week_count)]

    dropped = 0
    for event in events:
        index = week_index(birthdate, parse_date(event["date"]))
        if 0 <= index < week_count:
            weeks[index].personal_events.append(event)
        else:
            dropped += 1

    if dropped:
        logger.debug(f"{dropped} events fall outside the {week_count}-week timeline")
    return weeks


def get_week(birthdate: date, events: List[Dict[str, Any]], week_number: int) -> TimelineWeek:
    """Build a single week without materialising the whole grid"""
    week = TimelineWeek(week_number=week_number, start_date=week_start(birthdate, week_number - 1))
    for event in events:
        if week_index(birthdate, parse_date(event["date"])) == week.index:
            week.personal_events.append(event)
    return week


def timeline_summary(birthdate: date, weeks: List[TimelineWeek], today: date,
                     lifespan_years: int = DEFAULT_LIFESPAN_YEARS) -> Dict[str, Any]:
    lived = weeks_lived(birthdate, today)
    total = lifespan_years * WEEKS_PER_ROW
    return {
        "birthdate": birthdate.isoformat(),
        "today": today.isoformat(),
        "weeks_lived": lived,
        "total_weeks": total,
        "weeks_remaining": max(total - lived, 0),
        "percent_lived": round(min(lived / total, 1.0) * 100, 1) if total else 0.0,
        "weeks_with_events": sum(1 for week in weeks if week.personal_events),
        "current_age": age_in_years(birthdate, today),
    }


def build_life_chapters(birthdate: date, events: List[Dict[str, Any]], today: date) -> List[LifeChapter]:
    """Group events into the life stages reached so far, plus those starting within five years"""
    current_age = age_in_years(birthdate, today)
    chapters = []

    for stage in LIFE_STAGES:
        if stage["start_age"] > current_age + 5:
            continue

        chapter_events = [
            event for event in events
            if stage["start_age"] <= age_in_years(birthdate, parse_date(event["date"])) <= stage["end_age"]
        ]

        if current_age < stage["start_age"]:
            progress = 0.0
        elif current_age > stage["end_age"]:
            progress = 100.0
        else:
            span = stage["end_age"] - stage["start_age"]
            progress = (current_age - stage["start_age"]) / span * 100
            progress = min(100.0, max(0.0, progress))

        chapters.append(LifeChapter(
            name=stage["name"],
            start_age=stage["start_age"],
            end_age=stage["end_age"],
            events=chapter_events,
            progress=progress,
        ))

    return chapters


def _anniversary_in_year(original: date, year: int) -> date:
    # Feb 29 rolls forward to Mar 1 in non-leap years
    if original.month == 2 and original.day == 29 and not isleap(year):
        return date(year, 3, 1)
    return original.replace(year=year)


def find_anniversaries(events: List[Dict[str, Any]], today: date, window_days: int = 90) -> List[Anniversary]:
    """Upcoming anniversaries of events at least a year old, soonest first"""
    anniversaries = []

    for event in events:
        original = parse_date(event["date"])
        next_anniversary = _anniversary_in_year(original, today.year)
        if next_anniversary < today:
            next_anniversary = _anniversary_in_year(original, today.year + 1)

        years_ago = next_anniversary.year - original.year
        days_until = (next_anniversary - today).days

        if years_ago >= 1 and days_until <= window_days:
            anniversaries.append(Anniversary(
                event=event,
                original_date=original,
                next_anniversary=next_anniversary,
                years_ago=years_ago,
                days_until=days_until,
            ))

    anniversaries.sort(key=lambda a: a.days_until)
    return anniversaries


def _empty_breakdown() -> Dict[str, int]:
    return {sentiment.value: 0 for sentiment in Sentiment}


def sentiment_breakdown(events: List[Dict[str, Any]]) -> Dict[str, int]:
    breakdown = _empty_breakdown()
    for event in events:
        sentiment = event.get("sentiment")
        if sentiment in breakdown:
            breakdown[sentiment] += 1
    return breakdown


def category_breakdown(events: List[Dict[str, Any]]) -> Dict[str, int]:
    breakdown: Dict[str, int] = {}
    for event in events:
        breakdown[event["category"]] = breakdown.get(event["category"], 0) + 1
    return breakdown


def _shift_month(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


def monthly_trends(events: List[Dict[str, Any]], today: date, months: int = 12) -> List[Dict[str, Any]]:
    """Sentiment counts per calendar month, oldest first, ending with the current month"""
    trends = []
    for offset in range(months - 1, -1, -1):
        month_start = _shift_month(today, -offset)
        month_events = [
            event for event in events
            if parse_date(event["date"]).year == month_start.year
            and parse_date(event["date"]).month == month_start.month
        ]
        trends.append({
            "month": month_start.strftime("%b %y"),
            **sentiment_breakdown(month_events),
        })
    return trends


def generate_insights(events: List[Dict[str, Any]], today: date) -> List[str]:
    """Plain-language observations about the user's recorded life events"""
    if not events:
        return ["Add some events to see AI-powered insights about your life patterns!"]

    insights = []
    sentiments = sentiment_breakdown(events)
    categories = category_breakdown(events)
    total_events = len(events)

    positive_percentage = round(sentiments["positive"] / total_events * 100)
    if positive_percentage > 60:
        insights.append(f"🌟 You have a very positive outlook! {positive_percentage}% of your recorded events are positive.")
    elif positive_percentage < 30:
        insights.append(f"💪 Consider focusing on positive moments - only {positive_percentage}% of your events are positive.")

    if categories:
        top_category, top_count = max(categories.items(), key=lambda item: item[1])
        insights.append(f"📊 Your most active life area is {top_category} with {top_count} events recorded.")

    three_months_ago = _shift_month(today, -3).replace(day=min(today.day, 28))
    recent_events = [event for event in events if parse_date(event["date"]) >= three_months_ago]
    if recent_events:
        recent_positive = sum(1 for event in recent_events if event.get("sentiment") == "positive")
        recent_percentage = round(recent_positive / len(recent_events) * 100)
        if recent_percentage > positive_percentage:
            insights.append(f"📈 Things are looking up! Your recent events are {recent_percentage}% positive, higher than your overall average.")
        elif recent_percentage < positive_percentage - 10:
            insights.append(f"🤗 Recent times have been challenging, but remember your overall journey is {positive_percentage}% positive.")

    if total_events >= 10:
        insights.append(f"🎯 You've recorded {total_events} life events! This shows great self-awareness and reflection.")

    return insights or ["Keep adding events to unlock more personalized insights!"]


def build_insights(events: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    return {
        "total_events": len(events),
        "sentiment_breakdown": sentiment_breakdown(events),
        "category_breakdown": category_breakdown(events),
        "monthly_trends": monthly_trends(events, today),
        "insights": generate_insights(events, today),
    }
