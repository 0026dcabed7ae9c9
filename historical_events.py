"""
Historical Events Module
Fetches "On this day" events from the Wikimedia feed, categorizes them, and
merges them with the curated dataset and the stored historical_events table.
"""

import os
import re
import time
import logging
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import List, Dict, Any, Optional
from urllib.parse import quote

import requests

from database import get_db_connection

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "https://api.wikimedia.org/feed/v1/wikipedia/en"
USER_AGENT = "LifeWeeks/1.0 (https://lifeweeks.app) Educational Purpose"
REQUEST_TIMEOUT = 10
EVENTS_PER_TYPE = 5
MAX_DAYS_PER_RANGE = 7
RATE_LIMIT_DELAY = 0.1
MAX_DESCRIPTION_LENGTH = 200

SIGNIFICANCE_ORDER = {"high": 3, "medium": 2, "low": 1}

HIGH_SIGNIFICANCE_KEYWORDS = [
    "world war", "revolution", "independence", "assassination", "discovery",
    "invention", "first", "founded", "established", "treaty", "constitution",
]
MEDIUM_SIGNIFICANCE_KEYWORDS = [
    "battle", "election", "born", "died", "published", "opened", "launched",
]

# Ordered: the first matching rule wins
CATEGORY_RULES = [
    ("War & Conflict", ["war", "battle", "conflict"]),
    ("Science & Technology", ["discover", "invent", "science", "technology"]),
    ("Arts & Culture", ["art", "music", "literature", "culture"]),
    ("Politics", ["politic", "government", "election", "treaty"]),
    ("Natural Disasters", ["disaster", "earthquake", "flood", "hurricane"]),
    ("Sports", ["sport", "olympic", "championship"]),
]

# Curated events used whenever the Wikipedia feed is unavailable
FALLBACK_HISTORICAL_EVENTS = [
    # Technology & Innovation
    {"date": "2007-06-29", "title": "iPhone Launch", "description": "Apple launches the first iPhone, revolutionizing mobile technology", "category": "Technology"},
    {"date": "2004-02-04", "title": "Facebook Launch", "description": "Facebook is launched by Mark Zuckerberg at Harvard University", "category": "Technology"},
    {"date": "2005-02-14", "title": "YouTube Founded", "description": "YouTube is founded, changing how we share and consume video content", "category": "Technology"},
    {"date": "2006-07-15", "title": "Twitter Launch", "description": "Twitter launches, introducing microblogging to the world", "category": "Technology"},
    {"date": "2008-09-23", "title": "Android Launch", "description": "Google launches Android, the open-source mobile operating system", "category": "Technology"},
    {"date": "2010-04-03", "title": "iPad Launch", "description": "Apple introduces the iPad, creating the modern tablet market", "category": "Technology"},
    {"date": "2016-03-09", "title": "AlphaGo Defeats Human Champion", "description": "Google's AlphaGo defeats world Go champion Lee Sedol", "category": "Technology"},
    {"date": "2022-11-30", "title": "ChatGPT Launch", "description": "OpenAI launches ChatGPT, bringing AI to mainstream users", "category": "Technology"},
    # Global Events & Politics
    {"date": "2001-09-11", "title": "9/11 Terrorist Attacks", "description": "Terrorist attacks on the World Trade Center and Pentagon", "category": "Global Events"},
    {"date": "2008-09-15", "title": "Financial Crisis", "description": "Lehman Brothers collapse triggers global financial crisis", "category": "Economics"},
    {"date": "2020-03-11", "title": "COVID-19 Pandemic Declared", "description": "WHO declares COVID-19 a global pandemic", "category": "Health"},
    {"date": "2016-11-08", "title": "US Presidential Election", "description": "Donald Trump wins US Presidential Election", "category": "Politics"},
    {"date": "2020-11-07", "title": "Biden Wins Presidency", "description": "Joe Biden declared winner of 2020 US Presidential Election", "category": "Politics"},
    {"date": "2016-06-23", "title": "Brexit Vote", "description": "UK votes to leave the European Union", "category": "Politics"},
    {"date": "2011-05-02", "title": "Osama bin Laden Killed", "description": "US forces kill Osama bin Laden in Pakistan", "category": "Global Events"},
    {"date": "2013-06-06", "title": "NSA Surveillance Revealed", "description": "Edward Snowden reveals NSA surveillance programs", "category": "Politics"},
    # Climate & Environment
    {"date": "2015-12-12", "title": "Paris Climate Agreement", "description": "Historic climate agreement signed by 196 countries", "category": "Environment"},
    {"date": "2019-09-23", "title": "Greta Thunberg UN Speech", "description": "Greta Thunberg delivers powerful climate speech at UN", "category": "Environment"},
    {"date": "2021-11-01", "title": "COP26 Climate Summit", "description": "Major climate summit held in Glasgow, Scotland", "category": "Environment"},
    # Space & Science
    {"date": "2012-08-05", "title": "Curiosity Rover Lands on Mars", "description": "NASA's Curiosity rover successfully lands on Mars", "category": "Science"},
    {"date": "2019-04-10", "title": "First Black Hole Image", "description": "Scientists capture the first image of a black hole", "category": "Science"},
    {"date": "2020-05-30", "title": "SpaceX Crew Dragon Launch", "description": "First commercial crew mission to International Space Station", "category": "Science"},
    {"date": "2021-02-18", "title": "Perseverance Rover Lands on Mars", "description": "NASA's Perseverance rover lands on Mars with Ingenuity helicopter", "category": "Science"},
    # Cultural & Social
    {"date": "2017-10-05", "title": "#MeToo Movement", "description": "Harvey Weinstein allegations spark global #MeToo movement", "category": "Social"},
    {"date": "2020-05-25", "title": "George Floyd Death", "description": "Death of George Floyd sparks global Black Lives Matter protests", "category": "Social"},
    {"date": "2018-03-17", "title": "Cambridge Analytica Scandal", "description": "Facebook-Cambridge Analytica data scandal exposed", "category": "Technology"},
    {"date": "2012-12-21", "title": "Mayan Calendar End", "description": "End of the Mayan Long Count calendar sparks apocalypse theories", "category": "Cultural"},
    # Sports & Entertainment
    {"date": "2008-08-08", "title": "Beijing Olympics", "description": "Summer Olympics held in Beijing, China", "category": "Sports"},
    {"date": "2012-07-27", "title": "London Olympics", "description": "Summer Olympics held in London, UK", "category": "Sports"},
    {"date": "2016-08-05", "title": "Rio Olympics", "description": "Summer Olympics held in Rio de Janeiro, Brazil", "category": "Sports"},
    {"date": "2021-07-23", "title": "Tokyo Olympics", "description": "Delayed Summer Olympics held in Tokyo, Japan during pandemic", "category": "Sports"},
    # Economic Events
    {"date": "2009-01-03", "title": "Bitcoin Genesis Block", "description": "First Bitcoin block mined, creating the first cryptocurrency", "category": "Economics"},
    {"date": "2017-12-17", "title": "Bitcoin Reaches $20,000", "description": "Bitcoin reaches all-time high of nearly $20,000", "category": "Economics"},
    {"date": "2021-03-11", "title": "NFT Art Sells for $69M", "description": "Beeple's digital art NFT sells for record $69.3 million", "category": "Technology"},
    # Natural Disasters
    {"date": "2004-12-26", "title": "Indian Ocean Tsunami", "description": "Devastating tsunami affects 14 countries, killing 230,000+ people", "category": "Natural Disaster"},
    {"date": "2011-03-11", "title": "Japan Earthquake and Tsunami", "description": "Magnitude 9.0 earthquake and tsunami hit Japan, causing Fukushima disaster", "category": "Natural Disaster"},
    {"date": "2005-08-29", "title": "Hurricane Katrina", "description": "Category 5 hurricane devastates New Orleans and Gulf Coast", "category": "Natural Disaster"},
]


@dataclass
class HistoricalEvent:
    date: str
    title: str
    description: str
    category: str
    source: str = "local"
    url: Optional[str] = None
    image_url: Optional[str] = None
    significance: str = "low"
    year: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def categorize_event(title: str, description: str, event_type: str = "events") -> str:
    if event_type in ("births", "deaths"):
        return "People"

    text = f"{title} {description}".lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category
    return "General History"


def assess_significance(title: str, description: str) -> str:
    text = f"{title} {description}".lower()
    if any(keyword in text for keyword in HIGH_SIGNIFICANCE_KEYWORDS):
        return "high"
    if any(keyword in text for keyword in MEDIUM_SIGNIFICANCE_KEYWORDS):
        return "medium"
    return "low"


def clean_title(title: str) -> str:
    """Strip a leading year prefix and collapse whitespace"""
    title = re.sub(r"^\d{4}[\s\-–]+", "", title)
    return re.sub(r"\s+", " ", title).strip()


def clean_description(description: str) -> str:
    """Drop parenthesised asides and truncate long extracts"""
    description = re.sub(r"\([^)]*\)", "", description)
    description = re.sub(r"\s+", " ", description).strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[:MAX_DESCRIPTION_LENGTH] + "..."
    return description


class WikipediaService:
    """Client for the Wikimedia "On this day" feed"""

    def __init__(self, feed_url: str = None, session: requests.Session = None):
        self.feed_url = (feed_url or os.getenv("WIKIPEDIA_FEED_URL", DEFAULT_FEED_URL)).rstrip("/")
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    def get_on_this_day(self, month: int, day: int) -> List[HistoricalEvent]:
        url = f"{self.feed_url}/onthisday/all/{month:02d}/{day:02d}"

        try:
            response = self.session.get(url, headers=self._headers(), timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching Wikipedia 'On This Day' data for {month}/{day}: {e}")
            return []

        events = []
        for event_type in ("events", "births", "deaths"):
            for entry in (data.get(event_type) or [])[:EVENTS_PER_TYPE]:
                event = self.process_event(entry, event_type)
                if event:
                    events.append(event)
        return events

    def process_event(self, entry: Dict[str, Any], event_type: str) -> Optional[HistoricalEvent]:
        try:
            year = entry.get("year")
            title = entry.get("text") or entry.get("title") or "Historical Event"
            url = None
            image_url = None

            pages = entry.get("pages") or []
            if pages:
                page = pages[0]
                description = page.get("extract") or entry.get("text") or ""
                image_url = (page.get("thumbnail") or {}).get("source")
                if page.get("title"):
                    url = f"https://en.wikipedia.org/wiki/{quote(page['title'])}"
            else:
                description = entry.get("text") or ""

            description = clean_description(description)

            return HistoricalEvent(
                date=f"{int(year):04d}-01-01" if year else "",
                title=clean_title(title),
                description=description,
                category=categorize_event(title, description, event_type),
                source="wikipedia",
                url=url,
                image_url=image_url,
                significance=assess_significance(title, description),
                year=int(year) if year else None,
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Error processing Wikipedia event: {e}")
            return None

    def get_events_for_date_range(self, start: date, end: date) -> List[HistoricalEvent]:
        events = []
        current = start
        day_count = 0

        while current <= end and day_count < MAX_DAYS_PER_RANGE:
            day_events = self.get_on_this_day(current.month, current.day)
            for event in day_events:
                event.date = current.isoformat()
            events.extend(day_events)

            current += timedelta(days=1)
            day_count += 1
            if current <= end and day_count < MAX_DAYS_PER_RANGE:
                time.sleep(RATE_LIMIT_DELAY)

        return events


def _curated_event(row: Dict[str, Any]) -> HistoricalEvent:
    return HistoricalEvent(
        date=row["date"],
        title=row["title"],
        description=row["description"],
        category=row["category"],
        source="local",
        significance=assess_significance(row["title"], row["description"]),
        year=int(row["date"][:4]),
    )


def load_stored_events() -> List[Dict[str, Any]]:
    """Rows of the historical_events table populated by /api/populate-historical"""
    conn = get_db_connection()
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT date, title, description, category FROM historical_events ORDER BY date")
        return [dict(row) for row in cursor.fetchall()]
    finally:
        cursor.close()
        conn.close()


def merge_events(*sources: List[HistoricalEvent]) -> List[HistoricalEvent]:
    """Concatenate sources keeping the first occurrence of each (date, title)"""
    seen = set()
    merged = []
    for source in sources:
        for event in source:
            key = (event.date, event.title.strip().lower())
            if key in seen:
                continue
            seen.add(key)
            merged.append(event)
    return merged


def sort_by_significance(events: List[HistoricalEvent]) -> List[HistoricalEvent]:
    """High before medium before low, most recent first within a level"""
    by_date = sorted(events, key=lambda e: e.date, reverse=True)
    return sorted(by_date, key=lambda e: SIGNIFICANCE_ORDER.get(e.significance, 1), reverse=True)


class HistoricalEventsService:
    """Combines the Wikipedia feed with the local curated and stored events"""

    def __init__(self, wikipedia: WikipediaService = None):
        self.wikipedia = wikipedia or WikipediaService()

    def get_events_for_date(self, day: date) -> List[HistoricalEvent]:
        events = self.wikipedia.get_on_this_day(day.month, day.day)
        for event in events:
            event.date = day.isoformat()
        return events

    def get_events_for_week(self, start: date) -> List[HistoricalEvent]:
        return self.wikipedia.get_events_for_date_range(start, start + timedelta(days=6))

    def get_local_events(self, start: Optional[date] = None, end: Optional[date] = None) -> List[HistoricalEvent]:
        curated = [_curated_event(row) for row in FALLBACK_HISTORICAL_EVENTS]
        try:
            stored = [_curated_event(row) for row in load_stored_events()]
        except Exception as e:
            logger.warning(f"Could not read stored historical events: {e}")
            stored = []

        events = merge_events(curated, stored)
        if start and end:
            events = [e for e in events if start.isoformat() <= e.date <= end.isoformat()]
        return events

    def find_events(self, start: Optional[date] = None, end: Optional[date] = None,
                    category: Optional[str] = None, limit: int = 10,
                    use_wikipedia: bool = True) -> Dict[str, Any]:
        events: List[HistoricalEvent] = []

        if use_wikipedia and start:
            logger.info(f"Fetching Wikipedia events for {start.isoformat()}")
            events = self.get_events_for_date(start)
            if events:
                logger.info(f"Found {len(events)} Wikipedia events")
            else:
                logger.info("No Wikipedia events found, using fallback data")

        if not events:
            events = self.get_local_events(start, end)

        if category:
            events = [e for e in events if e.category.lower() == category.lower()]

        events = sort_by_significance(events)[:limit]

        categories = list(dict.fromkeys(
            [row["category"] for row in FALLBACK_HISTORICAL_EVENTS] + [e.category for e in events]
        ))
        from_wikipedia = bool(events) and events[0].source == "wikipedia"

        return {
            "events": [e.to_dict() for e in events],
            "total": len(events),
            "categories": categories,
            "source": "wikipedia" if from_wikipedia else "local",
            "message": "Data fetched from Wikipedia API" if from_wikipedia else "Using local historical data",
        }

    def most_significant_for_week(self, start: date, use_wikipedia: bool = True) -> Optional[HistoricalEvent]:
        """The top-ranked event between start and start + 7 days, used for narratives"""
        result = self.find_events(start, start + timedelta(days=7), limit=1, use_wikipedia=use_wikipedia)
        if not result["events"]:
            return None
        return HistoricalEvent(**result["events"][0])
