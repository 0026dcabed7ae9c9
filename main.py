import os
import re
from datetime import datetime
import logging
from typing import List, Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Depends, Cookie, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, field_validator

from database import (
    get_database_path, get_storage_info, is_railway_environment,
    get_db_connection, init_database, get_table_counts
)
from schema_migration import migrate_if_needed
from user_sessions import (
    SessionManager, DuplicateUserError, SESSION_COOKIE_NAME,
    validate_timezone, get_session_ttl
)
from event_store import EventManager, EventFilter, SORT_COLUMNS
from life_timeline import (
    EventCategory, parse_date, user_today, build_timeline, get_week,
    timeline_summary, build_life_chapters, find_anniversaries, build_insights,
    age_in_years
)
from ai_services import AIServices, get_openai_client
from historical_events import HistoricalEventsService, merge_events, sort_by_significance
from sample_data import seed_sample_events, populate_historical_events, get_historical_events_count

# Configure logging once for the API process
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T.*)?$")
MAX_GRID_WEEKS = 100 * 52

app = FastAPI(title="LifeWeeks Backend")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validate_date_string(value: str) -> str:
    value = value.strip()
    if not DATE_PATTERN.match(value):
        raise ValueError("Invalid date format")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValueError("Invalid date format")
    return value


def validate_birthdate(value: str) -> str:
    value = validate_date_string(value)
    if parse_date(value) > datetime.utcnow().date():
        raise ValueError("Birthdate cannot be in the future")
    return value


def require_text(value: str, message: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


# Pydantic models
class UserCreate(BaseModel):
    email: str
    birthdate: str
    timezone: str = "UTC"

    @field_validator("email")
    @classmethod
    def email_must_have_at_sign(cls, v: str) -> str:
        v = v.strip()
        local, _, domain = v.partition("@")
        if not local or not domain:
            raise ValueError("Invalid email address")
        return v

    @field_validator("birthdate")
    @classmethod
    def birthdate_must_be_past_date(cls, v: str) -> str:
        return validate_birthdate(v)

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        if not validate_timezone(v):
            raise ValueError("Unknown timezone")
        return v


class UserUpdate(BaseModel):
    birthdate: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("birthdate")
    @classmethod
    def birthdate_must_be_past_date(cls, v: Optional[str]) -> Optional[str]:
        return validate_birthdate(v) if v is not None else v

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not validate_timezone(v):
            raise ValueError("Unknown timezone")
        return v


class PersonalEventCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    description: str
    date: str
    category: EventCategory

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        return require_text(v, "Title is required")

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str) -> str:
        return require_text(v, "Description is required")

    @field_validator("date")
    @classmethod
    def date_format(cls, v: str) -> str:
        return validate_date_string(v)


class PersonalEventUpdate(BaseModel):
    """Partial update; omitted fields keep their stored values"""
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    category: Optional[EventCategory] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, v: Optional[str]) -> Optional[str]:
        return require_text(v, "Title is required") if v is not None else v

    @field_validator("description")
    @classmethod
    def description_required(cls, v: Optional[str]) -> Optional[str]:
        return require_text(v, "Description is required") if v is not None else v

    @field_validator("date")
    @classmethod
    def date_format(cls, v: Optional[str]) -> Optional[str]:
        return validate_date_string(v) if v is not None else v


class SentimentRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_required(cls, v: str) -> str:
        return require_text(v, "Text is required")


class NarrateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    personal_event_text: Optional[str] = Field(None, alias="personalEventText")
    historical_event_text: Optional[str] = Field(None, alias="historicalEventText")
    week_date: Optional[str] = Field(None, alias="weekDate")
    event_id: Optional[str] = Field(None, alias="eventId")


class ArtEventInput(BaseModel):
    title: str
    description: str = ""
    category: Optional[str] = None
    sentiment: Optional[str] = None


class ArtRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chapter_name: Optional[str] = Field(None, alias="chapterName")
    event_ids: List[str] = Field(default_factory=list, alias="eventIds")
    events: List[ArtEventInput] = Field(default_factory=list)
    generate_image: bool = Field(True, alias="generateImage")


# Service factories, overridden in tests through app.dependency_overrides
def get_session_manager() -> SessionManager:
    return SessionManager()


def get_event_manager() -> EventManager:
    return EventManager()


def get_ai_services() -> AIServices:
    return AIServices(client=get_openai_client())


def get_historical_service() -> HistoricalEventsService:
    return HistoricalEventsService()


def get_current_user(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    sessions: SessionManager = Depends(get_session_manager),
) -> Dict[str, Any]:
    """Resolve the session cookie to a user or reject the request"""
    user = sessions.resolve_session(session_token)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def parse_optional_date(value: Optional[str]):
    """Query and body dates may be plain days or full ISO timestamps"""
    if not value:
        return None
    value = value.strip()
    if not ISO_DATE_PATTERN.match(value):
        raise HTTPException(status_code=400, detail="Invalid date format")
    try:
        return parse_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=int(get_session_ttl().total_seconds()),
        httponly=True,
        samesite="lax",
        secure=os.getenv("ENVIRONMENT") == "production",
    )


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Starting LifeWeeks Backend...")
    logger.info(f"📍 Environment: {'Railway' if is_railway_environment() else 'Local'}")
    logger.info(f"💾 Database path: {get_database_path()}")

    if not init_database():
        logger.warning("⚠️ Database initialization failed, but continuing...")
        return

    result = migrate_if_needed(get_database_path())
    if not result.get("success"):
        logger.warning(f"⚠️ Auto-migration check failed: {result.get('error')}")
    elif result.get("columns_added"):
        logger.info(f"🎉 Auto-migration completed: {result['columns_added']} columns added")

    try:
        counts = get_table_counts()
        logger.info(f"👤 Users: {counts['users']}")
        logger.info(f"📝 Personal events: {counts['personal_events']}")
        logger.info(f"📚 Stored historical events: {counts['historical_events']}")
    except Exception as e:
        logger.warning(f"⚠️ Could not check existing data: {e}")

    logger.info("✅ LifeWeeks Backend ready")


@app.get("/health")
async def health_check():
    """Simple health check for Railway deployment"""
    return {
        "status": "healthy",
        "service": "lifeweeks-backend",
        "version": API_VERSION,
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health/detailed")
def detailed_health_check():
    """Detailed health check with database connectivity and configuration status"""
    configuration = {
        "openai_configured": bool(os.getenv("OPENAI_API_KEY")),
        "environment": os.getenv("ENVIRONMENT", "development"),
        "storage_info": get_storage_info(),
    }

    try:
        db_path = get_database_path()
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT 1")
        cursor.close()
        conn.close()

        counts = get_table_counts()
        db_exists = os.path.exists(db_path)

        return {
            "status": "healthy",
            "database": "sqlite_connected",
            "database_path": db_path,
            "database_exists": db_exists,
            "database_size_bytes": os.path.getsize(db_path) if db_exists else 0,
            "configuration": configuration,
            "stats": counts,
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.error(f"Detailed health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "sqlite_disconnected",
            "error": str(e),
            "database_path": get_database_path(),
            "configuration": configuration,
            "timestamp": datetime.utcnow().isoformat()
        }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "service": "LifeWeeks Backend",
        "version": API_VERSION,
        "database": "SQLite",
        "storage": get_storage_info(),
        "features": [
            "life_in_weeks_timeline",
            "personal_events",
            "sentiment_analysis",
            "historical_context",
            "ai_narratives",
            "chapter_art_prompts",
            "life_chapters",
            "anniversary_reminders",
            "insights",
            "sample_data"
        ],
        "endpoints": [
            "/health",
            "/health/detailed",
            "/api/users",
            "/api/me",
            "/api/logout",
            "/api/events",
            "/api/events/{event_id}",
            "/api/sentiment",
            "/api/timeline",
            "/api/timeline/weeks/{week_number}",
            "/api/chapters",
            "/api/anniversaries",
            "/api/insights",
            "/api/historical-events",
            "/api/narrate",
            "/api/generate-art",
            "/api/populate-historical",
            "/api/seed-data"
        ],
        "status": "ready"
    }


# Users and sessions
@app.post("/api/users", status_code=201)
def create_user(request: UserCreate, response: Response,
                      sessions: SessionManager = Depends(get_session_manager)):
    """Register a profile and start a session for it"""
    try:
        user = sessions.create_user(request.email, request.birthdate, request.timezone)
        token = sessions.create_session(user["id"])
        set_session_cookie(response, token)

        return {"status": "success", "user": user}

    except DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Create user failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create user: {str(e)}")


@app.get("/api/me")
def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    birthdate = parse_date(user["birthdate"])
    today = user_today(user["timezone"])
    return {
        "status": "success",
        "user": user,
        "current_age": age_in_years(birthdate, today),
        "today": today.isoformat()
    }


@app.put("/api/me")
def update_me(request: UserUpdate, user: Dict[str, Any] = Depends(get_current_user),
                    sessions: SessionManager = Depends(get_session_manager)):
    try:
        updated = sessions.update_user(user["id"], birthdate=request.birthdate, timezone_name=request.timezone)
        logger.info(f"✏️ Updated profile for user {user['id']}")
        return {"status": "success", "user": updated}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Update profile failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update profile: {str(e)}")


@app.post("/api/logout")
def logout(response: Response,
                 session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
                 user: Dict[str, Any] = Depends(get_current_user),
                 sessions: SessionManager = Depends(get_session_manager)):
    sessions.revoke_session(session_token)
    response.delete_cookie(SESSION_COOKIE_NAME)
    logger.info(f"👋 Logged out user {user['id']}")
    return {"status": "success", "message": "Logged out"}


# Personal events
@app.post("/api/events", status_code=201)
def create_event(request: PersonalEventCreate,
                       user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager),
                       ai: AIServices = Depends(get_ai_services)):
    """Create a personal event, classifying the sentiment of its description"""
    try:
        sentiment, method = ai.analyze_sentiment(request.description)
        event = events.create_event(user["id"], request.model_dump(), sentiment)

        logger.info(f"📝 Created event {event['id']} for user {user['id']} ({sentiment} via {method})")
        return {"status": "success", "event": event, "sentiment_method": method}

    except Exception as e:
        logger.error(f"Create event failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create event: {str(e)}")


@app.get("/api/events")
def list_events(categories: Optional[str] = None, sentiments: Optional[str] = None,
                      start_date: Optional[str] = None, end_date: Optional[str] = None,
                      search: Optional[str] = None, sort_by: str = "date",
                      limit: Optional[int] = Query(None, ge=1, le=1000),
                      offset: int = Query(0, ge=0),
                      user: Dict[str, Any] = Depends(get_current_user),
                      events: EventManager = Depends(get_event_manager)):
    """List the user's events with the advanced filters applied"""
    try:
        if sort_by not in SORT_COLUMNS:
            raise HTTPException(status_code=400, detail=f"Invalid sort_by. Must be one of: {', '.join(SORT_COLUMNS)}")

        start = parse_optional_date(start_date)
        end = parse_optional_date(end_date)

        event_filter = EventFilter(
            categories=split_csv(categories),
            sentiments=split_csv(sentiments),
            start_date=start.isoformat() if start else None,
            end_date=end.isoformat() if end else None,
            search=search.strip() if search and search.strip() else None,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        results = events.list_events(user["id"], event_filter)

        return {
            "status": "success",
            "events": results,
            "count": len(results),
            "filters": {
                "categories": event_filter.categories,
                "sentiments": event_filter.sentiments,
                "start_date": event_filter.start_date,
                "end_date": event_filter.end_date,
                "search": event_filter.search,
                "sort_by": event_filter.sort_by
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"List events failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list events: {str(e)}")


@app.get("/api/events/{event_id}")
def get_event(event_id: str, user: Dict[str, Any] = Depends(get_current_user),
                    events: EventManager = Depends(get_event_manager)):
    event = events.get_event(event_id, user["id"])
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"status": "success", "event": event}


@app.put("/api/events/{event_id}")
def update_event(event_id: str, request: PersonalEventUpdate,
                       user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager),
                       ai: AIServices = Depends(get_ai_services)):
    """Update an event; the sentiment is re-classified when the description changes"""
    try:
        existing = events.get_event(event_id, user["id"])
        if not existing:
            raise HTTPException(status_code=404, detail="Event not found")

        changes = request.model_dump(exclude_none=True)
        if "description" in changes and changes["description"] != existing["description"]:
            changes["sentiment"], _ = ai.analyze_sentiment(changes["description"])

        if changes and not events.update_event(event_id, user["id"], changes):
            raise HTTPException(status_code=404, detail="Event not found")

        logger.info(f"✏️ Updated event {event_id} for user {user['id']}")
        return {
            "status": "success",
            "message": "Event updated successfully",
            "event": events.get_event(event_id, user["id"])
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update event failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update event: {str(e)}")


@app.delete("/api/events/{event_id}")
def delete_event(event_id: str, user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager)):
    try:
        if not events.delete_event(event_id, user["id"]):
            raise HTTPException(status_code=404, detail="Event not found")

        logger.info(f"🗑️ Deleted event {event_id} for user {user['id']}")
        return {
            "status": "success",
            "message": "Event deleted",
            "event_id": event_id,
            "deleted_at": datetime.utcnow().isoformat()
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete event failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete event: {str(e)}")


@app.post("/api/sentiment")
def analyze_sentiment(request: SentimentRequest, user: Dict[str, Any] = Depends(get_current_user),
                            ai: AIServices = Depends(get_ai_services)):
    sentiment, method = ai.analyze_sentiment(request.text)
    return {"status": "success", "sentiment": sentiment, "method": method}


# Timeline views
@app.get("/api/timeline")
def get_timeline(min_weeks: int = Query(0, ge=0, le=MAX_GRID_WEEKS),
                       only_with_events: bool = False,
                       search: Optional[str] = None,
                       user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager)):
    """Week grid from birth to the current week with events bucketed per week"""
    try:
        birthdate = parse_date(user["birthdate"])
        today = user_today(user["timezone"])

        weeks = build_timeline(birthdate, events.list_events(user["id"]), today, min_weeks=min_weeks)
        summary = timeline_summary(birthdate, weeks, today)

        if search and search.strip():
            weeks = [week for week in weeks if week.matches(search.strip())]
        elif only_with_events:
            weeks = [week for week in weeks if week.personal_events]

        return {
            "status": "success",
            "summary": summary,
            "weeks": [week.to_dict() for week in weeks],
            "returned_weeks": len(weeks)
        }

    except Exception as e:
        logger.error(f"Get timeline failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to build timeline: {str(e)}")


@app.get("/api/timeline/weeks/{week_number}")
def get_timeline_week(week_number: int, wikipedia: bool = False,
                            user: Dict[str, Any] = Depends(get_current_user),
                            events: EventManager = Depends(get_event_manager),
                            historical: HistoricalEventsService = Depends(get_historical_service)):
    """One week of the grid with its personal events and the history around it"""
    try:
        if week_number < 1 or week_number > MAX_GRID_WEEKS:
            raise HTTPException(status_code=404, detail="Week not found")

        birthdate = parse_date(user["birthdate"])
        week = get_week(birthdate, events.list_events(user["id"]), week_number)

        remote = historical.get_events_for_week(week.start_date) if wikipedia else []
        local = historical.get_local_events(week.start_date, week.end_date)
        historical_events = sort_by_significance(merge_events(remote, local))

        return {
            "status": "success",
            "week": week.to_dict(),
            "historical_events": [event.to_dict() for event in historical_events]
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get timeline week failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load week: {str(e)}")


@app.get("/api/chapters")
def get_chapters(user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager)):
    try:
        birthdate = parse_date(user["birthdate"])
        today = user_today(user["timezone"])
        chapters = build_life_chapters(birthdate, events.list_events(user["id"]), today)

        return {
            "status": "success",
            "current_age": age_in_years(birthdate, today),
            "chapters": [chapter.to_dict() for chapter in chapters]
        }

    except Exception as e:
        logger.error(f"Get chapters failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to build life chapters: {str(e)}")


@app.get("/api/anniversaries")
def get_anniversaries(window_days: int = Query(90, ge=0, le=366),
                            user: Dict[str, Any] = Depends(get_current_user),
                            events: EventManager = Depends(get_event_manager)):
    try:
        today = user_today(user["timezone"])
        anniversaries = find_anniversaries(events.list_events(user["id"]), today, window_days)

        return {
            "status": "success",
            "today": today.isoformat(),
            "window_days": window_days,
            "anniversaries": [anniversary.to_dict() for anniversary in anniversaries]
        }

    except Exception as e:
        logger.error(f"Get anniversaries failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to find anniversaries: {str(e)}")


@app.get("/api/insights")
def get_insights(user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager)):
    try:
        today = user_today(user["timezone"])
        return {"status": "success", **build_insights(events.list_events(user["id"]), today)}
    except Exception as e:
        logger.error(f"Get insights failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate insights: {str(e)}")


# Historical context
@app.get("/api/historical-events")
def get_historical_events(start_date: Optional[str] = None, end_date: Optional[str] = None,
                                startDate: Optional[str] = Query(None, include_in_schema=False),
                                endDate: Optional[str] = Query(None, include_in_schema=False),
                                category: Optional[str] = None,
                                limit: int = Query(10, ge=1, le=100),
                                wikipedia: bool = True,
                                user: Dict[str, Any] = Depends(get_current_user),
                                historical: HistoricalEventsService = Depends(get_historical_service)):
    """Historical events from Wikipedia with the curated dataset as fallback"""
    try:
        start = parse_optional_date(start_date or startDate)
        end = parse_optional_date(end_date or endDate)

        result = historical.find_events(start, end, category=category, limit=limit, use_wikipedia=wikipedia)
        return {"status": "success", **result}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Historical events lookup failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch historical events: {str(e)}")


@app.post("/api/narrate")
def narrate(request: NarrateRequest,
                  user: Dict[str, Any] = Depends(get_current_user),
                  events: EventManager = Depends(get_event_manager),
                  ai: AIServices = Depends(get_ai_services),
                  historical: HistoricalEventsService = Depends(get_historical_service)):
    """Connect a personal event to the history of its week"""
    try:
        personal_text = (request.personal_event_text or "").strip()
        if not personal_text:
            raise HTTPException(status_code=400, detail="Personal event text is required")

        historical_context = (request.historical_event_text or "").strip() or None
        narrative = None

        if historical_context:
            narrative = ai.generate_narrative(personal_text, historical_context)
        elif request.week_date:
            week_start = parse_optional_date(request.week_date)
            top_event = historical.most_significant_for_week(week_start)
            if top_event:
                historical_context = f"{top_event.title}: {top_event.description}"
                narrative = ai.generate_narrative(personal_text, historical_context)

        if not narrative:
            narrative = ai.generate_personal_reflection(personal_text)

        stored = False
        if request.event_id:
            try:
                if events.get_event(request.event_id, user["id"]):
                    stored = events.store_narrative(request.event_id, user["id"], narrative)
                else:
                    logger.warning(f"Narrative not stored, event {request.event_id} not found for user {user['id']}")
            except Exception as e:
                logger.warning(f"Failed to store narrative for event {request.event_id}: {e}")

        return {
            "status": "success",
            "narrative": narrative,
            "historical_context": historical_context,
            "generated": True,
            "stored": stored
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Narrative generation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate narrative: {str(e)}")


@app.post("/api/generate-art")
def generate_art(request: ArtRequest,
                       user: Dict[str, Any] = Depends(get_current_user),
                       events: EventManager = Depends(get_event_manager),
                       ai: AIServices = Depends(get_ai_services)):
    """Art prompt, and an image when possible, for a life chapter"""
    try:
        if request.event_ids:
            art_events = events.get_events_by_ids(request.event_ids, user["id"])
        else:
            art_events = [event.model_dump() for event in request.events]

        if not art_events:
            raise HTTPException(status_code=400, detail="No events provided")

        prompt = ai.generate_art_prompt(art_events, request.chapter_name)
        image_url = ai.generate_art_image(prompt) if request.generate_image else None

        logger.info(f"🎨 Generated art prompt for {len(art_events)} events")
        return {
            "status": "success",
            "chapter_name": request.chapter_name,
            "prompt": prompt,
            "image_url": image_url
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Art generation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate art: {str(e)}")


@app.get("/api/populate-historical")
def get_populate_status(user: Dict[str, Any] = Depends(get_current_user)):
    try:
        count = get_historical_events_count()
        return {
            "status": "success",
            "count": count,
            "has_events": count > 0,
            "message": f"Database contains {count} historical events"
        }
    except Exception as e:
        logger.error(f"Historical events count failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to check historical events: {str(e)}")


@app.post("/api/populate-historical")
def populate_historical(user: Dict[str, Any] = Depends(get_current_user)):
    result = populate_historical_events()
    if not result["success"]:
        raise HTTPException(status_code=500, detail=f"Failed to populate historical events: {result['message']}")
    return {"status": "success", **result}


# Sample data
@app.get("/api/seed-data")
def get_seed_status(user: Dict[str, Any] = Depends(get_current_user),
                          events: EventManager = Depends(get_event_manager)):
    try:
        event_count = events.count_events(user["id"])
        return {
            "status": "success",
            "has_events": event_count > 0,
            "event_count": event_count,
            "sentiment_breakdown": events.sentiment_breakdown(user["id"]),
            "can_seed": event_count == 0
        }
    except Exception as e:
        logger.error(f"Seed status check failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to check seed status: {str(e)}")


@app.post("/api/seed-data")
def seed_data(user: Dict[str, Any] = Depends(get_current_user),
                    events: EventManager = Depends(get_event_manager)):
    try:
        return {"status": "success", **seed_sample_events(user["id"], events)}
    except Exception as e:
        logger.error(f"Seeding sample data failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create sample data: {str(e)}")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    logger.info(f"🚀 Starting LifeWeeks server on port {port}")
    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=port)
