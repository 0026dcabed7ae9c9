"""
Sample personal events for new users and the curated historical dataset
loaded into the historical_events table.
"""

import logging
from typing import Dict, Any

from database import get_db_connection
from event_store import EventManager

logger = logging.getLogger(__name__)

SAMPLE_EVENTS = [
    # Career
    {"title": "Started First Job", "description": "Began my career as a software developer at a tech startup. Excited to learn and grow in the field.", "date": "2020-06-15", "category": "Career", "sentiment": "positive"},
    {"title": "Got Promoted", "description": "Received a promotion to Senior Developer after demonstrating strong technical skills and leadership.", "date": "2021-03-10", "category": "Career", "sentiment": "positive"},
    {"title": "Changed Jobs", "description": "Left my previous company to join a larger organization with better growth opportunities.", "date": "2022-01-20", "category": "Career", "sentiment": "neutral"},
    # Education
    {"title": "Graduated College", "description": "Completed my Bachelor's degree in Computer Science with honors. Proud of this achievement!", "date": "2020-05-15", "category": "Education", "sentiment": "positive"},
    {"title": "Started Online Course", "description": "Enrolled in a machine learning course to expand my technical skills and stay current with industry trends.", "date": "2021-09-01", "category": "Education", "sentiment": "positive"},
    {"title": "Failed Certification Exam", "description": "Didn't pass the AWS certification exam on my first attempt. Need to study more and try again.", "date": "2021-11-15", "category": "Education", "sentiment": "negative"},
    {"title": "Passed Certification", "description": "Successfully obtained AWS Solutions Architect certification after months of preparation!", "date": "2022-02-28", "category": "Education", "sentiment": "positive"},
    # Personal
    {"title": "Moved to New City", "description": "Relocated to San Francisco for better career opportunities. Excited but nervous about the change.", "date": "2020-08-01", "category": "Personal", "sentiment": "neutral"},
    {"title": "Adopted a Pet", "description": "Brought home a rescue dog named Max. He's brought so much joy and companionship to my life.", "date": "2021-04-12", "category": "Personal", "sentiment": "positive"},
    {"title": "Health Scare", "description": "Had to go to the emergency room due to chest pain. Turned out to be anxiety, but it was scary.", "date": "2021-07-22", "category": "Personal", "sentiment": "negative"},
    {"title": "Started Therapy", "description": "Began seeing a therapist to work on anxiety and stress management. Taking care of my mental health.", "date": "2021-08-05", "category": "Personal", "sentiment": "positive"},
    {"title": "Family Reunion", "description": "Had a wonderful family gathering for the holidays. Great to reconnect with relatives I hadn't seen in years.", "date": "2021-12-25", "category": "Personal", "sentiment": "positive"},
    {"title": "Breakup", "description": "Ended a long-term relationship. It was mutual but still emotionally difficult.", "date": "2022-03-14", "category": "Personal", "sentiment": "negative"},
    # Travel
    {"title": "Trip to Japan", "description": "Amazing two-week vacation in Japan. Experienced incredible culture, food, and hospitality.", "date": "2021-10-01", "category": "Travel", "sentiment": "positive"},
    {"title": "Weekend Getaway", "description": "Short trip to Napa Valley for wine tasting and relaxation. Perfect way to unwind from work stress.", "date": "2022-05-20", "category": "Travel", "sentiment": "positive"},
    {"title": "Flight Cancelled", "description": "My vacation to Europe was ruined when flights got cancelled due to airline strikes. Very frustrating.", "date": "2022-07-15", "category": "Travel", "sentiment": "negative"},
    {"title": "Road Trip", "description": "Drove along the Pacific Coast Highway with friends. Beautiful scenery and great memories made.", "date": "2022-09-10", "category": "Travel", "sentiment": "positive"},
    # Recent
    {"title": "Started Side Project", "description": "Began working on a personal app project in my spare time. Excited to build something of my own.", "date": "2023-01-15", "category": "Career", "sentiment": "positive"},
    {"title": "Joined Gym", "description": "Finally committed to getting in better shape. Started a regular workout routine and feeling great.", "date": "2023-02-01", "category": "Personal", "sentiment": "positive"},
    {"title": "Learned New Skill", "description": "Completed a course in UI/UX design. Always wanted to understand the design side of development better.", "date": "2023-04-20", "category": "Education", "sentiment": "positive"},
    {"title": "Volunteer Work", "description": "Started volunteering at a local animal shelter. It's rewarding to give back to the community.", "date": "2023-06-10", "category": "Personal", "sentiment": "positive"},
]

HISTORICAL_EVENTS_DATA = [
    # Technology & Science
    {"date": "2007-06-29", "title": "iPhone Launch", "description": "Apple launches the first iPhone, revolutionizing mobile technology and changing how we interact with devices", "category": "Technology"},
    {"date": "2004-02-04", "title": "Facebook Launch", "description": "Facebook is launched by Mark Zuckerberg at Harvard University, beginning the social media revolution", "category": "Technology"},
    {"date": "1969-07-20", "title": "Moon Landing", "description": "Apollo 11 lands on the moon, Neil Armstrong becomes first human to walk on lunar surface", "category": "Science"},
    {"date": "1989-03-12", "title": "World Wide Web", "description": "Tim Berners-Lee proposes the World Wide Web, revolutionizing global communication", "category": "Technology"},
    {"date": "2003-04-14", "title": "Human Genome Project", "description": "Human Genome Project completed, mapping all human DNA sequences", "category": "Science"},
    # Global Events & Politics
    {"date": "2001-09-11", "title": "9/11 Terrorist Attacks", "description": "Terrorist attacks on the World Trade Center and Pentagon change global security forever", "category": "Global Events"},
    {"date": "1989-11-09", "title": "Berlin Wall Falls", "description": "The Berlin Wall falls, symbolizing the end of the Cold War and German reunification", "category": "Politics"},
    {"date": "1991-12-26", "title": "Soviet Union Dissolves", "description": "The Soviet Union officially dissolves, ending the Cold War era", "category": "Politics"},
    {"date": "2008-11-04", "title": "Obama Elected", "description": "Barack Obama elected as first African American President of the United States", "category": "Politics"},
    {"date": "2016-06-23", "title": "Brexit Vote", "description": "United Kingdom votes to leave the European Union in historic referendum", "category": "Politics"},
    # Economics & Finance
    {"date": "2008-09-15", "title": "Financial Crisis", "description": "Lehman Brothers collapse triggers global financial crisis and recession", "category": "Economics"},
    {"date": "1929-10-29", "title": "Black Tuesday", "description": "Stock market crash triggers the Great Depression", "category": "Economics"},
    {"date": "2009-01-03", "title": "Bitcoin Genesis", "description": "First Bitcoin block mined, beginning the cryptocurrency revolution", "category": "Economics"},
    {"date": "1971-08-15", "title": "Nixon Shock", "description": "US abandons gold standard, fundamentally changing global monetary system", "category": "Economics"},
    # Health & Pandemics
    {"date": "2020-03-11", "title": "COVID-19 Pandemic Declared", "description": "WHO declares COVID-19 a global pandemic, affecting billions worldwide", "category": "Health"},
    {"date": "1981-06-05", "title": "AIDS First Reported", "description": "First cases of AIDS reported, beginning a global health crisis", "category": "Health"},
    {"date": "1955-04-12", "title": "Polio Vaccine", "description": "Jonas Salk announces successful polio vaccine, saving millions of lives", "category": "Health"},
    {"date": "2003-04-16", "title": "SARS Outbreak", "description": "SARS coronavirus outbreak spreads globally, foreshadowing future pandemics", "category": "Health"},
    # Natural Disasters
    {"date": "2004-12-26", "title": "Indian Ocean Tsunami", "description": "Massive tsunami kills over 230,000 people across 14 countries", "category": "Natural Disaster"},
    {"date": "2011-03-11", "title": "Japan Earthquake", "description": "Magnitude 9.0 earthquake and tsunami devastate Japan, cause Fukushima nuclear disaster", "category": "Natural Disaster"},
    {"date": "2005-08-29", "title": "Hurricane Katrina", "description": "Hurricane Katrina devastates New Orleans and Gulf Coast", "category": "Natural Disaster"},
    {"date": "1986-04-26", "title": "Chernobyl Disaster", "description": "Nuclear reactor explosion in Ukraine causes worst nuclear disaster in history", "category": "Natural Disaster"},
    # Arts & Culture
    {"date": "1969-08-15", "title": "Woodstock Festival", "description": "Iconic music festival defines counterculture movement and generation", "category": "Culture"},
    {"date": "1977-05-25", "title": "Star Wars Premiere", "description": "Star Wars premieres, revolutionizing cinema and popular culture", "category": "Culture"},
    {"date": "1981-08-01", "title": "MTV Launches", "description": "MTV begins broadcasting, changing music industry and youth culture", "category": "Culture"},
    {"date": "1985-07-13", "title": "Live Aid Concert", "description": "Global benefit concert raises awareness and funds for African famine relief", "category": "Culture"},
    # Sports
    {"date": "1980-02-22", "title": "Miracle on Ice", "description": "US hockey team defeats Soviet Union in Olympics, iconic Cold War moment", "category": "Sports"},
    {"date": "1992-08-11", "title": "Dream Team Olympics", "description": "US basketball Dream Team dominates Olympics, globalizing NBA", "category": "Sports"},
    {"date": "1999-07-10", "title": "Women's World Cup", "description": "US women win World Cup, Brandi Chastain celebration becomes iconic", "category": "Sports"},
    {"date": "2008-08-08", "title": "Beijing Olympics", "description": "China hosts Olympics, showcasing economic rise to global audience", "category": "Sports"},
    # Recent Events
    {"date": "2011-05-02", "title": "Bin Laden Killed", "description": "Osama bin Laden killed by US forces, ending decade-long manhunt", "category": "Global Events"},
    {"date": "2013-06-06", "title": "Snowden Revelations", "description": "Edward Snowden reveals NSA surveillance programs, sparking privacy debates", "category": "Politics"},
    {"date": "2016-11-08", "title": "Trump Elected", "description": "Donald Trump elected US President in upset victory", "category": "Politics"},
    {"date": "2019-12-31", "title": "COVID-19 Emerges", "description": "First cases of mysterious pneumonia reported in Wuhan, China", "category": "Health"},
    {"date": "2021-01-06", "title": "Capitol Riot", "description": "Supporters of Donald Trump storm US Capitol building", "category": "Politics"},
    {"date": "2022-02-24", "title": "Russia Invades Ukraine", "description": "Russia launches full-scale invasion of Ukraine, major European conflict", "category": "Global Events"},
]


def seed_sample_events(user_id: str, manager: EventManager = None) -> Dict[str, Any]:
    """Give a user the sample events unless they already have some"""
    manager = manager or EventManager()

    if manager.user_has_events(user_id):
        return {"message": "User already has events", "seeded": False, "events_created": 0}

    logger.info(f"🌱 Creating sample events for user: {user_id}")
    created = manager.create_events(user_id, SAMPLE_EVENTS)
    logger.info(f"Sample events created successfully: {created}")

    return {"message": "Sample data created successfully", "seeded": True, "events_created": created}


def get_historical_events_count() -> int:
    conn = get_db_connection()
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT COUNT(*) FROM historical_events")
        return cursor.fetchone()[0]
    finally:
        cursor.close()
        conn.close()


def populate_historical_events() -> Dict[str, Any]:
    """Load the curated dataset into historical_events when the table is empty"""
    conn = get_db_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("SELECT id FROM historical_events LIMIT 1")
        if cursor.fetchone():
            return {"success": True, "message": "Historical events already exist in database", "count": 0}

        cursor.executemany("""
            INSERT OR IGNORE INTO historical_events (date, title, description, category)
            VALUES (:date, :title, :description, :category)
        """, HISTORICAL_EVENTS_DATA)
        inserted = cursor.rowcount
        conn.commit()

        logger.info(f"📚 Populated {inserted} historical events")
        return {"success": True, "message": "Historical events populated successfully", "count": inserted}

    except Exception as e:
        conn.rollback()
        logger.error(f"Error populating historical events: {e}")
        return {"success": False, "message": str(e), "count": 0}
    finally:
        cursor.close()
        conn.close()
