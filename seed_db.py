# seed_db.py
import datetime
from database import SessionLocal, engine, Base
import models  # noqa: F401 - registers the tables on Base.metadata
import queries

# --- MOCK DATA ---
MOCK_CLUBS = [
    {
        "name": "Retro Arcade",
        "description": "8-bit fans. Cabinets, chiptunes and high score chasing every Friday."
    },
    {
        "name": "Board Game Guild",
        "description": "Euro games, co-ops and the occasional twelve hour campaign. Beginners welcome!"
    },
    {
        "name": "Speedrun Society",
        "description": "Frame perfect tricks, route planning and weekly races on stream."
    }
]

# days_ahead is relative to the moment the script runs, so seeded events are never in the past
MOCK_EVENTS = [
    {
        "club": "Retro Arcade",
        "title": "Pac-Man High Score Night",
        "description": "Bring your best strategy. The top three scores win arcade tokens.",
        "days_ahead": 3,
        "hour": 19
    },
    {
        "club": "Retro Arcade",
        "title": "Chiptune Listening Session",
        "description": "Game Boy and NES soundtracks on the big speakers.",
        "days_ahead": 17,
        "hour": 18
    },
    {
        "club": "Board Game Guild",
        "title": "Catan Tournament",
        "description": "Swiss rounds, finals at the end of the night. Prizes for top 3.",
        "days_ahead": 10,
        "hour": 14
    },
    {
        "club": "Speedrun Society",
        "title": "Any% Race (Super Metroid)",
        "description": "Open race, all skill levels. Streamed live on the club channel.",
        "days_ahead": 45,
        "hour": 20
    }
]


def _event_date(days_ahead: int, hour: int) -> str:
    day = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=days_ahead)
    return day.replace(hour=hour, minute=0, second=0, microsecond=0).isoformat()


def seed():
    print("🌱 Seeding Database...")

    # 1. Reset Tables (Drop & Create)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        # --- 2. Create CLUBS ---
        print(f"   Creating {len(MOCK_CLUBS)} Clubs...")
        club_ids = {}
        for club_data in MOCK_CLUBS:
            club = queries.create_club(db, club_data["name"], club_data["description"])
            club_ids[club.name] = club.id

        # --- 3. Create EVENTS ---
        print(f"   Creating {len(MOCK_EVENTS)} Events...")
        for event_data in MOCK_EVENTS:
            queries.create_event(
                db,
                club_id=club_ids[event_data["club"]],
                title=event_data["title"],
                description=event_data["description"],
                event_date=_event_date(event_data["days_ahead"], event_data["hour"])
            )

        print("✅ Seeding Complete!")

    except Exception as e:
        print("❌ Error:", e)
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
