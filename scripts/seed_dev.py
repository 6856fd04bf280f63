"""Seed the development database with a default workshop."""
from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy.orm import Session

from backend.app.core.db import SessionLocal
from backend.app.models import Workshop

DEV_WORKSHOP_NAME = "Development Workshop"


def _get_or_create_workshop(session: Session, name: str) -> Workshop:
    workshop = session.query(Workshop).filter(Workshop.name == name).one_or_none()
    if workshop is None:
        workshop = Workshop(name=name)
        session.add(workshop)
        session.flush()
    return workshop


def main(session: Session | None = None) -> Workshop:
    """Entry point for seeding data."""

    own_session = session is None
    session = session or SessionLocal()
    try:
        workshop = _get_or_create_workshop(session, DEV_WORKSHOP_NAME)
        session.commit()
    finally:
        if own_session:
            session.close()

    print("Seeded development data:")
    print(f"  Workshop ID: {workshop.id}")
    return workshop


if __name__ == "__main__":
    main()
