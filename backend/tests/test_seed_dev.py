from __future__ import annotations

from scripts import seed_dev

from backend.app.models import Workshop


def test_seed_creates_workshop_once(session_factory) -> None:
    with session_factory() as session:
        first = seed_dev.main(session)
        second = seed_dev.main(session)

        assert first.id == second.id
        assert session.query(Workshop).filter(Workshop.name == seed_dev.DEV_WORKSHOP_NAME).count() == 1
