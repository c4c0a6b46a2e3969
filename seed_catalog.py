"""
Seed the quest and badge catalog.
Run:  python seed_catalog.py
"""
import logging

from hearth.application.catalog import seed_badges, seed_quests
from hearth.infrastructure.db.session import get_session_factory

logging.basicConfig(level=logging.INFO)

db = get_session_factory()()
try:
    quests = seed_quests(db)
    badges = seed_badges(db)
finally:
    db.close()

print(f"Done: {quests} quest(s), {badges} badge(s) inserted")
