# setup_db.py
import argparse
import logging

from db import Base, SessionLocal, engine
from logic.seeding import seed_known_topics
from models.progress import Progress
from models.question import Question
from models.user import User

logger = logging.getLogger(__name__)


def setup(reset=False):
    if reset:
        logger.info("Dropping tables...")
        Base.metadata.drop_all(bind=engine)
    logger.info("Creating tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seeded = seed_known_topics(db)
    finally:
        db.close()
    logger.info("Done. Seeded: %s", seeded)
    return seeded


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tables and seed the known topics")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    setup(reset=args.reset)
