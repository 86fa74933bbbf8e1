# backend/logic/seeding.py
import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from config import KNOWN_TOPICS
from logic.store import Repository
from models.question import Question

logger = logging.getLogger(__name__)


def _mc(*values):
    return [{"value": v, "description": "", "imageUrl": ""} for v in values]


# Template question sets; ids are assigned at seed time as "{topic}-q{n}"
QUESTION_TEMPLATES: Dict[str, List[Dict]] = {
    "magnetism": [
        {
            "type": "fill-in-the-blanks",
            "prompt": "A magnet has two poles: the _____ pole and the south pole.",
            "options": [],
            "correct_answer": "north",
            "feedback": "Magnets always have a north and south pole. Like poles repel, and unlike poles attract.",
        },
        {
            "type": "multiple-choice",
            "prompt": "What happens when two north poles of magnets are brought close together?",
            "options": _mc("They attract", "They repel", "They become neutral", "They create a spark"),
            "correct_answer": "They repel",
            "feedback": "Like poles of magnets (e.g., north-north) repel each other due to their magnetic fields.",
        },
        {
            "type": "fill-in-the-blanks",
            "prompt": "An electromagnet is created by passing an electric current through a coil of _____.",
            "options": [],
            "correct_answer": "wire",
            "feedback": "An electromagnet is made by wrapping a coil of wire around a magnetic core and passing current through it.",
        },
        {
            "type": "multiple-choice",
            "prompt": "Which material is most likely to be attracted to a magnet?",
            "options": _mc("Wood", "Iron", "Plastic", "Glass"),
            "correct_answer": "Iron",
            "feedback": "Iron is a ferromagnetic material, strongly attracted to magnets, unlike wood, plastic, or glass.",
        },
        {
            "type": "visual",
            "prompt": "Which picture shows the field lines around a bar magnet?",
            "options": [
                {"value": "A", "description": "Lines loop from north to south", "imageUrl": "/images/magnetism/field-loops.png"},
                {"value": "B", "description": "Straight parallel lines", "imageUrl": "/images/magnetism/parallel.png"},
                {"value": "C", "description": "Lines pointing into the magnet from all sides", "imageUrl": "/images/magnetism/radial.png"},
            ],
            "correct_answer": "A",
            "feedback": "Outside a magnet, field lines leave the north pole and curve round into the south pole.",
        },
    ],
    "electricity": [
        {
            "type": "fill-in-the-blanks",
            "prompt": "The unit of electric current is the _____.",
            "options": [],
            "correct_answer": "ampere",
            "feedback": "Current is measured in amperes (A), the flow of one coulomb of charge per second.",
        },
        {
            "type": "multiple-choice",
            "prompt": "Which of these is a good conductor of electricity?",
            "options": _mc("Rubber", "Copper", "Glass", "Dry wood"),
            "correct_answer": "Copper",
            "feedback": "Metals like copper have free electrons that carry charge easily.",
        },
        {
            "type": "multiple-choice",
            "prompt": "If the voltage across a resistor doubles, what happens to the current?",
            "options": _mc("It halves", "It stays the same", "It doubles", "It drops to zero"),
            "correct_answer": "It doubles",
            "feedback": "Ohm's law, V = IR: with the resistance fixed, current is proportional to voltage.",
        },
        {
            "type": "fill-in-the-blanks",
            "prompt": "A circuit with only one path for current is called a _____ circuit.",
            "options": [],
            "correct_answer": "series",
            "feedback": "In a series circuit the same current flows through every component.",
        },
    ],
    "light": [
        {
            "type": "multiple-choice",
            "prompt": "What happens to light when it passes from air into glass?",
            "options": _mc("It speeds up", "It bends towards the normal", "It stops", "It changes colour"),
            "correct_answer": "It bends towards the normal",
            "feedback": "Light slows down in glass and refracts towards the normal.",
        },
        {
            "type": "fill-in-the-blanks",
            "prompt": "The angle of incidence is equal to the angle of _____.",
            "options": [],
            "correct_answer": "reflection",
            "feedback": "This is the law of reflection for a plane mirror.",
        },
        {
            "type": "multiple-choice",
            "prompt": "Which colour of visible light has the longest wavelength?",
            "options": _mc("Violet", "Green", "Blue", "Red"),
            "correct_answer": "Red",
            "feedback": "Red light has the longest wavelength in the visible spectrum, violet the shortest.",
        },
        {
            "type": "fill-in-the-blanks",
            "prompt": "White light splits into colours when passed through a _____.",
            "options": [],
            "correct_answer": "prism",
            "feedback": "A prism disperses white light because each colour refracts by a different amount.",
        },
    ],
}


def build_questions(topic: str) -> List[Dict]:
    templates = QUESTION_TEMPLATES.get(topic, [])
    return [
        dict(template, external_id=f"{topic}-q{n}", topic=topic)
        for n, template in enumerate(templates, start=1)
    ]


def ensure_seeded(db: Session, topic: str) -> int:
    """Insert the template questions for ``topic`` if it has none yet."""
    topic = topic.lower()
    repo = Repository(db, Question)
    if repo.count_documents(topic=topic) > 0:
        return 0
    docs = build_questions(topic)
    if not docs:
        logger.warning("No question templates for topic %r", topic)
        return 0
    repo.insert_many(docs)
    logger.info("Initialized %d %s questions", len(docs), topic)
    return len(docs)


def seed_known_topics(db: Session, topics=None) -> Dict[str, int]:
    return {topic: ensure_seeded(db, topic) for topic in (topics or KNOWN_TOPICS)}
