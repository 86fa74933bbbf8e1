# backend/logic/selector.py
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from logic.errors import NotFound
from logic.store import Repository
from models.progress import Progress
from models.question import Question
from models.user import User

SESSION_LENGTH = 10


@dataclass
class SelectionResult:
    completed: bool
    question: Optional[Dict] = None
    message: str = ""
    total_xp: int = 0

    def to_payload(self) -> Dict:
        if self.completed:
            return {"completed": True, "message": self.message, "totalXp": self.total_xp}
        return self.question


def normalize_option(option) -> Dict[str, str]:
    # Older rows stored options as bare strings
    if isinstance(option, str):
        return {"value": option, "description": "", "imageUrl": ""}
    return {
        "value": option.get("value", ""),
        "description": option.get("description") or "",
        "imageUrl": option.get("imageUrl") or "",
    }


def normalize_options(options) -> List[Dict[str, str]]:
    return [normalize_option(o) for o in (options or [])]


def question_payload(question: Question) -> Dict:
    return {
        "id": question.external_id,
        "type": question.type,
        "prompt": question.prompt,
        "options": normalize_options(question.options),
        "correctAnswer": question.correct_answer,
        "feedback": question.feedback,
        "topic": question.topic,
    }


def next_question(db: Session, topic: str, user_id, question_number: int,
                  rng: Optional[random.Random] = None) -> SelectionResult:
    """Pick the next question of ``topic`` the user has not answered yet.

    Once every question has been answered the whole deck becomes available
    again. A session ends after ``SESSION_LENGTH`` questions.
    """
    topic = topic.lower()

    if question_number >= SESSION_LENGTH:
        user = Repository(db, User).find_by_id(user_id)
        return SelectionResult(
            completed=True,
            message=f"Great job! You finished this {topic} session.",
            total_xp=(user.total_xp or 0) if user else 0,
        )

    questions = Repository(db, Question).find(topic=topic, order_by=Question.id)
    if not questions:
        raise NotFound(path="questions", message="No questions available for this topic")

    answered = Repository(db, Progress).distinct("question_id", user_id=user_id, topic=topic)
    available = [q for q in questions if q.external_id not in answered]
    if not available:
        available = questions

    question = (rng or random).choice(available)
    return SelectionResult(completed=False, question=question_payload(question))
