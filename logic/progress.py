# backend/logic/progress.py
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from logic.errors import NotFound
from logic.store import Repository
from models.progress import Progress
from models.user import User

logger = logging.getLogger(__name__)

LESSON_TOPIC = "general"
LESSON_QUESTION_ID = "lesson-complete"


class Correctness(enum.Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIPPED = "skipped"

    @classmethod
    def from_flag(cls, is_correct: Optional[bool]) -> "Correctness":
        if is_correct is None:
            return cls.SKIPPED
        return cls.CORRECT if is_correct else cls.INCORRECT


@dataclass
class RecordResult:
    recorded: bool
    correctness: Correctness
    progress: Optional[Progress] = None
    user: Optional[User] = None
    new_day: bool = False


def calendar_day(value: Optional[datetime]) -> Optional[date]:
    """Truncate to the local calendar day."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.date()


def effective_daily_xp(user: User, now: Optional[datetime] = None) -> int:
    # daily_xp is stale once the calendar day has moved past last_progress_date
    last_day = calendar_day(user.last_progress_date)
    if last_day is None or last_day < calendar_day(now or datetime.now()):
        return 0
    return user.daily_xp or 0


def apply_daily_xp(user: User, xp: int, now: datetime) -> bool:
    """Day-rollover rule shared by answers and lesson completion.

    The first correct event of a calendar day extends the streak and resets
    daily XP; later events the same day accumulate. Returns True on a new day.
    """
    today = calendar_day(now)
    last_day = calendar_day(user.last_progress_date)
    new_day = last_day is None or last_day < today
    if new_day:
        user.streak = (user.streak or 0) + 1
        user.daily_xp = xp
    else:
        user.daily_xp = (user.daily_xp or 0) + xp
    user.total_xp = (user.total_xp or 0) + xp
    user.last_progress_date = now
    return new_day


def _load_user(db: Session, user_id) -> User:
    user = Repository(db, User).find_by_id(user_id)
    if user is None:
        raise NotFound(path="user", message="User not found")
    return user


def record_answer(db: Session, user_id, topic: str, question_id: Optional[str], xp: Optional[int],
                  is_correct: Optional[bool], user_answer: Optional[str] = None,
                  now: Optional[datetime] = None, brains: Optional[int] = None) -> RecordResult:
    correctness = Correctness.from_flag(is_correct)
    if correctness is Correctness.SKIPPED or not question_id:
        return RecordResult(recorded=False, correctness=Correctness.SKIPPED)

    now = now or datetime.now()
    xp = xp or 0
    user = _load_user(db, user_id)

    # Progress row first: the answer event is the durable record
    progress = Repository(db, Progress).create(
        user_id=user.id,
        question_id=question_id,
        topic=topic.lower(),
        xp=xp,
        is_correct=correctness is Correctness.CORRECT,
        brains=brains,
        user_answer=user_answer,
        timestamp=now,
    )

    if correctness is not Correctness.CORRECT:
        return RecordResult(recorded=True, correctness=correctness, progress=progress, user=user)

    new_day = apply_daily_xp(user, xp, now)
    Repository(db, User).save(user)
    logger.info("user %s +%s xp on %s (streak=%s, daily=%s, total=%s)",
                user.id, xp, progress.topic, user.streak, user.daily_xp, user.total_xp)
    return RecordResult(recorded=True, correctness=correctness, progress=progress, user=user, new_day=new_day)


def complete_lesson(db: Session, user_id, xp: int, now: Optional[datetime] = None) -> RecordResult:
    now = now or datetime.now()
    user = _load_user(db, user_id)

    progress = Repository(db, Progress).create(
        user_id=user.id,
        question_id=LESSON_QUESTION_ID,
        topic=LESSON_TOPIC,
        xp=xp,
        is_correct=True,
        timestamp=now,
    )
    new_day = apply_daily_xp(user, xp, now)
    Repository(db, User).save(user)
    logger.info("user %s completed a lesson (+%s xp, streak=%s)", user.id, xp, user.streak)
    return RecordResult(recorded=True, correctness=Correctness.CORRECT, progress=progress, user=user, new_day=new_day)
