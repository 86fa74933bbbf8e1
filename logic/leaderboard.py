# backend/logic/leaderboard.py
from datetime import datetime, time
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from logic.errors import ValidationError
from logic.progress import calendar_day, effective_daily_xp
from logic.store import Repository
from models.user import User

PERIODS = ("total", "daily")


def profile_payload(user: User, now: Optional[datetime] = None) -> Dict:
    return {
        "id": user.id,
        "fullname": user.fullname,
        "email": user.email,
        "username": user.username,
        "phone": user.phone,
        "state": user.state,
        "school10": user.school10,
        "marks10": user.marks10,
        "school12": user.school12,
        "stream12": user.stream12,
        "marks12": user.marks12,
        "crowns": user.crowns or 0,
        "gems": user.gems or 0,
        "streak": user.streak or 0,
        "totalXP": user.total_xp or 0,
        "dailyXP": effective_daily_xp(user, now),
        "xpGoal": user.xp_goal,
        "avatar": user.avatar or "",
        "lastProgressDate": user.last_progress_date.isoformat() if user.last_progress_date else None,
    }


def leaderboard(db: Session, period: str = "total", limit: int = 10,
                now: Optional[datetime] = None) -> List[Dict]:
    if period not in PERIODS:
        raise ValidationError(path="period", message=f"period must be one of {', '.join(PERIODS)}")
    now = now or datetime.now()
    repo = Repository(db, User)

    if period == "daily":
        # Stored daily_xp is only meaningful for users active today
        midnight = datetime.combine(calendar_day(now), time.min)
        users = repo.find(
            where=(User.last_progress_date >= midnight, User.daily_xp > 0),
            order_by=(User.daily_xp.desc(), User.id),
            limit=limit,
        )
        ranked = [(u, effective_daily_xp(u, now)) for u in users]
    else:
        users = repo.find(order_by=(User.total_xp.desc(), User.id), limit=limit)
        ranked = [(u, effective_daily_xp(u, now)) for u in users]

    return [
        {
            "rank": i,
            "username": u.username,
            "fullname": u.fullname,
            "avatar": u.avatar or "",
            "totalXP": u.total_xp or 0,
            "dailyXP": daily,
            "streak": u.streak or 0,
        }
        for i, (u, daily) in enumerate(ranked, start=1)
    ]
