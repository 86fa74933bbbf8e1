# backend/models/progress.py
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey
from datetime import datetime
from db import Base

class Progress(Base):
    __tablename__ = "progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    question_id = Column(String, index=True)
    topic = Column(String, index=True)
    xp = Column(Integer, default=0)
    is_correct = Column(Boolean, default=None)
    brains = Column(Integer, nullable=True)
    user_answer = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.now)
