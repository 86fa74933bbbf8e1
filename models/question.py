# backend/models/question.py

from sqlalchemy import Column, String, Integer, Text, JSON, UniqueConstraint
from db import Base

QUESTION_TYPES = ("fill-in-the-blanks", "multiple-choice", "visual")

class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("topic", "external_id", name="uq_question_topic_external_id"),)

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, nullable=False)  # e.g. "magnetism-q1"
    type = Column(String, nullable=False)
    prompt = Column(Text)
    options = Column(JSON, default=list)
    correct_answer = Column(String)
    feedback = Column(Text)
    topic = Column(String, index=True, nullable=False)  # always lowercase
