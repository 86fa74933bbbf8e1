# backend/models/user.py

from sqlalchemy import Column, String, Integer, Float, DateTime
from db import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    fullname = Column(String)
    email = Column(String, unique=True, index=True)
    password = Column(String)  # bcrypt hash
    phone = Column(String)
    state = Column(String)
    username = Column(String, unique=True, index=True)
    school10 = Column(String)
    marks10 = Column(Float)
    school12 = Column(String, nullable=True)
    stream12 = Column(String, nullable=True)
    marks12 = Column(Float, nullable=True)

    crowns = Column(Integer, default=0)
    gems = Column(Integer, default=0)
    streak = Column(Integer, default=0)
    total_xp = Column(Integer, default=0)
    daily_xp = Column(Integer, default=0)
    xp_goal = Column(Integer, default=50)
    avatar = Column(String, default="")
    last_progress_date = Column(DateTime, nullable=True, default=None)
