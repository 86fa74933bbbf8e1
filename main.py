#backend/main.py
import os
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Depends, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import chat
from auth import create_token, get_current_user_id, hash_password, verify_password
from config import CORS_ORIGINS, KNOWN_TOPICS, LOG_LEVEL, PUBLIC_DIR
from db import Base, SessionLocal, engine
from logic.errors import ApiError, ChatbotError, NotFound, StorageError, ValidationError
from logic.leaderboard import leaderboard, profile_payload
from logic.progress import complete_lesson, effective_daily_xp, record_answer
from logic.seeding import seed_known_topics
from logic.selector import next_question
from logic.store import Repository
from models.progress import Progress
from models.question import Question
from models.user import User
from schemas import AnswerInput, AvatarInput, ChatInput, LessonInput, SigninInput, SignupInput

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            seed_known_topics(db)
        finally:
            db.close()
    except (SQLAlchemyError, ApiError):
        logger.exception("Failed to initialize questions")
    yield


# --------- App Setup ---------
app = FastAPI(title="Learning Platform API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------- DB Dependency ---------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# --------- Error Handlers ---------
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for e in exc.errors():
        path = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
        error = (e.get("ctx") or {}).get("error")
        message = str(error) if e.get("type") == "value_error" and error else e.get("msg", "Invalid value")
        errors.append({"path": path, "message": message})
    logger.info("Validation failed on %s: %s", request.url.path, errors)
    return JSONResponse(status_code=400, content=ValidationError(errors=errors).to_payload())


@app.get("/health")
def health():
    return {"status": "ok"}

# --------- Auth Endpoints ---------
UNIQUE_USER_FIELDS = ("email", "username")


def _registered_field(users: Repository, data: SignupInput) -> Optional[str]:
    for field in UNIQUE_USER_FIELDS:
        if users.find_one(**{field: getattr(data, field)}):
            return field
    return None


def _duplicate_field(exc: IntegrityError) -> str:
    # SQLite: "UNIQUE constraint failed: users.email", PostgreSQL: "Key (email)=(...)"
    detail = str(exc.orig)
    return next((f for f in UNIQUE_USER_FIELDS if f".{f}" in detail or f"({f})" in detail), "username")


def _already_registered(field: str) -> ValidationError:
    return ValidationError(path=field, message=f"This {field} is already registered")


@app.post("/api/signup")
def signup(data: SignupInput, db: Session = Depends(get_db)):
    logger.info("Signup request for %s", data.username)
    users = Repository(db, User)

    field = _registered_field(users, data)
    if field:
        raise _already_registered(field)

    try:
        users.create(
            fullname=data.fullname,
            email=data.email,
            password=hash_password(data.password),
            phone=data.phone,
            state=data.state,
            username=data.username,
            school10=data.school10,
            marks10=float(data.marks10),
            school12=data.school12 or None,
            stream12=data.stream12 or None,
            marks12=float(data.marks12) if data.marks12 else None,
        )
    except StorageError as e:
        # Lost a race with a concurrent signup for the same email/username
        if isinstance(e.__cause__, IntegrityError):
            raise _already_registered(_duplicate_field(e.__cause__)) from e
        raise
    return {"message": "Successfully signed up"}


@app.post("/api/signin")
def signin(data: SigninInput, db: Session = Depends(get_db)):
    logger.info("Signin request for %s", data.username)
    user = Repository(db, User).find_one(username=data.username)
    if not user:
        return JSONResponse(status_code=403, content=ValidationError(path="username", message="Invalid username").to_payload())
    if not verify_password(data.password, user.password):
        return JSONResponse(status_code=403, content=ValidationError(path="password", message="Invalid password").to_payload())
    return {"token": create_token(user.id)}

# --------- Quiz Endpoints ---------
@app.get("/api/topics")
def list_topics(db: Session = Depends(get_db)):
    questions = Repository(db, Question)
    return [{"topic": t, "questions": questions.count_documents(topic=t)} for t in KNOWN_TOPICS]


@app.post("/api/topic/{topic}")
def answer_and_next_question(topic: str, data: AnswerInput,
                             user_id: int = Depends(get_current_user_id),
                             db: Session = Depends(get_db)):
    # Record the submitted answer before picking the next question
    record_answer(
        db,
        user_id=user_id,
        topic=topic,
        question_id=data.question_id,
        xp=data.xp,
        is_correct=data.is_correct,
        user_answer=data.user_answer,
        brains=data.brains,
    )
    selection = next_question(db, topic, user_id, data.question_number)
    return selection.to_payload()


@app.post("/api/lesson/complete")
def lesson_complete(data: LessonInput, user_id: int = Depends(get_current_user_id),
                    db: Session = Depends(get_db)):
    result = complete_lesson(db, user_id, data.xp)
    user = result.user
    return {
        "message": "Lesson completed",
        "streak": user.streak,
        "dailyXP": user.daily_xp,
        "totalXP": user.total_xp,
        "newDay": result.new_day,
    }

# --------- Leaderboard & Profile ---------
@app.get("/api/leaderboard", dependencies=[Depends(get_current_user_id)])
def get_leaderboard(period: str = "total", limit: int = Query(10, ge=1, le=100),
                    db: Session = Depends(get_db)):
    return {"period": period, "entries": leaderboard(db, period=period, limit=limit)}


def _current_user(db: Session, user_id: int) -> User:
    user = Repository(db, User).find_by_id(user_id)
    if user is None:
        raise NotFound(path="user", message="User not found")
    return user


@app.get("/api/profile")
def get_profile(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return profile_payload(_current_user(db, user_id))


@app.put("/api/profile/avatar")
def update_avatar(data: AvatarInput, user_id: int = Depends(get_current_user_id),
                  db: Session = Depends(get_db)):
    user = _current_user(db, user_id)
    user.avatar = data.avatar.strip()
    Repository(db, User).save(user)
    return {"message": "Avatar updated", "avatar": user.avatar}


@app.get("/api/progress")
def get_progress(topic: Optional[str] = None, limit: int = Query(20, ge=1, le=200),
                 user_id: int = Depends(get_current_user_id),
                 db: Session = Depends(get_db)):
    filters = {"user_id": user_id}
    if topic:
        filters["topic"] = topic.lower()
    rows = Repository(db, Progress).find(order_by=(Progress.timestamp.desc(), Progress.id.desc()), limit=limit, **filters)
    user = _current_user(db, user_id)
    return {
        "totalXP": user.total_xp or 0,
        "dailyXP": effective_daily_xp(user),
        "streak": user.streak or 0,
        "history": [
            {
                "questionId": p.question_id,
                "topic": p.topic,
                "xp": p.xp,
                "isCorrect": p.is_correct,
                "userAnswer": p.user_answer,
                "timestamp": p.timestamp.isoformat(),
            }
            for p in rows
        ],
    }

# --------- AI Chat ---------
@app.post("/api/chat", dependencies=[Depends(get_current_user_id)])
def chat_proxy(data: ChatInput):
    if not data.message:
        raise ValidationError(path="message", message="Message is required")
    return {"response": chat.ask_chatbot(data.message, data.intent)}


@app.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket):
    await websocket.accept()
    logger.info("New WebSocket client connected for chat")
    await websocket.send_json({"message": "Connected to AI Chatbot! Ask me anything."})
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            if not isinstance(data, dict):
                data = {}

            user_message = data.get("message") or data.get("queryText")
            if not user_message:
                await websocket.send_json({"error": "No message provided"})
                continue

            try:
                reply = await run_in_threadpool(chat.ask_chatbot, user_message, data.get("intent") or "")
            except ChatbotError:
                await websocket.send_json({"error": "Failed to get AI response"})
                continue

            await websocket.send_json({"response": reply, "timestamp": datetime.now(timezone.utc).isoformat()})
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")

# --------- Static Frontend ---------
if os.path.isdir(PUBLIC_DIR):
    app.mount("/", StaticFiles(directory=PUBLIC_DIR, html=True), name="public")
