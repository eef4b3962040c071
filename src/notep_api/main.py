import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Path, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from src.notep_api import auth, notes
from src.notep_api.config import FRONTEND_ORIGINS, LOG_LEVEL
from src.notep_api.database import get_db, init_db
from src.notep_api.errors import register_exception_handlers
from src.notep_api.models import ID_MAX, Note
from src.notep_api.schemas import (
    MessageResponse,
    NoteRequest,
    NoteResponse,
    UserCredentials,
    UserResponse,
)

# --- Configure logging ---
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s:%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("notep")
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database schema ready")
    yield


app = FastAPI(
    title="Notep API",
    description="Notes backend with account signup/login and owner-scoped CRUD for notes.",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Service health and status."},
        {"name": "Auth", "description": "User registration and authentication."},
        {"name": "Notes", "description": "CRUD operations for notes."},
    ],
)

# CORS setup - allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {process_time:.3f}s")
    return response


def to_note_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        userId=note.user_id,
        title=note.title,
        content=note.content,
        timestamp=note.timestamp,
    )


# PUBLIC_INTERFACE
@app.get("/", tags=["Health"], summary="Health Check")
def health_check():
    """
    Health check endpoint.

    Returns:
        JSON object indicating service status.
    """
    return {"message": "Healthy"}


@app.get("/ping", tags=["Health"], response_class=PlainTextResponse)
def ping():
    return "pong"


# -------- Auth Routes --------

# PUBLIC_INTERFACE
@app.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Auth"],
    summary="Register a new user",
)
def signup(payload: UserCredentials, db: Session = Depends(get_db)):
    """
    Register a new user.

    Body:
        email: email address
        password: plaintext password

    Returns:
        UserResponse with the new account id.

    Raises:
        400 if email or password is blank.
        409 if email already in use.
    """
    user_id = auth.register_account(db, payload.email, payload.password)
    return UserResponse(id=user_id)


# PUBLIC_INTERFACE
@app.post("/login", response_model=UserResponse, tags=["Auth"], summary="Verify credentials")
def login(payload: UserCredentials, db: Session = Depends(get_db)):
    """
    Check email and password and return the account id.

    No token is issued; clients send the account id with every notes call.

    Raises:
        401 on invalid credentials, without saying which part was wrong.
    """
    user_id = auth.authenticate(db, payload.email, payload.password)
    return UserResponse(id=user_id)


# -------- Notes Routes --------

# PUBLIC_INTERFACE
@app.get(
    "/notes/user/{user_id}",
    response_model=List[NoteResponse],
    tags=["Notes"],
    summary="List a user's notes",
)
def list_notes(user_id: int = Path(..., ge=1, le=ID_MAX), db: Session = Depends(get_db)):
    """
    List notes belonging to the given user, most recent first.
    """
    return [to_note_response(n) for n in notes.list_notes(db, user_id)]


# PUBLIC_INTERFACE
@app.post(
    "/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Notes"],
    summary="Create a new note",
)
def create_note(payload: NoteRequest, db: Session = Depends(get_db)):
    """
    Create a new note.

    Body:
        userId: owning account id
        title: note title
        content: note content

    Returns:
        Created NoteResponse with assigned id and timestamp.
    """
    note = notes.create_note(db, payload.user_id, payload.title, payload.content)
    return to_note_response(note)


# PUBLIC_INTERFACE
@app.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    tags=["Notes"],
    summary="Update a note by ID",
)
def update_note(payload: NoteRequest, note_id: int = Path(..., ge=1, le=ID_MAX), db: Session = Depends(get_db)):
    """
    Update a note. Only the owner named in the body can modify it.

    Raises:
        404 if the note does not exist or belongs to someone else.
    """
    note = notes.update_note(db, note_id, payload.user_id, payload.title, payload.content)
    return to_note_response(note)


# PUBLIC_INTERFACE
@app.delete(
    "/notes/{note_id}",
    response_model=MessageResponse,
    tags=["Notes"],
    summary="Delete a note by ID",
)
def delete_note(
    note_id: int = Path(..., ge=1, le=ID_MAX),
    user_id: Optional[int] = Query(None, alias="userId", ge=1, le=ID_MAX, description="Owning account id"),
    db: Session = Depends(get_db),
):
    """
    Delete a note. Only the owner named in the query string can delete it.
    """
    notes.delete_note(db, note_id, user_id)
    return MessageResponse(message="Note deleted")
