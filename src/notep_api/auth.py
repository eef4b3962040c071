import logging

from passlib.context import CryptContext
from passlib.exc import PasswordValueError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.notep_api.errors import Conflict, InvalidInput, StorageFailure, Unauthorized
from src.notep_api.models import EMAIL_MAX_LENGTH, User

logger = logging.getLogger(__name__)

# Setup password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def _require_credentials(email: str, password: str) -> None:
    if not email or not email.strip() or not password or not password.strip():
        raise InvalidInput("Email and password are required")
    # bcrypt cannot hash NUL bytes and text columns cannot store them
    if "\x00" in email or "\x00" in password:
        raise InvalidInput("Email and password must not contain NUL characters")


# PUBLIC_INTERFACE
def register_account(db: Session, email: str, password: str) -> int:
    """
    Create a new account and return its id.

    The insert is attempted directly; the unique index on users.email decides
    whether the email is already taken.

    Raises:
        InvalidInput if email or password is blank.
        Conflict if the email is already registered.
        StorageFailure on any other database error.
    """
    _require_credentials(email, password)
    if len(email) > EMAIL_MAX_LENGTH:
        raise InvalidInput("Email is too long")

    try:
        password_hash = get_password_hash(password)
    except PasswordValueError as exc:
        raise InvalidInput("Password cannot be hashed") from exc

    user = User(email=email, password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Signup rejected, email already registered: {email}")
        raise Conflict("Email already exists")
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc
    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user.id


# PUBLIC_INTERFACE
def authenticate(db: Session, email: str, password: str) -> int:
    """
    Verify credentials and return the matching account id.

    Unknown email and wrong password raise the same Unauthorized error.
    A stored hash that cannot be parsed raises StorageFailure.
    """
    _require_credentials(email, password)

    try:
        user = db.query(User).filter(User.email == email).first()
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc

    if user is None:
        logger.info("Login failed")
        raise Unauthorized("Invalid credentials")

    try:
        matched = verify_password(password, user.password_hash)
    except PasswordValueError as exc:
        raise InvalidInput("Password cannot be checked") from exc
    except (ValueError, TypeError) as exc:
        logger.error(f"Stored password hash for user {user.id} is unreadable")
        raise StorageFailure() from exc

    if not matched:
        logger.info("Login failed")
        raise Unauthorized("Invalid credentials")
    return user.id
