from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

EMAIL_MAX_LENGTH = 255
TITLE_MAX_LENGTH = 255
CONTENT_MAX_LENGTH = 1024
# Ids are stored as signed 64-bit integers
ID_MAX = 2**63 - 1


class User(Base):
    """
    User entity with unique email and hashed password.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)


class Note(Base):
    """
    Note entity owned by exactly one user; timestamp is epoch milliseconds of the last write.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    content = Column(String(CONTENT_MAX_LENGTH), default="", nullable=False)
    timestamp = Column(BigInteger, nullable=False)

    owner = relationship("User", back_populates="notes")

    __table_args__ = (
        Index("ix_notes_user_timestamp", "user_id", "timestamp"),
    )
