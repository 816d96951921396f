from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from stockroom.core.database import Base


class User(Base):
    """
    User model representing application users.

    Stores authentication credentials and user profile information.
    Passwords are stored as hashes (never plaintext).
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # Email is unique and indexed for fast lookups during login
    email = Column(String, unique=True, index=True, nullable=False)
    # bcrypt hash - never store plaintext passwords
    hashed_password = Column(String, nullable=False)
    # Timestamps are set automatically by database
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
