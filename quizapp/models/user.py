from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from quizapp.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String(100), unique=True, index=True, nullable=True)
    full_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Aggregate quiz statistics, maintained by quiz completion
    total_quizzes_attempted = Column(Integer, default=0, nullable=False)
    total_time_spent = Column(Integer, default=0, nullable=False)  # seconds

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.full_name}')>"
