"""User model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from user_registry.database import Base
from user_registry.models.base import TimestampMixin


class User(TimestampMixin, Base):
    """Registered user. The password column only ever holds a bcrypt hash."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
