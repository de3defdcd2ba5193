from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from meetcmu.models.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    # Subject issued by the identity provider, not generated here.
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    interests: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
