from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.common import TimestampMixin


class Company(TimestampMixin, Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    devices = relationship("Device", back_populates="company", passive_deletes=True)
