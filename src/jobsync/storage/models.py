from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class JobParameterRow(Base):
    __tablename__ = "job_parameter"

    name: Mapped[str] = mapped_column(String(256), primary_key=True)
    activated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cron: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    fixed_time: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    fire_once_on_startup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reinitialize_on_startup: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    # JSON document handed to the job unmodified
    others: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
