from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, Float, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from fundraise.schemas import Investor


class Base(DeclarativeBase):
    pass


class InvestorRow(Base):
    __tablename__ = "investors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0)
    max_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(30), default="InProgress")
    probability: Mapped[float] = mapped_column(Float, default=0.0)
    lead: Mapped[str] = mapped_column(String(100), default="")
    contact: Mapped[str | None] = mapped_column(String(300), nullable=True)
    dependency: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_update: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    is_blocker: Mapped[bool] = mapped_column(Boolean, default=False)

    @classmethod
    def from_investor(cls, investor: Investor) -> InvestorRow:
        return cls(**investor.model_dump())

    def apply(self, investor: Investor) -> None:
        """Overwrite every column with *investor*'s values (last write wins)."""
        for field, value in investor.model_dump(exclude={"id"}).items():
            setattr(self, field, value)

    def to_investor(self) -> Investor:
        return Investor(
            id=self.id, name=self.name, amount=self.amount or 0.0,
            max_amount=self.max_amount, status=self.status,
            probability=self.probability or 0.0, lead=self.lead or "",
            contact=self.contact, dependency=self.dependency,
            is_blocker=bool(self.is_blocker), last_update=self.last_update,
            notes=self.notes or "",
        )
