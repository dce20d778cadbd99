from __future__ import annotations

from datetime import date, datetime
import uuid
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


json_type = JSON().with_variant(JSONB, "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    """Common created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class CreditTransactionType:
    SIGNUP_BONUS = "signup_bonus"
    PURCHASE = "purchase"
    ADMIN_GRANT = "admin_grant"
    AI_GENERATION = "ai_generation"
    REFUND = "refund"


class MealPlanStatus:
    ACTIVE = "active"
    ARCHIVED = "archived"


class CreditAccount(Base, TimestampMixin):
    __tablename__ = "credit_accounts"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_credit_accounts_balance_non_negative"),)

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(320))
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"CreditAccount(user_id={self.user_id}, balance={self.balance})"


class CreditTransaction(Base, TimestampMixin):
    __tablename__ = "credit_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("credit_accounts.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    initiated_by: Mapped[Optional[str]] = mapped_column(String(320))


class Home(Base, TimestampMixin):
    __tablename__ = "homes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class HomeMember(Base, TimestampMixin):
    __tablename__ = "home_members"
    __table_args__ = (UniqueConstraint("home_id", "user_id", name="uq_home_members_home_user"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    home_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("homes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)


class Recipe(Base, TimestampMixin):
    __tablename__ = "recipes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    home_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("homes.id", ondelete="SET NULL"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(1024))
    thumbnail: Mapped[Optional[str]] = mapped_column(String(1024))
    categories: Mapped[List[str]] = mapped_column(json_type, nullable=False, default=list)
    prep_time: Mapped[Optional[int]] = mapped_column(Integer)
    cook_time: Mapped[Optional[int]] = mapped_column(Integer)
    recipe_yield: Mapped[Optional[int]] = mapped_column(Integer)


class BaseRecipe(Base, TimestampMixin):
    """Shared recipe pool; not owned by any user."""

    __tablename__ = "base_recipes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_url: Mapped[Optional[str]] = mapped_column(String(1024))
    source_site: Mapped[Optional[str]] = mapped_column(String(255))
    prep_time: Mapped[Optional[int]] = mapped_column(Integer)
    cook_time: Mapped[Optional[int]] = mapped_column(Integer)
    recipe_yield: Mapped[Optional[int]] = mapped_column(Integer)
    recipe_yield_name: Mapped[Optional[str]] = mapped_column(String(64))
    diet_type: Mapped[str] = mapped_column(String(32), nullable=False, default="omnivore")
    categories: Mapped[List[str]] = mapped_column(json_type, nullable=False, default=list)
    ingredients: Mapped[list] = mapped_column(json_type, nullable=False, default=list)
    instructions: Mapped[list] = mapped_column(json_type, nullable=False, default=list)


class PantryItem(Base, TimestampMixin):
    __tablename__ = "pantry_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    home_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("homes.id", ondelete="CASCADE"), index=True
    )
    food_name: Mapped[str] = mapped_column(String(255), nullable=False)


class MealPlan(Base, TimestampMixin):
    __tablename__ = "meal_plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    home_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("homes.id", ondelete="CASCADE"), index=True
    )
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    preferences: Mapped[dict] = mapped_column(json_type, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MealPlanStatus.ACTIVE)

    entries: Mapped[List["MealPlanEntry"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="MealPlanEntry.sort_order",
        lazy="selectin",
    )


class MealPlanEntry(Base, TimestampMixin):
    __tablename__ = "meal_plan_entries"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 1 AND 7", name="ck_meal_plan_entries_day_of_week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    meal_plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    meal_type: Mapped[str] = mapped_column(String(32), nullable=False)
    recipe_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("recipes.id", ondelete="SET NULL")
    )
    suggested_name: Mapped[Optional[str]] = mapped_column(Text)
    suggested_description: Mapped[Optional[str]] = mapped_column(Text)
    suggested_recipe: Mapped[Optional[dict]] = mapped_column(json_type)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    servings: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    plan: Mapped[MealPlan] = relationship(back_populates="entries")
