"""
AI prompt library models.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Prompt(Base, TimestampMixin):
    """A reusable prompt template bound to an AI provider."""

    __tablename__ = "prompts"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), default="content", nullable=False)
    model: Mapped[str] = mapped_column(String(20), default="claude", nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    user_template: Mapped[str] = mapped_column(Text, nullable=False)
    # {"name": {"description": str, "required": bool, "default": str}}
    variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    # {"temperature": float, "max_tokens": int}
    model_settings: Mapped[Optional[dict]] = mapped_column("model_config", JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_prompts_category_name", "category", "name"),)

    def __repr__(self) -> str:
        return f"<Prompt(name={self.name}, model={self.model})>"


class PromptVersion(Base, TimestampMixin):
    """Snapshot of a prompt taken before each edit."""

    __tablename__ = "prompt_versions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    prompt_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("prompts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    user_template: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (UniqueConstraint("prompt_id", "version", name="uq_prompt_version"),)
