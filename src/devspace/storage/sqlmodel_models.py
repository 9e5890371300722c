"""SQLModel ORM tables for task progress storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint, false
from sqlmodel import Field, SQLModel


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True, index=True)
    display_name: str = Field(index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class BuiltinTask(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("position", name="uq_tasks_position"),)

    task_id: str = Field(primary_key=True)
    position: int
    category: str
    title: str
    description: str = Field(sa_column=Column(Text, nullable=False))
    code: str = Field(sa_column=Column(Text, nullable=False))
    difficulty: str


class CustomTask(SQLModel, table=True):
    __tablename__ = "custom_tasks"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("task_id", name="uq_custom_tasks_task_id"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: str
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    category: str
    title: str
    description: str = Field(sa_column=Column(Text, nullable=False))
    code: str = Field(sa_column=Column(Text, nullable=False))
    difficulty: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class TaskHistory(SQLModel, table=True):
    __tablename__ = "task_history"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", name="uq_task_history_user_task"),
        Index("ix_task_history_user_completed_at", "user_id", "completed_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    task_id: str
    title: str
    description: str = Field(sa_column=Column(Text, nullable=False))
    category: str
    difficulty: str
    completed: bool = Field(default=False, sa_column_kwargs={"server_default": false()})
    completed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class DocumentationEntry(SQLModel, table=True):
    __tablename__ = "documentation_entries"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "tasks_completed",
            name="uq_documentation_entries_user_milestone",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    title: str
    content: str = Field(sa_column=Column(Text, nullable=False))
    tasks_completed: int
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class UserState(SQLModel, table=True):
    __tablename__ = "user_state"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("user_id", name="uq_user_state_user"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    theme: str = Field(default="dark")
    font_size: str = Field(default="medium")
    last_code: str = Field(default="", sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
