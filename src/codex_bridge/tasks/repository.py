"""Task persistence facade backed by SQLModel + SQLite."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from sqlmodel import Session, SQLModel, col, select

from codex_bridge.tasks.engine import task_store_engine, utc_now
from codex_bridge.tasks.models import TaskCreate, TaskView
from codex_bridge.tasks.sqlmodel_models import Task


class TaskRepository:
    """Create and resolve tasks for agent runs."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = task_store_engine(db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Create tables that do not exist yet."""

        SQLModel.metadata.create_all(self.engine, tables=[Task.__table__])

    def create_task(self, payload: TaskCreate) -> TaskView:
        task_id = payload.task_id or str(uuid4())
        with Session(self.engine) as session:
            row = Task(
                task_id=task_id,
                project_id=payload.project_id,
                title=payload.title,
                description=payload.description,
                created_at=utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_view(row)

    def find_by_id(self, task_id: str) -> TaskView | None:
        with Session(self.engine) as session:
            row = session.get(Task, task_id)
            if row is None:
                return None
            return _to_view(row)

    def list_tasks(self, *, project_id: str | None = None, limit: int = 50) -> list[TaskView]:
        with Session(self.engine) as session:
            statement = select(Task)
            if project_id is not None:
                statement = statement.where(Task.project_id == project_id)
            statement = statement.order_by(col(Task.created_at).desc()).limit(limit)
            return [_to_view(row) for row in session.exec(statement)]


def _to_view(row: Task) -> TaskView:
    return TaskView(
        task_id=row.task_id,
        project_id=row.project_id,
        title=row.title,
        description=row.description,
        created_at=_from_db_datetime(row.created_at),
    )


def _from_db_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
