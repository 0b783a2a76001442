"""
Repositories for the site's content tables.

Every read goes to the database; nothing is cached in process.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from guidesite.db import Backend

logger = logging.getLogger(__name__)


def _to_datetime(value: Any) -> Optional[datetime]:
    # SQLite hands back "YYYY-MM-DD HH:MM:SS[.ffffff]" text, Postgres a datetime.
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _now() -> str:
    # Microsecond UTC stamp; same-second edits still sort by write order.
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


@dataclass
class Post:
    id: int
    title: str
    content: str
    category: Optional[str] = None
    icon: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Post":
        return cls(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            category=row.get("category"),
            icon=row.get("icon"),
            updated_at=_to_datetime(row.get("updated_at")),
        )

    def as_dict(self) -> dict:
        return asdict(self)

    def as_seed(self) -> dict:
        return {
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "icon": self.icon,
        }


@dataclass
class Category:
    id: int
    name: str
    display_order: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Category":
        return cls(id=row["id"], name=row["name"], display_order=row["display_order"])

    def as_dict(self) -> dict:
        return asdict(self)

    def as_seed(self) -> dict:
        return {"name": self.name, "display_order": self.display_order}


@dataclass
class Faq:
    id: int
    question: str
    answer: str
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Faq":
        return cls(
            id=row["id"],
            question=row["question"],
            answer=row["answer"],
            updated_at=_to_datetime(row.get("updated_at")),
        )

    def as_dict(self) -> dict:
        return asdict(self)

    def as_seed(self) -> dict:
        return {"question": self.question, "answer": self.answer}


@dataclass
class TrainingStep:
    id: int
    title: str
    description: str
    step_order: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TrainingStep":
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            step_order=row["step_order"],
        )

    def as_dict(self) -> dict:
        return asdict(self)

    def as_seed(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "step_order": self.step_order,
        }


class _TableRepository:
    """List/get/delete/count shared by the content tables."""

    table: str
    order_by: str
    record_type: Any

    def __init__(self, db: Backend):
        self.db = db

    def list_all(self) -> list:
        result = self.db.execute(
            f"SELECT * FROM {self.table} ORDER BY {self.order_by}"
        )
        return [self.record_type.from_row(row) for row in result.rows]

    def get(self, record_id: int):
        row = self.db.execute(
            f"SELECT * FROM {self.table} WHERE id = ?", [record_id]
        ).first()
        if row is None:
            return None
        return self.record_type.from_row(row)

    def delete(self, record_id: int) -> int:
        result = self.db.execute(f"DELETE FROM {self.table} WHERE id = ?", [record_id])
        logger.info(
            "Deleted from %s id=%s changes=%s", self.table, record_id, result.rowcount
        )
        return result.rowcount

    def count(self) -> int:
        value = self.db.execute(f"SELECT COUNT(*) AS count FROM {self.table}").scalar()
        return int(value or 0)

    def _next_order(self, column: str) -> int:
        value = self.db.execute(
            f"SELECT MAX({column}) AS max_order FROM {self.table}"
        ).scalar()
        return int(value or 0) + 1

    def _replace_all(self, insert: str, rows: Sequence[Sequence[Any]]) -> int:
        # Readers see either the old collection or the new one.
        with self.db.transaction() as tx:
            tx.execute(f"DELETE FROM {self.table}")
            for params in rows:
                tx.execute(insert, params)
        logger.info("Replaced %s with %d rows", self.table, len(rows))
        return len(rows)


class PostRepository(_TableRepository):
    table = "posts"
    order_by = "updated_at DESC, id DESC"
    record_type = Post

    def create(
        self,
        title: str,
        content: str,
        category: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> int:
        result = self.db.execute(
            "INSERT INTO posts (title, content, category, icon, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            [title, content, category, icon, _now()],
        )
        return result.lastrowid

    def update(
        self,
        post_id: int,
        title: str,
        content: str,
        category: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> bool:
        result = self.db.execute(
            "UPDATE posts SET title = ?, content = ?, category = ?, icon = ?, "
            "updated_at = ? WHERE id = ?",
            [title, content, category, icon, _now(), post_id],
        )
        return result.rowcount > 0


class CategoryRepository(_TableRepository):
    table = "categories"
    order_by = "display_order ASC, id ASC"
    record_type = Category

    def create(self, name: str, display_order: Optional[int] = None) -> int:
        if display_order is None:
            display_order = self._next_order("display_order")
        result = self.db.execute(
            "INSERT INTO categories (name, display_order) VALUES (?, ?)",
            [name, display_order],
        )
        return result.lastrowid

    def update(self, category_id: int, name: str, display_order: int) -> bool:
        result = self.db.execute(
            "UPDATE categories SET name = ?, display_order = ? WHERE id = ?",
            [name, display_order, category_id],
        )
        return result.rowcount > 0

    def replace_all(self, categories: Iterable[Mapping[str, Any]]) -> int:
        """Swap the whole category list; items without an order keep their position."""
        rows = []
        for position, item in enumerate(categories, start=1):
            order = item.get("display_order")
            rows.append((item["name"], position if order is None else order))
        return self._replace_all(
            "INSERT INTO categories (name, display_order) VALUES (?, ?)", rows
        )


class FaqRepository(_TableRepository):
    table = "faqs"
    order_by = "updated_at DESC, id DESC"
    record_type = Faq

    def create(self, question: str, answer: str) -> int:
        result = self.db.execute(
            "INSERT INTO faqs (question, answer, updated_at) "
            "VALUES (?, ?, ?)",
            [question, answer, _now()],
        )
        return result.lastrowid

    def update(self, faq_id: int, question: str, answer: str) -> bool:
        result = self.db.execute(
            "UPDATE faqs SET question = ?, answer = ?, "
            "updated_at = ? WHERE id = ?",
            [question, answer, _now(), faq_id],
        )
        return result.rowcount > 0


class TrainingStepRepository(_TableRepository):
    table = "training_process"
    order_by = "step_order ASC, id ASC"
    record_type = TrainingStep

    def create(
        self, title: str, description: str, step_order: Optional[int] = None
    ) -> int:
        if step_order is None:
            step_order = self._next_order("step_order")
        result = self.db.execute(
            "INSERT INTO training_process (title, description, step_order) "
            "VALUES (?, ?, ?)",
            [title, description, step_order],
        )
        return result.lastrowid

    def update(
        self, step_id: int, title: str, description: str, step_order: int
    ) -> bool:
        result = self.db.execute(
            "UPDATE training_process SET title = ?, description = ?, step_order = ? "
            "WHERE id = ?",
            [title, description, step_order, step_id],
        )
        return result.rowcount > 0

    def replace_all(self, steps: Iterable[Mapping[str, Any]]) -> int:
        rows = []
        for position, item in enumerate(steps, start=1):
            order = item.get("step_order")
            rows.append(
                (item["title"], item["description"], position if order is None else order)
            )
        return self._replace_all(
            "INSERT INTO training_process (title, description, step_order) "
            "VALUES (?, ?, ?)",
            rows,
        )
