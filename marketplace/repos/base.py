# marketplace/repos/base.py
from sqlalchemy.orm import Session


class SessionRepo:
    """Repos only flush; the service that owns the use case decides when to commit."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, obj):
        self.db.refresh(obj)
        return obj


def paginate(query, page: int, limit: int):
    """Returns (rows, total) for a select-style ORM query."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, total
