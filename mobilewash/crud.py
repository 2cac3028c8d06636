# mobilewash/crud.py
"""
Generic repository for simple contact-style tables
(id, name, email, ..., created_at, updated_at).

One instance per table, e.g. `customers = CrudRepository(Customer, "customer")`.
Rows come back as plain dicts; emails are unique case-insensitively.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from mobilewash import db as dbmod
from mobilewash import monitoring


class DuplicateRecordError(Exception):
    pass


class CrudRepository:
    def __init__(self, model, entity: str, fields: Optional[Iterable[str]] = None):
        self.model = model
        self.entity = entity
        self.fields = list(fields or ("name", "email", "phone", "address", "notes"))

    def _duplicate(self) -> DuplicateRecordError:
        return DuplicateRecordError(f"A {self.entity} with this email already exists")

    @staticmethod
    def _clean(value):
        return value.strip() if isinstance(value, str) else value

    def get_all(self) -> List[Dict[str, Any]]:
        with dbmod.get_session() as s:
            return [r.to_dict() for r in s.query(self.model).order_by(self.model.id).all()]

    def get_by_id(self, record_id: int) -> Optional[Dict[str, Any]]:
        with dbmod.get_session() as s:
            row = s.get(self.model, record_id)
            return row.to_dict() if row else None

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with dbmod.get_session() as s:
            row = (
                s.query(self.model)
                .filter(func.lower(self.model.email) == email.strip().lower())
                .first()
            )
            return row.to_dict() if row else None

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        with dbmod.get_session() as s:
            q = s.query(self.model).filter(func.lower(self.model.email) == email.strip().lower())
            if exclude_id:
                q = q.filter(self.model.id != exclude_id)
            return q.count() > 0

    def count(self) -> int:
        with dbmod.get_session() as s:
            return s.query(self.model).count()

    def search(self, query: str) -> List[Dict[str, Any]]:
        # % and _ in the query are literal, not wildcards
        escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        term = f"%{escaped}%"
        with dbmod.get_session() as s:
            rows = (
                s.query(self.model)
                .filter(or_(self.model.name.like(term, escape="\\"),
                            self.model.email.like(term, escape="\\")))
                .order_by(self.model.name)
                .all()
            )
            return [r.to_dict() for r in rows]

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: self._clean(data.get(k)) for k in self.fields if data.get(k) is not None}
        if values.get("email") and self.email_exists(values["email"]):
            raise self._duplicate()
        with dbmod.get_session() as s:
            row = self.model(**values)
            s.add(row)
            try:
                s.commit()
            except IntegrityError:
                s.rollback()
                raise self._duplicate()
            s.refresh(row)
            monitoring.logger.info(f"Created {self.entity}", extra={"record_id": row.id})
            return row.to_dict()

    def update(self, record_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply only the provided fields. None when the record does not exist."""
        values = {k: self._clean(data[k]) for k in self.fields if data.get(k) is not None}
        if not values:
            raise ValueError("No valid fields to update")
        if values.get("email") and self.email_exists(values["email"], exclude_id=record_id):
            raise self._duplicate()
        with dbmod.get_session() as s:
            row = s.get(self.model, record_id)
            if row is None:
                return None
            for k, v in values.items():
                setattr(row, k, v)
            try:
                s.commit()
            except IntegrityError:
                s.rollback()
                raise self._duplicate()
            s.refresh(row)
            return row.to_dict()

    def delete(self, record_id: int) -> Optional[Dict[str, Any]]:
        """Delete and return the removed record, or None if it was not there."""
        with dbmod.get_session() as s:
            row = s.get(self.model, record_id)
            if row is None:
                return None
            snapshot = row.to_dict()
            s.delete(row)
            s.commit()
            monitoring.logger.info(f"Deleted {self.entity}", extra={"record_id": record_id})
            return snapshot
