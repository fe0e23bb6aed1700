# app/repositories/override_repository.py
"""Date override store (closures and special hours)"""
from datetime import date
from typing import List, Optional

from sqlalchemy import func, or_

from app.models.availability import DateOverride
from app.repositories.base import Repository, translate_storage_errors
from app.schemas.scheduling import DateOverrideEntry, DateOverrideInput


class DateOverrideRepository(Repository):

    @translate_storage_errors
    def list_for_range(self, start_date: date, end_date: date) -> List[DateOverrideEntry]:
        """Overrides that may touch [start_date, end_date]; recurring ones are always included"""
        rows = self.db.query(DateOverride).filter(
            or_(
                DateOverride.is_recurring.is_(True),
                (DateOverride.date <= end_date)
                & (func.coalesce(DateOverride.end_date, DateOverride.date) >= start_date),
            )
        ).order_by(DateOverride.date.asc(), DateOverride.id.asc()).all()
        return [DateOverrideEntry.model_validate(row) for row in rows]

    @translate_storage_errors
    def list_all(self) -> List[DateOverrideEntry]:
        rows = self.db.query(DateOverride).order_by(DateOverride.date.asc(), DateOverride.id.asc()).all()
        return [DateOverrideEntry.model_validate(row) for row in rows]

    @translate_storage_errors
    def list_public(self) -> List[DateOverrideEntry]:
        rows = self.db.query(DateOverride).filter(
            DateOverride.show_on_website.is_(True)
        ).order_by(DateOverride.date.asc(), DateOverride.id.asc()).all()
        return [DateOverrideEntry.model_validate(row) for row in rows]

    @translate_storage_errors
    def get(self, override_id: int) -> Optional[DateOverrideEntry]:
        row = self.db.query(DateOverride).filter_by(id=override_id).first()
        return DateOverrideEntry.model_validate(row) if row else None

    @translate_storage_errors
    def create(self, data: DateOverrideInput) -> DateOverrideEntry:
        row = DateOverride(**data.model_dump())
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return DateOverrideEntry.model_validate(row)

    @translate_storage_errors
    def update(self, override_id: int, data: DateOverrideInput) -> Optional[DateOverrideEntry]:
        row = self.db.query(DateOverride).filter_by(id=override_id).first()
        if row is None:
            return None
        for key, value in data.model_dump().items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return DateOverrideEntry.model_validate(row)

    @translate_storage_errors
    def delete(self, override_id: int) -> bool:
        deleted = self.db.query(DateOverride).filter_by(id=override_id).delete()
        self.db.commit()
        return deleted > 0
