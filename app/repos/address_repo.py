# app/repos/address_repo.py
from typing import List

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from app.data.models.address import AddressModel
from app.data.models.address_book import AddressBookModel


class AddressRepo:
    """Wszystkie zapytania scope'owane po user_id."""

    def __init__(self, db: Session):
        self.db = db

    def get_owned(self, address_id: int, user_id: int) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel).where(
                AddressModel.id == address_id,
                AddressModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def list_by_user(self, user_id: int) -> List[AddressModel]:
        return list(
            self.db.execute(
                select(AddressModel)
                .where(AddressModel.user_id == user_id)
                .order_by(AddressModel.is_active.desc(), AddressModel.created_at.desc(), AddressModel.id.desc())
            ).scalars()
        )

    def get_active(self, user_id: int) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel).where(
                AddressModel.user_id == user_id,
                AddressModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def count_by_user(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(AddressModel.id)).where(AddressModel.user_id == user_id)
        ).scalar_one()

    def newest_other(self, user_id: int, exclude_id: int) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel)
            .where(AddressModel.user_id == user_id, AddressModel.id != exclude_id)
            .order_by(AddressModel.created_at.desc(), AddressModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def deactivate_all(self, user_id: int, except_id: int | None = None) -> int:
        stmt = (
            update(AddressModel)
            .where(AddressModel.user_id == user_id, AddressModel.is_active.is_(True))
            .values(is_active=False)
        )
        if except_id is not None:
            stmt = stmt.where(AddressModel.id != except_id)
        return self.db.execute(stmt).rowcount

    # wersja ksiazki adresowej (serializacja zmian jednego usera)
    def get_book(self, user_id: int) -> AddressBookModel | None:
        return self.db.get(AddressBookModel, user_id, populate_existing=True)

    def create_book(self, user_id: int) -> AddressBookModel:
        book = AddressBookModel(user_id=user_id, version=1)
        self.db.add(book)
        self.db.commit()
        return book

    def bump_book(self, user_id: int, old_version: int) -> int:
        result = self.db.execute(
            update(AddressBookModel)
            .where(AddressBookModel.user_id == user_id, AddressBookModel.version == old_version)
            .values(version=old_version + 1)
        )
        return result.rowcount

    def add(self, address: AddressModel) -> AddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete(self, address: AddressModel):
        self.db.delete(address)
        self.db.flush()

    def flush(self):
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
