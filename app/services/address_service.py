# app/services/address_service.py
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.address import AddressModel
from app.domain.errors import NotFoundError, ValidationError, StaleWriteError
from app.domain.schemas import AddressCreate, AddressUpdate
from app.repos.address_repo import AddressRepo
from app.utils.retry import run_with_write_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)


class AddressService:
    """
    Ksiazka adresowa usera.

    Niezmiennik: user z >= 1 adresem ma dokladnie jeden aktywny.
    Kazda mutacja to jedna transakcja; unikalny indeks czesciowy na
    (user_id) WHERE is_active odrzuca rownolegly zapis drugiego aktywnego
    adresu, wtedy rollback i ponowienie. Liczenie adresow i wybor nastepcy
    serializuje wersja ksiazki adresowej usera (address_books).
    """

    def __init__(self, db: Session, max_attempts: int = 3):
        self.repo = AddressRepo(db)
        self.max_attempts = max_attempts

    #query
    def list_addresses(self, user_id: int) -> List[AddressModel]:
        return self.repo.list_by_user(user_id)

    def get_active(self, user_id: int) -> AddressModel | None:
        return self.repo.get_active(user_id)

    def has_active(self, user_id: int) -> bool:
        return self.repo.get_active(user_id) is not None

    def get_address(self, user_id: int, address_id: int) -> AddressModel:
        address = self.repo.get_owned(address_id, user_id)
        if not address:
            raise NotFoundError("Address not found")
        return address

    #commands
    def create_address(self, user_id: int, payload: AddressCreate) -> AddressModel:
        fields = payload.model_dump(exclude={"is_active"})
        fields["address_type"] = payload.address_type.value

        def attempt():
            version = self._book_version(user_id)

            def apply():
                if payload.is_active:
                    self.repo.deactivate_all(user_id)

                #pierwszy adres zawsze aktywny
                make_active = payload.is_active or self.repo.count_by_user(user_id) == 0
                return self.repo.add(AddressModel(user_id=user_id, is_active=make_active, **fields))

            address = self._commit(user_id, version, apply)
            logger.info(f"Created address {address.id} for user {user_id} (active={address.is_active})")
            return address

        return run_with_write_retry(attempt, self.max_attempts, "Concurrent address update, try again")

    def update_address(self, user_id: int, address_id: int, payload: AddressUpdate) -> AddressModel:
        changes = payload.model_dump(exclude_unset=True, exclude={"is_active"})
        if "address_type" in changes and changes["address_type"] is not None:
            changes["address_type"] = changes["address_type"].value
        want_active = payload.is_active if "is_active" in payload.model_fields_set else None

        def attempt():
            version = self._book_version(user_id)
            address = self.get_address(user_id, address_id)

            if want_active is False and address.is_active:
                raise ValidationError("Cannot deactivate the active address, activate another address instead")

            def apply():
                if want_active:
                    self.repo.deactivate_all(user_id, except_id=address.id)
                    address.is_active = True
                for key, value in changes.items():
                    setattr(address, key, value)
                self.repo.flush()
                return address

            return self._commit(user_id, version, apply)

        updated = run_with_write_retry(attempt, self.max_attempts, "Concurrent address update, try again")
        logger.info(f"Updated address {address_id} for user {user_id}")
        return updated

    def set_active(self, user_id: int, address_id: int) -> AddressModel:
        def attempt():
            version = self._book_version(user_id)
            address = self.get_address(user_id, address_id)

            def apply():
                self.repo.deactivate_all(user_id, except_id=address.id)
                address.is_active = True
                self.repo.flush()
                return address

            return self._commit(user_id, version, apply)

        address = run_with_write_retry(attempt, self.max_attempts, "Concurrent address update, try again")
        logger.info(f"Address {address_id} is now active for user {user_id}")
        return address

    def delete_address(self, user_id: int, address_id: int) -> None:
        def attempt():
            version = self._book_version(user_id)
            address = self.get_address(user_id, address_id)
            was_active = address.is_active

            def apply():
                self.repo.delete(address)
                if was_active:
                    #nowy aktywny: najmlodszy z pozostalych
                    successor = self.repo.newest_other(user_id, exclude_id=address_id)
                    if successor:
                        successor.is_active = True
                        self.repo.flush()
                        logger.info(f"Address {successor.id} elected active for user {user_id}")

            self._commit(user_id, version, apply)

        run_with_write_retry(attempt, self.max_attempts, "Concurrent address update, try again")
        logger.info(f"Deleted address {address_id} for user {user_id}")

    def _book_version(self, user_id: int) -> int:
        book = self.repo.get_book(user_id)
        if book is None:
            try:
                book = self.repo.create_book(user_id)
            except IntegrityError:
                #utworzona rownolegle
                self.repo.rollback()
                book = self.repo.get_book(user_id)
        return book.version

    def _commit(self, user_id: int, version: int, apply):
        """
        Podbija wersje ksiazki adresowej zanim cokolwiek policzy lub zapisze.
        Zmiana tego samego usera w innej transakcji czeka na blokade wiersza
        albo przegrywa warunek wersji i ponawia z aktualnym stanem.
        """
        try:
            if self.repo.bump_book(user_id, version) == 0:
                raise StaleWriteError("address book changed concurrently")
            result = apply()
            self.repo.commit()
            return result
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Address write lost a race: {e.orig}")
            raise StaleWriteError("address write conflict") from e
        except StaleWriteError:
            self.repo.rollback()
            logger.warning(f"Address book of user {user_id} changed concurrently, re-checking")
            raise
        except Exception:
            self.repo.rollback()
            raise
