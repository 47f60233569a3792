from sqlalchemy import Column, Integer

from app.data.database import Base


class RentalCalendarModel(Base):
    """
    Jeden wiersz na produkt. Wersja podbijana warunkowo przy kazdym nowym
    zgloszeniu, serializuje check-then-insert dla nakladajacych sie terminow.
    """

    __tablename__ = "rental_calendars"

    product_id = Column(Integer, primary_key=True, autoincrement=False)
    version = Column(Integer, nullable=False, default=1)
