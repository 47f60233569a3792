from sqlalchemy import Column, Integer

from app.data.database import Base


class AddressBookModel(Base):
    """
    Jeden wiersz na usera. Kazda zmiana adresow podbija wersje warunkowo,
    wiec liczenie adresow i wybor aktywnego widza stan po poprzednim zapisie.
    """

    __tablename__ = "address_books"

    user_id = Column(Integer, primary_key=True, autoincrement=False)
    version = Column(Integer, nullable=False, default=1)
