# app/repos/order_repo.py
from typing import List

from sqlalchemy import select, exists, or_
from sqlalchemy.orm import Session, selectinload

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def order_number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(exists().where(OrderModel.order_number == order_number))
        ).scalar()

    def get_for_party(self, order_id: int, user_id: int) -> OrderModel | None:
        #kupujacy albo sprzedawca ktorejkolwiek pozycji
        is_seller = exists().where(
            OrderItemModel.order_id == OrderModel.id,
            OrderItemModel.seller_id == user_id,
        )
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id, or_(OrderModel.buyer_id == user_id, is_seller))
        ).scalar_one_or_none()

    def list_by_buyer(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.buyer_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_by_seller(self, seller_id: int) -> List[OrderModel]:
        is_seller = exists().where(
            OrderItemModel.order_id == OrderModel.id,
            OrderItemModel.seller_id == seller_id,
        )
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(is_seller)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_all(self) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
