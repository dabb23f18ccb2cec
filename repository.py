"""
Repositories: one per table, each wrapping the request's SQLAlchemy session.

Writes commit immediately. Nothing here spans more than one statement in a
transaction, so check-then-write sequences in the handlers (email uniqueness,
order references) are not atomic.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Order, Payment, Product, User


class Repository:
    model = None

    def __init__(self, db: Session):
        self.db = db

    def save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def get_by_id(self, id: int):
        return self.db.get(self.model, id)

    def get_all(self) -> List[Any]:
        return self._find()

    def update(self, id: int, fields: Dict[str, Any]):
        """Write only the given columns; returns None when the row is gone."""
        obj = self.get_by_id(id)
        if obj is None:
            return None
        for name, value in fields.items():
            setattr(obj, name, value)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, id: int) -> bool:
        obj = self.get_by_id(id)
        if obj is None:
            return False
        self.db.delete(obj)
        self.db.commit()
        return True

    def _find(self, *criteria) -> List[Any]:
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return list(self.db.scalars(stmt.order_by(self.model.id)))


class UserRepository(Repository):
    model = User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.scalars(select(User).where(User.email == email).limit(1)).first()

    def search_by_name(self, name: str) -> List[User]:
        # case-sensitive
        return self._find(User.name.contains(name, autoescape=True))


class ProductRepository(Repository):
    model = Product

    def search_by_name(self, name: str) -> List[Product]:
        return self._find(Product.name.icontains(name, autoescape=True))

    def search_by_category(self, category: str) -> List[Product]:
        return self._find(Product.category.icontains(category, autoescape=True))


class OrderRepository(Repository):
    model = Order

    def search_by_user_id(self, user_id: int) -> List[Order]:
        return self._find(Order.user_id == user_id)

    def search_by_status(self, status: str) -> List[Order]:
        return self._find(Order.status == status)


class PaymentRepository(Repository):
    model = Payment

    def search_by_user_id(self, user_id: int) -> List[Payment]:
        return self._find(Payment.user_id == user_id)

    def search_by_order_id(self, order_id: int) -> List[Payment]:
        return self._find(Payment.order_id == order_id)

    def search_by_status(self, status: str) -> List[Payment]:
        return self._find(Payment.payment_status == status)
