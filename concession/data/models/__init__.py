# import all models so that SQLAlchemy registers them on Base.metadata
from concession.data.models.account import AccountModel
from concession.data.models.product import ProductModel
from concession.data.models.order import OrderModel
from concession.data.models.order_item import OrderItemModel

__all__ = ["AccountModel", "ProductModel", "OrderModel", "OrderItemModel"]
