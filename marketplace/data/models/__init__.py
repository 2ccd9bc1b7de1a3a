# every model is imported here so SQLAlchemy registers it on Base.metadata

from marketplace.data.models.user import UserModel
from marketplace.data.models.customer import CustomerModel
from marketplace.data.models.retailer import RetailerModel
from marketplace.data.models.product import ProductModel
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.order_status import OrderStatusEventModel
from marketplace.data.models.location import LocationModel
from marketplace.data.models.store import FavoriteStoreModel, StoreReviewModel
from marketplace.data.models.support_ticket import SupportTicketModel
from marketplace.data.models.ticket_message import TicketMessageModel
from marketplace.data.models.analytics import AnalyticsSnapshotModel

__all__ = [
    "UserModel",
    "CustomerModel",
    "RetailerModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusEventModel",
    "LocationModel",
    "FavoriteStoreModel",
    "StoreReviewModel",
    "SupportTicketModel",
    "TicketMessageModel",
    "AnalyticsSnapshotModel",
]
