"""OrderHistory model - local reporting copy of draft orders created in Shopify."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from b2b_portal.database import Base

ORDER_STATUS_PENDING = 'pendiente'


class OrderHistory(Base):
    """
    Order placed through the portal (historial de pedidos).

    Rows are inserted once, after Shopify accepted the draft order. Shopify
    remains the source of truth; totals are copied from its response.
    """

    __tablename__ = 'order_history'
    __table_args__ = (
        UniqueConstraint('user_email', 'shopify_order_id', name='uq_order_history_email_order'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    user_email = Column(String(255), nullable=False, index=True)
    shopify_order_id = Column(String(64), nullable=False)
    order_number = Column(String(64), nullable=False)
    status = Column(String(30), nullable=False, default=ORDER_STATUS_PENDING)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='CLP')
    order_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'shopifyOrderId': self.shopify_order_id,
            'orderNumber': self.order_number,
            'status': self.status,
            'totalAmount': float(self.total_amount or 0),
            'discountAmount': float(self.discount_amount or 0),
            'currency': self.currency,
            'orderDate': self.order_date.isoformat() if self.order_date else None,
        }

    def __repr__(self):
        return f"<OrderHistory(id={self.id}, order_number='{self.order_number}', status='{self.status}')>"
