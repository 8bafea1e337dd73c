"""
Local order history: reporting copy of draft orders accepted by Shopify.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError

from b2b_portal.models import OrderHistory, ORDER_STATUS_PENDING
from b2b_portal.services.results import StepResult

logger = logging.getLogger(__name__)


def draft_order_number(draft_order: dict) -> str:
    """Order number used locally for draft orders: 'D' + Shopify id."""
    return f"D{draft_order['id']}"


def record_draft_order(session, email: str, draft_order: dict) -> StepResult:
    """
    Insert the order history row for an accepted draft order.

    Totals come from the Shopify response, never recomputed. Failures are
    logged and returned, never raised and never retried: Shopify already holds
    the order.

    Returns:
        StepResult.ok(OrderHistory) or StepResult.failed(reason)
    """
    try:
        order = OrderHistory(
            user_email=email,
            shopify_order_id=str(draft_order['id']),
            order_number=draft_order_number(draft_order),
            status=ORDER_STATUS_PENDING,
            total_amount=_amount(draft_order.get('total_price')),
            discount_amount=_amount(draft_order.get('total_discounts')),
            currency=draft_order.get('currency') or 'CLP',
            order_date=datetime.now(timezone.utc)
        )
        session.add(order)
        session.commit()
        logger.info(f"[ORDERS] ✓ Draft order {order.order_number} saved for {email}")
        return StepResult.ok(order)

    except (SQLAlchemyError, InvalidOperation) as e:
        session.rollback()
        logger.exception(f"[ORDERS] ✗ Could not save draft order {draft_order.get('id')} for {email}: {e}")
        return StepResult.failed(str(e))


def list_orders(session, email: str, limit: int = 20, offset: int = 0):
    """Customer's order history, newest first."""
    return session.query(OrderHistory).filter(
        OrderHistory.user_email == email
    ).order_by(
        OrderHistory.order_date.desc(), OrderHistory.id.desc()
    ).offset(offset).limit(limit).all()


def _amount(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal('0.01'))
