"""Models package - exports all SQLAlchemy models."""
from b2b_portal.models.user_profile import UserProfile, REQUIRED_PROFILE_FIELDS
from b2b_portal.models.order_history import OrderHistory, ORDER_STATUS_PENDING

__all__ = [
    'UserProfile', 'REQUIRED_PROFILE_FIELDS',
    'OrderHistory', 'ORDER_STATUS_PENDING',
]
