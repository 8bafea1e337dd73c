"""Middleware for customer session context."""
from functools import wraps
from flask import session, g, current_app

from b2b_portal.exceptions import NotAuthenticatedError
from b2b_portal.services.checkout_service import Customer


def load_customer():
    """
    Load the current customer into g (Flask's per-request global).

    The login flow stores the Shopify customer in ``session['customer']``;
    this only reads it. Sets g.customer to a Customer or None.
    """
    g.customer = None
    try:
        g.customer = Customer.from_session(session.get('customer'))
    except (TypeError, ValueError) as e:
        current_app.logger.error(f"Error in load_customer: {e}")


def require_customer(f):
    """
    Decorator: Require a customer session.

    Raises NotAuthenticatedError (rendered as 401 JSON) if not authenticated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('customer') is None:
            raise NotAuthenticatedError()
        return f(*args, **kwargs)
    return decorated_function
