"""Orders blueprint - order history of the logged-in customer."""
from flask import Blueprint, request, jsonify, g

from b2b_portal.database import get_session
from b2b_portal.middleware import require_customer
from b2b_portal.services.order_history_service import list_orders

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')

MAX_PAGE_SIZE = 100


@orders_bp.route('', methods=['GET'])
@require_customer
def order_history():
    """List orders placed through the portal, newest first (?limit=&offset=)."""
    limit = min(max(request.args.get('limit', 20, type=int), 1), MAX_PAGE_SIZE)
    offset = max(request.args.get('offset', 0, type=int), 0)

    orders = list_orders(get_session(), g.customer.email, limit=limit, offset=offset)
    return jsonify({
        'success': True,
        'orders': [order.to_dict() for order in orders],
        'limit': limit,
        'offset': offset
    }), 200
