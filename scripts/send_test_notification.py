import sys
import os

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from b2b_portal import create_app
from b2b_portal.schemas import CartItem
from b2b_portal.services.checkout_service import Customer
from b2b_portal.services.pricing_service import summarize_cart


def send_test_notification():
    app = create_app()
    with app.app_context():
        print("Testing order notification email...")
        print(f"MAIL_SERVER: {app.config.get('MAIL_SERVER')}")
        print(f"MAIL_PORT: {app.config.get('MAIL_PORT')}")
        print(f"MAIL_USERNAME: {app.config.get('MAIL_USERNAME')}")
        print(f"MAIL_SUPPRESS_SEND: {app.config.get('MAIL_SUPPRESS_SEND')}")
        print(f"ORDER_NOTIFICATION_EMAIL: {app.config.get('ORDER_NOTIFICATION_EMAIL')}")

        customer = Customer(email='prueba@imanix.com', first_name='Pedido', last_name='Prueba', tags='ima40')
        items = [CartItem(variantId=1, quantity=2, price=10000, title='Producto de prueba')]
        summary = summarize_cart(items, 40)

        notifier = app.extensions['b2b_portal']['notifier']
        result = notifier.send_order_notification(customer, summary, {'draftOrderNumber': 'TEST'})
        print(f"Result: {result.status.value} {result.error or ''}")


if __name__ == "__main__":
    send_test_notification()
