"""
Integration tests for the business profile, order history, metrics and CLI.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from b2b_portal.models import OrderHistory, UserProfile


PROFILE_FORM = {
    'first_name': 'Ana',
    'last_name': 'Rojas',
    'mobile_phone': '+56911112222',
    'phone': '+5622223333',
    'company_name': 'Ferretería Rojas SpA',
    'company_rut': '76.123.456-7',
    'company_giro': 'Venta de artículos de ferretería',
    'company_address': 'Av. Providencia 1234',
    'region': 'Región Metropolitana',
    'comuna': 'Providencia',
}


class TestProfile:
    """Tests for /api/profile."""

    def test_requires_login(self, client):
        assert client.get('/api/profile').status_code == 401

    def test_empty_profile_prefilled_from_session(self, customer_client, session):
        response = customer_client.get('/api/profile')

        assert response.status_code == 200
        profile = response.get_json()['profile']
        assert profile['email'] == 'compras@ferreteria.cl'
        assert profile['first_name'] == 'Ana'
        assert profile['company_rut'] == ''
        assert profile['discount_percentage'] == 20
        assert profile['profile_completed'] is False

    def test_create_profile(self, customer_client, session):
        response = customer_client.post('/api/profile/update', json=PROFILE_FORM)

        assert response.status_code == 200
        assert response.get_json()['profileCompleted'] is True

        profile = session.query(UserProfile).filter_by(email='compras@ferreteria.cl').one()
        assert profile.company_rut == '76.123.456-7'
        assert profile.shopify_customer_id == '7001'
        assert profile.discount_percentage == 20
        assert profile.discount_tag == 'b2b20'

    def test_update_existing_profile(self, customer_client, session, complete_profile):
        form = dict(PROFILE_FORM, company_address='Los Leones 55')

        response = customer_client.post('/api/profile/update', json=form)

        assert response.status_code == 200
        session.expire_all()
        assert session.query(UserProfile).count() == 1
        assert session.query(UserProfile).one().company_address == 'Los Leones 55'

    def test_missing_fields_are_listed(self, customer_client, session):
        form = dict(PROFILE_FORM, company_rut='  ', comuna='')

        response = customer_client.post('/api/profile/update', json=form)

        assert response.status_code == 400
        message = response.get_json()['message']
        assert 'RUT' in message
        assert 'Comuna' in message
        assert session.query(UserProfile).count() == 0

    def test_unknown_fields_rejected(self, customer_client, session):
        response = customer_client.post('/api/profile/update', json=dict(PROFILE_FORM, is_admin=True))

        assert response.status_code == 400


class TestOrderHistory:
    """Tests for /api/orders."""

    def _add_order(self, session, email, order_id, days_ago=0):
        session.add(OrderHistory(
            user_email=email,
            shopify_order_id=str(order_id),
            order_number=f'D{order_id}',
            total_amount=Decimal('16000.00'),
            discount_amount=Decimal('4000.00'),
            order_date=datetime.now(timezone.utc) - timedelta(days=days_ago),
        ))
        session.commit()

    def test_requires_login(self, client):
        assert client.get('/api/orders').status_code == 401

    def test_lists_own_orders_newest_first(self, customer_client, session):
        self._add_order(session, 'compras@ferreteria.cl', 1, days_ago=3)
        self._add_order(session, 'compras@ferreteria.cl', 2, days_ago=1)
        self._add_order(session, 'otro@cliente.cl', 3)

        response = customer_client.get('/api/orders')

        assert response.status_code == 200
        orders = response.get_json()['orders']
        assert [o['orderNumber'] for o in orders] == ['D2', 'D1']
        assert orders[0]['totalAmount'] == 16000.0
        assert orders[0]['status'] == 'pendiente'

    def test_pagination_is_clamped(self, customer_client, session):
        self._add_order(session, 'compras@ferreteria.cl', 1)

        data = customer_client.get('/api/orders?limit=500&offset=-4').get_json()

        assert data['limit'] == 100
        assert data['offset'] == 0
        assert len(data['orders']) == 1

    def test_checkout_appears_in_history(self, customer_client, fakes, session):
        customer_client.post('/api/checkout', data={
            'paymentMethod': 'contacto',
            'cartItems': '[{"variantId": 123, "quantity": 1, "price": 5000, "title": "Imán"}]',
        }, content_type='multipart/form-data')

        orders = customer_client.get('/api/orders').get_json()['orders']

        assert [o['orderNumber'] for o in orders] == ['D1001']


class TestMetrics:
    """Tests for /metrics."""

    def test_checkout_outcomes_exposed(self, customer_client, fakes, session):
        customer_client.post('/api/checkout', data={
            'paymentMethod': 'contacto',
            'cartItems': '[{"variantId": 123, "quantity": 1, "price": 5000, "title": "Imán"}]',
        }, content_type='multipart/form-data')

        response = customer_client.get('/metrics')

        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert 'checkout_submissions_total{outcome="completed"}' in body
        assert 'http_requests_total' in body


class TestCliCommands:
    """Tests for flask CLI commands."""

    def test_check_entitlement(self, app, fakes):
        fakes['shopify'].find_customer_by_email = lambda email: {'id': 9, 'tags': 'mayorista, b2b25'}

        result = app.test_cli_runner().invoke(args=['check-entitlement', 'ana@acme.cl'])

        assert result.exit_code == 0
        assert 'Descuento B2B: 25%' in result.output

    def test_check_entitlement_without_access(self, app, fakes):
        fakes['shopify'].find_customer_by_email = lambda email: {'id': 9, 'tags': 'retail'}

        result = app.test_cli_runner().invoke(args=['check-entitlement', 'ana@acme.cl'])

        assert result.exit_code == 2

    def test_check_entitlement_unknown_customer(self, app, fakes):
        fakes['shopify'].find_customer_by_email = lambda email: None

        result = app.test_cli_runner().invoke(args=['check-entitlement', 'nadie@acme.cl'])

        assert result.exit_code == 1
        assert 'Cliente no encontrado' in result.output

    def test_init_db_is_idempotent(self, app):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0
