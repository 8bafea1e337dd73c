import os
import tempfile

import pytest

# Tests run against a throwaway SQLite file, never the configured PostgreSQL
_db_dir = tempfile.mkdtemp(prefix='b2b_portal_test_')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_db_dir, 'portal_test.db')}"
os.environ['SHOPIFY_ADMIN_API_TOKEN'] = 'test-token'
os.environ['MAIL_SUPPRESS_SEND'] = 'true'

from b2b_portal import create_app
from b2b_portal.database import create_tables, get_session
from b2b_portal.exceptions import DraftOrderSubmissionError
from b2b_portal.models import UserProfile, OrderHistory
from b2b_portal.services.results import EvidenceResult, StepResult


class FakeShopify:
    """Records draft order payloads; returns a canned draft order or raises."""

    def __init__(self):
        self.payloads = []
        self.error = None
        self.next_id = 1001

    def create_draft_order(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        draft_order_id = self.next_id
        self.next_id += 1
        return {
            'id': draft_order_id,
            'name': f'#D{draft_order_id}',
            'total_price': '16000.00',
            'total_discounts': '4000.00',
            'currency': 'CLP',
        }

    def reject(self, status=422, body='{"errors":{"line_items":["invalid variant"]}}'):
        self.error = DraftOrderSubmissionError(status, body)


class FakeStorage:
    """Records uploads; succeeds unless told to fail."""

    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload_evidence(self, data, content_type, filename, customer_email):
        self.uploads.append({
            'data': data,
            'content_type': content_type,
            'filename': filename,
            'email': customer_email,
        })
        if self.fail:
            return EvidenceResult.failed(filename, 'storage unavailable')
        return EvidenceResult.uploaded(f'https://files.test/comprobantes/{filename}', filename)


class FakeNotifier:
    """Records notifications; can raise to simulate a broken transport."""

    def __init__(self):
        self.sent = []
        self.error = None

    def send_order_notification(self, customer, summary, order):
        if self.error:
            raise self.error
        self.sent.append({'customer': customer, 'summary': summary, 'order': order})
        return StepResult.ok('ops@test.cl')


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    with app.app_context():
        create_tables()
    return app


@pytest.fixture(scope='function')
def fakes(app):
    """Replace the external clients with in-memory fakes."""
    original = app.extensions['b2b_portal']
    doubles = {
        'shopify': FakeShopify(),
        'storage': FakeStorage(),
        'notifier': FakeNotifier(),
    }
    app.extensions['b2b_portal'] = doubles
    yield doubles
    app.extensions['b2b_portal'] = original


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session; tables are emptied after each test."""
    session = get_session()
    yield session
    session.rollback()
    session.query(OrderHistory).delete()
    session.query(UserProfile).delete()
    session.commit()
    session.remove()


@pytest.fixture
def b2b_customer():
    """Session payload of a B2B customer with a 20% entitlement."""
    return {
        'id': 7001,
        'email': 'compras@ferreteria.cl',
        'firstName': 'Ana',
        'lastName': 'Rojas',
        'company': 'Ferretería Rojas SpA',
        'tags': 'b2b20, mayorista',
    }


@pytest.fixture
def ima_customer():
    """Session payload of an IMA agreement customer (40%)."""
    return {
        'id': 7002,
        'email': 'pedidos@ima.cl',
        'firstName': 'Luis',
        'lastName': 'Soto',
        'company': 'IMA Distribución',
        'tags': 'imab2b40',
    }


@pytest.fixture
def complete_profile(session, b2b_customer):
    """Fully completed business profile for the B2B customer."""
    profile = UserProfile(
        email=b2b_customer['email'],
        first_name='Ana',
        last_name='Rojas',
        mobile_phone='+56911112222',
        phone='+5622223333',
        company_name='Ferretería Rojas SpA',
        company_rut='76.123.456-7',
        company_giro='Venta de artículos de ferretería',
        company_address='Av. Providencia 1234',
        region='Región Metropolitana',
        comuna='Providencia',
    )
    session.add(profile)
    session.commit()
    return profile


def login(client, customer):
    """Store a customer in the Flask session, as the login flow does."""
    with client.session_transaction() as sess:
        sess['customer'] = customer
    return client


@pytest.fixture
def login_as(client):
    """Log the test client in as an arbitrary session customer."""
    return lambda customer: login(client, customer)


@pytest.fixture
def customer_client(client, b2b_customer):
    """Test client logged in as the B2B customer."""
    return login(client, b2b_customer)


@pytest.fixture
def ima_client(client, ima_customer):
    """Test client logged in as the IMA customer."""
    return login(client, ima_customer)
