"""
Unit tests for the checkout pipeline (state machine and step ordering).
"""

import pytest
from b2b_portal.exceptions import (
    NotAuthenticatedError, EntitlementDeniedError, ValidationError,
    UnresolvableLineItemError, DraftOrderSubmissionError
)
from b2b_portal.models import OrderHistory
from b2b_portal.schemas import CartItem
from b2b_portal.services.checkout_service import (
    CheckoutPipeline, CheckoutRequest, CheckoutState, Customer, EvidenceFile,
    IMA_NOTE, STANDARD_NOTE
)
from b2b_portal.services.draft_order_service import INCOMPLETE_PROFILE_NOTE
from b2b_portal.services.results import StepStatus


CART = [CartItem(variantId='gid://shopify/ProductVariant/123', quantity=2, price=10000, title='Imán Neodimio')]
RECEIPT = EvidenceFile(data=b'%PDF-1.4 recibo', content_type='application/pdf', filename='transferencia.pdf')


@pytest.fixture
def pipeline(fakes, session):
    return CheckoutPipeline(fakes['shopify'], fakes['storage'], fakes['notifier'], session)


@pytest.fixture
def customer(b2b_customer):
    return Customer.from_session(b2b_customer)


@pytest.fixture
def ima(ima_customer):
    return Customer.from_session(ima_customer)


class TestSuccessfulCheckout:
    """Tests for the happy path."""

    def test_completes_and_records(self, pipeline, fakes, session, customer):
        result = pipeline.submit(customer, CheckoutRequest('contacto', CART))

        assert pipeline.state is CheckoutState.COMPLETED
        assert result.states == [
            CheckoutState.UNAUTHENTICATED,
            CheckoutState.AUTHORIZING,
            CheckoutState.COMPOSING,
            CheckoutState.SUBMITTING,
            CheckoutState.RECORDING,
            CheckoutState.NOTIFYING,
            CheckoutState.COMPLETED,
        ]
        assert result.draft_order_id == 1001
        assert result.discount == 20
        assert result.note == STANDARD_NOTE
        assert result.recording.succeeded
        assert result.notification.status is StepStatus.SKIPPED
        assert fakes['notifier'].sent == []

        draft = fakes['shopify'].payloads[0]['draft_order']
        assert draft['line_items'] == [{'variant_id': 123, 'quantity': 2, 'price': '10000'}]
        assert draft['applied_discount']['value'] == '20'
        assert INCOMPLETE_PROFILE_NOTE in draft['note']

        order = session.query(OrderHistory).filter_by(user_email='compras@ferreteria.cl').one()
        assert order.order_number == 'D1001'
        assert order.shopify_order_id == '1001'
        assert order.status == 'pendiente'
        assert int(order.total_amount) == 16000

    def test_response_shape(self, pipeline, customer):
        response = pipeline.submit(customer, CheckoutRequest('contacto', CART)).to_response()

        assert response['success'] is True
        assert response['draftOrderId'] == 1001
        assert response['draftOrderNumber'] == '#D1001'
        assert response['total'] == '16000.00'
        assert response['status'] == 'pendiente'
        assert response['summary']['totals']['discountedGross'] == 16000
        assert '#D1001' in response['message']

    def test_profile_data_goes_into_note(self, pipeline, fakes, customer, complete_profile):
        pipeline.submit(customer, CheckoutRequest('contacto', CART))

        draft = fakes['shopify'].payloads[0]['draft_order']
        assert '76.123.456-7' in draft['note']
        assert 'perfil-completo' in draft['tags']
        assert draft['billing_address']['city'] == 'Providencia'

    def test_transfer_with_evidence(self, pipeline, fakes, customer):
        result = pipeline.submit(customer, CheckoutRequest('transferencia', CART, RECEIPT))

        upload = fakes['storage'].uploads[0]
        assert upload['email'] == 'compras@ferreteria.cl'
        assert upload['filename'] == 'transferencia.pdf'
        assert result.evidence.succeeded

        note = fakes['shopify'].payloads[0]['draft_order']['note']
        assert '[Link para descargar](https://files.test/comprobantes/transferencia.pdf)' in note

    def test_ima_customer_is_notified(self, pipeline, fakes, ima):
        result = pipeline.submit(ima, CheckoutRequest('contacto', CART))

        assert result.note == IMA_NOTE
        assert result.notification.succeeded
        sent = fakes['notifier'].sent[0]
        assert sent['order']['draftOrderNumber'] == '#D1001'
        assert sent['summary'].discount == 40


class TestRejectedBeforeAnyExternalCall:
    """Tests for checks that must run before upload or submission."""

    def test_no_customer(self, pipeline, fakes):
        with pytest.raises(NotAuthenticatedError):
            pipeline.submit(None, CheckoutRequest('contacto', CART))

        assert pipeline.state is CheckoutState.DENIED
        assert fakes['shopify'].payloads == []

    def test_no_entitlement(self, pipeline, fakes, b2b_customer):
        b2b_customer['tags'] = 'retail, vip'
        customer = Customer.from_session(b2b_customer)

        with pytest.raises(EntitlementDeniedError) as exc_info:
            pipeline.submit(customer, CheckoutRequest('transferencia', CART, RECEIPT))

        assert exc_info.value.status_code == 403
        assert pipeline.states == [
            CheckoutState.UNAUTHENTICATED, CheckoutState.AUTHORIZING, CheckoutState.DENIED
        ]
        assert fakes['storage'].uploads == []
        assert fakes['shopify'].payloads == []

    def test_authorize_alone(self, pipeline, customer, b2b_customer):
        assert pipeline.authorize(customer) == 20
        assert pipeline.state is CheckoutState.AUTHORIZING

        b2b_customer['tags'] = 'retail'
        with pytest.raises(EntitlementDeniedError):
            pipeline.authorize(Customer.from_session(b2b_customer))
        assert pipeline.states == [
            CheckoutState.UNAUTHENTICATED, CheckoutState.AUTHORIZING, CheckoutState.DENIED
        ]

    def test_transfer_without_evidence(self, pipeline, fakes, customer):
        with pytest.raises(ValidationError) as exc_info:
            pipeline.submit(customer, CheckoutRequest('transferencia', CART))

        assert exc_info.value.message == 'Debe subir el comprobante de transferencia'
        assert fakes['shopify'].payloads == []

    def test_empty_cart(self, pipeline, fakes, customer):
        with pytest.raises(ValidationError):
            pipeline.submit(customer, CheckoutRequest('contacto', []))

        assert fakes['shopify'].payloads == []

    def test_unresolvable_item_blocks_upload_and_submission(self, pipeline, fakes, customer):
        cart = CART + [CartItem(variantId='gid://shopify/Product/', quantity=1, price=500, title='Roto')]

        with pytest.raises(UnresolvableLineItemError):
            pipeline.submit(customer, CheckoutRequest('transferencia', cart, RECEIPT))

        assert pipeline.state is CheckoutState.DENIED
        assert fakes['storage'].uploads == []
        assert fakes['shopify'].payloads == []


class TestDegradedSteps:
    """Tests for non-fatal step failures."""

    def test_failed_upload_uses_fallback_note(self, pipeline, fakes, customer):
        fakes['storage'].fail = True

        result = pipeline.submit(customer, CheckoutRequest('transferencia', CART, RECEIPT))

        assert pipeline.state is CheckoutState.COMPLETED
        assert not result.evidence.succeeded
        draft = fakes['shopify'].payloads[0]['draft_order']
        assert 'transferencia.pdf - ⚠️ Error al subir archivo' in draft['note']
        assert 'comprobante-subido' in draft['tags']

    def test_recording_failure_still_completes(self, pipeline, fakes, session, customer, monkeypatch):
        def broken_recorder(*args):
            raise RuntimeError('database is locked')

        monkeypatch.setattr('b2b_portal.services.checkout_service.record_draft_order', broken_recorder)

        result = pipeline.submit(customer, CheckoutRequest('contacto', CART))

        assert pipeline.state is CheckoutState.COMPLETED
        assert result.recording.status is StepStatus.FAILED
        assert 'database is locked' in result.recording.error
        assert session.query(OrderHistory).count() == 0

    def test_notification_failure_still_completes(self, pipeline, fakes, ima):
        fakes['notifier'].error = ConnectionRefusedError('smtp down')

        result = pipeline.submit(ima, CheckoutRequest('contacto', CART))

        assert pipeline.state is CheckoutState.COMPLETED
        assert result.notification.status is StepStatus.FAILED
        assert result.recording.succeeded


class TestSubmissionFailure:
    """Tests for the fatal Shopify step."""

    def test_rejected_draft_order(self, pipeline, fakes, session, customer):
        fakes['shopify'].reject(422, 'invalid variant')

        with pytest.raises(DraftOrderSubmissionError) as exc_info:
            pipeline.submit(customer, CheckoutRequest('contacto', CART))

        assert exc_info.value.message == 'Error procesando el pedido: Error 422: invalid variant'
        assert pipeline.state is CheckoutState.SUBMIT_FAILED
        assert CheckoutState.RECORDING not in pipeline.states
        assert len(fakes['shopify'].payloads) == 1
        assert session.query(OrderHistory).count() == 0
        assert fakes['notifier'].sent == []
