"""Checkout blueprint - B2B order submission (draft orders)."""
import logging

from flask import Blueprint, jsonify, current_app, g

from b2b_portal.blueprints.metrics import checkout_submissions_total, checkout_degraded_steps_total
from b2b_portal.database import get_session
from b2b_portal.exceptions import PortalError, ValidationError
from b2b_portal.forms.checkout_forms import CheckoutForm
from b2b_portal.middleware import require_customer
from b2b_portal.schemas import parse_cart_items
from b2b_portal.services.results import StepStatus
from b2b_portal.services.checkout_service import (
    CheckoutPipeline, CheckoutRequest, CheckoutState, EvidenceFile
)

logger = logging.getLogger(__name__)

checkout_bp = Blueprint('checkout', __name__, url_prefix='/api')


def build_pipeline() -> CheckoutPipeline:
    """Pipeline wired with the clients created by the app factory."""
    clients = current_app.extensions['b2b_portal']
    return CheckoutPipeline(
        shopify=clients['shopify'],
        storage=clients['storage'],
        notifier=clients['notifier'],
        db_session=get_session()
    )


def parse_checkout_request() -> CheckoutRequest:
    """
    Validate the multipart checkout body into a CheckoutRequest.

    Raises:
        ValidationError: On an invalid payment method, cart or evidence file
    """
    form = CheckoutForm()
    if not form.validate():
        raise ValidationError(form.first_error())

    evidence = None
    upload = form.comprobante.data
    if upload and upload.filename:
        evidence = EvidenceFile(
            data=upload.read(),
            content_type=upload.mimetype,
            filename=upload.filename
        )

    return CheckoutRequest(
        payment_method=form.payment_method.data,
        items=parse_cart_items(form.cart_items.data),
        evidence=evidence
    )


@checkout_bp.route('/checkout', methods=['POST'])
@require_customer
def checkout():
    """
    Procesar checkout y crear draft order en Shopify.

    Form fields (multipart/form-data):
    - paymentMethod: 'transferencia' | 'contacto'
    - cartItems: JSON list of {variantId, quantity, price, title}
    - comprobante: receipt file (required for 'transferencia')
    """
    pipeline = build_pipeline()

    try:
        # Entitlement first: an unentitled customer gets 403 whatever the body holds
        pipeline.authorize(g.customer)
        checkout_request = parse_checkout_request()
        result = pipeline.submit(g.customer, checkout_request)
    except PortalError:
        if pipeline.state is CheckoutState.SUBMIT_FAILED:
            outcome = CheckoutState.SUBMIT_FAILED
        else:
            outcome = CheckoutState.DENIED
        checkout_submissions_total.labels(outcome=outcome.value).inc()
        raise

    checkout_submissions_total.labels(outcome=CheckoutState.COMPLETED.value).inc()
    if result.evidence is not None and not result.evidence.succeeded:
        checkout_degraded_steps_total.labels(step='evidence').inc()
    if result.recording.status is StepStatus.FAILED:
        checkout_degraded_steps_total.labels(step='recording').inc()
    if result.notification.status is StepStatus.FAILED:
        checkout_degraded_steps_total.labels(step='notification').inc()

    logger.info(f"[CHECKOUT] ✓ Order #{result.draft_order_number} completed for {g.customer.email}")
    return jsonify(result.to_response()), 200
