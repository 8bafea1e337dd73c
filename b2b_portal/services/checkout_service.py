"""
Checkout pipeline: cart -> Shopify draft order -> local history -> notification.

Steps run strictly in sequence within one request:

    UNAUTHENTICATED -> AUTHORIZING -> COMPOSING -> SUBMITTING
        -> RECORDING -> NOTIFYING -> COMPLETED

Every validation and authorization check happens before the first external
call (evidence upload or Shopify). The Shopify call is the only fatal
external step; once it succeeds the order is COMPLETED whatever happens to
recording or notification, which come back as StepResult values.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from b2b_portal.exceptions import (
    PortalError, ValidationError, NotAuthenticatedError, EntitlementDeniedError,
    DraftOrderSubmissionError
)
from b2b_portal.models import UserProfile, ORDER_STATUS_PENDING
from b2b_portal.schemas import CartItem
from b2b_portal.services.draft_order_service import (
    build_line_items, compose_draft_order, requires_evidence
)
from b2b_portal.services.entitlement_service import resolve_discount, has_ima_tag
from b2b_portal.services.order_history_service import record_draft_order, draft_order_number
from b2b_portal.services.pricing_service import CartSummary, summarize_cart
from b2b_portal.services.results import EvidenceResult, StepResult

logger = logging.getLogger(__name__)

IMA_NOTE = 'Pedido realizado. Los pagos son según el acuerdo comercial que tengan.'
IMA_NEXT_STEPS = [
    'Tu pedido ha sido procesado según tu acuerdo comercial',
    'Los términos de pago se rigen por tu convenio comercial',
    'Revisaremos disponibilidad de stock y confirmaremos entrega',
    'Coordinaremos la entrega según tus preferencias',
]
STANDARD_NOTE = (
    'Tu pedido está siendo revisado por nuestro equipo. '
    'Te contactaremos pronto para confirmar los detalles.'
)
STANDARD_NEXT_STEPS = [
    'Revisaremos tu pedido y disponibilidad de stock',
    'Te contactaremos para confirmar detalles y método de pago',
    'Procesaremos el pedido una vez confirmado',
    'Coordinaremos la entrega según tus preferencias',
]


class CheckoutState(str, Enum):
    UNAUTHENTICATED = 'unauthenticated'
    AUTHORIZING = 'authorizing'
    COMPOSING = 'composing'
    SUBMITTING = 'submitting'
    RECORDING = 'recording'
    NOTIFYING = 'notifying'
    COMPLETED = 'completed'
    DENIED = 'denied'
    SUBMIT_FAILED = 'submit_failed'


@dataclass(frozen=True)
class Customer:
    """Authenticated customer as stored in the session by the login flow."""
    email: str
    shopify_id: Optional[object] = None
    first_name: str = ''
    last_name: str = ''
    company: str = ''
    tags: str = ''

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_session(cls, data) -> Optional['Customer']:
        """Build from ``session['customer']``; None when there is no usable session."""
        if not isinstance(data, dict) or not data.get('email'):
            return None
        tags = data.get('tags') or ''
        if isinstance(tags, (list, tuple)):
            tags = ','.join(tags)
        return cls(
            email=data['email'],
            shopify_id=data.get('id') or data.get('shopifyId'),
            first_name=data.get('firstName') or '',
            last_name=data.get('lastName') or '',
            company=data.get('company') or '',
            tags=tags,
        )


@dataclass(frozen=True)
class EvidenceFile:
    """Payment evidence already validated at the request boundary."""
    data: bytes
    content_type: str
    filename: str


@dataclass(frozen=True)
class CheckoutRequest:
    payment_method: str
    items: List[CartItem]
    evidence: Optional[EvidenceFile] = None


@dataclass
class CheckoutResult:
    """Outcome of a completed checkout (Shopify accepted the draft order)."""
    draft_order: dict
    discount: int
    summary: CartSummary
    note: str
    next_steps: List[str]
    evidence: Optional[EvidenceResult]
    recording: StepResult
    notification: StepResult
    states: List[CheckoutState] = field(default_factory=list)

    @property
    def draft_order_id(self):
        return self.draft_order['id']

    @property
    def draft_order_number(self) -> str:
        return self.draft_order.get('name') or draft_order_number(self.draft_order)

    def to_response(self) -> dict:
        return {
            'success': True,
            'message': (
                f"¡Pedido enviado exitosamente! Tu solicitud #{self.draft_order_number} "
                f"está siendo procesada por nuestro equipo."
            ),
            'draftOrderId': self.draft_order_id,
            'draftOrderNumber': self.draft_order_number,
            'total': self.draft_order.get('total_price'),
            'discount': self.draft_order.get('total_discounts'),
            'status': ORDER_STATUS_PENDING,
            'note': self.note,
            'nextSteps': list(self.next_steps),
            'summary': self.summary.to_dict(),
        }


class CheckoutPipeline:
    """
    Orchestrates one checkout submission.

    Collaborators are injected so the process entry point owns their
    lifecycle (see create_app):
        shopify: ShopifyClient
        storage: EvidenceStorage
        notifier: OrderNotifier
        db_session: SQLAlchemy session
    """

    def __init__(self, shopify, storage, notifier, db_session):
        self.shopify = shopify
        self.storage = storage
        self.notifier = notifier
        self.db_session = db_session
        self.states: List[CheckoutState] = []

    @property
    def state(self) -> Optional[CheckoutState]:
        return self.states[-1] if self.states else None

    def submit(self, customer: Optional[Customer], request: CheckoutRequest) -> CheckoutResult:
        """
        Run the checkout.

        Raises:
            NotAuthenticatedError: No customer session (401)
            EntitlementDeniedError: Customer has no B2B discount tag (403)
            ValidationError: Empty cart, missing evidence or unresolvable item (400)
            DraftOrderSubmissionError: Shopify rejected the draft order (500)
        """
        discount = self.authorize(customer)

        try:
            self._validate(request)

            self._enter(CheckoutState.COMPOSING)
            line_items = build_line_items(request.items)
        except PortalError:
            self._enter(CheckoutState.DENIED)
            raise

        summary = summarize_cart(request.items, discount)
        evidence = self._upload_evidence(customer, request.evidence)
        profile = self._load_profile(customer.email)
        payload = compose_draft_order(
            customer, line_items, discount, request.payment_method, evidence, profile
        )

        self._enter(CheckoutState.SUBMITTING)
        try:
            draft_order = self.shopify.create_draft_order(payload)
        except DraftOrderSubmissionError:
            self._enter(CheckoutState.SUBMIT_FAILED)
            raise

        logger.info(
            f"[CHECKOUT] Draft order #{draft_order['id']} created for {customer.email} "
            f"({len(line_items)} items, {discount}% discount)"
        )

        self._enter(CheckoutState.RECORDING)
        recording = self._best_effort(
            'recording', record_draft_order, self.db_session, customer.email, draft_order
        )

        is_ima = has_ima_tag(customer.tags)
        result = CheckoutResult(
            draft_order=draft_order,
            discount=discount,
            summary=summary,
            note=IMA_NOTE if is_ima else STANDARD_NOTE,
            next_steps=IMA_NEXT_STEPS if is_ima else STANDARD_NEXT_STEPS,
            evidence=evidence,
            recording=recording,
            notification=StepResult.skipped('not an IMA customer'),
        )

        self._enter(CheckoutState.NOTIFYING)
        if is_ima:
            result.notification = self._best_effort(
                'notification', self.notifier.send_order_notification, customer, summary, {
                    'draftOrderId': result.draft_order_id,
                    'draftOrderNumber': result.draft_order_number,
                    'total': draft_order.get('total_price'),
                    'discount': draft_order.get('total_discounts'),
                }
            )

        self._enter(CheckoutState.COMPLETED)
        result.states = list(self.states)
        return result

    def authorize(self, customer: Optional[Customer]) -> int:
        """
        Resolve the customer's discount entitlement, starting a fresh run.

        Callers may invoke this before parsing the request body so an
        unentitled customer is refused before any form error is reported.

        Raises:
            NotAuthenticatedError: No customer session (401)
            EntitlementDeniedError: Customer has no B2B discount tag (403)
        """
        self.states = []
        self._enter(CheckoutState.UNAUTHENTICATED)

        try:
            if customer is None:
                raise NotAuthenticatedError()

            self._enter(CheckoutState.AUTHORIZING)
            discount = resolve_discount(customer.tags)
            if discount is None:
                logger.warning(f"[CHECKOUT] No B2B entitlement for {customer.email} (tags: {customer.tags!r})")
                raise EntitlementDeniedError()
        except PortalError:
            self._enter(CheckoutState.DENIED)
            raise

        return discount

    def _validate(self, request: CheckoutRequest):
        if not request.items:
            raise ValidationError('El carrito está vacío')
        if requires_evidence(request.payment_method) and request.evidence is None:
            raise ValidationError('Debe subir el comprobante de transferencia')

    def _upload_evidence(self, customer: Customer, evidence: Optional[EvidenceFile]) -> Optional[EvidenceResult]:
        if evidence is None:
            return None
        result = self.storage.upload_evidence(
            evidence.data, evidence.content_type, evidence.filename, customer.email
        )
        if not result.succeeded:
            logger.warning(f"[CHECKOUT] Evidence upload failed for {customer.email}, order continues with fallback note")
        return result

    def _load_profile(self, email: str) -> Optional[UserProfile]:
        # A missing profile only downgrades the note to "incomplete profile"
        try:
            return self.db_session.query(UserProfile).filter_by(email=email).first()
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error(f"[CHECKOUT] Could not load profile for {email}: {e}")
            return None

    def _best_effort(self, step: str, func, *args) -> StepResult:
        try:
            result = func(*args)
        except Exception as e:
            logger.exception(f"[CHECKOUT] ✗ {step} step raised: {e}")
            return StepResult.failed(str(e))
        if not result.succeeded:
            logger.warning(f"[CHECKOUT] {step} step did not complete: {result.status.value} ({result.error})")
        return result

    def _enter(self, state: CheckoutState):
        self.states.append(state)
        logger.debug(f"[CHECKOUT] -> {state.value}")
