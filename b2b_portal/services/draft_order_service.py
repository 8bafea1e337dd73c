"""
Draft order composition for Shopify.

Builds the ``{"draft_order": {...}}`` body from the customer, the cart, the
resolved discount, the payment method, the evidence upload outcome and the
business profile. The order note is the only channel that carries business
data to the operators working the draft order in Shopify, so it is built
deterministically and includes every profile field when the profile is
complete.
"""
import re
from typing import List, Optional

from b2b_portal.exceptions import UnresolvableLineItemError
from b2b_portal.forms.checkout_forms import PAYMENT_METHODS, PAYMENT_TRANSFER
from b2b_portal.services.results import EvidenceResult

CHANNEL_MARKER = 'Pedido B2B desde portal'
PORTAL_TAG = 'b2b-portal'
INCOMPLETE_PROFILE_NOTE = '⚠️ PERFIL EMPRESARIAL INCOMPLETO - Verificar datos con el cliente'
DEFAULT_COUNTRY = 'Chile'

_TRAILING_ID = re.compile(r'(\d+)$')


def resolve_variant_id(value) -> Optional[int]:
    """
    Extract the numeric Shopify variant id.

    Accepts ``123``, ``"123"`` or ``"gid://shopify/ProductVariant/123"``.
    Returns None for anything without a trailing numeric segment.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None

    segment = str(value).strip().rsplit('/', 1)[-1]
    match = _TRAILING_ID.fullmatch(segment) if segment else None
    if not match:
        return None
    variant_id = int(match.group(1))
    return variant_id if variant_id > 0 else None


def build_line_items(items) -> List[dict]:
    """
    Map cart items to Shopify line items.

    Raises:
        UnresolvableLineItemError: If any item lacks a usable variant id (no partial orders)
    """
    line_items = []
    for position, item in enumerate(items):
        variant_id = resolve_variant_id(item.variant_id)
        if variant_id is None:
            raise UnresolvableLineItemError(position, item.title)
        line_items.append({
            'variant_id': variant_id,
            'quantity': item.quantity,
            'price': str(item.price),
        })
    return line_items


def payment_method_label(payment_method: str) -> str:
    return PAYMENT_METHODS.get(payment_method, payment_method)


def build_order_note(
    customer,
    discount: int,
    payment_method: str,
    evidence: Optional[EvidenceResult] = None,
    profile=None
) -> str:
    """Free-text note for Shopify operators (deterministic for the same inputs)."""
    lines = [
        f"{CHANNEL_MARKER} - Cliente: {customer.email} - Descuento: {discount}%",
        '',
        f"MÉTODO DE PAGO: {payment_method_label(payment_method)}",
    ]

    if evidence is not None:
        if evidence.succeeded:
            lines.append(f"COMPROBANTE DE PAGO: [Link para descargar]({evidence.url})")
        else:
            lines.append(f"COMPROBANTE DE PAGO: {evidence.filename} - ⚠️ Error al subir archivo")

    lines.append('')
    if profile is not None and profile.profile_completed:
        lines.extend([
            'DATOS EMPRESARIALES:',
            f"• Razón Social: {profile.company_name}",
            f"• RUT: {profile.company_rut}",
            f"• Giro: {profile.company_giro}",
            f"• Dirección: {profile.company_address}",
            f"• Región: {profile.region}",
            f"• Comuna: {profile.comuna}",
            '',
            'CONTACTO:',
            f"• Nombre: {profile.contact_name}",
            f"• Teléfono: {profile.phone or 'N/A'}",
            f"• Celular: {profile.mobile_phone}",
        ])
    else:
        lines.append(INCOMPLETE_PROFILE_NOTE)

    return '\n'.join(lines)


def build_tags(discount: int, payment_method: str, profile_complete: bool, evidence_attached: bool) -> str:
    """Machine-parseable tags: portal, discount, payment, profile and evidence markers."""
    tags = [
        PORTAL_TAG,
        f"descuento-{discount}",
        f"pago-{payment_method}",
        'perfil-completo' if profile_complete else 'perfil-incompleto',
    ]
    if evidence_attached:
        tags.append('comprobante-subido')
    return ','.join(tags)


def build_billing_address(profile) -> Optional[dict]:
    """Billing address from the business profile, only when an address is on file."""
    if profile is None or not (profile.company_address or '').strip():
        return None
    return {
        'first_name': profile.first_name or '',
        'last_name': profile.last_name or '',
        'company': profile.company_name or '',
        'address1': profile.company_address,
        'city': profile.comuna or '',
        'province': profile.region or '',
        'country': DEFAULT_COUNTRY,
        'phone': profile.phone or profile.mobile_phone or '',
    }


def compose_draft_order(
    customer,
    line_items: List[dict],
    discount: int,
    payment_method: str,
    evidence: Optional[EvidenceResult] = None,
    profile=None
) -> dict:
    """
    Assemble the Shopify draft order request body.

    Args:
        customer: Session customer (email, names, Shopify id)
        line_items: Output of build_line_items
        discount: Entitlement percentage, sent as a percentage discount
        payment_method: 'transferencia' or 'contacto'
        evidence: Upload outcome when a receipt was attached, else None
        profile: UserProfile or None

    Returns:
        ``{"draft_order": {...}}``
    """
    profile_complete = profile is not None and profile.profile_completed

    draft_order = {
        'line_items': line_items,
        'customer': {
            'id': customer.shopify_id,
            'email': customer.email,
            'first_name': (profile.first_name if profile and profile.first_name else customer.first_name) or '',
            'last_name': (profile.last_name if profile and profile.last_name else customer.last_name) or '',
        },
        'applied_discount': {
            'description': f"Descuento B2B {discount}%",
            'value_type': 'percentage',
            'value': str(discount),
            'amount': None,
        },
        'note': build_order_note(customer, discount, payment_method, evidence, profile),
        'tags': build_tags(discount, payment_method, profile_complete, evidence is not None),
        'status': 'open',
    }

    billing_address = build_billing_address(profile)
    if billing_address:
        draft_order['billing_address'] = billing_address

    return {'draft_order': draft_order}


def requires_evidence(payment_method: str) -> bool:
    return payment_method == PAYMENT_TRANSFER
