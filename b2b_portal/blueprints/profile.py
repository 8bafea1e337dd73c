"""Profile blueprint - business profile (perfil empresarial) of the logged-in customer."""
import logging

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import SQLAlchemyError

from b2b_portal.database import get_session
from b2b_portal.exceptions import PortalError, ValidationError
from b2b_portal.middleware import require_customer
from b2b_portal.models import UserProfile, REQUIRED_PROFILE_FIELDS
from b2b_portal.schemas import parse_profile_update
from b2b_portal.services.entitlement_service import resolve_discount, discount_tag

logger = logging.getLogger(__name__)

profile_bp = Blueprint('profile', __name__, url_prefix='/api/profile')


def _empty_profile(customer) -> dict:
    data = {field: '' for field in REQUIRED_PROFILE_FIELDS}
    data.update({
        'email': customer.email,
        'first_name': customer.first_name,
        'last_name': customer.last_name,
        'phone': '',
        'contact_name': customer.full_name,
        'discount_percentage': resolve_discount(customer.tags) or 0,
        'profile_completed': False,
    })
    return data


@profile_bp.route('', methods=['GET'])
@require_customer
def get_profile():
    """Return the stored profile, or an empty template prefilled from the session."""
    session = get_session()
    profile = session.query(UserProfile).filter_by(email=g.customer.email).first()
    data = profile.to_dict() if profile else _empty_profile(g.customer)
    return jsonify({
        'success': True,
        'profile': data,
        'profileCompleted': data['profile_completed']
    }), 200


@profile_bp.route('/update', methods=['POST'])
@require_customer
def update_profile():
    """
    Create or update the business profile.

    All nine business fields are required; the error lists the missing ones.
    """
    update = parse_profile_update(request.get_json(silent=True))

    missing = [
        label for field, label in REQUIRED_PROFILE_FIELDS.items()
        if not getattr(update, field)
    ]
    if missing:
        raise ValidationError(f"Los siguientes campos son obligatorios: {', '.join(missing)}")

    customer = g.customer
    session = get_session()
    try:
        profile = session.query(UserProfile).filter_by(email=customer.email).first()
        if profile is None:
            profile = UserProfile(email=customer.email)
            session.add(profile)

        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        profile.shopify_customer_id = str(customer.shopify_id) if customer.shopify_id else profile.shopify_customer_id
        profile.discount_percentage = resolve_discount(customer.tags) or 0
        profile.discount_tag = discount_tag(customer.tags)

        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[PROFILE] ✗ Error updating profile for {customer.email}: {e}")
        raise PortalError('Error de base de datos. Inténtalo nuevamente.')

    logger.info(f"[PROFILE] ✓ Perfil empresarial actualizado para: {customer.email}")
    return jsonify({
        'success': True,
        'message': '¡Datos empresariales guardados exitosamente!',
        'profileCompleted': profile.profile_completed
    }), 200
