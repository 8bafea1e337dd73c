"""Request schemas for the checkout and profile endpoints."""
import json
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt, TypeAdapter
from pydantic import ValidationError as SchemaError

from b2b_portal.exceptions import ValidationError


class CartItem(BaseModel):
    """One cart line as sent by the storefront."""
    model_config = ConfigDict(extra='forbid', populate_by_name=True, frozen=True)

    variant_id: Optional[Union[int, str]] = Field(
        default=None, alias='variantId',
        description='Numeric variant id or gid://shopify/ProductVariant/<id>'
    )
    quantity: PositiveInt
    price: NonNegativeInt = Field(..., description='Unit price with IVA, whole CLP')
    title: str = ''

    # Display-only fields carried by the storefront cart
    product_id: Optional[Union[int, str]] = Field(default=None, alias='productId')
    variant_title: Optional[str] = Field(default=None, alias='variantTitle')
    sku: Optional[str] = None
    image: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Business profile fields accepted by /api/profile/update."""
    model_config = ConfigDict(extra='forbid', str_strip_whitespace=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_phone: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    company_rut: Optional[str] = None
    company_giro: Optional[str] = None
    company_address: Optional[str] = None
    region: Optional[str] = None
    comuna: Optional[str] = None


_cart_adapter = TypeAdapter(List[CartItem])


def parse_cart_items(raw) -> List[CartItem]:
    """
    Parse the ``cartItems`` field (JSON string from FormData, or a list).

    Raises:
        ValidationError: If the payload is not a list of well-formed cart items
    """
    if raw is None or raw == '':
        return []

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError('Error parsing cart items')

    try:
        return _cart_adapter.validate_python(raw)
    except SchemaError as e:
        raise ValidationError(
            'Formato de carrito inválido',
            payload={'errors': _describe_errors(e)}
        )


def parse_profile_update(raw) -> ProfileUpdate:
    """Validate a profile update body; unknown fields are rejected."""
    if not isinstance(raw, dict):
        raise ValidationError('Datos del perfil requeridos')
    try:
        return ProfileUpdate.model_validate(raw)
    except SchemaError as e:
        raise ValidationError(
            'Datos del perfil inválidos',
            payload={'errors': _describe_errors(e)}
        )


def _describe_errors(error: SchemaError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]
