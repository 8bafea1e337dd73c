"""UserProfile model - business profile of a B2B customer."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from b2b_portal.database import Base

# Fields a customer must fill before orders carry full business data
REQUIRED_PROFILE_FIELDS = {
    'first_name': 'Nombre',
    'last_name': 'Apellido',
    'mobile_phone': 'Celular',
    'company_name': 'Razón Social',
    'company_rut': 'RUT Empresa',
    'company_giro': 'Giro',
    'company_address': 'Dirección',
    'region': 'Región',
    'comuna': 'Comuna',
}


class UserProfile(Base):
    """Business profile (perfil empresarial) keyed by customer email."""

    __tablename__ = 'user_profiles'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    shopify_customer_id = Column(String(64), nullable=True)

    # Contact
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    mobile_phone = Column(String(50), nullable=True)
    phone = Column(String(50), nullable=True)

    # Company (Chilean tax data)
    company_name = Column(String(200), nullable=True)
    company_rut = Column(String(20), nullable=True)
    company_giro = Column(String(200), nullable=True)
    company_address = Column(Text, nullable=True)
    region = Column(String(100), nullable=True)
    comuna = Column(String(100), nullable=True)

    discount_percentage = Column(Integer, nullable=False, default=0)
    discount_tag = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def missing_fields(self):
        """Labels of required fields that are empty."""
        return [
            label for field, label in REQUIRED_PROFILE_FIELDS.items()
            if not (getattr(self, field) or '').strip()
        ]

    @property
    def profile_completed(self) -> bool:
        """True when all nine required business fields are filled."""
        return not self.missing_fields

    @property
    def contact_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self):
        data = {field: getattr(self, field) or '' for field in REQUIRED_PROFILE_FIELDS}
        data.update({
            'email': self.email,
            'phone': self.phone or '',
            'contact_name': self.contact_name,
            'discount_percentage': self.discount_percentage,
            'profile_completed': self.profile_completed,
        })
        return data

    def __repr__(self):
        return f"<UserProfile(id={self.id}, email='{self.email}', completed={self.profile_completed})>"
