"""
Checkout form (multipart) for the B2B order submission.
"""
from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed
from wtforms import SelectField, StringField
from wtforms.validators import Optional, ValidationError

PAYMENT_TRANSFER = 'transferencia'
PAYMENT_CONTACT = 'contacto'

PAYMENT_METHODS = {
    PAYMENT_TRANSFER: 'Transferencia Bancaria',
    PAYMENT_CONTACT: 'Contacto para Coordinación',
}

# Payment methods that cannot be submitted without a receipt
EVIDENCE_REQUIRED_METHODS = {PAYMENT_TRANSFER}

EVIDENCE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp', 'heic', 'pdf']


class CheckoutForm(FlaskForm):
    """Checkout submission: payment method, cart JSON and optional receipt."""

    class Meta:
        # CSRFProtect already guards every POST (header token for XHR checkout)
        csrf = False

    payment_method = SelectField(
        'Método de Pago',
        name='paymentMethod',
        choices=list(PAYMENT_METHODS.items()),
        default=PAYMENT_CONTACT
    )

    cart_items = StringField(
        'Carrito',
        name='cartItems',
        validators=[Optional()]
    )

    comprobante = FileField(
        'Comprobante de Pago',
        validators=[
            Optional(),
            FileAllowed(EVIDENCE_EXTENSIONS, 'Solo se permiten archivos de imagen (JPG, PNG, etc.) o PDF')
        ]
    )

    def validate_comprobante(self, field):
        """Restrict evidence to images or PDF up to MAX_EVIDENCE_SIZE."""
        file = field.data
        if not file or not getattr(file, 'filename', None):
            return

        mimetype = file.mimetype or ''
        if not (mimetype.startswith('image/') or mimetype == 'application/pdf'):
            raise ValidationError('Solo se permiten archivos de imagen (JPG, PNG, etc.) o PDF')

        max_size = current_app.config.get('MAX_EVIDENCE_SIZE', 5 * 1024 * 1024)
        file.stream.seek(0, 2)
        size = file.stream.tell()
        file.stream.seek(0)
        if size > max_size:
            raise ValidationError(f'El archivo es demasiado grande. Máximo {max_size / (1024 * 1024):.0f}MB')

    def first_error(self) -> str:
        for errors in self.errors.values():
            if errors:
                return errors[0]
        return 'Solicitud inválida'
