"""Custom exceptions for the B2B portal."""


class PortalError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(PortalError):
    """Raised when a request fails validation before any external effect."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class UnresolvableLineItemError(ValidationError):
    """Raised when a cart item has no usable variant identifier."""
    def __init__(self, position, title=None):
        label = f'"{title}"' if title else f'#{position + 1}'
        message = f'El producto {label} del carrito no tiene una variante válida'
        super().__init__(message, payload={'item': position})
        self.position = position


class NotAuthenticatedError(PortalError):
    """Raised when the request has no customer session."""
    def __init__(self, message='Usuario no autenticado'):
        super().__init__(message, 401)


class EntitlementDeniedError(PortalError):
    """Raised when the customer holds no B2B discount entitlement."""
    def __init__(self, message='Tu cuenta no tiene acceso al portal B2B'):
        super().__init__(message, 403)


class NotFoundError(PortalError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class DraftOrderSubmissionError(PortalError):
    """Raised when the order platform rejects or fails a draft order."""
    def __init__(self, upstream_status=None, upstream_body=''):
        if upstream_status:
            detail = f'Error {upstream_status}: {upstream_body}'
        else:
            detail = upstream_body or 'sin respuesta de la plataforma'
        super().__init__(f'Error procesando el pedido: {detail}', 500)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
