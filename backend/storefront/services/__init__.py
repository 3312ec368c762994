"""Service layer exports."""
from storefront.services import form_service, pricing_service, secure_form

__all__ = [
    "form_service",
    "pricing_service",
    "secure_form",
]
