"""
Request middleware and listing intake.
"""

from aashiyana.middleware.validation import RequestContextMiddleware
from aashiyana.middleware.uploads import PropertyFormData, parse_property_form, validate_fields

__all__ = [
    "RequestContextMiddleware",
    "PropertyFormData",
    "parse_property_form",
    "validate_fields",
]
