"""
Domain error taxonomy shared by the pricing, shipment and organization apps.

Core functions raise these instead of touching HTTP status codes; the API
layer maps them to responses in `core.exception_handler`.
"""
from typing import Any, Dict, Optional


class SamudraError(Exception):
    """Base exception for domain errors"""

    code = "SamudraError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(SamudraError):
    """Raised for malformed input: bad tier bounds, negative weights, missing dimensions"""

    code = "ValidationError"


class NotFoundError(SamudraError):
    """Raised when a lookup (tier, node, pricing rule) has no match"""

    code = "NotFound"


class TierNotFoundError(NotFoundError):
    code = "TierNotFound"


class NodeNotFoundError(NotFoundError):
    code = "NodeNotFound"


class RuleNotFoundError(NotFoundError):
    code = "PricingRuleNotFound"


class ExpiredError(SamudraError):
    """Raised when a discount is used outside its validity window"""

    code = "Expired"


class LimitExceededError(SamudraError):
    """Raised when a discount has reached its usage limit"""

    code = "LimitExceeded"


class InvalidTransitionError(ValidationError):
    code = "InvalidStatusTransition"


class HierarchyCycleError(ValidationError):
    code = "HierarchyCycle"
