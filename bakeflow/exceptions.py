"""Domain exception hierarchy for structured error results."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class UnauthorizedException(AppException):
    """Acting user may not complete the step (role or assignee mismatch)."""

    code = "UNAUTHORIZED"
    status_code = 403


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class CreditExceededException(BusinessRuleException):
    code = "CREDIT_EXCEEDED"


class MissingPricingException(BusinessRuleException):
    code = "MISSING_PRICING"

    def __init__(self, recipe_names: list[str]) -> None:
        super().__init__(
            f"Missing pricing for: {', '.join(recipe_names)}. "
            "Please contact admin to set up pricing for these items.",
            details=[{"field": "recipe", "message": name} for name in recipe_names],
        )
        self.recipe_names = recipe_names


class InsufficientInventoryException(BusinessRuleException):
    code = "INSUFFICIENT_INVENTORY"


class InvalidStateTransitionException(BusinessRuleException):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409


class ConfigurationException(AppException):
    code = "CONFIGURATION_ERROR"


class NoWorkflowAvailableException(ConfigurationException):
    code = "NO_WORKFLOW_AVAILABLE"
