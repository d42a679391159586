from __future__ import annotations

from typing import Any

from fastapi import status


class DomainError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class InvalidDataError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id: object) -> None:
        super().__init__(f"Customer not found: {customer_id}")
        self.customer_id = customer_id


class CustomerEmailConflictError(ConflictError):
    def __init__(self, email: str) -> None:
        super().__init__(f'Customer with email "{email}" already exists')
        self.email = email


class InvalidCustomerDataError(InvalidDataError):
    pass


class TrackingNotFoundError(NotFoundError):
    def __init__(self, tracking_id: object) -> None:
        super().__init__(f"Tracking not found: {tracking_id}")


class TrackingValidationError(InvalidDataError):
    pass


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template_ref: object) -> None:
        super().__init__(f"Template not found: {template_ref}")


class LeadNotFoundError(NotFoundError):
    def __init__(self, lead_ref: object) -> None:
        super().__init__(f"Lead not found: {lead_ref}")


class TenantNotFoundError(InvalidDataError):
    def __init__(self, tenant_id: object) -> None:
        super().__init__(f"Invalid tenant: {tenant_id}")


class TenantInactiveError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, tenant_id: object) -> None:
        super().__init__(f"Tenant is not active: {tenant_id}")


class ServiceUnavailableError(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ConversionActionNotFoundError(NotFoundError):
    def __init__(self, conversion_action_id: object) -> None:
        super().__init__(f"Conversion action not found: {conversion_action_id}")


class CookieCategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: object) -> None:
        super().__init__(f"Cookie category with ID {category_id} not found")


class CookieNotFoundError(NotFoundError):
    def __init__(self, cookie_id: object) -> None:
        super().__init__(f"Cookie with ID {cookie_id} not found")
