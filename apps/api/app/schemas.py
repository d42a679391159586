from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, StringConstraints

from packages.tracking import SelectorConfig, TrackingCategory, TrackingDestination, TrackingStatus, TrackingType

from .models import CookieConsentCategory, CustomerStatus, EmailStatus, EmailTemplateType, EmailTriggerAction

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

Tag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=30)]
EmailAddress = Annotated[str, StringConstraints(strip_whitespace=True, max_length=320, pattern=EMAIL_PATTERN)]


class CustomerSortField(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    COMPANY = "company"
    STATUS = "status"


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CustomerCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailAddress
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    company: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)
    website_url: HttpUrl | None = None
    status: CustomerStatus = CustomerStatus.ACTIVE
    tags: list[Tag] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=1000)
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class CustomerUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailAddress | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    company: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)
    website_url: HttpUrl | None = None
    status: CustomerStatus | None = None
    tags: list[Tag] | None = None
    notes: str | None = Field(default=None, max_length=1000)
    custom_fields: dict[str, Any] | None = None


class GA4PropertyPayload(BaseModel):
    property_id: str = Field(min_length=1, max_length=100)
    measurement_id: str | None = Field(default=None, max_length=100)
    display_name: str = Field(min_length=1, max_length=255)
    is_default: bool = False


class GoogleAdsAccountPayload(BaseModel):
    google_account_id: str = Field(min_length=1, max_length=100)
    account_name: str = Field(min_length=1, max_length=255)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    time_zone: str = Field(default="UTC", max_length=100)
    is_active: bool = True


class GoogleAccountLinkRequest(BaseModel):
    google_account_id: str = Field(min_length=1, max_length=255)
    google_email: EmailAddress | None = None
    gtm_account_id: str | None = Field(default=None, max_length=100)
    gtm_container_id: str | None = Field(default=None, max_length=100)
    gtm_workspace_id: str | None = Field(default=None, max_length=100)
    gtm_container_name: str | None = Field(default=None, max_length=255)
    server_side_enabled: bool | None = None
    ga4_properties: list[GA4PropertyPayload] | None = None
    google_ads_accounts: list[GoogleAdsAccountPayload] | None = None


class GA4PropertyResponse(BaseModel):
    id: uuid.UUID
    property_id: str
    measurement_id: str | None
    display_name: str
    is_default: bool


class GoogleAdsAccountResponse(BaseModel):
    id: uuid.UUID
    google_account_id: str
    account_name: str
    currency: str
    time_zone: str
    is_active: bool


class GoogleAccountSummary(BaseModel):
    google_account_id: str
    google_email: str | None
    gtm_container_id: str | None
    gtm_container_name: str | None
    has_gtm_access: bool
    has_ga4_access: bool
    has_ads_access: bool


class CustomerResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    slug: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    company: str | None
    phone: str | None
    website_url: str | None
    status: CustomerStatus
    tags: list[str]
    notes: str | None
    custom_fields: dict[str, Any]
    google_account_id: str | None
    google_email: str | None
    gtm_account_id: str | None
    gtm_container_id: str | None
    gtm_workspace_id: str | None
    gtm_container_name: str | None
    server_side_enabled: bool
    google_account: GoogleAccountSummary | None = None
    ga4_properties: list[GA4PropertyResponse] = Field(default_factory=list)
    google_ads_accounts: list[GoogleAdsAccountResponse] = Field(default_factory=list)
    created_by: uuid.UUID | None
    updated_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class CustomerListQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    search: str | None = None
    status: CustomerStatus | None = None
    company: str | None = None
    tags: list[str] | None = None
    has_google_account: bool | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    sort_by: CustomerSortField = CustomerSortField.CREATED_AT
    sort_order: Literal["asc", "desc"] = "desc"


class CustomerListResponse(BaseModel):
    data: list[CustomerResponse]
    pagination: PaginationMeta
    filters: dict[str, Any]
    sort: dict[str, str]


class CustomerStatusCounts(BaseModel):
    active: int
    inactive: int
    suspended: int


class CustomerStatsResponse(BaseModel):
    tenant_id: uuid.UUID
    total: int
    by_status: CustomerStatusCounts
    with_google_account: int
    without_google_account: int
    recently_created: int
    last_updated: datetime


class TrackingActivity(BaseModel):
    id: uuid.UUID
    name: str
    type: TrackingType
    status: TrackingStatus
    last_error: str | None
    updated_at: datetime


class CustomerAnalyticsResponse(BaseModel):
    customer_id: uuid.UUID
    total_trackings: int
    active_trackings: int
    failed_trackings: int
    sync_rate: int
    total_events: int
    recent_activity: list[TrackingActivity]


class BulkCreateCustomersRequest(BaseModel):
    customers: list[CustomerCreateRequest] = Field(min_length=1, max_length=100)


class BulkUpdateItem(BaseModel):
    id: uuid.UUID
    data: CustomerUpdateRequest


class BulkUpdateCustomersRequest(BaseModel):
    updates: list[BulkUpdateItem] = Field(min_length=1, max_length=100)


class BulkDeleteCustomersRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1, max_length=100)


class BulkOperationResult(BaseModel):
    success: bool
    customer_id: str
    result: CustomerResponse | None = None
    error: str | None = None


class BulkOperationResponse(BaseModel):
    results: list[BulkOperationResult]
    succeeded: int
    failed: int


ConversionCategory = Literal[
    "DEFAULT",
    "PAGE_VIEW",
    "PURCHASE",
    "SIGNUP",
    "DOWNLOAD",
    "ADD_TO_CART",
    "BEGIN_CHECKOUT",
    "SUBSCRIBE_PAID",
    "PHONE_CALL_LEAD",
    "SUBMIT_LEAD_FORM",
    "BOOK_APPOINTMENT",
    "REQUEST_QUOTE",
    "CONTACT",
    "OUTBOUND_CLICK",
    "ENGAGEMENT",
]


class ConversionActionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: ConversionCategory | None = None
    tracking_type: TrackingType | None = None
    status: Literal["PENDING", "ENABLED", "HIDDEN", "REMOVED"] = "PENDING"
    google_conversion_action_id: str | None = Field(default=None, max_length=100)


class ConversionActionResponse(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    name: str
    category: str
    status: str
    google_conversion_action_id: str | None
    created_at: datetime
    updated_at: datetime


class TrackingCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    customer_id: uuid.UUID
    name: str = Field(min_length=1, max_length=255)
    type: TrackingType
    description: str | None = Field(default=None, max_length=1000)
    selector: str | None = Field(default=None, max_length=1000)
    url_pattern: str | None = Field(default=None, max_length=1000)
    selector_config: SelectorConfig | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    destinations: list[TrackingDestination] = Field(min_length=1)
    ga4_event_name: str | None = Field(default=None, max_length=100, pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    ga4_parameters: dict[str, Any] | None = None
    ga4_property_id: str | None = Field(default=None, max_length=100)
    ads_conversion_value: Decimal | None = Field(default=None, ge=0)
    conversion_action_id: uuid.UUID | None = None


class TrackingUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: TrackingType | None = None
    description: str | None = Field(default=None, max_length=1000)
    selector: str | None = Field(default=None, max_length=1000)
    url_pattern: str | None = Field(default=None, max_length=1000)
    selector_config: SelectorConfig | None = None
    config: dict[str, Any] | None = None
    destinations: list[TrackingDestination] | None = Field(default=None, min_length=1)
    ga4_event_name: str | None = Field(default=None, max_length=100, pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    ga4_parameters: dict[str, Any] | None = None
    ga4_property_id: str | None = Field(default=None, max_length=100)
    ads_conversion_value: Decimal | None = Field(default=None, ge=0)
    conversion_action_id: uuid.UUID | None = None


class TrackingStatusUpdateRequest(BaseModel):
    status: Literal[TrackingStatus.PENDING, TrackingStatus.PAUSED, TrackingStatus.ACTIVE]


class TrackingResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    customer_id: uuid.UUID
    name: str
    type: TrackingType
    description: str | None
    status: TrackingStatus
    selector: str | None
    url_pattern: str | None
    selector_config: dict[str, Any] | None
    config: dict[str, Any]
    destinations: list[TrackingDestination]
    ga4_event_name: str | None
    ga4_parameters: dict[str, Any] | None
    ga4_property_id: str | None
    ads_conversion_value: Decimal | None
    conversion_action_id: uuid.UUID | None
    conversion_category: str
    last_error: str | None
    last_sync_at: datetime | None
    sync_attempts: int
    created_at: datetime
    updated_at: datetime


class TrackingListResponse(BaseModel):
    data: list[TrackingResponse]
    pagination: PaginationMeta


class TrackingTypeMetadataResponse(BaseModel):
    type: TrackingType
    label: str
    description: str
    category: TrackingCategory
    icon: str
    required_fields: list[str]
    optional_fields: list[str]
    default_ga4_event_name: str
    supports_value: bool
    conversion_category: str


class EmailTemplateUpsertRequest(BaseModel):
    type: EmailTemplateType
    name: str = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=1, max_length=200)
    html_content: str = Field(min_length=1)
    text_content: str | None = None
    available_variables: dict[str, str] | None = None
    is_active: bool | None = None


class EmailTemplateUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    subject: str | None = Field(default=None, min_length=1, max_length=200)
    html_content: str | None = Field(default=None, min_length=1)
    text_content: str | None = None
    available_variables: dict[str, str] | None = None
    is_active: bool | None = None


class EmailTemplateResponse(BaseModel):
    id: uuid.UUID
    type: EmailTemplateType
    name: str
    subject: str
    html_content: str
    text_content: str | None
    is_active: bool
    available_variables: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class EmailTriggerUpsertRequest(BaseModel):
    action: EmailTriggerAction
    template_type: EmailTemplateType
    is_active: bool = True


class EmailTriggerResponse(BaseModel):
    id: uuid.UUID | None
    action: EmailTriggerAction
    template_type: EmailTemplateType
    is_active: bool
    configured: bool


class EmailLogResponse(BaseModel):
    id: uuid.UUID
    template_type: EmailTemplateType
    recipient: str
    subject: str
    status: EmailStatus
    sent_at: datetime | None
    error_message: str | None
    lead_id: uuid.UUID | None
    created_at: datetime


class EmailLogListResponse(BaseModel):
    data: list[EmailLogResponse]
    pagination: PaginationMeta


class BulkSendRequest(BaseModel):
    template_type: EmailTemplateType
    subject: str | None = Field(default=None, max_length=200)
    test_email: EmailAddress | None = None
    background: bool = False


class BulkSendResponse(BaseModel):
    sent: int = 0
    failed: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)
    test_mode: bool = False
    queued: bool = False
    task_id: str | None = None


class UnsubscribeReasonCount(BaseModel):
    reason: str
    count: int


class BulkSendStatsResponse(BaseModel):
    subscribers_count: int
    total_leads: int
    unsubscribed_count: int
    unsubscribe_reasons: list[UnsubscribeReasonCount]


class CookieConsentCreateRequest(BaseModel):
    tenant_id: uuid.UUID
    anonymous_id: str = Field(min_length=1, max_length=100)
    necessary_cookies: bool = True
    analytics_cookies: bool = False
    marketing_cookies: bool = False


class CookieConsentResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    anonymous_id: str
    necessary_cookies: bool
    analytics_cookies: bool
    marketing_cookies: bool
    consent_given_at: datetime
    expires_at: datetime
    is_expired: bool


class CookieConsentListResponse(BaseModel):
    data: list[CookieConsentResponse]
    pagination: PaginationMeta


class CookieBannerSettings(BaseModel):
    heading_text: str = "We value your privacy"
    body_text: str = "We use cookies to enhance your browsing experience and analyze our traffic."
    accept_all_button_text: str = "Accept All"
    reject_all_button_text: str = "Reject All"
    customize_button_text: str = "Customize"
    save_preferences_text: str = "Save Preferences"
    position: str = "bottom"
    background_color: str = "#ffffff"
    text_color: str = "#000000"
    accept_button_color: str = "#3b82f6"
    reject_button_color: str = "#6b7280"
    customize_button_color: str = "#6b7280"
    consent_expiry_days: int = 365
    show_on_every_page: bool = True
    block_cookies_until_consent: bool = True
    privacy_policy_url: str | None = None
    cookie_policy_url: str | None = None
    is_active: bool = True


class CookieBannerUpdateRequest(BaseModel):
    heading_text: str | None = Field(default=None, min_length=1, max_length=255)
    body_text: str | None = Field(default=None, min_length=1)
    accept_all_button_text: str | None = Field(default=None, min_length=1, max_length=100)
    reject_all_button_text: str | None = Field(default=None, min_length=1, max_length=100)
    customize_button_text: str | None = Field(default=None, min_length=1, max_length=100)
    save_preferences_text: str | None = Field(default=None, min_length=1, max_length=100)
    position: Literal["top", "bottom", "bottom-left", "bottom-right"] | None = None
    background_color: str | None = Field(default=None, max_length=20)
    text_color: str | None = Field(default=None, max_length=20)
    accept_button_color: str | None = Field(default=None, max_length=20)
    reject_button_color: str | None = Field(default=None, max_length=20)
    customize_button_color: str | None = Field(default=None, max_length=20)
    consent_expiry_days: int | None = Field(default=None, ge=1, le=395)
    show_on_every_page: bool | None = None
    block_cookies_until_consent: bool | None = None
    privacy_policy_url: str | None = Field(default=None, max_length=2048)
    cookie_policy_url: str | None = Field(default=None, max_length=2048)
    is_active: bool | None = None


class CookieResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: uuid.UUID
    name: str
    provider: str
    purpose: str
    duration: str
    type: str | None
    created_at: datetime
    updated_at: datetime


class CookieCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category: CookieConsentCategory
    name: str
    description: str
    is_required: bool
    cookies: list[CookieResponse]


class CookieCategoryCreateRequest(BaseModel):
    category: CookieConsentCategory
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    is_required: bool | None = None


class CookieCategoryUpdateRequest(BaseModel):
    category: CookieConsentCategory | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    is_required: bool | None = None


class CookieCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: uuid.UUID
    name: str = Field(min_length=1, max_length=255)
    provider: str = Field(min_length=1, max_length=255)
    purpose: str = Field(min_length=1, max_length=2000)
    duration: str = Field(min_length=1, max_length=100)
    type: str | None = Field(default=None, max_length=50)


class CookieUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    provider: str | None = Field(default=None, min_length=1, max_length=255)
    purpose: str | None = Field(default=None, min_length=1, max_length=2000)
    duration: str | None = Field(default=None, min_length=1, max_length=100)
    type: str | None = Field(default=None, max_length=50)


class CookieBulkDeleteRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1, max_length=100)


class CookieBulkDeleteResponse(BaseModel):
    deleted: int


class PublicCookieBanner(CookieBannerSettings):
    categories: list[CookieCategoryResponse] = Field(default_factory=list)


class LeadSignupRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: EmailAddress
    purpose: str | None = Field(default=None, max_length=255)
    source: str | None = Field(default=None, max_length=100)
    marketing_consent: bool = False


class LeadResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    purpose: str | None
    source: str | None
    marketing_consent: bool
    unsubscribed: bool
    created_at: datetime


class LeadSignupResponse(BaseModel):
    lead: LeadResponse
    created: bool
    email_sent: bool
    email_skipped: bool


class UnsubscribeRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class SiteConfigResponse(BaseModel):
    early_access_mode: bool


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    actor_user_id: uuid.UUID | None
    action: str
    target_type: str
    target_id: str
    metadata_json: dict[str, object]
    created_at: datetime
