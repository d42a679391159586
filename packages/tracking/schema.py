from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TrackingType(StrEnum):
    BUTTON_CLICK = "BUTTON_CLICK"
    LINK_CLICK = "LINK_CLICK"
    PAGE_VIEW = "PAGE_VIEW"
    ELEMENT_VISIBILITY = "ELEMENT_VISIBILITY"
    FORM_SUBMIT = "FORM_SUBMIT"
    FORM_START = "FORM_START"
    FORM_ABANDON = "FORM_ABANDON"
    ADD_TO_CART = "ADD_TO_CART"
    REMOVE_FROM_CART = "REMOVE_FROM_CART"
    ADD_TO_WISHLIST = "ADD_TO_WISHLIST"
    VIEW_CART = "VIEW_CART"
    CHECKOUT_START = "CHECKOUT_START"
    CHECKOUT_STEP = "CHECKOUT_STEP"
    PURCHASE = "PURCHASE"
    PRODUCT_VIEW = "PRODUCT_VIEW"
    PHONE_CALL_CLICK = "PHONE_CALL_CLICK"
    EMAIL_CLICK = "EMAIL_CLICK"
    DOWNLOAD = "DOWNLOAD"
    DEMO_REQUEST = "DEMO_REQUEST"
    SIGNUP = "SIGNUP"
    SCROLL_DEPTH = "SCROLL_DEPTH"
    TIME_ON_PAGE = "TIME_ON_PAGE"
    VIDEO_PLAY = "VIDEO_PLAY"
    VIDEO_COMPLETE = "VIDEO_COMPLETE"
    SITE_SEARCH = "SITE_SEARCH"
    FILTER_USE = "FILTER_USE"
    TAB_SWITCH = "TAB_SWITCH"
    ACCORDION_EXPAND = "ACCORDION_EXPAND"
    MODAL_OPEN = "MODAL_OPEN"
    SOCIAL_SHARE = "SOCIAL_SHARE"
    SOCIAL_CLICK = "SOCIAL_CLICK"
    PDF_DOWNLOAD = "PDF_DOWNLOAD"
    FILE_DOWNLOAD = "FILE_DOWNLOAD"
    NEWSLETTER_SIGNUP = "NEWSLETTER_SIGNUP"
    CUSTOM_EVENT = "CUSTOM_EVENT"


class TrackingCategory(StrEnum):
    BASIC = "basic"
    FORMS = "forms"
    ECOMMERCE = "ecommerce"
    LEAD_GEN = "lead-gen"
    ENGAGEMENT = "engagement"
    NAVIGATION = "navigation"
    SOCIAL = "social"
    CONTENT = "content"
    CUSTOM = "custom"


class TrackingStatus(StrEnum):
    PENDING = "PENDING"
    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    PAUSED = "PAUSED"
    SYNCING = "SYNCING"


class TrackingDestination(StrEnum):
    GA4 = "GA4"
    GOOGLE_ADS = "GOOGLE_ADS"
    BOTH = "BOTH"


class TrackingConfig(BaseModel):
    """Base for per-type config payloads.

    Keys use the camelCase names stored in ``Tracking.config``. Unknown keys
    are kept so UI-only settings survive a round trip through validation.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class GenericConfig(TrackingConfig):
    pass


class ScrollDepthConfig(TrackingConfig):
    scroll_percentage: int = Field(alias="scrollPercentage", ge=1, le=100)
    fire_once: bool | None = Field(default=None, alias="fireOnce")


class TimeOnPageConfig(TrackingConfig):
    time_seconds: int = Field(alias="timeSeconds", ge=1)
    fire_once: bool | None = Field(default=None, alias="fireOnce")


class VideoConfig(TrackingConfig):
    video_selector: str | None = Field(default=None, alias="videoSelector")
    milestones: list[int] | None = None


class EcommerceConfig(TrackingConfig):
    track_value: bool | None = Field(default=None, alias="trackValue")
    default_value: float | None = Field(default=None, alias="defaultValue", ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    track_product_details: bool | None = Field(default=None, alias="trackProductDetails")


class FormConfig(TrackingConfig):
    form_selector: str | None = Field(default=None, alias="formSelector")
    track_fields: bool | None = Field(default=None, alias="trackFields")
    track_abandonment: bool | None = Field(default=None, alias="trackAbandonment")
    fields_to_track: list[str] | None = Field(default=None, alias="fieldsToTrack")


class CheckoutStepConfig(TrackingConfig):
    step_number: int | None = Field(default=None, alias="stepNumber", ge=1)
    step_name: str | None = Field(default=None, alias="stepName")


class ElementVisibilityConfig(TrackingConfig):
    threshold: float | None = Field(default=None, ge=0, le=1)


class SelectorConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    selector: str
    confidence: float | None = Field(default=None, ge=0, le=1)
    method: str | None = None


class FieldError(BaseModel):
    field: str
    message: str
