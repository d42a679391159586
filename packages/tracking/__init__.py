from packages.tracking.schema import (
    CheckoutStepConfig,
    EcommerceConfig,
    ElementVisibilityConfig,
    FieldError,
    FormConfig,
    GenericConfig,
    ScrollDepthConfig,
    SelectorConfig,
    TimeOnPageConfig,
    TrackingCategory,
    TrackingConfig,
    TrackingDestination,
    TrackingStatus,
    TrackingType,
    VideoConfig,
)
from packages.tracking.taxonomy import (
    GOOGLE_ADS_CONVERSION_CATEGORY,
    TRACKING_TYPE_METADATA,
    TrackingTypeMetadata,
    default_event_name,
    get_metadata,
    google_ads_conversion_category,
    list_metadata,
)
from packages.tracking.validation import normalize_config, parse_config, validate_tracking

__all__ = [
    "GOOGLE_ADS_CONVERSION_CATEGORY",
    "TRACKING_TYPE_METADATA",
    "CheckoutStepConfig",
    "EcommerceConfig",
    "ElementVisibilityConfig",
    "FieldError",
    "FormConfig",
    "GenericConfig",
    "ScrollDepthConfig",
    "SelectorConfig",
    "TimeOnPageConfig",
    "TrackingCategory",
    "TrackingConfig",
    "TrackingDestination",
    "TrackingStatus",
    "TrackingType",
    "TrackingTypeMetadata",
    "VideoConfig",
    "default_event_name",
    "get_metadata",
    "google_ads_conversion_category",
    "list_metadata",
    "normalize_config",
    "parse_config",
    "validate_tracking",
]
