from __future__ import annotations

from dataclasses import dataclass

from packages.tracking.schema import (
    CheckoutStepConfig,
    EcommerceConfig,
    ElementVisibilityConfig,
    FormConfig,
    GenericConfig,
    ScrollDepthConfig,
    TimeOnPageConfig,
    TrackingCategory,
    TrackingConfig,
    TrackingType,
    VideoConfig,
)


@dataclass(frozen=True)
class TrackingTypeMetadata:
    type: TrackingType
    label: str
    description: str
    category: TrackingCategory
    icon: str
    required_fields: tuple[str, ...]
    optional_fields: tuple[str, ...]
    default_ga4_event_name: str
    supports_value: bool
    config_model: type[TrackingConfig] = GenericConfig


_T = TrackingType
_C = TrackingCategory
_SELECTOR = ("selector",)
_URL = ("urlPattern",)

TRACKING_TYPE_METADATA: dict[TrackingType, TrackingTypeMetadata] = {
    meta.type: meta
    for meta in (
        TrackingTypeMetadata(_T.BUTTON_CLICK, "Button Click", "Track when a button is clicked", _C.BASIC, "MousePointer", _SELECTOR, (), "button_click", False),
        TrackingTypeMetadata(_T.LINK_CLICK, "Link Click", "Track when a link is clicked", _C.BASIC, "Link", _SELECTOR, (), "link_click", False),
        TrackingTypeMetadata(_T.PAGE_VIEW, "Page View", "Track specific page views by URL pattern", _C.BASIC, "FileText", _URL, (), "page_view", False),
        TrackingTypeMetadata(
            _T.ELEMENT_VISIBILITY, "Element Visibility", "Track when an element becomes visible", _C.BASIC, "Eye",
            _SELECTOR, ("config.threshold",), "element_visible", False, ElementVisibilityConfig,
        ),
        TrackingTypeMetadata(
            _T.FORM_SUBMIT, "Form Submission", "Track form submissions", _C.FORMS, "CheckSquare",
            _SELECTOR, ("config.trackFields", "config.fieldsToTrack"), "form_submit", True, FormConfig,
        ),
        TrackingTypeMetadata(
            _T.FORM_START, "Form Start", "Track when a user starts filling a form", _C.FORMS, "Edit",
            _SELECTOR, ("config.formSelector",), "form_start", False, FormConfig,
        ),
        TrackingTypeMetadata(
            _T.FORM_ABANDON, "Form Abandonment", "Track form abandonment", _C.FORMS, "XCircle",
            _SELECTOR, ("config.trackAbandonment",), "form_abandon", False, FormConfig,
        ),
        TrackingTypeMetadata(
            _T.ADD_TO_CART, "Add to Cart", "Track when products are added to cart", _C.ECOMMERCE, "ShoppingCart",
            _SELECTOR, ("config.trackValue", "config.trackProductDetails"), "add_to_cart", True, EcommerceConfig,
        ),
        TrackingTypeMetadata(_T.REMOVE_FROM_CART, "Remove from Cart", "Track cart removals", _C.ECOMMERCE, "Trash", _SELECTOR, (), "remove_from_cart", False, EcommerceConfig),
        TrackingTypeMetadata(
            _T.ADD_TO_WISHLIST, "Add to Wishlist", "Track wishlist additions", _C.ECOMMERCE, "Heart",
            _SELECTOR, ("config.trackProductDetails",), "add_to_wishlist", False, EcommerceConfig,
        ),
        TrackingTypeMetadata(_T.VIEW_CART, "View Cart", "Track cart page views", _C.ECOMMERCE, "ShoppingBag", _URL, (), "view_cart", False, EcommerceConfig),
        TrackingTypeMetadata(_T.CHECKOUT_START, "Checkout Started", "Track checkout initiation", _C.ECOMMERCE, "ShoppingCart", _SELECTOR, (), "begin_checkout", True, EcommerceConfig),
        TrackingTypeMetadata(
            _T.CHECKOUT_STEP, "Checkout Step", "Track checkout progress", _C.ECOMMERCE, "List",
            _SELECTOR, ("config.stepNumber", "config.stepName"), "checkout_progress", False, CheckoutStepConfig,
        ),
        TrackingTypeMetadata(
            _T.PURCHASE, "Purchase Complete", "Track completed purchases", _C.ECOMMERCE, "CreditCard",
            _URL, ("config.trackValue", "config.currency"), "purchase", True, EcommerceConfig,
        ),
        TrackingTypeMetadata(
            _T.PRODUCT_VIEW, "Product View", "Track product page views", _C.ECOMMERCE, "Package",
            _URL, ("config.trackProductDetails",), "view_item", False, EcommerceConfig,
        ),
        TrackingTypeMetadata(_T.PHONE_CALL_CLICK, "Phone Call Click", "Track clicks on phone numbers", _C.LEAD_GEN, "Phone", _SELECTOR, (), "phone_call_click", True),
        TrackingTypeMetadata(_T.EMAIL_CLICK, "Email Click", "Track clicks on email links", _C.LEAD_GEN, "Mail", _SELECTOR, (), "email_click", True),
        TrackingTypeMetadata(_T.DOWNLOAD, "File Download", "Track file downloads", _C.LEAD_GEN, "Download", _SELECTOR, (), "file_download", False),
        TrackingTypeMetadata(_T.DEMO_REQUEST, "Demo Request", "Track demo requests", _C.LEAD_GEN, "Video", _SELECTOR, (), "request_demo", True),
        TrackingTypeMetadata(_T.SIGNUP, "Sign Up", "Track user registrations", _C.LEAD_GEN, "UserPlus", _SELECTOR, (), "sign_up", True),
        TrackingTypeMetadata(
            _T.SCROLL_DEPTH, "Scroll Depth", "Track page scroll percentage", _C.ENGAGEMENT, "ArrowDown",
            ("config.scrollPercentage",), ("urlPattern", "config.fireOnce"), "scroll", False, ScrollDepthConfig,
        ),
        TrackingTypeMetadata(
            _T.TIME_ON_PAGE, "Time on Page", "Track time spent on page", _C.ENGAGEMENT, "Clock",
            ("config.timeSeconds",), ("urlPattern", "config.fireOnce"), "time_on_page", False, TimeOnPageConfig,
        ),
        TrackingTypeMetadata(
            _T.VIDEO_PLAY, "Video Play", "Track video plays", _C.ENGAGEMENT, "Play",
            _SELECTOR, ("config.milestones",), "video_start", False, VideoConfig,
        ),
        TrackingTypeMetadata(_T.VIDEO_COMPLETE, "Video Complete", "Track video completions", _C.ENGAGEMENT, "CheckCircle", _SELECTOR, (), "video_complete", False, VideoConfig),
        TrackingTypeMetadata(_T.SITE_SEARCH, "Site Search", "Track site search queries", _C.NAVIGATION, "Search", _SELECTOR, (), "search", False),
        TrackingTypeMetadata(_T.FILTER_USE, "Filter Used", "Track filter usage", _C.NAVIGATION, "Filter", _SELECTOR, (), "filter_use", False),
        TrackingTypeMetadata(_T.TAB_SWITCH, "Tab Switch", "Track tab switching", _C.NAVIGATION, "Layers", _SELECTOR, (), "tab_switch", False),
        TrackingTypeMetadata(_T.ACCORDION_EXPAND, "Accordion Expand", "Track accordion expansions", _C.NAVIGATION, "ChevronDown", _SELECTOR, (), "accordion_expand", False),
        TrackingTypeMetadata(_T.MODAL_OPEN, "Modal Open", "Track modal opens", _C.NAVIGATION, "Maximize", _SELECTOR, (), "modal_open", False),
        TrackingTypeMetadata(_T.SOCIAL_SHARE, "Social Share", "Track social media shares", _C.SOCIAL, "Share2", _SELECTOR, (), "share", False),
        TrackingTypeMetadata(_T.SOCIAL_CLICK, "Social Link Click", "Track social media clicks", _C.SOCIAL, "Users", _SELECTOR, (), "social_click", False),
        TrackingTypeMetadata(_T.PDF_DOWNLOAD, "PDF Download", "Track PDF downloads", _C.CONTENT, "FileText", _SELECTOR, (), "pdf_download", False),
        TrackingTypeMetadata(_T.FILE_DOWNLOAD, "File Download", "Track file downloads", _C.CONTENT, "Download", _SELECTOR, (), "file_download", False),
        TrackingTypeMetadata(_T.NEWSLETTER_SIGNUP, "Newsletter Signup", "Track newsletter subscriptions", _C.CONTENT, "Mail", _SELECTOR, (), "newsletter_signup", False),
        TrackingTypeMetadata(
            _T.CUSTOM_EVENT, "Custom Event", "Track custom events", _C.CUSTOM, "Code",
            ("selector", "ga4EventName"), ("ga4Parameters",), "custom_event", True,
        ),
    )
}

GOOGLE_ADS_CONVERSION_CATEGORY: dict[TrackingType, str] = {
    _T.PAGE_VIEW: "PAGE_VIEW",
    _T.PRODUCT_VIEW: "PAGE_VIEW",
    _T.FORM_SUBMIT: "SUBMIT_LEAD_FORM",
    _T.ADD_TO_CART: "ADD_TO_CART",
    _T.REMOVE_FROM_CART: "ADD_TO_CART",
    _T.ADD_TO_WISHLIST: "ADD_TO_CART",
    _T.VIEW_CART: "ADD_TO_CART",
    _T.CHECKOUT_START: "BEGIN_CHECKOUT",
    _T.CHECKOUT_STEP: "BEGIN_CHECKOUT",
    _T.PURCHASE: "PURCHASE",
    _T.EMAIL_CLICK: "CONTACT",
    _T.DEMO_REQUEST: "BOOK_APPOINTMENT",
    _T.SIGNUP: "SIGNUP",
    _T.NEWSLETTER_SIGNUP: "SIGNUP",
}


def get_metadata(tracking_type: TrackingType | str) -> TrackingTypeMetadata:
    return TRACKING_TYPE_METADATA[TrackingType(tracking_type)]


def list_metadata(category: TrackingCategory | str | None = None) -> list[TrackingTypeMetadata]:
    if category is None:
        return list(TRACKING_TYPE_METADATA.values())
    wanted = TrackingCategory(category)
    return [meta for meta in TRACKING_TYPE_METADATA.values() if meta.category == wanted]


def default_event_name(tracking_type: TrackingType | str) -> str:
    return get_metadata(tracking_type).default_ga4_event_name


def google_ads_conversion_category(tracking_type: TrackingType | str) -> str:
    return GOOGLE_ADS_CONVERSION_CATEGORY.get(TrackingType(tracking_type), "DEFAULT")
