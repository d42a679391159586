from __future__ import annotations

import pytest

from packages.tracking import (
    TRACKING_TYPE_METADATA,
    TrackingCategory,
    TrackingType,
    default_event_name,
    google_ads_conversion_category,
    list_metadata,
    normalize_config,
    validate_tracking,
)


def test_every_tracking_type_has_metadata() -> None:
    assert set(TRACKING_TYPE_METADATA) == set(TrackingType)
    for meta in TRACKING_TYPE_METADATA.values():
        assert meta.default_ga4_event_name
        assert meta.label


def test_list_metadata_by_category() -> None:
    forms = list_metadata(TrackingCategory.FORMS)
    assert {meta.type for meta in forms} == {
        TrackingType.FORM_SUBMIT,
        TrackingType.FORM_START,
        TrackingType.FORM_ABANDON,
    }


def test_default_event_names_and_ads_categories() -> None:
    assert default_event_name(TrackingType.CHECKOUT_START) == "begin_checkout"
    assert default_event_name("SCROLL_DEPTH") == "scroll"
    assert google_ads_conversion_category(TrackingType.DEMO_REQUEST) == "BOOK_APPOINTMENT"
    assert google_ads_conversion_category(TrackingType.BUTTON_CLICK) == "DEFAULT"


@pytest.mark.parametrize(
    ("tracking_type", "kwargs", "expected"),
    [
        (TrackingType.BUTTON_CLICK, {}, ["selector"]),
        (TrackingType.BUTTON_CLICK, {"selector": "   "}, ["selector"]),
        (TrackingType.BUTTON_CLICK, {"selector": "#buy"}, []),
        (TrackingType.PAGE_VIEW, {}, ["urlPattern"]),
        (TrackingType.TIME_ON_PAGE, {"config": {"timeSeconds": 0}}, ["config.timeSeconds"]),
        (TrackingType.TIME_ON_PAGE, {"config": {"timeSeconds": 30}}, []),
        (TrackingType.CUSTOM_EVENT, {"selector": ".x"}, ["ga4EventName"]),
    ],
)
def test_validate_tracking_required_fields(
    tracking_type: TrackingType, kwargs: dict[str, object], expected: list[str]
) -> None:
    errors = validate_tracking(tracking_type, **kwargs)  # type: ignore[arg-type]
    assert [error.field for error in errors] == expected


def test_missing_required_config_reported_once() -> None:
    errors = validate_tracking(TrackingType.SCROLL_DEPTH, config={})
    assert [error.field for error in errors] == ["config.scrollPercentage"]


def test_normalize_config_keeps_unknown_keys() -> None:
    normalized = normalize_config(TrackingType.SCROLL_DEPTH, {"scrollPercentage": 50, "debug": True})
    assert normalized == {"scrollPercentage": 50, "debug": True}
