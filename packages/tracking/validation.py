from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from packages.tracking.schema import FieldError, TrackingConfig, TrackingType
from packages.tracking.taxonomy import get_metadata


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _resolve(path: str, values: dict[str, Any]) -> Any:
    current: Any = values
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def parse_config(tracking_type: TrackingType | str, config: dict[str, Any] | None) -> TrackingConfig:
    metadata = get_metadata(tracking_type)
    return metadata.config_model.model_validate(config or {})


def normalize_config(tracking_type: TrackingType | str, config: dict[str, Any] | None) -> dict[str, Any]:
    return parse_config(tracking_type, config).model_dump(by_alias=True, exclude_none=True)


def validate_tracking(
    tracking_type: TrackingType | str,
    *,
    selector: str | None = None,
    url_pattern: str | None = None,
    config: dict[str, Any] | None = None,
    ga4_event_name: str | None = None,
) -> list[FieldError]:
    """Check a tracking definition against the metadata for its type.

    Returns an empty list when the definition is complete. Required field
    paths are resolved against the top-level fields and ``config``; the
    config itself is then parsed through the type's config model so value
    ranges are enforced too.
    """
    metadata = get_metadata(tracking_type)
    values: dict[str, Any] = {
        "selector": selector,
        "urlPattern": url_pattern,
        "ga4EventName": ga4_event_name,
        "config": config or {},
    }
    errors: list[FieldError] = []
    missing: set[str] = set()
    for path in metadata.required_fields:
        if _is_blank(_resolve(path, values)):
            missing.add(path)
            errors.append(FieldError(field=path, message=f"{path} is required for {metadata.type.value}"))

    try:
        parse_config(metadata.type, config)
    except ValidationError as exc:
        for item in exc.errors():
            path = ".".join(["config", *(str(part) for part in item["loc"])])
            if path in missing:
                continue
            errors.append(FieldError(field=path, message=item["msg"]))
    return errors
