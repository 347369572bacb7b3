"""Position fetcher - one provider call per vessel, normalised and audited.

Calls the MyShipTracking position endpoint for a vessel's MMSI and turns the
answer into a PositionFetchResult. Provider trouble (timeouts, non-2xx,
undecodable or unrecognised payloads) comes back as a result with ``error``
set; the only exception that leaves this module is ProviderConfigError for a
missing credential.

Every call is written to provider_audit_logs with the masked URL, response
status, truncated body and authentication status.

Recognised payload shapes:
  GeoJSON      {"features": [{"geometry": {"coordinates": [lon, lat]},
                              "properties": {"SPEED": 11.2}}]}
  v2 envelope  {"status": "success", "data": {"lat": .., "lng": .., "speed": ..}}
  flat record  {"LAT": .., "LNG": .., "SPEED": ..} (any key case)
A missing or empty result set normalises to "not moving, no position".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from seatime.config import settings
from seatime.models.audit_log import ProviderAuditLog
from seatime.models.base import AuthenticationStatusEnum
from seatime.models.vessel import Vessel
from seatime.utils.dates import utcnow

logger = logging.getLogger(__name__)

API_SOURCE = "myshiptracking"

_LAT_KEYS = ("lat", "latitude")
_LON_KEYS = ("lng", "lon", "longitude")
_SPEED_KEYS = ("speed", "sog", "speed_knots")


class ProviderConfigError(ValueError):
    """The provider cannot be called at all (e.g. no credential)."""


@dataclass
class PositionFetchResult:
    is_moving: bool = False
    speed_knots: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, message: str) -> "PositionFetchResult":
        return cls(error=message)


def mask_api_key(key: str | None) -> str:
    """Keep only a short prefix of the credential for logs and audit rows."""
    if not key or len(key) < 10:
        return "***"
    return key[:4] + "***"


# ── Payload normalisation ────────────────────────────────────────────────────


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _pick(record: dict, keys: tuple[str, ...]) -> Any:
    """Case-insensitive lookup of the first present key."""
    lowered = {str(k).lower(): v for k, v in record.items()}
    for key in keys:
        if key in lowered:
            return lowered[key]
    return None


def _build_result(
    lat: Any, lon: Any, speed: Any, speed_threshold: float
) -> PositionFetchResult:
    latitude = _to_float(lat)
    longitude = _to_float(lon)
    if (
        latitude is None
        or longitude is None
        or not (-90 <= latitude <= 90)
        or not (-180 <= longitude <= 180)
    ):
        latitude = longitude = None
    speed_knots = _to_float(speed)
    is_moving = speed_knots is not None and speed_knots > speed_threshold
    return PositionFetchResult(
        is_moving=is_moving,
        speed_knots=speed_knots,
        latitude=latitude,
        longitude=longitude,
    )


def _from_feature(feature: Any, speed_threshold: float) -> PositionFetchResult:
    if not isinstance(feature, dict):
        raise ValueError("Unrecognised provider response shape")
    geometry = feature.get("geometry") or {}
    props = feature.get("properties") or {}
    if not isinstance(geometry, dict) or not isinstance(props, dict):
        raise ValueError("Unrecognised provider response shape")
    coords = geometry.get("coordinates") or []
    if not isinstance(coords, (list, tuple)):
        raise ValueError("Unrecognised provider response shape")
    lon = coords[0] if len(coords) > 0 else None
    lat = coords[1] if len(coords) > 1 else None
    return _build_result(lat, lon, _pick(props, _SPEED_KEYS), speed_threshold)


def normalize_provider_payload(
    payload: Any, speed_threshold: float | None = None
) -> PositionFetchResult:
    """Map any recognised provider payload to a PositionFetchResult.

    Raises ValueError for error envelopes and unrecognised shapes.
    """
    if speed_threshold is None:
        speed_threshold = settings.MOVING_SPEED_THRESHOLD_KN

    if payload is None:
        return PositionFetchResult()

    if isinstance(payload, list):
        if not payload:
            return PositionFetchResult()
        return normalize_provider_payload(payload[0], speed_threshold)

    if not isinstance(payload, dict):
        raise ValueError(f"Unrecognised provider payload type: {type(payload).__name__}")

    if str(payload.get("status", "")).lower() == "error":
        raise ValueError(f"Provider error: {payload.get('message') or payload.get('error') or 'unknown'}")

    if "features" in payload:
        features = payload.get("features") or []
        if not isinstance(features, (list, tuple)):
            raise ValueError("Unrecognised provider response shape")
        if not features:
            return PositionFetchResult()
        return _from_feature(features[0], speed_threshold)

    if "data" in payload:
        return normalize_provider_payload(payload.get("data"), speed_threshold)

    if not payload:
        return PositionFetchResult()

    lat = _pick(payload, _LAT_KEYS)
    lon = _pick(payload, _LON_KEYS)
    speed = _pick(payload, _SPEED_KEYS)
    if lat is None and lon is None and speed is None:
        raise ValueError("Unrecognised provider response shape")
    return _build_result(lat, lon, speed, speed_threshold)


# ── Audit trail ──────────────────────────────────────────────────────────────


def _record_audit(
    db: Session,
    vessel: Vessel,
    *,
    api_url: str,
    request_time: datetime,
    response_status: str,
    response_body: Optional[str],
    authentication_status: str,
    error_message: Optional[str],
) -> None:
    """Persist one provider call. Committed on its own so it survives later rollbacks."""
    if response_body is not None:
        response_body = response_body[: settings.AUDIT_BODY_MAX_CHARS]
    log = ProviderAuditLog(
        vessel_id=vessel.vessel_id,
        mmsi=vessel.mmsi,
        api_url=api_url[:500],
        request_time=request_time,
        response_status=response_status,
        response_body=response_body,
        authentication_status=authentication_status,
        error_message=error_message,
        api_source=API_SOURCE,
    )
    try:
        db.add(log)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to write provider audit log for vessel %s (MMSI: %s)",
            vessel.vessel_id, vessel.mmsi,
        )


# ── Fetch ────────────────────────────────────────────────────────────────────


def fetch_vessel_position(
    db: Session,
    vessel: Vessel,
    *,
    api_key: str | None = None,
    client: httpx.Client | None = None,
    timeout: float | None = None,
    speed_threshold: float | None = None,
) -> PositionFetchResult:
    """Fetch and normalise the current position of *vessel*.

    Args:
        db: Session used for the audit row.
        vessel: Vessel whose MMSI is queried.
        api_key: Provider credential; defaults to MYSHIPTRACKING_API_KEY.
        client: Optional pre-built httpx.Client (tests inject a MockTransport).
        timeout: Request timeout in seconds; defaults to AIS_FETCH_TIMEOUT.
        speed_threshold: Knots above which the vessel counts as moving.

    Raises:
        ProviderConfigError: No credential configured.
    """
    key = api_key or settings.MYSHIPTRACKING_API_KEY
    if not key:
        raise ProviderConfigError(
            "MYSHIPTRACKING_API_KEY not configured. Position polling is disabled."
        )
    if timeout is None:
        timeout = settings.AIS_FETCH_TIMEOUT

    url = settings.AIS_PROVIDER_URL.format(api_key=key, mmsi=vessel.mmsi)
    masked_url = url.replace(key, mask_api_key(key))
    request_time = utcnow()

    response_status = "error"
    response_body: Optional[str] = None
    auth_status = AuthenticationStatusEnum.AUTHENTICATED.value

    try:
        if client is None:
            with httpx.Client(timeout=timeout, follow_redirects=True) as own_client:
                resp = own_client.get(url)
        else:
            resp = client.get(url, timeout=timeout)
    except httpx.TimeoutException:
        response_status = "timeout"
        result = PositionFetchResult.failed(f"Provider request timed out after {timeout}s")
    except httpx.HTTPError as exc:
        result = PositionFetchResult.failed(f"{type(exc).__name__}: {exc}")
    else:
        response_status = str(resp.status_code)
        response_body = resp.text
        if resp.status_code in (401, 403):
            auth_status = AuthenticationStatusEnum.REJECTED.value
        if resp.is_success:
            try:
                result = normalize_provider_payload(resp.json(), speed_threshold)
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                # json.JSONDecodeError is a ValueError too
                result = PositionFetchResult.failed(f"Malformed provider response: {exc}")
        else:
            result = PositionFetchResult.failed(f"HTTP {resp.status_code}")

    _record_audit(
        db,
        vessel,
        api_url=masked_url,
        request_time=request_time,
        response_status=response_status,
        response_body=response_body,
        authentication_status=auth_status,
        error_message=result.error,
    )

    if result.ok:
        logger.info(
            "Provider position for %s (MMSI: %s): moving=%s speed=%s lat=%s lon=%s",
            vessel.name, vessel.mmsi, result.is_moving, result.speed_knots,
            result.latitude, result.longitude,
        )
    else:
        logger.warning(
            "Provider fetch failed for %s (MMSI: %s) via %s: %s",
            vessel.name, vessel.mmsi, masked_url, result.error,
        )
    return result
