# homelab_dash/services/stops.py
"""GPS trace -> journey stops."""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Sequence

from ..models import JourneyStop
from ..utils.geo import haversine_m, total_distance_km
from ..utils.timeutils import format_clock, iso_utc

STAY_THRESHOLD_M = 100.0
STAY_THRESHOLD_S = 5 * 60.0


@dataclass(frozen=True)
class GpsPoint:
    """A single location sample."""

    latitude: float
    longitude: float
    timestamp: datetime
    velocity: Optional[float] = None
    altitude: Optional[float] = None
    accuracy: Optional[float] = None
    battery: Optional[float] = None


@dataclass(frozen=True)
class TraceSummary:
    stops: List[JourneyStop]
    total_distance_km: float
    stop_count: int
    track: List[Dict[str, object]]
    bounds: Optional[Dict[str, float]]

    @property
    def point_count(self) -> int:
        return len(self.track)


def _stop(point: GpsPoint, location: str, icon: str, tz: tzinfo, is_current: bool = False) -> JourneyStop:
    return JourneyStop(
        time=format_clock(point.timestamp, tz),
        location=location,
        icon=icon,
        lat=point.latitude,
        lon=point.longitude,
        is_current=is_current,
    )


def cluster_stops(points: Sequence[GpsPoint], tz: tzinfo) -> List[JourneyStop]:
    """
    Cluster a time-sorted trace into START, dwell STOPs and the last position.

    Each cluster keeps a fixed anchor: a point joins while it is within
    STAY_THRESHOLD_M of the anchor, not of the previous point. A cluster that
    closes after STAY_THRESHOLD_S or more becomes a STOP unless it is anchored
    at the first point. The cluster still open when the walk ends is not
    evaluated; the last point is reported as the current stop instead.
    """
    if not points:
        return []

    first = points[0]
    last = points[-1]
    stops = [_stop(first, "START", "home", tz)]

    anchor_idx = 0
    cluster_last = first
    for i in range(1, len(points)):
        point = points[i]
        anchor = points[anchor_idx]
        distance = haversine_m(anchor.latitude, anchor.longitude, point.latitude, point.longitude)
        if distance < STAY_THRESHOLD_M:
            cluster_last = point
            continue

        dwell_s = (cluster_last.timestamp - anchor.timestamp).total_seconds()
        if dwell_s >= STAY_THRESHOLD_S and anchor_idx != 0:
            stops.append(_stop(anchor, "STOP", "pin", tz))

        anchor_idx = i
        cluster_last = point

    dist_from_start = haversine_m(first.latitude, first.longitude, last.latitude, last.longitude)
    if dist_from_start > STAY_THRESHOLD_M or len(points) == 1:
        # relabelled NOW/END by label_stops
        stops.append(_stop(last, "END", "pin", tz, is_current=True))

    return stops


def label_stops(stops: Sequence[JourneyStop], is_today: bool) -> List[JourneyStop]:
    """The current stop reads NOW on today's trace and END otherwise; index 0 is START."""
    labelled = []
    for i, stop in enumerate(stops):
        if stop.is_current:
            labelled.append(stop.model_copy(update={"location": "NOW" if is_today else "END", "icon": "pin"}))
        elif i == 0:
            labelled.append(stop.model_copy(update={"location": "START", "icon": "home"}))
        else:
            labelled.append(stop)
    return labelled


def stop_count(stops: Sequence[JourneyStop]) -> int:
    """Only interior dwell stops count; START and the current stop do not."""
    return sum(1 for s in stops if s.location == "STOP")


def trace_bounds(points: Sequence[GpsPoint]) -> Optional[Dict[str, float]]:
    if not points:
        return None
    lats = [p.latitude for p in points]
    lons = [p.longitude for p in points]
    return {"minLat": min(lats), "maxLat": max(lats), "minLon": min(lons), "maxLon": max(lons)}


def summarize_trace(points: Sequence[GpsPoint], tz: tzinfo, is_today: bool) -> TraceSummary:
    """Sort, cluster, label and measure a trace for the journey widget."""
    pts = sorted(points, key=lambda p: p.timestamp)
    stops = label_stops(cluster_stops(pts, tz), is_today)
    return TraceSummary(
        stops=stops,
        total_distance_km=total_distance_km(pts),
        stop_count=stop_count(stops),
        track=[{"lat": p.latitude, "lon": p.longitude, "time": iso_utc(p.timestamp)} for p in pts],
        bounds=trace_bounds(pts),
    )
