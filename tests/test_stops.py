from zoneinfo import ZoneInfo

from gps_fixtures import CAFE, DRIFTING, GYM, HOME, HOME_ALL_DAY, OFFICE, ONE_STAY, STILL_AT_CAFE, at, metres_north

from homelab_dash.services import stops as stops_module
from homelab_dash.services.stops import cluster_stops, label_stops, stop_count, summarize_trace
from homelab_dash.utils.geo import haversine_m, total_distance_km

SYDNEY = ZoneInfo("Australia/Sydney")


def test_haversine_known_distance():
    # one degree of latitude on a 6,371 km sphere
    assert abs(haversine_m(0, 0, 1, 0) - 111195) < 1
    assert haversine_m(-33.87, 151.2, -33.87, 151.2) == 0


def test_total_distance_rounds_to_one_decimal():
    assert total_distance_km([]) == 0
    assert total_distance_km(ONE_STAY) == 3.0


def test_total_distance_never_decreases_when_appending():
    previous = 0.0
    for n in range(1, len(ONE_STAY) + 1):
        current = total_distance_km(ONE_STAY[:n])
        assert current >= previous
        previous = current


def test_empty_trace():
    summary = summarize_trace([], SYDNEY, is_today=True)
    assert summary.stops == []
    assert summary.total_distance_km == 0
    assert summary.stop_count == 0
    assert summary.bounds is None
    assert summary.point_count == 0


def test_single_point_gives_start_and_current_at_same_place():
    summary = summarize_trace([at(0, HOME)], SYDNEY, is_today=False)
    assert [s.location for s in summary.stops] == ["START", "END"]
    start, end = summary.stops
    assert (start.lat, start.lon) == (end.lat, end.lon)
    assert end.is_current and not start.is_current
    assert summary.total_distance_km == 0
    assert summary.stop_count == 0


def test_staying_within_radius_emits_no_interior_stop():
    stops = cluster_stops(HOME_ALL_DAY, SYDNEY)
    assert [s.location for s in stops] == ["START"]


def test_one_dwell_between_start_and_current():
    summary = summarize_trace(ONE_STAY, SYDNEY, is_today=True)
    assert [s.location for s in summary.stops] == ["START", "STOP", "NOW"]
    stop = summary.stops[1]
    assert (stop.lat, stop.lon) == (ONE_STAY[1].latitude, ONE_STAY[1].longitude)
    assert stop.time == "11:10"
    assert stop.icon == "pin"
    assert summary.stops[0].icon == "home"
    assert summary.stop_count == 1


def test_last_label_depends_on_today():
    assert summarize_trace(ONE_STAY, SYDNEY, is_today=False).stops[-1].location == "END"
    assert summarize_trace(ONE_STAY, SYDNEY, is_today=True).stops[-1].location == "NOW"


def test_open_cluster_at_end_is_not_promoted():
    stops = cluster_stops(STILL_AT_CAFE, SYDNEY)
    assert [s.location for s in stops] == ["START", "END"]


def test_short_dwell_is_not_a_stop():
    points = [at(0, HOME), at(10, CAFE), at(12, CAFE, 0.0001), at(20, OFFICE)]
    assert stop_count(cluster_stops(points, SYDNEY)) == 0


def test_cluster_measures_from_its_anchor_not_the_previous_point():
    # 60 m steps would chain into a ten minute stay if measured point to point
    assert [s.location for s in cluster_stops(DRIFTING, SYDNEY)] == ["START", "END"]


def test_point_exactly_at_the_radius_closes_the_cluster(monkeypatch):
    points = [at(0, HOME), at(10, CAFE), at(20, CAFE, metres_north(50)), at(30, GYM)]
    edge = haversine_m(points[1].latitude, points[1].longitude, points[2].latitude, points[2].longitude)

    monkeypatch.setattr(stops_module, "STAY_THRESHOLD_M", edge)
    assert [s.location for s in cluster_stops(points, SYDNEY)] == ["START", "END"]

    monkeypatch.setattr(stops_module, "STAY_THRESHOLD_M", edge + 0.01)
    assert [s.location for s in cluster_stops(points, SYDNEY)] == ["START", "STOP", "END"]


def test_unsorted_points_are_sorted_first():
    summary = summarize_trace(list(reversed(ONE_STAY)), SYDNEY, is_today=True)
    assert [s.location for s in summary.stops] == ["START", "STOP", "NOW"]
    assert summary.track[0]["time"] == "2025-03-10T00:00:00Z"


def test_at_most_one_current_stop():
    for trace in (ONE_STAY, STILL_AT_CAFE, HOME_ALL_DAY, [at(0, HOME)]):
        stops = label_stops(cluster_stops(trace, SYDNEY), is_today=True)
        assert sum(1 for s in stops if s.is_current) <= 1


def test_bounds_cover_the_trace():
    bounds = summarize_trace(ONE_STAY, SYDNEY, is_today=True).bounds
    assert bounds["minLat"] == -33.8700
    assert bounds["maxLat"] == -33.8430
    assert bounds["minLon"] == bounds["maxLon"] == 151.2
