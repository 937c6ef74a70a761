import math
import threading

import httpx
import pytest

from multistop.errors import RoutingProviderError, ValidationError
from multistop.persistence.filesystem import FileStorage
from multistop.schemas.routing import PlanningRequest
from multistop.services.routing import service as routing_service
from multistop.services.routing.models import CostMatrix
from multistop.services.routing.osrm_client import OSRMClient


class PlanarProvider:
    """Treats lat/lng as planar kilometres so expected totals are exact."""

    def __init__(self, missing=(), error=None):
        self.calls = 0
        self.missing = set(missing)
        self.error = error

    def table(self, locations, *, mode="driving", avoid_tolls=False, avoid_highways=False):
        self.calls += 1
        if self.error is not None:
            raise self.error
        distances = [
            [math.dist(a.as_tuple(), b.as_tuple()) * 1000 for b in locations] for a in locations
        ]
        durations = [[value / 10 for value in row] for row in distances]
        for i, j in self.missing:
            distances[i][j] = None
            durations[i][j] = None
        return CostMatrix(distances=distances, durations=durations)


@pytest.fixture(autouse=True)
def _no_default_provider(monkeypatch):
    monkeypatch.setattr(routing_service, "_default_provider", lambda: None)


def _request(points, **options) -> PlanningRequest:
    stops = [
        {"id": f"S{i}", "name": f"Stop {i}", "location": {"lat": lat, "lng": lng}}
        for i, (lat, lng) in enumerate(points)
    ]
    persist = options.pop("persist", False)
    return PlanningRequest(stops=stops, options=options, persist=persist)


SQUARE = [(0.0, 0.0), (1.0, 1.0), (0.0, 1.0), (1.0, 0.0)]


def test_too_many_stops_fail_before_matrix_lookup():
    provider = PlanarProvider()
    with pytest.raises(ValidationError):
        routing_service.plan_route(_request([(i * 0.01, 0.0) for i in range(12)]), provider=provider)
    assert provider.calls == 0


def test_round_trip_square():
    result = routing_service.plan_route(_request(SQUARE, round_trip=True), provider=PlanarProvider())

    assert result.matrix_source == "provider"
    assert result.algorithm == "hybrid"
    assert result.optimal is True
    assert result.total_distance_km == pytest.approx(4.0)
    assert result.stops[0].stop_id == "S0"
    assert sorted(stop.stop_id for stop in result.stops) == ["S0", "S1", "S2", "S3"]
    assert result.warnings == []


def test_one_way_keeps_endpoints():
    points = [(0.0, 0.0), (3.0, 0.0), (1.0, 0.0), (2.0, 0.0), (4.0, 0.0)]
    result = routing_service.plan_route(_request(points), provider=PlanarProvider())

    assert [stop.stop_id for stop in result.stops] == ["S0", "S2", "S3", "S1", "S4"]
    assert result.total_distance_km == pytest.approx(4.0)


def test_partial_matrix_is_backfilled():
    provider = PlanarProvider(missing=[(0, 2), (3, 1)])
    result = routing_service.plan_route(_request(SQUARE, round_trip=True), provider=provider)

    assert result.matrix_source == "partial"
    assert len(result.stops) == 4
    assert any("could not be routed" in warning for warning in result.warnings)


def test_provider_failure_falls_back_to_haversine():
    provider = PlanarProvider(error=RoutingProviderError("table service down"))
    result = routing_service.plan_route(_request([(21.5, 39.2), (21.6, 39.3), (21.55, 39.1)]), provider=provider)

    assert result.matrix_source == "fallback"
    assert len(result.stops) == 3
    assert any("table service down" in warning for warning in result.warnings)


def test_no_provider_uses_fallback():
    result = routing_service.plan_route(_request([(21.5, 39.2), (21.6, 39.3)]))

    assert result.matrix_source == "fallback"
    assert [stop.stop_id for stop in result.stops] == ["S0", "S1"]


def test_unresolved_stops_are_excluded():
    payload = PlanningRequest(
        stops=[
            {"id": "A", "name": "Depot", "location": {"lat": 0.0, "lng": 0.0}},
            {"id": "B", "name": "Unknown", "address": "somewhere"},
            {"id": "C", "name": "Shop", "location": {"lat": 0.0, "lng": 1.0}},
        ]
    )
    result = routing_service.plan_route(payload, provider=PlanarProvider())

    assert result.excluded_stop_ids == ["B"]
    assert [stop.stop_id for stop in result.stops] == ["A", "C"]


def test_time_windows_reorder_and_report():
    payload = PlanningRequest(
        stops=[
            {"id": "A", "name": "Depot", "location": {"lat": 0.0, "lng": 0.0}},
            {"id": "B", "name": "Near", "location": {"lat": 0.0, "lng": 1.0}, "time_window": {"earliest": "11:00", "latest": "12:00"}},
            {"id": "C", "name": "Far", "location": {"lat": 0.0, "lng": 2.0}, "time_window": {"earliest": "9:30", "latest": "10:00"}},
        ],
        options={"round_trip": True},
    )
    result = routing_service.plan_route(payload, provider=PlanarProvider())

    assert [stop.stop_id for stop in result.stops] == ["A", "C", "B"]
    assert any("time windows" in warning for warning in result.warnings)


def test_cancelled_annealing_still_returns_route():
    cancel = threading.Event()
    cancel.set()
    points = [(math.cos(k), math.sin(k)) for k in range(10)]
    result = routing_service.plan_route(
        _request(points, algorithm="simulated_annealing", seed=1),
        provider=PlanarProvider(),
        cancel_event=cancel,
    )

    assert result.optimal is False
    assert len(result.stops) == 10
    assert result.warnings


def test_persist_writes_outputs(tmp_path):
    storage = FileStorage(root=tmp_path)
    payload = _request(SQUARE, round_trip=True, persist=True)
    result = routing_service.plan_route(payload, provider=PlanarProvider(), storage=storage)

    assert result.route_id is not None
    run_dir = tmp_path / "outputs" / result.route_id
    assert (run_dir / "route.json").exists()
    assert (run_dir / "stops.csv").exists()


class BrokenStorage(FileStorage):
    def make_run_directory(self, prefix: str = "route"):
        raise OSError("disk full")


def test_persistence_failure_is_reported_as_warning(tmp_path):
    payload = _request(SQUARE, persist=True)
    result = routing_service.plan_route(payload, provider=PlanarProvider(), storage=BrokenStorage(root=tmp_path))

    assert result.route_id is None
    assert len(result.stops) == 4
    assert any("could not be saved" in warning for warning in result.warnings)


def test_street_geometry_without_route_support_warns():
    result = routing_service.plan_route(_request(SQUARE, street_geometry=True), provider=PlanarProvider())

    assert len(result.geometry) == 4
    assert any("Street geometry unavailable" in warning for warning in result.warnings)


def _osrm(monkeypatch, table_body, route_body=None) -> OSRMClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/route/"):
            return httpx.Response(200, json=route_body)
        return httpx.Response(200, json=table_body)

    client = OSRMClient(base_url="http://osrm.test", max_retries=0, backoff_seconds=0.0)
    monkeypatch.setattr(client, "_get_client", lambda: httpx.Client(transport=httpx.MockTransport(handler)))
    return client


@pytest.mark.parametrize(
    "table_body",
    [
        [],
        {"code": "Ok", "durations": None, "distances": None},
        {"code": "Ok", "durations": [[0, "x", 1], [1, 0, 1], [1, 1, 0]], "distances": [[0, 1, 1], [1, 0, 1], [1, 1, 0]]},
    ],
)
def test_garbled_osrm_table_falls_back_to_estimates(monkeypatch, table_body):
    provider = _osrm(monkeypatch, table_body)
    result = routing_service.plan_route(_request([(21.5, 39.2), (21.6, 39.3), (21.55, 39.1)]), provider=provider)

    assert result.matrix_source == "fallback"
    assert len(result.stops) == 3


def test_garbled_osrm_geometry_falls_back_to_straight_lines(monkeypatch):
    table = {
        "code": "Ok",
        "durations": [[0, 600, 900], [600, 0, 300], [900, 300, 0]],
        "distances": [[0, 5000, 8000], [5000, 0, 3000], [8000, 3000, 0]],
    }
    route = {"code": "Ok", "routes": [{"geometry": "_p~iF~ps|U_"}]}
    provider = _osrm(monkeypatch, table, route)

    result = routing_service.plan_route(
        _request([(21.5, 39.2), (21.6, 39.3), (21.55, 39.1)], street_geometry=True), provider=provider
    )

    assert result.matrix_source == "provider"
    assert result.geometry == [(stop.lat, stop.lng) for stop in result.stops]
    assert any("Street geometry unavailable" in warning for warning in result.warnings)


def test_request_carries_only_planning_fields():
    payload = PlanningRequest(stops=[{"id": "A", "name": "Depot"}], requested_by="dispatcher", label="Tuesday")

    assert set(PlanningRequest.model_fields) == {"stops", "options", "persist", "label"}
    assert "requested_by" not in payload.model_dump()
