from homelab_dash.services.uptime import monitors_from_metrics, normalize_name

STATUS_URL = "http://localhost:3001/api/status-page/homelab"
METRICS_URL = "http://localhost:3001/metrics"

METRICS = """\
# HELP monitor_status Monitor Status (1 = UP, 0= DOWN, 2= PENDING, 3= MAINTENANCE)
monitor_status{monitor_name="jellyfin",monitor_type="http",monitor_url="http://x"} 1
monitor_status{monitor_name="comfyui",monitor_type="http",monitor_url="http://y"} 0
monitor_response_time{monitor_name="jellyfin",monitor_type="http",monitor_url="http://x"} 42.5
"""


def test_normalize_name():
    assert normalize_name("QBIT") == "qBittorrent"
    assert normalize_name("Some New Thing") == "Some New Thing"


def test_monitors_from_metrics():
    monitors = monitors_from_metrics(METRICS)
    assert monitors == [
        {"id": 1, "name": "Jellyfin", "status": True, "uptime": 100, "responseTime": 42.5},
        {"id": 2, "name": "ComfyUI", "status": False, "uptime": 0, "responseTime": 0},
    ]


def test_status_page(client, upstream):
    upstream.on("GET", STATUS_URL, json={
        "publicGroupList": [
            {"name": "Media", "monitorList": [
                {"id": 5, "name": "sonarr", "status": 1, "uptime24": 99.5, "avgPing": 31},
                {"id": 6, "name": "radarr", "status": 0},
            ]},
        ],
    })

    body = client.get("/api/uptime").json()

    assert body["source"] == "uptime-kuma"
    assert body["data"] == [
        {"id": 5, "name": "Sonarr", "status": True, "uptime": 99.5, "responseTime": 31},
        {"id": 6, "name": "Radarr", "status": False, "uptime": 100, "responseTime": 0},
    ]
    assert upstream.calls("GET", METRICS_URL) == []


def test_falls_back_to_metrics(client, upstream):
    upstream.on("GET", STATUS_URL, status_code=404)
    upstream.on("GET", METRICS_URL, text=METRICS)

    body = client.get("/api/uptime").json()
    assert body["source"] == "uptime-kuma"
    assert [m["name"] for m in body["data"]] == ["Jellyfin", "ComfyUI"]


def test_nothing_reachable_serves_mock(client):
    body = client.get("/api/uptime").json()
    assert body["success"] is True
    assert body["source"] == "mock"
    assert len(body["data"]) == 23


def test_monitor_without_name(client, upstream):
    assert normalize_name(None) == ""
    upstream.on("GET", STATUS_URL, json={"publicGroupList": [
        {"monitorList": [{"id": 1, "name": None, "status": 1}, None]},
        "not-a-group",
    ]})

    response = client.get("/api/uptime")
    body = response.json()
    assert response.status_code == 200
    assert body["source"] == "uptime-kuma"
    assert body["data"] == [{"id": 1, "name": "", "status": True, "uptime": 100, "responseTime": 0}]


def test_malformed_status_page_falls_back_to_metrics(client, upstream):
    upstream.on("GET", STATUS_URL, json=[{"monitorList": []}])
    upstream.on("GET", METRICS_URL, text=METRICS)

    response = client.get("/api/uptime")
    assert response.status_code == 200
    assert [m["name"] for m in response.json()["data"]] == ["Jellyfin", "ComfyUI"]
