import httpx
import pytest

from homelab_dash.services.qbittorrent import format_bytes, format_eta, worth_showing

SESSIONS_URL = "http://localhost:8096/Sessions"
LOGIN_URL = "http://localhost:8080/api/v2/auth/login"
TORRENTS_URL = "http://localhost:8080/api/v2/torrents/info"

MiB = 1024 * 1024


# ----------------- Jellyfin -----------------

def test_jellyfin_not_configured(client, upstream):
    body = client.get("/api/jellyfin").json()
    assert body["success"] is True
    assert body["source"] == "mock"
    assert body["data"] == []
    assert upstream.requests == []


def test_jellyfin_sessions(client, settings, upstream):
    settings.jellyfin_api_key = "jf"
    upstream.on("GET", SESSIONS_URL, json=[
        {"UserName": "sam", "Client": "Web", "PlayState": {"PositionTicks": 250, "IsPaused": False},
         "NowPlayingItem": {"Name": "Pilot", "Type": "Episode", "SeriesName": "Severance",
                            "ParentIndexNumber": 1, "IndexNumber": 1, "RunTimeTicks": 1000}},
        {"UserName": "alex", "Client": "TV", "PlayState": {"IsPaused": True},
         "NowPlayingItem": {"Name": "Dune", "Type": "Movie", "RunTimeTicks": 1000}},
        {"UserName": "idle", "Client": "Phone"},
    ])

    body = client.get("/api/jellyfin").json()

    assert body["source"] == "jellyfin"
    assert len(body["sessions"]) == 2
    episode, movie = body["data"]
    assert episode["title"] == "Severance"
    assert episode["subtitle"] == "S1E1 - Pilot"
    assert episode["progress"] == 25
    assert episode["status"] == "active"
    assert episode["icon"] == "tv"
    assert movie["subtitle"] == "alex"
    assert movie["status"] == "paused"
    assert movie["progress"] == 0
    assert upstream.requests[0].headers["x-jellyfin-token"] == "jf"


# ----------------- qBittorrent -----------------

@pytest.mark.parametrize(
    "size, text",
    [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (MiB, "1 MB"), (5 * 1024 * MiB, "5 GB")],
)
def test_format_bytes(size, text):
    assert format_bytes(size) == text


@pytest.mark.parametrize(
    "seconds, text",
    [(-1, "∞"), (8640000, "∞"), (45, "45s"), (600, "10m"), (7200, "2h"), (200000, "2d")],
)
def test_format_eta(seconds, text):
    assert format_eta(seconds) == text


def test_slow_torrents_hidden_unless_nearly_done():
    assert worth_showing({"dlspeed": 2 * MiB, "progress": 10})
    assert worth_showing({"dlspeed": 0, "progress": 95})
    assert not worth_showing({"dlspeed": 500 * 1024, "progress": 50})


def login_ok(request):
    return httpx.Response(200, text="Ok.", headers={"set-cookie": "SID=abc123; HttpOnly; path=/"})


def torrents(*rows):
    return [
        {"hash": str(i), "name": name, "size": 1, "progress": progress, "dlspeed": speed,
         "upspeed": 0, "state": state, "eta": 600, "category": ""}
        for i, (name, progress, speed, state) in enumerate(rows)
    ]


def test_qbittorrent_torrents(client, settings, upstream, tokens):
    settings.qbit_username, settings.qbit_password = "admin", "pw"
    upstream.on("POST", LOGIN_URL, login_ok)
    upstream.on("GET", TORRENTS_URL, json=torrents(
        ("ubuntu-24.04-desktop-amd64.iso and a very long name", 0.42, 3 * MiB, "downloading"),
        ("slow.mkv", 0.1, 1024, "stalledDL"),
        ("almost.mkv", 0.95, 0, "pausedDL"),
    ))

    body = client.get("/api/qbittorrent").json()

    assert body["success"] is True
    assert body["source"] == "qbittorrent"
    assert body["totalTorrents"] == 3
    assert body["filteredCount"] == 1
    first, second = body["data"]
    assert first["title"] == "ubuntu-24.04-desktop-amd64.iso and a ver..."
    assert first["subtitle"] == "42% · 3 MB/s · ETA: 10m"
    assert second["status"] == "paused"
    assert tokens.qbittorrent.get() == "abc123"
    assert upstream.calls("GET", TORRENTS_URL)[0].headers["cookie"] == "SID=abc123"


def test_qbittorrent_reuses_cached_sid(client, settings, upstream, tokens):
    settings.qbit_username, settings.qbit_password = "admin", "pw"
    tokens.qbittorrent.store("cached")
    upstream.on("GET", TORRENTS_URL, json=[])

    client.get("/api/qbittorrent")
    assert upstream.calls("POST", LOGIN_URL) == []


def test_qbittorrent_bad_credentials(client, settings, upstream):
    settings.qbit_username, settings.qbit_password = "admin", "wrong"
    upstream.on("POST", LOGIN_URL, text="Fails.")

    body = client.get("/api/qbittorrent").json()
    assert body["success"] is False
    assert body["source"] == "mock"
    assert body["error"] == "qBittorrent authentication failed"


def test_qbittorrent_expired_sid_is_dropped(client, settings, upstream, tokens):
    settings.qbit_username, settings.qbit_password = "admin", "pw"
    tokens.qbittorrent.store("stale")
    upstream.on("GET", TORRENTS_URL, status_code=403)

    body = client.get("/api/qbittorrent").json()
    assert body["success"] is False
    assert tokens.qbittorrent.get() is None

    # the next request logs in again
    upstream.on("POST", LOGIN_URL, login_ok)
    upstream.on("GET", TORRENTS_URL, json=[])
    assert client.get("/api/qbittorrent").json()["success"] is True
    assert len(upstream.calls("POST", LOGIN_URL)) == 1
