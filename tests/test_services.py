"""Tests for the resource fetchers in backend/services/ against mocked upstreams."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import httpx

from conftest import connect_error, status
from constants import STATION_CODES
from mock_data import RX_STATES
from services.fmi import build_radar_query, get_magnetometer, get_radar_tile, get_textdata
from services.imagery import get_solar_image, resolve_image_source
from services.space_weather import get_kp, get_rx, get_solarwind
from services.upstream import FetchOutcome, UpstreamError
from services.warmup import refresh_all
from services.weather import get_weather, resolve_coords
from time_contract import iso_z


def json_route(payload):
    return lambda request: httpx.Response(200, json=payload)


def text_route(body: str):
    return lambda request: httpx.Response(200, text=body)


PLASMA = [
    {"time_tag": "2024-06-10T06:00:00", "speed": "450.2", "density": "5.12", "source": "DSCOVR"},
    {"time_tag": "2024-06-10T06:01:00", "speed": "451.0", "density": "5.30", "source": "DSCOVR"},
]
MAG = [
    {"time_tag": "2024-06-10T06:00:00", "bt": "6.1", "bz_gsm": "-3.4", "source": "DSCOVR"},
    {"time_tag": "2024-06-10T06:01:00", "bt": None, "bz_gsm": "-3.0", "source": "DSCOVR"},
]
SW_ROUTES = {"rtsw_wind_1m": json_route(PLASMA), "rtsw_mag_1m": json_route(MAG)}


# ─── Solar wind ───

def test_solarwind_live(make_state):
    state, upstream = make_state(SW_ROUTES)
    out = asyncio.run(get_solarwind(state))
    assert out["source"]["status"] == "live"
    assert out["aligned"] is True
    # 06:01 lacks bt, so the snapshot comes from 06:00
    assert out["now"] == {"bz": -3.4, "bt": 6.1, "speed": 450.2, "density": 5.12}
    assert out["updatedAt"] == "2024-06-10T06:00:00.000Z"
    assert out["source"]["satellite"] == "DSCOVR (RTSW)"
    assert len(out["times"]) == 2


def test_solarwind_is_cached_within_ttl(make_state, clock):
    state, upstream = make_state(SW_ROUTES)

    async def run():
        await get_solarwind(state)
        clock.advance(100)
        await get_solarwind(state)
        clock.advance(200)
        await get_solarwind(state)

    asyncio.run(run())
    assert upstream.count("rtsw_wind_1m") == 2
    assert upstream.count("rtsw_mag_1m") == 2


def test_solarwind_falls_back_when_one_feed_fails(make_state):
    state, _ = make_state({"rtsw_wind_1m": json_route(PLASMA), "rtsw_mag_1m": status(503)})
    out = asyncio.run(get_solarwind(state))
    assert out["source"]["status"] == "synthetic"
    assert "UpstreamError" in out["source"]["reason"]
    assert len(out["times"]) == 60
    assert len(out["bz"]) == 60
    assert out["updatedAt"] == iso_z(state.now())
    assert state.degraded_payload() == {"solarwind:solarwind": out["source"]["reason"]}


def test_solarwind_falls_back_on_empty_feeds(make_state):
    state, _ = make_state({"rtsw_wind_1m": json_route([]), "rtsw_mag_1m": json_route([])})
    out = asyncio.run(get_solarwind(state))
    assert out["source"]["status"] == "synthetic"
    assert 250.0 <= out["now"]["speed"]


# ─── Kp / rx ───

KP_ROWS = [["time_tag", "Kp", "a_running", "station_count"]] + [
    [f"2024-06-{day:02d} {hour:02d}:00:00.000", str(1 + (i % 5) * 0.67), "7", "8"]
    for i, (day, hour) in enumerate((d, h) for d in (8, 9) for h in range(0, 24, 3))
]


def test_kp_live_takes_last_eight(make_state):
    state, _ = make_state({"noaa-planetary-k-index": json_route(KP_ROWS)})
    out = asyncio.run(get_kp(state))
    assert out["source"]["status"] == "live"
    assert len(out["values"]) == 8
    assert out["labels"][0] == "09/06 00:00"
    assert out["labels"][-1] == "09/06 21:00"
    assert out["now"] == out["values"][-1]
    assert all(isinstance(v, float) for v in out["values"])


def test_kp_invalid_json_falls_back(make_state):
    state, _ = make_state({"noaa-planetary-k-index": text_route("<html>maintenance</html>")})
    out = asyncio.run(get_kp(state))
    assert out["source"]["status"] == "synthetic"
    assert len(out["values"]) == 8
    assert all(0.0 <= v <= 9.0 for v in out["values"])


def test_rx_is_synthetic(make_state):
    state, upstream = make_state({})
    out = asyncio.run(get_rx(state))
    assert out["now"] in RX_STATES
    assert out["source"]["status"] == "synthetic"
    assert upstream.calls == []


# ─── FMI magnetometer ───

def wfs_body(rows):
    members = "".join(
        "<wfs:member><BsWfs:BsWfsElement>"
        f"<BsWfs:Time>{t}</BsWfs:Time><BsWfs:ParameterName>{p}</BsWfs:ParameterName>"
        f"<BsWfs:ParameterValue>{v}</BsWfs:ParameterValue>"
        "</BsWfs:BsWfsElement></wfs:member>"
        for t, p, v in rows
    )
    return (
        '<wfs:FeatureCollection xmlns:wfs="http://www.opengis.net/wfs/2.0" '
        'xmlns:BsWfs="http://xml.fmi.fi/schema/wfs/2.0">' + members + "</wfs:FeatureCollection>"
    )


def test_magnetometer_live_requests_station(make_state):
    captured = {}

    def wfs(request):
        captured.update(request.url.params)
        now = state.now()
        old = iso_z(now - timedelta(minutes=90))
        recent = iso_z(now - timedelta(minutes=10))
        return httpx.Response(200, text=wfs_body([(old, "BX", "1"), (recent, "BX", "12.5"), (recent, "BZ", "-4")]))

    state, _ = make_state({"opendata.fmi.fi/wfs": wfs})
    out = asyncio.run(get_magnetometer(state, "mas", 30))
    assert captured["fmisid"] == "100008"
    assert captured["storedquery_id"] == "fmi::observations::magnetometer::simple"
    assert out["station"] == "MAS"
    assert out["stationName"] == "Masi"
    assert out["minutes"] == 30
    assert out["source"]["status"] == "live"
    # the 90-minute-old row is outside the window
    assert out["bx"] == [12.5]
    assert out["bz"] == [-4.0]
    assert out["stations"] == list(STATION_CODES)


def test_magnetometer_failure_serves_synthetic_rows(make_state):
    state, _ = make_state({"opendata.fmi.fi/wfs": connect_error})
    out = asyncio.run(get_magnetometer(state, "KEV", 60))
    assert out["source"]["status"] == "synthetic"
    assert len(out["rows"]) == 12
    assert all(r["bz"] is None for r in out["rows"])
    assert out["updatedAt"] == iso_z(state.now())


def test_magnetometer_cache_key_includes_minutes(make_state):
    state, upstream = make_state({"opendata.fmi.fi/wfs": text_route(wfs_body([]))})

    async def run():
        await get_magnetometer(state, "KEV", 60)
        await get_magnetometer(state, "KEV", 60)
        await get_magnetometer(state, "KEV", 120)

    asyncio.run(run())
    assert upstream.count("opendata.fmi.fi/wfs") == 2
    assert "KEV-60" in state.caches["magnetometer"]
    assert "KEV-120" in state.caches["magnetometer"]


# ─── FMI text dump ───

def test_textdata_live(make_state):
    body = "YYYY MM DD HH MM SS X Y Z\n2024 06 10 06 00 00 11000.0 100.0 52000.0\n"
    state, upstream = make_state({"space.fmi.fi": text_route(body)})
    out = asyncio.run(get_textdata(state, "SOD"))
    assert "/SOD/SODdata_24.txt" in str(upstream.calls[0].url)
    assert out["station"] == "SOD"
    assert out["times"] == ["2024-06-10T06:00:00.000Z"]
    assert out["source"]["status"] == "live"


def test_textdata_unavailable(make_state):
    state, _ = make_state({"space.fmi.fi": status(404)})
    out = asyncio.run(get_textdata(state, "KEV"))
    assert out["source"]["status"] == "unavailable"
    assert out["times"] == []
    assert out["minX"] is None


def test_degraded_warning_names_payload_status(make_state, caplog):
    state, _ = make_state({"space.fmi.fi": status(404)})
    tree = logging.getLogger("auroraview")
    tree.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.WARNING, logger="auroraview"):
            asyncio.run(get_textdata(state, "KEV"))
    finally:
        tree.removeHandler(caplog.handler)
    messages = [r.getMessage() for r in caplog.records if r.getMessage().startswith("textdata:KEV")]
    assert messages == ["textdata:KEV serving unavailable data: UpstreamError: HTTP 404"]


def test_fetch_outcome_status():
    assert FetchOutcome({"source": {"status": "live"}}).status == "live"
    assert FetchOutcome({"source": {"status": "unavailable"}}, "down").status == "unavailable"
    assert FetchOutcome({"values": []}, "down").status == "synthetic"
    assert FetchOutcome((b"png", "image/png"), "down").status == "synthetic"


# ─── Weather ───

def test_weather_live(make_state):
    payload = {"current": {"time": "2024-06-10T06:00", "temperature_2m": 14.26, "cloud_cover": 75}}
    captured = {}

    def meteo(request):
        captured.update(request.url.params)
        return httpx.Response(200, json=payload)

    state, _ = make_state({"open-meteo": meteo})
    lat, lon = resolve_coords("61.5", "23.75")
    out = asyncio.run(get_weather(state, lat, lon))
    assert captured["latitude"] == "61.5"
    assert out["temperatureC"] == 14.3
    assert out["cloudCover"] == 75.0
    assert out["updatedAt"] == "2024-06-10T06:00:00.000Z"
    assert out["source"]["status"] == "live"


def test_weather_failure_returns_nulls(make_state):
    state, _ = make_state({"open-meteo": status(500)})
    out = asyncio.run(get_weather(state, 60.0, 25.0))
    assert out["temperatureC"] is None
    assert out["cloudCover"] is None
    assert out["source"]["status"] == "synthetic"


def test_resolve_coords_defaults():
    assert resolve_coords(None, None) == (60.4728, 26.3042)
    assert resolve_coords("95", "10") == (60.4728, 10.0)
    assert resolve_coords("abc", "-200", 1.0, 2.0) == (1.0, 2.0)


# ─── Radar / solar image ───

def test_radar_tile_cached_and_content_type_forced(make_state):
    state, upstream = make_state({"openwms": lambda r: httpx.Response(200, content=b"PNG", headers={"content-type": "text/html"})})
    query = build_radar_query(layers=None, bbox="0,0,100000,100000")

    async def run():
        return await get_radar_tile(state, query), await get_radar_tile(state, query)

    first, second = asyncio.run(run())
    assert first == (b"PNG", "image/png", False)
    assert second == (b"PNG", "image/png", True)
    assert upstream.count("openwms") == 1


def test_radar_upstream_error_is_not_cached(make_state):
    state, _ = make_state({"openwms": status(502)})
    query = build_radar_query(layers=None, bbox="0,0,1,1")

    async def run():
        try:
            await get_radar_tile(state, query)
        except UpstreamError as e:
            return e

    err = asyncio.run(run())
    assert isinstance(err, UpstreamError)
    assert err.status_code == 502
    assert len(state.caches["radar"]) == 0


def test_solar_image_proxy(make_state):
    state, _ = make_state({"soho": lambda r: httpx.Response(200, content=b"JPEG", headers={"content-type": "image/jpeg"})})
    url = resolve_image_source(None)
    assert url.endswith("latest.jpg")
    assert resolve_image_source("elsewhere") is None
    assert asyncio.run(get_solar_image(state, url)) == (b"JPEG", "image/jpeg")


# ─── Warmup ───

def test_refresh_all_populates_caches_despite_failures(make_state):
    state, _ = make_state({"rtsw": connect_error, "noaa-planetary": status(500), "opendata.fmi.fi": connect_error})
    results = asyncio.run(refresh_all(state))
    assert len(results) == 3 + len(STATION_CODES)
    assert set(results.values()) == {"ok"}
    assert "solarwind" in state.caches["solarwind"]
    assert "KEV-60" in state.caches["magnetometer"]
    assert "TAR-60" in state.caches["magnetometer"]
