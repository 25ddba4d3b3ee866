import os
import unittest
from unittest.mock import patch

import httpx
import pytest

from ohplus.core.errors import IntegrationError, InvalidInputError
from ohplus.services import proxy, weather


def _http_client(mock_client_cls):
    return mock_client_cls.return_value.__enter__.return_value


ACCU_CURRENT = [
    {
        "WeatherText": "Mostly sunny",
        "WeatherIcon": 2,
        "Temperature": {"Metric": {"Value": 31.4}},
        "RealFeelTemperature": {"Metric": {"Value": 36.6}},
        "RelativeHumidity": 70,
        "Wind": {"Speed": {"Metric": {"Value": 12.2}}, "Direction": {"Localized": "ENE"}},
        "UVIndex": 8,
        "Visibility": {"Metric": {"Value": 16.1}},
        "CloudCover": 20,
        "IsDayTime": True,
        "LocalObservationDateTime": "2024-05-01T10:00:00+08:00",
    }
]

ACCU_DAILY = {
    "DailyForecasts": [
        {
            "Date": "2024-05-01T07:00:00+08:00",
            "Temperature": {"Minimum": {"Value": 26.2}, "Maximum": {"Value": 33.7}},
            "Day": {"Icon": 15, "IconPhrase": "Thunderstorms", "HasPrecipitation": True},
            "Night": {"Icon": 33, "IconPhrase": "Clear", "HasPrecipitation": False},
        }
    ]
}

METEO_CURRENT = {
    "current": {
        "temperature": 30.1,
        "apparent_temperature": 34.0,
        "relative_humidity_2m": 72,
        "wind_speed_10m": 11.0,
        "wind_direction_10m": 90,
        "weather_code": 61,
    },
    "hourly": {"precipitation_probability": [10, 20, None, 30]},
}

METEO_DAILY = {
    "daily": {
        "time": ["2024-05-01", "2024-05-02"],
        "weather_code": [61, 0],
        "temperature_2m_min": [25.0, 26.0],
        "temperature_2m_max": [32.0, 33.0],
        "precipitation_probability_max": [80, None],
        "wind_speed_10m_max": [14.0, 9.0],
    }
}


def _meteo_responses(url, params=None, timeout=8.0):
    return METEO_DAILY if "daily" in params else METEO_CURRENT


@pytest.fixture(autouse=True)
def _clear_weather_caches():
    weather.accuweather_cache.clear()
    weather.forecast_cache.clear()
    yield
    weather.accuweather_cache.clear()
    weather.forecast_cache.clear()


class AccuWeatherTests(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=False)
    def test_missing_key_serves_fallback(self):
        os.environ.pop("ACCUWEATHER_API_KEY", None)
        data = weather.get_philippines_weather("264308")
        self.assertTrue(data["isFallback"])
        self.assertEqual(data["location"], "Cebu City")
        self.assertEqual(len(data["forecast"]), 5)

    @patch.dict(os.environ, {"ACCUWEATHER_API_KEY": "test"})
    @patch("ohplus.services.weather._get_json")
    def test_fetch_maps_accuweather_payload(self, mock_get_json):
        def respond(url, params=None, timeout=8.0):
            if "currentconditions" in url:
                return ACCU_CURRENT
            if "forecasts" in url:
                return ACCU_DAILY
            return [{"AlertID": 7, "Type": "Flood", "Area": {"Name": "Manila"}}]

        mock_get_json.side_effect = respond
        data = weather.get_philippines_weather()
        self.assertFalse(data["isFallback"])
        self.assertEqual(data["current"]["temperature"], 31)
        self.assertEqual(data["current"]["icon"], "cloud-sun")
        self.assertEqual(data["forecast"][0]["dayOfWeek"], "Wednesday")
        self.assertEqual(data["forecast"][0]["temperature"], {"min": 26, "max": 34})
        self.assertEqual(data["forecast"][0]["day"]["icon"], "cloud-lightning")
        self.assertEqual(data["alerts"][0]["area"], "Manila")

        calls = mock_get_json.call_count
        weather.get_philippines_weather()
        self.assertEqual(mock_get_json.call_count, calls)

    @patch.dict(os.environ, {"ACCUWEATHER_API_KEY": "test"})
    @patch("ohplus.services.weather._get_json")
    def test_upstream_failure_serves_fallback(self, mock_get_json):
        mock_get_json.side_effect = IntegrationError("Weather API error: 503")
        data = weather.get_philippines_weather()
        self.assertTrue(data["isFallback"])
        self.assertIn("503", data["current"]["condition"])

    def test_invalid_location(self):
        with self.assertRaises(InvalidInputError):
            weather.get_location("000000")


class GetJsonTests(unittest.TestCase):
    @patch("ohplus.services.weather.httpx.Client")
    def test_rate_limit(self, mock_client_cls):
        _http_client(mock_client_cls).get.return_value = httpx.Response(429)
        with self.assertRaises(weather.RateLimitedError):
            weather._get_json("https://example.test")

    @patch("ohplus.services.weather.httpx.Client")
    def test_non_json_response(self, mock_client_cls):
        _http_client(mock_client_cls).get.return_value = httpx.Response(
            200, text="<html></html>", headers={"content-type": "text/html"}
        )
        with self.assertRaises(IntegrationError):
            weather._get_json("https://example.test")


def test_helpers():
    assert weather.degrees_to_direction(90) == "E"
    assert weather.degrees_to_direction(350) == "N"
    assert weather.degrees_to_direction(None) == "N"
    assert weather.map_weather_code(95) == "cloud-lightning"
    assert weather.map_weather_condition(12345) == "Unknown"
    assert weather.normalize_region("central visayas") == "REGION_VII"
    assert weather.normalize_region("region-iv-a") == "REGION_IV_A"
    assert weather.icon_from_condition("Partly cloudy") == "cloud-sun"
    assert len(weather.get_regions()) == 17


def test_region_forecast(monkeypatch):
    calls = []

    def respond(url, params=None, timeout=8.0):
        calls.append(params)
        return _meteo_responses(url, params)

    monkeypatch.setattr(weather, "_get_json", respond)
    data = weather.get_region_forecast("REGION_VII")
    assert data["location"] == "Central Visayas"
    assert data["rainChance"] == 20
    assert data["windDirection"] == "E"
    assert data["condition"] == "Slight rain"
    assert data["temperature"]["min"] == 25.0
    assert data["forecast"][1]["rainChance"] == 0
    assert data["forecast"][0]["dayOfWeek"] == "Wed"

    weather.get_region_forecast("REGION_VII")
    assert len(calls) == 2


def test_rate_limited_forecast_serves_stale_cache(monkeypatch):
    weather.forecast_cache.set("NCR", {"location": "Metro Manila", "rainChance": 5})
    monkeypatch.setattr(weather.forecast_cache, "ttl", 0)

    def rate_limited(url, params=None, timeout=8.0):
        raise weather.RateLimitedError("Weather API rate limit exceeded")

    monkeypatch.setattr(weather, "_get_json", rate_limited)
    data = weather.get_region_forecast("NCR")
    assert data["rainChance"] == 5
    assert data["warning"] == "Using cached data due to rate limiting"


def test_weather_endpoints(client, api_user, monkeypatch):
    api_user["roles"] = ["logistics"]

    def rate_limited(url, params=None, timeout=8.0):
        raise weather.RateLimitedError("Weather API rate limit exceeded")

    monkeypatch.setattr(weather, "_get_json", rate_limited)
    res = client.get("/api/weather/forecast", params={"region": "NCR"})
    assert res.status_code == 429

    res = client.get("/api/weather/pagasa")
    assert res.status_code == 400

    res = client.get("/api/weather/pagasa", params={"region": "Atlantis"})
    assert res.status_code == 404

    res = client.get("/api/weather/pagasa", params={"region": "NCR"})
    assert res.status_code == 502

    monkeypatch.setattr(weather, "_get_json", _meteo_responses)
    res = client.get("/api/weather/pagasa", params={"region": "Metro Manila"})
    assert res.status_code == 200
    assert res.json()["source"] == "PAGASA (via Open-Meteo)"
    assert res.json()["icon"] == "cloud-rain"

    res = client.get("/api/weather", params={"location": "bogus"})
    assert res.status_code == 400


def test_weather_requires_permission(client):
    assert client.get("/api/weather/regions").status_code == 403


class PlacesEndpointTests(unittest.TestCase):
    @pytest.fixture(autouse=True)
    def _use_client(self, client):
        self.client = client

    @patch.dict(os.environ, {}, clear=False)
    def test_missing_key(self):
        os.environ.pop("GOOGLE_MAPS_API_KEY", None)
        res = self.client.get("/api/places/search", params={"query": "SM Megamall"})
        self.assertEqual(res.status_code, 500)

    @patch.dict(os.environ, {"GOOGLE_MAPS_API_KEY": "test"})
    def test_missing_query(self):
        res = self.client.get("/api/places/search")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"], "Query parameter is required")

    @patch.dict(os.environ, {"GOOGLE_MAPS_API_KEY": "test"})
    @patch("ohplus.services.places.httpx.Client")
    def test_search_ok(self, mock_client_cls):
        http = _http_client(mock_client_cls)
        http.get.return_value = httpx.Response(
            200, json={"status": "OK", "results": [{"name": "SM Megamall"}]}
        )
        res = self.client.get("/api/places/search", params={"query": " SM Megamall "})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"results": [{"name": "SM Megamall"}], "status": "OK"})
        self.assertEqual(http.get.call_args.kwargs["params"]["query"], "SM Megamall")

    @patch.dict(os.environ, {"GOOGLE_MAPS_API_KEY": "test"})
    @patch("ohplus.services.places.httpx.Client")
    def test_denied_status(self, mock_client_cls):
        _http_client(mock_client_cls).get.return_value = httpx.Response(
            200, json={"status": "REQUEST_DENIED"}
        )
        res = self.client.get("/api/places/search", params={"query": "SM"})
        self.assertEqual(res.status_code, 502)


ALGOLIA_ENV = {
    "ALGOLIA_APP_ID": "APP",
    "ALGOLIA_API_KEY": "key",
    "ALGOLIA_INDEX_NAME": "products",
    "ALGOLIA_ASSIGNMENTS_INDEX_NAME": "service_assignments",
}


def test_search_not_configured(client, monkeypatch):
    for name in ALGOLIA_ENV:
        monkeypatch.delenv(name, raising=False)
    res = client.post("/api/search", json={"query": "edsa"})
    assert res.status_code == 500
    assert res.json()["hits"] == []
    assert "Algolia configuration is incomplete" in res.json()["error"]


def test_search_requires_query(client, monkeypatch):
    for name, value in ALGOLIA_ENV.items():
        monkeypatch.setenv(name, value)
    res = client.post("/api/search", json={})
    assert res.status_code == 400
    assert res.json()["nbHits"] == 0


@patch("ohplus.services.search.httpx.Client")
def test_search_assignments_index(mock_client_cls, client, monkeypatch):
    for name, value in ALGOLIA_ENV.items():
        monkeypatch.setenv(name, value)
    http = _http_client(mock_client_cls)
    http.post.return_value = httpx.Response(200, json={"hits": [{"saNumber": "SA-1"}], "nbHits": 1})

    res = client.post(
        "/api/search/service-assignments",
        json={"query": "repair", "filters": "company_id:c1", "page": 2},
    )
    assert res.status_code == 200
    assert res.json()["nbHits"] == 1
    url = http.post.call_args.args[0]
    assert url == "https://APP-dsn.algolia.net/1/indexes/service_assignments/query"
    params = http.post.call_args.kwargs["json"]["params"]
    assert "filters=company_id%3Ac1" in params
    assert "page=2" in params
    assert "hitsPerPage=50" in params


@patch("ohplus.services.search.httpx.Client")
def test_search_upstream_error(mock_client_cls, client, monkeypatch):
    for name, value in ALGOLIA_ENV.items():
        monkeypatch.setenv(name, value)
    _http_client(mock_client_cls).post.return_value = httpx.Response(403, text="Invalid API key")
    res = client.post("/api/search", json={"query": "edsa"})
    assert res.status_code == 403
    assert res.json()["details"] == "Invalid API key"


class ProxyTests(unittest.TestCase):
    def test_validate_url(self):
        with self.assertRaises(InvalidInputError):
            proxy.validate_url(None)
        with self.assertRaises(InvalidInputError):
            proxy.validate_url("ftp://storage.googleapis.com/a.pdf")
        with self.assertRaises(InvalidInputError):
            proxy.validate_url("https://evil.example.com/a.pdf")
        self.assertEqual(
            proxy.validate_url("https%3A%2F%2Fstorage.googleapis.com%2Fb%2Fa.pdf"),
            "https://storage.googleapis.com/b/a.pdf",
        )

    @patch("ohplus.services.proxy.httpx.Client")
    def test_fetch_pdf_names_file(self, mock_client_cls):
        _http_client(mock_client_cls).get.return_value = httpx.Response(200, content=b"%PDF")
        proxied = proxy.fetch_pdf("https://storage.googleapis.com/bucket/Site%20Report.pdf")
        self.assertEqual(proxied.filename, "Site Report.pdf")
        self.assertEqual(proxied.content, b"%PDF")


def _redirecting_transport(location: str, hosts: list):
    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.path == "/b/x.png":
            return httpx.Response(302, headers={"location": location})
        return httpx.Response(200, content=b"SECRET", headers={"content-type": "image/png"})

    return httpx.MockTransport(handler)


def test_redirect_to_other_host_is_not_followed():
    hosts = []
    transport = _redirecting_transport("http://169.254.169.254/latest/meta-data", hosts)
    real_client = httpx.Client
    with patch(
        "ohplus.services.proxy.httpx.Client",
        side_effect=lambda **kwargs: real_client(transport=transport, **kwargs),
    ):
        with pytest.raises(IntegrationError):
            proxy.fetch_image("https://storage.googleapis.com/b/x.png")
    assert hosts == ["storage.googleapis.com"]


def test_redirect_between_storage_hosts_is_followed():
    hosts = []
    transport = _redirecting_transport("https://firebasestorage.googleapis.com/b/y.png", hosts)
    real_client = httpx.Client
    with patch(
        "ohplus.services.proxy.httpx.Client",
        side_effect=lambda **kwargs: real_client(transport=transport, **kwargs),
    ):
        proxied = proxy.fetch_image("https://storage.googleapis.com/b/x.png")
    assert proxied.content == b"SECRET"
    assert hosts == ["storage.googleapis.com", "firebasestorage.googleapis.com"]


@patch("ohplus.services.proxy.httpx.Client")
def test_proxy_endpoints(mock_client_cls, client):
    http = _http_client(mock_client_cls)
    http.get.return_value = httpx.Response(
        200, content=b"\x89PNG", headers={"content-type": "image/png"}
    )
    res = client.get(
        "/api/proxy-image", params={"url": "https://firebasestorage.googleapis.com/v0/b/x/o/a.png"}
    )
    assert res.status_code == 200
    assert res.headers["content-type"] == "image/png"
    assert res.headers["access-control-allow-origin"] == "*"
    assert "User-Agent" in http.get.call_args.kwargs["headers"]

    res = client.get("/api/proxy-pdf", params={"url": "https://evil.example.com/a.pdf"})
    assert res.status_code == 400

    http.get.return_value = httpx.Response(404)
    res = client.get("/api/proxy-pdf", params={"url": "https://storage.googleapis.com/b/a.pdf"})
    assert res.status_code == 502
