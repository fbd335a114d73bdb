import httpx
import pytest

from weather_records.services.providers.openweather_client import (
    LocationNotFoundError,
    MissingCredentialsError,
    OpenWeatherClient,
    UpstreamError,
    round_half_up,
)

PARIS_GEO = [{"name": "Paris", "state": "Ile-de-France", "country": "FR", "lat": 48.8566, "lon": 2.3522}]


def forecast_item(day, hour, temp=21.5, feels_like=20.4, visibility=10000):
    return {
        "dt_txt": f"{day} {hour:02d}:00:00",
        "main": {"temp": temp, "feels_like": feels_like, "humidity": 55, "pressure": 1012},
        "wind": {"speed": 4.1, "deg": 250},
        "weather": [{"main": "Rain", "description": "light rain", "icon": "10d"}],
        "visibility": visibility,
        "clouds": {"all": 75},
    }


def forecast_list(count):
    days = ["2024-06-01", "2024-06-02", "2024-06-03", "2024-06-04", "2024-06-05"]
    return [forecast_item(days[i // 8], (i % 8) * 3) for i in range(count)]


def make_client(handler, api_key="key", **kwargs):
    return OpenWeatherClient(api_key=api_key, transport=httpx.MockTransport(handler), **kwargs)


def routes(geo=PARIS_GEO, forecast=None, geo_status=200, forecast_status=200):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/geo/1.0/direct"):
            return httpx.Response(geo_status, json=geo)
        if request.url.path.endswith("/data/2.5/forecast"):
            return httpx.Response(forecast_status, json={"list": forecast if forecast is not None else forecast_list(40)})
        return httpx.Response(404)

    return handler, seen


def test_round_half_up():
    assert round_half_up(20.5) == 21
    assert round_half_up(20.49) == 20
    assert round_half_up(-2.5) == -2
    assert round_half_up(-2.6) == -3


@pytest.mark.asyncio
async def test_resolve_location_formats_address():
    handler, seen = routes()
    details = await make_client(handler).resolve_location("paris")

    assert details.city == "Paris"
    assert details.state == "Ile-de-France"
    assert details.country == "FR"
    assert details.formatted_address == "Paris, Ile-de-France, FR"
    assert details.coordinates.lat == pytest.approx(48.8566)
    assert seen[0].url.params["q"] == "paris"
    assert seen[0].url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_resolve_location_without_key_degrades_to_identity():
    handler, seen = routes()
    details = await make_client(handler, api_key=None).resolve_location("Springfield")

    assert details.model_dump(exclude_none=True) == {
        "city": "Springfield",
        "state": "",
        "country": "Unknown",
        "formatted_address": "Springfield",
    }
    assert seen == []


@pytest.mark.asyncio
async def test_resolve_location_without_key_can_be_strict():
    handler, _ = routes()
    client = make_client(handler, api_key=None, allow_degraded_geocoding=False)

    with pytest.raises(MissingCredentialsError):
        await client.resolve_location("Springfield")


@pytest.mark.asyncio
async def test_resolve_location_degrades_on_upstream_error():
    handler, _ = routes(geo_status=500)
    details = await make_client(handler).resolve_location("Paris")

    assert details.country == "Unknown"
    assert details.coordinates is None


@pytest.mark.asyncio
async def test_fetch_forecast_shapes_samples():
    handler, seen = routes(forecast=[forecast_item("2024-06-01", 9, temp=20.5, feels_like=19.49, visibility=8500)])
    payload = await make_client(handler).fetch_forecast("Paris", days=1)

    assert payload.location == "Paris"
    assert payload.country == "FR"
    assert (payload.coordinates.lat, payload.coordinates.lon) == (48.8566, 2.3522)

    sample = payload.weather_data[0]
    assert (sample.date, sample.time) == ("2024-06-01", "09:00:00")
    assert sample.temperature == 21
    assert sample.feels_like == 19
    assert sample.visibility == pytest.approx(8.5)
    assert sample.weather_main == "Rain"
    assert sample.wind_direction == 250
    assert sample.clouds == 75

    forecast_request = seen[1]
    assert forecast_request.url.params["units"] == "metric"
    assert forecast_request.url.params["lat"] == "48.8566"


@pytest.mark.asyncio
@pytest.mark.parametrize("days, available, expected", [(1, 40, 8), (3, 40, 24), (7, 40, 40), (2, 10, 10)])
async def test_fetch_forecast_caps_sample_count(days, available, expected):
    handler, _ = routes(forecast=forecast_list(available))
    payload = await make_client(handler).fetch_forecast("Paris", days=days)

    assert len(payload.weather_data) == expected


@pytest.mark.asyncio
async def test_fetch_forecast_without_key_fails():
    handler, seen = routes()

    with pytest.raises(MissingCredentialsError):
        await make_client(handler, api_key=None).fetch_forecast("Paris")
    assert seen == []


@pytest.mark.asyncio
async def test_fetch_forecast_unknown_location():
    handler, seen = routes(geo=[])

    with pytest.raises(LocationNotFoundError):
        await make_client(handler).fetch_forecast("Atlantis")
    assert len(seen) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [{"geo_status": 401}, {"forecast_status": 503}, {"forecast": [{"dt_txt": "2024-06-01 00:00:00"}]}],
    ids=["geocode-http-error", "forecast-http-error", "malformed-sample"],
)
async def test_fetch_forecast_upstream_errors(kwargs):
    handler, _ = routes(**kwargs)

    with pytest.raises(UpstreamError):
        await make_client(handler).fetch_forecast("Paris")
