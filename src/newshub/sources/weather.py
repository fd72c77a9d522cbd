from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import HTTP_TIMEOUT, OPENWEATHER_BASE_URL, OPENWEATHER_ICON_URL
from ..datamodels import ForecastItem, WeatherReport
from ..errors import DecodeError
from .base import create_session, get_json

logger = logging.getLogger("newshub")

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


class WeatherClient:
    """Current conditions and a short forecast from OpenWeatherMap."""

    name = "openweather"

    def __init__(
        self,
        config: Dict[str, Any],
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = config.get("openweather_url", OPENWEATHER_BASE_URL).rstrip("/")
        self.timeout = config.get("http_timeout", HTTP_TIMEOUT)
        self.session = session or create_session()

    def _params(self, lat: float, lon: float, **extra: Any) -> Dict[str, Any]:
        params = {"lat": lat, "lon": lon, "units": "metric", "appid": self.api_key}
        params.update(extra)
        return params

    def fetch_current(self, lat: float, lon: float) -> WeatherReport:
        payload = get_json(
            self.session, f"{self.base_url}/weather", self._params(lat, lon), self.timeout, self.name
        )
        try:
            return parse_current(payload)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DecodeError(f"openweather: malformed weather payload ({e})") from e

    def fetch_forecast(self, lat: float, lon: float, count: int = 8) -> List[ForecastItem]:
        payload = get_json(
            self.session,
            f"{self.base_url}/forecast",
            self._params(lat, lon, cnt=count),
            self.timeout,
            self.name,
        )
        try:
            return [parse_forecast_item(item) for item in payload["list"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DecodeError(f"openweather: malformed forecast payload ({e})") from e


def parse_current(payload: Dict[str, Any]) -> WeatherReport:
    main = payload["main"]
    info = payload["weather"][0]
    sys_info = payload.get("sys") or {}
    wind = payload.get("wind") or {}
    return WeatherReport(
        city=payload.get("name", ""),
        temperature=float(main["temp"]),
        feels_like=float(main["feels_like"]),
        temp_min=float(main["temp_min"]),
        temp_max=float(main["temp_max"]),
        humidity=int(main["humidity"]),
        pressure=int(main["pressure"]),
        condition=info["main"],
        description=info["description"],
        icon=info["icon"],
        country=sys_info.get("country"),
        sunrise=sys_info.get("sunrise"),
        sunset=sys_info.get("sunset"),
        wind_speed=wind.get("speed"),
        wind_deg=wind.get("deg"),
    )


def parse_forecast_item(item: Dict[str, Any]) -> ForecastItem:
    info = item["weather"][0]
    return ForecastItem(
        timestamp=int(item["dt"]),
        dt_txt=item.get("dt_txt", ""),
        temperature=float(item["main"]["temp"]),
        condition=info["main"],
        icon=info["icon"],
        wind_speed=float((item.get("wind") or {}).get("speed", 0.0)),
    )


def icon_url(icon: str) -> str:
    return OPENWEATHER_ICON_URL.format(icon=icon)


def wind_direction(degrees: int) -> str:
    """Eight-point compass direction for a wind bearing."""
    index = int((degrees % 360 + 22.5) // 45) % 8
    return COMPASS_POINTS[index]
