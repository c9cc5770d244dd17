"""Current-temperature lookup used to pre-fill the run form.

Weather is a convenience: every failure (no API key, upstream error, bad
payload) is logged and reported as ``None`` so logging a run never depends
on it.
"""

from __future__ import annotations

import logging
import os

import requests

from runclub.utils import round_half_up

log = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


def get_weather_by_zip_code(zip_code: str) -> dict | None:
    """Return ``{"temperature", "description", "icon"}`` for a US zip code, or None."""
    api_key = os.environ.get("OPENWEATHER_API_KEY")
    if not api_key:
        log.debug("OPENWEATHER_API_KEY not set; skipping weather lookup")
        return None

    try:
        resp = requests.get(
            OPENWEATHER_URL,
            params={"zip": f"{zip_code},US", "appid": api_key, "units": "imperial"},
            timeout=10,
        )
        if not resp.ok:
            log.warning("Weather lookup for %s failed: %s %s", zip_code, resp.status_code, resp.reason)
            return None
        data = resp.json()
        return {
            "temperature": int(round_half_up(data["main"]["temp"])),
            "description": data["weather"][0]["description"],
            "icon": data["weather"][0]["icon"],
        }
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
        log.warning("Weather lookup for %s failed: %s", zip_code, e)
        return None


def get_current_temperature(user_id: int) -> int | None:
    """Current temperature at the user's saved zip code, or None."""
    from runclub.users import find_by_id

    user = find_by_id(user_id)
    if user is None or not user.zip_code:
        return None
    weather = get_weather_by_zip_code(user.zip_code)
    return weather["temperature"] if weather else None
