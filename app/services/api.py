# app/services/api.py

import os
import re
import requests

# Base URL of the dashboard backend
API_URL = os.getenv("DASHBOARD_API_URL", "http://localhost:3000")

TIMEOUT = 10

# At least 8 chars with a lowercase, an uppercase, a digit and one of @$!%*?&#
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{8,}$")
PASSWORD_RULE = (
    "Password must contain at least 8 characters, including one uppercase letter, "
    "one lowercase letter, one number, and one special character."
)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _error(response):
    try:
        return {"error": response.json().get("error", f"Status {response.status_code}")}
    except ValueError:
        return {"error": f"Status {response.status_code}"}


def is_strong_password(password: str) -> bool:
    return bool(PASSWORD_PATTERN.match(password or ""))


# -------------------------------
# Authentication-related functions
# -------------------------------

def register_user(username, password):
    """
    Registers a new account and returns {"token", "user"} or {"error"}.
    The password policy is checked locally before anything is sent.
    """
    if not is_strong_password(password):
        return {"error": PASSWORD_RULE}
    try:
        res = requests.post(
            f"{API_URL}/api/auth/register",
            json={"username": username, "password": password},
            timeout=TIMEOUT,
        )
    except requests.RequestException as e:
        return {"error": str(e)}
    return res.json() if res.status_code == 201 else _error(res)


def login_user(username, password):
    """
    Logs in a user and returns {"token", "user"} or {"error"}.
    """
    try:
        res = requests.post(
            f"{API_URL}/api/auth/login",
            json={"username": username, "password": password},
            timeout=TIMEOUT,
        )
    except requests.RequestException as e:
        return {"error": str(e)}
    return res.json() if res.status_code == 200 else _error(res)


def get_user_info(token):
    """
    Retrieves the logged-in user's id and username.
    """
    res = requests.get(f"{API_URL}/api/auth/me", headers=_auth(token), timeout=TIMEOUT)
    return res.json() if res.status_code == 200 else None


# -------------------------
# Saved cities
# -------------------------

def list_cities(token):
    """
    Lists the user's saved cities. Anything but a JSON array yields [].
    """
    try:
        res = requests.get(f"{API_URL}/api/cities", headers=_auth(token), timeout=TIMEOUT)
        data = res.json()
    except (requests.RequestException, ValueError):
        return []
    return data if isinstance(data, list) else []


def add_city(token, name, lat, lon):
    """
    Saves a city. The returned dict carries alreadyExists=True when the
    backend matched an existing entry instead of creating one.
    """
    res = requests.post(
        f"{API_URL}/api/cities",
        json={"name": name, "lat": lat, "lon": lon},
        headers=_auth(token),
        timeout=TIMEOUT,
    )
    return res.json() if res.status_code in (200, 201) else _error(res)


def delete_city(token, city_id) -> bool:
    res = requests.delete(f"{API_URL}/api/cities/{city_id}", headers=_auth(token), timeout=TIMEOUT)
    return res.status_code == 204


def delete_all_cities(token) -> bool:
    res = requests.delete(f"{API_URL}/api/cities", headers=_auth(token), timeout=TIMEOUT)
    return res.status_code == 204


def set_favorite(token, city_id, is_favorite) -> bool:
    res = requests.patch(
        f"{API_URL}/api/cities/{city_id}/favorite",
        json={"is_favorite": bool(is_favorite)},
        headers=_auth(token),
        timeout=TIMEOUT,
    )
    return res.status_code == 200 and res.json().get("success", False)


# -------------------------
# Insight & health
# -------------------------

def get_insight(token, city_name, weather):
    """
    Requests a short AI tip for a city's weather (as returned by
    services.weather.get_weather).
    """
    payload = {
        "city": city_name,
        "weather": {
            "temperature": weather["temperature"],
            "weatherCode": weather["weatherCode"],
            "daily": {
                "temperatureMax": weather["daily"]["temperatureMax"],
                "temperatureMin": weather["daily"]["temperatureMin"],
            },
        },
    }
    try:
        res = requests.post(f"{API_URL}/api/insight", json=payload, headers=_auth(token), timeout=30)
        if res.status_code == 200:
            return res.json().get("insight")
        return None
    except requests.RequestException:
        return None


def health():
    try:
        res = requests.get(f"{API_URL}/api/health", timeout=TIMEOUT)
        return res.json()
    except (requests.RequestException, ValueError):
        return {"status": "unreachable"}
