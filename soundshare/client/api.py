"""HTTP client for the Soundshare API (requests session keeps the login cookie)."""

from typing import Any, Dict, Iterable, Optional, Union

import requests

API_BASE = "http://localhost:8000"


class ApiError(Exception):
    """Non-2xx response or transport failure. status_code is 0 when no response arrived."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class SoundshareClient:
    def __init__(self, base_url: str = API_BASE, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ApiError(0, str(e))
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ApiError(response.status_code, message or response.reason or "Request failed")
        return data

    # Audios

    def list_audios(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        author: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 6,
        first_query_time: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "search": search,
            "category": category,
            "author": author,
            "sort": sort,
            "page": page,
            "limit": limit,
            "firstQueryTime": first_query_time,
        }
        return self._request("GET", "/api/audios", params={k: v for k, v in params.items() if v is not None})

    def get_audio(self, audio_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/audios/{audio_id}")

    def upload_audio(
        self,
        title: str,
        description: str,
        category: str,
        thumbnail_url: str,
        audio_url: str,
        tags: Union[None, str, Iterable[str]] = None,
        duration: Optional[float] = None,
    ) -> Dict[str, Any]:
        body = {
            "title": title,
            "description": description,
            "category": category,
            "thumbnailUrl": thumbnail_url,
            "audioUrl": audio_url,
            "tags": list(tags) if tags is not None and not isinstance(tags, str) else tags,
            "duration": duration,
        }
        return self._request("POST", "/api/audios", json=body)

    def toggle_like(self, audio_id: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/audios/{audio_id}/like")

    def toggle_bookmark(self, audio_id: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/audios/{audio_id}/bookmark")

    def mark_viewed(self, audio_id: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/audios/{audio_id}/viewed")

    def add_comment(self, audio_id: str, content: str) -> Dict[str, Any]:
        return self._request("POST", f"/api/audios/{audio_id}/comment", json={"content": content})

    def search(self, q: str) -> Dict[str, Any]:
        return self._request("GET", "/api/searches/search", params={"q": q})

    # Users

    def signup(self, username: str, name: str, email: str, password: str, gender: Optional[str] = None,
               profile_image: Optional[str] = None) -> Dict[str, Any]:
        body = {"username": username, "name": name, "email": email, "password": password,
                "gender": gender, "profileImage": profile_image}
        return self._request("POST", "/api/users/signup", json=body)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/users/login", json={"email": email, "password": password})

    def logout(self) -> Dict[str, Any]:
        return self._request("POST", "/api/users/logout")

    def authenticate(self) -> Dict[str, Any]:
        return self._request("GET", "/api/users/authenticate")

    def update_user(self, user_id: str, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/api/users/{user_id}", json=fields)

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/users/{user_id}")
