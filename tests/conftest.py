import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
import requests

from src.shared.config import AppConfig
from src.shared.portfolio_store import FilePortfolioStore


def make_response(status: int, body: Any = None, headers: Optional[Dict[str, str]] = None, reason: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.headers.update(headers or {})
    return resp


class FakeSession:
    """Answers GETs from a path-suffix routing table and records every call."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls: List[Tuple[str, Dict[str, Any], Dict[str, str]]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, dict(params or {}), dict(headers or {})))
        for suffix, answer in self.routes.items():
            if url.endswith(suffix):
                if isinstance(answer, Exception):
                    raise answer
                if isinstance(answer, requests.Response):
                    return answer
                return make_response(200, answer)
        return make_response(404, {"message": "Not Found"}, reason="Not Found")


def github_repo(repo_id: int, name: str, **overrides) -> Dict[str, Any]:
    repo = {
        "id": repo_id,
        "name": name,
        "full_name": f"octo/{name}",
        "description": f"{name} description",
        "html_url": f"https://github.com/octo/{name}",
        "homepage": None,
        "language": "Python",
        "topics": [],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-06-01T00:00:00Z",
        "stargazers_count": 0,
        "fork": False,
        "archived": False,
    }
    repo.update(overrides)
    return repo


def behance_project(project_id: int, name: str, fields: List[str], appreciations: int = 0, views: int = 0) -> Dict[str, Any]:
    return {
        "id": project_id,
        "name": name,
        "url": f"https://www.behance.net/gallery/{project_id}/{name}",
        "fields": fields,
        "covers": {"404": f"https://cdn.behance.net/{project_id}.png"},
        "stats": {"appreciations": appreciations, "views": views, "comments": 0},
        "created_on": 1700000000,
        "modified_on": 1710000000,
    }


def dribbble_shot(shot_id: int, title: str, tags: List[str], likes: int = 0, **overrides) -> Dict[str, Any]:
    shot = {
        "id": shot_id,
        "title": title,
        "description": "<p>Landing page for a <b>coffee</b> shop</p>",
        "html_url": f"https://dribbble.com/shots/{shot_id}",
        "images": {"hidpi": None, "normal": f"https://cdn.dribbble.com/{shot_id}.png"},
        "tags": tags,
        "likes_count": likes,
        "views_count": 10,
        "published_at": "2024-02-01T00:00:00Z",
        "updated_at": "2024-03-01T00:00:00Z",
    }
    shot.update(overrides)
    return shot


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        storeBackend="file",
        stateDir=tmp_path,
        seoBatchPause=0,
        platformTimeout=5,
        enrichmentTimeout=5,
    )


@pytest.fixture
def store(tmp_path) -> FilePortfolioStore:
    return FilePortfolioStore(tmp_path)
