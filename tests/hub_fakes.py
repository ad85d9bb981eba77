"""
Test doubles for the hub: a scripted HTTP session standing in for
requests.Session, a recording sleep, and GraphQL payload builders.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from models.seal import FairSeal, FairSealAsset, pretty_json


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None,
                 text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """
    Replays queued responses in order and records every request it receives.
    """

    def __init__(self, responses: Optional[List[FakeResponse]] = None) -> None:
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: FakeResponse) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, json: Any = None, timeout: Any = None) -> FakeResponse:
        self.calls.append({"method": method, "url": url, "json": json, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        return self.responses.pop(0)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ----------------------------
# GraphQL payload builders
# ----------------------------

def asset_json(name: str, url: str, size: int = 100, download_count: int = 0) -> Dict[str, Any]:
    return {"name": name, "size": size, "downloadUrl": url, "downloadCount": download_count}


def release_json(tag: str, assets: List[Dict[str, Any]], prerelease: bool = False,
                 email: Optional[str] = "dev@example.org", name: str = "Dev",
                 created_at: str = "2022-01-02T03:04:05Z", description: Optional[str] = None) -> Dict[str, Any]:
    return {
        "name": tag,
        "createdAt": created_at,
        "isPrerelease": prerelease,
        "isDraft": False,
        "description": description,
        "tag": {"name": tag},
        "tagCommit": {"author": {"name": name, "email": email}} if email is not None else None,
        "releaseAssets": {"nodes": assets},
    }


def comment_json(login: str, body: str) -> Dict[str, Any]:
    return {"author": {"login": login}, "bodyText": body}


def seal_comment(login: str, checksums: Dict[str, str], **kwargs: Any) -> Dict[str, Any]:
    seal = FairSeal(assets=[FairSealAsset(url=url, size=100, sha256=sha) for url, sha in checksums.items()], **kwargs)
    return comment_json(login, "```\n" + pretty_json(seal.to_json()) + "\n```")


def fork_json(login: str, releases: List[Dict[str, Any]], comments: Optional[List[Dict[str, Any]]] = None,
              topics: Optional[List[str]] = None, description: str = "An app") -> Dict[str, Any]:
    return {
        "name": "App",
        "nameWithOwner": f"{login}/App",
        "owner": {"login": login, "__typename": "Organization"},
        "description": description,
        "forkCount": 1,
        "stargazerCount": 5,
        "watchers": {"totalCount": 2},
        "issues": {"totalCount": 3},
        "repositoryTopics": {"nodes": [{"topic": {"name": t}} for t in (topics or [])]},
        "releases": {"pageInfo": {"hasNextPage": False}, "nodes": releases},
        "defaultBranchRef": {
            "associatedPullRequests": {
                "nodes": [{"comments": {"totalCount": len(comments or []), "nodes": comments or []}}],
            },
        },
    }


def forks_page(forks: List[Dict[str, Any]], end_cursor: Optional[str] = None) -> Dict[str, Any]:
    return {
        "data": {
            "repository": {
                "forks": {
                    "totalCount": len(forks),
                    "pageInfo": {"hasNextPage": end_cursor is not None, "endCursor": end_cursor},
                    "nodes": forks,
                },
            },
        },
    }
