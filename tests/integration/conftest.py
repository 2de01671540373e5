"""Integration fixtures: an in-memory Roam graph behind a requests transport adapter."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import pytest
import requests
from requests.adapters import BaseAdapter

from roam_query.graph.client import RoamGraphClient

BASE_URL = "https://api.roam.test"
PEER_URL = "https://peer-1.api.roam.test:3001"

_TITLE_RE = re.compile(r'\[\?ref-\d+ :node/title "((?:[^"\\]|\\.)*)"\]')


@dataclass
class FakeBlock:
    uid: str
    string: str
    page: str
    refs: tuple[str, ...] = ()


@dataclass
class FakeGraph:
    """Evaluates the subset of Datalog used by tag conjunctions and uid lookups."""

    blocks: list[FakeBlock]
    received: list[dict[str, Any]] = field(default_factory=list)

    def answer(self, query: str, args: list[Any]) -> list[list[Any]]:
        if query.startswith("[:find ?uid ?string"):
            wanted = set(args[0])
            return [[b.uid, b.string] for b in self.blocks if b.uid in wanted]

        titles = [t.replace('\\"', '"') for t in _TITLE_RE.findall(query)]
        matches = [b for b in self.blocks if all(t in b.refs for t in titles)]
        matches.sort(key=lambda b: b.uid)

        if query.startswith("[:find (count ?b)"):
            return [[len(matches)]]

        limit = re.search(r":limit (\d+)", query)
        if limit:
            matches = matches[: int(limit.group(1))]
        return [[b.uid, b.string, b.page] for b in matches]


class FakeRoamAdapter(BaseAdapter):
    """Serves the graph query endpoint; the base host redirects to a peer once."""

    def __init__(self, graph: FakeGraph) -> None:
        super().__init__()
        self.graph = graph

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        response = requests.Response()
        response.request = request
        response.url = request.url or ""

        if response.url.startswith(BASE_URL):
            response.status_code = 308
            response.headers["Location"] = response.url.replace(BASE_URL, PEER_URL)
            response._content = b""
            return response

        if request.headers.get("Authorization") != "Bearer secret-token":
            response.status_code = 401
            response._content = b'{"message": "unauthorized"}'
            return response

        payload = json.loads(request.body or b"{}")
        self.graph.received.append(payload)
        result = self.graph.answer(payload["query"], payload["args"])
        response.status_code = 200
        response._content = json.dumps({"result": result}).encode()
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def fake_graph() -> FakeGraph:
    return FakeGraph(
        blocks=[
            FakeBlock("blockaaa1", "Ship the release", "Work", ("Project", "TODO")),
            FakeBlock("blockaaa2", "Review ((blockaaa4))", "Work", ("Project", "TODO")),
            FakeBlock("blockaaa3", "Buy milk", "Home", ("TODO",)),
            FakeBlock("blockaaa4", "the design doc", "Work", ("Project",)),
            FakeBlock("blockaaa5", 'Quote "this"', "Home", ('say "hi"',)),
        ]
    )



@pytest.fixture
def make_graph_client(fake_graph: FakeGraph):
    """Factory for clients bound to the fake graph with an arbitrary token."""

    def _make(token: str) -> RoamGraphClient:
        client = RoamGraphClient("test-graph", token, base_url=BASE_URL)
        adapter = FakeRoamAdapter(fake_graph)
        client._session.mount(BASE_URL, adapter)
        client._session.mount(PEER_URL, adapter)
        return client

    return _make


@pytest.fixture
def graph_client(make_graph_client) -> RoamGraphClient:
    return make_graph_client("secret-token")
