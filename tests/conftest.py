from __future__ import annotations

import httpx
import pytest

from master_lookup.acquisition import DatasetFetcher, ResponseCache
from master_lookup.db import create_engine_from_url
from master_lookup.services import MasterService
from master_lookup.store import RecordStore

DATASET_URL = "http://master.test/master.csv"

SAMPLE_CSV = (
    "Kode,Artikel,Deskripsi,Harga,Bagian\r\n"
    "ab12,Blue Widget,Small blue widget,\"Rp 10.000\",Hardware\r\n"
    "CD34,Red Gadget,\"Gadget, red\",25000,Toys\r\n"
    ",Orphan,No code,1,X\r\n"
)


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine_from_url(f"sqlite:///{(tmp_path / 'lookup.sqlite').as_posix()}")
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine):
    return RecordStore(engine).open()


class FakeServer:
    """httpx transport that serves one CSV body and counts requests."""

    def __init__(self, body: str = SAMPLE_CSV, status: int = 200):
        self.body = body
        self.status = status
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return httpx.Response(self.status, content=self.body.encode("utf-8"))


@pytest.fixture()
def server():
    return FakeServer()


@pytest.fixture()
def fetcher(tmp_path, server):
    client = httpx.Client(transport=httpx.MockTransport(server))
    yield DatasetFetcher(ResponseCache(tmp_path / "cache"), DATASET_URL, cache_key="./master.csv", client=client)
    client.close()


@pytest.fixture()
def service(engine, fetcher):
    return MasterService(RecordStore(engine), fetcher)
