import httpx
import pytest

from master_lookup.acquisition import DatasetFetcher, ResponseCache
from master_lookup.errors import DatasetUnavailableError
from master_lookup.settings import Settings

from conftest import DATASET_URL, SAMPLE_CSV, FakeServer


def test_network_fetch_populates_cache_then_cache_wins(fetcher, server):
    first = fetcher.fetch_dataset()
    assert first.provenance == "network"
    assert first.text == SAMPLE_CSV
    assert len(server.calls) == 1
    assert server.calls[0].headers["Cache-Control"] == "no-cache"

    server.body = "code,article\nNEW,changed upstream\n"
    second = fetcher.fetch_dataset()
    assert second.provenance == "cache"
    assert second.text == SAMPLE_CSV
    assert len(server.calls) == 1


def test_purge_cache_forces_next_fetch_to_network(fetcher, server):
    fetcher.fetch_dataset()
    assert fetcher.purge_cache() is True
    assert fetcher.purge_cache() is False

    server.body = "code\nZ\n"
    again = fetcher.fetch_dataset()
    assert again.provenance == "network"
    assert again.text == "code\nZ\n"
    assert len(server.calls) == 2


def test_progress_messages(fetcher):
    seen = []
    fetcher.fetch_dataset(on_progress=seen.append)
    assert len(seen) == 2
    assert "cache" in seen[0].lower()
    assert "download" in seen[1].lower()

    seen.clear()
    fetcher.fetch_dataset(on_progress=seen.append)
    assert [("cache" in m.lower()) for m in seen] == [True, True]


def test_http_error_status_is_unavailable(tmp_path):
    client = httpx.Client(transport=httpx.MockTransport(FakeServer(status=404)))
    f = DatasetFetcher(ResponseCache(tmp_path / "c"), DATASET_URL, client=client)
    with pytest.raises(DatasetUnavailableError, match="HTTP 404"):
        f.fetch_dataset()
    assert f.cache.match(DATASET_URL) is None


def test_connection_error_is_unavailable(tmp_path):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(refuse))
    f = DatasetFetcher(ResponseCache(tmp_path / "c"), DATASET_URL, client=client)
    with pytest.raises(DatasetUnavailableError, match="connection refused"):
        f.fetch_dataset()


def test_cache_write_failure_still_returns_text(fetcher, server, monkeypatch):
    def broken_put(key, text):
        raise OSError("read-only file system")

    monkeypatch.setattr(fetcher.cache, "put", broken_put)
    snap = fetcher.fetch_dataset()
    assert snap.provenance == "network"
    assert snap.text == SAMPLE_CSV


def test_utf8_bom_is_stripped(tmp_path):
    def serve(request):
        return httpx.Response(200, content="\ufeffcode,article\nA,Ä\n".encode("utf-8"))

    client = httpx.Client(transport=httpx.MockTransport(serve))
    f = DatasetFetcher(ResponseCache(tmp_path / "c"), DATASET_URL, client=client)
    assert f.fetch_dataset().text == "code,article\nA,Ä\n"


def test_response_cache_roundtrip_and_delete(tmp_path):
    cache = ResponseCache(tmp_path / "cache")
    assert cache.match("./master.csv") is None
    cache.put("./master.csv", "x,y\n")
    assert cache.match("./master.csv") == "x,y\n"
    assert cache.match("./other.csv") is None
    assert cache.delete() is True
    assert cache.match("./master.csv") is None
    assert cache.delete() is False


def test_from_settings_uses_dataset_path_as_cache_key(tmp_path):
    settings = Settings(INSTANCE_DIR=tmp_path, DATASET_BASE_URL="http://host:9000/data", DATASET_PATH="./master.csv")
    f = DatasetFetcher.from_settings(settings)
    assert f.url == "http://host:9000/data/master.csv"
    assert f.cache_key == "./master.csv"
    assert f.cache.root == tmp_path.resolve() / settings.CACHE_NAME


def test_cached_copy_is_byte_for_byte_the_download(tmp_path):
    from master_lookup.csv_import import to_records

    body = 'code,description\r\nA1,"line1\r\nline2"\r\n'
    server = FakeServer(body=body)
    client = httpx.Client(transport=httpx.MockTransport(server))
    f = DatasetFetcher(ResponseCache(tmp_path / "c"), DATASET_URL, client=client)

    net = f.fetch_dataset()
    cached = f.fetch_dataset()
    assert (net.provenance, cached.provenance) == ("network", "cache")
    assert cached.text == body
    assert to_records(cached.text) == to_records(net.text)
    assert to_records(cached.text)[0].description == "line1\r\nline2"
