"""
Tests for chartsync.infra.index_client module.
"""

import threading
from unittest.mock import MagicMock

import pytest
import requests

from chartsync.errors import FetchError, SyncCancelled
from chartsync.infra.index_client import IndexClient, normalize_index_url


def make_response(status_code=200, chunks=(b"apiVersion: v1\n",), reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.iter_content.return_value = iter(chunks)
    return response


class TestNormalizeIndexUrl:

    @pytest.mark.parametrize("url,expected", [
        ("https://charts.example.com", "https://charts.example.com/index.yaml"),
        ("https://charts.example.com/", "https://charts.example.com/index.yaml"),
        ("https://charts.example.com/stable//", "https://charts.example.com/stable/index.yaml"),
        ("https://charts.example.com/index.yaml", "https://charts.example.com/index.yaml"),
    ])
    def test_appends_index_path(self, url, expected):
        assert normalize_index_url(url) == expected

    @pytest.mark.parametrize("url", ["", "charts.example.com", "/local/path", "https://"])
    def test_rejects_unparseable(self, url):
        with pytest.raises(FetchError):
            normalize_index_url(url)


class TestIndexClient:

    def test_fetch(self):
        session = MagicMock()
        response = make_response(chunks=(b"apiVersion: v1\n", b"entries: {}\n"))
        session.get.return_value = response

        data = IndexClient(session, timeout=5).fetch("https://a/index.yaml")

        assert data == b"apiVersion: v1\nentries: {}\n"
        session.get.assert_called_once_with("https://a/index.yaml", timeout=5, stream=True)
        response.close.assert_called_once()

    def test_non_2xx_is_error(self):
        session = MagicMock()
        response = make_response(status_code=404, reason="Not Found")
        session.get.return_value = response

        with pytest.raises(FetchError) as exc:
            IndexClient(session).fetch("https://a/index.yaml")

        assert exc.value.status_code == 404
        assert "404" in str(exc.value)
        response.close.assert_called_once()

    def test_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FetchError) as exc:
            IndexClient(session).fetch("https://a/index.yaml")
        assert exc.value.url == "https://a/index.yaml"
        assert exc.value.status_code is None

    def test_read_error(self):
        session = MagicMock()
        response = make_response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("cut")
        session.get.return_value = response

        with pytest.raises(FetchError):
            IndexClient(session).fetch("https://a/index.yaml")
        response.close.assert_called_once()

    def test_cancelled_before_request(self):
        session = MagicMock()
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SyncCancelled):
            IndexClient(session).fetch("https://a/index.yaml", cancel)
        session.get.assert_not_called()

    def test_cancelled_during_read(self):
        cancel = threading.Event()

        def chunks():
            yield b"apiVersion: v1\n"
            cancel.set()
            yield b"entries: {}\n"

        session = MagicMock()
        response = make_response()
        response.iter_content.return_value = chunks()
        session.get.return_value = response

        with pytest.raises(SyncCancelled):
            IndexClient(session).fetch("https://a/index.yaml", cancel)
        response.close.assert_called_once()
