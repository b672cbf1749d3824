# backend/tests/test_convert_via_api.py

"""
Tests for the convert_via_api CLI (requests is mocked, no server needed)
"""

import pytest
import sys
from pathlib import Path

import requests

# Add scripts directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

import convert_via_api


class MockResponse:
    """Mock requests.Response"""
    def __init__(self, status_code=200, json_data=None, text="", content_type="application/json"):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text
        self.headers = {"content-type": content_type}

    def json(self):
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


@pytest.fixture
def captured_calls(monkeypatch):
    calls = []

    def install(response):
        def fake_get(url, params=None, timeout=None):
            calls.append({"url": url, "params": params})
            if isinstance(response, Exception):
                raise response
            return response
        monkeypatch.setattr(convert_via_api.requests, "get", fake_get)
        return calls

    return install


class TestConvertCommand:
    """Test --input mode"""

    def test_prints_sentence(self, captured_calls, capsys):
        calls = captured_calls(MockResponse(json_data={
            "initNum": 1.5, "initUnit": "km", "returnNum": 0.93206, "returnUnit": "mi",
            "string": "1.5 kilometers converts to 0.93206 miles",
        }))

        assert convert_via_api.convert("http://api", "3/2km") is True
        assert calls[0] == {"url": "http://api/api/convert", "params": {"input": "3/2km"}}
        assert capsys.readouterr().out.strip() == "1.5 kilometers converts to 0.93206 miles"

    def test_invalid_input_is_failure(self, captured_calls, capsys):
        captured_calls(MockResponse(text="invalid number", content_type="text/plain; charset=utf-8"))

        assert convert_via_api.convert("http://api", "1/2/3lbs") is False
        assert "invalid number" in capsys.readouterr().out

    def test_connection_error(self, captured_calls, capsys):
        captured_calls(requests.exceptions.ConnectionError())

        assert convert_via_api.convert("http://api", "kg") is False
        assert "Could not connect" in capsys.readouterr().out


class TestMain:
    """Test argument handling and exit codes"""

    def test_exit_code_success(self, captured_calls, monkeypatch):
        captured_calls(MockResponse(json_data={"string": "1 kilograms converts to 2.20462 pounds"}))
        monkeypatch.setattr(sys, "argv", ["convert_via_api.py", "--input", "kg", "--base-url", "http://api"])

        assert convert_via_api.main() == 0

    def test_exit_code_health_down(self, captured_calls, monkeypatch):
        captured_calls(MockResponse(status_code=503, json_data={}))
        monkeypatch.setattr(sys, "argv", ["convert_via_api.py", "--health", "--base-url", "http://api"])

        assert convert_via_api.main() == 1

    def test_no_arguments_prints_help(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["convert_via_api.py"])

        assert convert_via_api.main() == 2
        assert "usage" in capsys.readouterr().out
