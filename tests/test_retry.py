from unittest import mock

import pytest
import requests
import responses

from tektonrelay.http_client import ClientConfig, new_client
from tektonrelay.retry import RetryError, do_with_retry, is_transient

URL = "https://api.example.com/status"


def test_success():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="success", status=200)
        response = do_with_retry(None, requests.Request("GET", URL), 3, 0.01)
    assert response.status_code == 200
    assert response.text == "success"


def test_transient_retry():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=503)
        rsps.add(responses.GET, URL, status=503)
        rsps.add(responses.GET, URL, status=200)
        response = do_with_retry(None, requests.Request("GET", URL), 5, 0.01)
        calls = len(rsps.calls)
    assert response.status_code == 200
    assert calls == 3


def test_max_attempts_exceeded():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=503)
        with pytest.raises(RetryError) as info:
            do_with_retry(None, requests.Request("GET", URL), 2, 0.01)
        calls = len(rsps.calls)
    assert info.value.attempts == 2
    assert "transient status 503" in str(info.value)
    assert calls == 2


def test_with_body():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=429)
        rsps.add(responses.POST, URL, status=200)
        request = requests.Request("POST", URL, data=b"test payload")
        response = do_with_retry(None, request, 3, 0.01)
        bodies = [call.request.body for call in rsps.calls]
    assert response.status_code == 200
    assert bodies == [b"test payload", b"test payload"]


def test_custom_client():
    client = new_client(ClientConfig(timeout=5.0))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=200)
        response = do_with_retry(client, requests.Request("GET", URL), 1, 0.01)
    assert response.status_code == 200


def test_non_transient_error_status_returned():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=404)
        response = do_with_retry(None, requests.Request("GET", URL), 3, 0.01)
        calls = len(rsps.calls)
    assert response.status_code == 404
    assert calls == 1


@pytest.mark.parametrize(
    "code, transient",
    [
        (200, False),
        (201, False),
        (400, False),
        (404, False),
        (408, True),
        (429, True),
        (500, True),
        (502, True),
        (503, True),
        (504, True),
    ],
)
def test_is_transient(code, transient):
    assert is_transient(code) is transient


def test_network_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body=requests.ConnectionError("transport error"))
        with pytest.raises(RetryError) as info:
            do_with_retry(None, requests.Request("GET", URL), 2, 0.01)
    assert isinstance(info.value.__cause__, requests.ConnectionError)
    assert "transport error" in str(info.value)


def test_delay_doubles_between_attempts():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=500)
        with mock.patch("time.sleep") as sleep:
            with pytest.raises(RetryError):
                do_with_retry(None, requests.Request("GET", URL), 3, 0.01)
    assert sleep.call_args_list == [mock.call(0.01), mock.call(0.02)]