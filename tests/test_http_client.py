import logging

import pytest
import requests
import responses

from tektonrelay.http_client import (
    ClientConfig,
    DebugAdapter,
    HttpClient,
    default_client_config,
    new_client,
)

LOGGER_NAME = "tektonrelay.test.debug"
URL = "https://api.example.com/ping"


@pytest.mark.parametrize(
    "debug, logger, want_debug",
    [
        (False, None, False),
        (True, logging.getLogger(LOGGER_NAME), True),
        (True, None, False),
    ],
)
def test_new_client(debug, logger, want_debug):
    client = new_client(
        ClientConfig(timeout=5.0, max_retries=3, base_delay=0.1, debug=debug, logger=logger)
    )
    assert client.timeout == 5.0
    adapter = client.session.get_adapter("https://api.example.com")
    assert isinstance(adapter, DebugAdapter) is want_debug


def test_zero_timeout_means_none():
    assert new_client(ClientConfig()).timeout is None


def test_insecure_skip_verify_disables_verification():
    client = new_client(ClientConfig(insecure_skip_verify=True))
    assert client.session.verify is False
    assert new_client(ClientConfig()).session.verify is True


def test_debug_transport(caplog):
    client = new_client(
        ClientConfig(
            timeout=5.0, debug=True, logger=logging.getLogger(LOGGER_NAME), name="github"
        )
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="test response", status=200)
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            response = client.send(requests.Request("GET", URL))
    assert response.status_code == 200
    assert response.text == "test response"
    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["http request", "http response"]
    assert caplog.records[0].provider == "github"
    assert caplog.records[1].status == 200
    assert caplog.records[1].body == b"test response"


def test_debug_transport_logs_failure(caplog):
    client = new_client(ClientConfig(debug=True, logger=logging.getLogger(LOGGER_NAME)))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body=requests.ConnectionError("transport error"))
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            with pytest.raises(requests.ConnectionError):
                client.send(requests.Request("GET", URL))
    assert [r.getMessage() for r in caplog.records] == ["http request", "http request failed"]


def test_plain_client_sends_prepared_request():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=201)
        with HttpClient() as client:
            prepared = requests.Request("POST", URL, data=b"x").prepare()
            assert client.send(prepared).status_code == 201


def test_default_client_config():
    config = default_client_config()
    assert config.timeout == 10.0
    assert config.max_retries == 3
    assert config.debug is False
    assert config.logger is None