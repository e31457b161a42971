import pytest
import requests

from iadea_rest import (
    ApiNotFoundError,
    AuthRequiredError,
    DeviceSession,
    DeviceTimeoutError,
    Invoker,
    TransportError,
)
from iadea_rest.transport import create_http_session


@pytest.fixture
def invoker(http):
    session = DeviceSession(host="10.0.0.5", access_token="tok123")
    return Invoker(session, http_session=http)


def test_invoke_without_token_fails_before_any_request(http):
    invoker = Invoker(DeviceSession(host="10.0.0.5"), http_session=http)

    with pytest.raises(AuthRequiredError):
        invoker.invoke("/v2/files/find", {})

    assert http.calls == []


def test_token_endpoint_is_allowed_without_token(http):
    invoker = Invoker(DeviceSession(host="10.0.0.5"), http_session=http)
    http.reply({"access_token": "abc"})

    assert invoker.invoke("/v2/oauth2/token", {"grant_type": "password"}) == {"access_token": "abc"}
    assert http.calls[0].params is None


def test_get_without_body_and_post_with_body(invoker, http):
    http.reply({"a": 1}).reply({"b": 2})

    invoker.invoke("/v2/system/modelInfo")
    invoker.invoke("/v2/task/notify", {})

    get, post = http.calls
    assert get.method == "GET"
    assert get.body is None
    assert post.method == "POST"
    assert post.json == {}
    assert post.headers["Content-Type"] == "application/json"


def test_token_and_address_on_every_call(invoker, http):
    http.reply({})

    invoker.invoke("/v2/system/storageInfo")

    call = http.calls[0]
    assert call.url == "http://10.0.0.5:8080/v2/system/storageInfo"
    assert call.params == {"access_token": "tok123"}
    assert call.timeout == 5.0


def test_custom_content_type_and_raw_body(invoker, http):
    http.reply({})

    invoker.invoke("/v2/custom", "a=b", content_type="application/x-www-form-urlencoded")

    call = http.calls[0]
    assert call.body == "a=b"
    assert call.headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_404_is_api_not_found_even_with_json_body(invoker, http):
    http.reply({"items": []}, status=404)

    with pytest.raises(ApiNotFoundError):
        invoker.invoke("/v2/files/find", {})


def test_non_json_body_is_returned_as_text(invoker, http):
    http.reply("OK", content_type="text/plain").reply(None)

    assert invoker.invoke("/v2/task/reboot") == "OK"
    assert invoker.invoke("/v2/files/delete", {"id": "1"}) == ""


def test_image_body_is_returned_as_bytes(invoker, http):
    png = b"\x89PNG\r\n\x1a\n\x00\xff"
    http.reply(png, content_type="image/png")

    assert invoker.invoke("/v2/task/screenshot") == png


def test_application_errors_are_returned_as_json(invoker, http):
    http.reply({"error": "invalid_request"}, status=400)

    assert invoker.invoke("/v2/app/exec", {}) == {"error": "invalid_request"}


def test_timeout_maps_to_device_timeout_error(invoker, http):
    http.fail(requests.ReadTimeout("read timed out"))

    with pytest.raises(DeviceTimeoutError) as excinfo:
        invoker.invoke("/v2/system/modelInfo")

    assert isinstance(excinfo.value, TimeoutError)


def test_connection_error_maps_to_transport_error_with_cause(invoker, http):
    cause = requests.ConnectionError("Connection reset by peer")
    http.fail(cause)

    with pytest.raises(TransportError) as excinfo:
        invoker.invoke("/v2/task/reboot")

    assert excinfo.value.__cause__ is cause


def test_close_leaves_caller_owned_session_open(invoker, http):
    invoker.close()
    assert http.closed is False


def test_http_session_does_not_retry():
    session = create_http_session()
    adapter = session.get_adapter("http://10.0.0.5:8080/v2/")

    assert adapter.max_retries.total == 0
    session.close()
