"""
Tests for the httpx transport and transport factory
"""

import json

import httpx
import pytest

from dynamics_webapi.config import Settings
from dynamics_webapi.errors import TransportError
from dynamics_webapi.factories import MockTransport, TransportFactory
from dynamics_webapi.models import RequestOptions, Response, ResponseParams
from dynamics_webapi.transport import HttpxTransport

URI = "https://org.api/data/v9.1/accounts"


def _transport(handler):
    return HttpxTransport(timeout=5, http_transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestHttpxTransport:
    async def test_success(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["headers"] = request.headers
            seen["body"] = request.content
            return httpx.Response(
                200,
                headers={"Content-Type": "application/json"},
                text='{"@odata.context":"ctx","name":"a"}',
            )

        options = RequestOptions(
            method="POST",
            uri=URI,
            headers={"Prefer": "return=representation"},
            body='{"name":"Zo\\u00eb"}',
        )

        response = await _transport(handler).send(options)

        assert response.status == 200
        assert response.data == {"@odata.context": "ctx", "name": "a", "oDataContext": "ctx"}
        assert response.headers["content-type"] == "application/json"
        assert seen["method"] == "POST"
        assert seen["headers"]["Prefer"] == "return=representation"
        assert json.loads(seen["body"]) == {"name": "Zoë"}

    async def test_no_content(self):
        def handler(request):
            return httpx.Response(204, headers={"OData-EntityId": f"{URI}(00000000-0000-0000-0000-000000000001)"})

        response = await _transport(handler).send(RequestOptions(method="POST", uri=URI, body="{}"))

        assert response.status == 204
        assert response.data == "00000000-0000-0000-0000-000000000001"

    async def test_value_if_empty(self):
        def handler(request):
            return httpx.Response(204)

        options = RequestOptions(method="DELETE", uri=URI, response_params=[ResponseParams.empty_value(True)])

        assert (await _transport(handler).send(options)).data is True

    async def test_service_error(self):
        def handler(request):
            return httpx.Response(
                404,
                headers={"Content-Type": "application/json"},
                text='{"error":{"code":"0x80040217","message":"Not found"}}',
            )

        with pytest.raises(TransportError) as error:
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

        assert error.value.message == "Not found"
        assert error.value.status == 404
        assert error.value.status_text == "Not Found"
        assert error.value.details == {"code": "0x80040217"}

    async def test_plain_text_error(self):
        def handler(request):
            return httpx.Response(500, headers={"Content-Type": "text/plain"}, text="Server exploded")

        with pytest.raises(TransportError) as error:
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

        assert error.value.message == "Server exploded"
        assert error.value.status == 500

    async def test_unparseable_error(self):
        def handler(request):
            return httpx.Response(400, headers={"Content-Type": "application/json"}, text="{oops")

        with pytest.raises(TransportError) as error:
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

        assert error.value.message == "{oops"
        assert error.value.status == 400

    async def test_empty_error_body(self):
        def handler(request):
            return httpx.Response(401)

        with pytest.raises(TransportError) as error:
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

        assert error.value.message == "Unexpected Error"
        assert error.value.status_text == "Unauthorized"

    async def test_batch_error_keeps_parts(self):
        body = "\r\n".join([
            "--batchresponse_1",
            "Content-Type: application/http",
            "Content-Transfer-Encoding: binary",
            "",
            "HTTP/1.1 400 Bad Request",
            "Content-Type: application/json",
            "",
            '{"error":{"message":"Bad"}}',
            "--batchresponse_1--",
        ])

        def handler(request):
            return httpx.Response(
                400, headers={"Content-Type": "multipart/mixed; boundary=batchresponse_1"}, text=body
            )

        with pytest.raises(TransportError) as error:
            await _transport(handler).send(RequestOptions(method="POST", uri=URI, body=""))

        assert error.value.message == "Batch request failed"
        assert len(error.value.responses) == 1
        assert error.value.responses[0].message == "Bad"

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError, match="Request Timed Out"):
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="connection refused"):
            await _transport(handler).send(RequestOptions(method="GET", uri=URI))

    def test_transport_info(self):
        assert HttpxTransport().get_transport_info() == {"type": "httpx", "timeout": 30.0}


@pytest.mark.unit
class TestTransportFactory:
    def test_create_httpx(self):
        transport = TransportFactory.create(Settings(web_api_url=URI + "/", transport="httpx", timeout=10))

        assert isinstance(transport, HttpxTransport)
        assert transport.timeout == 10

    def test_create_mock(self, settings):
        assert isinstance(TransportFactory.create(settings), MockTransport)

    def test_available_transports(self):
        assert TransportFactory.get_available_transports() == ["httpx", "mock"]


@pytest.mark.unit
class TestMockTransport:
    async def test_replays_queue(self):
        transport = MockTransport([Response(data={"a": 1}, headers={}, status=200)])
        transport.queue(TransportError("boom", status=500))
        options = RequestOptions(method="GET", uri=URI)

        assert (await transport.send(options)).data == {"a": 1}
        with pytest.raises(TransportError, match="boom"):
            await transport.send(options)
        assert (await transport.send(options)).status == 204
        assert len(transport.requests) == 3
        assert transport.get_transport_info()["queued_responses"] == 0
