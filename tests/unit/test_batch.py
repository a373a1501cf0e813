"""
Tests for batch request encoding
"""

import re

import pytest

from dynamics_webapi.errors import ValidationError
from dynamics_webapi.models import BatchRequestPart, Request
from dynamics_webapi.request import convert_to_batch

_CHANGE_SET = re.compile(r"boundary=(changeset_[0-9a-f-]+)")


def _boundary(batch):
    return batch.headers["Content-Type"].split("boundary=", 1)[1]


@pytest.mark.unit
class TestConvertToBatch:
    def test_get_post_get(self, settings):
        parts = [
            BatchRequestPart("GET", Request(collection="accounts")),
            BatchRequestPart("POST", Request(collection="accounts", entity={"name": "x"})),
            BatchRequestPart("GET", Request(collection="contacts")),
        ]

        batch = convert_to_batch(parts, settings)

        boundary = _boundary(batch)
        change_sets = _CHANGE_SET.findall(batch.body)
        assert boundary.startswith("dwa_batch_")
        assert len(change_sets) == 1
        change_set = change_sets[0]
        assert change_set != boundary

        assert batch.body == "\n".join([
            f"\n--{boundary}",
            "Content-Type: application/http",
            "Content-Transfer-Encoding: binary",
            "\nGET https://org.api/data/v9.1/accounts HTTP/1.1",
            "Accept: application/json",
            f"\n--{boundary}",
            f"Content-Type: multipart/mixed;boundary={change_set}",
            f"\n--{change_set}",
            "Content-Type: application/http",
            "Content-Transfer-Encoding: binary",
            "Content-ID: 100001",
            "\nPOST https://org.api/data/v9.1/accounts HTTP/1.1",
            "Content-Type: application/json",
            '\n{"name":"x"}',
            f"\n--{change_set}--",
            f"\n--{boundary}",
            "Content-Type: application/http",
            "Content-Transfer-Encoding: binary",
            "\nGET https://org.api/data/v9.1/contacts HTTP/1.1",
            "Accept: application/json",
            f"\n--{boundary}--",
        ])

    def test_batch_headers(self, settings):
        batch = convert_to_batch([BatchRequestPart("GET", Request(collection="accounts"))], settings)

        assert batch.headers["Accept"] == "application/json"
        assert batch.headers["OData-Version"] == "4.0"
        assert batch.headers["Content-Type"].startswith("multipart/mixed;boundary=dwa_batch_")

    def test_boundaries_unique_per_call(self, settings):
        parts = [BatchRequestPart("POST", Request(collection="accounts", entity={"name": "x"}))]

        first = convert_to_batch(parts, settings)
        second = convert_to_batch(parts, settings)

        assert _boundary(first) != _boundary(second)
        assert _CHANGE_SET.findall(first.body) != _CHANGE_SET.findall(second.body)

    def test_consecutive_writes_share_change_set(self, settings):
        parts = [
            BatchRequestPart("POST", Request(collection="accounts", entity={"name": "a"})),
            BatchRequestPart("PATCH", Request(collection="accounts", key="accountnumber='1'", entity={"name": "b"})),
            BatchRequestPart("DELETE", Request(collection="contacts", key="emailaddress1='c@d.e'")),
        ]

        batch = convert_to_batch(parts, settings)

        assert len(_CHANGE_SET.findall(batch.body)) == 1
        assert re.findall(r"Content-ID: (\d+)", batch.body) == ["100001", "100002", "100003"]
        assert "\nDELETE https://org.api/data/v9.1/contacts(emailaddress1='c@d.e') HTTP/1.1" in batch.body

    def test_counter_resets_after_get(self, settings):
        parts = [
            BatchRequestPart("POST", Request(collection="accounts", entity={"name": "a"})),
            BatchRequestPart("GET", Request(collection="accounts")),
            BatchRequestPart("POST", Request(collection="accounts", entity={"name": "b"})),
        ]

        batch = convert_to_batch(parts, settings)

        assert len(_CHANGE_SET.findall(batch.body)) == 2
        assert re.findall(r"Content-ID: (\d+)", batch.body) == ["100001", "100001"]

    def test_explicit_content_id_and_back_reference(self, settings):
        parts = [
            BatchRequestPart("POST", Request(collection="accounts", content_id="1", entity={"name": "a"})),
            BatchRequestPart(
                "POST", Request(collection="contacts", content_id="$1", entity={"fullname": "b"})
            ),
        ]

        batch = convert_to_batch(parts, settings)

        assert re.findall(r"Content-ID: (\d+)", batch.body) == ["1", "100001"]
        assert "\nPOST $1/contacts HTTP/1.1" in batch.body
        assert batch.body.count("Content-ID:") == 2

    def test_part_headers(self, settings):
        request = Request(
            collection="accounts",
            entity={"name": "a"},
            token="secret",
            return_representation=True,
        )

        batch = convert_to_batch([BatchRequestPart("post", request)], settings)

        assert "Authorization" not in batch.body
        assert "secret" not in batch.body
        assert "Prefer: return=representation" in batch.body
        assert "\nPOST https://org.api/data/v9.1/accounts HTTP/1.1" in batch.body

    def test_payload_escaped(self, settings, guid):
        request = Request(
            collection="contacts",
            entity={"fullname": "Zoë", "parentcustomerid_account@odata.bind": f"accounts({{{guid}}})", "oDataEtag": "1"},
        )

        batch = convert_to_batch([BatchRequestPart("POST", request)], settings)

        assert f'\n{{"fullname":"Zo\\u00eb","parentcustomerid_account@odata.bind":"/accounts({guid})"}}' in batch.body

    def test_invalid_part_fails_whole_batch(self, settings):
        parts = [
            BatchRequestPart("GET", Request(collection="accounts")),
            BatchRequestPart("GET", Request(collection="accounts", id="bad")),
        ]

        with pytest.raises(ValidationError) as error:
            convert_to_batch(parts, settings)

        assert error.value.operation == "executeBatch"

    def test_from_dict(self):
        part = BatchRequestPart.from_dict({"method": "patch", "request": {"collection": "accounts", "entity": {}}})

        assert part.method == "PATCH"
        assert part.request.collection == "accounts"
