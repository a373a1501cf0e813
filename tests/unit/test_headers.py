"""
Tests for header composition
"""

import pytest

from dynamics_webapi.config import Settings
from dynamics_webapi.errors import UsageError, ValidationError
from dynamics_webapi.models import Request
from dynamics_webapi.request import PreferOptions, compose_headers, compose_prefer_header, set_standard_headers

WEB_API_URL = "https://org.api/data/v9.1/"


@pytest.mark.unit
class TestPreferHeader:
    def test_directive_order(self, settings):
        request = Request(
            track_changes=True,
            max_page_size=10,
            include_annotations="*",
            return_representation=True,
        )

        assert compose_prefer_header(request, "retrieveMultiple", settings) == (
            'return=representation,odata.include-annotations="*",odata.maxpagesize=10,odata.track-changes'
        )

    def test_prefer_string_parsed(self, settings):
        request = Request(
            prefer='return=representation, odata.include-annotations="OData.Community.Display.V1.FormattedValue"'
        )

        options = PreferOptions.from_request(request, "create")

        assert options.return_representation is True
        assert options.include_annotations == "OData.Community.Display.V1.FormattedValue"

    def test_prefer_list_parsed(self, settings):
        request = Request(prefer=["odata.maxpagesize=25", "odata.track-changes", "unknown=1"])

        assert compose_prefer_header(request, "retrieveMultiple", settings) == (
            "odata.maxpagesize=25,odata.track-changes"
        )

    def test_non_numeric_page_size_dropped(self, settings):
        request = Request(prefer="odata.maxpagesize=abc")
        assert compose_prefer_header(request, "retrieveMultiple", settings) == ""

    def test_config_defaults(self):
        config = Settings(
            web_api_url=WEB_API_URL,
            return_representation=True,
            include_annotations="*",
            max_page_size=50,
        )

        assert compose_prefer_header(Request(), "retrieveMultiple", config) == (
            'return=representation,odata.include-annotations="*",odata.maxpagesize=50'
        )

    def test_request_overrides_config(self):
        config = Settings(web_api_url=WEB_API_URL, return_representation=True, max_page_size=50)
        request = Request(return_representation=False, max_page_size=5)

        assert compose_prefer_header(request, "update", config) == "odata.maxpagesize=5"

    def test_no_config(self):
        assert compose_prefer_header(Request(return_representation=True), "create", None) == "return=representation"

    def test_invalid_prefer_type(self, settings):
        with pytest.raises(ValidationError, match="request.prefer"):
            compose_prefer_header(Request(prefer=5), "create", settings)

    def test_invalid_prefer_list_item(self, settings):
        with pytest.raises(ValidationError, match="request.prefer"):
            compose_prefer_header(Request(prefer=["return=representation", 1]), "retrieve", settings)

    def test_invalid_page_size_type(self, settings):
        with pytest.raises(ValidationError, match="request.maxPageSize"):
            compose_prefer_header(Request(max_page_size="10"), "retrieveMultiple", settings)


@pytest.mark.unit
class TestComposeHeaders:
    def test_empty_request(self, settings):
        assert compose_headers(Request(), "retrieve", settings) == {}

    def test_full_header_map(self, settings, guid):
        request = Request(
            return_representation=True,
            ifmatch='W/"123"',
            impersonate="{" + guid + "}",
            token="abc",
            duplicate_detection=True,
            no_cache=True,
            merge_labels=True,
            content_id="5",
        )

        headers = compose_headers(request, "update", settings)

        assert headers == {
            "Prefer": "return=representation",
            "If-Match": 'W/"123"',
            "MSCRMCallerID": guid,
            "Authorization": "Bearer abc",
            "MSCRM.SuppressDuplicateDetection": "false",
            "Cache-Control": "no-cache",
            "MSCRM.MergeLabels": "true",
            "Content-ID": "5",
        }

    def test_if_none_match(self, settings):
        assert compose_headers(Request(ifnonematch="*"), "create", settings) == {"If-None-Match": "*"}

    def test_both_conditionals_rejected(self, settings):
        with pytest.raises(UsageError, match="ifmatch or request.ifnonematch"):
            compose_headers(Request(ifmatch="*", ifnonematch="*"), "update", settings)

    def test_back_reference_content_id_not_a_header(self, settings):
        assert compose_headers(Request(content_id="$1"), "create", settings) == {}

    def test_impersonate_requires_guid(self, settings):
        with pytest.raises(ValidationError, match="request.impersonate"):
            compose_headers(Request(impersonate="someone"), "retrieve", settings)

    def test_flag_type_checked(self, settings):
        with pytest.raises(ValidationError, match="request.noCache"):
            compose_headers(Request(no_cache="yes"), "retrieve", settings)


@pytest.mark.unit
class TestStandardHeaders:
    def test_new_mapping(self):
        assert set_standard_headers() == {
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
            "Content-Type": "application/json; charset=utf-8",
        }

    def test_updates_in_place(self):
        headers = {"Prefer": "return=representation"}

        result = set_standard_headers(headers)

        assert result is headers
        assert headers["Prefer"] == "return=representation"
        assert headers["Accept"] == "application/json"
