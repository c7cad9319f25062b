import json
from unittest import mock

import pytest

from whmapi import ConfigurationError, ResponseFormat
from whmapi.decoding import decode, decode_xml, select_json_backend, unwrap


def test_status_envelope_is_unwrapped():
    body = json.dumps({"status": 1, "data": {"acct": ["bob"]}, "error": ""})
    result = decode(body, "application/json")
    assert result.ok
    assert result.data == {"acct": ["bob"]}
    assert result.error is None
    assert result.metadata == {"status": 1, "error": ""}


def test_plain_json_is_the_payload():
    result = decode('{"version": "100"}', "application/json", ResponseFormat.JSON)
    assert result.to_dict() == {"ok": True, "data": {"version": "100"}}


@pytest.mark.parametrize("requested", ["json", None])
def test_malformed_json_fails_without_data(requested):
    result = decode('{"version": ', "application/json", requested)
    assert not result.ok
    assert result.data is None
    assert result.error.startswith("Invalid JSON response")
    assert result.raw == '{"version": '


def test_xml_is_decoded_to_dicts():
    body = (
        "<listaccts><acct><user>bob</user></acct><acct><user>amy</user></acct>"
        "<status>1</status><statusmsg>Ok</statusmsg></listaccts>"
    )
    result = decode(body, "text/xml", "xml")
    assert result.ok
    assert result.data["acct"] == [{"user": "bob"}, {"user": "amy"}]


def test_malformed_xml_fails():
    result = decode("<version><version>100</version>", "text/xml", "xml")
    assert not result.ok
    assert result.data is None
    assert "Invalid XML" in result.error


def test_native_follows_xml_content_type():
    result = decode("<version><version>100</version></version>", "text/xml; charset=utf-8")
    assert result.data == {"version": "100"}


def test_cpanelresult_envelope():
    body = {
        "cpanelresult": {
            "apiversion": 2,
            "data": [{"db": "bob_wp"}],
            "event": {"result": 1},
            "func": "listdbs",
            "module": "MysqlFE",
        }
    }
    result = unwrap(body)
    assert result.ok
    assert result.data == [{"db": "bob_wp"}]
    assert result.metadata["func"] == "listdbs"


def test_cpanelresult_failure():
    body = {
        "cpanelresult": {
            "data": [],
            "event": {"result": 0, "reason": "Access denied"},
            "error": "Access denied",
        }
    }
    result = unwrap(body)
    assert not result.ok
    assert result.error == "Access denied"


def test_metadata_failure():
    result = unwrap({"metadata": {"result": 0, "reason": "Bad user"}, "data": {}})
    assert not result.ok
    assert result.error == "Bad user"


@pytest.mark.parametrize("status", [0, "0"])
def test_status_zero_fails(status):
    result = unwrap({"status": status, "statusmsg": "No such account", "data": None})
    assert not result.ok
    assert result.error == "No such account"


def test_result_list_with_failed_entry():
    result = unwrap({"result": [{"status": 0, "statusmsg": "Account does not exist"}]})
    assert not result.ok
    assert result.error == "Account does not exist"


def test_non_mapping_payload():
    assert unwrap([1, 2, 3]).data == [1, 2, 3]


def test_decode_xml_leaf_text():
    assert decode_xml("<a><b> x </b><c/></a>") == {"b": "x", "c": ""}


def test_backend_selection_skips_missing_modules():
    backend = select_json_backend(("whmapi_missing_backend", "json"))
    assert backend.name == "json"
    assert backend.loads('{"a": 1}') == {"a": 1}


def test_backend_selection_without_any_backend():
    with pytest.raises(ConfigurationError):
        select_json_backend(("whmapi_missing_backend",))


def test_missing_backend_is_not_a_per_call_failure():
    with mock.patch(
        "whmapi.decoding.select_json_backend", side_effect=ConfigurationError("no decoder")
    ):
        with pytest.raises(ConfigurationError):
            decode('{"a": 1}')
