"""Tests for decoding, result extraction and fault interpretation."""

import pytest

from errors import DecodeFailure, SoapFault, TransportFailure
from fixtures import CONSUMPTION_SUCCESS, VEN_NS, envelope, fault_response
from soap_response import (
    MAX_SEARCH_DEPTH,
    decode_xml,
    extract_result,
    fault_from_failure,
    fault_from_tree,
    fault_message,
    find_fault,
    interpret_fault,
)


class TestDecodeXml:
    def test_namespace_prefixes_are_stripped(self) -> None:
        a = decode_xml('<ns:Root xmlns:ns="urn:a"><ns:Status>Success</ns:Status></ns:Root>')
        b = decode_xml('<Root xmlns="urn:b"><Status>Success</Status></Root>')
        assert a == b == {"Root": {"Status": "Success"}}

    def test_repeated_elements_become_list(self) -> None:
        tree = decode_xml("<Items><Item>a</Item><Item>b</Item><Item>c</Item><Other>x</Other></Items>")
        assert tree == {"Items": {"Item": ["a", "b", "c"], "Other": "x"}}

    def test_attributes_and_text(self) -> None:
        tree = decode_xml('<r xmlns:x="urn:x"><v x:lang="pt">texto</v></r>')
        assert tree == {"r": {"v": {"@lang": "pt", "#text": "texto"}}}

    def test_nil_and_empty(self) -> None:
        xsi = "http://www.w3.org/2001/XMLSchema-instance"
        tree = decode_xml(f'<r xmlns:i="{xsi}"><a i:nil="true"/><b/><c>  </c></r>')
        assert tree == {"r": {"a": None, "b": "", "c": ""}}

    def test_no_declaration_and_bytes(self) -> None:
        assert decode_xml(b"<a><b>1</b></a>") == {"a": {"b": "1"}}

    def test_comments_are_ignored(self) -> None:
        assert decode_xml("<a><!-- note --><b>1</b></a>") == {"a": {"b": "1"}}

    def test_success_envelope(self) -> None:
        tree = decode_xml(CONSUMPTION_SUCCESS)
        result = tree["Envelope"]["Body"]["PerformConsumptionResponse"]["PerformConsumptionResult"]
        assert result["Status"] == "Success"
        assert result["CustomerName"] == "Maria Silva"
        assert result["PrintOrderTicketNumber"] is None

    @pytest.mark.parametrize("raw", ["", "   ", b""])
    def test_empty_body(self, raw) -> None:
        with pytest.raises(DecodeFailure):
            decode_xml(raw)

    def test_not_xml(self) -> None:
        with pytest.raises(DecodeFailure):
            decode_xml("this is not xml at all")


class TestExtractResult:
    def test_primary_path(self) -> None:
        tree = decode_xml(CONSUMPTION_SUCCESS)
        result = extract_result(tree, "PerformConsumption")
        assert result["Status"] == "Success"
        assert result["CustomerName"] == "Maria Silva"

    def test_fallback_when_response_level_missing(self) -> None:
        tree = decode_xml(envelope(
            f'<PerformConsumptionResult xmlns="{VEN_NS}"><Status>Success</Status></PerformConsumptionResult>'
        ))
        assert extract_result(tree, "PerformConsumption") == {"Status": "Success"}

    def test_fallback_finds_any_result_key(self) -> None:
        tree = {"Envelope": {"Body": {"Wrapper": {"Inner": {"FooResult": {"Status": "Failure"}}}}}}
        assert extract_result(tree, "GetBalance") == {"Status": "Failure"}

    def test_fallback_is_deterministic_in_document_order(self) -> None:
        tree = decode_xml(
            "<Envelope><Body>"
            "<A><FirstResult><Status>1</Status></FirstResult></A>"
            "<B><SecondResult><Status>2</Status></SecondResult></B>"
            "</Body></Envelope>"
        )
        for _ in range(3):
            assert extract_result(tree, "Other") == {"Status": "1"}

    def test_fallback_searches_lists(self) -> None:
        tree = {"Envelope": {"Body": {"Item": [{"x": "1"}, {"BarResult": "found"}]}}}
        assert extract_result(tree, "Other") == "found"

    def test_returns_tree_when_nothing_found(self) -> None:
        tree = {"Envelope": {"Body": {"Something": {"Status": "Success"}}}}
        assert extract_result(tree, "GetBalance") is tree

    def test_search_depth_is_bounded(self) -> None:
        tree = node = {}
        for i in range(MAX_SEARCH_DEPTH + 5):
            node["level"] = {}
            node = node["level"]
        node["DeepResult"] = {"Status": "Success"}
        assert extract_result(tree, "GetBalance") is tree


class TestFaults:
    def test_interpret_soap11_fault(self) -> None:
        fault = find_fault(decode_xml(fault_response("InvalidTag", "Tag inválida")))
        assert interpret_fault(fault) == ("InvalidTag", "Tag inválida")

    def test_detail_with_text_wrapper(self) -> None:
        fault = {"faultstring": "boom", "detail": {"Fault": {"@type": "x", "#text": "InvalidPosEid"}}}
        assert interpret_fault(fault) == ("InvalidPosEid", "boom")

    def test_scalar_detail(self) -> None:
        assert interpret_fault({"faultstring": "boom", "detail": "InvalidProduct"}) == ("InvalidProduct", "boom")

    def test_soap12_reason(self) -> None:
        fault = {"Code": {"Value": "Sender"}, "Reason": {"Text": {"@lang": "en", "#text": "No balance"}}}
        assert interpret_fault(fault) == (None, "No balance")

    def test_fault_at_top_level(self) -> None:
        assert find_fault({"Fault": {"faultstring": "x"}}) == {"faultstring": "x"}
        assert find_fault({"Envelope": {"Body": {"Result": "ok"}}}) is None

    def test_message_composition(self) -> None:
        assert fault_message("InvalidTag", "Tag inválida") == "InvalidTag: Tag inválida"
        assert fault_message(None, "Tag inválida") == "Tag inválida"
        assert fault_message(None, None, "HTTP 500 Internal Server Error") == "HTTP 500 Internal Server Error"
        assert fault_message(None, None, None, "connection refused") == "connection refused"

    def test_fault_from_tree(self) -> None:
        fault = fault_from_tree(decode_xml(fault_response("InsufficientBalance", "Saldo insuficiente")))
        assert isinstance(fault, SoapFault)
        assert fault.message == "InsufficientBalance: Saldo insuficiente"
        assert fault.fault_type == "InsufficientBalance"

    def test_fault_from_failure(self) -> None:
        failure = TransportFailure(
            "HTTP 500 Internal Server Error",
            status_code=500,
            reason="Internal Server Error",
            body=fault_response("InvalidTag", "Tag inválida").encode("utf-8"),
        )
        fault = fault_from_failure(failure)
        assert fault.message == "InvalidTag: Tag inválida"
        assert fault.status_code == 500

    def test_fault_without_text_uses_status(self) -> None:
        failure = TransportFailure(
            "HTTP 500 Internal Server Error",
            status_code=500,
            reason="Internal Server Error",
            body=envelope("<s:Fault><faultcode>s:Server</faultcode></s:Fault>").encode("utf-8"),
        )
        assert fault_from_failure(failure).message == "HTTP 500 Internal Server Error"

    def test_non_xml_error_body(self) -> None:
        failure = TransportFailure("HTTP 502 Bad Gateway", status_code=502, reason="Bad Gateway", body=b"gateway down")
        assert fault_from_failure(failure) is None

    def test_no_body(self) -> None:
        assert fault_from_failure(TransportFailure("timed out")) is None
