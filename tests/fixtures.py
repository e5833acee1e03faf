"""Canned Vmachine responses and a client wired to httpx.MockTransport."""

from typing import Callable

import httpx

from soap_transport import SoapTransport
from vmachine import VmachineClient

ENDPOINT = "https://vmachine.test/vmachine.svc"
AUTH_KEY = "secret-key"

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
VEN_NS = "http://multiclubes.com.br/retail/vendingmachine"
DATA_NS = "http://schemas.datacontract.org/2004/07/MultiClubes.Retail"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"


def envelope(body: str) -> str:
    return (
        f'<?xml version="1.0" encoding="utf-8"?>'
        f'<s:Envelope xmlns:s="{SOAP_NS}"><s:Body>{body}</s:Body></s:Envelope>'
    )


def result_response(operation: str, fields: str) -> str:
    return envelope(
        f'<{operation}Response xmlns="{VEN_NS}">'
        f'<{operation}Result xmlns:a="{DATA_NS}" xmlns:i="{XSI_NS}">{fields}</{operation}Result>'
        f"</{operation}Response>"
    )


def fault_response(fault_type: str, fault_string: str) -> str:
    return envelope(
        "<s:Fault>"
        "<faultcode>s:Client</faultcode>"
        f'<faultstring xml:lang="pt-BR">{fault_string}</faultstring>'
        f'<detail><Fault xmlns="{VEN_NS}">{fault_type}</Fault></detail>'
        "</s:Fault>"
    )


CONSUMPTION_SUCCESS = result_response(
    "PerformConsumption",
    "<a:AvailableCredit>42.50</a:AvailableCredit>"
    "<a:CustomerName>Maria Silva</a:CustomerName>"
    '<a:PrintOrderTicketNumber i:nil="true"/>'
    "<a:Status>Success</a:Status>"
    "<a:Total>7.00</a:Total>",
)


def xml_handler(body: str, status_code: int = 200, calls: list | None = None) -> Callable:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(
            status_code,
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/xml; charset=utf-8"},
        )

    return handler


def make_client(handler: Callable) -> VmachineClient:
    transport = SoapTransport(ENDPOINT, http_transport=httpx.MockTransport(handler))
    return VmachineClient(auth_key=AUTH_KEY, transport=transport)
