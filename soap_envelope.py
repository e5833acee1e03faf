# soap_envelope.py
import re
from typing import List

from lxml import etree

from models import OperationRequest, SoapField

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
VMACHINE_NS = "http://multiclubes.com.br/retail/vendingmachine"
AUTH_NS = "ns"
AUTH_ELEMENT = "_AuthenticationKey"

_NSMAP = {"soapenv": SOAP_ENV_NS, "ven": VMACHINE_NS}
_AUTH_RE = re.compile(rb"(<_AuthenticationKey[^>]*>)(.*?)(</_AuthenticationKey>)", re.S)


def _ven(name: str) -> str:
    return f"{{{VMACHINE_NS}}}{name}"


def soap_action(operation: str) -> str:
    return f'"{VMACHINE_NS}/IService/{operation}"'


def _append_fields(parent, fields: List[SoapField]) -> None:
    for name, value in fields:
        el = etree.SubElement(parent, _ven(name))
        if isinstance(value, list):
            _append_fields(el, value)
        else:
            el.text = value


def build_envelope(request: OperationRequest, auth_key: str) -> bytes:
    """Render ``request`` as a SOAP 1.1 envelope carrying the auth header.

    Text goes through lxml, so markup in product codes or names is escaped.
    """
    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap=_NSMAP)
    header = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Header")
    auth = etree.SubElement(header, f"{{{AUTH_NS}}}{AUTH_ELEMENT}", nsmap={None: AUTH_NS})
    auth.text = auth_key or ""

    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    operation = etree.SubElement(body, _ven(request.operation))
    _append_fields(operation, request.soap_fields())

    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8", pretty_print=True)


def redact_envelope(envelope: bytes) -> str:
    """Envelope text for logs, with the authentication key masked."""
    return _AUTH_RE.sub(rb"\1***\3", envelope).decode("utf-8", errors="replace")
