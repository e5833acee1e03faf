# soap_response.py
"""Decoding and normalization of Vmachine SOAP responses.

The remote service is loose about response shape: the Result element is not
always nested where the WSDL says it is, namespace prefixes vary and faults
arrive both with HTTP 500 and inside 200 responses. Everything here works on
a plain decoded tree (see ``XmlNode``) with namespaces stripped, so ``s:Fault``,
``soap:Fault`` and ``Fault`` all read the same.
"""
import logging
from typing import Dict, List, Optional, Tuple, Union

from lxml import etree

from errors import DecodeFailure, SoapFault, TransportFailure

logger = logging.getLogger(__name__)

# Scalar text, nil, a mapping of child names, or a list when an element repeats.
XmlNode = Union[str, None, Dict[str, "XmlNode"], List["XmlNode"]]

TEXT_KEY = "#text"
ATTR_PREFIX = "@"
MAX_SEARCH_DEPTH = 32


# ---- decoder ----
def _parser(recover: bool = False) -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        recover=recover,
    )


def local_name(name: str) -> str:
    if name.startswith("{"):
        name = name.split("}", 1)[1]
    return name.rsplit(":", 1)[-1]


def _element_to_node(el) -> XmlNode:
    attrs = {ATTR_PREFIX + local_name(k): v for k, v in el.attrib.items()}
    children = [c for c in el if isinstance(c.tag, str)]
    text = (el.text or "").strip()

    if not children:
        if not attrs:
            return text
        if not text and attrs.get("@nil") == "true":
            return None

    node: Dict[str, XmlNode] = dict(attrs)
    for child in children:
        key = local_name(child.tag)
        value = _element_to_node(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]
    if text:
        node[TEXT_KEY] = text
    return node


def decode_xml(raw: Union[str, bytes]) -> Dict[str, XmlNode]:
    """Parse raw XML into a namespace-free tree keyed by the root's local name."""
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if not raw or not raw.strip():
        raise DecodeFailure("empty response body")

    try:
        root = etree.fromstring(raw, parser=_parser())
    except etree.XMLSyntaxError as exc:
        # undeclared prefixes and similar sloppiness: try again leniently
        logger.debug(f"Strict XML parse failed ({exc}), retrying in recover mode")
        try:
            root = etree.fromstring(raw, parser=_parser(recover=True))
        except etree.XMLSyntaxError as exc2:
            raise DecodeFailure("response is not XML", exc2) from exc2
    if root is None:
        raise DecodeFailure("response is not XML")

    return {local_name(root.tag): _element_to_node(root)}


# ---- tree helpers ----
def child(node: XmlNode, *path: str) -> XmlNode:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def unwrap_text(node: XmlNode) -> XmlNode:
    """Return the text of a ``{"@attr": .., "#text": ..}`` wrapper, else the node."""
    if isinstance(node, dict) and TEXT_KEY in node:
        return node[TEXT_KEY]
    return node


def text_of(node: XmlNode) -> Optional[str]:
    if isinstance(node, list):
        node = node[0] if node else None
    node = unwrap_text(node)
    if isinstance(node, str) and node.strip():
        return node.strip()
    return None


def _find_key(node: XmlNode, fragment: str, depth: int) -> XmlNode:
    if depth <= 0:
        return None
    if isinstance(node, dict):
        for key, value in node.items():
            if key.startswith(ATTR_PREFIX):
                continue
            if fragment in key and value is not None:
                return value
            found = _find_key(value, fragment, depth - 1)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = _find_key(item, fragment, depth - 1)
            if found is not None:
                return found
    return None


# ---- normalizer ----
def extract_result(tree: Dict[str, XmlNode], operation: str) -> XmlNode:
    """Locate the ``{operation}Result`` payload of a decoded response.

    Tries ``Envelope/Body/{op}Response/{op}Result`` first, then the first key
    containing "Result" in document order. When neither exists the tree is
    returned as-is and callers must treat every field as optional.
    """
    result = child(tree, "Envelope", "Body", f"{operation}Response", f"{operation}Result")
    if result is not None:
        return result

    found = _find_key(tree, "Result", MAX_SEARCH_DEPTH)
    if found is not None:
        logger.info(f"{operation}: result found outside the expected path")
        return found

    logger.warning(f"{operation}: no Result element in response, returning raw tree")
    return tree


# ---- faults ----
def find_fault(tree: XmlNode) -> XmlNode:
    for path in (("Envelope", "Body", "Fault"), ("Body", "Fault"), ("Fault",)):
        fault = child(tree, *path)
        if fault is not None:
            return fault
    return None


def interpret_fault(fault: XmlNode) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(fault_type, fault_string)`` from a Fault node."""
    if not isinstance(fault, dict):
        return None, text_of(fault)

    fault_string = (
        text_of(fault.get("faultstring"))
        or text_of(child(fault, "Reason", "Text"))
        or text_of(fault.get(TEXT_KEY))
    )

    detail = fault.get("detail", fault.get("Detail"))
    if isinstance(detail, dict) and "Fault" in detail:
        fault_type = text_of(detail["Fault"])
    else:
        fault_type = text_of(detail)
    return fault_type, fault_string


def fault_message(
    fault_type: Optional[str],
    fault_string: Optional[str],
    status_text: Optional[str] = None,
    fallback: Optional[str] = None,
) -> str:
    if fault_type and fault_string:
        return f"{fault_type}: {fault_string}"
    return fault_string or fault_type or status_text or fallback or ""


def fault_from_tree(
    tree: XmlNode,
    status_code: Optional[int] = None,
    status_text: Optional[str] = None,
    fallback: str = "SOAP Fault",
) -> Optional[SoapFault]:
    fault = find_fault(tree)
    if fault is None:
        return None
    fault_type, fault_string = interpret_fault(fault)
    message = fault_message(fault_type, fault_string, status_text, fallback)
    return SoapFault(message, fault_type, fault_string, status_code)


def fault_from_failure(failure: TransportFailure) -> Optional[SoapFault]:
    """Unpack a SOAP Fault carried in the body of a failed HTTP call, if any."""
    if not failure.body:
        return None
    try:
        tree = decode_xml(failure.body)
    except DecodeFailure:
        logger.debug("Error body is not XML, keeping transport failure")
        return None
    return fault_from_tree(tree, failure.status_code, failure.status_text, failure.message)
