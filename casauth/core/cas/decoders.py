"""Decoders and encoders for CAS validation responses.

Version 1 authorities answer with two lines of plain text. Version 2/3
authorities answer with a service response document, XML by default or
JSON when requested; both encodings map onto the same data model.

Elements without a typed field are kept as ExtensionElement values, in
document order, so vendor attributes survive decoding. Attribute, group
and extension values are kept exactly as sent; only identifiers (user,
proxy-granting ticket, proxies) and the failure message are trimmed.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from lxml import etree

from casauth.core.cas.errors import DecodeError
from casauth.core.cas.protocol import CAS_NS, ProtocolVersion, ResponseFormat
from casauth.core.cas.response import (
    Attributes,
    AuthenticationFailure,
    AuthenticationSuccess,
    ExtensionElement,
    NamedAttribute,
    ServiceResponse,
    UserAttributes,
    V1Result,
    ValidationResult,
)

V1_SUCCESS_PREFIX = "yes\n"

# Trailing zone id some authorities append to ISO-8601 dates, e.g. "...Z[UTC]"
_ZONE_ID_SUFFIX = re.compile(r"\[[^\]]*\]$")


def _as_text(body: str | bytes) -> str:
    if isinstance(body, bytes):
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"response body is not UTF-8: {e}") from e
    return body


def decode_v1(body: str | bytes) -> V1Result:
    """Decode a version 1 validation response.

    Success is exactly "yes\\n<user>\\n". Anything that does not start with
    "yes\\n" is a failure. The format has no escaping, so a user name
    containing a newline cannot be represented.

    Raises:
        DecodeError: If the body starts with "yes\\n" but the user line is
            empty or not terminated.
    """
    text = _as_text(body)
    if not text.startswith(V1_SUCCESS_PREFIX):
        return V1Result(is_valid=False)

    remainder = text[len(V1_SUCCESS_PREFIX):]
    end = remainder.find("\n")
    if end < 1:
        raise DecodeError("authority answered 'yes' without a terminated user line")
    return V1Result(is_valid=True, user=remainder[:end])


def _parse_date(value: str) -> datetime:
    text = _ZONE_ID_SUFFIX.sub("", value.strip())
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(f"invalid authenticationDate: {value!r}") from e


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    raise DecodeError(f"invalid boolean for {name}: {value!r}")


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def _cas(name: str) -> str:
    return f"{{{CAS_NS}}}{name}"


def _elements(parent: etree._Element) -> list[etree._Element]:
    """Child elements, skipping comments and processing instructions."""
    return [child for child in parent if isinstance(child.tag, str)]


def _text(element: etree._Element) -> str:
    """Character data of an element, kept as sent."""
    return "".join(element.itertext())


def _token(element: etree._Element) -> str:
    """Character data of an identifier element, surrounding whitespace removed."""
    return _text(element).strip()


def _raw_value(element: etree._Element) -> str:
    """Text of a leaf element, or the inner markup of an element with children."""
    if not len(element):
        return element.text or ""
    inner = [element.text or ""]
    for child in element:
        inner.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return "".join(inner).strip()


def _xml_extension(element: etree._Element) -> ExtensionElement:
    qname = etree.QName(element)
    return ExtensionElement(
        name=qname.localname,
        value=_raw_value(element),
        namespace=qname.namespace,
    )


def _single(seen: set[str], element: etree._Element) -> None:
    local = etree.QName(element).localname
    if local in seen:
        raise DecodeError(f"duplicate <{local}> element")
    seen.add(local)


def _decode_xml_user_attributes(element: etree._Element) -> UserAttributes:
    user_attributes = UserAttributes()
    for child in _elements(element):
        if child.tag == _cas("attribute"):
            user_attributes.attributes.append(
                NamedAttribute(name=child.get("name", ""), value=_raw_value(child))
            )
        else:
            user_attributes.extensions.append(_xml_extension(child))
    return user_attributes


def _decode_xml_attributes(element: etree._Element) -> Attributes:
    attributes = Attributes()
    seen: set[str] = set()
    for child in _elements(element):
        tag = child.tag
        if tag == _cas("authenticationDate"):
            _single(seen, child)
            attributes.authentication_date = _parse_date(_token(child))
        elif tag == _cas("longTermAuthenticationRequestTokenUsed"):
            _single(seen, child)
            attributes.long_term_authentication_request_token_used = _parse_bool(
                _token(child), "longTermAuthenticationRequestTokenUsed"
            )
        elif tag == _cas("isFromNewLogin"):
            _single(seen, child)
            attributes.is_from_new_login = _parse_bool(_token(child), "isFromNewLogin")
        elif tag == _cas("memberOf"):
            attributes.member_of.append(_text(child))
        elif tag == _cas("userAttributes"):
            _single(seen, child)
            attributes.user_attributes = _decode_xml_user_attributes(child)
        else:
            attributes.extensions.append(_xml_extension(child))
    return attributes


def _decode_xml_success(element: etree._Element) -> AuthenticationSuccess:
    user: str | None = None
    success = AuthenticationSuccess(user="")
    seen: set[str] = set()
    for child in _elements(element):
        tag = child.tag
        if tag == _cas("user"):
            _single(seen, child)
            user = _token(child)
        elif tag == _cas("proxyGrantingTicket"):
            _single(seen, child)
            success.proxy_granting_ticket = _token(child)
        elif tag == _cas("proxies"):
            _single(seen, child)
            success.proxies = [
                _token(proxy) for proxy in _elements(child) if proxy.tag == _cas("proxy")
            ]
        elif tag == _cas("attributes"):
            _single(seen, child)
            success.attributes = _decode_xml_attributes(child)
        else:
            success.extensions.append(_xml_extension(child))

    if user is None:
        raise DecodeError("authenticationSuccess has no <user> element")
    success.user = user
    return success


def _decode_xml_failure(element: etree._Element) -> AuthenticationFailure:
    return AuthenticationFailure(code=element.get("code", ""), message=_token(element))


def decode_xml(body: str | bytes) -> ServiceResponse:
    """Decode an XML service response.

    Raises:
        DecodeError: If the body is not XML or not a service response.
    """
    data = body.encode("utf-8") if isinstance(body, str) else body
    # lxml parsers are not thread-safe, so one per call
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"invalid XML: {e}") from e
    if root is None:
        raise DecodeError("empty XML document")

    if root.tag != _cas("serviceResponse"):
        raise DecodeError(f"unexpected root element: {root.tag}")

    successes = root.findall(_cas("authenticationSuccess"))
    failures = root.findall(_cas("authenticationFailure"))
    if len(successes) + len(failures) != 1:
        raise DecodeError(
            "serviceResponse must hold exactly one authenticationSuccess or "
            f"authenticationFailure (found {len(successes)} and {len(failures)})"
        )

    if successes:
        return ServiceResponse(success=_decode_xml_success(successes[0]))
    return ServiceResponse(failure=_decode_xml_failure(failures[0]))


def _add_xml_extensions(parent: etree._Element, extensions: list[ExtensionElement]) -> None:
    for extension in extensions:
        tag = f"{{{extension.namespace}}}{extension.name}" if extension.namespace else extension.name
        etree.SubElement(parent, tag).text = extension.value


def _xml_bool(value: bool) -> str:
    return "true" if value else "false"


def encode_xml(response: ServiceResponse) -> str:
    """Encode a service response as an XML document."""
    root = etree.Element(_cas("serviceResponse"), nsmap={"cas": CAS_NS})

    success = response.success
    if success is None:
        if response.failure is not None:
            failure = etree.SubElement(
                root, _cas("authenticationFailure"), code=response.failure.code
            )
            failure.text = response.failure.message
        return etree.tostring(root, encoding="unicode", pretty_print=True)

    element = etree.SubElement(root, _cas("authenticationSuccess"))
    etree.SubElement(element, _cas("user")).text = success.user

    if success.attributes is not None:
        attrs = success.attributes
        attrs_element = etree.SubElement(element, _cas("attributes"))
        if attrs.authentication_date is not None:
            etree.SubElement(attrs_element, _cas("authenticationDate")).text = (
                attrs.authentication_date.isoformat()
            )
        if attrs.long_term_authentication_request_token_used is not None:
            etree.SubElement(
                attrs_element, _cas("longTermAuthenticationRequestTokenUsed")
            ).text = _xml_bool(attrs.long_term_authentication_request_token_used)
        if attrs.is_from_new_login is not None:
            etree.SubElement(attrs_element, _cas("isFromNewLogin")).text = _xml_bool(
                attrs.is_from_new_login
            )
        for group in attrs.member_of:
            etree.SubElement(attrs_element, _cas("memberOf")).text = group
        if attrs.user_attributes is not None:
            user_attrs = etree.SubElement(attrs_element, _cas("userAttributes"))
            for attribute in attrs.user_attributes.attributes:
                etree.SubElement(user_attrs, _cas("attribute"), name=attribute.name).text = (
                    attribute.value
                )
            _add_xml_extensions(user_attrs, attrs.user_attributes.extensions)
        _add_xml_extensions(attrs_element, attrs.extensions)

    if success.proxy_granting_ticket is not None:
        etree.SubElement(element, _cas("proxyGrantingTicket")).text = (
            success.proxy_granting_ticket
        )

    if success.proxies is not None:
        proxies = etree.SubElement(element, _cas("proxies"))
        for proxy in success.proxies:
            etree.SubElement(proxies, _cas("proxy")).text = proxy

    _add_xml_extensions(element, success.extensions)
    return etree.tostring(root, encoding="unicode", pretty_print=True)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _unwrap(value: Any) -> Any:
    """Unwrap a single-element list, as many authorities wrap every value."""
    if isinstance(value, list) and len(value) == 1:
        return value[0]
    return value


def _json_string(value: Any, name: str) -> str:
    value = _unwrap(value)
    if not isinstance(value, str):
        raise DecodeError(f"expected a string for {name}, got {type(value).__name__}")
    return value


def _json_strings(value: Any, name: str) -> list[str]:
    items = value if isinstance(value, list) else [value]
    return [_json_string(item, name) for item in items]


def _json_raw(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return _xml_bool(value)
    if value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


def _json_extensions(name: str, value: Any) -> list[ExtensionElement]:
    items = value if isinstance(value, list) else [value]
    return [ExtensionElement(name=name, value=_json_raw(item)) for item in items]


def _json_object(value: Any, name: str) -> dict[str, Any]:
    value = _unwrap(value)
    if not isinstance(value, dict):
        raise DecodeError(f"expected an object for {name}, got {type(value).__name__}")
    return value


def _decode_json_user_attributes(data: dict[str, Any]) -> UserAttributes:
    user_attributes = UserAttributes()
    for key, value in data.items():
        if key == "attribute":
            items = value if isinstance(value, list) else [value]
            for item in items:
                item = _json_object(item, "attribute")
                user_attributes.attributes.append(
                    NamedAttribute(
                        name=_json_raw(item.get("name", "")),
                        value=_json_raw(_unwrap(item.get("value", ""))),
                    )
                )
        else:
            user_attributes.extensions.extend(_json_extensions(key, value))
    return user_attributes


def _decode_json_attributes(data: dict[str, Any]) -> Attributes:
    attributes = Attributes()
    for key, value in data.items():
        if key == "authenticationDate":
            attributes.authentication_date = _parse_date(_json_string(value, key))
        elif key == "longTermAuthenticationRequestTokenUsed":
            attributes.long_term_authentication_request_token_used = _parse_bool(
                _unwrap(value), key
            )
        elif key == "isFromNewLogin":
            attributes.is_from_new_login = _parse_bool(_unwrap(value), key)
        elif key == "memberOf":
            attributes.member_of = _json_strings(value, key)
        elif key == "userAttributes":
            attributes.user_attributes = _decode_json_user_attributes(_json_object(value, key))
        else:
            attributes.extensions.extend(_json_extensions(key, value))
    return attributes


def _decode_json_success(data: dict[str, Any]) -> AuthenticationSuccess:
    if "user" not in data:
        raise DecodeError("authenticationSuccess has no user")

    success = AuthenticationSuccess(user=_json_string(data["user"], "user").strip())
    for key, value in data.items():
        if key == "user":
            continue
        if key == "proxyGrantingTicket":
            success.proxy_granting_ticket = _json_string(value, key).strip()
        elif key == "proxies":
            if isinstance(value, dict):
                value = value.get("proxy", [])
            success.proxies = [proxy.strip() for proxy in _json_strings(value, key)]
        elif key == "attributes":
            success.attributes = _decode_json_attributes(_json_object(value, key))
        else:
            success.extensions.extend(_json_extensions(key, value))
    return success


def _decode_json_failure(data: dict[str, Any]) -> AuthenticationFailure:
    return AuthenticationFailure(
        code=_json_raw(data.get("code", "")),
        message=_json_raw(data.get("description", "")).strip(),
    )


def decode_json(body: str | bytes) -> ServiceResponse:
    """Decode a JSON service response.

    Raises:
        DecodeError: If the body is not JSON or not a service response.
    """
    try:
        document = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise DecodeError("JSON document is nested too deeply") from e

    if not isinstance(document, dict) or not isinstance(document.get("serviceResponse"), dict):
        raise DecodeError("JSON document has no serviceResponse object")

    service_response = document["serviceResponse"]
    has_success = "authenticationSuccess" in service_response
    has_failure = "authenticationFailure" in service_response
    if has_success == has_failure:
        raise DecodeError(
            "serviceResponse must hold exactly one authenticationSuccess or authenticationFailure"
        )

    if has_success:
        data = _json_object(service_response["authenticationSuccess"], "authenticationSuccess")
        return ServiceResponse(success=_decode_json_success(data))
    data = _json_object(service_response["authenticationFailure"], "authenticationFailure")
    return ServiceResponse(failure=_decode_json_failure(data))


def _json_extension_map(extensions: list[ExtensionElement]) -> dict[str, Any]:
    grouped: dict[str, list[str]] = {}
    for extension in extensions:
        grouped.setdefault(extension.name, []).append(extension.value)
    return {name: values[0] if len(values) == 1 else values for name, values in grouped.items()}


def encode_json(response: ServiceResponse) -> str:
    """Encode a service response as a JSON document.

    JSON has no namespaces, and extension elements sharing a name are
    grouped into one list.
    """
    success = response.success
    if success is None:
        body: dict[str, Any] = {}
        if response.failure is not None:
            body["authenticationFailure"] = {
                "code": response.failure.code,
                "description": response.failure.message,
            }
        return json.dumps({"serviceResponse": body}, indent=2)

    data: dict[str, Any] = {"user": success.user}
    if success.proxy_granting_ticket is not None:
        data["proxyGrantingTicket"] = success.proxy_granting_ticket
    if success.proxies is not None:
        data["proxies"] = list(success.proxies)

    if success.attributes is not None:
        attrs = success.attributes
        attrs_data: dict[str, Any] = {}
        if attrs.authentication_date is not None:
            attrs_data["authenticationDate"] = attrs.authentication_date.isoformat()
        if attrs.long_term_authentication_request_token_used is not None:
            attrs_data["longTermAuthenticationRequestTokenUsed"] = (
                attrs.long_term_authentication_request_token_used
            )
        if attrs.is_from_new_login is not None:
            attrs_data["isFromNewLogin"] = attrs.is_from_new_login
        if attrs.member_of:
            attrs_data["memberOf"] = list(attrs.member_of)
        if attrs.user_attributes is not None:
            user_attrs: dict[str, Any] = {
                "attribute": [a.to_dict() for a in attrs.user_attributes.attributes]
            }
            user_attrs.update(_json_extension_map(attrs.user_attributes.extensions))
            attrs_data["userAttributes"] = user_attrs
        attrs_data.update(_json_extension_map(attrs.extensions))
        data["attributes"] = attrs_data

    data.update(_json_extension_map(success.extensions))
    return json.dumps({"serviceResponse": {"authenticationSuccess": data}}, indent=2)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def decode_service_response(
    body: str | bytes,
    encoding: ResponseFormat | None = None,
) -> ServiceResponse:
    """Decode a version 2/3 service response in the requested encoding.

    XML is assumed when no encoding was requested.
    """
    if encoding is ResponseFormat.JSON:
        return decode_json(body)
    return decode_xml(body)


def decode_validation_response(
    version: ProtocolVersion,
    body: str | bytes,
    encoding: ResponseFormat | None = None,
) -> ValidationResult:
    """Decode a validation response with the strategy of a protocol version."""
    if version is ProtocolVersion.V1:
        return decode_v1(body)
    return decode_service_response(body, encoding)
