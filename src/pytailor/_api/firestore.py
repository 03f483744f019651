"""Firestore REST endpoints and the typed value codec.

Endpoints:
  - /{parent}:runQuery     (ordered collection read)
  - /documents:commit      (create with server-side timestamp transform)

Firestore encodes every field as a one-key object naming its type
(``{"stringValue": "x"}``, ``{"integerValue": "3"}``, ...). Integers are
sent as strings, timestamps as RFC 3339 strings.
"""

from __future__ import annotations

import logging
import math
import secrets
import string
from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from typing import Any

from pytailor._constants import SERVER_TIMESTAMP
from pytailor._transport import Transport
from pytailor.config import TailorConfig
from pytailor.exceptions import TailorApiError
from pytailor.models._base import format_timestamp, parse_timestamp
from pytailor.models.document import Document

_logger = logging.getLogger(__name__)

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20


class Direction(StrEnum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


def auto_id() -> str:
    """Random 20-character document id, the same shape Firebase SDKs use."""
    return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))


def split_path(path: str) -> list[str]:
    """Split a slash-separated document/collection path into segments.

    Raises :class:`ValueError` for empty segments.
    """
    segments = path.strip("/").split("/")
    if not segments or any(not segment for segment in segments):
        raise ValueError(f"invalid Firestore path: {path!r}")
    return segments


# ------------------------------------------------------------------
# Typed value codec
# ------------------------------------------------------------------


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore typed value.

    ``SERVER_TIMESTAMP`` cannot be encoded; callers turn it into a field
    transform (see :func:`build_create_write`).
    """
    if value is SERVER_TIMESTAMP:
        raise ValueError("SERVER_TIMESTAMP must be sent as a field transform")
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        if math.isnan(value):
            return {"doubleValue": "NaN"}
        if math.isinf(value):
            return {"doubleValue": "Infinity" if value > 0 else "-Infinity"}
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Encode a mapping of field name to Python value."""
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: Mapping[str, Any]) -> Any:
    """Decode one Firestore typed value into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return str(value["stringValue"])
    if "bytesValue" in value:
        # Kept base64-encoded, as delivered.
        return str(value["bytesValue"])
    if "referenceValue" in value:
        return str(value["referenceValue"])
    if "geoPointValue" in value:
        point = value["geoPointValue"] or {}
        return {"latitude": float(point.get("latitude", 0.0)), "longitude": float(point.get("longitude", 0.0))}
    if "arrayValue" in value:
        items = (value["arrayValue"] or {}).get("values") or []
        return [decode_value(item) for item in items]
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields") or {})
    raise ValueError(f"unknown Firestore value type: {sorted(value)}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Decode a Firestore ``fields`` object."""
    return {str(key): decode_value(value) for key, value in fields.items()}


def decode_document(payload: Mapping[str, Any], *, documents_root: str) -> Document:
    """Build a :class:`Document` from a REST ``Document`` resource."""
    name = str(payload.get("name", ""))
    prefix = documents_root.rstrip("/") + "/"
    path = name[len(prefix) :] if name.startswith(prefix) else name
    return Document.model_validate(
        {
            "id": path.rpartition("/")[2],
            "path": path,
            "data": decode_fields(payload.get("fields") or {}),
            "createTime": payload.get("createTime"),
            "updateTime": payload.get("updateTime"),
            "raw": dict(payload),
        }
    )


# ------------------------------------------------------------------
# Request builders
# ------------------------------------------------------------------


def build_ordered_query(
    collection_path: str,
    *,
    order_field: str,
    direction: Direction,
) -> tuple[str, dict[str, Any]]:
    """Build the ``(parent, body)`` pair of an ordered collection query.

    ``parent`` is the document path the collection lives under, empty for
    a root collection.
    """
    segments = split_path(collection_path)
    if len(segments) % 2 != 1:
        raise ValueError(f"not a collection path: {collection_path!r}")
    parent = "/".join(segments[:-1])
    body = {
        "structuredQuery": {
            "from": [{"collectionId": segments[-1]}],
            "orderBy": [
                {"field": {"fieldPath": order_field}, "direction": str(direction)},
            ],
        }
    }
    return parent, body


def build_create_write(
    config: TailorConfig,
    collection_path: str,
    fields: Mapping[str, Any],
    *,
    document_id: str | None = None,
) -> tuple[str, dict[str, Any]]:
    """Build the ``(document_id, commit_body)`` pair creating one document.

    Fields set to ``SERVER_TIMESTAMP`` become ``REQUEST_TIME`` transforms.
    The precondition ``exists=false`` makes an id collision fail instead
    of overwriting.
    """
    segments = split_path(collection_path)
    if len(segments) % 2 != 1:
        raise ValueError(f"not a collection path: {collection_path!r}")
    doc_id = document_id or auto_id()

    plain = {key: value for key, value in fields.items() if value is not SERVER_TIMESTAMP}
    transforms = [
        {"fieldPath": key, "setToServerValue": "REQUEST_TIME"}
        for key, value in fields.items()
        if value is SERVER_TIMESTAMP
    ]

    write: dict[str, Any] = {
        "update": {
            "name": f"{config.documents_root}/{'/'.join(segments)}/{doc_id}",
            "fields": encode_fields(plain),
        },
        "currentDocument": {"exists": False},
    }
    if transforms:
        write["updateTransforms"] = transforms
    return doc_id, {"writes": [write]}


# ------------------------------------------------------------------
# Calls
# ------------------------------------------------------------------


async def run_ordered_query(
    config: TailorConfig,
    transport: Transport,
    id_token: str,
    collection_path: str,
    *,
    order_field: str,
    direction: Direction,
) -> list[Document]:
    """Read a whole collection, ordered by *order_field*."""
    parent, body = build_ordered_query(collection_path, order_field=order_field, direction=direction)
    resource = config.documents_root + (f"/{parent}" if parent else "")
    endpoint = f"/{resource}:runQuery"
    response = await transport.request_json(
        "POST",
        f"{config.firestore_base_url}{endpoint}",
        endpoint=endpoint,
        json_body=body,
        bearer=id_token,
    )
    items = response if isinstance(response, list) else []
    documents: list[Document] = []
    for item in items:
        # An empty result is a single element carrying only readTime.
        payload = item.get("document") if isinstance(item, dict) else None
        if isinstance(payload, dict):
            documents.append(decode_document(payload, documents_root=config.documents_root))
    _logger.debug("runQuery path=%s returned %d documents", collection_path, len(documents))
    return documents


async def commit_create(
    config: TailorConfig,
    transport: Transport,
    id_token: str,
    collection_path: str,
    fields: Mapping[str, Any],
) -> str:
    """Create one document and return its id once the commit succeeded."""
    doc_id, body = build_create_write(config, collection_path, fields)
    endpoint = f"/{config.documents_root}:commit"
    response = await transport.request_json(
        "POST",
        f"{config.firestore_base_url}{endpoint}",
        endpoint=endpoint,
        json_body=body,
        bearer=id_token,
    )
    results = response.get("writeResults") if isinstance(response, dict) else None
    if not isinstance(results, list) or not results:
        raise TailorApiError(
            f"commit for {collection_path}/{doc_id} returned no write result",
            code="no_write_result",
            endpoint=endpoint,
        )
    _logger.debug("Created document path=%s/%s commit_time=%s", collection_path, doc_id, response.get("commitTime"))
    return doc_id
