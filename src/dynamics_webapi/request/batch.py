"""
Batch request encoding

Builds the multipart/mixed body of an OData ``$batch`` request. Consecutive
non-GET parts share one change-set; GET parts stand alone. Parts are written
strictly in input order.
"""

import uuid
from typing import List, Optional, Sequence

import structlog

from ..config import Settings
from ..models import BatchRequest, BatchRequestPart
from ..utilities import EntityNameMap
from .composer import compose
from .headers import set_standard_headers
from .serializer import stringify_data

logger = structlog.get_logger(__name__)

CONTENT_ID_START = 100000

# headers written once per part or owned by the enclosing request
_SKIPPED_PART_HEADERS = ("Authorization", "Content-ID")


def convert_to_batch(
    parts: Sequence[BatchRequestPart],
    config: Settings,
    entity_names: Optional[EntityNameMap] = None,
) -> BatchRequest:
    """
    Encode batch parts into one ``$batch`` request.

    Args:
        parts: Method and request descriptor pairs, in execution order
        config: Client settings
        entity_names: Lookup for ``@odata.bind`` rewriting

    Returns:
        Batch headers and body

    Raises:
        ValidationError: If any part fails composition; nothing is encoded
    """
    batch_boundary = f"dwa_batch_{uuid.uuid4()}"

    batch_body: List[str] = []
    current_change_set: Optional[str] = None
    content_id = CONTENT_ID_START

    for part in parts:
        method = part.method.upper()
        is_get = method == "GET"
        request = compose(part.request, config, "executeBatch")

        if is_get and current_change_set:
            batch_body.append(f"\n--{current_change_set}--")
            current_change_set = None
            content_id = CONTENT_ID_START

        if not current_change_set:
            batch_body.append(f"\n--{batch_boundary}")

            if not is_get:
                current_change_set = f"changeset_{uuid.uuid4()}"
                batch_body.append(f"Content-Type: multipart/mixed;boundary={current_change_set}")

        if not is_get:
            batch_body.append(f"\n--{current_change_set}")

        batch_body.append("Content-Type: application/http")
        batch_body.append("Content-Transfer-Encoding: binary")

        if not is_get:
            if "Content-ID" in request.headers:
                content_id_value = request.headers["Content-ID"]
            else:
                content_id += 1
                content_id_value = str(content_id)
            batch_body.append(f"Content-ID: {content_id_value}")

        if request.path.startswith("$"):
            batch_body.append(f"\n{method} {request.path} HTTP/1.1")
        else:
            batch_body.append(f"\n{method} {config.web_api_url}{request.path} HTTP/1.1")

        if is_get:
            batch_body.append("Accept: application/json")
        else:
            batch_body.append("Content-Type: application/json")

        for name, value in request.headers.items():
            if name in _SKIPPED_PART_HEADERS:
                continue
            batch_body.append(f"{name}: {value}")

        payload = part.request.payload
        if not is_get and payload:
            batch_body.append(f"\n{stringify_data(payload, config, entity_names)}")

    if current_change_set:
        batch_body.append(f"\n--{current_change_set}--")

    batch_body.append(f"\n--{batch_boundary}--")

    headers = set_standard_headers()
    headers["Content-Type"] = f"multipart/mixed;boundary={batch_boundary}"

    logger.debug("Batch encoded", parts=len(parts), boundary=batch_boundary)

    return BatchRequest(headers=headers, body="\n".join(batch_body))
