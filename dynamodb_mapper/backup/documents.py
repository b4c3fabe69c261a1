"""
Backup Document Format

Naming contract between exporter and importer:

    {target_path/}{table_name}.json{.gz if compressed}

Body: JSON Lines, one line per exported page. Each line is a JSON array of
items in DynamoDB JSON (``TypeSerializer`` output) with binary values
base64-encoded, so numbers, sets and binaries survive the round trip exactly.
An empty table produces an empty document.
"""

import base64
import gzip
import json
import logging
import zlib
from contextlib import contextmanager
from decimal import DecimalException
from typing import Any, Dict, Iterator, List, Optional, Tuple

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSION = ".json"
COMPRESSED_EXTENSION = ".gz"

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


# =============================================================================
# Naming
# =============================================================================

def backup_document_name(table_name: str, target_path: Optional[str] = None, compress: bool = True) -> str:
    """Build the document name of a table backup.

    Examples:
        >>> backup_document_name("Users", "daily/2024-01-01")
        'daily/2024-01-01/Users.json.gz'
        >>> backup_document_name("Users", compress=False)
        'Users.json'
    """
    name = f"{table_name}{DOCUMENT_EXTENSION}"
    if target_path:
        name = f"{target_path.rstrip('/')}/{name}"
    if compress:
        name += COMPRESSED_EXTENSION
    return name


def parse_backup_document_name(document_name: str) -> Optional[Tuple[str, bool]]:
    """Invert ``backup_document_name``.

    Returns:
        (table_name, compressed), or None if the name is not a backup document
    """
    base_name = document_name.rsplit('/', 1)[-1]

    compressed = base_name.lower().endswith(COMPRESSED_EXTENSION)
    if compressed:
        base_name = base_name[:-len(COMPRESSED_EXTENSION)]

    if not base_name.lower().endswith(DOCUMENT_EXTENSION):
        return None
    table_name = base_name[:-len(DOCUMENT_EXTENSION)]
    if not table_name:
        return None
    return table_name, compressed


# =============================================================================
# Page encoding
# =============================================================================

def _encode_attribute(value: Dict[str, Any]) -> Dict[str, Any]:
    (type_tag, payload), = value.items()
    if type_tag == 'B':
        raw = payload.value if isinstance(payload, Binary) else bytes(payload)
        return {'B': base64.b64encode(raw).decode('ascii')}
    if type_tag == 'BS':
        return {'BS': [base64.b64encode(b.value if isinstance(b, Binary) else bytes(b)).decode('ascii') for b in payload]}
    if type_tag == 'M':
        return {'M': {k: _encode_attribute(v) for k, v in payload.items()}}
    if type_tag == 'L':
        return {'L': [_encode_attribute(v) for v in payload]}
    return value


def _decode_attribute(value: Dict[str, Any]) -> Dict[str, Any]:
    (type_tag, payload), = value.items()
    if type_tag == 'B':
        return {'B': base64.b64decode(payload)}
    if type_tag == 'BS':
        return {'BS': [base64.b64decode(b) for b in payload]}
    if type_tag == 'M':
        return {'M': {k: _decode_attribute(v) for k, v in payload.items()}}
    if type_tag == 'L':
        return {'L': [_decode_attribute(v) for v in payload]}
    return value


def encode_page(items: List[Dict[str, Any]]) -> str:
    """Serialize one page of DynamoDB items as a single JSON line (no newline)."""
    return json.dumps(
        [{name: _encode_attribute(_serializer.serialize(value)) for name, value in item.items()} for item in items],
        separators=(',', ':')
    )


def decode_page(line: str) -> List[Dict[str, Any]]:
    """Parse one JSON line back into DynamoDB items (Python types).

    Raises:
        ValueError: The line is not a page of items
    """
    page = json.loads(line)
    if not isinstance(page, list):
        raise ValueError(f"Backup page must be a JSON array, got {type(page).__name__}")
    try:
        return [
            {name: _deserializer.deserialize(_decode_attribute(value)) for name, value in item.items()}
            for item in page
        ]
    except (TypeError, AttributeError, KeyError, DecimalException) as e:
        # Unknown type tags, non-object items and unparsable numbers
        raise ValueError(f"Backup page holds a malformed item: {e!r}") from e


# =============================================================================
# Streams
# =============================================================================

class PageWriter:
    """Writes pages to a binary stream, one JSON line per page."""

    def __init__(self, stream):
        self._stream = stream
        self.page_count = 0
        self.item_count = 0

    def write_page(self, items: List[Dict[str, Any]]) -> None:
        self._stream.write(encode_page(items).encode('utf-8'))
        self._stream.write(b'\n')
        self.page_count += 1
        self.item_count += len(items)


@contextmanager
def open_page_writer(stream, compress: bool) -> Iterator[PageWriter]:
    """Wrap a binary output stream (gzip when ``compress``); the wrapper is closed on exit."""
    if not compress:
        yield PageWriter(stream)
        return

    with gzip.GzipFile(fileobj=stream, mode='wb') as compressed_stream:
        yield PageWriter(compressed_stream)


def _document_lines(stream, compressed: bool) -> Iterator[bytes]:
    if not compressed:
        yield from stream.iter_lines()
        return
    try:
        with gzip.GzipFile(fileobj=stream, mode='rb') as decompressed:
            yield from decompressed
    except (EOFError, zlib.error) as e:
        raise ValueError(f"Corrupt gzip stream: {e}") from e


def read_pages(stream, compressed: bool) -> Iterator[List[Dict[str, Any]]]:
    """
    Yield the pages of a backup document one at a time.

    Args:
        stream: Binary input stream (e.g. an S3 StreamingBody)
        compressed: Whether the stream is gzip-compressed

    Raises:
        ValueError: A line is not valid page JSON, or the gzip stream is
            truncated or its deflate data corrupt
        OSError: The stream is not gzip at all, or reading it failed
    """
    for line in _document_lines(stream, compressed):
        if line.strip():
            yield decode_page(line.decode('utf-8'))
