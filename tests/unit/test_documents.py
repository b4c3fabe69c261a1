"""
Tests for the backup document format (backup/documents.py).
"""

import gzip
import io
import json
from decimal import Decimal

import pytest
from boto3.dynamodb.types import Binary
from botocore.response import StreamingBody

from dynamodb_mapper.backup.documents import (
    backup_document_name,
    decode_page,
    encode_page,
    open_page_writer,
    parse_backup_document_name,
    read_pages,
)


def streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


class TestDocumentNames:
    """Test the naming contract between backup and restore."""

    @pytest.mark.parametrize("table_name,target_path,compress,expected", [
        ("Users", None, True, "Users.json.gz"),
        ("Users", None, False, "Users.json"),
        ("Users", "daily/2024-01-01", True, "daily/2024-01-01/Users.json.gz"),
        ("Users", "daily/", False, "daily/Users.json"),
    ])
    def test_backup_document_name(self, table_name, target_path, compress, expected):
        assert backup_document_name(table_name, target_path, compress) == expected

    @pytest.mark.parametrize("table_name", ["Users", "test_Sensor.Readings", "a-b_c"])
    @pytest.mark.parametrize("compress", [True, False])
    def test_name_inverts(self, table_name, compress):
        name = backup_document_name(table_name, "some/path", compress)

        assert parse_backup_document_name(name) == (table_name, compress)

    def test_compressed_suffix_is_case_insensitive(self):
        assert parse_backup_document_name("backups/Users.JSON.GZ") == ("Users", True)

    @pytest.mark.parametrize("key", ["backups/notes.txt", "backups/", "Users.gz", ".json", "stats.csv"])
    def test_non_backup_keys(self, key):
        assert parse_backup_document_name(key) is None


class TestPageCodec:
    """Test page encoding of DynamoDB items."""

    def test_one_line_per_page(self):
        line = encode_page([{'PartitionKey': 'p', 'RowKey': 'r'}])

        assert "\n" not in line
        assert json.loads(line) == [{'PartitionKey': {'S': 'p'}, 'RowKey': {'S': 'r'}}]

    def test_types_survive(self):
        item = {
            'PartitionKey': 'p',
            'RowKey': 'r',
            'count': Decimal('42'),
            'ratio': Decimal('0.125'),
            'flag': True,
            'nothing': None,
            'tags': {'a', 'b'},
            'blob': Binary(b'\x00\xff'),
            'nested': {'list': [Decimal('1'), 'two', {'deep': Binary(b'\x01')}]},
        }

        decoded = decode_page(encode_page([item]))

        assert decoded == [item]

    def test_binary_is_base64(self):
        line = encode_page([{'blob': Binary(b'hello')}])

        assert json.loads(line) == [{'blob': {'B': 'aGVsbG8='}}]

    def test_non_array_page_rejected(self):
        with pytest.raises(ValueError):
            decode_page('{"PartitionKey": {"S": "p"}}')

    @pytest.mark.parametrize("line", [
        '[{"a": {"Q": "1"}}]',
        '[{"a": "plain"}]',
        '[{"a": {"S": "x", "N": "1"}}]',
        '[1]',
    ])
    def test_malformed_items_rejected(self, line):
        with pytest.raises(ValueError):
            decode_page(line)


class TestStreams:
    """Test writing and reading whole documents."""

    @pytest.mark.parametrize("compress", [True, False])
    def test_round_trip(self, compress):
        pages = [
            [{'PartitionKey': 'p', 'RowKey': str(i), 'n': Decimal(i)} for i in range(3)],
            [{'PartitionKey': 'q', 'RowKey': '0'}],
        ]
        buffer = io.BytesIO()

        with open_page_writer(buffer, compress) as writer:
            for page in pages:
                writer.write_page(page)

        assert writer.page_count == 2
        assert writer.item_count == 4
        assert list(read_pages(streaming_body(buffer.getvalue()), compress)) == pages

    def test_compressed_output_is_gzip(self):
        buffer = io.BytesIO()

        with open_page_writer(buffer, True) as writer:
            writer.write_page([{'PartitionKey': 'p', 'RowKey': 'r'}])

        lines = gzip.decompress(buffer.getvalue()).decode('utf-8').splitlines()
        assert len(lines) == 1

    @pytest.mark.parametrize("compress", [True, False])
    def test_empty_document(self, compress):
        buffer = io.BytesIO()

        with open_page_writer(buffer, compress):
            pass

        assert list(read_pages(streaming_body(buffer.getvalue()), compress)) == []

    def test_corrupt_gzip(self):
        with pytest.raises(OSError):
            list(read_pages(streaming_body(b"not gzip at all"), True))

    def test_corrupt_json(self):
        with pytest.raises(ValueError):
            list(read_pages(streaming_body(b"[{broken\n"), False))

    def test_truncated_gzip(self):
        data = gzip.compress(b"[]\n" * 50)[:-12]

        with pytest.raises(ValueError, match="gzip"):
            list(read_pages(streaming_body(data), True))

    def test_corrupt_deflate_data(self):
        data = gzip.compress(b"[]\n" * 50)
        corrupt = data[:10] + b"\xff" * 20 + data[30:]

        with pytest.raises(ValueError, match="gzip"):
            list(read_pages(streaming_body(corrupt), True))
