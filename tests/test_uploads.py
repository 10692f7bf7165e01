"""
Test: Submission file encoding.
"""
import base64
import io
import pytest
from werkzeug.datastructures import FileStorage

from projectflow.uploads import encode_bytes, encode_upload, reference_file


class TestEncodeBytes:
    def test_data_url(self):
        result = encode_bytes("notes.txt", b"hello")
        assert result["fileName"] == "notes.txt"
        assert result["fileUrl"] == "data:text/plain;base64," + base64.b64encode(b"hello").decode()

    def test_sanitizes_name(self):
        assert encode_bytes("../../etc/passwd", b"x")["fileName"] == "etc_passwd"

    def test_empty_name_fallback(self):
        assert encode_bytes("", b"x")["fileName"] == "upload"

    def test_explicit_mimetype(self):
        assert encode_bytes("scan", b"x", "image/png")["fileUrl"].startswith("data:image/png;base64,")

    def test_size_limit(self):
        with pytest.raises(ValueError):
            encode_bytes("big.bin", b"x" * 11, max_bytes=10)


class TestEncodeUpload:
    def test_file_storage(self):
        upload = FileStorage(stream=io.BytesIO(b"%PDF-1.4"), filename="report.pdf",
                             content_type="application/pdf")
        result = encode_upload(upload)
        assert result["fileName"] == "report.pdf"
        assert result["fileUrl"].startswith("data:application/pdf;base64,")

    def test_missing_file(self):
        with pytest.raises(ValueError):
            encode_upload(None)


class TestReferenceFile:
    def test_http_url(self):
        assert reference_file("a.pdf", "https://files.example.com/a.pdf") == {
            "fileName": "a.pdf", "fileUrl": "https://files.example.com/a.pdf",
        }

    def test_relative_path(self):
        assert reference_file("a.pdf", "/uploads/a.pdf")["fileUrl"] == "/uploads/a.pdf"

    def test_rejects_other_schemes(self):
        with pytest.raises(ValueError):
            reference_file("a.pdf", "javascript:alert(1)")

    def test_requires_both_fields(self):
        with pytest.raises(ValueError):
            reference_file("", "/uploads/a.pdf")
