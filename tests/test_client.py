"""Test class ArithmeticClient."""
import socket
import tarfile
import zipfile

import py7zr
from pydantic import ValidationError
import pytest

from safe_calculator.client.client import ArithmeticClient
from safe_calculator.common.errors import ErrorKind


def test_client_valid_config() -> None:
    """Check that a valid host and port correctly initialize the client."""
    client = ArithmeticClient(host="127.0.0.1", port=9000)
    assert str(client.host) == "127.0.0.1"
    assert client.port == 9000


def test_client_invalid_ip() -> None:
    """Ensure invalid IP addresses raise a ValidationError."""
    with pytest.raises(ValidationError):
        ArithmeticClient(host="999.999.999.999", port=9000)


def test_client_invalid_port() -> None:
    """Ensure ports outside valid range raise a ValidationError."""
    with pytest.raises(ValidationError):
        ArithmeticClient(host="127.0.0.1", port=70000)


def test_client_is_frozen() -> None:
    client = ArithmeticClient()
    with pytest.raises(ValidationError):
        client.port = 9001


def test_send_file_txt(tmp_path, monkeypatch) -> None:
    """Verify sending a plain text file writes the server reply to output."""
    input_file = tmp_path / "ops.txt"
    output_file = tmp_path / "results.txt"

    input_file.write_text("1+1\n-2*3\n")

    # Fake socket
    class FakeSocket:
        def __init__(self):
            self.calls = 0
            self.address = None

        def connect(self, addr):
            self.address = addr
            assert addr == ("127.0.0.1", 9000)

        def sendall(self, data):
            assert data == b"1+1\n-2*3"

        def shutdown(self, how):
            assert how == socket.SHUT_WR

        def recv(self, size):
            self.calls += 1
            if self.calls == 1:
                return b"1+1 = 2\n-2*3 = -6\n"
            return b""

        def close(self):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *args):
            pass

    monkeypatch.setattr(socket, "socket", lambda *a, **kw: FakeSocket())

    client = ArithmeticClient()
    report = client.send_file(input_file, output_file)

    assert output_file.read_text() == "1+1 = 2\n-2*3 = -6\n"
    assert [(result.line, result.result) for result in report.results] == [(1, 2.0), (2, -6.0)]
    assert report.failures == []


def test_read_expressions_txt(tmp_path) -> None:
    txt = tmp_path / "ops.txt"
    txt.write_text("(1+2)*3\n")
    assert ArithmeticClient().read_expressions(txt) == "(1+2)*3\n"


def test_extract_zip(tmp_path) -> None:
    """Check that a .zip archive can be extracted and read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("3+3\n")

    zip_path = tmp_path / "ops.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.write(txt, arcname="ops.txt")

    client = ArithmeticClient()
    assert client.read_expressions(zip_path) == "3+3\n"


def test_extract_tar_xz(tmp_path) -> None:
    """Check that a .tar.xz archive can be extracted and read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("4*4\n")

    tar_path = tmp_path / "ops.tar.xz"
    with tarfile.open(tar_path, "w:xz") as tf:
        tf.add(txt, arcname="ops.txt")

    client = ArithmeticClient()
    assert client.read_expressions(tar_path) == "4*4\n"


def test_extract_7z(tmp_path) -> None:
    """Check that a .7z archive can be extracted and read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("5-2\n")

    archive_path = tmp_path / "ops.7z"
    with py7zr.SevenZipFile(archive_path, "w") as archive:
        archive.write(txt, arcname="ops.txt")

    client = ArithmeticClient()
    assert client.read_expressions(archive_path) == "5-2\n"


def test_extract_archive_no_txt(tmp_path) -> None:
    """Verify that extraction fails if no .txt file exists in the archive."""
    zip_path = tmp_path / "empty.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.writestr("data.bin", b"\x00\x01")

    client = ArithmeticClient()

    with pytest.raises(ValueError):
        client._extract_archive(zip_path)


def test_extract_unsupported_format(tmp_path) -> None:
    """Ensure unsupported archive formats raise a ValueError."""
    file_path = tmp_path / "ops.rar"
    file_path.write_text("1+1")

    client = ArithmeticClient()

    with pytest.raises(ValueError):
        client._extract_archive(file_path)


def test_build_requests_numbers_non_empty_lines() -> None:
    """Requests are numbered like the server numbers its workers."""
    requests = ArithmeticClient.build_requests("1+1\n\n  2*2  \n")
    assert [(request.line, request.expression) for request in requests] == [(1, "1+1"), (2, "2*2")]


def test_parse_reply_results_and_failures() -> None:
    """Reply lines in completion order are matched back to their input lines."""
    requests = ArithmeticClient.build_requests("1/0\n2+2\n(1\n1/0\n0.5*3\n")
    reply = (
        "2+2 = 4\n"
        "1/0 -> ERROR: DivideByZero: Division by zero\n"
        "0.5*3 = 1.5\n"
        "(1 -> ERROR: MismatchedParentheses: Unclosed parenthesis '('\n"
        "1/0 -> ERROR: DivideByZero: Division by zero\n"
    )

    report = ArithmeticClient.parse_reply(requests, reply)

    assert [(result.line, result.result) for result in report.results] == [(2, 4.0), (5, 1.5)]
    assert [(failure.line, failure.kind) for failure in report.failures] == [
        (1, ErrorKind.DIVIDE_BY_ZERO),
        (3, ErrorKind.MISMATCHED_PARENTHESES),
        (4, ErrorKind.DIVIDE_BY_ZERO),
    ]
    assert report.failures[0].error == "DivideByZero: Division by zero"
    assert report.failures_by_kind == {ErrorKind.DIVIDE_BY_ZERO: 2, ErrorKind.MISMATCHED_PARENTHESES: 1}
    assert report.summary() == "2 evaluated, 3 failed (DivideByZero: 2, MismatchedParentheses: 1)"


@pytest.mark.parametrize("reply", [
    "garbage\n",
    "3*3 = 9\n",
    "1+1 = 2\n1+1 = 2\n",
    "1+1 -> ERROR: Overflow: too big\n",
])
def test_parse_reply_rejects_unexpected_lines(reply: str) -> None:
    """Lines that do not answer a sent expression are rejected."""
    requests = ArithmeticClient.build_requests("1+1\n")
    with pytest.raises(ValueError):
        ArithmeticClient.parse_reply(requests, reply)
