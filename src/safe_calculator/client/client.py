"""TCP client."""
from collections import defaultdict, deque
import codecs
from pathlib import Path
import socket
import tarfile
import tempfile
from typing import Callable, Deque, Dict, List, Union
import zipfile

import py7zr
from pydantic import BaseModel, ConfigDict, Field, FilePath, IPvAnyAddress

from safe_calculator.common.logger import logger
from safe_calculator.common.operations import BatchReport, OperationFailure, OperationRequest, OperationResult

# Separators written by the server between an expression and its outcome
RESULT_MARKER = " = "
ERROR_MARKER = " -> ERROR: "


def _read_zip(archive_path: Path) -> str:
    with zipfile.ZipFile(archive_path, "r") as zf:
        names = [name for name in zf.namelist() if name.endswith(".txt")]
        if not names:
            raise ValueError("📄❌ No .txt file found in zip archive")
        return zf.read(names[0]).decode("utf-8")


def _read_tar_xz(archive_path: Path) -> str:
    with tarfile.open(archive_path, "r:xz") as tf:
        members = [m for m in tf.getmembers() if m.isfile() and m.name.endswith(".txt")]
        if not members:
            raise ValueError("📄❌ No .txt file found in tar.xz archive")
        return tf.extractfile(members[0]).read().decode("utf-8")


def _read_7z(archive_path: Path) -> str:
    # py7zr only extracts to disk
    with tempfile.TemporaryDirectory() as tmpdir, py7zr.SevenZipFile(archive_path, mode="r") as archive:
        names = [name for name in archive.getnames() if name.endswith(".txt")]
        if not names:
            raise ValueError("📄❌ No .txt file found in 7z archive")
        archive.extract(path=tmpdir, targets=[names[0]])
        return (Path(tmpdir) / names[0]).read_text(encoding="utf-8")


ARCHIVE_READERS: Dict[str, Callable[[Path], str]] = {
    ".zip": _read_zip,
    ".tar.xz": _read_tar_xz,
    ".7z": _read_7z,
}


class ArithmeticClient(BaseModel):
    """
    TCP client sending a batch of arithmetic expressions to the server.

    The TCP client:
    - reads one expression per line from a plain text file or the first .txt of an archive
    - sends the expressions to the server over a TCP socket
    - writes the server reply ("<expr> = <value>" or "<expr> -> ERROR: <Kind>: <message>") to an output file
    - parses the reply back into OperationResult / OperationFailure models
    """

    # Make the Pydantic instance immutable (read-only), to prevent errors
    # that could be caused by changes to the network configuration during execution.
    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=9000, ge=1, le=65535, description="Server TCP port")

    def read_expressions(self, input_file: FilePath) -> str:
        """
        Load the raw text to send, from a plain text file or an archive.

        :param FilePath input_file: Path to the input file or archive

        :return: Raw text, one expression per line
        :rtype: str
        :raises ValueError: If the archive format is unsupported or contains no .txt file
        """
        if input_file.suffix == ".txt":
            return input_file.read_text(encoding="utf-8")
        return self._extract_archive(input_file)

    @staticmethod
    def build_requests(content: str) -> List[OperationRequest]:
        """
        Number the non-empty lines the way the server does.

        :param str content: Raw text, one expression per line

        :return: One request per non-empty line, numbered from 1
        :rtype: List[OperationRequest]
        """
        expressions = [line.strip() for line in content.splitlines() if line.strip()]
        return [OperationRequest(expression=expr, line=number) for number, expr in enumerate(expressions, start=1)]

    @staticmethod
    def parse_reply(requests: List[OperationRequest], reply: str) -> BatchReport:
        """
        Parse the server reply into results and failures.

        The server writes lines in completion order, so each reply line is
        matched back to the first request with the same expression that has
        not been matched yet.

        :param List[OperationRequest] requests: Requests that were sent
        :param str reply: Text received from the server

        :return: Report with results and failures ordered by input line
        :rtype: BatchReport
        :raises ValueError: If a line is not a result line or names an expression that was not sent
        """
        pending: Dict[str, Deque[int]] = defaultdict(deque)
        for request in requests:
            pending[request.expression].append(request.line)

        report = BatchReport()
        for text in reply.splitlines():
            if not text.strip():
                continue

            outcome: Union[OperationResult, OperationFailure]
            if ERROR_MARKER in text:
                expression, _, error = text.partition(ERROR_MARKER)
                kind, _, _ = error.partition(": ")
                if not pending[expression]:
                    raise ValueError(f"Unexpected expression in server reply: {expression!r}")
                outcome = OperationFailure(
                    line=pending[expression].popleft(), expression=expression, kind=kind, error=error
                )
                report.failures.append(outcome)
            else:
                expression, separator, value = text.rpartition(RESULT_MARKER)
                if not separator:
                    raise ValueError(f"Unrecognized line in server reply: {text!r}")
                if not pending[expression]:
                    raise ValueError(f"Unexpected expression in server reply: {expression!r}")
                outcome = OperationResult(line=pending[expression].popleft(), expression=expression, result=value)
                report.results.append(outcome)

        report.results.sort(key=lambda result: result.line)
        report.failures.sort(key=lambda failure: failure.line)
        return report

    def send_file(
        self,
        input_file: FilePath,
        output_file: Path,
    ) -> BatchReport:
        """
        Send an input file containing arithmetic expressions to the server and write the computed results to an output file.

        :param FilePath input_file: Path to the input file or archive
        :param Path output_file: Path where results will be written

        :return: Parsed results and failures
        :rtype: BatchReport
        :raises ValueError: If the archive format is unsupported or contains no .txt file
        """
        content = self.read_expressions(input_file)
        requests = self.build_requests(content)
        logger.info(f"📤 Sending {len(requests)} expression(s) to {self.host}:{self.port}")

        # A multi-byte character can be split across two chunks
        decoder = codecs.getincrementaldecoder("utf-8")()
        received: List[str] = []

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.connect((str(self.host), self.port))
            s.sendall("\n".join(request.expression for request in requests).encode())
            # Signal that no more data will be sent
            s.shutdown(socket.SHUT_WR)

            with output_file.open("w", encoding="utf-8") as f_out:
                while True:
                    # recv() returns b"" once the server has closed the connection
                    chunk = s.recv(4096)
                    text = decoder.decode(chunk, final=not chunk)
                    received.append(text)
                    # Flushing keeps partial results on disk if the process is interrupted
                    f_out.write(text)
                    f_out.flush()
                    if not chunk:
                        break

        report = self.parse_reply(requests, "".join(received))
        if report.failures:
            logger.warning(f"📥 {report.summary()}")
        else:
            logger.info(f"📥 {report.summary()}")
        logger.info(f"📥 Results written to {output_file}")
        return report

    def _extract_archive(self, archive_path: FilePath) -> str:
        """
        Read the first .txt file found in a supported archive (.zip, .tar.xz, .7z).

        :param FilePath archive_path: Path to the archive file

        :return: Content of the .txt file
        :rtype: str
        :raises ValueError: If no .txt file is found or format is unsupported
        """
        archive_format = archive_path.suffix
        if archive_path.suffixes[-2:] == [".tar", ".xz"]:
            archive_format = ".tar.xz"
        reader = ARCHIVE_READERS.get(archive_format)
        if reader is None:
            raise ValueError(f"📄❌ Unsupported archive format: {archive_path.suffix}")
        return reader(archive_path)
