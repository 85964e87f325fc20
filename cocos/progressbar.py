"""Terminal progress bar for streaming files to and from an agent."""

from __future__ import annotations

import io
import os
import sys
from dataclasses import dataclass
from functools import partial
from typing import Any, BinaryIO, Callable, Iterable, Optional, Protocol, TextIO

from termcolor import colored

__all__ = [
    "ProgressError",
    "AlgoRequest",
    "DataRequest",
    "ProgressBar",
]

BUFFER_SIZE = 1024 * 1024
_RIGHT_PART = "] [100%]"


class ProgressError(Exception):
    """More bytes were transferred than the declared total."""


@dataclass(frozen=True)
class AlgoRequest:
    """One chunk of an algorithm upload: either algorithm or requirements bytes."""

    algorithm: bytes = b""
    requirements: bytes = b""


@dataclass(frozen=True)
class DataRequest:
    """One chunk of a dataset upload."""

    dataset: bytes = b""
    filename: str = ""


class _UploadStream(Protocol):
    def send(self, request: Any) -> Any: ...

    def close_and_recv(self) -> Any: ...


def _terminal_width() -> int:
    return os.get_terminal_size(sys.stdout.fileno()).columns


def _file_size(file: BinaryIO) -> int:
    try:
        return os.fstat(file.fileno()).st_size
    except (AttributeError, OSError, ValueError):
        position = file.tell()
        end = file.seek(0, io.SEEK_END)
        file.seek(position)
        return end


class ProgressBar:
    """Renders transfer progress on a single, redrawn terminal line."""

    _warned = False

    def __init__(
        self,
        is_download: bool = False,
        terminal_width: Optional[Callable[[], int]] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.is_download = is_download
        self.terminal_width = terminal_width if terminal_width is not None else _terminal_width
        self.out = out
        self.number_of_bytes = 0
        self.uploaded_bytes = 0
        self.percentage = 0
        self.description = ""
        self.max_width = 0

    def _write(self, text: str) -> None:
        stream = self.out if self.out is not None else sys.stdout
        stream.write(text)
        stream.flush()

    def send_algorithm(
        self,
        description: str,
        algo: BinaryIO,
        req: Optional[BinaryIO],
        stream: _UploadStream,
    ) -> Any:
        """Upload the requirements (if any) and then the algorithm; return the reply."""
        total = _file_size(algo) + (_file_size(req) if req is not None else 0)
        self.reset(description, total)

        if req is not None:
            self._send_chunks(req, stream, lambda chunk: AlgoRequest(requirements=chunk))
        self._send_chunks(algo, stream, lambda chunk: AlgoRequest(algorithm=chunk))

        self._write("\n")
        return stream.close_and_recv()

    def send_data(
        self,
        description: str,
        filename: str,
        file: BinaryIO,
        stream: _UploadStream,
    ) -> Any:
        """Upload a dataset file under ``filename``; return the reply."""
        self.reset(description, _file_size(file))
        self._send_chunks(file, stream, lambda chunk: DataRequest(dataset=chunk, filename=filename))
        self._write("\n")
        return stream.close_and_recv()

    def _send_chunks(
        self,
        file: BinaryIO,
        stream: _UploadStream,
        make_request: Callable[[bytes], Any],
    ) -> None:
        for chunk in iter(partial(file.read, BUFFER_SIZE), b""):
            self.update_progress(len(chunk))
            stream.send(make_request(chunk))
            self.render()

    def receive_result(
        self,
        description: str,
        total_size: int,
        stream: Iterable[Any],
        result_file: BinaryIO,
    ) -> None:
        """Write the ``file`` bytes of every streamed response to ``result_file``."""
        self._receive(description, total_size, (response.file for response in stream), result_file)

    def receive_attestation(
        self,
        description: str,
        total_size: int,
        stream: Iterable[Any],
        attestation_file: BinaryIO,
    ) -> None:
        """Write the ``file`` bytes of every streamed response to ``attestation_file``."""
        self._receive(
            description, total_size, (response.file for response in stream), attestation_file
        )

    def _receive(
        self,
        description: str,
        total_size: int,
        chunks: Iterable[bytes],
        file: BinaryIO,
    ) -> None:
        self.reset(description, total_size)
        self.is_download = True

        for chunk in chunks:
            self.update_progress(len(chunk))
            file.write(chunk)
            self.render()

        self._write("\n")

    def reset(self, description: str, total_bytes: int) -> None:
        """Start counting a new transfer of ``total_bytes`` bytes."""
        self.uploaded_bytes = 0
        self.percentage = 0
        self.number_of_bytes = total_bytes
        self.description = description

    def update_progress(self, bytes_read: int) -> None:
        """Account for ``bytes_read`` more bytes transferred."""
        if self.uploaded_bytes + bytes_read > self.number_of_bytes:
            raise ProgressError(
                "progress update exceeds total bytes: attempted to add "
                f"{bytes_read} bytes, but only "
                f"{self.number_of_bytes - self.uploaded_bytes} bytes remain"
            )

        self.uploaded_bytes += bytes_read
        if self.number_of_bytes:
            self.percentage = self.uploaded_bytes * 100 // self.number_of_bytes
        else:
            self.percentage = 100

    def render(self) -> None:
        """Redraw the bar; warn once and skip drawing if the width is unknown."""
        try:
            width = self.terminal_width()
        except (OSError, ValueError):
            if not ProgressBar._warned:
                self._write(colored("Progress bar could not be rendered", "red") + "\n")
                ProgressBar._warned = True
            return

        self.max_width = max(self.max_width, width)
        self.clear()

        if "data" in self.description:
            emoji = "📦 "
        elif self.is_download:
            emoji = "📥 "
        else:
            emoji = "🚀 "

        prefix = (
            colored(emoji, "yellow")
            + colored(f"{self.description} ", "yellow")
            + colored("[", "blue")
        )

        progress_width = width - len(prefix.encode("utf-8")) - len(_RIGHT_PART)
        body = int(progress_width * self.percentage / 100) or 1
        padding = progress_width - body

        self._write(
            prefix
            + colored("█" * body, "green")
            + "░" * padding
            + colored("]", "blue")
            + colored(f" [{self.percentage}%]", "green")
        )

    def clear(self) -> None:
        """Blank out the widest line drawn so far."""
        self._write("\r" + " " * self.max_width + "\r")