from __future__ import annotations

import os
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import Callable, Optional

CHUNK_SIZE = 64 * 1024


def tail_text(path: Path, max_lines: int = 200) -> str:
    if not path.exists():
        return ""
    with path.open("r", encoding="utf-8", errors="ignore") as handle:
        return "".join(deque(handle, maxlen=max_lines))


class FFmpegPipe:
    """ffmpeg fed through stdin whose stdout is drained in chunks on a reader thread.

    stderr is streamed to ``ffmpeg-stderr.log`` inside ``workdir``.
    """

    def __init__(self, cmd: list[str], workdir: Path, on_chunk: Callable[[bytes], None]) -> None:
        if not cmd or not cmd[0]:
            raise ValueError(f"Invalid ffmpeg command: {cmd!r}")
        self.cmd = list(cmd)
        self.workdir = workdir
        self.stderr_path = workdir / "ffmpeg-stderr.log"
        self._on_chunk = on_chunk
        self._process: Optional[subprocess.Popen] = None
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        self.workdir.mkdir(parents=True, exist_ok=True)
        self._process = subprocess.Popen(
            self.cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=0,
            env=os.environ.copy(),
            cwd=str(self.workdir),
            shell=False,
        )
        process = self._process

        def _read_stdout() -> None:
            assert process.stdout is not None
            for chunk in iter(lambda: process.stdout.read(CHUNK_SIZE), b""):
                self._on_chunk(chunk)

        def _read_stderr() -> None:
            assert process.stderr is not None
            with self.stderr_path.open("ab") as stderr_file:
                for line in process.stderr:
                    stderr_file.write(line)
                    stderr_file.flush()

        self._threads = [
            threading.Thread(target=_read_stdout, daemon=True),
            threading.Thread(target=_read_stderr, daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def write(self, data: bytes) -> None:
        if self._process is None or self._process.stdin is None:
            raise BrokenPipeError("ffmpeg process is not running")
        view = memoryview(data)
        while view:
            written = self._process.stdin.write(view)
            view = view[written or 0:]

    def close(self, timeout_sec: float | None = None) -> tuple[Optional[int], bool]:
        """Close stdin and wait for exit. Returns ``(returncode, timed_out)``."""
        if self._process is None:
            return None, False
        timed_out = False
        try:
            if self._process.stdin and not self._process.stdin.closed:
                self._process.stdin.close()
        except BrokenPipeError:
            pass
        try:
            returncode = self._process.wait(timeout=timeout_sec)
        except subprocess.TimeoutExpired:
            timed_out = True
            self.kill()
            returncode = self._process.returncode
        self._join()
        return returncode, timed_out

    def kill(self) -> None:
        if self._process is None:
            return
        if self._process.poll() is None:
            self._process.kill()
            self._process.wait()
        self._join()

    def stderr_tail(self, max_lines: int = 40) -> str:
        return tail_text(self.stderr_path, max_lines=max_lines)

    def _join(self) -> None:
        for thread in self._threads:
            thread.join(timeout=5)
