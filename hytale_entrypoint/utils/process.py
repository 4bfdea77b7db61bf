"""
Subprocess helpers.  Every external command the entrypoint runs goes through a
``CommandRunner`` so tests can substitute a fake.
"""

import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        cmd: list[str],
        cwd: Optional[str] = None,
        on_output: Optional[Callable[[str], None]] = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """Blocking runner backed by :mod:`subprocess`.

    With *on_output* the combined stdout/stderr is streamed line by line as it
    arrives (the downloader prints its login prompt this way) and also
    collected into ``stdout``.  Without it the output is captured.
    """

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout

    def run(
        self,
        cmd: list[str],
        cwd: Optional[str] = None,
        on_output: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        try:
            if on_output is None:
                result = subprocess.run(
                    cmd,
                    cwd=cwd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=self.timeout,
                )
                return CommandResult(result.returncode, result.stdout, result.stderr)

            return self._stream(cmd, cwd, on_output)
        except subprocess.TimeoutExpired:
            return CommandResult(-1, stderr="[ERROR] Command timed out.")
        except FileNotFoundError:
            return CommandResult(-1, stderr=f"[ERROR] Command not found: {cmd[0]}")
        except PermissionError:
            return CommandResult(-1, stderr=f"[ERROR] Command not executable: {cmd[0]}")

    def _stream(
        self,
        cmd: list[str],
        cwd: Optional[str],
        on_output: Callable[[str], None],
    ) -> CommandResult:
        # The timeout is enforced by a timer that kills the child, which closes
        # the pipe and ends the read loop.  Grandchildren that inherited the
        # pipe would keep it open past the kill.
        lines = []
        timed_out = threading.Event()
        with subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        ) as proc:

            def _expire():
                timed_out.set()
                proc.kill()

            timer = None
            if self.timeout is not None:
                timer = threading.Timer(self.timeout, _expire)
                timer.daemon = True
                timer.start()
            try:
                if proc.stdout:
                    for line in proc.stdout:
                        line = line.rstrip("\n")
                        lines.append(line)
                        on_output(line)
                returncode = proc.wait()
            except BaseException:
                # Signals arrive here as SystemExit; never leave the child running.
                proc.kill()
                proc.wait()
                raise
            finally:
                if timer is not None:
                    timer.cancel()

        if timed_out.is_set():
            return CommandResult(-1, "\n".join(lines), "[ERROR] Command timed out.")
        return CommandResult(returncode, "\n".join(lines))
