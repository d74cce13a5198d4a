from __future__ import annotations

import subprocess
import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, List, Optional

from sloppyview.exceptions.errors import EngineExecutionError
from sloppyview.logging.logger import get_logger

log = get_logger("inference.bridge")

# Seconds a process gets to exit on its own after stdout closed, and after
# terminate(), before it is killed.
_REAP_GRACE = 10.0
_STDERR_TAIL = 40


class _Proc:
    """A spawned inference process plus the thread draining its stderr."""

    def __init__(self, popen: subprocess.Popen):
        self.popen = popen
        self.stderr_tail: Deque[str] = deque(maxlen=_STDERR_TAIL)
        self._drain = threading.Thread(target=self._drain_stderr, daemon=True)
        self._drain.start()

    def _drain_stderr(self) -> None:
        stream = self.popen.stderr
        if stream is None:
            return
        try:
            for line in stream:
                self.stderr_tail.append(line.rstrip("\r\n"))
        except (OSError, ValueError):
            # stream closed under us during release
            pass

    def release(self) -> Optional[int]:
        p = self.popen
        if p.stdin and not p.stdin.closed:
            try:
                p.stdin.close()
            except OSError:
                pass
        if p.poll() is None:
            try:
                p.wait(timeout=_REAP_GRACE)
            except subprocess.TimeoutExpired:
                p.terminate()
                try:
                    p.wait(timeout=_REAP_GRACE)
                except subprocess.TimeoutExpired:
                    p.kill()
                    p.wait()
        self._drain.join(timeout=_REAP_GRACE)
        if p.stdout and not p.stdout.closed:
            p.stdout.close()
        # a grandchild may still hold stderr open; the daemon drain owns it then
        if p.stderr and not p.stderr.closed and not self._drain.is_alive():
            p.stderr.close()
        return p.returncode


class InferenceBridge:
    """Runs the external NL->SQL binary (llama.cpp ``llama-cli`` style).

    One fresh process per call; nothing is pooled or reused. Every process is
    reaped before the call returns, on success and on error.
    """

    def __init__(self, max_tokens: int = 128, prime_max_tokens: int = 128):
        self.max_tokens = max_tokens
        self.prime_max_tokens = prime_max_tokens

    @staticmethod
    def command(
        cli_path: str,
        model_path: str,
        prompt: str,
        max_tokens: int,
        conversation: bool = False,
    ) -> List[str]:
        cmd = [cli_path, "-m", model_path, "-p", prompt, "-n", str(int(max_tokens))]
        if conversation:
            cmd.append("-cnv")
        return cmd

    @contextmanager
    def _spawn(self, cmd: List[str]) -> Iterator[_Proc]:
        try:
            popen = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            log.error("Inference process failed to start", extra={"cli": cmd[0], "error": str(e)})
            raise EngineExecutionError(f"Ai engine cannot start: {e}") from e

        proc = _Proc(popen)
        try:
            yield proc
        finally:
            code = proc.release()
            if code not in (0, None):
                log.warning(
                    "Inference process exited with status %s",
                    code,
                    extra={"cli": cmd[0], "stderr_tail": "\n".join(proc.stderr_tail)},
                )

    def run(self, cli_path: str, model_path: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Run one inference and return stdout, lines joined by a single space."""
        n = self.max_tokens if max_tokens is None else max_tokens
        cmd = self.command(cli_path, model_path, prompt, n)
        t0 = time.time()
        lines: List[str] = []

        with self._spawn(cmd) as proc:
            # never written to; EOF keeps interactive builds from waiting on input
            proc.popen.stdin.close()
            try:
                for line in proc.popen.stdout:
                    lines.append(line.rstrip("\r\n"))
            except (OSError, ValueError) as e:
                raise EngineExecutionError(f"failed reading inference output: {e}") from e

        log.info(
            "Inference finished",
            extra={
                "cli": cli_path,
                "max_tokens": n,
                "prompt_chars": len(prompt),
                "lines": len(lines),
                "elapsed_s": round(time.time() - t0, 3),
            },
        )
        return " ".join(lines)

    def prime(self, cli_path: str, model_path: str, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Warm-up call: start in conversation mode, read one line, dispose."""
        n = self.prime_max_tokens if max_tokens is None else max_tokens
        cmd = self.command(cli_path, model_path, prompt, n, conversation=True)
        with self._spawn(cmd) as proc:
            try:
                first = proc.popen.stdout.readline()
            except (OSError, ValueError) as e:
                raise EngineExecutionError(f"failed reading inference output: {e}") from e
            if proc.popen.poll() is None:
                proc.popen.terminate()
        log.info("Inference process primed", extra={"cli": cli_path, "first_line": first[:200]})
        return first.rstrip("\r\n")
