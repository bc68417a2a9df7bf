"""
Subprocess runner — the single place install steps spawn processes.

Output is not captured: the child inherits stdin/stdout/stderr so the
operator sees the task engine's output unmodified and can answer any
prompt it raises. The runner polls the child so a cancellation event
can stop it mid-step.
"""

from __future__ import annotations

import logging
import subprocess
import threading

from nrcli.core.errors import ExecutionCancelled

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1
_TERMINATE_GRACE = 5.0


def run_streaming(
    cmd: list[str],
    *,
    env: dict[str, str] | None = None,
    cwd: str | None = None,
    cancel_event: threading.Event | None = None,
    step_name: str | None = None,
) -> int:
    """Run ``cmd`` to completion and return its exit code.

    Raises:
        ExecutionCancelled: ``cancel_event`` was set, or the operator
            interrupted, while the child was running. The child is
            terminated first; an interrupt is chained as the cause.
        OSError: The command could not be started.
    """
    logger.debug("Executing: %s (cwd=%s)", cmd, cwd)
    proc = subprocess.Popen(cmd, env=env, cwd=cwd)
    try:
        while True:
            try:
                return proc.wait(timeout=_POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    _stop(proc)
                    raise ExecutionCancelled(step_name)
    except KeyboardInterrupt as e:
        _stop(proc)
        raise ExecutionCancelled(step_name) from e


def _stop(proc: subprocess.Popen) -> None:
    """Terminate, then kill if the child ignores SIGTERM."""
    if proc.poll() is not None:
        return
    logger.info("Stopping pid %d", proc.pid)
    proc.terminate()
    try:
        proc.wait(timeout=_TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
