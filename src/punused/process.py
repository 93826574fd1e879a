"""Stopping the language server process."""

import os
import signal

import trio


def signal_group(sp: "trio.Process", sig: int) -> None:
    """Send a signal to the process group the server was started in."""
    gid = os.getpgid(sp.pid)
    assert gid != os.getpgid(0)
    os.killpg(gid, sig)


async def wait_then_kill(sp: "trio.Process", grace: float = 1.0) -> None:
    """Give a process time to exit on its own, then terminate its group.

    gopls spawns helpers (``go list``, ``go env``) of its own, so signals go
    to the whole group rather than just the server.
    """
    with trio.move_on_after(grace):
        await sp.wait()
    if sp.returncode is not None:
        return

    for sig in (signal.SIGTERM, signal.SIGKILL):
        try:
            signal_group(sp, sig)
        except ProcessLookupError:
            pass
        with trio.move_on_after(grace):
            await sp.wait()
        if sp.returncode is not None:
            return

    raise RuntimeError(
        f"Could not kill language server with pid {sp.pid}. Something has gone seriously wrong."
    )
