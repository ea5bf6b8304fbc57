"""Boot and tear down the application under test.

The app is started through the shell, exactly like the runner command
``PORT=6001 ./bin/whatgotdone``, and considered ready as soon as its base URL
answers any HTTP response.
"""
from __future__ import annotations

import logging
import os
import shlex
import shutil
import signal
import socket
import subprocess
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
import pytest

from e2e.config import WebServerSettings

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1
STOP_TIMEOUT = 5.0


@dataclass
class WebServerError(Exception):
    """Raised when the application under test cannot be brought up."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


class WebServer:
    """
    Owns the application process for one test session.

    Usage:
        with WebServer(settings.web_server, settings.base_url) as server:
            ...  # app answers on settings.base_url
    """

    def __init__(self, config: WebServerSettings, base_url: str) -> None:
        self.config = config
        self.base_url = base_url
        self._process: Optional[subprocess.Popen] = None
        self.reused = False

    def __enter__(self) -> "WebServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def process(self) -> Optional[subprocess.Popen]:
        return self._process

    def executable(self) -> str:
        """First command token that is not a NAME=value assignment."""
        for token in shlex.split(self.config.command):
            name, sep, _ = token.partition("=")
            if sep and name.isidentifier():
                continue
            return token
        return ""

    def missing_executable(self) -> bool:
        exe = self.executable()
        if not exe:
            return True
        if os.sep in exe:
            path = exe if os.path.isabs(exe) else os.path.join(self.config.cwd, exe)
            return not os.path.exists(path)
        return shutil.which(exe) is None

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or "localhost"

    def is_port_in_use(self) -> bool:
        """TCP probe against every address the base URL host resolves to."""
        try:
            with socket.create_connection((self.host, self.config.port), timeout=1.0):
                return True
        except OSError:
            return False

    def unavailable_reason(self) -> Optional[str]:
        """Why the app can neither be launched nor reached, or None."""
        if self.missing_executable() and not self.is_port_in_use():
            return (
                f"{self.executable()} not found in {self.config.cwd}; build the app "
                "or start it yourself and set E2E_REUSE_EXISTING_SERVER=1"
            )
        return None

    def start(self) -> None:
        if self.is_port_in_use():
            if self.config.reuse_existing_server:
                logger.info("Reusing server already listening on port %d", self.config.port)
                self.reused = True
                return
            raise WebServerError(
                name="start",
                payload={"port": self.config.port},
                message=(
                    f"port {self.config.port} is already used; stop that process "
                    "or set E2E_REUSE_EXISTING_SERVER=1"
                ),
            )

        logger.info("Starting web server: %s (cwd=%s)", self.config.command, self.config.cwd)
        self._process = subprocess.Popen(
            self.config.command,
            shell=True,
            cwd=str(self.config.cwd),
            start_new_session=True,
        )
        self._wait_until_ready()

    def _wait_until_ready(self) -> None:
        deadline = time.monotonic() + self.config.timeout_ms / 1000
        while time.monotonic() < deadline:
            code = self._process.poll()
            if code is not None:
                self._process = None
                raise WebServerError(
                    name="start",
                    payload={"command": self.config.command, "exit_code": code},
                    message=f"process exited with code {code} before serving {self.base_url}",
                )
            try:
                response = httpx.get(self.base_url, timeout=1.0)
            except httpx.TransportError:
                time.sleep(POLL_INTERVAL)
                continue
            logger.info("Web server ready at %s (HTTP %d)", self.base_url, response.status_code)
            return

        self.stop()
        raise WebServerError(
            name="start",
            payload={"command": self.config.command, "timeout_ms": self.config.timeout_ms},
            message=f"timed out waiting for {self.base_url}",
        )

    def stop(self) -> None:
        if self._process is None:
            return
        process, self._process = self._process, None
        if process.poll() is not None:
            return
        logger.info("Stopping web server (pid=%d)", process.pid)
        # The shell and everything it spawned share one process group.
        self._signal(process, signal.SIGTERM)
        try:
            process.wait(timeout=STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("Web server did not exit after %.0fs, killing it", STOP_TIMEOUT)
            self._signal(process, signal.SIGKILL)
            process.wait()

    @staticmethod
    def _signal(process: subprocess.Popen, sig: int) -> None:
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            pass


def require_app(server: WebServer, ci: bool) -> None:
    """Skip the calling test when the app is unavailable, or fail on CI."""
    reason = server.unavailable_reason()
    if reason is None:
        return
    if ci:
        raise WebServerError(
            name="require_app",
            payload={"command": server.config.command, "port": server.config.port},
            message=reason,
        )
    pytest.skip(reason)
