#!/usr/bin/env python3
"""
Lightpanda Browser Manager

Owns the external Lightpanda process and the Playwright CDP connection to it.

Features:
- Process state and browser handle invalidated together
- Active health check (throwaway page) before each handle is reused
- Reconnect with exponential backoff
- Graceful shutdown plus a synchronous emergency kill

At most one process and one connected browser exist per manager. Only the
manager creates or destroys them; callers receive the handle from
ensure_browser() and must not cache it across jobs.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

from playwright.async_api import async_playwright, Browser, Playwright

logger = logging.getLogger(__name__)

READY_SIGNAL = "Listening"


class BrowserError(Exception):
    """Base class for browser lifecycle failures."""


class BrowserShuttingDownError(BrowserError):
    """Raised when a browser is requested while the manager drains."""


class BrowserBinaryNotFoundError(BrowserError):
    """Raised when no Lightpanda executable exists at any candidate path."""

    def __init__(self, searched: List[str]):
        self.searched = searched
        super().__init__(f"Lightpanda binary not found. Searched: {', '.join(searched)}")


class BrowserConnectionError(BrowserError):
    """Raised when the process could not be started or connected to."""


@dataclass
class HealthCheckResult:
    healthy: bool
    reason: Optional[str] = None


class BrowserManager:
    """
    Supervises one Lightpanda process and its CDP client.

    Usage:
        manager = BrowserManager()
        browser = await manager.ensure_browser()
        page = await browser.new_page()
        ...
        await manager.shutdown()
    """

    def __init__(
        self,
        binary_path: Optional[str] = None,
        host: str = "127.0.0.1",
        port: int = 9222,
        max_connection_attempts: int = 3,
        connect_timeout_ms: int = 10000,
        ready_timeout_seconds: float = 10.0,
        ready_settle_seconds: float = 2.0,
        health_check_timeout_seconds: float = 5.0,
        kill_grace_seconds: float = 1.0,
        backoff_base_seconds: float = 1.0,
    ):
        self.binary_path = binary_path
        self.host = host
        self.port = port
        self.max_connection_attempts = max_connection_attempts
        self.connect_timeout_ms = connect_timeout_ms
        self.ready_timeout_seconds = ready_timeout_seconds
        self.ready_settle_seconds = ready_settle_seconds
        self.health_check_timeout_seconds = health_check_timeout_seconds
        self.kill_grace_seconds = kill_grace_seconds
        self.backoff_base_seconds = backoff_base_seconds

        self.is_shutting_down = False
        self.last_health_check: Optional[datetime] = None

        self._browser: Optional[Browser] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._playwright: Optional[Playwright] = None
        self._ready: Optional[asyncio.Event] = None
        self._exit_task: Optional[asyncio.Task] = None
        self._tasks = set()

    @classmethod
    def from_config(cls, cfg) -> "BrowserManager":
        return cls(
            binary_path=cfg.LIGHTPANDA_PATH,
            host=cfg.LIGHTPANDA_HOST,
            port=cfg.LIGHTPANDA_PORT,
            max_connection_attempts=cfg.BROWSER_MAX_CONNECTION_ATTEMPTS,
            connect_timeout_ms=cfg.BROWSER_CONNECT_TIMEOUT_MS,
            ready_timeout_seconds=cfg.BROWSER_READY_TIMEOUT_SECONDS,
            ready_settle_seconds=cfg.BROWSER_READY_SETTLE_SECONDS,
            health_check_timeout_seconds=cfg.HEALTH_CHECK_TIMEOUT_SECONDS,
            kill_grace_seconds=cfg.KILL_GRACE_SECONDS,
        )

    @property
    def ws_endpoint(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser

    # === Binary discovery ===

    def candidate_paths(self) -> List[str]:
        """Ordered list of places the Lightpanda executable may live."""
        project_root = Path(__file__).resolve().parent.parent
        cwd = Path.cwd()
        paths = []
        for explicit in (self.binary_path, os.getenv("LIGHTPANDA_PATH")):
            if explicit and explicit not in paths:
                paths.append(explicit)
        paths.extend([
            str(project_root / "bin" / "lightpanda"),
            str(cwd / "bin" / "lightpanda"),
            str(Path.home() / ".lightpanda" / "lightpanda"),
            "/opt/render/.lightpanda/lightpanda",
            str(cwd / "lightpanda"),
            "/usr/local/bin/lightpanda",
        ])
        return paths

    def get_lightpanda_path(self) -> str:
        searched = self.candidate_paths()
        logger.debug("Searching for Lightpanda binary...")
        for path in searched:
            exists = os.path.exists(path)
            logger.debug(f"  Checking: {path} - exists: {exists}")
            if exists:
                logger.info(f"Found Lightpanda at: {path}")
                return path
        raise BrowserBinaryNotFoundError(searched)

    # === Public API ===

    async def health_check(self) -> HealthCheckResult:
        """Probe the connection by opening and closing a page."""
        browser = self._browser
        if browser is None:
            return HealthCheckResult(False, "No browser instance")

        if not browser.is_connected():
            return HealthCheckResult(False, "Browser disconnected")

        try:
            page = await asyncio.wait_for(browser.new_page(), timeout=self.health_check_timeout_seconds)
            await asyncio.wait_for(page.close(), timeout=self.health_check_timeout_seconds)
        except asyncio.TimeoutError:
            return HealthCheckResult(False, "Health check timeout")
        except Exception as e:
            return HealthCheckResult(False, str(e) or e.__class__.__name__)

        self.last_health_check = datetime.now()
        return HealthCheckResult(True)

    async def ensure_browser(self) -> Browser:
        """
        Return a connected, responsive browser.

        Raises:
            BrowserShuttingDownError: the manager is draining
            BrowserConnectionError: every connection attempt failed
        """
        if self.is_shutting_down:
            raise BrowserShuttingDownError("Browser manager is shutting down")

        if self._browser is not None:
            health = await self.health_check()
            if health.healthy:
                return self._browser
            logger.warning(f"Browser unhealthy: {health.reason}. Reconnecting...")
            await self.cleanup()

        return await self._connect_with_retry()

    async def cleanup(self):
        """Close the handle and stop the process. Safe to call repeatedly."""
        browser, self._browser = self._browser, None
        process, self._process = self._process, None

        if browser is None and process is None:
            return

        logger.info("Cleaning up browser resources...")

        if browser is not None:
            try:
                await asyncio.wait_for(browser.close(), timeout=self.health_check_timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("Browser did not close in time, stopping the process anyway")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if process is not None and process.returncode is None:
            try:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
                except asyncio.TimeoutError:
                    logger.warning("Lightpanda ignored SIGTERM, sending SIGKILL")
                    process.kill()
                    await process.wait()
            except ProcessLookupError:
                pass
            except Exception as e:
                logger.warning(f"Error killing Lightpanda: {e}")

    async def shutdown(self):
        """Stop serving browsers and release everything."""
        logger.info("Browser manager shutting down...")
        self.is_shutting_down = True
        await self.cleanup()

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None

    def force_kill(self):
        """Kill the process without an event loop. Used by the crash hook."""
        process = self._process
        self._process = None
        self._browser = None
        if process is not None and process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass

    def get_status(self) -> Dict[str, Any]:
        return {
            "browser_connected": bool(self._browser is not None and self._browser.is_connected()),
            "process_running": self._process is not None,
            "last_health_check": self.last_health_check.isoformat() if self.last_health_check else None,
            "is_shutting_down": self.is_shutting_down,
        }

    # === Connection ===

    async def _connect_with_retry(self) -> Browser:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_connection_attempts + 1):
            try:
                logger.info(f"Browser connection attempt {attempt}/{self.max_connection_attempts}")
                await self._spawn_lightpanda()
                await self._connect()
                return self._browser
            except Exception as e:
                last_error = e
                logger.error(f"Connection attempt {attempt} failed: {e}")

                await self.cleanup()

                if attempt < self.max_connection_attempts:
                    backoff = self.backoff_base_seconds * (2 ** (attempt - 1))
                    logger.info(f"Retrying in {backoff:.1f}s...")
                    await asyncio.sleep(backoff)

        raise BrowserConnectionError(
            f"Failed to connect after {self.max_connection_attempts} attempts: {last_error}"
        ) from last_error

    async def _spawn_lightpanda(self):
        if self._process is not None:
            logger.debug("Lightpanda already running")
            return

        binary = self.get_lightpanda_path()
        logger.info(f"Starting Lightpanda from {binary}...")

        process = await asyncio.create_subprocess_exec(
            binary, "serve", "--host", self.host, "--port", str(self.port),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._process = process
        self._supervise(process)
        await self._wait_for_ready(process)

    async def _connect(self):
        if self._process is None:
            raise BrowserConnectionError("Lightpanda process not running")

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        logger.info(f"Connecting Playwright to Lightpanda at {self.ws_endpoint}...")
        browser = await self._playwright.chromium.connect_over_cdp(
            self.ws_endpoint,
            timeout=self.connect_timeout_ms,
        )

        if self._process is None:
            # Process died while the handshake was in flight
            try:
                await browser.close()
            except Exception:
                logger.debug("Ignoring close error on orphaned browser handle")
            raise BrowserConnectionError("Lightpanda exited during connect")

        browser.on("disconnected", self._on_disconnected)
        self._browser = browser
        logger.info("Connected to Lightpanda")

    def _on_disconnected(self, browser: Browser):
        logger.info("Browser disconnected event received")
        if self._browser is browser:
            self._browser = None

    # === Process supervision ===

    def _track(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _supervise(self, process):
        """Attach output readers and the exit watcher to a fresh process."""
        self._ready = asyncio.Event()
        self._track(self._pump(process, process.stdout, "stdout"), "lightpanda-stdout")
        self._track(self._pump(process, process.stderr, "stderr"), "lightpanda-stderr")
        self._exit_task = self._track(self._watch_exit(process), "lightpanda-exit")

    async def _pump(self, process, stream, label: str):
        if stream is None:
            return
        async for raw in stream:
            text = raw.decode(errors="replace").strip()
            if not text:
                continue
            if label == "stderr":
                logger.warning(f"Lightpanda stderr: {text}")
            else:
                logger.debug(f"Lightpanda: {text}")
            if READY_SIGNAL in text and self._process is process and self._ready is not None:
                self._ready.set()

    async def _watch_exit(self, process):
        code = await process.wait()
        self._handle_process_exit(process, code)

    def _handle_process_exit(self, process, code: Optional[int]):
        """
        Invalidate BOTH the process and the browser handle.

        The CDP client may not notice the dead socket until its next call, so
        the handle is dropped here rather than waiting for 'disconnected'.
        """
        if code not in (0, None) and not self.is_shutting_down:
            logger.error(f"Lightpanda exited unexpectedly with code {code}")
        else:
            logger.info(f"Lightpanda exited with code {code}")

        if self._process is process:
            self._process = None
            self._browser = None

    async def _wait_for_ready(self, process):
        if self._process is not process:
            raise BrowserConnectionError("Lightpanda process not running")

        ready_waiter = asyncio.ensure_future(self._ready.wait())
        waiters = {ready_waiter}
        if self._exit_task is not None:
            waiters.add(asyncio.shield(self._exit_task))

        timeout = min(self.ready_settle_seconds, self.ready_timeout_seconds)
        done, pending = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        for waiter in pending:
            waiter.cancel()

        if ready_waiter in done:
            logger.info("Lightpanda ready")
            return

        if done:
            raise BrowserConnectionError(f"Lightpanda exited during startup with code {process.returncode}")

        if self.ready_settle_seconds >= self.ready_timeout_seconds:
            raise BrowserConnectionError("Lightpanda startup timeout")

        # Not every build prints the ready line
        logger.info(f"No ready signal after {timeout:.1f}s, assuming Lightpanda is up")
