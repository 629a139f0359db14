"""
Browser session driven with zendriver (Chrome DevTools Protocol).

The session re-uses a login captured in a Firefox profile by copying that profile's
cookies into a fresh Chromium instance. It exposes the network response stream,
page script evaluation and a signal that fires once the user closes the window.
"""

import asyncio
import logging
import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

import zendriver as zd
from zendriver import cdp

from .errors import BrowserSessionError


logger = logging.getLogger(__name__)

ResponseHandler = Callable[[str, int], Any]

# consecutive failed liveness polls before the window counts as closed
MAX_POLL_FAILURES = 3

# moz_cookies.sameSite
FIREFOX_SAME_SITE = {
    0: cdp.network.CookieSameSite.NONE,
    1: cdp.network.CookieSameSite.LAX,
    2: cdp.network.CookieSameSite.STRICT,
}


def read_firefox_cookies(profile_path: Path, domain: str) -> list[dict]:
    """
    Read the cookies for ``domain`` from a Firefox profile.

    The database is copied first, since a running Firefox keeps it locked.

    Returns:
        List of cookie dicts (host, path, name, value, expiry, is_secure, is_http_only, same_site)
    """
    profile_path = Path(profile_path)
    if not profile_path.is_dir():
        raise BrowserSessionError(f"Firefox profile path not found: {profile_path}")

    cookies_db = profile_path / "cookies.sqlite"
    if not cookies_db.exists():
        logger.warning("Cookies file not found: %s", cookies_db)
        return []

    with tempfile.TemporaryDirectory() as tmp:
        copy = Path(tmp) / "cookies.sqlite"
        shutil.copy2(cookies_db, copy)
        wal = cookies_db.with_name("cookies.sqlite-wal")
        if wal.exists():
            shutil.copy2(wal, copy.with_name("cookies.sqlite-wal"))

        conn = sqlite3.connect(copy)
        try:
            rows = conn.execute(
                "SELECT host, path, name, value, expiry, isSecure, isHttpOnly, sameSite "
                "FROM moz_cookies WHERE host LIKE ?",
                (f"%{domain}",),
            ).fetchall()
        except sqlite3.Error as e:
            raise BrowserSessionError(f"Could not read cookies from {cookies_db}: {e}") from None
        finally:
            conn.close()

    cookies = [
        {
            "host": host,
            "path": path,
            "name": name,
            "value": value,
            "expiry": expiry,
            "is_secure": bool(secure),
            "is_http_only": bool(http_only),
            "same_site": same_site,
        }
        for host, path, name, value, expiry, secure, http_only, same_site in rows
    ]
    logger.info("Extracted %d %s cookies", len(cookies), domain)
    return cookies


def to_cookie_param(cookie: dict) -> cdp.network.CookieParam:
    expiry = cookie.get("expiry")
    # newer Firefox versions store milliseconds
    if expiry and expiry > 10**11:
        expiry = expiry / 1000
    return cdp.network.CookieParam(
        name=cookie["name"],
        value=cookie["value"],
        domain=cookie["host"],
        path=cookie.get("path") or "/",
        secure=cookie.get("is_secure", False),
        http_only=cookie.get("is_http_only", False),
        same_site=FIREFOX_SAME_SITE.get(cookie.get("same_site"), cdp.network.CookieSameSite.LAX),
        expires=cdp.network.TimeSinceEpoch(expiry) if expiry else None,
    )


class BrowserSession:
    """
    One browser window whose closing ends the session.

    Example usage:
        async with BrowserSession(cookies=cookies) as session:
            unsubscribe = session.on_response(lambda url, status: print(status, url))
            await session.navigate("https://www.instagram.com/reel/...")
            await session.wait_closed()
    """

    def __init__(self, headless: bool = False, cookies: Optional[list[dict]] = None, poll_interval: float = 1.0):
        self.headless = headless
        self.cookies = cookies or []
        self.poll_interval = poll_interval
        self.browser = None
        self.page = None
        self._handlers: list[ResponseHandler] = []
        self._ended = asyncio.Event()
        self._stopped = False
        self._watchdog: Optional[asyncio.Task] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def start(self):
        try:
            self.browser = await zd.start(headless=self.headless)
            self.page = await self.browser.get("about:blank")

            await self.page.send(cdp.network.enable())
            self.page.add_handler(cdp.network.ResponseReceived, self._on_response)
            self.page.add_handler(cdp.inspector.Detached, self._on_detached)
            self.browser.connection.add_handler(cdp.target.TargetDestroyed, self._on_target_destroyed)

            if self.cookies:
                logger.info("Adding %d cookies to browser session", len(self.cookies))
                await self.page.send(cdp.network.set_cookies([to_cookie_param(c) for c in self.cookies]))
        except Exception as e:
            await self.close()
            raise BrowserSessionError(f"Failed to launch browser: {e}") from e

        self._watchdog = asyncio.create_task(self._watch())
        logger.info("Browser initialized successfully")

    def on_response(self, handler: ResponseHandler) -> Callable[[], None]:
        """
        Call ``handler(url, status)`` for every response the page receives.

        Returns:
            A callable that removes the handler again
        """
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def _on_response(self, event: cdp.network.ResponseReceived):
        for handler in list(self._handlers):
            handler(event.response.url, event.response.status)

    def _on_detached(self, event):
        logger.debug("Inspector detached: %s", getattr(event, "reason", ""))
        self._ended.set()

    def _on_target_destroyed(self, event):
        if self.page is not None and event.target_id == self.page.target.target_id:
            logger.debug("Page target destroyed")
            self._ended.set()

    def _connection_closed(self) -> bool:
        return self.browser is not None and self.browser.connection.closed

    async def _watch(self):
        # closing the whole window can drop the connection without any event
        failures = 0
        while not self._ended.is_set():
            await asyncio.sleep(self.poll_interval)
            if self._connection_closed():
                logger.debug("Browser connection closed")
                self._ended.set()
                break
            try:
                await asyncio.wait_for(self.page.evaluate("1"), timeout=max(self.poll_interval * 5, 5))
                failures = 0
            except asyncio.CancelledError:
                raise
            except ConnectionError as e:
                logger.debug("Browser no longer reachable: %s", e)
                self._ended.set()
            except Exception as e:
                # navigation swaps the execution context under the poll
                failures += 1
                logger.debug("Liveness poll failed (%d/%d): %s", failures, MAX_POLL_FAILURES, e)
                if failures >= MAX_POLL_FAILURES:
                    logger.debug("Browser no longer reachable")
                    self._ended.set()

    @property
    def closed(self) -> bool:
        return self._ended.is_set() or self._stopped

    async def navigate(self, url: str, wait_time: float = 3.0):
        """Navigate to a URL and wait for the page to load."""
        if self.page is None:
            raise BrowserSessionError("Browser not initialized")
        logger.info("Navigating to: %s", url)
        try:
            await self.page.send(cdp.page.navigate(url))
            await self.page.wait_for_ready_state(until="complete", timeout=30)
        except Exception as e:
            if self.closed:
                logger.warning("Browser closed during navigation")
                return
            raise BrowserSessionError(f"Navigation to {url} failed: {e}") from e
        await asyncio.sleep(wait_time)
        logger.info("Navigation complete")

    async def wait_closed(self):
        """Block until the user closes the browser window."""
        await self._ended.wait()

    async def run_script(self, source: str) -> Any:
        """Evaluate a script in the page and return its JSON-compatible result."""
        if self.page is None:
            raise BrowserSessionError("Browser not initialized")
        try:
            return await self.page.evaluate(source, await_promise=True, return_by_value=True)
        except Exception as e:
            raise BrowserSessionError(f"Script evaluation failed: {e}") from e

    async def save_screenshot(self, path: Path) -> Path:
        if self.page is None:
            raise BrowserSessionError("Browser not initialized")
        await self.page.save_screenshot(str(path), format="png", full_page=True)
        return Path(path)

    async def close(self):
        """Stop the browser. Safe to call more than once."""
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self._ended.set()
        if self.browser is not None and not self._stopped:
            self._stopped = True
            await self.browser.stop()
            logger.info("Browser closed")
