# palcon/rcon_ui.py
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .errors import PalconError
from .rcon import ServerConnection

log = logging.getLogger(__name__)

KEEPALIVE_INTERVAL = 30.0   # seconds between pings while idle
LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area


class Session:
    """
    Serializes console commands and keepalive pings onto one connection.
    The connection itself must never see two requests in flight.
    """

    def __init__(self, conn: ServerConnection):
        self.conn = conn
        self.lock = asyncio.Lock()

    async def run(self, cmd: str) -> str:
        async with self.lock:
            response = await self.conn.run_command(cmd)
        return response.payload

    async def ping(self) -> None:
        async with self.lock:
            await self.conn.ping()

    async def keepalive(self, interval: float = KEEPALIVE_INTERVAL, on_error=None) -> None:
        """Ping forever; stops at the first failure, reporting it to `on_error`."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.ping()
            except PalconError as e:
                log.debug("keepalive failed: %s", e)
                if on_error is not None:
                    on_error(e)
                return


async def run_rcon_ui(conn: ServerConnection, title: str, interval: float = KEEPALIVE_INTERVAL) -> None:
    """Fullscreen RCON console: output log, input bar, background keepalive."""
    session = Session(conn)

    # Log view (not focusable so user can't type into it, but NOT read_only)
    output = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,
    )
    input_field = TextArea(height=1, prompt="> ", multiline=False)
    status = Label(
        text=f"RCON — {title}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        if not cmd:
            return
        try:
            out = await session.run(cmd)
            _append(app, output, f"$ {cmd}\n{out}\n")
        except PalconError as e:
            _append(app, output, f"[rcon error] {e}\n")
        finally:
            input_field.buffer.document = Document(text="")

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    root = HSplit([status, output, input_field])
    app = Application(
        layout=Layout(root),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    def keepalive_failed(err: PalconError) -> None:
        _append(app, output, f"[keepalive] {err}; reconnect to keep using the console\n")

    _append(app, output, "[rcon] authenticated. Try: ShowPlayers, Info, Broadcast hello\n")
    ping_task = asyncio.create_task(session.keepalive(interval, on_error=keepalive_failed))

    try:
        await app.run_async()
    finally:
        ping_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ping_task


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
