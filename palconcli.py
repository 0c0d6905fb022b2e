#!/usr/bin/env python3
from __future__ import annotations
import argparse, os, sys, time, asyncio, logging
from pathlib import Path
from typing import Optional
from palcon.errors import PalconError
from palcon.rcon import READ_TIMEOUT, ServerConnection, open_session
from palcon.util import rcon_settings, RconSettings

# --- helpers -----------------------------------------------------------------

def settings_from(args) -> RconSettings:
    path = Path(args.settings).expanduser() if args.settings else None
    s = rcon_settings(path, address=args.address, password=args.password)
    if not s.enabled:
        print("[hint] RCON appears disabled (RCONEnabled=False) in the settings file.", file=sys.stderr)
    return s

async def _session(args) -> ServerConnection:
    return await open_session(args.rcon.address, args.rcon.password, timeout=args.timeout)

# --- exec / ping / console ---------------------------------------------------

async def do_exec(args):
    conn = await _session(args)
    async with conn:
        resp = await conn.run_command(" ".join(args.command))
    print(resp.payload, end="" if resp.payload.endswith("\n") else "\n")

async def do_ping(args):
    conn = await _session(args)
    async with conn:
        t0 = time.perf_counter()
        await conn.ping()
        rtt = (time.perf_counter() - t0) * 1000
    print(f"pong from {args.rcon.address} in {rtt:.1f} ms")

async def do_console(args):
    """Opens the prompt_toolkit RCON console, or a line-by-line loop with --plain."""
    conn = await _session(args)
    async with conn:
        if args.plain:
            await _plain_console(conn)
            return
        from palcon.rcon_ui import run_rcon_ui
        await run_rcon_ui(conn, args.rcon.address, interval=args.keepalive)

async def _plain_console(conn: ServerConnection):
    print("Interactive RCON. Type /quit to exit.", flush=True)
    # stdin is read on the loop, never from an executor thread
    loop = asyncio.get_running_loop()
    stdin = asyncio.StreamReader()
    fd = sys.stdin.fileno()
    transport, _ = await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(stdin), os.fdopen(os.dup(fd), "rb", 0))
    try:
        while True:
            print("> ", end="", flush=True)
            line = await stdin.readline()
            if not line:
                break
            cmd = line.decode("utf-8", "ignore").strip()
            if cmd.lower() in ("/quit","quit","exit"): break
            if not cmd: continue
            try:
                resp = await conn.run_command(cmd)
                print(resp.payload, flush=True)
            except PalconError as e:
                print(f"[rcon error] {e}", flush=True)
                if conn.desynchronized:
                    break
    finally:
        transport.close()
        os.set_blocking(fd, True)  # the pipe transport leaves the shared tty non-blocking

# --- argparse ----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(prog="palconcli.py", description="Palworld RCON client.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("--address", help="host:port (default: $SERVER_ADDRESS or settings file)")
    p.add_argument("--password", help="admin password (default: $SERVER_PASSWORD or settings file)")
    p.add_argument("--settings", help="path to PalWorldSettings.ini")
    p.add_argument("--timeout", type=float, default=READ_TIMEOUT, help="read timeout in seconds")
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("exec", help="Run one command and print the reply")
    pe.add_argument("command", nargs="+")
    pe.set_defaults(func=do_exec)

    sub.add_parser("ping", help="Send a keepalive and time the reply").set_defaults(func=do_ping)

    pc = sub.add_parser("console", help="Open RCON console (prompt_toolkit)")
    pc.add_argument("--plain", action="store_true", help="plain input() loop instead of the fullscreen UI")
    pc.add_argument("--keepalive", type=float, default=30.0, help="seconds between keepalive pings")
    pc.set_defaults(func=do_console)

    return p

def main(argv: Optional[list[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        args.rcon = settings_from(args)
        asyncio.run(args.func(args))
    except PalconError as e:
        print(f"[rcon error] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
