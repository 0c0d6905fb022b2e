# palcon/util.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575

ADDRESS_ENV = "SERVER_ADDRESS"
PASSWORD_ENV = "SERVER_PASSWORD"

# key=value or key="quoted, value" inside OptionSettings=(...)
_OPTION = re.compile(r'(\w+)=("[^"]*"|[^,]*)')


@dataclass(frozen=True, slots=True)
class RconSettings:
    address: str
    password: str
    enabled: bool = True


def parse_address(address: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """
    Split "host:port" into its parts. IPv6 hosts need brackets when a port is
    given ("[::1]:25575"); a bare host gets `default_port`.
    """
    address = address.strip()
    if not address:
        raise ValueError("empty address")
    if address.startswith("["):
        host, sep, tail = address[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"bad address: {address!r}")
        if not tail:
            return host, default_port
        if not tail.startswith(":"):
            raise ValueError(f"bad address: {address!r}")
        port_s = tail[1:]
    elif address.count(":") == 1:
        host, port_s = address.split(":")
    else:
        # plain hostname, or an unbracketed IPv6 literal
        return address, default_port
    if not host:
        raise ValueError(f"bad address: {address!r}")
    try:
        port = int(port_s)
    except ValueError:
        raise ValueError(f"bad port in address: {address!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"port out of range: {port}")
    return host, port


def read_settings(path: Path) -> dict:
    """Parse the OptionSettings=(...) line of a PalWorldSettings.ini."""
    opts = {}
    if not path.exists():
        return opts
    for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
        line = line.strip()
        if not line.startswith("OptionSettings="):
            continue
        body = line[len("OptionSettings="):].strip()
        if body.startswith("(") and body.endswith(")"):
            body = body[1:-1]
        for k, v in _OPTION.findall(body):
            v = v.strip()
            if len(v) >= 2 and v[0] == v[-1] == '"':
                v = v[1:-1]
            opts[k] = v
    return opts


def rcon_settings(
    path: Optional[Path] = None,
    address: Optional[str] = None,
    password: Optional[str] = None,
) -> RconSettings:
    """
    Resolve where and how to connect: explicit values first, then the
    SERVER_ADDRESS / SERVER_PASSWORD environment, then the settings file.
    """
    opts = read_settings(path) if path is not None else {}
    enabled = opts.get("RCONEnabled", "True").strip().lower() == "true"

    address = address or os.environ.get(ADDRESS_ENV)
    if not address:
        port = opts.get("RCONPort") or str(DEFAULT_PORT)
        address = f"{DEFAULT_HOST}:{port}"

    if password is None:
        password = os.environ.get(PASSWORD_ENV, opts.get("AdminPassword", ""))

    return RconSettings(address=address, password=password, enabled=enabled)
