#!/usr/bin/env python3
"""
winscp_passwd.py — WinSCP stored password finder.

Decodes a single password copied out of the registry, or every session with a
saved password in a WinSCP.ini file.

Usage examples:
  # Registry mode: values from
  # HKEY_CURRENT_USER\\Software\\Martin Prikryl\\WinSCP 2\\Sessions\\<session>
  python3 winscp_passwd.py decode 10.0.0.1 root A35C4E5C2E3333286D6C726C726C726D2F393F2E3928

  # ini mode (defaults to %APPDATA%\\WinSCP.ini)
  python3 winscp_passwd.py ini
  python3 winscp_passwd.py -v ini ./WinSCP.ini
"""

import argparse
import configparser
import logging
import os
import sys
from pathlib import Path
from typing import Iterator, NamedTuple, Optional
from urllib.parse import unquote

from winscp_decode import MalformedEncoding, decode_password

log = logging.getLogger(__name__)

REGISTRY_SESSIONS = r"HKEY_CURRENT_USER\Software\Martin Prikryl\WinSCP 2\Sessions"
SESSIONS_PREFIX = "sessions\\"
SEPARATOR = "=" * 24


class SessionPassword(NamedTuple):
    name: str
    host: str
    username: str
    password: Optional[str]
    error: Optional[str]


# ---------- Config source ----------

def default_ini_path() -> Path:
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / "WinSCP.ini"
    return Path.home() / "AppData" / "Roaming" / "WinSCP.ini"


def load_ini(path: Path, encoding: str = "utf-8-sig") -> configparser.ConfigParser:
    # Session values are free text (remote paths, proxy commands) and may
    # contain '%', so interpolation stays off.
    config = configparser.ConfigParser(interpolation=None, strict=False)
    with path.open("r", encoding=encoding, errors="replace") as f:
        config.read_file(f, source=str(path))
    return config


def session_display_name(section: str) -> str:
    """'Sessions\\user%40host' -> 'user@host'"""
    if section.lower().startswith(SESSIONS_PREFIX):
        section = section[len(SESSIONS_PREFIX):]
    return unquote(section)


# ---------- Batch decoding ----------

def decode_sessions(config: configparser.ConfigParser) -> Iterator[SessionPassword]:
    """Yield one SessionPassword per section that stores a password.

    A malformed record is reported on its own entry and does not stop the
    remaining sections from being decoded.
    """
    for section in config.sections():
        values = config[section]
        if "password" not in values:
            log.debug("skipping %r: no password", section)
            continue
        host = values.get("hostname", "")
        username = values.get("username", "")
        name = session_display_name(section)
        try:
            password = decode_password(host, username, values["password"])
        except MalformedEncoding as e:
            log.warning("cannot decode password for %s: %s", name, e)
            yield SessionPassword(name, host, username, None, str(e))
            continue
        yield SessionPassword(name, host, username, password, None)


def decode_ini(path: Path, encoding: str = "utf-8-sig") -> Iterator[SessionPassword]:
    return decode_sessions(load_ini(path, encoding))


def print_session(result: SessionPassword) -> None:
    print(result.name)
    print(f"  Hostname: {result.host}")
    print(f"  Username: {result.username}")
    if result.error is None:
        print(f"  Password: {result.password}")
    else:
        print(f"  Password: <undecodable: {result.error}>")
    print(SEPARATOR)


# ---------- CLI ----------

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="winscppasswd",
        description="WinSCP stored password finder.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(f"Registry:\n"
                f"  Open regedit and navigate to [{REGISTRY_SESSIONS}]\n"
                f"  to get the hostname, username and encrypted password.\n\n"
                f"WinSCP.ini:\n"
                f"  Default <path>: {default_ini_path()}"),
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Show decoding diagnostics.")
    ap.add_argument("-q", "--quiet", action="store_true", help="Reduce output verbosity.")
    sub = ap.add_subparsers(dest="command")

    d = sub.add_parser("decode", help="Decode one password (registry mode).")
    d.add_argument("host", help="Session HostName value.")
    d.add_argument("username", help="Session UserName value.")
    d.add_argument("encrypted", help="Session Password value (hex).")

    i = sub.add_parser("ini", help="Decode every saved password in a WinSCP.ini file.")
    i.add_argument("path", nargs="?", type=Path, default=None,
                   help=f"Path to WinSCP.ini (default: {default_ini_path()}).")
    i.add_argument("--encoding", default="utf-8-sig", help="ini file encoding (default: utf-8-sig, BOM optional).")
    return ap


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_decode(args) -> int:
    try:
        password = decode_password(args.host, args.username, args.encrypted)
    except MalformedEncoding as e:
        print(f"[!] Cannot decode password: {e}", file=sys.stderr)
        return 1
    print(password)
    return 0


def run_ini(args) -> int:
    path = (args.path or default_ini_path()).expanduser()
    if not path.is_file():
        print(f"[!] ini file not found: {path}", file=sys.stderr)
        return 2
    if not args.quiet:
        print(f"[i] Reading {path}", file=sys.stderr)

    try:
        config = load_ini(path, args.encoding)
    except (configparser.Error, OSError, LookupError) as e:
        print(f"[!] Cannot read {path}: {e}", file=sys.stderr)
        return 2

    failed = found = 0
    for result in decode_sessions(config):
        print_session(result)
        found += 1
        if result.error is not None:
            failed += 1

    if not args.quiet:
        print(f"[+] {found} session(s) with a saved password, {failed} undecodable", file=sys.stderr)
    return 1 if failed else 0


def main(argv=None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "decode":
        return run_decode(args)
    if args.command == "ini":
        return run_ini(args)
    ap.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
