"""
Scanner kiosk: activates bins for one user from a local camera or typed payloads.

    ecoearn-kiosk --user <user-id>            # camera 0
    ecoearn-kiosk --user <user-id> --manual   # one QR payload per line on stdin

After a successful activation, an empty line (or Enter in camera mode)
releases the bin again.
"""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys

from .db import async_session_maker, init_db, dispose_db
from .services.registry import SqlBinRegistry
from .services.scanner import ScannerSession, ScanState, CameraFrameSource


def _report(session: ScannerSession) -> None:
    line = session.state.value
    if session.message:
        line += f": {session.message}"
    if session.active_bin_id:
        line += f" (bin {session.active_bin_id})"
    print(line, flush=True)

def _user_id(value: str) -> str:
    if not value.strip():
        raise argparse.ArgumentTypeError("user id must not be blank")
    return value.strip()

async def _release_on_enter(session: ScannerSession) -> None:
    if session.state != ScanState.SUCCESS:
        return
    await asyncio.to_thread(input, "Press Enter to deactivate the bin...")
    await session.deactivate()
    _report(session)

async def run_manual(session: ScannerSession, lines) -> None:
    for raw in lines:
        text = raw.strip()
        if not text:
            if session.state == ScanState.SUCCESS:
                await session.deactivate()
                _report(session)
            continue
        await session.submit(text)
        _report(session)

async def run_camera(session: ScannerSession, device_id: int) -> None:
    source = CameraFrameSource(device_id=device_id)
    while True:
        await session.scan(source)
        _report(session)
        if session.state == ScanState.ERROR and session.message == "Camera access denied or not available":
            return
        await _release_on_enter(session)

async def main_async(args: argparse.Namespace) -> int:
    await init_db()
    try:
        async with async_session_maker() as db:
            session = ScannerSession(SqlBinRegistry(db), args.user)
            if args.manual:
                await run_manual(session, sys.stdin)
            else:
                try:
                    await run_camera(session, args.device)
                finally:
                    session.stop()
    finally:
        await dispose_db()
    return 1 if session.state == ScanState.ERROR else 0

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ecoearn-kiosk", description="Activate EcoEarn bins by QR code")
    parser.add_argument("--user", required=True, type=_user_id, help="user id that will occupy scanned bins")
    parser.add_argument("--device", type=int, default=0, help="camera device index")
    parser.add_argument("--manual", action="store_true", help="read QR payload text from stdin")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        return 130

if __name__ == "__main__":
    sys.exit(main())
