from __future__ import annotations
import asyncio
import json
import time
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from gosbot.client.session import ChatbotSession
from gosbot.client.token import acquire_token, resolve_session_id
from gosbot.shared.config import BotSettings
from gosbot.shared.errors import ChatbotError
from gosbot.shared.frame import encode_frame
from gosbot.shared.log import configure_root_logging

app = typer.Typer(help="gosbot diagnostics: token exchange, frame encoding, live probe")
console = Console()


@app.callback()
def setup(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR; GOSBOT_LOG_LEVEL if omitted"),
):
    configure_root_logging(log_level)


def _settings(config: Optional[Path]) -> BotSettings:
    try:
        return BotSettings.load(config)
    except ValueError as e:
        console.print(f"[red]Bad settings[/]: {e}")
        raise typer.Exit(code=2)


@app.command()
def token(
    session_id: Optional[str] = typer.Option(None, help="UUIDv4 session id; generated if omitted or malformed"),
    platform: Optional[str] = typer.Option(None, help="Platform name sent to /init"),
    config: Optional[Path] = typer.Option(None, help="YAML settings file"),
):
    """Exchange a session id for a bearer token and print both."""
    settings = _settings(config)
    sid = resolve_session_id(session_id)
    try:
        value = asyncio.run(acquire_token(sid, platform or settings.platform, settings=settings))
    except ChatbotError as e:
        console.print(f"[red]Token request failed[/]: {e}")
        raise typer.Exit(code=1)
    console.print(json.dumps({"sessionId": sid, "token": value}, indent=2), markup=False, highlight=False, soft_wrap=True)


@app.command()
def frame(
    code: int = typer.Argument(..., help="Numeric event code, e.g. 42"),
    payload: Optional[str] = typer.Argument(None, help="JSON payload"),
):
    """Encode a frame the way the session puts it on the wire."""
    data = None
    if payload is not None:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            console.print(f"[red]Payload is not JSON[/]: {e}")
            raise typer.Exit(code=2)
    console.print(encode_frame(code, data), markup=False, highlight=False, soft_wrap=True)


@app.command()
def probe(
    address: Optional[str] = typer.Option(None, help="WebSocket URL; service default if omitted"),
    timeout: float = typer.Option(15.0, help="Seconds to wait for login and the greeting"),
    config: Optional[Path] = typer.Option(None, help="YAML settings file"),
):
    """Connect, authenticate, send hello, and report what happened."""
    settings = _settings(config)
    started = time.monotonic()
    timeline: List[Tuple[float, str, str]] = []

    def record(kind: str, detail: str = "") -> None:
        timeline.append((time.monotonic() - started, kind, detail))

    async def main_loop() -> None:
        session = ChatbotSession(settings=settings)
        session.on("connect", lambda s: record("connect"))
        session.on("login", lambda s: record("login"))
        session.on("ping", lambda s: record("ping"))
        session.on("close", lambda s: record("close"))
        session.on("error", lambda s, e: record("error", str(e)))

        try:
            await session.connect(address)
            await session.wait_authenticated(timeout=timeout)
            reply = await session.hello(timeout=timeout)
            record("hello", reply.action)
            console.print(_reply_table(reply))
        finally:
            await session.close()

    try:
        asyncio.run(main_loop())
    except ChatbotError as e:
        console.print(f"[red]Probe failed[/]: {e}")
        raise typer.Exit(code=1)
    finally:
        console.print(_timeline_table(timeline))


def _timeline_table(timeline: List[Tuple[float, str, str]]) -> Table:
    table = Table(title="Session events")
    table.add_column("t (s)", justify="right")
    table.add_column("Event")
    table.add_column("Detail")
    for offset, kind, detail in timeline:
        table.add_row(f"{offset:.3f}", kind, detail)
    return table


def _reply_table(reply) -> Table:
    table = Table(title="Greeting")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("action", reply.action)
    table.add_row("uuid", str(reply.uuid))
    table.add_row("header", str(reply.header))
    table.add_row("results inside", str(len(reply.results_inside)))
    table.add_row("results outside", str(len(reply.results_outside)))
    table.add_row("buttons", str(len(reply.buttons)))
    table.add_row("clarifications", str(len(reply.clarifications)))
    return table


def main() -> None:
    app()


if __name__ == "__main__":
    main()
