#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional

import typer
from aioconsole import ainput
from rich.console import Console
from rich.table import Table

from shared.commands import Deliver, End, FetchRequest, Failure
from shared.errors import ChatError
from shared.log import configure_root_logging, get_logger
from .config import load_config
from .multiplexer import Event, ToSend
from .session import Session

app = typer.Typer(help="tildechat client CLI")
console = Console()
logger = get_logger(__name__)

ServerOpt = typer.Option(None, "--server", help="Server address host:port")
UsernameOpt = typer.Option(None, "--username", "-u", help="Login name")
PasswordOpt = typer.Option(None, "--password", "-p", help="Login password")
ConfigOpt = typer.Option(None, "--config", "-c", help="YAML config file")


def _session(config: Optional[Path], server: Optional[str], username: Optional[str],
             password: Optional[str]) -> Session:
    cfg = load_config(config, server=server, username=username, password=password)
    return Session.from_config(cfg)


def _run(make_session: Callable[[], Session], body: Callable[[Session], Awaitable[None]]) -> None:
    """Log in, run ``body``, always close. ChatErrors become exit code 1."""

    async def main_loop() -> None:
        session = make_session()
        async with session:
            await session.login()
            console.print(f"[bold green]Logged in[/] as {session.get_name()}")
            await body(session)

    try:
        asyncio.run(main_loop())
    except ChatError as e:
        console.print(f"[red]{e.kind}[/]: {e}")
        raise typer.Exit(code=1)


def _print_event(event: Event) -> None:
    cmd = event.command
    if isinstance(event, ToSend):
        if isinstance(cmd, Deliver):
            console.print(f"[dim]-> {cmd.target}: {cmd.body}[/]")
        else:
            console.print(f"[dim]-> {cmd.type.value}[/]")
        return
    if isinstance(cmd, Deliver):
        console.print(f"[bold cyan]{cmd.sender}[/]: {cmd.body}")
    elif isinstance(cmd, Failure):
        console.print(f"[red]ERROR[/]: {cmd.reason}")
    elif isinstance(cmd, End):
        console.print("[dim]no pending messages[/]")
    else:
        console.print(f"[dim]recv {cmd.type.value}[/]")


@app.command()
def send(
    target: str = typer.Argument(..., help="Recipient username"),
    message: str = typer.Argument(..., help="Message body"),
    server: Optional[str] = ServerOpt,
    username: Optional[str] = UsernameOpt,
    password: Optional[str] = PasswordOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Log in, send one message and exit."""

    async def body(session: Session) -> None:
        await session.send_message(target, message)
        console.print(f"Sent to {target}")

    _run(lambda: _session(config, server, username, password), body)


@app.command()
def fetch(
    server: Optional[str] = ServerOpt,
    username: Optional[str] = UsernameOpt,
    password: Optional[str] = PasswordOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Log in and print every pending message."""

    async def body(session: Session) -> None:
        table = Table(title="Pending messages")
        table.add_column("From")
        table.add_column("Message")
        while True:
            reply = await session.fetch_one()
            if isinstance(reply, End):
                break
            if isinstance(reply, Deliver):
                table.add_row(reply.sender, reply.body)
            else:
                console.print(f"[dim]recv {reply.type.value}[/]")
        console.print(table)

    _run(lambda: _session(config, server, username, password), body)


@app.command()
def chat(
    server: Optional[str] = ServerOpt,
    username: Optional[str] = UsernameOpt,
    password: Optional[str] = PasswordOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Interactive session: type '<user> <message>', /fetch, /quit."""

    async def body(session: Session) -> None:
        async def read_input() -> None:
            while True:
                try:
                    line = (await ainput(": ")).strip()
                except EOFError:
                    line = "/quit"
                if not line:
                    continue
                if line in {"/quit", "/exit"}:
                    await session.close()
                    return
                if line == "/help":
                    console.print("<user> <message>, /fetch, /quit")
                    continue
                if line == "/fetch":
                    session.outbound.put(FetchRequest())
                    continue
                target, _, text = line.partition(" ")
                if not text:
                    console.print("Usage: <user> <message>")
                    continue
                session.outbound.put(Deliver(session.get_name(), target, text))

        input_task = asyncio.create_task(read_input())
        try:
            async for event in session.events():
                _print_event(event)
        finally:
            input_task.cancel()
        console.print("[dim]Session ended[/]")

    _run(lambda: _session(config, server, username, password), body)


def main() -> None:
    configure_root_logging("WARNING")
    app()


if __name__ == "__main__":
    main()
