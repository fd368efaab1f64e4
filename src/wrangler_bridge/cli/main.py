"""
CLI for poking at bindings through a bridge: exec, dump, send, and serve a local bridge.
Origin comes from --origin or BRIDGE_ORIGIN.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx
import typer

from wrangler_bridge.bindings.database import DatabaseBinding
from wrangler_bridge.bindings.kinds import BindingKind
from wrangler_bridge.bindings.queue import QueueBinding
from wrangler_bridge.core.config import BridgeSettings
from wrangler_bridge.core.errors import BridgeError
from wrangler_bridge.rpc.protocol import HttpxFetch

app = typer.Typer(help="wrangler-bridge CLI: call remote bindings through a bridge endpoint.")

_ORIGIN_OPTION = typer.Option(None, "--origin", "-o", envvar="BRIDGE_ORIGIN", help="Bridge origin URL")


@app.callback()
def _configure(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, ...)"),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _origin(origin: Optional[str]) -> str:
    return origin or BridgeSettings().origin


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except BridgeError as e:
        typer.echo(f"{e.kind.value}: {e.message}", err=True)
        raise typer.Exit(1)
    except httpx.TransportError as e:
        typer.echo(f"transport: {e}", err=True)
        raise typer.Exit(1)


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, indent=2, default=str))


def _parse_body(text: str) -> Any:
    """JSON if it parses, the raw string otherwise."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@app.command("exec")
def exec_query(
    query: str = typer.Argument(..., help="SQL to execute"),
    binding: str = typer.Option(..., "--binding", "-b", help="Database binding name"),
    origin: Optional[str] = _ORIGIN_OPTION,
) -> None:
    """Run raw SQL on a database binding."""
    db = DatabaseBinding(_origin(origin), binding, HttpxFetch())
    _echo_json(_run(db.exec(query)))


@app.command()
def query(
    sql: str = typer.Argument(..., help="Single statement, ? placeholders"),
    params: Optional[list[str]] = typer.Argument(None, help="Values bound to the placeholders (JSON or text)"),
    binding: str = typer.Option(..., "--binding", "-b", help="Database binding name"),
    origin: Optional[str] = _ORIGIN_OPTION,
) -> None:
    """Prepare, bind and run one statement; prints all rows."""
    db = DatabaseBinding(_origin(origin), binding, HttpxFetch())
    stmt = db.prepare(sql).bind(*[_parse_body(p) for p in params or []])
    _echo_json(_run(stmt.all()))


@app.command()
def dump(
    output: Path = typer.Argument(..., help="File to write the database dump to"),
    binding: str = typer.Option(..., "--binding", "-b", help="Database binding name"),
    origin: Optional[str] = _ORIGIN_OPTION,
) -> None:
    """Download the database file behind a binding."""
    db = DatabaseBinding(_origin(origin), binding, HttpxFetch())
    data = _run(db.dump())
    output.write_bytes(data)
    typer.echo(f"Wrote {len(data)} bytes to {output}")


@app.command()
def send(
    body: str = typer.Argument(..., help="Message body (JSON or text)"),
    binding: str = typer.Option(..., "--binding", "-b", help="Queue binding name"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="json, text, bytes or v8"),
    delay: Optional[int] = typer.Option(None, "--delay", help="Delivery delay in seconds"),
    origin: Optional[str] = _ORIGIN_OPTION,
) -> None:
    """Send one message to a queue binding."""
    queue = QueueBinding(_origin(origin), binding, HttpxFetch())
    options: dict[str, Any] = {}
    if content_type is not None:
        options["contentType"] = content_type
    if delay is not None:
        options["delaySeconds"] = delay
    _run(queue.send(_parse_body(body), options or None))
    typer.echo("Sent")


@app.command()
def serve(
    database: list[str] = typer.Option([], "--database", "-D", help="NAME or NAME=path.sqlite (repeatable)"),
    queue: list[str] = typer.Option([], "--queue", "-Q", help="Queue binding NAME (repeatable)"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8787, "--port"),
) -> None:
    """Serve a local bridge over sqlite databases and in-memory queues."""
    import uvicorn

    from wrangler_bridge.remote.app import LiveBinding, create_bridge_app
    from wrangler_bridge.remote.local import InMemoryQueue, SqliteDatabase

    bindings: list[LiveBinding] = []
    for entry in database:
        name, _, path = entry.partition("=")
        bindings.append(LiveBinding(name, BindingKind.DATABASE, SqliteDatabase(path or ":memory:")))
    for name in queue:
        bindings.append(LiveBinding(name, BindingKind.QUEUE, InMemoryQueue()))
    if not bindings:
        typer.echo("Nothing to serve: pass --database and/or --queue", err=True)
        raise typer.Exit(1)
    uvicorn.run(create_bridge_app(bindings), host=host, port=port)


def main() -> None:
    """Entry point for the wrangler-bridge console command."""
    app()


if __name__ == "__main__":
    main()
