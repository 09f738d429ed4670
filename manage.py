import asyncio
import subprocess
from datetime import datetime, timezone
from typing import Annotated

from rich import print
from rich.table import Table
import typer

from inkwell.core.config import settings
from inkwell.core.db import async_engine, dispose_db, init_db
from inkwell.core.services.redis_service import RedisService
from inkwell.core.services.session_store import SessionStore
from inkwell.main import init_kv_store

app = typer.Typer()


async def _open_session_store() -> SessionStore:
    if settings.KV_BACKEND != "redis":
        print(
            "[yellow]KV_BACKEND is 'memory': sessions live inside the server "
            "process and are not visible here[/yellow]"
        )
    kv = await init_kv_store(settings)
    return SessionStore(kv, max_age=settings.SESSION_MAX_AGE)


async def create_tables_task() -> None:
    print("[yellow]Creating database tables[/yellow]")
    try:
        await init_db(async_engine)
        print("[green]Database tables created[/green]")
    finally:
        await dispose_db(async_engine)


async def list_sessions_task(user_id: str) -> None:
    store = await _open_session_store()
    try:
        sessions = await store.list_by_user(user_id)
    finally:
        await RedisService.aclose()

    if not sessions:
        print(f"[cyan]No active sessions for user {user_id}[/cyan]")
        return

    table = Table(title=f"Sessions for {user_id}")
    for column in ("Session", "IP", "Country", "User agent", "Created", "Expires"):
        table.add_column(column)
    for record in sessions:
        table.add_row(
            record.session_id,
            record.ip_address or "-",
            record.country or "-",
            (record.user_agent or "-")[:40],
            datetime.fromtimestamp(record.created_at / 1000, tz=timezone.utc).isoformat(),
            datetime.fromtimestamp(record.expires_at / 1000, tz=timezone.utc).isoformat(),
        )
    print(table)


async def revoke_sessions_task(user_id: str, keep: str | None) -> None:
    store = await _open_session_store()
    try:
        if keep:
            await store.delete_others_by_user(user_id, keep)
            print(f"[green]Revoked every session of {user_id} except {keep}[/green]")
        else:
            await store.delete_all_by_user(user_id)
            print(f"[green]Revoked every session of {user_id}[/green]")
    finally:
        await RedisService.aclose()


@app.command()
def runserver():
    try:
        server_command = (
            "uvicorn inkwell.main:app --host 127.0.0.1 --port 8000 --reload"
            if settings.DEBUG
            else "uvicorn inkwell.main:app --host 0.0.0.0 --port 8000"
        )
        print(f"Running FastAPI server: {server_command}")
        subprocess.run(server_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise


@app.command()
def createtables():
    """
    Create the users and accounts tables in the database at DATABASE_URL.
    """
    asyncio.run(create_tables_task())


@app.command()
def listsessions(user_id: Annotated[str, typer.Argument(help="User id")]):
    """
    List the live sessions of a user, newest first.
    """
    asyncio.run(list_sessions_task(user_id))


@app.command()
def revokesessions(
    user_id: Annotated[str, typer.Argument(help="User id")],
    keep: Annotated[
        str | None,
        typer.Option(
            "--keep",
            "-k",
            help="Session id to keep signed in",
        ),
    ] = None,
):
    """
    Sign a user out of every session, optionally keeping one.

    Examples:
        python manage.py revokesessions 3f2c...
        python manage.py revokesessions 3f2c... --keep 9a1b...
    """
    asyncio.run(revoke_sessions_task(user_id, keep))


@app.callback()
def main(ctx: typer.Context):
    print(f"Executing the command: {ctx.invoked_subcommand}")


if __name__ == "__main__":
    app()
