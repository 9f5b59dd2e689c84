# flake8: noqa
# scripts/manage.py

"""
Maintenance commands.

    python -m scripts.manage create-tables
    python -m scripts.manage resolve-city "Belo Horizonte/MG"
    python -m scripts.manage create-user --email ana@example.com --name Ana
"""

import asyncio
from typing import Optional

import typer

from app.core.database import create_db_and_tables, engine, get_async_session_context
from app.core.exceptions import AppError
from app.domains.loc.services import CityResolver
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas

cli = typer.Typer(help="IceHot Fleet API maintenance commands.")


async def _create_tables() -> None:
    try:
        await create_db_and_tables()
    finally:
        await engine.dispose()


async def _resolve_city(text: str, state_code: Optional[str]) -> None:
    try:
        async with get_async_session_context() as db:
            city = await CityResolver(db).resolve_text(text, state_code)
            print(f"{city.id}\t{city.name}/{city.state_code}")
    finally:
        await engine.dispose()


async def _create_user(user_in: usr_schemas.UserCreate) -> None:
    try:
        async with get_async_session_context() as db:
            db_user = await usr_crud.user.create(db, obj_in=user_in)
            print(f"User created: {db_user.email} (id={db_user.id})")
    finally:
        await engine.dispose()


@cli.command("create-tables")
def create_tables():
    """
    Creates every missing table in the configured database.
    """
    asyncio.run(_create_tables())
    print("Tables ready.")


@cli.command("resolve-city")
def resolve_city(
    text: str = typer.Argument(..., help='City as "Name" or "Name/UF".'),
    state_code: Optional[str] = typer.Option(None, "--state", "-s", help="State code (UF)."),
):
    """
    Resolves a city name to its id, registering it when a state code is known.
    """
    try:
        asyncio.run(_resolve_city(text, state_code))
    except AppError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)


@cli.command("create-user")
def create_user(
    email: str = typer.Option(..., "--email", "-e", prompt="E-mail", help="Login e-mail."),
    name: str = typer.Option(..., "--name", "-n", prompt="Name", help="Full name."),
    password: str = typer.Option(
        ..., "--password", "-p",
        prompt="Password",
        hide_input=True,
        confirmation_prompt=True,
        help="Password (at least 8 characters).",
    ),
):
    """
    Registers a user account.
    """
    if len(password) < 8:
        print("Error: the password must have at least 8 characters.")
        raise typer.Abort()

    user_in = usr_schemas.UserCreate(email=email, name=name, password=password)
    try:
        asyncio.run(_create_user(user_in))
    except AppError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
