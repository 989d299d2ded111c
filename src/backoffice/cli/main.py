import asyncio
import logging
import typer
from tortoise import Tortoise
from tortoise.exceptions import IntegrityError, OperationalError

from ..core.config import TORTOISE_ORM_CONFIG
from ..features.auth.models import User as AuthUser
from ..features.auth.security import get_password_hash  # To hash passwords
from ..features.auth import service as auth_service

logger = logging.getLogger(__name__)

app = typer.Typer(name="backoffice", help="CLI for managing back-office users and the database.")

# Shared async context manager for database connection
class DBConnection:
    async def __aenter__(self):
        await Tortoise.init(config=TORTOISE_ORM_CONFIG)
        await Tortoise.generate_schemas(safe=True) # Generate schema if it doesn't exist
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await Tortoise.close_connections()

# User management commands
user_app = typer.Typer(name="users", help="Manage user accounts.")
app.add_typer(user_app)

@user_app.command("create")
def create_user_command(
    username: str = typer.Option(..., prompt=True, help="Username for the new user."),
    email: str = typer.Option(..., prompt=True, help="Email for the new user."),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password for the new user.")
):
    """Creates a new active user."""
    asyncio.run(_create_user(username, email, password))

async def _create_user(username: str, email: str, password: str):
    """Async implementation for creating a user."""
    async with DBConnection():
        typer.echo(f"Attempting to create user: {username} ({email})...")
        if await auth_service.get_user_by_username(username):
            typer.secho(f"Error: User with username '{username}' already exists.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if await auth_service.get_user_by_email(email):
            typer.secho(f"Error: User with email '{email}' already exists.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        try:
            user = await auth_service.create_user(
                {"username": username, "email": email, "is_active": True},
                get_password_hash(password),
            )
        except IntegrityError as e:
            # Fallback for a concurrent insert of the same username or email
            typer.secho(f"Error creating user: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        typer.secho(f"User '{user.username}' created successfully with ID: {user.public_id}", fg=typer.colors.GREEN)

async def _set_user_active(username: str, is_active: bool):
    """Async implementation shared by the disable and enable commands."""
    action = "enable" if is_active else "disable"
    async with DBConnection():
        typer.echo(f"Attempting to {action} user account '{username}'...")
        user = await auth_service.get_user_by_username(username)
        if not user:
            typer.secho(f"Error: User with username '{username}' not found.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if user.is_active == is_active:
            state = "active" if is_active else "inactive"
            typer.secho(f"User '{username}' is already {state}.", fg=typer.colors.YELLOW)
            raise typer.Exit(code=0)

        await auth_service.set_user_active(username, is_active)
        typer.secho(f"User account '{username}' has been successfully {action}d.", fg=typer.colors.GREEN)

@user_app.command("disable")
def disable_user_account_command(
    username: str = typer.Argument(..., help="The username of the user to disable.")
):
    """Disables an existing user's account."""
    asyncio.run(_set_user_active(username, False))

@user_app.command("enable")
def enable_user_account_command(
    username: str = typer.Argument(..., help="The username of the user to enable.")
):
    """Enables an existing user's account."""
    asyncio.run(_set_user_active(username, True))

@app.command("check-db")
def check_db_command():
    """Tests the database connection and counts user accounts."""
    asyncio.run(_check_db())

async def _check_db():
    try:
        async with DBConnection():
            typer.echo("Successfully connected to the database.")
            user_count = await AuthUser.all().count()
            typer.echo(f"Found {user_count} user(s) in the database.")
    except OperationalError as e:
        typer.secho(f"Database check failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
