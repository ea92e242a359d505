"""Service token CLI commands."""

import typer

from catalog_api.core.security import CallerRole

token_app = typer.Typer()


@token_app.command("create")
def create_token(
    subject: str = typer.Option(..., "--subject", "-s", help="Name of the publishing client"),
    role: CallerRole = typer.Option(CallerRole.PUBLISHER, "--role", help="Role granted by the token"),
    expires_minutes: int | None = typer.Option(
        None,
        "--expires-minutes",
        min=1,
        help="Lifetime in minutes (defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES)",
    ),
) -> None:
    """Mint a bearer token for a publishing client and print it."""
    from catalog_api.core.config import get_settings
    from catalog_api.core.security import create_access_token

    settings = get_settings()
    token = create_access_token(
        subject,
        role.value,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=expires_minutes or settings.jwt_access_token_expire_minutes,
    )
    typer.echo(token)
