"""
Seed the first allowlist entry

    python -m docverctl.scripts.bootstrap_admin --id 123 --login octocat
"""
import asyncio
import typer
from docverctl.database.mongodb import connect_db, close_db, ensure_indexes
from docverctl.models.allowed_user import AllowedUser
from docverctl.repositories.allowed_user_repository import allowed_user_repo

BOOTSTRAP_ACTOR = "bootstrap-script"

app = typer.Typer(help="Manage the DocVerCtl allowlist from the command line")


async def bootstrap(github_user_id: int, github_login: str, is_admin: bool) -> str:
    await connect_db()
    try:
        await ensure_indexes()
        return await allowed_user_repo.upsert_by_github_id(AllowedUser(
            github_user_id=github_user_id,
            github_login=github_login,
            is_admin=is_admin,
            added_by=BOOTSTRAP_ACTOR,
        ))
    finally:
        await close_db()


@app.command()
def main(
    github_user_id: int = typer.Option(..., "--id", min=1, help="Numeric GitHub user id"),
    github_login: str = typer.Option(..., "--login", help="GitHub login"),
    is_admin: bool = typer.Option(True, "--admin/--member", help="Grant admin rights"),
) -> None:
    """Create or refresh an allowlist entry keyed by GitHub id."""
    asyncio.run(bootstrap(github_user_id, github_login, is_admin))
    role = "admin" if is_admin else "member"
    typer.echo(f"Bootstrapped {github_login.lower()} ({github_user_id}) as {role}")


if __name__ == "__main__":
    app()
