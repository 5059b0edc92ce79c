"""Invoke tasks for the torrent stream project."""

from invoke import Context, task

SOURCES = "src/ tests/"


@task
def lint(ctx: Context) -> None:
    """Run ruff linter."""
    ctx.run(f"uv run ruff check {SOURCES}", pty=True)


@task
def format(ctx: Context, check: bool = False, fix: bool = False) -> None:
    """Run ruff formatter and optionally fix linting issues."""
    if fix:
        ctx.run(f"uv run ruff check --fix --unsafe-fixes {SOURCES}", pty=True)
        ctx.run(f"uv run ruff format {SOURCES}", pty=True)
    else:
        check_flag = "--check" if check else ""
        ctx.run(f"uv run ruff format {check_flag} {SOURCES}", pty=True)


@task
def test(ctx: Context, verbose: bool = True) -> None:
    """Run tests with pytest."""
    verbose_flag = "-v" if verbose else ""
    ctx.run(f"uv run pytest tests/ {verbose_flag}", pty=True)


@task
def check(ctx: Context) -> None:
    """Run all checks (lint, format check, tests)."""
    lint(ctx)
    format(ctx, check=True, fix=False)
    test(ctx)


@task
def serve(ctx: Context, torrent: str, port: int = 9000) -> None:
    """Stream a torrent over HTTP."""
    ctx.run(f"uv run torrent-stream {torrent} --port {port}", pty=True)


@task
def mcp(ctx: Context) -> None:
    """Run the FastMCP server over stdio."""
    ctx.run("uv run torrent-stream-mcp", pty=True)
