# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Create .venv with test and dev extras."""
    ctx.run("uv sync --extra test --extra dev")


@task
def clean(ctx):
    """
    Remove untracked files after showing what would go. Cannot be undone.
    """
    ctx.run("git clean -nfdx")

    response = input("Remove these untracked files? (y/n) [n]: ").strip().lower()
    if response == "y":
        ctx.run("git clean -fdx")


@task
def lint(ctx):
    """Ruff and mypy over the package and tests."""
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx, k=""):
    """
    Run tests with coverage. Use -k to select tests by expression.
    """
    select = f" -k '{k}'" if k else ""
    ctx.run(f"pytest --cov=airscan --cov-report=term-missing{select}", pty=True)


@task
def discover(ctx):
    """List scanners on the local network, with debug logging."""
    ctx.run("LOGLEVEL=DEBUG airscan list", pty=True)


@task
def build_package(ctx):
    """Build sdist and wheel into dist/."""
    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task
def release(ctx):
    """Build and publish to PyPI using uv."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    ctx.run("invoke build-package")
    ctx.run(f"uv publish --token {token}")
