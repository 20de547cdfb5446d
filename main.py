import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from config import settings

APP_NAME = "Book Tracking CLI"

console = Console()

app = typer.Typer(help=APP_NAME)

ROUTES = [
    ("GET", "/", "Service banner and endpoint map"),
    ("GET", "/health", "Liveness check"),
    ("POST", "/books", "Add a book (title, author)"),
    ("GET", "/books", "List all books"),
    ("GET", "/books/{id}", "Get a single book"),
    ("PATCH", "/books/{id}", "Update title and/or author"),
    ("PATCH", "/books/{id}/checkout", "Mark a book as checked out"),
    ("PATCH", "/books/{id}/return", "Mark a book as returned"),
]


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Restart the server on code changes"),
    open_browser: bool = typer.Option(False, "--open", help="Open the API docs in a browser"),
):
    """Start the API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/"
    console.print(f"[green]Starting {settings.app_name} on [link={url}]{url}[/link][/]")

    if open_browser:
        try:
            webbrowser.open(f"{url}docs")
        except webbrowser.Error:
            console.print("[yellow]Could not open a web browser automatically.[/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
        "--log-level", settings.log_level.lower(),
    ]
    if reload:
        args.append("--reload")

    try:
        subprocess.run(args, check=False)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")
        raise typer.Exit(code=1)


@app.command("routes")
def routes():
    """Print the HTTP endpoints the API exposes."""
    table = Table(title=f"📚 {settings.app_name}", show_lines=True, header_style="bold cyan")
    table.add_column("Method", style="magenta", no_wrap=True)
    table.add_column("Path", style="white")
    table.add_column("Description", style="white")
    for method, path, description in ROUTES:
        table.add_row(method, path, description)
    console.print(table)


if __name__ == "__main__":
    app()
