from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from apigen.errors import GenerationError
from apigen.orchestrator.pipeline import run_generate


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@app.command()
def generate(
    source: str = typer.Argument(..., help="Annotated Python service module"),
    output: str = typer.Argument(..., help="Where to write the generated module"),
) -> None:
    source_path = Path(source).expanduser().resolve()
    if not source_path.is_file():
        raise typer.BadParameter(f"Source file does not exist: {source_path}")
    output_path = Path(output).expanduser()

    try:
        result = run_generate(source_path, output_path)
    except (GenerationError, OSError) as exc:
        console.print(f"[bold red]error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]apigen[/bold green] {source_path.name} -> {result.output_path}")
    console.print(f"Bind functions: {len(result.bind_functions)}")
    for name in result.bind_functions:
        console.print(f"  {name}")
    console.print(f"Handlers: [bold]{len(result.handlers)}[/bold]")
    for h in result.handlers:
        method = h.restricted_method or "*"
        auth = "auth" if h.auth_required else ""
        console.print(f"  {method:<6} {h.url:<35} -> {h.receiver_type}.{h.business_method_name} {auth}")
    console.print(f"Routers: {', '.join(result.routers) or '-'}")


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    app()


if __name__ == "__main__":
    main()
