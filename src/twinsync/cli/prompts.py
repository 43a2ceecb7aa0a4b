"""Interactive prompts for the CLI, backed by typer and rich."""

from __future__ import annotations

import typer
from rich.console import Console

from twinsync.core.sync.gate import GateChoice, LargeFile, parse_gate_answer

console = Console()


class CliPrompter:
    """Prompter implementation that asks on the terminal."""

    def confirm(self, message: str, default: bool = False) -> bool:
        return typer.confirm(message, default=default)

    def ask(self, message: str, default: str = "") -> str:
        return str(typer.prompt(message, default=default, show_default=bool(default)))

    def choose(self, message: str, choices: list[str], default: str) -> str:
        options = "/".join(choices)
        while True:
            answer = str(typer.prompt(f"{message} [{options}]", default=default)).strip().lower()
            if answer in choices:
                return answer
            console.print(f"[yellow]Please answer one of: {options}[/yellow]")

    def ask_large_file(self, candidate: LargeFile) -> GateChoice:
        console.print(
            f"[yellow]⚠[/yellow]  [bold]{candidate.path}[/bold] is {candidate.size_mb:.1f} MB"
        )
        while True:
            answer = typer.prompt(
                "Upload it? [y]es / [N]o / [a]ll remaining / [x] skip all remaining",
                default="",
                show_default=False,
            )
            choice = parse_gate_answer(str(answer))
            if choice is not None:
                return choice
            console.print("[yellow]Answer y, n, a or x (Enter skips this file)[/yellow]")
