"""Rich tree rendering of upgrade stages for CLI output."""

from __future__ import annotations

from dataclasses import dataclass

from rich.tree import Tree

STATUS_SYMBOLS = {
    "pending": "[green dim]○[/green dim]",
    "done": "[green]●[/green]",
    "skipped": "[yellow]○[/yellow]",
    "error": "[red]●[/red]",
}


@dataclass
class _Step:
    key: str
    label: str
    status: str = "pending"
    detail: str = ""


class StepTracker:
    """Ordered list of labelled steps, each pending, done, skipped or error."""

    def __init__(self, title: str):
        self.title = title
        self._steps: dict[str, _Step] = {}

    def add(self, key: str, label: str) -> None:
        self._steps.setdefault(key, _Step(key, label))

    def complete(self, key: str, detail: str = "") -> None:
        self._update(key, "done", detail)

    def skip(self, key: str, detail: str = "") -> None:
        self._update(key, "skipped", detail)

    def error(self, key: str, detail: str = "") -> None:
        self._update(key, "error", detail)

    def status_of(self, key: str) -> str | None:
        step = self._steps.get(key)
        return step.status if step else None

    def _update(self, key: str, status: str, detail: str) -> None:
        step = self._steps.setdefault(key, _Step(key, key))
        step.status = status
        if detail:
            step.detail = detail

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self._steps.values():
            symbol = STATUS_SYMBOLS.get(step.status, " ")
            label_style = "bright_black" if step.status == "pending" else "white"
            line = f"{symbol} [{label_style}]{step.label}[/{label_style}]"
            if step.detail:
                line += f" [bright_black]({step.detail.strip()})[/bright_black]"
            tree.add(line)
        return tree
