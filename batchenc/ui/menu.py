from typing import List, Optional, Tuple
from rich.console import Console
from rich.prompt import Confirm, Prompt
from batchenc.domain.models import MenuAction, PauseAction

MAIN_MENU: List[Tuple[str, MenuAction]] = [
    ("Scan the folder", MenuAction.SCAN),
    ("Process the folder", MenuAction.PROCESS),
    ("Toggle force state", MenuAction.TOGGLE_FORCE),
    ("[!] Drop the database", MenuAction.DROP),
    ("Quit app", MenuAction.QUIT),
]

PAUSE_MENU: List[Tuple[str, PauseAction]] = [
    ("Resume processing", PauseAction.RESUME),
    ("Stop and return to main menu", PauseAction.STOP),
]

def _choose(console: Console, title: str, entries, default: int = 1):
    console.print(f"[bold]{title}[/bold]")
    for number, (label, _) in enumerate(entries, start=1):
        console.print(f"  {number}. {label}", markup=False)
    choices = [str(number) for number in range(1, len(entries) + 1)]
    answer = Prompt.ask("Select", choices=choices, default=str(default), console=console)
    return entries[int(answer) - 1][1]

def display_main_menu(console: Optional[Console] = None, skip_probe: bool = False) -> MenuAction:
    """Shows the main menu; the force state is shown next to the title."""
    console = console or Console()
    title = "What do you want to do?"
    if skip_probe:
        title += " (force: probing skipped)"
    return _choose(console, title, MAIN_MENU)

def display_pause_menu(console: Optional[Console] = None) -> PauseAction:
    return _choose(console or Console(), "Paused. What do you want to do?", PAUSE_MENU)

def confirm_drop(console: Optional[Console] = None) -> bool:
    return Confirm.ask(
        "This removes every fingerprint record. Continue?",
        default=False,
        console=console or Console(),
    )
