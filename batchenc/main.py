import logging
import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.prompt import Confirm
from batchenc.config.loader import config_exists, default_config, load_config, resolve_target, save_config
from batchenc.domain.errors import InvalidPathError
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.ffmpeg import FFmpegAdapter
from batchenc.infrastructure.fingerprint_store import DEFAULT_DB_NAME, FingerprintStore
from batchenc.infrastructure.logging import DEFAULT_LOG_NAME, setup_logging
from batchenc.pipeline.controller import StageController
from batchenc.pipeline.session import Session
from batchenc.ui.keyboard import KeyboardListener
from batchenc.ui.menu import confirm_drop, display_main_menu, display_pause_menu
from batchenc.ui.progress import ProgressView

app = typer.Typer(help="batchenc - incremental batch video encoding with ffmpeg")

@app.command()
def run(
    path_arg: Optional[str] = typer.Argument(
        None,
        help="Working directory or config file (defaults to the current directory)"
    ),
    db_path: Optional[Path] = typer.Option(None, "--db-path", help="Path to the fingerprint database"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Scan a folder and encode every video that has not been encoded yet."""
    cwd = Path.cwd()
    console = Console()

    try:
        try:
            target = resolve_target(path_arg, cwd)
        except InvalidPathError as exc:
            typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        log_file = log_path or cwd / DEFAULT_LOG_NAME
        logger = setup_logging(log_file, debug=debug, console=console)

        if not config_exists(target):
            created = save_config(default_config(target), target)
            console.print(f"Default config created at {created}", markup=False)
            if not Confirm.ask("Continue with the default config?", default=False, console=console):
                raise typer.Exit(code=0)

        config = load_config(target)
        if debug:
            config.debug = True
        if log_path is not None:
            config.log_path = str(log_path)
        elif config.log_path or config.debug != debug:
            log_file = Path(config.log_path) if config.log_path else log_file
            logger = setup_logging(log_file, debug=config.debug, console=console)

        ffmpeg = FFmpegAdapter(config.ffmpeg_path)
        logger.info(f"FFmpeg version: {ffmpeg.get_version()}")

        bus = EventBus()
        keyboard = KeyboardListener(bus)
        controller = StageController(bus, keyboard, pause_menu=lambda: display_pause_menu(console))
        progress_view = ProgressView(bus, console)
        progress_view.attach()
        try:
            with FingerprintStore(db_path or cwd / DEFAULT_DB_NAME) as store:
                session = Session(
                    config,
                    store,
                    bus,
                    console=console,
                    controller=controller,
                    ffmpeg_adapter=ffmpeg,
                    main_menu=display_main_menu,
                    confirm=confirm_drop,
                )
                session.loop()
        finally:
            progress_view.detach()

    except KeyboardInterrupt:
        typer.secho("\nStopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        with open("error.log", "a") as f:
            import traceback
            traceback.print_exc(file=f)
        logging.getLogger(__name__).debug("Fatal error", exc_info=True)
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
