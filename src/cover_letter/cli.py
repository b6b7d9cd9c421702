"""CLI entry point for Cover Letter."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
from rich.console import Console

from . import __version__
from .assistant import Assistant
from .commands import CommandDispatcher
from .config import (
    CONFIG_FILE,
    Config,
    ConfigError,
    LLMConfig,
    get_example_configs,
    load_config,
    require_credentials,
    required_key_env,
    save_config,
)
from .controller import SessionController
from .tui_textual import CoverLetterApp

console = Console()

LOG_FILE = Path.home() / ".cache" / "cover-letter" / "debug.log"


def configure_logging(debug_logging: bool) -> logging.Logger | None:
    """Set up logging; returns the controller trace logger when debugging."""
    if debug_logging:
        # Debug logging enabled - use rotating file handler
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        )
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[handler],
        )
        logging.info("Cover Letter starting (debug logging enabled)")
        return logging.getLogger("cover_letter.trace")

    # Default: only warn+ so TUI stays clean
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return None


@click.group(invoke_without_command=True)
@click.option("--model", help="LLM model name with litellm prefix for this run (e.g., openai/gpt-4o-mini)")
@click.option("--start-dir", type=click.Path(exists=True, file_okay=False), help="Directory the file browser opens in")
@click.option("--debug-logging/--no-debug-logging", default=None, help="Enable debug logging to file")
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def main(ctx: click.Context, model: str | None, start_dir: str | None, debug_logging: bool | None, version: bool) -> None:
    """Cover Letter - write a tailored cover letter with an AI assistant."""
    if version:
        console.print(f"cover-letter v{__version__}")
        return

    # If no subcommand, run the main TUI
    if ctx.invoked_subcommand is None:
        config = load_config()
        # Apply CLI overrides (not saved to config file)
        if model is not None:
            config.llm.model = model
        if start_dir is not None:
            config.ui.start_dir = start_dir
        if debug_logging is not None:
            config.debug_logging = debug_logging
        run_wizard(config)


def run_wizard(config: Config) -> None:
    """Run the cover letter TUI until the session ends."""
    trace = configure_logging(config.debug_logging)

    try:
        require_credentials(config)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1)

    assistant = Assistant(
        model=config.llm.model,
        api_base=config.llm.api_base,
        api_key=config.llm.api_key,
        timeout=config.llm.timeout,
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
    )
    dispatcher = CommandDispatcher(assistant)
    controller = SessionController(
        dispatcher,
        ui=config.ui,
        drafts_dir=config.drafts_dir,
        trace=trace,
    )

    app = CoverLetterApp(controller, dispatcher)
    try:
        app.run()
    except KeyboardInterrupt:
        pass
    finally:
        dispatcher.shutdown()

    if app.fatal_error:
        console.print(f"[red]Error:[/red] {app.fatal_error}")
    else:
        console.print("\n[dim]Goodbye![/dim]")
    exit_session(dispatcher, 1 if app.fatal_error else 0)


def exit_session(dispatcher: CommandDispatcher, code: int) -> None:
    """Leave the process with ``code`` without waiting on abandoned work.

    Executor threads are joined at interpreter exit. While a command is
    still running, flush output and exit at once.
    """
    dispatcher.shutdown()
    if dispatcher.busy:
        logging.getLogger(__name__).debug("Exiting with commands still in flight")
        logging.shutdown()
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(code)
    if code:
        raise SystemExit(code)


@main.command()
@click.option("--url", help="LLM server API base URL (e.g., http://localhost:1234/v1)")
@click.option("--model", help="LLM model name with litellm prefix (e.g., openai/gpt-4o-mini)")
@click.option("--llm-preset", "preset", type=click.Choice(list(get_example_configs())), help="Use preset LLM configuration")
@click.option("--drafts-dir", help="Directory finished cover letters are saved to")
@click.option("--debug-logging/--no-debug-logging", default=None, help="Enable debug logging to file")
@click.option("--show", is_flag=True, help="Show current configuration")
def config(url: str | None, model: str | None, preset: str | None, drafts_dir: str | None, debug_logging: bool | None, show: bool) -> None:
    """Configure Cover Letter settings.

    Examples:
      cover-letter config --llm-preset anthropic     # Use Anthropic API
      cover-letter config --llm-preset lm-studio     # Use LM Studio
      cover-letter config --drafts-dir ~/letters     # Change where drafts go
      cover-letter config --show                     # Show current config
    """
    current_config = load_config()

    if show:
        console.print("\n[bold]LLM Configuration:[/bold]")
        console.print(f"  Model:    [cyan]{current_config.llm.model}[/cyan]")
        if current_config.llm.api_base:
            console.print(f"  API Base: [cyan]{current_config.llm.api_base}[/cyan]")
        console.print(f"  Timeout:  [cyan]{current_config.llm.timeout:g}s[/cyan]")

        # Show API key reminder based on model prefix
        env_var = required_key_env(current_config.llm)
        if env_var is not None:
            has_key = bool(os.getenv(env_var) or current_config.llm.api_key)
            console.print(f"  API Key:  [{'green' if has_key else 'red'}]{'set' if has_key else 'not set'}[/] ({env_var})")

        console.print("\n[bold]Session:[/bold]")
        console.print(f"  Drafts Dir:    [cyan]{current_config.drafts_dir}[/cyan]")
        console.print(f"  Start Dir:     [cyan]{current_config.ui.start_dir or '(current directory)'}[/cyan]")
        console.print(f"  Debug Logging: [cyan]{current_config.debug_logging}[/cyan]")
        console.print(f"\nConfig file: [dim]{CONFIG_FILE}[/dim]")
        return

    if preset:
        preset_config = get_example_configs()[preset]
        console.print(f"Using [cyan]{preset_config['description']}[/cyan] preset")
        current_config.llm = LLMConfig(
            model=preset_config["model"],
            api_base=preset_config.get("api_base"),
            timeout=current_config.llm.timeout,
            max_tokens=current_config.llm.max_tokens,
            temperature=current_config.llm.temperature,
        )
    elif url or model:
        if url:
            current_config.llm.api_base = url
        if model:
            current_config.llm.model = model

    if drafts_dir:
        current_config.drafts_dir = drafts_dir
    if debug_logging is not None:
        current_config.debug_logging = debug_logging

    if not (preset or url or model or drafts_dir or debug_logging is not None):
        # No flags at all: show presets
        console.print("\n[bold]LLM Presets:[/bold]\n")
        for name, cfg in get_example_configs().items():
            console.print(f"  [cyan]{name:12}[/cyan] {cfg['description']}")
            if "api_base" in cfg:
                console.print(f"               API Base: {cfg['api_base']}")
            console.print(f"               Model:    {cfg['model']}\n")
        console.print("Use --llm-preset to apply an LLM preset.")
        console.print("Use --show to view current configuration.")
        return

    # Keys from the environment are never written to disk
    current_config.llm.api_key = None
    save_config(current_config)

    console.print("\n[green]Configuration saved![/green]")
    console.print(f"  Model:      [cyan]{current_config.llm.model}[/cyan]")
    if current_config.llm.api_base:
        console.print(f"  API Base:   [cyan]{current_config.llm.api_base}[/cyan]")
    console.print(f"  Drafts Dir: [cyan]{current_config.drafts_dir}[/cyan]")

    env_var = required_key_env(current_config.llm)
    if env_var is not None:
        console.print(f"\n[yellow]Remember:[/yellow] Set {env_var} environment variable")
    console.print(f"\nSaved to: [dim]{CONFIG_FILE}[/dim]")


if __name__ == "__main__":
    main()
