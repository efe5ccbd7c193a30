"""Shared Typer app object, shared option types, and store/client utilities."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.models import ProgramState
from ..io.config_loader import load_client_settings
from ..io.hevy_client import HevyClient
from ..io.serializers import ValidationError
from ..io.state_store import StateStore, get_default_state_path
from . import views

# Shared --state-path option type used across all commands
StatePathOption = Annotated[
    Optional[Path],
    typer.Option("--state-path", "-p", help="Path to the program state JSON file"),
]

app = typer.Typer(
    name="gzclp-sync",
    help="GZCLP progression tracker that keeps your Hevy routines in sync.",
    no_args_is_help=True,
)


def get_store(state_path: Path | None) -> StateStore:
    """Get state store from path or default location."""
    if state_path is None:
        state_path = get_default_state_path()
    return StateStore(state_path)


def load_state(store: StateStore) -> ProgramState:
    """Load the program state or exit with a readable error."""
    try:
        return store.load()
    except FileNotFoundError:
        views.print_error(f"No program at {store.state_path}. Run 'gzclp-sync init' first.")
        raise typer.Exit(1)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def get_client() -> HevyClient:
    """Build a Hevy client from config; exits when no API key is configured."""
    settings = load_client_settings()
    if not settings.api_key:
        views.print_error("No Hevy API key. Set HEVY_API_KEY or hevy.api_key in ~/.gzclp-sync/config.yaml")
        raise typer.Exit(1)
    return HevyClient(
        settings.api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        retry_base_delay=settings.retry_base_delay,
    )
