"""Application context management for the CLI."""

from __future__ import annotations

from dataclasses import dataclass

from dremops.cli.common.exits import die
from dremops.cli.common.log import setup_logging
from dremops.core.auth import AuthError
from dremops.core.config import Settings, load_settings
from dremops.core.workbench import Workbench


@dataclass
class AppContext:
    """Application context holding resolved settings for one invocation."""

    settings: Settings


def build_app_context(
    *,
    endpoint: str | None,
    pat: str | None,
    insecure: bool = False,
    verbose: bool = False,
) -> AppContext:
    """Resolve settings from the environment plus CLI overrides and set up logging.

    Args:
        endpoint: Optional Dremio URL overriding $DREMIO_ENDPOINT.
        pat: Optional personal access token overriding $DREMIO_PAT.
        insecure: Disable TLS verification.
        verbose: Log at DEBUG level instead of the configured level.

    Returns:
        AppContext: Context with the resolved settings.
    """
    settings = load_settings(
        endpoint=endpoint,
        pat=pat,
        ssl_verify=False if insecure else None,
    )
    setup_logging("DEBUG" if verbose else settings.log_level)
    return AppContext(settings=settings)


def open_workbench(appctx: AppContext, **kwargs) -> Workbench:
    """Connect a Workbench, exiting with a message when not configured.

    Must be called from a running event loop; use as `async with`.
    """
    try:
        return Workbench.connect(appctx.settings, **kwargs)
    except AuthError as exc:
        die(str(exc), code=1)
