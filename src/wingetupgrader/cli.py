import dataclasses
import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEPLOY_MODES
from .core import WingetUpgrader
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_NAME = ".wingetupgrader.yml"

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _configure_logging(logger: logging.Logger, verbose: bool, log_file):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML or JSON override document. Defaults to {DEFAULT_CONFIG_NAME} if present.",
)
@click.option(
    "--deploy-mode",
    required=False,
    type=click.Choice(DEPLOY_MODES),
    help="Override the configured deploy mode. Non-interactive modes upgrade every package.",
)
@click.option(
    "--direct-query",
    is_flag=True,
    default=False,
    help="Run the package query in the current session instead of the logged-on user's.",
)
@click.option(
    "--skip-dependency-check",
    is_flag=True,
    default=False,
    help="Do not check for or install the Microsoft.WinGet.Client module.",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(config, deploy_mode, direct_query, skip_dependency_check, verbose, log_file):
    """Offer available winget upgrades to the logged-on user and apply the chosen ones."""
    logger = logging.getLogger("wingetupgrader")

    resolved_config = config
    if resolved_config is None:
        default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path

    load_result = ConfigLoader(logger=logger).load(resolved_config)
    upgrader_config = load_result.config
    if deploy_mode:
        upgrader_config = dataclasses.replace(
            upgrader_config,
            session=dataclasses.replace(upgrader_config.session, deploy_mode=deploy_mode),
        )

    _configure_logging(logger, verbose, log_file or upgrader_config.log_file)

    upgrader = WingetUpgrader(
        config=upgrader_config,
        direct_query=direct_query,
        check_dependencies=not skip_dependency_check,
    )
    raise SystemExit(upgrader.run())


if __name__ == "__main__":
    main()
