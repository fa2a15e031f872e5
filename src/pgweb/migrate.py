"""Schema migration runner.

Applies versioned migrations to a database by delegating to the Atlas CLI.
This runs as its own command and never touches the service's active
connection.
"""

import asyncio
import logging
import os
import sys

from pgweb.config.settings import MigrationConfig
from pgweb.models.errors import MigrationError
from pgweb.observability.logging import configure_logging

logger = logging.getLogger(__name__)

FILE_SCHEME = "file://"


def normalize_dir(migrations_dir: str) -> str:
    """Turn a migrations directory into the URL form Atlas expects.

    Example:
        >>> normalize_dir("migrations")
        'file:///srv/pgweb/migrations'
        >>> normalize_dir("file://migrations")
        'file://migrations'
    """
    if migrations_dir.startswith(FILE_SCHEME):
        return migrations_dir
    return FILE_SCHEME + os.path.abspath(migrations_dir)


def build_command(config: MigrationConfig) -> list[str]:
    """Argument vector for ``atlas migrate apply``.

    Raises:
        MigrationError: If no database URL is configured.
    """
    if not config.database_url:
        raise MigrationError("PGWEB_DATABASE_URL is required")
    return [
        config.atlas_bin,
        "migrate",
        "apply",
        "--dir",
        normalize_dir(config.migrations_dir),
        "--url",
        config.database_url,
    ]


async def run_migrations(config: MigrationConfig) -> None:
    """Run Atlas and wait for it to finish.

    The child inherits this process's environment, stdout and stderr.

    Args:
        config: Migration settings.

    Raises:
        MigrationError: If the URL is missing, Atlas cannot be started, or
            it exits with a non-zero status.
    """
    command = build_command(config)
    logger.info("Applying migrations from %s", command[4])
    try:
        process = await asyncio.create_subprocess_exec(*command)
    except OSError as e:
        raise MigrationError(
            f"Failed to start {config.atlas_bin}: {e}",
            details={"atlas_bin": config.atlas_bin},
        ) from e

    returncode = await process.wait()
    if returncode != 0:
        raise MigrationError(
            f"Migration failed with exit code {returncode}",
            details={"exit_code": returncode},
        )
    logger.info("Migrations applied successfully")


def main() -> None:
    """Entry point of the ``pgweb-migrate`` command."""
    configure_logging()
    try:
        asyncio.run(run_migrations(MigrationConfig()))
    except MigrationError as e:
        logger.error("%s", e.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
