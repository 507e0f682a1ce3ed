"""Runtime configuration model for Quarry.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import (
    AMBIENT_PROJECT_ID_ENV,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_WRITES_PER_SECOND,
    DEFAULT_WORKERS,
    DEFAULT_WRITE_BATCH_SIZE,
    LOG_LEVEL_ENV,
    MAX_ATTEMPTS_ENV,
    MAX_WRITE_BATCH_SIZE,
    MAX_WRITES_PER_SECOND_ENV,
    PROJECT_ID_ENV,
    WORKERS_ENV,
    WRITE_BATCH_SIZE_ENV,
)
from core.errors import QuarryConfigError, QuarryDependencyError


@dataclass(frozen=True)
class QuarryConfig:
    """Validated runtime configuration.

    Attributes:
        project_id: Optional store project id; resolved from credentials if absent.
        write_batch_size: Writes per store batch request.
        max_attempts: Attempts per write before the sink fails the run.
        max_writes_per_second: Upper bound on the sink write rate.
        workers: Worker threads used for record conversion.
        log_level: Minimum structured log level.
    """

    project_id: str | None
    write_batch_size: int = DEFAULT_WRITE_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_writes_per_second: float = DEFAULT_MAX_WRITES_PER_SECOND
    workers: int = DEFAULT_WORKERS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "QuarryConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            QuarryConfigError: If environment values are invalid.
        """
        project_id = os.getenv(PROJECT_ID_ENV) or os.getenv(AMBIENT_PROJECT_ID_ENV) or None
        write_batch_size = _parse_int_env(WRITE_BATCH_SIZE_ENV, DEFAULT_WRITE_BATCH_SIZE)
        if not 1 <= write_batch_size <= MAX_WRITE_BATCH_SIZE:
            raise QuarryConfigError(
                f"Invalid {WRITE_BATCH_SIZE_ENV} value: expected 1..{MAX_WRITE_BATCH_SIZE}, "
                f"got {write_batch_size}."
            )
        max_attempts = _parse_int_env(MAX_ATTEMPTS_ENV, DEFAULT_MAX_ATTEMPTS)
        if max_attempts < 1:
            raise QuarryConfigError(
                f"Invalid {MAX_ATTEMPTS_ENV} value: expected at least 1, got {max_attempts}."
            )
        max_writes_per_second = _parse_float_env(
            MAX_WRITES_PER_SECOND_ENV, DEFAULT_MAX_WRITES_PER_SECOND
        )
        if max_writes_per_second <= 0:
            raise QuarryConfigError(
                f"Invalid {MAX_WRITES_PER_SECOND_ENV} value: expected a positive number, "
                f"got {max_writes_per_second}."
            )
        workers = _parse_int_env(WORKERS_ENV, DEFAULT_WORKERS)
        if workers < 1:
            raise QuarryConfigError(
                f"Invalid {WORKERS_ENV} value: expected at least 1, got {workers}."
            )
        return cls(
            project_id=project_id,
            write_batch_size=write_batch_size,
            max_attempts=max_attempts,
            max_writes_per_second=max_writes_per_second,
            workers=workers,
            log_level=os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL),
        )


def resolve_project_id(config: QuarryConfig) -> str:
    """Return the store project id, asking ambient credentials when unset.

    Args:
        config: Runtime configuration.

    Returns:
        Project identifier used in document names.

    Raises:
        QuarryConfigError: If no project id can be determined.
        QuarryDependencyError: If google-auth is missing.
    """
    if config.project_id:
        return config.project_id
    try:
        import google.auth
        from google.auth.exceptions import DefaultCredentialsError
    except ImportError as error:
        raise QuarryDependencyError(
            "Resolving the default project requires google-auth, but it is not installed. "
            f"Install google-auth or set {PROJECT_ID_ENV}."
        ) from error
    try:
        _, project_id = google.auth.default()
    except DefaultCredentialsError as error:
        raise QuarryConfigError(
            f"Could not resolve a project id from default credentials: {error}. "
            f"Set {PROJECT_ID_ENV} or pass --project-id."
        ) from error
    if not project_id:
        raise QuarryConfigError(
            "Default credentials carry no project id. "
            f"Set {PROJECT_ID_ENV} or pass --project-id."
        )
    return str(project_id)


def _parse_int_env(name: str, default: int) -> int:
    """Parse an integer environment value.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        QuarryConfigError: If value cannot be parsed into int.
    """
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise QuarryConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error


def _parse_float_env(name: str, default: float) -> float:
    """Parse a float environment value.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed float.

    Raises:
        QuarryConfigError: If value cannot be parsed into float.
    """
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError as error:
        raise QuarryConfigError(
            f"Invalid {name} value: expected a number, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
