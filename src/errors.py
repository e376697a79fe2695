import functools

from aws_lambda_powertools import Logger


class SyncError(Exception):
    """Base class for failures that abort a sync run."""


class ConfigurationError(SyncError):
    ...


class DirectoryError(SyncError):
    ...


class RegistryError(SyncError):
    ...


class GroupStoreError(SyncError):
    ...


EXIT_OK = 0
EXIT_FATAL = 1


def handle_errors(logger: Logger):  # noqa: ANN201
    """Turn a SyncError escaping a run entry point into a logged, non-zero exit status."""

    def decorator(fn):  # noqa: ANN001, ANN202
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
            try:
                return fn(*args, **kwargs)
            except SyncError as e:
                logger.exception(f"Sync run aborted: {e}", extra={"error_type": type(e).__name__})
                return EXIT_FATAL

        return wrapper

    return decorator
