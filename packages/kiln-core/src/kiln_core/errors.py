"""Custom exception hierarchy for kiln-core.

This module defines the exception classes raised while resolving an asset graph:
- KilnError: Base exception for all kiln-related errors
- AssetError: Errors attributed to a single asset, chained root -> failure
- CyclicDependencyError, DependencyFailedError, LoadError, GenerationError
- ConfigurationError: Raised when the install configuration is invalid

User-facing messages are safe to display. Technical details are logged
internally via structlog and never become part of str(error).
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

logger = structlog.get_logger(__name__)


class KilnError(Exception):
    """Base exception for kiln.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details. Logged internally,
            NEVER exposed through str(error).

    Example:
        >>> raise KilnError(
        ...     "Configuration invalid",
        ...     internal_details="Field 'baseDomain' empty in install-config.yaml",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize KilnError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "kiln_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class AssetError(KilnError):
    """An error attributed to a named asset.

    AssetErrors nest: each level of the graph wraps its child's error so the
    error that reaches the caller names every ancestor from the root down to
    the asset that originally failed.

    Attributes:
        asset_name: Human-readable name of the asset this error belongs to.
        cause: The wrapped child error, if any.
    """

    def __init__(
        self,
        asset_name: str,
        message: str,
        *,
        cause: BaseException | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize AssetError.

        Args:
            asset_name: Name of the asset reporting the error.
            message: Description of what went wrong at this level.
            cause: Child error being wrapped (optional).
            internal_details: Technical details for internal logging only.
        """
        self.asset_name = asset_name
        self.cause = cause
        self.message = message
        super().__init__(f"{asset_name}: {message}", internal_details=internal_details)

    @property
    def chain(self) -> list[str]:
        """Asset names from this error down to the original failure."""
        names = [self.asset_name]
        cause = self.cause
        while isinstance(cause, AssetError):
            names.append(cause.asset_name)
            cause = cause.cause
        return names

    @property
    def root_cause(self) -> BaseException:
        """Innermost error of the chain."""
        error: BaseException = self
        while isinstance(error, AssetError) and error.cause is not None:
            error = error.cause
        return error


class CyclicDependencyError(AssetError):
    """Raised when an asset (transitively) depends on itself.

    Fatal: aborts the whole resolution session.

    Attributes:
        cycle: Asset names from the traversal root to the repeated asset.

    Example:
        >>> raise CyclicDependencyError(["Bootstrap", "Manifests", "Bootstrap"])
        # User sees: "Bootstrap: cyclic dependency detected: Bootstrap -> Manifests -> Bootstrap"
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        """Initialize CyclicDependencyError.

        Args:
            cycle: Asset names from the root to the repeated asset (inclusive).
        """
        self.cycle = list(cycle)
        super().__init__(
            self.cycle[-1],
            f"cyclic dependency detected: {' -> '.join(self.cycle)}",
        )


class DependencyFailedError(AssetError):
    """Raised when a dependency of an asset could not be resolved.

    Wraps the child error with the name of the dependent asset.
    """

    def __init__(self, asset_name: str, cause: KilnError) -> None:
        """Initialize DependencyFailedError.

        Args:
            asset_name: Name of the asset whose dependency failed.
            cause: The dependency's error.
        """
        super().__init__(
            asset_name,
            f"failed to resolve dependency: {cause.user_message}",
            cause=cause,
        )


class LoadError(AssetError):
    """Raised when persisted state exists but cannot be loaded.

    A missing artifact is not a LoadError: load() reports it by returning
    False and the asset is generated instead.
    """


class IncompatibleArtifactError(LoadError):
    """Raised when a persisted artifact has an unsupported version or kind."""

    def __init__(
        self,
        asset_name: str,
        *,
        expected: str,
        found: str,
    ) -> None:
        """Initialize IncompatibleArtifactError.

        Args:
            asset_name: Name of the asset being loaded.
            expected: The version/kind the asset understands.
            found: The version/kind found in the persisted artifact.
        """
        super().__init__(
            asset_name,
            f"incompatible persisted artifact: expected {expected}, found {found}",
        )
        self.expected = expected
        self.found = found


class GenerationError(AssetError):
    """Raised when an asset fails to generate its output."""


class ResolutionCancelledError(AssetError):
    """Raised when a resolution session is cancelled or times out."""


class UndeclaredDependencyError(KilnError):
    """Raised when an asset asks for a dependency it did not declare.

    Attributes:
        dependency: Name of the requested dependency.
        declared: Names of the dependencies that were declared.
    """

    def __init__(self, dependency: str, declared: Sequence[str]) -> None:
        """Initialize UndeclaredDependencyError.

        Args:
            dependency: Name of the requested dependency.
            declared: Names of the declared dependencies.
        """
        declared_str = ", ".join(declared) if declared else "none"
        super().__init__(
            f"Dependency '{dependency}' was not declared. Declared: {declared_str}"
        )
        self.dependency = dependency
        self.declared = list(declared)


class ConfigurationError(KilnError):
    """Raised when configuration file parsing or validation fails.

    Attributes:
        file_path: Path to the configuration file (if known).
        field_path: Dot-separated path to the invalid field (e.g., "networking.serviceCIDR").

    Example:
        >>> raise ConfigurationError(
        ...     "Invalid service network",
        ...     file_path="install-config.yaml",
        ...     field_path="networking.serviceCIDR",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Safe message to display to the user.
            file_path: Path to the configuration file (optional).
            field_path: Dot-separated path to the field (optional).
            internal_details: Technical details for internal logging only.
        """
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path


class DuplicateFilePathError(KilnError):
    """Raised when two materialized files share a destination path."""

    def __init__(self, path: str) -> None:
        """Initialize DuplicateFilePathError.

        Args:
            path: The colliding destination-relative path.
        """
        super().__init__(f"Multiple files target the same path: {path}")
        self.path = path
