"""Validation of command-line arguments before any database work starts."""

from pathlib import Path

MAX_DATABASE_NAME_LENGTH = 63

SYSTEM_DIRECTORIES = ["/bin", "/sbin", "/usr/bin", "/usr/sbin", "/etc", "/sys", "/proc"]


class ValidationError(Exception):
    """Base exception for validation errors."""

    pass


class DatabaseNameValidationError(ValidationError):
    """Invalid database name."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid database name '{name}': {reason}")


class FilePathValidationError(ValidationError):
    """Invalid file path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid file path '{path}': {reason}")


def validate_database_name(name: str) -> None:
    """
    Validate the positional database name.

    Raises:
        DatabaseNameValidationError: If the name is empty, too long or contains a NUL byte

    Examples:
        >>> validate_database_name("shop")  # OK
        >>> validate_database_name("")  # Raises error
    """
    if not name or not name.strip():
        raise DatabaseNameValidationError(name, "Database name cannot be empty")

    if len(name) > MAX_DATABASE_NAME_LENGTH:
        raise DatabaseNameValidationError(
            name, f"Database name too long (max {MAX_DATABASE_NAME_LENGTH} characters)"
        )

    if "\x00" in name:
        raise DatabaseNameValidationError(name, "Database name cannot contain NUL bytes")


def validate_output_file_path(path: str | Path) -> None:
    """
    Validate the output file path.

    Raises:
        FilePathValidationError: If the path is invalid

    Examples:
        >>> validate_output_file_path("/tmp/sample.sql")  # OK
        >>> validate_output_file_path("./sample.sql")  # OK
    """
    if not path:
        raise FilePathValidationError(str(path), "File path cannot be empty")

    path_obj = Path(path)

    if path_obj.exists() and path_obj.is_dir():
        raise FilePathValidationError(str(path), "Path is a directory")

    parent = path_obj.parent
    if parent != Path(".") and not parent.exists():
        raise FilePathValidationError(
            str(path),
            f"Parent directory does not exist: {parent}\n"
            "Please create the directory first or use an existing directory.",
        )

    if parent.exists() and not parent.is_dir():
        raise FilePathValidationError(str(path), f"Parent path is not a directory: {parent}")

    if parent.exists():
        try:
            resolved = path_obj.resolve()
        except (OSError, RuntimeError) as e:
            raise FilePathValidationError(str(path), f"Invalid path: {e}")

        for system_dir in SYSTEM_DIRECTORIES:
            if str(resolved).startswith(system_dir + "/") or str(resolved) == system_dir:
                raise FilePathValidationError(
                    str(path),
                    f"Cannot write to system directory: {system_dir}\n"
                    "Please choose a different output location.",
                )
