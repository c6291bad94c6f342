"""Environment-backed settings for the document Q&A bridge."""

import logging
import os
from pathlib import Path


class HelperConfig:
    """Reads every setting from environment variables and carries the app logger.

    Keys are upper-cased before lookup. An empty variable counts as unset. A
    default of None makes the variable required.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _raw(self, key: str, default) -> str | None:
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return raw

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string, stripped of surrounding whitespace.

        Raises:
            ValueError: If the variable is unset and no default is given.
        """
        raw = self._raw(key, default)
        return raw.strip() if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int, or a float when the value contains a dot.

        Raises:
            ValueError: If the variable is unset without default, or not numeric.
        """
        raw = self._raw(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a flag; "true", "1" and "yes" (any case) are True, everything else False."""
        raw = self._raw(key, default)
        if raw is None:
            return default
        return raw.strip().lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as "[http://a.example, http://b.example]".

        Args:
            key (str): Variable name.
            default (list | None): Value used when the variable is unset.
            separator (str): Element delimiter inside the brackets.
            element_type (type): Callable applied to every element.

        Raises:
            ValueError: If the variable is unset without default, not bracketed,
                or an element cannot be converted.
        """
        raw = self._raw(key, default)
        if raw is None:
            return default
        raw = raw.strip()
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2]'. Got: '{raw}'")
        elements = [part.strip() for part in raw[1:-1].split(separator) if part.strip()]
        try:
            return [element_type(element) for element in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains an invalid {element_type.__name__}: {e}")

    def get_path_val(self, key: str, default: str | Path | None = None) -> Path:
        """Read a filesystem path.

        Relative values are resolved against ROOT_DIR, or the working
        directory when ROOT_DIR is unset.
        """
        raw = self.get_string_val(key, default=str(default) if default is not None else None)
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = Path(os.getenv("ROOT_DIR") or os.getcwd()) / path
        return path

    def get_logger(self) -> logging.Logger:
        return self._logger
