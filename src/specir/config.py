"""Load compiler options files.

An options file is a YAML or JSON mapping whose keys are the kebab-case
option names of :class:`~specir.models.CompilerOptions`::

    include-tags: [pets]
    exclude-tags: [internal]
    import-mapping:
      common.yaml: shared
    exclude-schemas: [Error]
    response-type-suffix: Result

Only one file is read; there is no layering or environment override.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from specir.exceptions import ConfigError, SpecParseError
from specir.models import CompilerOptions
from specir.parser.loader import parse_content


def load_options(path: Optional[str | Path] = None) -> CompilerOptions:
    """Load and validate compiler options from *path*.

    Args:
        path: Options file. ``None`` returns the defaults.

    Returns:
        The validated :class:`~specir.models.CompilerOptions`. An empty file
        yields the defaults.

    Raises:
        ConfigError: If the file does not exist, cannot be parsed, or fails
            validation (unknown keys included).
    """
    if path is None:
        return CompilerOptions()

    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigError(f"Options file not found: {file_path}")
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read options file {file_path}: {exc}") from exc

    if not text.strip():
        return CompilerOptions()

    hint = "json" if file_path.suffix.lower() == ".json" else ""
    try:
        data = parse_content(text, hint=hint)
        return CompilerOptions.model_validate(data)
    except (SpecParseError, ValidationError) as exc:
        raise ConfigError(f"Invalid options file {file_path}: {exc}") from exc
