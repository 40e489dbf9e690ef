# config/resolvers.py
from pathlib import Path
from typing import Optional, Tuple, List

from healthfusion.config.settings import Settings
from healthfusion.domain.exceptions import (
    ConfigurationError,
    InputFileNotFoundError,
    FileValidationError,
    ResourceError,
)
from healthfusion.utils.logging import default_log_dir


def resolve_log_dir(log_dir: Optional[Path] = None) -> Path:
    """Return a usable log directory, creating it when needed."""
    p = Path(log_dir) if log_dir else default_log_dir()
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ResourceError(
            f"Cannot create log directory: {p}",
            context={"log_dir": str(p)},
        ).add_suggestion("Pass --log-dir with a writable location") from e
    return p


def sensor_file_for(scan_path: Path, suffix: str = ".sensors.json") -> Optional[Path]:
    """The sensor snapshot paired with a scan document, if present."""
    candidate = scan_path.with_name(scan_path.stem + suffix)
    return candidate if candidate.is_file() else None


def _is_scan_document(p: Path, extensions: Tuple[str, ...], sensor_suffix: str) -> bool:
    name = p.name.lower()
    if name.endswith(sensor_suffix.lower()):
        return False
    return p.suffix.lower() in extensions


def resolve_inputs(settings: Settings) -> Tuple[Path, ...]:
    """
    Turn the input settings into a stable, unique tuple of scan documents.
    - input_directory: every matching file (recursive on request), sensor files excluded.
    - input_files: each must exist and carry a supported extension.
    """
    extensions = tuple(e.lower() for e in settings.processing.extensions)
    sensor_suffix = settings.processing.sensor_suffix

    if settings.input_files and settings.input_directory:
        raise ConfigurationError(
            "Specify either explicit input files or input_dir, not both.",
            config_field="input_sources",
        )

    if settings.input_directory:
        base = Path(settings.input_directory)
        if not base.is_dir():
            raise ConfigurationError(
                f"--input-dir is not a directory: {base}",
                config_field="input_directory",
            )
        pattern = "**/*" if settings.recursive else "*"
        found: List[Path] = []
        # collect matching files
        for p in base.glob(pattern):
            if p.is_file() and _is_scan_document(p, extensions, sensor_suffix):
                found.append(p.resolve())
        files = tuple(sorted(set(found)))
        if not files:
            rec = " recursively" if settings.recursive else ""
            exts = ", ".join(extensions)
            raise ConfigurationError(
                f"No files with extensions ({exts}) found in {base}{rec}.",
                config_field="input_directory",
            )
        return files

    if settings.input_files:
        # normalize & validate explicit files
        files = []
        for item in settings.input_files:
            p = Path(item)
            if not p.is_file():
                raise InputFileNotFoundError(str(p))
            if p.suffix.lower() not in extensions:
                raise FileValidationError(
                    f"Unsupported input extension for {p} (allowed: {extensions})",
                    file_path=str(p),
                    validation_type="extension_check",
                )
            files.append(p.resolve())
        # stable & unique
        return tuple(sorted(set(files)))

    raise ConfigurationError(
        "No inputs provided. Use input=... or input_dir=...",
        config_field="input_sources",
    )
