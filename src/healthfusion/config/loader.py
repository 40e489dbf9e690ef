"""Build ``Settings`` from parsed CLI arguments."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from healthfusion.config.settings import LogLevel, Settings
from healthfusion.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_SKIP = object()


def _switch_on(value: Any) -> Any:
    return True if value else _SKIP


def _switch_off(value: Any) -> Any:
    return False if value else _SKIP


def _given(value: Any) -> Any:
    return _SKIP if value is None else value


def _nonzero(value: Any) -> Any:
    return value if value else _SKIP


def _path(value: Any) -> Any:
    return Path(value) if value else _SKIP


def _debug_level(value: Any) -> Any:
    return LogLevel.DEBUG if value else _SKIP


# argparse dest -> (settings section, field, converter)
CLI_FLAGS: Dict[str, Tuple[str, str, Callable[[Any], Any]]] = {
    "gpu_sentinel_checks": ("normalization", "gpu_sentinel_checks", _switch_on),
    "vram_slack": ("normalization", "vram_slack", _given),
    "expected_sections": ("confidence", "expected_sections", _nonzero),
    "no_progress": ("processing", "show_progress", _switch_off),
    "fail_fast": ("processing", "continue_on_error", _switch_off),
    "output": ("output", "output_path", _path),
    "json": ("output", "json_output", _switch_on),
    "indent": ("output", "indent", _given),
    "include_snapshot": ("output", "include_snapshot", _switch_on),
    "log_dir": ("logging", "log_dir", _path),
    "debug": ("logging", "level", _debug_level),
    "quiet": ("logging", "quiet_console", _switch_on),
}


class ConfigurationLoader:
    """Turns an argparse namespace (or anything shaped like one) into Settings."""

    def load_from_cli_args(self, args) -> Settings:
        try:
            settings = self.load_defaults()
            updates: Dict[str, Dict[str, Any]] = {}
            for dest, (section, name, convert) in CLI_FLAGS.items():
                value = convert(getattr(args, dest, None))
                if value is not _SKIP:
                    updates.setdefault(section, {})[name] = value

            sections = {
                section: replace(getattr(settings, section), **fields)
                for section, fields in updates.items()
            }
            files, directory = self._inputs(args)
            return replace(
                settings,
                input_files=files,
                input_directory=directory,
                recursive=bool(getattr(args, "recursive", False)),
                debug_mode=bool(getattr(args, "debug", False)),
                dry_run=bool(getattr(args, "dry_run", False)),
                **sections,
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Could not read CLI arguments: {e}") from e

    @staticmethod
    def _inputs(args):
        given = getattr(args, "input", None)
        if given:
            if isinstance(given, (str, Path)):
                given = [given]
            return [Path(f) for f in given], None
        input_dir = getattr(args, "input_dir", None)
        return [], Path(input_dir) if input_dir else None

    def load_defaults(self) -> Settings:
        return Settings()


def configure_from_cli(args) -> Settings:
    """Load and validate settings for a CLI invocation."""
    settings = ConfigurationLoader().load_from_cli_args(args)
    settings.validate()
    logger.debug("Settings loaded from CLI: %s", settings.to_dict())
    return settings
