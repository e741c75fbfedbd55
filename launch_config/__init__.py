"""
launch_config -- single public entrypoint for approval-workflow configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a ``CompiledLaunchConfig``; YAML
    loading is internal tooling and never exposed to callers.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``launch_kernel``.  The kernel must never import
    ``launch_config``; ``bridges`` translates compiled artifacts into
    kernel objects.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` / ``ValueError`` -- missing keys or wrongly typed values.
    - ``CompilationFailedError`` -- structural validation errors.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LAUNCH_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and role count, tying each approval session to the exact
    configuration that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from launch_config.compiler import (
    CompilationFailedError,
    CompiledLaunchConfig,
    compile_launch_config,
)
from launch_config.loader import load_configuration_set

_logger = logging.getLogger("launch_kernel.config")

CONFIG_PATH_ENV = "LAUNCH_CONFIG_PATH"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> CompiledLaunchConfig:
    """The only public configuration entrypoint.

    Args:
        path: Explicit configuration file.  Falls back to the
            ``LAUNCH_CONFIG_PATH`` environment variable, then to the
            bundled ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        CompilationFailedError: If validation produces errors.
    """
    config_path = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)

    config_set = load_configuration_set(config_path)
    compiled = compile_launch_config(config_set)

    for warning in compiled.warnings:
        _logger.warning("launch_config_warning", extra={"detail": warning})

    _logger.info(
        "LAUNCH_CONFIG_TRACE",
        extra={
            "trace_type": "LAUNCH_CONFIG_TRACE",
            "config_id": compiled.config_id,
            "config_version": compiled.config_version,
            "checksum": compiled.checksum,
            "config_path": str(config_path),
            "role_count": len(compiled.roles),
            "alias_count": len(compiled.aliases),
        },
    )

    return compiled


__all__ = [
    "CONFIG_PATH_ENV",
    "CompilationFailedError",
    "CompiledLaunchConfig",
    "get_active_config",
]
