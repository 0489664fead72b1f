"""Loading configuration procedures from manifests and Python modules.

A configuration target is either:
- a YAML manifest path (``site.yaml``), declaring files and directories
- a ``module:function`` reference to a Python procedure taking a Reality

SECURITY: Manifest reads enforce a size limit. Input validation is performed
at the boundary.
"""

from __future__ import annotations

import importlib
import logging
import os
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from .apply import Configuration
from .config import MAX_MANIFEST_FILE_SIZE_BYTES
from .models import Manifest

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")


class ManifestLoadError(Exception):
    """Raised when a configuration target cannot be loaded or validated."""

    pass


def load_manifest(manifest_path: Path) -> Manifest:
    """Load and validate a declaration manifest from YAML.

    Args:
        manifest_path: Path of the YAML file.

    Returns:
        Validated manifest.

    Raises:
        ManifestLoadError: If the manifest cannot be loaded or fails validation.
    """
    if not manifest_path.exists():
        raise ManifestLoadError(f"Manifest file not found: {manifest_path}")

    # SECURITY: Check file size before reading
    try:
        file_size = manifest_path.stat().st_size
    except OSError as e:
        raise ManifestLoadError(f"Failed to stat manifest file {manifest_path}: {e}") from e

    if file_size > MAX_MANIFEST_FILE_SIZE_BYTES:
        raise ManifestLoadError(
            f"Manifest file exceeds maximum size of {MAX_MANIFEST_FILE_SIZE_BYTES} bytes: "
            f"{manifest_path}"
        )

    try:
        content = manifest_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestLoadError(f"Failed to read manifest file {manifest_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Invalid YAML in {manifest_path}: {e}") from e

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        raise ManifestLoadError(f"Manifest file must contain a YAML mapping: {manifest_path}")

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        manifest_data = raw_data.get("spec") or {}
        if not isinstance(manifest_data, dict):
            raise ManifestLoadError(f"'spec' section must be a mapping: {manifest_path}")
    else:
        manifest_data = raw_data

    try:
        manifest = Manifest.model_validate(manifest_data)
    except ValidationError as e:
        # Format Pydantic validation errors for readability
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise ManifestLoadError(f"Validation failed for {manifest_path}:\n{error_list}") from e

    logger.info(
        "Loaded manifest from %s",
        manifest_path,
        extra={"declarations": len(manifest.resources)},
    )
    return manifest


def load_procedure(reference: str) -> Configuration:
    """Import a configuration procedure from a ``module:function`` reference.

    The current working directory is searched first, so a procedure module
    next to the caller resolves without setting PYTHONPATH.

    Raises:
        ManifestLoadError: If the module or attribute cannot be found.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ManifestLoadError(
            f"Configuration reference must look like 'module:function': {reference}"
        )

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ManifestLoadError(f"Failed to import module '{module_name}': {e}") from e

    target: object = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ManifestLoadError(
                f"Module '{module_name}' has no attribute '{attribute}'"
            ) from e

    if not callable(target):
        raise ManifestLoadError(f"Configuration '{reference}' is not callable")

    logger.info("Loaded configuration procedure %s", reference)
    return target  # type: ignore[return-value]


def load_configuration(target: str) -> Configuration:
    """Resolve a CLI target to a configuration procedure.

    Paths ending in .yaml/.yml are treated as manifests, anything else as a
    ``module:function`` reference.
    """
    if target.endswith(MANIFEST_SUFFIXES):
        return load_manifest(Path(target)).configure
    return load_procedure(target)
