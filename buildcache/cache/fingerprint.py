"""Fingerprint derivation for the build cache.

A fingerprint joins the platform image, runtime version, package manager
name and package manager version with "; ". Backslash, semicolon and newline
inside a component are escaped, so two fingerprints are equal only when every
component is. No other normalization is applied: "v12.0" and "12.0", or
"1.3" and "1.3 ", are different fingerprints.

Unresolved versions are passed through as "unknown". An unknown component
never matches a previously stored real version, so a failed detection costs a
cache miss instead of restoring a stale tree.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from collections.abc import Sequence

from .models import UNKNOWN_VERSION
from .models import Toolchain

logger = logging.getLogger(__name__)

FINGERPRINT_VERSION = "v1"
VERSION_TIMEOUT_SECONDS = 30


def _component(value: str | None) -> str:
    if value is None or not value.strip():
        return UNKNOWN_VERSION
    return value


def _escape(component: str) -> str:
    return component.replace("\\", "\\\\").replace(";", "\\;").replace("\n", "\\n")


def compute_fingerprint(
    runtime_version: str | None,
    package_manager_version: str | None,
    platform_image: str | None,
    package_manager_name: str = "npm",
) -> str:
    """Build the fingerprint string for a toolchain.

    Args:
        runtime_version: Runtime version (e.g. "v20.11.1")
        package_manager_version: Package manager version (e.g. "10.2.4")
        platform_image: Platform/OS image identifier (e.g. "heroku-22")
        package_manager_name: Package manager name (e.g. "npm", "yarn")

    Returns:
        Deterministic fingerprint string

    Example:
        >>> compute_fingerprint("rt-12.0", "pm-1.3", "os-X")
        'v1; os-X; rt-12.0; npm; pm-1.3'
    """
    components = [
        FINGERPRINT_VERSION,
        _component(platform_image),
        _component(runtime_version),
        _component(package_manager_name),
        _component(package_manager_version),
    ]
    return "; ".join(_escape(c) for c in components)


def detect_tool_version(command: Sequence[str]) -> str:
    """Run a version command and return its output.

    Args:
        command: Command and arguments, e.g. ["node", "--version"]

    Returns:
        First line of stdout, stripped, or "unknown" if the tool is missing,
        exits non-zero, or prints nothing
    """
    if not command:
        return UNKNOWN_VERSION

    try:
        result = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=VERSION_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Could not run {' '.join(command)}: {e}")
        return UNKNOWN_VERSION

    if result.returncode != 0:
        logger.warning(f"{' '.join(command)} exited with {result.returncode}: {result.stderr.strip()}")
        return UNKNOWN_VERSION

    output = result.stdout.strip()
    if not output:
        logger.warning(f"{' '.join(command)} printed no version")
        return UNKNOWN_VERSION

    version = output.splitlines()[0].strip()
    logger.debug(f"Detected {command[0]} version: {version}")
    return version


def platform_image_from_env(environ: Mapping[str, str] | None = None) -> str:
    """Read the platform image identifier from the STACK variable."""
    env = os.environ if environ is None else environ
    return _component(env.get("STACK"))


def detect_toolchain(
    runtime_command: Sequence[str],
    package_manager_command: Sequence[str],
    package_manager_name: str = "npm",
    platform_image: str | None = None,
) -> Toolchain:
    """Detect the live toolchain identity.

    Args:
        runtime_command: Version command for the runtime
        package_manager_command: Version command for the package manager
        package_manager_name: Name recorded in the fingerprint
        platform_image: Platform image, defaults to $STACK

    Returns:
        Toolchain with detected (or "unknown") components
    """
    toolchain = Toolchain(
        platform_image=_component(platform_image) if platform_image is not None else platform_image_from_env(),
        runtime_version=detect_tool_version(runtime_command),
        package_manager_version=detect_tool_version(package_manager_command),
        package_manager_name=package_manager_name,
    )
    logger.info(
        f"Toolchain: {toolchain.platform_image}, runtime {toolchain.runtime_version}, "
        f"{toolchain.package_manager_name} {toolchain.package_manager_version}"
    )
    return toolchain
