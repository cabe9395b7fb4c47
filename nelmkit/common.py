"""Shared constants, enumerations and option helpers."""

from __future__ import annotations

import os
from collections.abc import Sequence
from enum import Enum

DEFAULT_FIELD_MANAGER = "helm"
KUBECTL_EDIT_FIELD_MANAGER = "kubectl-edit"
OLD_FIELD_MANAGER_PREFIX = "werf"

DEFAULT_NETWORK_PARALLELISM = 30
DEFAULT_RELEASE_HISTORY_LIMIT = 10


class OptionsError(ValueError):
    """Raised when command options are missing or invalid."""


class DeployType(str, Enum):
    """Kind of deployment being performed for a release revision."""

    # First revision of the release.
    INITIAL = "Initial"
    # No successful revision found (but not the very first revision).
    INSTALL = "Install"
    # A successful revision exists.
    UPGRADE = "Upgrade"
    ROLLBACK = "Rollback"

    def is_upgrade(self) -> bool:
        """Whether templates should see this deployment as an upgrade."""
        return self in (DeployType.UPGRADE, DeployType.ROLLBACK)


class DeletePolicy(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BEFORE_CREATION = "before-creation"


class ResourceState(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"
    READY = "ready"


class LogColorMode(str, Enum):
    DEFAULT = ""
    OFF = "off"
    ON = "on"


class ReleaseStorageDriver(str, Enum):
    DEFAULT = ""
    SECRETS = "secrets"
    SECRET = "secret"
    CONFIGMAPS = "configmaps"
    CONFIGMAP = "configmap"
    MEMORY = "memory"
    SQL = "sql"


def determine_deploy_type(
    prev_release_found: bool, prev_deployed_release_found: bool
) -> DeployType:
    """Pick the deploy type from what the release history holds."""
    if prev_release_found and prev_deployed_release_found:
        return DeployType.UPGRADE
    if prev_release_found:
        return DeployType.INSTALL
    return DeployType.INITIAL


def default_kube_config_paths(
    kube_config_base64: str,
    kube_config_paths: Sequence[str] | None,
    home_dir: str,
) -> list[str]:
    """Return the kube config paths, falling back to ~/.kube/config."""
    if not kube_config_base64 and not kube_config_paths:
        return [os.path.join(home_dir, ".kube", "config")]
    return list(kube_config_paths or [])