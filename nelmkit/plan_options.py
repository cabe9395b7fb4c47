"""Options for planning a release, with their defaults and change checks."""

from __future__ import annotations

import dataclasses
import sys
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TextIO

from .common import (
    DEFAULT_NETWORK_PARALLELISM,
    OptionsError,
    ReleaseStorageDriver,
    default_kube_config_paths,
)


class ChangesPlannedError(Exception):
    """Raised when changes are planned and the caller asked to fail on them."""

    def __init__(self, message: str = "changes planned") -> None:
        super().__init__(message)


@dataclass
class PlanOptions:
    chart_dir_path: str = ""
    chart_repository_insecure: bool = False
    chart_repository_skip_tls_verify: bool = False
    chart_repository_skip_update: bool = False
    default_secret_values_disable: bool = False
    default_values_disable: bool = False
    error_if_changes_planned: bool = False
    extra_annotations: dict[str, str] = field(default_factory=dict)
    extra_labels: dict[str, str] = field(default_factory=dict)
    extra_runtime_annotations: dict[str, str] = field(default_factory=dict)
    kube_config_base64: str = ""
    kube_config_paths: list[str] = field(default_factory=list)
    kube_context: str = ""
    log_debug: bool = False
    log_registry_stream_out: TextIO | None = None
    network_parallelism: int = 0
    registry_credentials_path: str = ""
    release_name: str = ""
    release_namespace: str = ""
    release_storage_driver: ReleaseStorageDriver = ReleaseStorageDriver.DEFAULT
    secret_key_ignore: bool = False
    secret_values_paths: list[str] = field(default_factory=list)
    temp_dir_path: str = ""
    values_file_sets: list[str] = field(default_factory=list)
    values_files_paths: list[str] = field(default_factory=list)
    values_sets: list[str] = field(default_factory=list)
    values_string_sets: list[str] = field(default_factory=list)
    legacy_pre_plan_hook: Callable[..., Any] | None = None


def apply_plan_options_defaults(
    opts: PlanOptions, current_dir: str, home_dir: str
) -> PlanOptions:
    """Return a copy of the options with defaults filled in.

    Raises OptionsError when the release name is missing or the storage
    driver is not supported.
    """
    chart_dir_path = opts.chart_dir_path or current_dir
    temp_dir_path = opts.temp_dir_path or tempfile.mkdtemp()

    stream = opts.log_registry_stream_out
    if stream is None:
        stream = sys.stdout

    parallelism = opts.network_parallelism
    if parallelism <= 0:
        parallelism = DEFAULT_NETWORK_PARALLELISM

    if not opts.release_name:
        raise OptionsError("release name not specified")

    driver = ReleaseStorageDriver(opts.release_storage_driver)
    if driver is ReleaseStorageDriver.DEFAULT:
        driver = ReleaseStorageDriver.SECRETS
    elif driver is ReleaseStorageDriver.MEMORY:
        raise OptionsError("memory release storage driver is not supported")

    return dataclasses.replace(
        opts,
        chart_dir_path=chart_dir_path,
        temp_dir_path=temp_dir_path,
        kube_config_paths=default_kube_config_paths(
            opts.kube_config_base64, opts.kube_config_paths, home_dir
        ),
        log_registry_stream_out=stream,
        network_parallelism=parallelism,
        release_storage_driver=driver,
    )


def next_revision(prev_revision: int | None) -> int:
    """Revision number for a new release given the previous one, if any."""
    if prev_revision is None:
        return 1
    return prev_revision + 1


def check_changes_planned(
    opts: PlanOptions, changes_planned: bool, release_up_to_date: bool
) -> None:
    """Raise ChangesPlannedError if asked to fail when anything would change."""
    if opts.error_if_changes_planned and (
        changes_planned or not release_up_to_date
    ):
        raise ChangesPlannedError()