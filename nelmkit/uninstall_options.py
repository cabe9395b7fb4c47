"""Options for removing a release, with their defaults."""

from __future__ import annotations

import dataclasses
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta

from .common import (
    DEFAULT_RELEASE_HISTORY_LIMIT,
    OptionsError,
    ReleaseStorageDriver,
    default_kube_config_paths,
)

DEFAULT_PROGRESS_TABLE_PRINT_INTERVAL = timedelta(seconds=5)


@dataclass
class UninstallOptions:
    delete_hooks: bool = False
    delete_release_namespace: bool = False
    kube_config_base64: str = ""
    kube_config_paths: list[str] = field(default_factory=list)
    kube_context: str = ""
    log_debug: bool = False
    progress_table_print_interval: timedelta = timedelta(0)
    release_history_limit: int = 0
    release_name: str = ""
    release_namespace: str = ""
    release_storage_driver: ReleaseStorageDriver = ReleaseStorageDriver.DEFAULT
    temp_dir_path: str = ""


def apply_uninstall_options_defaults(
    opts: UninstallOptions, current_dir: str, home_dir: str
) -> UninstallOptions:
    """Return a copy of the options with defaults filled in.

    Raises OptionsError when the release name is missing or the storage
    driver is not supported.
    """
    temp_dir_path = opts.temp_dir_path or tempfile.mkdtemp()

    interval = opts.progress_table_print_interval
    if interval <= timedelta(0):
        interval = DEFAULT_PROGRESS_TABLE_PRINT_INTERVAL

    history_limit = opts.release_history_limit
    if history_limit <= 0:
        history_limit = DEFAULT_RELEASE_HISTORY_LIMIT

    if not opts.release_name:
        raise OptionsError("release name not specified")

    driver = ReleaseStorageDriver(opts.release_storage_driver)
    if driver is ReleaseStorageDriver.DEFAULT:
        driver = ReleaseStorageDriver.SECRETS
    elif driver is ReleaseStorageDriver.MEMORY:
        raise OptionsError("memory release storage driver is not supported")

    return dataclasses.replace(
        opts,
        temp_dir_path=temp_dir_path,
        kube_config_paths=default_kube_config_paths(
            opts.kube_config_base64, opts.kube_config_paths, home_dir
        ),
        progress_table_print_interval=interval,
        release_history_limit=history_limit,
        release_storage_driver=driver,
    )