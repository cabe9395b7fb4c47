"""Options and helpers for rendering a chart to Kubernetes manifests."""

from __future__ import annotations

import dataclasses
import json
import os
import sys
import tempfile
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TextIO

import yaml

from .common import (
    DEFAULT_NETWORK_PARALLELISM,
    OptionsError,
    ReleaseStorageDriver,
    default_kube_config_paths,
)

DEFAULT_RENDER_OUTPUT_FILENAME = "render.yaml"


@dataclass
class RenderOptions:
    chart_dir_path: str = ""
    chart_repository_insecure: bool = False
    chart_repository_skip_tls_verify: bool = False
    chart_repository_skip_update: bool = False
    default_secret_values_disable: bool = False
    default_values_disable: bool = False
    extra_annotations: dict[str, str] = field(default_factory=dict)
    extra_labels: dict[str, str] = field(default_factory=dict)
    extra_runtime_annotations: dict[str, str] = field(default_factory=dict)
    kube_config_base64: str = ""
    kube_config_paths: list[str] = field(default_factory=list)
    kube_context: str = ""
    local: bool = False
    local_kube_version: str = ""
    log_debug: bool = False
    log_registry_stream_out: TextIO | None = None
    network_parallelism: int = 0
    registry_credentials_path: str = ""
    release_name: str = ""
    release_namespace: str = ""
    release_storage_driver: ReleaseStorageDriver = ReleaseStorageDriver.DEFAULT
    output_file_path: str = ""
    output_file_save: bool = False
    secret_key_ignore: bool = False
    secret_values_paths: list[str] = field(default_factory=list)
    show_crds: bool = False
    show_only_files: list[str] = field(default_factory=list)
    temp_dir_path: str = ""
    values_file_sets: list[str] = field(default_factory=list)
    values_files_paths: list[str] = field(default_factory=list)
    values_sets: list[str] = field(default_factory=list)
    values_string_sets: list[str] = field(default_factory=list)
    legacy_pre_render_hook: Callable[..., Any] | None = None


def apply_render_options_defaults(
    opts: RenderOptions, current_dir: str, home_dir: str
) -> RenderOptions:
    """Return a copy of the options with defaults filled in.

    Raises OptionsError when the release name is missing.
    """
    chart_dir_path = opts.chart_dir_path or current_dir
    temp_dir_path = opts.temp_dir_path or tempfile.mkdtemp()

    output_file_path = opts.output_file_path
    if opts.output_file_save and not output_file_path:
        output_file_path = os.path.join(temp_dir_path, DEFAULT_RENDER_OUTPUT_FILENAME)

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

    return dataclasses.replace(
        opts,
        chart_dir_path=chart_dir_path,
        temp_dir_path=temp_dir_path,
        output_file_path=output_file_path,
        kube_config_paths=default_kube_config_paths(
            opts.kube_config_base64, opts.kube_config_paths, home_dir
        ),
        log_registry_stream_out=stream,
        network_parallelism=parallelism,
        release_storage_driver=driver,
    )


def render_resource(obj: Mapping[str, Any], path: str, stream: TextIO) -> None:
    """Write a resource as a YAML document headed by its source path."""
    try:
        normalized = json.loads(json.dumps(obj))
    except (TypeError, ValueError) as exc:
        raise TypeError(f"encode to JSON: {exc}") from exc

    document = yaml.safe_dump(
        normalized,
        sort_keys=True,
        default_flow_style=False,
        allow_unicode=True,
    )
    stream.write(f"---\n# Source: {path}\n{document}")


def resolve_show_files(
    show_only_files: Iterable[str], chart_dir_path: str, chart_name: str
) -> list[str]:
    """Turn user-given file paths into chart-relative template paths."""
    show_files: list[str] = []
    for file in show_only_files:
        abs_file = os.path.abspath(file)
        if abs_file.startswith(chart_dir_path):
            try:
                rel = os.path.relpath(abs_file, chart_dir_path)
            except ValueError as exc:
                raise ValueError(
                    f"get relative path for {abs_file!r}: {exc}"
                ) from exc
            if not rel.startswith(chart_name):
                rel = os.path.join(chart_name, rel)
            show_files.append(rel)
        else:
            if not file.startswith(chart_name):
                file = os.path.join(chart_name, file)
            show_files.append(file)
    return show_files


def should_render(file_path: str, show_files: Sequence[str]) -> bool:
    """Whether a resource from the given file passes the show-only filter."""
    return not show_files or file_path in show_files