import io
import os
import sys

import pytest
import yaml

from nelmkit.common import (
    DEFAULT_NETWORK_PARALLELISM,
    OptionsError,
    ReleaseStorageDriver,
)
from nelmkit.render import (
    DEFAULT_RENDER_OUTPUT_FILENAME,
    RenderOptions,
    apply_render_options_defaults,
    render_resource,
    resolve_show_files,
    should_render,
)


def test_defaults_filled(tmp_path):
    opts = RenderOptions(release_name="app", temp_dir_path=str(tmp_path))
    result = apply_render_options_defaults(opts, "/work", "/home/me")
    assert result.chart_dir_path == "/work"
    assert result.kube_config_paths == [os.path.join("/home/me", ".kube", "config")]
    assert result.network_parallelism == DEFAULT_NETWORK_PARALLELISM
    assert result.release_storage_driver is ReleaseStorageDriver.SECRETS
    assert result.log_registry_stream_out is sys.stdout
    assert result.output_file_path == ""


def test_original_not_modified(tmp_path):
    opts = RenderOptions(release_name="app", temp_dir_path=str(tmp_path))
    apply_render_options_defaults(opts, "/work", "/home/me")
    assert opts.chart_dir_path == ""
    assert opts.release_storage_driver is ReleaseStorageDriver.DEFAULT


def test_output_path_default_when_saving(tmp_path):
    opts = RenderOptions(
        release_name="app", temp_dir_path=str(tmp_path), output_file_save=True
    )
    result = apply_render_options_defaults(opts, "/work", "/home/me")
    assert result.output_file_path == os.path.join(
        str(tmp_path), DEFAULT_RENDER_OUTPUT_FILENAME
    )


def test_explicit_values_kept(tmp_path):
    opts = RenderOptions(
        release_name="app",
        chart_dir_path="/charts/x",
        temp_dir_path=str(tmp_path),
        kube_config_base64="abc",
        network_parallelism=5,
        release_storage_driver=ReleaseStorageDriver.CONFIGMAPS,
    )
    result = apply_render_options_defaults(opts, "/work", "/home/me")
    assert result.chart_dir_path == "/charts/x"
    assert result.kube_config_paths == []
    assert result.network_parallelism == 5
    assert result.release_storage_driver is ReleaseStorageDriver.CONFIGMAPS


def test_memory_driver_allowed(tmp_path):
    opts = RenderOptions(
        release_name="app",
        temp_dir_path=str(tmp_path),
        release_storage_driver=ReleaseStorageDriver.MEMORY,
    )
    result = apply_render_options_defaults(opts, "/work", "/home/me")
    assert result.release_storage_driver is ReleaseStorageDriver.MEMORY


def test_missing_release_name(tmp_path):
    with pytest.raises(OptionsError):
        apply_render_options_defaults(
            RenderOptions(temp_dir_path=str(tmp_path)), "/work", "/home/me"
        )


def test_render_resource_exact():
    stream = io.StringIO()
    render_resource({"kind": "Pod", "apiVersion": "v1"}, "t/p.yaml", stream)
    assert stream.getvalue() == "---\n# Source: t/p.yaml\napiVersion: v1\nkind: Pod\n"


def test_render_resource_round_trip():
    obj = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web", "labels": {"app": "web"}},
        "spec": {"replicas": 3, "ports": [80, 443]},
    }
    stream = io.StringIO()
    render_resource(obj, "chart/templates/d.yaml", stream)
    text = stream.getvalue()
    assert text.startswith("---\n# Source: chart/templates/d.yaml\n")
    assert yaml.safe_load(text.split("\n", 2)[2]) == obj


def test_render_resource_appends():
    stream = io.StringIO()
    render_resource({"kind": "A"}, "a", stream)
    render_resource({"kind": "B"}, "b", stream)
    docs = list(yaml.safe_load_all(stream.getvalue()))
    assert docs == [{"kind": "A"}, {"kind": "B"}]


def test_render_resource_unencodable():
    with pytest.raises(TypeError):
        render_resource({"bad": object()}, "x", io.StringIO())


def test_resolve_absolute_inside_chart(tmp_path):
    chart_dir = str(tmp_path / "mychart")
    file = os.path.join(chart_dir, "templates", "a.yaml")
    assert resolve_show_files([file], chart_dir, "mychart") == [
        os.path.join("mychart", "templates", "a.yaml")
    ]


def test_resolve_relative_outside_chart(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    chart_dir = str(tmp_path / "mychart")
    assert resolve_show_files(["templates/a.yaml"], chart_dir, "mychart") == [
        os.path.join("mychart", "templates/a.yaml")
    ]
    assert resolve_show_files(["mychart/templates/a.yaml"], chart_dir, "mychart") == [
        "mychart/templates/a.yaml"
    ]


def test_resolve_empty():
    assert resolve_show_files([], "/c", "c") == []


def test_should_render():
    assert should_render("c/t/a.yaml", [])
    assert should_render("c/t/a.yaml", ["c/t/a.yaml"])
    assert not should_render("c/t/b.yaml", ["c/t/a.yaml"])