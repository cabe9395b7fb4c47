from datetime import timedelta

import pytest

from nelmkit.cli import build_parser, parse_command, parse_key_values
from nelmkit.common import OptionsError
from nelmkit.plan_options import PlanOptions
from nelmkit.render import RenderOptions
from nelmkit.uninstall_options import UninstallOptions


def test_parse_key_values_single_pair():
    assert parse_key_values("team=core") == {"team": "core"}


def test_parse_key_values_multiple_pairs():
    assert parse_key_values("a=1,b=2") == {"a": "1", "b": "2"}


def test_parse_key_values_single_pair_keeps_commas():
    assert parse_key_values("a=1,b") == {"a": "1,b"}


def test_parse_key_values_trims_quotes():
    assert parse_key_values('"k=v"') == {"k": "v"}


@pytest.mark.parametrize("value", ["noeq", ""])
def test_parse_key_values_without_equals_fails(value):
    with pytest.raises(OptionsError):
        parse_key_values(value)


def test_parse_key_values_pair_without_equals_in_list_fails():
    with pytest.raises(OptionsError):
        parse_key_values("a=1,b=2,c")


def test_render_command_defaults():
    command, opts = parse_command(["chart", "render", "myrel"])
    assert command == "chart render"
    assert isinstance(opts, RenderOptions)
    assert opts.release_name == "myrel"
    assert opts.chart_dir_path == ""
    assert opts.release_namespace == ""
    assert opts.network_parallelism == 30
    assert opts.show_only_files == []


def test_render_template_alias_and_flags():
    command, opts = parse_command(
        [
            "chart", "template", "myrel", "./chart",
            "-a", "x=1", "--annotations", "y=2",
            "--set", "a=1,b=2", "--set", "c=3",
            "--local", "--kube-version", "1.29.0", "--show-crds",
        ]
    )
    assert command == "chart render"
    assert opts.chart_dir_path == "./chart"
    assert opts.extra_annotations == {"x": "1", "y": "2"}
    assert opts.values_sets == ["a=1", "b=2", "c=3"]
    assert opts.local is True
    assert opts.local_kube_version == "1.29.0"
    assert opts.show_crds is True


def test_plan_deploy_namespace_default_and_values_shorthand():
    command, opts = parse_command(
        ["plan", "deploy", "rel", "-f", "v1.yaml", "--values", "v2.yaml", "--exit-on-changes"]
    )
    assert command == "plan deploy"
    assert isinstance(opts, PlanOptions)
    assert opts.release_namespace == "default"
    assert opts.values_files_paths == ["v1.yaml", "v2.yaml"]
    assert opts.error_if_changes_planned is True


def test_plan_deploy_has_no_labels_flag():
    with pytest.raises(OptionsError):
        parse_command(["plan", "deploy", "rel", "--labels", "a=b"])


def test_release_deploy_aliases_and_durations():
    for alias in ("deploy", "upgrade", "install"):
        command, opts = parse_command(
            ["release", alias, "rel", "chart", "--creation-timeout", "90s", "--atomic"]
        )
        assert command == "release deploy"
        assert opts["release_name"] == "rel"
        assert opts["chart_dir_path"] == "chart"
        assert opts["track_creation_timeout"] == timedelta(seconds=90)
        assert opts["auto_rollback"] is True


def test_release_deploy_defaults():
    _, opts = parse_command(["release", "deploy", "rel"])
    assert opts["track_readiness_timeout"] == timedelta(minutes=10)
    assert opts["progress_table_print_interval"] == timedelta(seconds=10)
    assert opts["release_history_limit"] == 10
    assert opts["release_namespace"] == "default"
    assert opts["sub_notes"] is False


def test_release_deploy_bad_duration():
    with pytest.raises(OptionsError):
        parse_command(["release", "deploy", "rel", "--readiness-timeout", "soon"])


def test_uninstall_command():
    command, opts = parse_command(
        ["release", "uninstall", "rel", "-n", "prod", "--delete-namespace"]
    )
    assert command == "release uninstall"
    assert isinstance(opts, UninstallOptions)
    assert opts.release_name == "rel"
    assert opts.release_namespace == "prod"
    assert opts.delete_release_namespace is True
    assert opts.progress_table_print_interval == timedelta(seconds=5)


@pytest.mark.parametrize("args", [[], ["a", "b"]])
def test_uninstall_requires_exactly_one_arg(args):
    with pytest.raises(OptionsError, match="accepts 1 arg"):
        parse_command(["release", "uninstall", *args])


def test_missing_release_name_fails():
    with pytest.raises(OptionsError):
        parse_command(["chart", "render"])


def test_unknown_flag_fails():
    with pytest.raises(OptionsError):
        parse_command(["chart", "render", "rel", "--no-such-flag"])


def test_missing_subcommand_fails():
    with pytest.raises(OptionsError):
        parse_command(["release"])


def test_bad_annotation_flag_fails():
    with pytest.raises(OptionsError):
        parse_command(["chart", "render", "rel", "-a", "broken"])


def test_parses_are_independent():
    _, first = parse_command(["chart", "render", "rel", "--set", "a=1"])
    _, second = parse_command(["chart", "render", "rel"])
    assert first.values_sets == ["a=1"]
    assert second.values_sets == []


def test_build_parser_prog():
    assert build_parser().prog == "nelm"