import os

import pytest

from nelmkit.common import (
    DeletePolicy,
    DeployType,
    LogColorMode,
    ReleaseStorageDriver,
    ResourceState,
    default_kube_config_paths,
    determine_deploy_type,
)


@pytest.mark.parametrize(
    "found, deployed, expected",
    [
        (True, True, DeployType.UPGRADE),
        (True, False, DeployType.INSTALL),
        (False, False, DeployType.INITIAL),
        (False, True, DeployType.INITIAL),
    ],
)
def test_determine_deploy_type(found, deployed, expected):
    assert determine_deploy_type(found, deployed) is expected


@pytest.mark.parametrize(
    "deploy_type, expected",
    [
        (DeployType.UPGRADE, True),
        (DeployType.ROLLBACK, True),
        (DeployType.INITIAL, False),
        (DeployType.INSTALL, False),
    ],
)
def test_is_upgrade(deploy_type, expected):
    assert deploy_type.is_upgrade() is expected


def test_enum_values_from_strings():
    assert DeployType("Initial") is DeployType.INITIAL
    assert DeletePolicy("before-creation") is DeletePolicy.BEFORE_CREATION
    assert ResourceState("ready") is ResourceState.READY
    assert LogColorMode("") is LogColorMode.DEFAULT
    assert ReleaseStorageDriver("configmaps") is ReleaseStorageDriver.CONFIGMAPS


def test_unknown_storage_driver_rejected():
    with pytest.raises(ValueError):
        ReleaseStorageDriver("bogus")


def test_default_kube_config_when_nothing_given(tmp_path):
    home = str(tmp_path)
    assert default_kube_config_paths("", [], home) == [
        os.path.join(home, ".kube", "config")
    ]


def test_given_paths_kept(tmp_path):
    paths = ["/a/config", "/b/config"]
    result = default_kube_config_paths("", paths, str(tmp_path))
    assert result == paths
    assert result is not paths


def test_base64_suppresses_default(tmp_path):
    assert default_kube_config_paths("ZGF0YQ==", None, str(tmp_path)) == []