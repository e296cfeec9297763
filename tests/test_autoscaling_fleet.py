"""Tests for the Auto Scaling fleet control against a mocked boto3 client."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from machinepool.exceptions import DependencyFailureError, FleetNotFoundError
from machinepool.fleet.autoscaling import AutoScalingFleet
from machinepool.models import FleetSize


def make_fleet(groups):
    client = MagicMock()
    client.describe_auto_scaling_groups.return_value = {"AutoScalingGroups": groups}
    return AutoScalingFleet("on-demand-machine-asg", client=client), client


def test_describe_reads_desired_and_max() -> None:
    fleet, client = make_fleet([{"DesiredCapacity": 3, "MaxSize": 5}])

    assert fleet.describe() == FleetSize(desired=3, max_size=5)
    client.describe_auto_scaling_groups.assert_called_once_with(
        AutoScalingGroupNames=["on-demand-machine-asg"]
    )


def test_describe_defaults_missing_max_to_desired() -> None:
    fleet, _ = make_fleet([{"DesiredCapacity": 2}])

    assert fleet.describe() == FleetSize(desired=2, max_size=2)


def test_unknown_group_is_fleet_not_found() -> None:
    fleet, _ = make_fleet([])

    with pytest.raises(FleetNotFoundError) as excinfo:
        fleet.describe()

    assert excinfo.value.fleet_name == "on-demand-machine-asg"
    assert isinstance(excinfo.value, DependencyFailureError)


def test_set_desired_size_ignores_group_cooldown() -> None:
    fleet, client = make_fleet([])

    fleet.set_desired_size(4)

    client.set_desired_capacity.assert_called_once_with(
        AutoScalingGroupName="on-demand-machine-asg",
        DesiredCapacity=4,
        HonorCooldown=False,
    )


def test_client_errors_become_dependency_failures() -> None:
    fleet, client = make_fleet([])
    client.set_desired_capacity.side_effect = ClientError(
        {"Error": {"Code": "ScalingActivityInProgress", "Message": "busy"}},
        "SetDesiredCapacity",
    )

    with pytest.raises(DependencyFailureError) as excinfo:
        fleet.set_desired_size(4)

    assert excinfo.value.dependency == "fleet"
