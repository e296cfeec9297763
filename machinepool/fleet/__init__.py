"""
Fleet control backends.

    from machinepool.fleet import FleetControl, StaticFleet

AutoScalingFleet lives in machinepool.fleet.autoscaling (imports boto3).
"""

from machinepool.fleet.protocol import FleetControl
from machinepool.fleet.static import StaticFleet

__all__ = ["FleetControl", "StaticFleet"]
