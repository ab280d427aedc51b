"""
Operations: deployment wiring and schedule planning (unpause, pause,
BLP rates, valid supplies).
"""

from .deployment import DEFAULT_TREASURY_FUNDING, Deployment, build_deployment
from .operations import (
    SpeedPlan,
    apply_blp_rates,
    apply_pause,
    apply_unpause,
    apply_valid_supplies,
    daily_to_speed,
    plan_blp_rates,
    plan_pause,
    plan_unpause,
    plan_valid_supplies,
    target_speeds,
    target_valid_supplies,
)

__all__ = [
    # Deployment
    "DEFAULT_TREASURY_FUNDING",
    "Deployment",
    "build_deployment",
    # Planning
    "SpeedPlan",
    "daily_to_speed",
    "plan_blp_rates",
    "plan_pause",
    "plan_unpause",
    "plan_valid_supplies",
    "target_speeds",
    "target_valid_supplies",
    # Execution
    "apply_blp_rates",
    "apply_pause",
    "apply_unpause",
    "apply_valid_supplies",
]
