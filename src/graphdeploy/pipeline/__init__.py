"""Pipeline driver."""

from .driver import (
    EXIT_FAILURE,
    EXIT_OK,
    REQUIRED_DEPLOY_SETTINGS,
    PipelineDriver,
    check_deploy_settings,
)

__all__ = [
    "EXIT_OK",
    "EXIT_FAILURE",
    "REQUIRED_DEPLOY_SETTINGS",
    "PipelineDriver",
    "check_deploy_settings",
]
