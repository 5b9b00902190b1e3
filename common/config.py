"""Read deployment inputs from the process environment and the CDK context.

This is the only place that touches ambient state. The values are frozen into
an :class:`EnvironmentContext` and :class:`DeploymentSettings` once, at process
entry, and passed by value from there on.
"""
import logging
import os
from typing import Mapping, Optional

import aws_cdk as cdk
from attrs import define, field
from aws_lambda_powertools import Logger
from dotenv import load_dotenv

import common.constants as constants
from common.environment import EnvironmentContext
from common.errors import ConfigurationError

logger = Logger(service=constants.INFRA_SERVICE_NAME, child=True)


@define(slots=True, frozen=True, kw_only=True)
class DeploymentSettings:
    context: EnvironmentContext
    account: Optional[str] = field(
        default=None,
        metadata={"description": "Target account, resolved by the CDK CLI when unset"},
    )
    region: Optional[str] = field(
        default=None,
        metadata={"description": "Target region, resolved by the CDK CLI when unset"},
    )
    asset_path: str = field(default=constants.DEFAULT_ASSET_PATH)

    @property
    def cdk_environment(self) -> cdk.Environment:
        return cdk.Environment(account=self.account, region=self.region)


def load_dotenv_file(path: str = constants.DOTENV_PATH) -> bool:
    """Load a local .env file without overriding variables already set."""
    loaded = load_dotenv(path, override=False)
    if loaded:
        logger.debug(f"Loaded environment variables from {path}")
    return loaded


def resolve_log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return LOG_LEVEL as a logging level name, falling back to INFO when unknown."""
    environ = os.environ if environ is None else environ
    level = (environ.get(constants.LOG_LEVEL_ENV) or constants.DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(level), int):
        return constants.DEFAULT_LOG_LEVEL
    return level


def _required(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name)
    if not value:
        raise ConfigurationError(name, "environment variable is required")
    return value


def load_environment_context(
    app: cdk.App, environ: Optional[Mapping[str, str]] = None
) -> EnvironmentContext:
    environ = os.environ if environ is None else environ
    organization = _required(environ, constants.GITHUB_ORG_ENV)
    repository = _required(environ, constants.GITHUB_REPO_ENV)
    pull_request_id = app.node.try_get_context(constants.PULL_REQUEST_CONTEXT_KEY)

    try:
        return EnvironmentContext(
            organization=organization,
            repository=repository,
            pull_request_id=pull_request_id,
        )
    except ConfigurationError as error:
        # Report the input the user actually controls
        source = {
            "organization": constants.GITHUB_ORG_ENV,
            "repository": constants.GITHUB_REPO_ENV,
            "pull_request_id": constants.PULL_REQUEST_CONTEXT_KEY,
        }.get(error.field, error.field)
        raise ConfigurationError(source, error.reason) from error


def load_deployment_settings(
    app: cdk.App, environ: Optional[Mapping[str, str]] = None
) -> DeploymentSettings:
    environ = os.environ if environ is None else environ
    context = load_environment_context(app, environ)
    settings = DeploymentSettings(
        context=context,
        account=app.node.try_get_context(constants.ACCOUNT_CONTEXT_KEY)
        or environ.get(constants.ACCOUNT_ENV),
        region=app.node.try_get_context(constants.REGION_CONTEXT_KEY)
        or environ.get(constants.REGION_ENV),
        asset_path=app.node.try_get_context(constants.ASSET_PATH_CONTEXT_KEY)
        or constants.DEFAULT_ASSET_PATH,
    )
    logger.debug(
        "Loaded deployment settings",
        extra={
            "organization": context.organization,
            "repository": context.repository,
            "pull_request_id": context.pull_request_id,
            "account": settings.account,
            "region": settings.region,
        },
    )
    return settings
