#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the Wishapp infrastructure.

Deployment inputs are read once here: ``GITHUB_ORG`` and ``GITHUB_REPO`` from
the environment (or a local ``.env`` file) and the optional pull request id
from the CDK context, e.g. ``cdk deploy -c pr_number=123``. Without a pull
request id the production environment is synthesized.
"""
import logging
import sys
from typing import Optional

import aws_cdk as cdk
from aws_lambda_powertools import Logger

import common.constants as constants
from common.config import (
    DeploymentSettings,
    load_deployment_settings,
    load_dotenv_file,
    resolve_log_level,
)
from common.environment import ResolvedEnvironment, resolve_environment
from common.errors import ConfigurationError
from deployment.deploy_role_stack import GithubDeployRoleStack
from wishapp.wishapp_stack import WishappStack

# Synthesized templates go to stdout, keep logs on stderr
logger: Logger = Logger(
    service=constants.INFRA_SERVICE_NAME,
    level=resolve_log_level(),
    logger_handler=logging.StreamHandler(sys.stderr),
)


def stack_id(base: str, environment: ResolvedEnvironment) -> str:
    """Build a stack id unique per environment, e.g. WishappStack-pr-123."""
    return f"{base}{environment.name_suffix}"


def build_stacks(
    app: cdk.App, environment: ResolvedEnvironment, settings: DeploymentSettings
) -> tuple[WishappStack, GithubDeployRoleStack]:
    env = settings.cdk_environment
    wishapp_stack = WishappStack(
        app,
        stack_id("WishappStack", environment),
        environment=environment,
        asset_path=settings.asset_path,
        env=env,
    )
    # Provision the GitHub Actions deploy role alongside the app stack.
    deploy_role_stack = GithubDeployRoleStack(
        app,
        stack_id("WishappDeployRoleStack", environment),
        environment=environment,
        env=env,
    )
    return wishapp_stack, deploy_role_stack


def main(app: Optional[cdk.App] = None) -> int:
    load_dotenv_file()
    if app is None:
        app = cdk.App()

    try:
        settings = load_deployment_settings(app)
        environment = resolve_environment(settings.context)
    except ConfigurationError as error:
        logger.error(f"Configuration error: {error}")
        return 1

    logger.info(
        "Synthesizing wishapp environment",
        extra={
            "kind": environment.kind.value,
            "access_tag": environment.access_tag,
            "account": settings.account,
            "region": settings.region,
        },
    )
    build_stacks(app, environment, settings)
    app.synth()
    return 0


if __name__ == "__main__":
    sys.exit(main())
