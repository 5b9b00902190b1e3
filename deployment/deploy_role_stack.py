from aws_cdk import (
    CfnOutput,
    Duration,
    Fn,
    Stack,
    aws_iam as iam,
)
from constructs import Construct

import common.constants as constants
from common.access_policy import (
    AccessScope,
    ScopedStatement,
    TrustCondition,
    build_access_scope,
    build_trust_condition,
)
from common.environment import ResolvedEnvironment
from common.stack_context import StackContext


class GithubDeployRoleStack(Stack):
    """IAM role assumed by GitHub Actions to deploy one wishapp environment.

    The role trusts the GitHub OIDC provider already registered in the
    account, restricted to pull request and main branch workflows of a single
    repository. Its permissions only reach resources of the same environment.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: ResolvedEnvironment,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, environment=environment)
        self.trust_condition = build_trust_condition(environment)
        self.access_scope = build_access_scope(environment)

        self.oidc_provider = iam.OpenIdConnectProvider.from_open_id_connect_provider_arn(
            self,
            "GitHubOidcProvider",
            constants.GITHUB_OIDC_PROVIDER_ARN.format(account=self.context.aws_account_id),
        )
        self.deploy_role = self._build_deploy_role(self.trust_condition)
        self._grant_access_scope(self.deploy_role, self.access_scope)

        self.context.apply_access_tags(self.access_scope)
        CfnOutput(self, "DeployRoleArn", value=self.deploy_role.role_arn)

    def _build_deploy_role(self, trust_condition: TrustCondition) -> iam.Role:
        return iam.Role(
            self,
            self.context.build_resource_id("DeployRole"),
            role_name=self.context.build_resource_name(constants.DEPLOY_ROLE),
            description="Role for GitHub Actions to deploy WishApp",
            assumed_by=iam.FederatedPrincipal(
                self.oidc_provider.open_id_connect_provider_arn,
                conditions=trust_condition.to_conditions(),
                assume_role_action=constants.ASSUME_ROLE_ACTION,
            ),
            max_session_duration=Duration.hours(constants.DEPLOY_ROLE_MAX_SESSION_HOURS),
        )

    @staticmethod
    def _to_policy_statement(statement: ScopedStatement) -> iam.PolicyStatement:
        return iam.PolicyStatement(
            sid=statement.sid,
            effect=iam.Effect.ALLOW,
            actions=list(statement.actions),
            resources=[Fn.sub(resource) for resource in statement.resources],
            conditions=dict(statement.conditions) if statement.conditions else None,
        )

    def _grant_access_scope(self, role: iam.Role, access_scope: AccessScope) -> None:
        for statement in access_scope.statements:
            role.add_to_policy(self._to_policy_statement(statement))
