from attrs import define, field
from aws_cdk import RemovalPolicy, Stack, Tags, aws_logs as logs
from constructs import IConstruct
from typing import Optional

import common.constants as constants
from common.access_policy import AccessScope
from common.environment import ResolvedEnvironment


@define(slots=True, frozen=True)
class StackContext:
    scope: Stack
    environment: ResolvedEnvironment = field(
        metadata={"description": "Production or pull request preview environment"},
    )
    service: str = field(default=constants.SERVICE_NAME, init=False)

    @property
    def aws_account_id(self) -> str:
        return Stack.of(self.scope).account

    @property
    def aws_region(self) -> str:
        return Stack.of(self.scope).region

    @property
    def removal_policy(self) -> RemovalPolicy:
        if self.environment.is_pull_request:
            return RemovalPolicy.DESTROY
        return RemovalPolicy.RETAIN

    @property
    def log_retention(self) -> logs.RetentionDays:
        if self.environment.is_pull_request:
            return logs.RetentionDays.ONE_WEEK
        return logs.RetentionDays.ONE_YEAR

    # ---------- naming ----------
    def build_resource_name(
        self, resource_type: str, action: Optional[str] = None
    ) -> str:
        """Build resource name with optional action.

        Examples:
            - Without action: wishapp-assets-prod
            - With action: pr-42-wishapp-wishlist-table-pr-42
        """
        if action:
            return self.environment.resource_name(
                f"{self.service}-{resource_type}-{action}"
            )
        return self.environment.resource_name(f"{self.service}-{resource_type}")

    def build_bucket_name(self, resource_type: str) -> str:
        """Build a globally unique bucket name, e.g. wishapp-assets-<account>-prod.

        The account id is a deploy time token.
        """
        return self.environment.resource_name(
            f"{self.service}-{resource_type}-{self.aws_account_id}"
        )

    def build_resource_id(self, resource_type: str, action: Optional[str] = None) -> str:
        """Build resource ID with optional action.

        Examples:
            - Without action: WishappAssets
            - With action: WishappWishlistTable
        """
        if action:
            return (
                f"{self.service.capitalize()}"
                f"{resource_type.capitalize()}"
                f"{action.capitalize()}"
            )
        return f"{self.service.capitalize()}{resource_type.capitalize()}"

    # ---------- tagging ----------
    def apply_access_tags(self, access_scope: AccessScope, scope: Optional[IConstruct] = None) -> None:
        for key, value in access_scope.tags.items():
            Tags.of(scope or self.scope).add(key, value)

    def build_log_group(
        self, resource_type: str, action: Optional[str] = None
    ) -> logs.LogGroup:
        return logs.LogGroup(
            self.scope,
            self.build_resource_id("LogGroup", action=action),
            log_group_name=f"/aws/lambda/{self.build_resource_name(resource_type, action=action)}",
            removal_policy=self.removal_policy,
            retention=self.log_retention,
        )
