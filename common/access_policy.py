"""IAM trust conditions and access scopes for the GitHub deploy role."""
from typing import Any, Mapping, Optional

import attrs
from attrs import define, field

import common.constants as constants
from common.environment import ResolvedEnvironment
from common.errors import ConfigurationError

_WILDCARDS = ("*", "?")


def _subject_patterns(instance, attribute: attrs.Attribute, value: tuple[str, ...]) -> None:
    if not value:
        raise ConfigurationError(attribute.name, "a trust policy needs at least one subject")
    for pattern in value:
        if not pattern or any(wildcard in pattern for wildcard in _WILDCARDS):
            raise ConfigurationError(
                attribute.name, f"{pattern!r} is not an exact repository subject"
            )


def _non_empty(instance, attribute: attrs.Attribute, value: str) -> None:
    if not value:
        raise ConfigurationError(attribute.name, "must not be empty")


def _scoped_resources(instance, attribute: attrs.Attribute, value: tuple[str, ...]) -> None:
    if not value:
        raise ConfigurationError(attribute.name, f"{instance.sid} has no resources")
    for resource in value:
        if resource.strip() == "*":
            raise ConfigurationError(
                attribute.name, f"{instance.sid} must not grant access to every resource"
            )


@define(slots=True, frozen=True, kw_only=True)
class TrustCondition:
    audience: str = field(default=constants.OIDC_AUDIENCE, validator=_non_empty)
    subject_patterns: tuple[str, ...] = field(converter=tuple, validator=_subject_patterns)

    def to_conditions(self) -> dict[str, dict[str, Any]]:
        """Render the condition block of the federated trust policy."""
        return {
            "StringEquals": {constants.OIDC_AUDIENCE_KEY: self.audience},
            "StringLike": {constants.OIDC_SUBJECT_KEY: list(self.subject_patterns)},
        }


@define(slots=True, frozen=True, kw_only=True)
class ScopedStatement:
    sid: str
    actions: tuple[str, ...] = field(converter=tuple)
    resources: tuple[str, ...] = field(converter=tuple, validator=_scoped_resources)
    conditions: Optional[Mapping[str, Mapping[str, Any]]] = None


@define(slots=True, frozen=True, kw_only=True)
class AccessScope:
    tag_key: str
    tag_value: str
    statements: tuple[ScopedStatement, ...] = field(converter=tuple)

    @property
    def tags(self) -> dict[str, str]:
        return {self.tag_key: self.tag_value}


def build_trust_condition(env: ResolvedEnvironment) -> TrustCondition:
    return TrustCondition(
        audience=constants.OIDC_AUDIENCE,
        subject_patterns=env.trust_subject_patterns,
    )


def build_access_scope(env: ResolvedEnvironment) -> AccessScope:
    """Build the permission statements of the deploy role for one environment.

    Resource patterns are ``Fn::Sub`` templates: the account and region
    placeholders are filled in by CloudFormation at deploy time, while the
    environment prefix and suffix keep one environment's role away from
    another environment's resources.
    """
    account = constants.ACCOUNT_PLACEHOLDER
    region = constants.REGION_PLACEHOLDER
    bucket = env.resource_name(f"{constants.SERVICE_NAME}-{constants.ASSETS}-{account}")
    named = env.resource_name(f"{constants.SERVICE_NAME}-*")

    statements = (
        ScopedStatement(
            sid="WishappStorageAccess",
            actions=(
                "s3:PutObject",
                "s3:GetObject",
                "s3:ListBucket",
                "s3:DeleteObject",
            ),
            resources=(f"arn:aws:s3:::{bucket}", f"arn:aws:s3:::{bucket}/*"),
        ),
        ScopedStatement(
            sid="WishappTableAccess",
            actions=(
                "dynamodb:PutItem",
                "dynamodb:GetItem",
                "dynamodb:UpdateItem",
                "dynamodb:DeleteItem",
                "dynamodb:Query",
                "dynamodb:Scan",
            ),
            resources=(f"arn:aws:dynamodb:{region}:{account}:table/{named}",),
        ),
        # Distributions have no names, the access tag scopes them instead
        ScopedStatement(
            sid="WishappDistributionAccess",
            actions=(
                "cloudfront:CreateInvalidation",
                "cloudfront:GetDistribution",
                "cloudfront:UpdateDistribution",
            ),
            resources=(f"arn:aws:cloudfront::{account}:distribution/*",),
            conditions={
                "StringEquals": {
                    f"aws:ResourceTag/{constants.ACCESS_TAG_KEY}": env.access_tag
                }
            },
        ),
        ScopedStatement(
            sid="WishappFunctionAccess",
            actions=(
                "lambda:UpdateFunctionCode",
                "lambda:UpdateFunctionConfiguration",
                "lambda:GetFunction",
                "lambda:InvokeFunction",
            ),
            resources=(f"arn:aws:lambda:{region}:{account}:function:{named}",),
        ),
        ScopedStatement(
            sid="WishappQueueAccess",
            actions=(
                "sqs:SendMessage",
                "sqs:ReceiveMessage",
                "sqs:DeleteMessage",
                "sqs:GetQueueAttributes",
            ),
            resources=(f"arn:aws:sqs:{region}:{account}:{named}",),
        ),
    )

    for statement in statements:
        for resource in statement.resources:
            if env.name_suffix not in resource and account not in resource:
                raise ConfigurationError(
                    statement.sid, f"{resource!r} is not scoped to {env.access_tag}"
                )

    return AccessScope(
        tag_key=constants.ACCESS_TAG_KEY,
        tag_value=env.access_tag,
        statements=statements,
    )
