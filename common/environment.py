"""Environment resolution for wishapp deployments.

A deployment targets either the long-lived production environment or an
ephemeral pull-request preview. Everything environment specific (resource
names, the OIDC trust subjects and the access tag) is derived here, once,
from an explicit :class:`EnvironmentContext`.
"""
import re
from enum import Enum
from typing import Optional, Union

import attrs
from attrs import define, field

import common.constants as constants
from common.errors import ConfigurationError

_IDENTIFIER = re.compile(constants.IDENTIFIER_PATTERN)


def _identifier(instance, attribute: attrs.Attribute, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(attribute.name, "must be a non-empty string")
    if not _IDENTIFIER.fullmatch(value):
        raise ConfigurationError(
            attribute.name,
            f"{value!r} must contain only alphanumeric characters and hyphens",
        )


def _opaque_token(value: Union[str, int, None]) -> Optional[str]:
    # Booleans are ints, but never a pull request number
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError(
            "pull_request_id", f"{value!r} must be a string or an integer"
        )
    return str(value)


def _pull_request_id(instance, attribute: attrs.Attribute, value: Optional[str]) -> None:
    if value == "":
        raise ConfigurationError(
            attribute.name, "must be a non-empty string when a pull request is deployed"
        )


class EnvironmentKind(str, Enum):
    PRODUCTION = "production"
    PULL_REQUEST = "pull_request"


@define(slots=True, frozen=True, kw_only=True)
class EnvironmentContext:
    organization: str = field(
        validator=_identifier,
        metadata={"description": "GitHub organization owning the repository"},
    )
    repository: str = field(
        validator=_identifier,
        metadata={"description": "GitHub repository name"},
    )
    pull_request_id: Optional[str] = field(
        default=None,
        converter=_opaque_token,
        validator=_pull_request_id,
        metadata={"description": "Opaque pull request token, None for production"},
    )


@define(slots=True, frozen=True, kw_only=True)
class ResolvedEnvironment:
    kind: EnvironmentKind
    name_prefix: str
    name_suffix: str
    trust_subject_patterns: tuple[str, ...] = field(
        validator=attrs.validators.and_(
            attrs.validators.instance_of(tuple),
            attrs.validators.min_len(2),
            attrs.validators.max_len(2),
        )
    )
    access_tag: str

    @property
    def is_pull_request(self) -> bool:
        return self.kind is EnvironmentKind.PULL_REQUEST

    def resource_name(self, base: str) -> str:
        """Scope a physical resource name to this environment.

        Examples:
            - Production: wishapp-wishlist-table-prod
            - Pull request 123: pr-123-wishapp-wishlist-table-pr-123
        """
        return f"{self.name_prefix}{base}{self.name_suffix}"


def resolve_environment(context: EnvironmentContext) -> ResolvedEnvironment:
    attrs.validate(context)

    if context.pull_request_id is None:
        kind = EnvironmentKind.PRODUCTION
        name_prefix = ""
        name_suffix = constants.PRODUCTION_SUFFIX
    else:
        kind = EnvironmentKind.PULL_REQUEST
        name_prefix = constants.PULL_REQUEST_PREFIX.format(pr_id=context.pull_request_id)
        name_suffix = constants.PULL_REQUEST_SUFFIX.format(pr_id=context.pull_request_id)

    # Both subjects are trusted for either kind of environment.
    trust_subject_patterns = tuple(
        pattern.format(org=context.organization, repo=context.repository)
        for pattern in (
            constants.TRUST_PULL_REQUEST_SUBJECT,
            constants.TRUST_MAIN_BRANCH_SUBJECT,
        )
    )

    return ResolvedEnvironment(
        kind=kind,
        name_prefix=name_prefix,
        name_suffix=name_suffix,
        trust_subject_patterns=trust_subject_patterns,
        access_tag=f"{constants.SERVICE_NAME}{name_suffix}",
    )

