from typing import Mapping, Any
import pytest
from aws_cdk.assertions import Template, Match
from stack_test_helpers import (
    UpdateDeletePolicyTestCase,
    find_resources_by_type,
    get_single_resource_id,
    production,
    pull_request,
    template,
    pr_template,
    expected_lambda_props,
    json_template,
)
from governance_checks import assert_s3_compliance

# ----------------------------- Resource count smoke test ------------------------

RESOURCES = [
    ("AWS::ApiGateway::RestApi", 1),
    ("AWS::CloudFront::Distribution", 1),
    ("AWS::CloudFront::OriginAccessControl", 1),
    ("AWS::DynamoDB::Table", 1),
    ("AWS::Lambda::Function", 1),
    ("AWS::Logs::LogGroup", 1),
    ("AWS::S3::Bucket", 1),
    ("AWS::S3::BucketPolicy", 1),
    ("AWS::SQS::Queue", 1),
    ("Custom::S3AutoDeleteObjects", 0),
]


@pytest.mark.parametrize("resource_type,expected", RESOURCES)
def test_resource_count(template: Template, resource_type: str, expected: int):
    template.resource_count_is(resource_type, expected)


def test_pull_request_assets_are_emptied_on_delete(pr_template: Template):
    pr_template.resource_count_is("Custom::S3AutoDeleteObjects", 1)


# ------------------- Naming tests -------------------
NAMES = [
    ("AWS::DynamoDB::Table", "TableName", "wishapp-wishlist-table-prod"),
    ("AWS::SQS::Queue", "QueueName", "wishapp-wishlist-dlq-prod"),
    ("AWS::Lambda::Function", "FunctionName", "wishapp-wishlist-api-prod"),
    ("AWS::Logs::LogGroup", "LogGroupName", "/aws/lambda/wishapp-wishlist-api-prod"),
    ("AWS::ApiGateway::RestApi", "Name", "wishapp-api-prod"),
]

PR_NAMES = [
    ("AWS::DynamoDB::Table", "TableName", "pr-123-wishapp-wishlist-table-pr-123"),
    ("AWS::SQS::Queue", "QueueName", "pr-123-wishapp-wishlist-dlq-pr-123"),
    ("AWS::Lambda::Function", "FunctionName", "pr-123-wishapp-wishlist-api-pr-123"),
    ("AWS::Logs::LogGroup", "LogGroupName", "/aws/lambda/pr-123-wishapp-wishlist-api-pr-123"),
    ("AWS::ApiGateway::RestApi", "Name", "pr-123-wishapp-api-pr-123"),
]


@pytest.mark.parametrize("resource_type,prop,expected", NAMES)
def test_production_resource_names(
    template: Template, resource_type: str, prop: str, expected: str
):
    template.has_resource_properties(resource_type, {prop: expected})


@pytest.mark.parametrize("resource_type,prop,expected", PR_NAMES)
def test_pull_request_resource_names(
    pr_template: Template, resource_type: str, prop: str, expected: str
):
    pr_template.has_resource_properties(resource_type, {prop: expected})


def test_bucket_name_includes_account_and_environment(
    template: Template, pr_template: Template
):
    template.has_resource_properties(
        "AWS::S3::Bucket",
        {
            "BucketName": {
                "Fn::Join": ["", ["wishapp-assets-", {"Ref": "AWS::AccountId"}, "-prod"]]
            }
        },
    )
    pr_template.has_resource_properties(
        "AWS::S3::Bucket",
        {
            "BucketName": {
                "Fn::Join": [
                    "",
                    ["pr-123-wishapp-assets-", {"Ref": "AWS::AccountId"}, "-pr-123"],
                ]
            }
        },
    )


# ------------------- Tagging tests -------------------
TAGGED_RESOURCES = [
    "AWS::CloudFront::Distribution",
    "AWS::DynamoDB::Table",
    "AWS::Lambda::Function",
    "AWS::S3::Bucket",
    "AWS::SQS::Queue",
]


@pytest.mark.parametrize("resource_type", TAGGED_RESOURCES)
def test_resources_carry_access_tag(
    template: Template, pr_template: Template, resource_type: str
):
    template.has_resource_properties(
        resource_type,
        {"Tags": Match.array_with([{"Key": "wishapp:environment", "Value": "wishapp-prod"}])},
    )
    pr_template.has_resource_properties(
        resource_type,
        {
            "Tags": Match.array_with(
                [{"Key": "wishapp:environment", "Value": "wishapp-pr-123"}]
            )
        },
    )


# ------------------- DynamoDB table tests -------------------
def test_table_has_expected_properties(template: Template):
    template.has_resource_properties(
        "AWS::DynamoDB::Table",
        {
            "AttributeDefinitions": [
                {"AttributeName": "id", "AttributeType": "S"},
            ],
            "KeySchema": [
                {"AttributeName": "id", "KeyType": "HASH"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    )


# ------------------- Update/Delete Policy tests -------------------
UPDATE_DELETE_POLICY_CASE = [
    UpdateDeletePolicyTestCase(
        id="AWS::DynamoDB::Table", update_policy="Retain", delete_policy="Retain"
    ),
    UpdateDeletePolicyTestCase(
        id="AWS::S3::Bucket", update_policy="Retain", delete_policy="Retain"
    ),
    UpdateDeletePolicyTestCase(
        id="AWS::SQS::Queue", update_policy="Retain", delete_policy="Retain"
    ),
]

PR_UPDATE_DELETE_POLICY_CASE = [
    UpdateDeletePolicyTestCase(
        id="AWS::DynamoDB::Table", update_policy="Delete", delete_policy="Delete"
    ),
    UpdateDeletePolicyTestCase(
        id="AWS::S3::Bucket", update_policy="Delete", delete_policy="Delete"
    ),
    UpdateDeletePolicyTestCase(
        id="AWS::SQS::Queue", update_policy="Delete", delete_policy="Delete"
    ),
]


@pytest.mark.parametrize("case", UPDATE_DELETE_POLICY_CASE, ids=lambda test: test.id)
def test_production_resources_are_retained(
    template: Template,
    json_template: Mapping[str, Any],
    case: UpdateDeletePolicyTestCase,
):
    resource_type = find_resources_by_type(template, case.id)
    logical_id = get_single_resource_id(resource_type, case.id)

    assert json_template["Resources"][logical_id]["DeletionPolicy"] == case.delete_policy
    assert (
        json_template["Resources"][logical_id]["UpdateReplacePolicy"]
        == case.update_policy
    )


@pytest.mark.parametrize("case", PR_UPDATE_DELETE_POLICY_CASE, ids=lambda test: test.id)
def test_pull_request_resources_are_disposable(
    pr_template: Template, case: UpdateDeletePolicyTestCase
):
    resources = find_resources_by_type(pr_template, case.id)
    logical_id = get_single_resource_id(resources, case.id)

    assert resources[logical_id]["DeletionPolicy"] == case.delete_policy
    assert resources[logical_id]["UpdateReplacePolicy"] == case.update_policy


# ------------------- S3 Bucket and CloudFront tests -------------------
def test_bucket_enforces_strict_access(template: Template):
    template.has_resource_properties(
        "AWS::S3::Bucket",
        {
            "PublicAccessBlockConfiguration": {
                "BlockPublicAcls": True,
                "BlockPublicPolicy": True,
                "IgnorePublicAcls": True,
                "RestrictPublicBuckets": True,
            },
            "BucketEncryption": {
                "ServerSideEncryptionConfiguration": [
                    {"ServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}
                ]
            },
        },
    )
    assert_s3_compliance(template)


def test_distribution_serves_bucket_over_https(template: Template):
    template.has_resource_properties(
        "AWS::CloudFront::Distribution",
        {
            "DistributionConfig": {
                "Comment": "wishapp-distribution-prod",
                "DefaultRootObject": "index.html",
                "DefaultCacheBehavior": {"ViewerProtocolPolicy": "redirect-to-https"},
                "Origins": [
                    {
                        "OriginAccessControlId": Match.any_value(),
                    }
                ],
            }
        },
    )


# -------------------- Lambda Function tests ----------------------------


@pytest.mark.parametrize(
    "fixture_name,function_name",
    [
        ("template", "wishapp-wishlist-api-prod"),
        ("pr_template", "pr-123-wishapp-wishlist-api-pr-123"),
    ],
)
def test_lambda_function_configuration(
    request: pytest.FixtureRequest, fixture_name: str, function_name: str
):
    stack_template: Template = request.getfixturevalue(fixture_name)
    stack_template.has_resource_properties(
        "AWS::Lambda::Function",
        Match.object_like(expected_lambda_props(function_name)),
    )


def test_lambda_has_target_dlq_properties(template: Template):
    template.has_resource_properties(
        "AWS::Lambda::Function",
        {
            "FunctionName": "wishapp-wishlist-api-prod",
            "DeadLetterConfig": {
                "TargetArn": {
                    "Fn::GetAtt": [
                        Match.string_like_regexp(r".*WishappWishlistDlq.*"),
                        "Arn",
                    ]
                }
            },
        },
    )


def test_dlq_is_encrypted(template: Template):
    template.has_resource_properties(
        "AWS::SQS::Queue",
        {
            "SqsManagedSseEnabled": True,
            "MessageRetentionPeriod": 1209600,
        },
    )


def test_lambda_can_read_and_write_table(template: Template):
    template.has_resource_properties(
        "AWS::IAM::Policy",
        {
            "PolicyDocument": {
                "Statement": Match.array_with(
                    [
                        Match.object_like(
                            {
                                "Action": Match.array_with(
                                    ["dynamodb:GetItem", "dynamodb:PutItem"]
                                ),
                                "Effect": "Allow",
                                "Resource": Match.array_with(
                                    [
                                        {
                                            "Fn::GetAtt": [
                                                Match.string_like_regexp(
                                                    r".*WishappWishlistTable.*"
                                                ),
                                                "Arn",
                                            ]
                                        }
                                    ]
                                ),
                            }
                        )
                    ]
                )
            }
        },
    )


def test_log_group_retention_depends_on_environment(
    template: Template, pr_template: Template
):
    template.has_resource_properties("AWS::Logs::LogGroup", {"RetentionInDays": 365})
    pr_template.has_resource_properties("AWS::Logs::LogGroup", {"RetentionInDays": 7})


# -------------------- Outputs ----------------------------
@pytest.mark.parametrize(
    "output_id", ["ApiUrl", "DistributionDomainName", "AssetsBucketName"]
)
def test_stack_outputs(template: Template, output_id: str):
    template.has_output(output_id, {"Value": Match.any_value()})
