from aws_cdk import aws_lambda as _lambda

# Naming convention components
SERVICE_NAME = "wishapp"  # The application name, also the access tag base
INFRA_SERVICE_NAME = "wishapp-infra"  # Logger service name for the CDK app

# Resource types (used in naming)
ASSETS = "assets"
WISHLIST = "wishlist"
ACTION_API = "api"
ACTION_TABLE = "table"
ACTION_DLQ = "dlq"

# Environment naming
PRODUCTION_SUFFIX = "-prod"
PULL_REQUEST_PREFIX = "pr-{pr_id}-"
PULL_REQUEST_SUFFIX = "-pr-{pr_id}"
IDENTIFIER_PATTERN = r"^[A-Za-z0-9-]+$"

# Configuration sources
GITHUB_ORG_ENV = "GITHUB_ORG"
GITHUB_REPO_ENV = "GITHUB_REPO"
ACCOUNT_ENV = "CDK_DEFAULT_ACCOUNT"
REGION_ENV = "CDK_DEFAULT_REGION"
PULL_REQUEST_CONTEXT_KEY = "pr_number"
ASSET_PATH_CONTEXT_KEY = "asset_path"
ACCOUNT_CONTEXT_KEY = "account"
REGION_CONTEXT_KEY = "region"
DOTENV_PATH = ".env"
LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

# GitHub OIDC federation
GITHUB_OIDC_HOST = "token.actions.githubusercontent.com"
GITHUB_OIDC_PROVIDER_ARN = "arn:aws:iam::{account}:oidc-provider/" + GITHUB_OIDC_HOST
OIDC_AUDIENCE = "sts.amazonaws.com"
OIDC_AUDIENCE_KEY = f"{GITHUB_OIDC_HOST}:aud"
OIDC_SUBJECT_KEY = f"{GITHUB_OIDC_HOST}:sub"
ASSUME_ROLE_ACTION = "sts:AssumeRoleWithWebIdentity"
TRUST_PULL_REQUEST_SUBJECT = "repo:{org}/{repo}:pull_request"
TRUST_MAIN_BRANCH_SUBJECT = "repo:{org}/{repo}:ref:refs/heads/main"
DEPLOY_ROLE = "github-deploy-role"
DEPLOY_ROLE_MAX_SESSION_HOURS = 1

# Access scoping
ACCESS_TAG_KEY = f"{SERVICE_NAME}:environment"
ACCOUNT_PLACEHOLDER = "${AWS::AccountId}"
REGION_PLACEHOLDER = "${AWS::Region}"

# Lambda
LAMBDA_RUNTIME = _lambda.Runtime.PROVIDED_AL2
LAMBDA_HANDLER = "bootstrap"
DEFAULT_ARCHITECTURE = _lambda.Architecture.X86_64
DEFAULT_ASSET_PATH = "../target/lambda/wishlist_api"

# CloudFront
DEFAULT_ROOT_OBJECT = "index.html"
