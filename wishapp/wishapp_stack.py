from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    aws_apigateway as apigw,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_dynamodb as dynamodb,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_s3 as s3,
    aws_sqs as sqs,
)
from constructs import Construct
import common.constants as constants
from common.access_policy import build_access_scope
from common.environment import ResolvedEnvironment
from common.stack_context import StackContext


class WishappStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: ResolvedEnvironment,
        asset_path: str = constants.DEFAULT_ASSET_PATH,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, environment=environment)
        self.access_scope = build_access_scope(environment)

        # Rust binary built by cargo-lambda
        self.code = _lambda.Code.from_asset(asset_path)

        # S3 bucket and CloudFront distribution for the frontend assets
        self.assets_bucket = self._build_assets_bucket()
        self.distribution = self._build_distribution(self.assets_bucket)

        # DynamoDB table for storing wishlists
        self.wishlist_table = self._build_wishlist_table()

        # SQS dead letter queue for failed asynchronous invocations
        self.wishlist_dlq = self._build_wishlist_dlq()

        self.wishlist_api_log_group = self.context.build_log_group(
            constants.WISHLIST, action=constants.ACTION_API
        )

        # Lambda function serving the wishlist API
        self.wishlist_api_lambda = self._build_wishlist_api_lambda(
            table=self.wishlist_table,
            dlq=self.wishlist_dlq,
            log_group=self.wishlist_api_log_group,
        )

        # API Gateway
        self.rest_api = self._build_rest_api(self.wishlist_api_lambda)

        # Permissions
        self.wishlist_table.grant_read_write_data(self.wishlist_api_lambda)

        self.context.apply_access_tags(self.access_scope)
        self._build_outputs()

    # Resource creation

    def _build_assets_bucket(self) -> s3.Bucket:
        """Create the private S3 bucket with web assets."""
        return s3.Bucket(
            self,
            self.context.build_resource_id(constants.ASSETS),
            bucket_name=self.context.build_bucket_name(constants.ASSETS),
            removal_policy=self.context.removal_policy,
            auto_delete_objects=self.context.environment.is_pull_request,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
        )

    def _build_distribution(self, bucket: s3.IBucket) -> cloudfront.Distribution:
        """Serve the assets bucket through CloudFront with origin access control."""
        return cloudfront.Distribution(
            self,
            self.context.build_resource_id("Distribution"),
            comment=self.context.build_resource_name("distribution"),
            default_root_object=constants.DEFAULT_ROOT_OBJECT,
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3BucketOrigin.with_origin_access_control(bucket),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
            ),
        )

    def _build_wishlist_table(self) -> dynamodb.Table:
        return dynamodb.Table(
            self,
            id=self.context.build_resource_id(
                constants.WISHLIST, action=constants.ACTION_TABLE
            ),
            table_name=self.context.build_resource_name(
                constants.WISHLIST, action=constants.ACTION_TABLE
            ),
            partition_key=dynamodb.Attribute(
                name="id",
                type=dynamodb.AttributeType.STRING,
            ),
            removal_policy=self.context.removal_policy,
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
        )

    def _build_wishlist_dlq(self) -> sqs.Queue:
        """Build the wishlist API DLQ."""
        return sqs.Queue(
            self,
            self.context.build_resource_id(constants.WISHLIST, action=constants.ACTION_DLQ),
            queue_name=self.context.build_resource_name(
                constants.WISHLIST, action=constants.ACTION_DLQ
            ),
            retention_period=Duration.days(14),
            encryption=sqs.QueueEncryption.SQS_MANAGED,
            removal_policy=self.context.removal_policy,
        )

    def _build_wishlist_api_lambda(
        self,
        table: dynamodb.ITable,
        dlq: sqs.IQueue,
        log_group: logs.ILogGroup,
    ) -> _lambda.Function:
        return _lambda.Function(
            self,
            id=self.context.build_resource_id(
                constants.WISHLIST, action=constants.ACTION_API
            ),
            function_name=self.context.build_resource_name(
                constants.WISHLIST, action=constants.ACTION_API
            ),
            runtime=constants.LAMBDA_RUNTIME,
            handler=constants.LAMBDA_HANDLER,
            code=self.code,
            architecture=constants.DEFAULT_ARCHITECTURE,
            description=f"Serves the wishlist API backed by DynamoDB {table.table_name}",
            dead_letter_queue=dlq,
            environment={
                "TABLE_NAME": table.table_name,
            },
            timeout=Duration.seconds(30),
            memory_size=256,
            tracing=_lambda.Tracing.ACTIVE,
            log_group=log_group,
        )

    def _build_rest_api(self, handler: _lambda.IFunction) -> apigw.LambdaRestApi:
        """Create the REST API proxying every route to the wishlist Lambda."""
        return apigw.LambdaRestApi(
            self,
            self.context.build_resource_id("Api"),
            rest_api_name=self.context.build_resource_name("api"),
            handler=handler,
        )

    def _build_outputs(self) -> None:
        CfnOutput(self, "ApiUrl", value=self.rest_api.url)
        CfnOutput(
            self, "DistributionDomainName", value=self.distribution.distribution_domain_name
        )
        CfnOutput(self, "AssetsBucketName", value=self.assets_bucket.bucket_name)
