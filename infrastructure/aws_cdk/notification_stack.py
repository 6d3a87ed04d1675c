"""
AWS CDK stack for build and deployment notifications (SMS, Email, Slack).
"""

from pathlib import Path
from typing import Dict, Optional

from aws_cdk import (
    Stack,
    Aws,
    CfnCondition,
    CfnOutput,
    CfnParameter,
    Duration,
    Fn,
    aws_codebuild as codebuild,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_sns as sns
)
from constructs import Construct

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PLACEHOLDER_SOURCE = PROJECT_ROOT / "src" / "lambda_functions" / "placeholder" / "index.py"
BUILDSPEC_PATH = "buildspec.yml"


def _override_logical_id(construct: Construct, logical_id: str) -> None:
    construct.node.default_child.override_logical_id(logical_id)


class NotificationStack(Stack):
    """
    CDK Stack for the DevOps notification relay.

    All devops events like stack updates, code builds and code deployments
    are posted to the event topic. The events function turns them into
    notifications and posts them to the notification topic, which sends
    them to Email, SMS and Slack. The CodeBuild project replaces the
    placeholder function bodies with the real ones.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        app_name: Optional[str] = None,
        environment: Optional[str] = None,
        notification_email: str = "",
        notification_sms: str = "",
        notification_slack: str = "",
        **kwargs
    ) -> None:
        """
        Initialize the stack.

        Args:
            scope: CDK construct scope
            construct_id: CDK construct ID
            app_name: Default value of the AppName parameter
            environment: Default value of the Environment parameter
            notification_email: Default email endpoint ('' disables email)
            notification_sms: Default phone number ('' disables SMS)
            notification_slack: Default Slack webhook ('' disables Slack)
            **kwargs: Additional arguments
        """
        super().__init__(scope, construct_id, **kwargs)

        placeholder_code = lambda_.Code.from_inline(PLACEHOLDER_SOURCE.read_text())

        ######## PARAMETERS #########
        self.app_name = CfnParameter(
            self, "AppName", type="String", description="Application name", default=app_name
        )
        self.environment_name = CfnParameter(
            self, "Environment", type="String", description="Environment", default=environment
        )
        p_slack = CfnParameter(
            self, "NotificationSlack", type="String",
            description="Notification slack endpoint", default=notification_slack
        )
        p_email = CfnParameter(
            self, "NotificationEmail", type="String",
            description="Notification email endpoint", default=notification_email
        )
        p_sms = CfnParameter(
            self, "NotificationSMS", type="String",
            description="Notification sms endpoint", default=notification_sms
        )

        ######## CONDITIONS #########
        needs_email = self._endpoint_condition("NeedsBuildNotificationEmail", p_email)
        needs_sms = self._endpoint_condition("NeedsBuildNotificationSMS", p_sms)
        needs_slack = self._endpoint_condition("NeedsBuildNotificationSlack", p_slack)

        ######## EVENT TOPIC #########
        self.event_topic = sns.Topic(
            self,
            "EventTopic",
            topic_name=Fn.sub("${AppName}-${Environment}-devops-events")
        )
        _override_logical_id(self.event_topic, "EventTopic")

        event_topic_policy = sns.TopicPolicy(self, "EventTopicPolicy", topics=[self.event_topic])
        event_topic_policy.document.add_statements(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                principals=[iam.ServicePrincipal("events.amazonaws.com")],
                actions=["sns:Publish"],
                resources=[self.event_topic.topic_arn]
            )
        )
        _override_logical_id(event_topic_policy, "EventTopicPolicy")

        ######## NOTIFICATION TOPIC #########
        self.notification_topic = sns.Topic(
            self,
            "NotificationTopic",
            topic_name=Fn.sub("${AppName}-${Environment}-devops-notifications")
        )
        _override_logical_id(self.notification_topic, "NotificationTopic")

        self.subscriptions: Dict[str, sns.CfnSubscription] = {}

        email_subscription = sns.CfnSubscription(
            self,
            "EmailSubscription",
            endpoint=p_email.value_as_string,
            protocol="email",
            topic_arn=self.notification_topic.topic_arn
        )
        email_subscription.cfn_options.condition = needs_email
        self.subscriptions["email"] = email_subscription

        sms_subscription = sns.CfnSubscription(
            self,
            "SMSSubscription",
            endpoint=p_sms.value_as_string,
            protocol="sms",
            topic_arn=self.notification_topic.topic_arn
        )
        sms_subscription.cfn_options.condition = needs_sms
        self.subscriptions["sms"] = sms_subscription

        ######## SLACK FUNCTION #########
        slack_role = self._lambda_execution_role("IamRoleSlackLambdaExecution")
        slack_policy = iam.Policy(
            self,
            "IamPolicySlackLambdaExecution",
            policy_name="IamPolicyLambdaExecution",
            statements=[self._logs_statement()],
            roles=[slack_role]
        )
        _override_logical_id(slack_policy, "IamPolicySlackLambdaExecution")

        self.slack_function = lambda_.Function(
            self,
            "SlackFunction",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="index.slack",
            code=placeholder_code,
            timeout=Duration.seconds(5),
            role=slack_role,
            environment={
                "SLACK_WEBHOOK_URL": p_slack.value_as_string,
                "SLACK_TIMEOUT_SECONDS": "1.5",
                "LOG_LEVEL": "INFO"
            },
            description="Sends DevOps notifications to Slack"
        )
        self.slack_function.node.add_dependency(slack_role, slack_policy)
        _override_logical_id(self.slack_function, "SlackFunction")

        slack_subscription = sns.CfnSubscription(
            self,
            "SlackSubscription",
            endpoint=self.slack_function.function_arn,
            protocol="lambda",
            topic_arn=self.notification_topic.topic_arn
        )
        slack_subscription.cfn_options.condition = needs_slack
        slack_subscription.node.add_dependency(self.slack_function)
        self.subscriptions["slack"] = slack_subscription

        lambda_.CfnPermission(
            self,
            "PermissionForSNSToInvokeSlackLambda",
            function_name=self.slack_function.function_name,
            action="lambda:InvokeFunction",
            principal="sns.amazonaws.com",
            source_arn=self.notification_topic.topic_arn
        )

        ######## EVENTS FUNCTION #########
        events_role = self._lambda_execution_role("IamRoleEventLambdaExecution")
        self.events_policy = iam.Policy(
            self,
            "IamPolicyEventLambdaExecution",
            policy_name="IamPolicyLambdaExecution",
            statements=[
                self._logs_statement(),
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["sns:Publish"],
                    resources=[self.notification_topic.topic_arn]
                )
            ],
            roles=[events_role]
        )
        _override_logical_id(self.events_policy, "IamPolicyEventLambdaExecution")

        self.events_function = lambda_.Function(
            self,
            "EventsFunction",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="index.events",
            code=placeholder_code,
            timeout=Duration.seconds(5),
            role=events_role,
            environment={
                "NOTIFICATION_TOPIC_ARN": self.notification_topic.topic_arn,
                "APP_NAME": self.app_name.value_as_string,
                "ENVIRONMENT": self.environment_name.value_as_string,
                "LOG_LEVEL": "INFO"
            },
            description="Turns DevOps events into notifications"
        )
        self.events_function.node.add_dependency(events_role, self.events_policy)
        _override_logical_id(self.events_function, "EventsFunction")

        events_subscription = sns.CfnSubscription(
            self,
            "EventsSubscription",
            endpoint=self.events_function.function_arn,
            protocol="lambda",
            topic_arn=self.event_topic.topic_arn
        )
        events_subscription.node.add_dependency(self.events_function)

        lambda_.CfnPermission(
            self,
            "PermissionForSNSToInvokeEventsLambda",
            function_name=self.events_function.function_name,
            action="lambda:InvokeFunction",
            principal="sns.amazonaws.com",
            source_arn=self.event_topic.topic_arn
        )

        ######## CODEBUILD #########
        self.build_project = self._create_build_project()

        ######## OUTPUTS #########
        event_topic_output = CfnOutput(
            self,
            "EventTopicOutput",
            value=self.event_topic.topic_arn,
            export_name=Fn.sub("${AWS::StackName}-EventTopic")
        )
        event_topic_output.override_logical_id("EventTopic")

        build_output = CfnOutput(
            self,
            "CodeBuildOutput",
            value=self.build_project.project_name,
            export_name=Fn.sub("${AWS::StackName}-CodeBuild")
        )
        build_output.override_logical_id("CodeBuild")

    def _endpoint_condition(self, condition_id: str, parameter: CfnParameter) -> CfnCondition:
        """Condition that is true when the endpoint parameter is not empty."""
        return CfnCondition(
            self,
            condition_id,
            expression=Fn.condition_not(Fn.condition_equals(parameter.value_as_string, ""))
        )

    def _lambda_execution_role(self, role_id: str) -> iam.Role:
        role = iam.Role(
            self,
            role_id,
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            path="/"
        )
        _override_logical_id(role, role_id)
        return role

    def _logs_statement(self) -> iam.PolicyStatement:
        return iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            actions=["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
            resources=[f"arn:{Aws.PARTITION}:logs:{Aws.REGION}:{Aws.ACCOUNT_ID}:*"]
        )

    def _create_build_project(self) -> codebuild.PipelineProject:
        """
        Create the CodeBuild project that builds, packages and deploys the
        real function bodies.

        Returns:
            CodeBuild project
        """
        function_arns = [self.events_function.function_arn, self.slack_function.function_arn]

        build_role = iam.Role(
            self,
            "CodeBuildRole",
            assumed_by=iam.ServicePrincipal("codebuild.amazonaws.com")
        )
        _override_logical_id(build_role, "CodeBuildRole")

        build_policy = iam.Policy(
            self,
            "CodeBuildPolicy",
            policy_name=Fn.sub("${AWS::StackName}-codebuild-policy"),
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=[
                        "lambda:GetFunction",
                        "lambda:GetFunctionConfiguration",
                        "lambda:UpdateFunctionCode",
                        "lambda:UpdateFunctionConfiguration"
                    ],
                    resources=function_arns
                )
            ],
            roles=[build_role]
        )
        _override_logical_id(build_policy, "CodeBuildPolicy")

        project = codebuild.PipelineProject(
            self,
            "CodeBuild",
            project_name=Fn.sub("${AWS::StackName}-code-build"),
            role=build_role,
            build_spec=codebuild.BuildSpec.from_source_filename(BUILDSPEC_PATH),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                compute_type=codebuild.ComputeType.SMALL
            ),
            environment_variables={
                "EVENTS_FUNCTION": codebuild.BuildEnvironmentVariable(
                    value=self.events_function.function_name
                ),
                "SLACK_FUNCTION": codebuild.BuildEnvironmentVariable(
                    value=self.slack_function.function_name
                )
            },
            timeout=Duration.minutes(5)
        )
        project.node.add_dependency(self.events_function, self.slack_function, build_policy)
        _override_logical_id(project, "CodeBuild")
        return project
