"""
Formatting of DevOps events into user-facing notification messages.

Each supported event source has a formatter returning a NotificationMessage,
or None when the event is not worth notifying about.
"""

import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from ..models.devops_event import DevOpsEvent, CLOUDFORMATION_NOTIFICATION
from ..models.notification import NotificationMessage, Severity

logger = logging.getLogger(__name__)

Formatter = Callable[[DevOpsEvent], Optional[NotificationMessage]]

DEFAULT_REGION = "us-east-1"

CODEBUILD_SEVERITY = {
    "IN_PROGRESS": Severity.INFO,
    "SUCCEEDED": Severity.SUCCESS,
    "FAILED": Severity.FAILURE,
    "FAULT": Severity.FAILURE,
    "TIMED_OUT": Severity.FAILURE,
    "STOPPED": Severity.WARNING,
}

CODEPIPELINE_SEVERITY = {
    "STARTED": Severity.INFO,
    "RESUMED": Severity.INFO,
    "SUCCEEDED": Severity.SUCCESS,
    "FAILED": Severity.FAILURE,
    "CANCELED": Severity.WARNING,
    "SUPERSEDED": Severity.WARNING,
    "STOPPED": Severity.WARNING,
    "STOPPING": Severity.WARNING,
}

CODEDEPLOY_SEVERITY = {
    "START": Severity.INFO,
    "READY": Severity.INFO,
    "SUCCESS": Severity.SUCCESS,
    "FAILURE": Severity.FAILURE,
    "STOP": Severity.WARNING,
}


def _region(event: DevOpsEvent) -> str:
    return event.region if isinstance(event.region, str) and event.region else DEFAULT_REGION


class MalformedEventError(ValueError):
    """A detail field is present but has the wrong type."""


def _text(fields: Dict[str, Any], key: str, default: str = "") -> str:
    value = fields.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise MalformedEventError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _mapping(fields: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = fields.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedEventError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def cloudformation_severity(status: str) -> Optional[Severity]:
    """
    Map a stack status to a severity.

    Returns None for statuses that are not reported (cleanup phases).
    """
    if not status or status.endswith("CLEANUP_IN_PROGRESS"):
        return None
    if "ROLLBACK" in status:
        return Severity.WARNING if status.endswith("IN_PROGRESS") else Severity.FAILURE
    if status.endswith("FAILED"):
        return Severity.FAILURE
    if status.endswith("IN_PROGRESS") or status == "DELETE_COMPLETE":
        return Severity.INFO
    if status.endswith("COMPLETE"):
        return Severity.SUCCESS
    return Severity.INFO


def format_codebuild(event: DevOpsEvent) -> Optional[NotificationMessage]:
    detail = event.detail
    status = _text(detail, "build-status")
    project = _text(detail, "project-name", "unknown project")
    build_id = _text(detail, "build-id")
    build_ref = build_id.split("/")[-1] if build_id else ""
    region = _region(event)

    link = None
    if build_ref:
        link = (
            f"https://{region}.console.aws.amazon.com/codesuite/codebuild/projects/"
            f"{quote(project)}/build/{quote(build_ref, safe='')}/?region={region}"
        )

    text = f"CodeBuild project {project} is {status}."
    phases = _mapping(detail, "additional-information").get("phases") or []
    if not isinstance(phases, list) or not all(isinstance(p, dict) for p in phases):
        raise MalformedEventError("'phases' must be a list of objects")
    if status in ("FAILED", "FAULT", "TIMED_OUT"):
        failed = [p.get("phase-type") for p in phases if p.get("phase-status") not in (None, "SUCCEEDED")]
        if failed:
            text += f" Failed phase(s): {', '.join(str(p) for p in failed)}."

    return NotificationMessage(
        subject=f"Build {status}: {project}",
        text=text,
        severity=CODEBUILD_SEVERITY.get(status, Severity.INFO),
        source=event.source,
        link=link,
    )


def format_codepipeline(event: DevOpsEvent) -> Optional[NotificationMessage]:
    detail = event.detail
    state = _text(detail, "state")
    pipeline = _text(detail, "pipeline", "unknown pipeline")
    execution_id = _text(detail, "execution-id")
    region = _region(event)

    text = f"Pipeline {pipeline} execution is {state}."
    if execution_id:
        text += f" Execution: {execution_id}."

    return NotificationMessage(
        subject=f"Pipeline {state}: {pipeline}",
        text=text,
        severity=CODEPIPELINE_SEVERITY.get(state, Severity.INFO),
        source=event.source,
        link=(
            f"https://{region}.console.aws.amazon.com/codesuite/codepipeline/pipelines/"
            f"{quote(pipeline)}/view?region={region}"
        ),
    )


def format_codedeploy(event: DevOpsEvent) -> Optional[NotificationMessage]:
    detail = event.detail
    state = _text(detail, "state")
    application = _text(detail, "application", "unknown application")
    group = _text(detail, "deploymentGroup")
    deployment_id = _text(detail, "deploymentId")
    region = _region(event)

    target = f"{application}/{group}" if group else application
    link = None
    text = f"Deployment of {target} is {state}."
    if deployment_id:
        text = f"Deployment {deployment_id} of {target} is {state}."
        link = (
            f"https://{region}.console.aws.amazon.com/codesuite/codedeploy/deployments/"
            f"{quote(deployment_id)}?region={region}"
        )

    return NotificationMessage(
        subject=f"Deployment {state}: {target}",
        text=text,
        severity=CODEDEPLOY_SEVERITY.get(state, Severity.INFO),
        source=event.source,
        link=link,
    )


def format_cloudformation(event: DevOpsEvent) -> Optional[NotificationMessage]:
    detail = event.detail

    if event.detail_type == CLOUDFORMATION_NOTIFICATION:
        stack_name = _text(detail, "StackName")
        if detail.get("LogicalResourceId") != stack_name:
            # resource-level event
            return None
        stack_id = _text(detail, "StackId")
        status = _text(detail, "ResourceStatus")
        reason = _text(detail, "ResourceStatusReason")
    else:
        stack_id = _text(detail, "stack-id") or next((r for r in event.resources if isinstance(r, str)), "")
        status_details = _mapping(detail, "status-details")
        status = _text(status_details, "status")
        reason = _text(status_details, "status-reason")
        stack_name = stack_id.split("/")[1] if stack_id.count("/") >= 2 else stack_id

    severity = cloudformation_severity(status)
    if severity is None:
        return None

    text = f"Stack {stack_name} is {status}."
    if reason:
        text += f" Reason: {reason}"

    link = None
    if stack_id:
        link = (
            f"https://console.aws.amazon.com/cloudformation/home?region={_region(event)}"
            f"#/stacks/stackinfo?stackId={quote(stack_id, safe='')}"
        )

    return NotificationMessage(
        subject=f"Stack {status}: {stack_name}",
        text=text,
        severity=severity,
        source=event.source,
        link=link,
    )


FORMATTERS: Dict[str, Formatter] = {
    "aws.codebuild": format_codebuild,
    "aws.codepipeline": format_codepipeline,
    "aws.codedeploy": format_codedeploy,
    "aws.cloudformation": format_cloudformation,
}


def format_event(
    event: DevOpsEvent,
    app_name: str = "",
    environment: str = ""
) -> Optional[NotificationMessage]:
    """
    Format a DevOps event into a notification message.

    Args:
        event: Parsed DevOps event
        app_name: Application name added to the message prefix
        environment: Environment name added to the message prefix

    Returns:
        The notification message, or None when the event is not reported
    """
    if not event.is_known:
        logger.warning("Unrecognized event, skipping")
        return None

    formatter = FORMATTERS.get(event.source)
    if formatter is None:
        logger.info(f"No formatter for event source '{event.source}', skipping")
        return None

    try:
        message = formatter(event)
    except MalformedEventError as e:
        logger.warning(f"Malformed {event.source} event, skipping: {e}")
        return None

    if message is None:
        logger.info(f"Event {event.detail_type or event.source} is not reported, skipping")
        return None

    message.app_name = app_name
    message.environment = environment
    if isinstance(event.time, str) and event.time:
        message.timestamp = event.time
    return message
