"""Deployment lifecycle events and their observers.

The `ListenerRegistry` is itself a listener that forwards every event to its
registered listeners in registration order. One registry exists per
deployment pass.

"""

import logging
from typing import List

from kdeploy.errors import DeploymentError
from kdeploy.models import ResourceRecord
from kdeploy.results import (
    DeleteFailed,
    FailedResult,
    GetExists,
    PatchConflict,
    PatchFailed,
    PatchSuccess,
    PostFailed,
    PostSuccess,
    PutConflict,
    PutFailed,
    PutSuccess,
    SuccessResult,
)

# Convenience.
logit = logging.getLogger("app")

# Failures either come from K8s or from a resource we could not even address.
FailureOutcome = FailedResult | DeploymentError


class DeploymentListener:
    """Base class for all listeners. The default implementation does nothing."""

    def on_start(self, record: ResourceRecord) -> None:
        pass

    def on_success(self, record: ResourceRecord, result: SuccessResult) -> None:
        pass

    def on_failure(self, record: ResourceRecord, result: FailureOutcome) -> None:
        pass


def describe_success(result: SuccessResult) -> str:
    """Return a short verb for what a successful task did."""
    if isinstance(result, GetExists):
        return "unchanged"
    elif isinstance(result, PostSuccess):
        return "created"
    elif isinstance(result, PutSuccess):
        return "updated"
    elif isinstance(result, PatchSuccess):
        return "applied"
    raise TypeError(f"unknown success result {type(result).__name__}")


def describe_failure(result: FailureOutcome) -> str:
    """Return a human readable reason for a failed task."""
    if isinstance(result, DeploymentError):
        return str(result)

    if isinstance(result, PostFailed):
        what = "create failed"
    elif isinstance(result, (PutFailed, PatchFailed)):
        what = "update failed"
    elif isinstance(result, (PutConflict, PatchConflict)):
        what = "update conflict"
    elif isinstance(result, DeleteFailed):
        what = "delete failed"
    else:
        raise TypeError(f"unknown failure result {type(result).__name__}")

    resp = result.response
    return f"{what} ({resp.status_code}): {resp.body}"


def failure_message(record: ResourceRecord, result: FailureOutcome) -> str:
    return f"Failed to deploy {record.full_info_text()}: {describe_failure(result)}"


class ListenerRegistry(DeploymentListener):
    """Broadcast events to all registered listeners.

    A listener that raises an exception is logged and skipped. It neither
    affects the other listeners nor the deployment.

    """

    def __init__(self) -> None:
        self.listeners: List[DeploymentListener] = []

    def reset(self) -> None:
        """Remove all listeners.

        The `Deployer` builds a fresh registry for every pass. This is for
        callers that drive `ApplyStrategy.apply_resource` with their own
        long lived registry.

        """
        self.listeners.clear()

    def register(self, listener: DeploymentListener) -> None:
        self.listeners.append(listener)

    def _broadcast(self, event: str, *args) -> None:
        for listener in self.listeners:
            try:
                getattr(listener, event)(*args)
            except Exception:
                logit.exception(
                    "listener error",
                    {"listener": type(listener).__name__, "event": event},
                )

    def on_start(self, record: ResourceRecord) -> None:
        self._broadcast("on_start", record)

    def on_success(self, record: ResourceRecord, result: SuccessResult) -> None:
        self._broadcast("on_success", record, result)

    def on_failure(self, record: ResourceRecord, result: FailureOutcome) -> None:
        self._broadcast("on_failure", record, result)


class ProgressListener(DeploymentListener):
    """Log the progress of the deployment."""

    def __init__(self, strategy: str):
        self.strategy = strategy

    def on_start(self, record: ResourceRecord) -> None:
        logit.info(
            f"Deploying {record.full_info_text()}", {"strategy": self.strategy}
        )

    def on_success(self, record: ResourceRecord, result: SuccessResult) -> None:
        logit.info(
            f"Deployed {record.info_text()}",
            {"strategy": self.strategy, "outcome": describe_success(result)},
        )

    def on_failure(self, record: ResourceRecord, result: FailureOutcome) -> None:
        logit.error(failure_message(record, result), {"strategy": self.strategy})


class StatusTracker(DeploymentListener):
    """Track whether the deployment succeeded so far.

    Only the first failure is recorded since the deployer reports a single
    summary failure to its caller.

    """

    def __init__(self) -> None:
        self.success = True
        self.failure_message = ""

    def on_failure(self, record: ResourceRecord, result: FailureOutcome) -> None:
        if self.success:
            self.success = False
            self.failure_message = failure_message(record, result)
