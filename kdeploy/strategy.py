"""Create, update or re-create a single resource.

Every task runs through the same state machine in `ApplyStrategy`:

    START -> GET -> {CREATE | handle existing resource} -> success/failure

The strategies only differ in how they update an existing resource. The
server side strategy lets K8s resolve conflicts. The client side strategy is
deprecated and resolves a limited class of conflicts itself.

Every terminal state emits exactly one `on_success` or `on_failure` event
before the strategy returns the outcome of the task.

"""

import abc
import copy
import logging
from typing import Any, Dict, Tuple, assert_never

import pydantic
from square.dtypes import K8sConfig

import kdeploy.fieldpath
import kdeploy.k8s
from kdeploy.errors import TransportFailure
from kdeploy.listeners import DeploymentListener
from kdeploy.models import (
    ApplyAction,
    ClientSideApplyFlags,
    DeployConfig,
    K8sStatus,
    ResourceRecord,
    ResourceUrls,
    ServerSideApplyFlags,
)
from kdeploy.results import (
    DeleteFailed,
    DeleteSuccess,
    GetExists,
    GetUnknown,
    PatchConflict,
    PatchFailed,
    PatchSuccess,
    PostFailed,
    PostSuccess,
    PutConflict,
    PutFailed,
    PutSuccess,
)

# Convenience.
logit = logging.getLogger("app")


class ApplyStrategy(abc.ABC):
    name = "apply"

    def __init__(self, k8sconfig: K8sConfig):
        self.k8sconfig = k8sconfig

    async def apply_resource(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        urls: ResourceUrls,
        action: ApplyAction,
    ) -> bool:
        """Deploy `record` and return `True` if that succeeded."""
        listener.on_start(record)

        try:
            ret = await kdeploy.k8s.get_resource(self.k8sconfig, urls.item)
        except TransportFailure as err:
            listener.on_failure(record, err)
            return False

        if isinstance(ret, GetUnknown):
            return await self.create_resource(listener, record, urls)
        elif isinstance(ret, GetExists):
            if action is ApplyAction.CREATE_ONLY:
                listener.on_success(record, ret)
                return True
            elif action is ApplyAction.CREATE_OR_UPDATE:
                return await self.update_resource(listener, record, urls, ret)
            elif action is ApplyAction.RECREATE:
                return await self.recreate_resource(listener, record, urls)
            else:
                assert_never(action)
        else:
            assert_never(ret)

    async def create_resource(
        self, listener: DeploymentListener, record: ResourceRecord, urls: ResourceUrls
    ) -> bool:
        ret = await kdeploy.k8s.post_resource(
            self.k8sconfig, urls.collection, record.manifest
        )
        if isinstance(ret, PostSuccess):
            listener.on_success(record, ret)
            return True
        elif isinstance(ret, PostFailed):
            listener.on_failure(record, ret)
            return False
        else:
            assert_never(ret)

    async def recreate_resource(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        urls: ResourceUrls,
        reason: PutConflict | None = None,
    ) -> bool:
        """Delete the resource and create it again.

        A successful re-creation reports the events of an ordinary create. If
        the delete fails then report `reason`, or the failed delete itself if
        there is no `reason`.

        """
        ret = await kdeploy.k8s.delete_resource(self.k8sconfig, urls.item)
        if isinstance(ret, DeleteSuccess):
            return await self.create_resource(listener, record, urls)
        elif isinstance(ret, DeleteFailed):
            listener.on_failure(record, reason or ret)
            return False
        else:
            assert_never(ret)

    @abc.abstractmethod
    async def update_resource(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        urls: ResourceUrls,
        existing: GetExists,
    ) -> bool:
        """Update the existing resource and return `True` if that succeeded."""


class ServerSideApplyStrategy(ApplyStrategy):
    """Update resources with the native server side apply of K8s.

    K8s owns the merge and conflict resolution, so conflicts are failures.

    """

    name = "server-side-apply"

    def __init__(self, k8sconfig: K8sConfig, flags: ServerSideApplyFlags):
        super().__init__(k8sconfig)
        self.flags = flags

    async def update_resource(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        urls: ResourceUrls,
        existing: GetExists,
    ) -> bool:
        ret = await kdeploy.k8s.apply_resource(
            self.k8sconfig, urls.item, record.manifest, self.flags
        )
        if isinstance(ret, PatchSuccess):
            listener.on_success(record, ret)
            return True
        elif isinstance(ret, (PatchFailed, PatchConflict)):
            listener.on_failure(record, ret)
            return False
        else:
            assert_never(ret)


def plan_conflict_resolution(
    current: Dict[str, Any], desired: Dict[str, Any], status: K8sStatus
) -> Tuple[Dict[str, Any], bool, bool]:
    """Return the patched `desired` manifest and what to do with it.

    Returns:
        (dict, bool, bool): the patched copy of `desired`, whether it was
        updated and should be retried, and whether only a re-creation can
        apply it.

    K8s rejects updates that omit an immutable field the resource already
    has. We copy these fields from the `current` manifest unless `desired`
    explicitly specifies a different value, in which case the resource must
    be re-created. This does not cover every possible conflict.

    """
    desired = copy.deepcopy(desired)
    updated, recreate = False, False

    if status.reason.lower() != "invalid":
        return desired, updated, recreate

    for cause in status.details.causes:
        if cause.reason != "FieldValueInvalid":
            continue
        if not cause.message.endswith("field is immutable"):
            continue

        keys, err = kdeploy.fieldpath.parse(cause.field)
        if err:
            logit.warning("cannot parse field path", {"field": cause.field})
            continue

        current_value, err = kdeploy.fieldpath.read(current, keys)
        if err:
            # K8s has no value we could copy.
            continue

        desired_value, err = kdeploy.fieldpath.read(desired, keys)
        if err or desired_value is None:
            if kdeploy.fieldpath.put(desired, keys, copy.deepcopy(current_value)):
                logit.warning("cannot copy immutable field", {"field": cause.field})
                continue
            updated = True
        elif desired_value != current_value:
            recreate = True
            break

    return desired, updated, recreate


class ClientSideApplyStrategy(ApplyStrategy):
    """Update resources with PUT and resolve immutable field conflicts locally.

    Deprecated: prefer the `ServerSideApplyStrategy`. This strategy is not on
    par with `kubectl apply` and will not be improved.

    """

    name = "client-side-apply"

    def __init__(self, k8sconfig: K8sConfig, flags: ClientSideApplyFlags):
        super().__init__(k8sconfig)
        self.flags = flags
        logit.warning("client side apply is deprecated, use server side apply")

    async def update_resource(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        urls: ResourceUrls,
        existing: GetExists,
    ) -> bool:
        # Optimistic locking: K8s must reject the update if the resource
        # changed since we fetched it.
        manifest = copy.deepcopy(record.manifest)
        manifest.setdefault("metadata", {})["resourceVersion"] = existing.resourceVersion
        update = record.with_manifest(manifest)

        ret = await kdeploy.k8s.put_resource(self.k8sconfig, urls.item, update.manifest)
        if isinstance(ret, PutSuccess):
            listener.on_success(record, ret)
            return True
        elif isinstance(ret, PutFailed):
            listener.on_failure(record, ret)
            return False
        elif isinstance(ret, PutConflict):
            return await self.resolve_conflict(
                listener, record, update, urls, existing, ret
            )
        else:
            assert_never(ret)

    async def resolve_conflict(
        self,
        listener: DeploymentListener,
        record: ResourceRecord,
        update: ResourceRecord,
        urls: ResourceUrls,
        existing: GetExists,
        conflict: PutConflict,
    ) -> bool:
        """Retry the update at most once or re-create the resource.

        Failures always report the original `conflict`.

        """
        try:
            status = K8sStatus.model_validate_json(conflict.response.body)
        except pydantic.ValidationError:
            logit.error("cannot parse conflict status", {"url": urls.item})
            listener.on_failure(record, conflict)
            return False

        manifest, updated, recreate = plan_conflict_resolution(
            existing.manifest, update.manifest, status
        )

        if updated:
            retry = record.with_manifest(manifest)
            logit.info(f"Retrying update of {retry.info_text()}")
            ret = await kdeploy.k8s.put_resource(
                self.k8sconfig, urls.item, retry.manifest
            )
            if isinstance(ret, PutSuccess):
                listener.on_success(retry, ret)
                return True
            elif isinstance(ret, (PutFailed, PutConflict)):
                listener.on_failure(retry, conflict)
                return False
            else:
                assert_never(ret)

        if recreate and self.flags.recreate_allowed:
            logit.info(f"Re-creating {record.info_text()} to change immutable fields")
            return await self.recreate_resource(listener, record, urls, conflict)

        listener.on_failure(record, conflict)
        return False


def make_strategy(k8sconfig: K8sConfig, cfg: DeployConfig) -> ApplyStrategy:
    """Return the apply strategy selected in `cfg`."""
    if cfg.strategy == "client":
        return ClientSideApplyStrategy(k8sconfig, cfg.client_side)
    return ServerSideApplyStrategy(k8sconfig, cfg.server_side)
