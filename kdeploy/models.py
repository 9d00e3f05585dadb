from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict

# ----------------------------------------------------------------------
# Deployment Plan
# ----------------------------------------------------------------------


class ApplyAction(str, Enum):
    """What to do with a resource that already exists in the cluster."""

    CREATE_ONLY = "create-only"
    CREATE_OR_UPDATE = "create-or-update"
    RECREATE = "recreate"


class DeploymentTask(BaseModel):
    """A single resource to deploy.

    The `resource` is anything the serializer understands, usually a plain
    manifest dict or a Pydantic model of one.

    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    resource: Any
    source: str = ""
    action: ApplyAction = ApplyAction.CREATE_OR_UPDATE
    tick: int = 1


class DeploymentPlan(BaseModel):
    """Ordered list of tasks. The order is significant and never changes."""

    model_config = ConfigDict(extra="forbid")

    tasks: List[DeploymentTask] = []


class PacingReport(BaseModel):
    """Outcome of driving a plan through the pacing controller."""

    model_config = ConfigDict(extra="forbid")

    outcomes: List[bool] = []

    # The tick the gatekeeper refused to start, if any.
    halted_at_tick: int | None = None


# ----------------------------------------------------------------------
# Resources.
# ----------------------------------------------------------------------


class ResourceRecord(BaseModel):
    """The desired state of one resource plus its identity.

    The identity fields never change. Only the conflict resolution produces
    new records, and only with a different `manifest` (see `with_manifest`).

    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    apiVersion: str
    kind: str
    name: str
    namespace: str
    manifest: Dict[str, Any]
    source: str = ""

    def with_manifest(self, manifest: Dict[str, Any]) -> "ResourceRecord":
        return self.model_copy(update={"manifest": manifest})

    def info_text(self) -> str:
        return f"{self.kind} - {self.name} in {self.namespace} namespace"

    def full_info_text(self) -> str:
        if not self.source:
            return self.info_text()
        return f"{self.info_text()} from {self.source}"


class ResourceUrls(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # Eg `https://1.2.3.4/api/v1/namespaces/default/configmaps`.
    collection: str

    # Eg `https://1.2.3.4/api/v1/namespaces/default/configmaps/demo`.
    item: str


class Environment(BaseModel):
    """Cluster specific values for one deployment run."""

    model_config = ConfigDict(extra="forbid")

    api_server_url: str
    default_namespace: str = "default"


# ----------------------------------------------------------------------
# Kubernetes.
# ----------------------------------------------------------------------


class K8sStatusCause(BaseModel):
    reason: str = ""
    message: str = ""
    field: str = ""


class K8sStatusDetails(BaseModel):
    name: str = ""
    kind: str = ""
    causes: List[K8sStatusCause] = []


class K8sStatus(BaseModel):
    """The `Status` object K8s returns for failed requests."""

    kind: str = ""
    status: str = ""
    message: str = ""
    reason: str = ""
    code: int = 0
    details: K8sStatusDetails = K8sStatusDetails()


# ----------------------------------------------------------------------
# KDeploy Configuration.
# ----------------------------------------------------------------------


class ServerSideApplyFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field_manager: str = "kdeploy"
    force: bool = False


class ClientSideApplyFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Delete and re-create a resource if an update must change an immutable field.
    recreate_allowed: bool = False


class DeployConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kubeconfig: Path
    kubecontext: str

    # Namespace for all resources that do not specify one.
    namespace: str

    strategy: Literal["server", "client"]
    server_side: ServerSideApplyFlags = ServerSideApplyFlags()
    client_side: ClientSideApplyFlags = ClientSideApplyFlags()

    # Seconds to pause whenever the plan advances to the next tick.
    tick_delay: float = 0

    loglevel: str
