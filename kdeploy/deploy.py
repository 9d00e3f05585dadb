import logging
from typing import Any, Callable, Iterable

from square.dtypes import K8sConfig

from kdeploy.addressing import resource_urls
from kdeploy.errors import AddressingError, DeploymentFailure, InvalidResource
from kdeploy.listeners import (
    DeploymentListener,
    ListenerRegistry,
    ProgressListener,
    StatusTracker,
)
from kdeploy.manifest_utilities import resource_record, serialize, unknown_record
from kdeploy.models import DeploymentPlan, DeploymentTask, Environment
from kdeploy.pacing import TickControl
from kdeploy.strategy import ApplyStrategy

# Convenience.
logit = logging.getLogger("app")


class Deployer:
    """Deploy a plan of resources to K8s.

    Usage:

    k8scfg, err = kdeploy.cluster.create_cluster_config(kubeconfig, context)
    assert not err
    env = Environment(api_server_url=k8scfg.url, default_namespace="default")
    strategy = ServerSideApplyStrategy(k8scfg, ServerSideApplyFlags())
    await Deployer(k8scfg, strategy, env).execute(plan)

    The deployer closes the HTTP client of `k8sconfig` once the plan is done,
    ie every instance can only execute a single plan.

    """

    def __init__(
        self,
        k8sconfig: K8sConfig,
        strategy: ApplyStrategy,
        environment: Environment,
        pacing: TickControl | None = None,
        listeners: Iterable[DeploymentListener] = (),
        serializer: Callable[[Any], str] = serialize,
    ):
        self.k8sconfig = k8sconfig
        self.strategy = strategy
        self.environment = environment
        self.pacing = pacing or TickControl()
        self.listeners = list(listeners)
        self.serializer = serializer

    async def execute(self, plan: DeploymentPlan) -> None:
        """Deploy all tasks of `plan` and raise `DeploymentFailure` if any failed.

        Individual failures do not stop the deployment. Every task is
        attempted and the error message refers to the first failure only.

        """
        # Fresh set of listeners for this deployment pass.
        status = StatusTracker()
        registry = ListenerRegistry()
        registry.register(ProgressListener(self.strategy.name))
        registry.register(status)
        for listener in self.listeners:
            registry.register(listener)

        async def executor(task: DeploymentTask) -> bool:
            return await self.execute_task(registry, task)

        # Close the client when we are done, no matter what.
        async with self.k8sconfig.client:
            report = await self.pacing.execute(plan, executor, status)

        if not status.success:
            raise DeploymentFailure(status.failure_message)
        if report.halted_at_tick is not None:
            raise DeploymentFailure(
                f"Deployment halted before tick {report.halted_at_tick}"
            )

        logit.info("deployment complete", {"resources": len(report.outcomes)})

    async def execute_task(
        self, listener: DeploymentListener, task: DeploymentTask
    ) -> bool:
        """Deploy a single `task` and return `True` if it succeeded."""
        env = self.environment
        try:
            text = self.serializer(task.resource)
            record = resource_record(text, task.source, env.default_namespace)
        except InvalidResource as err:
            record = unknown_record(task.source)
            listener.on_start(record)
            listener.on_failure(record, err)
            return False

        try:
            urls = resource_urls(
                env.api_server_url,
                record.apiVersion,
                record.kind,
                record.name,
                record.namespace,
            )
        except AddressingError as err:
            listener.on_start(record)
            listener.on_failure(record, err)
            return False

        return await self.strategy.apply_resource(listener, record, urls, task.action)
