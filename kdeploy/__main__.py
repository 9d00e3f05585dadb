import asyncio
import logging
import sys
from pathlib import Path

import square.square

import kdeploy.cluster
import kdeploy.logstreams
import kdeploy.plan
from kdeploy.config import compile_config
from kdeploy.deploy import Deployer
from kdeploy.errors import DeploymentFailure
from kdeploy.pacing import TickControl
from kdeploy.strategy import make_strategy

# Convenience.
logit = logging.getLogger("app")


async def main(path: Path) -> int:
    cfg, err = compile_config()
    if err:
        return 1
    kdeploy.logstreams.setup(cfg.loglevel)

    plan, err = kdeploy.plan.load_plan(path)
    if err:
        return 1

    k8scfg, err = kdeploy.cluster.create_cluster_config(cfg.kubeconfig, cfg.kubecontext)
    if err:
        logit.error("cannot connect to cluster", {"kubeconfig": str(cfg.kubeconfig)})
        return 1

    deployer = Deployer(
        k8scfg,
        make_strategy(k8scfg, cfg),
        kdeploy.cluster.environment(k8scfg, cfg.namespace),
        pacing=TickControl(tick_delay=cfg.tick_delay),
    )
    try:
        await deployer.execute(plan)
    except DeploymentFailure as err:
        logit.error("deployment failed", {"reason": str(err)})
        return 1
    return 0


if __name__ == "__main__":  # codecov-skip
    square.square.setup_logging(2)
    if len(sys.argv) != 2:
        print("Usage: python -m kdeploy <manifest file or folder>")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(main(Path(sys.argv[1]))))
    except KeyboardInterrupt:
        print("User abort")
        sys.exit(1)
