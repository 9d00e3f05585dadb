"""Drive a deployment plan one task at a time.

The controller executes the tasks strictly in plan order and never starts a
task before the previous one finished. Tasks are grouped into ticks by their
`tick` number. Whenever the plan advances to a different tick the controller
optionally pauses and asks the gatekeeper for permission to continue.

"""

import asyncio
import logging
from typing import Awaitable, Callable

from kdeploy.listeners import StatusTracker
from kdeploy.models import DeploymentPlan, DeploymentTask, PacingReport

# Convenience.
logit = logging.getLogger("app")

# Deploy a single task and return whether it succeeded.
TaskExecutor = Callable[[DeploymentTask], Awaitable[bool]]

# Decide whether the plan may proceed with the given tick.
GateKeeper = Callable[[int, StatusTracker], Awaitable[bool]]


async def _mysleep(delay: float):
    """This trivial function exists to mock out the `sleep` call during tests."""
    await asyncio.sleep(delay)


async def halt_on_failure(tick: int, status: StatusTracker) -> bool:
    """Gatekeeper that only starts the next tick if nothing has failed yet."""
    return status.success


class TickControl:
    def __init__(self, tick_delay: float = 0, gatekeeper: GateKeeper | None = None):
        self.tick_delay = tick_delay
        self.gatekeeper = gatekeeper

    async def enter_tick(self, tick: int, status: StatusTracker) -> bool:
        """Return `True` if the plan may proceed with `tick`."""
        if self.tick_delay > 0:
            logit.info(f"Waiting {self.tick_delay}s before tick {tick}")
            await _mysleep(self.tick_delay)

        if self.gatekeeper is None:
            return True
        return await self.gatekeeper(tick, status)

    async def execute(
        self, plan: DeploymentPlan, executor: TaskExecutor, status: StatusTracker
    ) -> PacingReport:
        report = PacingReport()
        current_tick: int | None = None

        for task in plan.tasks:
            if current_tick is not None and task.tick != current_tick:
                if not await self.enter_tick(task.tick, status):
                    logit.error(f"Gatekeeper halted the deployment at tick {task.tick}")
                    report.halted_at_tick = task.tick
                    break
            current_tick = task.tick

            report.outcomes.append(await executor(task))

        return report
