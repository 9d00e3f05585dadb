import logging
import os
from pathlib import Path
from typing import Tuple

from kdeploy.models import ClientSideApplyFlags, DeployConfig, ServerSideApplyFlags

# Convenience.
logit = logging.getLogger("app")


def parse_bool(value: str) -> bool:
    value = value.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"invalid boolean <{value}>")


def compile_config() -> Tuple[DeployConfig, bool]:
    """Return the deployment configuration from the environment variables."""
    get = os.getenv
    try:
        cfg = DeployConfig(
            kubeconfig=Path(get("KUBECONFIG", "")),
            kubecontext=get("KUBECONTEXT", ""),
            namespace=get("KDEPLOY_NAMESPACE", "default"),
            strategy=get("KDEPLOY_STRATEGY", "server"),  # type: ignore
            server_side=ServerSideApplyFlags(
                field_manager=get("KDEPLOY_FIELD_MANAGER", "kdeploy"),
                force=parse_bool(get("KDEPLOY_FORCE", "false")),
            ),
            client_side=ClientSideApplyFlags(
                recreate_allowed=parse_bool(get("KDEPLOY_RECREATE_ALLOWED", "false")),
            ),
            tick_delay=float(get("KDEPLOY_TICK_DELAY", "0")),
            loglevel=get("KDEPLOY_LOGLEVEL", "info"),
        )
    except ValueError as err:
        logit.error("invalid environment variables", {"reason": str(err)})
        return (
            DeployConfig(
                kubeconfig=Path(""),
                kubecontext="",
                namespace="",
                strategy="server",
                loglevel="",
            ),
            True,
        )

    if cfg.namespace == "" or cfg.tick_delay < 0:
        logit.error(
            "invalid environment variables",
            {"namespace": cfg.namespace, "tick_delay": cfg.tick_delay},
        )
        return cfg, True

    return cfg, False
