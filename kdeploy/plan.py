"""Compile a deployment plan from YAML manifests.

Each manifest may carry these annotations to control its deployment:

    kdeploy.io/apply-action: create-only | create-or-update | recreate
    kdeploy.io/tick: <int>

The annotations are removed before the manifest is deployed.

"""

import logging
from pathlib import Path
from typing import List, Tuple

import yaml

from kdeploy.models import ApplyAction, DeploymentPlan, DeploymentTask

ANNOTATION_ACTION = "kdeploy.io/apply-action"
ANNOTATION_TICK = "kdeploy.io/tick"

# Convenience.
logit = logging.getLogger("app")


def manifest_files(path: Path) -> List[Path]:
    """Return `path` itself or all YAML files in it, sorted by name."""
    if path.is_file():
        return [path]
    return sorted(_ for _ in path.iterdir() if _.suffix in (".yaml", ".yml"))


def make_task(manifest: dict, source: str) -> Tuple[DeploymentTask, bool]:
    """Return the task for `manifest` and strip our annotations from it."""
    metadata = manifest.get("metadata")
    if not isinstance(metadata, dict):
        logit.error("manifest has no metadata", {"source": source})
        return DeploymentTask(resource={}), True

    annotations = metadata.get("annotations") or {}
    if not isinstance(annotations, dict):
        logit.error("annotations are not a mapping", {"source": source})
        return DeploymentTask(resource={}), True

    action = annotations.pop(ANNOTATION_ACTION, ApplyAction.CREATE_OR_UPDATE.value)
    tick = annotations.pop(ANNOTATION_TICK, "1")
    if "annotations" in metadata and len(annotations) == 0:
        del metadata["annotations"]

    try:
        task = DeploymentTask(
            resource=manifest,
            source=source,
            action=ApplyAction(action),
            tick=int(tick),
        )
    except ValueError as err:
        logit.error("invalid kdeploy annotation", {"source": source, "reason": str(err)})
        return DeploymentTask(resource={}), True
    return task, False


def load_plan(path: Path) -> Tuple[DeploymentPlan, bool]:
    """Return the plan for all manifests in `path`.

    The plan lists the manifests in the order of the files and, within each
    file, in the order of the YAML documents.

    """
    plan = DeploymentPlan()
    try:
        for fname in manifest_files(path):
            docs = list(yaml.safe_load_all(fname.read_text()))
            for idx, manifest in enumerate(docs):
                # Skip empty documents, eg a trailing `---`.
                if manifest is None:
                    continue

                source = f"{fname}:{idx}"
                if not isinstance(manifest, dict):
                    logit.error("manifest is not a mapping", {"source": source})
                    return DeploymentPlan(), True

                task, err = make_task(manifest, source)
                if err:
                    return DeploymentPlan(), True
                plan.tasks.append(task)
    except (OSError, yaml.YAMLError) as err:
        logit.error("cannot load manifests", {"path": str(path), "reason": str(err)})
        return DeploymentPlan(), True

    return plan, False
