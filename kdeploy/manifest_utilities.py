import json
from typing import Any

import pydantic

from kdeploy.errors import InvalidResource
from kdeploy.models import ResourceRecord


def serialize(resource: Any) -> str:
    """Return the JSON representation of `resource`.

    Supports plain manifests, ie dicts, and Pydantic models of manifests.

    """
    if isinstance(resource, pydantic.BaseModel):
        return resource.model_dump_json(exclude_none=True, by_alias=True)

    try:
        return json.dumps(resource, sort_keys=True)
    except (TypeError, ValueError) as err:
        raise InvalidResource(f"cannot serialize resource: {err}")


def resource_record(text: str, source: str, default_namespace: str) -> ResourceRecord:
    """Parse the serialized resource `text` and extract its identity.

    If the manifest does not specify a namespace then set it to
    `default_namespace`. This modifies the manifest before we send it to K8s.

    """
    try:
        manifest = json.loads(text)
    except json.decoder.JSONDecodeError as err:
        raise InvalidResource(f"{source}: corrupt JSON: {err.msg}")

    try:
        api_version = manifest["apiVersion"]
        kind = manifest["kind"]
        metadata = manifest["metadata"]
        name = metadata["name"]
    except (KeyError, TypeError) as err:
        raise InvalidResource(f"{source}: manifest is missing {err}")

    # The namespace is optional, eg `Namespace` or `ClusterRole`.
    if not metadata.get("namespace"):
        metadata["namespace"] = default_namespace

    identity = (api_version, kind, name, metadata["namespace"])
    if not all(isinstance(_, str) for _ in identity):
        raise InvalidResource(
            f"{source}: apiVersion, kind, name and namespace must be strings"
        )

    return ResourceRecord(
        apiVersion=api_version.lower(),
        kind=kind,
        name=name,
        namespace=metadata["namespace"],
        manifest=manifest,
        source=source,
    )


def unknown_record(source: str) -> ResourceRecord:
    """Return a placeholder for a resource we could not even parse."""
    return ResourceRecord(
        apiVersion="",
        kind="Resource",
        name="<unknown>",
        namespace="",
        manifest={},
        source=source,
    )
