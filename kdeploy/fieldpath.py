"""Read and write values in manifests addressed by K8s field paths.

K8s names the offending field of a rejected request with paths like
`spec.clusterIP`, `spec.template.spec.containers[0].image` or
`metadata.labels[app.kubernetes.io/name]`.

"""

import re
from typing import Any, List, Tuple

# Either a dotted name or a bracketed list index/map key.
RE_TOKEN = re.compile(r"\.?([^.\[\]]+)|\[([^\]]+)\]")


def parse(path: str) -> Tuple[List[str | int], bool]:
    """Return the keys of `path`, eg `spec.ports[0]` -> `["spec", "ports", 0]`."""
    path = path.removeprefix("$")
    keys: List[str | int] = []
    pos = 0
    while pos < len(path):
        match = RE_TOKEN.match(path, pos)
        if match is None:
            return [], True

        name, bracket = match.groups()
        if name is not None:
            keys.append(name)
        elif bracket.isdigit():
            keys.append(int(bracket))
        else:
            keys.append(bracket)
        pos = match.end()
    return keys, len(keys) == 0


def read(doc: Any, keys: List[str | int]) -> Tuple[Any, bool]:
    """Return the value at `keys` or set the error flag if it does not exist."""
    for key in keys:
        if isinstance(key, int):
            if not isinstance(doc, list) or not (0 <= key < len(doc)):
                return None, True
        elif not isinstance(doc, dict) or key not in doc:
            return None, True
        doc = doc[key]
    return doc, False


def put(doc: Any, keys: List[str | int], value: Any) -> bool:
    """Set the value at `keys` in-place and return the error flag.

    Create missing intermediate maps along the way. Lists are never created or
    extended, ie every list index must already exist.

    """
    if len(keys) == 0:
        return True

    *parents, last = keys
    for idx, key in enumerate(parents):
        if isinstance(key, int):
            if not isinstance(doc, list) or not (0 <= key < len(doc)):
                return True
            doc = doc[key]
            continue

        if not isinstance(doc, dict):
            return True
        if doc.get(key) is None:
            # Only create a map if the next key is a map key.
            if isinstance(keys[idx + 1], int):
                return True
            doc[key] = {}
        doc = doc[key]

    if isinstance(last, int):
        if not isinstance(doc, list) or not (0 <= last < len(doc)):
            return True
    elif not isinstance(doc, dict):
        return True

    doc[last] = value
    return False
