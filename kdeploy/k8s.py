import asyncio
import json
import logging
import ssl
from typing import Tuple
from urllib.parse import urlencode, urlparse

import httpx
import tenacity as tc
from square.dtypes import K8sConfig

from kdeploy.errors import TransportFailure
from kdeploy.models import ServerSideApplyFlags
from kdeploy.results import (
    DeleteFailed,
    DeleteResult,
    DeleteSuccess,
    GetExists,
    GetResult,
    GetUnknown,
    PatchConflict,
    PatchFailed,
    PatchResult,
    PatchSuccess,
    PostFailed,
    PostResult,
    PostSuccess,
    PutConflict,
    PutFailed,
    PutResult,
    PutSuccess,
    Response,
)

# Define the exceptions we want to retry on.
WEB_EXCEPTIONS = (httpx.RequestError, ssl.SSLError, KeyError, asyncio.TimeoutError)

# K8s reports optimistic locking failures with 409 and rejected changes, eg to
# immutable fields, with 422.
CONFLICT_CODES = (409, 422)

# Convenience: global logger instance to avoid repetitive code.
logit = logging.getLogger("app")


def _on_backoff(retry_state: tc.RetryCallState):
    """Log a warning on each retry."""
    attempt = retry_state.attempt_number
    k8sconfig, method, url = retry_state.args[:3]
    path = urlparse(url).path

    logit.warning(f"Back off {attempt} - {k8sconfig.name} - {method} {path}.")


async def _mysleep(delay: float):
    """This trivial function exists to mock out the `sleep` call during tests."""
    await asyncio.sleep(delay)


@tc.retry(
    stop=(tc.stop_after_delay(300) | tc.stop_after_attempt(8)),
    wait=tc.wait_exponential(multiplier=1, min=0, max=20) + tc.wait_random(-5, 5),
    retry=tc.retry_if_exception_type(WEB_EXCEPTIONS),
    before_sleep=_on_backoff,
    reraise=True,
    sleep=_mysleep,
)
async def _call(
    k8sconfig: K8sConfig,
    method: str,
    url: str,
    payload: dict | None,
    headers: dict | None,
) -> httpx.Response:
    return await k8sconfig.client.request(method, url, json=payload, headers=headers)


async def request(
    k8sconfig: K8sConfig,
    method: str,
    url: str,
    payload: dict | None = None,
    headers: dict | None = None,
) -> Tuple[Response, bool]:
    """Return the response of a web request made with `k8sconfig.client`.

    Inputs:
        k8sconfig: K8sConfig
            Holds the HttpX client with correct K8s certificates.
        url: str
            Eg `https://1.2.3.4/api/v1/namespaces`)
        payload: dict
            Anything that can be JSON encoded, usually a K8s manifest.
        headers: dict
            Request headers. These will *not* replace the existing request
            headers dictionary (eg the access tokens), but augment them.

    Returns:
        (Response, bool): the status code and raw body. The error flag is only
        set if the request did not produce a response at all, in which case the
        status code is -1.

    """
    # Make the HTTP request via our backoff/retry handler.
    try:
        ret = await _call(k8sconfig, method, url, payload=payload, headers=headers)
    except WEB_EXCEPTIONS as err:
        logit.error(f"Giving up - {k8sconfig.name} - {err} - {method} {url}")
        return Response(status_code=-1, body=str(err)), True

    # Log the entire request in debug mode.
    logit.debug(
        f"{method} {ret.status_code} {ret.url}\n"
        f"Headers: {headers}\n"
        f"Payload: {payload}\n"
        f"Response: {ret.text}\n"
    )
    return Response(status_code=ret.status_code, body=ret.text), False


async def get_resource(k8sconfig: K8sConfig, url: str) -> GetResult:
    """Fetch the manifest at `url`.

    Raise `TransportFailure` unless K8s either returns the resource or
    confirms it does not exist.

    """
    resp, err = await request(k8sconfig, "GET", url, payload=None, headers=None)
    if resp.status_code == 404:
        return GetUnknown()

    if err or resp.status_code != 200:
        logit.error(f"{resp.status_code} - GET - {url} - {resp.body}")
        raise TransportFailure(f"GET {url} returned {resp.status_code}", resp)

    # Decode the JSON response and abort if that is impossible.
    try:
        manifest = json.loads(resp.body)
        resource_version = str(manifest["metadata"]["resourceVersion"])
    except json.decoder.JSONDecodeError as err:
        logit.error(
            f"JSON error - {k8sconfig.name} - "
            f"{err.msg} in line {err.lineno} column {err.colno}"
        )
        raise TransportFailure(f"GET {url} returned corrupt JSON", resp)
    except (KeyError, TypeError):
        raise TransportFailure(f"GET {url} returned no resource version", resp)

    return GetExists(resourceVersion=resource_version, manifest=manifest, response=resp)


async def post_resource(k8sconfig: K8sConfig, url: str, payload: dict) -> PostResult:
    """Make POST requests to the collection `url` (see `request`)."""
    resp, err = await request(k8sconfig, "POST", url, payload, headers=None)
    if err or resp.status_code not in (200, 201, 202):
        logit.error(f"{resp.status_code} - POST - {url} - {resp.body}")
        return PostFailed(response=resp)
    return PostSuccess(response=resp)


async def put_resource(k8sconfig: K8sConfig, url: str, payload: dict) -> PutResult:
    """Make PUT requests to the item `url` (see `request`)."""
    resp, err = await request(k8sconfig, "PUT", url, payload, headers=None)
    if not err and resp.status_code in CONFLICT_CODES:
        logit.warning(f"{resp.status_code} - PUT - {url} - conflict")
        return PutConflict(response=resp)

    if err or resp.status_code not in (200, 201):
        logit.error(f"{resp.status_code} - PUT - {url} - {resp.body}")
        return PutFailed(response=resp)
    return PutSuccess(response=resp)


async def apply_resource(
    k8sconfig: K8sConfig, url: str, payload: dict, flags: ServerSideApplyFlags
) -> PatchResult:
    """Server side apply `payload` to the item `url` (see `request`).

    K8s accepts JSON for the YAML apply patch since JSON is valid YAML.

    """
    query = urlencode(
        {"fieldManager": flags.field_manager, "force": str(flags.force).lower()}
    )
    url = f"{url}?{query}"
    headers = {"Content-Type": "application/apply-patch+yaml"}

    resp, err = await request(k8sconfig, "PATCH", url, payload, headers)
    if not err and resp.status_code in CONFLICT_CODES:
        logit.warning(f"{resp.status_code} - PATCH - {url} - conflict")
        return PatchConflict(response=resp)

    if err or resp.status_code not in (200, 201):
        logit.error(f"{resp.status_code} - PATCH - {url} - {resp.body}")
        return PatchFailed(response=resp)
    return PatchSuccess(response=resp)


async def delete_resource(k8sconfig: K8sConfig, url: str) -> DeleteResult:
    """Make DELETE requests to the item `url` (see `request`)."""
    resp, err = await request(k8sconfig, "DELETE", url, payload=None, headers=None)
    if err or resp.status_code not in (200, 202):
        logit.error(f"{resp.status_code} - DELETE - {url} - {resp.body}")
        return DeleteFailed(response=resp)
    return DeleteSuccess(response=resp)
