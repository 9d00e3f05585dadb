"""Typed outcomes of the K8s API calls.

Every call returns exactly one member of its result family. Callers handle
each member explicitly, which is what makes a conflict a distinct outcome
instead of just another failed request.

"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class Response(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # HTTP status code or -1 if the request never produced a response.
    status_code: int
    body: str = ""


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    response: Response


# ----------------------------------------------------------------------
# GET
# ----------------------------------------------------------------------
class GetUnknown(BaseModel):
    """The resource does not exist."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class GetExists(_Result):
    resourceVersion: str
    manifest: Dict[str, Any]


# ----------------------------------------------------------------------
# POST
# ----------------------------------------------------------------------
class PostSuccess(_Result):
    pass


class PostFailed(_Result):
    pass


# ----------------------------------------------------------------------
# PUT
# ----------------------------------------------------------------------
class PutSuccess(_Result):
    pass


class PutFailed(_Result):
    pass


class PutConflict(_Result):
    pass


# ----------------------------------------------------------------------
# PATCH (server side apply)
# ----------------------------------------------------------------------
class PatchSuccess(_Result):
    pass


class PatchFailed(_Result):
    pass


class PatchConflict(_Result):
    pass


# ----------------------------------------------------------------------
# DELETE
# ----------------------------------------------------------------------
class DeleteSuccess(_Result):
    pass


class DeleteFailed(_Result):
    pass


GetResult = GetUnknown | GetExists
PostResult = PostSuccess | PostFailed
PutResult = PutSuccess | PutFailed | PutConflict
PatchResult = PatchSuccess | PatchFailed | PatchConflict
DeleteResult = DeleteSuccess | DeleteFailed

# Results that terminate a task successfully.
SuccessResult = GetExists | PostSuccess | PutSuccess | PatchSuccess

# Results that terminate a task with a failure.
FailedResult = (
    PostFailed | PutFailed | PutConflict | PatchFailed | PatchConflict | DeleteFailed
)
