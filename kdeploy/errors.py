from kdeploy.results import Response


class DeploymentError(Exception):
    """Base class for all KDeploy errors."""


class AddressingError(DeploymentError):
    """Cannot compute the K8s API URL of a resource."""


class InvalidApiVersion(AddressingError):
    pass


class InvalidResource(DeploymentError):
    """The serialized resource is not a valid K8s manifest."""


class TransportFailure(DeploymentError):
    """K8s answered a request with an unexpected status code."""

    def __init__(self, message: str, response: Response):
        super().__init__(message)
        self.response = response


class DeploymentFailure(DeploymentError):
    """At least one task of the deployment pass failed."""
