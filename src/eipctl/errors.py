from botocore.exceptions import BotoCoreError, ClientError


class EipctlError(Exception):
    """Base class for all errors raised by eipctl procedures."""


class LookupNotFound(EipctlError, LookupError):
    def __init__(self, resource: str, name: str):
        self.resource = resource
        self.name = name
        super().__init__(f"No {resource} found with name '{name}'")


class LookupAmbiguous(EipctlError, LookupError):
    def __init__(self, resource: str, name: str, matches: list[str]):
        self.resource = resource
        self.name = name
        self.matches = matches
        super().__init__(
            f"Expected exactly one {resource} named '{name}', found {len(matches)}: "
            + ", ".join(matches)
        )


class ProviderError(EipctlError):
    """A cloud API call failed for a reason other than an expected lookup miss."""

    def __init__(self, resource: str, operation: str, cause: Exception):
        self.resource = resource
        self.operation = operation
        self.code = ""
        if isinstance(cause, ClientError):
            self.code = cause.response.get("Error", {}).get("Code", "")
        super().__init__(f"{operation} failed for {resource}: {cause}")


class TagDriftError(EipctlError):
    def __init__(self, drift: list[str]):
        self.drift = drift
        super().__init__(
            "Elastic IP tags do not match live associations: " + "; ".join(drift)
        )


class AlreadyAssociatedError(EipctlError):
    def __init__(self, instance_id: str, allocation_id: str):
        self.instance_id = instance_id
        self.allocation_id = allocation_id
        super().__init__(
            f"Instance {instance_id} already has Elastic IP {allocation_id} attached"
        )


class ProvisioningError(EipctlError):
    """Provisioning stopped part way. Attributes describe what was left behind."""

    def __init__(self, message: str, allocation_id: str = "", allocated: bool = False,
                 instance_id: str = "", rolled_back: bool = False):
        self.allocation_id = allocation_id
        self.allocated = allocated
        self.instance_id = instance_id
        self.rolled_back = rolled_back
        super().__init__(message)


class SwapError(EipctlError):
    def __init__(self, message: str, result):
        self.result = result
        super().__init__(message)


def is_client_error(exc: ClientError, code: str) -> bool:
    return exc.response["Error"]["Code"] == code


def provider_call(resource: str, operation: str, fn, *args, **kwargs):
    """Invoke a boto3 client method, re-raising botocore failures as ProviderError."""
    try:
        return fn(*args, **kwargs)
    except (ClientError, BotoCoreError) as e:
        raise ProviderError(resource, operation, e) from e
