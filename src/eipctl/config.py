import os
from dataclasses import dataclass

from eipctl.aws.context import AwsContext


DEFAULT_REGION = "us-east-1"

STAGING_INSTANCE = "staging-instance"
PRODUCTION_INSTANCE = "production-instance"
STAGING_EIP_TAG = "stagingEip"
PRODUCTION_EIP_TAG = "prodEip"


@dataclass
class Settings:
    region: str = DEFAULT_REGION
    profile: str | None = None
    staging_instance: str = STAGING_INSTANCE
    production_instance: str = PRODUCTION_INSTANCE
    staging_eip_tag: str = STAGING_EIP_TAG
    production_eip_tag: str = PRODUCTION_EIP_TAG

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "Settings":
        """Build settings from explicit overrides, then environment, then defaults.

        Overrides that are None are ignored so CLI options can be passed straight through.
        """
        env = os.environ if environ is None else environ
        values = {
            "region": (
                env.get("EIPCTL_REGION") or env.get("AWS_REGION")
                or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
            ),
            "profile": env.get("AWS_PROFILE") or None,
            "staging_instance": env.get("EIPCTL_STAGING_INSTANCE") or STAGING_INSTANCE,
            "production_instance": env.get("EIPCTL_PRODUCTION_INSTANCE") or PRODUCTION_INSTANCE,
            "staging_eip_tag": env.get("EIPCTL_STAGING_TAG") or STAGING_EIP_TAG,
            "production_eip_tag": env.get("EIPCTL_PRODUCTION_TAG") or PRODUCTION_EIP_TAG,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def context(self) -> AwsContext:
        return AwsContext(region=self.region, profile=self.profile)
