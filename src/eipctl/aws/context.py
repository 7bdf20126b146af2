from dataclasses import dataclass

import boto3


@dataclass(frozen=True)
class AwsContext:
    """Explicit provider handle: every AWS call is made through one of these."""

    region: str
    profile: str | None = None

    def client(self, service: str):
        if self.profile:
            session = boto3.Session(profile_name=self.profile, region_name=self.region)
            return session.client(service)
        return boto3.client(service, region_name=self.region)
