from eipctl.aws.context import AwsContext
from eipctl.errors import LookupNotFound, provider_call


CANONICAL_OWNER_ID = "099720109477"
UBUNTU_2204_NAME = "ubuntu/images/hvm-ssd/ubuntu-jammy-22.04-amd64-server-*"


def get_latest_ubuntu_ami(ctx: AwsContext) -> str:
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"AMI {UBUNTU_2204_NAME}", "DescribeImages", ec2.describe_images,
        Owners=[CANONICAL_OWNER_ID],
        Filters=[
            {"Name": "name", "Values": [UBUNTU_2204_NAME]},
            {"Name": "architecture", "Values": ["x86_64"]},
            {"Name": "virtualization-type", "Values": ["hvm"]},
            {"Name": "state", "Values": ["available"]},
        ],
    )
    images = response.get("Images", [])
    if not images:
        raise LookupNotFound(f"Ubuntu 22.04 AMI in {ctx.region}", UBUNTU_2204_NAME)
    images.sort(key=lambda x: x.get("CreationDate", ""), reverse=True)
    return images[0]["ImageId"]
