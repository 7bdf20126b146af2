from eipctl.aws.context import AwsContext
from eipctl.errors import provider_call


def create_database(
    ctx: AwsContext, identifier: str, username: str, password: str,
    engine: str = "postgres", instance_class: str = "db.t3.micro",
    allocated_storage: int = 20, db_name: str = "",
    security_group_ids: list[str] | None = None, publicly_accessible: bool = False,
) -> dict:
    """Create a managed database instance. Returns {"identifier", "arn", "endpoint"}.

    The endpoint is empty until RDS has finished creating the instance; read it
    with get_database_endpoint after wait_for_database_available.
    """
    rds = ctx.client("rds")
    kwargs = {
        "DBInstanceIdentifier": identifier,
        "DBInstanceClass": instance_class,
        "Engine": engine,
        "AllocatedStorage": allocated_storage,
        "MasterUsername": username,
        "MasterUserPassword": password,
        "PubliclyAccessible": publicly_accessible,
        "Tags": [{"Key": "Name", "Value": identifier}],
    }
    if db_name:
        kwargs["DBName"] = db_name
    if security_group_ids:
        kwargs["VpcSecurityGroupIds"] = security_group_ids
    response = provider_call(f"database {identifier}", "CreateDBInstance", rds.create_db_instance, **kwargs)
    db = response["DBInstance"]
    return {
        "identifier": db["DBInstanceIdentifier"],
        "arn": db.get("DBInstanceArn", ""),
        "endpoint": db.get("Endpoint", {}).get("Address", ""),
    }


def wait_for_database_available(ctx: AwsContext, identifier: str) -> None:
    rds = ctx.client("rds")
    waiter = rds.get_waiter("db_instance_available")
    provider_call(f"database {identifier}", "WaitDBInstanceAvailable", waiter.wait, DBInstanceIdentifier=identifier)


def get_database_endpoint(ctx: AwsContext, identifier: str) -> str:
    rds = ctx.client("rds")
    response = provider_call(
        f"database {identifier}", "DescribeDBInstances", rds.describe_db_instances,
        DBInstanceIdentifier=identifier,
    )
    instances = response.get("DBInstances", [])
    if not instances:
        return ""
    return instances[0].get("Endpoint", {}).get("Address", "")
