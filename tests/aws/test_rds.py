import boto3
from moto import mock_aws
import pytest

from eipctl.aws.rds import create_database, get_database_endpoint, wait_for_database_available
from eipctl.errors import ProviderError

pytestmark = pytest.mark.uses_moto


@mock_aws
def test_create_database(aws_ctx):
    db = create_database(aws_ctx, "app-db", "admin", "s3cretpassword", db_name="app")
    assert db["identifier"] == "app-db"
    assert db["arn"].endswith(":db:app-db")

    rds = boto3.client("rds", region_name="us-east-1")
    described = rds.describe_db_instances(DBInstanceIdentifier="app-db")["DBInstances"][0]
    assert described["Engine"] == "postgres"
    assert described["DBInstanceClass"] == "db.t3.micro"
    assert get_database_endpoint(aws_ctx, "app-db") == described.get("Endpoint", {}).get("Address", "")


def test_create_database_passes_security_groups(mock_ctx):
    rds = mock_ctx.client("rds")
    rds.create_db_instance.return_value = {"DBInstance": {"DBInstanceIdentifier": "app-db"}}

    db = create_database(mock_ctx, "app-db", "admin", "pw", security_group_ids=["sg-1"])

    assert db == {"identifier": "app-db", "arn": "", "endpoint": ""}
    call_kwargs = rds.create_db_instance.call_args.kwargs
    assert call_kwargs["VpcSecurityGroupIds"] == ["sg-1"]
    assert "DBName" not in call_kwargs


def test_create_database_error_wrapped(mock_ctx, make_client_error):
    mock_ctx.client("rds").create_db_instance.side_effect = make_client_error("DBInstanceAlreadyExists")
    with pytest.raises(ProviderError) as exc_info:
        create_database(mock_ctx, "app-db", "admin", "pw")
    assert exc_info.value.resource == "database app-db"
    assert exc_info.value.code == "DBInstanceAlreadyExists"


@mock_aws
def test_wait_then_read_endpoint(aws_ctx):
    create_database(aws_ctx, "app-db", "admin", "s3cretpassword")

    wait_for_database_available(aws_ctx, "app-db")

    assert get_database_endpoint(aws_ctx, "app-db").startswith("app-db.")


def test_get_database_endpoint_pending(mock_ctx):
    mock_ctx.client("rds").describe_db_instances.return_value = {
        "DBInstances": [{"DBInstanceIdentifier": "app-db", "DBInstanceStatus": "creating"}],
    }
    assert get_database_endpoint(mock_ctx, "app-db") == ""
