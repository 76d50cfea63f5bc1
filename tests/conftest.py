"""
Shared fixtures: fake AWS credentials and a moto-backed bookings table.
"""

import boto3
import pytest
from moto import mock_aws

TEST_REGION = "ap-southeast-2"
TEST_TABLE = "anmc-bookings-test"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)


def create_bookings_table(dynamodb, table_name: str = TEST_TABLE):
    """Bookings table keyed by id, with the MemberEmailIndex GSI."""
    return dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "memberEmail", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "MemberEmailIndex",
                "KeySchema": [{"AttributeName": "memberEmail", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def dynamodb_resource(aws_credentials):
    """moto DynamoDB resource holding an empty bookings table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name=TEST_REGION)
        create_bookings_table(dynamodb)
        yield dynamodb
