"""Pytest configuration and fixtures."""

import json
import os

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "canvass-test"
os.environ["STAGE"] = "test"
os.environ["COGNITO_USER_POOL_ID"] = "us-east-1_test123"
os.environ["COGNITO_REGION"] = "us-east-1"
os.environ["PHONE_COUNTRY_CODE"] = "20"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

ADMIN_ID = "admin-user-1"
HEAD_USER_ID = "head-user-1"
HEAD_ID = "head-1"
LEADER_USER_ID = "leader-user-1"
LEADER_ID = "L1"
OTHER_LEADER_USER_ID = "leader-user-2"
OTHER_LEADER_ID = "L2"
VIEWER_ID = "viewer-user-1"


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="canvass-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def profiles(dynamodb_table):
    """Store one profile per role and return them by key."""
    from canvass.models.profile import UserProfile
    from canvass.repositories.profile import ProfileRepository

    repo = ProfileRepository()
    stored = {
        "admin": UserProfile(id=ADMIN_ID, role="admin", display_name="المشرف"),
        "head": UserProfile(id=HEAD_USER_ID, role="teamHead", display_name="رئيس الفريق", head_id=HEAD_ID),
        "leader": UserProfile(
            id=LEADER_USER_ID,
            role="teamLeader",
            display_name="قائد أول",
            head_id=HEAD_ID,
            leader_ids=[LEADER_ID],
        ),
        "other_leader": UserProfile(
            id=OTHER_LEADER_USER_ID,
            role="teamLeader",
            display_name="قائد ثان",
            head_id=HEAD_ID,
            leader_ids=[OTHER_LEADER_ID],
        ),
        "viewer": UserProfile(id=VIEWER_ID, role="viewer"),
    }
    for profile in stored.values():
        repo.put(profile)
    return stored


@pytest.fixture
def admin_actor():
    """Admin acting on the global scope."""
    from canvass.models.profile import AppRole
    from canvass.utils.auth import ActorContext

    return ActorContext(actor_id=ADMIN_ID, role=AppRole.ADMIN, display_name="المشرف")


@pytest.fixture
def head_actor():
    """Team head owning head scope ``head-1``."""
    from canvass.models.profile import AppRole
    from canvass.utils.auth import ActorContext

    return ActorContext(actor_id=HEAD_USER_ID, role=AppRole.TEAM_HEAD, display_name="رئيس الفريق", head_id=HEAD_ID)


@pytest.fixture
def leader_actor():
    """Team leader owning leader scope ``L1`` under ``head-1``."""
    from canvass.models.profile import AppRole
    from canvass.utils.auth import ActorContext

    return ActorContext(
        actor_id=LEADER_USER_ID,
        role=AppRole.TEAM_LEADER,
        display_name="قائد أول",
        head_id=HEAD_ID,
        leader_ids=[LEADER_ID],
    )


@pytest.fixture
def other_leader_actor():
    """Team leader owning leader scope ``L2`` under ``head-1``."""
    from canvass.models.profile import AppRole
    from canvass.utils.auth import ActorContext

    return ActorContext(
        actor_id=OTHER_LEADER_USER_ID,
        role=AppRole.TEAM_LEADER,
        display_name="قائد ثان",
        head_id=HEAD_ID,
        leader_ids=[OTHER_LEADER_ID],
    )


@pytest.fixture
def viewer_actor():
    """Read-only viewer."""
    from canvass.models.profile import AppRole
    from canvass.utils.auth import ActorContext

    return ActorContext(actor_id=VIEWER_ID, role=AppRole.VIEWER)


@pytest.fixture
def sample_member():
    """Create a sample member."""
    from canvass.models.member import Member, MemberContact

    return Member(
        id="member-1",
        full_name="أحمد محمود",
        membership_id="12345",
        address="شارع النصر",
        contact=MemberContact(mobiles=["01012345678"], mobile="01012345678"),
    )


@pytest.fixture
def stored_member(dynamodb_table, sample_member):
    """Sample member saved with its search entry."""
    from canvass.services.index_service import IndexService

    return IndexService().save_member(sample_member, actor_id="import-script")


@pytest.fixture
def api_gateway_event():
    """Create a sample API Gateway event."""
    def _create_event(
        method: str = "GET",
        resource: str = "/",
        path_params: dict = None,
        query_params: dict = None,
        body=None,
        user_id: str | None = ADMIN_ID,
        role: str = "",
    ):
        authorizer = {"userId": user_id, "email": "test@example.com", "role": role} if user_id else {}

        return {
            "httpMethod": method,
            "resource": resource,
            "path": resource,
            "pathParameters": path_params or {},
            "queryStringParameters": query_params or {},
            "body": body if isinstance(body, str) or body is None else json.dumps(body),
            "headers": {
                "Authorization": "Bearer test-token",
                "Content-Type": "application/json",
            },
            "requestContext": {"authorizer": authorizer},
        }

    return _create_event


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"

    def get_remaining_time_in_millis(self):
        return 30000


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()
