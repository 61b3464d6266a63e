"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from canvass.models.base import generate_ulid
from canvass.models.category import CreateCategoryRequest, MemberCategory, UpdateCategoryRequest
from canvass.models.member import (
    Member,
    MemberContact,
    StatusScope,
    UpdateMemberStatusRequest,
    dedupe_scopes,
)
from canvass.models.profile import UserProfile
from canvass.models.search_entry import MemberSearchEntry
from canvass.models.status_history import StatusHistoryEvent


class TestBaseModel:
    """Tests for BaseModel."""

    def test_generate_ulid(self):
        """Test ULID generation."""
        ulid1 = generate_ulid()
        ulid2 = generate_ulid()

        assert len(ulid1) == 26
        assert ulid1 != ulid2

    def test_model_serialization(self, sample_member):
        """Test DynamoDB serialization."""
        db_item = sample_member.to_dynamodb()

        assert db_item["id"] == "member-1"
        assert db_item["full_name"] == "أحمد محمود"
        assert db_item["status"] == "chance"
        assert db_item["contact"]["mobiles"] == ["01012345678"]
        assert isinstance(db_item["created_at"], str)
        assert "last_status_update" not in db_item

    def test_model_deserialization(self):
        """Test DynamoDB deserialization."""
        db_item = {
            "PK": "MEMBER#member-9",
            "SK": "MEMBER",
            "id": "member-9",
            "full_name": "فاطمة علي",
            "membership_id": 778,
            "version": 4,
            "created_at": "2024-01-01T12:00:00+00:00",
        }

        member = Member.from_dynamodb(db_item)

        assert member.id == "member-9"
        assert member.membership_id == "778"
        assert member.version == 4
        assert member.full_name_normalized == "فاطمه علي"

    def test_keys_from_prefixes(self):
        """Keys come from the class prefixes unless a model overrides them."""
        assert UserProfile(id="u1").get_keys() == {"PK": "PROFILE#u1", "SK": "PROFILE"}
        assert MemberSearchEntry(id="m1").get_keys() == {"PK": "MEMBER#m1", "SK": "SEARCH"}

        event = StatusHistoryEvent(id="01H", member_id="m1", status="no", updated_by="u1")
        assert event.get_keys() == {"PK": "MEMBER#m1", "SK": "HISTORY#01H"}

    def test_stamp_write(self, sample_member):
        """Existing documents move past the expected version; new ones keep theirs."""
        before = sample_member.updated_at

        sample_member.stamp_write(None)
        assert sample_member.version == 1

        sample_member.stamp_write(4)
        assert sample_member.version == 5
        assert sample_member.updated_at >= before


class TestMemberDecodeDefaults:
    """Stored members with missing or invalid fields decode to safe defaults."""

    def test_invalid_statuses(self):
        """Unknown statuses fall back to chance and pending."""
        member = Member.from_dynamodb({"id": "m1", "status": "maybe", "election_day_status": "?"})

        assert member.status == "chance"
        assert member.election_day_status == "pending"

    def test_global_scope_synthesised(self):
        """A member without scopes gets a global scope mirroring its status."""
        member = Member.from_dynamodb({"id": "m1", "status": "committed"})

        assert len(member.status_scopes) == 1
        assert member.global_scope.status == "committed"
        assert member.global_scope.scope_id is None

    def test_scope_entry_defaults(self):
        """Broken scope entries are repaired on decode."""
        scope = StatusScope.model_validate({
            "scope_type": "team",
            "scope_id": "x",
            "status": "unknown",
            "categories": ["c1", "", 5, "  c2 "],
            "updated_at": 12,
        })

        assert scope.scope_type == "global"
        assert scope.scope_id is None
        assert scope.status == "chance"
        assert scope.categories == ["c1", "c2"]
        assert scope.updated_at is None

    def test_duplicate_scopes_collapse(self):
        """Only one entry per (scope_type, scope_id) survives."""
        member = Member.from_dynamodb({
            "id": "m1",
            "status_scopes": [
                {"scope_type": "global", "status": "no"},
                {"scope_type": "head", "scope_id": "h1", "status": "contacted"},
                {"scope_type": "head", "scope_id": "h1", "status": "committed"},
            ],
        })

        keys = [scope.key for scope in member.status_scopes]
        assert keys == [("global", None), ("head", "h1")]
        assert member.status_scopes[1].status == "committed"

    def test_dedupe_keeps_single_global(self):
        """A second global entry replaces the first."""
        scopes = dedupe_scopes([
            StatusScope(scope_type="global", status="no"),
            StatusScope(scope_type="global", status="voted"),
        ])

        assert len(scopes) == 1
        assert scopes[0].status == "voted"

    def test_mobiles_canonicalised(self):
        """Mobiles are stored canonical and unique."""
        contact = MemberContact(mobiles=["+201012345678", "01012345678", "1112223334"])

        assert contact.mobiles == ["01012345678", "01112223334"]


class TestMember:
    """Tests for Member."""

    def test_keys(self, sample_member):
        """Test key generation."""
        assert sample_member.get_pk() == "MEMBER#member-1"
        assert sample_member.get_sk() == "MEMBER"

    def test_refresh_search_fields(self, sample_member):
        """Tokens cover name, membership ID and mobiles."""
        sample_member.refresh_search_fields()

        assert sample_member.full_name_normalized == "احمد محمود"
        assert "احمد" in sample_member.search_tokens
        assert "12345" in sample_member.search_tokens
        assert "01012345678" in sample_member.search_tokens
        assert "الن" in sample_member.search_tokens

    def test_land_line_canonical_in_tokens(self):
        """Landlines are canonicalized before they feed the token set."""
        member = Member(id="m1", contact={"land_line": "02-2345-6789"})

        member.refresh_search_fields()

        assert member.contact.land_line == "0223456789"
        assert "0223456789" in member.search_tokens
        assert "02-2345-6789" not in member.search_tokens

    def test_land_line_country_code(self):
        """A landline with the country code is rewritten to the local form."""
        contact = MemberContact(land_line="20 2 2345 6789", mobile=" ")

        assert contact.land_line == "0223456789"
        assert contact.mobile is None


class TestMemberSearchEntry:
    """Tests for MemberSearchEntry."""

    def test_from_member(self, sample_member):
        """The entry mirrors the member and regenerates tokens."""
        entry = MemberSearchEntry.from_member(sample_member)

        assert entry.id == sample_member.id
        assert entry.get_sk() == "SEARCH"
        assert entry.full_name_normalized == "احمد محمود"
        assert entry.mobiles == ["01012345678"]
        assert "محم" in entry.tokens
        assert entry.status_scopes[0].scope_type == "global"

    def test_gsi_keys(self, sample_member):
        """Status listing key is ordered by normalized name."""
        entry = MemberSearchEntry.from_member(sample_member)

        assert entry.get_gsi1_keys() == {
            "GSI1PK": "STATUS#chance",
            "GSI1SK": "احمد محمود#member-1",
        }


class TestUpdateMemberStatusRequest:
    """Tests for UpdateMemberStatusRequest."""

    def test_status_required(self):
        """Status must be a known value."""
        with pytest.raises(ValidationError):
            UpdateMemberStatusRequest.model_validate({"status": "maybe"})

    def test_first_category_only(self):
        """Only the first usable category ID is kept."""
        request = UpdateMemberStatusRequest.model_validate(
            {"status": "committed", "categories": ["", "c1", "c2"]}
        )

        assert request.categories == ["c1"]
        assert request.has_category_payload

    def test_categories_must_be_list(self):
        """A non-list category payload is rejected."""
        with pytest.raises(ValidationError):
            UpdateMemberStatusRequest.model_validate({"status": "committed", "categories": "c1"})
        with pytest.raises(ValidationError):
            UpdateMemberStatusRequest.model_validate({"status": "committed", "categories": None})

    def test_no_category_payload(self):
        """Absent categories mean no category change."""
        request = UpdateMemberStatusRequest.model_validate(
            {"status": "voted", "electionDayStatus": "confirmed"}
        )

        assert not request.has_category_payload
        assert request.election_day_status == "confirmed"


class TestMemberCategory:
    """Tests for MemberCategory and its requests."""

    def test_scope_is_frozen(self):
        """A category's scope cannot be reassigned."""
        category = MemberCategory(name="مؤيد", scope_type="head", scope_id="h1", created_by="u1")

        with pytest.raises(ValidationError):
            category.scope_id = "h2"
        with pytest.raises(ValidationError):
            category.scope_type = "leader"

    def test_create_request_normalizes(self):
        """Name is trimmed, color gets a leading '#'."""
        request = CreateCategoryRequest.model_validate(
            {"name": "  مؤيد  ", "color": "ff0000", "description": "  "}
        )

        assert request.name == "مؤيد"
        assert request.color == "#ff0000"
        assert request.description is None

    def test_name_capped(self):
        """Names longer than 100 characters are truncated."""
        request = CreateCategoryRequest.model_validate({"name": "ا" * 150})

        assert len(request.name) == 100

    @pytest.mark.parametrize("payload", [{}, {"name": "   "}, {"name": "x", "color": "red"}])
    def test_create_request_rejects(self, payload):
        """Missing names and invalid colors are rejected."""
        with pytest.raises(ValidationError):
            CreateCategoryRequest.model_validate(payload)

    def test_update_changes(self):
        """Only provided fields change; empty names are ignored."""
        request = UpdateCategoryRequest.model_validate({"name": "", "color": None})

        assert request.changes() == {"color": None}


class TestUserProfile:
    """Tests for UserProfile."""

    def test_leader_ids_cleaned(self):
        """Empty and duplicate leader IDs are dropped."""
        profile = UserProfile(id="u1", role="teamLeader", leader_ids=["L1", "", "L1", " L2 "])

        assert profile.leader_ids == ["L1", "L2"]
        assert profile.get_pk() == "PROFILE#u1"
