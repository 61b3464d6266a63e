"""Tests for search index maintenance."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from canvass.models.member import Member, MemberContact, UpdateMemberStatusRequest
from canvass.repositories.member import MemberRepository, MemberSearchRepository
from canvass.repositories.status_history import StatusHistoryRepository
from canvass.services.index_service import IndexService
from canvass.services.status_service import StatusService
from canvass.utils.exceptions import ConflictError, NotFoundError, StoreError


def throttled() -> ClientError:
    return ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
        "BatchWriteItem",
    )


class TestSaveMember:
    """Tests for IndexService.save_member."""

    def test_writes_member_entry_and_history(self, stored_member):
        """A new member is stored with its search entry and a history record."""
        member = MemberRepository().get_by_id(stored_member.id)
        entry = MemberSearchRepository().get_by_member_id(stored_member.id)
        events, _ = StatusHistoryRepository().list_for_member(stored_member.id)

        assert member.full_name == "أحمد محمود"
        assert member.created_by == "import-script"
        assert "احمد" in member.search_tokens
        assert entry.full_name_normalized == "احمد محمود"
        assert "محم" in entry.tokens
        assert "12345" in entry.tokens
        assert len(events) == 1
        assert events[0].status == "chance"

    def test_duplicate_rejected(self, stored_member):
        """Saving a member ID twice fails."""
        duplicate = Member(id=stored_member.id, full_name="آخر")

        with pytest.raises(ConflictError):
            IndexService().save_member(duplicate, actor_id="import-script")

    def test_store_failure_wrapped(self, sample_member):
        """Store failures surface as StoreError."""
        members = MagicMock()
        members.transact_write.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}}, "TransactWriteItems"
        )
        service = IndexService(members=members, search=MagicMock(), history=MagicMock())

        with pytest.raises(StoreError) as exc_info:
            service.save_member(sample_member, actor_id="u1")

        assert exc_info.value.operation == "write_member"
        assert "boom" not in exc_info.value.message


class TestUpdateMobiles:
    """Tests for IndexService.update_mobiles."""

    def test_replaces_and_reindexes(self, stored_member, head_actor):
        """New mobiles are canonical, unique and searchable."""
        member = IndexService().update_mobiles(
            stored_member.id, head_actor, ["+201112223334", "01112223334", "0100 000 0000"]
        )

        assert member.contact.mobiles == ["01112223334", "01000000000"]
        assert member.contact.mobile == "01112223334"

        entry = MemberSearchRepository().get_by_member_id(stored_member.id)
        assert entry.mobiles == ["01112223334", "01000000000"]
        assert "01112223334" in entry.tokens
        assert "01012345678" not in entry.tokens
        assert entry.version == 2

    def test_clear_mobiles(self, stored_member, head_actor):
        """An empty list removes every mobile."""
        member = IndexService().update_mobiles(stored_member.id, head_actor, [])

        assert member.contact.mobiles == []
        assert member.contact.mobile is None

    def test_unknown_member(self, dynamodb_table, head_actor):
        """Unknown members raise NotFoundError."""
        with pytest.raises(NotFoundError):
            IndexService().update_mobiles("nope", head_actor, ["01012345678"])


class TestReindexAll:
    """Tests for IndexService.reindex_all."""

    def test_rebuilds_stale_entries(self, dynamodb_table):
        """Members written without tokens become searchable."""
        repo = MemberRepository()
        for i in range(5):
            repo.put(Member(
                id=f"raw-{i}",
                full_name=f"مُصطفى {i}",
                contact=MemberContact(mobiles=["+201012345678"]),
            ))

        count = IndexService().reindex_all(page_size=2)

        assert count == 5
        entry = MemberSearchRepository().get_by_member_id("raw-3")
        assert entry.full_name_normalized == "مصطفي 3"
        assert "مصط" in entry.tokens
        assert entry.mobiles == ["01012345678"]
        assert "مصطفي" in repo.get_by_id("raw-3").search_tokens

    def test_concurrent_status_write_kept(self, stored_member, admin_actor):
        """A status write landing after the page was read is not overwritten."""
        service = IndexService()
        read_pages = service.members.iter_pages

        def pages_then_status_write(page_size):
            for page in read_pages(page_size=page_size):
                StatusService().update_status(
                    stored_member.id, admin_actor, UpdateMemberStatusRequest(status="voted")
                )
                yield page

        with patch.object(service.members, "iter_pages", side_effect=pages_then_status_write):
            assert service.reindex_all() == 1

        member = MemberRepository().get_by_id(stored_member.id)
        entry = MemberSearchRepository().get_by_member_id(stored_member.id)
        assert member.status == "voted"
        assert member.version == 3
        assert entry.status == "voted"
        assert "احمد" in entry.tokens

    def test_bumps_version(self, stored_member):
        """Reindexed members are written as a new version."""
        IndexService().reindex_all()

        assert MemberRepository().get_by_id(stored_member.id).version == 2

    def test_write_retried(self, dynamodb_table):
        """A failed write is retried before moving on."""
        MemberRepository().put(Member(id="raw-1", full_name="علي"))
        service = IndexService()
        write = service.members.transact_write
        calls = []

        def flaky_write(operations):
            calls.append(operations)
            if len(calls) == 1:
                raise throttled()
            return write(operations)

        with patch.object(service.members, "transact_write", side_effect=flaky_write), \
                patch("canvass.services.index_service.time.sleep") as sleep:
            assert service.reindex_all(retry_delay=0.5) == 1

        assert len(calls) == 2
        sleep.assert_called_once_with(0.5)
        assert "علي" in MemberSearchRepository().get_by_member_id("raw-1").tokens

    def test_gives_up_after_max_attempts(self, dynamodb_table):
        """A member that keeps failing stops the rebuild."""
        MemberRepository().put(Member(id="raw-1", full_name="علي"))
        service = IndexService()

        with patch.object(service.members, "transact_write", side_effect=throttled()), \
                patch("canvass.services.index_service.time.sleep"):
            with pytest.raises(StoreError) as exc_info:
                service.reindex_all(max_attempts=3)

        assert exc_info.value.operation == "reindex_members"
