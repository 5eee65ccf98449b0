"""Tests for tag resolution and the tag synchronizer."""

import pytest

from siteadmin.database import transaction
from siteadmin.models import BlogPostTag, BlogTag
from siteadmin.services.tags import resolve_tags, split_tag_input, sync_tags

from conftest import make_post


@pytest.fixture
def post_id(repo) -> int:
    return repo.save(make_post()).id


def _tag_names(db, post_id: int) -> list:
    rows = (
        db.query(BlogTag.name)
        .join(BlogPostTag, BlogPostTag.tag_id == BlogTag.id)
        .filter(BlogPostTag.post_id == post_id)
        .order_by(BlogTag.name)
        .all()
    )
    return [name for (name,) in rows]


class TestSplitTagInput:
    def test_list_input(self):
        assert split_tag_input(["Solar", " Savings "]) == ["Solar", "Savings"]

    def test_comma_and_newline_string(self):
        assert split_tag_input("Solar, Savings\nNet  Metering,,") == [
            "Solar",
            "Savings",
            "Net Metering",
        ]

    def test_none(self):
        assert split_tag_input(None) == []


class TestResolveTags:
    def test_dedupes_by_slug_keeping_first_spelling(self):
        assert resolve_tags(["Solar", "solar ", " SOLAR"]) == [("Solar", "solar")]

    def test_drops_blank_and_symbol_only_names(self):
        assert resolve_tags(["", "   ", "☀☀", "Wind"]) == [("Wind", "wind")]

    def test_keeps_input_order(self):
        assert [slug for _, slug in resolve_tags(["Zeta", "Alpha"])] == ["zeta", "alpha"]


class TestSyncTags:
    def test_creates_tags_and_links(self, db, post_id):
        names = sync_tags(db, post_id, ["Solar", "Net Metering"])

        assert names == ["Solar", "Net Metering"]
        assert _tag_names(db, post_id) == ["Net Metering", "Solar"]

    def test_case_variants_share_one_tag(self, db, post_id):
        sync_tags(db, post_id, ["Solar", "solar ", " SOLAR"])

        assert db.query(BlogTag).count() == 1
        assert _tag_names(db, post_id) == ["Solar"]

    def test_existing_tag_keeps_its_name(self, db, post_id, repo):
        other = repo.save(make_post(title="Other")).id
        sync_tags(db, other, ["Solar"])
        sync_tags(db, post_id, ["SOLAR"])

        assert db.query(BlogTag).count() == 1
        assert _tag_names(db, post_id) == ["Solar"]

    def test_replaces_previous_links(self, db, post_id):
        sync_tags(db, post_id, ["Solar", "Savings"])
        sync_tags(db, post_id, ["Maintenance"])

        assert _tag_names(db, post_id) == ["Maintenance"]
        # Unused tags stay in the table
        assert db.query(BlogTag).count() == 3

    def test_empty_list_removes_all_links(self, db, post_id):
        sync_tags(db, post_id, ["Solar"])
        sync_tags(db, post_id, [])

        assert _tag_names(db, post_id) == []

    def test_commits_when_called_alone(self, db, post_id):
        sync_tags(db, post_id, ["Solar"])
        db.rollback()

        assert _tag_names(db, post_id) == ["Solar"]

    def test_joins_outer_transaction(self, db, post_id):
        with pytest.raises(RuntimeError):
            with transaction(db):
                sync_tags(db, post_id, ["Solar", "Savings"])
                raise RuntimeError("caller failed after syncing")

        assert db.query(BlogTag).count() == 0
        assert _tag_names(db, post_id) == []

    def test_outer_transaction_commits_once(self, db, post_id):
        with transaction(db):
            sync_tags(db, post_id, ["Solar"])
            sync_tags(db, post_id, ["Savings"])

        assert _tag_names(db, post_id) == ["Savings"]
