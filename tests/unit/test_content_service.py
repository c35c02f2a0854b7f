"""Unit tests for the native content editor service."""

from datetime import timedelta

import pytest

from infrastructure.database.models import (
    ContentMedia,
    ContentTaxonomy,
    utcnow,
)
from services.content import ContentService, slugify, validate_content_form


def make_form(**overrides) -> dict:
    form = {
        "title": "Hello World",
        "slug": "hello-world",
        "content": "<p>Hello</p>",
        "excerpt": "",
        "type": "post",
        "status": "draft",
        "content_type": "native",
    }
    form.update(overrides)
    return form


@pytest.fixture
async def category(db_session, workspace) -> ContentTaxonomy:
    taxonomy = ContentTaxonomy(workspace_id=workspace.id, type="category", name="News", slug="news")
    db_session.add(taxonomy)
    await db_session.commit()
    return taxonomy


class TestSlugify:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Hello World", "hello-world"),
            ("  Ten Tips: SEO in 2026!  ", "ten-tips-seo-in-2026"),
            ("snake_case and--dashes", "snake-case-and-dashes"),
            ("---", ""),
        ],
    )
    def test_slugify(self, text, expected):
        assert slugify(text) == expected


class TestValidateContentForm:
    def test_valid(self):
        assert validate_content_form(make_form()) == {}

    def test_required_fields(self):
        errors = validate_content_form(make_form(title=" ", slug="", content=""))
        assert errors == {
            "title": "The title field is required.",
            "slug": "The slug field is required.",
            "content": "The content field is required.",
        }

    def test_invalid_choices(self):
        errors = validate_content_form(make_form(type="story", status="live", content_type="ftp"))
        assert set(errors) == {"type", "status", "content_type"}

    def test_length_limits(self):
        errors = validate_content_form(make_form(excerpt="x" * 501, seo_title="t" * 71))
        assert errors["excerpt"] == "The excerpt may not be greater than 500 characters."
        assert errors["seo_title"] == "The SEO title may not be greater than 70 characters."


class TestSave:
    async def test_create_adds_first_revision(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(seo_title="Hello"), test_user)

        assert item.workspace_id == workspace.id
        assert item.author_id == test_user.id
        assert item.sync_status == "synced"
        assert item.seo_meta["title"] == "Hello"
        assert item.revision_count == 1
        revisions = await service.revisions(item)
        assert [(r.revision_number, r.change_type) for r in revisions] == [(1, "edit")]

    async def test_autosave_of_new_item_has_no_revision(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(), test_user, change_type="autosave")
        assert item.revision_count == 0
        assert await service.revisions(item) == []

    async def test_autosave_revisions_hidden(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(), test_user)
        await service.save(item, make_form(title="Draft two"), test_user, change_type="autosave")

        assert item.revision_count == 2
        assert [r.revision_number for r in await service.revisions(item)] == [1]

    async def test_publish_at_kept_only_when_scheduled(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        when = utcnow() + timedelta(days=2)

        draft = await service.save(None, make_form(publish_at=when), test_user)
        assert draft.publish_at is None

        scheduled = await service.save(None, make_form(slug="later", status="future", publish_at=when), test_user)
        assert scheduled.publish_at is not None

    async def test_categories_scoped_to_workspace(self, db_session, workspace, test_user, category, hades_workspace):
        foreign = ContentTaxonomy(workspace_id=hades_workspace.id, type="category", name="Other", slug="other")
        db_session.add(foreign)
        await db_session.commit()

        item = await ContentService(db_session, workspace).save(
            None, make_form(category_ids=[category.id, foreign.id]), test_user
        )
        assert [t.slug for t in item.taxonomies] == ["news"]

    async def test_unknown_featured_media_dropped(self, db_session, workspace, test_user):
        item = await ContentService(db_session, workspace).save(
            None, make_form(featured_media_id="missing"), test_user
        )
        assert item.featured_media_id is None

    async def test_create_with_taxonomies_and_media(self, db_session, workspace, test_user, category):
        service = ContentService(db_session, workspace)
        tag = await service.find_or_create_tag("Launch")
        media = ContentMedia(workspace_id=workspace.id, title="Hero", source_url="https://cdn.example.com/hero.png")
        db_session.add(media)
        await db_session.commit()

        item = await service.save(
            None,
            make_form(category_ids=[category.id], tag_ids=[tag.id], featured_media_id=media.id),
            test_user,
        )

        assert [t.slug for t in item.categories] == ["news"]
        assert [t.slug for t in item.tags] == ["launch"]
        assert item.featured_media_id == media.id
        assert item.revision_count == 1

    async def test_update_replaces_taxonomies(self, db_session, workspace, test_user, category):
        service = ContentService(db_session, workspace)
        tag = await service.find_or_create_tag("Launch")
        item = await service.save(None, make_form(category_ids=[category.id]), test_user)

        reloaded = await service.get_item(item.id)
        updated = await service.save(reloaded, make_form(tag_ids=[tag.id]), test_user)

        assert [t.slug for t in updated.taxonomies] == ["launch"]
        assert updated.revision_count == 2


class TestRevisions:
    async def test_restore_adds_restore_revision(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(title="First"), test_user)
        first = (await service.revisions(item))[0]
        await service.save(item, make_form(title="Second"), test_user)

        assert await service.restore_revision(item, first, test_user)

        assert item.title == "First"
        revisions = await service.revisions(item)
        assert [r.change_type for r in revisions] == ["restore", "edit", "edit"]

    async def test_restore_from_other_item_refused(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        one = await service.save(None, make_form(), test_user)
        two = await service.save(None, make_form(slug="two"), test_user)
        revision = (await service.revisions(one))[0]

        assert not await service.restore_revision(two, revision, test_user)


class TestTaxonomies:
    async def test_find_or_create_tag_is_idempotent(self, db_session, workspace):
        service = ContentService(db_session, workspace)
        first = await service.find_or_create_tag("Release Notes")
        second = await service.find_or_create_tag(" Release Notes ")

        assert first.id == second.id
        assert first.slug == "release-notes"

    async def test_add_and_remove_tag(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(), test_user)
        tag = await service.find_or_create_tag("python")

        await service.add_tag(item, tag)
        await service.add_tag(item, tag)
        assert [t.name for t in item.taxonomies] == ["python"]

        assert await service.remove_tag(item, tag.id)
        assert not await service.remove_tag(item, tag.id)

    async def test_toggle_category(self, db_session, workspace, test_user, category):
        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(), test_user)

        assert await service.toggle_category(item, category.id) is True
        assert await service.toggle_category(item, category.id) is False
        assert await service.toggle_category(item, "missing") is None

    async def test_set_featured_media(self, db_session, workspace, test_user):
        media = ContentMedia(workspace_id=workspace.id, title="Hero", source_url="https://cdn.example.com/hero.png")
        db_session.add(media)
        await db_session.commit()

        service = ContentService(db_session, workspace)
        item = await service.save(None, make_form(), test_user)

        assert await service.set_featured_media(item, media.id)
        assert item.featured_media_id == media.id
        assert not await service.set_featured_media(item, "missing")
        assert await service.set_featured_media(item, None)
        assert item.featured_media_id is None


class TestListing:
    async def test_filters(self, db_session, workspace, test_user, category):
        service = ContentService(db_session, workspace)
        await service.save(None, make_form(title="Launch day", slug="launch", category_ids=[category.id]), test_user)
        await service.save(None, make_form(title="About", slug="about", type="page", status="publish"), test_user)

        assert (await service.list_items(search="launch"))["total"] == 1
        assert (await service.list_items(type="page"))["total"] == 1
        assert (await service.list_items(category="news"))["total"] == 1
        assert (await service.list_items(status="publish"))["items"][0].slug == "about"

        ordered = await service.list_items(sort="title", direction="asc")
        assert [i.title for i in ordered["items"]] == ["About", "Launch day"]

    async def test_stats_and_kanban(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        await service.save(None, make_form(), test_user)
        await service.save(None, make_form(slug="p", type="page", status="publish"), test_user)

        stats = await service.stats()
        assert stats["total"] == 2
        assert stats["posts"] == 1
        assert stats["published"] == 1
        assert stats["synced"] == 2

        columns = {c["status"]: c for c in await service.kanban()}
        assert len(columns["draft"]["items"]) == 1
        assert len(columns["publish"]["items"]) == 1
        assert columns["future"]["items"] == []

    async def test_chart_counts_today(self, db_session, workspace, test_user):
        service = ContentService(db_session, workspace)
        await service.save(None, make_form(), test_user)

        chart = await service.chart_data(days=7)
        assert len(chart) == 7
        assert chart[-1]["count"] == 1
