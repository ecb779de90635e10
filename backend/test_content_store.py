"""
Site content store and fleet validation tests
"""
import pytest

from app.core.errors import (
    ContentValidationError,
    StoreUnavailableError,
    VersionMismatchError,
    VersionNotFoundError,
)
from app.services.content.store import ContentStore
from app.services.content.validation import fleet_issues, is_valid_image_url


@pytest.fixture
def store(mock_db):
    return ContentStore(mock_db)


def edited(content, **home_changes):
    return content.model_copy(update={'home': content.home.model_copy(update=home_changes)})


# ==================== Validation ====================

@pytest.mark.parametrize("url, valid", [
    ("https://images.unsplash.com/photo-1.jpg", True),
    ("http://example.com/van.png", True),
    ("ftp://example.com/van.png", False),
    ("not a url", False),
    ("", False),
    (" https://example.com/a.jpg", False),
])
def test_image_urls(url, valid):
    assert is_valid_image_url(url) is valid


def test_default_fleet_is_valid(catalog):
    assert fleet_issues(catalog.fleet) == []


def test_every_offending_entry_is_named(catalog):
    fleet = [item.model_copy() for item in catalog.fleet]
    fleet[0] = fleet[0].model_copy(update={'base_fare': 0})
    fleet[2] = fleet[2].model_copy(update={'image': "van.png"})

    ids = {issue['id'] for issue in fleet_issues(fleet)}
    assert ids == {"sedan", "sprinter"}


def test_duplicate_ids(catalog):
    fleet = catalog.fleet + [catalog.fleet[0]]
    issues = fleet_issues(fleet)
    assert [i['message'] for i in issues] == ["Vehicle id is duplicated."]


def test_failed_image_preview_blocks(catalog):
    issues = fleet_issues(catalog.fleet, failed_images=["suv"])
    assert issues == [{'id': "suv", 'field': "image", 'message': "Image failed to load."}]


# ==================== Reads ====================

def test_defaults_until_first_save(store, catalog):
    assert store.get_content() == catalog
    assert store.list_versions() == []


# ==================== Save / restore ====================

def test_save_writes_content_and_version_together(store, catalog):
    draft = edited(catalog, hero_badge="NOW SERVING ROCHESTER")

    version_id = store.save_content(draft, actor="pin-admin")

    assert store.get_content().home.hero_badge == "NOW SERVING ROCHESTER"
    versions = store.list_versions()
    assert [v.id for v in versions] == [version_id]
    assert versions[0].action == "save"
    assert versions[0].created_by == "pin-admin"
    assert versions[0].snapshot == draft


def test_invalid_fleet_blocks_save(store, catalog, mock_db):
    bad_fleet = [catalog.fleet[0].model_copy(update={'base_fare': -5})] + catalog.fleet[1:]
    draft = catalog.model_copy(update={'fleet': bad_fleet})

    with pytest.raises(ContentValidationError) as exc_info:
        store.save_content(draft)

    assert exc_info.value.offending_ids == ["sedan"]
    assert "sedan" in exc_info.value.detail
    assert mock_db.collection("site_content").get() == []
    assert mock_db.collection("site_content_versions").get() == []


def test_restore_round_trip(store, catalog):
    first = store.save_content(edited(catalog, hero_badge="FIRST"))
    store.save_content(edited(catalog, hero_badge="SECOND"))

    restored_id = store.restore_content(first)

    assert store.get_content().home.hero_badge == "FIRST"
    latest = store.list_versions()[0]
    assert latest.id == restored_id
    assert latest.action == "restore"
    assert latest.source_version_id == first
    assert len(store.list_versions()) == 3


def test_restore_with_matching_snapshot(store, catalog):
    first = store.save_content(edited(catalog, hero_badge="FIRST"))
    store.save_content(edited(catalog, hero_badge="SECOND"))

    store.restore_content(first, snapshot=edited(catalog, hero_badge="FIRST"))

    assert store.get_content().home.hero_badge == "FIRST"


def test_restore_rejects_edited_snapshot(store, catalog):
    first = store.save_content(edited(catalog, hero_badge="FIRST"))
    bad_fleet = [catalog.fleet[0].model_copy(update={'base_fare': 0})] + catalog.fleet[1:]
    tampered = edited(catalog, hero_badge="FIRST").model_copy(update={'fleet': bad_fleet})

    with pytest.raises(VersionMismatchError):
        store.restore_content(first, snapshot=tampered)

    assert store.get_content().fleet[0].base_fare == catalog.fleet[0].base_fare
    assert len(store.list_versions()) == 1


def test_restore_revalidates_stored_fleet(store, catalog, mock_db):
    snapshot = catalog.model_dump()
    snapshot['fleet'][1]['image'] = "suv.png"
    mock_db.collection("site_content_versions").document("legacy").set({
        'snapshot': snapshot, 'action': "save", 'created_by': "pin-admin",
    })

    with pytest.raises(ContentValidationError) as exc_info:
        store.restore_content("legacy")

    assert exc_info.value.offending_ids == ["suv"]
    assert mock_db.collection("site_content").get() == []


def test_empty_fleet_round_trip(store, catalog):
    draft = catalog.model_copy(update={'fleet': []})

    version_id = store.save_content(draft)

    assert store.get_content().fleet == []
    assert store.list_versions()[0].snapshot.fleet == []
    store.restore_content(version_id)
    assert store.get_content() == draft


def test_restore_unknown_version(store):
    with pytest.raises(VersionNotFoundError):
        store.restore_content("missing")


def test_version_list_is_capped(store, catalog):
    for n in range(15):
        store.save_content(edited(catalog, hero_badge=f"V{n}"))

    versions = store.list_versions()
    assert len(versions) == 12
    assert versions[0].snapshot.home.hero_badge == "V14"


def test_outage_leaves_nothing_half_written(store, catalog, mock_db):
    store.save_content(edited(catalog, hero_badge="BEFORE"))
    mock_db.simulate_outage()

    with pytest.raises(StoreUnavailableError):
        store.save_content(edited(catalog, hero_badge="DURING"))

    mock_db.simulate_outage(False)
    assert store.get_content().home.hero_badge == "BEFORE"
    assert len(store.list_versions()) == 1


def test_partial_stored_content_is_normalized(store, mock_db, catalog):
    mock_db.collection("site_content").document("main").set({
        'home': {'hero_badge': "CUSTOM"},
        'fleet': [{'id': "sedan", 'name': "Town Car", 'base_fare': "99"}],
    })

    content = store.get_content()

    assert content.home.hero_badge == "CUSTOM"
    assert content.home.primary_cta == catalog.home.primary_cta
    assert content.fleet[0].name == "Town Car"
    assert content.fleet[0].base_fare == 99.0
    assert content.fleet[0].image == catalog.fleet[0].image


def test_content_feed(store, catalog):
    seen = []
    with store.subscribe_content(seen.append):
        store.save_content(edited(catalog, hero_badge="LIVE"))

    assert seen[0] == catalog
    assert seen[-1].home.hero_badge == "LIVE"
