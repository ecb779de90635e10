"""
Site content store with version history

The singleton content document and its version log are always written
together in one Firestore batch, so content never changes without a
matching version entry (and vice versa).
"""
import logging
from typing import Callable, Iterable, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from app.core import feeds
from app.core.errors import StoreUnavailableError, VersionMismatchError, VersionNotFoundError
from app.core.firebase import SITE_CONTENT_DOC_ID, Collections, require_db
from app.core.security import ADMIN_ACTOR
from app.schemas.content import (
    SiteContent,
    SiteContentVersion,
    default_site_content,
    normalize_site_content,
)
from app.services.content.validation import ensure_valid_fleet

logger = logging.getLogger(__name__)

VERSION_DISPLAY_LIMIT = 12


def _decode_content(snapshots) -> SiteContent:
    doc = snapshots[0] if snapshots else None
    if doc is None or not doc.exists:
        return default_site_content()
    return normalize_site_content(doc.to_dict())


def _decode_version(doc) -> SiteContentVersion:
    data = doc.to_dict() or {}
    return SiteContentVersion(
        id=doc.id,
        snapshot=normalize_site_content(data.get('snapshot')),
        action=data.get('action'),
        created_at=data.get('created_at'),
        created_by=data.get('created_by'),
        source_version_id=data.get('source_version_id'),
    )


def _decode_versions(snapshots) -> List[SiteContentVersion]:
    return [_decode_version(doc) for doc in snapshots]


class ContentStore:
    """Read, save and restore the editable site copy"""

    def __init__(self, client):
        self._client = client

    def _db(self):
        return require_db(self._client)

    def _content_ref(self):
        return self._db().collection(Collections.SITE_CONTENT).document(SITE_CONTENT_DOC_ID)

    def _versions_query(self, limit: int):
        return (
            self._db().collection(Collections.SITE_CONTENT_VERSIONS)
            .order_by('created_at', direction=firestore.Query.DESCENDING)
            .limit(limit)
        )

    # ==================== Reads ====================

    def get_content(self) -> SiteContent:
        """Current content, normalized against the defaults"""
        ref = self._content_ref()
        try:
            return _decode_content([ref.get()])
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Error loading site content: {e}")
            raise StoreUnavailableError(f"Unable to load site content: {e.message}")

    def list_versions(self, limit: int = VERSION_DISPLAY_LIMIT) -> List[SiteContentVersion]:
        query = self._versions_query(limit)
        try:
            return _decode_versions(query.stream())
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Error listing content versions: {e}")
            raise StoreUnavailableError(f"Unable to load content versions: {e.message}")

    def subscribe_content(
        self,
        on_next: Callable[[SiteContent], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> feeds.Subscription:
        return feeds.watch("site_content", self._content_ref(), _decode_content, on_next, on_error)

    def subscribe_versions(
        self,
        on_next: Callable[[List[SiteContentVersion]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        limit: int = VERSION_DISPLAY_LIMIT,
    ) -> feeds.Subscription:
        return feeds.watch(
            "site_content_versions", self._versions_query(limit), _decode_versions, on_next, on_error
        )

    # ==================== Writes ====================

    def save_content(
        self,
        draft: SiteContent,
        actor: str = ADMIN_ACTOR,
        failed_images: Iterable[str] = (),
    ) -> str:
        """
        Overwrite the content and append a `save` version, atomically.

        Raises:
            ContentValidationError: If any fleet entry is invalid (nothing is written)

        Returns:
            The new version id
        """
        ensure_valid_fleet(draft.fleet, failed_images)
        version_id = self._commit(draft, actor, action='save')
        logger.info(f"✅ Site content saved (version {version_id})")
        return version_id

    def restore_content(
        self,
        version_id: str,
        actor: str = ADMIN_ACTOR,
        snapshot: Optional[SiteContent] = None,
    ) -> str:
        """
        Put a historical snapshot back as the current content.

        Appends a `restore` version pointing at `version_id`; the source
        version itself is left untouched. A supplied `snapshot` (the admin's
        loaded copy) must match the stored one.

        Raises:
            VersionNotFoundError: If the version does not exist
            VersionMismatchError: If `snapshot` differs from the stored version
            ContentValidationError: If the fleet no longer validates (nothing is written)

        Returns:
            The new version id
        """
        source_ref = self._db().collection(Collections.SITE_CONTENT_VERSIONS).document(version_id)
        try:
            source = source_ref.get()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Error loading content version {version_id}: {e}")
            raise StoreUnavailableError(f"Unable to load content version: {e.message}")

        if not source.exists:
            raise VersionNotFoundError(f"Content version {version_id} not found")

        stored = _decode_version(source).snapshot
        if snapshot is not None and snapshot.model_dump() != stored.model_dump():
            raise VersionMismatchError(
                f"Snapshot does not match content version {version_id}; reload the version and retry."
            )
        snapshot = stored

        ensure_valid_fleet(snapshot.fleet)
        new_version_id = self._commit(snapshot, actor, action='restore', source_version_id=version_id)
        logger.info(f"✅ Site content restored from {version_id} (version {new_version_id})")
        return new_version_id

    def _commit(
        self,
        content: SiteContent,
        actor: str,
        action: str,
        source_version_id: Optional[str] = None,
    ) -> str:
        db = self._db()
        snapshot = content.model_dump()

        version_record = {
            'snapshot': snapshot,
            'action': action,
            'created_at': firestore.SERVER_TIMESTAMP,
            'created_by': actor,
        }
        if source_version_id:
            version_record['source_version_id'] = source_version_id

        # Use batched write for atomicity
        batch = db.batch()
        version_ref = db.collection(Collections.SITE_CONTENT_VERSIONS).document()
        batch.set(self._content_ref(), {
            **snapshot,
            'updated_at': firestore.SERVER_TIMESTAMP,
            'updated_by': actor,
        })
        batch.set(version_ref, version_record)

        try:
            batch.commit()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Error committing site content ({action}): {e}")
            raise StoreUnavailableError(f"Unable to {action} website content: {e.message}")

        return version_ref.id
