"""Analysis thumbnails stored in a Supabase storage bucket."""

import logging
from dataclasses import dataclass

from storage3.exceptions import StorageException
from supabase import Client

from photo_intelligence.services.worker import AnalysisAssetStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseAnalysisAssetStore(AnalysisAssetStore):
    """Reads analysis thumbnails and signs short-lived URLs for them."""

    client: Client
    bucket: str
    signed_url_ttl_seconds: int = 600

    def get(self, asset_id: str) -> bytes | None:
        """Return the thumbnail bytes, if present."""
        try:
            return self.client.storage.from_(self.bucket).download(asset_id)
        except StorageException:
            _logger.warning("Analysis asset missing: asset_id=%s", asset_id)
            return None

    def get_signed_url(self, asset_id: str) -> str | None:
        """Return a short-lived URL for the thumbnail, if present."""
        try:
            response = self.client.storage.from_(self.bucket).create_signed_url(
                asset_id, self.signed_url_ttl_seconds
            )
        except StorageException:
            _logger.warning("Analysis asset not signable: asset_id=%s", asset_id)
            return None
        return response.get("signedURL") or response.get("signedUrl")
