"""
Asset storage for generated section images and narration.

Supabase Storage in production; a local directory served by the API in
development (``ASSET_BACKEND=local``).
"""

import asyncio
from pathlib import Path
from typing import Optional

from supabase import Client

from fablecast.config import config
from fablecast.database.client import get_supabase_admin_client
from fablecast.pipeline.errors import AssetStoreError
from fablecast.utils.logging import storage_logger as logger


class SupabaseAssetStore:
    """Uploads blobs to a Supabase Storage bucket and returns their public URLs."""

    def __init__(self, bucket: Optional[str] = None, client: Optional[Client] = None):
        self.bucket = bucket or config.SUPABASE_STORAGE_BUCKET
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    def _upload(self, data: bytes, path: str, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(path)

    async def store_blob(self, data: bytes, path: str, content_type: str) -> str:
        if not data:
            raise AssetStoreError(f"Refusing to upload empty blob to {path}")
        try:
            url = await asyncio.to_thread(self._upload, data, path, content_type)
        except Exception as e:
            raise AssetStoreError(f"Supabase upload of {path} failed: {e}") from e

        # get_public_url can append a bare "?" with no transform options
        url = url.rstrip("?") if isinstance(url, str) else url
        if not url:
            raise AssetStoreError(f"Supabase returned no public URL for {path}")
        logger.info("Uploaded asset", path=path, bucket=self.bucket, size=len(data))
        return url


class LocalAssetStore:
    """Writes blobs under a local directory; URLs point at the API's /assets mount."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or config.LOCAL_ASSET_DIR)
        self.base_url = (base_url or config.LOCAL_ASSET_BASE_URL).rstrip("/")

    async def store_blob(self, data: bytes, path: str, content_type: str) -> str:
        if not data:
            raise AssetStoreError(f"Refusing to write empty blob to {path}")
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise AssetStoreError(f"Asset path escapes the asset directory: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise AssetStoreError(f"Failed to write {target}: {e}") from e

        logger.debug("Saved asset locally", path=str(target), content_type=content_type)
        return f"{self.base_url}/{path}"


def build_asset_store():
    """Asset store selected by ``ASSET_BACKEND``."""
    if config.use_local_assets:
        return LocalAssetStore()
    return SupabaseAssetStore()
