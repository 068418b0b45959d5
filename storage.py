"""
Object storage for uploaded resumes and profile images.

Two backends share the same interface:
- SupabaseStorage: Supabase Storage buckets, public URLs
- LocalStorage: files under UPLOAD_FOLDER/<bucket>/, served from PUBLIC_UPLOAD_URL

`get_storage()` returns the backend selected by STORAGE_BACKEND for the
current app.
"""
import logging
import os
import re
import time
from pathlib import Path
from typing import Optional

from flask import current_app
from supabase import create_client

from exceptions import StorageError
from utils import get_file_extension

logger = logging.getLogger(__name__)


def build_object_path(prefix: str, user_id, filename: str) -> str:
    """`<prefix>/<user_id>/<epoch_ms>-<sanitized stem><ext>`"""
    stem, _ = os.path.splitext(os.path.basename(filename or 'file'))
    safe_stem = re.sub(r'[^A-Za-z0-9_-]', '-', stem) or 'file'
    timestamp = int(time.time() * 1000)
    return f"{prefix}/{user_id}/{timestamp}-{safe_stem}{get_file_extension(filename)}"

def path_from_url(bucket: str, url: Optional[str]) -> Optional[str]:
    """Recover the object path from a public URL of `bucket`"""
    if not url:
        return None
    marker = f"/{bucket}/"
    index = url.find(marker)
    if index == -1:
        return None
    return url[index + len(marker):].split('?', 1)[0] or None


class LocalStorage:
    def __init__(self, root: str, public_url: str):
        self.root = Path(root)
        self.public_url = public_url.rstrip('/')
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Object storage initialized: filesystem at {self.root}")

    def _file(self, bucket, path):
        target = (self.root / bucket / path).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError('Invalid storage path')
        return target

    def upload(self, bucket, path, data, content_type=None, upsert=False):
        target = self._file(bucket, path)
        if target.exists() and not upsert:
            raise StorageError('File already exists')
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'wb') as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Error storing {bucket}/{path}: {e}")
            raise StorageError('Failed to upload file')
        logger.debug(f"Stored {len(data)} bytes at {target}")
        return self.get_public_url(bucket, path)

    def remove(self, bucket, path):
        target = self._file(bucket, path)
        if target.exists():
            target.unlink()
            logger.debug(f"Deleted {target}")

    def get_public_url(self, bucket, path):
        return f"{self.public_url}/{bucket}/{path}"


class SupabaseStorage:
    def __init__(self, url: str, key: str):
        self.client = create_client(url, key)
        logger.info("Object storage initialized: Supabase")

    def upload(self, bucket, path, data, content_type=None, upsert=False):
        file_options = {"upsert": "true" if upsert else "false"}
        if content_type:
            file_options["content-type"] = content_type
        try:
            self.client.storage.from_(bucket).upload(path, data, file_options=file_options)
        except Exception as e:
            logger.error(f"Error uploading to Supabase {bucket}/{path}: {e}")
            raise StorageError('Failed to upload file')
        return self.get_public_url(bucket, path)

    def remove(self, bucket, path):
        self.client.storage.from_(bucket).remove([path])

    def get_public_url(self, bucket, path):
        return self.client.storage.from_(bucket).get_public_url(path).rstrip('?')


def get_storage():
    storage = current_app.extensions.get('object_storage')
    if storage is None:
        config = current_app.config
        backend = config.get('STORAGE_BACKEND', 'local').lower()
        if backend == 'supabase':
            if not config.get('SUPABASE_URL') or not config.get('SUPABASE_SERVICE_ROLE_KEY'):
                raise StorageError('Supabase credentials are not configured', status_code=500)
            storage = SupabaseStorage(config['SUPABASE_URL'], config['SUPABASE_SERVICE_ROLE_KEY'])
        elif backend == 'local':
            storage = LocalStorage(config['UPLOAD_FOLDER'], config['PUBLIC_UPLOAD_URL'])
        else:
            raise ValueError(f"Unknown storage backend: {backend}")
        current_app.extensions['object_storage'] = storage
    return storage
